import logging

import mysql.connector
from flask import Blueprint, abort, current_app, jsonify, session
from flask_wtf.csrf import generate_csrf

from auth_utils import current_user_id, hash_password, login_required, verify_password
from defaults import seed_default_categories
from serializers import to_json
from validators import ValidationError, json_body, parse_text, registration_payload

logger = logging.getLogger(__name__)

auth_bp = Blueprint('auth', __name__, url_prefix='/api')

USER_COLUMNS = "id, username, name, email, currency, role, created_at"


def fetch_user(cur, user_id):
    cur.execute(f"SELECT {USER_COLUMNS} FROM users WHERE id=%s", (user_id,))
    return cur.fetchone()


def start_session(user):
    session.clear()
    session.permanent = True
    session['user_id'] = user['id']


@auth_bp.route('/csrf-token')
def csrf_token():
    return jsonify(csrfToken=generate_csrf())


@auth_bp.route('/register', methods=['POST'])
def register():
    data = registration_payload(json_body())

    conn = current_app.db_pool.get_connection()
    try:
        with conn.cursor(dictionary=True) as cur:
            cur.execute("SELECT id FROM users WHERE username=%s", (data['username'],))
            if cur.fetchone():
                abort(400, description="Username already exists")
            cur.execute("SELECT id FROM users WHERE email=%s", (data['email'],))
            if cur.fetchone():
                abort(400, description="Email already exists")

            try:
                cur.execute(
                    "INSERT INTO users (username, name, email, password_hash) VALUES (%s, %s, %s, %s)",
                    (data['username'], data['name'], data['email'], hash_password(data['password']))
                )
            except mysql.connector.IntegrityError as err:
                # a concurrent registration took the name or email after the checks above
                logger.info("Registration race for %s: %s", data['username'], err.msg)
                if 'email' in (err.msg or ''):
                    abort(400, description="Email already exists")
                abort(400, description="Username already exists")
            user_id = cur.lastrowid
            seed_default_categories(cur, user_id)
            conn.commit()
            user = fetch_user(cur, user_id)
    finally:
        conn.close()

    logger.info("Registered user %s (%s)", user_id, data['username'])
    start_session(user)
    return jsonify(to_json(user)), 201


@auth_bp.route('/login', methods=['POST'])
def login():
    data = json_body()
    username = parse_text(data.get('username'), 'username', max_length=255)
    password = data.get('password')
    if not isinstance(password, str) or not password:
        raise ValidationError("password is required", 'password')

    conn = current_app.db_pool.get_connection()
    try:
        with conn.cursor(dictionary=True) as cur:
            cur.execute(
                f"SELECT {USER_COLUMNS}, password_hash FROM users WHERE username=%s",
                (username,)
            )
            user = cur.fetchone()
    finally:
        conn.close()

    if not user or not verify_password(user['password_hash'], password):
        logger.info("Failed login for %s", username)
        abort(401, description="Invalid username or password")

    start_session(user)
    logger.info("User %s logged in", user['id'])
    return jsonify(to_json(user))


@auth_bp.route('/logout', methods=['POST'])
def logout():
    session.clear()
    return jsonify(message="Logged out")


@auth_bp.route('/user')
@login_required
def me():
    conn = current_app.db_pool.get_connection()
    try:
        with conn.cursor(dictionary=True) as cur:
            user = fetch_user(cur, current_user_id())
    finally:
        conn.close()
    return jsonify(to_json(user))
