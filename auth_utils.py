import logging
from functools import wraps

import mysql.connector
from flask import abort, current_app, g, session
from werkzeug.security import check_password_hash, generate_password_hash

logger = logging.getLogger(__name__)


def hash_password(password):
    return generate_password_hash(password)


def verify_password(stored_hash, password):
    if not stored_hash or not isinstance(password, str):
        return False
    return check_password_hash(stored_hash, password)


def current_user_id():
    return g.user['id']


def is_admin():
    return g.user.get('role') == 'admin'


def _load_session_user(user_id):
    conn = current_app.db_pool.get_connection()
    try:
        with conn.cursor(dictionary=True) as cur:
            cur.execute("SELECT id, role FROM users WHERE id=%s", (user_id,))
            return cur.fetchone()
    finally:
        conn.close()


def login_required(fn):
    """Reject requests without a session, or whose session user no longer exists."""
    @wraps(fn)
    def wrapper(*args, **kwargs):
        user_id = session.get('user_id')
        if user_id is None:
            abort(401, description="Authentication required")
        try:
            user = _load_session_user(user_id)
        except mysql.connector.Error:
            logger.exception("Session check failed for user %s", user_id)
            abort(503, description="Authentication unavailable: database error")
        if not user:
            logger.info("Session user %s no longer exists; clearing session", user_id)
            session.clear()
            abort(401, description="Authentication required")
        g.user = user
        return fn(*args, **kwargs)
    return wrapper


def admin_required(fn):
    @wraps(fn)
    @login_required
    def wrapper(*args, **kwargs):
        if not is_admin():
            abort(403, description="Admin access required")
        return fn(*args, **kwargs)
    return wrapper
