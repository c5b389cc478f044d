import logging

from flask import Blueprint, abort, current_app, jsonify

from auth_utils import admin_required, current_user_id
from serializers import to_json
from validators import json_body, role_payload

logger = logging.getLogger(__name__)

admin_bp = Blueprint('admin', __name__, url_prefix='/api/admin')


def _fetch_all(query):
    conn = current_app.db_pool.get_connection()
    try:
        with conn.cursor(dictionary=True) as cur:
            cur.execute(query)
            return cur.fetchall()
    finally:
        conn.close()


@admin_bp.route('/users')
@admin_required
def users():
    rows = _fetch_all("SELECT id, username, name, email, currency, role, created_at FROM users ORDER BY id")
    return jsonify(to_json(rows))


@admin_bp.route('/expenses')
@admin_required
def expenses():
    return jsonify(to_json(_fetch_all("SELECT * FROM expenses ORDER BY date DESC, id DESC")))


@admin_bp.route('/incomes')
@admin_required
def incomes():
    return jsonify(to_json(_fetch_all("SELECT * FROM incomes ORDER BY date DESC, id DESC")))


@admin_bp.route('/budgets')
@admin_required
def budgets():
    rows = _fetch_all("""
        SELECT b.*, u.name AS user_name, u.email AS user_email
        FROM budgets b
        JOIN users u ON u.id = b.user_id
        ORDER BY b.user_id, b.start_date DESC
    """)
    return jsonify(to_json(rows))


@admin_bp.route('/users/<int:id>/role', methods=['PATCH'])
@admin_required
def set_role(id):
    role = role_payload(json_body())

    conn = current_app.db_pool.get_connection()
    try:
        with conn.cursor(dictionary=True) as cur:
            cur.execute("SELECT id FROM users WHERE id=%s", (id,))
            if not cur.fetchone():
                abort(404, description="User not found")
            cur.execute("UPDATE users SET role=%s WHERE id=%s", (role, id))
            conn.commit()
    finally:
        conn.close()

    logger.info("Admin %s set role of user %s to %s", current_user_id(), id, role)
    return jsonify(message="User role updated")


@admin_bp.route('/users/<int:id>', methods=['DELETE'])
@admin_required
def delete_user(id):
    if id == current_user_id():
        abort(400, description="Cannot delete your own account")

    conn = current_app.db_pool.get_connection()
    try:
        with conn.cursor(dictionary=True) as cur:
            cur.execute("SELECT id FROM users WHERE id=%s", (id,))
            if not cur.fetchone():
                abort(404, description="User not found")
            # categories, entries, budgets and allocations go with the user (FK cascades)
            cur.execute("DELETE FROM users WHERE id=%s", (id,))
            conn.commit()
    finally:
        conn.close()

    logger.info("Admin %s deleted user %s", current_user_id(), id)
    return jsonify(message="User deleted successfully")
