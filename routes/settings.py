from flask import Blueprint, current_app, jsonify

from auth_utils import current_user_id, login_required
from routes.auth import fetch_user
from serializers import to_json
from validators import json_body, settings_payload

settings_bp = Blueprint('settings', __name__, url_prefix='/api/user')


@settings_bp.route('/settings', methods=['PATCH'])
@login_required
def update_settings():
    changes = settings_payload(json_body())
    # keys come from settings_payload, never from the request
    assignments = ", ".join(f"{column}=%s" for column in changes)

    conn = current_app.db_pool.get_connection()
    try:
        with conn.cursor(dictionary=True) as cur:
            cur.execute(
                f"UPDATE users SET {assignments} WHERE id=%s",
                (*changes.values(), current_user_id())
            )
            conn.commit()
            user = fetch_user(cur, current_user_id())
    finally:
        conn.close()

    return jsonify(to_json(user))
