"""
Expense and income categories share one set of routes; ``kind`` in the URL
picks the tables.
"""

import logging

from flask import Blueprint, abort, current_app, jsonify

from auth_utils import current_user_id, login_required
from defaults import seed_categories
from queries import (category_table, find_category_by_name, get_category, get_subcategory,
                     owned_category_or_403, subcategory_table)
from serializers import to_json
from validators import category_payload, json_body, subcategory_payload

logger = logging.getLogger(__name__)

categories_bp = Blueprint('categories', __name__, url_prefix='/api')

KIND = '<any(expense, income):kind>'

USAGE_QUERIES = {
    'expense': ("SELECT (SELECT COUNT(*) FROM expenses WHERE category_id=%(id)s) + "
                "(SELECT COUNT(*) FROM budget_allocations WHERE category_id=%(id)s) AS uses"),
    'income': "SELECT COUNT(*) AS uses FROM incomes WHERE category_id=%(id)s",
}


def _owned_category(cur, kind, category_id, action):
    category = get_category(cur, kind, category_id)
    if not category:
        abort(404, description="Category not found")
    if category['user_id'] != current_user_id():
        abort(403, description=f"You don't have permission to {action} this category")
    return category


def _owned_subcategory(cur, kind, subcategory_id, action):
    subcategory = get_subcategory(cur, kind, subcategory_id)
    if not subcategory:
        abort(404, description="Subcategory not found")
    if subcategory['user_id'] != current_user_id():
        abort(403, description=f"You don't have permission to {action} this subcategory")
    return subcategory


def _reject_duplicate(cur, kind, name, exclude_id=None):
    existing = find_category_by_name(cur, kind, current_user_id(), name)
    if existing and existing['id'] != exclude_id:
        abort(409, description="Category already exists")


@categories_bp.route(f'/{KIND}-categories')
@login_required
def list_categories(kind):
    table = category_table(kind)
    conn = current_app.db_pool.get_connection()
    try:
        with conn.cursor(dictionary=True) as cur:
            cur.execute(f"SELECT COUNT(*) AS count FROM {table} WHERE user_id=%s", (current_user_id(),))
            if cur.fetchone()['count'] == 0:
                seed_categories(cur, kind, current_user_id())
                conn.commit()
            cur.execute(
                f"SELECT id, user_id, name, description, is_system, created_at "
                f"FROM {table} WHERE user_id=%s ORDER BY name",
                (current_user_id(),)
            )
            rows = cur.fetchall()
    finally:
        conn.close()
    return jsonify(to_json(rows))


@categories_bp.route(f'/{KIND}-categories', methods=['POST'])
@login_required
def create_category(kind):
    data = category_payload(json_body())
    conn = current_app.db_pool.get_connection()
    try:
        with conn.cursor(dictionary=True) as cur:
            _reject_duplicate(cur, kind, data['name'])
            cur.execute(
                f"INSERT INTO {category_table(kind)} (user_id, name, description) VALUES (%s, %s, %s)",
                (current_user_id(), data['name'], data['description'])
            )
            conn.commit()
            category = get_category(cur, kind, cur.lastrowid)
    finally:
        conn.close()
    return jsonify(to_json(category)), 201


@categories_bp.route(f'/{KIND}-categories/<int:id>', methods=['PATCH'])
@login_required
def update_category(kind, id):
    data = category_payload(json_body())
    conn = current_app.db_pool.get_connection()
    try:
        with conn.cursor(dictionary=True) as cur:
            _owned_category(cur, kind, id, "update")
            _reject_duplicate(cur, kind, data['name'], exclude_id=id)
            cur.execute(
                f"UPDATE {category_table(kind)} SET name=%s, description=%s WHERE id=%s",
                (data['name'], data['description'], id)
            )
            conn.commit()
            category = get_category(cur, kind, id)
    finally:
        conn.close()
    return jsonify(to_json(category))


@categories_bp.route(f'/{KIND}-categories/<int:id>', methods=['DELETE'])
@login_required
def delete_category(kind, id):
    conn = current_app.db_pool.get_connection()
    try:
        with conn.cursor(dictionary=True) as cur:
            _owned_category(cur, kind, id, "delete")
            cur.execute(USAGE_QUERIES[kind], {'id': id})
            if cur.fetchone()['uses']:
                abort(409, description="Category is in use")
            cur.execute(f"DELETE FROM {category_table(kind)} WHERE id=%s", (id,))
            conn.commit()
    finally:
        conn.close()
    logger.info("User %s deleted %s category %s", current_user_id(), kind, id)
    return '', 204


@categories_bp.route(f'/{KIND}-categories/<int:category_id>/subcategories')
@login_required
def list_subcategories(kind, category_id):
    conn = current_app.db_pool.get_connection()
    try:
        with conn.cursor(dictionary=True) as cur:
            _owned_category(cur, kind, category_id, "access")
            cur.execute(
                f"SELECT id, category_id, user_id, name, description, is_system, created_at "
                f"FROM {subcategory_table(kind)} WHERE category_id=%s ORDER BY name",
                (category_id,)
            )
            rows = cur.fetchall()
    finally:
        conn.close()
    return jsonify(to_json(rows))


@categories_bp.route(f'/{KIND}-subcategories', methods=['POST'])
@login_required
def create_subcategory(kind):
    data = subcategory_payload(json_body())
    conn = current_app.db_pool.get_connection()
    try:
        with conn.cursor(dictionary=True) as cur:
            owned_category_or_403(cur, kind, data['category_id'], current_user_id())
            cur.execute(
                f"INSERT INTO {subcategory_table(kind)} (category_id, user_id, name, description) "
                "VALUES (%s, %s, %s, %s)",
                (data['category_id'], current_user_id(), data['name'], data['description'])
            )
            conn.commit()
            subcategory = get_subcategory(cur, kind, cur.lastrowid)
    finally:
        conn.close()
    return jsonify(to_json(subcategory)), 201


@categories_bp.route(f'/{KIND}-subcategories/<int:id>', methods=['PATCH'])
@login_required
def update_subcategory(kind, id):
    data = subcategory_payload(json_body())
    conn = current_app.db_pool.get_connection()
    try:
        with conn.cursor(dictionary=True) as cur:
            _owned_subcategory(cur, kind, id, "update")
            owned_category_or_403(cur, kind, data['category_id'], current_user_id())
            cur.execute(
                f"UPDATE {subcategory_table(kind)} SET category_id=%s, name=%s, description=%s "
                "WHERE id=%s",
                (data['category_id'], data['name'], data['description'], id)
            )
            conn.commit()
            subcategory = get_subcategory(cur, kind, id)
    finally:
        conn.close()
    return jsonify(to_json(subcategory))


@categories_bp.route(f'/{KIND}-subcategories/<int:id>', methods=['DELETE'])
@login_required
def delete_subcategory(kind, id):
    conn = current_app.db_pool.get_connection()
    try:
        with conn.cursor(dictionary=True) as cur:
            _owned_subcategory(cur, kind, id, "delete")
            cur.execute(f"DELETE FROM {subcategory_table(kind)} WHERE id=%s", (id,))
            conn.commit()
    finally:
        conn.close()
    return '', 204
