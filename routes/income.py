import logging

from flask import Blueprint, abort, current_app, jsonify, request

from auth_utils import current_user_id, is_admin, login_required
from defaults import SYSTEM_INCOME_CATEGORY_NAMES
from queries import check_subcategory, find_category_by_name, get_category, owned_category_or_403
from serializers import to_json
from validators import income_payload, json_body, parse_date

logger = logging.getLogger(__name__)

income_bp = Blueprint('income', __name__, url_prefix='/api/incomes')

INCOME_SELECT = """
    SELECT i.id, i.user_id, i.amount, i.description, i.date, i.category_id,
           COALESCE(c.name, i.category_name, 'Uncategorized') AS category_name,
           i.subcategory_id, s.name AS subcategory_name,
           i.source, i.notes, i.created_at
    FROM incomes i
    LEFT JOIN income_categories c ON c.id = i.category_id
    LEFT JOIN income_subcategories s ON s.id = i.subcategory_id
"""


def fetch_income(cur, income_id):
    cur.execute(INCOME_SELECT + " WHERE i.id=%s", (income_id,))
    return cur.fetchone()


def _resolve_category(cur, data, owner_id):
    """Look up the income category by id, or find-or-create it by name."""
    if data['category_id'] is not None:
        return owned_category_or_403(cur, 'income', data['category_id'], owner_id)

    name = data['category_name']
    category = find_category_by_name(cur, 'income', owner_id, name)
    if category:
        return category

    is_system = name.lower() in SYSTEM_INCOME_CATEGORY_NAMES
    cur.execute(
        "INSERT INTO income_categories (user_id, name, description, is_system) VALUES (%s, %s, %s, %s)",
        (owner_id, name, f"System category: {name}" if is_system else None, is_system)
    )
    logger.info("Created income category %r for user %s", name, owner_id)
    return get_category(cur, 'income', cur.lastrowid)


def _owned_income(cur, income_id, action, admin_allowed=False):
    income = fetch_income(cur, income_id)
    if not income:
        abort(404, description="Income not found")
    if income['user_id'] != current_user_id() and not (admin_allowed and is_admin()):
        abort(403, description=f"You don't have permission to {action} this income")
    return income


@income_bp.route('')
@login_required
def index():
    clauses = ["i.user_id=%s"]
    params = [current_user_id()]
    start = parse_date(request.args.get('startDate'), 'startDate', required=False)
    end = parse_date(request.args.get('endDate'), 'endDate', required=False)
    if start:
        clauses.append("i.date >= %s")
        params.append(start)
    if end:
        clauses.append("i.date <= %s")
        params.append(end)

    conn = current_app.db_pool.get_connection()
    try:
        with conn.cursor(dictionary=True) as cur:
            cur.execute(
                INCOME_SELECT + " WHERE " + " AND ".join(clauses) + " ORDER BY i.date DESC, i.id DESC",
                tuple(params)
            )
            incomes = cur.fetchall()
    finally:
        conn.close()
    return jsonify(to_json(incomes))


@income_bp.route('', methods=['POST'])
@login_required
def add_income():
    data = income_payload(json_body())

    conn = current_app.db_pool.get_connection()
    try:
        with conn.cursor(dictionary=True) as cur:
            category = _resolve_category(cur, data, current_user_id())
            check_subcategory(cur, 'income', data['subcategory_id'], category['id'])
            cur.execute(
                "INSERT INTO incomes (user_id, amount, description, date, category_id, category_name, "
                "subcategory_id, source, notes) VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s)",
                (current_user_id(), data['amount'], data['description'], data['date'], category['id'],
                 category['name'], data['subcategory_id'], data['source'], data['notes'])
            )
            conn.commit()
            income = fetch_income(cur, cur.lastrowid)
    finally:
        conn.close()
    return jsonify(to_json(income)), 201


@income_bp.route('/<int:id>')
@login_required
def get_income(id):
    conn = current_app.db_pool.get_connection()
    try:
        with conn.cursor(dictionary=True) as cur:
            income = _owned_income(cur, id, "access")
    finally:
        conn.close()
    return jsonify(to_json(income))


@income_bp.route('/<int:id>', methods=['PATCH'])
@login_required
def edit_income(id):
    data = income_payload(json_body())

    conn = current_app.db_pool.get_connection()
    try:
        with conn.cursor(dictionary=True) as cur:
            _owned_income(cur, id, "update")
            category = _resolve_category(cur, data, current_user_id())
            check_subcategory(cur, 'income', data['subcategory_id'], category['id'])
            cur.execute(
                "UPDATE incomes SET amount=%s, description=%s, date=%s, category_id=%s, category_name=%s, "
                "subcategory_id=%s, source=%s, notes=%s WHERE id=%s AND user_id=%s",
                (data['amount'], data['description'], data['date'], category['id'], category['name'],
                 data['subcategory_id'], data['source'], data['notes'], id, current_user_id())
            )
            conn.commit()
            income = fetch_income(cur, id)
    finally:
        conn.close()
    return jsonify(to_json(income))


@income_bp.route('/<int:id>', methods=['DELETE'])
@login_required
def delete_income(id):
    conn = current_app.db_pool.get_connection()
    try:
        with conn.cursor(dictionary=True) as cur:
            income = _owned_income(cur, id, "delete", admin_allowed=True)
            cur.execute("DELETE FROM incomes WHERE id=%s", (id,))
            conn.commit()
    finally:
        conn.close()
    if income['user_id'] != current_user_id():
        logger.info("Admin %s deleted income %s of user %s", current_user_id(), id, income['user_id'])
    return '', 204
