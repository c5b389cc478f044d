import logging

from flask import Blueprint, abort, current_app, jsonify, request

from auth_utils import current_user_id, is_admin, login_required
from queries import check_subcategory, find_category_by_name, owned_category_or_403
from serializers import to_json
from validators import expense_payload, json_body, parse_date, parse_id

logger = logging.getLogger(__name__)

expenses_bp = Blueprint('expenses', __name__, url_prefix='/api/expenses')

EXPENSE_SELECT = """
    SELECT e.id, e.user_id, e.amount, e.description, e.date, e.category_id,
           COALESCE(c.name, e.category_name, 'Unknown') AS category_name,
           e.subcategory_id, s.name AS subcategory_name,
           e.merchant, e.notes, e.created_at
    FROM expenses e
    LEFT JOIN expense_categories c ON c.id = e.category_id
    LEFT JOIN expense_subcategories s ON s.id = e.subcategory_id
"""


def fetch_expense(cur, expense_id):
    cur.execute(EXPENSE_SELECT + " WHERE e.id=%s", (expense_id,))
    return cur.fetchone()


def _resolve_category(cur, data, owner_id):
    """Return the category row for a payload that names it by id or by name."""
    if data['category_id'] is not None:
        return owned_category_or_403(cur, 'expense', data['category_id'], owner_id)
    category = find_category_by_name(cur, 'expense', owner_id, data['category_name'])
    if not category:
        abort(403, description="Invalid category")
    return category


def _owned_expense(cur, expense_id, action, admin_allowed=False):
    expense = fetch_expense(cur, expense_id)
    if not expense:
        abort(404, description="Expense not found")
    if expense['user_id'] != current_user_id() and not (admin_allowed and is_admin()):
        abort(403, description=f"You don't have permission to {action} this expense")
    return expense


@expenses_bp.route('')
@login_required
def index():
    clauses = ["e.user_id=%s"]
    params = [current_user_id()]
    start = parse_date(request.args.get('startDate'), 'startDate', required=False)
    end = parse_date(request.args.get('endDate'), 'endDate', required=False)
    category_id = parse_id(request.args.get('categoryId'), 'categoryId', required=False)
    if start:
        clauses.append("e.date >= %s")
        params.append(start)
    if end:
        clauses.append("e.date <= %s")
        params.append(end)
    if category_id:
        clauses.append("e.category_id=%s")
        params.append(category_id)

    conn = current_app.db_pool.get_connection()
    try:
        with conn.cursor(dictionary=True) as cur:
            cur.execute(
                EXPENSE_SELECT + " WHERE " + " AND ".join(clauses) + " ORDER BY e.date DESC, e.id DESC",
                tuple(params)
            )
            expenses = cur.fetchall()
    finally:
        conn.close()
    return jsonify(to_json(expenses))


@expenses_bp.route('', methods=['POST'])
@login_required
def add_expense():
    data = expense_payload(json_body())

    conn = current_app.db_pool.get_connection()
    try:
        with conn.cursor(dictionary=True) as cur:
            category = _resolve_category(cur, data, current_user_id())
            check_subcategory(cur, 'expense', data['subcategory_id'], category['id'])
            cur.execute(
                "INSERT INTO expenses (user_id, amount, description, date, category_id, category_name, "
                "subcategory_id, merchant, notes) VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s)",
                (current_user_id(), data['amount'], data['description'], data['date'], category['id'],
                 category['name'], data['subcategory_id'], data['merchant'], data['notes'])
            )
            conn.commit()
            expense = fetch_expense(cur, cur.lastrowid)
    finally:
        conn.close()
    return jsonify(to_json(expense)), 201


@expenses_bp.route('/<int:id>')
@login_required
def get_expense(id):
    conn = current_app.db_pool.get_connection()
    try:
        with conn.cursor(dictionary=True) as cur:
            expense = _owned_expense(cur, id, "access")
    finally:
        conn.close()
    return jsonify(to_json(expense))


@expenses_bp.route('/<int:id>', methods=['PATCH'])
@login_required
def edit_expense(id):
    data = expense_payload(json_body())

    conn = current_app.db_pool.get_connection()
    try:
        with conn.cursor(dictionary=True) as cur:
            expense = _owned_expense(cur, id, "update", admin_allowed=True)
            # categories are checked against the expense owner, which differs for admins
            category = _resolve_category(cur, data, expense['user_id'])
            check_subcategory(cur, 'expense', data['subcategory_id'], category['id'])
            cur.execute(
                "UPDATE expenses SET amount=%s, description=%s, date=%s, category_id=%s, "
                "category_name=%s, subcategory_id=%s, merchant=%s, notes=%s WHERE id=%s",
                (data['amount'], data['description'], data['date'], category['id'], category['name'],
                 data['subcategory_id'], data['merchant'], data['notes'], id)
            )
            conn.commit()
            expense = fetch_expense(cur, id)
    finally:
        conn.close()
    return jsonify(to_json(expense))


@expenses_bp.route('/<int:id>', methods=['DELETE'])
@login_required
def delete_expense(id):
    conn = current_app.db_pool.get_connection()
    try:
        with conn.cursor(dictionary=True) as cur:
            expense = _owned_expense(cur, id, "delete", admin_allowed=True)
            cur.execute("DELETE FROM expenses WHERE id=%s", (id,))
            conn.commit()
    finally:
        conn.close()
    if expense['user_id'] != current_user_id():
        logger.info("Admin %s deleted expense %s of user %s", current_user_id(), id, expense['user_id'])
    return '', 204
