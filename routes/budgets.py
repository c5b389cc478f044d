import logging

from flask import Blueprint, abort, current_app, jsonify

from auth_utils import current_user_id, login_required
from budget_performance import ALLOCATION_SELECT, budget_performance, fetch_allocations
from queries import (check_subcategory, get_budget, get_category, owned_budget, owned_budget_or_403,
                     owned_category_or_403)
from serializers import to_json
from validators import allocation_payload, budget_payload, category_ids, json_body

logger = logging.getLogger(__name__)

budgets_bp = Blueprint('budgets', __name__, url_prefix='/api')


def fetch_allocation(cur, allocation_id):
    cur.execute(ALLOCATION_SELECT + " WHERE ba.id=%s", (allocation_id,))
    return cur.fetchone()


def _owned_allocation(cur, allocation_id):
    """An allocation is visible only through a budget the user owns."""
    allocation = fetch_allocation(cur, allocation_id)
    if allocation:
        budget = get_budget(cur, allocation['budget_id'])
        if budget and budget['user_id'] == current_user_id():
            return allocation
    abort(404, description="Budget allocation not found")


def _insert_allocation(cur, data):
    cur.execute(
        "INSERT INTO budget_allocations (budget_id, category_id, subcategory_id, amount) "
        "VALUES (%s, %s, %s, %s)",
        (data['budget_id'], data['category_id'], data['subcategory_id'], data['amount'])
    )
    return cur.lastrowid


def _check_allocation_targets(cur, data):
    owned_budget_or_403(cur, data['budget_id'], current_user_id())
    owned_category_or_403(cur, 'expense', data['category_id'], current_user_id())
    check_subcategory(cur, 'expense', data['subcategory_id'], data['category_id'])


def with_performance(budget, performance):
    return dict(budget,
                allocated_amount=performance['allocated'],
                spent_amount=performance['spent'],
                remaining_amount=performance['remaining'])


@budgets_bp.route('/budgets')
@login_required
def index():
    conn = current_app.db_pool.get_connection()
    try:
        with conn.cursor(dictionary=True) as cur:
            cur.execute(
                "SELECT id, user_id, name, period, start_date, end_date, amount, notes, created_at "
                "FROM budgets WHERE user_id=%s ORDER BY start_date DESC, id DESC",
                (current_user_id(),)
            )
            budgets = cur.fetchall()
            result = [with_performance(b, budget_performance(cur, b)) for b in budgets]
    finally:
        conn.close()
    return jsonify(to_json(result))


@budgets_bp.route('/budgets', methods=['POST'])
@login_required
def create_budget():
    body = json_body()
    data = budget_payload(body)
    requested_categories = category_ids(body)

    conn = current_app.db_pool.get_connection()
    try:
        with conn.cursor(dictionary=True) as cur:
            cur.execute(
                "INSERT INTO budgets (user_id, name, period, start_date, end_date, amount, notes) "
                "VALUES (%s, %s, %s, %s, %s, %s, %s)",
                (current_user_id(), data['name'], data['period'], data['start_date'],
                 data['end_date'], data['amount'], data['notes'])
            )
            budget_id = cur.lastrowid

            # Zero-amount placeholders; categories the user does not own are skipped
            for category_id in requested_categories:
                category = get_category(cur, 'expense', category_id)
                if category and category['user_id'] == current_user_id():
                    _insert_allocation(cur, {'budget_id': budget_id, 'category_id': category_id,
                                             'subcategory_id': None, 'amount': 0})
            conn.commit()
            budget = get_budget(cur, budget_id)
    finally:
        conn.close()
    logger.info("User %s created budget %s", current_user_id(), budget_id)
    return jsonify(to_json(budget)), 201


@budgets_bp.route('/budgets/<int:id>')
@login_required
def get_budget_detail(id):
    conn = current_app.db_pool.get_connection()
    try:
        with conn.cursor(dictionary=True) as cur:
            budget = owned_budget(cur, id, current_user_id())
            allocations = fetch_allocations(cur, id)
            performance = budget_performance(cur, budget, allocations)
    finally:
        conn.close()
    return jsonify(to_json({
        'budget': budget,
        'allocations': allocations,
        'performance': performance,
    }))


@budgets_bp.route('/budgets/<int:id>', methods=['PATCH', 'PUT'])
@login_required
def update_budget(id):
    data = budget_payload(json_body())

    conn = current_app.db_pool.get_connection()
    try:
        with conn.cursor(dictionary=True) as cur:
            owned_budget(cur, id, current_user_id(), action="update")
            cur.execute(
                "UPDATE budgets SET name=%s, period=%s, start_date=%s, end_date=%s, amount=%s, notes=%s "
                "WHERE id=%s",
                (data['name'], data['period'], data['start_date'], data['end_date'],
                 data['amount'], data['notes'], id)
            )
            conn.commit()
            budget = get_budget(cur, id)
    finally:
        conn.close()
    return jsonify(to_json(budget))


@budgets_bp.route('/budgets/<int:id>', methods=['DELETE'])
@login_required
def delete_budget(id):
    conn = current_app.db_pool.get_connection()
    try:
        with conn.cursor(dictionary=True) as cur:
            owned_budget(cur, id, current_user_id(), action="delete")
            cur.execute("DELETE FROM budgets WHERE id=%s", (id,))
            conn.commit()
    finally:
        conn.close()
    logger.info("User %s deleted budget %s", current_user_id(), id)
    return '', 204


@budgets_bp.route('/budgets/<int:budget_id>/allocations')
@login_required
def list_allocations(budget_id):
    conn = current_app.db_pool.get_connection()
    try:
        with conn.cursor(dictionary=True) as cur:
            owned_budget(cur, budget_id, current_user_id())
            allocations = fetch_allocations(cur, budget_id)
    finally:
        conn.close()
    return jsonify(to_json(allocations))


@budgets_bp.route('/budgets/<int:budget_id>/performance')
@login_required
def performance(budget_id):
    conn = current_app.db_pool.get_connection()
    try:
        with conn.cursor(dictionary=True) as cur:
            budget = owned_budget(cur, budget_id, current_user_id())
            result = budget_performance(cur, budget)
    finally:
        conn.close()
    return jsonify(to_json(result))


@budgets_bp.route('/budgets/<int:budget_id>/allocations', methods=['POST'])
@login_required
def create_nested_allocation(budget_id):
    data = allocation_payload(json_body(), budget_id=budget_id)
    return _create_allocation(data)


@budgets_bp.route('/budget-allocations', methods=['POST'])
@login_required
def create_allocation():
    return _create_allocation(allocation_payload(json_body()))


def _create_allocation(data):
    conn = current_app.db_pool.get_connection()
    try:
        with conn.cursor(dictionary=True) as cur:
            _check_allocation_targets(cur, data)
            allocation_id = _insert_allocation(cur, data)
            conn.commit()
            allocation = fetch_allocation(cur, allocation_id)
    finally:
        conn.close()
    return jsonify(to_json(allocation)), 201


@budgets_bp.route('/budget-allocations/<int:id>', methods=['PATCH'])
@login_required
def update_allocation(id):
    data = allocation_payload(json_body())

    conn = current_app.db_pool.get_connection()
    try:
        with conn.cursor(dictionary=True) as cur:
            _owned_allocation(cur, id)
            _check_allocation_targets(cur, data)
            cur.execute(
                "UPDATE budget_allocations SET budget_id=%s, category_id=%s, subcategory_id=%s, amount=%s "
                "WHERE id=%s",
                (data['budget_id'], data['category_id'], data['subcategory_id'], data['amount'], id)
            )
            conn.commit()
            allocation = fetch_allocation(cur, id)
    finally:
        conn.close()
    return jsonify(to_json(allocation))


@budgets_bp.route('/budget-allocations/<int:id>', methods=['DELETE'])
@login_required
def delete_allocation(id):
    conn = current_app.db_pool.get_connection()
    try:
        with conn.cursor(dictionary=True) as cur:
            _owned_allocation(cur, id)
            cur.execute("DELETE FROM budget_allocations WHERE id=%s", (id,))
            conn.commit()
    finally:
        conn.close()
    return '', 204
