from decimal import Decimal

from flask import Blueprint, abort, current_app, jsonify, request

from auth_utils import current_user_id, login_required
from budget_performance import budget_performance
from queries import owned_budget_or_403
from serializers import to_json
from validators import date_range_args

reports_bp = Blueprint('reports', __name__, url_prefix='/api/reports')

# table -> category table; both are fixed identifiers
SOURCES = {
    'expenses': 'expense_categories',
    'incomes': 'income_categories',
}


def monthly_totals(cur, table, user_id, year):
    cur.execute(
        f"SELECT MONTH(date) AS month, SUM(amount) AS total FROM {table} "
        "WHERE user_id=%s AND YEAR(date)=%s GROUP BY MONTH(date)",
        (user_id, year)
    )
    totals = {row['month']: row['total'] for row in cur.fetchall()}
    return [{'month': m, 'total': totals.get(m, Decimal('0'))} for m in range(1, 13)]


def category_totals(cur, table, user_id, start, end):
    cur.execute(f"""
        SELECT t.category_id, COALESCE(c.name, t.category_name, 'Uncategorized') AS category_name,
               SUM(t.amount) AS total
        FROM {table} t
        LEFT JOIN {SOURCES[table]} c ON c.id = t.category_id
        WHERE t.user_id=%s AND t.date BETWEEN %s AND %s
        GROUP BY t.category_id, category_name
        ORDER BY total DESC
    """, (user_id, start, end))
    return cur.fetchall()


def _check_year(year):
    if not 1900 <= year <= 9999:
        abort(400, description="Invalid year")


def _monthly_report(table, year):
    _check_year(year)
    conn = current_app.db_pool.get_connection()
    try:
        with conn.cursor(dictionary=True) as cur:
            rows = monthly_totals(cur, table, current_user_id(), year)
    finally:
        conn.close()
    return jsonify(to_json(rows))


def _category_report(table):
    start, end = date_range_args(request.args)
    conn = current_app.db_pool.get_connection()
    try:
        with conn.cursor(dictionary=True) as cur:
            rows = category_totals(cur, table, current_user_id(), start, end)
    finally:
        conn.close()
    return jsonify(to_json(rows))


@reports_bp.route('/monthly-expenses/<int:year>')
@login_required
def monthly_expenses(year):
    return _monthly_report('expenses', year)


@reports_bp.route('/monthly-incomes/<int:year>')
@login_required
def monthly_incomes(year):
    return _monthly_report('incomes', year)


@reports_bp.route('/category-expenses')
@login_required
def category_expenses():
    return _category_report('expenses')


@reports_bp.route('/category-incomes')
@login_required
def category_incomes():
    return _category_report('incomes')


@reports_bp.route('/summary')
@login_required
def summary():
    start, end = date_range_args(request.args, required=False)
    clauses = ["user_id=%s"]
    params = [current_user_id()]
    if start:
        clauses.append("date >= %s")
        params.append(start)
    if end:
        clauses.append("date <= %s")
        params.append(end)
    where = " AND ".join(clauses)

    conn = current_app.db_pool.get_connection()
    try:
        with conn.cursor(dictionary=True) as cur:
            cur.execute(f"SELECT COALESCE(SUM(amount), 0) AS total FROM incomes WHERE {where}", tuple(params))
            total_income = cur.fetchone()['total']
            cur.execute(f"SELECT COALESCE(SUM(amount), 0) AS total FROM expenses WHERE {where}", tuple(params))
            total_expenses = cur.fetchone()['total']
    finally:
        conn.close()

    return jsonify(to_json({
        'total_income': total_income,
        'total_expenses': total_expenses,
        'net_savings': total_income - total_expenses,
    }))


@reports_bp.route('/budget-performance/<int:budget_id>')
@login_required
def budget_performance_report(budget_id):
    conn = current_app.db_pool.get_connection()
    try:
        with conn.cursor(dictionary=True) as cur:
            budget = owned_budget_or_403(cur, budget_id, current_user_id())
            result = budget_performance(cur, budget)
    finally:
        conn.close()
    return jsonify(to_json(result))
