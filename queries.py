"""Ownership lookups shared by the blueprints.

All helpers take an open dictionary cursor and abort the request with the
appropriate status when the row is missing or belongs to someone else.
"""

from flask import abort

CATEGORY_KINDS = ('expense', 'income')


def category_table(kind):
    if kind not in CATEGORY_KINDS:
        raise ValueError(f"unknown category kind: {kind}")
    return f"{kind}_categories"


def subcategory_table(kind):
    if kind not in CATEGORY_KINDS:
        raise ValueError(f"unknown category kind: {kind}")
    return f"{kind}_subcategories"


def get_category(cur, kind, category_id):
    cur.execute(
        f"SELECT id, user_id, name, description, is_system, created_at "
        f"FROM {category_table(kind)} WHERE id=%s",
        (category_id,)
    )
    return cur.fetchone()


def get_subcategory(cur, kind, subcategory_id):
    cur.execute(
        f"SELECT id, category_id, user_id, name, description, is_system, created_at "
        f"FROM {subcategory_table(kind)} WHERE id=%s",
        (subcategory_id,)
    )
    return cur.fetchone()


def owned_category_or_403(cur, kind, category_id, user_id):
    category = get_category(cur, kind, category_id)
    if not category or category['user_id'] != user_id:
        abort(403, description="Invalid category")
    return category


def check_subcategory(cur, kind, subcategory_id, category_id):
    """A subcategory is only valid under the category it belongs to."""
    if subcategory_id is None:
        return None
    subcategory = get_subcategory(cur, kind, subcategory_id)
    if not subcategory or subcategory['category_id'] != category_id:
        abort(403, description="Invalid subcategory")
    return subcategory


def find_category_by_name(cur, kind, user_id, name):
    cur.execute(
        f"SELECT id, user_id, name FROM {category_table(kind)} "
        "WHERE user_id=%s AND LOWER(name)=LOWER(%s) ORDER BY id LIMIT 1",
        (user_id, name)
    )
    return cur.fetchone()


def get_budget(cur, budget_id):
    cur.execute(
        "SELECT id, user_id, name, period, start_date, end_date, amount, notes, created_at "
        "FROM budgets WHERE id=%s",
        (budget_id,)
    )
    return cur.fetchone()


def owned_budget(cur, budget_id, user_id, action="access"):
    budget = get_budget(cur, budget_id)
    if not budget:
        abort(404, description="Budget not found")
    if budget['user_id'] != user_id:
        abort(403, description=f"You don't have permission to {action} this budget")
    return budget


def owned_budget_or_403(cur, budget_id, user_id):
    budget = get_budget(cur, budget_id)
    if not budget or budget['user_id'] != user_id:
        abort(403, description="Invalid budget")
    return budget
