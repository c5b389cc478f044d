"""
Budget performance: how much of a budget has been allocated and spent.

Spending is aggregated in SQL (one ``SUM`` per category over the budget's
inclusive date range) and matched against the budget's allocations in memory.
Budget-level ``remaining`` is measured against the budget amount, not the
allocated total, so spending in unallocated categories still counts.
"""

import logging
from decimal import Decimal

logger = logging.getLogger(__name__)

ZERO = Decimal('0')


def _money(value):
    if value is None:
        return ZERO
    return value if isinstance(value, Decimal) else Decimal(str(value))


def summarize(budget_amount, allocations, spending):
    """
    Combine allocations with per-category spending.

    ``allocations`` is an iterable of rows with ``category_id``,
    ``category_name`` and ``amount``; several rows may share a category
    (e.g. one per subcategory) and are summed. ``spending`` is an iterable
    of ``category_id``/``total`` rows.
    """
    spent_by_category = {}
    for row in spending:
        spent_by_category[row['category_id']] = (
            spent_by_category.get(row['category_id'], ZERO) + _money(row['total']))

    # dicts keep insertion order: categories appear in allocation order
    allocated_by_category = {}
    for row in allocations:
        entry = allocated_by_category.setdefault(row['category_id'], {
            'category_id': row['category_id'],
            'category_name': row.get('category_name'),
            'allocated': ZERO,
        })
        entry['allocated'] += _money(row['amount'])

    categories = []
    for category_id, entry in allocated_by_category.items():
        spent = spent_by_category.get(category_id, ZERO)
        categories.append({
            'category_id': category_id,
            'category_name': entry['category_name'],
            'allocated': entry['allocated'],
            'spent': spent,
            'remaining': entry['allocated'] - spent,
        })

    total_allocated = sum((c['allocated'] for c in categories), ZERO)
    total_spent = sum(spent_by_category.values(), ZERO)
    unallocated_spent = sum(
        (spent for cid, spent in spent_by_category.items() if cid not in allocated_by_category),
        ZERO)

    return {
        'allocated': total_allocated,
        'spent': total_spent,
        'remaining': _money(budget_amount) - total_spent,
        'unallocated_spent': unallocated_spent,
        'categories': categories,
    }


ALLOCATION_SELECT = """
    SELECT ba.id, ba.budget_id, ba.category_id, ec.name AS category_name,
           ba.subcategory_id, es.name AS subcategory_name, ba.amount, ba.created_at
    FROM budget_allocations ba
    LEFT JOIN expense_categories ec ON ec.id = ba.category_id
    LEFT JOIN expense_subcategories es ON es.id = ba.subcategory_id
"""


def fetch_allocations(cur, budget_id):
    cur.execute(ALLOCATION_SELECT + " WHERE ba.budget_id=%s ORDER BY ba.id", (budget_id,))
    return cur.fetchall()


def fetch_spending(cur, user_id, start_date, end_date):
    cur.execute("""
        SELECT category_id, SUM(amount) AS total
        FROM expenses
        WHERE user_id=%s AND date BETWEEN %s AND %s
        GROUP BY category_id
    """, (user_id, start_date, end_date))
    return cur.fetchall()


def budget_performance(cur, budget, allocations=None):
    """Compute performance for a budget row; pass ``allocations`` if already loaded."""
    if allocations is None:
        allocations = fetch_allocations(cur, budget['id'])
    spending = fetch_spending(cur, budget['user_id'], budget['start_date'], budget['end_date'])
    result = summarize(budget['amount'], allocations, spending)
    logger.debug("Budget %s: allocated=%s spent=%s remaining=%s",
                 budget['id'], result['allocated'], result['spent'], result['remaining'])
    return result
