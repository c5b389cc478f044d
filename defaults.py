"""Default category trees every new account starts with."""

import logging

logger = logging.getLogger(__name__)

DEFAULT_EXPENSE_CATEGORIES = {
    "Children": ["Activities", "Allowance", "Medical", "Childcare", "Clothing", "School", "Toys"],
    "Debt": ["Credit cards", "Student loans", "Other loans", "Taxes (federal)", "Taxes (state)", "Other"],
    "Education": ["Tuition", "Books", "Music lessons", "Other"],
    "Entertainment": ["Books", "Concerts/shows", "Games", "Hobbies", "Movies", "Music",
                      "Outdoor activities", "Photography", "Sports", "Theater/plays", "TV", "Other"],
    "Everyday": ["Groceries", "Restaurants", "Personal supplies", "Clothes",
                 "Laundry/dry cleaning", "Hair/beauty", "Subscriptions", "Other"],
    "Gifts": ["Gifts", "Donations (charity)", "Other"],
    "Health/medical": ["Doctors/dental/vision", "Specialty care", "Pharmacy", "Emergency", "Other"],
    "Home": ["Rent/mortgage", "Property taxes", "Furnishings", "Lawn/garden", "Supplies",
             "Maintenance", "Improvements", "Moving", "Other"],
    "Insurance": ["Car", "Health", "Home", "Life", "Other"],
    "Pets": ["Food", "Vet/medical", "Toys", "Supplies", "Other"],
    "Technology": ["Domains & hosting", "Online services", "Hardware", "Software", "Other"],
    "Transportation": ["Fuel", "Car payments", "Repairs", "Registration/license", "Supplies",
                       "Public transit", "Other"],
    "Travel": ["Airfare", "Hotels", "Food", "Transportation", "Entertainment", "Other"],
    "Utilities": ["Phone", "TV", "Internet", "Electricity", "Heat/gas", "Water", "Trash", "Other"],
}

DEFAULT_INCOME_CATEGORIES = {
    "Wages": ["Paycheck", "Tips", "Bonus", "Commission", "Other"],
    "Deals": [],
    "Other": ["Transfer from savings", "Interest income", "Dividends", "Gifts", "Refunds", "Other"],
}

SYSTEM_INCOME_CATEGORY_NAMES = {name.lower() for name in DEFAULT_INCOME_CATEGORIES}

CATEGORY_TREES = {
    'expense': DEFAULT_EXPENSE_CATEGORIES,
    'income': DEFAULT_INCOME_CATEGORIES,
}


def seed_categories(cur, kind, user_id):
    """Insert the default tree of one kind for a user. The caller commits."""
    category_table, subcategory_table = f"{kind}_categories", f"{kind}_subcategories"
    for name, subcategories in CATEGORY_TREES[kind].items():
        cur.execute(
            f"INSERT INTO {category_table} (user_id, name, description, is_system) "
            "VALUES (%s, %s, %s, TRUE)",
            (user_id, name, f"{name} {kind}s" if kind == 'expense' else f"{name} income")
        )
        category_id = cur.lastrowid
        for sub in subcategories:
            cur.execute(
                f"INSERT INTO {subcategory_table} (category_id, user_id, name, description, is_system) "
                "VALUES (%s, %s, %s, %s, TRUE)",
                (category_id, user_id, sub, f"{sub} in {name}")
            )
    logger.info("Seeded %d default %s categories for user %s", len(CATEGORY_TREES[kind]), kind, user_id)


def seed_default_categories(cur, user_id):
    for kind in CATEGORY_TREES:
        seed_categories(cur, kind, user_id)
