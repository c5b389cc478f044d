"""
Expense Navigator Test Suite

This package contains tests for the Expense Navigator API:

- test_auth.py: Registration, login, logout, session checks
- test_settings.py: User settings (currency, display name)
- test_categories.py: Expense & income categories and subcategories
- test_expenses.py: Expense CRUD and ownership rules
- test_income.py: Income CRUD and find-or-create categories
- test_budgets.py: Budgets and budget allocations
- test_budget_performance.py: Allocation vs. spending calculation
- test_reports.py: Monthly, per-category and summary reports
- test_admin.py: Admin-only endpoints
- test_security.py: CSRF, CORS, auth gating and error responses
- test_init_db.py: Schema loading

Run all tests:
    pytest tests/

Run specific test file:
    pytest tests/test_budgets.py

Run with coverage:
    pytest tests/ --cov=. --cov-report=html
"""
