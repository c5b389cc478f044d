"""
Shared pytest fixtures for Expense Navigator tests.
"""

import pytest
import os
import sys
from datetime import date, datetime
from decimal import Decimal
from unittest.mock import MagicMock

# Ensure the project root is on sys.path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from config import Config  # noqa: E402


class TestConfig(Config):
    """Test configuration that bypasses MySQL."""
    SECRET_KEY = 'test-secret-key-for-testing-only'
    TESTING = True
    WTF_CSRF_ENABLED = True
    SERVER_NAME = 'localhost'
    CORS_ORIGINS = ['http://localhost:5173']
    SESSION_COOKIE_SECURE = False

    @staticmethod
    def init_db(app):
        """Mock DB initialization - no real MySQL needed."""
        app.db_pool = MagicMock()


# Row returned by the session check in login_required
USER_ROW = {'id': 1, 'role': 'user'}
ADMIN_ROW = {'id': 1, 'role': 'admin'}

CREATED_AT = datetime(2024, 1, 1, 12, 0, 0)


def make_mock_connection():
    """Create a mock MySQL connection with cursor context manager."""
    conn = MagicMock()
    cursor = MagicMock()
    cursor.__enter__ = MagicMock(return_value=cursor)
    cursor.__exit__ = MagicMock(return_value=False)
    conn.cursor.return_value = cursor
    return conn, cursor


def login_session(client, user_id=1):
    """Helper to set up a logged-in session."""
    with client.session_transaction() as sess:
        sess['user_id'] = user_id


def executed_sql(cursor):
    """All SQL strings passed to cursor.execute, in call order."""
    return [c.args[0] for c in cursor.execute.call_args_list]


def user_row(**overrides):
    row = {
        'id': 1, 'username': 'tester', 'name': 'Test User', 'email': 'test@example.com',
        'currency': 'XAF', 'role': 'user', 'created_at': CREATED_AT,
    }
    row.update(overrides)
    return row


def category_row(**overrides):
    row = {
        'id': 5, 'user_id': 1, 'name': 'Everyday', 'description': 'Everyday expenses',
        'is_system': 1, 'created_at': CREATED_AT,
    }
    row.update(overrides)
    return row


def subcategory_row(**overrides):
    row = {
        'id': 9, 'category_id': 5, 'user_id': 1, 'name': 'Groceries',
        'description': 'Groceries in Everyday', 'is_system': 1, 'created_at': CREATED_AT,
    }
    row.update(overrides)
    return row


def expense_row(**overrides):
    row = {
        'id': 11, 'user_id': 1, 'amount': Decimal('42.50'), 'description': 'Weekly shop',
        'date': date(2024, 3, 15), 'category_id': 5, 'category_name': 'Everyday',
        'subcategory_id': None, 'subcategory_name': None, 'merchant': 'Market',
        'notes': None, 'created_at': CREATED_AT,
    }
    row.update(overrides)
    return row


def income_row(**overrides):
    row = {
        'id': 21, 'user_id': 1, 'amount': Decimal('1500.00'), 'description': 'March salary',
        'date': date(2024, 3, 31), 'category_id': 3, 'category_name': 'Wages',
        'subcategory_id': None, 'subcategory_name': None, 'source': 'Employer',
        'notes': None, 'created_at': CREATED_AT,
    }
    row.update(overrides)
    return row


def budget_row(**overrides):
    row = {
        'id': 31, 'user_id': 1, 'name': 'March', 'period': 'monthly',
        'start_date': date(2024, 3, 1), 'end_date': date(2024, 3, 31),
        'amount': Decimal('1000.00'), 'notes': None, 'created_at': CREATED_AT,
    }
    row.update(overrides)
    return row


def allocation_row(**overrides):
    row = {
        'id': 41, 'budget_id': 31, 'category_id': 5, 'category_name': 'Everyday',
        'subcategory_id': None, 'subcategory_name': None, 'amount': Decimal('400.00'),
        'created_at': CREATED_AT,
    }
    row.update(overrides)
    return row


@pytest.fixture
def app():
    """Create application for testing."""
    from app import create_app
    application = create_app(config_class=TestConfig)
    application.config['WTF_CSRF_ENABLED'] = True
    yield application


@pytest.fixture
def app_no_csrf():
    """Create application for testing without CSRF protection."""
    from app import create_app
    application = create_app(config_class=TestConfig)
    application.config['WTF_CSRF_ENABLED'] = False
    yield application


@pytest.fixture
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture
def client_no_csrf(app_no_csrf):
    """Create test client without CSRF."""
    return app_no_csrf.test_client()


@pytest.fixture
def mock_db(app_no_csrf):
    """Provide mock database connection and cursor."""
    conn, cursor = make_mock_connection()
    app_no_csrf.db_pool.get_connection.return_value = conn
    return conn, cursor


@pytest.fixture
def logged_in_client(client_no_csrf):
    """Client with a logged-in session; the session check still needs a USER_ROW."""
    login_session(client_no_csrf)
    return client_no_csrf
