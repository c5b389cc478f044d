"""
Security test suite for the Expense Navigator API.
Tests cover CSRF protection, CORS, authentication gating,
session security and error responses.
"""

import mysql.connector
import pytest

from tests.conftest import USER_ROW, budget_row, login_session, make_mock_connection


# ─────────────────────────────────────────────────────────────
#  1. AUTHENTICATION TESTS
# ─────────────────────────────────────────────────────────────

class TestAuthentication:
    """Test that protected routes require authentication."""

    PROTECTED_ROUTES = [
        ('GET', '/api/user'),
        ('PATCH', '/api/user/settings'),
        ('GET', '/api/expense-categories'),
        ('GET', '/api/income-categories'),
        ('GET', '/api/expenses'),
        ('POST', '/api/expenses'),
        ('GET', '/api/incomes'),
        ('GET', '/api/budgets'),
        ('GET', '/api/budgets/1/performance'),
        ('POST', '/api/budget-allocations'),
        ('GET', '/api/reports/summary'),
        ('GET', '/api/reports/monthly-expenses/2024'),
        ('GET', '/api/admin/users'),
    ]

    @pytest.mark.parametrize("method,url", PROTECTED_ROUTES)
    def test_protected_routes_return_401(self, client_no_csrf, mock_db, method, url):
        """Unauthenticated API calls get a JSON 401, not a redirect."""
        response = client_no_csrf.open(url, method=method, json={})

        assert response.status_code == 401, f"{method} {url} should reject anonymous users"
        assert response.get_json()['message'] == "Authentication required"

    def test_public_routes_accessible(self, client_no_csrf):
        response = client_no_csrf.get('/api/csrf-token')
        assert response.status_code == 200
        assert response.get_json()['csrfToken']


# ─────────────────────────────────────────────────────────────
#  2. CSRF PROTECTION TESTS
# ─────────────────────────────────────────────────────────────

class TestCSRFProtection:
    """Test that state-changing requests need a CSRF token."""

    def test_login_without_csrf_rejected(self, client):
        response = client.post('/api/login', json={'username': 'tester', 'password': 'password123'})
        assert response.status_code == 400
        assert 'CSRF' in response.get_json()['message']

    def test_register_without_csrf_rejected(self, client):
        response = client.post('/api/register', json={
            'username': 'tester', 'password': 'password12345',
            'name': 'Test', 'email': 'test@example.com',
        })
        assert response.status_code == 400

    def test_add_expense_without_csrf_rejected(self, client, app):
        login_session(client)
        response = client.post('/api/expenses', json={'amount': 10})
        assert response.status_code == 400
        app.db_pool.get_connection.assert_not_called()

    def test_delete_budget_without_csrf_rejected(self, client):
        login_session(client)
        response = client.delete('/api/budgets/1')
        assert response.status_code == 400

    def test_token_in_header_accepted(self, client):
        """The token from /api/csrf-token is accepted in the X-CSRFToken header."""
        token = client.get('/api/csrf-token').get_json()['csrfToken']
        login_session(client)

        response = client.post('/api/logout', headers={'X-CSRFToken': token})

        assert response.status_code == 200
        with client.session_transaction() as sess:
            assert 'user_id' not in sess

    def test_wrong_token_rejected(self, client):
        client.get('/api/csrf-token')
        response = client.post('/api/logout', headers={'X-CSRFToken': 'not-the-token'})
        assert response.status_code == 400

    def test_cross_origin_write_over_https(self, client, app):
        """Over HTTPS the SPA's Referer is another origin; the header token alone decides."""
        conn, cursor = make_mock_connection()
        app.db_pool.get_connection.return_value = conn
        cursor.fetchone.side_effect = [USER_ROW, budget_row()]
        token = client.get('/api/csrf-token', base_url='https://localhost').get_json()['csrfToken']
        login_session(client)

        response = client.delete('/api/budgets/31', base_url='https://localhost', headers={
            'X-CSRFToken': token,
            'Origin': 'http://localhost:5173',
            'Referer': 'http://localhost:5173/budgets',
        })

        assert response.status_code == 204
        assert response.headers.get('Access-Control-Allow-Origin') == 'http://localhost:5173'

    def test_cross_origin_write_over_https_still_needs_token(self, client):
        login_session(client)

        response = client.delete('/api/budgets/31', base_url='https://localhost', headers={
            'Origin': 'http://localhost:5173',
            'Referer': 'http://localhost:5173/budgets',
        })

        assert response.status_code == 400
        assert 'CSRF' in response.get_json()['message']

    def test_reads_do_not_need_csrf(self, client, app):
        conn, cursor = make_mock_connection()
        app.db_pool.get_connection.return_value = conn
        cursor.fetchone.side_effect = [USER_ROW, {'total': 0}, {'total': 0}]
        login_session(client)

        response = client.get('/api/reports/summary')

        assert response.status_code == 200


# ─────────────────────────────────────────────────────────────
#  3. CORS TESTS
# ─────────────────────────────────────────────────────────────

class TestCORS:
    """Test that only the configured front-end origin may call the API with credentials."""

    def test_preflight_from_allowed_origin(self, client):
        response = client.options('/api/expenses', headers={
            'Origin': 'http://localhost:5173',
            'Access-Control-Request-Method': 'POST',
            'Access-Control-Request-Headers': 'Content-Type, X-CSRFToken',
        })

        assert response.status_code == 200
        assert response.headers.get('Access-Control-Allow-Origin') == 'http://localhost:5173'
        assert response.headers.get('Access-Control-Allow-Credentials') == 'true'

    def test_simple_request_from_allowed_origin(self, client):
        response = client.get('/api/csrf-token', headers={'Origin': 'http://localhost:5173'})
        assert response.headers.get('Access-Control-Allow-Origin') == 'http://localhost:5173'

    def test_unknown_origin_not_allowed(self, client):
        response = client.get('/api/csrf-token', headers={'Origin': 'http://evil.example.com'})
        assert 'Access-Control-Allow-Origin' not in response.headers


# ─────────────────────────────────────────────────────────────
#  4. METHOD RESTRICTION TESTS
# ─────────────────────────────────────────────────────────────

class TestMethodRestrictions:
    """Test that state changes are not reachable through GET."""

    def test_logout_via_get_rejected(self, client_no_csrf):
        response = client_no_csrf.get('/api/logout')
        assert response.status_code == 405

    def test_role_change_via_get_rejected(self, client_no_csrf):
        login_session(client_no_csrf)
        response = client_no_csrf.get('/api/admin/users/2/role')
        assert response.status_code == 405


# ─────────────────────────────────────────────────────────────
#  5. SESSION SECURITY TESTS
# ─────────────────────────────────────────────────────────────

class TestSessionSecurity:
    """Test session cookie security configuration."""

    def test_session_cookie_httponly(self, app):
        assert app.config.get('SESSION_COOKIE_HTTPONLY') is True

    def test_session_cookie_samesite(self, app):
        assert app.config.get('SESSION_COOKIE_SAMESITE') == 'Lax'

    def test_csrf_referrer_check_disabled(self, app):
        """The SPA origin differs from the API host, so only the token is checked."""
        assert app.config.get('WTF_CSRF_SSL_STRICT') is False

    def test_secret_key_not_default(self, app):
        assert app.config['SECRET_KEY'] != 'your-secret-key'
        assert len(app.config['SECRET_KEY']) >= 16

    def test_login_sets_httponly_cookie(self, client_no_csrf, mock_db):
        from werkzeug.security import generate_password_hash
        from tests.conftest import user_row

        conn, cursor = mock_db
        cursor.fetchone.return_value = user_row(password_hash=generate_password_hash('secret-pass'))

        response = client_no_csrf.post('/api/login', json={'username': 'tester', 'password': 'secret-pass'})

        cookie = response.headers.get('Set-Cookie', '')
        assert 'HttpOnly' in cookie
        assert 'SameSite=Lax' in cookie


# ─────────────────────────────────────────────────────────────
#  6. ERROR RESPONSE TESTS
# ─────────────────────────────────────────────────────────────

class TestErrorResponses:
    """Test that errors come back as JSON without leaking internals."""

    def test_database_error_is_500(self, client_no_csrf, mock_db):
        conn, cursor = mock_db
        login_session(client_no_csrf)
        cursor.fetchone.side_effect = [USER_ROW]
        cursor.execute.side_effect = [None, mysql.connector.Error("Table 'budgets' doesn't exist")]

        response = client_no_csrf.get('/api/budgets')

        assert response.status_code == 500
        assert response.get_json() == {'message': "Database error"}
        conn.close.assert_called()

    def test_unknown_api_route_is_json_404(self, client_no_csrf):
        response = client_no_csrf.get('/api/does-not-exist')
        assert response.status_code == 404
        assert 'message' in response.get_json()

    def test_password_hashing(self):
        from auth_utils import hash_password, verify_password
        hashed = hash_password('test_password_123')
        assert hashed != 'test_password_123'
        assert verify_password(hashed, 'test_password_123') is True
        assert verify_password(hashed, 'wrong_password') is False
        assert verify_password(None, 'test_password_123') is False
