import os
from datetime import timedelta

import mysql.connector
from mysql.connector import pooling
from dotenv import load_dotenv

load_dotenv()


def _split(value):
    return [item.strip() for item in value.split(',') if item.strip()]


class Config:
    SECRET_KEY = os.getenv('SECRET_KEY')
    APP_ENV = os.getenv('APP_ENV', 'development')
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')

    MYSQL_HOST = os.getenv('MYSQL_HOST', 'localhost')
    MYSQL_PORT = int(os.getenv('MYSQL_PORT', '3306'))
    MYSQL_USER = os.getenv('MYSQL_USER')
    MYSQL_PASSWORD = os.getenv('MYSQL_PASSWORD')
    MYSQL_DATABASE = os.getenv('MYSQL_DATABASE', 'expense_navigator')
    MYSQL_POOL_SIZE = int(os.getenv('MYSQL_POOL_SIZE', '5'))

    CORS_ORIGINS = _split(os.getenv('CORS_ORIGINS', 'http://localhost:5173,http://localhost:3000'))

    # The SPA sends the token from /api/csrf-token back in this header.
    WTF_CSRF_HEADERS = ['X-CSRFToken', 'X-CSRF-Token']
    WTF_CSRF_TIME_LIMIT = None
    # The SPA lives on another origin, so its Referer never matches our host
    # over HTTPS; the header token is the CSRF check.
    WTF_CSRF_SSL_STRICT = False

    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SECURE = APP_ENV == 'production'
    # Cross-site fetches only carry the cookie with SameSite=None, which browsers
    # accept only on Secure cookies. Set 'Lax' when the SPA is served same-site.
    SESSION_COOKIE_SAMESITE = os.getenv(
        'SESSION_COOKIE_SAMESITE', 'None' if SESSION_COOKIE_SECURE else 'Lax')
    PERMANENT_SESSION_LIFETIME = timedelta(days=7)

    @staticmethod
    def init_db(app):
        app.db_pool = mysql.connector.pooling.MySQLConnectionPool(
            pool_name="expense_pool",
            pool_size=Config.MYSQL_POOL_SIZE,
            host=Config.MYSQL_HOST,
            port=Config.MYSQL_PORT,
            user=Config.MYSQL_USER,
            password=Config.MYSQL_PASSWORD,
            database=Config.MYSQL_DATABASE
        )
