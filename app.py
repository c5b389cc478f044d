import logging
import secrets
import time

import mysql.connector
from flask import Flask, g, jsonify, request
from flask_cors import CORS
from flask_wtf.csrf import CSRFProtect
from werkzeug.exceptions import HTTPException

from config import Config
from validators import ValidationError
from routes.auth import auth_bp
from routes.settings import settings_bp
from routes.categories import categories_bp
from routes.expenses import expenses_bp
from routes.income import income_bp
from routes.budgets import budgets_bp
from routes.reports import reports_bp
from routes.admin import admin_bp

logger = logging.getLogger(__name__)

csrf = CSRFProtect()


def configure_logging(app):
    if not logging.getLogger().handlers:
        logging.basicConfig(
            level=app.config.get('LOG_LEVEL', 'INFO'),
            format='%(asctime)s %(levelname)s %(name)s: %(message)s'
        )


def register_error_handlers(app):
    @app.errorhandler(HTTPException)
    def handle_http_error(err):
        return jsonify(message=err.description), err.code

    @app.errorhandler(ValidationError)
    def handle_validation_error(err):
        body = {'message': err.message}
        if err.field:
            body['field'] = err.field
        return jsonify(body), 400

    @app.errorhandler(mysql.connector.Error)
    def handle_db_error(err):
        logger.exception("Database error on %s %s", request.method, request.path)
        return jsonify(message="Database error"), 500


def register_request_logging(app):
    @app.before_request
    def start_timer():
        g.request_started = time.perf_counter()

    @app.after_request
    def log_request(response):
        if request.path.startswith('/api') and 'request_started' in g:
            elapsed = (time.perf_counter() - g.request_started) * 1000
            logger.info("%s %s %s in %dms", request.method, request.path,
                        response.status_code, elapsed)
        return response


def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)

    if not app.config.get("SECRET_KEY"):
        app.config["SECRET_KEY"] = secrets.token_hex(32)

    configure_logging(app)
    config_class.init_db(app)

    CORS(app, resources={r"/api/*": {"origins": app.config.get('CORS_ORIGINS', [])}},
         supports_credentials=True)
    csrf.init_app(app)

    app.register_blueprint(auth_bp)
    app.register_blueprint(settings_bp)
    app.register_blueprint(categories_bp)
    app.register_blueprint(expenses_bp)
    app.register_blueprint(income_bp)
    app.register_blueprint(budgets_bp)
    app.register_blueprint(reports_bp)
    app.register_blueprint(admin_bp)

    register_error_handlers(app)
    register_request_logging(app)

    return app


if __name__ == "__main__":
    create_app().run(port=5001)
