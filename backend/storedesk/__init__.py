# backend/storedesk/__init__.py
import logging

from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

from .config import Config
from .errors import DomainError, PersistenceError
from .extensions import db, migrate


def register_error_handlers(app: Flask) -> None:
    """Map typed failures to JSON responses; anything unexpected is logged and becomes a 500."""

    @app.errorhandler(DomainError)
    def handle_domain_error(exc: DomainError):
        return jsonify(exc.to_dict()), exc.status_code

    @app.errorhandler(PersistenceError)
    def handle_persistence_error(exc: PersistenceError):
        return jsonify(exc.to_dict()), exc.status_code

    @app.errorhandler(Exception)
    def handle_unexpected_error(exc: Exception):
        if isinstance(exc, HTTPException):
            return exc
        app.logger.exception("Unhandled error")
        db.session.rollback()
        return jsonify({"error": "Internal server error"}), 500


def create_app(config: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if config:
        app.config.update(config)

    app.logger.setLevel(getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO))

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.voucher_series import voucher_series_bp
    from .routes.sales import sales_bp
    from .routes.products import products_bp
    from .routes.cash_registers import cash_registers_bp
    from .routes.status import status_bp
    from .routes.purchases import purchases_bp
    from .routes.entities import entities_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(voucher_series_bp)
    app.register_blueprint(sales_bp)
    app.register_blueprint(products_bp)
    app.register_blueprint(cash_registers_bp)
    app.register_blueprint(status_bp)
    app.register_blueprint(purchases_bp)
    app.register_blueprint(entities_bp)

    register_error_handlers(app)

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
