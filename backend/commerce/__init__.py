# backend/commerce/__init__.py
import logging

from flask import Flask, current_app, request
from pymongo.errors import PyMongoError
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException

from .config import Config
from .errors import CommerceError, InfrastructureError
from .extensions import cache, db, migrate, mongo
from .http import error_response, request_context


def register_error_handlers(app: Flask) -> None:
    """
    Map exceptions onto the response envelope.

    Domain errors carry their own status and code. Persistence failures are
    logged with the request context and reported as 500 without details.
    """

    @app.errorhandler(CommerceError)
    def handle_commerce_error(e: CommerceError):
        if e.status_code >= 500:
            current_app.logger.error("%s: %s", e.code, e.message, extra=request_context())
        return error_response(e.message, e.code, e.status_code, e.details)

    @app.errorhandler(SQLAlchemyError)
    @app.errorhandler(PyMongoError)
    def handle_infrastructure_error(e: Exception):
        db.session.rollback()
        current_app.logger.exception("Infrastructure failure: %s", type(e).__name__, extra=request_context())
        failure = InfrastructureError("Internal server error")
        return error_response(failure.message, failure.code, failure.status_code)

    @app.errorhandler(HTTPException)
    def handle_http_error(e: HTTPException):
        code = (e.name or "error").upper().replace(" ", "_")
        return error_response(e.description or e.name, code, e.code or 500)


def create_app(test_config: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if test_config:
        app.config.update(test_config)

    app.logger.setLevel(getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO))

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    cache.init_app(app)
    mongo.init_app(app, client=app.config.get("MONGO_CLIENT"))

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401
    # Registers the tenant criteria and flush guard listeners
    from . import tenancy  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.products import products_bp
    from .routes.categories import categories_bp
    from .routes.orders import orders_bp
    from .routes.inventory import inventory_bp
    from .routes.settings import settings_bp
    from .routes.members import members_bp
    from .routes.customers import customers_bp
    from .routes.storefront import storefront_bp
    from .routes.platform import platform_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(products_bp)
    app.register_blueprint(categories_bp)
    app.register_blueprint(orders_bp)
    app.register_blueprint(inventory_bp)
    app.register_blueprint(settings_bp)
    app.register_blueprint(members_bp)
    app.register_blueprint(customers_bp)
    app.register_blueprint(storefront_bp)
    app.register_blueprint(platform_bp)

    register_error_handlers(app)

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        allowed_origins = set(app.config.get("CORS_ORIGINS", ()))
        if origin in allowed_origins:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = (
                "Content-Type, X-User-Id, X-Tenant-Slug, X-Cart-Session, X-Request-Id"
            )
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,PATCH,OPTIONS"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
