# backend/branchpos/__init__.py
import logging

from flask import Flask, request

from .config import Config
from .extensions import db, migrate, feed


def _configure_logging(app: Flask) -> None:
    level = getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO)
    package_logger = logging.getLogger(__name__)
    package_logger.setLevel(level)
    if not package_logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
        package_logger.addHandler(handler)
    app.logger.setLevel(level)


def create_app(config_object=Config) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config_object)
    _configure_logging(app)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db, directory=app.config["MIGRATIONS_DIR"])

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Change feed: session hooks plus one reader per live collection
    from .services.readers import register_readers
    feed.bind(db)
    register_readers(feed)

    # Register blueprints
    from .routes.system import system_bp
    from .routes.branches import branches_bp
    from .routes.inventory import inventory_bp
    from .routes.orders import orders_bp
    from .routes.discounts import discounts_bp
    from .routes.timekeeping import timekeeping_bp
    from .routes.workers import workers_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(branches_bp)
    app.register_blueprint(inventory_bp)
    app.register_blueprint(orders_bp)
    app.register_blueprint(discounts_bp)
    app.register_blueprint(timekeeping_bp)
    app.register_blueprint(workers_bp)

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        if origin and origin in app.config.get("CORS_ORIGINS", ()):
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "X-Worker-Id, Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,PATCH,OPTIONS"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
