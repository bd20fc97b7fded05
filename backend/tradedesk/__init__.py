# backend/tradedesk/__init__.py
from __future__ import annotations

import logging

from flask import Flask

from .config import Config
from .extensions import db, migrate


def create_app(config_overrides: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    logging.getLogger("tradedesk").setLevel(app.config.get("LOG_LEVEL", "INFO"))

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.transactions import transactions_bp
    from .routes.sequences import sequences_bp

    app.register_blueprint(transactions_bp)
    app.register_blueprint(sequences_bp)

    inbound_log_path = app.config.get("INBOUND_LOG_PATH")
    if inbound_log_path:
        from .observability import connect_json_lines_sink
        connect_json_lines_sink(app, inbound_log_path)

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
