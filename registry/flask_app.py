"""Flask application factory and bootstrap.

This module provides the create_app() factory function for initializing
the Flask application with the database, session store, blueprints and
error handlers.

Gunicorn:
    gunicorn "registry.flask_app:create_app()"
"""
from __future__ import annotations
import os
from typing import Optional

from flask import Flask
from flask_session import Session
from sqlalchemy import event
from werkzeug.middleware.proxy_fix import ProxyFix

from registry.config import AppConfig, load_settings
from registry.core.directory import DirectoryClient
from registry.core.feature_flags import FeatureFlags
from registry.core.models import db


# ─────────────────────────────────────────────────────────────────────────────
# Application Factory
# ─────────────────────────────────────────────────────────────────────────────
def create_app(cfg: Optional[AppConfig] = None, directory=None) -> Flask:
    """Create and configure Flask application.

    Args:
        cfg: Settings; loaded from the environment when omitted
        directory: Directory client override (tests pass a fake)
    """
    cfg = cfg or load_settings()

    app = Flask(__name__)

    # Store config and services for easy access in routes
    app.config["APP_CONFIG"] = cfg
    app.config["FEATURE_FLAGS"] = FeatureFlags.from_config(cfg)
    app.config["DIRECTORY_CLIENT"] = directory or DirectoryClient.from_config(cfg)

    # Flask session configuration
    app.config["SECRET_KEY"] = cfg.secret_key
    if cfg.secret_key_fallbacks:
        app.config["SECRET_KEY_FALLBACKS"] = cfg.secret_key_fallbacks

    app.config["SESSION_TYPE"] = cfg.session_type
    if cfg.session_type == "filesystem":
        os.makedirs(cfg.session_dir, exist_ok=True)
        app.config["SESSION_FILE_DIR"] = cfg.session_dir

    app.config["SESSION_COOKIE_HTTPONLY"] = True
    app.config["SESSION_COOKIE_SAMESITE"] = "Lax"
    app.config["SESSION_COOKIE_SECURE"] = cfg.session_cookie_secure

    # Database
    app.config["SQLALCHEMY_DATABASE_URI"] = cfg.database_url
    app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] = False
    db.init_app(app)

    # Initialize session
    Session(app)

    # Trust X-Forwarded-* headers from proxy (nginx)
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1)  # type: ignore

    # Initialize OIDC
    from registry.api import session as session_routes
    session_routes.init_oauth(app, cfg)

    # Register blueprints
    from registry.api import health, errors, projects

    app.register_blueprint(session_routes.bp, url_prefix="/session")
    app.register_blueprint(projects.bp, url_prefix="/projects")
    app.register_blueprint(health.bp)

    # Register error handlers
    errors.register_error_handlers(app)

    with app.app_context():
        if db.engine.dialect.name == "sqlite":
            _enable_sqlite_savepoints(db.engine)
        db.create_all()
        database_label = db.engine.url.render_as_string(hide_password=True)

    print(f"[flask_app] Mode={cfg.mode_label}")
    print(f"[flask_app] Database={database_label}")

    return app


# ─────────────────────────────────────────────────────────────────────────────
# Helper Functions
# ─────────────────────────────────────────────────────────────────────────────
def _enable_sqlite_savepoints(engine) -> None:
    """Let SQLAlchemy own transaction control so SAVEPOINT works on pysqlite."""

    @event.listens_for(engine, "connect")
    def _disable_pysqlite_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")