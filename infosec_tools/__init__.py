"""
InfoSec Tools
Flask Application Factory.

Usage:
    from infosec_tools import create_app
    app = create_app()           # defaults to "development"
    app = create_app("testing")  # explicit config
"""

import logging
import os

from flask import Flask, abort, request, send_from_directory
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate

from infosec_tools.config import config
from infosec_tools.models import db
from infosec_tools.middleware.logging_config import configure_logging
from infosec_tools.middleware.timing import init_request_timing
from infosec_tools.middleware.jwt_auth import init_jwt_middleware
from infosec_tools.middleware.rate_limiter import init_rate_limits
from infosec_tools.utils.errors import register_error_handlers

logger = logging.getLogger(__name__)

# ── SQLite FK enforcement (global engine event) ─────────────────────────
from sqlalchemy import event as _sa_event, engine as _sa_engine


@_sa_event.listens_for(_sa_engine.Engine, "connect")
def _enable_sqlite_fk(dbapi_conn, connection_record):
    """Enable foreign key enforcement for SQLite connections (cascade deletes rely on it)."""
    if "sqlite" in type(dbapi_conn).__module__:
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


migrate = Migrate()
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[],                     # no global limit — login is limited per-route
    storage_uri=os.getenv("RATELIMIT_STORAGE_URI", "memory://"),
)


def create_app(config_name=None):
    """
    Create and configure the Flask application.

    Args:
        config_name: Configuration environment name.
                     One of: "development", "testing", "production".
                     Defaults to APP_ENV env var, or "development" if unset.

    Returns:
        Configured Flask application instance.
    """
    if config_name is None:
        config_name = os.getenv("APP_ENV", "development")

    app = Flask(
        __name__,
        instance_relative_config=True,
        static_folder="../static",
        template_folder="../templates",
    )
    app.config.from_object(config[config_name]())

    # ── Structured logging (must be first) ───────────────────────────────
    configure_logging(app)

    # ── Extensions ───────────────────────────────────────────────────────
    db.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)
    cors_origins = app.config.get("CORS_ORIGINS", "*")
    if cors_origins and cors_origins != "*":
        CORS(app, origins=[o.strip() for o in cors_origins.split(",") if o.strip()])
    else:
        CORS(app)

    # ── Request timing middleware ────────────────────────────────────────
    init_request_timing(app)

    # ── JWT auth middleware (sets g.current_user) ────────────────────────
    init_jwt_middleware(app)

    # ── Request guard (Content-Type) ─────────────────────────────────────
    @app.before_request
    def _guard_request():
        if request.method in ("POST", "PUT", "PATCH") and request.path.startswith("/api/"):
            ct = request.content_type or ""
            # Spreadsheet imports arrive as multipart uploads
            if request.content_length and "json" not in ct and "multipart/form-data" not in ct:
                abort(415, description="Content-Type must be application/json")

    # ── Error handlers ───────────────────────────────────────────────────
    register_error_handlers(app)

    # ── Import all models so Alembic can detect them ─────────────────────
    from infosec_tools.models import auth as _auth_models            # noqa: F401
    from infosec_tools.models import audit as _audit_models          # noqa: F401
    from infosec_tools.models import inventory as _inventory_models  # noqa: F401
    from infosec_tools.models import tracker as _tracker_models      # noqa: F401

    # ── Auto-create tables (CREATE IF NOT EXISTS) ────────────────────────
    with app.app_context():
        db_uri = app.config["SQLALCHEMY_DATABASE_URI"]
        if db_uri.startswith("sqlite:///") and ":memory:" not in db_uri:
            os.makedirs(app.instance_path, exist_ok=True)
        db.create_all()
        app.logger.debug("db.create_all() completed")

    # ── Blueprints ───────────────────────────────────────────────────────
    from infosec_tools.blueprints.health_bp import health_bp
    from infosec_tools.blueprints.auth_bp import auth_bp
    from infosec_tools.blueprints.user_bp import user_bp
    from infosec_tools.blueprints.activity_log_bp import activity_log_bp
    from infosec_tools.blueprints.server_bp import server_bp
    from infosec_tools.blueprints.pim_bp import pim_bp
    from infosec_tools.blueprints.tracker_bp import tracker_bp

    app.register_blueprint(health_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(user_bp)
    app.register_blueprint(activity_log_bp)
    app.register_blueprint(server_bp)
    app.register_blueprint(pim_bp)
    app.register_blueprint(tracker_bp)

    # ── CLI commands ─────────────────────────────────────────────────────
    @app.cli.command("seed-users")
    def seed_users_cmd():
        """Create the default admin and read-only accounts."""
        from infosec_tools.services.user_service import seed_default_users
        count = seed_default_users()
        logger.info("Seeded %s default users.", count)

    @app.cli.command("seed-demo")
    def seed_demo_cmd():
        """Insert sample servers and a sample tracker hierarchy."""
        from infosec_tools.services.inventory_service import seed_servers
        from infosec_tools.services.tracker_service import seed_demo_trackers
        servers = seed_servers()
        trackers = seed_demo_trackers()
        logger.info("Seeded %s servers and %s trackers.", servers, trackers)

    # ── SPA catch-all ────────────────────────────────────────────────────
    @app.route("/", defaults={"path": ""})
    @app.route("/<path:path>")
    def spa(path):
        if path.startswith("api/"):
            abort(404)
        if not os.path.isfile(os.path.join(app.root_path, app.template_folder, "index.html")):
            abort(404)
        return send_from_directory(app.template_folder, "index.html")

    # ── Rate limiting (after blueprints registered) ──────────────────────
    init_rate_limits(app, limiter)

    return app
