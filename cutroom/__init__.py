"""
Cutroom
Flask Application Factory.

Usage:
    from cutroom import create_app
    app = create_app()           # defaults to "development"
    app = create_app("testing")  # explicit config
"""

import logging
import os

import click
from flask import Flask, request
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate

from cutroom.config import config
from cutroom.models import db
from cutroom.middleware.logging_config import configure_logging
from cutroom.middleware.rate_limiter import init_rate_limits
from cutroom.middleware.timing import init_request_timing
from cutroom.models.workflow import StageConfig

logger = logging.getLogger(__name__)

# ── SQLite FK enforcement (global engine event) ─────────────────────────
from sqlalchemy import event as _sa_event, engine as _sa_engine


@_sa_event.listens_for(_sa_engine.Engine, "connect")
def _enable_sqlite_fk(dbapi_conn, connection_record):
    """Enable foreign key enforcement for SQLite connections."""
    if "sqlite" in type(dbapi_conn).__module__:
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


migrate = Migrate()
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[],                     # no global limit — apply per-blueprint
    storage_uri=os.getenv("REDIS_URL", "memory://"),
)


def create_app(config_name=None, scope_classifier=None):
    """
    Create and configure the Flask application.

    Args:
        config_name: Configuration environment name.
                     One of: "development", "testing", "production".
                     Defaults to APP_ENV env var, or "development" if unset.
        scope_classifier: Optional callable text → ScopeClassification used
                     by POST /api/v1/scope/analyze. Without one that
                     endpoint answers 503.

    Returns:
        Configured Flask application instance.
    """
    if config_name is None:
        config_name = os.getenv("APP_ENV", "development")

    app = Flask(__name__, instance_relative_config=True)
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

    # ── Workflow engine configuration ────────────────────────────────────
    app.extensions["cutroom"] = {
        "stage_config": StageConfig.from_settings(
            order=app.config.get("WORKFLOW_STAGE_ORDER"),
            sla_overrides=app.config.get("WORKFLOW_STAGE_SLA_HOURS"),
        ),
        "scope_classifier": scope_classifier,
    }

    # ── Request timing middleware ────────────────────────────────────────
    init_request_timing(app)

    # ── Request guards (input length + Content-Type) ─────────────────────
    app.config.setdefault("MAX_CONTENT_LENGTH", 2 * 1024 * 1024)  # 2 MB

    @app.before_request
    def _guard_request():
        from flask import abort
        if request.method in ("POST", "PUT", "PATCH") and request.path.startswith("/api/"):
            ct = request.content_type or ""
            if request.data and "json" not in ct:
                abort(415, description="Content-Type must be application/json")

    # ── Import all models so Alembic can detect them ─────────────────────
    from cutroom.models import auth as _auth_models          # noqa: F401
    from cutroom.models import project as _project_models    # noqa: F401
    from cutroom.models import workflow as _workflow_models  # noqa: F401
    from cutroom.models import asset as _asset_models        # noqa: F401
    from cutroom.models import feedback as _feedback_models  # noqa: F401
    from cutroom.models import scope as _scope_models        # noqa: F401

    # ── Auto-create tables (CREATE IF NOT EXISTS) ────────────────────────
    if not app.config.get("TESTING"):
        with app.app_context():
            db.create_all()
            app.logger.info("db.create_all() completed successfully")

    # ── Blueprints ───────────────────────────────────────────────────────
    from cutroom.blueprints.health_bp import health_bp
    from cutroom.blueprints.project_bp import project_bp
    from cutroom.blueprints.workflow_bp import workflow_bp, workflow_sla_bp
    from cutroom.blueprints.version_bp import version_bp
    from cutroom.blueprints.scope_bp import scope_bp, scope_ai_bp

    app.register_blueprint(health_bp)
    app.register_blueprint(project_bp)
    app.register_blueprint(workflow_bp)
    app.register_blueprint(workflow_sla_bp)
    app.register_blueprint(version_bp)
    app.register_blueprint(scope_bp)
    app.register_blueprint(scope_ai_bp)

    # ── CLI commands ─────────────────────────────────────────────────────
    @app.cli.command("scan-overdue")
    @click.option("--tenant-id", type=int, default=None, help="Limit the scan to one tenant.")
    def scan_overdue_cmd(tenant_id):
        """Log every active workflow stage that has outrun its SLA."""
        from cutroom.services.scheduled_jobs import scan_overdue_stages
        result = scan_overdue_stages(
            stage_config=app.extensions["cutroom"]["stage_config"],
            tenant_id=tenant_id,
        )
        click.echo(
            f"Scanned {result['tenants_scanned']} tenant(s): "
            f"{len(result['overdue'])} overdue stage(s)."
        )

    # ── Error handlers ───────────────────────────────────────────────────
    @app.errorhandler(404)
    def not_found(e):
        return {"error": "Not found", "path": request.path}, 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return {"error": "Method not allowed"}, 405

    @app.errorhandler(415)
    def unsupported_media_type(e):
        return {"error": e.description}, 415

    @app.errorhandler(500)
    def server_error(e):
        logger.error("500 error: %s", e, exc_info=True)
        return {"error": "Internal server error"}, 500

    # ── Rate limiting (after blueprints are registered) ──────────────────
    init_rate_limits(app, limiter)

    return app
