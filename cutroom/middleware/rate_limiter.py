"""
Rate limiting configuration.

Applies per-blueprint rate limits using Flask-Limiter.
The Limiter instance is created in cutroom/__init__.py with no default
limits; this module applies granular limits per route category.

Usage:
    from cutroom.middleware.rate_limiter import init_rate_limits
    init_rate_limits(app, limiter)
"""

import logging

logger = logging.getLogger(__name__)

AI_LIMIT = "10/minute"
WRITE_LIMIT = "60/minute"
READ_LIMIT = "200/minute"


def init_rate_limits(app, limiter):
    """
    Apply rate limits to API blueprints.

    Limits (per remote IP):
        - Scope classifier:   10/minute  (classifier calls are expensive)
        - Workflow / versions / scope / projects: 60/minute
        - Overdue scan:       200/minute (read-only, polled)
        - Health check:       exempt

    Rate limiting is disabled in testing mode.
    """

    if app.config.get("TESTING"):
        app.logger.info("Rate limiter disabled (TESTING=True)")
        return

    bp = app.blueprints.get("scope_ai")
    if bp:
        limiter.limit(AI_LIMIT)(bp)

    for bp_name in ("projects", "workflow", "versions", "scope"):
        bp = app.blueprints.get(bp_name)
        if bp:
            limiter.limit(WRITE_LIMIT)(bp)

    bp = app.blueprints.get("workflow_sla")
    if bp:
        limiter.limit(READ_LIMIT)(bp)

    bp = app.blueprints.get("health")
    if bp:
        limiter.exempt(bp)

    app.logger.info(
        "Rate limiter configured — classifier: %s, write: %s, read: %s",
        AI_LIMIT, WRITE_LIMIT, READ_LIMIT,
    )
