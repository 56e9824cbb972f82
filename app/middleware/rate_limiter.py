"""
Per-blueprint rate limits using Flask-Limiter.

The Limiter instance is created in app/__init__.py with no default limits;
this module attaches limits per route category.

Usage:
    from app.middleware.rate_limiter import init_rate_limits
    init_rate_limits(app, limiter)
"""

import logging

logger = logging.getLogger(__name__)

WRITE_LIMIT = "60/minute"
READ_LIMIT = "200/minute"
EXPORT_LIMIT = "20/minute"

# CRUD blueprints
_WRITE_BLUEPRINTS = ("elements", "processes", "goals")
# Read-only aggregate views
_READ_BLUEPRINTS = ("scorecard", "dashboard")


def init_rate_limits(app, limiter):
    """
    Apply rate limits to API blueprints.

    Limits (per remote IP):
        - CRUD blueprints:  60/minute
        - Aggregate views:  200/minute
        - Exports:          20/minute
        - Health checks:    exempt

    Rate limiting is disabled in testing mode.
    """
    if app.config.get("TESTING"):
        app.logger.info("Rate limiter disabled (TESTING=True)")
        return

    for bp_name in _WRITE_BLUEPRINTS:
        bp = app.blueprints.get(bp_name)
        if bp:
            limiter.limit(WRITE_LIMIT)(bp)

    for bp_name in _READ_BLUEPRINTS:
        bp = app.blueprints.get(bp_name)
        if bp:
            limiter.limit(READ_LIMIT)(bp)

    bp = app.blueprints.get("export")
    if bp:
        limiter.limit(EXPORT_LIMIT)(bp)

    bp = app.blueprints.get("health")
    if bp:
        limiter.exempt(bp)

    logger.info("Rate limiter configured: write=%s read=%s export=%s",
                WRITE_LIMIT, READ_LIMIT, EXPORT_LIMIT)
