"""
Rate limiting configuration.

Applies per-blueprint rate limits using Flask-Limiter.
The Limiter instance is created in sgld/__init__.py with no default limits;
this module applies granular limits per route category.

Usage:
    from sgld.middleware.rate_limiter import init_rate_limits
    init_rate_limits(app, limiter)
"""

import logging

logger = logging.getLogger(__name__)

REPORT_LIMIT = "10/minute"
WRITE_LIMIT = "60/minute"
READ_LIMIT = "200/minute"


def init_rate_limits(app, limiter):
    """
    Apply rate limits to API blueprints.

    Limits (per remote IP):
        - Report downloads:  10/minute  (rasterization is CPU heavy)
        - Form editing:      60/minute
        - Review listing:    200/minute
        - Health check:      exempt

    Rate limiting is disabled in testing mode.
    """

    if app.config.get("TESTING"):
        app.logger.info("Rate limiter disabled (TESTING=True)")
        return

    bp = app.blueprints.get("report")
    if bp:
        limiter.limit(REPORT_LIMIT)(bp)

    bp = app.blueprints.get("forms")
    if bp:
        limiter.limit(WRITE_LIMIT)(bp)

    bp = app.blueprints.get("review")
    if bp:
        limiter.limit(READ_LIMIT)(bp)

    bp = app.blueprints.get("health")
    if bp:
        limiter.exempt(bp)

    app.logger.info(
        "Rate limiter configured — report: %s, write: %s, read: %s",
        REPORT_LIMIT, WRITE_LIMIT, READ_LIMIT,
    )
