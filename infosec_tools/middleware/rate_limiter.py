"""
Rate limiting configuration.

The Limiter instance is created in infosec_tools/__init__.py with no
default limits; this module applies per-route limits.

Usage:
    from infosec_tools.middleware.rate_limiter import init_rate_limits
    init_rate_limits(app, limiter)
"""

import logging

logger = logging.getLogger(__name__)


def init_rate_limits(app, limiter):
    """
    Apply rate limits after blueprints are registered.

    Limits (per remote IP):
        - Login:         LOGIN_RATE_LIMIT (default 10/minute)
        - Health check:  exempt

    Rate limiting is disabled in testing mode.
    """
    if app.config.get("TESTING"):
        app.logger.info("Rate limiter disabled (TESTING=True)")
        return

    login_view = app.view_functions.get("auth.login")
    if login_view:
        limiter.limit(app.config.get("LOGIN_RATE_LIMIT", "10/minute"))(login_view)

    bp = app.blueprints.get("health")
    if bp:
        limiter.exempt(bp)

    app.logger.info("Rate limiter configured — login: %s", app.config.get("LOGIN_RATE_LIMIT"))
