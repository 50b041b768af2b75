"""
Rate limiting configuration.

Applies per-blueprint rate limits using Flask-Limiter.
The Limiter instance is created in rms/__init__.py with no default limits;
this module applies limits per route category.

Usage:
    from rms.middleware.rate_limiter import init_rate_limits
    init_rate_limits(app, limiter)
"""

import logging

from flask import g, request as flask_request

logger = logging.getLogger(__name__)

RMS_LIMIT = "120/minute"


def acting_user_key():
    """Rate limit key: acting user id if resolved, else remote IP."""
    user = getattr(g, "current_user", None)
    user_id = getattr(user, "id", None)
    if user_id:
        return f"user:{user_id}"
    return flask_request.remote_addr or "unknown"


def init_rate_limits(app, limiter):
    """
    Apply rate limits to API blueprints.

    Limits:
        - Records API:  120/minute per acting user
        - Health check: exempt

    Rate limiting is disabled in testing mode.
    """
    if app.config.get("TESTING"):
        app.logger.info("Rate limiter disabled (TESTING=True)")
        return

    bp = app.blueprints.get("rms")
    if bp:
        limiter.limit(RMS_LIMIT, key_func=acting_user_key)(bp)

    bp = app.blueprints.get("health")
    if bp:
        limiter.exempt(bp)

    app.logger.info("Rate limiter configured: rms=%s, health exempt", RMS_LIMIT)
