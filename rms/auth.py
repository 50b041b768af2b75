"""
Board Records Management Service
Acting-user resolution & role guards.

Provides:
    - A before_request hook that resolves the acting user for every
      /api/v1/rms/ request from the X-User-Id header
    - ``require_roles`` decorator for endpoint-level role checks

Security model:
    - Authentication (passwords, SSO, sessions) is done by the upstream
      gateway, which forwards the authenticated user id in X-User-Id.
    - The User row is loaded fresh on every request; there is no role
      cache, so a role change applies to the very next request.
    - Transition-specific role checks happen in the workflow engine, not
      here.

Configuration:
    RMS_AUTH_ENABLED: "false" lets header-less requests act as a
                      synthetic admin (development only)
"""

import functools
import logging
import os
from types import SimpleNamespace

from flask import current_app, g, jsonify, request

from rms.core.exceptions import ForbiddenError
from rms.models import db
from rms.models.auth import ROLE_ADMIN, ROLES, User

logger = logging.getLogger(__name__)

USER_HEADER = "X-User-Id"
API_PREFIX = "/api/v1/rms/"


def _is_auth_enabled() -> bool:
    """Check whether acting-user resolution is enforced (env var or app config)."""
    env_val = os.getenv("RMS_AUTH_ENABLED", "")
    if env_val:
        return env_val.lower() not in ("false", "0", "no", "off")
    try:
        return str(current_app.config.get("RMS_AUTH_ENABLED", "true")).lower() not in (
            "false", "0", "no", "off",
        )
    except RuntimeError:
        # Outside app context
        return True


def _dev_actor():
    return SimpleNamespace(id=None, full_name="Development Admin", role=ROLE_ADMIN, status="active")


def resolve_acting_user():
    """
    Load the acting user for this request.

    Returns:
        (user, None) on success, (None, (response, status)) on failure.
    """
    raw = request.headers.get(USER_HEADER, "").strip()
    if not raw:
        if not _is_auth_enabled():
            return _dev_actor(), None
        return None, (jsonify({"error": f"Authentication required. Provide {USER_HEADER} header.",
                               "code": "ERR_UNAUTHENTICATED"}), 401)
    try:
        user_id = int(raw)
    except ValueError:
        return None, (jsonify({"error": f"Invalid {USER_HEADER} header",
                               "code": "ERR_UNAUTHENTICATED"}), 401)

    user = db.session.get(User, user_id)
    if user is None or not user.is_active:
        logger.warning("Rejected acting user id=%s (unknown or inactive)", user_id)
        return None, (jsonify({"error": "Unknown or inactive user",
                               "code": "ERR_UNAUTHENTICATED"}), 401)
    if user.role not in ROLES:
        logger.warning("User id=%s has unrecognised role '%s'", user.id, user.role)
        return None, (jsonify({"error": "Role is not permitted to use records management",
                               "code": "ERR_FORBIDDEN"}), 403)
    return user, None


def require_roles(*roles: str):
    """
    Decorator: restrict an endpoint to the given roles.

    Raises ForbiddenError for any other role; the blueprint error handler
    renders it as 403.

    Usage:
        @rms_bp.route("/documents", methods=["POST"])
        @require_roles("recordsOfficer", "admin")
        def create_document(): ...
    """
    allowed = frozenset(roles)

    def decorator(f):
        @functools.wraps(f)
        def decorated(*args, **kwargs):
            role = getattr(g, "current_user_role", None)
            if not role:
                return jsonify({"error": "Authentication required",
                                "code": "ERR_UNAUTHENTICATED"}), 401
            if role not in allowed:
                logger.warning(
                    "Access denied: role '%s' tried to access %s (allowed: %s)",
                    role, request.path, ", ".join(sorted(allowed)),
                )
                raise ForbiddenError(role, f"call {request.endpoint}")
            return f(*args, **kwargs)
        return decorated
    return decorator


def init_auth(app):
    """
    Install acting-user resolution on the Flask app.

    Only /api/v1/rms/ routes are guarded; health probes stay open.
    """
    @app.before_request
    def _resolve_actor():
        if not request.path.startswith(API_PREFIX):
            return None
        if request.method == "OPTIONS":
            return None

        user, err = resolve_acting_user()
        if err:
            return err
        g.current_user = user
        g.current_user_role = user.role
        return None

    logger.info("Acting-user middleware installed (enabled=%s)", _is_auth_enabled())
