"""
InfoSec Tools
Role-based access control.

Provides:
    - require_role decorator (admin > readonly)
    - current_user helper

Security model:
    - Every /api/v1/* endpoint except login and health needs a bearer
      token; ``middleware.jwt_auth`` resolves it to ``g.current_user``
      and ``g.current_user_role`` before the view runs.
    - Mutating endpoints additionally require the 'admin' role.

Configuration (env vars):
    API_AUTH_ENABLED  — set to "false" to disable auth (development only);
                        every request then acts as 'admin'.
"""

import functools
import logging
import os

from flask import current_app, g, request

from infosec_tools.models.auth import ROLE_ADMIN, ROLE_READONLY
from infosec_tools.utils.errors import E, api_error

logger = logging.getLogger(__name__)

# ── Roles ────────────────────────────────────────────────────────────────────

# Role hierarchy: admin > readonly
ROLE_HIERARCHY = {
    ROLE_ADMIN: {ROLE_ADMIN, ROLE_READONLY},
    ROLE_READONLY: {ROLE_READONLY},
}


def is_auth_enabled() -> bool:
    """Check whether authentication is enabled (env var or app config)."""
    env_val = os.getenv("API_AUTH_ENABLED", "")
    if env_val:
        return env_val.lower() not in ("false", "0", "no", "off")
    return str(current_app.config.get("API_AUTH_ENABLED", "true")).lower() not in ("false", "0", "no", "off")


def current_user():
    """The authenticated User of this request, or None."""
    return getattr(g, "current_user", None)


def require_role(minimum_role: str):
    """
    Decorator: require a minimum role level.

    Usage:
        @tracker_bp.route("/trackers/<int:tid>", methods=["DELETE"])
        @require_role("admin")
        def delete_tracker(tid): ...
    """
    def decorator(f):
        @functools.wraps(f)
        def decorated(*args, **kwargs):
            user_role = getattr(g, "current_user_role", None)
            if not user_role:
                return api_error(E.UNAUTHORIZED, "Authentication required")

            if minimum_role not in ROLE_HIERARCHY.get(user_role, set()):
                logger.warning(
                    "Access denied: role '%s' tried to access '%s'-level endpoint %s",
                    user_role, minimum_role, request.path,
                )
                return api_error(E.FORBIDDEN, "Insufficient permissions")

            return f(*args, **kwargs)
        return decorated
    return decorator


def require_user(f):
    """Decorator: the endpoint acts on the caller's own account, so a real user is required."""
    @functools.wraps(f)
    def decorated(*args, **kwargs):
        if current_user() is None:
            return api_error(E.UNAUTHORIZED, "A user session is required")
        return f(*args, **kwargs)
    return decorated
