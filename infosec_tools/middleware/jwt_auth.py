"""
JWT Auth Middleware — resolves the bearer token of every API request to a
User row and sets ``g.current_user`` / ``g.current_user_role``.

Token sources (first match wins):
  1. Authorization: Bearer <token>
  2. x-access-token: <token>

The role is read from the database, not the token, so a role change or a
deleted account takes effect on the next request.
"""

import logging

import jwt as pyjwt
from flask import g, request

from infosec_tools.auth import is_auth_enabled
from infosec_tools.models import db
from infosec_tools.models.auth import ROLE_ADMIN, User
from infosec_tools.services.jwt_service import decode_access_token
from infosec_tools.utils.errors import E, api_error

logger = logging.getLogger(__name__)

# Paths that skip JWT auth entirely
JWT_SKIP_PREFIXES = (
    "/api/v1/auth/login",
    "/api/v1/health",
)


def _token_from_request():
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        return auth_header[7:].strip() or None
    return request.headers.get("x-access-token", "").strip() or None


def init_jwt_middleware(app):
    """Register JWT middleware as a before_request hook."""

    @app.before_request
    def _jwt_auth():
        g.current_user = None
        g.current_user_role = None

        path = request.path
        if not path.startswith("/api/v1/") or request.method == "OPTIONS":
            return None
        if path.startswith(JWT_SKIP_PREFIXES):
            return None

        if not is_auth_enabled():
            g.current_user_role = ROLE_ADMIN
            return None

        token = _token_from_request()
        if not token:
            return api_error(E.UNAUTHORIZED, "No token provided")

        try:
            payload = decode_access_token(token)
        except pyjwt.ExpiredSignatureError:
            return api_error(E.UNAUTHORIZED, "Token expired")
        except pyjwt.InvalidTokenError as exc:
            logger.info("Rejected invalid token on %s: %s", path, exc)
            return api_error(E.UNAUTHORIZED, "Invalid token")

        try:
            user = db.session.get(User, int(payload.get("sub")))
        except (TypeError, ValueError):
            user = None
        if user is None:
            return api_error(E.UNAUTHORIZED, "User no longer exists")

        g.current_user = user
        g.current_user_role = user.role
        return None
