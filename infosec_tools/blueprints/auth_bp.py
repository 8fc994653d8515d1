"""
Auth Blueprint — login, self-service account endpoints, registration.

Endpoints:
    POST /api/v1/auth/login             — Username/password → access token
    GET  /api/v1/auth/me                — Current user profile
    POST /api/v1/auth/change-password   — Change own password
    POST /api/v1/auth/update-theme      — Set own UI theme
    POST /api/v1/auth/register          — Create a user (admin)
"""

import logging

from flask import Blueprint, jsonify

from infosec_tools.auth import current_user, require_role, require_user
from infosec_tools.blueprints import json_body
from infosec_tools.services import user_service
from infosec_tools.services.jwt_service import generate_access_token, get_access_expires

logger = logging.getLogger(__name__)

auth_bp = Blueprint("auth", __name__, url_prefix="/api/v1/auth")


@auth_bp.route("/login", methods=["POST"])
def login():
    data = json_body()
    user = user_service.authenticate(data.get("username"), data.get("password"))
    logger.info("User logged in: id=%s username=%s", user.id, user.username)
    return jsonify({
        "access_token": generate_access_token(user.id, user.role),
        "token_type": "Bearer",
        "expires_in": get_access_expires(),
        "user": user.to_dict(),
    })


@auth_bp.route("/me", methods=["GET"])
@require_user
def me():
    return jsonify(current_user().to_dict())


@auth_bp.route("/change-password", methods=["POST"])
@require_user
def change_password():
    data = json_body()
    user_service.change_password(current_user(), data.get("old_password"), data.get("new_password"))
    return jsonify({"message": "Password changed successfully"})


@auth_bp.route("/update-theme", methods=["POST"])
@require_user
def update_theme():
    data = json_body()
    user = user_service.update_theme(current_user(), data.get("theme"))
    return jsonify({"message": "Theme updated", "ui_theme": user.ui_theme})


@auth_bp.route("/register", methods=["POST"])
@require_role("admin")
def register():
    data = json_body()
    user = user_service.create_user(
        data.get("username"),
        data.get("password"),
        role=data.get("role") or "readonly",
        first_name=data.get("first_name"),
        last_name=data.get("last_name"),
        email=data.get("email"),
        ui_theme=data.get("ui_theme") or "light",
    )
    return jsonify(user.to_dict()), 201
