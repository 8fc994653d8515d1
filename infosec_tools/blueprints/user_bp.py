"""
User Blueprint — account administration.

Endpoints:
    GET    /api/v1/users/profile                  — Own profile (any user)
    GET    /api/v1/users                          — List users (admin)
    GET    /api/v1/users/<id>                     — Get user (admin)
    PUT    /api/v1/users/<id>                     — Update user (admin)
    DELETE /api/v1/users/<id>                     — Delete user (admin)
    POST   /api/v1/users/<id>/reset-password      — Reset password (admin)
"""

from flask import Blueprint, jsonify, request

from infosec_tools.auth import current_user, require_role, require_user
from infosec_tools.blueprints import json_body, paginate
from infosec_tools.services import user_service
from infosec_tools.utils.helpers import get_or_raise
from infosec_tools.models.auth import User

user_bp = Blueprint("users", __name__, url_prefix="/api/v1/users")


@user_bp.route("/profile", methods=["GET"])
@require_user
def profile():
    return jsonify(current_user().to_dict())


@user_bp.route("", methods=["GET"])
@require_role("admin")
def list_users():
    q = user_service.list_users_query(
        search=request.args.get("search"),
        sort_by=request.args.get("sort_by", "id"),
        sort_order=request.args.get("sort_order", "asc"),
    )
    return jsonify(paginate(q))


@user_bp.route("/<int:user_id>", methods=["GET"])
@require_role("admin")
def get_user(user_id):
    return jsonify(get_or_raise(User, user_id, "User").to_dict())


@user_bp.route("/<int:user_id>", methods=["PUT"])
@require_role("admin")
def update_user(user_id):
    data = json_body()
    return jsonify(user_service.update_user(user_id, data).to_dict())


@user_bp.route("/<int:user_id>", methods=["DELETE"])
@require_role("admin")
def delete_user(user_id):
    actor = current_user()
    user_service.delete_user(user_id, actor.id if actor else None)
    return jsonify({"message": "User deleted"})


@user_bp.route("/<int:user_id>/reset-password", methods=["POST"])
@require_role("admin")
def reset_password(user_id):
    data = json_body()
    user = user_service.reset_password(user_id, data.get("new_password"))
    return jsonify({"message": f"Password reset for {user.username}"})
