"""
Server Inventory Blueprint.

Endpoints:
    GET    /api/v1/servers/dashboard-stats    — Totals, status counts, grouped counts
    POST   /api/v1/servers/seed               — Insert sample servers into an empty inventory (admin)
    ...    /api/v1/servers                    — CRUD, filter-options, import-template,
                                                export, import, clear-all
                                                (see inventory_routes)
"""

from flask import Blueprint, jsonify

from infosec_tools.auth import require_role
from infosec_tools.blueprints.inventory_routes import register_inventory_routes
from infosec_tools.models.inventory import Server
from infosec_tools.services import inventory_service

server_bp = Blueprint("servers", __name__, url_prefix="/api/v1")


@server_bp.route("/servers/dashboard-stats", methods=["GET"])
def dashboard_stats():
    return jsonify(inventory_service.dashboard_stats())


@server_bp.route("/servers/seed", methods=["POST"])
@require_role("admin")
def seed():
    created = inventory_service.seed_servers()
    if not created:
        return jsonify({"message": "Server inventory is not empty; nothing seeded", "created": 0})
    return jsonify({"message": f"Seeded {created} servers", "created": created}), 201


register_inventory_routes(server_bp, Server, "/servers", template_rule="import-template")
