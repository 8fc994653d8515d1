"""
PIM Blueprint — privileged-access user and server lists.

Endpoints (each resource, see inventory_routes for the full set):
    /api/v1/pim-users      — CRUD, filter-options, template, export, import, clear-all
    /api/v1/pim-servers    — CRUD, filter-options, template, export, import, clear-all
"""

from flask import Blueprint

from infosec_tools.blueprints.inventory_routes import register_inventory_routes
from infosec_tools.models.inventory import PimServer, PimUser

pim_bp = Blueprint("pim", __name__, url_prefix="/api/v1")

register_inventory_routes(pim_bp, PimUser, "/pim-users")
register_inventory_routes(pim_bp, PimServer, "/pim-servers")
