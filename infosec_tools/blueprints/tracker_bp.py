"""
Tracker Blueprint — tracker hierarchy, header configuration, rows and
spreadsheet round-trip.

Endpoints summary:
    TRACKER  /api/v1/trackers                                   GET, POST
             /api/v1/trackers/<id>                              GET, PUT, DELETE
             /api/v1/trackers/parent/<parent_id>                GET   (child items)

    HEADER   /api/v1/trackers/<id>/headers                      GET, PUT  (replace set)
             /api/v1/trackers/<id>/headers/initialize           POST      (defaults)

    ROW      /api/v1/trackers/<id>/table-data                   GET   (enabled headers + rows)
             /api/v1/trackers/<id>/rows                         GET, POST
             /api/v1/trackers/<id>/rows/<row_id>                PUT, DELETE

    SHEET    /api/v1/trackers/<id>/template                     GET   (.xlsx)
             /api/v1/trackers/<id>/export                       GET   (.xlsx)
             /api/v1/trackers/<id>/import                       POST  (multipart "file")

Reads are open to every authenticated role; writes require 'admin'.
"""

import logging

from flask import Blueprint, jsonify, request

from infosec_tools.auth import require_role
from infosec_tools.blueprints import json_body, paginate, xlsx_response
from infosec_tools.core.exceptions import ValidationError
from infosec_tools.services import tracker_service
from infosec_tools.services.spreadsheet_service import read_upload
from infosec_tools.utils.helpers import parse_bool

logger = logging.getLogger(__name__)

tracker_bp = Blueprint("trackers", __name__, url_prefix="/api/v1")


# ═══════════════════════════════════════════════════════════════════════════
#  TRACKER HIERARCHY
# ═══════════════════════════════════════════════════════════════════════════

@tracker_bp.route("/trackers", methods=["GET"])
def list_trackers():
    include_items = parse_bool(request.args.get("include_items"), default=True)
    q = tracker_service.list_roots_query(request.args.get("search"))
    return jsonify(paginate(q, lambda t: t.to_dict(include_items=include_items)))


@tracker_bp.route("/trackers", methods=["POST"])
@require_role("admin")
def create_tracker():
    data = json_body()
    tracker = tracker_service.create_tracker(data)
    return jsonify(tracker.to_dict(include_items=True)), 201


@tracker_bp.route("/trackers/<int:tid>", methods=["GET"])
def get_tracker(tid):
    return jsonify(tracker_service.get_tracker(tid).to_dict(include_items=True))


@tracker_bp.route("/trackers/<int:tid>", methods=["PUT"])
@require_role("admin")
def update_tracker(tid):
    data = json_body()
    return jsonify(tracker_service.update_tracker(tid, data).to_dict(include_items=True))


@tracker_bp.route("/trackers/<int:tid>", methods=["DELETE"])
@require_role("admin")
def delete_tracker(tid):
    tracker_service.delete_tracker(tid)
    return jsonify({"message": "Tracker deleted"})


@tracker_bp.route("/trackers/parent/<int:parent_id>", methods=["GET"])
def list_children(parent_id):
    children = tracker_service.list_children(parent_id)
    return jsonify({"items": [c.to_dict() for c in children], "total": len(children)})


# ═══════════════════════════════════════════════════════════════════════════
#  HEADERS
# ═══════════════════════════════════════════════════════════════════════════

@tracker_bp.route("/trackers/<int:tid>/headers", methods=["GET"])
def list_headers(tid):
    return jsonify([h.to_dict() for h in tracker_service.list_headers(tid)])


@tracker_bp.route("/trackers/<int:tid>/headers", methods=["PUT"])
@require_role("admin")
def replace_headers(tid):
    body = request.get_json(silent=True)
    entries = body.get("headers") if isinstance(body, dict) else body
    headers = tracker_service.replace_headers(tid, entries)
    return jsonify([h.to_dict() for h in headers])


@tracker_bp.route("/trackers/<int:tid>/headers/initialize", methods=["POST"])
@require_role("admin")
def initialize_headers(tid):
    headers, created = tracker_service.initialize_headers(tid)
    return jsonify({
        "created": created,
        "headers": [h.to_dict() for h in headers],
    }), (201 if created else 200)


# ═══════════════════════════════════════════════════════════════════════════
#  ROWS
# ═══════════════════════════════════════════════════════════════════════════

@tracker_bp.route("/trackers/<int:tid>/table-data", methods=["GET"])
def table_data(tid):
    tracker = tracker_service.get_tracker(tid)
    body = paginate(tracker_service.rows_query(tracker.id, request.args.get("search")))
    body["tracker"] = tracker.to_dict()
    body["headers"] = [h.to_dict() for h in tracker_service.enabled_headers(tracker)]
    return jsonify(body)


@tracker_bp.route("/trackers/<int:tid>/rows", methods=["GET"])
def list_rows(tid):
    tracker = tracker_service.get_tracker(tid)
    return jsonify(paginate(tracker_service.rows_query(tracker.id, request.args.get("search"))))


@tracker_bp.route("/trackers/<int:tid>/rows", methods=["POST"])
@require_role("admin")
def create_row(tid):
    body = json_body()
    row = tracker_service.create_row(tid, body.get("data"))
    return jsonify(row.to_dict()), 201


@tracker_bp.route("/trackers/<int:tid>/rows/<int:row_id>", methods=["PUT"])
@require_role("admin")
def update_row(tid, row_id):
    body = json_body()
    if "data" not in body:
        raise ValidationError("data is required", details={"data": "required"})
    row = tracker_service.update_row(tid, row_id, body["data"], merge=parse_bool(body.get("merge")))
    return jsonify(row.to_dict())


@tracker_bp.route("/trackers/<int:tid>/rows/<int:row_id>", methods=["DELETE"])
@require_role("admin")
def delete_row(tid, row_id):
    tracker_service.delete_row(tid, row_id)
    return jsonify({"message": "Row deleted"})


# ═══════════════════════════════════════════════════════════════════════════
#  SPREADSHEET ROUND-TRIP
# ═══════════════════════════════════════════════════════════════════════════

@tracker_bp.route("/trackers/<int:tid>/template", methods=["GET"])
def template(tid):
    content, filename = tracker_service.build_template(tid)
    return xlsx_response(content, filename)


@tracker_bp.route("/trackers/<int:tid>/export", methods=["GET"])
def export_rows(tid):
    content, filename = tracker_service.export_rows(tid, request.args.get("search"))
    return xlsx_response(content, filename)


@tracker_bp.route("/trackers/<int:tid>/import", methods=["POST"])
@require_role("admin")
def import_rows(tid):
    tracker_service.get_tracker(tid)
    content = read_upload(request.files.get("file"))
    return jsonify(tracker_service.import_rows(tid, content))
