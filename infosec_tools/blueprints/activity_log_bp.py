"""
Activity Log Blueprint — audit trail viewer (admin only).

Endpoints:
    GET    /api/v1/activity-logs               — List (page, size, user_id, action, start_date, end_date)
    GET    /api/v1/activity-logs/statistics    — Per-action counts, recent entries, daily volume
    GET    /api/v1/activity-logs/export        — .xlsx export (same filters as list)
    GET    /api/v1/activity-logs/<id>          — Single entry
    DELETE /api/v1/activity-logs/clear-all     — Purge the trail
"""

from datetime import datetime, timezone

from flask import Blueprint, jsonify, request

from infosec_tools.auth import require_role
from infosec_tools.blueprints import paginate, xlsx_response
from infosec_tools.models.audit import ActivityLog
from infosec_tools.services import activity_log_service
from infosec_tools.utils.helpers import get_or_raise

activity_log_bp = Blueprint("activity_logs", __name__, url_prefix="/api/v1/activity-logs")


@activity_log_bp.before_request
@require_role("admin")
def _admin_only():
    return None


def _filters():
    return {
        "user_id": request.args.get("user_id", type=int),
        "action": request.args.get("action"),
        "start_date": request.args.get("start_date"),
        "end_date": request.args.get("end_date"),
    }


@activity_log_bp.route("", methods=["GET"])
def list_logs():
    return jsonify(paginate(activity_log_service.list_logs_query(**_filters())))


@activity_log_bp.route("/statistics", methods=["GET"])
def statistics():
    return jsonify(activity_log_service.get_statistics())


@activity_log_bp.route("/export", methods=["GET"])
def export_logs():
    content = activity_log_service.export_logs(**_filters())
    stamp = datetime.now(timezone.utc).strftime("%Y%m%d")
    return xlsx_response(content, f"activity_logs_{stamp}.xlsx")


@activity_log_bp.route("/<int:log_id>", methods=["GET"])
def get_log(log_id):
    return jsonify(get_or_raise(ActivityLog, log_id, "Activity log").to_dict())


@activity_log_bp.route("/clear-all", methods=["DELETE"])
def clear_all():
    count = activity_log_service.clear_all()
    return jsonify({"message": f"Cleared {count} activity log entries", "deleted": count})
