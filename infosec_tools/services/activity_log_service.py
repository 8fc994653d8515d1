"""
Activity Log Service — audit trail queries, statistics, export and purge.
"""

import logging
from datetime import datetime, time, timedelta, timezone

from sqlalchemy import func

from infosec_tools.core.exceptions import ValidationError
from infosec_tools.models import db
from infosec_tools.models.audit import ActivityLog, write_activity
from infosec_tools.services.spreadsheet_service import build_workbook
from infosec_tools.utils.helpers import parse_date

logger = logging.getLogger(__name__)

EXPORT_COLUMNS = ["ID", "Timestamp", "User", "Action", "Details"]
STATS_RECENT_LIMIT = 10
STATS_DAILY_WINDOW_DAYS = 30


def list_logs_query(user_id=None, action=None, start_date=None, end_date=None):
    """
    Filtered activity-log query, newest first.

    ``end_date`` is inclusive of the whole day.
    """
    q = ActivityLog.query
    if user_id:
        q = q.filter(ActivityLog.user_id == int(user_id))
    if action:
        q = q.filter(ActivityLog.action.ilike(f"%{action.strip()}%"))

    start = parse_date(start_date)
    if start_date and start is None:
        raise ValidationError("start_date must be an ISO date", details={"start_date": "invalid"})
    end = parse_date(end_date)
    if end_date and end is None:
        raise ValidationError("end_date must be an ISO date", details={"end_date": "invalid"})

    if start:
        q = q.filter(ActivityLog.timestamp >= datetime.combine(start, time.min))
    if end:
        q = q.filter(ActivityLog.timestamp < datetime.combine(end + timedelta(days=1), time.min))
    return q.order_by(ActivityLog.timestamp.desc(), ActivityLog.id.desc())


def get_statistics() -> dict:
    """Counts per action, most recent entries and per-day volume for the last 30 days."""
    action_counts = (
        db.session.query(ActivityLog.action, func.count(ActivityLog.id))
        .group_by(ActivityLog.action)
        .order_by(func.count(ActivityLog.id).desc())
        .all()
    )

    recent = (
        ActivityLog.query
        .order_by(ActivityLog.timestamp.desc(), ActivityLog.id.desc())
        .limit(STATS_RECENT_LIMIT)
        .all()
    )

    since = datetime.now(timezone.utc).replace(tzinfo=None) - timedelta(days=STATS_DAILY_WINDOW_DAYS)
    day = func.date(ActivityLog.timestamp)
    daily = (
        db.session.query(day, func.count(ActivityLog.id))
        .filter(ActivityLog.timestamp >= since)
        .group_by(day)
        .order_by(day)
        .all()
    )

    return {
        "total": sum(c for _, c in action_counts),
        "by_action": [{"action": a, "count": c} for a, c in action_counts],
        "recent": [log.to_dict() for log in recent],
        "daily": [{"date": str(d), "count": c} for d, c in daily],
    }


def export_logs(**filters) -> bytes:
    logs = list_logs_query(**filters).all()
    rows = [
        (
            log.id,
            log.timestamp.strftime("%Y-%m-%d %H:%M:%S") if log.timestamp else "",
            log.user.username if log.user else "System",
            log.action,
            log.description,
        )
        for log in logs
    ]
    return build_workbook("Activity Logs", EXPORT_COLUMNS, rows)


def clear_all() -> int:
    """Delete every activity log, then record the purge as the sole entry."""
    count = ActivityLog.query.count()
    if count == 0:
        raise ValidationError("No activity logs to clear")
    ActivityLog.query.delete(synchronize_session=False)
    write_activity("CLEAR_LOGS", f"Cleared {count} activity log entries")
    db.session.commit()
    logger.info("Activity log cleared: %d entries removed", count)
    return count
