"""
InfoSec Tools
Activity log model.

Models:
    - ActivityLog: append-only trail of user actions (who, what, when).
"""

from datetime import datetime, timezone

from infosec_tools.models import db

# Actions written: LOGIN, CREATE, UPDATE, DELETE, IMPORT, EXPORT, CLEAR_ALL,
# PASSWORD_CHANGE, RESET_PASSWORD, CLEAR_LOGS


class ActivityLog(db.Model):
    """One row per user action.  ``user_id`` is NULL for system actions."""

    __tablename__ = "activity_logs"
    __table_args__ = (
        db.Index("idx_activity_user", "user_id"),
        db.Index("idx_activity_action", "action"),
        db.Index("idx_activity_ts", "timestamp"),
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    action = db.Column(db.String(50), nullable=False)
    description = db.Column(db.Text)
    timestamp = db.Column(db.DateTime, nullable=False, default=lambda: datetime.now(timezone.utc))

    user = db.relationship("User", back_populates="activity_logs")

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "username": self.user.username if self.user else "System",
            "action": self.action,
            "description": self.description,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
        }

    def __repr__(self):
        return f"<ActivityLog {self.id}: {self.action}>"


def write_activity(action: str, description: str, *, user_id: int | None = None) -> ActivityLog:
    """
    Append a single activity row.  Uses ``flush`` so callers keep
    transaction control.

    When ``user_id`` is not given, the authenticated user of the current
    request (``g.current_user``) is recorded.
    """
    if user_id is None:
        from flask import g, has_request_context
        if has_request_context():
            user = getattr(g, "current_user", None)
            user_id = user.id if user is not None else None

    log = ActivityLog(user_id=user_id, action=action, description=description)
    db.session.add(log)
    db.session.flush()
    return log
