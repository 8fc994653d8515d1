"""
InfoSec Tools
Authentication domain model.

Models:
    - User: application account with a role (admin | readonly) and a UI theme.
"""

from datetime import datetime, timezone

from infosec_tools.models import db

ROLE_ADMIN = "admin"
ROLE_READONLY = "readonly"
USER_ROLES = (ROLE_ADMIN, ROLE_READONLY)
UI_THEMES = ("light", "dark")


class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(100), nullable=False, unique=True, index=True)
    password_hash = db.Column(db.String(256), nullable=False)
    role = db.Column(db.String(20), nullable=False, default=ROLE_READONLY)
    first_name = db.Column(db.String(100))
    last_name = db.Column(db.String(100))
    email = db.Column(db.String(200))
    ui_theme = db.Column(db.String(10), nullable=False, default="light")
    last_login_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    activity_logs = db.relationship("ActivityLog", back_populates="user", lazy="dynamic", passive_deletes=True)

    @property
    def full_name(self):
        return " ".join(p for p in (self.first_name, self.last_name) if p) or self.username

    def to_dict(self):
        return {
            "id": self.id,
            "username": self.username,
            "role": self.role,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "full_name": self.full_name,
            "email": self.email,
            "ui_theme": self.ui_theme,
            "last_login_at": self.last_login_at.isoformat() if self.last_login_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<User {self.id}: {self.username} ({self.role})>"
