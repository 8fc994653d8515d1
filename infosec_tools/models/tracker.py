"""
InfoSec Tools
Tracker domain model.

Models:
    - Tracker:       self-referencing node. ``parent_id IS NULL`` marks a root
                     (category); a non-null ``parent_id`` marks a child item.
    - TrackerHeader: column definition for a tracker's dynamic table.
    - TrackerRow:    one free-form JSON record inside a tracker's table.

Deleting a tracker removes its child items, headers and rows, both through
the ORM cascade and through ``ON DELETE CASCADE`` on the foreign keys.
"""

from datetime import datetime, timezone

from infosec_tools.models import db

# Header set seeded by ``POST /trackers/<id>/headers/initialize``
DEFAULT_HEADERS = (
    {"key": "name", "label": "Name", "enabled": True, "order": 1},
    {"key": "description", "label": "Description", "enabled": True, "order": 2},
    {"key": "status", "label": "Status", "enabled": True, "order": 3},
    {"key": "owner", "label": "Owner", "enabled": True, "order": 4},
    {"key": "date", "label": "Date", "enabled": True, "order": 5},
    {"key": "priority", "label": "Priority", "enabled": False, "order": 6},
    {"key": "comments", "label": "Comments", "enabled": False, "order": 7},
)

# Descriptive fields writable through the API
TRACKER_FIELDS = (
    "name", "description", "parent_id", "tracker_link", "ownership",
    "reviewer", "frequency", "status", "remarks", "timelines",
)


class Tracker(db.Model):
    __tablename__ = "trackers"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text)
    parent_id = db.Column(
        db.Integer, db.ForeignKey("trackers.id", ondelete="CASCADE"), nullable=True, index=True,
    )
    tracker_link = db.Column(db.String(500))
    ownership = db.Column(db.String(255))
    reviewer = db.Column(db.String(255))
    frequency = db.Column(db.String(100))
    status = db.Column(db.String(100))
    remarks = db.Column(db.Text)
    timelines = db.Column(db.String(255))
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    parent = db.relationship("Tracker", remote_side=[id], back_populates="items")
    items = db.relationship(
        "Tracker", back_populates="parent",
        cascade="all, delete-orphan", order_by="Tracker.id",
    )
    headers = db.relationship(
        "TrackerHeader", back_populates="tracker",
        cascade="all, delete-orphan",
        order_by=lambda: [TrackerHeader.order, TrackerHeader.id],
    )
    rows = db.relationship(
        "TrackerRow", back_populates="tracker", lazy="dynamic",
        cascade="all, delete-orphan", passive_deletes=True,
    )

    def to_dict(self, include_items=False):
        d = {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "parent_id": self.parent_id,
            "tracker_link": self.tracker_link,
            "ownership": self.ownership,
            "reviewer": self.reviewer,
            "frequency": self.frequency,
            "status": self.status,
            "remarks": self.remarks,
            "timelines": self.timelines,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
        if include_items:
            d["items"] = [i.to_dict() for i in self.items]
        return d

    def __repr__(self):
        return f"<Tracker {self.id}: {self.name}>"


class TrackerHeader(db.Model):
    __tablename__ = "tracker_headers"

    id = db.Column(db.Integer, primary_key=True)
    tracker_id = db.Column(
        db.Integer, db.ForeignKey("trackers.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    key = db.Column(db.String(100), nullable=False)
    label = db.Column(db.String(255), nullable=False)
    enabled = db.Column(db.Boolean, nullable=False, default=True)
    order = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    tracker = db.relationship("Tracker", back_populates="headers")

    def to_dict(self):
        return {
            "id": self.id,
            "tracker_id": self.tracker_id,
            "key": self.key,
            "label": self.label,
            "enabled": self.enabled,
            "order": self.order,
        }

    def __repr__(self):
        return f"<TrackerHeader {self.id}: {self.key}>"


class TrackerRow(db.Model):
    __tablename__ = "tracker_rows"

    id = db.Column(db.Integer, primary_key=True)
    tracker_id = db.Column(
        db.Integer, db.ForeignKey("trackers.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    data = db.Column(db.JSON, nullable=False, default=dict)
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    tracker = db.relationship("Tracker", back_populates="rows")

    def to_dict(self):
        return {
            "id": self.id,
            "tracker_id": self.tracker_id,
            "data": self.data or {},
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
