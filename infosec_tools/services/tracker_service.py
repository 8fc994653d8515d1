"""
Tracker Service — two-level tracker hierarchy, header configuration,
free-form rows and the spreadsheet round-trip.

    Tracker (root, parent_id NULL)
      ├── Tracker (child item, parent_id → root)
      ├── TrackerHeader (column definitions: key / label / enabled / order)
      └── TrackerRow    (data: {header key → scalar})

Depth is not enforced: a child may reference another child.  Duplicate
header keys are stored as given.
"""

import logging

from sqlalchemy import String, cast, or_
from werkzeug.utils import secure_filename

from infosec_tools.core.exceptions import NotFoundError, ValidationError
from infosec_tools.models import db
from infosec_tools.models.audit import write_activity
from infosec_tools.models.tracker import (
    DEFAULT_HEADERS,
    TRACKER_FIELDS,
    Tracker,
    TrackerHeader,
    TrackerRow,
)
from infosec_tools.services.spreadsheet_service import (
    build_workbook,
    read_workbook,
    to_json_value,
)
from infosec_tools.utils.helpers import get_or_raise, is_blank, parse_bool

logger = logging.getLogger(__name__)


def _as_int(value, field):
    """Accept ints and integer strings only; bools and floats are rejected."""
    if isinstance(value, bool) or not isinstance(value, (int, str)):
        raise ValidationError(f"{field} must be an integer", details={field: "invalid"})
    try:
        return int(value)
    except ValueError:
        raise ValidationError(f"{field} must be an integer", details={field: "invalid"})


def _as_id(value, field):
    if value is None or value == "":
        return None
    return _as_int(value, field)


def _require_object(data):
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object", details={"body": "invalid"})


def _clean_text_fields(data: dict) -> dict:
    """Descriptive fields present in ``data``, as str or None; numbers are stringified."""
    fields = {}
    for field in TRACKER_FIELDS:
        if field == "parent_id" or field not in data:
            continue
        value = data[field]
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            value = str(value)
        elif value is not None and not isinstance(value, str):
            raise ValidationError(f"{field} must be a string", details={field: "invalid"})
        max_length = getattr(Tracker.__table__.columns[field].type, "length", None)
        if value is not None and max_length and len(value) > max_length:
            raise ValidationError(
                f"{field} must be at most {max_length} characters", details={field: "too long"},
            )
        fields[field] = value
    return fields


# ═══════════════════════════════════════════════════════════════
# Tracker hierarchy
# ═══════════════════════════════════════════════════════════════

def list_roots_query(search: str = None):
    """Root trackers (``parent_id IS NULL``) ordered by name, then id."""
    q = Tracker.query.filter(Tracker.parent_id.is_(None))
    if search and search.strip():
        term = f"%{search.strip()}%"
        q = q.filter(or_(Tracker.name.ilike(term), Tracker.description.ilike(term)))
    return q.order_by(Tracker.name, Tracker.id)


def get_tracker(tracker_id: int) -> Tracker:
    return get_or_raise(Tracker, tracker_id, "Tracker")


def list_children(parent_id: int) -> list[Tracker]:
    get_or_raise(Tracker, parent_id, "Parent tracker")
    return Tracker.query.filter_by(parent_id=parent_id).order_by(Tracker.id).all()


def _resolve_parent(parent_id, tracker_id=None):
    """
    Validate a parent reference.  When re-parenting ``tracker_id`` the new
    parent must not be the tracker itself or one of its descendants.
    """
    parent_id = _as_id(parent_id, "parent_id")
    if parent_id is None:
        return None
    if tracker_id is not None and parent_id == tracker_id:
        raise ValidationError("A tracker cannot be its own parent", details={"parent_id": "invalid"})
    parent = db.session.get(Tracker, parent_id)
    if parent is None:
        raise ValidationError(
            f"Parent tracker {parent_id} does not exist", details={"parent_id": "not found"},
        )

    if tracker_id is not None:
        seen = set()
        ancestor = parent
        while ancestor is not None and ancestor.id not in seen:
            if ancestor.parent_id == tracker_id:
                raise ValidationError(
                    "A tracker cannot be moved under one of its own items",
                    details={"parent_id": "cycle"},
                )
            seen.add(ancestor.id)
            ancestor = ancestor.parent
    return parent_id


def create_tracker(data: dict) -> Tracker:
    _require_object(data)
    fields = _clean_text_fields(data)
    if is_blank(fields.get("name")):
        raise ValidationError("name is required", details={"name": "required"})

    fields["name"] = fields["name"].strip()
    fields["parent_id"] = _resolve_parent(data.get("parent_id"))

    tracker = Tracker(**fields)
    db.session.add(tracker)
    db.session.flush()
    kind = "tracker item" if tracker.parent_id else "tracker"
    write_activity("CREATE", f"Created {kind} '{tracker.name}'")
    db.session.commit()
    logger.info("Tracker created: id=%s parent_id=%s", tracker.id, tracker.parent_id)
    return tracker


def update_tracker(tracker_id: int, data: dict) -> Tracker:
    """Partial update of descriptive fields; ``parent_id`` may be reassigned."""
    _require_object(data)
    tracker = get_tracker(tracker_id)
    fields = _clean_text_fields(data)

    if "name" in fields:
        if is_blank(fields["name"]):
            raise ValidationError("name cannot be blank", details={"name": "required"})
        fields["name"] = fields["name"].strip()
    if "parent_id" in data:
        tracker.parent_id = _resolve_parent(data["parent_id"], tracker_id=tracker.id)

    for field, value in fields.items():
        setattr(tracker, field, value)

    write_activity("UPDATE", f"Updated tracker '{tracker.name}'")
    db.session.commit()
    return tracker


def delete_tracker(tracker_id: int) -> None:
    """Delete a tracker together with its child items, headers and rows."""
    tracker = get_tracker(tracker_id)
    name, child_count = tracker.name, len(tracker.items)
    db.session.delete(tracker)
    write_activity("DELETE", f"Deleted tracker '{name}' ({child_count} child items)")
    db.session.commit()
    logger.info("Tracker deleted: id=%s children=%d", tracker_id, child_count)


# ═══════════════════════════════════════════════════════════════
# Headers
# ═══════════════════════════════════════════════════════════════

def list_headers(tracker_id: int) -> list[TrackerHeader]:
    return get_tracker(tracker_id).headers


def enabled_headers(tracker: Tracker) -> list[TrackerHeader]:
    return [h for h in tracker.headers if h.enabled]


def _clean_header_entry(entry, index):
    if not isinstance(entry, dict):
        raise ValidationError(f"headers[{index}] must be an object")
    missing = {f: "required" for f in ("key", "label") if is_blank(entry.get(f))}
    if missing:
        raise ValidationError(f"headers[{index}]: key and label are required", details=missing)
    order = _as_int(entry.get("order", 1), "order")
    return {
        "id": _as_id(entry.get("id"), "id"),
        "key": str(entry["key"]).strip(),
        "label": str(entry["label"]).strip(),
        "enabled": parse_bool(entry.get("enabled"), default=True),
        "order": order,
    }


def replace_headers(tracker_id: int, entries) -> list[TrackerHeader]:
    """
    Make the tracker's header set equal to ``entries``.

    Entries carrying the id of one of this tracker's headers update it,
    entries without an id are created and headers left out are deleted.
    """
    tracker = get_tracker(tracker_id)
    if not isinstance(entries, list):
        raise ValidationError("headers must be a list", details={"headers": "invalid"})

    cleaned = [_clean_header_entry(e, i) for i, e in enumerate(entries)]
    existing = {h.id: h for h in tracker.headers}
    unknown = [c["id"] for c in cleaned if c["id"] is not None and c["id"] not in existing]
    if unknown:
        raise ValidationError(
            f"Header ids {unknown} do not belong to tracker {tracker_id}",
            details={"id": "not found"},
        )

    kept = set()
    for c in cleaned:
        header_id = c.pop("id")
        if header_id is None:
            tracker.headers.append(TrackerHeader(**c))
            continue
        header = existing[header_id]
        for field, value in c.items():
            setattr(header, field, value)
        kept.add(header_id)

    for header_id, header in existing.items():
        if header_id not in kept:
            tracker.headers.remove(header)

    write_activity("UPDATE", f"Updated headers of tracker '{tracker.name}' ({len(cleaned)} columns)")
    db.session.commit()
    db.session.refresh(tracker)
    return tracker.headers


def initialize_headers(tracker_id: int) -> tuple[list[TrackerHeader], bool]:
    """Seed the default header set.  No-op when the tracker already has headers."""
    tracker = get_tracker(tracker_id)
    if tracker.headers:
        return tracker.headers, False
    for defaults in DEFAULT_HEADERS:
        tracker.headers.append(TrackerHeader(**defaults))
    write_activity("CREATE", f"Initialized default headers for tracker '{tracker.name}'")
    db.session.commit()
    db.session.refresh(tracker)
    return tracker.headers, True


# ═══════════════════════════════════════════════════════════════
# Rows
# ═══════════════════════════════════════════════════════════════

def rows_query(tracker_id: int, search: str = None):
    """Rows of one tracker; ``search`` matches the serialized ``data`` document."""
    q = TrackerRow.query.filter_by(tracker_id=tracker_id)
    if search and search.strip():
        q = q.filter(cast(TrackerRow.data, String).ilike(f"%{search.strip()}%"))
    return q.order_by(TrackerRow.id)


def get_row(tracker_id: int, row_id: int) -> TrackerRow:
    row = db.session.get(TrackerRow, row_id)
    if row is None or row.tracker_id != tracker_id:
        raise NotFoundError(resource="Row", resource_id=row_id)
    return row


def _validate_data(data):
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("data must be a JSON object", details={"data": "invalid"})
    return data


def create_row(tracker_id: int, data) -> TrackerRow:
    tracker = get_tracker(tracker_id)
    row = TrackerRow(tracker_id=tracker.id, data=dict(_validate_data(data)))
    db.session.add(row)
    db.session.flush()
    write_activity("CREATE", f"Added row {row.id} to tracker '{tracker.name}'")
    db.session.commit()
    return row


def update_row(tracker_id: int, row_id: int, data, merge: bool = False) -> TrackerRow:
    """Replace ``data``, or merge the given keys into it when ``merge`` is set."""
    tracker = get_tracker(tracker_id)
    row = get_row(tracker.id, row_id)
    data = _validate_data(data)
    # JSON columns only detect reassignment, so always store a new dict
    row.data = {**(row.data or {}), **data} if merge else dict(data)
    write_activity("UPDATE", f"Updated row {row.id} of tracker '{tracker.name}'")
    db.session.commit()
    return row


def delete_row(tracker_id: int, row_id: int) -> None:
    tracker = get_tracker(tracker_id)
    row = get_row(tracker.id, row_id)
    db.session.delete(row)
    write_activity("DELETE", f"Deleted row {row_id} from tracker '{tracker.name}'")
    db.session.commit()


# ═══════════════════════════════════════════════════════════════
# Spreadsheet round-trip
# ═══════════════════════════════════════════════════════════════

def spreadsheet_filename(tracker: Tracker, suffix: str) -> str:
    return secure_filename(f"{tracker.name}_{suffix}.xlsx") or f"tracker_{tracker.id}_{suffix}.xlsx"


def build_template(tracker_id: int) -> tuple[bytes, str]:
    """Header-row-only workbook for the tracker's enabled columns."""
    tracker = get_tracker(tracker_id)
    columns = [h.label for h in enabled_headers(tracker)]
    return build_workbook(tracker.name, columns), spreadsheet_filename(tracker, "template")


def export_rows(tracker_id: int, search: str = None) -> tuple[bytes, str]:
    """Workbook of the tracker's rows, columns in enabled-header order."""
    tracker = get_tracker(tracker_id)
    headers = enabled_headers(tracker)
    rows = rows_query(tracker.id, search).all()
    content = build_workbook(
        tracker.name,
        [h.label for h in headers],
        ([(r.data or {}).get(h.key) for h in headers] for r in rows),
    )
    write_activity("EXPORT", f"Exported {len(rows)} rows from tracker '{tracker.name}'")
    db.session.commit()
    logger.info(
        "Tracker %s export: %d rows", tracker.id, len(rows),
        extra={"resource": "trackers", "tracker_id": tracker.id, "rows_exported": len(rows)},
    )
    return content, spreadsheet_filename(tracker, "export")


def _column_key_map(tracker: Tracker) -> dict:
    """Column title (lower-cased) → header key; labels win over keys."""
    mapping = {}
    for h in tracker.headers:
        mapping.setdefault(h.key.strip().lower(), h.key)
    for h in tracker.headers:
        mapping[h.label.strip().lower()] = h.key
    return mapping


def import_rows(tracker_id: int, content: bytes) -> dict:
    """
    Insert one row per spreadsheet line.

    Column titles are mapped to header keys by label or key, falling back
    to the title itself.  Each row is inserted in its own savepoint so a bad
    line is reported without aborting the rest.

    Returns:
        {"success": int, "failed": int, "errors": [{"row": n, "error": msg}]}
    """
    tracker = get_tracker(tracker_id)
    _, records = read_workbook(content)
    key_map = _column_key_map(tracker)

    success, errors = 0, []
    for row_num, record in records:
        data = {
            key_map.get(title.lower(), title): to_json_value(value)
            for title, value in record.items()
        }
        try:
            with db.session.begin_nested():
                db.session.add(TrackerRow(tracker_id=tracker.id, data=data))
                db.session.flush()
            success += 1
        except Exception as e:
            logger.warning("Tracker %s import: row %d failed: %s", tracker.id, row_num, e)
            errors.append({"row": row_num, "error": str(e)})

    write_activity(
        "IMPORT",
        f"Imported {success} rows into tracker '{tracker.name}' ({len(errors)} failed)",
    )
    db.session.commit()
    logger.info(
        "Tracker %s import: %d success, %d failed", tracker.id, success, len(errors),
        extra={"resource": "trackers", "tracker_id": tracker.id,
               "rows_imported": success, "rows_failed": len(errors)},
    )
    return {"success": success, "failed": len(errors), "errors": errors}


# ═══════════════════════════════════════════════════════════════
# Demo data
# ═══════════════════════════════════════════════════════════════

DEMO_TRACKERS = (
    ("Incident Response", "Playbooks and post-incident reviews", (
        {"name": "Ransomware playbook review", "ownership": "SOC", "frequency": "Quarterly", "status": "Active"},
        {"name": "Tabletop exercise", "ownership": "CISO Office", "frequency": "Yearly", "status": "Planned"},
    )),
    ("Compliance", "Regulatory and certification obligations", (
        {"name": "PCI DSS", "ownership": "GRC", "reviewer": "External QSA", "frequency": "Yearly", "status": "Active"},
        {"name": "ISO 27001 surveillance audit", "ownership": "GRC", "frequency": "Yearly", "status": "Active"},
    )),
    ("Vulnerability Management", "Scanning and patch compliance", (
        {"name": "Monthly external scan", "ownership": "Security Engineering", "frequency": "Monthly", "status": "Active"},
    )),
)


def seed_demo_trackers() -> int:
    """Create the demo tracker hierarchy (with default headers) when no trackers exist."""
    if Tracker.query.count():
        return 0
    created = 0
    for name, description, items in DEMO_TRACKERS:
        root = Tracker(name=name, description=description)
        root.headers = [TrackerHeader(**defaults) for defaults in DEFAULT_HEADERS]
        for item in items:
            root.items.append(Tracker(**item))
        db.session.add(root)
        created += 1 + len(items)
    write_activity("CREATE", f"Seeded {created} demo trackers")
    db.session.commit()
    return created
