"""
Inventory Service — generic CRUD, listing, dashboard and spreadsheet
import/export for the flat inventory models (Server, PimUser, PimServer).

Every function takes the model class first; the column sets it works from
(required / search / filter / spreadsheet columns) are declared on the
model itself, see ``infosec_tools.models.inventory.InventoryMixin``.
"""

import logging
from datetime import datetime

from sqlalchemy import func, or_

from infosec_tools.core.exceptions import ValidationError
from infosec_tools.models import db
from infosec_tools.models.audit import write_activity
from infosec_tools.models.inventory import SERVER_STATUSES, Server
from infosec_tools.services.spreadsheet_service import build_workbook, read_workbook, to_json_value
from infosec_tools.utils.helpers import get_or_raise, is_blank

logger = logging.getLogger(__name__)

DASHBOARD_GROUP_FIELDS = ("application_owner", "location", "application_name", "operating_system")

SAMPLE_SERVERS = (
    {"ip": "10.10.1.11", "hostname": "web-prod-01", "operating_system": "Ubuntu 22.04",
     "server_role": "Web", "server_type": "Virtual", "application_name": "Customer Portal",
     "application_owner": "Digital Channels", "platform": "VMware", "location": "DC-East",
     "manufacturer": "Dell", "ram": "16 GB", "cpu": "8 vCPU", "status": "live"},
    {"ip": "10.10.1.12", "hostname": "web-prod-02", "operating_system": "Ubuntu 22.04",
     "server_role": "Web", "server_type": "Virtual", "application_name": "Customer Portal",
     "application_owner": "Digital Channels", "platform": "VMware", "location": "DC-West",
     "manufacturer": "Dell", "ram": "16 GB", "cpu": "8 vCPU", "status": "live"},
    {"ip": "10.10.2.21", "hostname": "db-core-01", "operating_system": "RHEL 8",
     "server_role": "Database", "server_type": "Physical", "application_name": "Core Banking",
     "application_owner": "Core Systems", "platform": "Bare metal", "location": "DC-East",
     "manufacturer": "HPE", "ram": "256 GB", "cpu": "64 cores", "status": "live"},
    {"ip": "10.10.3.31", "hostname": "app-hr-01", "operating_system": "Windows Server 2019",
     "server_role": "Application", "server_type": "Virtual", "application_name": "HR Suite",
     "application_owner": "Human Resources", "platform": "Hyper-V", "location": "DC-West",
     "manufacturer": "Lenovo", "ram": "32 GB", "cpu": "16 vCPU", "status": "shutdown"},
    {"ip": "10.10.4.41", "hostname": "siem-collector-01", "operating_system": "Rocky Linux 9",
     "server_role": "Monitoring", "server_type": "Virtual", "application_name": "SIEM",
     "application_owner": "Information Security", "platform": "VMware", "location": "DC-East",
     "manufacturer": "Dell", "ram": "64 GB", "cpu": "16 vCPU", "status": "new"},
)


# ── Field coercion ───────────────────────────────────────────────────────────

def _is_datetime_column(model, field):
    return isinstance(model.__table__.columns[field].type, db.DateTime)


def _coerce(model, field, value):
    if value is None:
        return None
    if _is_datetime_column(model, field):
        if isinstance(value, datetime):
            return value
        try:
            return datetime.fromisoformat(str(value).strip())
        except ValueError:
            raise ValidationError(f"{field} must be an ISO date/time", details={field: "invalid"})
    value = to_json_value(value)
    if isinstance(value, str):
        return value.strip() or None
    return str(value)


def _clean_fields(model, data: dict, partial=False) -> dict:
    """Keep editable fields only, coerce them and run model-level checks."""
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")

    fields = {
        f: _coerce(model, f, data[f])
        for f in model.EDITABLE_FIELDS
        if f in data
    }

    required = [f for f in model.REQUIRED_FIELDS if f in fields] if partial else model.REQUIRED_FIELDS
    missing = {f: "required" for f in required if is_blank(fields.get(f))}
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}", details=missing)

    if "status" in fields and model is Server:
        status = (fields["status"] or "new").lower()
        if status not in SERVER_STATUSES:
            raise ValidationError(
                f"status must be one of: {', '.join(SERVER_STATUSES)}", details={"status": "invalid"},
            )
        fields["status"] = status
    return fields


def _describe(record) -> str:
    return f"{record.LABEL} '{getattr(record, record.DISPLAY_FIELD)}'"


# ═══════════════════════════════════════════════════════════════
# Listing
# ═══════════════════════════════════════════════════════════════

def resolve_sort(model, sort=None, order=None) -> tuple[str, str]:
    """Whitelist the sort column/direction, falling back to the model default."""
    default_field, default_order = model.DEFAULT_SORT
    field = sort if sort in model.sortable_fields() else default_field
    direction = str(order).lower() if order else default_order
    if direction not in ("asc", "desc"):
        direction = default_order
    return field, direction


def list_query(model, search=None, filters=None, sort=None, order=None):
    """
    Build the list query for ``model``.

    ``search`` matches any SEARCH_FIELDS column case-insensitively;
    ``filters`` is a {field: value} dict applied as substring filters for
    LIKE_FILTERS and equality filters for EXACT_FILTERS.
    """
    q = model.query
    if search and search.strip():
        term = f"%{search.strip()}%"
        q = q.filter(or_(*[getattr(model, f).ilike(term) for f in model.SEARCH_FIELDS]))

    for field, value in (filters or {}).items():
        if is_blank(value):
            continue
        col = getattr(model, field)
        if field in model.EXACT_FILTERS:
            q = q.filter(col == value)
        elif field in model.LIKE_FILTERS:
            q = q.filter(col.ilike(f"%{value.strip()}%"))

    field, direction = resolve_sort(model, sort, order)
    col = getattr(model, field)
    return q.order_by(col.desc() if direction == "desc" else col.asc(), model.id)


def filter_options(model, fields=None) -> dict:
    """Sorted distinct non-empty values per column, keyed ``<field>s``."""
    allowed = model.LIKE_FILTERS + model.EXACT_FILTERS
    fields = fields or allowed
    invalid = [f for f in fields if f not in allowed]
    if invalid:
        raise ValidationError(
            f"Unsupported filter fields: {', '.join(invalid)}", details={"fields": "invalid"},
        )

    options = {}
    for field in fields:
        col = getattr(model, field)
        values = [
            v for (v,) in db.session.query(col).filter(col.isnot(None), col != "").distinct().all()
        ]
        if model is Server and field == "status":
            values = set(values) | set(SERVER_STATUSES)
        key = f"{field}es" if field.endswith("s") else f"{field}s"
        options[key] = sorted(values)
    return options


def dashboard_stats() -> dict:
    """Server totals, per-status counts and grouped counts for the dashboard."""
    status_counts = dict.fromkeys(SERVER_STATUSES, 0)
    for status, count in (
        db.session.query(Server.status, func.count(Server.id)).group_by(Server.status).all()
    ):
        status_counts[status] = count

    groups = {}
    for field in DASHBOARD_GROUP_FIELDS:
        col = getattr(Server, field)
        rows = (
            db.session.query(col, func.count(Server.id))
            .filter(col.isnot(None), col != "")
            .group_by(col)
            .order_by(func.count(Server.id).desc(), col)
            .all()
        )
        groups[field] = [{"name": name, "count": count} for name, count in rows]

    return {
        "total": sum(status_counts.values()),
        "status_counts": status_counts,
        "groups": groups,
    }


# ═══════════════════════════════════════════════════════════════
# CRUD
# ═══════════════════════════════════════════════════════════════

def get_record(model, record_id: int):
    return get_or_raise(model, record_id, model.LABEL)


def create_record(model, data: dict):
    record = model(**_clean_fields(model, data))
    db.session.add(record)
    db.session.flush()
    write_activity("CREATE", f"Created {_describe(record)}")
    db.session.commit()
    logger.info("%s created: id=%s", model.LABEL, record.id)
    return record


def update_record(model, record_id: int, data: dict):
    """Partial update; id and timestamps in the body are ignored."""
    record = get_record(model, record_id)
    for field, value in _clean_fields(model, data, partial=True).items():
        setattr(record, field, value)
    write_activity("UPDATE", f"Updated {_describe(record)}")
    db.session.commit()
    return record


def delete_record(model, record_id: int) -> None:
    record = get_record(model, record_id)
    description = _describe(record)
    db.session.delete(record)
    write_activity("DELETE", f"Deleted {description}")
    db.session.commit()


def clear_all(model) -> int:
    count = model.query.delete(synchronize_session=False)
    write_activity("CLEAR_ALL", f"Deleted all {count} {model.LABEL} records")
    db.session.commit()
    logger.warning("%s table cleared: %d records removed", model.LABEL, count)
    return count


def seed_servers() -> int:
    """Insert the sample servers when the inventory is empty."""
    if Server.query.count():
        return 0
    for sample in SAMPLE_SERVERS:
        db.session.add(Server(**sample))
    write_activity("CREATE", f"Seeded {len(SAMPLE_SERVERS)} sample servers")
    db.session.commit()
    return len(SAMPLE_SERVERS)


# ═══════════════════════════════════════════════════════════════
# Spreadsheets
# ═══════════════════════════════════════════════════════════════

def build_template(model) -> bytes:
    return build_workbook(model.LABEL.title(), [label for _, label in model.SPREADSHEET_COLUMNS])


def export_records(model, **list_params) -> bytes:
    records = list_query(model, **list_params).all()
    content = build_workbook(
        model.LABEL.title(),
        [label for _, label in model.SPREADSHEET_COLUMNS],
        ([getattr(r, field) for field, _ in model.SPREADSHEET_COLUMNS] for r in records),
    )
    write_activity("EXPORT", f"Exported {len(records)} {model.LABEL} records")
    db.session.commit()
    logger.info(
        "%s export: %d records", model.LABEL, len(records),
        extra={"resource": model.__tablename__, "rows_exported": len(records)},
    )
    return content


def _column_field_map(model) -> dict:
    mapping = {}
    for field, label in model.SPREADSHEET_COLUMNS:
        mapping[field.lower()] = field
        mapping[label.lower()] = field
    return mapping


def import_records(model, content: bytes) -> dict:
    """
    Insert one record per spreadsheet line, each in its own savepoint.

    Returns:
        {"success": int, "failed": int, "errors": [{"row": n, "error": msg}]}
    """
    _, rows = read_workbook(content)
    field_map = _column_field_map(model)

    success, errors = 0, []
    for row_num, raw in rows:
        data = {field_map[t.lower()]: v for t, v in raw.items() if t.lower() in field_map}
        try:
            fields = _clean_fields(model, data)
            with db.session.begin_nested():
                db.session.add(model(**fields))
                db.session.flush()
            success += 1
        except ValidationError as e:
            errors.append({"row": row_num, "error": e.message})
        except Exception as e:
            logger.warning("%s import: row %d failed: %s", model.LABEL, row_num, e)
            errors.append({"row": row_num, "error": str(e)})

    write_activity("IMPORT", f"Imported {success} {model.LABEL} records ({len(errors)} failed)")
    db.session.commit()
    logger.info(
        "%s import: %d success, %d failed", model.LABEL, success, len(errors),
        extra={"resource": model.__tablename__, "rows_imported": success, "rows_failed": len(errors)},
    )
    return {"success": success, "failed": len(errors), "errors": errors}
