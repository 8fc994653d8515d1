"""Shared utility functions used by services and blueprints.

get_or_raise:     primary-key lookup that raises NotFoundError
parse_date:       lenient ISO / DD.MM.YYYY date parsing (None on bad input)
parse_bool:       query-string truthiness ("true", "1", "yes", "on")
require_fields:   non-blank field check that raises ValidationError
"""
import logging
from datetime import date, datetime

from infosec_tools.core.exceptions import NotFoundError, ValidationError
from infosec_tools.models import db

logger = logging.getLogger(__name__)

_TRUTHY = ("true", "1", "yes", "on")


def get_or_raise(model, pk, label=None):
    """Fetch a model instance by primary key or raise NotFoundError."""
    obj = db.session.get(model, pk)
    if obj is None:
        raise NotFoundError(resource=label or model.__name__, resource_id=pk)
    return obj


def parse_date(value):
    """Parse a date string (ISO or DD.MM.YYYY) to a date object.

    Returns None for empty/invalid input. Supports:
    - YYYY-MM-DD (ISO format)
    - YYYY-MM-DDTHH:MM:SS (datetime ISO → .date())
    - DD.MM.YYYY (European format)
    """
    if not value:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except (ValueError, TypeError):
        pass
    try:
        return datetime.fromisoformat(str(value)).date()
    except (ValueError, TypeError):
        pass
    try:
        return datetime.strptime(str(value), "%d.%m.%Y").date()
    except (ValueError, TypeError):
        return None


def parse_bool(value, default=False):
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _TRUTHY


def is_blank(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def require_fields(data: dict, fields) -> None:
    """Raise ValidationError listing every field in ``fields`` that is blank."""
    missing = {f: "required" for f in fields if is_blank(data.get(f))}
    if missing:
        raise ValidationError(
            f"{', '.join(missing)} {'is' if len(missing) == 1 else 'are'} required",
            details=missing,
        )
