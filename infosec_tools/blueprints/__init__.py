"""
InfoSec Tools
Blueprint registry helpers.
"""

from flask import current_app, request

from infosec_tools.core.exceptions import ValidationError


def page_params():
    """Read ``page`` / ``size`` query params, clamped to sane bounds."""
    default_size = current_app.config.get("DEFAULT_PAGE_SIZE", 10)
    max_size = current_app.config.get("MAX_PAGE_SIZE", 500)
    page = request.args.get("page", 1, type=int) or 1
    size = request.args.get("size", default_size, type=int) or default_size
    return max(page, 1), min(max(size, 1), max_size)


def paginate(query, serialize=None):
    """Paginate a SQLAlchemy query from ``page`` / ``size`` query params.

    Returns:
        {"items": [...], "total": int, "page": int, "size": int, "pages": int}

    A page past the last one yields an empty ``items`` list.
    """
    page, size = page_params()
    result = query.paginate(page=page, per_page=size, error_out=False)
    serialize = serialize or (lambda obj: obj.to_dict())
    return {
        "items": [serialize(obj) for obj in result.items],
        "total": result.total,
        "page": page,
        "size": size,
        "pages": result.pages,
    }


def xlsx_response(content: bytes, filename: str):
    """Binary .xlsx download response."""
    from flask import Response

    from infosec_tools.services.spreadsheet_service import XLSX_MIMETYPE

    return Response(
        content,
        mimetype=XLSX_MIMETYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


def json_body() -> dict:
    """The request's JSON object, ``{}`` when absent; any other JSON type is a 400."""
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object", details={"body": "invalid"})
    return data
