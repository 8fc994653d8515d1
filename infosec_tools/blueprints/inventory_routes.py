"""
Shared route set for the flat inventory resources (servers, PIM users,
PIM servers).

``register_inventory_routes(bp, Model, "/servers")`` adds:

    GET    <base>                   — List (page, size, search, sort, order, <filter fields>, include_all)
    GET    <base>/filter-options    — Distinct values per filter column (?fields=a,b)
    GET    <base>/<template_rule>   — Empty .xlsx import template
    GET    <base>/export            — .xlsx export (same filters as list)
    POST   <base>/import            — .xlsx import, multipart field "file" (admin)
    DELETE <base>/clear-all         — Delete every record (admin)
    GET    <base>/<id>              — Get one
    POST   <base>                   — Create (admin)
    PUT    <base>/<id>              — Update (admin)
    DELETE <base>/<id>              — Delete (admin)
"""

from flask import jsonify, request

from infosec_tools.auth import require_role
from infosec_tools.blueprints import json_body, paginate, xlsx_response
from infosec_tools.services import inventory_service
from infosec_tools.services.spreadsheet_service import read_upload
from infosec_tools.utils.helpers import parse_bool


def list_params(model) -> dict:
    """Search / filter / sort parameters shared by list and export."""
    filter_fields = model.LIKE_FILTERS + model.EXACT_FILTERS
    return {
        "search": request.args.get("search"),
        "filters": {f: request.args[f] for f in filter_fields if request.args.get(f)},
        "sort": request.args.get("sort"),
        "order": request.args.get("order"),
    }


def register_inventory_routes(bp, model, base, *, template_rule="template"):
    name = model.__tablename__

    def list_records():
        params = list_params(model)
        q = inventory_service.list_query(model, **params)
        if parse_bool(request.args.get("include_all")):
            items = [r.to_dict() for r in q.all()]
            body = {"items": items, "total": len(items), "page": 1, "size": len(items), "pages": 1}
        else:
            body = paginate(q)
        body["sort"], body["order"] = inventory_service.resolve_sort(model, params["sort"], params["order"])
        return jsonify(body)

    def filter_options():
        raw = request.args.get("fields", "")
        fields = [f.strip() for f in raw.split(",") if f.strip()] or None
        return jsonify(inventory_service.filter_options(model, fields))

    def template():
        return xlsx_response(inventory_service.build_template(model), f"{name}_template.xlsx")

    def export_records():
        content = inventory_service.export_records(model, **list_params(model))
        return xlsx_response(content, f"{name}_export.xlsx")

    def import_records():
        content = read_upload(request.files.get("file"))
        return jsonify(inventory_service.import_records(model, content))

    def clear_all():
        count = inventory_service.clear_all(model)
        return jsonify({"message": f"Deleted {count} records", "deleted": count})

    def get_record(record_id):
        return jsonify(inventory_service.get_record(model, record_id).to_dict())

    def create_record():
        data = json_body()
        return jsonify(inventory_service.create_record(model, data).to_dict()), 201

    def update_record(record_id):
        data = json_body()
        return jsonify(inventory_service.update_record(model, record_id, data).to_dict())

    def delete_record(record_id):
        inventory_service.delete_record(model, record_id)
        return jsonify({"message": f"{model.LABEL} deleted"})

    admin = require_role("admin")
    rules = (
        ("", "list", list_records, ["GET"]),
        ("/filter-options", "filter_options", filter_options, ["GET"]),
        (f"/{template_rule}", "template", template, ["GET"]),
        ("/export", "export", export_records, ["GET"]),
        ("/import", "import", admin(import_records), ["POST"]),
        ("/clear-all", "clear_all", admin(clear_all), ["DELETE"]),
        ("/<int:record_id>", "get", get_record, ["GET"]),
        ("", "create", admin(create_record), ["POST"]),
        ("/<int:record_id>", "update", admin(update_record), ["PUT"]),
        ("/<int:record_id>", "delete", admin(delete_record), ["DELETE"]),
    )
    for rule, endpoint, view, methods in rules:
        bp.add_url_rule(f"{base}{rule}", f"{name}_{endpoint}", view, methods=methods)
