"""
Tests — tracker hierarchy API.

Covers:
    - Root/child scenario: child appears in parent's items, never as a root
    - Root list: search, ordering by name, pagination invariant, include_items
    - Children endpoint + unknown parent
    - Create / update validation (name, parent_id, self-parent)
    - Unenforced depth (child of a child)
    - Cascade delete of children, headers and rows
    - Role checks and activity logging
"""

import pytest

from infosec_tools.models.audit import ActivityLog
from infosec_tools.models.tracker import Tracker, TrackerHeader, TrackerRow


def _create_tracker(client, headers, **kw):
    payload = {"name": "Compliance"}
    payload.update(kw)
    res = client.post("/api/v1/trackers", json=payload, headers=headers)
    assert res.status_code == 201, res.get_json()
    return res.get_json()


# ═════════════════════════════════════════════════════════════════════════════
# HIERARCHY
# ═════════════════════════════════════════════════════════════════════════════

class TestTrackerHierarchy:
    def test_root_with_child_scenario(self, client, admin_headers):
        root = _create_tracker(client, admin_headers, name="Compliance")
        child = _create_tracker(client, admin_headers, name="PCI", parent_id=root["id"])
        assert child["parent_id"] == root["id"]

        res = client.get(f"/api/v1/trackers/{root['id']}", headers=admin_headers)
        assert res.status_code == 200
        data = res.get_json()
        assert data["parent_id"] is None
        assert [i["name"] for i in data["items"]] == ["PCI"]

        assert client.delete(f"/api/v1/trackers/{root['id']}", headers=admin_headers).status_code == 200
        assert client.get(f"/api/v1/trackers/{root['id']}", headers=admin_headers).status_code == 404
        assert client.get(f"/api/v1/trackers/{child['id']}", headers=admin_headers).status_code == 404

    def test_children_never_listed_as_roots(self, client, admin_headers):
        root = _create_tracker(client, admin_headers, name="Compliance")
        _create_tracker(client, admin_headers, name="PCI", parent_id=root["id"])
        _create_tracker(client, admin_headers, name="SOX", parent_id=root["id"])

        data = client.get("/api/v1/trackers", headers=admin_headers).get_json()
        assert data["total"] == 1
        assert [t["name"] for t in data["items"]] == ["Compliance"]
        assert sorted(i["name"] for i in data["items"][0]["items"]) == ["PCI", "SOX"]

    def test_get_child_by_id(self, client, admin_headers):
        root = _create_tracker(client, admin_headers)
        child = _create_tracker(client, admin_headers, name="PCI", parent_id=root["id"], ownership="GRC")
        data = client.get(f"/api/v1/trackers/{child['id']}", headers=admin_headers).get_json()
        assert data["ownership"] == "GRC"
        assert data["items"] == []

    def test_list_children(self, client, admin_headers):
        root = _create_tracker(client, admin_headers)
        _create_tracker(client, admin_headers, name="PCI", parent_id=root["id"])
        _create_tracker(client, admin_headers, name="ISO", parent_id=root["id"])
        res = client.get(f"/api/v1/trackers/parent/{root['id']}", headers=admin_headers)
        assert res.status_code == 200
        data = res.get_json()
        assert data["total"] == 2
        assert [i["name"] for i in data["items"]] == ["PCI", "ISO"]

    def test_list_children_unknown_parent(self, client, admin_headers):
        res = client.get("/api/v1/trackers/parent/999", headers=admin_headers)
        assert res.status_code == 404

    def test_child_of_child_is_allowed(self, client, admin_headers):
        root = _create_tracker(client, admin_headers)
        child = _create_tracker(client, admin_headers, name="PCI", parent_id=root["id"])
        grandchild = _create_tracker(client, admin_headers, name="Req 1", parent_id=child["id"])
        assert grandchild["parent_id"] == child["id"]


# ═════════════════════════════════════════════════════════════════════════════
# ROOT LIST
# ═════════════════════════════════════════════════════════════════════════════

class TestTrackerList:
    def test_ordered_by_name(self, client, admin_headers):
        for name in ("Zeta", "alpha", "Mid"):
            _create_tracker(client, admin_headers, name=name)
        names = [t["name"] for t in client.get("/api/v1/trackers", headers=admin_headers).get_json()["items"]]
        assert sorted(names) == sorted(["Zeta", "alpha", "Mid"])
        assert names.index("Mid") < names.index("Zeta")

    def test_search_name_and_description(self, client, admin_headers):
        _create_tracker(client, admin_headers, name="Incident Response")
        _create_tracker(client, admin_headers, name="Audits", description="Yearly PCI incident drills")
        _create_tracker(client, admin_headers, name="Vendors")

        data = client.get("/api/v1/trackers?search=INCIDENT", headers=admin_headers).get_json()
        assert {t["name"] for t in data["items"]} == {"Incident Response", "Audits"}

    @pytest.mark.parametrize("page,size,expected", [
        (1, 2, 2),
        (2, 2, 2),
        (3, 2, 1),
        (4, 2, 0),
        (1, 10, 5),
    ])
    def test_pagination_invariant(self, client, admin_headers, page, size, expected):
        for i in range(5):
            _create_tracker(client, admin_headers, name=f"Tracker {i}")
        data = client.get(f"/api/v1/trackers?page={page}&size={size}", headers=admin_headers).get_json()
        assert len(data["items"]) == expected
        assert data["total"] == 5
        assert data["pages"] == -(-5 // size)
        assert data["page"] == page
        assert data["size"] == size

    def test_include_items_false(self, client, admin_headers):
        root = _create_tracker(client, admin_headers)
        _create_tracker(client, admin_headers, name="PCI", parent_id=root["id"])
        data = client.get("/api/v1/trackers?include_items=false", headers=admin_headers).get_json()
        assert "items" not in data["items"][0]


# ═════════════════════════════════════════════════════════════════════════════
# CREATE / UPDATE VALIDATION
# ═════════════════════════════════════════════════════════════════════════════

class TestTrackerValidation:
    def test_create_requires_name(self, client, admin_headers):
        res = client.post("/api/v1/trackers", json={"description": "no name"}, headers=admin_headers)
        assert res.status_code == 400
        assert res.get_json()["details"] == {"name": "required"}

    def test_create_blank_name(self, client, admin_headers):
        res = client.post("/api/v1/trackers", json={"name": "   "}, headers=admin_headers)
        assert res.status_code == 400

    def test_create_unknown_parent(self, client, admin_headers):
        res = client.post("/api/v1/trackers", json={"name": "Orphan", "parent_id": 12345}, headers=admin_headers)
        assert res.status_code == 400
        assert "does not exist" in res.get_json()["error"]

    def test_create_non_integer_parent(self, client, admin_headers):
        res = client.post("/api/v1/trackers", json={"name": "Orphan", "parent_id": "abc"}, headers=admin_headers)
        assert res.status_code == 400

    @pytest.mark.parametrize("parent_id", [True, 1.5, [1]])
    def test_create_parent_must_be_integer(self, client, admin_headers, parent_id):
        res = client.post("/api/v1/trackers", json={"name": "Orphan", "parent_id": parent_id}, headers=admin_headers)
        assert res.status_code == 400
        assert res.get_json()["details"] == {"parent_id": "invalid"}

    @pytest.mark.parametrize("body", [[{"name": "x"}], "Compliance", 42])
    def test_create_body_must_be_object(self, client, admin_headers, body):
        res = client.post("/api/v1/trackers", json=body, headers=admin_headers)
        assert res.status_code == 400
        assert res.get_json()["error"] == "Request body must be a JSON object"
        assert Tracker.query.count() == 0

    def test_update_body_must_be_object(self, client, admin_headers):
        root = _create_tracker(client, admin_headers)
        res = client.put(f"/api/v1/trackers/{root['id']}", json=["Active"], headers=admin_headers)
        assert res.status_code == 400

    @pytest.mark.parametrize("field,value", [
        ("description", {"a": 1}),
        ("status", ["Open"]),
        ("ownership", True),
    ])
    def test_create_rejects_structured_field_values(self, client, admin_headers, field, value):
        res = client.post("/api/v1/trackers", json={"name": "Compliance", field: value}, headers=admin_headers)
        assert res.status_code == 400
        assert res.get_json()["details"] == {field: "invalid"}
        assert Tracker.query.count() == 0

    def test_numeric_field_values_stored_as_text(self, client, admin_headers):
        root = _create_tracker(client, admin_headers, status=3, frequency=1.5)
        assert root["status"] == "3"
        assert root["frequency"] == "1.5"

    def test_create_name_too_long(self, client, admin_headers):
        res = client.post("/api/v1/trackers", json={"name": "n" * 256}, headers=admin_headers)
        assert res.status_code == 400
        assert res.get_json()["details"] == {"name": "too long"}

    def test_update_rejects_structured_field_value(self, client, admin_headers):
        root = _create_tracker(client, admin_headers, remarks="Kept")
        res = client.put(f"/api/v1/trackers/{root['id']}", json={"remarks": {"x": 1}}, headers=admin_headers)
        assert res.status_code == 400
        assert client.get(f"/api/v1/trackers/{root['id']}", headers=admin_headers).get_json()["remarks"] == "Kept"

    def test_update_rejects_parent_cycle(self, client, admin_headers):
        a = _create_tracker(client, admin_headers, name="A")
        b = _create_tracker(client, admin_headers, name="B", parent_id=a["id"])
        c = _create_tracker(client, admin_headers, name="C", parent_id=b["id"])

        for descendant in (b, c):
            res = client.put(f"/api/v1/trackers/{a['id']}", json={"parent_id": descendant["id"]},
                             headers=admin_headers)
            assert res.status_code == 400
            assert res.get_json()["details"] == {"parent_id": "cycle"}

        roots = client.get("/api/v1/trackers", headers=admin_headers).get_json()["items"]
        assert [t["name"] for t in roots] == ["A"]
        assert client.delete(f"/api/v1/trackers/{a['id']}", headers=admin_headers).status_code == 200
        assert Tracker.query.count() == 0

    def test_move_under_unrelated_item_allowed(self, client, admin_headers):
        a = _create_tracker(client, admin_headers, name="A")
        b = _create_tracker(client, admin_headers, name="B")
        item = _create_tracker(client, admin_headers, name="Item", parent_id=b["id"])
        res = client.put(f"/api/v1/trackers/{a['id']}", json={"parent_id": item["id"]}, headers=admin_headers)
        assert res.status_code == 200
        assert res.get_json()["parent_id"] == item["id"]

    def test_partial_update(self, client, admin_headers):
        root = _create_tracker(client, admin_headers, description="Original")
        res = client.put(f"/api/v1/trackers/{root['id']}", json={"status": "Active"}, headers=admin_headers)
        assert res.status_code == 200
        data = res.get_json()
        assert data["status"] == "Active"
        assert data["description"] == "Original"
        assert data["name"] == "Compliance"

    def test_update_blank_name_rejected(self, client, admin_headers):
        root = _create_tracker(client, admin_headers)
        res = client.put(f"/api/v1/trackers/{root['id']}", json={"name": ""}, headers=admin_headers)
        assert res.status_code == 400

    def test_update_self_parent_rejected(self, client, admin_headers):
        root = _create_tracker(client, admin_headers)
        res = client.put(f"/api/v1/trackers/{root['id']}", json={"parent_id": root["id"]}, headers=admin_headers)
        assert res.status_code == 400

    def test_reassign_parent(self, client, admin_headers):
        a = _create_tracker(client, admin_headers, name="A")
        b = _create_tracker(client, admin_headers, name="B")
        child = _create_tracker(client, admin_headers, name="Item", parent_id=a["id"])
        res = client.put(f"/api/v1/trackers/{child['id']}", json={"parent_id": b["id"]}, headers=admin_headers)
        assert res.status_code == 200
        assert client.get(f"/api/v1/trackers/{b['id']}", headers=admin_headers).get_json()["items"][0]["name"] == "Item"

    def test_update_unknown_tracker(self, client, admin_headers):
        res = client.put("/api/v1/trackers/999", json={"name": "x"}, headers=admin_headers)
        assert res.status_code == 404


# ═════════════════════════════════════════════════════════════════════════════
# DELETE CASCADE
# ═════════════════════════════════════════════════════════════════════════════

class TestTrackerDelete:
    def test_cascade_removes_children_headers_and_rows(self, client, admin_headers):
        root = _create_tracker(client, admin_headers)
        child = _create_tracker(client, admin_headers, name="PCI", parent_id=root["id"])
        for tid in (root["id"], child["id"]):
            client.put(f"/api/v1/trackers/{tid}/headers", json={"headers": [
                {"key": "status", "label": "Status"},
            ]}, headers=admin_headers)
            client.post(f"/api/v1/trackers/{tid}/rows", json={"data": {"status": "Open"}}, headers=admin_headers)
        assert TrackerHeader.query.count() == 2
        assert TrackerRow.query.count() == 2

        res = client.delete(f"/api/v1/trackers/{root['id']}", headers=admin_headers)
        assert res.status_code == 200
        assert Tracker.query.count() == 0
        assert TrackerHeader.query.count() == 0
        assert TrackerRow.query.count() == 0

    def test_delete_child_keeps_parent(self, client, admin_headers):
        root = _create_tracker(client, admin_headers)
        child = _create_tracker(client, admin_headers, name="PCI", parent_id=root["id"])
        client.delete(f"/api/v1/trackers/{child['id']}", headers=admin_headers)
        data = client.get(f"/api/v1/trackers/{root['id']}", headers=admin_headers).get_json()
        assert data["items"] == []

    def test_delete_unknown(self, client, admin_headers):
        assert client.delete("/api/v1/trackers/999", headers=admin_headers).status_code == 404


# ═════════════════════════════════════════════════════════════════════════════
# ROLES & AUDIT
# ═════════════════════════════════════════════════════════════════════════════

class TestTrackerAccess:
    def test_readonly_can_read(self, client, admin_headers, readonly_headers):
        root = _create_tracker(client, admin_headers)
        assert client.get("/api/v1/trackers", headers=readonly_headers).status_code == 200
        assert client.get(f"/api/v1/trackers/{root['id']}", headers=readonly_headers).status_code == 200

    def test_readonly_cannot_write(self, client, admin_headers, readonly_headers):
        root = _create_tracker(client, admin_headers)
        assert client.post("/api/v1/trackers", json={"name": "x"}, headers=readonly_headers).status_code == 403
        assert client.put(f"/api/v1/trackers/{root['id']}", json={"name": "x"},
                          headers=readonly_headers).status_code == 403
        assert client.delete(f"/api/v1/trackers/{root['id']}", headers=readonly_headers).status_code == 403

    def test_mutations_are_logged(self, client, admin_user, admin_headers):
        root = _create_tracker(client, admin_headers)
        client.put(f"/api/v1/trackers/{root['id']}", json={"status": "Active"}, headers=admin_headers)
        client.delete(f"/api/v1/trackers/{root['id']}", headers=admin_headers)
        actions = [log.action for log in ActivityLog.query.order_by(ActivityLog.id).all()]
        assert actions == ["CREATE", "UPDATE", "DELETE"]
        assert all(log.user_id == admin_user.id for log in ActivityLog.query.all())


# ═════════════════════════════════════════════════════════════════════════════
# DEMO SEED
# ═════════════════════════════════════════════════════════════════════════════

class TestDemoSeed:
    def test_seed_demo_command(self, app):
        result = app.test_cli_runner().invoke(args=["seed-demo"])
        assert result.exit_code == 0
        roots = Tracker.query.filter(Tracker.parent_id.is_(None)).all()
        assert len(roots) == 3
        assert Tracker.query.count() == 8
        assert all(len(r.headers) == 7 for r in roots)

        # second run is a no-op
        app.test_cli_runner().invoke(args=["seed-demo"])
        assert Tracker.query.count() == 8
