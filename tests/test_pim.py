"""
Tests — PIM user and PIM server lists.

Both resources share the inventory route set; these tests cover the parts
that differ per model: required fields, exact filters, default sort,
datetime coercion and the spreadsheet layout.
"""

from datetime import datetime

from conftest import make_xlsx, read_xlsx, upload
from infosec_tools.models.inventory import PimServer, PimUser


def _pim_user(client, headers, **kw):
    payload = {"psid": "P100", "full_name": "Jane Doe", "department": "Finance"}
    payload.update(kw)
    res = client.post("/api/v1/pim-users", json=payload, headers=headers)
    assert res.status_code == 201, res.get_json()
    return res.get_json()


def _pim_server(client, headers, **kw):
    payload = {"server_ip": "10.2.0.1", "server_username": "root", "hostname": "bastion-01"}
    payload.update(kw)
    res = client.post("/api/v1/pim-servers", json=payload, headers=headers)
    assert res.status_code == 201, res.get_json()
    return res.get_json()


# ═════════════════════════════════════════════════════════════════════════════
# PIM USERS
# ═════════════════════════════════════════════════════════════════════════════

class TestPimUsers:
    def test_create_requires_psid_and_name(self, client, admin_headers):
        res = client.post("/api/v1/pim-users", json={"email": "x@example.com"}, headers=admin_headers)
        assert res.status_code == 400
        assert set(res.get_json()["details"]) == {"psid", "full_name"}

    def test_date_of_creation_parsed(self, client, admin_headers):
        data = _pim_user(client, admin_headers, date_of_creation="2024-03-01T09:30:00")
        assert data["date_of_creation"] == "2024-03-01T09:30:00"

    def test_date_of_creation_invalid(self, client, admin_headers):
        res = client.post("/api/v1/pim-users", json={
            "psid": "P1", "full_name": "A", "date_of_creation": "yesterday",
        }, headers=admin_headers)
        assert res.status_code == 400
        assert res.get_json()["details"] == {"date_of_creation": "invalid"}

    def test_default_sort_by_psid(self, client, admin_headers):
        for psid in ("P300", "P100", "P200"):
            _pim_user(client, admin_headers, psid=psid)
        data = client.get("/api/v1/pim-users", headers=admin_headers).get_json()
        assert [u["psid"] for u in data["items"]] == ["P100", "P200", "P300"]
        assert (data["sort"], data["order"]) == ("psid", "asc")

    def test_department_filter_is_exact(self, client, admin_headers):
        _pim_user(client, admin_headers, psid="P1", department="Finance")
        _pim_user(client, admin_headers, psid="P2", department="Finance Ops")
        data = client.get("/api/v1/pim-users?department=Finance", headers=admin_headers).get_json()
        assert [u["psid"] for u in data["items"]] == ["P1"]

    def test_search(self, client, admin_headers):
        _pim_user(client, admin_headers, psid="P1", full_name="Jane Doe")
        _pim_user(client, admin_headers, psid="P2", full_name="John Roe", email="jroe@example.com")
        data = client.get("/api/v1/pim-users?search=JROE", headers=admin_headers).get_json()
        assert [u["psid"] for u in data["items"]] == ["P2"]

    def test_filter_options(self, client, admin_headers):
        _pim_user(client, admin_headers, psid="P1", department="Finance", hod="Kim")
        _pim_user(client, admin_headers, psid="P2", department="IT")
        data = client.get("/api/v1/pim-users/filter-options", headers=admin_headers).get_json()
        assert data["departments"] == ["Finance", "IT"]
        assert data["hods"] == ["Kim"]
        assert data["reporting_managers"] == []

    def test_template(self, client, readonly_headers):
        res = client.get("/api/v1/pim-users/template", headers=readonly_headers)
        assert res.status_code == 200
        assert read_xlsx(res.data)[0] == [
            "PSID", "Full Name", "Mobile No", "Email", "Reporting Manager",
            "HOD", "Department", "Date of Creation",
        ]

    def test_import_with_dates(self, client, admin_headers):
        content = make_xlsx(
            ["PSID", "Full Name", "Date of Creation"],
            ["P9", "Sam Lee", datetime(2023, 5, 17, 8, 0)],
            [None, "No Psid", None],
        )
        res = upload(client, "/api/v1/pim-users/import", content, admin_headers)
        body = res.get_json()
        assert body["success"] == 1
        assert body["errors"][0]["row"] == 3
        assert PimUser.query.one().date_of_creation == datetime(2023, 5, 17, 8, 0)

    def test_clear_all(self, client, admin_headers):
        _pim_user(client, admin_headers)
        res = client.delete("/api/v1/pim-users/clear-all", headers=admin_headers)
        assert res.get_json()["deleted"] == 1
        assert PimUser.query.count() == 0


# ═════════════════════════════════════════════════════════════════════════════
# PIM SERVERS
# ═════════════════════════════════════════════════════════════════════════════

class TestPimServers:
    def test_create_requires_fields(self, client, admin_headers):
        res = client.post("/api/v1/pim-servers", json={"server_ip": "10.2.0.1"}, headers=admin_headers)
        assert res.status_code == 400
        assert set(res.get_json()["details"]) == {"server_username", "hostname"}

    def test_group_column_round_trips(self, client, admin_headers):
        created = _pim_server(client, admin_headers, group="Tier-0", connection_type="SSH")
        data = client.get(f"/api/v1/pim-servers/{created['id']}", headers=admin_headers).get_json()
        assert data["group"] == "Tier-0"
        assert data["connection_type"] == "SSH"

    def test_exact_filters(self, client, admin_headers):
        _pim_server(client, admin_headers, hostname="a", connection_type="SSH", group="Tier-0")
        _pim_server(client, admin_headers, hostname="b", connection_type="RDP", group="Tier-1")
        data = client.get("/api/v1/pim-servers?connection_type=RDP", headers=admin_headers).get_json()
        assert [s["hostname"] for s in data["items"]] == ["b"]
        data = client.get("/api/v1/pim-servers?group=Tier-0", headers=admin_headers).get_json()
        assert [s["hostname"] for s in data["items"]] == ["a"]

    def test_filter_options_keys(self, client, admin_headers):
        _pim_server(client, admin_headers, application_name="Vault", group="Tier-0", connection_type="SSH")
        data = client.get("/api/v1/pim-servers/filter-options", headers=admin_headers).get_json()
        assert data == {
            "application_names": ["Vault"],
            "groups": ["Tier-0"],
            "connection_types": ["SSH"],
        }

    def test_update_and_delete(self, client, admin_headers):
        created = _pim_server(client, admin_headers)
        res = client.put(f"/api/v1/pim-servers/{created['id']}",
                         json={"server_username": "svc_admin"}, headers=admin_headers)
        assert res.get_json()["server_username"] == "svc_admin"
        assert client.delete(f"/api/v1/pim-servers/{created['id']}", headers=admin_headers).status_code == 200
        assert client.get(f"/api/v1/pim-servers/{created['id']}", headers=admin_headers).status_code == 404

    def test_export(self, client, admin_headers):
        _pim_server(client, admin_headers, group="Tier-0")
        res = client.get("/api/v1/pim-servers/export", headers=admin_headers)
        rows = read_xlsx(res.data)
        assert rows[0][4] == "Group"
        assert rows[1][:3] == ["10.2.0.1", "root", "bastion-01"]

    def test_import(self, client, admin_headers):
        content = make_xlsx(
            ["Server IP", "Server Username", "Hostname", "Group"],
            ["10.3.0.1", "admin", "jump-01", "Tier-1"],
        )
        res = upload(client, "/api/v1/pim-servers/import", content, admin_headers)
        assert res.get_json() == {"success": 1, "failed": 0, "errors": []}
        assert PimServer.query.one().group == "Tier-1"

    def test_readonly_cannot_write(self, client, readonly_headers):
        res = client.post("/api/v1/pim-servers", json={}, headers=readonly_headers)
        assert res.status_code == 403
