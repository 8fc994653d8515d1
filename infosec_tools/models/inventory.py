"""
InfoSec Tools
Inventory domain model — server inventory and privileged-access (PIM) lists.

Models:
    - Server:    infrastructure inventory record.
    - PimUser:   privileged-access user record.
    - PimServer: privileged-access server/account record.

Each model declares the column sets the generic inventory service works
from: required fields, search columns, filters, sortable columns and the
spreadsheet column layout.
"""

from datetime import datetime, timezone

from infosec_tools.models import db

SERVER_STATUSES = ("live", "shutdown", "new")


def _iso(value):
    return value.isoformat() if value else None


class InventoryMixin:
    """Column-set declarations consumed by ``inventory_service``."""

    LABEL = "Record"
    DISPLAY_FIELD = "id"
    REQUIRED_FIELDS: tuple = ()
    EDITABLE_FIELDS: tuple = ()
    SEARCH_FIELDS: tuple = ()
    LIKE_FILTERS: tuple = ()       # per-field case-insensitive substring filters
    EXACT_FILTERS: tuple = ()      # per-field equality filters
    DEFAULT_SORT = ("created_at", "desc")
    # (field, column title) pairs, in spreadsheet order
    SPREADSHEET_COLUMNS: tuple = ()

    @classmethod
    def sortable_fields(cls):
        return tuple(c.key for c in cls.__table__.columns)

    def to_dict(self):
        d = {}
        for col in self.__table__.columns:
            value = getattr(self, col.key)
            d[col.key] = _iso(value) if isinstance(value, datetime) else value
        return d


class Server(InventoryMixin, db.Model):
    __tablename__ = "servers"

    LABEL = "Server"
    DISPLAY_FIELD = "hostname"
    REQUIRED_FIELDS = ("ip", "hostname", "operating_system")
    EDITABLE_FIELDS = (
        "ip", "hostname", "operating_system", "server_role", "server_type",
        "application_name", "application_spoc", "application_owner",
        "platform", "location", "manufacturer", "ram", "cpu", "status",
    )
    SEARCH_FIELDS = (
        "ip", "hostname", "operating_system", "application_name",
        "application_owner", "location",
    )
    LIKE_FILTERS = (
        "ip", "hostname", "operating_system", "server_role", "server_type",
        "application_name", "application_spoc", "application_owner",
        "platform", "location", "manufacturer",
    )
    EXACT_FILTERS = ("status",)
    DEFAULT_SORT = ("updated_at", "desc")
    SPREADSHEET_COLUMNS = (
        ("ip", "IP Address"),
        ("hostname", "Hostname"),
        ("operating_system", "Operating System"),
        ("server_role", "Server Role"),
        ("server_type", "Server Type"),
        ("application_name", "Application Name"),
        ("application_spoc", "Application SPOC"),
        ("application_owner", "Application Owner"),
        ("platform", "Platform"),
        ("location", "Location"),
        ("manufacturer", "Manufacturer"),
        ("ram", "RAM"),
        ("cpu", "CPU"),
        ("status", "Status"),
    )

    id = db.Column(db.Integer, primary_key=True)
    ip = db.Column(db.String(64), nullable=False, index=True)
    hostname = db.Column(db.String(255), nullable=False, index=True)
    operating_system = db.Column(db.String(255), nullable=False)
    server_role = db.Column(db.String(255))
    server_type = db.Column(db.String(255))
    application_name = db.Column(db.String(255))
    application_spoc = db.Column(db.String(255))
    application_owner = db.Column(db.String(255))
    platform = db.Column(db.String(255))
    location = db.Column(db.String(255))
    manufacturer = db.Column(db.String(255))
    ram = db.Column(db.String(100))
    cpu = db.Column(db.String(100))
    status = db.Column(db.String(20), nullable=False, default="new")
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    def __repr__(self):
        return f"<Server {self.id}: {self.hostname} ({self.ip})>"


class PimUser(InventoryMixin, db.Model):
    __tablename__ = "pim_users"

    LABEL = "PIM user"
    DISPLAY_FIELD = "psid"
    REQUIRED_FIELDS = ("psid", "full_name")
    EDITABLE_FIELDS = (
        "psid", "full_name", "mobile_no", "email", "reporting_manager",
        "hod", "department", "date_of_creation",
    )
    SEARCH_FIELDS = ("psid", "full_name", "email", "department")
    EXACT_FILTERS = ("department", "reporting_manager", "hod")
    DEFAULT_SORT = ("psid", "asc")
    SPREADSHEET_COLUMNS = (
        ("psid", "PSID"),
        ("full_name", "Full Name"),
        ("mobile_no", "Mobile No"),
        ("email", "Email"),
        ("reporting_manager", "Reporting Manager"),
        ("hod", "HOD"),
        ("department", "Department"),
        ("date_of_creation", "Date of Creation"),
    )

    id = db.Column(db.Integer, primary_key=True)
    psid = db.Column(db.String(100), nullable=False, index=True)
    full_name = db.Column(db.String(255), nullable=False)
    mobile_no = db.Column(db.String(50))
    email = db.Column(db.String(255))
    reporting_manager = db.Column(db.String(255))
    hod = db.Column(db.String(255))
    department = db.Column(db.String(255))
    date_of_creation = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    def __repr__(self):
        return f"<PimUser {self.id}: {self.psid}>"


class PimServer(InventoryMixin, db.Model):
    __tablename__ = "pim_servers"

    LABEL = "PIM server"
    DISPLAY_FIELD = "hostname"
    REQUIRED_FIELDS = ("server_ip", "server_username", "hostname")
    EDITABLE_FIELDS = (
        "server_ip", "server_username", "hostname", "application_name",
        "group", "connection_type",
    )
    SEARCH_FIELDS = EDITABLE_FIELDS
    EXACT_FILTERS = ("application_name", "group", "connection_type")
    DEFAULT_SORT = ("created_at", "desc")
    SPREADSHEET_COLUMNS = (
        ("server_ip", "Server IP"),
        ("server_username", "Server Username"),
        ("hostname", "Hostname"),
        ("application_name", "Application Name"),
        ("group", "Group"),
        ("connection_type", "Connection Type"),
    )

    id = db.Column(db.Integer, primary_key=True)
    server_ip = db.Column(db.String(64), nullable=False, index=True)
    server_username = db.Column(db.String(255), nullable=False)
    hostname = db.Column(db.String(255), nullable=False)
    application_name = db.Column(db.String(255))
    group = db.Column(db.String(255))
    connection_type = db.Column(db.String(100))
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    def __repr__(self):
        return f"<PimServer {self.id}: {self.hostname}>"
