"""
Shared pytest fixtures for the InfoSec Tools test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - admin_user / readonly_user: Pre-created accounts
    - admin_headers / readonly_headers: Bearer-token headers for those accounts
"""

import io

import pytest
from openpyxl import Workbook, load_workbook
from werkzeug.security import generate_password_hash

from infosec_tools import create_app
from infosec_tools.models import db as _db
from infosec_tools.models.auth import User
from infosec_tools.services.jwt_service import generate_access_token

ADMIN_PASSWORD = "admin123"
READONLY_PASSWORD = "user123"


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    application = create_app("testing")
    return application


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
    yield
    with app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, rollback after test, recreate tables."""
    with app.app_context():
        yield
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


# ── Accounts ─────────────────────────────────────────────────────────────


def make_user(username, password, role="readonly", **kw):
    """Insert a user directly (cheap pbkdf2 hash keeps the suite fast)."""
    user = User(
        username=username,
        password_hash=generate_password_hash(password, method="pbkdf2:sha256:1000"),
        role=role,
        **kw,
    )
    _db.session.add(user)
    _db.session.commit()
    return user


def auth_headers(user):
    return {"Authorization": f"Bearer {generate_access_token(user.id, user.role)}"}


@pytest.fixture()
def admin_user():
    return make_user("admin", ADMIN_PASSWORD, role="admin", first_name="Ada", last_name="Admin")


@pytest.fixture()
def readonly_user():
    return make_user("viewer", READONLY_PASSWORD, role="readonly", first_name="Rita", last_name="Reader")


@pytest.fixture()
def admin_headers(admin_user):
    return auth_headers(admin_user)


@pytest.fixture()
def readonly_headers(readonly_user):
    return auth_headers(readonly_user)


# ── Spreadsheet helpers ──────────────────────────────────────────────────


def make_xlsx(header, *rows) -> bytes:
    wb = Workbook()
    ws = wb.active
    ws.append(list(header))
    for row in rows:
        ws.append(list(row))
    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()


def read_xlsx(content: bytes) -> list[list]:
    """All rows of the first sheet as lists of cell values."""
    wb = load_workbook(io.BytesIO(content))
    return [list(r) for r in wb.active.iter_rows(values_only=True)]


def upload(client, url, content, headers, filename="upload.xlsx"):
    return client.post(
        url,
        data={"file": (io.BytesIO(content), filename)},
        headers=headers,
        content_type="multipart/form-data",
    )
