"""initial_schema

Creates the base tables:
  - users           — accounts with role (admin | readonly) and UI theme
  - activity_logs   — audit trail (first version, with entity/IP columns)
  - servers         — server inventory
  - pim_users       — privileged-access users
  - pim_servers     — privileged-access servers
  - trackers        — self-referencing tracker hierarchy

Tables created conditionally (IF NOT EXISTS semantics) so the revision is
safe against databases that already received them via db.create_all().

Revision ID: 3f1a9c2d7e01
Revises:
Create Date: 2026-03-02 09:12:41.118204
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect as sa_inspect


# revision identifiers, used by Alembic.
revision = '3f1a9c2d7e01'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
    ]


def upgrade():
    bind = op.get_bind()
    existing = set(sa_inspect(bind).get_table_names())

    # ── Users ─────────────────────────────────────────────────────────────
    if "users" not in existing:
        op.create_table(
            "users",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("username", sa.String(length=100), nullable=False),
            sa.Column("password_hash", sa.String(length=256), nullable=False),
            sa.Column("role", sa.String(length=20), nullable=False, server_default="readonly"),
            sa.Column("first_name", sa.String(length=100), nullable=True),
            sa.Column("last_name", sa.String(length=100), nullable=True),
            sa.Column("email", sa.String(length=200), nullable=True),
            sa.Column("ui_theme", sa.String(length=10), nullable=False, server_default="light"),
            sa.Column("last_login_at", sa.DateTime(), nullable=True),
            *_timestamps(),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_users_username", "users", ["username"], unique=True)

    # ── Activity logs ─────────────────────────────────────────────────────
    if "activity_logs" not in existing:
        op.create_table(
            "activity_logs",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("user_id", sa.Integer(), nullable=True),
            sa.Column("action", sa.String(length=50), nullable=False),
            sa.Column("entity_type", sa.String(length=50), nullable=True),
            sa.Column("entity_id", sa.Integer(), nullable=True),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("ip_address", sa.String(length=45), nullable=True),
            sa.Column("timestamp", sa.DateTime(), nullable=False),
            sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="SET NULL"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("idx_activity_user", "activity_logs", ["user_id"])
        op.create_index("idx_activity_action", "activity_logs", ["action"])
        op.create_index("idx_activity_ts", "activity_logs", ["timestamp"])

    # ── Servers ───────────────────────────────────────────────────────────
    if "servers" not in existing:
        op.create_table(
            "servers",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("ip", sa.String(length=64), nullable=False),
            sa.Column("hostname", sa.String(length=255), nullable=False),
            sa.Column("operating_system", sa.String(length=255), nullable=False),
            sa.Column("server_role", sa.String(length=255), nullable=True),
            sa.Column("server_type", sa.String(length=255), nullable=True),
            sa.Column("application_name", sa.String(length=255), nullable=True),
            sa.Column("application_spoc", sa.String(length=255), nullable=True),
            sa.Column("application_owner", sa.String(length=255), nullable=True),
            sa.Column("platform", sa.String(length=255), nullable=True),
            sa.Column("location", sa.String(length=255), nullable=True),
            sa.Column("manufacturer", sa.String(length=255), nullable=True),
            sa.Column("ram", sa.String(length=100), nullable=True),
            sa.Column("cpu", sa.String(length=100), nullable=True),
            sa.Column("status", sa.String(length=20), nullable=False, server_default="new",
                      comment="live | shutdown | new"),
            *_timestamps(),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_servers_ip", "servers", ["ip"])
        op.create_index("ix_servers_hostname", "servers", ["hostname"])

    # ── PIM users ─────────────────────────────────────────────────────────
    if "pim_users" not in existing:
        op.create_table(
            "pim_users",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("psid", sa.String(length=100), nullable=False),
            sa.Column("full_name", sa.String(length=255), nullable=False),
            sa.Column("mobile_no", sa.String(length=50), nullable=True),
            sa.Column("email", sa.String(length=255), nullable=True),
            sa.Column("reporting_manager", sa.String(length=255), nullable=True),
            sa.Column("hod", sa.String(length=255), nullable=True),
            sa.Column("department", sa.String(length=255), nullable=True),
            sa.Column("date_of_creation", sa.DateTime(), nullable=True),
            *_timestamps(),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_pim_users_psid", "pim_users", ["psid"])

    # ── PIM servers ───────────────────────────────────────────────────────
    if "pim_servers" not in existing:
        op.create_table(
            "pim_servers",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("server_ip", sa.String(length=64), nullable=False),
            sa.Column("server_username", sa.String(length=255), nullable=False),
            sa.Column("hostname", sa.String(length=255), nullable=False),
            sa.Column("application_name", sa.String(length=255), nullable=True),
            sa.Column("group", sa.String(length=255), nullable=True),
            sa.Column("connection_type", sa.String(length=100), nullable=True),
            *_timestamps(),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_pim_servers_server_ip", "pim_servers", ["server_ip"])

    # ── Trackers ──────────────────────────────────────────────────────────
    # name stays nullable here; c8d2f4a61b93 backfills and tightens it
    if "trackers" not in existing:
        op.create_table(
            "trackers",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("name", sa.String(length=255), nullable=True),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("parent_id", sa.Integer(), nullable=True,
                      comment="NULL = root tracker, otherwise child item"),
            sa.Column("tracker_link", sa.String(length=500), nullable=True),
            sa.Column("ownership", sa.String(length=255), nullable=True),
            sa.Column("reviewer", sa.String(length=255), nullable=True),
            sa.Column("frequency", sa.String(length=100), nullable=True),
            sa.Column("status", sa.String(length=100), nullable=True),
            sa.Column("remarks", sa.Text(), nullable=True),
            sa.Column("timelines", sa.String(length=255), nullable=True),
            *_timestamps(),
            sa.ForeignKeyConstraint(["parent_id"], ["trackers.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_trackers_parent_id", "trackers", ["parent_id"])


def downgrade():
    for table in ("trackers", "pim_servers", "pim_users", "servers", "activity_logs", "users"):
        op.drop_table(table)
