"""tracker_headers_and_rows

Dynamic tables per tracker:
  - tracker_headers — column definitions (key, label, enabled, order)
  - tracker_rows    — free-form JSON records

Both cascade-delete with their tracker and are indexed on tracker_id.

Revision ID: e41b6a8f05d7
Revises: c8d2f4a61b93
Create Date: 2026-07-08 14:22:58.310776
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect as sa_inspect


# revision identifiers, used by Alembic.
revision = 'e41b6a8f05d7'
down_revision = 'c8d2f4a61b93'
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    existing = set(sa_inspect(bind).get_table_names())

    if "tracker_headers" not in existing:
        op.create_table(
            "tracker_headers",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("tracker_id", sa.Integer(), nullable=False),
            sa.Column("key", sa.String(length=100), nullable=False,
                      comment="Key inside tracker_rows.data"),
            sa.Column("label", sa.String(length=255), nullable=False),
            sa.Column("enabled", sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column("order", sa.Integer(), nullable=False, server_default="1"),
            sa.Column("created_at", sa.DateTime(), nullable=True),
            sa.Column("updated_at", sa.DateTime(), nullable=True),
            sa.ForeignKeyConstraint(["tracker_id"], ["trackers.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_tracker_headers_tracker_id", "tracker_headers", ["tracker_id"])

    if "tracker_rows" not in existing:
        op.create_table(
            "tracker_rows",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("tracker_id", sa.Integer(), nullable=False),
            sa.Column("data", sa.JSON(), nullable=False),
            sa.Column("created_at", sa.DateTime(), nullable=True),
            sa.Column("updated_at", sa.DateTime(), nullable=True),
            sa.ForeignKeyConstraint(["tracker_id"], ["trackers.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_tracker_rows_tracker_id", "tracker_rows", ["tracker_id"])


def downgrade():
    op.drop_table("tracker_rows")
    op.drop_table("tracker_headers")
