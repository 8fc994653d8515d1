"""drop_activity_log_entity_fields

The activity trail records actor, action and a free-text description only.
Drops the unused entity_type, entity_id and ip_address columns.

Uses batch mode so the revision also runs on SQLite.

Revision ID: 7b5e0d3c9a42
Revises: 3f1a9c2d7e01
Create Date: 2026-04-14 16:40:03.552917
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect as sa_inspect


# revision identifiers, used by Alembic.
revision = '7b5e0d3c9a42'
down_revision = '3f1a9c2d7e01'
branch_labels = None
depends_on = None

_DROPPED = ("entity_type", "entity_id", "ip_address")


def upgrade():
    bind = op.get_bind()
    columns = {c["name"] for c in sa_inspect(bind).get_columns("activity_logs")}
    to_drop = [c for c in _DROPPED if c in columns]
    if not to_drop:
        return
    with op.batch_alter_table("activity_logs") as batch_op:
        for column in to_drop:
            batch_op.drop_column(column)


def downgrade():
    with op.batch_alter_table("activity_logs") as batch_op:
        batch_op.add_column(sa.Column("entity_type", sa.String(length=50), nullable=True))
        batch_op.add_column(sa.Column("entity_id", sa.Integer(), nullable=True))
        batch_op.add_column(sa.Column("ip_address", sa.String(length=45), nullable=True))
