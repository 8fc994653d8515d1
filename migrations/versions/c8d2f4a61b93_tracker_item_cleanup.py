"""tracker_item_cleanup

Child tracker items (parent_id IS NOT NULL):
  - tracker_link becomes a root-only field: cleared on every child item
  - blank names are backfilled from the description, or 'Item'

Afterwards trackers.name is NOT NULL.

Revision ID: c8d2f4a61b93
Revises: 7b5e0d3c9a42
Create Date: 2026-05-20 11:05:27.904431
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'c8d2f4a61b93'
down_revision = '7b5e0d3c9a42'
branch_labels = None
depends_on = None


def upgrade():
    op.execute(
        "UPDATE trackers SET tracker_link = NULL WHERE parent_id IS NOT NULL"
    )
    op.execute(
        "UPDATE trackers "
        "SET name = COALESCE(NULLIF(TRIM(description), ''), 'Item') "
        "WHERE parent_id IS NOT NULL AND (name IS NULL OR TRIM(name) = '')"
    )
    # Root trackers never had blank names in practice; guard anyway so NOT NULL applies
    op.execute(
        "UPDATE trackers SET name = 'Tracker' WHERE name IS NULL OR TRIM(name) = ''"
    )
    with op.batch_alter_table("trackers") as batch_op:
        batch_op.alter_column("name", existing_type=sa.String(length=255), nullable=False)


def downgrade():
    with op.batch_alter_table("trackers") as batch_op:
        batch_op.alter_column("name", existing_type=sa.String(length=255), nullable=True)
