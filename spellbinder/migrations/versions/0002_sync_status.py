"""Sync status per data type

Revision ID: 0002_sync_status
Revises: 0001_card_catalog
Create Date: 2025-07-19

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "0002_sync_status"
down_revision = "0001_card_catalog"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "sync_status",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("data_type", sa.String(20), nullable=False, unique=True),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("last_sync", sa.DateTime(timezone=True), nullable=True, index=True),
        sa.Column("records_processed", sa.Integer, nullable=False),
        sa.Column("error_message", sa.String(1000), nullable=False),
    )


def downgrade() -> None:
    op.drop_table("sync_status")
