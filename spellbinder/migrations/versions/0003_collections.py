"""Collection entries

Revision ID: 0003_collections
Revises: 0002_sync_status
Create Date: 2025-07-20

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "0003_collections"
down_revision = "0002_sync_status"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "collections",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.String(255), nullable=False, index=True),
        sa.Column(
            "card_id",
            sa.Integer,
            sa.ForeignKey("cards.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column("quantity", sa.Integer, nullable=False),
        sa.Column("condition", sa.String(3), nullable=False),
        sa.Column("foil", sa.Boolean, nullable=False),
        sa.Column("acquired_date", sa.Date, nullable=True),
        sa.Column("notes", sa.String(1000), nullable=False),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
        sa.CheckConstraint("quantity >= 1", name="ck_collections_quantity"),
        sa.CheckConstraint(
            "condition IN ('NM', 'LP', 'MP', 'HP', 'DMG')", name="ck_collections_condition"
        ),
    )


def downgrade() -> None:
    op.drop_table("collections")
