"""Card price history

Revision ID: 0004_card_prices
Revises: 0003_collections
Create Date: 2025-07-30

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "0004_card_prices"
down_revision = "0003_collections"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "card_prices",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "card_id",
            sa.Integer,
            sa.ForeignKey("cards.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column("price_usd", sa.Float, nullable=True, index=True),
        sa.Column("price_usd_foil", sa.Float, nullable=True),
        sa.Column("price_eur", sa.Float, nullable=True, index=True),
        sa.Column("price_tix", sa.Float, nullable=True),
        sa.Column(
            "last_updated",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
            index=True,
        ),
    )


def downgrade() -> None:
    op.drop_table("card_prices")
