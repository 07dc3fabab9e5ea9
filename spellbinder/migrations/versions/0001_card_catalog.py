"""Card catalog: cards + oracle_texts

Revision ID: 0001_card_catalog
Revises:
Create Date: 2025-07-19

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "0001_card_catalog"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "cards",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("scryfall_id", sa.String(36), nullable=False, unique=True, index=True),
        sa.Column("oracle_id", sa.String(36), nullable=True, index=True),
        sa.Column("name", sa.String(255), nullable=False, index=True),
        sa.Column("lang", sa.String(5), nullable=False),
        sa.Column("set_code", sa.String(10), nullable=False, index=True),
        sa.Column("set_name", sa.String(255), nullable=False),
        sa.Column("collector_number", sa.String(20), nullable=False),
        sa.Column("rarity", sa.String(20), nullable=False, index=True),
        sa.Column("mana_cost", sa.String(100), nullable=False),
        sa.Column("cmc", sa.Float, nullable=False),
        sa.Column("type_line", sa.String(255), nullable=False, index=True),
        sa.Column("oracle_text", sa.Text, nullable=False),
        sa.Column("colors", sa.JSON, nullable=False),
        sa.Column("color_key", sa.String(5), nullable=False, index=True),
        sa.Column("image_uris", sa.JSON, nullable=False),
        sa.Column("image_file", sa.String(255), nullable=True),
        sa.Column("rank", sa.Integer, nullable=True, index=True),
        sa.Column("released_at", sa.Date, nullable=True),
        sa.Column("last_updated", sa.DateTime(timezone=True), nullable=True),
    )

    op.create_table(
        "oracle_texts",
        sa.Column("oracle_id", sa.String(36), primary_key=True),
        sa.Column("oracle_text", sa.Text, nullable=False, index=True),
    )


def downgrade() -> None:
    op.drop_table("oracle_texts")
    op.drop_table("cards")
