"""card_collection view: collection entries with card data and newest price

Revision ID: 0005_card_collection_view
Revises: 0004_card_prices
Create Date: 2025-08-19

"""
from alembic import op


# revision identifiers, used by Alembic.
revision = "0005_card_collection_view"
down_revision = "0004_card_prices"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.execute(
        """
        CREATE VIEW card_collection AS
        SELECT
            col.id AS id,
            c.id AS card_id,
            c.scryfall_id AS scryfall_id,
            c.name AS name,
            c.oracle_text AS oracle_text,
            c.set_code AS set_code,
            c.set_name AS set_name,
            c.rarity AS rarity,
            c.mana_cost AS mana_cost,
            c.type_line AS type_line,
            c.colors AS colors,
            c.image_uris AS image_uris,
            c.image_file AS image_file,
            cp.price_usd AS price_usd,
            c.last_updated AS last_updated,
            col.user_id AS collection_user,
            col.quantity AS collection_quantity,
            col.condition AS collection_condition,
            col.foil AS collection_foil,
            col.acquired_date AS collection_acquired_date,
            col.notes AS collection_notes
        FROM collections col
        JOIN cards c ON col.card_id = c.id
        LEFT JOIN card_prices cp ON cp.id = (
            SELECT p.id FROM card_prices p
            WHERE p.card_id = c.id
            ORDER BY p.last_updated DESC, p.id DESC
            LIMIT 1
        )
        """
    )


def downgrade() -> None:
    op.execute("DROP VIEW card_collection")
