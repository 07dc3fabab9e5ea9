"""
SQLAlchemy ORM models for persistent storage.

These tables are the converged schema. They are created and dropped by the
Alembic revisions in ``spellbinder/migrations/versions``, never by
``create_all``.
"""

from datetime import date, datetime
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from spellbinder.models.collection import CONDITIONS, DECK_SLOTS


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


def _in_clause(column: str, values: tuple[str, ...]) -> str:
    return f"{column} IN (" + ", ".join(f"'{v}'" for v in values) + ")"


class CardDB(Base):
    """
    A single printing of a card.

    Written only by the bulk card sync job; read-only for search.
    """

    __tablename__ = "cards"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    scryfall_id: Mapped[str] = mapped_column(String(36), unique=True, index=True)
    oracle_id: Mapped[str | None] = mapped_column(String(36), nullable=True, index=True)
    name: Mapped[str] = mapped_column(String(255), index=True)
    lang: Mapped[str] = mapped_column(String(5), default="en")
    set_code: Mapped[str] = mapped_column(String(10), index=True)
    set_name: Mapped[str] = mapped_column(String(255), default="")
    collector_number: Mapped[str] = mapped_column(String(20), default="")
    rarity: Mapped[str] = mapped_column(String(20), index=True)
    mana_cost: Mapped[str] = mapped_column(String(100), default="")
    cmc: Mapped[float] = mapped_column(Float, default=0.0)
    type_line: Mapped[str] = mapped_column(String(255), index=True)
    oracle_text: Mapped[str] = mapped_column(Text, default="")

    # Colors as delivered by Scryfall, plus a WUBRG-ordered scalar for filtering
    colors: Mapped[list[str]] = mapped_column(JSON, default=list)
    color_key: Mapped[str] = mapped_column(String(5), default="", index=True)

    image_uris: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict)
    image_file: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Popularity rank, lower is more popular
    rank: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)

    released_at: Mapped[date | None] = mapped_column(Date, nullable=True)
    last_updated: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    prices: Mapped[list["CardPriceDB"]] = relationship(
        back_populates="card", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<CardDB(name={self.name}, set={self.set_code}, scryfall_id={self.scryfall_id})>"


class OracleTextDB(Base):
    """Oracle text index. One row per oracle id, joined to cards by oracle id."""

    __tablename__ = "oracle_texts"

    oracle_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    oracle_text: Mapped[str] = mapped_column(Text, index=True)


class CardPriceDB(Base):
    """
    One price observation for a card.

    The newest row per card is its current price.
    """

    __tablename__ = "card_prices"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    card_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("cards.id", ondelete="CASCADE"), index=True
    )
    price_usd: Mapped[float | None] = mapped_column(Float, nullable=True, index=True)
    price_usd_foil: Mapped[float | None] = mapped_column(Float, nullable=True)
    price_eur: Mapped[float | None] = mapped_column(Float, nullable=True, index=True)
    price_tix: Mapped[float | None] = mapped_column(Float, nullable=True)
    last_updated: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), index=True
    )

    card: Mapped["CardDB"] = relationship(back_populates="prices")

    def __repr__(self) -> str:
        return f"<CardPriceDB(card_id={self.card_id}, usd={self.price_usd})>"


class CollectionEntryDB(Base):
    """
    A user's ownership record for a card.

    Only the owning user may create, update or delete it.
    """

    __tablename__ = "collections"
    __table_args__ = (
        CheckConstraint("quantity >= 1", name="ck_collections_quantity"),
        CheckConstraint(_in_clause("condition", CONDITIONS), name="ck_collections_condition"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(255), index=True)
    card_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("cards.id", ondelete="CASCADE"), index=True
    )
    quantity: Mapped[int] = mapped_column(Integer, default=1)
    condition: Mapped[str] = mapped_column(String(3), default="NM")
    foil: Mapped[bool] = mapped_column(Boolean, default=False)
    acquired_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    notes: Mapped[str] = mapped_column(String(1000), default="")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    card: Mapped["CardDB"] = relationship()

    def __repr__(self) -> str:
        return f"<CollectionEntryDB(user={self.user_id}, card_id={self.card_id}, qty={self.quantity})>"


class SyncStatusDB(Base):
    """Progress of the sync job for one data type. Unique per data type."""

    __tablename__ = "sync_status"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    data_type: Mapped[str] = mapped_column(String(20), unique=True)
    status: Mapped[str] = mapped_column(String(20))
    last_sync: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, index=True
    )
    records_processed: Mapped[int] = mapped_column(Integer, default=0)
    error_message: Mapped[str] = mapped_column(String(1000), default="")

    def __repr__(self) -> str:
        return f"<SyncStatusDB(data_type={self.data_type}, status={self.status})>"


class DeckDB(Base):
    __tablename__ = "decks"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(255), index=True)
    name: Mapped[str] = mapped_column(String(255))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    cards: Mapped[list["DeckCardDB"]] = relationship(
        back_populates="deck", cascade="all, delete-orphan"
    )


class DeckCardDB(Base):
    __tablename__ = "deck_cards"
    __table_args__ = (CheckConstraint(_in_clause("slot", DECK_SLOTS), name="ck_deck_cards_slot"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    deck_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("decks.id", ondelete="CASCADE"), index=True
    )
    card_id: Mapped[int] = mapped_column(Integer, ForeignKey("cards.id", ondelete="CASCADE"))
    collection_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("collections.id", ondelete="SET NULL"), nullable=True
    )
    slot: Mapped[str] = mapped_column(String(20), default="library")

    deck: Mapped["DeckDB"] = relationship(back_populates="cards")


# Read-only view over collections, cards and the newest price of each card.
# Kept on its own metadata so that table creation never tries to create it.
view_metadata = MetaData()

card_collection_view = Table(
    "card_collection",
    view_metadata,
    Column("id", Integer, primary_key=True),
    Column("card_id", Integer),
    Column("scryfall_id", String(36)),
    Column("name", String(255)),
    Column("oracle_text", Text),
    Column("set_code", String(10)),
    Column("set_name", String(255)),
    Column("rarity", String(20)),
    Column("mana_cost", String(100)),
    Column("type_line", String(255)),
    Column("colors", JSON),
    Column("image_uris", JSON),
    Column("image_file", String(255)),
    Column("price_usd", Float),
    Column("last_updated", DateTime(timezone=True)),
    Column("collection_user", String(255)),
    Column("collection_quantity", Integer),
    Column("collection_condition", String(3)),
    Column("collection_foil", Boolean),
    Column("collection_acquired_date", Date),
    Column("collection_notes", String(1000)),
)
