"""Mirrored Notion rows, one table per source database."""

from __future__ import annotations

from sqlalchemy import Boolean, Float, Index, Text
from sqlalchemy.orm import Mapped, mapped_column

from pops.models.base import Base


class Entity(Base):
    """Counterparty (merchant, employer, person)."""

    __tablename__ = "entities"

    notion_id: Mapped[str] = mapped_column(Text, primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[str | None] = mapped_column(Text, nullable=True)
    abn: Mapped[str | None] = mapped_column(Text, nullable=True)
    aliases: Mapped[str | None] = mapped_column(Text, nullable=True)
    default_transaction_type: Mapped[str | None] = mapped_column(Text, nullable=True)
    default_category: Mapped[str | None] = mapped_column(Text, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    last_edited_time: Mapped[str] = mapped_column(Text, nullable=False)

    __table_args__ = (Index("idx_entities_name", "name"),)


class Transaction(Base):
    """Balance sheet line. ``entity_name`` is denormalized from ``entities``."""

    __tablename__ = "transactions"

    notion_id: Mapped[str] = mapped_column(Text, primary_key=True)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    account: Mapped[str] = mapped_column(Text, nullable=False)
    amount: Mapped[float] = mapped_column(Float, nullable=False)
    date: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[str] = mapped_column(Text, nullable=False, default="")
    categories: Mapped[str] = mapped_column(Text, nullable=False, default="[]")
    entity_id: Mapped[str | None] = mapped_column(Text, nullable=True)
    entity_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    location: Mapped[str | None] = mapped_column(Text, nullable=True)
    country: Mapped[str | None] = mapped_column(Text, nullable=True)
    online: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    novated_lease: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    tax_return: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    related_transaction_id: Mapped[str | None] = mapped_column(Text, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    last_edited_time: Mapped[str] = mapped_column(Text, nullable=False)

    __table_args__ = (
        Index("idx_transactions_date", "date"),
        Index("idx_transactions_account", "account"),
        Index("idx_transactions_entity", "entity_id"),
        Index("idx_transactions_last_edited", "last_edited_time"),
    )


class InventoryItem(Base):
    """Home inventory item."""

    __tablename__ = "home_inventory"

    notion_id: Mapped[str] = mapped_column(Text, primary_key=True)
    item_name: Mapped[str] = mapped_column(Text, nullable=False)
    brand: Mapped[str | None] = mapped_column(Text, nullable=True)
    model: Mapped[str | None] = mapped_column(Text, nullable=True)
    item_id: Mapped[str | None] = mapped_column(Text, nullable=True)
    room: Mapped[str | None] = mapped_column(Text, nullable=True)
    location: Mapped[str | None] = mapped_column(Text, nullable=True)
    type: Mapped[str | None] = mapped_column(Text, nullable=True)
    condition: Mapped[str | None] = mapped_column(Text, nullable=True)
    in_use: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    deductible: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    purchase_date: Mapped[str | None] = mapped_column(Text, nullable=True)
    warranty_expires: Mapped[str | None] = mapped_column(Text, nullable=True)
    replacement_value: Mapped[float | None] = mapped_column(Float, nullable=True)
    resale_value: Mapped[float | None] = mapped_column(Float, nullable=True)
    purchase_transaction_id: Mapped[str | None] = mapped_column(Text, nullable=True)
    purchased_from_id: Mapped[str | None] = mapped_column(Text, nullable=True)
    purchased_from_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    last_edited_time: Mapped[str] = mapped_column(Text, nullable=False)


class Budget(Base):
    """Budget line per category."""

    __tablename__ = "budgets"

    notion_id: Mapped[str] = mapped_column(Text, primary_key=True)
    category: Mapped[str] = mapped_column(Text, nullable=False)
    period: Mapped[str | None] = mapped_column(Text, nullable=True)
    amount: Mapped[float | None] = mapped_column(Float, nullable=True)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    last_edited_time: Mapped[str] = mapped_column(Text, nullable=False)

    __table_args__ = (Index("idx_budgets_category", "category"),)


class WishListItem(Base):
    """Savings goal."""

    __tablename__ = "wish_list"

    notion_id: Mapped[str] = mapped_column(Text, primary_key=True)
    item: Mapped[str] = mapped_column(Text, nullable=False)
    target_amount: Mapped[float | None] = mapped_column(Float, nullable=True)
    saved: Mapped[float | None] = mapped_column(Float, nullable=True)
    priority: Mapped[str | None] = mapped_column(Text, nullable=True)
    url: Mapped[str | None] = mapped_column(Text, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    last_edited_time: Mapped[str] = mapped_column(Text, nullable=False)
