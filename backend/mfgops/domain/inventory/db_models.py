from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    event,
    func,
    true,
)
from sqlalchemy.orm import Mapped, mapped_column

from mfgops.infra.db import Base, UUID_TYPE


class InventoryItem(Base):
    __tablename__ = "inventory_items"

    item_id: Mapped[uuid.UUID] = mapped_column(
        UUID_TYPE,
        primary_key=True,
        default=uuid.uuid4,
    )
    store_id: Mapped[uuid.UUID] = mapped_column(
        UUID_TYPE,
        ForeignKey("stores.store_id", ondelete="RESTRICT"),
        nullable=False,
    )
    location_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID_TYPE,
        ForeignKey("store_locations.location_id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    sku: Mapped[str] = mapped_column(String(100), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    unit_of_measure: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default="each",
        server_default="each",
    )
    # Written only by the ledger (see domain.inventory.ledger).
    on_hand_quantity: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        server_default="0",
    )
    reorder_level: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        server_default="0",
    )
    max_quantity: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        server_default="0",
    )
    unit_cost_cents: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        server_default="0",
    )
    active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        server_default=true(),
    )
    created_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        UniqueConstraint("store_id", "sku", name="uq_inventory_items_store_sku"),
        CheckConstraint("on_hand_quantity >= 0", name="ck_inventory_items_on_hand_non_negative"),
        Index("ix_inventory_items_store_active", "store_id", "active"),
        Index("ix_inventory_items_store_sku", "store_id", "sku"),
    )


class InventoryTransaction(Base):
    __tablename__ = "inventory_transactions"

    transaction_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    item_id: Mapped[uuid.UUID] = mapped_column(
        UUID_TYPE,
        ForeignKey("inventory_items.item_id", ondelete="RESTRICT"),
        nullable=False,
    )
    transaction_type: Mapped[str] = mapped_column(String(16), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    resulting_quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    reference_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    reference_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    actor_id: Mapped[str] = mapped_column(String(100), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_inventory_transactions_quantity_positive"),
        CheckConstraint(
            "resulting_quantity >= 0",
            name="ck_inventory_transactions_resulting_non_negative",
        ),
        Index("ix_inventory_transactions_item_id", "item_id", "transaction_id"),
        Index("ix_inventory_transactions_reference", "reference_type", "reference_id"),
    )


@event.listens_for(InventoryTransaction, "before_update", propagate=True)
def _prevent_ledger_updates(mapper, connection, target) -> None:  # noqa: ARG001
    raise ValueError("Inventory ledger entries are immutable")


@event.listens_for(InventoryTransaction, "before_delete", propagate=True)
def _prevent_ledger_deletes(mapper, connection, target) -> None:  # noqa: ARG001
    raise ValueError("Inventory ledger entries cannot be deleted")
