"""Inventory ledger: the single write path for on-hand stock.

Every stock change is an append-only ``InventoryTransaction`` row plus a
conditional in-place update of ``InventoryItem.on_hand_quantity``. The item's
quantity is a cached view of the ledger: replaying an item's rows in
``transaction_id`` order from zero reproduces it exactly.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from mfgops.domain import audit
from mfgops.domain.errors import (
    DomainError,
    InsufficientStockError,
    InvalidArgumentError,
    NotFoundError,
)
from mfgops.domain.inventory import db_models
from mfgops.domain.inventory.schemas import MAX_QUANTITY, TransactionType
from mfgops.infra.db import unit_of_work
from mfgops.infra.metrics import metrics

logger = logging.getLogger(__name__)

AUDIT_MODULE = "STORES"
AUDIT_ACTION = "TRANSACTION"

# ADJUST decrements like OUT; it does not set an absolute quantity.
_SIGNS: dict[TransactionType, int] = {
    TransactionType.IN: 1,
    TransactionType.RETURN: 1,
    TransactionType.OUT: -1,
    TransactionType.ADJUST: -1,
}


@dataclass(frozen=True)
class LedgerResult:
    new_quantity: int
    transaction_id: int
    previous_quantity: int


@dataclass(frozen=True)
class LedgerReplay:
    item_id: uuid.UUID
    entries: int
    replayed_quantity: int
    on_hand_quantity: int
    first_mismatch_transaction_id: int | None = None

    @property
    def consistent(self) -> bool:
        return (
            self.first_mismatch_transaction_id is None
            and self.replayed_quantity == self.on_hand_quantity
        )


def parse_transaction_type(value: str | TransactionType) -> TransactionType:
    if isinstance(value, TransactionType):
        return value
    try:
        return TransactionType(str(value).strip().upper())
    except ValueError:
        allowed = ", ".join(kind.value for kind in TransactionType)
        raise InvalidArgumentError(
            detail=f"Invalid transaction type {value!r}; expected one of {allowed}",
        ) from None


def validate_quantity(quantity: object) -> int:
    # bool is an int subclass; True must not count as a quantity of 1.
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise InvalidArgumentError(detail="Quantity must be a positive integer")
    if quantity <= 0:
        raise InvalidArgumentError(detail="Quantity must be a positive integer")
    if quantity > MAX_QUANTITY:
        raise InvalidArgumentError(detail=f"Quantity must not exceed {MAX_QUANTITY}")
    return quantity


def signed_delta(transaction_type: TransactionType, quantity: int) -> int:
    return _SIGNS[transaction_type] * quantity


def _normalize_text(value: str | None) -> str | None:
    if value is None:
        return None
    trimmed = str(value).strip()
    return trimmed or None


async def post_entry(
    session: AsyncSession,
    *,
    item_id: uuid.UUID,
    transaction_type: str | TransactionType,
    quantity: int,
    actor_id: str,
    actor_role: str = "system",
    reference_type: str | None = None,
    reference_id: str | None = None,
    notes: str | None = None,
) -> LedgerResult:
    """Apply one ledger entry inside the caller's transaction without committing.

    The caller owns the unit of work: on any exception raised here it must roll
    back, which discards the quantity update together with the ledger and audit
    rows.
    """
    kind = parse_transaction_type(transaction_type)
    qty = validate_quantity(quantity)
    delta = signed_delta(kind, qty)

    # One conditional statement reads, checks and writes the quantity. The row
    # lock it takes serializes concurrent writers to the same item, so two
    # callers can never both start from the same stale quantity.
    stmt = (
        update(db_models.InventoryItem)
        .where(
            db_models.InventoryItem.item_id == item_id,
            db_models.InventoryItem.active.is_(True),
            db_models.InventoryItem.on_hand_quantity + delta >= 0,
            db_models.InventoryItem.on_hand_quantity + delta <= MAX_QUANTITY,
        )
        .values(
            on_hand_quantity=db_models.InventoryItem.on_hand_quantity + delta,
            updated_at=datetime.now(timezone.utc),
        )
        .returning(db_models.InventoryItem.on_hand_quantity)
        .execution_options(synchronize_session=False)
    )
    row = (await session.execute(stmt)).first()
    if row is None:
        await _raise_rejection(session, item_id=item_id, kind=kind, quantity=qty, delta=delta)

    new_quantity = int(row[0])
    previous_quantity = new_quantity - delta

    entry = db_models.InventoryTransaction(
        item_id=item_id,
        transaction_type=kind.value,
        quantity=qty,
        resulting_quantity=new_quantity,
        reference_type=_normalize_text(reference_type),
        reference_id=_normalize_text(reference_id),
        notes=_normalize_text(notes),
        actor_id=actor_id,
        created_at=datetime.now(timezone.utc),
    )
    session.add(entry)
    await audit.record_action(
        session,
        actor=actor_id,
        role=actor_role,
        module=AUDIT_MODULE,
        action=AUDIT_ACTION,
        resource_type="inventory_item",
        resource_id=str(item_id),
        before={"on_hand_quantity": previous_quantity},
        after={"on_hand_quantity": new_quantity},
        context={
            "transaction_type": kind.value,
            "quantity": qty,
            "reference_type": entry.reference_type,
            "reference_id": entry.reference_id,
        },
    )
    await session.flush()

    return LedgerResult(
        new_quantity=new_quantity,
        transaction_id=entry.transaction_id,
        previous_quantity=previous_quantity,
    )


async def _raise_rejection(
    session: AsyncSession,
    *,
    item_id: uuid.UUID,
    kind: TransactionType,
    quantity: int,
    delta: int,
) -> None:
    current = await session.execute(
        select(
            db_models.InventoryItem.on_hand_quantity,
            db_models.InventoryItem.active,
        ).where(db_models.InventoryItem.item_id == item_id)
    )
    found = current.first()
    if found is None or not found.active:
        raise NotFoundError(detail=f"Inventory item {item_id} not found")
    if found.on_hand_quantity + delta > MAX_QUANTITY:
        raise InvalidArgumentError(
            detail=(
                f"{kind.value} of {quantity} would take item {item_id} above "
                f"{MAX_QUANTITY} (on hand {found.on_hand_quantity})"
            ),
        )
    raise InsufficientStockError(
        detail=(
            f"Insufficient stock: {kind.value} of {quantity} would take item {item_id} "
            f"below zero (on hand {found.on_hand_quantity})"
        ),
    )


async def apply_transaction(
    session: AsyncSession,
    *,
    item_id: uuid.UUID,
    transaction_type: str | TransactionType,
    quantity: int,
    actor_id: str,
    actor_role: str = "system",
    reference_type: str | None = None,
    reference_id: str | None = None,
    notes: str | None = None,
) -> LedgerResult:
    """Apply a stock transaction as its own unit of work and commit it.

    Raises NotFoundError, InvalidArgumentError, InsufficientStockError or
    StorageError. On any of them nothing is written.
    """
    kind_label = str(getattr(transaction_type, "value", transaction_type))
    try:
        async with unit_of_work(session):
            result = await post_entry(
                session,
                item_id=item_id,
                transaction_type=transaction_type,
                quantity=quantity,
                actor_id=actor_id,
                actor_role=actor_role,
                reference_type=reference_type,
                reference_id=reference_id,
                notes=notes,
            )
    except DomainError as exc:
        metrics.record_ledger_transaction(kind_label, exc.kind)
        logger.info(
            "inventory_transaction_rejected",
            extra={
                "extra": {
                    "item_id": str(item_id),
                    "transaction_type": kind_label,
                    "quantity": quantity,
                    "reason": exc.kind,
                    "actor": actor_id,
                }
            },
        )
        raise

    metrics.record_ledger_transaction(kind_label, "applied")
    logger.info(
        "inventory_transaction_applied",
        extra={
            "extra": {
                "item_id": str(item_id),
                "transaction_id": result.transaction_id,
                "transaction_type": kind_label,
                "quantity": quantity,
                "previous_quantity": result.previous_quantity,
                "new_quantity": result.new_quantity,
                "actor": actor_id,
            }
        },
    )
    return result


async def list_transactions(
    session: AsyncSession,
    item_id: uuid.UUID,
    *,
    page: int = 1,
    page_size: int = 50,
) -> tuple[list[db_models.InventoryTransaction], int]:
    """List an item's ledger rows, newest first."""
    stmt = select(db_models.InventoryTransaction).where(
        db_models.InventoryTransaction.item_id == item_id
    )

    count_stmt = select(func.count()).select_from(stmt.subquery())
    total = (await session.execute(count_stmt)).scalar_one()

    stmt = stmt.order_by(db_models.InventoryTransaction.transaction_id.desc())
    stmt = stmt.limit(page_size).offset((page - 1) * page_size)
    result = await session.execute(stmt)
    return list(result.scalars().all()), total


async def replay_ledger(session: AsyncSession, item_id: uuid.UUID) -> LedgerReplay:
    """Rebuild an item's quantity from its ledger and compare with the cached value."""
    on_hand = await session.scalar(
        select(db_models.InventoryItem.on_hand_quantity).where(
            db_models.InventoryItem.item_id == item_id
        )
    )
    if on_hand is None:
        raise NotFoundError(detail=f"Inventory item {item_id} not found")

    result = await session.execute(
        select(
            db_models.InventoryTransaction.transaction_id,
            db_models.InventoryTransaction.transaction_type,
            db_models.InventoryTransaction.quantity,
            db_models.InventoryTransaction.resulting_quantity,
        )
        .where(db_models.InventoryTransaction.item_id == item_id)
        .order_by(db_models.InventoryTransaction.transaction_id.asc())
    )

    running = 0
    entries = 0
    first_mismatch: int | None = None
    for row in result.all():
        entries += 1
        running += signed_delta(TransactionType(row.transaction_type), int(row.quantity))
        if first_mismatch is None and running != row.resulting_quantity:
            first_mismatch = row.transaction_id

    return LedgerReplay(
        item_id=item_id,
        entries=entries,
        replayed_quantity=running,
        on_hand_quantity=int(on_hand),
        first_mismatch_transaction_id=first_mismatch,
    )
