"""Inventory domain service layer."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import case, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from mfgops.domain import audit
from mfgops.domain.errors import InvalidArgumentError, NotFoundError
from mfgops.domain.inventory import db_models, ledger, schemas
from mfgops.domain.stores import service as stores_service

AUDIT_MODULE = "STORES"
INITIAL_STOCK_NOTE = "Initial stock"


@dataclass(frozen=True)
class ItemListFilters:
    store_id: uuid.UUID | None = None
    query: str | None = None
    location_id: uuid.UUID | None = None
    active: bool | None = True
    low_stock_only: bool = False
    page: int = 1
    page_size: int = 50


def _need_qty_expr():
    return case(
        (
            db_models.InventoryItem.on_hand_quantity < db_models.InventoryItem.reorder_level,
            db_models.InventoryItem.reorder_level - db_models.InventoryItem.on_hand_quantity,
        ),
        else_=0,
    )


def _is_low_stock_clause():
    return db_models.InventoryItem.on_hand_quantity <= db_models.InventoryItem.reorder_level


def _apply_item_filters(stmt, filters: ItemListFilters):
    if filters.store_id is not None:
        stmt = stmt.where(db_models.InventoryItem.store_id == filters.store_id)
    if filters.active is not None:
        stmt = stmt.where(db_models.InventoryItem.active.is_(filters.active))
    if filters.location_id is not None:
        stmt = stmt.where(db_models.InventoryItem.location_id == filters.location_id)
    if filters.query:
        search_term = f"%{filters.query}%"
        stmt = stmt.where(
            or_(
                db_models.InventoryItem.name.ilike(search_term),
                db_models.InventoryItem.sku.ilike(search_term),
            )
        )
    if filters.low_stock_only:
        stmt = stmt.where(_is_low_stock_clause())
    return stmt


# ===== Item Service Functions =====


async def list_items(
    session: AsyncSession,
    *,
    filters: ItemListFilters,
) -> tuple[list[db_models.InventoryItem], int]:
    """
    List inventory items matching a typed filter object.

    Args:
        session: Database session
        filters: Store, search, location, active and low-stock filters plus paging

    Returns:
        Tuple of (list of items, total count)
    """
    stmt = _apply_item_filters(select(db_models.InventoryItem), filters)

    count_stmt = select(func.count()).select_from(stmt.subquery())
    total = (await session.execute(count_stmt)).scalar_one()

    stmt = stmt.order_by(
        db_models.InventoryItem.name.asc(),
        db_models.InventoryItem.sku.asc(),
    )
    stmt = stmt.limit(filters.page_size).offset((filters.page - 1) * filters.page_size)

    result = await session.execute(stmt)
    return list(result.scalars().all()), total


async def get_item(
    session: AsyncSession,
    item_id: uuid.UUID,
    *,
    store_id: uuid.UUID | None = None,
) -> db_models.InventoryItem | None:
    """Get a single inventory item, optionally scoped to a store."""
    stmt = select(db_models.InventoryItem).where(db_models.InventoryItem.item_id == item_id)
    if store_id is not None:
        stmt = stmt.where(db_models.InventoryItem.store_id == store_id)
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def _ensure_location_in_store(
    session: AsyncSession,
    store_id: uuid.UUID,
    location_id: uuid.UUID | None,
) -> None:
    if location_id is None:
        return
    location = await stores_service.get_location(session, store_id, location_id)
    if location is None:
        raise InvalidArgumentError(
            detail=f"Location {location_id} does not belong to store {store_id}",
        )


async def create_item(
    session: AsyncSession,
    store_id: uuid.UUID,
    data: schemas.InventoryItemCreate,
    *,
    actor_id: str,
    actor_role: str,
) -> tuple[db_models.InventoryItem, ledger.LedgerResult | None]:
    """Create an item at zero stock and post its initial quantity as an IN entry.

    Does not commit; the caller wraps this in a unit of work so the item, the
    opening ledger row and the audit rows land together.
    """
    store = await stores_service.get_store(session, store_id)
    if store is None or not store.active:
        raise NotFoundError(detail=f"Store {store_id} not found")

    await _ensure_location_in_store(session, store_id, data.location_id)

    duplicate = await session.scalar(
        select(db_models.InventoryItem.item_id).where(
            db_models.InventoryItem.store_id == store_id,
            db_models.InventoryItem.sku == data.sku,
        )
    )
    if duplicate is not None:
        raise InvalidArgumentError(detail=f"SKU {data.sku!r} already exists in this store")

    now = datetime.now(timezone.utc)
    item = db_models.InventoryItem(
        item_id=uuid.uuid4(),
        store_id=store_id,
        location_id=data.location_id,
        sku=data.sku,
        name=data.name,
        description=data.description,
        unit_of_measure=data.unit_of_measure,
        on_hand_quantity=0,
        reorder_level=data.reorder_level,
        max_quantity=data.max_quantity,
        unit_cost_cents=data.unit_cost_cents,
        active=True,
        created_by=actor_id,
        created_at=now,
    )
    session.add(item)
    await audit.record_action(
        session,
        actor=actor_id,
        role=actor_role,
        module=AUDIT_MODULE,
        action="CREATE_ITEM",
        resource_type="inventory_item",
        resource_id=str(item.item_id),
        after=data.model_dump(exclude={"quantity"}),
        context={"store_id": store_id, "initial_quantity": data.quantity},
    )
    await session.flush()

    opening: ledger.LedgerResult | None = None
    if data.quantity > 0:
        opening = await ledger.post_entry(
            session,
            item_id=item.item_id,
            transaction_type=schemas.TransactionType.IN,
            quantity=data.quantity,
            actor_id=actor_id,
            actor_role=actor_role,
            notes=INITIAL_STOCK_NOTE,
        )
        # The conditional UPDATE bypasses the identity map.
        await session.refresh(item)
    return item, opening


async def update_item(
    session: AsyncSession,
    store_id: uuid.UUID,
    item_id: uuid.UUID,
    data: schemas.InventoryItemUpdate,
    *,
    actor_id: str,
    actor_role: str,
) -> db_models.InventoryItem | None:
    """Update item attributes. Stock is not an attribute; it only moves via the ledger."""
    item = await get_item(session, item_id, store_id=store_id)
    if not item or not item.active:
        return None

    changes = data.model_dump(exclude_unset=True)
    if "location_id" in changes:
        await _ensure_location_in_store(session, store_id, changes["location_id"])

    before = {key: getattr(item, key) for key in changes}
    for key, value in changes.items():
        if value is None and key != "location_id" and key != "description":
            continue
        setattr(item, key, value)
    item.updated_at = datetime.now(timezone.utc)

    await audit.record_action(
        session,
        actor=actor_id,
        role=actor_role,
        module=AUDIT_MODULE,
        action="UPDATE_ITEM",
        resource_type="inventory_item",
        resource_id=str(item_id),
        before=before,
        after=changes,
    )
    await session.flush()
    return item


async def deactivate_item(
    session: AsyncSession,
    store_id: uuid.UUID,
    item_id: uuid.UUID,
    *,
    actor_id: str,
    actor_role: str,
) -> bool:
    """
    Soft-delete an inventory item.

    The ledger keeps referencing the item, so rows are never removed; the item
    is flagged inactive and rejects further transactions.

    Returns:
        True if deactivated, False if not found or already inactive
    """
    item = await get_item(session, item_id, store_id=store_id)
    if not item or not item.active:
        return False

    item.active = False
    item.updated_at = datetime.now(timezone.utc)
    await audit.record_action(
        session,
        actor=actor_id,
        role=actor_role,
        module=AUDIT_MODULE,
        action="DEACTIVATE_ITEM",
        resource_type="inventory_item",
        resource_id=str(item_id),
        before={"active": True, "on_hand_quantity": item.on_hand_quantity},
        after={"active": False},
    )
    await session.flush()
    return True


# ===== Low Stock =====


async def list_low_stock_items(
    session: AsyncSession,
    *,
    store_id: uuid.UUID | None = None,
    page: int = 1,
    page_size: int = 50,
) -> tuple[list[tuple[db_models.InventoryItem, int]], int]:
    """
    List active items at or below their reorder level.

    Ordered by shortfall (largest first), then name.

    Returns:
        Tuple of (list of (item, need_qty), total count)
    """
    need_qty = _need_qty_expr()
    filters = ItemListFilters(store_id=store_id, active=True, low_stock_only=True)
    base_stmt = _apply_item_filters(select(db_models.InventoryItem), filters)

    count_stmt = select(func.count()).select_from(base_stmt.subquery())
    total = (await session.execute(count_stmt)).scalar_one()

    stmt = _apply_item_filters(
        select(db_models.InventoryItem, need_qty.label("need_qty")), filters
    )
    stmt = stmt.order_by(
        need_qty.desc(),
        db_models.InventoryItem.name.asc(),
        db_models.InventoryItem.item_id.asc(),
    )
    stmt = stmt.limit(page_size).offset((page - 1) * page_size)
    result = await session.execute(stmt)
    return [(row[0], int(row[1] or 0)) for row in result.all()], total
