"""Store domain service layer."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from mfgops.domain import audit
from mfgops.domain.inventory.db_models import InventoryItem
from mfgops.domain.stores import db_models, schemas

AUDIT_MODULE = "STORES"


# ===== Store Service Functions =====


async def list_stores(
    session: AsyncSession,
    *,
    query: str | None = None,
    active: bool | None = True,
    page: int = 1,
    page_size: int = 50,
) -> tuple[list[db_models.Store], int]:
    """
    List stores with optional name search and pagination.

    Args:
        session: Database session
        query: Optional search on store name or location
        active: Active filter; ``None`` returns every store
        page: Page number (1-indexed)
        page_size: Number of stores per page

    Returns:
        Tuple of (list of stores, total count)
    """
    stmt = select(db_models.Store)

    if active is not None:
        stmt = stmt.where(db_models.Store.active.is_(active))

    if query:
        search_term = f"%{query}%"
        stmt = stmt.where(
            db_models.Store.name.ilike(search_term) | db_models.Store.location.ilike(search_term)
        )

    count_stmt = select(func.count()).select_from(stmt.subquery())
    total = (await session.execute(count_stmt)).scalar_one()

    stmt = stmt.order_by(db_models.Store.name.asc(), db_models.Store.store_id.asc())
    stmt = stmt.limit(page_size).offset((page - 1) * page_size)

    result = await session.execute(stmt)
    return list(result.scalars().all()), total


async def get_store(
    session: AsyncSession,
    store_id: uuid.UUID,
    *,
    with_locations: bool = False,
) -> db_models.Store | None:
    """Get a single store by ID."""
    stmt = select(db_models.Store).where(db_models.Store.store_id == store_id)
    if with_locations:
        stmt = stmt.options(selectinload(db_models.Store.locations))
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def create_store(
    session: AsyncSession,
    data: schemas.StoreCreate,
    *,
    actor_id: str,
    actor_role: str,
) -> db_models.Store:
    """Create a store and record it in the audit log."""
    store = db_models.Store(
        store_id=uuid.uuid4(),
        name=data.name,
        location=data.location,
        capacity_units=data.capacity_units,
        description=data.description,
        active=True,
        created_by=actor_id,
        created_at=datetime.now(timezone.utc),
    )
    session.add(store)
    await audit.record_action(
        session,
        actor=actor_id,
        role=actor_role,
        module=AUDIT_MODULE,
        action="CREATE_STORE",
        resource_type="store",
        resource_id=str(store.store_id),
        after=data.model_dump(),
    )
    await session.flush()
    return store


async def update_store(
    session: AsyncSession,
    store_id: uuid.UUID,
    data: schemas.StoreUpdate,
    *,
    actor_id: str,
    actor_role: str,
) -> db_models.Store | None:
    """Update store attributes; returns None when the store does not exist."""
    store = await get_store(session, store_id)
    if not store:
        return None

    changes = data.model_dump(exclude_unset=True)
    before = {key: getattr(store, key) for key in changes}
    for key, value in changes.items():
        if key == "name" and value is None:
            continue
        setattr(store, key, value)
    store.updated_at = datetime.now(timezone.utc)

    await audit.record_action(
        session,
        actor=actor_id,
        role=actor_role,
        module=AUDIT_MODULE,
        action="UPDATE_STORE",
        resource_type="store",
        resource_id=str(store_id),
        before=before,
        after=changes,
    )
    await session.flush()
    return store


async def get_store_stats(session: AsyncSession, store_id: uuid.UUID) -> schemas.StoreStats:
    """Aggregate active-item stock figures for one store."""
    stmt = select(
        func.count(InventoryItem.item_id),
        func.coalesce(
            func.sum(
                case(
                    (InventoryItem.on_hand_quantity <= InventoryItem.reorder_level, 1),
                    else_=0,
                )
            ),
            0,
        ),
        func.coalesce(
            func.sum(InventoryItem.on_hand_quantity * InventoryItem.unit_cost_cents),
            0,
        ),
    ).where(
        InventoryItem.store_id == store_id,
        InventoryItem.active.is_(True),
    )
    total_items, low_stock_items, total_value = (await session.execute(stmt)).one()
    return schemas.StoreStats(
        total_items=int(total_items or 0),
        low_stock_items=int(low_stock_items or 0),
        total_value_cents=int(total_value or 0),
    )


# ===== Location Service Functions =====


async def list_locations(
    session: AsyncSession,
    store_id: uuid.UUID,
) -> list[db_models.StoreLocation]:
    stmt = (
        select(db_models.StoreLocation)
        .where(db_models.StoreLocation.store_id == store_id)
        .order_by(
            db_models.StoreLocation.section_name.asc(),
            db_models.StoreLocation.shelf_position.asc(),
        )
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def get_location(
    session: AsyncSession,
    store_id: uuid.UUID,
    location_id: uuid.UUID,
) -> db_models.StoreLocation | None:
    stmt = select(db_models.StoreLocation).where(
        db_models.StoreLocation.store_id == store_id,
        db_models.StoreLocation.location_id == location_id,
    )
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def create_location(
    session: AsyncSession,
    store_id: uuid.UUID,
    data: schemas.StoreLocationCreate,
    *,
    actor_id: str,
    actor_role: str,
) -> db_models.StoreLocation | None:
    """Create a location in a store; returns None when the store does not exist."""
    store = await get_store(session, store_id)
    if not store:
        return None

    location = db_models.StoreLocation(
        location_id=uuid.uuid4(),
        store_id=store_id,
        section_name=data.section_name,
        shelf_position=data.shelf_position,
        capacity=data.capacity,
        created_at=datetime.now(timezone.utc),
    )
    session.add(location)
    await audit.record_action(
        session,
        actor=actor_id,
        role=actor_role,
        module=AUDIT_MODULE,
        action="CREATE_LOCATION",
        resource_type="store_location",
        resource_id=str(location.location_id),
        after={"store_id": store_id, **data.model_dump()},
    )
    await session.flush()
    return location
