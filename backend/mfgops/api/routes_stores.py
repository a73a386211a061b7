"""Store endpoints: stores, locations and the inventory held in each store."""

from __future__ import annotations

import logging
import uuid

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from mfgops.api.auth import Identity, require_permission
from mfgops.api.routes_inventory import low_stock_response
from mfgops.dependencies import Pagination, get_pagination
from mfgops.domain.errors import NotFoundError
from mfgops.domain.inventory import schemas as inventory_schemas
from mfgops.domain.inventory import service as inventory_service
from mfgops.domain.stores import schemas, service
from mfgops.infra.db import get_db_session, unit_of_work

router = APIRouter(tags=["stores"])
logger = logging.getLogger(__name__)


async def _require_store(session: AsyncSession, store_id: uuid.UUID):
    store = await service.get_store(session, store_id)
    if store is None:
        raise NotFoundError(detail=f"Store {store_id} not found")
    return store


# ===== Store Endpoints =====


@router.get(
    "/v1/stores",
    response_model=schemas.StoreListResponse,
    status_code=status.HTTP_200_OK,
)
async def list_stores(
    query: str | None = None,
    include_inactive: bool = False,
    pagination: Pagination = Depends(get_pagination),
    identity: Identity = Depends(require_permission("stores_view")),
    session: AsyncSession = Depends(get_db_session),
) -> schemas.StoreListResponse:
    """
    List stores.

    Query parameters:
    - query: Search by store name or location (optional)
    - include_inactive: Include deactivated stores (default: false)
    - page / page_size: Paging (page_size capped at the configured maximum)
    """
    stores, total = await service.list_stores(
        session,
        query=query,
        active=None if include_inactive else True,
        page=pagination.page,
        page_size=pagination.page_size,
    )
    return schemas.StoreListResponse(
        items=[schemas.StoreResponse.model_validate(store) for store in stores],
        total=total,
        page=pagination.page,
        page_size=pagination.page_size,
    )


@router.post(
    "/v1/stores",
    response_model=schemas.StoreResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_store(
    data: schemas.StoreCreate,
    identity: Identity = Depends(require_permission("stores_create")),
    session: AsyncSession = Depends(get_db_session),
) -> schemas.StoreResponse:
    async with unit_of_work(session):
        store = await service.create_store(
            session,
            data,
            actor_id=identity.actor_id,
            actor_role=identity.role.value,
        )
    logger.info("store_created", extra={"extra": {"store_id": str(store.store_id)}})
    return schemas.StoreResponse.model_validate(store)


@router.get(
    "/v1/stores/{store_id}",
    response_model=schemas.StoreDetailResponse,
    status_code=status.HTTP_200_OK,
)
async def get_store(
    store_id: uuid.UUID,
    identity: Identity = Depends(require_permission("stores_view")),
    session: AsyncSession = Depends(get_db_session),
) -> schemas.StoreDetailResponse:
    """Store detail with its locations and stock statistics."""
    store = await service.get_store(session, store_id, with_locations=True)
    if store is None:
        raise NotFoundError(detail=f"Store {store_id} not found")

    stats = await service.get_store_stats(session, store_id)
    return schemas.StoreDetailResponse(
        **schemas.StoreResponse.model_validate(store).model_dump(),
        locations=[schemas.StoreLocationResponse.model_validate(loc) for loc in store.locations],
        stats=stats,
    )


@router.patch(
    "/v1/stores/{store_id}",
    response_model=schemas.StoreResponse,
    status_code=status.HTTP_200_OK,
)
async def update_store(
    store_id: uuid.UUID,
    data: schemas.StoreUpdate,
    identity: Identity = Depends(require_permission("stores_edit")),
    session: AsyncSession = Depends(get_db_session),
) -> schemas.StoreResponse:
    async with unit_of_work(session):
        store = await service.update_store(
            session,
            store_id,
            data,
            actor_id=identity.actor_id,
            actor_role=identity.role.value,
        )
        if store is None:
            raise NotFoundError(detail=f"Store {store_id} not found")
    return schemas.StoreResponse.model_validate(store)


# ===== Location Endpoints =====


@router.get(
    "/v1/stores/{store_id}/locations",
    response_model=list[schemas.StoreLocationResponse],
    status_code=status.HTTP_200_OK,
)
async def list_store_locations(
    store_id: uuid.UUID,
    identity: Identity = Depends(require_permission("stores_view")),
    session: AsyncSession = Depends(get_db_session),
) -> list[schemas.StoreLocationResponse]:
    await _require_store(session, store_id)
    locations = await service.list_locations(session, store_id)
    return [schemas.StoreLocationResponse.model_validate(location) for location in locations]


@router.post(
    "/v1/stores/{store_id}/locations",
    response_model=schemas.StoreLocationResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_store_location(
    store_id: uuid.UUID,
    data: schemas.StoreLocationCreate,
    identity: Identity = Depends(require_permission("stores_create")),
    session: AsyncSession = Depends(get_db_session),
) -> schemas.StoreLocationResponse:
    async with unit_of_work(session):
        location = await service.create_location(
            session,
            store_id,
            data,
            actor_id=identity.actor_id,
            actor_role=identity.role.value,
        )
        if location is None:
            raise NotFoundError(detail=f"Store {store_id} not found")
    return schemas.StoreLocationResponse.model_validate(location)


# ===== Store Inventory Endpoints =====


@router.get(
    "/v1/stores/{store_id}/inventory",
    response_model=inventory_schemas.InventoryItemListResponse,
    status_code=status.HTTP_200_OK,
)
async def list_store_inventory(
    store_id: uuid.UUID,
    query: str | None = None,
    location_id: uuid.UUID | None = None,
    low_stock: bool = False,
    pagination: Pagination = Depends(get_pagination),
    identity: Identity = Depends(require_permission("inventory_view")),
    session: AsyncSession = Depends(get_db_session),
) -> inventory_schemas.InventoryItemListResponse:
    """
    List active items held in a store.

    Query parameters:
    - query: Search by item name or SKU (optional)
    - location_id: Filter by store location (optional)
    - low_stock: Only items at or below their reorder level (default: false)
    """
    await _require_store(session, store_id)
    items, total = await inventory_service.list_items(
        session,
        filters=inventory_service.ItemListFilters(
            store_id=store_id,
            query=query,
            location_id=location_id,
            low_stock_only=low_stock,
            page=pagination.page,
            page_size=pagination.page_size,
        ),
    )
    return inventory_schemas.InventoryItemListResponse(
        items=[inventory_schemas.InventoryItemResponse.model_validate(item) for item in items],
        total=total,
        page=pagination.page,
        page_size=pagination.page_size,
    )


@router.post(
    "/v1/stores/{store_id}/inventory",
    response_model=inventory_schemas.InventoryItemResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_store_inventory_item(
    store_id: uuid.UUID,
    data: inventory_schemas.InventoryItemCreate,
    identity: Identity = Depends(require_permission("inventory_create")),
    session: AsyncSession = Depends(get_db_session),
) -> inventory_schemas.InventoryItemResponse:
    """
    Create an item in a store.

    A positive initial quantity is recorded as an opening IN ledger entry in the
    same commit as the item.

    Requires: inventory_create permission
    """
    async with unit_of_work(session):
        item, opening = await inventory_service.create_item(
            session,
            store_id,
            data,
            actor_id=identity.actor_id,
            actor_role=identity.role.value,
        )
    logger.info(
        "inventory_item_created",
        extra={
            "extra": {
                "item_id": str(item.item_id),
                "store_id": str(store_id),
                "opening_transaction_id": opening.transaction_id if opening else None,
            }
        },
    )
    return inventory_schemas.InventoryItemResponse.model_validate(item)


@router.get(
    "/v1/stores/{store_id}/inventory/{item_id}",
    response_model=inventory_schemas.InventoryItemResponse,
    status_code=status.HTTP_200_OK,
)
async def get_store_inventory_item(
    store_id: uuid.UUID,
    item_id: uuid.UUID,
    identity: Identity = Depends(require_permission("inventory_view")),
    session: AsyncSession = Depends(get_db_session),
) -> inventory_schemas.InventoryItemResponse:
    item = await inventory_service.get_item(session, item_id, store_id=store_id)
    if item is None:
        raise NotFoundError(detail=f"Inventory item {item_id} not found")
    return inventory_schemas.InventoryItemResponse.model_validate(item)


@router.patch(
    "/v1/stores/{store_id}/inventory/{item_id}",
    response_model=inventory_schemas.InventoryItemResponse,
    status_code=status.HTTP_200_OK,
)
async def update_store_inventory_item(
    store_id: uuid.UUID,
    item_id: uuid.UUID,
    data: inventory_schemas.InventoryItemUpdate,
    identity: Identity = Depends(require_permission("inventory_edit")),
    session: AsyncSession = Depends(get_db_session),
) -> inventory_schemas.InventoryItemResponse:
    """Update item attributes. Quantity changes go through /v1/inventory/transactions."""
    async with unit_of_work(session):
        item = await inventory_service.update_item(
            session,
            store_id,
            item_id,
            data,
            actor_id=identity.actor_id,
            actor_role=identity.role.value,
        )
        if item is None:
            raise NotFoundError(detail=f"Inventory item {item_id} not found")
    return inventory_schemas.InventoryItemResponse.model_validate(item)


@router.delete(
    "/v1/stores/{store_id}/inventory/{item_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def deactivate_store_inventory_item(
    store_id: uuid.UUID,
    item_id: uuid.UUID,
    identity: Identity = Depends(require_permission("inventory_edit")),
    session: AsyncSession = Depends(get_db_session),
) -> Response:
    """Soft-delete: the item is deactivated and its ledger history kept."""
    async with unit_of_work(session):
        deactivated = await inventory_service.deactivate_item(
            session,
            store_id,
            item_id,
            actor_id=identity.actor_id,
            actor_role=identity.role.value,
        )
        if not deactivated:
            raise NotFoundError(detail=f"Inventory item {item_id} not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/v1/stores/{store_id}/low-stock",
    response_model=inventory_schemas.InventoryLowStockListResponse,
    status_code=status.HTTP_200_OK,
)
async def list_store_low_stock(
    store_id: uuid.UUID,
    pagination: Pagination = Depends(get_pagination),
    identity: Identity = Depends(require_permission("inventory_view")),
    session: AsyncSession = Depends(get_db_session),
) -> inventory_schemas.InventoryLowStockListResponse:
    await _require_store(session, store_id)
    rows, total = await inventory_service.list_low_stock_items(
        session,
        store_id=store_id,
        page=pagination.page,
        page_size=pagination.page_size,
    )
    return low_stock_response(rows, total, pagination)
