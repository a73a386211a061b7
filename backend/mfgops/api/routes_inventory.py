"""Inventory ledger endpoints: stock transactions, history, verification and low stock."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from mfgops.api.auth import Identity, require_permission
from mfgops.dependencies import Pagination, get_pagination
from mfgops.domain.errors import NotFoundError
from mfgops.domain.inventory import ledger, schemas, service
from mfgops.infra.db import get_db_session

router = APIRouter(tags=["inventory"])


@router.post(
    "/v1/inventory/transactions",
    response_model=schemas.InventoryTransactionResult,
    status_code=status.HTTP_201_CREATED,
)
async def create_inventory_transaction(
    data: schemas.InventoryTransactionRequest,
    identity: Identity = Depends(require_permission("inventory_edit")),
    session: AsyncSession = Depends(get_db_session),
) -> schemas.InventoryTransactionResult:
    """
    Apply one stock movement through the ledger.

    IN and RETURN add stock; OUT and ADJUST remove it. A movement that would
    take stock below zero is rejected and nothing is written.

    Requires: inventory_edit permission
    """
    result = await ledger.apply_transaction(
        session,
        item_id=data.item_id,
        transaction_type=data.transaction_type,
        quantity=data.quantity,
        actor_id=identity.actor_id,
        actor_role=identity.role.value,
        reference_type=data.reference_type,
        reference_id=data.reference_id,
        notes=data.notes,
    )
    return schemas.InventoryTransactionResult(
        new_quantity=result.new_quantity,
        transaction_id=result.transaction_id,
    )


@router.get(
    "/v1/inventory/items/{item_id}/transactions",
    response_model=schemas.InventoryTransactionListResponse,
    status_code=status.HTTP_200_OK,
)
async def list_item_transactions(
    item_id: uuid.UUID,
    pagination: Pagination = Depends(get_pagination),
    identity: Identity = Depends(require_permission("inventory_view")),
    session: AsyncSession = Depends(get_db_session),
) -> schemas.InventoryTransactionListResponse:
    """Ledger history for one item, newest first."""
    item = await service.get_item(session, item_id)
    if item is None:
        raise NotFoundError(detail=f"Inventory item {item_id} not found")

    entries, total = await ledger.list_transactions(
        session,
        item_id,
        page=pagination.page,
        page_size=pagination.page_size,
    )
    return schemas.InventoryTransactionListResponse(
        items=[schemas.InventoryTransactionResponse.model_validate(entry) for entry in entries],
        total=total,
        page=pagination.page,
        page_size=pagination.page_size,
    )


@router.get(
    "/v1/inventory/items/{item_id}/ledger/verify",
    response_model=schemas.LedgerVerificationResponse,
    status_code=status.HTTP_200_OK,
)
async def verify_item_ledger(
    item_id: uuid.UUID,
    identity: Identity = Depends(require_permission("inventory_view")),
    session: AsyncSession = Depends(get_db_session),
) -> schemas.LedgerVerificationResponse:
    replay = await ledger.replay_ledger(session, item_id)
    return schemas.LedgerVerificationResponse(
        item_id=replay.item_id,
        entries=replay.entries,
        replayed_quantity=replay.replayed_quantity,
        on_hand_quantity=replay.on_hand_quantity,
        consistent=replay.consistent,
        first_mismatch_transaction_id=replay.first_mismatch_transaction_id,
    )


@router.get(
    "/v1/inventory/low-stock",
    response_model=schemas.InventoryLowStockListResponse,
    status_code=status.HTTP_200_OK,
)
async def list_low_stock_across_stores(
    pagination: Pagination = Depends(get_pagination),
    identity: Identity = Depends(require_permission("inventory_view")),
    session: AsyncSession = Depends(get_db_session),
) -> schemas.InventoryLowStockListResponse:
    """Active items at or below their reorder level in every store."""
    rows, total = await service.list_low_stock_items(
        session,
        page=pagination.page,
        page_size=pagination.page_size,
    )
    return low_stock_response(rows, total, pagination)


def low_stock_response(rows, total: int, pagination: Pagination) -> schemas.InventoryLowStockListResponse:
    return schemas.InventoryLowStockListResponse(
        items=[
            schemas.InventoryLowStockItemResponse(
                **schemas.InventoryItemResponse.model_validate(item).model_dump(),
                need_qty=need_qty,
            )
            for item, need_qty in rows
        ],
        total=total,
        page=pagination.page,
        page_size=pagination.page_size,
    )
