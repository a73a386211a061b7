"""Purchasing endpoints: suppliers, purchase orders and goods receipt."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from mfgops.api.auth import Identity, require_permission
from mfgops.dependencies import Pagination, get_pagination
from mfgops.domain.errors import DomainError, NotFoundError
from mfgops.domain.purchasing import schemas, service
from mfgops.infra.db import get_db_session, unit_of_work
from mfgops.infra.metrics import metrics

router = APIRouter(tags=["purchases"])


# ===== Supplier Endpoints =====


@router.get(
    "/v1/purchases/suppliers",
    response_model=schemas.SupplierListResponse,
    status_code=status.HTTP_200_OK,
)
async def list_suppliers(
    query: str | None = None,
    include_inactive: bool = False,
    pagination: Pagination = Depends(get_pagination),
    identity: Identity = Depends(require_permission("purchases_view")),
    session: AsyncSession = Depends(get_db_session),
) -> schemas.SupplierListResponse:
    suppliers, total = await service.list_suppliers(
        session,
        query=query,
        active=None if include_inactive else True,
        page=pagination.page,
        page_size=pagination.page_size,
    )
    return schemas.SupplierListResponse(
        items=[schemas.SupplierResponse.model_validate(supplier) for supplier in suppliers],
        total=total,
        page=pagination.page,
        page_size=pagination.page_size,
    )


@router.post(
    "/v1/purchases/suppliers",
    response_model=schemas.SupplierResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_supplier(
    data: schemas.SupplierCreate,
    identity: Identity = Depends(require_permission("purchases_create")),
    session: AsyncSession = Depends(get_db_session),
) -> schemas.SupplierResponse:
    async with unit_of_work(session):
        supplier = await service.create_supplier(
            session,
            data,
            actor_id=identity.actor_id,
            actor_role=identity.role.value,
        )
    return schemas.SupplierResponse.model_validate(supplier)


@router.get(
    "/v1/purchases/suppliers/{supplier_id}",
    response_model=schemas.SupplierResponse,
    status_code=status.HTTP_200_OK,
)
async def get_supplier(
    supplier_id: uuid.UUID,
    identity: Identity = Depends(require_permission("purchases_view")),
    session: AsyncSession = Depends(get_db_session),
) -> schemas.SupplierResponse:
    supplier = await service.get_supplier(session, supplier_id)
    if supplier is None:
        raise NotFoundError(detail=f"Supplier {supplier_id} not found")
    return schemas.SupplierResponse.model_validate(supplier)


@router.patch(
    "/v1/purchases/suppliers/{supplier_id}",
    response_model=schemas.SupplierResponse,
    status_code=status.HTTP_200_OK,
)
async def update_supplier(
    supplier_id: uuid.UUID,
    data: schemas.SupplierUpdate,
    identity: Identity = Depends(require_permission("purchases_create")),
    session: AsyncSession = Depends(get_db_session),
) -> schemas.SupplierResponse:
    async with unit_of_work(session):
        supplier = await service.update_supplier(
            session,
            supplier_id,
            data,
            actor_id=identity.actor_id,
            actor_role=identity.role.value,
        )
        if supplier is None:
            raise NotFoundError(detail=f"Supplier {supplier_id} not found")
    return schemas.SupplierResponse.model_validate(supplier)


# ===== Purchase Order Endpoints =====


@router.get(
    "/v1/purchases/orders",
    response_model=schemas.PurchaseOrderListResponse,
    status_code=status.HTTP_200_OK,
)
async def list_purchase_orders(
    status_filter: schemas.PurchaseOrderStatus | None = Query(None, alias="status"),
    supplier_id: uuid.UUID | None = None,
    pagination: Pagination = Depends(get_pagination),
    identity: Identity = Depends(require_permission("purchases_view")),
    session: AsyncSession = Depends(get_db_session),
) -> schemas.PurchaseOrderListResponse:
    """
    List purchase orders, newest first.

    Query parameters:
    - status: Only orders in this status (optional)
    - supplier_id: Only orders from this supplier (optional)
    """
    orders, total = await service.list_purchase_orders(
        session,
        filters=service.PurchaseOrderFilters(
            status=status_filter,
            supplier_id=supplier_id,
            page=pagination.page,
            page_size=pagination.page_size,
        ),
    )
    return schemas.PurchaseOrderListResponse(
        items=[schemas.PurchaseOrderResponse.model_validate(order) for order in orders],
        total=total,
        page=pagination.page,
        page_size=pagination.page_size,
    )


@router.post(
    "/v1/purchases/orders",
    response_model=schemas.PurchaseOrderDetailResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_purchase_order(
    data: schemas.PurchaseOrderCreate,
    identity: Identity = Depends(require_permission("purchases_create")),
    session: AsyncSession = Depends(get_db_session),
) -> schemas.PurchaseOrderDetailResponse:
    async with unit_of_work(session):
        order = await service.create_purchase_order(
            session,
            data,
            actor_id=identity.actor_id,
            actor_role=identity.role.value,
        )
    return schemas.PurchaseOrderDetailResponse.model_validate(order)


@router.get(
    "/v1/purchases/orders/summary",
    response_model=schemas.PurchaseOrderSummary,
    status_code=status.HTTP_200_OK,
)
async def purchase_order_summary(
    identity: Identity = Depends(require_permission("purchases_view")),
    session: AsyncSession = Depends(get_db_session),
) -> schemas.PurchaseOrderSummary:
    """
    Purchasing overview.

    Counts and order value per status, the number of active suppliers and the
    average value of CONFIRMED and RECEIVED orders.
    """
    return await service.purchase_order_summary(session)


@router.get(
    "/v1/purchases/orders/{po_id}",
    response_model=schemas.PurchaseOrderDetailResponse,
    status_code=status.HTTP_200_OK,
)
async def get_purchase_order(
    po_id: uuid.UUID,
    identity: Identity = Depends(require_permission("purchases_view")),
    session: AsyncSession = Depends(get_db_session),
) -> schemas.PurchaseOrderDetailResponse:
    order = await service.get_purchase_order(session, po_id)
    if order is None:
        raise NotFoundError(detail=f"Purchase order {po_id} not found")
    return schemas.PurchaseOrderDetailResponse.model_validate(order)


@router.put(
    "/v1/purchases/orders/{po_id}/status",
    response_model=schemas.PurchaseOrderResponse,
    status_code=status.HTTP_200_OK,
)
async def update_purchase_order_status(
    po_id: uuid.UUID,
    data: schemas.PurchaseOrderStatusUpdate,
    identity: Identity = Depends(require_permission("purchases_approve")),
    session: AsyncSession = Depends(get_db_session),
) -> schemas.PurchaseOrderResponse:
    """
    Move a purchase order to a new status.

    RECEIVED is not accepted here; use the receive endpoint so stock is posted.
    """
    async with unit_of_work(session):
        order = await service.update_purchase_order_status(
            session,
            po_id,
            data.status,
            actor_id=identity.actor_id,
            actor_role=identity.role.value,
        )
        if order is None:
            raise NotFoundError(detail=f"Purchase order {po_id} not found")
    return schemas.PurchaseOrderResponse.model_validate(order)


@router.post(
    "/v1/purchases/orders/{po_id}/receive",
    response_model=schemas.PurchaseOrderReceiveResponse,
    status_code=status.HTTP_200_OK,
)
async def receive_purchase_order(
    po_id: uuid.UUID,
    data: schemas.PurchaseOrderReceiveRequest | None = None,
    identity: Identity = Depends(require_permission("purchases_approve")),
    session: AsyncSession = Depends(get_db_session),
) -> schemas.PurchaseOrderReceiveResponse:
    """
    Receive goods into stock.

    Each received line is posted as an IN ledger entry referencing the purchase
    order. Omitting ``received_items`` receives every line in full. The whole
    receipt commits or rolls back as one unit.

    Requires: purchases_approve permission
    """
    payload = data or schemas.PurchaseOrderReceiveRequest()
    try:
        async with unit_of_work(session):
            order, lines = await service.receive_purchase_order(
                session,
                po_id,
                payload.received_items,
                actor_id=identity.actor_id,
                actor_role=identity.role.value,
                notes=payload.notes,
            )
    except DomainError as exc:
        metrics.record_purchase_order_received(exc.kind)
        raise
    metrics.record_purchase_order_received("received")
    return schemas.PurchaseOrderReceiveResponse(
        po_id=order.po_id,
        status=schemas.PurchaseOrderStatus(order.status),
        lines=lines,
    )
