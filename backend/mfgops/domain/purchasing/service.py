"""Purchasing domain service layer: suppliers, purchase orders and receipt into stock."""

from __future__ import annotations

import logging
import secrets
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from mfgops.domain import audit
from mfgops.domain.errors import InvalidArgumentError, NotFoundError
from mfgops.domain.inventory import ledger
from mfgops.domain.inventory.db_models import InventoryItem
from mfgops.domain.inventory.schemas import TransactionType
from mfgops.domain.purchasing import db_models, schemas
from mfgops.domain.purchasing.schemas import PurchaseOrderStatus

logger = logging.getLogger(__name__)

AUDIT_MODULE = "PURCHASES"
PURCHASE_ORDER_REFERENCE = "PURCHASE_ORDER"

# RECEIVED is reachable only through receive_purchase_order.
ALLOWED_TRANSITIONS: dict[PurchaseOrderStatus, set[PurchaseOrderStatus]] = {
    PurchaseOrderStatus.DRAFT: {PurchaseOrderStatus.PENDING, PurchaseOrderStatus.CANCELLED},
    PurchaseOrderStatus.PENDING: {
        PurchaseOrderStatus.DRAFT,
        PurchaseOrderStatus.CONFIRMED,
        PurchaseOrderStatus.CANCELLED,
    },
    PurchaseOrderStatus.CONFIRMED: {PurchaseOrderStatus.CANCELLED},
    PurchaseOrderStatus.RECEIVED: set(),
    PurchaseOrderStatus.CANCELLED: set(),
}
RECEIVABLE_STATUSES = (PurchaseOrderStatus.PENDING.value, PurchaseOrderStatus.CONFIRMED.value)


@dataclass(frozen=True)
class PurchaseOrderFilters:
    status: PurchaseOrderStatus | None = None
    supplier_id: uuid.UUID | None = None
    page: int = 1
    page_size: int = 50


def generate_po_number(now: datetime | None = None) -> str:
    stamp = (now or datetime.now(timezone.utc)).strftime("%Y%m%d%H%M%S")
    return f"PO-{stamp}-{secrets.token_hex(3).upper()}"


# ===== Supplier Service Functions =====


async def list_suppliers(
    session: AsyncSession,
    *,
    query: str | None = None,
    active: bool | None = True,
    page: int = 1,
    page_size: int = 50,
) -> tuple[list[db_models.Supplier], int]:
    stmt = select(db_models.Supplier)
    if active is not None:
        stmt = stmt.where(db_models.Supplier.active.is_(active))
    if query:
        stmt = stmt.where(db_models.Supplier.name.ilike(f"%{query}%"))

    count_stmt = select(func.count()).select_from(stmt.subquery())
    total = (await session.execute(count_stmt)).scalar_one()

    stmt = stmt.order_by(db_models.Supplier.name.asc(), db_models.Supplier.supplier_id.asc())
    stmt = stmt.limit(page_size).offset((page - 1) * page_size)
    result = await session.execute(stmt)
    return list(result.scalars().all()), total


async def get_supplier(
    session: AsyncSession,
    supplier_id: uuid.UUID,
) -> db_models.Supplier | None:
    stmt = select(db_models.Supplier).where(db_models.Supplier.supplier_id == supplier_id)
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def create_supplier(
    session: AsyncSession,
    data: schemas.SupplierCreate,
    *,
    actor_id: str,
    actor_role: str,
) -> db_models.Supplier:
    supplier = db_models.Supplier(
        supplier_id=uuid.uuid4(),
        active=True,
        created_at=datetime.now(timezone.utc),
        **data.model_dump(),
    )
    session.add(supplier)
    await audit.record_action(
        session,
        actor=actor_id,
        role=actor_role,
        module=AUDIT_MODULE,
        action="CREATE_SUPPLIER",
        resource_type="supplier",
        resource_id=str(supplier.supplier_id),
        after=data.model_dump(),
    )
    await session.flush()
    return supplier


async def update_supplier(
    session: AsyncSession,
    supplier_id: uuid.UUID,
    data: schemas.SupplierUpdate,
    *,
    actor_id: str,
    actor_role: str,
) -> db_models.Supplier | None:
    supplier = await get_supplier(session, supplier_id)
    if not supplier:
        return None

    changes = data.model_dump(exclude_unset=True)
    before = {key: getattr(supplier, key) for key in changes}
    for key, value in changes.items():
        if value is None and key in {"name", "active"}:
            continue
        setattr(supplier, key, value)
    supplier.updated_at = datetime.now(timezone.utc)

    await audit.record_action(
        session,
        actor=actor_id,
        role=actor_role,
        module=AUDIT_MODULE,
        action="UPDATE_SUPPLIER",
        resource_type="supplier",
        resource_id=str(supplier_id),
        before=before,
        after=changes,
    )
    await session.flush()
    return supplier


# ===== Purchase Order Service Functions =====


async def list_purchase_orders(
    session: AsyncSession,
    *,
    filters: PurchaseOrderFilters,
) -> tuple[list[db_models.PurchaseOrder], int]:
    """List purchase orders newest first, filtered by status and supplier."""
    stmt = select(db_models.PurchaseOrder)
    if filters.status is not None:
        stmt = stmt.where(db_models.PurchaseOrder.status == filters.status.value)
    if filters.supplier_id is not None:
        stmt = stmt.where(db_models.PurchaseOrder.supplier_id == filters.supplier_id)

    count_stmt = select(func.count()).select_from(stmt.subquery())
    total = (await session.execute(count_stmt)).scalar_one()

    stmt = stmt.order_by(
        db_models.PurchaseOrder.created_at.desc(),
        db_models.PurchaseOrder.po_number.desc(),
    )
    stmt = stmt.limit(filters.page_size).offset((filters.page - 1) * filters.page_size)
    result = await session.execute(stmt)
    return list(result.scalars().all()), total


async def get_purchase_order(
    session: AsyncSession,
    po_id: uuid.UUID,
) -> db_models.PurchaseOrder | None:
    stmt = (
        select(db_models.PurchaseOrder)
        .where(db_models.PurchaseOrder.po_id == po_id)
        .options(selectinload(db_models.PurchaseOrder.items))
    )
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def purchase_order_summary(session: AsyncSession) -> schemas.PurchaseOrderSummary:
    """Order counts and value per status, active suppliers, and average committed order value."""
    status_rows = await session.execute(
        select(
            db_models.PurchaseOrder.status,
            func.count(),
            func.coalesce(func.sum(db_models.PurchaseOrder.total_cents), 0),
        )
        .group_by(db_models.PurchaseOrder.status)
        .order_by(db_models.PurchaseOrder.status.asc())
    )
    by_status = [
        schemas.PurchaseOrderStatusTotals(
            status=PurchaseOrderStatus(status),
            count=int(count),
            total_cents=int(total),
        )
        for status, count, total in status_rows.all()
    ]

    active_suppliers = await session.scalar(
        select(func.count())
        .select_from(db_models.Supplier)
        .where(db_models.Supplier.active.is_(True))
    )

    # Only orders the supplier has committed to count towards the average.
    average = await session.scalar(
        select(func.avg(db_models.PurchaseOrder.total_cents)).where(
            db_models.PurchaseOrder.status.in_(
                [PurchaseOrderStatus.CONFIRMED.value, PurchaseOrderStatus.RECEIVED.value]
            )
        )
    )

    return schemas.PurchaseOrderSummary(
        by_status=by_status,
        active_suppliers=int(active_suppliers or 0),
        average_order_value_cents=int(round(average or 0)),
    )


async def create_purchase_order(
    session: AsyncSession,
    data: schemas.PurchaseOrderCreate,
    *,
    actor_id: str,
    actor_role: str,
) -> db_models.PurchaseOrder:
    """Create a DRAFT purchase order with its lines and computed totals."""
    supplier = await get_supplier(session, data.supplier_id)
    if supplier is None or not supplier.active:
        raise NotFoundError(detail=f"Supplier {data.supplier_id} not found")

    item_ids = {line.item_id for line in data.items}
    found = set(
        (
            await session.execute(
                select(InventoryItem.item_id).where(
                    InventoryItem.item_id.in_(item_ids),
                    InventoryItem.active.is_(True),
                )
            )
        ).scalars()
    )
    missing = item_ids - found
    if missing:
        raise InvalidArgumentError(
            detail="Purchase order references unknown or inactive inventory items",
            errors=[{"field": "items", "message": f"unknown item {item_id}"} for item_id in sorted(map(str, missing))],
        )

    now = datetime.now(timezone.utc)
    order = db_models.PurchaseOrder(
        po_id=uuid.uuid4(),
        po_number=generate_po_number(now),
        supplier_id=data.supplier_id,
        status=PurchaseOrderStatus.DRAFT.value,
        order_date=data.order_date,
        expected_delivery_date=data.expected_delivery_date,
        notes=data.notes,
        created_by=actor_id,
        created_at=now,
    )
    total = 0
    for index, line in enumerate(data.items, start=1):
        line_total = line.quantity * line.unit_cost_cents
        total += line_total
        order.items.append(
            db_models.PurchaseOrderItem(
                po_item_id=uuid.uuid4(),
                line_number=index,
                item_id=line.item_id,
                quantity=line.quantity,
                unit_cost_cents=line.unit_cost_cents,
                line_total_cents=line_total,
                received_quantity=0,
            )
        )
    order.total_cents = total
    session.add(order)

    await audit.record_action(
        session,
        actor=actor_id,
        role=actor_role,
        module=AUDIT_MODULE,
        action="CREATE_PO",
        resource_type="purchase_order",
        resource_id=str(order.po_id),
        after={
            "po_number": order.po_number,
            "supplier_id": data.supplier_id,
            "total_cents": total,
            "lines": len(data.items),
        },
    )
    await session.flush()
    return order


async def update_purchase_order_status(
    session: AsyncSession,
    po_id: uuid.UUID,
    new_status: PurchaseOrderStatus,
    *,
    actor_id: str,
    actor_role: str,
) -> db_models.PurchaseOrder | None:
    """Move a purchase order along the allowed status transitions."""
    order = await get_purchase_order(session, po_id)
    if order is None:
        return None

    current = PurchaseOrderStatus(order.status)
    if new_status not in ALLOWED_TRANSITIONS[current]:
        hint = " (use the receive operation)" if new_status is PurchaseOrderStatus.RECEIVED else ""
        raise InvalidArgumentError(
            detail=f"Cannot change purchase order status from {current.value} to {new_status.value}{hint}",
        )

    # Guarded on the status read above so a concurrent change is not overwritten.
    result = await session.execute(
        update(db_models.PurchaseOrder)
        .where(
            db_models.PurchaseOrder.po_id == po_id,
            db_models.PurchaseOrder.status == current.value,
        )
        .values(status=new_status.value, updated_at=datetime.now(timezone.utc))
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise InvalidArgumentError(detail="Purchase order status changed concurrently; retry")

    await audit.record_action(
        session,
        actor=actor_id,
        role=actor_role,
        module=AUDIT_MODULE,
        action="UPDATE_PO_STATUS",
        resource_type="purchase_order",
        resource_id=str(po_id),
        before={"status": current.value},
        after={"status": new_status.value},
    )
    await session.flush()
    await session.refresh(order, attribute_names=["status", "updated_at"])
    return order


def _resolve_received_lines(
    order: db_models.PurchaseOrder,
    received_items: list[schemas.ReceivedLine] | None,
) -> list[tuple[db_models.PurchaseOrderItem, int]]:
    lines_by_id = {line.po_item_id: line for line in order.items}
    if received_items is None:
        return [(line, line.quantity) for line in order.items]

    resolved: list[tuple[db_models.PurchaseOrderItem, int]] = []
    seen: set[uuid.UUID] = set()
    for received in received_items:
        line = lines_by_id.get(received.po_item_id)
        if line is None:
            raise InvalidArgumentError(
                detail=f"Line {received.po_item_id} does not belong to purchase order {order.po_id}",
            )
        if received.po_item_id in seen:
            raise InvalidArgumentError(detail=f"Line {received.po_item_id} listed more than once")
        seen.add(received.po_item_id)
        resolved.append((line, received.received_quantity))
    return resolved


async def receive_purchase_order(
    session: AsyncSession,
    po_id: uuid.UUID,
    received_items: list[schemas.ReceivedLine] | None,
    *,
    actor_id: str,
    actor_role: str,
    notes: str | None = None,
) -> tuple[db_models.PurchaseOrder, list[schemas.ReceivedLineResult]]:
    """
    Receive a PENDING or CONFIRMED purchase order into stock.

    The status flips to RECEIVED first through a conditional update, so a PO is
    received at most once even under concurrent calls. Each received line then
    posts an IN ledger entry referencing the PO. Nothing is committed here; the
    caller's unit of work makes the status change and every entry atomic.
    """
    order = await get_purchase_order(session, po_id)
    if order is None:
        raise NotFoundError(detail=f"Purchase order {po_id} not found")

    lines = _resolve_received_lines(order, received_items)

    now = datetime.now(timezone.utc)
    claimed = await session.execute(
        update(db_models.PurchaseOrder)
        .where(
            db_models.PurchaseOrder.po_id == po_id,
            db_models.PurchaseOrder.status.in_(RECEIVABLE_STATUSES),
        )
        .values(
            status=PurchaseOrderStatus.RECEIVED.value,
            received_at=now,
            received_by=actor_id,
            updated_at=now,
        )
        .execution_options(synchronize_session=False)
    )
    if claimed.rowcount != 1:
        await session.refresh(order, attribute_names=["status"])
        raise InvalidArgumentError(
            detail=f"Purchase order {order.po_number} cannot be received from status {order.status}",
        )

    results: list[schemas.ReceivedLineResult] = []
    for line, quantity in lines:
        if quantity == 0:
            continue
        posted = await ledger.post_entry(
            session,
            item_id=line.item_id,
            transaction_type=TransactionType.IN,
            quantity=quantity,
            actor_id=actor_id,
            actor_role=actor_role,
            reference_type=PURCHASE_ORDER_REFERENCE,
            reference_id=str(po_id),
            notes=notes or f"Received from PO {order.po_number}",
        )
        line.received_quantity = quantity
        results.append(
            schemas.ReceivedLineResult(
                po_item_id=line.po_item_id,
                item_id=line.item_id,
                received_quantity=quantity,
                new_quantity=posted.new_quantity,
                transaction_id=posted.transaction_id,
            )
        )

    await audit.record_action(
        session,
        actor=actor_id,
        role=actor_role,
        module=AUDIT_MODULE,
        action="RECEIVE_PO",
        resource_type="purchase_order",
        resource_id=str(po_id),
        before={"status": order.status},
        after={
            "status": PurchaseOrderStatus.RECEIVED.value,
            "lines": [
                {"po_item_id": result.po_item_id, "received_quantity": result.received_quantity}
                for result in results
            ],
        },
    )
    await session.flush()
    await session.refresh(order, attribute_names=["status", "received_at", "received_by", "updated_at"])

    logger.info(
        "purchase_order_received",
        extra={
            "extra": {
                "po_id": str(po_id),
                "po_number": order.po_number,
                "lines": len(results),
                "actor": actor_id,
            }
        },
    )
    return order, results
