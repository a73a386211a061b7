"""Purchasing domain schemas (Pydantic models for API request/response)."""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from mfgops.domain.inventory.schemas import MAX_QUANTITY


class PurchaseOrderStatus(str, Enum):
    DRAFT = "DRAFT"
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    RECEIVED = "RECEIVED"
    CANCELLED = "CANCELLED"


# ===== Supplier Schemas =====


class SupplierCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    contact_person: str | None = Field(None, max_length=255)
    email: str | None = Field(None, max_length=255)
    phone: str | None = Field(None, max_length=50)
    address: str | None = None
    payment_terms: str | None = Field(None, max_length=100)


class SupplierUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    contact_person: str | None = Field(None, max_length=255)
    email: str | None = Field(None, max_length=255)
    phone: str | None = Field(None, max_length=50)
    address: str | None = None
    payment_terms: str | None = Field(None, max_length=100)
    active: bool | None = None


class SupplierResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    supplier_id: UUID
    name: str
    contact_person: str | None
    email: str | None
    phone: str | None
    address: str | None
    payment_terms: str | None
    active: bool
    created_at: datetime


class SupplierListResponse(BaseModel):
    items: list[SupplierResponse]
    total: int
    page: int
    page_size: int


# ===== Purchase Order Schemas =====


class PurchaseOrderLineCreate(BaseModel):
    item_id: UUID
    quantity: int = Field(..., gt=0, le=MAX_QUANTITY)
    unit_cost_cents: int = Field(default=0, ge=0)


class PurchaseOrderCreate(BaseModel):
    supplier_id: UUID
    order_date: date
    expected_delivery_date: date | None = None
    notes: str | None = None
    items: list[PurchaseOrderLineCreate] = Field(..., min_length=1)


class PurchaseOrderLineResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    po_item_id: UUID
    line_number: int
    item_id: UUID
    quantity: int
    unit_cost_cents: int
    line_total_cents: int
    received_quantity: int


class PurchaseOrderResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    po_id: UUID
    po_number: str
    supplier_id: UUID
    status: PurchaseOrderStatus
    order_date: date
    expected_delivery_date: date | None
    received_at: datetime | None
    received_by: str | None
    notes: str | None
    total_cents: int
    created_by: str | None
    created_at: datetime


class PurchaseOrderDetailResponse(PurchaseOrderResponse):
    items: list[PurchaseOrderLineResponse]


class PurchaseOrderListResponse(BaseModel):
    items: list[PurchaseOrderResponse]
    total: int
    page: int
    page_size: int


class PurchaseOrderStatusUpdate(BaseModel):
    status: PurchaseOrderStatus


class ReceivedLine(BaseModel):
    po_item_id: UUID
    received_quantity: int = Field(..., ge=0, le=MAX_QUANTITY)


class PurchaseOrderReceiveRequest(BaseModel):
    """Lines to receive; omitted means every line in full."""

    received_items: list[ReceivedLine] | None = None
    notes: str | None = None


class ReceivedLineResult(BaseModel):
    po_item_id: UUID
    item_id: UUID
    received_quantity: int
    new_quantity: int
    transaction_id: int


class PurchaseOrderReceiveResponse(BaseModel):
    success: bool = True
    po_id: UUID
    status: PurchaseOrderStatus
    lines: list[ReceivedLineResult]


class PurchaseOrderStatusTotals(BaseModel):
    status: PurchaseOrderStatus
    count: int
    total_cents: int


class PurchaseOrderSummary(BaseModel):
    by_status: list[PurchaseOrderStatusTotals]
    active_suppliers: int
    average_order_value_cents: int
