"""Inventory domain schemas (Pydantic models for API request/response)."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, StrictInt


class TransactionType(str, Enum):
    IN = "IN"
    OUT = "OUT"
    ADJUST = "ADJUST"
    RETURN = "RETURN"


# Quantities are stored in 32-bit INTEGER columns.
MAX_QUANTITY = 2_147_483_647


# ===== Item Schemas =====


class InventoryItemCreate(BaseModel):
    """Request model for creating an inventory item with its initial stock."""

    sku: str = Field(..., min_length=1, max_length=100)
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    unit_of_measure: str = Field(default="each", min_length=1, max_length=50)
    quantity: int = Field(default=0, ge=0, le=MAX_QUANTITY)
    reorder_level: int = Field(default=0, ge=0)
    max_quantity: int = Field(default=0, ge=0)
    unit_cost_cents: int = Field(default=0, ge=0)
    location_id: UUID | None = None


class InventoryItemUpdate(BaseModel):
    """Attribute update; stock only moves through the ledger."""

    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    unit_of_measure: str | None = Field(None, min_length=1, max_length=50)
    reorder_level: int | None = Field(None, ge=0)
    max_quantity: int | None = Field(None, ge=0)
    unit_cost_cents: int | None = Field(None, ge=0)
    location_id: UUID | None = None


class InventoryItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    item_id: UUID
    store_id: UUID
    location_id: UUID | None
    sku: str
    name: str
    description: str | None
    unit_of_measure: str
    on_hand_quantity: int
    reorder_level: int
    max_quantity: int
    unit_cost_cents: int
    active: bool
    created_by: str | None
    created_at: datetime
    updated_at: datetime | None


class InventoryItemListResponse(BaseModel):
    items: list[InventoryItemResponse]
    total: int
    page: int
    page_size: int


class InventoryLowStockItemResponse(InventoryItemResponse):
    need_qty: int


class InventoryLowStockListResponse(BaseModel):
    items: list[InventoryLowStockItemResponse]
    total: int
    page: int
    page_size: int


# ===== Ledger Schemas =====


class InventoryTransactionRequest(BaseModel):
    """Inbound ledger request.

    ``transaction_type`` is validated by the ledger rather than here so an unknown
    kind surfaces as an invalid-argument domain error instead of a 422.
    """

    model_config = ConfigDict(coerce_numbers_to_str=True)

    item_id: UUID
    transaction_type: str = Field(..., min_length=1, max_length=16)
    quantity: StrictInt = Field(..., le=MAX_QUANTITY)
    reference_type: str | None = Field(None, max_length=50)
    reference_id: str | None = Field(None, max_length=64)
    notes: str | None = None


class InventoryTransactionResult(BaseModel):
    success: bool = True
    new_quantity: int
    transaction_id: int


class InventoryTransactionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    transaction_id: int
    item_id: UUID
    transaction_type: TransactionType
    quantity: int
    resulting_quantity: int
    reference_type: str | None
    reference_id: str | None
    notes: str | None
    actor_id: str
    created_at: datetime


class InventoryTransactionListResponse(BaseModel):
    items: list[InventoryTransactionResponse]
    total: int
    page: int
    page_size: int


class LedgerVerificationResponse(BaseModel):
    item_id: UUID
    entries: int
    replayed_quantity: int
    on_hand_quantity: int
    consistent: bool
    first_mismatch_transaction_id: int | None = None
