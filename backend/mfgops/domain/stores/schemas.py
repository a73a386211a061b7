"""Store domain schemas (Pydantic models for API request/response)."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class StoreCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    location: str | None = Field(None, max_length=255)
    capacity_units: int | None = Field(None, ge=0)
    description: str | None = None


class StoreUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    location: str | None = Field(None, max_length=255)
    capacity_units: int | None = Field(None, ge=0)
    description: str | None = None


class StoreResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    store_id: UUID
    name: str
    location: str | None
    capacity_units: int | None
    description: str | None
    active: bool
    created_by: str | None
    created_at: datetime
    updated_at: datetime | None


class StoreListResponse(BaseModel):
    items: list[StoreResponse]
    total: int
    page: int
    page_size: int


class StoreLocationCreate(BaseModel):
    section_name: str = Field(..., min_length=1, max_length=100)
    shelf_position: str | None = Field(None, max_length=100)
    capacity: int | None = Field(None, ge=0)


class StoreLocationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    location_id: UUID
    store_id: UUID
    section_name: str
    shelf_position: str | None
    capacity: int | None


class StoreStats(BaseModel):
    total_items: int
    low_stock_items: int
    total_value_cents: int


class StoreDetailResponse(StoreResponse):
    locations: list[StoreLocationResponse]
    stats: StoreStats
