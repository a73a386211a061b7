from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class AuditLogEntry(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    audit_id: str
    created_at: datetime
    actor: str
    role: str
    module: str
    action: str
    resource_type: str | None
    resource_id: str | None
    before: dict | None = None
    after: dict | None = None
    context: dict | None = None


class AuditLogListResponse(BaseModel):
    audits: list[AuditLogEntry] = Field(default_factory=list)
    total: int
    limit: int
    offset: int
