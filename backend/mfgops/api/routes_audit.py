from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from mfgops.api.auth import Identity, require_permission
from mfgops.domain.audit import AuditListFilters, list_audit_logs
from mfgops.domain.audit import schemas
from mfgops.infra.db import get_db_session

router = APIRouter(tags=["audit"])


@router.get(
    "/v1/audit-logs",
    response_model=schemas.AuditLogListResponse,
    status_code=status.HTTP_200_OK,
)
async def list_audit_log_entries(
    _identity: Identity = Depends(require_permission("audit_view")),
    session: AsyncSession = Depends(get_db_session),
    actor: str | None = Query(None),
    module: str | None = Query(None),
    action: str | None = Query(None),
    resource_type: str | None = Query(None),
    resource_id: str | None = Query(None),
    from_ts: datetime | None = Query(None, alias="from"),
    to_ts: datetime | None = Query(None, alias="to"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
) -> schemas.AuditLogListResponse:
    filters = AuditListFilters(
        actor=actor,
        module=module.upper() if module else None,
        action=action.upper() if action else None,
        resource_type=resource_type,
        resource_id=resource_id,
        from_ts=from_ts,
        to_ts=to_ts,
        limit=limit,
        offset=offset,
    )
    logs, total = await list_audit_logs(session, filters=filters)
    return schemas.AuditLogListResponse(
        audits=[schemas.AuditLogEntry.model_validate(log) for log in logs],
        total=total,
        limit=limit,
        offset=offset,
    )
