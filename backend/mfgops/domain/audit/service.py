from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any
import uuid

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from mfgops.domain.audit.db_models import AuditLog
from mfgops.infra.logging import redact_pii


@dataclass(frozen=True)
class AuditListFilters:
    actor: str | None = None
    module: str | None = None
    action: str | None = None
    resource_type: str | None = None
    resource_id: str | None = None
    from_ts: datetime | None = None
    to_ts: datetime | None = None
    limit: int = 50
    offset: int = 0


_SENSITIVE_AUDIT_KEYS = {
    "email",
    "phone",
    "address",
    "contact_person",
    "password",
    "secret",
    "token",
    "authorization",
}


def _sanitize_payload(payload: Any) -> Any:
    if payload is None:
        return None
    if isinstance(payload, (bytes, bytearray)):
        return None
    if isinstance(payload, str):
        return redact_pii(payload)
    if isinstance(payload, (uuid.UUID, datetime)):
        return str(payload)
    if isinstance(payload, list):
        return [_sanitize_payload(item) for item in payload]
    if isinstance(payload, dict):
        sanitized: dict[str, Any] = {}
        for key, value in payload.items():
            if str(key).lower() in _SENSITIVE_AUDIT_KEYS:
                sanitized[key] = "[REDACTED]"
            else:
                sanitized[key] = _sanitize_payload(value)
        return sanitized
    return payload


async def record_action(
    session: AsyncSession,
    *,
    actor: str,
    role: str,
    module: str,
    action: str,
    resource_type: str | None,
    resource_id: str | None,
    before: Any = None,
    after: Any = None,
    context: dict | None = None,
) -> AuditLog:
    """Append an audit row to the session; it commits with the caller's unit of work."""
    log = AuditLog(
        audit_id=str(uuid.uuid4()),
        actor=actor,
        role=role,
        module=module,
        action=action,
        resource_type=resource_type,
        resource_id=resource_id,
        context=_sanitize_payload(context) if context else None,
        before=_sanitize_payload(before),
        after=_sanitize_payload(after),
        created_at=datetime.now(timezone.utc),
    )
    session.add(log)
    return log


def _apply_filters(stmt, filters: AuditListFilters):
    if filters.actor:
        stmt = stmt.where(AuditLog.actor == filters.actor)
    if filters.module:
        stmt = stmt.where(AuditLog.module == filters.module)
    if filters.action:
        stmt = stmt.where(AuditLog.action == filters.action)
    if filters.resource_type:
        stmt = stmt.where(AuditLog.resource_type == filters.resource_type)
    if filters.resource_id:
        stmt = stmt.where(AuditLog.resource_id == filters.resource_id)
    if filters.from_ts is not None:
        stmt = stmt.where(AuditLog.created_at >= filters.from_ts)
    if filters.to_ts is not None:
        stmt = stmt.where(AuditLog.created_at <= filters.to_ts)
    return stmt


async def list_audit_logs(
    session: AsyncSession,
    *,
    filters: AuditListFilters,
) -> tuple[list[AuditLog], int]:
    stmt = _apply_filters(select(AuditLog), filters)

    count_stmt = select(func.count()).select_from(stmt.subquery())
    total = (await session.execute(count_stmt)).scalar_one()

    stmt = stmt.order_by(AuditLog.created_at.desc(), AuditLog.audit_id.desc())
    stmt = stmt.limit(filters.limit).offset(filters.offset)
    result = await session.execute(stmt)
    return list(result.scalars().all()), total
