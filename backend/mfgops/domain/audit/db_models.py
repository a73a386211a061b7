import uuid
from datetime import datetime

from sqlalchemy import DateTime, Index, String, event, func
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.types import JSON

from mfgops.infra.db import Base


class AuditLog(Base):
    __tablename__ = "audit_logs"

    audit_id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    actor: Mapped[str] = mapped_column(String(100), nullable=False)
    role: Mapped[str] = mapped_column(String(50), nullable=False)
    module: Mapped[str] = mapped_column(String(50), nullable=False)
    action: Mapped[str] = mapped_column(String(100), nullable=False)
    resource_type: Mapped[str | None] = mapped_column(String(100), nullable=True)
    resource_id: Mapped[str | None] = mapped_column(String(100), nullable=True, index=True)
    context: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    before: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    after: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        Index("ix_audit_logs_created", "created_at"),
        Index("ix_audit_logs_module_action", "module", "action"),
        Index("ix_audit_logs_actor", "actor"),
    )


@event.listens_for(AuditLog, "before_update", propagate=True)
def _prevent_audit_updates(mapper, connection, target) -> None:  # noqa: ARG001
    raise ValueError("Audit records are immutable")


@event.listens_for(AuditLog, "before_delete", propagate=True)
def _prevent_audit_deletes(mapper, connection, target) -> None:  # noqa: ARG001
    raise ValueError("Audit records cannot be deleted")
