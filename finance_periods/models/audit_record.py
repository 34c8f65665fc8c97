"""
Module: finance_periods.models.audit_record
Responsibility: ORM persistence for the period-control audit trail.
Architecture position: Models.  May import from db/base.py only.

Invariants enforced:
    - Append-only: records are inserted by AuditTrail.record and never
      updated or deleted by the engine.

Audit relevance:
    One record per successful fiscal year creation, period close, reopen,
    lock and opening balance post.  The trail is advisory: a failed audit
    write is logged and does not undo the committed change.
"""

from datetime import datetime
from enum import Enum
from typing import Any

from sqlalchemy import JSON, DateTime, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from finance_periods.db.base import Base


class AuditAction(str, Enum):
    """Auditable period-control actions."""

    PERIOD_CREATE_YEAR = "accounting.period_create_year"
    PERIOD_CLOSE = "accounting.period_close"
    PERIOD_REOPEN = "accounting.period_reopen"
    PERIOD_LOCK = "accounting.period_lock"
    OPENING_BALANCES_POSTED = "accounting.opening_balances_posted"


class AuditSeverity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"


ACTION_SEVERITY: dict[AuditAction, AuditSeverity] = {
    AuditAction.PERIOD_CREATE_YEAR: AuditSeverity.INFO,
    AuditAction.PERIOD_CLOSE: AuditSeverity.WARNING,
    AuditAction.PERIOD_REOPEN: AuditSeverity.WARNING,
    AuditAction.PERIOD_LOCK: AuditSeverity.CRITICAL,
    AuditAction.OPENING_BALANCES_POSTED: AuditSeverity.WARNING,
}


class PeriodAuditRecord(Base):
    """One entry of the period-control audit trail."""

    __tablename__ = "period_audit_records"

    __table_args__ = (
        Index("idx_period_audit_entity", "tenant_id", "entity_id"),
    )

    tenant_id: Mapped[str] = mapped_column(String(100), nullable=False)

    # fiscal_year | fiscal_period
    entity_type: Mapped[str] = mapped_column(String(50), nullable=False)

    entity_id: Mapped[str] = mapped_column(String(36), nullable=False)

    # Position in the entity's trail, 1-based
    seq: Mapped[int] = mapped_column(Integer, nullable=False)

    # e.g. "2025" or "2025-03"
    entity_name: Mapped[str] = mapped_column(String(20), nullable=False)

    action: Mapped[str] = mapped_column(String(100), nullable=False)

    actor: Mapped[str] = mapped_column(String(255), nullable=False)

    occurred_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    before_status: Mapped[str | None] = mapped_column(String(20), nullable=True)

    after_status: Mapped[str | None] = mapped_column(String(20), nullable=True)

    severity: Mapped[str] = mapped_column(String(20), nullable=False)

    description: Mapped[str] = mapped_column(Text, nullable=False)

    payload: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)

    def __repr__(self) -> str:
        return f"<PeriodAuditRecord {self.action} {self.entity_name}>"
