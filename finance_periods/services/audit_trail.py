"""
AuditTrail -- advisory audit records for period-control actions.

Responsibility:
    Appends one PeriodAuditRecord per successful year creation, period
    transition and opening balance post, and reads a record trail back for
    an entity.

Architecture position:
    Services -- flush-only.  FiscalPeriodService writes audit records in a
    short transaction of their own, after the change they describe has
    committed.

Failure modes:
    - Any storage error propagates to the caller, which logs it and keeps
      the committed change.
"""

from typing import Any

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from finance_periods.domain.clock import Clock, SystemClock
from finance_periods.domain.dtos import AuditRecordInfo
from finance_periods.logging_config import get_logger
from finance_periods.models.audit_record import (
    ACTION_SEVERITY,
    AuditAction,
    PeriodAuditRecord,
)
from finance_periods.services.base import BaseService

logger = get_logger("services.audit_trail")


class AuditTrail(BaseService):
    """
    Append-only audit trail.

    Guarantees:
        - ``severity`` is derived from the action, never supplied.
        - ``seq`` numbers each entity's records 1, 2, 3, ...
        - ``trace`` returns records oldest first.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session)
        self._clock = clock or SystemClock()

    def record(
        self,
        *,
        tenant_id: str,
        action: AuditAction,
        entity_type: str,
        entity_id: Any,
        entity_name: str,
        actor: str,
        description: str,
        before_status: str | None = None,
        after_status: str | None = None,
        payload: dict[str, Any] | None = None,
    ) -> AuditRecordInfo:
        severity = ACTION_SEVERITY[action]
        last_seq = self.session.execute(
            select(func.coalesce(func.max(PeriodAuditRecord.seq), 0)).where(
                PeriodAuditRecord.tenant_id == tenant_id,
                PeriodAuditRecord.entity_id == str(entity_id),
            )
        ).scalar_one()
        record = PeriodAuditRecord(
            tenant_id=tenant_id,
            entity_type=entity_type,
            entity_id=str(entity_id),
            seq=last_seq + 1,
            entity_name=entity_name,
            action=action.value,
            actor=actor,
            occurred_at=self._clock.now(),
            before_status=before_status,
            after_status=after_status,
            severity=severity.value,
            description=description,
            payload=payload or {},
        )
        self.session.add(record)
        self.session.flush()

        logger.info(
            "audit_record_written",
            extra={
                "action": action.value,
                "entity_name": entity_name,
                "severity": severity.value,
            },
        )
        return AuditRecordInfo.from_model(record)

    def trace(self, tenant_id: str, entity_id: Any) -> tuple[AuditRecordInfo, ...]:
        """All records for ``entity_id``, oldest first."""
        records = self.session.execute(
            select(PeriodAuditRecord)
            .where(
                PeriodAuditRecord.tenant_id == tenant_id,
                PeriodAuditRecord.entity_id == str(entity_id),
            )
            .order_by(PeriodAuditRecord.seq)
        ).scalars().all()
        return tuple(AuditRecordInfo.from_model(r) for r in records)
