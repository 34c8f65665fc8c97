"""ORM models for the period-control engine."""

from finance_periods.models.audit_record import (
    ACTION_SEVERITY,
    AuditAction,
    AuditSeverity,
    PeriodAuditRecord,
)
from finance_periods.models.fiscal_period import FiscalPeriod
from finance_periods.models.fiscal_year import FiscalYear

__all__ = [
    "FiscalYear",
    "FiscalPeriod",
    "PeriodAuditRecord",
    "AuditAction",
    "AuditSeverity",
    "ACTION_SEVERITY",
]
