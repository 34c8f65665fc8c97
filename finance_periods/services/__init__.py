"""Services for the period-control engine."""

from finance_periods.services.audit_trail import AuditTrail
from finance_periods.services.collaborators import AccountDirectory, JournalPostingPipeline
from finance_periods.services.fiscal_period_service import (
    ControlStatus,
    FiscalPeriodService,
    PeriodControlResult,
)
from finance_periods.services.opening_balance_service import (
    OpeningBalanceReceipt,
    OpeningBalanceService,
    opening_balance_batch_id,
)
from finance_periods.services.period_store import PeriodStore
from finance_periods.services.posting_guard import PostingGuard

__all__ = [
    "AccountDirectory",
    "AuditTrail",
    "ControlStatus",
    "FiscalPeriodService",
    "JournalPostingPipeline",
    "OpeningBalanceReceipt",
    "OpeningBalanceService",
    "PeriodControlResult",
    "PeriodStore",
    "PostingGuard",
    "opening_balance_batch_id",
]
