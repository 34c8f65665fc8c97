"""Pure domain core: DTOs, calendar, money, state machine, validators."""

from finance_periods.domain.clock import Clock, DeterministicClock, SystemClock
from finance_periods.domain.dtos import (
    AccountInfo,
    AccountType,
    AuditRecordInfo,
    FiscalPeriodInfo,
    FiscalYearInfo,
    OpeningBalanceEntry,
    OpeningBalanceLine,
    PeriodStatus,
    PostingDecision,
    PostingDenialReason,
    YearSummary,
)

__all__ = [
    "Clock",
    "SystemClock",
    "DeterministicClock",
    "AccountInfo",
    "AccountType",
    "AuditRecordInfo",
    "FiscalPeriodInfo",
    "FiscalYearInfo",
    "OpeningBalanceEntry",
    "OpeningBalanceLine",
    "PeriodStatus",
    "PostingDecision",
    "PostingDenialReason",
    "YearSummary",
]
