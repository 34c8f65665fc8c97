"""
DTOs -- Pure domain data transfer objects.

Responsibility:
    Defines the immutable data structures returned by every public call of
    the period-control engine: fiscal years and periods, opening balance
    lines and the journal request built from them, posting decisions, year
    summaries, and audit records.

Architecture position:
    Domain -- pure functional core, zero I/O.  ``from_model()`` class methods
    are boundary converters invoked only from the store layer; ORM rows never
    leave the services.

Failure modes:
    - CorruptRecordError from PeriodStatus.parse when a stored status string
      is not one of the three known states.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, Any
from uuid import UUID

from finance_periods.domain.calendar import period_name
from finance_periods.exceptions import CorruptRecordError

if TYPE_CHECKING:
    from finance_periods.models.audit_record import PeriodAuditRecord
    from finance_periods.models.fiscal_period import FiscalPeriod as FiscalPeriodModel
    from finance_periods.models.fiscal_year import FiscalYear as FiscalYearModel


class PeriodStatus(str, Enum):
    """
    Status of a fiscal period.

    Contract:
        Lifecycle: OPEN -> CLOSED -> {OPEN (reopen) | LOCKED}.  LOCKED is
        terminal.  Only OPEN periods accept postings.
    """

    OPEN = "open"
    CLOSED = "closed"
    LOCKED = "locked"

    @classmethod
    def parse(
        cls,
        value: object,
        entity_type: str = "fiscal_period",
        entity_id: object = "unknown",
    ) -> PeriodStatus:
        """
        Parse a stored status string.

        Raises:
            CorruptRecordError: value is not a known status.
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise CorruptRecordError(entity_type, str(entity_id), "status", value) from None


class AccountType(str, Enum):
    """Types of accounts in the chart of accounts."""

    ASSET = "asset"
    LIABILITY = "liability"
    EQUITY = "equity"
    REVENUE = "revenue"
    EXPENSE = "expense"


@dataclass(frozen=True)
class AccountInfo:
    """
    Snapshot of an account as seen by the account directory.

    Non-goals:
        - Does NOT model the chart of accounts hierarchy.
    """

    id: str
    account_code: str
    name: str
    account_type: AccountType
    is_active: bool = True


@dataclass(frozen=True)
class FiscalYearInfo:
    """Immutable snapshot of a fiscal year."""

    id: UUID
    tenant_id: str
    year: int
    start_date: date
    end_date: date
    opening_balances_posted: bool = False
    opening_balance_entry_id: str | None = None
    opening_balance_batch_id: str | None = None
    created_at: datetime | None = None
    created_by: str | None = None

    @property
    def name(self) -> str:
        return str(self.year)

    @classmethod
    def from_model(cls, model: FiscalYearModel) -> FiscalYearInfo:
        """Create from ORM model."""
        return cls(
            id=model.id,
            tenant_id=model.tenant_id,
            year=model.year,
            start_date=model.start_date,
            end_date=model.end_date,
            opening_balances_posted=bool(model.opening_balances_posted),
            opening_balance_entry_id=model.opening_balance_entry_id,
            opening_balance_batch_id=model.opening_balance_batch_id,
            created_at=model.created_at,
            created_by=model.created_by,
        )


@dataclass(frozen=True)
class FiscalPeriodInfo:
    """
    Pure domain representation of a fiscal period.

    Contract:
        Immutable snapshot of period state.  The state machine returns new
        instances; the store persists them with a compare-and-swap on
        ``(status, version)``.

    Guarantees:
        - ``status`` is always a parsed PeriodStatus.
        - ``version`` is the value the row had when this snapshot was read.
    """

    id: UUID
    fiscal_year_id: UUID
    tenant_id: str
    year: int
    period: int
    start_date: date
    end_date: date
    status: PeriodStatus = PeriodStatus.OPEN
    closed_by: str | None = None
    closed_at: datetime | None = None
    reopened_by: str | None = None
    reopened_at: datetime | None = None
    locked_by: str | None = None
    locked_at: datetime | None = None
    version: int = 1

    @property
    def name(self) -> str:
        return period_name(self.year, self.period)

    @property
    def is_open(self) -> bool:
        """Check if the period is open for posting."""
        return self.status == PeriodStatus.OPEN

    @property
    def is_locked(self) -> bool:
        return self.status == PeriodStatus.LOCKED

    def contains_date(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date

    @classmethod
    def from_model(cls, model: FiscalPeriodModel) -> FiscalPeriodInfo:
        """Create from ORM model, parsing the stored status."""
        return cls(
            id=model.id,
            fiscal_year_id=model.fiscal_year_id,
            tenant_id=model.tenant_id,
            year=model.year,
            period=model.period,
            start_date=model.start_date,
            end_date=model.end_date,
            status=PeriodStatus.parse(model.status, "fiscal_period", model.id),
            closed_by=model.closed_by,
            closed_at=model.closed_at,
            reopened_by=model.reopened_by,
            reopened_at=model.reopened_at,
            locked_by=model.locked_by,
            locked_at=model.locked_at,
            version=model.version,
        )


@dataclass(frozen=True)
class OpeningBalanceLine:
    """
    One proposed opening balance line.

    At most one of ``debit`` and ``credit`` is non-zero; the validator
    enforces this with the line number in the error.
    """

    account_id: str
    debit: Decimal | int | str = Decimal("0")
    credit: Decimal | int | str = Decimal("0")
    account_code: str | None = None
    account_name: str | None = None
    memo: str | None = None


@dataclass(frozen=True)
class OpeningBalanceEntry:
    """
    Journal request handed to the posting pipeline for an accepted batch.

    Guarantees:
        - ``lines`` are normalised to two-place Decimals and balance.
        - ``batch_id`` is stable across retries of the same request.
    """

    tenant_id: str
    batch_id: str
    fiscal_year: int
    entry_date: date
    description: str
    lines: tuple[OpeningBalanceLine, ...]
    total_debit: Decimal
    total_credit: Decimal
    actor: str
    fiscal_period: int = 1
    source: str = "opening"


@dataclass(frozen=True)
class YearSummary:
    """Period status counts for one fiscal year."""

    tenant_id: str
    year: int
    fiscal_year_id: UUID
    open_count: int
    closed_count: int
    locked_count: int
    opening_balances_posted: bool

    @property
    def total_periods(self) -> int:
        return self.open_count + self.closed_count + self.locked_count

    @property
    def is_fully_locked(self) -> bool:
        return self.total_periods > 0 and self.locked_count == self.total_periods


class PostingDenialReason(str, Enum):
    """Why the posting guard refused a date."""

    NO_PERIOD = "no_period"
    PERIOD_CLOSED = "period_closed"
    PERIOD_LOCKED = "period_locked"


@dataclass(frozen=True)
class PostingDecision:
    """Outcome of a posting guard check for one date."""

    allowed: bool
    on_date: date
    reason: PostingDenialReason | None = None
    period: FiscalPeriodInfo | None = None
    message: str | None = None


@dataclass(frozen=True)
class AuditRecordInfo:
    """Immutable snapshot of one audit trail entry."""

    id: UUID
    tenant_id: str
    entity_type: str
    entity_id: str
    seq: int
    entity_name: str
    action: str
    actor: str
    occurred_at: datetime
    severity: str
    description: str
    before_status: str | None = None
    after_status: str | None = None
    payload: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_model(cls, model: PeriodAuditRecord) -> AuditRecordInfo:
        """Create from ORM model."""
        return cls(
            id=model.id,
            tenant_id=model.tenant_id,
            entity_type=model.entity_type,
            entity_id=model.entity_id,
            seq=model.seq,
            entity_name=model.entity_name,
            action=model.action,
            actor=model.actor,
            occurred_at=model.occurred_at,
            severity=model.severity,
            description=model.description,
            before_status=model.before_status,
            after_status=model.after_status,
            payload=dict(model.payload or {}),
        )
