"""
FiscalPeriodService -- composition root of the period-control engine.

Responsibility:
    The public API.  Validates tenant and actor identity, drives the store,
    the state machine, the opening balance service and the posting guard,
    owns the transaction boundary, and writes the advisory audit trail.

Architecture position:
    Services -- imperative shell, outermost layer.  The only class in the
    package that calls ``session.commit()``.

Invariants enforced:
    - Every status change goes through domain.period_state and is persisted
      with the store's compare-and-swap, after re-reading the period (row
      locked where the backend supports it) inside the transaction.
    - Commit on success, rollback on any failure.
    - The audit record is written after the commit, in its own short
      transaction.  An audit failure is logged at ERROR and never undoes the
      committed change.

Failure modes:
    - NotFound, AlreadyExists, State, Validation and Conflict errors are
      returned as PeriodControlResult values with the error's code and
      http_status.
    - FatalError subclasses are logged at CRITICAL and propagate.
    - Storage driver errors during a write become StorageFailureError.

Audit relevance:
    create_year (info), close / reopen / opening balances (warning) and
    lock (critical) each produce one PeriodAuditRecord with actor,
    timestamp and before/after status.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Callable
from uuid import UUID, uuid4

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from finance_periods.config.schema import PeriodControlConfig
from finance_periods.domain import period_state
from finance_periods.domain.clock import Clock, SystemClock
from finance_periods.domain.dtos import (
    AuditRecordInfo,
    FiscalPeriodInfo,
    FiscalYearInfo,
    OpeningBalanceLine,
    PeriodStatus,
    YearSummary,
)
from finance_periods.domain.period_state import PeriodAction
from finance_periods.exceptions import (
    AlreadyExistsError,
    ConcurrentModificationError,
    ConflictError,
    FatalError,
    FiscalYearNotFoundError,
    InvalidActorError,
    InvalidFiscalYearError,
    InvalidTenantError,
    InvalidTransitionError,
    NotFoundError,
    PeriodControlError,
    PeriodNotFoundError,
    StateError,
    StorageFailureError,
    UnbalancedBatchError,
    ValidationError,
)
from finance_periods.logging_config import LogContext, get_logger
from finance_periods.models.audit_record import AuditAction
from finance_periods.services.audit_trail import AuditTrail
from finance_periods.services.collaborators import AccountDirectory, JournalPostingPipeline
from finance_periods.services.opening_balance_service import (
    OpeningBalanceReceipt,
    OpeningBalanceService,
)
from finance_periods.services.period_store import PeriodStore
from finance_periods.services.posting_guard import PostingGuard

logger = get_logger("services.fiscal_period")


class ControlStatus(str, Enum):
    """Outcome of a mutating period-control call."""

    SUCCEEDED = "succeeded"
    NOT_FOUND = "not_found"
    ALREADY_EXISTS = "already_exists"
    INVALID_TRANSITION = "invalid_transition"
    CONCURRENT_MODIFICATION = "concurrent_modification"
    STATE_CONFLICT = "state_conflict"
    UNBALANCED = "unbalanced"
    VALIDATION_FAILED = "validation_failed"
    CONFLICT = "conflict"


# Most specific first
_STATUS_BY_ERROR: tuple[tuple[type[PeriodControlError], ControlStatus], ...] = (
    (NotFoundError, ControlStatus.NOT_FOUND),
    (AlreadyExistsError, ControlStatus.ALREADY_EXISTS),
    (InvalidTransitionError, ControlStatus.INVALID_TRANSITION),
    (ConcurrentModificationError, ControlStatus.CONCURRENT_MODIFICATION),
    (StateError, ControlStatus.STATE_CONFLICT),
    (UnbalancedBatchError, ControlStatus.UNBALANCED),
    (ValidationError, ControlStatus.VALIDATION_FAILED),
    (ConflictError, ControlStatus.CONFLICT),
)


def _error_details(exc: PeriodControlError) -> dict[str, Any]:
    details: dict[str, Any] = {}
    for key, value in vars(exc).items():
        if key.startswith("_"):
            continue
        details[key] = str(value) if isinstance(value, (Decimal, UUID, date)) else value
    return details


@dataclass(frozen=True)
class PeriodControlResult:
    """Result of a mutating period-control call."""

    status: ControlStatus
    message: str
    error_code: str | None = None
    http_status: int = 200
    details: dict[str, Any] = field(default_factory=dict)
    fiscal_year: FiscalYearInfo | None = None
    period: FiscalPeriodInfo | None = None
    periods: tuple[FiscalPeriodInfo, ...] = ()
    receipt: OpeningBalanceReceipt | None = None

    @property
    def is_success(self) -> bool:
        return self.status == ControlStatus.SUCCEEDED

    @property
    def is_settled(self) -> bool:
        """Success, or a conflict meaning the work was already done."""
        return self.status in (ControlStatus.SUCCEEDED, ControlStatus.CONFLICT)

    @classmethod
    def success(cls, message: str, http_status: int = 200, **artifacts: Any) -> PeriodControlResult:
        return cls(
            status=ControlStatus.SUCCEEDED,
            message=message,
            http_status=http_status,
            **artifacts,
        )

    @classmethod
    def from_error(cls, exc: PeriodControlError) -> PeriodControlResult:
        status = next(
            (s for error_type, s in _STATUS_BY_ERROR if isinstance(exc, error_type)),
            ControlStatus.VALIDATION_FAILED,
        )
        return cls(
            status=status,
            message=str(exc),
            error_code=exc.code,
            http_status=exc.http_status,
            details=_error_details(exc),
        )


@dataclass(frozen=True)
class _Outcome:
    result: PeriodControlResult
    audit: dict[str, Any]
    event: str
    log_fields: dict[str, Any] = field(default_factory=dict)


_ACTION_AUDIT = {
    PeriodAction.CLOSE: (AuditAction.PERIOD_CLOSE, "period_closed", "Closed"),
    PeriodAction.REOPEN: (AuditAction.PERIOD_REOPEN, "period_reopened", "Reopened"),
    PeriodAction.LOCK: (AuditAction.PERIOD_LOCK, "period_locked", "Locked"),
}


class FiscalPeriodService:
    """
    Public API for fiscal year and period control.

    Contract:
        Mutating calls return a PeriodControlResult and leave the session
        committed (success) or rolled back (failure).  Read calls return
        DTOs and never write.

    Guarantees:
        - Two concurrent transitions on one period cannot both succeed.
        - Opening balances are posted at most once per fiscal year.
        - Explicit tenant and date on every call; no implicit "current year".

    Non-goals:
        - Does NOT post ordinary journal entries (callers use can_post).
        - Does NOT render anything.
    """

    def __init__(
        self,
        session: Session,
        account_directory: AccountDirectory,
        journal_pipeline: JournalPostingPipeline,
        clock: Clock | None = None,
        config: PeriodControlConfig | None = None,
        audit_trail: AuditTrail | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._config = config or PeriodControlConfig()
        self._store = PeriodStore(session, self._clock)
        self._guard = PostingGuard(self._store, self._config)
        self._opening_balances = OpeningBalanceService(
            self._store,
            account_directory,
            journal_pipeline,
            self._config,
        )
        self._audit = audit_trail or AuditTrail(session, self._clock)

    # Mutations

    def create_year(self, tenant_id: str, year: int, actor: str) -> PeriodControlResult:
        """
        Create a fiscal year with twelve Open monthly periods.

        Returns:
            Result carrying ``fiscal_year`` and ``periods`` on success;
            ALREADY_EXISTS if the tenant already has the year.

        Raises:
            IncompleteFiscalYearError: The year could not be written with
                exactly twelve periods.  Nothing is committed.
        """

        def work(actor: str) -> _Outcome:
            self._validate_year(year)
            fiscal_year, periods = self._store.create_year(tenant_id, year, actor)
            return _Outcome(
                result=PeriodControlResult.success(
                    f"Fiscal year {year} created with {len(periods)} periods",
                    http_status=201,
                    fiscal_year=fiscal_year,
                    periods=tuple(periods),
                ),
                audit=dict(
                    action=AuditAction.PERIOD_CREATE_YEAR,
                    entity_type="fiscal_year",
                    entity_id=fiscal_year.id,
                    entity_name=fiscal_year.name,
                    description=f"Created fiscal year {year}",
                    after_status=PeriodStatus.OPEN.value,
                    payload={"period_count": len(periods)},
                ),
                event="fiscal_year_committed",
                log_fields={"period_count": len(periods)},
            )

        return self._execute(
            "create_year",
            tenant_id,
            actor,
            work,
            fiscal_year=str(year),
        )

    def close_period(self, tenant_id: str, period_id: UUID | str, actor: str) -> PeriodControlResult:
        """Close an Open period: OPEN -> CLOSED."""
        return self._transition(PeriodAction.CLOSE, tenant_id, period_id, actor)

    def reopen_period(self, tenant_id: str, period_id: UUID | str, actor: str) -> PeriodControlResult:
        """Reopen a Closed period: CLOSED -> OPEN.  Locked periods stay locked."""
        return self._transition(PeriodAction.REOPEN, tenant_id, period_id, actor)

    def lock_period(self, tenant_id: str, period_id: UUID | str, actor: str) -> PeriodControlResult:
        """Lock a Closed period permanently: CLOSED -> LOCKED."""
        return self._transition(PeriodAction.LOCK, tenant_id, period_id, actor)

    def post_opening_balances(
        self,
        tenant_id: str,
        year_id: UUID | str,
        year: int,
        lines: list[OpeningBalanceLine],
        actor: str,
        batch_id: str | None = None,
    ) -> PeriodControlResult:
        """
        Validate and post the fiscal year's single opening balance batch.

        Returns:
            Result carrying ``receipt`` and the updated ``fiscal_year`` on
            success.  UNBALANCED results carry ``details["delta"]`` (debits
            minus credits); CONFLICT means the year was already seeded.
        """

        def work(actor: str) -> _Outcome:
            receipt = self._opening_balances.post(
                tenant_id,
                year_id,
                year,
                list(lines),
                actor,
                batch_id=batch_id,
            )
            fiscal_year = self._store.get_year_by_id(tenant_id, receipt.fiscal_year_id)
            symbol = self._config.currency_symbol
            return _Outcome(
                result=PeriodControlResult.success(
                    f"Opening balances for {year} posted "
                    f"(debits {symbol}{receipt.total_debit:,.2f}, "
                    f"credits {symbol}{receipt.total_credit:,.2f})",
                    fiscal_year=fiscal_year,
                    receipt=receipt,
                ),
                audit=dict(
                    action=AuditAction.OPENING_BALANCES_POSTED,
                    entity_type="fiscal_year",
                    entity_id=receipt.fiscal_year_id,
                    entity_name=str(year),
                    description=f"Posted opening balances for {year}",
                    payload={
                        "entry_id": receipt.entry_id,
                        "batch_id": receipt.batch_id,
                        "line_count": receipt.line_count,
                        "total_debit": str(receipt.total_debit),
                        "total_credit": str(receipt.total_credit),
                    },
                ),
                event="opening_balances_committed",
                log_fields={"entry_id": receipt.entry_id},
            )

        return self._execute(
            "post_opening_balances",
            tenant_id,
            actor,
            work,
            fiscal_year=str(year),
        )

    # Reads

    def get_year(self, tenant_id: str, year: int) -> FiscalYearInfo | None:
        return self._store.get_year(tenant_id, year)

    def list_periods(self, tenant_id: str, year: int) -> list[FiscalPeriodInfo]:
        return self._store.list_periods(tenant_id, year)

    def get_period(self, tenant_id: str, year: int, period: int) -> FiscalPeriodInfo | None:
        return self._store.get_period_by_number(tenant_id, year, period)

    def get_period_by_id(self, tenant_id: str, period_id: UUID | str) -> FiscalPeriodInfo | None:
        return self._store.get_period(tenant_id, period_id)

    def get_current_period(self, tenant_id: str, as_of: date | None = None) -> FiscalPeriodInfo | None:
        """The period covering ``as_of``, or today's date on the injected clock."""
        return self._store.get_period_for_date(tenant_id, as_of or self._clock.today())

    def get_year_summary(self, tenant_id: str, year: int) -> YearSummary:
        """
        Period status counts for a fiscal year.

        Raises:
            FiscalYearNotFoundError: The tenant has no such year.
            IncompleteFiscalYearError: The stored year lacks periods.
        """
        fiscal_year = self._store.get_year(tenant_id, year)
        if fiscal_year is None:
            raise FiscalYearNotFoundError(tenant_id, str(year))
        self._store.verify_year_integrity(tenant_id, year)
        periods = self._store.list_periods(tenant_id, year)
        counts = {status: 0 for status in PeriodStatus}
        for period in periods:
            counts[period.status] += 1
        return YearSummary(
            tenant_id=tenant_id,
            year=year,
            fiscal_year_id=fiscal_year.id,
            open_count=counts[PeriodStatus.OPEN],
            closed_count=counts[PeriodStatus.CLOSED],
            locked_count=counts[PeriodStatus.LOCKED],
            opening_balances_posted=fiscal_year.opening_balances_posted,
        )

    def can_post(self, tenant_id: str, on_date: date) -> bool:
        """True iff an entry dated ``on_date`` may be posted."""
        return self._guard.can_post(tenant_id, on_date)

    @property
    def posting_guard(self) -> PostingGuard:
        return self._guard

    def audit_trail_for(self, tenant_id: str, entity_id: UUID | str) -> tuple[AuditRecordInfo, ...]:
        return self._audit.trace(tenant_id, entity_id)

    # Internals

    def _transition(
        self,
        action: PeriodAction,
        tenant_id: str,
        period_id: UUID | str,
        actor: str,
    ) -> PeriodControlResult:
        audit_action, event, verb = _ACTION_AUDIT[action]

        def work(actor: str) -> _Outcome:
            current = self._store.get_period(tenant_id, period_id, for_update=True)
            if current is None:
                raise PeriodNotFoundError(tenant_id, str(period_id))
            updated = period_state.apply(current, action, actor, self._clock.now())
            stored = self._store.save_period(updated, current.status, current.version)
            return _Outcome(
                result=PeriodControlResult.success(
                    f"{verb} fiscal period {stored.name}",
                    period=stored,
                ),
                audit=dict(
                    action=audit_action,
                    entity_type="fiscal_period",
                    entity_id=stored.id,
                    entity_name=stored.name,
                    description=f"{verb} fiscal period {stored.name}",
                    before_status=current.status.value,
                    after_status=stored.status.value,
                    payload={"version": stored.version},
                ),
                event=event,
                log_fields={
                    "period_name": stored.name,
                    "from_status": current.status.value,
                    "to_status": stored.status.value,
                },
            )

        return self._execute(
            f"{action.value}_period",
            tenant_id,
            actor,
            work,
            period_id=str(period_id),
        )

    def _execute(
        self,
        operation: str,
        tenant_id: str,
        actor: str,
        work: Callable[[str], _Outcome],
        **context: str,
    ) -> PeriodControlResult:
        correlation_id = str(uuid4())
        with LogContext.bind(
            correlation_id=correlation_id,
            tenant_id=tenant_id if isinstance(tenant_id, str) else None,
            actor=actor if isinstance(actor, str) else None,
            **context,
        ):
            logger.info("period_control_started", extra={"operation": operation})
            t0 = time.monotonic()

            try:
                self._validate_tenant(tenant_id)
                outcome = work(self._validate_actor(actor))
                self._session.commit()
            except FatalError:
                self._session.rollback()
                logger.critical(
                    "period_control_fatal",
                    extra={"operation": operation},
                    exc_info=True,
                )
                raise
            except PeriodControlError as exc:
                self._session.rollback()
                logger.warning(
                    "period_control_rejected",
                    extra={
                        "operation": operation,
                        "error_code": exc.code,
                        "reason": str(exc),
                    },
                )
                return PeriodControlResult.from_error(exc)
            except SQLAlchemyError as exc:
                self._session.rollback()
                logger.critical(
                    "period_control_storage_failure",
                    extra={"operation": operation},
                    exc_info=True,
                )
                raise StorageFailureError(operation, str(exc)) from exc
            except Exception:
                self._session.rollback()
                logger.error(
                    "period_control_failed",
                    extra={"operation": operation},
                    exc_info=True,
                )
                raise

            duration_ms = round((time.monotonic() - t0) * 1000, 2)
            logger.info(
                outcome.event,
                extra={
                    "operation": operation,
                    "duration_ms": duration_ms,
                    **outcome.log_fields,
                },
            )

            self._write_audit(tenant_id, actor.strip(), outcome.audit)
            return outcome.result

    def _write_audit(self, tenant_id: str, actor: str, audit: dict[str, Any]) -> None:
        try:
            self._audit.record(tenant_id=tenant_id, actor=actor, **audit)
            self._session.commit()
        except Exception:
            # The change above is committed; the trail is advisory
            self._session.rollback()
            logger.error(
                "audit_write_failed",
                extra={
                    "action": audit["action"].value,
                    "entity_name": audit["entity_name"],
                },
                exc_info=True,
            )

    def _validate_tenant(self, tenant_id: str) -> None:
        if not isinstance(tenant_id, str) or not tenant_id.strip():
            raise InvalidTenantError("tenant id is required")

    def _validate_actor(self, actor: str) -> str:
        if not isinstance(actor, str):
            raise InvalidActorError("actor must be a string")
        cleaned = actor.strip()
        if not cleaned:
            raise InvalidActorError("actor is required")
        if len(cleaned) > self._config.actor_max_length:
            raise InvalidActorError(
                f"actor exceeds {self._config.actor_max_length} characters"
            )
        return cleaned

    def _validate_year(self, year: int) -> None:
        if isinstance(year, bool) or not isinstance(year, int):
            raise InvalidFiscalYearError(year, "year must be an integer")
        if not self._config.min_year <= year <= self._config.max_year:
            raise InvalidFiscalYearError(
                year,
                f"year must be between {self._config.min_year} and {self._config.max_year}",
            )
