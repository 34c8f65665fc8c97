"""
PeriodStore -- persistence of fiscal years and periods.

Responsibility:
    Reads and writes FiscalYear and FiscalPeriod rows and converts them to
    frozen DTOs at the boundary.  Creates a year with its twelve periods in
    one flush, and persists period transitions with a compare-and-swap.

Architecture position:
    Services -- imperative shell.  Used by FiscalPeriodService, PostingGuard
    and OpeningBalanceService.  Flush-only; never commits.

Invariants enforced:
    - A fiscal year exists only with exactly twelve periods.  The count is
      re-checked after the creating flush and by verify_year_integrity().
    - Status writes are ``UPDATE ... WHERE id AND status AND version``;
      a stale snapshot updates zero rows and is rejected.
    - opening_balances_posted is claimed with ``WHERE opening_balances_posted
      IS FALSE`` before the journal entry is posted, so it flips exactly once
      and only the claiming request reaches the pipeline.
    - Stored status strings are parsed, never trusted.

Failure modes:
    - FiscalYearAlreadyExistsError: pre-check hit, or unique constraint
      violation from a concurrent creator.
    - IncompleteFiscalYearError: a year with other than twelve periods.
    - ConcurrentModificationError: compare-and-swap updated zero rows.
    - OpeningBalancesAlreadyPostedError: posted flag was already set.
    - CorruptRecordError: unknown stored status.

Audit relevance:
    Every successful write is logged with tenant, year and period fields.
"""

from datetime import date
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from finance_periods.domain.calendar import PERIODS_PER_YEAR, monthly_spans, year_bounds
from finance_periods.domain.clock import Clock, SystemClock
from finance_periods.domain.dtos import FiscalPeriodInfo, FiscalYearInfo, PeriodStatus
from finance_periods.exceptions import (
    ConcurrentModificationError,
    FiscalYearAlreadyExistsError,
    IncompleteFiscalYearError,
    OpeningBalancesAlreadyPostedError,
)
from finance_periods.logging_config import get_logger
from finance_periods.models.fiscal_period import FiscalPeriod
from finance_periods.models.fiscal_year import FiscalYear
from finance_periods.services.base import BaseService

logger = get_logger("services.period_store")


def coerce_uuid(value: UUID | str) -> UUID | None:
    """Parse an id from the caller; None when it is not a UUID."""
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError:
        return None


class PeriodStore(BaseService):
    """
    Store for fiscal years and fiscal periods.

    Contract:
        Returns FiscalYearInfo / FiscalPeriodInfo DTOs, never ORM rows.
        All writes flush within the caller's transaction.

    Non-goals:
        - Does NOT decide which transitions are legal (domain.period_state).
        - Does NOT commit or roll back, except to clear a failed flush after
          a unique constraint violation.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session)
        self._clock = clock or SystemClock()

    # Fiscal years

    def get_year(self, tenant_id: str, year: int, for_update: bool = False) -> FiscalYearInfo | None:
        stmt = select(FiscalYear).where(
            FiscalYear.tenant_id == tenant_id,
            FiscalYear.year == year,
        )
        if for_update:
            stmt = stmt.with_for_update()
        model = self._fetch_one(stmt)
        return FiscalYearInfo.from_model(model) if model is not None else None

    def get_year_by_id(
        self,
        tenant_id: str,
        year_id: UUID | str,
        for_update: bool = False,
    ) -> FiscalYearInfo | None:
        parsed = coerce_uuid(year_id)
        if parsed is None:
            return None
        stmt = select(FiscalYear).where(
            FiscalYear.tenant_id == tenant_id,
            FiscalYear.id == parsed,
        )
        if for_update:
            stmt = stmt.with_for_update()
        model = self._fetch_one(stmt)
        return FiscalYearInfo.from_model(model) if model is not None else None

    def create_year(
        self,
        tenant_id: str,
        year: int,
        actor: str,
    ) -> tuple[FiscalYearInfo, list[FiscalPeriodInfo]]:
        """
        Create a fiscal year and its twelve Open monthly periods.

        Postconditions:
            - One FiscalYear row and twelve FiscalPeriod rows are flushed.

        Raises:
            FiscalYearAlreadyExistsError: The year already exists.
            IncompleteFiscalYearError: The flushed year does not have
                exactly twelve periods.
        """
        if self.get_year(tenant_id, year) is not None:
            raise FiscalYearAlreadyExistsError(tenant_id, year)

        now = self._clock.now()
        start, end = year_bounds(year)
        fiscal_year = FiscalYear(
            tenant_id=tenant_id,
            year=year,
            start_date=start,
            end_date=end,
            opening_balances_posted=False,
            created_at=now,
            created_by=actor,
        )
        try:
            self.session.add(fiscal_year)
            self.session.flush()
            for number, period_start, period_end in monthly_spans(year):
                self.session.add(
                    FiscalPeriod(
                        fiscal_year_id=fiscal_year.id,
                        tenant_id=tenant_id,
                        year=year,
                        period=number,
                        start_date=period_start,
                        end_date=period_end,
                        status=PeriodStatus.OPEN.value,
                        version=1,
                        created_at=now,
                        created_by=actor,
                    )
                )
            self.session.flush()
        except IntegrityError:
            # Concurrent creator inserted the same year or period numbers
            self.session.rollback()
            logger.warning(
                "concurrent_fiscal_year_create_conflict",
                extra={"tenant_id": tenant_id, "year": year},
            )
            raise FiscalYearAlreadyExistsError(tenant_id, year) from None

        periods = self.list_periods(tenant_id, year)
        if len(periods) != PERIODS_PER_YEAR:
            raise IncompleteFiscalYearError(tenant_id, year, len(periods))

        logger.info(
            "fiscal_year_created",
            extra={"tenant_id": tenant_id, "year": year, "period_count": len(periods)},
        )
        return FiscalYearInfo.from_model(fiscal_year), periods

    def verify_year_integrity(self, tenant_id: str, year: int) -> int:
        """
        Check that a stored year has exactly twelve periods.

        Returns:
            The period count (always 12 on return).

        Raises:
            IncompleteFiscalYearError: Any other count.
        """
        count = self.session.execute(
            select(func.count(FiscalPeriod.id)).where(
                FiscalPeriod.tenant_id == tenant_id,
                FiscalPeriod.year == year,
            )
        ).scalar_one()
        if count != PERIODS_PER_YEAR:
            logger.critical(
                "fiscal_year_incomplete",
                extra={"tenant_id": tenant_id, "year": year, "period_count": count},
            )
            raise IncompleteFiscalYearError(tenant_id, year, count)
        return count

    def claim_opening_balances(
        self,
        tenant_id: str,
        year_id: UUID,
        year: int,
        batch_id: str,
    ) -> None:
        """
        Flip opening_balances_posted from false to true and record the batch id.

        Runs before the journal entry is posted, so only one request per
        year reaches the pipeline. The entry id is filled in afterwards by
        ``record_opening_balance_entry`` in the same transaction.

        Raises:
            OpeningBalancesAlreadyPostedError: The flag was already set.
        """
        result = self.session.execute(
            update(FiscalYear)
            .where(
                FiscalYear.id == year_id,
                FiscalYear.tenant_id == tenant_id,
                FiscalYear.opening_balances_posted == False,  # noqa: E712
            )
            .values(
                opening_balances_posted=True,
                opening_balance_batch_id=batch_id,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            entry_id = self.session.execute(
                select(FiscalYear.opening_balance_entry_id).where(
                    FiscalYear.id == year_id,
                    FiscalYear.tenant_id == tenant_id,
                )
            ).scalar_one_or_none()
            logger.warning(
                "opening_balances_claim_conflict",
                extra={"tenant_id": tenant_id, "year": year, "batch_id": batch_id},
            )
            raise OpeningBalancesAlreadyPostedError(tenant_id, year, entry_id)

        logger.info(
            "opening_balances_claimed",
            extra={"tenant_id": tenant_id, "year": year, "batch_id": batch_id},
        )

    def record_opening_balance_entry(
        self,
        tenant_id: str,
        year_id: UUID,
        batch_id: str,
        entry_id: str,
    ) -> None:
        """
        Attach the journal entry id to a year claimed under ``batch_id``.

        Raises:
            ConcurrentModificationError: The year is not claimed by this
                batch, or already carries an entry id.
        """
        result = self.session.execute(
            update(FiscalYear)
            .where(
                FiscalYear.id == year_id,
                FiscalYear.tenant_id == tenant_id,
                FiscalYear.opening_balances_posted == True,  # noqa: E712
                FiscalYear.opening_balance_batch_id == batch_id,
                FiscalYear.opening_balance_entry_id.is_(None),
            )
            .values(opening_balance_entry_id=entry_id)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise ConcurrentModificationError("fiscal_year", str(year_id))

        logger.info(
            "opening_balance_entry_recorded",
            extra={"tenant_id": tenant_id, "batch_id": batch_id, "entry_id": entry_id},
        )

    # Fiscal periods

    def list_periods(self, tenant_id: str, year: int) -> list[FiscalPeriodInfo]:
        """All periods of ``year`` ordered by period number."""
        models = self._fetch_all(
            select(FiscalPeriod)
            .where(
                FiscalPeriod.tenant_id == tenant_id,
                FiscalPeriod.year == year,
            )
            .order_by(FiscalPeriod.period)
        )
        return [FiscalPeriodInfo.from_model(m) for m in models]

    def get_period(
        self,
        tenant_id: str,
        period_id: UUID | str,
        for_update: bool = False,
    ) -> FiscalPeriodInfo | None:
        parsed = coerce_uuid(period_id)
        if parsed is None:
            return None
        stmt = select(FiscalPeriod).where(
            FiscalPeriod.tenant_id == tenant_id,
            FiscalPeriod.id == parsed,
        )
        if for_update:
            stmt = stmt.with_for_update()
        model = self._fetch_one(stmt)
        return FiscalPeriodInfo.from_model(model) if model is not None else None

    def get_period_by_number(
        self,
        tenant_id: str,
        year: int,
        period: int,
    ) -> FiscalPeriodInfo | None:
        model = self._fetch_one(
            select(FiscalPeriod).where(
                FiscalPeriod.tenant_id == tenant_id,
                FiscalPeriod.year == year,
                FiscalPeriod.period == period,
            )
        )
        return FiscalPeriodInfo.from_model(model) if model is not None else None

    def get_period_for_date(self, tenant_id: str, on_date: date) -> FiscalPeriodInfo | None:
        """The period whose [start_date, end_date] covers ``on_date``."""
        model = self._fetch_one(
            select(FiscalPeriod).where(
                FiscalPeriod.tenant_id == tenant_id,
                FiscalPeriod.start_date <= on_date,
                FiscalPeriod.end_date >= on_date,
            )
        )
        return FiscalPeriodInfo.from_model(model) if model is not None else None

    def save_period(
        self,
        period: FiscalPeriodInfo,
        expected_status: PeriodStatus,
        expected_version: int,
    ) -> FiscalPeriodInfo:
        """
        Persist a transitioned period with a compare-and-swap.

        Args:
            period: The new state produced by the state machine.
            expected_status: Status the row must still have.
            expected_version: Version the row must still have.

        Returns:
            The stored period with its incremented version.

        Raises:
            ConcurrentModificationError: The row no longer matches.
        """
        result = self.session.execute(
            update(FiscalPeriod)
            .where(
                FiscalPeriod.id == period.id,
                FiscalPeriod.tenant_id == period.tenant_id,
                FiscalPeriod.status == expected_status.value,
                FiscalPeriod.version == expected_version,
            )
            .values(
                status=period.status.value,
                closed_by=period.closed_by,
                closed_at=period.closed_at,
                reopened_by=period.reopened_by,
                reopened_at=period.reopened_at,
                locked_by=period.locked_by,
                locked_at=period.locked_at,
                version=expected_version + 1,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            logger.warning(
                "period_cas_conflict",
                extra={
                    "period_id": str(period.id),
                    "period_name": period.name,
                    "expected_status": expected_status.value,
                    "expected_version": expected_version,
                },
            )
            raise ConcurrentModificationError("fiscal_period", str(period.id))

        stored = self.get_period(period.tenant_id, period.id)
        if stored is None:
            raise ConcurrentModificationError("fiscal_period", str(period.id))
        return stored

    def _fetch_one(self, stmt):
        # populate_existing so a re-read sees rows changed by a CAS UPDATE
        return self.session.execute(
            stmt.execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def _fetch_all(self, stmt):
        return self.session.execute(
            stmt.execution_options(populate_existing=True)
        ).scalars().all()
