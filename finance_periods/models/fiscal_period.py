"""
Module: finance_periods.models.fiscal_period
Responsibility: ORM persistence for monthly fiscal periods -- controls which
    date ranges accept postings.
Architecture position: Models.  May import from db/base.py only.

Invariants enforced:
    - One period per (tenant_id, year, period) (uq_fiscal_period_number).
    - status is written only through PeriodStore.save_period, a
      compare-and-swap on (id, status, version); version increments on
      every transition.

Failure modes:
    - A status string outside open/closed/locked is reported as
      CorruptRecordError when the store reads the row.

Audit relevance:
    closed_by/reopened_by/locked_by and their timestamps record who last
    moved the period through each transition.
"""

from datetime import date, datetime
from uuid import UUID

from sqlalchemy import (
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from finance_periods.db.base import TrackedBase, UUIDString


class FiscalPeriod(TrackedBase):
    """
    One calendar month of a fiscal year.

    Contract:
        Postings dated inside [start_date, end_date] are accepted only while
        status is ``open``.

    Non-goals:
        - Transition rules live in domain.period_state, not on the model.
    """

    __tablename__ = "fiscal_periods"

    __table_args__ = (
        UniqueConstraint("tenant_id", "year", "period", name="uq_fiscal_period_number"),
        Index("idx_fiscal_period_dates", "tenant_id", "start_date", "end_date"),
    )

    fiscal_year_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("fiscal_years.id"),
        nullable=False,
        index=True,
    )

    tenant_id: Mapped[str] = mapped_column(String(100), nullable=False)

    year: Mapped[int] = mapped_column(Integer, nullable=False)

    # 1-12
    period: Mapped[int] = mapped_column(Integer, nullable=False)

    # Period boundaries (inclusive)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)

    end_date: Mapped[date] = mapped_column(Date, nullable=False)

    # Stored as plain string; parsed by the store
    status: Mapped[str] = mapped_column(String(20), default="open", nullable=False)

    closed_by: Mapped[str | None] = mapped_column(String(255), nullable=True)

    closed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    reopened_by: Mapped[str | None] = mapped_column(String(255), nullable=True)

    reopened_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    locked_by: Mapped[str | None] = mapped_column(String(255), nullable=True)

    locked_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    version: Mapped[int] = mapped_column(Integer, default=1, nullable=False)

    def __repr__(self) -> str:
        return f"<FiscalPeriod {self.year:04d}-{self.period:02d}: {self.status}>"
