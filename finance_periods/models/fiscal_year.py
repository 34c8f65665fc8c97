"""
Module: finance_periods.models.fiscal_year
Responsibility: ORM persistence for fiscal years and their opening balance flag.
Architecture position: Models.  May import from db/base.py only.

Invariants enforced:
    - One fiscal year per (tenant_id, year) (uq_fiscal_year_tenant_year).
    - opening_balances_posted moves false -> true exactly once; the store
      writes it with a compare-and-swap UPDATE together with the entry and
      batch references.

Audit relevance:
    The entry and batch references tie the year to the journal entry that
    seeded it, so a retried post can be matched to the applied batch.
"""

from datetime import date

from sqlalchemy import Boolean, Date, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from finance_periods.db.base import TrackedBase


class FiscalYear(TrackedBase):
    """
    A tenant's fiscal year, January 1 through December 31.

    Guarantees:
        - Created together with exactly twelve FiscalPeriod rows.
        - Immutable apart from the opening balance fields.
    """

    __tablename__ = "fiscal_years"

    __table_args__ = (
        UniqueConstraint("tenant_id", "year", name="uq_fiscal_year_tenant_year"),
    )

    tenant_id: Mapped[str] = mapped_column(String(100), nullable=False, index=True)

    year: Mapped[int] = mapped_column(Integer, nullable=False)

    start_date: Mapped[date] = mapped_column(Date, nullable=False)

    end_date: Mapped[date] = mapped_column(Date, nullable=False)

    opening_balances_posted: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )

    # Journal entry created by the opening balance batch
    opening_balance_entry_id: Mapped[str | None] = mapped_column(
        String(100),
        nullable=True,
    )

    # Deterministic batch key used for retries
    opening_balance_batch_id: Mapped[str | None] = mapped_column(
        String(200),
        nullable=True,
    )

    def __repr__(self) -> str:
        return f"<FiscalYear {self.tenant_id}/{self.year}>"
