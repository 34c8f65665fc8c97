"""
OpeningBalanceService -- validates and posts a fiscal year's opening balances.

Responsibility:
    Turns one accepted opening balance batch into exactly one journal entry
    and marks the fiscal year as seeded.

Architecture position:
    Services -- flush-only.  Called by FiscalPeriodService, which owns the
    transaction.

Invariants enforced:
    - One all-or-nothing batch per fiscal year: the posted flag flips
      false -> true once, through a compare-and-swap that runs before the
      journal pipeline is called.  A pipeline failure rolls the claim back
      with the rest of the transaction.
    - The batch id is deterministic (``opening:{tenant}:{year}`` unless the
      caller supplies one), so a retry after a failure between posting the
      journal entry and committing finds the applied entry instead of
      posting it twice.

Failure modes:
    - FiscalYearNotFoundError: unknown year id, or the id and the year
      number disagree.
    - Validation errors from domain.opening_balance.
    - OpeningBalancesAlreadyPostedError: the year is already seeded.
    - Errors raised by the journal pipeline propagate unchanged.
"""

from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from finance_periods.config.schema import PeriodControlConfig
from finance_periods.domain.dtos import (
    AccountInfo,
    FiscalYearInfo,
    OpeningBalanceEntry,
    OpeningBalanceLine,
)
from finance_periods.domain.opening_balance import validate_opening_balances
from finance_periods.exceptions import FiscalYearNotFoundError
from finance_periods.logging_config import get_logger
from finance_periods.services.collaborators import AccountDirectory, JournalPostingPipeline
from finance_periods.services.period_store import PeriodStore

logger = get_logger("services.opening_balance")


def opening_balance_batch_id(tenant_id: str, year: int) -> str:
    """
    Deterministic batch key for a year's opening balances.

    Format: opening:tenant:year
    """
    return f"opening:{tenant_id}:{year}"


@dataclass(frozen=True)
class OpeningBalanceReceipt:
    """What was posted for a fiscal year's opening balances."""

    fiscal_year_id: UUID
    year: int
    entry_id: str
    batch_id: str
    line_count: int
    total_debit: Decimal
    total_credit: Decimal
    reused_existing_entry: bool = False


class OpeningBalanceService:
    """
    Opening balance posting.

    Contract:
        ``post`` validates the batch, claims the year's posted flag, posts
        one journal entry through the pipeline (or reuses the one already
        posted under the same batch id) and records the entry id.

    Non-goals:
        - Does NOT commit; the caller does.
        - Does NOT write journal lines itself.
    """

    def __init__(
        self,
        store: PeriodStore,
        account_directory: AccountDirectory,
        journal_pipeline: JournalPostingPipeline,
        config: PeriodControlConfig | None = None,
    ):
        self._store = store
        self._accounts = account_directory
        self._journal = journal_pipeline
        self._config = config or PeriodControlConfig()

    def post(
        self,
        tenant_id: str,
        year_id: UUID | str,
        year: int,
        lines: list[OpeningBalanceLine],
        actor: str,
        batch_id: str | None = None,
    ) -> OpeningBalanceReceipt:
        fiscal_year = self._load_year(tenant_id, year_id, year)

        batch = validate_opening_balances(
            lines,
            self._resolve_accounts(lines),
            tenant_id=tenant_id,
            year=year,
            already_posted=fiscal_year.opening_balances_posted,
            posted_entry_id=fiscal_year.opening_balance_entry_id,
            tolerance=self._config.balance_tolerance,
            allowed_types=self._config.balance_sheet_account_types,
            currency_symbol=self._config.currency_symbol,
        )

        resolved_batch_id = batch_id or opening_balance_batch_id(tenant_id, year)

        # Claim the year before the pipeline call; a competing request that
        # read the year before this one commits fails here without posting.
        self._store.claim_opening_balances(tenant_id, fiscal_year.id, year, resolved_batch_id)

        # Repair read: a previous attempt may have posted the entry and then
        # failed before its transaction committed.
        entry_id = self._journal.find_entry_for_batch(tenant_id, resolved_batch_id)
        reused = entry_id is not None
        if reused:
            logger.warning(
                "opening_balance_entry_reused",
                extra={"batch_id": resolved_batch_id, "entry_id": entry_id},
            )
        else:
            entry_id = self._journal.post_entry(
                OpeningBalanceEntry(
                    tenant_id=tenant_id,
                    batch_id=resolved_batch_id,
                    fiscal_year=year,
                    entry_date=fiscal_year.start_date,
                    description=f"Opening Balances for {year}",
                    lines=batch.lines,
                    total_debit=batch.total_debit,
                    total_credit=batch.total_credit,
                    actor=actor,
                )
            )

        self._store.record_opening_balance_entry(
            tenant_id, fiscal_year.id, resolved_batch_id, entry_id
        )

        logger.info(
            "opening_balances_posted",
            extra={
                "batch_id": resolved_batch_id,
                "entry_id": entry_id,
                "line_count": batch.line_count,
                "total_debit": batch.total_debit,
                "total_credit": batch.total_credit,
                "reused_existing_entry": reused,
            },
        )

        return OpeningBalanceReceipt(
            fiscal_year_id=fiscal_year.id,
            year=year,
            entry_id=entry_id,
            batch_id=resolved_batch_id,
            line_count=batch.line_count,
            total_debit=batch.total_debit,
            total_credit=batch.total_credit,
            reused_existing_entry=reused,
        )

    def _load_year(self, tenant_id: str, year_id: UUID | str, year: int) -> FiscalYearInfo:
        fiscal_year = self._store.get_year_by_id(tenant_id, year_id, for_update=True)
        if fiscal_year is None:
            raise FiscalYearNotFoundError(tenant_id, str(year_id))
        if fiscal_year.year != year:
            raise FiscalYearNotFoundError(
                tenant_id, f"{year} (id {year_id} belongs to {fiscal_year.year})"
            )
        return fiscal_year

    def _resolve_accounts(self, lines: list[OpeningBalanceLine]) -> dict[str, AccountInfo]:
        accounts: dict[str, AccountInfo] = {}
        for line in lines:
            if line.account_id in accounts:
                continue
            account = self._accounts.get_account(line.account_id)
            if account is not None:
                accounts[line.account_id] = account
        return accounts
