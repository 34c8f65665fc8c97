"""
Collaborator interfaces.

The period-control engine does not own the chart of accounts or the journal.
It talks to both through these protocols; the surrounding application
supplies the implementations.
"""

from typing import Protocol, runtime_checkable

from finance_periods.domain.dtos import AccountInfo, OpeningBalanceEntry


@runtime_checkable
class AccountDirectory(Protocol):
    """Read-only lookup of accounts by id."""

    def get_account(self, account_id: str) -> AccountInfo | None:
        """Return the account, or None if the id is unknown."""
        ...


@runtime_checkable
class JournalPostingPipeline(Protocol):
    """
    Double-entry journal posting.

    Contract:
        ``post_entry`` writes one balanced journal entry and returns its id.
        It must itself consult the posting guard before accepting ordinary
        entries.  ``find_entry_for_batch`` returns the id of an entry
        already posted under ``batch_id``, so a retried opening balance
        post can reuse it instead of posting twice.
    """

    def post_entry(self, entry: OpeningBalanceEntry) -> str:
        ...

    def find_entry_for_batch(self, tenant_id: str, batch_id: str) -> str | None:
        ...
