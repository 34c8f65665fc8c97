"""
PostingGuard -- gate for journal entry dates.

Responsibility:
    Answers "may an entry dated D be posted for this tenant?".  The journal
    posting pipeline calls it synchronously before committing any entry and
    refuses to post on a negative answer.

Invariants enforced:
    - No journal entry may post into a period whose status is not OPEN.
    - A date with no covering period is refused unless
      ``allow_posting_without_periods`` is configured.

Failure modes:
    - assert_can_post raises PeriodNotFoundError or ClosedPeriodError.
    - CorruptRecordError propagates from the store.

Audit relevance:
    Every denial is logged at WARNING with the date, the period and the
    reason.
"""

from datetime import date

from finance_periods.config.schema import PeriodControlConfig
from finance_periods.domain.dtos import (
    PeriodStatus,
    PostingDecision,
    PostingDenialReason,
)
from finance_periods.exceptions import ClosedPeriodError, PeriodNotFoundError
from finance_periods.logging_config import get_logger
from finance_periods.services.period_store import PeriodStore

logger = get_logger("services.posting_guard")

_DENIAL_BY_STATUS = {
    PeriodStatus.CLOSED: PostingDenialReason.PERIOD_CLOSED,
    PeriodStatus.LOCKED: PostingDenialReason.PERIOD_LOCKED,
}

_REMEDY_BY_STATUS = {
    PeriodStatus.CLOSED: "Reopen the period to post entries.",
    PeriodStatus.LOCKED: "Locked periods are permanent; date the entry in an open period.",
}


class PostingGuard:
    """
    Posting date check against fiscal period status.

    Contract:
        ``check`` never raises for a refused date; it returns a
        PostingDecision.  ``assert_can_post`` raises instead.

    Non-goals:
        - Does NOT post entries or inspect amounts.
    """

    def __init__(self, store: PeriodStore, config: PeriodControlConfig | None = None):
        self._store = store
        self._config = config or PeriodControlConfig()

    def can_post(self, tenant_id: str, on_date: date) -> bool:
        return self.check(tenant_id, on_date).allowed

    def check(self, tenant_id: str, on_date: date) -> PostingDecision:
        period = self._store.get_period_for_date(tenant_id, on_date)

        if period is None:
            if self._config.allow_posting_without_periods:
                return PostingDecision(allowed=True, on_date=on_date)
            decision = PostingDecision(
                allowed=False,
                on_date=on_date,
                reason=PostingDenialReason.NO_PERIOD,
                message=f"No fiscal period covers {on_date.isoformat()}",
            )
            self._log_denial(tenant_id, decision)
            return decision

        if period.is_open:
            return PostingDecision(allowed=True, on_date=on_date, period=period)

        decision = PostingDecision(
            allowed=False,
            on_date=on_date,
            reason=_DENIAL_BY_STATUS[period.status],
            period=period,
            message=(
                f"Fiscal period {period.name} is {period.status.value}. "
                f"{_REMEDY_BY_STATUS[period.status]}"
            ),
        )
        self._log_denial(tenant_id, decision)
        return decision

    def assert_can_post(self, tenant_id: str, on_date: date) -> None:
        """
        Raise unless an entry dated ``on_date`` may be posted.

        Raises:
            PeriodNotFoundError: No period covers the date.
            ClosedPeriodError: The covering period is CLOSED or LOCKED.
        """
        decision = self.check(tenant_id, on_date)
        if decision.allowed:
            return
        if decision.period is None:
            raise PeriodNotFoundError(tenant_id, on_date.isoformat())
        raise ClosedPeriodError(
            decision.period.name,
            decision.period.status.value,
            on_date.isoformat(),
        )

    def _log_denial(self, tenant_id: str, decision: PostingDecision) -> None:
        logger.warning(
            "posting_denied",
            extra={
                "tenant_id": tenant_id,
                "posting_date": decision.on_date,
                "reason": decision.reason.value if decision.reason else None,
                "period_name": decision.period.name if decision.period else None,
            },
        )
