"""
Period state machine.

Responsibility:
    The only place that decides whether a fiscal period may change status.
    Pure functions over FiscalPeriodInfo: no I/O, no money, no clock.  The
    caller supplies the actor and the timestamp.

Transition table::

    OPEN   --close-->  CLOSED
    CLOSED --reopen--> OPEN
    CLOSED --lock-->   LOCKED
    LOCKED            (terminal)

Closing first is the explicit confirmation step before the irreversible
lock, so OPEN --lock--> is refused.

Failure modes:
    - InvalidTransitionError for every move not in the table.
"""

from dataclasses import replace
from datetime import datetime
from enum import Enum

from finance_periods.domain.dtos import FiscalPeriodInfo, PeriodStatus
from finance_periods.exceptions import InvalidTransitionError


class PeriodAction(str, Enum):
    CLOSE = "close"
    REOPEN = "reopen"
    LOCK = "lock"


_TRANSITIONS: dict[tuple[PeriodStatus, PeriodAction], PeriodStatus] = {
    (PeriodStatus.OPEN, PeriodAction.CLOSE): PeriodStatus.CLOSED,
    (PeriodStatus.CLOSED, PeriodAction.REOPEN): PeriodStatus.OPEN,
    (PeriodStatus.CLOSED, PeriodAction.LOCK): PeriodStatus.LOCKED,
}

_REFUSALS: dict[tuple[PeriodStatus, PeriodAction], str] = {
    (PeriodStatus.OPEN, PeriodAction.REOPEN): "the period is already open",
    (PeriodStatus.OPEN, PeriodAction.LOCK): (
        "fiscal period must be closed before it can be locked"
    ),
    (PeriodStatus.CLOSED, PeriodAction.CLOSE): "the period is already closed",
    (PeriodStatus.LOCKED, PeriodAction.CLOSE): "locked fiscal periods are permanent",
    (PeriodStatus.LOCKED, PeriodAction.REOPEN): "locked fiscal periods cannot be reopened",
    (PeriodStatus.LOCKED, PeriodAction.LOCK): "the period is already locked",
}


def allowed_actions(status: PeriodStatus) -> frozenset[PeriodAction]:
    """Actions the period may take from ``status``."""
    return frozenset(action for (src, action) in _TRANSITIONS if src == status)


def _check(period: FiscalPeriodInfo, action: PeriodAction) -> PeriodStatus:
    if (period.status, action) not in _TRANSITIONS:
        raise InvalidTransitionError(
            period_name=period.name,
            current_status=period.status.value,
            action=action.value,
            reason=_REFUSALS.get((period.status, action), "transition not allowed"),
        )
    return _TRANSITIONS[(period.status, action)]


def close(period: FiscalPeriodInfo, actor: str, at: datetime) -> FiscalPeriodInfo:
    """OPEN -> CLOSED."""
    new_status = _check(period, PeriodAction.CLOSE)
    return replace(period, status=new_status, closed_by=actor, closed_at=at)


def reopen(period: FiscalPeriodInfo, actor: str, at: datetime) -> FiscalPeriodInfo:
    """
    CLOSED -> OPEN.

    The previous close stamp is kept so the period still shows who closed it
    last; the reopen stamp records who undid it.
    """
    new_status = _check(period, PeriodAction.REOPEN)
    return replace(period, status=new_status, reopened_by=actor, reopened_at=at)


def lock(period: FiscalPeriodInfo, actor: str, at: datetime) -> FiscalPeriodInfo:
    """CLOSED -> LOCKED.  Irreversible."""
    new_status = _check(period, PeriodAction.LOCK)
    return replace(period, status=new_status, locked_by=actor, locked_at=at)


def apply(
    period: FiscalPeriodInfo,
    action: PeriodAction,
    actor: str,
    at: datetime,
) -> FiscalPeriodInfo:
    """Dispatch ``action`` to close/reopen/lock."""
    return _APPLY[action](period, actor, at)


_APPLY = {
    PeriodAction.CLOSE: close,
    PeriodAction.REOPEN: reopen,
    PeriodAction.LOCK: lock,
}
