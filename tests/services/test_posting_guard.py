"""
Posting guard tests.

Verifies:
- Dates inside Open periods may be posted
- Dates inside Closed or Locked periods are refused with a reason
- Dates with no covering period are refused unless configured otherwise
- assert_can_post raises the matching typed error
"""

from datetime import date

import pytest

from finance_periods.config.schema import PeriodControlConfig
from finance_periods.domain.dtos import PostingDenialReason
from finance_periods.exceptions import ClosedPeriodError, PeriodNotFoundError
from finance_periods.services.posting_guard import PostingGuard

TENANT = "acme"
ACTOR = "controller@acme.test"


def _period_id(service, month):
    return service.get_period(TENANT, 2025, month).id


class TestOpenPeriods:
    def test_open_period_allows_posting(self, guard, year_2025):
        decision = guard.check(TENANT, date(2025, 3, 15))

        assert decision.allowed is True
        assert decision.reason is None
        assert decision.period.name == "2025-03"

    def test_boundary_days_belong_to_their_month(self, service, guard, year_2025):
        service.close_period(TENANT, _period_id(service, 3), ACTOR)

        assert guard.can_post(TENANT, date(2025, 2, 28)) is True
        assert guard.can_post(TENANT, date(2025, 3, 1)) is False
        assert guard.can_post(TENANT, date(2025, 3, 31)) is False
        assert guard.can_post(TENANT, date(2025, 4, 1)) is True


class TestClosedAndLocked:
    def test_closed_march_refuses_march_15(self, service, guard, year_2025, captured_logs):
        result = service.close_period(TENANT, _period_id(service, 3), ACTOR)
        assert result.is_success

        decision = guard.check(TENANT, date(2025, 3, 15))

        assert decision.allowed is False
        assert decision.reason == PostingDenialReason.PERIOD_CLOSED
        assert decision.message == (
            "Fiscal period 2025-03 is closed. Reopen the period to post entries."
        )
        assert service.can_post(TENANT, date(2025, 3, 15)) is False

        denials = [r for r in captured_logs() if r["message"] == "posting_denied"]
        assert denials[-1]["level"] == "WARNING"
        assert denials[-1]["reason"] == "period_closed"
        assert denials[-1]["posting_date"] == "2025-03-15"

    def test_reopened_period_allows_posting_again(self, service, guard, year_2025):
        period_id = _period_id(service, 3)
        service.close_period(TENANT, period_id, ACTOR)
        service.reopen_period(TENANT, period_id, ACTOR)

        assert guard.can_post(TENANT, date(2025, 3, 15)) is True

    def test_locked_period_refused(self, service, guard, year_2025):
        period_id = _period_id(service, 3)
        service.close_period(TENANT, period_id, ACTOR)
        service.lock_period(TENANT, period_id, ACTOR)

        decision = guard.check(TENANT, date(2025, 3, 15))
        assert decision.allowed is False
        assert decision.reason == PostingDenialReason.PERIOD_LOCKED
        assert decision.message == (
            "Fiscal period 2025-03 is locked. "
            "Locked periods are permanent; date the entry in an open period."
        )
        assert "Reopen" not in decision.message

    def test_assert_can_post_raises_closed_period(self, service, guard, year_2025):
        service.close_period(TENANT, _period_id(service, 3), ACTOR)

        with pytest.raises(ClosedPeriodError) as exc_info:
            guard.assert_can_post(TENANT, date(2025, 3, 15))

        err = exc_info.value
        assert err.period_name == "2025-03"
        assert err.status == "closed"
        assert err.posting_date == "2025-03-15"
        assert str(err).endswith("Reopen the period to post entries.")

    def test_assert_can_post_on_locked_period_does_not_suggest_reopening(self, service, guard, year_2025):
        period_id = _period_id(service, 3)
        service.close_period(TENANT, period_id, ACTOR)
        service.lock_period(TENANT, period_id, ACTOR)

        with pytest.raises(ClosedPeriodError) as exc_info:
            guard.assert_can_post(TENANT, date(2025, 3, 15))

        assert exc_info.value.status == "locked"
        assert "Reopen" not in str(exc_info.value)
        assert "date the entry in an open period" in str(exc_info.value)


class TestNoPeriod:
    def test_date_outside_any_year_is_refused(self, guard, year_2025):
        decision = guard.check(TENANT, date(2026, 1, 5))

        assert decision.allowed is False
        assert decision.reason == PostingDenialReason.NO_PERIOD
        assert decision.period is None

    def test_other_tenant_has_no_periods(self, guard, year_2025):
        assert guard.can_post("globex", date(2025, 3, 15)) is False

    def test_assert_can_post_raises_not_found(self, guard):
        with pytest.raises(PeriodNotFoundError):
            guard.assert_can_post(TENANT, date(2025, 3, 15))

    def test_allow_posting_without_periods(self, store):
        guard = PostingGuard(store, PeriodControlConfig(allow_posting_without_periods=True))

        decision = guard.check(TENANT, date(2030, 6, 1))
        assert decision.allowed is True
        assert decision.period is None

    def test_configured_allowance_does_not_open_closed_periods(self, service, store, year_2025):
        service.close_period(TENANT, _period_id(service, 3), ACTOR)
        guard = PostingGuard(store, PeriodControlConfig(allow_posting_without_periods=True))

        assert guard.can_post(TENANT, date(2025, 3, 15)) is False
