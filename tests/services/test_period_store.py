"""
PeriodStore persistence tests.

Verifies:
- A created year has exactly twelve contiguous Open periods
- Duplicate years are refused, including a concurrent creator that slips
  past the existence check
- Compare-and-swap status writes reject stale snapshots
- The opening balance flag flips exactly once
- Stored status strings are parsed, never trusted
"""

from datetime import date, timedelta

import pytest
from sqlalchemy import delete, update

from finance_periods.domain import period_state
from finance_periods.domain.dtos import PeriodStatus
from finance_periods.exceptions import (
    ConcurrentModificationError,
    CorruptRecordError,
    FiscalYearAlreadyExistsError,
    IncompleteFiscalYearError,
    OpeningBalancesAlreadyPostedError,
)
from finance_periods.models.fiscal_period import FiscalPeriod

TENANT = "acme"
ACTOR = "controller@acme.test"


class TestCreateYear:
    def test_creates_twelve_open_periods(self, store, session):
        fiscal_year, periods = store.create_year(TENANT, 2025, ACTOR)
        session.commit()

        assert fiscal_year.year == 2025
        assert fiscal_year.start_date == date(2025, 1, 1)
        assert fiscal_year.end_date == date(2025, 12, 31)
        assert fiscal_year.opening_balances_posted is False
        assert fiscal_year.created_by == ACTOR

        assert [p.period for p in periods] == list(range(1, 13))
        assert all(p.status == PeriodStatus.OPEN for p in periods)
        assert all(p.version == 1 for p in periods)
        assert all(p.fiscal_year_id == fiscal_year.id for p in periods)

    def test_periods_are_contiguous(self, store):
        _, periods = store.create_year(TENANT, 2024, ACTOR)

        assert periods[1].end_date == date(2024, 2, 29)
        for prev, nxt in zip(periods, periods[1:]):
            assert nxt.start_date == prev.end_date + timedelta(days=1)

    def test_duplicate_year_refused(self, store, session):
        store.create_year(TENANT, 2025, ACTOR)
        session.commit()

        with pytest.raises(FiscalYearAlreadyExistsError) as exc_info:
            store.create_year(TENANT, 2025, ACTOR)
        assert exc_info.value.year == 2025

    def test_concurrent_creator_hits_unique_constraint(self, store, session, monkeypatch, captured_logs):
        store.create_year(TENANT, 2025, ACTOR)
        session.commit()

        # Existence check misses the row a concurrent request just committed
        monkeypatch.setattr(store, "get_year", lambda *args, **kwargs: None)

        with pytest.raises(FiscalYearAlreadyExistsError):
            store.create_year(TENANT, 2025, ACTOR)

        assert len(store.list_periods(TENANT, 2025)) == 12
        assert any(
            r["message"] == "concurrent_fiscal_year_create_conflict" for r in captured_logs()
        )

    def test_same_year_for_other_tenant_is_independent(self, store):
        store.create_year(TENANT, 2025, ACTOR)
        fiscal_year, periods = store.create_year("globex", 2025, ACTOR)

        assert fiscal_year.tenant_id == "globex"
        assert len(periods) == 12


class TestIntegrity:
    def test_missing_period_detected(self, store, session, captured_logs):
        store.create_year(TENANT, 2025, ACTOR)
        session.execute(delete(FiscalPeriod).where(FiscalPeriod.period == 12))
        session.commit()

        with pytest.raises(IncompleteFiscalYearError) as exc_info:
            store.verify_year_integrity(TENANT, 2025)

        assert exc_info.value.period_count == 11
        assert any(
            r["message"] == "fiscal_year_incomplete" and r["level"] == "CRITICAL"
            for r in captured_logs()
        )

    def test_complete_year_passes(self, store):
        store.create_year(TENANT, 2025, ACTOR)
        assert store.verify_year_integrity(TENANT, 2025) == 12

    def test_unknown_status_is_corrupt(self, store, session):
        store.create_year(TENANT, 2025, ACTOR)
        session.execute(
            update(FiscalPeriod)
            .where(FiscalPeriod.period == 4)
            .values(status="frozen")
        )
        session.commit()

        with pytest.raises(CorruptRecordError) as exc_info:
            store.get_period_by_number(TENANT, 2025, 4)
        assert exc_info.value.value == "frozen"


class TestLookups:
    def test_period_for_date(self, store):
        store.create_year(TENANT, 2025, ACTOR)

        period = store.get_period_for_date(TENANT, date(2025, 3, 31))
        assert period.name == "2025-03"

        assert store.get_period_for_date(TENANT, date(2026, 1, 1)) is None
        assert store.get_period_for_date("globex", date(2025, 3, 31)) is None

    def test_get_period_with_bad_id(self, store):
        store.create_year(TENANT, 2025, ACTOR)
        assert store.get_period(TENANT, "not-a-uuid") is None

    def test_get_period_scoped_to_tenant(self, store):
        _, periods = store.create_year(TENANT, 2025, ACTOR)
        assert store.get_period("globex", periods[0].id) is None
        assert store.get_period(TENANT, str(periods[0].id)).period == 1

    def test_get_year_by_id(self, store):
        fiscal_year, _ = store.create_year(TENANT, 2025, ACTOR)
        assert store.get_year_by_id(TENANT, fiscal_year.id).year == 2025
        assert store.get_year_by_id("globex", fiscal_year.id) is None


class TestSavePeriod:
    def test_save_increments_version(self, store, clock):
        _, periods = store.create_year(TENANT, 2025, ACTOR)
        current = periods[2]

        closed = period_state.close(current, ACTOR, clock.now())
        stored = store.save_period(closed, current.status, current.version)

        assert stored.status == PeriodStatus.CLOSED
        assert stored.version == 2
        assert stored.closed_by == ACTOR

    def test_stale_snapshot_rejected(self, store, clock, captured_logs):
        _, periods = store.create_year(TENANT, 2025, ACTOR)
        snapshot = periods[2]

        store.save_period(
            period_state.close(snapshot, "first", clock.now()),
            snapshot.status,
            snapshot.version,
        )

        with pytest.raises(ConcurrentModificationError):
            store.save_period(
                period_state.close(snapshot, "second", clock.now()),
                snapshot.status,
                snapshot.version,
            )

        assert store.get_period(TENANT, snapshot.id).closed_by == "first"
        assert any(r["message"] == "period_cas_conflict" for r in captured_logs())


class TestOpeningBalanceFlag:
    def test_claim_then_record(self, store):
        fiscal_year, _ = store.create_year(TENANT, 2025, ACTOR)

        store.claim_opening_balances(TENANT, fiscal_year.id, 2025, "opening:acme:2025")
        claimed = store.get_year(TENANT, 2025)
        assert claimed.opening_balances_posted is True
        assert claimed.opening_balance_batch_id == "opening:acme:2025"
        assert claimed.opening_balance_entry_id is None

        store.record_opening_balance_entry(TENANT, fiscal_year.id, "opening:acme:2025", "JE-1")
        assert store.get_year(TENANT, 2025).opening_balance_entry_id == "JE-1"

    def test_second_claim_is_refused(self, store, captured_logs):
        fiscal_year, _ = store.create_year(TENANT, 2025, ACTOR)
        store.claim_opening_balances(TENANT, fiscal_year.id, 2025, "opening:acme:2025")
        store.record_opening_balance_entry(TENANT, fiscal_year.id, "opening:acme:2025", "JE-1")

        with pytest.raises(OpeningBalancesAlreadyPostedError) as exc_info:
            store.claim_opening_balances(TENANT, fiscal_year.id, 2025, "other")

        assert exc_info.value.entry_id == "JE-1"
        assert store.get_year(TENANT, 2025).opening_balance_batch_id == "opening:acme:2025"
        assert any(r["message"] == "opening_balances_claim_conflict" for r in captured_logs())

    def test_record_requires_matching_claim(self, store):
        fiscal_year, _ = store.create_year(TENANT, 2025, ACTOR)

        with pytest.raises(ConcurrentModificationError):
            store.record_opening_balance_entry(TENANT, fiscal_year.id, "opening:acme:2025", "JE-1")

        store.claim_opening_balances(TENANT, fiscal_year.id, 2025, "opening:acme:2025")
        with pytest.raises(ConcurrentModificationError):
            store.record_opening_balance_entry(TENANT, fiscal_year.id, "other", "JE-1")

        store.record_opening_balance_entry(TENANT, fiscal_year.id, "opening:acme:2025", "JE-1")
        with pytest.raises(ConcurrentModificationError):
            store.record_opening_balance_entry(TENANT, fiscal_year.id, "opening:acme:2025", "JE-2")
