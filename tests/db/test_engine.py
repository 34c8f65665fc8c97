"""Engine lifecycle and session scope."""

from datetime import date

import pytest
from sqlalchemy import inspect, select

from finance_periods.db import (
    create_tables,
    drop_tables,
    get_engine,
    get_session,
    init_engine_from_url,
    reset_engine,
    session_scope,
)
from finance_periods.db.engine import is_postgres
from finance_periods.models import FiscalYear


@pytest.fixture
def memory_engine():
    init_engine_from_url("sqlite:///:memory:")
    create_tables()
    yield get_engine()
    reset_engine()


def test_uninitialized_engine_raises():
    reset_engine()
    with pytest.raises(RuntimeError, match="not initialized"):
        get_engine()
    with pytest.raises(RuntimeError, match="not initialized"):
        get_session()
    assert is_postgres() is False


def test_create_tables(memory_engine):
    tables = set(inspect(memory_engine).get_table_names())
    assert {"fiscal_years", "fiscal_periods", "period_audit_records"} <= tables
    assert is_postgres() is False


def test_session_scope_commits(memory_engine):
    with session_scope() as session:
        session.add(
            FiscalYear(
                tenant_id="acme",
                year=2025,
                start_date=date(2025, 1, 1),
                end_date=date(2025, 12, 31),
                opening_balances_posted=False,
                created_by="alice",
            )
        )

    with session_scope() as session:
        years = session.execute(select(FiscalYear.year)).scalars().all()
    assert years == [2025]


def test_session_scope_rolls_back(memory_engine):
    with pytest.raises(ValueError):
        with session_scope() as session:
            session.add(
                FiscalYear(
                    tenant_id="acme",
                    year=2026,
                    start_date=date(2026, 1, 1),
                    end_date=date(2026, 12, 31),
                    opening_balances_posted=False,
                    created_by="alice",
                )
            )
            session.flush()
            raise ValueError("abort")

    with session_scope() as session:
        assert session.execute(select(FiscalYear)).first() is None


def test_drop_tables(memory_engine):
    drop_tables()
    assert inspect(memory_engine).get_table_names() == []
