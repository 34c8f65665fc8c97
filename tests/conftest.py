"""
Pytest fixtures for the period-control test suite.

Provides:
- In-memory SQLite sessions (tables created per test)
- A DeterministicClock
- In-memory fakes for the account directory and the journal pipeline
- Structured log capture
"""

import json
import logging
from datetime import datetime, timezone
from io import StringIO

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import finance_periods.models  # noqa: F401  (registers tables)
from finance_periods.config.schema import PeriodControlConfig
from finance_periods.db.base import Base
from finance_periods.domain.clock import DeterministicClock
from finance_periods.domain.dtos import AccountInfo, AccountType, OpeningBalanceLine
from finance_periods.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from finance_periods.services.audit_trail import AuditTrail
from finance_periods.services.fiscal_period_service import FiscalPeriodService
from finance_periods.services.period_store import PeriodStore
from finance_periods.services.posting_guard import PostingGuard

TENANT = "acme"
ACTOR = "controller@acme.test"


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture finance_periods logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, service):
            service.close_period(...)
            assert any(r["message"] == "period_closed" for r in captured_logs())
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("finance_periods")
    previous_level = root.level
    root.addHandler(handler)
    root.setLevel(logging.DEBUG)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Database
# =============================================================================


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, expire_on_commit=False)


@pytest.fixture
def session(session_factory):
    s = session_factory()
    yield s
    s.rollback()
    s.close()


# =============================================================================
# Clock, config, collaborators
# =============================================================================


@pytest.fixture
def clock():
    return DeterministicClock(datetime(2025, 3, 10, 9, 30, tzinfo=timezone.utc))


@pytest.fixture
def config():
    return PeriodControlConfig()


class FakeAccountDirectory:
    """Account directory backed by a dict."""

    def __init__(self, accounts=()):
        self._accounts = {a.id: a for a in accounts}
        self.lookups: list[str] = []

    def add(self, account: AccountInfo) -> AccountInfo:
        self._accounts[account.id] = account
        return account

    def get_account(self, account_id):
        self.lookups.append(account_id)
        return self._accounts.get(account_id)


class FakeJournalPipeline:
    """
    Journal pipeline that records posted entries.

    ``fail_next_post`` makes the next post_entry raise; ``entries_by_batch``
    can be pre-seeded to simulate an entry applied by an earlier attempt.
    """

    def __init__(self):
        self.posted = []
        self.entries_by_batch: dict[tuple[str, str], str] = {}
        self.fail_next_post: Exception | None = None

    def post_entry(self, entry):
        if self.fail_next_post is not None:
            exc, self.fail_next_post = self.fail_next_post, None
            raise exc
        entry_id = f"JE-{len(self.posted) + 1:04d}"
        self.posted.append(entry)
        self.entries_by_batch[(entry.tenant_id, entry.batch_id)] = entry_id
        return entry_id

    def find_entry_for_batch(self, tenant_id, batch_id):
        return self.entries_by_batch.get((tenant_id, batch_id))


@pytest.fixture
def accounts():
    return FakeAccountDirectory(
        [
            AccountInfo("acc-cash", "1000", "Cash", AccountType.ASSET),
            AccountInfo("acc-ar", "1200", "Accounts Receivable", AccountType.ASSET),
            AccountInfo("acc-ap", "2000", "Accounts Payable", AccountType.LIABILITY),
            AccountInfo("acc-loan", "2500", "Bank Loan", AccountType.LIABILITY),
            AccountInfo("acc-equity", "3000", "Owner's Equity", AccountType.EQUITY),
            AccountInfo("acc-sales", "4000", "Sales", AccountType.REVENUE),
            AccountInfo("acc-rent", "6000", "Rent Expense", AccountType.EXPENSE),
            AccountInfo("acc-old", "1900", "Old Petty Cash", AccountType.ASSET, is_active=False),
        ]
    )


@pytest.fixture
def journal():
    return FakeJournalPipeline()


# =============================================================================
# Services
# =============================================================================


@pytest.fixture
def store(session, clock):
    return PeriodStore(session, clock)


@pytest.fixture
def guard(store, config):
    return PostingGuard(store, config)


@pytest.fixture
def audit_trail(session, clock):
    return AuditTrail(session, clock)


@pytest.fixture
def service(session, accounts, journal, clock, config):
    return FiscalPeriodService(session, accounts, journal, clock=clock, config=config)


@pytest.fixture
def year_2025(service):
    """Fiscal year 2025 for TENANT, committed."""
    result = service.create_year(TENANT, 2025, ACTOR)
    assert result.is_success, result.message
    return result.fiscal_year


@pytest.fixture
def balanced_lines():
    return [
        OpeningBalanceLine("acc-cash", debit="15000.00"),
        OpeningBalanceLine("acc-ar", debit="5000.00"),
        OpeningBalanceLine("acc-ap", credit="4000.00"),
        OpeningBalanceLine("acc-loan", credit="6000.00"),
        OpeningBalanceLine("acc-equity", credit="10000.00"),
    ]
