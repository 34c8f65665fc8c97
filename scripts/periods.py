#!/usr/bin/env python3
"""
Operator CLI for fiscal period control.

Creates fiscal years, lists periods, closes / reopens / locks periods, and
answers posting-date questions against the configured database.

Usage:
  python3 scripts/periods.py init-db
  python3 scripts/periods.py create-year --tenant acme --year 2025 --actor alice
  python3 scripts/periods.py list --tenant acme --year 2025
  python3 scripts/periods.py close --tenant acme --year 2025 --period 3 --actor alice
  python3 scripts/periods.py reopen --tenant acme --year 2025 --period 3 --actor alice
  python3 scripts/periods.py lock --tenant acme --year 2025 --period 3 --actor alice
  python3 scripts/periods.py summary --tenant acme --year 2025
  python3 scripts/periods.py can-post --tenant acme --date 2025-03-15

The database URL comes from --db-url, else DATABASE_URL, else the config file.

Exit codes: 0 success, 1 request rejected, 2 usage error.
"""

import argparse
import sys
from datetime import date
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

EXIT_OK = 0
EXIT_REJECTED = 1
EXIT_USAGE = 2


class _NoAccounts:
    """The CLI does not post opening balances; no accounts resolve."""

    def get_account(self, account_id):
        return None


class _NoJournal:
    def post_entry(self, entry):
        raise RuntimeError("No journal posting pipeline is configured for the CLI")

    def find_entry_for_batch(self, tenant_id, batch_id):
        return None


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        description="Fiscal period control",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    p.add_argument("--config", type=Path, default=None, help="YAML config file (default: packaged defaults)")
    p.add_argument("--db-url", default=None, help="Database URL (overrides config and DATABASE_URL)")
    sub = p.add_subparsers(dest="command", required=True)

    sub.add_parser("init-db", help="Create tables")

    create = sub.add_parser("create-year", help="Create a fiscal year with 12 open periods")
    create.add_argument("--tenant", required=True)
    create.add_argument("--year", type=int, required=True)
    create.add_argument("--actor", required=True)

    listing = sub.add_parser("list", help="List a year's periods")
    listing.add_argument("--tenant", required=True)
    listing.add_argument("--year", type=int, required=True)

    for name, text in (
        ("close", "Close an open period"),
        ("reopen", "Reopen a closed period"),
        ("lock", "Permanently lock a closed period"),
    ):
        cmd = sub.add_parser(name, help=text)
        cmd.add_argument("--tenant", required=True)
        cmd.add_argument("--year", type=int, required=True)
        cmd.add_argument("--period", type=int, required=True, help="Period number 1-12")
        cmd.add_argument("--actor", required=True)

    summary = sub.add_parser("summary", help="Period status counts for a year")
    summary.add_argument("--tenant", required=True)
    summary.add_argument("--year", type=int, required=True)

    can_post = sub.add_parser("can-post", help="Check whether a date accepts postings")
    can_post.add_argument("--tenant", required=True)
    can_post.add_argument("--date", type=date.fromisoformat, required=True, help="YYYY-MM-DD")

    return p


def _print_result(result) -> int:
    if result.is_success:
        print(result.message)
        return EXIT_OK
    print(f"ERROR [{result.error_code}]: {result.message}", file=sys.stderr)
    return EXIT_REJECTED


def _run(args, service) -> int:
    from finance_periods.exceptions import FiscalYearNotFoundError

    if args.command == "create-year":
        return _print_result(service.create_year(args.tenant, args.year, args.actor))

    if args.command == "list":
        periods = service.list_periods(args.tenant, args.year)
        if not periods:
            print(f"ERROR: no fiscal year {args.year} for tenant {args.tenant}", file=sys.stderr)
            return EXIT_REJECTED
        print(f"  {'Period':<10} {'Start':<12} {'End':<12} {'Status':<8} Last change")
        for p in periods:
            last = p.locked_by or p.reopened_by or p.closed_by or ""
            print(f"  {p.name:<10} {p.start_date.isoformat():<12} {p.end_date.isoformat():<12} {p.status.value:<8} {last}")
        return EXIT_OK

    if args.command in ("close", "reopen", "lock"):
        period = service.get_period(args.tenant, args.year, args.period)
        if period is None:
            print(f"ERROR: no period {args.year}-{args.period:02d} for tenant {args.tenant}", file=sys.stderr)
            return EXIT_REJECTED
        action = {
            "close": service.close_period,
            "reopen": service.reopen_period,
            "lock": service.lock_period,
        }[args.command]
        return _print_result(action(args.tenant, period.id, args.actor))

    if args.command == "summary":
        try:
            s = service.get_year_summary(args.tenant, args.year)
        except FiscalYearNotFoundError as exc:
            print(f"ERROR [{exc.code}]: {exc}", file=sys.stderr)
            return EXIT_REJECTED
        print(f"  Fiscal year {s.year} ({s.tenant_id})")
        print(f"    open:    {s.open_count}")
        print(f"    closed:  {s.closed_count}")
        print(f"    locked:  {s.locked_count}")
        print(f"    opening balances posted: {'yes' if s.opening_balances_posted else 'no'}")
        return EXIT_OK

    if args.command == "can-post":
        decision = service.posting_guard.check(args.tenant, args.date)
        if decision.allowed:
            print(f"yes: entries dated {args.date.isoformat()} can be posted")
            return EXIT_OK
        print(f"no: {decision.message}")
        return EXIT_REJECTED

    raise AssertionError(f"unhandled command {args.command}")


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    try:
        args = parser.parse_args(argv)
    except SystemExit as exc:
        return EXIT_USAGE if exc.code else EXIT_OK

    from finance_periods.config import get_active_config
    from finance_periods.db.engine import create_tables, get_session, init_engine_from_url
    from finance_periods.logging_config import configure_logging
    from finance_periods.services.fiscal_period_service import FiscalPeriodService

    try:
        config = get_active_config(args.config)
    except (FileNotFoundError, ValueError) as exc:
        print(f"ERROR: invalid configuration: {exc}", file=sys.stderr)
        return EXIT_USAGE

    configure_logging(level=config.log_level)
    init_engine_from_url(args.db_url or config.database_url)

    if args.command == "init-db":
        create_tables()
        print("Tables created")
        return EXIT_OK

    session = get_session()
    try:
        service = FiscalPeriodService(
            session,
            _NoAccounts(),
            _NoJournal(),
            config=config,
        )
        return _run(args, service)
    finally:
        session.close()


if __name__ == "__main__":
    sys.exit(main())
