"""
Configuration loader (``finance_periods.config.loader``).

Responsibility
--------------
Loads a YAML configuration file and parses it into a frozen
``PeriodControlConfig``.  The single public entry point for runtime
configuration is ``finance_periods.config.get_active_config()``.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Unknown sections or keys, or invalid values  -> ``ValueError``.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from finance_periods.config.schema import PeriodControlConfig

_BALANCE_SHEET_TYPES = frozenset({"asset", "liability", "equity"})

_KNOWN_SECTIONS: dict[str, frozenset[str] | None] = {
    "database_url": None,
    "currency": frozenset({"code", "symbol"}),
    "opening_balances": frozenset({"balance_tolerance", "account_types"}),
    "posting_guard": frozenset({"allow_posting_without_periods"}),
    "fiscal_years": frozenset({"min_year", "max_year"}),
    "actors": frozenset({"max_length"}),
    "logging": frozenset({"level"}),
}


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the document is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top-level YAML document must be a mapping")
    return data


def _check_keys(data: dict[str, Any]) -> None:
    unknown = set(data) - set(_KNOWN_SECTIONS)
    if unknown:
        raise ValueError(f"Unknown configuration sections: {sorted(unknown)}")
    for section, allowed in _KNOWN_SECTIONS.items():
        if allowed is None or section not in data:
            continue
        body = data[section]
        if not isinstance(body, dict):
            raise ValueError(f"Configuration section '{section}' must be a mapping")
        extra = set(body) - allowed
        if extra:
            raise ValueError(f"Unknown keys in '{section}': {sorted(extra)}")


def parse_decimal(value: Any, name: str) -> Decimal:
    """Parse a Decimal from a YAML scalar; floats go through ``str`` first."""
    try:
        result = Decimal(str(value))
    except InvalidOperation as exc:
        raise ValueError(f"{name} must be a decimal number, got {value!r}") from exc
    if not result.is_finite():
        raise ValueError(f"{name} must be finite, got {value!r}")
    return result


def parse_account_types(values: Any) -> frozenset[str]:
    """Parse the list of account types accepted for opening balances."""
    if not isinstance(values, list) or not values:
        raise ValueError("opening_balances.account_types must be a non-empty list")
    parsed = frozenset(str(v).strip().lower() for v in values)
    invalid = parsed - _BALANCE_SHEET_TYPES
    if invalid:
        raise ValueError(
            f"opening_balances.account_types may only contain balance-sheet "
            f"types {sorted(_BALANCE_SHEET_TYPES)}, got {sorted(invalid)}"
        )
    return parsed


def parse_config(data: dict[str, Any]) -> PeriodControlConfig:
    """
    Parse a ``PeriodControlConfig`` from a dict.

    Absent sections fall back to the dataclass defaults.
    """
    _check_keys(data)
    defaults = PeriodControlConfig()

    currency = data.get("currency", {})
    opening = data.get("opening_balances", {})
    guard = data.get("posting_guard", {})
    years = data.get("fiscal_years", {})
    actors = data.get("actors", {})
    logging_section = data.get("logging", {})

    account_types = (
        parse_account_types(opening["account_types"])
        if "account_types" in opening
        else defaults.balance_sheet_account_types
    )
    tolerance = (
        parse_decimal(opening["balance_tolerance"], "opening_balances.balance_tolerance")
        if "balance_tolerance" in opening
        else defaults.balance_tolerance
    )

    return PeriodControlConfig(
        database_url=str(data.get("database_url", defaults.database_url)),
        currency_code=str(currency.get("code", defaults.currency_code)).upper(),
        currency_symbol=str(currency.get("symbol", defaults.currency_symbol)),
        balance_tolerance=tolerance,
        balance_sheet_account_types=account_types,
        allow_posting_without_periods=bool(
            guard.get(
                "allow_posting_without_periods",
                defaults.allow_posting_without_periods,
            )
        ),
        min_year=int(years.get("min_year", defaults.min_year)),
        max_year=int(years.get("max_year", defaults.max_year)),
        actor_max_length=int(actors.get("max_length", defaults.actor_max_length)),
        log_level=str(logging_section.get("level", defaults.log_level)).upper(),
    )
