"""
PeriodControlConfig schema.

The frozen runtime configuration for the period-control engine.  YAML files
are parsed into this type by ``finance_periods.config.loader``; services
receive it through constructor injection and never read files or the
environment themselves.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal


@dataclass(frozen=True)
class PeriodControlConfig:
    """Runtime settings for period control and opening balance validation."""

    database_url: str = "sqlite:///:memory:"
    currency_code: str = "USD"
    currency_symbol: str = "$"
    balance_tolerance: Decimal = Decimal("0.01")
    balance_sheet_account_types: frozenset[str] = field(
        default_factory=lambda: frozenset({"asset", "liability", "equity"})
    )
    allow_posting_without_periods: bool = False
    min_year: int = 1900
    max_year: int = 2999
    actor_max_length: int = 255
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if self.balance_tolerance <= 0:
            raise ValueError(
                f"balance_tolerance must be positive, got {self.balance_tolerance}"
            )
        if self.min_year > self.max_year:
            raise ValueError(
                f"min_year ({self.min_year}) cannot exceed max_year ({self.max_year})"
            )
        if self.min_year < 1 or self.max_year > 9999:
            raise ValueError("fiscal year bounds must lie within 1..9999")
        if self.actor_max_length < 1:
            raise ValueError("actor_max_length must be at least 1")
        if not self.balance_sheet_account_types:
            raise ValueError("balance_sheet_account_types cannot be empty")
