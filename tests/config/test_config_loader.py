"""
Configuration loading tests.

Verifies:
- The packaged defaults parse into PeriodControlConfig
- DATABASE_URL overrides the file
- Unknown sections and keys, and invalid values, are rejected
"""

from decimal import Decimal

import pytest
import yaml

from finance_periods.config import DEFAULT_CONFIG_PATH, get_active_config
from finance_periods.config.loader import load_yaml_file, parse_config
from finance_periods.config.schema import PeriodControlConfig


class TestDefaults:
    def test_packaged_defaults(self, monkeypatch):
        monkeypatch.delenv("DATABASE_URL", raising=False)

        config = get_active_config()

        assert config.currency_code == "USD"
        assert config.balance_tolerance == Decimal("0.01")
        assert config.balance_sheet_account_types == frozenset({"asset", "liability", "equity"})
        assert config.allow_posting_without_periods is False
        assert config.database_url.startswith("postgresql://")

    def test_env_overrides_database_url(self, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "sqlite:///periods.db")
        assert get_active_config().database_url == "sqlite:///periods.db"

    def test_empty_document_gives_dataclass_defaults(self):
        assert parse_config({}) == PeriodControlConfig()

    def test_defaults_file_is_a_mapping(self):
        assert isinstance(load_yaml_file(DEFAULT_CONFIG_PATH), dict)


class TestParsing:
    def test_custom_file(self, tmp_path, monkeypatch):
        monkeypatch.delenv("DATABASE_URL", raising=False)
        path = tmp_path / "periods.yaml"
        path.write_text(
            yaml.safe_dump(
                {
                    "database_url": "sqlite:///:memory:",
                    "currency": {"code": "eur", "symbol": "EUR "},
                    "opening_balances": {"balance_tolerance": 0.05},
                    "posting_guard": {"allow_posting_without_periods": True},
                    "actors": {"max_length": 64},
                }
            )
        )

        config = get_active_config(path)

        assert config.currency_code == "EUR"
        assert config.currency_symbol == "EUR "
        assert config.balance_tolerance == Decimal("0.05")
        assert config.allow_posting_without_periods is True
        assert config.actor_max_length == 64

    def test_unknown_section(self):
        with pytest.raises(ValueError, match="Unknown configuration sections"):
            parse_config({"reporting": {}})

    def test_unknown_key(self):
        with pytest.raises(ValueError, match="Unknown keys in 'currency'"):
            parse_config({"currency": {"code": "USD", "decimals": 2}})

    def test_section_must_be_mapping(self):
        with pytest.raises(ValueError, match="must be a mapping"):
            parse_config({"currency": "USD"})

    def test_income_statement_types_rejected(self):
        with pytest.raises(ValueError, match="balance-sheet"):
            parse_config({"opening_balances": {"account_types": ["asset", "revenue"]}})

    @pytest.mark.parametrize("tolerance", ["0", "-0.01"])
    def test_tolerance_must_be_positive(self, tolerance):
        with pytest.raises(ValueError, match="positive"):
            parse_config({"opening_balances": {"balance_tolerance": tolerance}})

    def test_tolerance_must_be_numeric(self):
        with pytest.raises(ValueError, match="decimal number"):
            parse_config({"opening_balances": {"balance_tolerance": "a cent"}})

    def test_year_bounds_ordered(self):
        with pytest.raises(ValueError, match="cannot exceed"):
            parse_config({"fiscal_years": {"min_year": 2100, "max_year": 2000}})

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            get_active_config(tmp_path / "absent.yaml")

    def test_top_level_list_rejected(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ValueError, match="mapping"):
            load_yaml_file(path)
