"""
finance_periods.config -- single public entrypoint for runtime configuration.

Services never read configuration files or environment variables directly;
the composition root calls ``get_active_config()`` once and injects the
frozen ``PeriodControlConfig``.
"""

from __future__ import annotations

import os
from dataclasses import replace
from pathlib import Path

from finance_periods.config.loader import load_yaml_file, parse_config
from finance_periods.config.schema import PeriodControlConfig
from finance_periods.logging_config import get_logger

logger = get_logger("config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "defaults.yaml"

__all__ = [
    "DEFAULT_CONFIG_PATH",
    "PeriodControlConfig",
    "get_active_config",
]


def get_active_config(path: Path | None = None) -> PeriodControlConfig:
    """
    Load the active configuration.

    Args:
        path: YAML file to load.  Defaults to the packaged defaults.yaml.

    Returns:
        Frozen PeriodControlConfig.  A ``DATABASE_URL`` environment variable
        overrides the file's ``database_url``.

    Raises:
        FileNotFoundError: If ``path`` does not exist.
        ValueError: If the file fails validation.
    """
    config_path = path or DEFAULT_CONFIG_PATH
    config = parse_config(load_yaml_file(config_path))

    env_url = os.environ.get("DATABASE_URL")
    if env_url:
        config = replace(config, database_url=env_url)

    logger.info(
        "config_loaded",
        extra={
            "config_path": str(config_path),
            "currency": config.currency_code,
            "balance_tolerance": str(config.balance_tolerance),
            "database_url_from_env": bool(env_url),
        },
    )
    return config
