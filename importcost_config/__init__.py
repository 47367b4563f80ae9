"""
importcost_config -- single public entrypoint for runtime settings.

Responsibility:
    Provides the ONLY way to obtain settings at runtime through
    ``get_settings()``.  Shipped defaults live in ``defaults.yaml`` next to
    this module; an override file (explicit path, or the IMPORTCOST_CONFIG
    environment variable) is merged on top of them.

Architecture position:
    Configuration -- sits above ``importcost_kernel`` and below
    ``importcost_services``.  The kernel and the engines MUST NEVER import
    from this package.

Failure modes:
    - ``FileNotFoundError`` -- an override path that does not exist.
    - ``ValueError`` -- invalid values (percentages outside [0, 100], a
      channel split not summing to 100, unknown currency codes).

Not configurable:
    The cash 0.90 factor, the 11 % levy and the 35 % profit tax are fixed
    business policy and live in importcost_engines.pricing.
"""

from __future__ import annotations

import os
from pathlib import Path

from importcost_config.loader import load_yaml_file, merge, parse_settings
from importcost_config.schema import (
    ContainerDefaults,
    CurrencyDefault,
    CurrencySettings,
    DistributionSettings,
    LotDefaults,
    Settings,
)
from importcost_kernel.logging_config import get_logger

_logger = get_logger("config")

DEFAULTS_PATH = Path(__file__).parent / "defaults.yaml"
ENV_VAR = "IMPORTCOST_CONFIG"


def get_settings(path: Path | str | None = None) -> Settings:
    """
    Load settings: shipped defaults, then the override file if any.

    Args:
        path: Override file. When None, IMPORTCOST_CONFIG is consulted.
    """
    data = load_yaml_file(DEFAULTS_PATH)
    override = path if path is not None else os.environ.get(ENV_VAR)
    if override:
        data = merge(data, load_yaml_file(Path(override)))

    settings = parse_settings(data)
    _logger.info(
        "settings_loaded",
        extra={
            "override": str(override) if override else None,
            "hard_currency": settings.currencies.hard_currency,
            "local_currency": settings.currencies.local_currency,
        },
    )
    return settings


__all__ = [
    "ContainerDefaults",
    "CurrencyDefault",
    "CurrencySettings",
    "DistributionSettings",
    "LotDefaults",
    "Settings",
    "get_settings",
]
