"""
YAML loader: reads a settings file and builds the frozen schema.

Failure modes:
    * Missing file       -> ``FileNotFoundError`` propagates.
    * Malformed YAML     -> ``yaml.YAMLError`` propagates.
    * Invalid values     -> ``ValueError`` from the schema constructors.

Unknown keys are ignored; missing sections fall back to schema defaults.
Decimals are parsed from their YAML text so that 0.20 stays exactly 0.20.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from importcost_config.schema import (
    ContainerDefaults,
    CurrencyDefault,
    CurrencySettings,
    DistributionSettings,
    LotDefaults,
    Settings,
)

_WEEKDAY_NAMES = {
    "monday": 0,
    "tuesday": 1,
    "wednesday": 2,
    "thursday": 3,
    "friday": 4,
    "saturday": 5,
    "sunday": 6,
}


def load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a single YAML file; an empty file yields an empty dict."""
    with open(path) as f:
        return yaml.safe_load(f) or {}


def parse_decimal(value: Any) -> Decimal:
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError) as e:
        raise ValueError(f"Cannot parse decimal from {value!r}") from e


def parse_weekday(value: Any) -> int:
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.lower() in _WEEKDAY_NAMES:
        return _WEEKDAY_NAMES[value.lower()]
    raise ValueError(f"Unknown weekday {value!r}")


def parse_currencies(data: dict[str, Any]) -> CurrencySettings:
    catalog = tuple(
        CurrencyDefault(
            code=entry["code"],
            name=entry.get("name", entry["code"]),
            default_rate=parse_decimal(entry["default_rate"]),
        )
        for entry in data.get("catalog", [])
    )
    return CurrencySettings(
        hard_currency=data.get("hard_currency", "USD"),
        local_currency=data.get("local_currency", "CUP"),
        catalog=catalog,
    )


def parse_container_defaults(data: dict[str, Any]) -> ContainerDefaults:
    return ContainerDefaults(
        **{key: parse_decimal(value) for key, value in data.items()
           if key in ContainerDefaults.__dataclass_fields__}
    )


def parse_lot_defaults(data: dict[str, Any]) -> LotDefaults:
    kwargs: dict[str, Any] = {}
    if "fiscal_median" in data:
        kwargs["fiscal_median"] = parse_decimal(data["fiscal_median"])
    if "cash_median" in data:
        kwargs["cash_median"] = parse_decimal(data["cash_median"])
    if "pack_size" in data:
        kwargs["pack_size"] = int(data["pack_size"])
    return LotDefaults(**kwargs)


def parse_distribution(data: dict[str, Any]) -> DistributionSettings:
    kwargs: dict[str, Any] = {}
    if "business_weekdays" in data:
        kwargs["business_weekdays"] = frozenset(
            parse_weekday(d) for d in data["business_weekdays"]
        )
    if "variance" in data:
        kwargs["variance"] = parse_decimal(data["variance"])
    return DistributionSettings(**kwargs)


def parse_settings(data: dict[str, Any]) -> Settings:
    kwargs: dict[str, Any] = {
        "currencies": parse_currencies(data.get("currencies") or {}),
        "container": parse_container_defaults(data.get("container") or {}),
        "lot": parse_lot_defaults(data.get("lot") or {}),
        "distribution": parse_distribution(data.get("distribution") or {}),
    }
    if "database_url" in data:
        kwargs["database_url"] = str(data["database_url"])
    return Settings(**kwargs)


def merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursive dict merge; override wins, lists are replaced whole."""
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge(merged[key], value)
        else:
            merged[key] = value
    return merged
