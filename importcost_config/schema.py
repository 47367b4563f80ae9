"""
Settings schema.

Frozen dataclasses the loader builds from YAML.  Every percentage is a
Decimal in [0, 100]; validation happens in ``__post_init__`` so an invalid
file fails at load time rather than at first use.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from importcost_kernel.domain.currency import CurrencyRegistry
from importcost_kernel.domain.records import ChannelSplit, ContainerPercentages
from importcost_kernel.domain.values import HUNDRED, ONE, ZERO


def _check_percent(name: str, value: Decimal) -> None:
    if value < ZERO or value > HUNDRED:
        raise ValueError(f"{name} must be within [0, 100], got {value}")


@dataclass(frozen=True)
class CurrencyDefault:
    code: str
    name: str
    default_rate: Decimal

    def __post_init__(self) -> None:
        object.__setattr__(self, "code", CurrencyRegistry.validate(self.code))
        if self.default_rate <= ZERO:
            raise ValueError(f"default_rate for {self.code} must be positive")


@dataclass(frozen=True)
class CurrencySettings:
    """hard_currency prices the lots; local_currency is what transfers are in."""

    hard_currency: str = "USD"
    local_currency: str = "CUP"
    catalog: tuple[CurrencyDefault, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "hard_currency", CurrencyRegistry.validate(self.hard_currency))
        object.__setattr__(self, "local_currency", CurrencyRegistry.validate(self.local_currency))


@dataclass(frozen=True)
class ContainerDefaults:
    hard_currency_percent: Decimal = Decimal("91")
    fiscal_percent: Decimal = Decimal("5")
    cash_percent: Decimal = Decimal("4")
    shrinkage_percent: Decimal = Decimal("2")
    profit_margin_percent: Decimal = Decimal("4")
    levy_margin_percent: Decimal = Decimal("15")
    commercial_margin_percent: Decimal = Decimal("85")
    other_expenses_percent: Decimal = Decimal("10")

    def __post_init__(self) -> None:
        for name in self.__dataclass_fields__:
            _check_percent(name, getattr(self, name))
        if not self.percentages().split.is_complete:
            raise ValueError("Default channel split must sum to 100")

    def percentages(self) -> ContainerPercentages:
        return ContainerPercentages(
            split=ChannelSplit(
                hard_currency=self.hard_currency_percent,
                fiscal=self.fiscal_percent,
                cash=self.cash_percent,
            ),
            shrinkage=self.shrinkage_percent,
            profit_margin=self.profit_margin_percent,
            levy_margin=self.levy_margin_percent,
            commercial_margin=self.commercial_margin_percent,
            other_expenses=self.other_expenses_percent,
        )


@dataclass(frozen=True)
class LotDefaults:
    fiscal_median: Decimal = Decimal("173")
    cash_median: Decimal = Decimal("173")
    pack_size: int = 24

    def __post_init__(self) -> None:
        if self.fiscal_median < ZERO or self.cash_median < ZERO:
            raise ValueError("Fiscal medians must not be negative")
        if self.pack_size < 1:
            raise ValueError(f"pack_size must be >= 1, got {self.pack_size}")


@dataclass(frozen=True)
class DistributionSettings:
    business_weekdays: frozenset[int] = frozenset({0, 1, 2, 3, 4, 5})
    variance: Decimal = Decimal("0.20")

    def __post_init__(self) -> None:
        if not self.business_weekdays or any(d < 0 or d > 6 for d in self.business_weekdays):
            raise ValueError("business_weekdays must be a non-empty subset of 0..6")
        if self.variance < ZERO or self.variance >= ONE:
            raise ValueError(f"variance must be within [0, 1), got {self.variance}")


@dataclass(frozen=True)
class Settings:
    currencies: CurrencySettings = field(default_factory=CurrencySettings)
    container: ContainerDefaults = field(default_factory=ContainerDefaults)
    lot: LotDefaults = field(default_factory=LotDefaults)
    distribution: DistributionSettings = field(default_factory=DistributionSettings)
    database_url: str = "sqlite:///importcost.db"
