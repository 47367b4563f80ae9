"""
Records -- Explicit tagged records passed between layers.

Responsibility:
    Defines the immutable records that carry containers, lots, expenses,
    rates, products, movements, transfers and sale lines between the
    persistence collaborator, the services and the pure engines. Each
    record validates itself at construction so that engines can trust
    their inputs.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Imports only importcost_kernel.domain.values and currency.

Invariants enforced:
    - Percentages are finite Decimals in [0, 100].
    - Quantities are positive integers; amounts and rates are positive.
    - Currency codes are registered ISO 4217 codes.
    - Records are frozen: an engine can never mutate its caller's data.

Failure modes:
    - ValueError on any violated field constraint (programming-error
      class; the API layer validates user input before it gets here).
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from importcost_kernel.domain.currency import CurrencyRegistry
from importcost_kernel.domain.values import HUNDRED, ZERO, is_close, to_decimal

SPLIT_TOLERANCE = Decimal("0.01")


class Channel(str, Enum):
    """The three sale channels. Fiscal revenue is what bank transfers collect."""

    HARD_CURRENCY = "hard_currency"
    FISCAL = "fiscal"
    CASH = "cash"


class MovementKind(str, Enum):
    """Inventory ledger entry kinds."""

    ENTRY = "entry"
    EXIT = "exit"
    SHRINKAGE = "shrinkage"
    ADJUSTMENT_IN = "adjustment_in"
    ADJUSTMENT_OUT = "adjustment_out"

    @property
    def increases_stock(self) -> bool:
        return self in (MovementKind.ENTRY, MovementKind.ADJUSTMENT_IN)

    def signed(self, quantity: int) -> int:
        """Quantity with the sign this kind applies to stock."""
        return quantity if self.increases_stock else -quantity


class AllocationMode(str, Enum):
    """MANUAL uses the caller's percentages; AUTO derives them from stock."""

    MANUAL = "manual"
    AUTO = "auto"


def _percent(name: str, value: Any) -> Decimal:
    result = to_decimal(value)
    if result < ZERO or result > HUNDRED:
        raise ValueError(f"{name} must be within [0, 100], got {result}")
    return result


def _positive(name: str, value: Any) -> Decimal:
    result = to_decimal(value)
    if result <= ZERO:
        raise ValueError(f"{name} must be positive, got {result}")
    return result


def _non_negative(name: str, value: Any) -> Decimal:
    result = to_decimal(value)
    if result < ZERO:
        raise ValueError(f"{name} must not be negative, got {result}")
    return result


def _positive_int(name: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValueError(f"{name} must be a positive integer, got {value!r}")
    return value


@dataclass(frozen=True)
class ChannelSplit:
    """
    Sale-channel percentages of a container.

    The sum is NOT checked here: only the public update path requires it
    to be 100 (see ``is_complete``).
    """

    hard_currency: Decimal
    fiscal: Decimal
    cash: Decimal

    def __post_init__(self) -> None:
        object.__setattr__(self, "hard_currency", _percent("hard_currency", self.hard_currency))
        object.__setattr__(self, "fiscal", _percent("fiscal", self.fiscal))
        object.__setattr__(self, "cash", _percent("cash", self.cash))

    @property
    def total(self) -> Decimal:
        return self.hard_currency + self.fiscal + self.cash

    @property
    def is_complete(self) -> bool:
        """True when the split sums to 100 within tolerance."""
        return is_close(self.total, HUNDRED, SPLIT_TOLERANCE)

    def for_channel(self, channel: Channel) -> Decimal:
        match channel:
            case Channel.HARD_CURRENCY:
                return self.hard_currency
            case Channel.FISCAL:
                return self.fiscal
            case Channel.CASH:
                return self.cash


@dataclass(frozen=True)
class ContainerPercentages:
    """
    Container-wide percentages.

    ``profit_margin`` drives the sale price; ``levy_margin`` (levy plus
    margin) is what recalculation stamps onto every lot's margin field.
    """

    split: ChannelSplit
    shrinkage: Decimal
    profit_margin: Decimal
    levy_margin: Decimal
    commercial_margin: Decimal
    other_expenses: Decimal

    def __post_init__(self) -> None:
        for name in (
            "shrinkage",
            "profit_margin",
            "levy_margin",
            "commercial_margin",
            "other_expenses",
        ):
            object.__setattr__(self, name, _percent(name, getattr(self, name)))


@dataclass(frozen=True)
class LotSnapshot:
    """One imported lot as loaded for recalculation."""

    lot_id: UUID
    product_id: UUID
    quantity: int
    unit_price_usd: Decimal
    import_value_usd: Decimal
    fiscal_median: Decimal
    cash_median: Decimal
    shrinkage_percent: Decimal | None = None
    margin_percent: Decimal | None = None

    def __post_init__(self) -> None:
        _positive_int("quantity", self.quantity)
        object.__setattr__(self, "unit_price_usd", _non_negative("unit_price_usd", self.unit_price_usd))
        object.__setattr__(self, "import_value_usd", _non_negative("import_value_usd", self.import_value_usd))
        object.__setattr__(self, "fiscal_median", _non_negative("fiscal_median", self.fiscal_median))
        object.__setattr__(self, "cash_median", _non_negative("cash_median", self.cash_median))
        if self.shrinkage_percent is not None:
            object.__setattr__(self, "shrinkage_percent", _percent("shrinkage_percent", self.shrinkage_percent))
        if self.margin_percent is not None:
            object.__setattr__(self, "margin_percent", _percent("margin_percent", self.margin_percent))


@dataclass(frozen=True)
class ExpenseRecord:
    """A container expense in its own currency."""

    expense_id: UUID
    currency_code: str
    amount: Decimal
    expense_type: str = ""
    description: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "currency_code", CurrencyRegistry.validate(self.currency_code))
        object.__setattr__(self, "amount", _positive("amount", self.amount))


@dataclass(frozen=True)
class RateRecord:
    """Rate into the local currency for one currency code."""

    currency_code: str
    rate: Decimal

    def __post_init__(self) -> None:
        object.__setattr__(self, "currency_code", CurrencyRegistry.validate(self.currency_code))
        object.__setattr__(self, "rate", _positive("rate", self.rate))


@dataclass(frozen=True)
class ContainerSnapshot:
    """
    Consistent read set for one container.

    Contract:
        Loaded in a single read by the persistence collaborator. Holds the
        container's own rate overrides and the currency default rates
        needed to resolve every expense currency and the hard currency.
    """

    container_id: UUID
    import_date: date
    percentages: ContainerPercentages
    hard_currency_code: str
    lots: tuple[LotSnapshot, ...] = ()
    expenses: tuple[ExpenseRecord, ...] = ()
    rates: tuple[RateRecord, ...] = ()
    default_rates: Mapping[str, Decimal] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "hard_currency_code", CurrencyRegistry.validate(self.hard_currency_code))
        object.__setattr__(self, "lots", tuple(self.lots))
        object.__setattr__(self, "expenses", tuple(self.expenses))
        object.__setattr__(self, "rates", tuple(self.rates))
        object.__setattr__(
            self,
            "default_rates",
            {CurrencyRegistry.validate(k): _positive(f"default rate {k}", v) for k, v in self.default_rates.items()},
        )

    def rate_for(self, currency_code: str) -> Decimal | None:
        """Container override for a currency, else its default, else None."""
        code = currency_code.upper().strip()
        for rate in self.rates:
            if rate.currency_code == code:
                return rate.rate
        return self.default_rates.get(code)


@dataclass(frozen=True)
class LotResult:
    """Write set entry: cached fields recalculation stores on one lot."""

    lot_id: UUID
    shrinkage_percent: Decimal
    margin_percent: Decimal
    unit_cost_usd: Decimal
    sale_price_usd: Decimal
    sale_price_local: Decimal
    expense_share_local: Decimal


@dataclass(frozen=True)
class ProductRecord:
    product_id: UUID
    name: str
    pack_size: int = 24
    active: bool = True

    def __post_init__(self) -> None:
        if not self.name or not self.name.strip():
            raise ValueError("Product name is required")
        _positive_int("pack_size", self.pack_size)


@dataclass(frozen=True)
class MovementRecord:
    """One append-only inventory ledger entry."""

    kind: MovementKind
    quantity: int
    occurred_at: datetime
    reason: str = ""
    reference: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "kind", MovementKind(self.kind))
        _positive_int("quantity", self.quantity)

    @property
    def signed_quantity(self) -> int:
        return self.kind.signed(self.quantity)


@dataclass(frozen=True)
class TransferRecord:
    """A bank receipt in local currency. Transfers fund the fiscal channel."""

    transfer_date: date
    amount: Decimal
    transfer_id: UUID | None = None
    reference: str = ""

    def __post_init__(self) -> None:
        if isinstance(self.transfer_date, datetime):
            object.__setattr__(self, "transfer_date", self.transfer_date.date())
        object.__setattr__(self, "amount", _positive("amount", self.amount))


@dataclass(frozen=True)
class AllocationEntry:
    """Share of the transfer pool assigned to one product."""

    product_id: UUID
    percent: Decimal

    def __post_init__(self) -> None:
        object.__setattr__(self, "percent", _non_negative("percent", self.percent))


@dataclass(frozen=True)
class FifoLot:
    """
    The oldest lot of a product available at a date, with channel prices.

    All prices are in local currency.
    """

    lot_id: UUID
    product_id: UUID
    container_id: UUID
    import_date: date
    split: ChannelSplit
    hard_currency_rate: Decimal
    hard_currency_price: Decimal
    fiscal_price: Decimal
    cash_price: Decimal

    def price_for(self, channel: Channel) -> Decimal:
        match channel:
            case Channel.HARD_CURRENCY:
                return self.hard_currency_price
            case Channel.FISCAL:
                return self.fiscal_price
            case Channel.CASH:
                return self.cash_price


@dataclass(frozen=True)
class SaleLine:
    """One dated, priced line of a sale preview or confirmed sale."""

    line_date: date
    product_id: UUID
    lot_id: UUID
    product_name: str
    channel: Channel
    quantity: int
    unit_price: Decimal

    def __post_init__(self) -> None:
        object.__setattr__(self, "channel", Channel(self.channel))
        _positive_int("quantity", self.quantity)
        object.__setattr__(self, "unit_price", _non_negative("unit_price", self.unit_price))

    @property
    def subtotal(self) -> Decimal:
        return self.unit_price * self.quantity
