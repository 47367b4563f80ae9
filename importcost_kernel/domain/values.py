"""
Values -- Decimal arithmetic helpers and immutable money value objects.

Responsibility:
    Provides the arithmetic foundation for every cost, price and tax
    computation: strict Decimal coercion, zero-safe division, ceiling
    division into whole units and serialization-time rounding. Also
    provides the Currency and Money value objects used where an amount
    must travel together with its currency.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Imported by records, engines and services. No outward dependencies
    except importcost_kernel.domain.currency (CurrencyRegistry).

Invariants enforced:
    - Decimal-only arithmetic: floats are rejected at the boundary, never
      silently converted.
    - Full internal precision: helpers never round; rounding happens only
      in quantize_half_up, at serialization time.
    - Zero denominators yield zero in safe_div and ceil_units.

Failure modes:
    - ValueError on float, non-finite or unparsable input to to_decimal.
    - ValueError when Money arithmetic mixes currencies.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import (
    ROUND_CEILING,
    ROUND_FLOOR,
    ROUND_HALF_UP,
    Decimal,
    InvalidOperation,
    getcontext,
)

from importcost_kernel.domain.currency import CurrencyRegistry

# Money and percentage math needs at least 28 significant digits
if getcontext().prec < 28:
    getcontext().prec = 28

ZERO = Decimal("0")
ONE = Decimal("1")
HUNDRED = Decimal("100")


def to_decimal(value: Decimal | int | str) -> Decimal:
    """
    Coerce an int, str or Decimal into a finite Decimal.

    Raises:
        ValueError: If value is a float, not parsable, or not finite.
    """
    if isinstance(value, bool) or isinstance(value, float):
        raise ValueError(f"Refusing to coerce {type(value).__name__} to Decimal: {value!r}")
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value))
        except (InvalidOperation, ValueError) as e:
            raise ValueError(f"Invalid decimal value: {value!r}") from e
    if not result.is_finite():
        raise ValueError(f"Decimal value must be finite: {value!r}")
    return result


def safe_div(numerator: Decimal, denominator: Decimal) -> Decimal:
    """Divide, returning zero when the denominator is zero."""
    if denominator == ZERO:
        return ZERO
    return numerator / denominator


def percent_of(value: Decimal, percent: Decimal) -> Decimal:
    """value x percent / 100."""
    return value * percent / HUNDRED


def ceil_units(amount: Decimal, unit_price: Decimal) -> int:
    """
    Smallest whole unit count whose value covers amount.

    Zero or negative prices and non-positive amounts yield 0.
    """
    if unit_price <= ZERO or amount <= ZERO:
        return 0
    return int((amount / unit_price).to_integral_value(rounding=ROUND_CEILING))


def floor_to(value: Decimal, places: int) -> Decimal:
    """Truncate toward negative infinity at the given number of places."""
    return value.quantize(ONE.scaleb(-places), rounding=ROUND_FLOOR)


def quantize_half_up(value: Decimal, places: int = 2) -> Decimal:
    """Half-up rounding for presentation and persistence."""
    return value.quantize(ONE.scaleb(-places), rounding=ROUND_HALF_UP)


def is_close(a: Decimal, b: Decimal, tolerance: Decimal = Decimal("0.01")) -> bool:
    return abs(a - b) <= tolerance


@dataclass(frozen=True, slots=True)
class Currency:
    """
    ISO 4217 currency code value object.

    Contract:
        Wraps a three-letter code registered in CurrencyRegistry. Validated
        and normalized (uppercased) on construction.

    Guarantees:
        - Immutable and hashable.
        - code is always uppercase and registered.
    """

    code: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "code", CurrencyRegistry.validate(self.code))

    @property
    def decimal_places(self) -> int:
        return CurrencyRegistry.get_decimal_places(self.code)

    def __str__(self) -> str:
        return self.code


@dataclass(frozen=True, slots=True)
class Money:
    """
    Monetary amount value object.

    Contract:
        Pairs a Decimal amount with its Currency.

    Non-goals:
        - Does NOT convert between currencies; exchange rates are applied
          explicitly by the proration and pricing engines.
        - Does NOT auto-round; callers call .round() at serialization time.
    """

    amount: Decimal
    currency: Currency

    def __post_init__(self) -> None:
        object.__setattr__(self, "amount", to_decimal(self.amount))
        if isinstance(self.currency, str):
            object.__setattr__(self, "currency", Currency(self.currency))
        elif not isinstance(self.currency, Currency):
            raise TypeError(f"currency must be Currency or str, got {type(self.currency)}")

    @classmethod
    def of(cls, amount: Decimal | str | int, currency: str | Currency) -> Money:
        return cls(amount=to_decimal(amount), currency=currency)

    def round(self) -> Money:
        """Round half-up to the currency's decimal places."""
        return Money(
            amount=quantize_half_up(self.amount, self.currency.decimal_places),
            currency=self.currency,
        )

    def __str__(self) -> str:
        return f"{self.amount} {self.currency.code}"
