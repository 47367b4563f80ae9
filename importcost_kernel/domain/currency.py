"""Currency -- ISO 4217 registry for the currencies the business trades in."""

from dataclasses import dataclass
from decimal import Decimal
from typing import ClassVar


@dataclass(frozen=True)
class CurrencyInfo:
    """Information about a single ISO 4217 currency."""

    code: str
    decimal_places: int
    name: str

    @property
    def quantize_exponent(self) -> Decimal:
        """Exponent for Decimal.quantize() at this currency's precision."""
        return Decimal(1).scaleb(-self.decimal_places)


class CurrencyRegistry:
    """Registry of ISO 4217 currencies accepted for expenses and rates."""

    _CURRENCIES: ClassVar[dict[str, CurrencyInfo]] = {
        # Hard and local currencies
        "USD": CurrencyInfo("USD", 2, "US Dollar"),
        "CUP": CurrencyInfo("CUP", 2, "Cuban Peso"),
        # Common expense currencies
        "EUR": CurrencyInfo("EUR", 2, "Euro"),
        "GBP": CurrencyInfo("GBP", 2, "Pound Sterling"),
        "CAD": CurrencyInfo("CAD", 2, "Canadian Dollar"),
        "MXN": CurrencyInfo("MXN", 2, "Mexican Peso"),
        "PAB": CurrencyInfo("PAB", 2, "Panamanian Balboa"),
        "CNY": CurrencyInfo("CNY", 2, "Yuan Renminbi"),
        "BRL": CurrencyInfo("BRL", 2, "Brazilian Real"),
        "CHF": CurrencyInfo("CHF", 2, "Swiss Franc"),
        "RUB": CurrencyInfo("RUB", 2, "Russian Ruble"),
        "JPY": CurrencyInfo("JPY", 0, "Japanese Yen"),
    }

    DEFAULT_DECIMAL_PLACES: ClassVar[int] = 2

    @classmethod
    def is_valid(cls, code: str) -> bool:
        """Check if a currency code is registered."""
        if not code or not isinstance(code, str):
            return False
        return code.upper().strip() in cls._CURRENCIES

    @classmethod
    def get_info(cls, code: str) -> CurrencyInfo | None:
        """Get currency information by code."""
        if not code or not isinstance(code, str):
            return None
        return cls._CURRENCIES.get(code.upper().strip())

    @classmethod
    def get_decimal_places(cls, code: str) -> int:
        info = cls.get_info(code)
        return info.decimal_places if info else cls.DEFAULT_DECIMAL_PLACES

    @classmethod
    def validate(cls, code: str) -> str:
        """Validate and normalize a currency code."""
        if not code or not isinstance(code, str):
            raise ValueError(f"Invalid currency code: {code!r}")

        normalized = code.upper().strip()

        if len(normalized) != 3:
            raise ValueError(f"Currency code must be 3 characters: {code!r}")

        if normalized not in cls._CURRENCIES:
            raise ValueError(f"Unsupported ISO 4217 currency code: {code!r}")

        return normalized

    @classmethod
    def all_codes(cls) -> frozenset[str]:
        return frozenset(cls._CURRENCIES.keys())
