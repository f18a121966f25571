"""Currency -- ISO 4217 registry and minor-unit precision."""

from dataclasses import dataclass
from decimal import Decimal
from typing import ClassVar

from bookkeeping_kernel.exceptions import InvalidCurrencyError


@dataclass(frozen=True)
class CurrencyInfo:
    """Information about a single ISO 4217 currency."""

    code: str
    decimal_places: int
    name: str

    @property
    def minor_unit_factor(self) -> int:
        """Number of minor units in one major unit (100 for EUR, 1 for JPY)."""
        return 10 ** self.decimal_places

    @property
    def quantize_string(self) -> str:
        """String for Decimal.quantize() to round to this currency's precision."""
        if self.decimal_places == 0:
            return "1"
        return "0." + "0" * self.decimal_places


class CurrencyRegistry:
    """Registry of the ISO 4217 currencies the bookkeeping panel invoices in."""

    _CURRENCIES: ClassVar[dict[str, CurrencyInfo]] = {
        # Major currencies
        "USD": CurrencyInfo("USD", 2, "US Dollar"),
        "EUR": CurrencyInfo("EUR", 2, "Euro"),
        "GBP": CurrencyInfo("GBP", 2, "Pound Sterling"),
        "JPY": CurrencyInfo("JPY", 0, "Japanese Yen"),
        "CHF": CurrencyInfo("CHF", 2, "Swiss Franc"),
        "CAD": CurrencyInfo("CAD", 2, "Canadian Dollar"),
        "AUD": CurrencyInfo("AUD", 2, "Australian Dollar"),
        "NZD": CurrencyInfo("NZD", 2, "New Zealand Dollar"),
        # European
        "CZK": CurrencyInfo("CZK", 2, "Czech Koruna"),
        "DKK": CurrencyInfo("DKK", 2, "Danish Krone"),
        "HUF": CurrencyInfo("HUF", 2, "Hungarian Forint"),
        "NOK": CurrencyInfo("NOK", 2, "Norwegian Krone"),
        "PLN": CurrencyInfo("PLN", 2, "Polish Zloty"),
        "RON": CurrencyInfo("RON", 2, "Romanian Leu"),
        "SEK": CurrencyInfo("SEK", 2, "Swedish Krona"),
        "BGN": CurrencyInfo("BGN", 2, "Bulgarian Lev"),
        "ISK": CurrencyInfo("ISK", 0, "Icelandic Krona"),
        # Rest of world (Stripe settlement currencies)
        "AED": CurrencyInfo("AED", 2, "UAE Dirham"),
        "BRL": CurrencyInfo("BRL", 2, "Brazilian Real"),
        "CNY": CurrencyInfo("CNY", 2, "Chinese Yuan"),
        "HKD": CurrencyInfo("HKD", 2, "Hong Kong Dollar"),
        "INR": CurrencyInfo("INR", 2, "Indian Rupee"),
        "KRW": CurrencyInfo("KRW", 0, "South Korean Won"),
        "MXN": CurrencyInfo("MXN", 2, "Mexican Peso"),
        "SGD": CurrencyInfo("SGD", 2, "Singapore Dollar"),
        "THB": CurrencyInfo("THB", 2, "Thai Baht"),
        "ZAR": CurrencyInfo("ZAR", 2, "South African Rand"),
        # Three decimal currencies
        "BHD": CurrencyInfo("BHD", 3, "Bahraini Dinar"),
        "JOD": CurrencyInfo("JOD", 3, "Jordanian Dinar"),
        "KWD": CurrencyInfo("KWD", 3, "Kuwaiti Dinar"),
        "OMR": CurrencyInfo("OMR", 3, "Omani Rial"),
        "TND": CurrencyInfo("TND", 3, "Tunisian Dinar"),
    }

    # Default decimal places for currencies outside the registry
    DEFAULT_DECIMAL_PLACES: ClassVar[int] = 2

    @classmethod
    def is_valid(cls, code: str) -> bool:
        """Check if a currency code is a known ISO 4217 code."""
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
        """Get decimal places (minor-unit exponent) for a currency."""
        info = cls.get_info(code)
        return info.decimal_places if info else cls.DEFAULT_DECIMAL_PLACES

    @classmethod
    def minor_unit_factor(cls, code: str) -> Decimal:
        """Minor units per major unit, as a Decimal for exact scaling."""
        return Decimal(10) ** cls.get_decimal_places(code)

    @classmethod
    def validate(cls, code: str) -> str:
        """Validate and normalize a currency code.

        Raises:
            InvalidCurrencyError: If the code is empty, not three letters,
                or not a known ISO 4217 code.
        """
        if not code or not isinstance(code, str):
            raise InvalidCurrencyError(repr(code))

        normalized = code.upper().strip()
        if len(normalized) != 3 or normalized not in cls._CURRENCIES:
            raise InvalidCurrencyError(code)

        return normalized

    @classmethod
    def all_codes(cls) -> frozenset[str]:
        """Get all valid currency codes."""
        return frozenset(cls._CURRENCIES.keys())
