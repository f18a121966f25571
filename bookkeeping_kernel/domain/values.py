"""
Values -- Immutable, self-validating domain value objects.

Responsibility:
    Provides the monetary value types used by invoices, bills, line items and
    Stripe transactions: Currency and Money.  These replace bare ``int`` and
    ``str`` pairs wherever an amount appears in domain logic.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    No outward dependencies except bookkeeping_kernel.domain.currency
    (CurrencyRegistry) and bookkeeping_kernel.exceptions.

Invariants enforced:
    - Amounts are integers in the currency's minor unit (cents for EUR/USD,
      yen for JPY).  Floats are rejected at construction.
    - Currency codes are validated against ISO 4217 at construction.
    - Arithmetic and ordering never mix currencies: CurrencyMismatchError.

Failure modes:
    - InvalidCurrencyError on construction with an unknown currency code.
    - TypeError when the amount is not an int.
    - CurrencyMismatchError when arithmetic mixes different currencies.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from bookkeeping_kernel.domain.currency import CurrencyRegistry
from bookkeeping_kernel.exceptions import CurrencyMismatchError


@dataclass(frozen=True, slots=True)
class Currency:
    """
    ISO 4217 currency code value object.

    Contract:
        Wraps a three-letter ISO 4217 code. Validated and normalized (uppercased)
        on construction. Invalid codes are rejected immediately.

    Guarantees:
        - Immutable and hashable (frozen dataclass with slots)
        - code is always uppercase and stripped of whitespace

    Non-goals:
        - Does NOT perform currency conversion
    """

    code: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "code", CurrencyRegistry.validate(self.code))

    @property
    def decimal_places(self) -> int:
        """Number of minor-unit digits for this currency."""
        return CurrencyRegistry.get_decimal_places(self.code)

    @property
    def name(self) -> str:
        info = CurrencyRegistry.get_info(self.code)
        return info.name if info else self.code

    def __str__(self) -> str:
        return self.code

    def __repr__(self) -> str:
        return f"Currency({self.code!r})"


def _coerce_currency(currency: str | Currency) -> Currency:
    if isinstance(currency, Currency):
        return currency
    return Currency(currency)


@dataclass(frozen=True, slots=True)
class Money:
    """
    Monetary amount in minor units.

    Contract:
        Pairs an integer minor-unit amount with its Currency -- they are
        NEVER separated.  A credit (refund, chargeback, credit note) is a
        negative amount.

    Guarantees:
        - Immutable and hashable (frozen dataclass with slots)
        - amount_minor is always an int (never float or Decimal)
        - Arithmetic and comparison enforce the same-currency constraint

    Non-goals:
        - Does NOT perform currency conversion
    """

    amount_minor: int
    currency: Currency

    def __post_init__(self) -> None:
        if isinstance(self.amount_minor, bool) or not isinstance(self.amount_minor, int):
            raise TypeError(
                f"amount_minor must be int, got {type(self.amount_minor).__name__}"
            )
        if not isinstance(self.currency, Currency):
            object.__setattr__(self, "currency", _coerce_currency(self.currency))

    @classmethod
    def of(cls, amount_minor: int, currency: str | Currency) -> Money:
        """Factory method for creating Money from a minor-unit amount."""
        return cls(amount_minor=amount_minor, currency=_coerce_currency(currency))

    @classmethod
    def zero(cls, currency: str | Currency) -> Money:
        """Create a zero amount in the given currency."""
        return cls(amount_minor=0, currency=_coerce_currency(currency))

    @classmethod
    def from_decimal(cls, amount: Decimal | str, currency: str | Currency) -> Money:
        """
        Build Money from a major-unit amount (``Decimal("12.34")`` EUR -> 1234).

        Rounds half-up to the currency's minor unit.
        """
        currency = _coerce_currency(currency)
        scaled = Decimal(str(amount)) * CurrencyRegistry.minor_unit_factor(currency.code)
        return cls(
            amount_minor=int(scaled.quantize(Decimal("1"), rounding=ROUND_HALF_UP)),
            currency=currency,
        )

    @classmethod
    def sum_of(
        cls,
        amounts: Iterable[Money],
        currency: str | Currency | None = None,
    ) -> Money:
        """
        Sum an iterable of Money values.

        Preconditions:
            - All values share one currency.
            - An empty iterable requires an explicit ``currency``.

        Raises:
            CurrencyMismatchError: If the values (or ``currency``) disagree.
            ValueError: If the iterable is empty and no currency was given.
        """
        total = cls.zero(currency) if currency is not None else None
        for amount in amounts:
            total = amount if total is None else total + amount
        if total is None:
            raise ValueError("sum_of() of an empty iterable requires a currency")
        return total

    def to_decimal(self) -> Decimal:
        """Major-unit Decimal (1234 EUR minor -> Decimal("12.34"))."""
        places = self.currency.decimal_places
        return Decimal(self.amount_minor).scaleb(-places).quantize(
            Decimal(1).scaleb(-places)
        )

    @property
    def is_zero(self) -> bool:
        return self.amount_minor == 0

    @property
    def is_positive(self) -> bool:
        return self.amount_minor > 0

    @property
    def is_negative(self) -> bool:
        return self.amount_minor < 0

    def _check_currency(self, other: Money) -> None:
        if self.currency != other.currency:
            raise CurrencyMismatchError(self.currency.code, other.currency.code)

    def __add__(self, other: Money) -> Money:
        """Add two Money values. Must be same currency."""
        if not isinstance(other, Money):
            return NotImplemented
        self._check_currency(other)
        return Money(self.amount_minor + other.amount_minor, self.currency)

    def __sub__(self, other: Money) -> Money:
        """Subtract two Money values. Must be same currency."""
        if not isinstance(other, Money):
            return NotImplemented
        self._check_currency(other)
        return Money(self.amount_minor - other.amount_minor, self.currency)

    def __neg__(self) -> Money:
        return Money(-self.amount_minor, self.currency)

    def __abs__(self) -> Money:
        return Money(abs(self.amount_minor), self.currency)

    def __mul__(self, factor: int) -> Money:
        """Scale by an integer factor."""
        if isinstance(factor, bool) or not isinstance(factor, int):
            return NotImplemented
        return Money(self.amount_minor * factor, self.currency)

    def __rmul__(self, factor: int) -> Money:
        return self.__mul__(factor)

    def __lt__(self, other: Money) -> bool:
        if not isinstance(other, Money):
            return NotImplemented
        self._check_currency(other)
        return self.amount_minor < other.amount_minor

    def __le__(self, other: Money) -> bool:
        if not isinstance(other, Money):
            return NotImplemented
        self._check_currency(other)
        return self.amount_minor <= other.amount_minor

    def __gt__(self, other: Money) -> bool:
        if not isinstance(other, Money):
            return NotImplemented
        self._check_currency(other)
        return self.amount_minor > other.amount_minor

    def __ge__(self, other: Money) -> bool:
        if not isinstance(other, Money):
            return NotImplemented
        self._check_currency(other)
        return self.amount_minor >= other.amount_minor

    def __str__(self) -> str:
        return f"{self.to_decimal()} {self.currency.code}"

    def __repr__(self) -> str:
        return f"Money({self.amount_minor!r}, {self.currency!r})"
