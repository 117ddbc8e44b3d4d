"""
Module: verein_kernel.domain.values
Responsibility:
    ``Currency`` and ``Money`` for the figures the engines compute: the
    contribution breakdown, SEPA batch totals and membership statistics.
    Records handed to persistence keep plain ``Decimal`` amounts next to a
    currency code; they are wrapped in Money only while being summed.

Architecture position:
    Kernel > Domain.  Pure, no I/O.

Invariants enforced:
    - Amounts are Decimal, never float.
    - Currency codes are known to ``CurrencyRegistry``.
    - Arithmetic and comparison never mix currencies.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Iterable

from verein_kernel.domain.currency import CurrencyRegistry

Scalar = Decimal | int | str


@dataclass(frozen=True, slots=True)
class Currency:
    """Normalised ISO 4217 code (``" eur "`` becomes ``"EUR"``)."""

    code: str

    def __post_init__(self) -> None:
        code = self.code.strip().upper() if isinstance(self.code, str) else ""
        if not CurrencyRegistry.is_valid(code):
            raise ValueError(f"Invalid ISO 4217 currency code: {self.code!r}")
        object.__setattr__(self, "code", code)

    @property
    def decimal_places(self) -> int:
        return CurrencyRegistry.get_decimal_places(self.code)

    def __str__(self) -> str:
        return self.code

    def __repr__(self) -> str:
        return f"Currency({self.code!r})"


def _to_decimal(value: object) -> Decimal:
    if isinstance(value, float):
        raise TypeError("Money amount must not be float; use Decimal or str")
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise ValueError(f"Invalid amount: {value!r}") from exc


@dataclass(frozen=True, slots=True)
class Money:
    """
    A Decimal amount bound to its Currency.

    Results are not rounded implicitly; call ``round()`` where a figure is
    final (tax amounts, averages).
    """

    amount: Decimal
    currency: Currency

    def __post_init__(self) -> None:
        object.__setattr__(self, "amount", _to_decimal(self.amount))
        if isinstance(self.currency, str):
            object.__setattr__(self, "currency", Currency(self.currency))
        elif not isinstance(self.currency, Currency):
            raise TypeError(f"currency must be Currency or str, got {type(self.currency)}")

    @classmethod
    def of(cls, amount: Scalar, currency: str | Currency) -> Money:
        return cls(amount=amount, currency=currency)

    @classmethod
    def zero(cls, currency: str | Currency) -> Money:
        return cls(amount=Decimal("0"), currency=currency)

    @classmethod
    def total(cls, amounts: Iterable[Money], currency: str | Currency) -> Money:
        """Sum of ``amounts``; zero in ``currency`` when empty."""
        result = cls.zero(currency)
        for amount in amounts:
            result = result + amount
        return result

    @property
    def is_zero(self) -> bool:
        return self.amount == 0

    @property
    def is_positive(self) -> bool:
        return self.amount > 0

    @property
    def is_negative(self) -> bool:
        return self.amount < 0

    def round(self, rounding: str = ROUND_HALF_UP) -> Money:
        """Quantize to the currency's minor unit (cents for EUR)."""
        exponent = CurrencyRegistry.quantizer(self.currency.code)
        return Money(self.amount.quantize(exponent, rounding=rounding), self.currency)

    def _same_currency(self, other: Money, operation: str) -> None:
        if self.currency != other.currency:
            raise ValueError(
                f"Cannot {operation} Money in {self.currency} and {other.currency}"
            )

    def __add__(self, other: Money) -> Money:
        if not isinstance(other, Money):
            return NotImplemented
        self._same_currency(other, "add")
        return Money(self.amount + other.amount, self.currency)

    def __sub__(self, other: Money) -> Money:
        if not isinstance(other, Money):
            return NotImplemented
        self._same_currency(other, "subtract")
        return Money(self.amount - other.amount, self.currency)

    def __neg__(self) -> Money:
        return Money(-self.amount, self.currency)

    def __mul__(self, factor: Scalar) -> Money:
        if isinstance(factor, (float, Money)):
            return NotImplemented
        return Money(self.amount * _to_decimal(factor), self.currency)

    __rmul__ = __mul__

    def __truediv__(self, divisor: Scalar) -> Money:
        if isinstance(divisor, (float, Money)):
            return NotImplemented
        return Money(self.amount / _to_decimal(divisor), self.currency)

    def __lt__(self, other: Money) -> bool:
        if not isinstance(other, Money):
            return NotImplemented
        self._same_currency(other, "compare")
        return self.amount < other.amount

    def __le__(self, other: Money) -> bool:
        if not isinstance(other, Money):
            return NotImplemented
        self._same_currency(other, "compare")
        return self.amount <= other.amount

    def __str__(self) -> str:
        return f"{self.amount} {self.currency.code}"

    def __repr__(self) -> str:
        return f"Money({self.amount!r}, {self.currency!r})"
