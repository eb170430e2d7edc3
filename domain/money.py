"""
Domain: Money value object.

Contract rules implemented here:
- Amounts are exact decimals, never negative.
- Amounts are rounded to 2 fractional digits, half away from zero
  (2.345 -> 2.35, 2.344 -> 2.34). Banker's rounding is never used.
- Amounts that cannot be held to the cent (10**26 and up) raise InvalidMoney.
- Currency codes are stripped, uppercased and non-empty.
- Arithmetic between two Money values requires identical currencies.
- Money is immutable; every operation returns a new instance.

This module contains only pure value objects: no I/O, no frameworks.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, DecimalException, InvalidOperation
from typing import Union

from .errors import CurrencyMismatch, InvalidFactor, InvalidMoney, InvalidPercentage

DEFAULT_CURRENCY: str = "USD"

_CENTS = Decimal("0.01")
_HUNDRED = Decimal("100")

Number = Union[Decimal, int, float, str]


def _to_decimal(value: Number, *, name: str) -> Decimal:
    if isinstance(value, bool):
        raise InvalidMoney(f"{name} must be a number, not bool")
    if isinstance(value, float):
        # str() first so 10.1 stays 10.1 instead of its binary expansion
        value = str(value)
    try:
        result = Decimal(value)
    except (InvalidOperation, TypeError, ValueError) as exc:
        raise InvalidMoney(f"{name} is not a valid decimal: {value!r}") from exc
    if not result.is_finite():
        raise InvalidMoney(f"{name} must be a finite number")
    return result


def _round_cents(amount: Decimal) -> Decimal:
    # quantize fails once the amount needs more digits than the context precision
    try:
        return amount.quantize(_CENTS, rounding=ROUND_HALF_UP)
    except DecimalException as exc:
        raise InvalidMoney(f"Amount is too large: {amount}") from exc


@dataclass(frozen=True, slots=True)
class Money:
    """
    Immutable amount + currency.

    Build instances with `Money.of` or `Money.zero`; the dataclass constructor
    still validates, so an invalid Money can never exist.
    """

    amount: Decimal
    currency: str = DEFAULT_CURRENCY

    def __post_init__(self) -> None:
        amount = _to_decimal(self.amount, name="amount")
        if amount < 0:
            raise InvalidMoney("Amount cannot be negative")
        if not isinstance(self.currency, str) or not self.currency.strip():
            raise InvalidMoney("Currency cannot be null or empty")
        object.__setattr__(self, "amount", _round_cents(amount))
        object.__setattr__(self, "currency", self.currency.strip().upper())

    @staticmethod
    def of(amount: Number, currency: str = DEFAULT_CURRENCY) -> "Money":
        return Money(amount=amount, currency=currency)

    @staticmethod
    def zero(currency: str = DEFAULT_CURRENCY) -> "Money":
        return Money(amount=Decimal("0"), currency=currency)

    @property
    def is_zero(self) -> bool:
        return self.amount == 0

    def _require_same_currency(self, other: "Money", verb: str) -> None:
        if self.currency != other.currency:
            raise CurrencyMismatch(f"Cannot {verb} {self.currency} and {other.currency}")

    def add(self, other: "Money") -> "Money":
        self._require_same_currency(other, "add")
        return Money(self.amount + other.amount, self.currency)

    def subtract(self, other: "Money") -> "Money":
        """
        Subtract `other` from this amount.

        A negative result raises InvalidMoney; it is never clamped to zero.
        """

        self._require_same_currency(other, "subtract")
        return Money(self.amount - other.amount, self.currency)

    def multiply(self, factor: Number) -> "Money":
        value = _to_decimal(factor, name="factor")
        if value < 0:
            raise InvalidFactor("Factor cannot be negative")
        try:
            product = self.amount * value
        except DecimalException as exc:
            raise InvalidMoney(f"Amount is too large: {self.amount} x {value}") from exc
        return Money(product, self.currency)

    def apply_discount_percentage(self, percentage: Number) -> "Money":
        """
        Return the amount remaining after a percentage discount.

        `percentage` is expressed as 0..100 (10 means 10%). The result is
        `amount * (1 - percentage / 100)`, i.e. what is left to pay, not the
        discount itself.
        """

        pct = _to_decimal(percentage, name="percentage")
        if pct < 0 or pct > _HUNDRED:
            raise InvalidPercentage("Discount percentage must be between 0 and 100")
        return Money(self.amount * (1 - pct / _HUNDRED), self.currency)

    def __add__(self, other: "Money") -> "Money":
        if not isinstance(other, Money):
            return NotImplemented
        return self.add(other)

    def __sub__(self, other: "Money") -> "Money":
        if not isinstance(other, Money):
            return NotImplemented
        return self.subtract(other)

    def __mul__(self, factor: Number) -> "Money":
        if isinstance(factor, Money):
            return NotImplemented
        return self.multiply(factor)

    __rmul__ = __mul__

    def __str__(self) -> str:
        return f"{self.amount:.2f} {self.currency}"


__all__ = ["DEFAULT_CURRENCY", "Money"]
