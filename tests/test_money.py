"""
Tests for `domain/money.py`.

Covers contract rules:
- Amounts are never negative; currency is required and uppercased.
- Rounding to 2 places is half away from zero (not banker's rounding).
- Arithmetic requires matching currencies.
- Subtraction never clamps a negative result.
- Discount percentage returns the remaining amount, not the discount.
- Money is immutable and compared by value.
"""

from __future__ import annotations

from dataclasses import FrozenInstanceError
from decimal import Decimal

import pytest

from domain.errors import CurrencyMismatch, InvalidFactor, InvalidMoney, InvalidPercentage
from domain.money import Money


def test_of_normalizes_currency_and_rounds_to_cents() -> None:
    money = Money.of("10", " usd ")

    assert money.amount == Decimal("10.00")
    assert money.currency == "USD"
    assert str(money) == "10.00 USD"


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("2.345", "2.35"),
        ("2.344", "2.34"),
        ("0.125", "0.13"),  # banker's rounding would give 0.12
        ("0.135", "0.14"),
        ("0.005", "0.01"),
    ],
)
def test_rounding_is_half_away_from_zero(raw: str, expected: str) -> None:
    assert Money.of(raw).amount == Decimal(expected)


def test_float_amounts_keep_their_decimal_representation() -> None:
    assert Money.of(10.1).amount == Decimal("10.10")


def test_negative_amount_is_rejected() -> None:
    with pytest.raises(InvalidMoney):
        Money.of("-0.01")


@pytest.mark.parametrize("currency", ["", "   "])
def test_blank_currency_is_rejected(currency: str) -> None:
    with pytest.raises(InvalidMoney):
        Money.of("1.00", currency)


def test_non_numeric_amount_is_rejected() -> None:
    with pytest.raises(InvalidMoney):
        Money.of("ten")
    with pytest.raises(InvalidMoney):
        Money.of("NaN")


def test_invalid_money_is_a_value_error() -> None:
    with pytest.raises(ValueError):
        Money.of(-5)


def test_zero_uses_requested_currency() -> None:
    zero = Money.zero("eur")

    assert zero.amount == Decimal("0")
    assert zero.currency == "EUR"
    assert zero.is_zero
    assert Money.zero().currency == "USD"


def test_equality_is_by_value() -> None:
    assert Money.of("30", "usd") == Money.of("30.00", "USD")
    assert Money.of("30.00", "USD") != Money.of("30.00", "EUR")
    assert hash(Money.of("1.5")) == hash(Money.of("1.50"))


def test_money_is_immutable() -> None:
    money = Money.of("1.00")

    with pytest.raises(FrozenInstanceError):
        money.amount = Decimal("2.00")  # type: ignore[misc]


def test_add_is_commutative_and_associative() -> None:
    a, b, c = Money.of("1.10"), Money.of("2.25"), Money.of("3.05")

    assert a + b == b + a
    assert (a + b) + c == a + (b + c)
    assert (a + b + c).amount == Decimal("6.40")


def test_add_and_subtract_require_same_currency() -> None:
    usd = Money.of("5.00", "USD")
    eur = Money.of("5.00", "EUR")

    with pytest.raises(CurrencyMismatch):
        usd.add(eur)
    with pytest.raises(CurrencyMismatch):
        usd - eur


def test_subtract_returns_new_instance() -> None:
    total = Money.of("30.00")
    result = total - Money.of("12.50")

    assert result == Money.of("17.50")
    assert total == Money.of("30.00")


def test_subtract_below_zero_fails_instead_of_clamping() -> None:
    with pytest.raises(InvalidMoney):
        Money.of("1.00") - Money.of("1.01")


def test_multiply() -> None:
    assert Money.of("10.00") * 3 == Money.of("30.00")
    assert 3 * Money.of("10.00") == Money.of("30.00")
    assert Money.of("3.33").multiply(Decimal("0.5")) == Money.of("1.67")
    assert Money.of("10.00") * 0 == Money.zero()


def test_multiply_by_negative_factor_fails() -> None:
    with pytest.raises(InvalidFactor):
        Money.of("10.00").multiply(-1)


@pytest.mark.parametrize("raw", ["1e26", "1e27", "123456789012345678901234567"])
def test_amount_too_large_for_cents_is_rejected(raw: str) -> None:
    with pytest.raises(InvalidMoney):
        Money.of(raw)


def test_largest_amount_held_to_the_cent() -> None:
    assert Money.of("99999999999999999999999999.99").amount == Decimal(
        "99999999999999999999999999.99"
    )


def test_multiply_past_largest_amount_is_invalid_money() -> None:
    price = Money.of("5e24")

    with pytest.raises(InvalidMoney):
        price * 20


def test_apply_discount_percentage_returns_remaining_amount() -> None:
    subtotal = Money.of("50.00")

    remaining = subtotal.apply_discount_percentage(10)

    assert remaining == Money.of("45.00")
    assert subtotal - remaining == Money.of("5.00")
    assert subtotal.apply_discount_percentage(0) == subtotal
    assert subtotal.apply_discount_percentage(100) == Money.zero()


@pytest.mark.parametrize("percentage", [-1, Decimal("100.01"), 150])
def test_apply_discount_percentage_outside_range_fails(percentage) -> None:
    with pytest.raises(InvalidPercentage):
        Money.of("50.00").apply_discount_percentage(percentage)
