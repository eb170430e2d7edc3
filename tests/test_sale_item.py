"""
Tests for `domain/sale_item.py` and `domain/snapshots.py`.

Covers contract rules:
- Snapshots require ids and non-blank text; equality is by id.
- Line item quantity must be within 1..20.
- Unit price defaults to the product snapshot's price.
- Discounts must match the item currency and never exceed the subtotal.
- Updating the unit price resets a discount that no longer fits.
- Every mutator stamps modified_at.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from uuid import UUID

import pytest

from domain.errors import CurrencyMismatch, DiscountExceedsLineTotal, InvalidArgument, InvalidQuantity
from domain.money import Money
from domain.sale_item import SaleItem
from domain.snapshots import BranchInfo, CustomerInfo, ProductInfo

CREATED = datetime(2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
LATER = datetime(2025, 1, 1, 13, 0, 0, tzinfo=timezone.utc)


def _product(price: str = "10.00", currency: str = "USD") -> ProductInfo:
    return ProductInfo(
        product_id=UUID("00000000-0000-0000-0000-000000000101"),
        name="  Espresso Beans ",
        category="Coffee",
        unit_price=Money.of(price, currency),
    )


def test_customer_snapshot_normalizes_fields() -> None:
    customer = CustomerInfo(
        customer_id=UUID("00000000-0000-0000-0000-000000000001"),
        name=" Jane Doe ",
        email=" Jane@Example.COM ",
    )

    assert customer.name == "Jane Doe"
    assert customer.email == "jane@example.com"


def test_snapshots_reject_empty_ids_and_blank_text() -> None:
    with pytest.raises(InvalidArgument):
        CustomerInfo(customer_id=UUID(int=0), name="Jane", email="jane@example.com")
    with pytest.raises(InvalidArgument):
        BranchInfo(branch_id=UUID(int=7), name="Downtown", location="  ")
    with pytest.raises(InvalidArgument):
        ProductInfo(product_id=UUID(int=9), name="", category="Coffee", unit_price=Money.of("1"))


def test_snapshot_equality_is_by_id() -> None:
    a = BranchInfo(branch_id=UUID(int=7), name="Downtown", location="Main Street 1")
    b = BranchInfo(branch_id=UUID(int=7), name="Renamed", location="Elsewhere")

    assert a == b
    assert a != BranchInfo(branch_id=UUID(int=8), name="Downtown", location="Main Street 1")


def test_create_uses_product_price_and_zero_discount() -> None:
    item = SaleItem.create(_product(), 3, now=CREATED)

    assert item.product.name == "Espresso Beans"
    assert item.quantity == 3
    assert item.unit_price == Money.of("10.00")
    assert item.discount == Money.zero("USD")
    assert item.subtotal == Money.of("30.00")
    assert item.line_total == Money.of("30.00")
    assert item.created_at == CREATED
    assert item.modified_at is None


def test_create_with_price_override() -> None:
    item = SaleItem.create(_product(), 2, Money.of("8.50"), now=CREATED)

    assert item.unit_price == Money.of("8.50")
    assert item.subtotal == Money.of("17.00")


@pytest.mark.parametrize("quantity", [0, -1, 21, 25])
def test_create_rejects_quantity_outside_range(quantity: int) -> None:
    with pytest.raises(InvalidQuantity):
        SaleItem.create(_product(), quantity, now=CREATED)


@pytest.mark.parametrize("quantity", [1, 20])
def test_create_accepts_quantity_bounds(quantity: int) -> None:
    assert SaleItem.create(_product(), quantity, now=CREATED).quantity == quantity


def test_update_quantity_keeps_discount_and_stamps_time() -> None:
    item = SaleItem.create(_product(), 5, now=CREATED)
    item.apply_discount(Money.of("5.00"), now=CREATED)

    item.update_quantity(6, now=LATER)

    assert item.quantity == 6
    assert item.discount == Money.of("5.00")
    assert item.modified_at == LATER


def test_update_quantity_out_of_range_leaves_item_unchanged() -> None:
    item = SaleItem.create(_product(), 5, now=CREATED)

    with pytest.raises(InvalidQuantity):
        item.update_quantity(21, now=LATER)

    assert item.quantity == 5
    assert item.modified_at is None


def test_apply_discount() -> None:
    item = SaleItem.create(_product(), 5, now=CREATED)

    item.apply_discount(Money.of("5.00"), now=LATER)

    assert item.discount == Money.of("5.00")
    assert item.line_total == Money.of("45.00")
    assert item.modified_at == LATER


def test_apply_discount_may_equal_but_not_exceed_subtotal() -> None:
    item = SaleItem.create(_product(), 2, now=CREATED)

    item.apply_discount(Money.of("20.00"))
    assert item.line_total == Money.zero()

    with pytest.raises(DiscountExceedsLineTotal):
        item.apply_discount(Money.of("20.01"))
    assert item.discount == Money.of("20.00")


def test_apply_discount_requires_item_currency() -> None:
    item = SaleItem.create(_product(), 2, now=CREATED)

    with pytest.raises(CurrencyMismatch):
        item.apply_discount(Money.of("1.00", "EUR"))


def test_update_unit_price_resets_discount_that_no_longer_fits() -> None:
    item = SaleItem.create(_product(), 2, now=CREATED)
    item.apply_discount(Money.of("15.00"))

    item.update_unit_price(Money.of("5.00"), now=LATER)

    assert item.unit_price == Money.of("5.00")
    assert item.discount == Money.zero("USD")
    assert item.modified_at == LATER


def test_update_unit_price_keeps_discount_that_still_fits() -> None:
    item = SaleItem.create(_product(), 2, now=CREATED)
    item.apply_discount(Money.of("15.00"))

    item.update_unit_price(Money.of("8.00"))

    assert item.discount == Money.of("15.00")
    assert item.line_total.amount == Decimal("1.00")


def test_update_unit_price_rejects_currency_change() -> None:
    item = SaleItem.create(_product(), 2, now=CREATED)

    with pytest.raises(CurrencyMismatch):
        item.update_unit_price(Money.of("10.00", "EUR"))
    assert item.unit_price == Money.of("10.00")


def test_rehydrate_enforces_discount_cap() -> None:
    with pytest.raises(DiscountExceedsLineTotal):
        SaleItem.rehydrate(
            item_id=UUID(int=55),
            product=_product(),
            quantity=1,
            unit_price=Money.of("10.00"),
            discount=Money.of("10.01"),
            created_at=CREATED,
        )


def test_naive_timestamps_are_rejected() -> None:
    with pytest.raises(ValueError):
        SaleItem.create(_product(), 1, now=datetime(2025, 1, 1, 12, 0, 0))
