"""
Domain: Sale line items.

Contract rules implemented here:
- A line item holds 1..20 units of a single product.
- Discount currency must equal the unit price currency.
- Discount never exceeds the pre-discount subtotal (unit_price * quantity).
- line_total = unit_price * quantity - discount.

Line items are owned by a Sale. Only the Sale calls the mutators below; every
mutator stamps `modified_at`.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from .errors import CurrencyMismatch, DiscountExceedsLineTotal, InvalidQuantity
from .money import Money
from .snapshots import ProductInfo
from .time import require_utc_timestamp, resolve_timestamp

MIN_QUANTITY: int = 1
MAX_QUANTITY_PER_PRODUCT: int = 20


def require_valid_quantity(quantity: int) -> None:
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise InvalidQuantity("Quantity must be an integer")
    if quantity < MIN_QUANTITY:
        raise InvalidQuantity("Quantity must be greater than zero")
    if quantity > MAX_QUANTITY_PER_PRODUCT:
        raise InvalidQuantity(
            f"Cannot sell more than {MAX_QUANTITY_PER_PRODUCT} items of the same product"
        )


class SaleItem:
    """A product line within a sale."""

    __slots__ = (
        "_id",
        "_product",
        "_quantity",
        "_unit_price",
        "_discount",
        "_created_at",
        "_modified_at",
    )

    def __init__(
        self,
        *,
        item_id: UUID,
        product: ProductInfo,
        quantity: int,
        unit_price: Money,
        discount: Money,
        created_at: datetime,
        modified_at: Optional[datetime] = None,
    ) -> None:
        require_valid_quantity(quantity)
        require_utc_timestamp("created_at", created_at)
        if modified_at is not None:
            require_utc_timestamp("modified_at", modified_at)
        if discount.currency != unit_price.currency:
            raise CurrencyMismatch("Discount currency must match item currency")
        if discount.amount > (unit_price * quantity).amount:
            raise DiscountExceedsLineTotal("Discount cannot exceed line total")

        self._id = item_id
        self._product = product
        self._quantity = quantity
        self._unit_price = unit_price
        self._discount = discount
        self._created_at = created_at
        self._modified_at = modified_at

    @classmethod
    def create(
        cls,
        product: ProductInfo,
        quantity: int,
        unit_price: Optional[Money] = None,
        *,
        now: Optional[datetime] = None,
    ) -> "SaleItem":
        """
        Create a new line item.

        The unit price defaults to the product snapshot's price. The discount
        starts at zero; the owning Sale recalculates it.
        """

        price = unit_price if unit_price is not None else product.unit_price
        return cls(
            item_id=uuid4(),
            product=product,
            quantity=quantity,
            unit_price=price,
            discount=Money.zero(price.currency),
            created_at=resolve_timestamp("now", now),
        )

    @classmethod
    def rehydrate(
        cls,
        *,
        item_id: UUID,
        product: ProductInfo,
        quantity: int,
        unit_price: Money,
        discount: Money,
        created_at: datetime,
        modified_at: Optional[datetime] = None,
    ) -> "SaleItem":
        """Rebuild a stored item. Structural invariants are still checked."""

        return cls(
            item_id=item_id,
            product=product,
            quantity=quantity,
            unit_price=unit_price,
            discount=discount,
            created_at=created_at,
            modified_at=modified_at,
        )

    @property
    def id(self) -> UUID:
        return self._id

    @property
    def product(self) -> ProductInfo:
        return self._product

    @property
    def product_id(self) -> UUID:
        return self._product.product_id

    @property
    def quantity(self) -> int:
        return self._quantity

    @property
    def unit_price(self) -> Money:
        return self._unit_price

    @property
    def discount(self) -> Money:
        return self._discount

    @property
    def currency(self) -> str:
        return self._unit_price.currency

    @property
    def created_at(self) -> datetime:
        return self._created_at

    @property
    def modified_at(self) -> Optional[datetime]:
        return self._modified_at

    @property
    def subtotal(self) -> Money:
        """Pre-discount total: unit_price * quantity."""

        return self._unit_price * self._quantity

    @property
    def line_total(self) -> Money:
        return self.subtotal - self._discount

    def update_quantity(self, new_quantity: int, *, now: Optional[datetime] = None) -> None:
        """Change the quantity. The discount is left for the Sale to recalculate."""

        require_valid_quantity(new_quantity)
        stamp = resolve_timestamp("now", now)
        self._quantity = new_quantity
        self._modified_at = stamp

    def apply_discount(self, amount: Money, *, now: Optional[datetime] = None) -> None:
        if amount.currency != self.currency:
            raise CurrencyMismatch("Discount currency must match item currency")
        if amount.amount > self.subtotal.amount:
            raise DiscountExceedsLineTotal("Discount cannot exceed line total")
        stamp = resolve_timestamp("now", now)
        self._discount = amount
        self._modified_at = stamp

    def update_unit_price(self, new_unit_price: Money, *, now: Optional[datetime] = None) -> None:
        """
        Replace the unit price.

        When the current discount would exceed the new subtotal, the discount
        resets to zero instead of failing.
        """

        if new_unit_price.currency != self.currency:
            raise CurrencyMismatch("New unit price currency must match existing currency")
        stamp = resolve_timestamp("now", now)
        self._unit_price = new_unit_price
        if self._discount.amount > self.subtotal.amount:
            self._discount = Money.zero(self.currency)
        self._modified_at = stamp

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SaleItem):
            return NotImplemented
        return self._id == other._id

    def __hash__(self) -> int:
        return hash(self._id)

    def __repr__(self) -> str:
        return (
            f"SaleItem(id={self._id}, product={self._product.name!r}, "
            f"quantity={self._quantity}, unit_price={self._unit_price}, discount={self._discount})"
        )


__all__ = ["MIN_QUANTITY", "MAX_QUANTITY_PER_PRODUCT", "SaleItem", "require_valid_quantity"]
