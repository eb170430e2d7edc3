"""
Domain: Sale aggregate.

Contract rules implemented here:
- A Sale has a required sale number, stored trimmed and uppercased.
- A Sale holds at most one line item per product; adding a product that is
  already present merges into the existing line, and the 20-unit cap applies
  to the merged quantity.
- All line items of a Sale share one currency.
- Quantity discounts are tiered per line item by that line's own quantity:
  - quantity < 4: 0%
  - 4 <= quantity <= 9: 10%
  - 10 <= quantity <= 20: 20%
- Discounts are recalculated over every line after each structural change.
- Totals (quantity, subtotal, discount, amount) are derived from the line items
  on every read and never stored.
- A Sale is Active until cancelled. Cancellation needs a reason and is final;
  a cancelled Sale accepts no further changes.

Mutators validate before changing anything, so a failed call leaves the Sale
exactly as it was. Each mutator returns its lifecycle event to the caller
instead of queueing it on the aggregate.

This module contains only pure domain entities: no I/O, no database, no frameworks.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Iterable, List, Optional, Sequence, Tuple
from uuid import UUID, uuid4

from . import events
from .errors import (
    CurrencyMismatch,
    InvalidArgument,
    InvalidCancellation,
    ItemNotFound,
    SaleAlreadyCancelled,
)
from .money import DEFAULT_CURRENCY, Money
from .sale_item import SaleItem, require_valid_quantity
from .snapshots import BranchInfo, CustomerInfo, ProductInfo
from .time import require_utc_timestamp, resolve_timestamp

# (lowest quantity, discount percentage), checked from the top tier down.
DISCOUNT_TIERS: Tuple[Tuple[int, Decimal], ...] = (
    (10, Decimal("20")),
    (4, Decimal("10")),
)


def discount_percentage_for(quantity: int) -> Decimal:
    """
    Discount percentage earned by a single line of `quantity` identical items.

    Quantities above 20 never reach here; they are rejected when the line is
    created or updated.
    """

    for threshold, percentage in DISCOUNT_TIERS:
        if quantity >= threshold:
            return percentage
    return Decimal("0")


class SaleStatus(str, Enum):
    ACTIVE = "ACTIVE"
    CANCELLED = "CANCELLED"


def _normalize_sale_number(sale_number: str) -> str:
    if not isinstance(sale_number, str) or not sale_number.strip():
        raise InvalidArgument("Sale number cannot be null or empty")
    return sale_number.strip().upper()


class Sale:
    """
    Aggregate root for a sale and its line items.

    Build new sales with `Sale.create` and stored ones with `Sale.rehydrate`.
    """

    def __init__(
        self,
        *,
        sale_id: UUID,
        sale_number: str,
        sale_date: datetime,
        customer: CustomerInfo,
        branch: BranchInfo,
        created_at: datetime,
        items: Optional[Iterable[SaleItem]] = None,
        sale_level_discount: Optional[Money] = None,
        is_cancelled: bool = False,
        cancellation_reason: Optional[str] = None,
        modified_at: Optional[datetime] = None,
    ) -> None:
        if not isinstance(customer, CustomerInfo):
            raise InvalidArgument("customer is required")
        if not isinstance(branch, BranchInfo):
            raise InvalidArgument("branch is required")
        require_utc_timestamp("sale_date", sale_date)
        require_utc_timestamp("created_at", created_at)
        if modified_at is not None:
            require_utc_timestamp("modified_at", modified_at)

        self._id = sale_id
        self._sale_number = _normalize_sale_number(sale_number)
        self._sale_date = sale_date
        self._customer = customer
        self._branch = branch
        self._items: List[SaleItem] = list(items or [])
        if sale_level_discount is None:
            sale_level_discount = Money.zero(self.currency)
        self._sale_level_discount = sale_level_discount
        self._is_cancelled = is_cancelled
        self._cancellation_reason = cancellation_reason
        self._created_at = created_at
        self._modified_at = modified_at

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def create(
        cls,
        sale_number: str,
        sale_date: datetime,
        customer: CustomerInfo,
        branch: BranchInfo,
        *,
        sale_id: Optional[UUID] = None,
        now: Optional[datetime] = None,
    ) -> Tuple["Sale", events.SaleCreated]:
        """
        Open a new, empty, active sale.

        Returns the sale together with its SaleCreated event.
        """

        stamp = resolve_timestamp("now", now)
        sale = cls(
            sale_id=sale_id or uuid4(),
            sale_number=sale_number,
            sale_date=sale_date,
            customer=customer,
            branch=branch,
            created_at=stamp,
        )
        created = events.SaleCreated(
            sale_id=sale.id,
            sale_number=sale.sale_number,
            customer_id=customer.customer_id,
            branch_id=branch.branch_id,
            total_amount=sale.total_amount.amount,
            currency=sale.currency,
            item_count=0,
            occurred_at=stamp,
        )
        return sale, created

    @classmethod
    def rehydrate(
        cls,
        *,
        sale_id: UUID,
        sale_number: str,
        sale_date: datetime,
        customer: CustomerInfo,
        branch: BranchInfo,
        items: Sequence[SaleItem],
        sale_level_discount: Money,
        is_cancelled: bool,
        cancellation_reason: Optional[str],
        created_at: datetime,
        modified_at: Optional[datetime] = None,
    ) -> "Sale":
        """
        Rebuild a stored sale from already-persisted state.

        No event is produced and discounts are not recalculated: the stored
        per-item discounts are trusted. Structural invariants still hold:
        one line per product, one currency, a total discount no larger than the
        subtotal, and a reason on cancelled sales.
        """

        seen: set[UUID] = set()
        for item in items:
            if item.product_id in seen:
                raise InvalidArgument(f"Duplicate line item for product {item.product_id}")
            seen.add(item.product_id)

        currencies = {item.currency for item in items}
        if len(currencies) > 1:
            raise CurrencyMismatch(f"Sale items use mixed currencies: {sorted(currencies)}")
        currency = items[0].currency if items else DEFAULT_CURRENCY
        if sale_level_discount.currency != currency:
            raise CurrencyMismatch("Sale-level discount currency must match item currency")

        subtotal = sum((item.subtotal.amount for item in items), Decimal("0"))
        discount = sum((item.discount.amount for item in items), sale_level_discount.amount)
        if discount > subtotal:
            raise InvalidArgument(
                f"Total discount {discount} exceeds sale subtotal {subtotal}"
            )

        if is_cancelled and (cancellation_reason is None or not cancellation_reason.strip()):
            raise InvalidCancellation("Cancelled sale must carry a cancellation reason")

        return cls(
            sale_id=sale_id,
            sale_number=sale_number,
            sale_date=sale_date,
            customer=customer,
            branch=branch,
            created_at=created_at,
            items=items,
            sale_level_discount=sale_level_discount,
            is_cancelled=is_cancelled,
            cancellation_reason=cancellation_reason,
            modified_at=modified_at,
        )

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def id(self) -> UUID:
        return self._id

    @property
    def sale_number(self) -> str:
        return self._sale_number

    @property
    def sale_date(self) -> datetime:
        return self._sale_date

    @property
    def customer(self) -> CustomerInfo:
        return self._customer

    @property
    def branch(self) -> BranchInfo:
        return self._branch

    @property
    def items(self) -> Tuple[SaleItem, ...]:
        return tuple(self._items)

    @property
    def sale_level_discount(self) -> Money:
        return self._sale_level_discount

    @property
    def is_cancelled(self) -> bool:
        return self._is_cancelled

    @property
    def status(self) -> SaleStatus:
        return SaleStatus.CANCELLED if self._is_cancelled else SaleStatus.ACTIVE

    @property
    def cancellation_reason(self) -> Optional[str]:
        return self._cancellation_reason

    @property
    def created_at(self) -> datetime:
        return self._created_at

    @property
    def modified_at(self) -> Optional[datetime]:
        return self._modified_at

    # ------------------------------------------------------------------
    # Derived totals (always computed from the current items)
    # ------------------------------------------------------------------

    @property
    def currency(self) -> str:
        if not self._items:
            return DEFAULT_CURRENCY
        return self._items[0].currency

    @property
    def item_count(self) -> int:
        return len(self._items)

    @property
    def total_quantity(self) -> int:
        return sum(item.quantity for item in self._items)

    @property
    def subtotal(self) -> Money:
        total = Money.zero(self.currency)
        for item in self._items:
            total = total + item.subtotal
        return total

    @property
    def total_discount(self) -> Money:
        total = Money.zero(self.currency)
        for item in self._items:
            total = total + item.discount
        return total + self._sale_level_discount

    @property
    def total_amount(self) -> Money:
        return self.subtotal - self.total_discount

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def find_item(self, item_id: UUID) -> Optional[SaleItem]:
        for item in self._items:
            if item.id == item_id:
                return item
        return None

    def get_item(self, item_id: UUID) -> SaleItem:
        item = self.find_item(item_id)
        if item is None:
            raise ItemNotFound(f"Sale item not found: {item_id}")
        return item

    def find_item_by_product(self, product_id: UUID) -> Optional[SaleItem]:
        for item in self._items:
            if item.product_id == product_id:
                return item
        return None

    # ------------------------------------------------------------------
    # Mutators
    # ------------------------------------------------------------------

    def _require_active(self) -> None:
        if self._is_cancelled:
            raise SaleAlreadyCancelled("Cannot modify a cancelled sale")

    def add_item(
        self,
        product: ProductInfo,
        quantity: int,
        unit_price: Optional[Money] = None,
        *,
        now: Optional[datetime] = None,
    ) -> Tuple[SaleItem, events.SaleModified]:
        """
        Add `quantity` units of `product`.

        If the product is already on the sale its line absorbs the quantity
        and keeps its original unit price; the merged quantity must stay
        within the 20-unit cap.
        """

        self._require_active()
        require_valid_quantity(quantity)
        stamp = resolve_timestamp("now", now)

        price = unit_price if unit_price is not None else product.unit_price
        if self._items and price.currency != self.currency:
            raise CurrencyMismatch(
                f"Item currency {price.currency} does not match sale currency {self.currency}"
            )

        item = self.find_item_by_product(product.product_id)
        if item is not None:
            merged = item.quantity + quantity
            require_valid_quantity(merged)
            self._check_line_totals(item, item.unit_price, merged)
            item.update_quantity(merged, now=stamp)
        else:
            self._check_line_totals(None, price, quantity)
            item = SaleItem.create(product, quantity, price, now=stamp)
            self._items.append(item)

        return item, self._after_change("ItemAdded", stamp)

    def update_item_quantity(
        self,
        item_id: UUID,
        new_quantity: int,
        *,
        now: Optional[datetime] = None,
    ) -> Tuple[SaleItem, events.SaleModified]:
        self._require_active()
        item = self.get_item(item_id)
        require_valid_quantity(new_quantity)
        self._check_line_totals(item, item.unit_price, new_quantity)
        stamp = resolve_timestamp("now", now)
        item.update_quantity(new_quantity, now=stamp)
        return item, self._after_change("ItemQuantityUpdated", stamp)

    def remove_item(
        self,
        item_id: UUID,
        *,
        now: Optional[datetime] = None,
    ) -> Tuple[SaleItem, events.SaleModified]:
        self._require_active()
        item = self.get_item(item_id)
        stamp = resolve_timestamp("now", now)
        self._items.remove(item)
        return item, self._after_change("ItemRemoved", stamp)

    def cancel(self, reason: str, *, now: Optional[datetime] = None) -> events.SaleCancelled:
        """
        Cancel the sale. There is no way back.

        The event records the total at the moment of cancellation as the
        refund amount.
        """

        if self._is_cancelled:
            raise SaleAlreadyCancelled("Sale is already cancelled")
        if not isinstance(reason, str) or not reason.strip():
            raise InvalidCancellation("Cancellation reason is required")
        stamp = resolve_timestamp("now", now)

        refund = self.total_amount
        self._is_cancelled = True
        self._cancellation_reason = reason.strip()
        self._modified_at = stamp

        return events.SaleCancelled(
            sale_id=self._id,
            sale_number=self._sale_number,
            cancellation_reason=self._cancellation_reason,
            refund_amount=refund.amount,
            currency=refund.currency,
            occurred_at=stamp,
        )

    # ------------------------------------------------------------------
    # Business rules
    # ------------------------------------------------------------------

    def _check_line_totals(
        self, changed: Optional[SaleItem], unit_price: Money, quantity: int
    ) -> Money:
        """
        Subtotal the sale would have with `changed` (or a new line) priced at
        `unit_price` x `quantity`. Raises InvalidMoney if it cannot be held.
        """

        total = unit_price * quantity
        for item in self._items:
            if item is not changed:
                total = total + item.subtotal
        return total

    def _after_change(self, modification_type: str, stamp: datetime) -> events.SaleModified:
        self._apply_business_rules(stamp)
        self._modified_at = stamp
        total = self.total_amount
        return events.SaleModified(
            sale_id=self._id,
            sale_number=self._sale_number,
            total_amount=total.amount,
            currency=total.currency,
            total_quantity=self.total_quantity,
            modification_type=modification_type,
            occurred_at=stamp,
        )

    def _apply_business_rules(self, stamp: datetime) -> None:
        """Recompute every line's quantity discount from scratch."""

        if not self._items:
            self._sale_level_discount = Money.zero()
            return

        currency = self.currency
        for item in self._items:
            percentage = discount_percentage_for(item.quantity)
            if percentage > 0:
                subtotal = item.subtotal
                remaining = subtotal.apply_discount_percentage(percentage)
                item.apply_discount(subtotal - remaining, now=stamp)
            else:
                item.apply_discount(Money.zero(currency), now=stamp)

        # No sale-wide promotion exists; the field stays at zero.
        self._sale_level_discount = Money.zero(currency)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Sale):
            return NotImplemented
        return self._id == other._id

    def __hash__(self) -> int:
        return hash(self._id)

    def __repr__(self) -> str:
        return (
            f"Sale(id={self._id}, sale_number={self._sale_number!r}, "
            f"items={len(self._items)}, total_amount={self.total_amount}, status={self.status.value})"
        )


__all__ = ["DISCOUNT_TIERS", "Sale", "SaleStatus", "discount_percentage_for"]
