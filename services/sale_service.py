"""
Sale service: application operations on the Sale aggregate.

Handles:
- Building customer / branch / product snapshots from request data
- Sale number generation (unique per repository)
- Load -> mutate -> save -> publish for every change

Each operation saves the aggregate first and only then publishes the events
the aggregate returned, so a failed save never announces a change. Domain
errors propagate unchanged; the API layer maps them to HTTP responses.
"""

from __future__ import annotations

import logging
import random
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Iterator, List, Optional
from uuid import UUID

from domain.errors import DuplicateSaleNumber, InvalidArgument, SaleNotFound, SalesDomainError
from domain.events import SaleEvent
from domain.money import DEFAULT_CURRENCY, Money
from domain.sale import Sale
from domain.sale_item import SaleItem
from domain.snapshots import BranchInfo, CustomerInfo, ProductInfo
from domain.time import require_utc_timestamp, utc_now
from repositories.sale_repository import SaleRepository
from services.event_publisher import EventPublisher

logger = logging.getLogger(__name__)

SALE_NUMBER_ATTEMPTS: int = 10


class SaleNumberGenerationError(RuntimeError):
    pass


@dataclass(frozen=True, slots=True)
class SaleItemRequest:
    """
    A product line to add to a sale.

    `unit_price` overrides the product's catalogue price when given; its
    currency defaults to the product's currency.
    """

    product_id: UUID
    product_name: str
    product_category: str
    product_unit_price: Decimal
    quantity: int
    product_currency: str = DEFAULT_CURRENCY
    unit_price: Optional[Decimal] = None
    unit_price_currency: Optional[str] = None

    def to_product(self) -> ProductInfo:
        return ProductInfo(
            product_id=self.product_id,
            name=self.product_name,
            category=self.product_category,
            unit_price=Money.of(self.product_unit_price, self.product_currency),
        )

    def to_unit_price(self) -> Optional[Money]:
        if self.unit_price is None:
            return None
        return Money.of(self.unit_price, self.unit_price_currency or self.product_currency)


@dataclass(frozen=True, slots=True)
class CreateSaleRequest:
    customer_id: UUID
    customer_name: str
    customer_email: str
    branch_id: UUID
    branch_name: str
    branch_location: str
    items: List[SaleItemRequest] = field(default_factory=list)
    sale_number: Optional[str] = None  # generated when omitted
    sale_date: Optional[datetime] = None  # now when omitted


@dataclass(frozen=True, slots=True)
class SaleFilters:
    customer_id: Optional[UUID] = None
    branch_id: Optional[UUID] = None
    start: Optional[datetime] = None
    end: Optional[datetime] = None


def generate_sale_number(now: datetime, rng: random.Random) -> str:
    """`S` + UTC timestamp (YYYYMMDDHHMMSS) + random 3-digit suffix."""

    return f"S{now.strftime('%Y%m%d%H%M%S')}{rng.randint(100, 999)}"


class SaleService:
    def __init__(
        self,
        repository: SaleRepository,
        publisher: EventPublisher,
        *,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._repository = repository
        self._publisher = publisher
        self._rng = rng or random.Random()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_sale(self, sale_id: UUID) -> Sale:
        sale = self._repository.find_by_id(sale_id)
        if sale is None:
            logger.warning("Sale %s not found", sale_id)
            raise SaleNotFound(f"Sale not found: {sale_id}")
        return sale

    def get_sale_by_number(self, sale_number: str) -> Sale:
        sale = self._repository.find_by_sale_number(sale_number)
        if sale is None:
            logger.warning("Sale number %s not found", sale_number)
            raise SaleNotFound(f"Sale not found: {sale_number}")
        return sale

    def list_sales(self, filters: Optional[SaleFilters] = None) -> List[Sale]:
        """
        List sales, newest first.

        The most selective repository query is used first (customer, then
        branch, then date range); remaining filters are applied in memory.
        """

        filters = filters or SaleFilters()
        with _logged_rejection("list sales", "filters"):
            for name in ("start", "end"):
                value = getattr(filters, name)
                if value is not None:
                    require_utc_timestamp(name, value)
            if filters.start and filters.end and filters.start > filters.end:
                raise InvalidArgument("start must not be after end")

        if filters.customer_id is not None:
            sales = self._repository.find_by_customer_id(filters.customer_id)
        elif filters.branch_id is not None:
            sales = self._repository.find_by_branch_id(filters.branch_id)
        elif filters.start is not None and filters.end is not None:
            sales = self._repository.find_by_date_range(filters.start, filters.end)
        else:
            sales = self._repository.find_all()

        if filters.branch_id is not None:
            sales = [s for s in sales if s.branch.branch_id == filters.branch_id]
        if filters.start is not None:
            sales = [s for s in sales if s.sale_date >= filters.start]
        if filters.end is not None:
            sales = [s for s in sales if s.sale_date <= filters.end]

        logger.info("Retrieved %d sales", len(sales))
        return sales

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def _next_sale_number(self) -> str:
        for _ in range(SALE_NUMBER_ATTEMPTS):
            candidate = generate_sale_number(utc_now(), self._rng)
            if not self._repository.sale_number_exists(candidate):
                return candidate
        raise SaleNumberGenerationError(
            f"Unable to generate unique sale number after {SALE_NUMBER_ATTEMPTS} attempts"
        )

    def create_sale(self, request: CreateSaleRequest) -> Sale:
        """
        Create a sale with its initial items.

        The whole sale is built in memory before anything is saved; an invalid
        item rejects the request without storing a partial sale.
        """

        logger.info("Creating sale for customer %s", request.customer_id)

        with _logged_rejection("create sale", f"customer {request.customer_id}"):
            if request.sale_number is not None:
                sale_number = request.sale_number
                if self._repository.sale_number_exists(sale_number):
                    raise DuplicateSaleNumber(
                        f"Sale number already exists: {sale_number.strip().upper()}"
                    )
            else:
                sale_number = self._next_sale_number()

            customer = CustomerInfo(
                customer_id=request.customer_id,
                name=request.customer_name,
                email=request.customer_email,
            )
            branch = BranchInfo(
                branch_id=request.branch_id,
                name=request.branch_name,
                location=request.branch_location,
            )

            sale, created = Sale.create(
                sale_number,
                request.sale_date or utc_now(),
                customer,
                branch,
            )
            pending: List[SaleEvent] = [created]
            for item_request in request.items:
                _, modified = sale.add_item(
                    item_request.to_product(),
                    item_request.quantity,
                    item_request.to_unit_price(),
                )
                pending.append(modified)

            self._repository.add(sale)

        self._publisher.publish(pending)

        logger.info("Created sale %s with ID %s", sale.sale_number, sale.id)
        return sale

    def add_item(self, sale_id: UUID, request: SaleItemRequest) -> SaleItem:
        sale = self.get_sale(sale_id)
        with _logged_rejection("add item", f"sale {sale.sale_number}"):
            item, modified = sale.add_item(
                request.to_product(),
                request.quantity,
                request.to_unit_price(),
            )
        self._repository.update(sale)
        self._publisher.publish([modified])

        logger.info(
            "Added %d x product %s to sale %s", request.quantity, request.product_id, sale.sale_number
        )
        return item

    def update_item_quantity(self, sale_id: UUID, item_id: UUID, quantity: int) -> SaleItem:
        sale = self.get_sale(sale_id)
        with _logged_rejection("update item quantity", f"sale {sale.sale_number}"):
            item, modified = sale.update_item_quantity(item_id, quantity)
        self._repository.update(sale)
        self._publisher.publish([modified])

        logger.info("Set item %s on sale %s to quantity %d", item_id, sale.sale_number, quantity)
        return item

    def remove_item(self, sale_id: UUID, item_id: UUID) -> Sale:
        sale = self.get_sale(sale_id)
        with _logged_rejection("remove item", f"sale {sale.sale_number}"):
            _, modified = sale.remove_item(item_id)
        self._repository.update(sale)
        self._publisher.publish([modified])

        logger.info("Removed item %s from sale %s", item_id, sale.sale_number)
        return sale

    def cancel_sale(self, sale_id: UUID, reason: str) -> Sale:
        logger.info("Cancelling sale %s with reason: %s", sale_id, reason)

        sale = self.get_sale(sale_id)
        with _logged_rejection("cancel sale", f"sale {sale.sale_number}"):
            cancelled = sale.cancel(reason)
        self._repository.update(sale)
        self._publisher.publish([cancelled])

        logger.info("Sale %s cancelled successfully", sale.sale_number)
        return sale

    def delete_sale(self, sale_id: UUID) -> None:
        with _logged_rejection("delete sale", f"sale {sale_id}"):
            self._repository.delete(sale_id)
        logger.info("Deleted sale %s", sale_id)


@contextmanager
def _logged_rejection(action: str, target: str) -> Iterator[None]:
    """Log domain errors raised inside the block at WARNING, then re-raise."""

    try:
        yield
    except SalesDomainError as e:
        logger.warning("Rejected %s for %s: %s", action, target, e)
        raise


__all__ = [
    "CreateSaleRequest",
    "SaleFilters",
    "SaleItemRequest",
    "SaleNumberGenerationError",
    "SaleService",
    "generate_sale_number",
]
