"""
Domain: denormalized snapshots of records owned by other systems.

A sale embeds copies of the customer, branch and product it refers to, taken
at the time of the sale. They are immutable values, never live references, so
later changes to a product's price or a customer's email never rewrite
historical sales.

Snapshots are equal when their identifiers are equal.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from uuid import UUID

from .errors import InvalidArgument
from .money import Money


def _require_id(name: str, value: UUID) -> None:
    if not isinstance(value, UUID) or value.int == 0:
        raise InvalidArgument(f"{name} cannot be empty")


def _require_text(name: str, value: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise InvalidArgument(f"{name} cannot be null or empty")
    return value.strip()


@dataclass(frozen=True, slots=True)
class CustomerInfo:
    customer_id: UUID
    name: str = field(compare=False)
    email: str = field(compare=False)

    def __post_init__(self) -> None:
        _require_id("customer_id", self.customer_id)
        object.__setattr__(self, "name", _require_text("Customer name", self.name))
        object.__setattr__(self, "email", _require_text("Customer email", self.email).lower())

    def __str__(self) -> str:
        return f"{self.name} ({self.email})"


@dataclass(frozen=True, slots=True)
class BranchInfo:
    branch_id: UUID
    name: str = field(compare=False)
    location: str = field(compare=False)

    def __post_init__(self) -> None:
        _require_id("branch_id", self.branch_id)
        object.__setattr__(self, "name", _require_text("Branch name", self.name))
        object.__setattr__(self, "location", _require_text("Branch location", self.location))

    def __str__(self) -> str:
        return f"{self.name} - {self.location}"


@dataclass(frozen=True, slots=True)
class ProductInfo:
    """
    Product snapshot captured when an item is added to a sale.

    `unit_price` is the catalogue price at that moment; a sale item may
    override it.
    """

    product_id: UUID
    name: str = field(compare=False)
    category: str = field(compare=False)
    unit_price: Money = field(compare=False)

    def __post_init__(self) -> None:
        _require_id("product_id", self.product_id)
        object.__setattr__(self, "name", _require_text("Product name", self.name))
        object.__setattr__(self, "category", _require_text("Product category", self.category))
        if not isinstance(self.unit_price, Money):
            raise InvalidArgument("Product unit_price must be Money")

    def __str__(self) -> str:
        return f"{self.name} ({self.category}) - {self.unit_price}"


__all__ = ["CustomerInfo", "BranchInfo", "ProductInfo"]
