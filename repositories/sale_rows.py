"""
Row mapping for the Sale aggregate.

Converts a Sale into flat `sales` / `sale_items` rows and back. Timestamps are
ISO-8601 UTC strings and money amounts are decimal strings, so nothing is lost
to float conversion.

Stored rows are rebuilt with `Sale.rehydrate`: persisted per-item discounts
are trusted and never recalculated on read. The denormalized totals written to
`sales` exist for reporting queries and are ignored when loading.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple
from uuid import UUID

from domain.money import Money
from domain.sale import Sale
from domain.sale_item import SaleItem
from domain.snapshots import BranchInfo, CustomerInfo, ProductInfo
from domain.time import require_utc_timestamp


def to_iso_utc(dt: datetime, *, name: str) -> str:
    """Serialize a UTC datetime to ISO-8601 (timezone-aware, offset 0)."""

    require_utc_timestamp(name, dt)
    return dt.astimezone(timezone.utc).isoformat()


def _optional_iso_utc(dt: Optional[datetime], *, name: str) -> Optional[str]:
    return to_iso_utc(dt, name=name) if dt is not None else None


def parse_utc_datetime(value: Any) -> datetime:
    """
    Parse a stored timestamp into a timezone-aware UTC datetime.

    Supabase commonly returns ISO-8601 strings, sometimes with a trailing 'Z'.
    """

    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str):
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    else:
        raise TypeError(f"Unsupported timestamp type: {type(value)!r}")

    if dt.tzinfo is None or dt.utcoffset() is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _optional_utc_datetime(value: Any) -> Optional[datetime]:
    return parse_utc_datetime(value) if value else None


def sale_to_row(sale: Sale) -> Dict[str, Any]:
    return {
        "sale_id": str(sale.id),
        "sale_number": sale.sale_number,
        "sale_date_utc": to_iso_utc(sale.sale_date, name="sale_date"),
        "customer_id": str(sale.customer.customer_id),
        "customer_name": sale.customer.name,
        "customer_email": sale.customer.email,
        "branch_id": str(sale.branch.branch_id),
        "branch_name": sale.branch.name,
        "branch_location": sale.branch.location,
        "currency": sale.currency,
        "sale_level_discount": str(sale.sale_level_discount.amount),
        "sale_level_discount_currency": sale.sale_level_discount.currency,
        "total_quantity": sale.total_quantity,
        "subtotal": str(sale.subtotal.amount),
        "total_discount": str(sale.total_discount.amount),
        "total_amount": str(sale.total_amount.amount),
        "is_cancelled": sale.is_cancelled,
        "cancellation_reason": sale.cancellation_reason,
        "created_at_utc": to_iso_utc(sale.created_at, name="created_at"),
        "modified_at_utc": _optional_iso_utc(sale.modified_at, name="modified_at"),
    }


def item_to_row(sale_id: UUID, item: SaleItem) -> Dict[str, Any]:
    return {
        "item_id": str(item.id),
        "sale_id": str(sale_id),
        "product_id": str(item.product_id),
        "product_name": item.product.name,
        "product_category": item.product.category,
        "product_unit_price": str(item.product.unit_price.amount),
        "product_currency": item.product.unit_price.currency,
        "quantity": item.quantity,
        "unit_price": str(item.unit_price.amount),
        "discount": str(item.discount.amount),
        "currency": item.currency,
        "created_at_utc": to_iso_utc(item.created_at, name="created_at"),
        "modified_at_utc": _optional_iso_utc(item.modified_at, name="modified_at"),
    }


def sale_to_rows(sale: Sale) -> Tuple[Dict[str, Any], List[Dict[str, Any]]]:
    """Split a Sale into its `sales` row and ordered `sale_items` rows."""

    item_rows = []
    for position, item in enumerate(sale.items):
        row = item_to_row(sale.id, item)
        row["position"] = position
        item_rows.append(row)
    return sale_to_row(sale), item_rows


def row_to_item(row: Mapping[str, Any]) -> SaleItem:
    currency = str(row["currency"])
    product = ProductInfo(
        product_id=UUID(str(row["product_id"])),
        name=str(row["product_name"]),
        category=str(row["product_category"]),
        unit_price=Money.of(
            Decimal(str(row["product_unit_price"])),
            str(row.get("product_currency") or currency),
        ),
    )
    return SaleItem.rehydrate(
        item_id=UUID(str(row["item_id"])),
        product=product,
        quantity=int(row["quantity"]),
        unit_price=Money.of(Decimal(str(row["unit_price"])), currency),
        discount=Money.of(Decimal(str(row["discount"])), currency),
        created_at=parse_utc_datetime(row["created_at_utc"]),
        modified_at=_optional_utc_datetime(row.get("modified_at_utc")),
    )


def rows_to_sale(row: Mapping[str, Any], item_rows: Iterable[Mapping[str, Any]]) -> Sale:
    """Rebuild a Sale from its `sales` row and its `sale_items` rows."""

    ordered = sorted(item_rows, key=lambda r: int(r.get("position") or 0))
    discount_currency = row.get("sale_level_discount_currency") or row.get("currency") or "USD"

    return Sale.rehydrate(
        sale_id=UUID(str(row["sale_id"])),
        sale_number=str(row["sale_number"]),
        sale_date=parse_utc_datetime(row["sale_date_utc"]),
        customer=CustomerInfo(
            customer_id=UUID(str(row["customer_id"])),
            name=str(row["customer_name"]),
            email=str(row["customer_email"]),
        ),
        branch=BranchInfo(
            branch_id=UUID(str(row["branch_id"])),
            name=str(row["branch_name"]),
            location=str(row["branch_location"]),
        ),
        items=[row_to_item(item_row) for item_row in ordered],
        sale_level_discount=Money.of(
            Decimal(str(row.get("sale_level_discount") or "0")),
            str(discount_currency),
        ),
        is_cancelled=bool(row.get("is_cancelled", False)),
        cancellation_reason=row.get("cancellation_reason"),
        created_at=parse_utc_datetime(row["created_at_utc"]),
        modified_at=_optional_utc_datetime(row.get("modified_at_utc")),
    )


__all__ = [
    "item_to_row",
    "parse_utc_datetime",
    "row_to_item",
    "rows_to_sale",
    "sale_to_row",
    "sale_to_rows",
    "to_iso_utc",
]
