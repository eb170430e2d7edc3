"""
Sale repository (persistence).

This module provides *only* persistence operations for the Sale aggregate. It
does not enforce business rules; the aggregate does. Every operation works on
the full object graph: a sale is always loaded and saved together with its
line items.

Two backends implement the `SaleRepository` protocol:
- SupabaseSaleRepository (this module): `sales` and `sale_items` tables.
- InMemorySaleRepository (`repositories/memory_sale_repository.py`).
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Protocol, Sequence
from uuid import UUID

from config import Settings
from domain.errors import DuplicateSaleNumber, SaleNotFound
from domain.sale import Sale
from repositories.sale_rows import rows_to_sale, sale_to_rows, to_iso_utc

# Supabase table names.
# Keep these aligned with your database schema.
_SALES_TABLE: str = "sales"
_SALE_ITEMS_TABLE: str = "sale_items"


class SaleRepository(Protocol):
    """Storage for Sale aggregates."""

    def find_by_id(self, sale_id: UUID) -> Optional[Sale]:
        ...

    def find_by_sale_number(self, sale_number: str) -> Optional[Sale]:
        ...

    def find_all(self) -> List[Sale]:
        ...

    def find_by_customer_id(self, customer_id: UUID) -> List[Sale]:
        ...

    def find_by_branch_id(self, branch_id: UUID) -> List[Sale]:
        ...

    def find_by_date_range(self, start: datetime, end: datetime) -> List[Sale]:
        ...

    def add(self, sale: Sale) -> Sale:
        ...

    def update(self, sale: Sale) -> Sale:
        ...

    def delete(self, sale_id: UUID) -> None:
        ...

    def exists(self, sale_id: UUID) -> bool:
        ...

    def sale_number_exists(self, sale_number: str) -> bool:
        ...


def _raise_on_error(response: Any, action: str) -> List[Mapping[str, Any]]:
    """Raise on a Supabase error response; otherwise return its rows."""

    error = getattr(response, "error", None)
    if error:
        raise RuntimeError(f"Failed to {action}: {error}")
    return getattr(response, "data", None) or []


class SupabaseSaleRepository:
    """Sale persistence backed by Supabase tables."""

    def __init__(self, client: Any) -> None:
        self._client = client

    # -- reads -----------------------------------------------------------

    def _load_items(self, sale_ids: Sequence[str]) -> Dict[str, List[Mapping[str, Any]]]:
        grouped: Dict[str, List[Mapping[str, Any]]] = {sale_id: [] for sale_id in sale_ids}
        if not sale_ids:
            return grouped

        response = (
            self._client.table(_SALE_ITEMS_TABLE)
            .select("*")
            .in_("sale_id", list(sale_ids))
            .execute()
        )
        for row in _raise_on_error(response, "load sale items"):
            grouped.setdefault(str(row["sale_id"]), []).append(row)
        return grouped

    def _materialize(self, rows: Sequence[Mapping[str, Any]]) -> List[Sale]:
        sale_ids = [str(row["sale_id"]) for row in rows]
        items_by_sale = self._load_items(sale_ids)
        return [rows_to_sale(row, items_by_sale.get(str(row["sale_id"]), [])) for row in rows]

    def _find_one(self, column: str, value: str) -> Optional[Sale]:
        response = (
            self._client.table(_SALES_TABLE)
            .select("*")
            .eq(column, value)
            .limit(1)
            .execute()
        )
        rows = _raise_on_error(response, "get sale")
        if not rows:
            return None
        return self._materialize(rows)[0]

    def find_by_id(self, sale_id: UUID) -> Optional[Sale]:
        return self._find_one("sale_id", str(sale_id))

    def find_by_sale_number(self, sale_number: str) -> Optional[Sale]:
        return self._find_one("sale_number", sale_number.strip().upper())

    def find_all(self) -> List[Sale]:
        response = (
            self._client.table(_SALES_TABLE)
            .select("*")
            .order("sale_date_utc", desc=True)
            .execute()
        )
        return self._materialize(_raise_on_error(response, "list sales"))

    def find_by_customer_id(self, customer_id: UUID) -> List[Sale]:
        response = (
            self._client.table(_SALES_TABLE)
            .select("*")
            .eq("customer_id", str(customer_id))
            .order("sale_date_utc", desc=True)
            .execute()
        )
        return self._materialize(_raise_on_error(response, "list sales"))

    def find_by_branch_id(self, branch_id: UUID) -> List[Sale]:
        response = (
            self._client.table(_SALES_TABLE)
            .select("*")
            .eq("branch_id", str(branch_id))
            .order("sale_date_utc", desc=True)
            .execute()
        )
        return self._materialize(_raise_on_error(response, "list sales"))

    def find_by_date_range(self, start: datetime, end: datetime) -> List[Sale]:
        response = (
            self._client.table(_SALES_TABLE)
            .select("*")
            .gte("sale_date_utc", to_iso_utc(start, name="start"))
            .lte("sale_date_utc", to_iso_utc(end, name="end"))
            .order("sale_date_utc", desc=True)
            .execute()
        )
        return self._materialize(_raise_on_error(response, "list sales"))

    def _exists_where(self, column: str, value: str) -> bool:
        response = (
            self._client.table(_SALES_TABLE)
            .select("sale_id")
            .eq(column, value)
            .limit(1)
            .execute()
        )
        return bool(_raise_on_error(response, "check sale"))

    def exists(self, sale_id: UUID) -> bool:
        return self._exists_where("sale_id", str(sale_id))

    def sale_number_exists(self, sale_number: str) -> bool:
        return self._exists_where("sale_number", sale_number.strip().upper())

    # -- writes ----------------------------------------------------------

    def _insert_items(self, item_rows: List[Dict[str, Any]]) -> None:
        if not item_rows:
            return
        response = self._client.table(_SALE_ITEMS_TABLE).insert(item_rows).execute()
        _raise_on_error(response, "save sale items")

    def add(self, sale: Sale) -> Sale:
        if self.sale_number_exists(sale.sale_number):
            raise DuplicateSaleNumber(f"Sale number already exists: {sale.sale_number}")

        sale_row, item_rows = sale_to_rows(sale)
        response = self._client.table(_SALES_TABLE).insert(sale_row).execute()
        _raise_on_error(response, "record sale")
        self._insert_items(item_rows)
        return sale

    def update(self, sale: Sale) -> Sale:
        """Replace the stored sale row and all of its item rows."""

        if not self.exists(sale.id):
            raise SaleNotFound(f"Sale not found: {sale.id}")

        sale_row, item_rows = sale_to_rows(sale)
        response = (
            self._client.table(_SALES_TABLE)
            .update(sale_row)
            .eq("sale_id", str(sale.id))
            .execute()
        )
        _raise_on_error(response, "update sale")

        response = (
            self._client.table(_SALE_ITEMS_TABLE)
            .delete()
            .eq("sale_id", str(sale.id))
            .execute()
        )
        _raise_on_error(response, "replace sale items")
        self._insert_items(item_rows)
        return sale

    def delete(self, sale_id: UUID) -> None:
        if not self.exists(sale_id):
            raise SaleNotFound(f"Sale not found: {sale_id}")

        response = (
            self._client.table(_SALE_ITEMS_TABLE)
            .delete()
            .eq("sale_id", str(sale_id))
            .execute()
        )
        _raise_on_error(response, "delete sale items")

        response = (
            self._client.table(_SALES_TABLE)
            .delete()
            .eq("sale_id", str(sale_id))
            .execute()
        )
        _raise_on_error(response, "delete sale")


def create_sale_repository(settings: Settings) -> SaleRepository:
    """Build the repository backend selected by SALES_REPOSITORY."""

    if settings.repository_backend == "supabase":
        from repositories.client import get_supabase

        return SupabaseSaleRepository(get_supabase())

    from repositories.memory_sale_repository import InMemorySaleRepository

    return InMemorySaleRepository()


__all__ = [
    "SaleRepository",
    "SupabaseSaleRepository",
    "create_sale_repository",
]
