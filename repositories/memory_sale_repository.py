"""
In-memory sale repository.

Keeps serialized rows in dictionaries, the same rows the Supabase backend
writes, and rebuilds a fresh Sale on every read. Callers never share object
identity with the store: changes only land through `add` / `update`.

Used by the test suite and for local runs without a database
(SALES_REPOSITORY=memory).
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from domain.errors import DuplicateSaleNumber, SaleNotFound
from domain.sale import Sale
from domain.time import require_utc_timestamp
from repositories.sale_rows import parse_utc_datetime, rows_to_sale, sale_to_rows


class InMemorySaleRepository:
    def __init__(self) -> None:
        self._sales: Dict[str, Dict[str, Any]] = {}
        self._items: Dict[str, List[Dict[str, Any]]] = {}

    def _load(self, key: str) -> Sale:
        return rows_to_sale(self._sales[key], self._items.get(key, []))

    def _select(self, predicate) -> List[Sale]:
        keys = [key for key, row in self._sales.items() if predicate(row)]
        keys.sort(key=lambda key: parse_utc_datetime(self._sales[key]["sale_date_utc"]), reverse=True)
        return [self._load(key) for key in keys]

    def find_by_id(self, sale_id: UUID) -> Optional[Sale]:
        key = str(sale_id)
        if key not in self._sales:
            return None
        return self._load(key)

    def find_by_sale_number(self, sale_number: str) -> Optional[Sale]:
        wanted = sale_number.strip().upper()
        for key, row in self._sales.items():
            if row["sale_number"] == wanted:
                return self._load(key)
        return None

    def find_all(self) -> List[Sale]:
        return self._select(lambda row: True)

    def find_by_customer_id(self, customer_id: UUID) -> List[Sale]:
        return self._select(lambda row: row["customer_id"] == str(customer_id))

    def find_by_branch_id(self, branch_id: UUID) -> List[Sale]:
        return self._select(lambda row: row["branch_id"] == str(branch_id))

    def find_by_date_range(self, start: datetime, end: datetime) -> List[Sale]:
        require_utc_timestamp("start", start)
        require_utc_timestamp("end", end)
        return self._select(
            lambda row: start <= parse_utc_datetime(row["sale_date_utc"]) <= end
        )

    def exists(self, sale_id: UUID) -> bool:
        return str(sale_id) in self._sales

    def sale_number_exists(self, sale_number: str) -> bool:
        wanted = sale_number.strip().upper()
        return any(row["sale_number"] == wanted for row in self._sales.values())

    def add(self, sale: Sale) -> Sale:
        if self.sale_number_exists(sale.sale_number):
            raise DuplicateSaleNumber(f"Sale number already exists: {sale.sale_number}")
        self._store(sale)
        return sale

    def update(self, sale: Sale) -> Sale:
        if not self.exists(sale.id):
            raise SaleNotFound(f"Sale not found: {sale.id}")
        self._store(sale)
        return sale

    def delete(self, sale_id: UUID) -> None:
        key = str(sale_id)
        if key not in self._sales:
            raise SaleNotFound(f"Sale not found: {sale_id}")
        del self._sales[key]
        self._items.pop(key, None)

    def _store(self, sale: Sale) -> None:
        sale_row, item_rows = sale_to_rows(sale)
        key = sale_row["sale_id"]
        self._sales[key] = sale_row
        self._items[key] = item_rows


__all__ = ["InMemorySaleRepository"]
