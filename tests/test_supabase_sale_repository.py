"""
Tests for `repositories/sale_repository.py` (Supabase backend).

A small in-memory stand-in for the Supabase query builder records rows per
table, so the tests check what the repository writes to `sales` and
`sale_items` and how it loads them back.

Covers contract rules:
- A sale is written as one `sales` row plus one `sale_items` row per item.
- Update replaces the sale's item rows.
- Delete removes the sale and its items.
- Supabase error responses raise RuntimeError.
"""

from __future__ import annotations

from datetime import datetime, timezone
from uuid import UUID

import pytest

from config import Settings, load_settings
from domain.errors import DuplicateSaleNumber, SaleNotFound
from domain.money import Money
from domain.sale import Sale
from domain.snapshots import BranchInfo, CustomerInfo, ProductInfo
from repositories.memory_sale_repository import InMemorySaleRepository
from repositories.sale_repository import SupabaseSaleRepository, create_sale_repository


class _Response:
    def __init__(self, data=None, error=None):
        self.data = data
        self.error = error


class _Query:
    def __init__(self, db: "_FakeSupabase", table: str):
        self._db = db
        self._table = table
        self._op = "select"
        self._payload = None
        self._filters = []
        self._order = None
        self._limit = None

    def select(self, columns="*"):
        self._op = "select"
        return self

    def insert(self, payload):
        self._op = "insert"
        self._payload = payload
        return self

    def update(self, payload):
        self._op = "update"
        self._payload = payload
        return self

    def delete(self):
        self._op = "delete"
        return self

    def eq(self, column, value):
        self._filters.append(lambda row: row.get(column) == value)
        return self

    def in_(self, column, values):
        self._filters.append(lambda row: row.get(column) in values)
        return self

    def gte(self, column, value):
        self._filters.append(lambda row: row.get(column) >= value)
        return self

    def lte(self, column, value):
        self._filters.append(lambda row: row.get(column) <= value)
        return self

    def order(self, column, desc=False):
        self._order = (column, desc)
        return self

    def limit(self, count):
        self._limit = count
        return self

    def execute(self):
        if self._db.error:
            return _Response(error=self._db.error)

        rows = self._db.tables.setdefault(self._table, [])
        if self._op == "insert":
            payload = self._payload if isinstance(self._payload, list) else [self._payload]
            rows.extend(dict(row) for row in payload)
            return _Response(data=[dict(row) for row in payload])

        matched = [row for row in rows if all(check(row) for check in self._filters)]
        if self._op == "update":
            for row in matched:
                row.update(self._payload)
            return _Response(data=[dict(row) for row in matched])
        if self._op == "delete":
            self._db.tables[self._table] = [
                row for row in rows if not any(row is m for m in matched)
            ]
            return _Response(data=[dict(row) for row in matched])

        if self._order is not None:
            column, desc = self._order
            matched.sort(key=lambda row: row[column], reverse=desc)
        if self._limit is not None:
            matched = matched[: self._limit]
        return _Response(data=[dict(row) for row in matched])


class _FakeSupabase:
    def __init__(self):
        self.tables = {}
        self.error = None

    def table(self, name):
        return _Query(self, name)


def _sale(number: str = "S001", day: int = 1) -> Sale:
    sale, _ = Sale.create(
        number,
        datetime(2025, 1, day, 10, 0, 0, tzinfo=timezone.utc),
        CustomerInfo(customer_id=UUID(int=11), name="Jane Doe", email="jane@example.com"),
        BranchInfo(branch_id=UUID(int=21), name="Downtown", location="Main Street 1"),
    )
    for n, quantity in ((1, 3), (2, 5), (3, 15)):
        sale.add_item(
            ProductInfo(
                product_id=UUID(int=300 + n),
                name=f"Product {n}",
                category="General",
                unit_price=Money.of("10.00"),
            ),
            quantity,
        )
    return sale


def test_add_writes_sale_and_item_rows() -> None:
    client = _FakeSupabase()
    repository = SupabaseSaleRepository(client)
    sale = _sale()

    repository.add(sale)

    [sale_row] = client.tables["sales"]
    assert sale_row["sale_number"] == "S001"
    assert sale_row["total_amount"] == "195.00"
    assert sale_row["is_cancelled"] is False
    assert len(client.tables["sale_items"]) == 3
    assert {row["discount"] for row in client.tables["sale_items"]} == {"0.00", "5.00", "30.00"}


def test_find_by_id_loads_full_sale() -> None:
    repository = SupabaseSaleRepository(_FakeSupabase())
    sale = _sale()
    repository.add(sale)

    loaded = repository.find_by_id(sale.id)

    assert loaded is not None
    assert [item.product_id for item in loaded.items] == [item.product_id for item in sale.items]
    assert loaded.total_amount == Money.of("195.00")
    assert repository.find_by_id(UUID(int=1)) is None


def test_update_replaces_item_rows() -> None:
    client = _FakeSupabase()
    repository = SupabaseSaleRepository(client)
    sale = _sale()
    repository.add(sale)

    sale.remove_item(sale.items[0].id)
    sale.cancel("customer request")
    repository.update(sale)

    assert len(client.tables["sale_items"]) == 2
    loaded = repository.find_by_sale_number("s001")
    assert loaded.is_cancelled is True
    assert loaded.cancellation_reason == "customer request"
    assert loaded.total_amount == Money.of("165.00")


def test_add_duplicate_number_and_update_unknown_sale() -> None:
    repository = SupabaseSaleRepository(_FakeSupabase())
    repository.add(_sale("S001"))

    with pytest.raises(DuplicateSaleNumber):
        repository.add(_sale("S001"))
    with pytest.raises(SaleNotFound):
        repository.update(_sale("S002"))


def test_find_all_orders_newest_first() -> None:
    repository = SupabaseSaleRepository(_FakeSupabase())
    repository.add(_sale("S001", day=1))
    repository.add(_sale("S002", day=5))

    assert [s.sale_number for s in repository.find_all()] == ["S002", "S001"]


def test_delete_removes_sale_and_items() -> None:
    client = _FakeSupabase()
    repository = SupabaseSaleRepository(client)
    sale = _sale()
    repository.add(sale)

    repository.delete(sale.id)

    assert client.tables["sales"] == []
    assert client.tables["sale_items"] == []
    with pytest.raises(SaleNotFound):
        repository.delete(sale.id)


def test_error_response_raises_runtime_error() -> None:
    client = _FakeSupabase()
    repository = SupabaseSaleRepository(client)
    client.error = "connection refused"

    with pytest.raises(RuntimeError, match="connection refused"):
        repository.find_all()


def test_factory_defaults_to_memory_backend() -> None:
    repository = create_sale_repository(Settings(repository_backend="memory"))

    assert isinstance(repository, InMemorySaleRepository)


def test_settings_reject_unknown_backend() -> None:
    with pytest.raises(RuntimeError):
        Settings(repository_backend="postgres")


def test_settings_read_cors_origins(monkeypatch) -> None:
    monkeypatch.setenv("CORS_ORIGINS", "https://shop.example.com, https://admin.example.com,")

    settings = load_settings()

    assert settings.cors_origins == ("https://shop.example.com", "https://admin.example.com")


def test_settings_default_to_any_origin(monkeypatch) -> None:
    monkeypatch.delenv("CORS_ORIGINS", raising=False)

    assert load_settings().cors_origins == ("*",)
