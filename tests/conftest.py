from __future__ import annotations

import itertools
import re
from typing import Any, Callable, Dict, List, Optional

import pandas as pd
import pytest

from bizdash.config import Settings

ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}")


class FakeResponse:
    def __init__(self, data: List[Dict[str, Any]], count: Optional[int] = None) -> None:
        self.data = data
        self.count = count


def _key(value: Any) -> Any:
    if isinstance(value, str) and ISO_DATE.match(value):
        return pd.Timestamp(value)
    return value


class FakeQuery:
    """Chainable stand-in for the PostgREST query builder, backed by lists of dicts."""

    def __init__(self, db: "FakeSupabase", table: str) -> None:
        self.db = db
        self.table_name = table
        self.op = "select"
        self.columns = "*"
        self.count_mode: Optional[str] = None
        self.filters: List[Callable[[Dict[str, Any]], bool]] = []
        self.orders: List[tuple] = []
        self.limit_n: Optional[int] = None
        self.window: Optional[tuple] = None
        self.payload: List[Dict[str, Any]] = []

    def select(self, columns: str = "*", count: Optional[str] = None) -> "FakeQuery":
        self.columns = columns
        self.count_mode = count
        return self

    def eq(self, col: str, value: Any) -> "FakeQuery":
        self.filters.append(lambda r: r.get(col) == value)
        return self

    def in_(self, col: str, values: List[Any]) -> "FakeQuery":
        allowed = list(values)
        self.filters.append(lambda r: r.get(col) in allowed)
        return self

    def gte(self, col: str, value: Any) -> "FakeQuery":
        self.filters.append(lambda r: r.get(col) is not None and _key(r[col]) >= _key(value))
        return self

    def lte(self, col: str, value: Any) -> "FakeQuery":
        self.filters.append(lambda r: r.get(col) is not None and _key(r[col]) <= _key(value))
        return self

    def lt(self, col: str, value: Any) -> "FakeQuery":
        self.filters.append(lambda r: r.get(col) is not None and _key(r[col]) < _key(value))
        return self

    def order(self, col: str, desc: bool = False) -> "FakeQuery":
        self.orders.append((col, desc))
        return self

    def limit(self, n: int) -> "FakeQuery":
        self.limit_n = n
        return self

    def range(self, start: int, end: int) -> "FakeQuery":
        self.window = (start, end)
        return self

    def insert(self, rows: List[Dict[str, Any]]) -> "FakeQuery":
        self.op = "insert"
        self.payload = list(rows)
        return self

    def delete(self) -> "FakeQuery":
        self.op = "delete"
        return self

    def execute(self) -> FakeResponse:
        self.db.executed.append((self.table_name, self.op))
        if self.table_name in self.db.fail_on:
            raise RuntimeError(f"{self.table_name} is unavailable")
        rows = self.db.tables.setdefault(self.table_name, [])

        if self.op == "insert":
            inserted = []
            for row in self.payload:
                stored = {"id": next(self.db.ids), **row}
                rows.append(stored)
                inserted.append(dict(stored))
            return FakeResponse(inserted)

        matched = [r for r in rows if all(f(r) for f in self.filters)]
        if self.op == "delete":
            self.db.tables[self.table_name] = [r for r in rows if r not in matched]
            return FakeResponse(matched)

        for col, desc in reversed(self.orders):
            matched.sort(key=lambda r: (r.get(col) is None, _key(r.get(col))), reverse=desc)
        total = len(matched)
        if self.window is not None:
            matched = matched[self.window[0] : self.window[1] + 1]
        if self.limit_n is not None:
            matched = matched[: self.limit_n]
        if self.columns.strip() != "*":
            cols = [c.strip() for c in self.columns.split(",")]
            matched = [{c: r.get(c) for c in cols} for r in matched]
        else:
            matched = [dict(r) for r in matched]
        return FakeResponse(matched, total if self.count_mode else None)


class FakeSupabase:
    def __init__(self, tables: Optional[Dict[str, List[Dict[str, Any]]]] = None) -> None:
        self.tables: Dict[str, List[Dict[str, Any]]] = {k: [dict(r) for r in v] for k, v in (tables or {}).items()}
        self.fail_on: set = set()
        self.executed: List[tuple] = []
        self.ids = itertools.count(1000)

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def read_tables(self) -> List[str]:
        return [t for t, op in self.executed if op == "select"]


SEED: Dict[str, List[Dict[str, Any]]] = {
    "products": [
        {"id": "p1", "name": "Double Side Tri Colour 10x12 Cover", "purchase_price": 30, "selling_price": 50,
         "category": "Packages", "active": True, "unit": "Pieces"},
        {"id": "p2", "name": "Single Side Single Colour 8x10 Parcel", "purchase_price": None, "selling_price": 20,
         "category": "Packages", "active": True, "unit": "Pieces"},
        {"id": "p3", "name": "Sona Masoori Rice", "purchase_price": 40, "selling_price": 60,
         "category": "Groceries", "active": True, "unit": "Kilograms"},
        {"id": "p4", "name": "Old Stock 12x16 Cover", "purchase_price": 10, "selling_price": 12,
         "category": "Packages", "active": False, "unit": "Pieces"},
    ],
    "sales": [
        {"id": "s1", "sale_at": "2024-03-10T06:00:00.000Z", "client_id": "c1", "delivered": True},
        {"id": "s2", "sale_at": "2024-03-11T20:00:00.000Z", "client_id": "c2", "delivered": False},
        {"id": "s3", "sale_at": "2024-01-05T06:00:00.000Z", "client_id": "c1", "delivered": True},
    ],
    "sales_items": [
        {"id": "si1", "sale_id": "s1", "product_id": "p1", "quantity": 10, "unit_price": 50},
        {"id": "si2", "sale_id": "s2", "product_id": "p2", "quantity": 5, "unit_price": 20},
        {"id": "si3", "sale_id": "s1", "product_id": "p3", "quantity": 2, "unit_price": 60},
        {"id": "si4", "sale_id": "s3", "product_id": "p1", "quantity": 1, "unit_price": 50},
    ],
    "clients": [
        {"id": "c1", "name": "Ravi Stores"},
        {"id": "c2", "name": "Lakshmi Traders"},
    ],
    "payments": [
        {"id": "pay1", "amount": 200, "paid_at": "2024-03-10T08:00:00.000Z", "sale_id": "s1", "purchase_id": None, "kind": "SALE"},
        {"id": "pay2", "amount": 100, "paid_at": "2024-03-07T08:00:00.000Z", "sale_id": None, "purchase_id": "pu1", "kind": "PURCHASE"},
    ],
    "purchases": [
        {"id": "pu1", "purchase_at": "2024-03-05T05:00:00.000Z", "vendor_id": "v1", "status": "Closed", "freight_charge_total": 10},
        {"id": "pu2", "purchase_at": "2024-03-06T05:00:00.000Z", "vendor_id": "v2", "status": "Open", "freight_charge_total": 0},
        {"id": "pu3", "purchase_at": "2023-12-01T05:00:00.000Z", "vendor_id": "v1", "status": "Closed", "freight_charge_total": 0},
    ],
    "purchase_items": [
        {"id": "pi1", "purchase_id": "pu1", "product_id": "p1", "quantity": 100, "unit_price": 30, "freight_charge_split": 10},
        {"id": "pi2", "purchase_id": "pu2", "product_id": "p2", "quantity": 50, "unit_price": 15, "freight_charge_split": 0},
        {"id": "pi3", "purchase_id": "pu3", "product_id": "p1", "quantity": 20, "unit_price": 28, "freight_charge_split": 0},
    ],
    "vendors": [
        {"id": "v1", "name": "Acme Polymers"},
        {"id": "v2", "name": "Beta Packaging"},
    ],
    "investments": [
        {"id": 1, "name": "Kavin", "amount": 1000, "created_at": "2024-02-01T04:30:00.000Z"},
        {"id": 2, "name": "Vicky", "amount": 500, "created_at": "2024-02-02T04:30:00.000Z"},
        {"id": 3, "name": "", "amount": 200, "created_at": "2024-02-03T04:30:00.000Z"},
    ],
    "order_inventory": [
        {"id": "oi1", "product_id": "p1", "client_id": "c1", "qty_available": -5},
        {"id": "oi2", "product_id": "p2", "client_id": None, "qty_available": -12},
        {"id": "oi3", "product_id": "p9", "client_id": "c9", "qty_available": -1},
        {"id": "oi4", "product_id": "p3", "client_id": "c2", "qty_available": 4},
    ],
}


@pytest.fixture
def fake_db() -> FakeSupabase:
    return FakeSupabase(SEED)


@pytest.fixture
def settings() -> Settings:
    return Settings(project_url="http://backend.test", project_anon_key="anon")
