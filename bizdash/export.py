from __future__ import annotations

import csv
import io
import math
from typing import Any, Dict, List, Mapping, Sequence

BREAKDOWN_TITLES = {
    "category": ("Category Performance", "Category"),
    "type": ("Type Performance", "Type"),
    "size": ("Size Performance", "Size"),
    "colour": ("Colour Performance", "Colour"),
    "side": ("Side Performance", "Side"),
}

FOCUS_TITLES = {
    "products": ("Focus Client Products", "Product", "product"),
    "size": ("Focus Client Sizes", "Size", "size"),
    "type": ("Focus Client Types", "Type", "type"),
}


def _cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float):
        if math.isnan(value):
            return ""
        if value.is_integer():
            return str(int(value))
    return str(value)


def build_dashboard_csv(sections: Mapping[str, Any], category: str = "Groceries") -> str:
    """Flatten dashboard sections into one CSV document.

    Every field is quoted and sections are separated by a blank line.
    """
    buf = io.StringIO()
    writer = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\n")

    def push(row: Sequence[Any] = ()) -> None:
        writer.writerow([_cell(v) for v in row])

    def table(header: Sequence[str], rows: List[Dict[str, Any]], keys: Sequence[str]) -> None:
        push(header)
        for rec in rows or []:
            push([""] + [rec.get(k) for k in keys])
        push()

    push(["Section", "Key", "Value"])
    for key, value in (sections.get("metrics") or {}).items():
        push(["Metrics", key, value])
    push()

    table(
        ["Trend", "Date", "Revenue", "Cost", "Profit", "Orders"],
        sections.get("trend") or [],
        ["date", "revenue", "cost", "profit", "orders"],
    )

    breakdowns: Dict[str, List[Dict[str, Any]]] = sections.get("breakdowns") or {}
    order = ["category"] if category != "Packages" else ["type", "size", "colour", "side"]
    for name in order:
        title, label = BREAKDOWN_TITLES[name]
        table([title, label, "Quantity"], breakdowns.get(name) or [], [name, "qty"])

    table(
        ["Product Performance", "Product", "Quantity", "Revenue", "Cost", "Profit", "Margin%"],
        sections.get("product_performance") or [],
        ["name", "qty", "revenue", "cost", "profit", "margin"],
    )
    table(["Top Clients", "Client", "Quantity"], sections.get("top_clients") or [], ["client", "qty"])
    table(["Top Vendors", "Vendor", "Spend"], sections.get("top_vendors") or [], ["vendor", "spend"])
    table(["Supplier Quantity", "Vendor", "Quantity"], sections.get("vendor_qty") or [], ["vendor", "qty"])
    table(["Seasonal Trends", "Month", "Revenue", "Orders"], sections.get("seasonal") or [], ["month", "revenue", "orders"])

    for name, rows in (sections.get("focus_client") or {}).items():
        if not rows or name not in FOCUS_TITLES:
            continue
        title, label, key = FOCUS_TITLES[name]
        table([title, label, "Quantity"], rows, [key, "qty"])

    return buf.getvalue().rstrip("\n")
