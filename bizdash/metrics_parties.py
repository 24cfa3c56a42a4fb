from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, List, Optional

import pandas as pd

from bizdash.charts import bar_chart
from bizdash.data import group_sum, rank_desc, to_records
from bizdash.filters import DashboardFilters

CLIENT_TOP_N = 10
VENDOR_TOP_N = 10
FOCUS_PRODUCT_TOP_N = 10


def _ranked(df: pd.DataFrame, key: str, value: str, label: str, out: str, n: Optional[int] = None) -> List[Dict[str, Any]]:
    grouped = group_sum(df, key, [value]).rename(columns={key: label, value: out})
    return to_records(rank_desc(grouped, out, n))


def top_clients(lines: pd.DataFrame, n: int = CLIENT_TOP_N) -> List[Dict[str, Any]]:
    return _ranked(lines, "client_name", "quantity", "client", "qty", n)


def vendor_qty(plines: pd.DataFrame) -> List[Dict[str, Any]]:
    return _ranked(plines, "vendor_name", "quantity", "vendor", "qty")


def top_vendors(plines: pd.DataFrame, n: int = VENDOR_TOP_N) -> List[Dict[str, Any]]:
    return _ranked(plines, "vendor_name", "spend", "vendor", "spend", n)


def client_options(clients: pd.DataFrame) -> List[Dict[str, Any]]:
    if clients.empty:
        return []
    return [{"id": cid, "name": name} for cid, name in zip(clients["id"].tolist(), clients["name"].tolist())]


def focus_client(lines: pd.DataFrame, client_id: Optional[str], category: str) -> Dict[str, List[Dict[str, Any]]]:
    """Breakdowns of what one client bought. Ids compare as strings."""
    if not client_id or lines.empty:
        return {}
    mine = lines[lines["client_id"].astype(str) == str(client_id)]
    if category == "Packages":
        return {
            "size": _ranked(mine, "size", "quantity", "size", "qty"),
            "type": _ranked(mine, "type", "quantity", "type", "qty"),
        }
    return {"products": _ranked(mine, "product_name", "quantity", "product", "qty", FOCUS_PRODUCT_TOP_N)}


def compute_parties(filters: DashboardFilters, ctx: Dict[str, Any]) -> Dict[str, Any]:
    lines: pd.DataFrame = ctx.get("sale_lines", pd.DataFrame())
    plines: pd.DataFrame = ctx.get("purchase_lines", pd.DataFrame())

    clients = top_clients(lines, filters.top_n)
    vendors = top_vendors(plines, filters.top_n)
    supplier_qty = vendor_qty(plines)
    focus = focus_client(lines, filters.focus_client_id, filters.category)

    charts = {
        "top_clients": bar_chart(clients, "client", "qty", fmt=",.0f"),
        "top_vendors": bar_chart(vendors, "vendor", "spend"),
        "vendor_qty": bar_chart(supplier_qty, "vendor", "qty", fmt=",.0f"),
    }
    for name, rows in focus.items():
        x = "product" if name == "products" else name
        charts[f"focus_{name}"] = bar_chart(rows, x, "qty", fmt=",.0f")

    return {
        "filters": asdict(filters),
        "clients": client_options(ctx.get("clients", pd.DataFrame())),
        "top_clients": clients,
        "top_vendors": vendors,
        "vendor_qty": supplier_qty,
        "focus_client": focus,
        "charts": charts,
    }
