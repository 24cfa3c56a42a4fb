from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, List, Optional

import pandas as pd

from bizdash.charts import bar_chart, grouped_bar_chart
from bizdash.data import group_sum, rank_desc, to_records
from bizdash.filters import DashboardFilters

PRODUCT_TOP_N = 15
MIX_TOP_SIZES = 5
ATTRIBUTES = ["type", "size", "colour", "side"]


def qty_by(lines: pd.DataFrame, key: str, n: Optional[int] = None) -> List[Dict[str, Any]]:
    """Quantity per ``key``, descending."""
    return to_records(rank_desc(group_sum(lines, key, ["quantity"]).rename(columns={"quantity": "qty"}), "qty", n))


def product_performance(lines: pd.DataFrame, n: int = PRODUCT_TOP_N) -> List[Dict[str, Any]]:
    perf = group_sum(lines, "product_name", ["quantity", "revenue", "cost", "profit"])
    perf = perf.rename(columns={"product_name": "name", "quantity": "qty"})
    if perf.empty:
        return []
    perf["margin"] = (perf["profit"] / perf["revenue"].where(perf["revenue"] > 0) * 100).fillna(0.0)
    return to_records(rank_desc(perf, "profit", n))


def size_efficiency(lines: pd.DataFrame) -> List[Dict[str, Any]]:
    """Profit per unit of area and per unit sold, for each size."""
    if lines.empty:
        return []
    df = lines.copy()
    # Unparsed sizes have area 0 and are measured against an area of 1.
    df["area"] = df["area"].where(df["area"] > 0, 1)
    agg = (
        df.groupby("size", sort=False)
        .agg(qty=("quantity", "sum"), profit=("profit", "sum"), area=("area", "first"))
        .reset_index()
    )
    agg["efficiency"] = (agg["profit"] / agg["area"].where(agg["area"] > 0)).fillna(0.0)
    agg["profit_per_unit"] = (agg["profit"] / agg["qty"].where(agg["qty"] > 0)).fillna(0.0)
    return to_records(rank_desc(agg[["size", "efficiency", "profit_per_unit"]], "efficiency"))


def size_vendor_mix(plines: pd.DataFrame, top_sizes: int = MIX_TOP_SIZES) -> List[Dict[str, Any]]:
    """Purchased quantity per (size, vendor) for the most-purchased sizes."""
    if plines.empty:
        return []
    totals = rank_desc(group_sum(plines, "size", ["quantity"]), "quantity", top_sizes)
    pairs = plines.groupby(["size", "vendor_name"], sort=False)["quantity"].sum().reset_index()
    rows: List[Dict[str, Any]] = []
    for size in totals["size"].tolist():
        for rec in to_records(pairs[pairs["size"] == size]):
            rows.append({"size": size, "vendor": rec["vendor_name"], "qty": rec["quantity"]})
    return rows


def compute_products(filters: DashboardFilters, ctx: Dict[str, Any]) -> Dict[str, Any]:
    lines: pd.DataFrame = ctx.get("sale_lines", pd.DataFrame())
    plines: pd.DataFrame = ctx.get("purchase_lines", pd.DataFrame())

    performance = product_performance(lines)
    payload: Dict[str, Any] = {
        "filters": asdict(filters),
        "product_performance": performance,
        "charts": {"product_profit": bar_chart(performance, "name", "profit")},
    }

    if filters.category == "Packages":
        breakdowns = {attr: qty_by(lines, attr) for attr in ATTRIBUTES}
        efficiency = size_efficiency(lines)
        mix = size_vendor_mix(plines)
        payload.update(
            breakdowns=breakdowns,
            size_efficiency=efficiency,
            size_vendor_mix=mix,
        )
        payload["charts"].update(
            {f"{attr}_qty": bar_chart(rows, attr, "qty", fmt=",.0f") for attr, rows in breakdowns.items()}
        )
        payload["charts"]["size_efficiency"] = bar_chart(efficiency, "size", "efficiency", fmt=",.2f")
        payload["charts"]["size_vendor_mix"] = grouped_bar_chart(mix, "size", "qty", "vendor")
    else:
        categories = qty_by(lines, "unit")
        payload["breakdowns"] = {"category": [{"category": r["unit"], "qty": r["qty"]} for r in categories]}
        payload["charts"]["category_qty"] = bar_chart(payload["breakdowns"]["category"], "category", "qty", fmt=",.0f")

    return payload
