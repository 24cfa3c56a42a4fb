from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, List

import pandas as pd

from bizdash.charts import combo_chart, line_chart
from bizdash.data import to_records
from bizdash.filters import DashboardFilters


def daily_trend(lines: pd.DataFrame) -> List[Dict[str, Any]]:
    """Revenue, cost and profit per +5:30 calendar day; orders counts lines."""
    if lines.empty:
        return []
    daily = (
        lines.groupby("day")
        .agg(revenue=("revenue", "sum"), cost=("cost", "sum"), profit=("profit", "sum"), orders=("sale_id", "size"))
        .reset_index()
        .rename(columns={"day": "date"})
        .sort_values("date")
    )
    daily["margin"] = (daily["profit"] / daily["revenue"].where(daily["revenue"] > 0) * 100).fillna(0.0)
    return to_records(daily)


def monthly_trend(lines: pd.DataFrame) -> List[Dict[str, Any]]:
    if lines.empty:
        return []
    monthly = (
        lines.groupby("month")
        .agg(revenue=("revenue", "sum"), orders=("sale_id", "size"))
        .reset_index()
        .sort_values("month")
    )
    return to_records(monthly)


def compute_trends(filters: DashboardFilters, ctx: Dict[str, Any]) -> Dict[str, Any]:
    lines: pd.DataFrame = ctx.get("sale_lines", pd.DataFrame())
    daily = daily_trend(lines)
    monthly = monthly_trend(lines)
    return {
        "filters": asdict(filters),
        "daily": daily,
        "monthly": monthly,
        "charts": {
            "revenue_cost": line_chart(daily, "date", [("revenue", "Revenue"), ("cost", "Cost")]),
            "profit_margin": combo_chart(
                daily, "date", "profit", "margin", bar_label="Profit", line_label="Margin %", line_color="#10B981"
            ),
            "orders_revenue": combo_chart(daily, "date", "orders", "revenue"),
            "seasonal": combo_chart(monthly, "month", "orders", "revenue"),
        },
    }
