from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, List

import pandas as pd

from bizdash.charts import donut_chart
from bizdash.data import group_sum, to_records
from bizdash.filters import DashboardFilters
from bizdash.records import PARTNERS

UNSPECIFIED = "(Unspecified)"


def _total(df: pd.DataFrame, col: str) -> float:
    if df.empty or col not in df.columns:
        return 0.0
    return float(pd.to_numeric(df[col], errors="coerce").fillna(0).sum())


def efficiency_metrics(revenue: float, cost: float) -> Dict[str, float]:
    """ROI, bounded efficiency score and profit margin, all in percent."""
    profit = revenue - cost
    roi = profit / cost * 100 if cost > 0 else 0.0
    efficiency = min(100.0, max(0.0, revenue / (cost or 1) * 100))
    margin = profit / revenue * 100 if revenue > 0 else 0.0
    return {"roi": roi, "efficiency": efficiency, "profit_margin": margin}


def partner_split(profit: float) -> List[Dict[str, Any]]:
    share = max(0.0, profit) / len(PARTNERS)
    return [{"name": name, "amount": share} for name in PARTNERS]


def investment_split(investments: pd.DataFrame) -> List[Dict[str, Any]]:
    if investments.empty:
        return []
    df = investments.copy()
    names = df["name"].where(df["name"].notna(), "").astype(str).str.strip()
    df["name"] = names.where(names != "", UNSPECIFIED)
    return to_records(group_sum(df, "name", ["amount"]))


def compute_overview(filters: DashboardFilters, ctx: Dict[str, Any]) -> Dict[str, Any]:
    lines: pd.DataFrame = ctx.get("sale_lines", pd.DataFrame())
    plines: pd.DataFrame = ctx.get("purchase_lines", pd.DataFrame())
    sales: pd.DataFrame = ctx.get("sales", pd.DataFrame())
    purchases: pd.DataFrame = ctx.get("purchases", pd.DataFrame())
    investments: pd.DataFrame = ctx.get("investments", pd.DataFrame())

    qty = _total(lines, "quantity")
    revenue = _total(lines, "revenue")
    cost = _total(lines, "cost")
    profit = revenue - cost
    orders = int(lines["sale_id"].nunique()) if not lines.empty else 0

    avg_sell = revenue / qty if qty else 0.0
    avg_cost = cost / qty if qty else 0.0
    avg_margin_pct = (avg_sell - avg_cost) / avg_sell * 100 if avg_sell else 0.0

    receivables = max(0.0, revenue - _total(ctx.get("sale_payments", pd.DataFrame()), "amount"))
    vendor_paid = _total(ctx.get("purchase_payments", pd.DataFrame()), "amount")
    vendor_unpaid = max(0.0, _total(plines, "gross") - vendor_paid)

    closed = int((purchases["status"] == "Closed").sum()) if not purchases.empty else 0
    status = {"open": len(purchases) - closed, "closed": closed}

    delivered = int(sales["delivered"].astype(bool).sum()) if not sales.empty else 0
    delivery = {"delivered": delivered, "pending": len(sales) - delivered}

    metrics: Dict[str, Any] = {
        "orders": orders,
        "qty": qty,
        "revenue": revenue,
        "cost": cost,
        "profit": profit,
        "avg_sell": avg_sell,
        "avg_cost": avg_cost,
        "avg_margin_pct": avg_margin_pct,
        "receivables": receivables,
        "open_purchases": status["open"],
        "closed_purchases": status["closed"],
        "vendor_paid": vendor_paid,
        "vendor_unpaid": vendor_unpaid,
        "invest_total": _total(investments, "amount"),
        **efficiency_metrics(revenue, cost),
    }

    return {
        "filters": asdict(filters),
        "metrics": metrics,
        "delivery": delivery,
        "purchase_status": status,
        "partner_split": partner_split(profit),
        "investment_split": investment_split(investments),
        "truncated_tables": list(ctx.get("truncated_tables", [])),
        "charts": {
            "delivery": donut_chart({"Pending": delivery["pending"], "Delivered": delivery["delivered"]}),
            "purchase_status": donut_chart({"Open": status["open"], "Closed": status["closed"]}),
        },
    }
