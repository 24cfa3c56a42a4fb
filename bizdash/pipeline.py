from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from bizdash.config import Settings
from bizdash.daterange import as_utc
from bizdash.data import fetch_dashboard_data, prepare_context
from bizdash.filters import DashboardFilters
from bizdash.metrics_overview import compute_overview
from bizdash.metrics_parties import compute_parties
from bizdash.metrics_products import compute_products
from bizdash.metrics_trend import compute_trends

logger = logging.getLogger(__name__)


def compute_dashboard(
    filters: DashboardFilters,
    client: Any,
    *,
    now: Optional[datetime] = None,
    settings: Optional[Settings] = None,
) -> Dict[str, Any]:
    """Resolve the range, fetch, join and aggregate one dashboard view."""
    now = as_utc(now or datetime.now(timezone.utc))
    date_range = filters.date_range(now)
    logger.info(
        "Computing %s dashboard for %s (%s .. %s)",
        filters.category,
        filters.preset,
        date_range.start_iso or "-",
        date_range.end_iso or "-",
    )

    data_ctx = fetch_dashboard_data(
        client,
        filters.category,
        date_range,
        include_investments=filters.include_investments,
        settings=settings,
    )
    ctx = prepare_context(data_ctx, now=now)

    overview = compute_overview(filters, ctx)
    trends = compute_trends(filters, ctx)
    products = compute_products(filters, ctx)
    parties = compute_parties(filters, ctx)

    charts: Dict[str, Any] = {}
    for section in (overview, trends, products, parties):
        charts.update(section.pop("charts", {}))

    return {
        "filters": overview["filters"],
        "range": {"start": date_range.start_iso, "end": date_range.end_iso},
        "empty": bool(ctx.get("empty")),
        "truncated_tables": overview["truncated_tables"],
        "metrics": overview["metrics"],
        "delivery": overview["delivery"],
        "purchase_status": overview["purchase_status"],
        "partner_split": overview["partner_split"],
        "investment_split": overview["investment_split"],
        "trend": trends["daily"],
        "seasonal": trends["monthly"],
        "product_performance": products["product_performance"],
        "breakdowns": products.get("breakdowns", {}),
        "size_efficiency": products.get("size_efficiency", []),
        "size_vendor_mix": products.get("size_vendor_mix", []),
        "clients": parties["clients"],
        "top_clients": parties["top_clients"],
        "top_vendors": parties["top_vendors"],
        "vendor_qty": parties["vendor_qty"],
        "focus_client": parties["focus_client"],
        "charts": charts,
    }
