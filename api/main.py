from __future__ import annotations

import logging
import math
from datetime import datetime
from typing import Any

import numpy as np
import pandas as pd
from fastapi import Depends, FastAPI, Query
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from api.schemas import (
    DashboardFiltersModel,
    InvestmentCreate,
    InvestmentPageResponse,
    MetaPresetsResponse,
    ProductCreate,
)
from bizdash.backend import get_client
from bizdash.config import get_settings
from bizdash.daterange import PRESETS
from bizdash.errors import BackendError, DashboardError, DashboardFetchError, RecordValidationError
from bizdash.export import build_dashboard_csv
from bizdash.filters import DASHBOARD_CATEGORIES, DashboardFilters, default_preset, normalize_filters
from bizdash.inventory_alerts import load_negative_inventory
from bizdash.logging_config import setup_logging
from bizdash.pipeline import compute_dashboard
from bizdash.records import add_product, delete_investment, list_investments, record_investment

setup_logging(get_settings().log_level)

app = FastAPI(title="Business Dashboard API", version="0.1.0")
logger = logging.getLogger(__name__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_backend() -> Any:
    return get_client(get_settings())


def _filters_from_model(model: DashboardFiltersModel) -> DashboardFilters:
    return normalize_filters(model.model_dump())


def _json(data: object) -> JSONResponse:
    """Return JSON with safe encoding for pandas/numpy objects."""

    def _safe_float(value: object) -> float | None:
        try:
            out = float(value)  # type: ignore[arg-type]
        except (TypeError, ValueError):
            return None
        if math.isnan(out) or math.isinf(out):
            return None
        return out

    return JSONResponse(
        content=jsonable_encoder(
            data,
            custom_encoder={
                type(pd.NA): lambda _: None,
                np.integer: int,
                float: _safe_float,
                np.floating: _safe_float,
                np.bool_: bool,
                np.ndarray: lambda arr: arr.tolist(),
                pd.Timestamp: lambda ts: ts.isoformat(),
            },
        )
    )


def _error(exc: Exception) -> JSONResponse:
    if isinstance(exc, (RecordValidationError, ValueError)):
        status = 400
    elif isinstance(exc, (BackendError, DashboardFetchError)):
        status = 502
    else:
        status = 500
    return JSONResponse(status_code=status, content={"error": str(exc), "type": type(exc).__name__})


@app.exception_handler(DashboardError)
async def dashboard_error_handler(_request, exc: DashboardError) -> JSONResponse:
    # Raised outside an endpoint body, e.g. an unconfigured backend in get_backend.
    logger.error("request failed: %s", exc)
    return _error(exc)


@app.get("/meta/presets", response_model=MetaPresetsResponse)
def meta_presets():
    return _json(
        {
            "presets": PRESETS,
            "categories": DASHBOARD_CATEGORIES,
            "defaults": {c: default_preset(c) for c in DASHBOARD_CATEGORIES},
        }
    )


@app.post("/dashboard")
def dashboard(filters: DashboardFiltersModel, backend: Any = Depends(get_backend)):
    try:
        f = _filters_from_model(filters)
        return _json(compute_dashboard(f, backend))
    except Exception as exc:
        logger.exception("dashboard failed")
        return _error(exc)


@app.post("/export")
def export_dashboard(filters: DashboardFiltersModel, backend: Any = Depends(get_backend)):
    try:
        f = _filters_from_model(filters)
        payload = compute_dashboard(f, backend)
        csv_text = build_dashboard_csv(payload, f.category)
    except Exception as exc:
        logger.exception("export failed")
        return _error(exc)

    filename = f"{f.category.lower()}-dashboard-{datetime.now().strftime('%Y%m%d')}.csv"
    return Response(
        content=csv_text.encode("utf-8"),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


@app.get("/alerts/negative-inventory")
def negative_inventory(backend: Any = Depends(get_backend)):
    rows = load_negative_inventory(backend)
    return _json({"rows": rows, "count": len(rows)})


@app.post("/products")
def create_product(product: ProductCreate, backend: Any = Depends(get_backend)):
    try:
        return _json(add_product(backend, product.model_dump()))
    except Exception as exc:
        logger.exception("create_product failed")
        return _error(exc)


@app.get("/investments", response_model=InvestmentPageResponse)
def investments(
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=10, ge=1, le=100),
    backend: Any = Depends(get_backend),
):
    try:
        result = list_investments(backend, page=page, page_size=page_size)
        return _json(
            {
                "rows": result.rows,
                "count": result.count,
                "page": result.page,
                "page_size": result.page_size,
                "total_pages": result.total_pages,
                "total": result.total,
                "partner_totals": result.partner_totals,
            }
        )
    except Exception as exc:
        logger.exception("investments failed")
        return _error(exc)


@app.post("/investments")
def create_investment(investment: InvestmentCreate, backend: Any = Depends(get_backend)):
    try:
        row = record_investment(backend, investment.name, investment.amount, investment.created_at)
        return _json(row)
    except Exception as exc:
        logger.exception("create_investment failed")
        return _error(exc)


@app.delete("/investments/{investment_id}")
def remove_investment(investment_id: str, backend: Any = Depends(get_backend)):
    try:
        delete_investment(backend, investment_id)
        return _json({"deleted": investment_id})
    except Exception as exc:
        logger.exception("remove_investment failed")
        return _error(exc)
