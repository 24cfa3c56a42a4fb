from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

import pandas as pd

from bizdash.backend import ReadResult, read_table
from bizdash.config import Settings, get_settings
from bizdash.daterange import IST_OFFSET, DateRange, as_utc
from bizdash.errors import BackendError, DashboardFetchError
from bizdash.naming import parse_name_meta

logger = logging.getLogger(__name__)

PRODUCT_COLUMNS = ["id", "name", "purchase_price", "selling_price", "category", "active", "unit"]
SALE_COLUMNS = ["id", "sale_at", "client_id", "delivered"]
SALE_ITEM_COLUMNS = ["id", "sale_id", "product_id", "quantity", "unit_price"]
PARTY_COLUMNS = ["id", "name"]
SALE_PAYMENT_COLUMNS = ["id", "amount", "paid_at", "sale_id", "kind"]
PURCHASE_ITEM_COLUMNS = ["id", "purchase_id", "product_id", "quantity", "unit_price", "freight_charge_split"]
PURCHASE_COLUMNS = ["id", "purchase_at", "vendor_id", "status", "freight_charge_total"]
PURCHASE_PAYMENT_COLUMNS = ["id", "amount", "paid_at", "purchase_id", "kind"]
INVESTMENT_COLUMNS = ["id", "name", "amount", "created_at"]

FRAME_COLUMNS: Dict[str, List[str]] = {
    "products": PRODUCT_COLUMNS,
    "sales": SALE_COLUMNS,
    "sale_items": SALE_ITEM_COLUMNS,
    "clients": PARTY_COLUMNS,
    "sale_payments": SALE_PAYMENT_COLUMNS,
    "purchase_items": PURCHASE_ITEM_COLUMNS,
    "purchases": PURCHASE_COLUMNS,
    "vendors": PARTY_COLUMNS,
    "purchase_payments": PURCHASE_PAYMENT_COLUMNS,
    "investments": INVESTMENT_COLUMNS,
}

NAME_META_COLUMNS = ["side", "colour", "size", "type", "base", "area"]


# ---------------- Frame helpers ----------------
def numericize(df: pd.DataFrame, cols: Iterable[str], *, fill: Optional[float] = None) -> pd.DataFrame:
    for col in cols:
        if col in df.columns:
            df[col] = pd.to_numeric(df[col], errors="coerce")
            if fill is not None:
                df[col] = df[col].fillna(fill)
    return df


def parse_timestamps(df: pd.DataFrame, cols: Iterable[str]) -> pd.DataFrame:
    for col in cols:
        if col in df.columns:
            df[col] = pd.to_datetime(df[col], utc=True, errors="coerce", format="ISO8601")
    return df


def rows_to_frame(rows: List[Dict[str, Any]], columns: List[str]) -> pd.DataFrame:
    return pd.DataFrame(rows, columns=columns)


def empty_frames() -> Dict[str, pd.DataFrame]:
    return {name: pd.DataFrame(columns=cols) for name, cols in FRAME_COLUMNS.items()}


def unique_ids(series: pd.Series) -> List[Any]:
    """Distinct non-null ids in first-seen order."""
    return list(dict.fromkeys(v for v in series.tolist() if v is not None and not pd.isna(v)))


def lookup(df: pd.DataFrame, key: str, value: str) -> Dict[Any, Any]:
    if df.empty or key not in df.columns or value not in df.columns:
        return {}
    return dict(zip(df[key].tolist(), df[value].tolist()))


# ---------------- Fetch plan ----------------
def _in_range(col: str, date_range: DateRange) -> Dict[str, Dict[str, Optional[str]]]:
    return {"gte": {col: date_range.start_iso}, "lte": {col: date_range.end_iso}}


def fetch_dashboard_data(
    client: Any,
    category: str,
    date_range: DateRange,
    *,
    include_investments: bool = False,
    settings: Optional[Settings] = None,
) -> Dict[str, Any]:
    """Run the fixed read plan for one dashboard view.

    Returns a dict of DataFrames keyed like :data:`FRAME_COLUMNS` plus
    ``truncated_tables`` (reads that hit their row cap) and ``empty`` (no
    active products in the category, so nothing else was read).
    """
    settings = settings or get_settings()
    reads: List[ReadResult] = []

    def read(table: str, columns: List[str], **kwargs: Any) -> List[Dict[str, Any]]:
        result = read_table(client, table, ",".join(columns), **kwargs)
        reads.append(result)
        return result.rows

    frames = empty_frames()
    try:
        products = read(
            "products",
            PRODUCT_COLUMNS,
            eq={"category": category, "active": True},
            limit=settings.product_limit,
        )
        frames["products"] = rows_to_frame(products, PRODUCT_COLUMNS)
        product_ids = unique_ids(frames["products"]["id"])
        if not product_ids:
            return _finish(frames, reads, empty=True)

        frames["sales"] = rows_to_frame(
            read("sales", SALE_COLUMNS, **_in_range("sale_at", date_range), limit=settings.header_limit),
            SALE_COLUMNS,
        )
        sale_ids = unique_ids(frames["sales"]["id"])

        if sale_ids:
            frames["sale_items"] = rows_to_frame(
                read(
                    "sales_items",
                    SALE_ITEM_COLUMNS,
                    in_={"sale_id": sale_ids, "product_id": product_ids},
                    limit=settings.line_limit,
                ),
                SALE_ITEM_COLUMNS,
            )

            client_ids = unique_ids(frames["sales"]["client_id"])
            if client_ids:
                frames["clients"] = rows_to_frame(
                    read("clients", PARTY_COLUMNS, in_={"id": client_ids}, limit=settings.header_limit),
                    PARTY_COLUMNS,
                )

            frames["sale_payments"] = rows_to_frame(
                read(
                    "payments",
                    SALE_PAYMENT_COLUMNS,
                    eq={"kind": "SALE"},
                    in_={"sale_id": sale_ids},
                    **_in_range("paid_at", date_range),
                    limit=settings.line_limit,
                ),
                SALE_PAYMENT_COLUMNS,
            )

        # Purchase lines are scoped by product only; the date range applies to their headers.
        frames["purchase_items"] = rows_to_frame(
            read("purchase_items", PURCHASE_ITEM_COLUMNS, in_={"product_id": product_ids}, limit=settings.line_limit),
            PURCHASE_ITEM_COLUMNS,
        )
        purchase_ids = unique_ids(frames["purchase_items"]["purchase_id"])

        if purchase_ids:
            frames["purchases"] = rows_to_frame(
                read(
                    "purchases",
                    PURCHASE_COLUMNS,
                    in_={"id": purchase_ids},
                    **_in_range("purchase_at", date_range),
                    limit=settings.header_limit,
                ),
                PURCHASE_COLUMNS,
            )
            vendor_ids = unique_ids(frames["purchases"]["vendor_id"])
            if vendor_ids:
                frames["vendors"] = rows_to_frame(
                    read("vendors", PARTY_COLUMNS, in_={"id": vendor_ids}, limit=settings.header_limit),
                    PARTY_COLUMNS,
                )

            frames["purchase_payments"] = rows_to_frame(
                read(
                    "payments",
                    PURCHASE_PAYMENT_COLUMNS,
                    eq={"kind": "PURCHASE"},
                    in_={"purchase_id": purchase_ids},
                    **_in_range("paid_at", date_range),
                    limit=settings.line_limit,
                ),
                PURCHASE_PAYMENT_COLUMNS,
            )

        if include_investments:
            frames["investments"] = rows_to_frame(
                read("investments", INVESTMENT_COLUMNS, limit=settings.investment_limit),
                INVESTMENT_COLUMNS,
            )
    except BackendError as exc:
        logger.error("Dashboard fetch for %s aborted at %s: %s", category, exc.table, exc)
        raise DashboardFetchError(f"Failed to load {category} Dashboard: {exc}") from exc

    return _finish(frames, reads, empty=False)


def _finish(frames: Dict[str, pd.DataFrame], reads: List[ReadResult], *, empty: bool) -> Dict[str, Any]:
    truncated = list(dict.fromkeys(r.table for r in reads if r.truncated))
    _coerce_frames(frames)
    return {**frames, "truncated_tables": truncated, "empty": empty}


def _coerce_frames(frames: Dict[str, pd.DataFrame]) -> None:
    numericize(frames["products"], ["purchase_price", "selling_price"])
    numericize(frames["sale_items"], ["quantity", "unit_price"], fill=0.0)
    numericize(frames["purchase_items"], ["quantity", "unit_price", "freight_charge_split"], fill=0.0)
    numericize(frames["purchases"], ["freight_charge_total"], fill=0.0)
    numericize(frames["sale_payments"], ["amount"], fill=0.0)
    numericize(frames["purchase_payments"], ["amount"], fill=0.0)
    numericize(frames["investments"], ["amount"], fill=0.0)
    parse_timestamps(frames["sales"], ["sale_at"])
    parse_timestamps(frames["purchases"], ["purchase_at"])
    parse_timestamps(frames["sale_payments"], ["paid_at"])
    parse_timestamps(frames["purchase_payments"], ["paid_at"])
    parse_timestamps(frames["investments"], ["created_at"])
    sales = frames["sales"]
    sales["delivered"] = sales["delivered"].fillna(False).astype(bool)


# ---------------- In-memory joins ----------------
def product_meta_frame(products: pd.DataFrame) -> pd.DataFrame:
    records = []
    for pid, name in zip(products["id"].tolist(), products["name"].tolist()):
        meta = parse_name_meta(name if isinstance(name, str) else "")
        records.append({"product_id": pid, **{c: getattr(meta, c) for c in NAME_META_COLUMNS}})
    return pd.DataFrame(records, columns=["product_id"] + NAME_META_COLUMNS)


def prepare_context(data_ctx: Dict[str, Any], *, now: Optional[datetime] = None) -> Dict[str, Any]:
    """Join fetched rows by foreign key and derive per-line money columns."""
    now = as_utc(now or datetime.now(timezone.utc))
    products: pd.DataFrame = data_ctx.get("products", pd.DataFrame(columns=PRODUCT_COLUMNS))
    sales: pd.DataFrame = data_ctx.get("sales", pd.DataFrame(columns=SALE_COLUMNS))
    clients: pd.DataFrame = data_ctx.get("clients", pd.DataFrame(columns=PARTY_COLUMNS))
    purchases: pd.DataFrame = data_ctx.get("purchases", pd.DataFrame(columns=PURCHASE_COLUMNS))
    vendors: pd.DataFrame = data_ctx.get("vendors", pd.DataFrame(columns=PARTY_COLUMNS))

    meta = product_meta_frame(products)
    purchase_price = {
        pid: price for pid, price in lookup(products, "id", "purchase_price").items() if price is not None and not pd.isna(price)
    }

    lines = data_ctx.get("sale_items", pd.DataFrame(columns=SALE_ITEM_COLUMNS)).copy()
    lines["sale_at"] = pd.to_datetime(lines["sale_id"].map(lookup(sales, "id", "sale_at")), utc=True)
    lines["sale_at"] = lines["sale_at"].fillna(pd.Timestamp(now))
    lines["client_id"] = lines["sale_id"].map(lookup(sales, "id", "client_id"))
    lines["client_name"] = lines["client_id"].map(lookup(clients, "id", "name")).fillna("(Unknown)")
    lines["product_name"] = lines["product_id"].map(lookup(products, "id", "name")).fillna("Unknown")
    lines["unit"] = lines["product_id"].map(lookup(products, "id", "unit")).fillna("Unknown")
    lines["revenue"] = lines["quantity"] * lines["unit_price"]
    lines["unit_cost"] = lines["product_id"].map(purchase_price)
    lines["unit_cost"] = pd.to_numeric(lines["unit_cost"], errors="coerce").fillna(lines["unit_price"])
    lines["cost"] = lines["quantity"] * lines["unit_cost"]
    lines["profit"] = lines["revenue"] - lines["cost"]
    lines["day"] = (lines["sale_at"] + pd.Timedelta(IST_OFFSET)).dt.strftime("%Y-%m-%d")
    lines["month"] = lines["sale_at"].dt.strftime("%Y-%m")
    for col in NAME_META_COLUMNS:
        lines[col] = lines["product_id"].map(lookup(meta, "product_id", col))
    # Mapping an empty frame yields float64; keep these as strings for the concat below.
    lines[["side", "colour", "size"]] = lines[["side", "colour", "size"]].astype(object).fillna("Unknown")
    # Grouping key is always "side | colour", including "Non-Printed | None".
    lines["type"] = lines["side"] + " | " + lines["colour"]
    lines["area"] = pd.to_numeric(lines["area"], errors="coerce").fillna(0)

    plines = data_ctx.get("purchase_items", pd.DataFrame(columns=PURCHASE_ITEM_COLUMNS)).copy()
    plines["vendor_id"] = plines["purchase_id"].map(lookup(purchases, "id", "vendor_id"))
    plines["vendor_name"] = plines["vendor_id"].map(lookup(vendors, "id", "name")).fillna("(Unknown)")
    plines["spend"] = plines["quantity"] * plines["unit_price"]
    plines["gross"] = plines["spend"] + plines["freight_charge_split"]
    plines["size"] = plines["product_id"].map(lookup(meta, "product_id", "size")).astype(object).fillna("Unknown")

    return {
        **data_ctx,
        "sale_lines": lines,
        "purchase_lines": plines,
        "product_meta": meta,
    }


# ---------------- Aggregation helpers ----------------
def group_sum(df: pd.DataFrame, key: str, value_cols: List[str]) -> pd.DataFrame:
    """Sum ``value_cols`` per ``key``, keeping keys in first-seen order."""
    if df.empty:
        return pd.DataFrame(columns=[key] + value_cols)
    return df.groupby(key, sort=False)[value_cols].sum().reset_index()


def rank_desc(df: pd.DataFrame, col: str, n: Optional[int] = None) -> pd.DataFrame:
    """Stable descending sort; ties keep their first-seen order."""
    ranked = df.sort_values(col, ascending=False, kind="stable")
    return ranked.head(n) if n is not None else ranked


def to_records(df: pd.DataFrame) -> List[Dict[str, Any]]:
    return df.to_dict(orient="records")
