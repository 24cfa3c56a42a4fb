from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, List, Optional

import pandas as pd
import streamlit as st

from bizdash.backend import get_client
from bizdash.config import get_settings
from bizdash.daterange import PRESETS
from bizdash.errors import DashboardError, RecordValidationError
from bizdash.export import build_dashboard_csv
from bizdash.filters import DASHBOARD_CATEGORIES, default_preset, normalize_filters
from bizdash.inventory_alerts import load_negative_inventory, session_popup_key
from bizdash.logging_config import setup_logging
from bizdash.records import (
    CATEGORY_OPTIONS,
    PARTNERS,
    TAX_OPTIONS,
    UNIT_OPTIONS,
    add_product,
    delete_investment,
    list_investments,
    record_investment,
)
from bizdash.session import DashboardSession, complete_record, form_generation

setup_logging(get_settings().log_level)


# ---------- UI / layout helpers ----------
def inject_base_styles():
    if st.session_state.get("_base_css_injected"):
        return
    st.markdown(
        """
        <style>
        .app-top-bar {padding: 6px 0 4px;border-bottom: 1px solid #e5e7eb;margin-bottom: 10px;}
        .app-top-bar .breadcrumb {color: #6b7280;font-size: 0.9rem;margin-bottom: 2px;}
        .app-top-bar .page-title {font-size: 1.4rem;font-weight: 700;color: #111827;}
        .card {border: 1px solid #e5e7eb;border-radius: 12px;padding: 16px;background: #ffffff;
               box-shadow: 0 1px 2px rgba(0,0,0,0.04); margin-bottom: 12px;}
        .card-title {font-weight: 600;font-size: 1.0rem;color: #111827;margin-bottom: 8px;}
        .chip-row {display: flex;flex-wrap: wrap;gap: 6px;margin-top: 6px;}
        .chip {background: #f3f4f6;border: 1px solid #e5e7eb;border-radius: 14px;padding: 4px 10px;font-size: 0.85rem;color: #374151;}
        .pill {display: inline-block;background: #ecfdf5;border-radius: 10px;padding: 2px 8px;margin-right: 8px;font-size: 0.85rem;}
        </style>
        """,
        unsafe_allow_html=True,
    )
    st.session_state["_base_css_injected"] = True


@contextmanager
def card(title: str):
    container = st.container()
    container.markdown(f"<div class='card'><div class='card-title'>{title}</div>", unsafe_allow_html=True)
    body = container.container()
    with body:
        yield body
    container.markdown("</div>", unsafe_allow_html=True)


def fmt_inr(value: Optional[float]) -> str:
    if value is None or pd.isna(value):
        return "N/A"
    return f"₹{value:,.0f}"


def fmt_pct(value: Optional[float]) -> str:
    if value is None or pd.isna(value):
        return "N/A"
    return f"{value:.1f}%"


def render_page_header(title: str, breadcrumb: str, chips: List[str], csv_text: Optional[str], export_name: str):
    inject_base_styles()
    c1, c2 = st.columns([8, 2])
    with c1:
        st.markdown(
            f"<div class='app-top-bar'><div class='breadcrumb'>{breadcrumb}</div><div class='page-title'>{title}</div></div>",
            unsafe_allow_html=True,
        )
    with c2:
        if csv_text:
            st.download_button("Export CSV", data=csv_text.encode("utf-8"), file_name=export_name, mime="text/csv")
    st.markdown(
        "<div class='chip-row'>" + "".join(f"<span class='chip'>{c}</span>" for c in chips) + "</div>",
        unsafe_allow_html=True,
    )


def render_chart(charts: Dict[str, Any], key: str, empty_text: str = "No data for this period."):
    spec = charts.get(key)
    data = ((spec or {}).get("datasets") or {}).values()
    if not spec or not any(len(rows) for rows in data):
        st.caption(empty_text)
        return
    st.vega_lite_chart(spec, use_container_width=False)


@st.cache_resource
def backend_client():
    return get_client(get_settings())


# ---------- UI setup ----------
st.set_page_config(page_title="Business Dashboard", layout="wide")
inject_base_styles()
st.title("Business Dashboard")
st.caption("Sales, purchases and capital for the Packages and Groceries lines.")

try:
    client = backend_client()
except DashboardError as exc:
    st.error(str(exc))
    st.stop()


# ----- Negative inventory warning (once per login) -----
popup_key = session_popup_key(st.session_state.get("auth"))
if not st.session_state.get(popup_key):
    negative_rows = load_negative_inventory(client)
    if negative_rows:
        with st.container():
            st.warning(f"{len(negative_rows)} order inventory rows have negative availability.")
            st.dataframe(
                pd.DataFrame(negative_rows)[["product_name", "client_name", "qty_available"]],
                hide_index=True,
                use_container_width=True,
            )
            if st.button("Dismiss"):
                st.session_state[popup_key] = True
                st.rerun()


# ----- Sidebar: navigation + filters -----
with st.sidebar:
    st.markdown("### Dashboard")
    category = st.radio("View", DASHBOARD_CATEGORIES, index=0, horizontal=True)

    st.markdown("---")
    st.markdown("### Period")
    preset = st.selectbox("Preset", PRESETS, index=PRESETS.index(default_preset(category)), key=f"preset_{category}")
    custom_start = custom_end = None
    if preset == "Custom":
        start_date = st.date_input("Start", value=None, key=f"start_{category}")
        end_date = st.date_input("End", value=None, key=f"end_{category}")
        custom_start = start_date.isoformat() if start_date else None
        custom_end = end_date.isoformat() if end_date else None

    st.markdown("---")
    prior = st.session_state.get(f"result_{category}") or {}
    client_opts = {str(c["id"]): c["name"] for c in prior.get("clients", [])}
    focus_client_id = st.selectbox(
        "Focus client",
        options=[""] + list(client_opts.keys()),
        format_func=lambda cid: client_opts.get(cid, "Select a client") if cid else "Select a client",
        key=f"focus_{category}",
    )
    if st.button("Refresh"):
        st.session_state.pop(f"filters_{category}", None)

filters = normalize_filters(
    {
        "category": category,
        "preset": preset,
        "custom_start": custom_start,
        "custom_end": custom_end,
        "focus_client_id": focus_client_id or None,
    }
)

session: DashboardSession = st.session_state.setdefault(f"session_{category}", DashboardSession(client))
if st.session_state.get(f"filters_{category}") != filters:
    with st.spinner(f"Loading {category} dashboard..."):
        try:
            session.refresh(filters)
        except ValueError as exc:
            st.error(f"Invalid custom range: {exc}")
            st.stop()
    st.session_state[f"filters_{category}"] = filters
    st.session_state[f"result_{category}"] = session.state.result

state = session.state
if state.error:
    st.error(state.error)
    st.stop()

payload = state.result or {}
metrics = payload.get("metrics", {})
charts = payload.get("charts", {})

chips = [f"Period: {filters.preset}"]
if payload.get("range", {}).get("start"):
    chips.append(f"{payload['range']['start'][:10]} → {(payload['range'].get('end') or '')[:10]}")
if filters.focus_client_id:
    chips.append(f"Client: {client_opts.get(filters.focus_client_id, filters.focus_client_id)}")

render_page_header(
    f"{category} Dashboard",
    "Dashboard / " + category,
    chips,
    build_dashboard_csv(payload, category) if payload else None,
    f"{category.lower()}-dashboard-{datetime.now().strftime('%Y%m%d')}.csv",
)

if payload.get("empty"):
    st.info(f"No active {category} products found.")
for table in payload.get("truncated_tables", []):
    st.warning(f"Results from {table} hit the row cap and may be incomplete.")


# ---------- KPI tiles ----------
def render_kpis(m: Dict[str, Any], data: Dict[str, Any]):
    cols = st.columns(4)
    cols[0].metric("Revenue", fmt_inr(m.get("revenue")), help="Σ quantity × unit price over matched sale lines.")
    cols[1].metric("Cost", fmt_inr(m.get("cost")), help="Purchase price per unit, falling back to the sale price.")
    cols[2].metric("Profit", fmt_inr(m.get("profit")), delta=fmt_pct(m.get("profit_margin")))
    cols[3].metric("Orders", f"{m.get('orders', 0):,}", help=f"Quantity sold: {m.get('qty', 0):,.0f}")

    cols = st.columns(4)
    cols[0].metric("Receivables", fmt_inr(m.get("receivables")))
    cols[1].metric("Vendor unpaid", fmt_inr(m.get("vendor_unpaid")), help=f"Paid: {fmt_inr(m.get('vendor_paid'))}")
    cols[2].metric(
        "Avg price / unit",
        f"{fmt_inr(m.get('avg_sell'))} | {fmt_inr(m.get('avg_cost'))}",
        help=f"Sell | Cost | {fmt_pct(m.get('avg_margin_pct'))}",
    )
    cols[3].metric("ROI", fmt_pct(m.get("roi")), help=f"Efficiency: {fmt_pct(m.get('efficiency'))}")

    if category == "Packages":
        cols = st.columns(3)
        cols[0].metric("Capital invested", fmt_inr(m.get("invest_total")))
        split = " ".join(
            f"<span class='pill'>{p['name']}: <b>{fmt_inr(p['amount'])}</b></span>" for p in data.get("partner_split", [])
        )
        cols[1].markdown(f"**Profit split**<br>{split}", unsafe_allow_html=True)
        invest = " ".join(
            f"<span class='pill'>{r['name']}: <b>{fmt_inr(r['amount'])}</b></span>" for r in data.get("investment_split", [])
        )
        cols[2].markdown(f"**Investment split**<br>{invest or 'None'}", unsafe_allow_html=True)


render_kpis(metrics, payload)

tabs = st.tabs(["Trends", "Products", "Parties", "Records"])

with tabs[0]:
    with card("Revenue vs Cost"):
        render_chart(charts, "revenue_cost")
    with card("Profit & Margin"):
        render_chart(charts, "profit_margin")
    with card("Orders & Revenue"):
        render_chart(charts, "orders_revenue")
    with card("Seasonal trend (monthly)"):
        render_chart(charts, "seasonal")
    if category == "Packages":
        c1, c2 = st.columns(2)
        with c1:
            with card("Delivery status"):
                render_chart(charts, "delivery")
        with c2:
            with card("Purchase status"):
                render_chart(charts, "purchase_status")

with tabs[1]:
    with card("Top products by profit"):
        render_chart(charts, "product_profit")
    if category == "Packages":
        for attr, title in [("type", "Type"), ("size", "Size"), ("colour", "Colour"), ("side", "Side")]:
            with card(f"Quantity by {title.lower()}"):
                render_chart(charts, f"{attr}_qty")
        with card("Size efficiency (profit per area)"):
            render_chart(charts, "size_efficiency")
        with card("Size → vendor mix"):
            render_chart(charts, "size_vendor_mix")
    else:
        with card("Quantity by unit category"):
            render_chart(charts, "category_qty")
    perf = pd.DataFrame(payload.get("product_performance", []))
    if not perf.empty:
        st.dataframe(perf, hide_index=True, use_container_width=True)

with tabs[2]:
    with card("Top clients by quantity"):
        render_chart(charts, "top_clients")
    with card("Top vendors by spend"):
        render_chart(charts, "top_vendors")
    with card("Supplier quantity"):
        render_chart(charts, "vendor_qty")
    if filters.focus_client_id:
        for name in payload.get("focus_client", {}):
            with card(f"Focus client: {name}"):
                render_chart(charts, f"focus_{name}", "This client bought nothing in the period.")
    else:
        st.caption("Pick a focus client in the sidebar to see what they buy.")

with tabs[3]:
    notice = st.session_state.pop("records_notice", None)
    if notice:
        st.success(notice)

    with st.expander("Add product", expanded=False):
        gen = form_generation(st.session_state, "product")
        with st.form(f"add_product_{gen}"):
            name = st.text_input("Name *", key=f"prod_name_{gen}")
            c1, c2 = st.columns(2)
            purchase_price = c1.text_input("Purchase price", key=f"prod_buy_{gen}")
            selling_price = c2.text_input("Selling price", key=f"prod_sell_{gen}")
            c1, c2, c3 = st.columns(3)
            tax_rate = c1.selectbox("Tax rate", TAX_OPTIONS, key=f"prod_tax_{gen}")
            unit = c2.selectbox("Unit", UNIT_OPTIONS, key=f"prod_unit_{gen}")
            product_category = c3.selectbox(
                "Category", CATEGORY_OPTIONS, index=CATEGORY_OPTIONS.index(category), key=f"prod_cat_{gen}"
            )
            hsn_sac = st.text_input("HSN/SAC", key=f"prod_hsn_{gen}")
            description = st.text_area("Description", key=f"prod_desc_{gen}")
            active = st.checkbox("Active", value=True, key=f"prod_active_{gen}")
            if st.form_submit_button("Save product"):
                try:
                    row = add_product(
                        client,
                        {
                            "name": name,
                            "purchase_price": purchase_price,
                            "selling_price": selling_price,
                            "tax_rate": tax_rate,
                            "unit": unit,
                            "category": product_category,
                            "hsn_sac": hsn_sac,
                            "description": description,
                            "active": active,
                        },
                    )
                except RecordValidationError as exc:
                    st.warning(str(exc))
                except DashboardError as exc:
                    st.error(f"Failed to add product. {exc}")
                else:
                    complete_record(st.session_state, "product", category, f"Product {row.get('name', name)!r} added.")
                    st.rerun()

    with st.expander("Investments", expanded=category == "Packages"):
        gen = form_generation(st.session_state, "investment")
        with st.form(f"record_investment_{gen}"):
            c1, c2 = st.columns(2)
            partner = c1.selectbox("Partner", PARTNERS, key=f"inv_partner_{gen}")
            amount = c2.number_input("Amount (₹)", min_value=0.0, step=100.0, key=f"inv_amount_{gen}")
            c1, c2 = st.columns(2)
            day = c1.date_input("Date", value=datetime.now().date(), key=f"inv_day_{gen}")
            at = c2.time_input("Time", value=datetime.now().time().replace(microsecond=0), key=f"inv_time_{gen}")
            if st.form_submit_button("Record investment"):
                try:
                    record_investment(client, partner, amount, datetime.combine(day, at))
                except RecordValidationError as exc:
                    st.warning(str(exc))
                except DashboardError as exc:
                    st.error(f"Failed to record investment. {exc}")
                else:
                    complete_record(st.session_state, "investment", category, "Investment recorded.")
                    st.rerun()

        inv_page = st.number_input("Page", min_value=1, value=1, step=1, key="invest_page")
        try:
            page = list_investments(client, page=int(inv_page))
        except DashboardError as exc:
            st.error(str(exc))
        else:
            cols = st.columns(len(PARTNERS) + 1)
            cols[0].metric("Page total", fmt_inr(page.total))
            for i, p in enumerate(PARTNERS, start=1):
                cols[i].metric(p, fmt_inr(page.partner_totals.get(p, 0.0)))
            st.caption(f"{page.count} total • Page {page.page} / {page.total_pages}")
            for row in page.rows:
                c1, c2, c3, c4 = st.columns([3, 2, 2, 1])
                c1.write(str(row.get("created_at", ""))[:19].replace("T", " "))
                c2.write(row.get("name", ""))
                c3.write(fmt_inr(float(row.get("amount") or 0)))
                if c4.button("Delete", key=f"del_{row.get('id')}"):
                    try:
                        delete_investment(client, row.get("id"))
                        st.session_state.pop(f"filters_{category}", None)
                        st.rerun()
                    except DashboardError as exc:
                        st.error(str(exc))
