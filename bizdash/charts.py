"""Altair chart builders. Each returns a Vega-Lite spec dict (JSON-serializable).

Charts draw into a fixed viewport with linear value scales, a fixed number of
axis ticks and truncated category labels. They take the aggregated records as
they are and do no further computation.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import altair as alt
import pandas as pd

alt.data_transformers.disable_max_rows()

WIDTH = 760
HEIGHT = 260
TICK_COUNT = 5
LABEL_CHARS = 10

POSITIVE = "#10B981"
NEGATIVE = "#EF4444"
PRIMARY = "#2563eb"
SECONDARY = "#ef4444"
BAR_FILL = "rgba(37,99,235,.35)"

INR_FORMAT = ",.0f"


def to_vega_spec(chart: alt.TopLevelMixin) -> Dict[str, Any]:
    """Convert an Altair chart into a Vega-Lite spec dict (JSON-serializable)."""
    return chart.to_dict()


def _frame(data: Sequence[Mapping[str, Any]], columns: Sequence[str]) -> pd.DataFrame:
    return pd.DataFrame(list(data), columns=list(columns))


def _value_axis(title: Optional[str] = None, fmt: str = INR_FORMAT) -> alt.Axis:
    return alt.Axis(title=title, tickCount=TICK_COUNT, format=fmt, gridDash=[4, 4], domain=False, ticks=False)


def _label_axis(title: Optional[str] = None) -> alt.Axis:
    return alt.Axis(title=title, labelExpr=f"substring(datum.label, 0, {LABEL_CHARS})", labelAngle=0, grid=False)


def line_chart(
    data: Sequence[Mapping[str, Any]],
    x: str,
    series: Sequence[Tuple[str, str]],
    *,
    colors: Sequence[str] = (PRIMARY, SECONDARY),
) -> Dict[str, Any]:
    """Multi-series line chart; ``series`` is a list of (field, legend label)."""
    keys = [k for k, _ in series]
    df = _frame(data, [x] + keys)
    long_df = df.melt(id_vars=[x], value_vars=keys, var_name="series", value_name="value")
    long_df["series"] = long_df["series"].map(dict(series))
    chart = (
        alt.Chart(long_df)
        .mark_line(point={"filled": True, "size": 40})
        .encode(
            x=alt.X(f"{x}:O", axis=_label_axis()),
            y=alt.Y("value:Q", scale=alt.Scale(type="linear", zero=True), axis=_value_axis()),
            color=alt.Color(
                "series:N",
                scale=alt.Scale(domain=[label for _, label in series], range=list(colors)[: len(series)]),
                legend=alt.Legend(title=None, orient="top"),
            ),
            tooltip=[f"{x}:O", "series:N", alt.Tooltip("value:Q", format=INR_FORMAT)],
        )
        .properties(width=WIDTH, height=HEIGHT)
    )
    return to_vega_spec(chart)


def combo_chart(
    data: Sequence[Mapping[str, Any]],
    x: str,
    bar_key: str,
    line_key: str,
    *,
    bar_label: str = "Orders",
    line_label: str = "Revenue",
    line_color: str = PRIMARY,
) -> Dict[str, Any]:
    """Bars and a line sharing the x axis, each on its own linear y scale."""
    df = _frame(data, [x, bar_key, line_key])
    base = alt.Chart(df).encode(x=alt.X(f"{x}:O", axis=_label_axis()))
    bars = base.mark_bar(color=BAR_FILL).encode(
        y=alt.Y(f"{bar_key}:Q", scale=alt.Scale(type="linear", zero=True), axis=_value_axis(bar_label, ",.0f")),
        tooltip=[f"{x}:O", alt.Tooltip(f"{bar_key}:Q", title=bar_label)],
    )
    line = base.mark_line(color=line_color, point=True).encode(
        y=alt.Y(f"{line_key}:Q", scale=alt.Scale(type="linear", zero=True), axis=_value_axis(line_label)),
        tooltip=[f"{x}:O", alt.Tooltip(f"{line_key}:Q", title=line_label, format=INR_FORMAT)],
    )
    chart = alt.layer(bars, line).resolve_scale(y="independent").properties(width=WIDTH, height=HEIGHT)
    return to_vega_spec(chart)


def bar_chart(
    data: Sequence[Mapping[str, Any]],
    x: str,
    y: str,
    *,
    y_title: Optional[str] = None,
    fmt: str = INR_FORMAT,
    limit: Optional[int] = None,
) -> Dict[str, Any]:
    """Single-series bars; negative values are drawn in the negative colour."""
    rows = list(data)[:limit] if limit else list(data)
    df = _frame(rows, [x, y])
    chart = (
        alt.Chart(df)
        .mark_bar(cornerRadiusTopLeft=2, cornerRadiusTopRight=2)
        .encode(
            x=alt.X(f"{x}:N", sort=None, axis=_label_axis()),
            y=alt.Y(f"{y}:Q", scale=alt.Scale(type="linear", zero=True), axis=_value_axis(y_title, fmt)),
            color=alt.condition(alt.datum[y] < 0, alt.value(NEGATIVE), alt.value(POSITIVE)),
            tooltip=[f"{x}:N", alt.Tooltip(f"{y}:Q", format=fmt)],
        )
        .properties(width=WIDTH, height=HEIGHT)
    )
    return to_vega_spec(chart)


def grouped_bar_chart(
    data: Sequence[Mapping[str, Any]],
    x: str,
    y: str,
    group: str,
    *,
    y_title: Optional[str] = None,
) -> Dict[str, Any]:
    df = _frame(data, [x, group, y])
    chart = (
        alt.Chart(df)
        .mark_bar()
        .encode(
            x=alt.X(f"{x}:N", sort=None, axis=_label_axis()),
            xOffset=alt.XOffset(f"{group}:N"),
            y=alt.Y(f"{y}:Q", scale=alt.Scale(type="linear", zero=True), axis=_value_axis(y_title, ",.0f")),
            color=alt.Color(f"{group}:N", legend=alt.Legend(title=None, orient="top", labelLimit=80)),
            tooltip=[f"{x}:N", f"{group}:N", alt.Tooltip(f"{y}:Q", format=",.3~f")],
        )
        .properties(width=WIDTH, height=HEIGHT)
    )
    return to_vega_spec(chart)


def donut_chart(
    values: Mapping[str, float],
    *,
    colors: Sequence[str] = ("#F59E0B", POSITIVE),
) -> Dict[str, Any]:
    labels: List[str] = list(values.keys())
    df = pd.DataFrame({"label": labels, "value": [float(v or 0) for v in values.values()]})
    chart = (
        alt.Chart(df)
        .mark_arc(innerRadius=60, outerRadius=100)
        .encode(
            theta=alt.Theta("value:Q", stack=True),
            color=alt.Color(
                "label:N",
                scale=alt.Scale(domain=labels, range=list(colors)[: len(labels)]),
                legend=alt.Legend(title=None, orient="bottom"),
            ),
            tooltip=["label:N", alt.Tooltip("value:Q", format=",")],
        )
        .properties(width=HEIGHT, height=HEIGHT)
    )
    return to_vega_spec(chart)
