from __future__ import annotations

from typing import Any, Dict

import altair as alt
import pandas as pd

from emigration.datasets import DatasetDescriptor

alt.data_transformers.disable_max_rows()

WORLD_TOPOJSON_URL = "https://cdn.jsdelivr.net/npm/vega-datasets@v1.29.0/data/world-110m.json"


def to_vega_spec(chart: alt.TopLevelMixin) -> Dict[str, Any]:
    """Convert an Altair chart into a Vega-Lite spec dict (JSON-serializable)."""
    return chart.to_dict()


def _label_sort(descriptor: DatasetDescriptor) -> list:
    return [c.label for c in descriptor.categories]


def category_bar(descriptor: DatasetDescriptor, rows: pd.DataFrame, *, horizontal: bool = False) -> alt.Chart:
    hover = alt.selection_point(fields=["label"], on="mouseover", empty="all")
    tooltip = [
        alt.Tooltip("label:N", title="Category"),
        alt.Tooltip("count:Q", title="Emigrants", format=","),
        alt.Tooltip("percentage:Q", title="Share (%)", format=".1f"),
    ]
    if horizontal:
        x = alt.X("count:Q", title="Emigrants", axis=alt.Axis(format="~s", gridDash=[4, 4], domain=False, ticks=False))
        y = alt.Y("label:N", title=None, sort="-x")
    else:
        x = alt.X("label:N", title=None, sort=_label_sort(descriptor), axis=alt.Axis(labelAngle=-30, grid=False))
        y = alt.Y("count:Q", title="Emigrants", axis=alt.Axis(format="~s", gridDash=[4, 4], domain=False, ticks=False))
    return (
        alt.Chart(rows)
        .mark_bar()
        .encode(
            x=x,
            y=y,
            color=alt.Color("label:N", legend=None, sort=_label_sort(descriptor)),
            opacity=alt.condition(hover, alt.value(1), alt.value(0.6)),
            tooltip=tooltip,
        )
        .add_params(hover)
        .properties(height=320)
    )


def trend_line(descriptor: DatasetDescriptor, trend: pd.DataFrame) -> alt.Chart:
    hover = alt.selection_point(fields=["label"], on="mouseover", empty="all")
    return (
        alt.Chart(trend)
        .mark_line(point={"filled": True, "size": 60})
        .encode(
            x=alt.X("year:O", title="Year", axis=alt.Axis(format="d", grid=False)),
            y=alt.Y("count:Q", title="Emigrants", axis=alt.Axis(format="~s", gridDash=[4, 4], domain=False, ticks=False)),
            color=alt.Color("label:N", title=None, sort=_label_sort(descriptor)),
            opacity=alt.condition(hover, alt.value(1), alt.value(0.2)),
            tooltip=["year", alt.Tooltip("label:N", title="Category"), alt.Tooltip("count:Q", format=",")],
        )
        .add_params(hover)
        .properties(height=320)
    )


def distribution_area(descriptor: DatasetDescriptor, rows: pd.DataFrame) -> alt.Chart:
    return (
        alt.Chart(rows)
        .mark_area(line=True, point=True, opacity=0.4)
        .encode(
            x=alt.X("label:N", title="Age Group", sort=_label_sort(descriptor), axis=alt.Axis(labelAngle=0, grid=False)),
            y=alt.Y("count:Q", title="Emigrants", axis=alt.Axis(format="~s", gridDash=[4, 4], domain=False, ticks=False)),
            tooltip=[alt.Tooltip("label:N", title="Age Group"), alt.Tooltip("count:Q", format=","), alt.Tooltip("percentage:Q", format=".1f")],
        )
        .properties(height=320)
    )


def stacked_trend_area(descriptor: DatasetDescriptor, trend: pd.DataFrame) -> alt.Chart:
    return (
        alt.Chart(trend)
        .mark_area()
        .encode(
            x=alt.X("year:O", title="Year", axis=alt.Axis(format="d", grid=False)),
            y=alt.Y("count:Q", stack="zero", title="Emigrants", axis=alt.Axis(format="~s")),
            color=alt.Color("label:N", title=None, sort=_label_sort(descriptor)),
            tooltip=["year", alt.Tooltip("label:N", title="Category"), alt.Tooltip("count:Q", format=",")],
        )
        .properties(height=280)
    )


def share_bar(descriptor: DatasetDescriptor, rows: pd.DataFrame) -> alt.Chart:
    data = rows[rows["count"] > 0] if not rows.empty else rows
    return (
        alt.Chart(data)
        .mark_bar()
        .encode(
            x=alt.X("percentage:Q", title="Share of total (%)", axis=alt.Axis(format=".0f", gridDash=[4, 4], domain=False)),
            y=alt.Y("label:N", title=None, sort="-x"),
            color=alt.Color("count:Q", scale=alt.Scale(scheme="blues"), legend=None),
            tooltip=[
                alt.Tooltip("label:N", title="Occupation"),
                alt.Tooltip("count:Q", title="Emigrants", format=","),
                alt.Tooltip("percentage:Q", title="Share (%)", format=".2f"),
            ],
        )
        .properties(height=360)
    )


def world_choropleth(descriptor: DatasetDescriptor, rows: pd.DataFrame) -> alt.LayerChart:
    codes = {c.field: c.iso_numeric for c in descriptor.categories if c.iso_numeric is not None}
    mapped = rows[rows["field"].isin(codes)].copy()
    mapped["iso_numeric"] = mapped["field"].map(codes)

    countries = alt.topo_feature(WORLD_TOPOJSON_URL, "countries")
    background = alt.Chart(countries).mark_geoshape(fill="#e5e7eb", stroke="white", strokeWidth=0.5).project("equirectangular")
    filled = (
        alt.Chart(countries)
        .mark_geoshape(stroke="white", strokeWidth=0.5)
        .encode(
            color=alt.Color("count:Q", title="Emigrants", scale=alt.Scale(scheme="blues")),
            tooltip=[alt.Tooltip("label:N", title="Country"), alt.Tooltip("count:Q", format=",")],
        )
        .transform_lookup(
            lookup="id",
            from_=alt.LookupData(mapped, "iso_numeric", ["label", "count"]),
        )
        .transform_filter("isValid(datum.count)")
        .project("equirectangular")
    )
    return (background + filled).properties(height=360)


def chart_objects(descriptor: DatasetDescriptor, rows: pd.DataFrame, trend: pd.DataFrame) -> Dict[str, alt.TopLevelMixin]:
    """Named Altair charts for a dataset page, keyed the way the API payload exposes them."""
    if rows.empty:
        return {}
    kind = descriptor.chart
    charts: Dict[str, alt.TopLevelMixin] = {}
    if kind == "bar":
        charts["breakdown"] = category_bar(descriptor, rows)
    elif kind == "barh":
        charts["breakdown"] = category_bar(descriptor, rows, horizontal=True)
    elif kind == "line":
        if not trend.empty:
            charts["trend"] = trend_line(descriptor, trend)
        charts["breakdown"] = category_bar(descriptor, rows)
    elif kind == "area":
        charts["distribution"] = distribution_area(descriptor, rows)
        if not trend.empty:
            charts["trend"] = stacked_trend_area(descriptor, trend)
    elif kind == "share":
        charts["share"] = share_bar(descriptor, rows)
    elif kind == "choropleth":
        charts["map"] = world_choropleth(descriptor, rows)
        charts["breakdown"] = category_bar(descriptor, rows, horizontal=True)
    return charts


def build_charts(descriptor: DatasetDescriptor, rows: pd.DataFrame, trend: pd.DataFrame) -> Dict[str, Any]:
    return {name: to_vega_spec(chart) for name, chart in chart_objects(descriptor, rows, trend).items()}
