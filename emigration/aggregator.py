from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Iterable, List, Mapping, Optional

import pandas as pd

from emigration.charts import build_charts
from emigration.datasets import DatasetDescriptor
from emigration.filters import YearFilter, normalize_year_filter
from emigration.importer import coerce_year

Record = Mapping[str, Any]


def round_half_up(value: object, ndigits: int = 0) -> Optional[float]:
    if value is None or pd.isna(value):
        return None
    q = Decimal(10) ** -ndigits
    return float(Decimal(str(value)).quantize(q, rounding=ROUND_HALF_UP))


def records_frame(descriptor: DatasetDescriptor, records: Iterable[Record]) -> pd.DataFrame:
    """One row per record with ``id``, ``year`` and every category as a non-negative int."""
    cols = ["id", "year"] + descriptor.fields
    df = pd.DataFrame(list(records))
    if df.empty:
        return pd.DataFrame({c: pd.Series(dtype="int64" if c != "id" else object) for c in cols})
    for col in cols:
        if col not in df.columns:
            df[col] = None if col == "id" else 0
    df = df[cols].copy()
    df["year"] = df["year"].map(coerce_year)
    df = df.dropna(subset=["year"])
    df["year"] = df["year"].astype("int64")
    for col in descriptor.fields:
        df[col] = pd.to_numeric(df[col], errors="coerce").fillna(0).clip(lower=0).astype("int64")
    return df.reset_index(drop=True)


def available_years(records: Iterable[Record]) -> List[int]:
    years = {coerce_year(r.get("year")) for r in records}
    return sorted(y for y in years if y is not None)


def filter_frame(df: pd.DataFrame, year_filter: YearFilter) -> pd.DataFrame:
    if year_filter.is_all or df.empty:
        return df
    return df[df["year"] == year_filter.selected_year]


def filter_records(records: Iterable[Record], year_filter: object) -> List[Record]:
    yf = normalize_year_filter(year_filter)
    out = list(records)
    if yf.is_all:
        return out
    return [r for r in out if coerce_year(r.get("year")) == yf.selected_year]


def compute_totals(descriptor: DatasetDescriptor, records: Iterable[Record], year_filter: object = None) -> Dict[str, int]:
    df = filter_frame(records_frame(descriptor, records), normalize_year_filter(year_filter))
    return {f: int(df[f].sum()) if not df.empty else 0 for f in descriptor.fields}


def grand_total(totals: Mapping[str, int]) -> int:
    return int(sum(totals.values()))


def compute_percentages(totals: Mapping[str, int]) -> Dict[str, float]:
    grand = grand_total(totals)
    if grand == 0:
        return {f: 0.0 for f in totals}
    return {f: round_half_up(v / grand * 100, 1) or 0.0 for f, v in totals.items()}


def compute_trend(descriptor: DatasetDescriptor, records: Iterable[Record]) -> pd.DataFrame:
    """Per-year sums per category in long form: year, field, label, count."""
    df = records_frame(descriptor, records)
    if df.empty:
        return pd.DataFrame(columns=["year", "field", "label", "count"])
    by_year = df.groupby("year")[descriptor.fields].sum().reset_index().sort_values("year")
    long_df = by_year.melt(id_vars="year", value_vars=descriptor.fields, var_name="field", value_name="count")
    long_df["label"] = long_df["field"].map(descriptor.label_for)
    order = {f: i for i, f in enumerate(descriptor.fields)}
    long_df = long_df.assign(_order=long_df["field"].map(order)).sort_values(["year", "_order"])
    return long_df[["year", "field", "label", "count"]].reset_index(drop=True)


def compute_summary(
    descriptor: DatasetDescriptor,
    records: Iterable[Record],
    year_filter: object = None,
    *,
    with_charts: bool = True,
) -> Dict[str, Any]:
    """Page payload for one year filter. `charts` is empty when with_charts is False."""
    records = list(records)
    yf = normalize_year_filter(year_filter)
    totals = compute_totals(descriptor, records, yf)
    grand = grand_total(totals)
    pct = compute_percentages(totals)

    rows = [
        {"field": c.field, "label": c.label, "count": totals[c.field], "percentage": pct[c.field]}
        for c in descriptor.categories
    ]
    top = sorted(rows, key=lambda r: r["count"], reverse=True)
    top = [{"rank": i + 1, **r} for i, r in enumerate(top) if r["count"] > 0]

    charts = build_charts(descriptor, pd.DataFrame(rows), compute_trend(descriptor, records)) if with_charts else {}
    return {
        "dataset": descriptor.key,
        "title": descriptor.title,
        "filter": {"selected_year": yf.label},
        "years": available_years(records),
        "record_count": len(filter_records(records, yf)),
        "totals": totals,
        "grand_total": grand,
        "percentages": pct,
        "rows": rows,
        "top": top,
        "charts": charts,
    }
