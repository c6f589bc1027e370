import logging
from contextlib import contextmanager
from typing import Dict, Optional

import pandas as pd
import streamlit as st

from emigration.aggregator import available_years, compute_trend
from emigration.charts import chart_objects
from emigration.config import configure_logging, load_settings
from emigration.datasets import DatasetDescriptor, list_datasets
from emigration.editing import EditSession
from emigration.errors import CsvImportError, EmigrationError, StoreError, describe_store_error
from emigration.filters import ALL_YEARS, year_options
from emigration.service import DatasetService
from emigration.store import DocumentStore, SqliteStore, open_store

settings = load_settings()
configure_logging(settings.log_level)
logger = logging.getLogger("emigration.app")


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
        .card-header {display: flex;justify-content: space-between;align-items: center;margin-bottom: 8px;}
        .card-title {font-weight: 600;font-size: 1.0rem;color: #111827;}
        .card-actions {font-size: 0.9rem;color: #2563eb;}
        .chip-row {display: flex;flex-wrap: wrap;gap: 6px;margin-top: 6px;}
        .chip {background: #f3f4f6;border: 1px solid #e5e7eb;border-radius: 14px;padding: 4px 10px;font-size: 0.85rem;color: #374151;}
        </style>
        """,
        unsafe_allow_html=True,
    )
    st.session_state["_base_css_injected"] = True


@contextmanager
def card(title: str, actions: Optional[str] = None):
    container = st.container()
    container.markdown(
        f"""
        <div class="card">
          <div class="card-header">
            <div class="card-title">{title}</div>
            <div class="card-actions">{actions or ""}</div>
          </div>
        """,
        unsafe_allow_html=True,
    )
    body = container.container()
    with body:
        yield body
    container.markdown("</div>", unsafe_allow_html=True)


def format_filter_summary(selected_year: str, record_count: int) -> str:
    year_chip = "Year: All" if selected_year == ALL_YEARS else f"Year: {selected_year}"
    return "".join([f"<span class='chip'>{txt}</span>" for txt in [year_chip, f"Records: {record_count}"]])


def render_page_header(title: str, breadcrumb: str, filter_summary_html: str, export_df: Optional[pd.DataFrame] = None, export_name: str = "export.csv"):
    inject_base_styles()
    top = st.container()
    c1, c2 = top.columns([7, 3])
    with c1:
        st.markdown(
            f"<div class='app-top-bar'><div class='breadcrumb'>{breadcrumb}</div><div class='page-title'>{title}</div></div>",
            unsafe_allow_html=True,
        )
    with c2:
        btn_cols = st.columns(2)
        if btn_cols[0].button("Refresh"):
            st.rerun()
        if export_df is not None and not export_df.empty:
            btn_cols[1].download_button(
                "Export CSV",
                data=export_df.to_csv(index=False).encode("utf-8"),
                file_name=export_name,
                mime="text/csv",
            )
    st.markdown(f"<div class='chip-row'>{filter_summary_html}</div>", unsafe_allow_html=True)


# ---------- Messages ----------
def notify(text: str, kind: str = "success"):
    # Held until after st.rerun(); a toast raised before the rerun would be dropped.
    st.session_state["_notice"] = {"text": text, "kind": kind}


def render_notice():
    msg = st.session_state.pop("_notice", None)
    if not msg:
        return
    if msg["kind"] == "error":
        st.error(msg["text"])
    else:
        st.toast(msg["text"], icon="✅")


def error_message(exc: Exception, action: str) -> str:
    if isinstance(exc, CsvImportError):
        return f"Error processing CSV data: {exc} ({exc.persisted} record(s) were saved)"
    if isinstance(exc, StoreError):
        return f"Error {action}: {describe_store_error(exc)}"
    return f"Error {action}: {exc}"


# ---------- Store / session ----------
@st.cache_resource
def get_store() -> DocumentStore:
    return open_store(settings)


def edit_session(descriptor: DatasetDescriptor) -> EditSession:
    key = f"_edit_{descriptor.key}"
    if key not in st.session_state:
        st.session_state[key] = EditSession()
    return st.session_state[key]


# ---------- UI setup ----------
st.set_page_config(page_title="Filipino Emigrants Dashboard", layout="wide")
inject_base_styles()
st.title("Filipino Emigrants Dashboard")
st.caption("Registered Filipino emigrants by civil status, sex, age, occupation, education and destination.")

datasets = list_datasets()
with st.sidebar:
    st.markdown("### Navigate")
    titles = [d.title for d in datasets]
    nav_choice = st.radio("Dataset", titles, index=0)
    st.markdown("---")
    store = get_store()
    st.caption(f"Store: sqlite ({store.db_path})" if isinstance(store, SqliteStore) else "Store: in-memory")

descriptor = next(d for d in datasets if d.title == nav_choice)
service = DatasetService(store, descriptor, settings)
session = edit_session(descriptor)

try:
    records = service.load()
except StoreError as exc:
    logger.exception("load failed for %s", descriptor.key)
    st.error(f"Error fetching data: {describe_store_error(exc)}")
    records = []


# ----- Page renderers -----
def render_kpis(summary: Dict):
    top = summary["top"][0] if summary["top"] else None
    cols = st.columns(3)
    cols[0].metric("Total emigrants", f"{summary['grand_total']:,}")
    cols[1].metric("Records", f"{summary['record_count']:,}")
    cols[2].metric(
        "Top category",
        top["label"] if top else "N/A",
        delta=f"{top['percentage']:.1f}% of total" if top else None,
        delta_color="off",
    )


def render_charts(summary: Dict):
    charts = chart_objects(descriptor, pd.DataFrame(summary["rows"]), compute_trend(descriptor, records))
    if not charts:
        st.info("No data to chart yet. Add a record or import a CSV file.")
        return
    names = list(charts)
    chart_cols = st.columns(min(2, len(names)))
    for i, name in enumerate(names):
        with chart_cols[i % len(chart_cols)]:
            with card(name.replace("_", " ").title()):
                st.altair_chart(charts[name], use_container_width=True)


def render_breakdown(summary: Dict):
    table = pd.DataFrame(summary["rows"])[["label", "count", "percentage"]].rename(
        columns={"label": "Category", "count": "Emigrants", "percentage": "Share (%)"}
    )
    st.dataframe(table, hide_index=True, use_container_width=True)


def render_import():
    uploaded = st.file_uploader("Upload CSV", type=["csv"], key=f"upload_{descriptor.key}")
    if uploaded is not None and st.button("Import", key=f"import_{descriptor.key}"):
        try:
            result = service.import_csv(uploaded.getvalue(), filename=uploaded.name)
        except EmigrationError as exc:
            logger.warning("import failed for %s: %s", descriptor.key, exc)
            notify(error_message(exc, "importing CSV"), "error")
        else:
            skipped = f" ({result.skipped} row(s) without a year skipped)" if result.skipped else ""
            notify(f"{result.persisted} records uploaded successfully!{skipped}")
        st.rerun()
    st.caption("Headers: year, " + ", ".join(c.label for c in descriptor.categories))


def render_add_form():
    with st.form(key=f"add_{descriptor.key}", clear_on_submit=True):
        year = st.text_input("Year", key=f"add_{descriptor.key}_year")
        form: Dict[str, str] = {"year": year}
        cols = st.columns(4)
        for i, c in enumerate(descriptor.categories):
            form[c.field] = cols[i % 4].text_input(c.label, key=f"add_{descriptor.key}_{c.field}")
        submitted = st.form_submit_button("Add Record")
    if submitted:
        try:
            service.add(form)
        except EmigrationError as exc:
            notify(error_message(exc, "adding record"), "error")
        else:
            notify("Record added successfully!")
        st.rerun()


def render_edit_row(record: Dict):
    cols = st.columns(4)
    session.set_field("year", cols[0].text_input("Year", value=session.form.get("year", ""), key=f"edit_{record['id']}_year"))
    for i, c in enumerate(descriptor.categories, start=1):
        value = cols[i % 4].text_input(c.label, value=session.form.get(c.field, "0"), key=f"edit_{record['id']}_{c.field}")
        session.set_field(c.field, value)
    b1, b2, _ = st.columns([1, 1, 6])
    if b1.button("Save", key=f"save_{record['id']}"):
        try:
            session.save(service)
        except EmigrationError as exc:
            notify(error_message(exc, "updating record"), "error")
        else:
            notify("Record updated successfully!")
        st.rerun()
    if b2.button("Cancel", key=f"cancel_{record['id']}"):
        session.cancel()
        st.rerun()


def render_records_table():
    if not records:
        st.info("No records yet.")
        return
    pending_key = f"_pending_delete_{descriptor.key}"
    widths = [1] + [1] * len(descriptor.categories) + [1, 1]
    header = st.columns(widths)
    for col, text in zip(header, ["Year"] + [c.label for c in descriptor.categories] + ["", ""]):
        col.markdown(f"**{text}**")
    for record in records:
        row = st.columns(widths)
        row[0].write(record.get("year"))
        for i, f in enumerate(descriptor.fields, start=1):
            row[i].write(f"{int(record.get(f) or 0):,}")
        if row[-2].button("Edit", key=f"edit_{record['id']}", disabled=session.is_locked(record["id"])):
            try:
                session.begin(record, descriptor.fields)
            except EmigrationError as exc:
                notify(str(exc), "error")
            st.rerun()
        if row[-1].button("Delete", key=f"delete_{record['id']}"):
            st.session_state[pending_key] = record["id"]
            st.rerun()

        if st.session_state.get(pending_key) == record["id"]:
            st.warning(f"Are you sure you want to delete the {record.get('year')} record?")
            c1, c2, _ = st.columns([1, 1, 6])
            if c1.button("Confirm delete", key=f"confirm_{record['id']}"):
                st.session_state.pop(pending_key, None)
                try:
                    session.delete(service, record["id"], confirmed=True)
                except EmigrationError as exc:
                    notify(error_message(exc, "deleting record"), "error")
                else:
                    notify("Record deleted successfully!")
                st.rerun()
            if c2.button("Keep", key=f"keep_{record['id']}"):
                st.session_state.pop(pending_key, None)
                st.rerun()

        if session.editing_id == record["id"]:
            render_edit_row(record)


def render_dataset_page():
    years = available_years(records)
    selected_year = st.selectbox("Year", year_options(years), index=0, key=f"year_{descriptor.key}")
    summary = service.summary(selected_year, records=records, with_charts=False)
    render_page_header(
        descriptor.title,
        f"Home / {descriptor.title}",
        format_filter_summary(str(selected_year), summary["record_count"]),
        export_df=service.export_frame(records),
        export_name=f"{descriptor.key}.csv",
    )
    render_notice()
    if descriptor.description:
        st.caption(descriptor.description)

    with card("Summary"):
        render_kpis(summary)
    render_charts(summary)
    with card("Category breakdown"):
        render_breakdown(summary)

    data_cols = st.columns(2)
    with data_cols[0]:
        with card("Import CSV"):
            render_import()
    with data_cols[1]:
        with card("Add New Record"):
            render_add_form()

    with card("Records"):
        render_records_table()


render_dataset_page()
