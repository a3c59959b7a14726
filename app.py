import altair as alt
import pandas as pd
import streamlit as st
import io
from contextlib import contextmanager
from datetime import date
from typing import Dict, Optional

from core.data import OUTPUT_DIR, PANEL_TYPES, UPLOAD_DIR, ingest_upload, is_new_upload
from core.errors import ReportError
from core.export import combined_export_filename, export_combined_summary, generate_report
from core.filters import PreviewFilters, ReportFilters, format_percent
from core.metrics_combined import compute_combined_summary
from core.metrics_preview import compute_merchant_totals
from core.storage import MemStorage

alt.data_transformers.disable_max_rows()


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
        .card-title {font-weight: 600;font-size: 1.0rem;color: #111827;}
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


def render_page_header(title: str, breadcrumb: str):
    inject_base_styles()
    st.markdown(
        f"<div class='app-top-bar'><div class='breadcrumb'>{breadcrumb}</div><div class='page-title'>{title}</div></div>",
        unsafe_allow_html=True,
    )


def get_storage() -> MemStorage:
    if "storage" not in st.session_state:
        st.session_state["storage"] = MemStorage()
    return st.session_state["storage"]


# ---------- Panels ----------
def render_upload(storage: MemStorage, panel_type: str):
    uploaded = st.file_uploader(f"{panel_type} Excel file", type=["xlsx", "xls"], key=f"upload_{panel_type}")
    if uploaded is None:
        return
    seen = st.session_state.setdefault("_ingested_uploads", {})
    if not is_new_upload(seen, panel_type, uploaded.file_id):
        return
    try:
        dataset = ingest_upload(
            storage,
            io.BytesIO(uploaded.getvalue()),
            panel_type=panel_type,
            original_name=uploaded.name,
            upload_dir=UPLOAD_DIR,
        )
    except ReportError as exc:
        st.error(str(exc))
        return
    seen[panel_type] = uploaded.file_id
    st.success(f"Loaded {len(dataset.rows):,} rows for {len(dataset.merchants)} merchants.")


def render_preview(totals: Dict[str, Dict[str, float]], percents: Dict[str, float]):
    if not percents:
        return
    rows = []
    for merchant, percent in percents.items():
        t = totals.get(merchant, {"amount": 0.0, "fees": 0.0})
        rows.append(
            {
                "Merchant": merchant,
                "Amount": t["amount"],
                "Fees": t["fees"],
                "Percent": percent,
                "Calculated": t["amount"] * percent / 100,
            }
        )
    st.dataframe(pd.DataFrame(rows), use_container_width=True, hide_index=True)


def render_panel(storage: MemStorage, panel_type: str):
    render_page_header(f"{panel_type} Panel", f"Panels / {panel_type}")
    with card("Upload"):
        render_upload(storage, panel_type)

    dataset = storage.get_dataset(panel_type)
    if dataset is None:
        st.info("Upload an Excel file to select merchants.")
        return

    with card("Merchants & date range"):
        c1, c2 = st.columns(2)
        start = c1.date_input("Start date", value=date.today().replace(day=1), key=f"start_{panel_type}")
        end = c2.date_input("End date", value=date.today(), key=f"end_{panel_type}")
        default_percent = st.number_input("Default percent", min_value=0.0, max_value=100.0, value=10.0, step=0.5, key=f"pct_{panel_type}")
        selected = st.multiselect("Merchants", options=dataset.merchants, key=f"merchants_{panel_type}")
        percents: Dict[str, float] = {}
        for merchant in selected:
            percents[merchant] = st.number_input(
                f"{merchant} %",
                min_value=0.0,
                max_value=100.0,
                value=float(default_percent),
                step=0.5,
                key=f"pct_{panel_type}_{merchant}",
            )

    start_iso, end_iso = start.isoformat(), end.isoformat()
    with card("Calculation preview"):
        totals = compute_merchant_totals(storage, PreviewFilters(panel_type, start_iso, end_iso))
        render_preview(totals, percents)

    if st.button("Generate report", disabled=not percents, key=f"generate_{panel_type}"):
        filters = ReportFilters(panel_type, start_iso, end_iso, percents)
        try:
            report = generate_report(storage, filters, OUTPUT_DIR)
        except ReportError as exc:
            st.error(str(exc))
            return
        st.dataframe(pd.DataFrame(report.summary), use_container_width=True, hide_index=True)
        st.download_button(
            "Download report",
            data=(OUTPUT_DIR / report.filename).read_bytes(),
            file_name=report.filename,
            mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        )
        labels = ", ".join(f"{m} @ {format_percent(p)}%" for m, p in percents.items())
        st.caption(f"Processed {labels}")


def render_combined(storage: MemStorage):
    render_page_header("Combined Merchant Summary", "Reports / Combined")
    c1, c2 = st.columns([3, 1])
    search = c1.text_input("Search merchants", "")
    type_filter = c2.selectbox("Type", ["all", *PANEL_TYPES], index=0)
    payload = compute_combined_summary(storage, search=search, type_filter=type_filter)

    if not payload["stats"]["totalMerchants"]:
        st.info("No merchant data available. Upload Excel files in the deposit and withdrawal panels first.")
        return

    stats, totals = payload["stats"], payload["totals"]
    cols = st.columns(4)
    cols[0].metric("Total Merchants", stats["totalMerchants"])
    cols[1].metric("Reports Generated", stats["reportsGenerated"])
    cols[2].metric("Deposit Merchants", stats["depositMerchants"])
    cols[3].metric("Withdrawal Merchants", stats["withdrawalMerchants"])
    cols = st.columns(3)
    cols[0].metric("Total Deposits", f"{totals['totalDeposits']:,.2f}")
    cols[1].metric("Total Withdrawals", f"{totals['totalWithdrawals']:,.2f}")
    cols[2].metric("Total Calculated", f"{totals['totalCalculated']:,.2f}")

    chart: Optional[dict] = payload["chart"]
    if chart:
        st.vega_lite_chart(chart, use_container_width=True)
    st.dataframe(pd.DataFrame(payload["merchants"]), use_container_width=True, hide_index=True)
    st.download_button(
        "Export Excel",
        data=export_combined_summary(payload["merchants"]),
        file_name=combined_export_filename(),
        mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    )


# ---------- UI setup ----------
st.set_page_config(page_title="Merchant Reports", layout="wide")
inject_base_styles()
st.title("Merchant Reports")
st.caption("Upload deposit and withdrawal sheets, apply merchant percentages, and export reports.")

storage = get_storage()
with st.sidebar:
    st.markdown("### Navigate")
    nav_choice = st.radio("Navigate", ["Deposit", "Withdrawal", "Combined Summary"], index=0)

if nav_choice == "Combined Summary":
    render_combined(storage)
else:
    render_panel(storage, nav_choice)
