from __future__ import annotations

import io
import logging
import time
from datetime import date
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Union

import pandas as pd

from core.filters import ReportFilters
from core.metrics_report import DETAIL_SHEET, SUMMARY_SHEET, ReportTables, compute_report
from core.storage import MemStorage, Report


logger = logging.getLogger(__name__)

OUTPUT_URL_PREFIX = "/output"
COMBINED_SHEET = "Recent Summary Results"

COMBINED_EXPORT_COLUMNS = {
    "Merchant": "Merchant Name",
    "Type": "Type",
    "TransactionCount": "Transaction Count",
    "TotalAmount": "Total Amount",
    "TotalFees": "Total Fees",
    "Percentage": "Percentage (%)",
    "CalculatedAmount": "Calculated Amount",
    "Status": "Status",
    "LastUpdated": "Last Updated",
}


def report_filename(panel_type: str, now_ms: Optional[int] = None) -> str:
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return f"report-{panel_type.lower()}-{now_ms}.xlsx"


def write_report_workbook(tables: ReportTables, path: Union[str, Path]) -> Path:
    """Write the two-sheet report; columns follow first-seen key order."""
    path = Path(path)
    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        pd.DataFrame(tables.detail).to_excel(writer, sheet_name=DETAIL_SHEET, index=False)
        pd.DataFrame(tables.summary).to_excel(writer, sheet_name=SUMMARY_SHEET, index=False)
    return path


def generate_report(storage: MemStorage, filters: ReportFilters, output_dir: Union[str, Path]) -> Report:
    """Aggregate, write the workbook, then record the report.

    The store is only touched once the file is on disk, so a failure leaves
    no partial report behind.
    """
    dataset = storage.require_dataset(filters.panel_type)
    tables = compute_report(filters, dataset.rows)

    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    filename = report_filename(filters.panel_type)
    write_report_workbook(tables, output_dir / filename)

    report = storage.create_report(
        panel_type=filters.panel_type,
        start_date=filters.start_date,
        end_date=filters.end_date,
        merchant_percents=filters.merchant_percents,
        summary=tables.summary,
        filename=filename,
        download_url=f"{OUTPUT_URL_PREFIX}/{filename}",
    )
    logger.info("Generated %s (%d merchants, %d detail rows)", filename, len(tables.summary) - 1, len(tables.detail))
    return report


def combined_export_filename(today: Optional[date] = None) -> str:
    today = today or date.today()
    return f"Recent_Summary_Results_{today.isoformat()}.xlsx"


def export_combined_summary(entries: Iterable[Dict[str, Any]]) -> bytes:
    rows = []
    for entry in entries:
        row = {label: entry.get(key) for key, label in COMBINED_EXPORT_COLUMNS.items()}
        last_updated = row["Last Updated"]
        if hasattr(last_updated, "date"):
            row["Last Updated"] = last_updated.date().isoformat()
        row["Percentage (%)"] = row["Percentage (%)"] or 0
        row["Calculated Amount"] = row["Calculated Amount"] or 0
        rows.append(row)

    buffer = io.BytesIO()
    frame = pd.DataFrame(rows, columns=list(COMBINED_EXPORT_COLUMNS.values()))
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        frame.to_excel(writer, sheet_name=COMBINED_SHEET, index=False)
        sheet = writer.sheets[COMBINED_SHEET]
        for idx, width in enumerate([20, 12, 15, 18, 15, 12, 20, 12, 15]):
            sheet.column_dimensions[chr(ord("A") + idx)].width = width
    return buffer.getvalue()
