from __future__ import annotations

from typing import Any, Dict, List

import pandas as pd

from core.charts import merchant_totals_chart
from core.metrics_merchants import compute_all_merchants
from core.metrics_report import GRAND_TOTAL_PERCENT_COLUMN, GRAND_TOTAL_SUMMARY, percent_column
from core.storage import MemStorage, Report


def _report_totals(reports: List[Report]) -> Dict[str, float]:
    totals = {"totalDeposits": 0.0, "totalWithdrawals": 0.0, "totalCalculated": 0.0}
    for report in reports:
        total_row = next((row for row in report.summary if row.get("Merchant") == GRAND_TOTAL_SUMMARY), None)
        if total_row is None:
            continue
        key = "totalDeposits" if report.panel_type == "Deposit" else "totalWithdrawals"
        totals[key] += float(total_row.get("Total Amount") or 0)
        totals["totalCalculated"] += float(total_row.get(GRAND_TOTAL_PERCENT_COLUMN) or 0)
    return totals


def _apply_calculated_amounts(entries: List[Dict[str, Any]], reports: List[Report]) -> None:
    # Later reports overwrite earlier ones for the same (merchant, type).
    index = {(e["Merchant"], e["Type"]): e for e in entries}
    for report in reports:
        for row in report.summary:
            merchant = row.get("Merchant")
            if merchant == GRAND_TOTAL_SUMMARY or merchant not in report.merchant_percents:
                continue
            entry = index.get((merchant, report.panel_type))
            if entry is None:
                continue
            percent = report.merchant_percents[merchant]
            entry["CalculatedAmount"] = float(row.get(percent_column(percent)) or 0)
            entry["Percentage"] = percent


def _merchant_chart(entries: List[Dict[str, Any]]):
    if not entries:
        return None
    # LastUpdated holds datetimes; the chart only needs the numeric columns.
    return merchant_totals_chart(pd.DataFrame(entries)[["Merchant", "Type", "TotalAmount", "CalculatedAmount"]])


def compute_combined_summary(storage: MemStorage, *, search: str = "", type_filter: str = "all") -> Dict[str, Any]:
    reports = storage.get_all_reports()
    entries = compute_all_merchants(storage)
    for entry in entries:
        entry["CalculatedAmount"] = 0.0
        entry["Percentage"] = 0.0
    _apply_calculated_amounts(entries, reports)
    for entry in entries:
        entry["Status"] = "Processed" if entry["CalculatedAmount"] > 0 else "Available"

    stats = {
        "totalMerchants": len(entries),
        "reportsGenerated": len(reports),
        "depositMerchants": sum(1 for e in entries if e["Type"] == "Deposit"),
        "withdrawalMerchants": sum(1 for e in entries if e["Type"] == "Withdrawal"),
    }

    q = (search or "").strip().lower()
    type_filter = type_filter or "all"
    filtered = [
        e
        for e in entries
        if (not q or q in e["Merchant"].lower()) and (type_filter == "all" or e["Type"] == type_filter)
    ]

    return {
        "totals": _report_totals(reports),
        "stats": stats,
        "merchants": filtered,
        "chart": _merchant_chart(filtered),
    }
