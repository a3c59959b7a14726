from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List

import pandas as pd

from core.data import in_date_range
from core.filters import ReportFilters, format_percent


logger = logging.getLogger(__name__)

DETAIL_SHEET = "Detailed Data"
SUMMARY_SHEET = "Summary"
GRAND_TOTAL_DETAIL = "GRAND TOTAL"
GRAND_TOTAL_SUMMARY = "TOTAL"
GRAND_TOTAL_PERCENT_COLUMN = "TOTAL % Amount"


@dataclass(frozen=True)
class ReportTables:
    detail: List[Dict[str, Any]] = field(default_factory=list)
    summary: List[Dict[str, Any]] = field(default_factory=list)


def percent_column(percent: float) -> str:
    return f"{format_percent(percent)}% Amount"


def compute_report(filters: ReportFilters, rows: pd.DataFrame) -> ReportTables:
    """Build the "Detailed Data" and "Summary" tables for one generate request.

    Merchants are processed in ``filters.merchant_percents`` order. A merchant
    without rows in the date range is left out entirely. Per-row percent
    amounts are rounded for display; totals accumulate unrounded values and
    are rounded once at the end.
    """
    in_range = in_date_range(rows, filters.start_date, filters.end_date)

    detail: List[Dict[str, Any]] = []
    summary: List[Dict[str, Any]] = []
    grand_amount = 0.0
    grand_fees = 0.0
    grand_percent = 0.0

    for merchant, percent in filters.merchant_percents.items():
        matched = in_range[in_range["merchant"] == merchant]
        if matched.empty:
            logger.debug("No %s rows for %r between %s and %s", filters.panel_type, merchant, filters.start_date, filters.end_date)
            continue

        col = percent_column(percent)
        percent_amounts = matched["amount"] * percent / 100
        for amount, fee, percent_amount in zip(matched["amount"], matched["fee"], percent_amounts):
            detail.append({"Merchant": merchant, "Amount": float(amount), "Fees": float(fee), col: round(float(percent_amount), 2)})

        total_amount = float(matched["amount"].sum())
        total_fees = float(matched["fee"].sum())
        total_percent = float(percent_amounts.sum())

        detail.append(
            {
                "Merchant": f"Total of {merchant}",
                "Amount": round(total_amount, 2),
                "Fees": round(total_fees, 2),
                col: round(total_percent, 2),
            }
        )
        summary.append(
            {
                "Merchant": merchant,
                "Total Amount": round(total_amount, 2),
                "Total Fees": round(total_fees, 2),
                col: round(total_percent, 2),
            }
        )

        grand_amount += total_amount
        grand_fees += total_fees
        grand_percent += total_percent

    detail.append(
        {
            "Merchant": GRAND_TOTAL_DETAIL,
            "Amount": round(grand_amount, 2),
            "Fees": round(grand_fees, 2),
            GRAND_TOTAL_PERCENT_COLUMN: round(grand_percent, 2),
        }
    )
    summary.append(
        {
            "Merchant": GRAND_TOTAL_SUMMARY,
            "Total Amount": round(grand_amount, 2),
            "Total Fees": round(grand_fees, 2),
            GRAND_TOTAL_PERCENT_COLUMN: round(grand_percent, 2),
        }
    )
    return ReportTables(detail=detail, summary=summary)
