from __future__ import annotations

from typing import Dict

from core.data import in_date_range
from core.filters import PreviewFilters
from core.storage import MemStorage


def compute_merchant_totals(storage: MemStorage, filters: PreviewFilters) -> Dict[str, Dict[str, float]]:
    """Unrounded amount/fee totals per merchant in the date range, for live preview."""
    dataset = storage.require_dataset(filters.panel_type)
    rows = in_date_range(dataset.rows, filters.start_date, filters.end_date)
    rows = rows[rows["merchant"] != ""]
    if rows.empty:
        return {}

    grouped = rows.groupby("merchant", sort=False)[["amount", "fee"]].sum()
    return {
        str(merchant): {"amount": float(values["amount"]), "fees": float(values["fee"])}
        for merchant, values in grouped.iterrows()
    }
