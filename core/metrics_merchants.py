from __future__ import annotations

from typing import Any, Dict, List

from core.data import PANEL_TYPES
from core.storage import MemStorage


def compute_all_merchants(storage: MemStorage) -> List[Dict[str, Any]]:
    """Per (merchant, panel type) totals across every live dataset.

    Uses the panel-specific amount/fee fields. A merchant present in both
    datasets yields one entry per panel.
    """
    merchants: List[Dict[str, Any]] = []
    for panel_type in PANEL_TYPES:
        dataset = storage.get_dataset(panel_type)
        if dataset is None or dataset.rows.empty:
            continue
        rows = dataset.rows[dataset.rows["merchant"] != ""]
        if rows.empty:
            continue
        totals = rows.groupby("merchant", sort=False).agg(
            amount=("panel_amount", "sum"),
            fees=("panel_fee", "sum"),
            count=("panel_amount", "size"),
        )
        for merchant, values in totals.iterrows():
            merchants.append(
                {
                    "Merchant": str(merchant),
                    "Type": panel_type,
                    "TotalAmount": float(values["amount"]),
                    "TotalFees": float(values["fees"]),
                    "TransactionCount": int(values["count"]),
                    "LastUpdated": dataset.created_at,
                }
            )
    return merchants
