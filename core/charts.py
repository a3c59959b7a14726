from __future__ import annotations

from typing import Any, Dict, Optional

import altair as alt
import pandas as pd

alt.data_transformers.disable_max_rows()


def to_vega_spec(chart: alt.Chart) -> Dict[str, Any]:
    """Convert an Altair chart into a Vega-Lite spec dict (JSON-serializable)."""
    return chart.to_dict()


def merchant_totals_chart(df: pd.DataFrame) -> Optional[Dict[str, Any]]:
    """Grouped bars of total amount per merchant, one bar per panel type."""
    if df.empty or not {"Merchant", "Type", "TotalAmount"}.issubset(df.columns):
        return None
    tooltip = ["Merchant", "Type", alt.Tooltip("TotalAmount:Q", title="Total Amount", format=",.2f")]
    if "CalculatedAmount" in df.columns:
        tooltip.append(alt.Tooltip("CalculatedAmount:Q", title="Calculated", format=",.2f"))
    bar = (
        alt.Chart(df)
        .mark_bar()
        .encode(
            x=alt.X("Merchant:N", sort="-y", title="Merchant"),
            y=alt.Y("TotalAmount:Q", title="Total Amount", axis=alt.Axis(format=",.0f")),
            color=alt.Color("Type:N", title="Panel"),
            xOffset="Type:N",
            tooltip=tooltip,
        )
    )
    return to_vega_spec(bar)
