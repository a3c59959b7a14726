from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional

import pandas as pd

from core.data import PANEL_TYPES
from core.errors import ValidationError


@dataclass(frozen=True)
class PreviewFilters:
    panel_type: str
    start_date: str
    end_date: str


@dataclass(frozen=True)
class ReportFilters:
    panel_type: str
    start_date: str
    end_date: str
    merchant_percents: Dict[str, float] = field(default_factory=dict)


def normalize_panel_type(value: object) -> str:
    panel_type = str(value or "").strip()
    if panel_type not in PANEL_TYPES:
        raise ValidationError(f"Unknown panel type {value!r}; expected one of {', '.join(PANEL_TYPES)}")
    return panel_type


def normalize_date(value: object, *, name: str = "date") -> str:
    """Normalize a request date to ISO ``YYYY-MM-DD`` (UTC for aware values)."""
    if value is None or str(value).strip() == "":
        raise ValidationError(f"Missing {name}")
    ts = pd.to_datetime(str(value).strip(), errors="coerce")
    if pd.isna(ts):
        raise ValidationError(f"Invalid {name}: {value!r}")
    if ts.tzinfo is not None:
        ts = ts.tz_convert("UTC")
    return ts.date().isoformat()


def _as_percent(value: object) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        out = float(value)  # type: ignore[arg-type]
    except Exception:
        return None
    if math.isnan(out) or math.isinf(out):
        return None
    return out


def normalize_percents(raw: Optional[Mapping[str, object]]) -> Dict[str, float]:
    """Keep only entries whose percent is numeric; others are skipped silently."""
    out: Dict[str, float] = {}
    for merchant, value in (raw or {}).items():
        percent = _as_percent(value)
        if percent is None:
            continue
        out[str(merchant)] = percent
    return out


def format_percent(percent: float) -> str:
    """Render a percent the way it appears in column labels: 10 -> "10", 2.5 -> "2.5"."""
    if float(percent).is_integer():
        return str(int(percent))
    return repr(float(percent))


def normalize_preview_filters(raw: dict) -> PreviewFilters:
    return PreviewFilters(
        panel_type=normalize_panel_type(raw.get("type")),
        start_date=normalize_date(raw.get("startDate"), name="startDate"),
        end_date=normalize_date(raw.get("endDate"), name="endDate"),
    )


def normalize_report_filters(raw: dict) -> ReportFilters:
    return ReportFilters(
        panel_type=normalize_panel_type(raw.get("type")),
        start_date=normalize_date(raw.get("startDate"), name="startDate"),
        end_date=normalize_date(raw.get("endDate"), name="endDate"),
        merchant_percents=normalize_percents(raw.get("merchantPercents")),
    )
