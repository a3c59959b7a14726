import pytest

from core.errors import ValidationError
from core.filters import (
    format_percent,
    normalize_date,
    normalize_panel_type,
    normalize_percents,
    normalize_preview_filters,
    normalize_report_filters,
)


def test_normalize_date_variants():
    assert normalize_date("2024-01-05") == "2024-01-05"
    assert normalize_date("2024-01-05T10:00:00") == "2024-01-05"
    assert normalize_date("2024-01-05T23:00:00-05:00") == "2024-01-06"


@pytest.mark.parametrize("value", [None, "", "  ", "not-a-date"])
def test_normalize_date_rejects_missing_or_invalid(value):
    with pytest.raises(ValidationError):
        normalize_date(value, name="startDate")


def test_normalize_panel_type():
    assert normalize_panel_type("Deposit") == "Deposit"
    with pytest.raises(ValidationError):
        normalize_panel_type("deposit")


def test_normalize_percents_skips_non_numeric():
    raw = {"A": 10, "B": "x", "C": None, "D": "2.5", "E": float("nan"), "F": True}
    assert normalize_percents(raw) == {"A": 10.0, "D": 2.5}


def test_normalize_percents_keeps_order():
    raw = {"Zeta": 1, "Alpha": 2, "Mid": 3}
    assert list(normalize_percents(raw)) == ["Zeta", "Alpha", "Mid"]


@pytest.mark.parametrize("percent, label", [(10.0, "10"), (2.5, "2.5"), (12.75, "12.75"), (0, "0")])
def test_format_percent(percent, label):
    assert format_percent(percent) == label


def test_normalize_report_filters():
    filters = normalize_report_filters(
        {"type": "Withdrawal", "startDate": "2024-01-01", "endDate": "2024-01-31", "merchantPercents": {"Acme": 10}}
    )
    assert filters.panel_type == "Withdrawal"
    assert filters.start_date == "2024-01-01"
    assert filters.end_date == "2024-01-31"
    assert filters.merchant_percents == {"Acme": 10.0}


def test_normalize_preview_filters_requires_dates():
    with pytest.raises(ValidationError):
        normalize_preview_filters({"type": "Deposit", "startDate": "2024-01-01"})
