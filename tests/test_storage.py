import pandas as pd
import pytest

from core.errors import NoDataError
from core.storage import MemStorage


def _dataset(storage: MemStorage, panel_type: str, name: str):
    return storage.create_dataset(
        panel_type=panel_type,
        original_name=name,
        file_path=name,
        merchants=["Acme"],
        rows=pd.DataFrame(),
    )


def test_upload_replaces_dataset_for_panel_type(storage):
    first = _dataset(storage, "Deposit", "first.xlsx")
    second = _dataset(storage, "Deposit", "second.xlsx")

    assert second.id > first.id
    assert storage.get_dataset("Deposit") is second


def test_panel_slots_are_independent(storage):
    deposit = _dataset(storage, "Deposit", "d.xlsx")
    withdrawal = _dataset(storage, "Withdrawal", "w.xlsx")

    assert storage.get_dataset("Deposit") is deposit
    assert storage.get_dataset("Withdrawal") is withdrawal


def test_require_dataset_raises_when_missing(storage):
    assert storage.get_dataset("Withdrawal") is None
    with pytest.raises(NoDataError, match="Withdrawal"):
        storage.require_dataset("Withdrawal")


def test_reports_are_append_only(storage):
    kwargs = dict(start_date="2024-01-01", end_date="2024-01-31", merchant_percents={"Acme": 10.0}, summary=[], filename="r.xlsx", download_url="/output/r.xlsx")
    r1 = storage.create_report(panel_type="Deposit", **kwargs)
    r2 = storage.create_report(panel_type="Withdrawal", **kwargs)
    r3 = storage.create_report(panel_type="Deposit", **kwargs)

    assert [r.id for r in storage.get_all_reports()] == [1, 2, 3]
    assert storage.get_reports_by_panel_type("Deposit") == [r1, r3]
    assert storage.get_reports_by_panel_type("Withdrawal") == [r2]


def test_report_to_dict_uses_api_field_names(storage):
    report = storage.create_report(
        panel_type="Deposit",
        start_date="2024-01-01",
        end_date="2024-01-31",
        merchant_percents={"Acme": 10.0},
        summary=[{"Merchant": "TOTAL", "Total Amount": 0}],
        filename="r.xlsx",
        download_url="/output/r.xlsx",
    )
    payload = report.to_dict()
    assert payload["panelType"] == "Deposit"
    assert payload["merchantPercents"] == {"Acme": 10.0}
    assert payload["downloadUrl"] == "/output/r.xlsx"
    assert payload["createdAt"] == report.created_at
