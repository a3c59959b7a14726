import io
from pathlib import Path

import pandas as pd
import pytest
from fastapi.testclient import TestClient

from core.data import normalize_rows
from core.metrics_report import SUMMARY_SHEET
from core.storage import MemStorage


@pytest.fixture
def acme_records():
    return [
        {"Merchant Name": "Acme", "Date": "2024-01-05", "Withdrawal Amount": 100, "Withdrawal Fees": 5},
        {"Merchant Name": "Acme", "Date": "2024-01-06", "Withdrawal Amount": 200, "Withdrawal Fees": 5},
        {"Merchant Name": "Beta", "Date": "2024-02-10", "Withdrawal Amount": 50, "Withdrawal Fees": 1},
    ]


@pytest.fixture
def storage():
    return MemStorage()


@pytest.fixture
def make_rows():
    def _make(records, panel_type="Withdrawal"):
        return normalize_rows(pd.DataFrame(records), panel_type)

    return _make


@pytest.fixture
def add_dataset(storage, make_rows):
    def _add(records, panel_type="Withdrawal", name="input.xlsx"):
        rows = make_rows(records, panel_type)
        merchants = list(dict.fromkeys(m for m in rows["merchant"] if m))
        return storage.create_dataset(panel_type=panel_type, original_name=name, file_path=name, merchants=merchants, rows=rows)

    return _add


@pytest.fixture
def workbook(tmp_path: Path):
    def _write(records, name="input.xlsx", columns=None) -> Path:
        path = tmp_path / name
        pd.DataFrame(records, columns=columns).to_excel(path, index=False)
        return path

    return _write


@pytest.fixture
def workbook_bytes():
    def _bytes(records, columns=None) -> bytes:
        buffer = io.BytesIO()
        pd.DataFrame(records, columns=columns).to_excel(buffer, index=False)
        return buffer.getvalue()

    return _bytes


@pytest.fixture
def client(tmp_path: Path):
    from api.main import create_app

    app = create_app(upload_dir=tmp_path / "uploads", output_dir=tmp_path / "output")
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def read_summary_sheet():
    def _read(path):
        frame = pd.read_excel(path, sheet_name=SUMMARY_SHEET)
        return [
            {k: v for k, v in record.items() if not pd.isna(v)}
            for record in frame.to_dict(orient="records")
        ]

    return _read
