from __future__ import annotations

import logging
import os
import re
import shutil
import tempfile
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import IO, TYPE_CHECKING, Iterable, List, Literal, MutableMapping, Tuple, Union

import numpy as np
import pandas as pd

from core.errors import ParseError, UploadTooLargeError

if TYPE_CHECKING:
    from core.storage import Dataset, MemStorage


logger = logging.getLogger(__name__)

BASE_DIR = Path(os.environ.get("MERCHANT_REPORTS_HOME") or Path.cwd())
UPLOAD_DIR = BASE_DIR / "uploads"
OUTPUT_DIR = BASE_DIR / "output"

MAX_UPLOAD_BYTES = 500 * 1024 * 1024
ALLOWED_MIME_TYPES = (
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "application/vnd.ms-excel",
)

PanelType = Literal["Deposit", "Withdrawal"]
PANEL_TYPES: Tuple[str, str] = ("Deposit", "Withdrawal")
PANEL_IDS = {"Deposit": "1", "Withdrawal": "2"}

MERCHANT_NAME = "Merchant Name"
WITHDRAWAL_AMOUNT = "Withdrawal Amount"
DEPOSIT_AMOUNT = "Deposit Amount"
WITHDRAWAL_FEES = "Withdrawal Fees"
DEPOSIT_FEES = "Deposit Fees"
DATE_COLUMNS = ("Date", "Transaction Date", "Created At")

ROW_COLUMNS = ["merchant", "amount", "fee", "panel_amount", "panel_fee", "date_raw", "date_only"]

EXCEL_EPOCH = datetime(1899, 12, 30)
DMY_PATTERN = re.compile(r"^(\d{2})-(\d{2})-(\d{4})")

Source = Union[str, Path, IO[bytes]]


@dataclass(frozen=True)
class ParsedSheet:
    rows: pd.DataFrame
    merchants: List[str]


def _timestamp_to_iso(ts: pd.Timestamp) -> str:
    if ts.tzinfo is not None:
        ts = ts.tz_convert("UTC")
    return ts.date().isoformat()


def extract_date_only(value: object) -> str:
    """Derive the ISO ``YYYY-MM-DD`` date used for range filtering.

    Numbers are spreadsheet serial dates, ``DD-MM-YYYY`` strings are read
    day-first, anything else goes through ``pandas.to_datetime``. Values that
    cannot be interpreted yield ``""``.
    """
    if value is None or isinstance(value, bool):
        return ""
    if pd.api.types.is_scalar(value) and pd.isna(value):
        return ""
    if isinstance(value, (pd.Timestamp, datetime, date)):
        return _timestamp_to_iso(pd.Timestamp(value))
    if isinstance(value, (int, float, np.integer, np.floating)):
        if value == 0:
            return ""
        try:
            return (EXCEL_EPOCH + timedelta(days=float(value))).date().isoformat()
        except (OverflowError, ValueError):
            return ""

    text = str(value).strip()
    if not text:
        return ""
    match = DMY_PATTERN.match(text)
    if match:
        day, month, year = match.groups()
        try:
            return date(int(year), int(month), int(day)).isoformat()
        except ValueError:
            return ""
    ts = pd.to_datetime(text, errors="coerce")
    if pd.isna(ts):
        return ""
    return _timestamp_to_iso(ts)


def to_number(series: pd.Series) -> pd.Series:
    """Coerce a column to floats; absent or unparseable cells become 0."""
    cleaned = series.map(lambda v: v.replace(",", "").strip() if isinstance(v, str) else v)
    return pd.to_numeric(cleaned, errors="coerce").fillna(0.0).astype(float)


def _clean_text(value: object) -> str:
    if value is None or (pd.api.types.is_scalar(value) and pd.isna(value)):
        return ""
    return str(value).strip()


def _column(df: pd.DataFrame, col: str) -> pd.Series:
    if col not in df.columns:
        return pd.Series([None] * len(df), index=df.index, dtype=object)
    val = df[col]
    if isinstance(val, pd.DataFrame):
        return val.iloc[:, 0]
    return val


def _coalesce(df: pd.DataFrame, cols: Iterable[str]) -> pd.Series:
    """First non-blank value per row across ``cols``, in order."""
    present = [c for c in cols if c in df.columns]
    if not present:
        return pd.Series([None] * len(df), index=df.index, dtype=object)
    frame = df[present].astype(object).replace({"": None})
    frame = frame.where(frame.notna(), None)
    return frame.bfill(axis=1).iloc[:, 0]


def read_workbook(source: Source) -> pd.DataFrame:
    """Read the first sheet of a workbook, using its header row as field names."""
    try:
        frame = pd.read_excel(source, sheet_name=0, dtype=object)
    except Exception as exc:
        raise ParseError(f"Could not read spreadsheet: {exc}") from exc
    frame.columns = [str(c).strip() for c in frame.columns]
    return frame.dropna(how="all").reset_index(drop=True)


def normalize_rows(raw: pd.DataFrame, panel_type: str) -> pd.DataFrame:
    """Resolve the loosely named source columns into ``ROW_COLUMNS``.

    ``amount``/``fee`` prefer the withdrawal fields and fall back to the
    deposit fields when the former are zero or missing. ``panel_amount`` and
    ``panel_fee`` only read the field belonging to ``panel_type``.
    """
    withdrawal_amount = to_number(_column(raw, WITHDRAWAL_AMOUNT))
    deposit_amount = to_number(_column(raw, DEPOSIT_AMOUNT))
    withdrawal_fee = to_number(_column(raw, WITHDRAWAL_FEES))
    deposit_fee = to_number(_column(raw, DEPOSIT_FEES))

    if panel_type == "Withdrawal":
        panel_amount, panel_fee = withdrawal_amount, withdrawal_fee
    else:
        panel_amount, panel_fee = deposit_amount, deposit_fee

    date_raw = _coalesce(raw, DATE_COLUMNS)
    rows = pd.DataFrame(
        {
            "merchant": _column(raw, MERCHANT_NAME).map(_clean_text),
            "amount": withdrawal_amount.where(withdrawal_amount != 0, deposit_amount),
            "fee": withdrawal_fee.where(withdrawal_fee != 0, deposit_fee),
            "panel_amount": panel_amount,
            "panel_fee": panel_fee,
            "date_raw": date_raw,
            "date_only": date_raw.map(extract_date_only),
        },
        index=raw.index,
    )
    return rows[ROW_COLUMNS].reset_index(drop=True)


def distinct_merchants(rows: pd.DataFrame) -> List[str]:
    if rows.empty:
        return []
    return list(dict.fromkeys(m for m in rows["merchant"].tolist() if m))


def parse_transactions(source: Source, panel_type: str) -> ParsedSheet:
    raw = read_workbook(source)
    if raw.empty:
        raise ParseError("Excel file is empty")
    rows = normalize_rows(raw, panel_type)
    merchants = distinct_merchants(rows)
    undated = int((rows["date_only"] == "").sum())
    if undated:
        logger.warning("%s upload: %d of %d rows have no usable date", panel_type, undated, len(rows))
    logger.info("Parsed %s sheet: %d rows, %d merchants", panel_type, len(rows), len(merchants))
    return ParsedSheet(rows=rows, merchants=merchants)


def in_date_range(rows: pd.DataFrame, start: str, end: str) -> pd.DataFrame:
    """Rows whose ``date_only`` lies in ``[start, end]`` (ISO strings, inclusive)."""
    if rows.empty:
        return rows
    mask = (rows["date_only"] >= start) & (rows["date_only"] <= end)
    return rows[mask]


def upload_path(upload_dir: Union[str, Path], panel_type: str) -> Path:
    return Path(upload_dir) / f"panel-{PANEL_IDS[panel_type]}-input.xlsx"


def is_new_upload(seen: MutableMapping[str, str], panel_type: str, upload_id: str) -> bool:
    """True unless ``upload_id`` is the upload last ingested for ``panel_type``."""
    return seen.get(panel_type) != upload_id


def ingest_upload(
    storage: "MemStorage",
    stream: IO[bytes],
    *,
    panel_type: str,
    original_name: str,
    upload_dir: Union[str, Path],
    max_bytes: int = MAX_UPLOAD_BYTES,
) -> "Dataset":
    """Stage an uploaded workbook, parse it and install it for ``panel_type``.

    The bytes land in a temporary file next to the panel file and only
    replace it once they parse. A rejected upload leaves both the live
    dataset and the file it was read from untouched.
    """
    target = upload_path(upload_dir, panel_type)
    target.parent.mkdir(parents=True, exist_ok=True)
    staged = tempfile.NamedTemporaryFile(dir=target.parent, prefix=f"{target.stem}-", suffix=".xlsx", delete=False)
    staged_path = Path(staged.name)
    try:
        with staged:
            shutil.copyfileobj(stream, staged)
        size = staged_path.stat().st_size
        if size > max_bytes:
            raise UploadTooLargeError(size, max_bytes)
        parsed = parse_transactions(staged_path, panel_type)
        os.replace(staged_path, target)
    finally:
        if staged_path.exists():
            staged_path.unlink()

    return storage.create_dataset(
        panel_type=panel_type,
        original_name=original_name,
        file_path=str(target),
        merchants=parsed.merchants,
        rows=parsed.rows,
    )
