"""Volatile in-process storage for uploaded datasets and generated reports."""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import pandas as pd

from core.errors import NoDataError


logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Dataset:
    id: int
    panel_type: str
    original_name: str
    file_path: str
    merchants: List[str]
    rows: pd.DataFrame
    created_at: datetime = field(default_factory=_utcnow)


@dataclass(frozen=True)
class Report:
    id: int
    panel_type: str
    start_date: str
    end_date: str
    merchant_percents: Dict[str, float]
    summary: List[Dict[str, Any]]
    filename: str
    download_url: str
    created_at: datetime = field(default_factory=_utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "panelType": self.panel_type,
            "startDate": self.start_date,
            "endDate": self.end_date,
            "merchantPercents": dict(self.merchant_percents),
            "summary": [dict(row) for row in self.summary],
            "downloadUrl": self.download_url,
            "createdAt": self.created_at,
        }


class MemStorage:
    """One dataset slot per panel type plus an append-only list of reports.

    Instances are passed explicitly to whoever needs them; nothing here is
    process-global. Each method is a single synchronous mutation.
    """

    def __init__(self) -> None:
        self._datasets: Dict[str, Dataset] = {}
        self._reports: List[Report] = []
        self._dataset_ids = itertools.count(1)
        self._report_ids = itertools.count(1)

    def create_dataset(
        self,
        *,
        panel_type: str,
        original_name: str,
        file_path: str,
        merchants: List[str],
        rows: pd.DataFrame,
    ) -> Dataset:
        dataset = Dataset(
            id=next(self._dataset_ids),
            panel_type=panel_type,
            original_name=original_name,
            file_path=file_path,
            merchants=list(merchants),
            rows=rows,
        )
        previous = self._datasets.get(panel_type)
        if previous is not None:
            logger.info("Replacing %s dataset %d (%s) with %d (%s)", panel_type, previous.id, previous.original_name, dataset.id, original_name)
        self._datasets[panel_type] = dataset
        return dataset

    def get_dataset(self, panel_type: str) -> Optional[Dataset]:
        return self._datasets.get(panel_type)

    def require_dataset(self, panel_type: str) -> Dataset:
        dataset = self.get_dataset(panel_type)
        if dataset is None:
            raise NoDataError(panel_type)
        return dataset

    def create_report(
        self,
        *,
        panel_type: str,
        start_date: str,
        end_date: str,
        merchant_percents: Dict[str, float],
        summary: List[Dict[str, Any]],
        filename: str,
        download_url: str,
    ) -> Report:
        report = Report(
            id=next(self._report_ids),
            panel_type=panel_type,
            start_date=start_date,
            end_date=end_date,
            merchant_percents=dict(merchant_percents),
            summary=[dict(row) for row in summary],
            filename=filename,
            download_url=download_url,
        )
        self._reports.append(report)
        return report

    def get_reports_by_panel_type(self, panel_type: str) -> List[Report]:
        return [r for r in self._reports if r.panel_type == panel_type]

    def get_all_reports(self) -> List[Report]:
        return list(self._reports)
