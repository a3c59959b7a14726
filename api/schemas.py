from __future__ import annotations

from typing import Dict, Literal

from pydantic import BaseModel


PanelTypeName = Literal["Deposit", "Withdrawal"]


class GenerateReportModel(BaseModel):
    merchantPercents: Dict[str, float]
    startDate: str
    endDate: str


class MerchantTotalsModel(BaseModel):
    type: PanelTypeName
    startDate: str
    endDate: str
