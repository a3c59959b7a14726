from __future__ import annotations

import logging
import math
import os
from pathlib import Path
from typing import Literal, Optional, Union

import numpy as np
import pandas as pd
from fastapi import APIRouter, Depends, FastAPI, File, Query, Request, UploadFile
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from fastapi.staticfiles import StaticFiles

from api.logging_config import LOGGING
from api.schemas import GenerateReportModel, MerchantTotalsModel, PanelTypeName
from core.data import ALLOWED_MIME_TYPES, OUTPUT_DIR, UPLOAD_DIR, ingest_upload
from core.errors import ReportError, UploadTooLargeError
from core.export import OUTPUT_URL_PREFIX, combined_export_filename, export_combined_summary, generate_report
from core.filters import normalize_preview_filters, normalize_report_filters
from core.metrics_combined import compute_combined_summary
from core.metrics_merchants import compute_all_merchants
from core.metrics_preview import compute_merchant_totals
from core.storage import MemStorage


logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api")

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def get_storage(request: Request) -> MemStorage:
    return request.app.state.storage


def _json(data: object, status_code: int = 200) -> JSONResponse:
    """Return JSON with safe encoding for pandas/numpy objects."""

    def _safe_float(value: object) -> float | None:
        try:
            out = float(value)  # type: ignore[arg-type]
        except Exception:
            return None
        if math.isnan(out) or math.isinf(out):
            return None
        return out

    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(
            data,
            custom_encoder={
                type(pd.NA): lambda _: None,
                np.integer: int,
                float: _safe_float,
                np.floating: _safe_float,
                np.bool_: bool,
                np.ndarray: lambda arr: arr.tolist(),
                pd.Timestamp: lambda ts: ts.isoformat(),
            },
        ),
    )


def _error(status_code: int, exc: Union[Exception, str]) -> JSONResponse:
    if isinstance(exc, str):
        return JSONResponse(status_code=status_code, content={"error": exc})
    return JSONResponse(status_code=status_code, content={"error": str(exc), "type": type(exc).__name__})


@router.post("/upload")
def upload(
    request: Request,
    panel_type: PanelTypeName = Query(alias="type"),
    file: Optional[UploadFile] = File(default=None),
    storage: MemStorage = Depends(get_storage),
):
    if file is None:
        return _error(400, "No file uploaded")
    if file.content_type not in ALLOWED_MIME_TYPES:
        return _error(400, f"Unsupported file type {file.content_type!r}; upload an Excel workbook")

    try:
        dataset = ingest_upload(
            storage,
            file.file,
            panel_type=panel_type,
            original_name=file.filename or "upload.xlsx",
            upload_dir=request.app.state.upload_dir,
        )
        logger.info("Stored %s dataset %d from %s", panel_type, dataset.id, dataset.original_name)
        return _json({"success": True, "merchants": dataset.merchants})
    except UploadTooLargeError as exc:
        return _error(413, exc)
    except ReportError as exc:
        return _error(400, exc)
    except Exception as exc:
        logger.exception("upload failed")
        return _error(500, exc)


@router.post("/generate")
def generate(
    body: GenerateReportModel,
    request: Request,
    panel_type: PanelTypeName = Query(alias="type"),
    storage: MemStorage = Depends(get_storage),
):
    try:
        filters = normalize_report_filters({**body.model_dump(), "type": panel_type})
        report = generate_report(storage, filters, request.app.state.output_dir)
        return _json({"success": True, "summary": report.summary, "downloadUrl": report.download_url})
    except ReportError as exc:
        return _error(400, exc)
    except Exception as exc:
        logger.exception("generate failed")
        return _error(500, exc)


@router.post("/merchant-totals")
def merchant_totals(body: MerchantTotalsModel, storage: MemStorage = Depends(get_storage)):
    try:
        filters = normalize_preview_filters(body.model_dump())
        return _json({"merchantTotals": compute_merchant_totals(storage, filters)})
    except ReportError as exc:
        return _error(400, exc)
    except Exception as exc:
        logger.exception("merchant_totals failed")
        return _error(500, exc)


@router.get("/all-merchants")
def all_merchants(storage: MemStorage = Depends(get_storage)):
    try:
        return _json({"merchants": compute_all_merchants(storage)})
    except Exception as exc:
        logger.exception("all_merchants failed")
        return _error(500, exc)


@router.get("/reports")
def reports(
    panel_type: Optional[PanelTypeName] = Query(default=None, alias="type"),
    storage: MemStorage = Depends(get_storage),
):
    try:
        found = storage.get_reports_by_panel_type(panel_type) if panel_type else storage.get_all_reports()
        return _json({"reports": [r.to_dict() for r in found]})
    except Exception as exc:
        logger.exception("reports failed")
        return _error(500, exc)


@router.get("/combined-summary")
def combined_summary(
    search: str = Query(default=""),
    type_filter: Literal["all", "Deposit", "Withdrawal"] = Query(default="all", alias="type"),
    storage: MemStorage = Depends(get_storage),
):
    try:
        return _json(compute_combined_summary(storage, search=search, type_filter=type_filter))
    except Exception as exc:
        logger.exception("combined_summary failed")
        return _error(500, exc)


@router.get("/combined-summary/export")
def combined_summary_export(
    search: str = Query(default=""),
    type_filter: Literal["all", "Deposit", "Withdrawal"] = Query(default="all", alias="type"),
    storage: MemStorage = Depends(get_storage),
):
    try:
        payload = compute_combined_summary(storage, search=search, type_filter=type_filter)
        content = export_combined_summary(payload["merchants"])
        filename = combined_export_filename()
        return Response(content=content, media_type=XLSX_MEDIA_TYPE, headers={"Content-Disposition": f"attachment; filename={filename}"})
    except Exception as exc:
        logger.exception("combined_summary_export failed")
        return _error(500, exc)


def create_app(
    storage: Optional[MemStorage] = None,
    *,
    upload_dir: Optional[Union[str, Path]] = None,
    output_dir: Optional[Union[str, Path]] = None,
) -> FastAPI:
    upload_dir = Path(upload_dir or UPLOAD_DIR)
    output_dir = Path(output_dir or OUTPUT_DIR)
    upload_dir.mkdir(parents=True, exist_ok=True)
    output_dir.mkdir(parents=True, exist_ok=True)

    app = FastAPI(title="Merchant Reports API", version="0.1.0")
    app.state.storage = storage if storage is not None else MemStorage()
    app.state.upload_dir = upload_dir
    app.state.output_dir = output_dir

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:3000", "http://127.0.0.1:3000", "http://localhost:8501"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(router)
    app.mount(OUTPUT_URL_PREFIX, StaticFiles(directory=str(output_dir)), name="output")
    return app


def main() -> None:
    import uvicorn

    uvicorn.run(
        "api.main:create_app",
        factory=True,
        host=os.environ.get("HOST", "127.0.0.1"),
        port=int(os.environ.get("PORT", "8000")),
        log_config=LOGGING,
    )


if __name__ == "__main__":
    main()
