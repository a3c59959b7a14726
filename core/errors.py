from __future__ import annotations


class ReportError(Exception):
    """Base class for errors surfaced to the caller as a rejected request."""


class ParseError(ReportError):
    """The uploaded spreadsheet is empty or could not be read."""


class NoDataError(ReportError):
    """No dataset has been uploaded for the requested panel type."""

    def __init__(self, panel_type: str):
        super().__init__(f"No data available for {panel_type}. Please upload a file first.")
        self.panel_type = panel_type


class ValidationError(ReportError):
    """Request values that cannot be normalized (e.g. an unparseable date)."""


class UploadTooLargeError(ReportError):
    def __init__(self, size: int, limit: int):
        super().__init__(f"File exceeds the {limit // (1024 * 1024)}MB upload limit")
        self.size = size
        self.limit = limit
