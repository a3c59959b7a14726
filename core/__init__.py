"""Core (UI-agnostic) merchant report logic.

This package contains:
- spreadsheet ingestion and row normalization (XLSX -> pandas)
- request normalization (dates, panel types, percents)
- the in-memory store for datasets and generated reports
- report aggregation, preview totals and merchant overviews
- workbook writing and chart helpers (Altair -> Vega-Lite spec dict)
"""
