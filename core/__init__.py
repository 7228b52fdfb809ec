"""Core (UI-agnostic) dashboard logic.

This package contains:
- row normalization for the two sheet layouts
- the time-boxed raw-row cache
- backing-store adapters (Google Sheets, local workbook)
- search / filter / pagination over normalized records
- the dashboard service composing the above, plus period reports
"""
