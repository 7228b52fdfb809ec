"""Failure taxonomy shared by the record sources, the cache and the dashboard service."""

from __future__ import annotations


class DashboardError(Exception):
    status_code = 500

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class BackingStoreUnavailable(DashboardError):
    """The spreadsheet could not be reached or authenticated against."""

    status_code = 503


class FetchFailed(DashboardError):
    """A cache refresh failed; the original error is kept as ``__cause__``."""

    status_code = 503

    def __init__(self, source_key: str, cause: Exception) -> None:
        super().__init__(f"failed to refresh rows for {source_key!r}: {cause}")
        self.source_key = source_key
        self.cause = cause


class WriteRejected(DashboardError):
    status_code = 502


class Forbidden(DashboardError):
    status_code = 403


class UnknownCategory(DashboardError):
    status_code = 404

    def __init__(self, category_id: str) -> None:
        super().__init__(f"unknown category: {category_id}")
        self.category_id = category_id
