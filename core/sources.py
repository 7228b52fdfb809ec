from __future__ import annotations

import json
import logging
import re
import threading
import zipfile
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, Tuple

import gspread
import openpyxl
import requests
from google.auth.exceptions import GoogleAuthError
from gspread.exceptions import GSpreadException, WorksheetNotFound
from openpyxl.utils import column_index_from_string
from openpyxl.utils.exceptions import InvalidFileException

from core.config import HEADER_OFFSET, Settings
from core.errors import BackingStoreUnavailable, WriteRejected

logger = logging.getLogger(__name__)

RANGE_RE = re.compile(r"^([A-Z]+)(\d+):([A-Z]+)(\d+)?$")
COLUMN_RE = re.compile(r"^[A-Z]{1,3}$")

SHEETS_ERRORS = (GSpreadException, GoogleAuthError, requests.RequestException)
WORKBOOK_ERRORS = (OSError, ValueError, zipfile.BadZipFile, InvalidFileException)


class RecordSource(Protocol):
    def fetch_rows(self, sheet_name: Optional[str], column_range: str) -> List[List[Any]]:
        ...

    def write_cell(self, sheet_name: Optional[str], row_ref: str, column: str, value: str) -> None:
        ...


def parse_range(column_range: str) -> Tuple[int, int, int, Optional[int]]:
    """``"A2:K"`` -> (min_col, min_row, max_col, max_row) with 1-based indices."""
    match = RANGE_RE.match(column_range.strip().upper())
    if not match:
        raise ValueError(f"unsupported range: {column_range!r}")
    min_col, min_row, max_col, max_row = match.groups()
    return (
        column_index_from_string(min_col),
        int(min_row),
        column_index_from_string(max_col),
        int(max_row) if max_row else None,
    )


def validate_cell_target(row_ref: str, column: str) -> int:
    ref = str(row_ref).strip()
    if not ref.isdigit() or int(ref) < HEADER_OFFSET:
        raise WriteRejected(f"invalid row reference: {row_ref!r}", status_code=400)
    if not COLUMN_RE.match(column):
        raise WriteRejected(f"invalid column: {column!r}", status_code=400)
    return int(ref)


def _trim_trailing_blank(rows: List[List[Any]]) -> List[List[Any]]:
    end = len(rows)
    while end and all(v is None or v == "" for v in rows[end - 1]):
        end -= 1
    return rows[:end]


class SheetsRecordSource:
    """Google Sheets adapter.

    The gspread client is created lazily so the API can start without
    credentials; the first call that needs the store reports the failure.
    """

    def __init__(
        self,
        spreadsheet_id: str,
        *,
        credentials_info: Optional[Dict[str, Any]] = None,
        credentials_file: Optional[Path] = None,
        timeout_seconds: float = 10.0,
        client: Optional[gspread.Client] = None,
    ) -> None:
        self.spreadsheet_id = spreadsheet_id
        self.credentials_info = credentials_info
        self.credentials_file = credentials_file
        self.timeout_seconds = timeout_seconds
        self._client = client
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._lock = threading.Lock()

    def _open(self) -> gspread.Spreadsheet:
        with self._lock:
            if self._spreadsheet is not None:
                return self._spreadsheet
            if not self.spreadsheet_id:
                raise BackingStoreUnavailable("SPREADSHEET_ID is not configured")
            try:
                if self._client is None:
                    if self.credentials_info is not None:
                        self._client = gspread.service_account_from_dict(self.credentials_info)
                    elif self.credentials_file is not None and self.credentials_file.exists():
                        self._client = gspread.service_account(filename=str(self.credentials_file))
                    else:
                        raise BackingStoreUnavailable("no Google credentials configured")
                    self._client.set_timeout(self.timeout_seconds)
                self._spreadsheet = self._client.open_by_key(self.spreadsheet_id)
            except (*SHEETS_ERRORS, ValueError) as exc:
                logger.error("failed to open spreadsheet %s: %s", self.spreadsheet_id, exc)
                raise BackingStoreUnavailable(f"cannot open spreadsheet: {exc}") from exc
            logger.info("Google Sheets client ready for %s", self.spreadsheet_id)
            return self._spreadsheet

    def _worksheet(self, sheet_name: Optional[str]) -> gspread.Worksheet:
        spreadsheet = self._open()
        if sheet_name is None:
            return spreadsheet.get_worksheet(0)
        return spreadsheet.worksheet(sheet_name)

    def fetch_rows(self, sheet_name: Optional[str], column_range: str) -> List[List[Any]]:
        try:
            values = self._worksheet(sheet_name).get(column_range)
        except BackingStoreUnavailable:
            raise
        except WorksheetNotFound as exc:
            raise BackingStoreUnavailable(f"worksheet not found: {sheet_name}") from exc
        except SHEETS_ERRORS as exc:
            logger.warning("fetch %s!%s failed: %s", sheet_name or "<first>", column_range, exc)
            raise BackingStoreUnavailable(f"fetch failed for {sheet_name or '<first>'}: {exc}") from exc
        return [list(row) for row in (values or [])]

    def write_cell(self, sheet_name: Optional[str], row_ref: str, column: str, value: str) -> None:
        row = validate_cell_target(row_ref, column)
        try:
            worksheet = self._worksheet(sheet_name)
            worksheet.update(range_name=f"{column}{row}", values=[[value]], value_input_option="RAW")
        except BackingStoreUnavailable as exc:
            raise WriteRejected(exc.message) from exc
        except SHEETS_ERRORS as exc:
            logger.warning("write %s!%s%s rejected: %s", sheet_name or "<first>", column, row, exc)
            raise WriteRejected(f"spreadsheet rejected the update: {exc}") from exc


class WorkbookRecordSource:
    """Local ``.xlsx`` adapter, used offline and in tests."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()

    def _sheet(self, wb: openpyxl.Workbook, sheet_name: Optional[str]):
        if sheet_name is None:
            return wb.worksheets[0]
        return wb[sheet_name]

    def fetch_rows(self, sheet_name: Optional[str], column_range: str) -> List[List[Any]]:
        min_col, min_row, max_col, max_row = parse_range(column_range)
        with self._lock:
            try:
                wb = openpyxl.load_workbook(self.path, data_only=True)
            except WORKBOOK_ERRORS as exc:
                raise BackingStoreUnavailable(f"cannot open workbook {self.path}: {exc}") from exc
            try:
                ws = self._sheet(wb, sheet_name)
            except (KeyError, IndexError) as exc:
                wb.close()
                raise BackingStoreUnavailable(f"worksheet not found: {sheet_name}") from exc
            rows = [
                list(row)
                for row in ws.iter_rows(
                    min_row=min_row,
                    max_row=max_row or max(ws.max_row, min_row),
                    min_col=min_col,
                    max_col=max_col,
                    values_only=True,
                )
            ]
            wb.close()
        rows = _trim_trailing_blank(rows)
        logger.debug("loaded %d rows from %s!%s", len(rows), sheet_name or "<first>", column_range)
        return rows

    def write_cell(self, sheet_name: Optional[str], row_ref: str, column: str, value: str) -> None:
        row = validate_cell_target(row_ref, column)
        with self._lock:
            try:
                wb = openpyxl.load_workbook(self.path)
                ws = self._sheet(wb, sheet_name)
                ws[f"{column}{row}"] = value
                wb.save(self.path)
            except (*WORKBOOK_ERRORS, KeyError, IndexError) as exc:
                raise WriteRejected(f"workbook rejected the update: {exc}") from exc


def build_source(settings: Settings) -> RecordSource:
    if settings.backend == "workbook":
        return WorkbookRecordSource(settings.workbook_path)  # type: ignore[arg-type]
    info = None
    if settings.credentials_json:
        try:
            info = json.loads(settings.credentials_json)
        except json.JSONDecodeError:
            logger.error("Failed to parse GOOGLE_CREDENTIALS env var")
    return SheetsRecordSource(
        settings.spreadsheet_id,
        credentials_info=info,
        credentials_file=settings.credentials_file,
        timeout_seconds=settings.request_timeout_seconds,
    )
