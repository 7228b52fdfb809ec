from datetime import datetime
from unittest.mock import MagicMock

import openpyxl
import pytest
import requests
from gspread.exceptions import GSpreadException, WorksheetNotFound

from core.config import load_settings
from core.errors import BackingStoreUnavailable, WriteRejected
from core.sources import (
    SheetsRecordSource,
    WorkbookRecordSource,
    build_source,
    parse_range,
)


@pytest.fixture
def workbook_path(tmp_path):
    path = tmp_path / "dashboard.xlsx"
    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = "Sheet1"
    ws.append(["Rute", "ID1", "ID2", "Tanggal", "Contract", "Customer", "Due", "Amt", "Ke", "LOB", "Reason"])
    ws.append(["R1", "ID-1", "CX-1", datetime(2025, 3, 1), "K1", "Budi", datetime(2025, 3, 5), 150000, 1, "MOTOR", None])
    ws.append(["R2", "ID-2", "CX-2", "02/03/2025", "K2", "Ani", "06/03/2025", 90000, 2, "MOBIL", "paid"])
    ba = wb.create_sheet("BA")
    ba.append(["", "ID1", "ID2", "Beban", "Cabang", "Contract", "Nama", "Alamat", "JT", "Amt", "Ke", "LOB", "Reason"])
    wb.save(path)
    return path


def test_parse_range():
    assert parse_range("A2:K") == (1, 2, 11, None)
    assert parse_range("b2:m40") == (2, 2, 13, 40)
    with pytest.raises(ValueError):
        parse_range("Sheet1")


def test_workbook_fetch_returns_native_values(workbook_path):
    rows = WorkbookRecordSource(workbook_path).fetch_rows(None, "A2:K")
    assert len(rows) == 2
    assert rows[0][3] == datetime(2025, 3, 1)
    assert rows[1][10] == "paid"


def test_workbook_empty_range_returns_no_rows(workbook_path):
    assert WorkbookRecordSource(workbook_path).fetch_rows("BA", "B2:M") == []


def test_workbook_missing_sheet_is_unavailable(workbook_path):
    with pytest.raises(BackingStoreUnavailable):
        WorkbookRecordSource(workbook_path).fetch_rows("Nope", "A2:K")


def test_workbook_missing_file_is_unavailable(tmp_path):
    with pytest.raises(BackingStoreUnavailable):
        WorkbookRecordSource(tmp_path / "missing.xlsx").fetch_rows(None, "A2:K")


def test_workbook_write_cell(workbook_path):
    src = WorkbookRecordSource(workbook_path)
    src.write_cell(None, "3", "K", "called twice")
    assert src.fetch_rows(None, "A2:K")[1][10] == "called twice"


@pytest.mark.parametrize("row_ref", ["1", "0", "abc", "-4", ""])
def test_invalid_row_ref_is_rejected(workbook_path, row_ref):
    with pytest.raises(WriteRejected) as info:
        WorkbookRecordSource(workbook_path).write_cell(None, row_ref, "K", "x")
    assert info.value.status_code == 400


def make_sheets_source():
    client = MagicMock()
    spreadsheet = client.open_by_key.return_value
    source = SheetsRecordSource("sheet-id", client=client)
    return source, client, spreadsheet


def test_sheets_fetch_uses_first_worksheet_for_default():
    source, client, spreadsheet = make_sheets_source()
    spreadsheet.get_worksheet.return_value.get.return_value = [["R1", "ID-1"], ["R2"]]

    rows = source.fetch_rows(None, "A2:K")

    assert rows == [["R1", "ID-1"], ["R2"]]
    client.open_by_key.assert_called_once_with("sheet-id")
    spreadsheet.get_worksheet.assert_called_once_with(0)
    spreadsheet.get_worksheet.return_value.get.assert_called_once_with("A2:K")


def test_sheets_fetch_empty_range():
    source, _, spreadsheet = make_sheets_source()
    spreadsheet.worksheet.return_value.get.return_value = []
    assert source.fetch_rows("BA", "B2:M") == []
    spreadsheet.worksheet.assert_called_once_with("BA")


def test_sheets_fetch_network_error_is_unavailable():
    source, _, spreadsheet = make_sheets_source()
    spreadsheet.worksheet.return_value.get.side_effect = requests.ConnectionError("down")
    with pytest.raises(BackingStoreUnavailable):
        source.fetch_rows("BA", "B2:M")


def test_sheets_missing_worksheet_is_unavailable():
    source, _, spreadsheet = make_sheets_source()
    spreadsheet.worksheet.side_effect = WorksheetNotFound("BA")
    with pytest.raises(BackingStoreUnavailable):
        source.fetch_rows("BA", "B2:M")


def test_sheets_write_cell_sends_raw_value():
    source, _, spreadsheet = make_sheets_source()
    source.write_cell("BA", "7", "M", "=not a formula")
    spreadsheet.worksheet.return_value.update.assert_called_once_with(
        range_name="M7", values=[["=not a formula"]], value_input_option="RAW"
    )


def test_sheets_write_failure_is_rejected():
    source, _, spreadsheet = make_sheets_source()
    spreadsheet.worksheet.return_value.update.side_effect = requests.Timeout("slow")
    with pytest.raises(WriteRejected):
        source.write_cell("BA", "7", "M", "x")


def test_sheets_without_credentials_is_unavailable(tmp_path):
    source = SheetsRecordSource("sheet-id", credentials_file=tmp_path / "missing.json")
    with pytest.raises(BackingStoreUnavailable):
        source.fetch_rows(None, "A2:K")


def test_sheets_without_spreadsheet_id_is_unavailable():
    source = SheetsRecordSource("", client=MagicMock())
    with pytest.raises(BackingStoreUnavailable):
        source.fetch_rows(None, "A2:K")


def test_build_source_picks_backend(tmp_path):
    wb = build_source(load_settings({"DASHBOARD_BACKEND": "workbook", "WORKBOOK_PATH": str(tmp_path / "x.xlsx")}))
    assert isinstance(wb, WorkbookRecordSource)

    sheets = build_source(load_settings({"SPREADSHEET_ID": "abc", "REQUEST_TIMEOUT_SECONDS": "4"}))
    assert isinstance(sheets, SheetsRecordSource)
    assert sheets.timeout_seconds == 4.0


@pytest.fixture
def corrupt_workbook(tmp_path):
    path = tmp_path / "data.xlsx"
    path.write_text("not a workbook")
    return path


def test_corrupt_workbook_fetch_is_unavailable(corrupt_workbook):
    with pytest.raises(BackingStoreUnavailable):
        WorkbookRecordSource(corrupt_workbook).fetch_rows(None, "A2:K")


def test_corrupt_workbook_write_is_rejected(corrupt_workbook):
    with pytest.raises(WriteRejected):
        WorkbookRecordSource(corrupt_workbook).write_cell(None, "2", "K", "x")


def test_unsupported_extension_is_unavailable(tmp_path):
    path = tmp_path / "data.csv"
    path.write_text("a,b\n")
    with pytest.raises(BackingStoreUnavailable):
        WorkbookRecordSource(path).fetch_rows(None, "A2:K")


def test_sheets_generic_gspread_error_maps_to_contract():
    source, _, spreadsheet = make_sheets_source()
    spreadsheet.worksheet.return_value.get.side_effect = GSpreadException("quota")
    spreadsheet.worksheet.return_value.update.side_effect = GSpreadException("quota")

    with pytest.raises(BackingStoreUnavailable):
        source.fetch_rows("BA", "B2:M")
    with pytest.raises(WriteRejected):
        source.write_cell("BA", "7", "M", "x")
