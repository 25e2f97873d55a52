"""
Tests for the Google Sheets grid store with a mocked API service.
"""

from unittest.mock import MagicMock, Mock

import httplib2
import pytest
from google.auth.exceptions import RefreshError
from googleapiclient.errors import HttpError

from taskgrid.errors import NotFoundError, StoreUnavailableError
from taskgrid.grid.sheets_client import GoogleSheetsStore, cell_from_api, runs_to_api
from taskgrid.observability.telemetry import get_counter
from taskgrid.tasks.cell import TextRun
from taskgrid.tasks.codec import COMPLETE_COLOR, Color

SHEETS_METADATA = {
    "sheets": [
        {
            "properties": {
                "sheetId": 0,
                "title": "DEV",
                "gridProperties": {"rowCount": 1000, "columnCount": 3},
            }
        },
        {"properties": {"sheetId": 7, "title": "Managers", "gridProperties": {}}},
    ]
}


@pytest.fixture
def service():
    return MagicMock()


@pytest.fixture
def store(service):
    return GoogleSheetsStore(spreadsheet_id="sheet-123", service=service)


def http_error(status):
    return HttpError(httplib2.Response({"status": status}), b'{"error": "boom"}')


class TestCellConversion:
    def test_runs_and_text(self):
        cell = cell_from_api(
            {
                "userEnteredValue": {"stringValue": "Fix bug\nWrite docs"},
                "textFormatRuns": [
                    {"format": {"foregroundColor": {"red": 0.2, "green": 0.66, "blue": 0.33}}},
                    {"startIndex": 8, "format": {}},
                ],
            }
        )
        assert cell.text == "Fix bug\nWrite docs"
        assert cell.runs == (TextRun(0, Color(0.2, 0.66, 0.33)), TextRun(8, None))
        assert cell.default_color is None

    def test_color_style_and_cell_default(self):
        cell = cell_from_api(
            {
                "userEnteredValue": {"stringValue": "a"},
                "userEnteredFormat": {
                    "textFormat": {"foregroundColorStyle": {"rgbColor": {"green": 1}}}
                },
            }
        )
        assert cell.runs == ()
        assert cell.default_color == Color(0.0, 1.0, 0.0)

    def test_empty_payload(self):
        assert cell_from_api(None).is_blank
        assert cell_from_api({}).is_blank

    def test_runs_to_api(self):
        assert runs_to_api([TextRun(0, COMPLETE_COLOR), TextRun(4, None)]) == [
            {"startIndex": 0, "format": {"foregroundColor": COMPLETE_COLOR.to_api()}},
            {"startIndex": 4, "format": {}},
        ]


class TestReads:
    def test_list_sheets(self, store, service):
        service.spreadsheets().get().execute.return_value = SHEETS_METADATA

        sheets = store.list_sheets()

        assert [(s.title, s.sheet_id, s.column_count) for s in sheets] == [
            ("DEV", 0, 3),
            ("Managers", 7, 26),
        ]

    def test_read_header_quotes_sheet(self, store, service):
        values = service.spreadsheets().values()
        values.get().execute.return_value = {"values": [["Name", "Mon 01-Jan"]]}

        assert store.read_header("Team's") == ["Name", "Mon 01-Jan"]
        values.get.assert_called_with(spreadsheetId="sheet-123", range="'Team''s'!1:1")

    def test_read_column_pads_blank_rows(self, store, service):
        values = service.spreadsheets().values()
        values.get().execute.return_value = {"values": [["Name"], [], ["Bob"]]}
        assert store.read_column("DEV", 0) == ["Name", "", "Bob"]

    def test_read_empty_header(self, store, service):
        service.spreadsheets().values().get().execute.return_value = {}
        assert store.read_header("DEV") == []

    def test_read_cell_uses_grid_data(self, store, service):
        service.spreadsheets().get().execute.return_value = {
            "sheets": [
                {
                    "data": [
                        {"rowData": [{"values": [{"userEnteredValue": {"stringValue": "x"}}]}]}
                    ]
                }
            ]
        }
        assert store.read_cell("DEV", 4, 2).text == "x"
        kwargs = service.spreadsheets().get.call_args.kwargs
        assert kwargs["ranges"] == ["'DEV'!C5"]
        assert kwargs["includeGridData"] is True

    def test_read_cell_empty(self, store, service):
        service.spreadsheets().get().execute.return_value = {"sheets": [{"data": [{}]}]}
        assert store.read_cell("DEV", 0, 0).is_blank


class TestWrites:
    def test_write_cell_single_batch_request(self, store, service):
        service.spreadsheets().get().execute.return_value = SHEETS_METADATA

        store.write_cell("dev", 2, 1, "a\nb", [TextRun(0, COMPLETE_COLOR), TextRun(2, None)])

        body = service.spreadsheets().batchUpdate.call_args.kwargs["body"]
        assert len(body["requests"]) == 1
        update = body["requests"][0]["updateCells"]
        assert update["range"] == {
            "sheetId": 0,
            "startRowIndex": 2,
            "endRowIndex": 3,
            "startColumnIndex": 1,
            "endColumnIndex": 2,
        }
        cell = update["rows"][0]["values"][0]
        assert cell["userEnteredValue"] == {"stringValue": "a\nb"}
        assert cell["textFormatRuns"][1] == {"startIndex": 2, "format": {}}

    def test_expand_columns(self, store, service):
        service.spreadsheets().get().execute.return_value = SHEETS_METADATA
        store.expand_columns("Managers", 1)
        body = service.spreadsheets().batchUpdate.call_args.kwargs["body"]
        assert body["requests"] == [
            {"appendDimension": {"sheetId": 7, "dimension": "COLUMNS", "length": 1}}
        ]

    def test_write_to_missing_sheet(self, store, service):
        service.spreadsheets().get().execute.return_value = SHEETS_METADATA
        with pytest.raises(NotFoundError):
            store.write_cell("QA", 0, 0, "x", [])

    def test_append_row(self, store, service):
        store.append_row("DEV", ["Dana"])
        kwargs = service.spreadsheets().values().append.call_args.kwargs
        assert kwargs["range"] == "'DEV'!A:A"
        assert kwargs["valueInputOption"] == "RAW"
        assert kwargs["body"] == {"values": [["Dana"]]}

    def test_update_values_range(self, store, service):
        store.update_values("database", 3, 1, ["E-1", "Apollo"])
        kwargs = service.spreadsheets().values().update.call_args.kwargs
        assert kwargs["range"] == "'database'!B4:C4"
        assert kwargs["body"] == {"values": [["E-1", "Apollo"]]}

    def test_write_header(self, store, service):
        store.write_header("DEV", 2, "Tue 02-Jan")
        kwargs = service.spreadsheets().values().update.call_args.kwargs
        assert kwargs["range"] == "'DEV'!C1"


class TestErrors:
    def test_http_error_is_unavailable(self, store, service):
        service.spreadsheets().values().get().execute.side_effect = http_error(503)

        with pytest.raises(StoreUnavailableError) as exc_info:
            store.read_header("DEV")
        assert exc_info.value.status_code == 503

    def test_network_error_is_unavailable(self, store, service):
        service.spreadsheets().values().get().execute.side_effect = TimeoutError("timed out")
        with pytest.raises(StoreUnavailableError):
            store.read_column("DEV", 0)

    def test_token_refresh_failure_is_unavailable(self, store, service):
        service.spreadsheets().values().get().execute.side_effect = RefreshError("invalid_grant")
        with pytest.raises(StoreUnavailableError, match="authentication"):
            store.read_header("DEV")
        assert get_counter("sheets.errors") == 1

    def test_missing_credentials(self, tmp_path):
        store = GoogleSheetsStore("sheet-123", credentials_file=str(tmp_path / "missing.json"))
        with pytest.raises(StoreUnavailableError, match="credentials"):
            store.list_sheets()


def test_injected_service_is_not_rebuilt():
    service = Mock()
    assert GoogleSheetsStore("sheet-123", service=service).service is service
