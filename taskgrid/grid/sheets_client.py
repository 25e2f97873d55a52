"""Google Sheets implementation of the grid store

Wraps the Sheets v4 API (google-api-python-client) behind the GridStore
contract. Every call is synchronous; HTTP and credential failures surface as
StoreUnavailableError and are never retried here.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from google.auth.exceptions import GoogleAuthError
from google.oauth2 import service_account
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from taskgrid.config import (
    CREDENTIALS_FILE,
    LAST_GRID_COLUMN,
    SHEETS_SCOPES,
    SPREADSHEET_ID,
)
from taskgrid.errors import NotFoundError, StoreUnavailableError
from taskgrid.grid.store import SheetInfo, a1_range, cell_ref, column_letter, find_sheet
from taskgrid.observability.logging import get_logger
from taskgrid.observability.telemetry import counter, log_event
from taskgrid.tasks.cell import CellContent, TextRun
from taskgrid.tasks.codec import Color

logger = get_logger(__name__)

GRID_FIELDS = (
    "sheets(data(rowData(values(userEnteredValue,textFormatRuns,"
    "userEnteredFormat(textFormat(foregroundColor))))))"
)


def _color_from_format(text_format: dict[str, Any] | None) -> Color | None:
    if not text_format:
        return None
    if "foregroundColor" in text_format:
        return Color.from_api(text_format["foregroundColor"])
    style = text_format.get("foregroundColorStyle") or {}
    if "rgbColor" in style:
        return Color.from_api(style["rgbColor"])
    return None


def cell_from_api(payload: dict[str, Any] | None) -> CellContent:
    """Convert an API CellData dict into CellContent."""
    if not payload:
        return CellContent()

    value = payload.get("userEnteredValue") or {}
    text = value.get("stringValue")

    runs = tuple(
        TextRun(int(run.get("startIndex", 0)), _color_from_format(run.get("format")))
        for run in payload.get("textFormatRuns") or []
    )

    cell_format = payload.get("userEnteredFormat") or {}
    default_color = _color_from_format(cell_format.get("textFormat"))

    return CellContent(text=text, runs=runs, default_color=default_color)


def runs_to_api(runs: Sequence[TextRun]) -> list[dict[str, Any]]:
    payload = []
    for run in runs:
        fmt: dict[str, Any] = {}
        if run.color is not None:
            fmt["foregroundColor"] = run.color.to_api()
        payload.append({"startIndex": run.start_index, "format": fmt})
    return payload


class GoogleSheetsStore:
    """
    Grid store backed by one Google Sheets spreadsheet.

    The API service is built lazily from a service-account key file unless one
    is injected (tests pass a Mock).
    """

    def __init__(
        self,
        spreadsheet_id: str = SPREADSHEET_ID,
        credentials_file: str = CREDENTIALS_FILE,
        service: Any | None = None,
    ):
        """
        Args:
            spreadsheet_id: Target spreadsheet
            credentials_file: Service-account JSON key path
            service: Pre-built Sheets API service (optional)
        """
        self.spreadsheet_id = spreadsheet_id
        self.credentials_file = credentials_file
        self._service = service

    @property
    def service(self) -> Any:
        """
        Get or build the Sheets API service

        Raises:
            StoreUnavailableError: If the credentials cannot be loaded
        """
        if self._service is None:
            try:
                credentials = service_account.Credentials.from_service_account_file(
                    self.credentials_file, scopes=SHEETS_SCOPES
                )
            except (OSError, ValueError) as e:
                logger.error(
                    "Unable to load Sheets credentials from %s: %s", self.credentials_file, e
                )
                raise StoreUnavailableError(f"Unable to load Sheets credentials: {e}") from e
            self._service = build("sheets", "v4", credentials=credentials, cache_discovery=False)
        return self._service

    def _execute(self, request: Any, operation: str) -> dict[str, Any]:
        try:
            response = request.execute()
        except HttpError as e:
            status = getattr(e.resp, "status", None)
            logger.error("Sheets API error during %s: %s", operation, e)
            log_event("sheets.error", operation=operation, status=status)
            counter("sheets.errors")
            raise StoreUnavailableError(f"Sheets API error during {operation}", status) from e
        except GoogleAuthError as e:
            logger.error("Sheets credentials rejected during %s: %s", operation, e)
            log_event("sheets.error", operation=operation, error=str(e))
            counter("sheets.errors")
            raise StoreUnavailableError(f"Sheets authentication failed during {operation}") from e
        except OSError as e:
            logger.error("Sheets API unreachable during %s: %s", operation, e)
            log_event("sheets.error", operation=operation, error=str(e))
            counter("sheets.errors")
            raise StoreUnavailableError(f"Sheets API unreachable during {operation}") from e
        counter(f"sheets.{operation}")
        return response or {}

    def _get_values(self, range_a1: str, operation: str) -> list[list[Any]]:
        request = (
            self.service.spreadsheets()
            .values()
            .get(spreadsheetId=self.spreadsheet_id, range=range_a1)
        )
        return self._execute(request, operation).get("values", [])

    def _update_values(self, range_a1: str, values: list[list[Any]], operation: str) -> None:
        request = (
            self.service.spreadsheets()
            .values()
            .update(
                spreadsheetId=self.spreadsheet_id,
                range=range_a1,
                valueInputOption="RAW",
                body={"values": values},
            )
        )
        self._execute(request, operation)

    def _batch_update(self, requests: list[dict[str, Any]], operation: str) -> None:
        request = self.service.spreadsheets().batchUpdate(
            spreadsheetId=self.spreadsheet_id, body={"requests": requests}
        )
        self._execute(request, operation)

    def _grid_rows(self, range_a1: str, operation: str) -> list[list[CellContent]]:
        request = self.service.spreadsheets().get(
            spreadsheetId=self.spreadsheet_id,
            ranges=[range_a1],
            includeGridData=True,
            fields=GRID_FIELDS,
        )
        response = self._execute(request, operation)
        sheets = response.get("sheets") or []
        if not sheets or not sheets[0].get("data"):
            return []
        row_data = sheets[0]["data"][0].get("rowData") or []
        return [[cell_from_api(cell) for cell in row.get("values") or []] for row in row_data]

    def _sheet_info(self, sheet: str) -> SheetInfo:
        info = find_sheet(self.list_sheets(), sheet)
        if info is None:
            raise NotFoundError(f"sheet '{sheet}' not found")
        return info

    # ------------------------------------------------------------------
    # GridStore contract
    # ------------------------------------------------------------------

    def list_sheets(self) -> list[SheetInfo]:
        request = self.service.spreadsheets().get(
            spreadsheetId=self.spreadsheet_id,
            fields="sheets(properties(sheetId,title,gridProperties))",
        )
        response = self._execute(request, "list_sheets")
        sheets = []
        for sheet in response.get("sheets", []):
            props = sheet.get("properties", {})
            grid = props.get("gridProperties", {})
            sheets.append(
                SheetInfo(
                    title=props.get("title", ""),
                    sheet_id=int(props.get("sheetId", 0)),
                    column_count=int(grid.get("columnCount", 26)),
                    row_count=int(grid.get("rowCount", 1000)),
                )
            )
        return sheets

    def read_header(self, sheet: str) -> list[str]:
        values = self._get_values(a1_range(sheet, "1:1"), "read_header")
        return [str(value) for value in values[0]] if values else []

    def read_column(self, sheet: str, column: int) -> list[str]:
        letter = column_letter(column)
        values = self._get_values(a1_range(sheet, f"{letter}:{letter}"), "read_column")
        return [str(row[0]) if row else "" for row in values]

    def read_values(self, sheet: str, width: int) -> list[list[str]]:
        values = self._get_values(a1_range(sheet, f"A:{column_letter(width - 1)}"), "read_values")
        return [[str(value) for value in row] for row in values]

    def read_cell(self, sheet: str, row: int, column: int) -> CellContent:
        rows = self._grid_rows(a1_range(sheet, cell_ref(row, column)), "read_cell")
        if not rows or not rows[0]:
            return CellContent()
        return rows[0][0]

    def read_rows(
        self, sheet: str, first_row: int = 0, last_row: int | None = None
    ) -> list[list[CellContent]]:
        if last_row is None:
            ref = f"A{first_row + 1}:{LAST_GRID_COLUMN}"
        else:
            ref = f"A{first_row + 1}:{LAST_GRID_COLUMN}{last_row + 1}"
        return self._grid_rows(a1_range(sheet, ref), "read_rows")

    def write_cell(
        self, sheet: str, row: int, column: int, text: str, runs: Sequence[TextRun]
    ) -> None:
        info = self._sheet_info(sheet)
        self._batch_update(
            [
                {
                    "updateCells": {
                        "range": {
                            "sheetId": info.sheet_id,
                            "startRowIndex": row,
                            "endRowIndex": row + 1,
                            "startColumnIndex": column,
                            "endColumnIndex": column + 1,
                        },
                        "rows": [
                            {
                                "values": [
                                    {
                                        "userEnteredValue": {"stringValue": text},
                                        "textFormatRuns": runs_to_api(runs),
                                    }
                                ]
                            }
                        ],
                        "fields": "userEnteredValue,textFormatRuns",
                    }
                }
            ],
            "write_cell",
        )

    def append_row(self, sheet: str, values: Sequence[str]) -> None:
        request = (
            self.service.spreadsheets()
            .values()
            .append(
                spreadsheetId=self.spreadsheet_id,
                range=a1_range(sheet, "A:A"),
                valueInputOption="RAW",
                body={"values": [list(values)]},
            )
        )
        self._execute(request, "append_row")

    def expand_columns(self, sheet: str, count: int) -> None:
        info = self._sheet_info(sheet)
        self._batch_update(
            [
                {
                    "appendDimension": {
                        "sheetId": info.sheet_id,
                        "dimension": "COLUMNS",
                        "length": count,
                    }
                }
            ],
            "expand_columns",
        )

    def write_header(self, sheet: str, column: int, label: str) -> None:
        self._update_values(a1_range(sheet, cell_ref(0, column)), [[label]], "write_header")

    def update_values(self, sheet: str, row: int, column: int, values: Sequence[str]) -> None:
        start = cell_ref(row, column)
        end = cell_ref(row, column + len(values) - 1)
        self._update_values(a1_range(sheet, f"{start}:{end}"), [list(values)], "update_values")


def get_sheets_store(spreadsheet_id: str = SPREADSHEET_ID) -> GoogleSheetsStore:
    """Convenience constructor using configured credentials."""
    return GoogleSheetsStore(spreadsheet_id)
