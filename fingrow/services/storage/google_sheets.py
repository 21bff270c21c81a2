"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is offered as an optional backend because:
1. Users can view their raw data directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)

Each key is one row of a two-column worksheet: `key | value`, where value
is the full JSON text of the collection.

TRADEOFFS:
- A single cell holds at most 50,000 characters, which caps each collection
  at a few hundred items (fine for personal use)
- No transactions (whole-value overwrite only)
"""

from typing import Optional

import gspread
import structlog
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from fingrow.config import GoogleSheetsSettings, get_settings
from fingrow.services.storage.interface import (
    ConnectionError,
    StorageBackend,
    StorageError,
)


STORE_COLUMNS = ["key", "value"]

logger = structlog.get_logger(__name__)


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = settings or get_settings().google_sheets

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise ConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise ConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def get_store_sheet(self) -> gspread.Worksheet:
        """Get or create the key/value worksheet."""
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(self._settings.store_sheet_name)
        except gspread.WorksheetNotFound:
            # Create the sheet with headers
            sheet = spreadsheet.add_worksheet(
                title=self._settings.store_sheet_name,
                rows=100,
                cols=len(STORE_COLUMNS),
            )
            sheet.append_row(STORE_COLUMNS)
        return sheet


class GoogleSheetsBackend(StorageBackend):
    """
    Google Sheets implementation of the key/value backend.
    """

    name = "google_sheets"

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    @staticmethod
    def _find_row(sheet: gspread.Worksheet, key: str) -> Optional[int]:
        """1-based row index holding `key`, skipping the header."""
        for idx, value in enumerate(sheet.col_values(1)[1:], start=2):
            if value == key:
                return idx
        return None

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def read(self, key: str) -> Optional[str]:
        """Read the JSON text stored under a key."""
        try:
            sheet = self._client.get_store_sheet()
            row = self._find_row(sheet, key)
            if row is None:
                return None
            value = sheet.cell(row, 2).value
            return value or None
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to read '{key}': {e}")

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def write(self, key: str, text: str) -> None:
        """Replace the JSON text stored under a key."""
        try:
            sheet = self._client.get_store_sheet()
            row = self._find_row(sheet, key)
            # RAW keeps the JSON from being interpreted as a formula
            if row is None:
                sheet.append_row([key, text], value_input_option="RAW")
            else:
                sheet.update(
                    range_name=f"B{row}",
                    values=[[text]],
                    value_input_option="RAW",
                )
        except StorageError:
            raise
        except Exception as e:
            logger.warning("sheets_write_failed", key=key, error=str(e))
            raise StorageError(f"Failed to write '{key}': {e}")
