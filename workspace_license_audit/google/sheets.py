"""
Google Sheets report sink.
Creates a new spreadsheet per run and appends rows in bulk.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Sequence
from urllib.parse import quote

from ..config import SHEETS_BASE_URL
from .client import GoogleAPIClient, GoogleAPIError

logger = logging.getLogger("workspace_license_audit.google.sheets")


@dataclass
class SpreadsheetHandle:
    spreadsheet_id: str
    url: str
    sheet_title: str = "Sheet1"

    @property
    def append_range(self) -> str:
        escaped = self.sheet_title.replace("'", "''")
        return f"'{escaped}'!A1"


class SheetsSink:
    """TabularSink backed by the Sheets v4 REST API."""

    def __init__(self, client: GoogleAPIClient):
        self.client = client

    async def create(self, title: str) -> SpreadsheetHandle:
        data = await self.client.post(
            f"{SHEETS_BASE_URL}/spreadsheets",
            json_body={"properties": {"title": title}},
        )
        spreadsheet_id = data.get("spreadsheetId")
        if not spreadsheet_id:
            raise GoogleAPIError(0, "Spreadsheet creation returned no id", SHEETS_BASE_URL)

        sheets = data.get("sheets") or [{}]
        sheet_title = sheets[0].get("properties", {}).get("title", "Sheet1")
        url = data.get(
            "spreadsheetUrl",
            f"https://docs.google.com/spreadsheets/d/{spreadsheet_id}/edit",
        )
        logger.debug(f"Created spreadsheet {spreadsheet_id} ({title})")
        return SpreadsheetHandle(spreadsheet_id=spreadsheet_id, url=url, sheet_title=sheet_title)

    async def append_header(self, handle: SpreadsheetHandle, columns: Sequence[str]) -> None:
        await self._append(handle, [list(columns)])

    async def write_rows(self, handle: SpreadsheetHandle, rows: Sequence[Sequence[Any]]) -> None:
        if rows:
            await self._append(handle, [list(r) for r in rows])

    def locator_of(self, handle: SpreadsheetHandle) -> str:
        return handle.url

    async def _append(self, handle: SpreadsheetHandle, values: list[list[Any]]) -> None:
        url = (
            f"{SHEETS_BASE_URL}/spreadsheets/{handle.spreadsheet_id}"
            f"/values/{quote(handle.append_range, safe='')}:append"
        )
        await self.client.post(
            url,
            json_body={"values": values},
            params={"valueInputOption": "RAW", "insertDataOption": "INSERT_ROWS"},
        )
