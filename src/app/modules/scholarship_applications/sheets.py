"""
Google Sheets Tabular Store

Each table is a worksheet of the configured spreadsheet. The Sheets client
is synchronous, so every request runs in a worker thread.

Row positions are computed by reading the occupied length of column A and
writing below it. Two writers doing this at once can pick the same range;
the submission service holds the store lock around it.
"""

import asyncio
import logging
from collections.abc import Sequence
from typing import Any

from google.auth.exceptions import GoogleAuthError
from googleapiclient.errors import HttpError

from app.modules.scholarship_applications.exceptions import PersistenceError
from app.modules.scholarship_applications.store import Row, last_column

logger = logging.getLogger(__name__)

VALUE_INPUT_OPTION = "USER_ENTERED"

_API_ERRORS = (HttpError, GoogleAuthError, OSError)


class SheetsTabularStore:
    """Tabular store backed by a Google Sheets spreadsheet."""

    def __init__(self, sheets_service: Any, spreadsheet_id: str):
        if not spreadsheet_id:
            raise ValueError("spreadsheet_id is required")
        self._values = sheets_service.spreadsheets().values()
        self.spreadsheet_id = spreadsheet_id
        self.name = f"sheets:{spreadsheet_id}"

    async def _execute(self, request: Any, action: str) -> dict:
        try:
            return await asyncio.to_thread(request.execute)
        except _API_ERRORS as e:
            logger.error(f"Google Sheets {action} failed: {e}")
            raise PersistenceError(f"Google Sheets {action} failed: {e}") from e

    async def read_column(self, table: str, column: str) -> list[str]:
        range_ = f"{table}!{column}:{column}"
        response = await self._execute(
            self._values.get(spreadsheetId=self.spreadsheet_id, range=range_),
            f"read of {range_}",
        )
        return [str(row[0]) if row else "" for row in response.get("values", [])]

    async def append(self, table: str, rows: Sequence[Row]) -> None:
        range_ = f"{table}!A:{last_column(table)}"
        await self._execute(
            self._values.append(
                spreadsheetId=self.spreadsheet_id,
                range=range_,
                valueInputOption=VALUE_INPUT_OPTION,
                body={"values": [list(row) for row in rows]},
            ),
            f"append to {range_}",
        )

    async def first_empty_row(self, table: str) -> int:
        """Position just below the last occupied cell of column A."""
        occupied = await self.read_column(table, "A")
        position = len(occupied) + 1
        logger.info(f"First empty row in {table}: {position}")
        return position

    async def append_after_last(self, table: str, rows: Sequence[Row]) -> int:
        if not rows:
            raise ValueError("append_after_last requires at least one row")

        start = await self.first_empty_row(table)
        end = start + len(rows) - 1
        range_ = f"{table}!A{start}:{last_column(table)}{end}"

        await self._execute(
            self._values.update(
                spreadsheetId=self.spreadsheet_id,
                range=range_,
                valueInputOption=VALUE_INPUT_OPTION,
                body={"values": [list(row) for row in rows]},
            ),
            f"write to {range_}",
        )
        return start
