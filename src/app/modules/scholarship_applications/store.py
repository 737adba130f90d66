"""
Tabular Store

Interface for the spreadsheet-like backing store and an in-memory
implementation. Tables are addressed by name, columns by spreadsheet
letter (A, B, ... Y) and rows by 1-based position.

Implementations:
- `InMemoryTabularStore` (this module) - development and tests
- `SheetsTabularStore` (sheets.py) - Google Sheets
- `DatabaseTabularStore` (repository.py) - SQL via SQLAlchemy
"""

from collections.abc import Sequence
from typing import Protocol, runtime_checkable

# Table names
APPLICATIONS = "formulario"
LOGS = "logs"
FILES = "files"

# Number of columns written to each table
TABLE_WIDTHS = {
    APPLICATIONS: 25,  # A:Y
    LOGS: 4,  # A:D
    FILES: 3,  # A:C
}

Cell = str | int
Row = Sequence[Cell]


def column_index(letter: str) -> int:
    """Convert a column letter to a 0-based index: A -> 0, Y -> 24, AA -> 26."""
    index = 0
    for char in letter.upper():
        if not "A" <= char <= "Z":
            raise ValueError(f"Invalid column letter: {letter!r}")
        index = index * 26 + (ord(char) - ord("A") + 1)
    return index - 1


def column_letter(index: int) -> str:
    """Convert a 0-based index to a column letter: 0 -> A, 24 -> Y."""
    if index < 0:
        raise ValueError(f"Invalid column index: {index}")
    letters = ""
    index += 1
    while index:
        index, remainder = divmod(index - 1, 26)
        letters = chr(ord("A") + remainder) + letters
    return letters


def last_column(table: str) -> str:
    """Letter of the last column written to `table`."""
    return column_letter(TABLE_WIDTHS[table] - 1)


@runtime_checkable
class TabularStore(Protocol):
    """
    Append-only tabular store.

    `append_after_last` is the only operation that assigns row positions.
    Backends that can do so should make it atomic with respect to other
    writers; those that cannot rely on the caller's store lock.
    """

    name: str

    async def read_column(self, table: str, column: str) -> list[str]:
        """Return every value in a column, top to bottom, as strings."""
        ...

    async def append(self, table: str, rows: Sequence[Row]) -> None:
        """Append rows after the last non-empty row."""
        ...

    async def append_after_last(self, table: str, rows: Sequence[Row]) -> int:
        """Write rows at the first free position and return that position."""
        ...


class InMemoryTabularStore:
    """Tabular store kept in process memory."""

    def __init__(self, name: str = "memory"):
        self.name = name
        self._tables: dict[str, list[list[Cell]]] = {table: [] for table in TABLE_WIDTHS}

    def rows(self, table: str) -> list[list[Cell]]:
        """Copy of the rows currently stored in `table`."""
        return [list(row) for row in self._tables.get(table, [])]

    async def read_column(self, table: str, column: str) -> list[str]:
        index = column_index(column)
        values = []
        for row in self._tables.get(table, []):
            value = row[index] if index < len(row) else ""
            values.append("" if value is None else str(value))
        return values

    async def append(self, table: str, rows: Sequence[Row]) -> None:
        self._tables.setdefault(table, []).extend(list(row) for row in rows)

    async def append_after_last(self, table: str, rows: Sequence[Row]) -> int:
        stored = self._tables.setdefault(table, [])
        start_position = len(stored) + 1
        stored.extend(list(row) for row in rows)
        return start_position
