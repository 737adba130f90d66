"""
Scholarship Applications Shared Helpers

Timestamp and row helpers shared by the submission service and jobs.
"""

import json
from collections.abc import Mapping
from datetime import datetime
from zoneinfo import ZoneInfo

from app.modules.scholarship_applications.archiver import ArchivedDocument
from app.modules.scholarship_applications.rows import DATE_FORMAT, TIME_FORMAT
from app.modules.scholarship_applications.store import Cell

STATUS_SUCCESS = "Éxito"
STATUS_ERROR = "Error"


def current_datetime(timezone: str) -> datetime:
    """Current time in the given IANA timezone."""
    return datetime.now(ZoneInfo(timezone))


def format_timestamp(timestamp: datetime) -> str:
    """Format as `YYYY-MM-DD HH:MM:SS` (date and time as written to rows)."""
    return f"{timestamp.strftime(DATE_FORMAT)} {timestamp.strftime(TIME_FORMAT)}"


def raw_payload_snapshot(fields: Mapping[str, str]) -> str:
    """JSON snapshot of the submitted (non-file) form fields."""
    return json.dumps(dict(fields), ensure_ascii=False)


def build_log_row(timestamp: datetime, status: str, error: str, snapshot: str) -> list[Cell]:
    """Row for the logs table: timestamp, status, error (or empty), payload."""
    return [format_timestamp(timestamp), status, error, snapshot]


def build_file_row(document: ArchivedDocument) -> list[Cell]:
    """Row for the files table: display name, storage id, view link."""
    return [document.display_name, document.storage_id, document.view_link]
