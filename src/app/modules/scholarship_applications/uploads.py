"""
Uploaded File Staging

Multipart file parts are copied to the upload directory before they are
archived. A staged file is removed once it has been archived, or at the end
of the request if it was never attempted. Files whose remote upload failed
are left for manual recovery and purged later by a background job.
"""

import asyncio
import logging
import os
import secrets
import shutil
import time
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import Path

from starlette.datastructures import UploadFile

from app.modules.scholarship_applications.exceptions import ValidationError

logger = logging.getLogger(__name__)

# Multipart part names that may carry a document
DOCUMENT_FIELDS = ("parentDocument", "document0", "document1")

ALLOWED_CONTENT_TYPES = frozenset({"application/pdf", "image/jpeg", "image/png"})

DEFAULT_CONTENT_TYPE = "application/octet-stream"


@dataclass(frozen=True)
class StagedUpload:
    """A multipart file copied to local disk."""

    field_name: str
    path: Path
    filename: str
    content_type: str
    size: int


def ensure_upload_dir(upload_dir: Path) -> Path:
    """Create the upload directory if needed and check it is writable."""
    upload_dir.mkdir(parents=True, exist_ok=True, mode=0o755)
    if not os.access(upload_dir, os.W_OK):
        raise PermissionError(f"Upload directory {upload_dir} is not writable")
    return upload_dir


def _unique_filename(client_name: str) -> str:
    # Keep only the base name; browsers may send full client paths
    safe_name = Path(client_name.replace("\\", "/")).name or "archivo"
    return f"{int(time.time() * 1000)}-{secrets.token_hex(4)}-{safe_name}"


async def stage_upload(field_name: str, upload: UploadFile, upload_dir: Path) -> StagedUpload:
    """Copy one multipart file to the upload directory."""
    ensure_upload_dir(upload_dir)
    filename = upload.filename or field_name
    path = upload_dir / _unique_filename(filename)

    await upload.seek(0)

    def _copy() -> int:
        with path.open("wb") as out:
            shutil.copyfileobj(upload.file, out)
        return path.stat().st_size

    size = await asyncio.to_thread(_copy)
    logger.debug(f"Staged {field_name} at {path} ({size} bytes)")

    return StagedUpload(
        field_name=field_name,
        path=path,
        filename=filename,
        content_type=upload.content_type or DEFAULT_CONTENT_TYPE,
        size=size,
    )


async def stage_files(
    files: Mapping[str, UploadFile],
    upload_dir: Path,
) -> dict[str, StagedUpload]:
    """
    Stage every document part present in `files`.

    Unknown part names are ignored. If staging fails part-way, the files
    staged so far are removed before the error propagates.
    """
    staged: dict[str, StagedUpload] = {}
    try:
        for field_name in DOCUMENT_FIELDS:
            upload = files.get(field_name)
            if upload is None:
                continue
            staged[field_name] = await stage_upload(field_name, upload, upload_dir)
    except Exception:
        for item in staged.values():
            discard(item)
        raise
    return staged


def validate_document(upload: StagedUpload, max_bytes: int) -> None:
    """
    Check a staged document's type and size.

    Raises:
        ValidationError: If the file type is not allowed or it is too large.
    """
    if upload.content_type not in ALLOWED_CONTENT_TYPES:
        raise ValidationError(f"Formato no soportado para {upload.filename}")
    if upload.size > max_bytes:
        raise ValidationError(f"El archivo {upload.filename} es muy grande")


def discard(upload: StagedUpload) -> bool:
    """
    Delete a staged file if it still exists.

    Returns:
        False if the file could not be deleted (the error is logged)
    """
    try:
        upload.path.unlink(missing_ok=True)
        return True
    except OSError as e:
        logger.error(f"Failed to delete temporary file {upload.path}: {e}")
        return False


def purge_stale_files(upload_dir: Path, max_age: timedelta) -> list[Path]:
    """
    Delete files in the upload directory older than `max_age`.

    Returns:
        Paths that were deleted
    """
    if not upload_dir.is_dir():
        return []

    cutoff = datetime.now().timestamp() - max_age.total_seconds()
    removed = []
    for path in upload_dir.iterdir():
        if not path.is_file():
            continue
        try:
            if path.stat().st_mtime < cutoff:
                path.unlink()
                removed.append(path)
        except OSError as e:
            logger.error(f"Failed to purge stale upload {path}: {e}")
    return removed
