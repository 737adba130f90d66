"""
Google Drive Storage Backend

Creates per-submission folders and uploads documents with the Drive v3 API.
The Drive client is synchronous, so requests run in worker threads.
"""

import asyncio
import logging
from pathlib import Path
from typing import Any

from googleapiclient.http import MediaFileUpload

from app.modules.scholarship_applications.storage import StoredFile

logger = logging.getLogger(__name__)

FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"


class DriveStorageBackend:
    """Storage backend backed by Google Drive."""

    def __init__(self, drive_service: Any):
        self._files = drive_service.files()

    async def create_folder(self, name: str, parent_id: str) -> str:
        metadata = {
            "name": name,
            "mimeType": FOLDER_MIME_TYPE,
            "parents": [parent_id],
        }
        request = self._files.create(body=metadata, fields="id", supportsAllDrives=True)
        folder = await asyncio.to_thread(request.execute)
        logger.info(f"Created Drive folder {folder['id']}: {name}")
        return folder["id"]

    async def upload(self, path: Path, mime_type: str, name: str, folder_id: str) -> StoredFile:
        media = MediaFileUpload(str(path), mimetype=mime_type, resumable=False)
        request = self._files.create(
            body={"name": name, "parents": [folder_id]},
            media_body=media,
            fields="id,webViewLink,webContentLink",
            supportsAllDrives=True,
        )
        try:
            data = await asyncio.to_thread(request.execute)
        finally:
            media.stream().close()
        logger.info(f"Uploaded {name} to Drive as {data['id']}")
        return StoredFile(id=data["id"], link=data.get("webViewLink", ""))
