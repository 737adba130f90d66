"""
Document Archiver

Creates one storage folder per submission and uploads each staged document
into it, returning a view link per document.
"""

import logging
import os
from dataclasses import dataclass

from app.modules.scholarship_applications.exceptions import (
    StorageProvisionError,
    StorageUploadError,
)
from app.modules.scholarship_applications.storage import StorageBackend
from app.modules.scholarship_applications.uploads import StagedUpload, discard

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ArchivedDocument:
    """A document stored in a submission folder."""

    storage_id: str
    view_link: str
    display_name: str


def container_name(guardian_name: str, guardian_id: str, date: str) -> str:
    """Folder name for one submission."""
    return f"{guardian_name} - {guardian_id} - {date}"


def guardian_document_name(guardian_name: str) -> str:
    return f"{guardian_name} - Cuidado Personal"


def child_document_name(child_name: str) -> str:
    return f"{child_name} - Documento Estudiantil"


class DocumentArchiver:
    """Archives submission documents under a fixed parent folder."""

    def __init__(self, storage: StorageBackend, parent_folder_id: str):
        self._storage = storage
        self.parent_folder_id = parent_folder_id

    async def provision_container(self, guardian_name: str, guardian_id: str, date: str) -> str:
        """
        Create a new folder for a submission.

        A folder is created on every call, even if one with the same name
        already exists.

        Raises:
            StorageProvisionError: If the storage backend rejects the request.
        """
        name = container_name(guardian_name, guardian_id, date)
        try:
            container_id = await self._storage.create_folder(name, self.parent_folder_id)
        except Exception as e:
            logger.error(f"Failed to create folder {name!r}: {e}")
            raise StorageProvisionError(f"No se pudo crear la carpeta {name}: {e}") from e

        logger.info(f"Created storage container {container_id} for {guardian_id}")
        return container_id

    async def archive(
        self,
        upload: StagedUpload,
        container_id: str,
        display_name: str,
    ) -> ArchivedDocument:
        """
        Upload a staged file into a container and delete the local copy.

        The local copy is only deleted after the remote write succeeds; if the
        upload fails it stays on disk. Failure to delete it after a successful
        upload is logged and otherwise ignored.

        Raises:
            StorageUploadError: If the file is unreadable or the upload fails.
        """
        if not upload.path.is_file() or not os.access(upload.path, os.R_OK):
            logger.error(f"Staged file not readable: {upload.path}")
            raise StorageUploadError(
                f"No se puede acceder al archivo: {upload.filename}", upload=upload
            )

        try:
            stored = await self._storage.upload(
                upload.path,
                upload.content_type,
                display_name,
                container_id,
            )
        except Exception as e:
            logger.error(f"Failed to upload {display_name!r} to {container_id}: {e}")
            raise StorageUploadError(
                f"Error al subir {display_name}: {e}", upload=upload
            ) from e

        if discard(upload):
            logger.debug(f"Deleted temporary file {upload.path}")

        logger.info(f"Archived {display_name!r} as {stored.id}")
        return ArchivedDocument(
            storage_id=stored.id,
            view_link=stored.link,
            display_name=display_name,
        )
