"""
Backend Wiring

Builds the tabular store, storage backend and submission service from
settings. Called once at startup; the resulting service is stored on
`app.state` and injected into the router.
"""

import logging
from pathlib import Path

from app.core.config import Settings
from app.core.database import async_session_maker
from app.core.google import GoogleServices, build_google_services, has_google_credentials
from app.modules.scholarship_applications.archiver import DocumentArchiver
from app.modules.scholarship_applications.drive import DriveStorageBackend
from app.modules.scholarship_applications.repository import DatabaseTabularStore
from app.modules.scholarship_applications.service import SubmissionService
from app.modules.scholarship_applications.sheets import SheetsTabularStore
from app.modules.scholarship_applications.storage import InMemoryStorageBackend, StorageBackend
from app.modules.scholarship_applications.store import InMemoryTabularStore, TabularStore
from app.modules.scholarship_applications.uploads import ensure_upload_dir

logger = logging.getLogger(__name__)


class BackendConfigurationError(Exception):
    """Raised when the configured backends cannot be built."""


def _google_services(config: Settings) -> GoogleServices | None:
    needs_google = config.store_backend == "sheets" or config.storage_backend == "drive"
    if not needs_google:
        return None

    if not has_google_credentials(config):
        if config.is_production:
            raise BackendConfigurationError("Google credentials are required in production")
        logger.warning("Google credentials not set - using in-memory store and storage instead")
        return None

    return build_google_services(config)


def build_store(config: Settings, google: GoogleServices | None) -> TabularStore:
    if config.store_backend == "database":
        return DatabaseTabularStore(async_session_maker)

    if config.store_backend == "sheets" and google is not None:
        if not config.google_sheets_spreadsheet_id:
            raise BackendConfigurationError("GOOGLE_SHEETS_SPREADSHEET_ID is not set")
        return SheetsTabularStore(google.sheets, config.google_sheets_spreadsheet_id)

    return InMemoryTabularStore()


def build_storage(config: Settings, google: GoogleServices | None) -> StorageBackend:
    if config.storage_backend == "drive" and google is not None:
        if not config.google_drive_folder_id:
            raise BackendConfigurationError("GOOGLE_DRIVE_FOLDER_ID is not set")
        return DriveStorageBackend(google.drive)

    return InMemoryStorageBackend()


def build_submission_service(config: Settings) -> SubmissionService:
    """Build the submission service and its collaborators."""
    google = _google_services(config)
    store = build_store(config, google)
    storage = build_storage(config, google)
    upload_dir = ensure_upload_dir(Path(config.upload_dir))

    logger.info(
        f"Submission service using store={type(store).__name__}, "
        f"storage={type(storage).__name__}, uploads={upload_dir}"
    )

    return SubmissionService(
        store=store,
        archiver=DocumentArchiver(storage, config.google_drive_folder_id or "root"),
        upload_dir=upload_dir,
        max_upload_bytes=config.max_upload_bytes,
        timezone=config.timezone,
    )
