"""
Scholarship Applications Service Layer

Processes one scholarship application submission end to end.

Submission Flow (each step runs only if the previous one succeeded):
1. RECEIVED - stage uploaded files, parse and validate the payload
2. DUPLICATE_CHECKED - reject RUTs already present in the applications table
3. CONTAINER_CREATED - create the submission's storage folder
4. DOCUMENTS_ARCHIVED - upload the guardian and child documents, one at a time
5. ROWS_BUILT - one row per child, sharing the guardian document link
6. ROWS_APPENDED - write all rows in one contiguous range
7. LOGGED - audit entry written, for success and failure alike, stamped
   with the time it is written

Failure handling:
- Errors are caught once, here, and turned into a caller-safe message
- Nothing is retried; one failed external call fails the submission
- Folders and documents created before a later failure are left in place
- Steps 2 to 6 run under the store lock so concurrent submissions cannot
  both pass the duplicate check or be written to the same rows
"""

import enum
import logging
from collections.abc import Callable, Mapping
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from starlette.datastructures import UploadFile

from app.core.redis import store_lock
from app.modules.scholarship_applications.archiver import (
    ArchivedDocument,
    DocumentArchiver,
    child_document_name,
    guardian_document_name,
)
from app.modules.scholarship_applications.duplicates import check_duplicates
from app.modules.scholarship_applications.exceptions import (
    GENERIC_FAILURE_MESSAGE,
    MalformedRequestError,
    StorageUploadError,
    SubmissionError,
)
from app.modules.scholarship_applications.helpers import (
    STATUS_ERROR,
    STATUS_SUCCESS,
    build_file_row,
    build_log_row,
    current_datetime,
    raw_payload_snapshot,
)
from app.modules.scholarship_applications.rows import DATE_FORMAT, build_row
from app.modules.scholarship_applications.schemas import SubmissionCreate
from app.modules.scholarship_applications.store import (
    APPLICATIONS,
    FILES,
    LOGS,
    TabularStore,
)
from app.modules.scholarship_applications.uploads import (
    StagedUpload,
    discard,
    stage_files,
    validate_document,
)

logger = logging.getLogger(__name__)

SUCCESS_MESSAGE = "Postulación registrada exitosamente"

LockFactory = Callable[[str], AbstractAsyncContextManager[None]]


class SubmissionStage(str, enum.Enum):
    """Progress of a submission attempt."""

    RECEIVED = "received"
    DUPLICATE_CHECKED = "duplicate_checked"
    CONTAINER_CREATED = "container_created"
    DOCUMENTS_ARCHIVED = "documents_archived"
    ROWS_BUILT = "rows_built"
    ROWS_APPENDED = "rows_appended"
    LOGGED = "logged"


@dataclass
class SubmissionAttempt:
    """Mutable record of how far one attempt got."""

    timestamp: datetime
    stage: SubmissionStage = SubmissionStage.RECEIVED
    container_id: str | None = None
    start_position: int | None = None

    def advance(self, stage: SubmissionStage) -> None:
        self.stage = stage
        logger.info(f"Submission stage: {stage.value}")


@dataclass(frozen=True)
class SubmissionResult:
    """Outcome returned to the endpoint."""

    success: bool
    message: str
    failed_stage: SubmissionStage | None = None
    container_id: str | None = None
    start_position: int | None = None

    @property
    def status_code(self) -> int:
        return 200 if self.success else 500


class SubmissionService:
    """
    Submission orchestrator.

    Collaborators are passed in explicitly so tests can substitute
    in-memory stores and storage backends.
    """

    def __init__(
        self,
        store: TabularStore,
        archiver: DocumentArchiver,
        *,
        upload_dir: Path,
        max_upload_bytes: int = 5_000_000,
        timezone: str = "America/Santiago",
        lock_factory: LockFactory = store_lock,
        clock: Callable[[], datetime] | None = None,
    ):
        self.store = store
        self.archiver = archiver
        self.upload_dir = upload_dir
        self.max_upload_bytes = max_upload_bytes
        self.timezone = timezone
        self._lock_factory = lock_factory
        self._clock = clock or (lambda: current_datetime(self.timezone))

    async def submit(
        self,
        fields: Mapping[str, str],
        files: Mapping[str, UploadFile],
    ) -> SubmissionResult:
        """
        Process one submission and write its audit log entry.

        Args:
            fields: Non-file form fields, as received
            files: Multipart file parts keyed by part name

        Returns:
            SubmissionResult with a caller-safe message. Never raises for
            pipeline failures.
        """
        attempt = SubmissionAttempt(timestamp=self._clock())
        snapshot = raw_payload_snapshot(fields)
        staged: dict[str, StagedUpload] = {}
        retained: set[Path] = set()
        error: Exception | None = None

        try:
            staged = await stage_files(files, self.upload_dir)
            submission = SubmissionCreate.from_form(fields, staged)
            for document in submission.documents:
                validate_document(document, self.max_upload_bytes)

            async with self._lock_factory(self.store.name):
                await self._process(submission, attempt)

        except SubmissionError as e:
            logger.warning(
                f"Submission failed at {attempt.stage.value} ({e.error_code}): {e.message}"
            )
            if isinstance(e, StorageUploadError) and e.upload is not None:
                # Left on disk for manual recovery
                retained.add(e.upload.path)
            error = e
        except Exception as e:
            logger.exception(f"Unexpected error processing submission at {attempt.stage.value}")
            error = e
        finally:
            for upload in staged.values():
                if upload.path not in retained:
                    discard(upload)

        return await self._conclude(attempt, snapshot, error)

    async def reject(self, reason: str) -> SubmissionResult:
        """
        Fail a request whose multipart body could not be read.

        The attempt is audited like any other failure, with an empty
        payload snapshot since no field was parsed.
        """
        attempt = SubmissionAttempt(timestamp=self._clock())
        error = MalformedRequestError(reason)
        logger.warning(f"Submission rejected ({error.error_code}): {reason}")
        return await self._conclude(attempt, raw_payload_snapshot({}), error)

    async def _conclude(
        self,
        attempt: SubmissionAttempt,
        snapshot: str,
        error: Exception | None,
    ) -> SubmissionResult:
        if error is None:
            await self._write_audit_log(STATUS_SUCCESS, "", snapshot)
            result = SubmissionResult(
                success=True,
                message=SUCCESS_MESSAGE,
                container_id=attempt.container_id,
                start_position=attempt.start_position,
            )
        else:
            error_message = error.message if isinstance(error, SubmissionError) else str(error)
            await self._write_audit_log(STATUS_ERROR, error_message, snapshot)
            result = SubmissionResult(
                success=False,
                message=(
                    error.public_message
                    if isinstance(error, SubmissionError)
                    else GENERIC_FAILURE_MESSAGE
                ),
                failed_stage=attempt.stage,
                container_id=attempt.container_id,
            )

        attempt.advance(SubmissionStage.LOGGED)
        return result

    async def _process(self, submission: SubmissionCreate, attempt: SubmissionAttempt) -> None:
        guardian = submission.guardian
        children = submission.children

        await check_duplicates(self.store, guardian.rut, [child.rut for child in children])
        attempt.advance(SubmissionStage.DUPLICATE_CHECKED)

        attempt.container_id = await self.archiver.provision_container(
            guardian.name,
            guardian.rut,
            attempt.timestamp.strftime(DATE_FORMAT),
        )
        attempt.advance(SubmissionStage.CONTAINER_CREATED)

        guardian_link = None
        if submission.guardian_document is not None:
            document = await self._archive(
                submission.guardian_document,
                attempt,
                guardian_document_name(guardian.name),
            )
            guardian_link = document.view_link

        child_links: list[str | None] = []
        for child in children:
            if child.document is None:
                child_links.append(None)
                continue
            document = await self._archive(child.document, attempt, child_document_name(child.name))
            child_links.append(document.view_link)
        attempt.advance(SubmissionStage.DOCUMENTS_ARCHIVED)

        rows = [
            build_row(
                sequence_no=index + 1,
                guardian=guardian,
                child=child,
                guardian_doc_link=guardian_link,
                child_doc_link=child_link,
                timestamp=attempt.timestamp,
                children_count=len(children),
            )
            for index, (child, child_link) in enumerate(zip(children, child_links, strict=True))
        ]
        attempt.advance(SubmissionStage.ROWS_BUILT)

        attempt.start_position = await self.store.append_after_last(
            APPLICATIONS, [row.to_cells() for row in rows]
        )
        attempt.advance(SubmissionStage.ROWS_APPENDED)
        logger.info(
            f"Stored {len(rows)} row(s) for guardian {guardian.rut} "
            f"at position {attempt.start_position}"
        )

    async def _archive(
        self,
        upload: StagedUpload,
        attempt: SubmissionAttempt,
        display_name: str,
    ) -> ArchivedDocument:
        document = await self.archiver.archive(upload, attempt.container_id, display_name)
        await self._track_file(document)
        return document

    async def _track_file(self, document: ArchivedDocument) -> None:
        """Record an archived file in the files table (non-blocking on failure)."""
        try:
            await self.store.append(FILES, [build_file_row(document)])
        except Exception as e:
            logger.error(f"Failed to record file {document.storage_id} in {FILES}: {e}")

    async def _write_audit_log(
        self,
        status: str,
        error: str,
        snapshot: str,
    ) -> None:
        """Append the audit entry for an attempt (failure is logged, not raised)."""
        # Stamped when written, after the attempt has resolved
        timestamp = self._clock()
        try:
            await self.store.append(LOGS, [build_log_row(timestamp, status, error, snapshot)])
        except Exception as e:
            logger.error(f"Failed to write audit log entry ({status}): {e}")
