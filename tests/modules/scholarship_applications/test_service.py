"""
Unit tests for the scholarship application submission service.

These tests cover:
- Successful submissions with and without documents
- Duplicate RUT rejection before any storage side effect
- Persistence failure after documents were archived
- Upload failures and temporary file retention
- Audit log entries for every attempt, including unreadable requests
- Serialization of concurrent submissions
"""

import asyncio
import json
from datetime import timedelta
from unittest.mock import AsyncMock, patch

import pytest

from app.modules.scholarship_applications.archiver import DocumentArchiver
from app.modules.scholarship_applications.exceptions import (
    FILE_FAILURE_MESSAGE,
    GENERIC_FAILURE_MESSAGE,
    PersistenceError,
)
from app.modules.scholarship_applications.rows import NO_FILE_PLACEHOLDER, ROW_WIDTH
from app.modules.scholarship_applications.service import (
    SUCCESS_MESSAGE,
    SubmissionService,
    SubmissionStage,
)
from app.modules.scholarship_applications.store import (
    APPLICATIONS,
    FILES,
    LOGS,
    InMemoryTabularStore,
)

GUARDIAN_RUT = "12.345.678-5"
FIRST_CHILD_RUT = "22.222.222-2"
SECOND_CHILD_RUT = "11.111.111-1"
PARENT_FOLDER_ID = "parent-folder"


def existing_row(cells: dict[int, str]) -> list:
    """A stored applications row with the given cells set by position."""
    row = [""] * ROW_WIDTH
    for position, value in cells.items():
        row[position] = value
    return row


class TestSuccessfulSubmission:
    """Tests for submissions that complete every stage."""

    @pytest.mark.asyncio
    async def test_single_child_with_both_documents(
        self, service, store, storage, upload_dir, single_child_fields, make_upload
    ):
        """Guardian and child documents are archived and linked in one row."""
        fields = dict(single_child_fields, parentRelationship="Otro familiar")
        files = {
            "parentDocument": make_upload("cuidado.pdf"),
            "document0": make_upload("certificado.png", b"\x89PNG", "image/png"),
        }

        result = await service.submit(fields, files)

        assert result.success is True
        assert result.status_code == 200
        assert result.message == SUCCESS_MESSAGE
        assert result.start_position == 1

        # One folder with both documents
        assert len(storage.folders) == 1
        folder = next(iter(storage.folders.values()))
        assert folder.name == f"María González - {GUARDIAN_RUT} - 2026-10-19"
        assert folder.parent_id == PARENT_FOLDER_ID
        assert sorted(f.name for f in folder.files.values()) == [
            "María González - Cuidado Personal",
            "Pedro González - Documento Estudiantil",
        ]

        rows = store.rows(APPLICATIONS)
        assert len(rows) == 1
        row = rows[0]
        guardian_file, child_file = folder.files.values()
        assert row[0] == 1
        assert row[2] == GUARDIAN_RUT
        assert row[7] == guardian_file.link
        assert row[10] == FIRST_CHILD_RUT
        assert row[15] == child_file.link
        assert row[23] == "2026-10-19"
        assert row[24] == "14:30:05"

        assert len(store.rows(FILES)) == 2
        assert store.rows(LOGS) == [
            ["2026-10-19 14:30:05", "Éxito", "", json.dumps(fields, ensure_ascii=False)]
        ]

        # Archived temp files are gone
        assert list(upload_dir.iterdir()) == []

    @pytest.mark.asyncio
    async def test_two_children_share_guardian_link(
        self, service, store, storage, two_children_fields, make_upload
    ):
        """Each child gets its own row; only the first child has a document."""
        files = {
            "parentDocument": make_upload("cuidado.pdf"),
            "document0": make_upload("certificado.pdf"),
        }

        result = await service.submit(two_children_fields, files)

        assert result.success is True
        rows = store.rows(APPLICATIONS)
        assert len(rows) == 2
        assert [row[0] for row in rows] == [1, 2]
        assert [row[6] for row in rows] == [2, 2]
        assert rows[0][7] == rows[1][7] != NO_FILE_PLACEHOLDER
        assert rows[0][15] != NO_FILE_PLACEHOLDER
        assert rows[1][15] == NO_FILE_PLACEHOLDER
        assert [row[10] for row in rows] == [FIRST_CHILD_RUT, SECOND_CHILD_RUT]
        assert storage.file_count == 2

    @pytest.mark.asyncio
    async def test_no_documents_still_creates_folder(
        self, service, store, storage, single_child_fields
    ):
        """A folder is created even when nothing is uploaded."""
        result = await service.submit(single_child_fields, {})

        assert result.success is True
        assert len(storage.folders) == 1
        assert storage.file_count == 0
        row = store.rows(APPLICATIONS)[0]
        assert row[7] == NO_FILE_PLACEHOLDER
        assert row[15] == NO_FILE_PLACEHOLDER

    @pytest.mark.asyncio
    async def test_ruts_stored_in_display_form(self, service, store, single_child_fields):
        """RUTs typed without separators are stored formatted."""
        fields = dict(single_child_fields, parentRUT="123456785")

        result = await service.submit(fields, {})

        assert result.success is True
        assert store.rows(APPLICATIONS)[0][2] == "12.345.678-5"

    @pytest.mark.asyncio
    async def test_later_submission_appends_below(self, service, store, single_child_fields):
        """Rows of a later submission start after the existing ones."""
        await store.append_after_last(APPLICATIONS, [existing_row({2: "7.654.321-6"})])

        result = await service.submit(single_child_fields, {})

        assert result.start_position == 2
        assert len(store.rows(APPLICATIONS)) == 2


class TestDuplicateRejection:
    """Tests for submissions rejected by the duplicate guard."""

    @pytest.mark.asyncio
    async def test_second_child_already_registered(
        self, service, store, storage, two_children_fields, make_upload
    ):
        """A registered child RUT rejects the submission before any folder is created."""
        await store.append_after_last(APPLICATIONS, [existing_row({10: SECOND_CHILD_RUT})])
        files = {"document0": make_upload("certificado.pdf")}

        with patch.object(storage, "create_folder", wraps=storage.create_folder) as create_folder:
            result = await service.submit(two_children_fields, files)

        expected = f"El RUT {SECOND_CHILD_RUT} ya está registrado en el sistema"
        assert result.success is False
        assert result.status_code == 500
        assert result.message == expected
        assert result.container_id is None
        create_folder.assert_not_called()
        assert storage.folders == {}

        # No new rows, one error log entry
        assert len(store.rows(APPLICATIONS)) == 1
        logs = store.rows(LOGS)
        assert len(logs) == 1
        assert logs[0][1] == "Error"
        assert expected in logs[0][2]

    @pytest.mark.asyncio
    async def test_guardian_already_registered(self, service, store, single_child_fields):
        """The guardian RUT is checked against the guardian column."""
        await store.append_after_last(APPLICATIONS, [existing_row({2: GUARDIAN_RUT})])

        result = await service.submit(single_child_fields, {})

        assert result.success is False
        assert GUARDIAN_RUT in result.message

    @pytest.mark.asyncio
    async def test_legacy_second_child_column(self, service, store, single_child_fields):
        """Child RUTs stored in the legacy second-child column are also found."""
        await store.append_after_last(APPLICATIONS, [existing_row({17: FIRST_CHILD_RUT})])

        result = await service.submit(single_child_fields, {})

        assert result.success is False
        assert FIRST_CHILD_RUT in result.message


class TestFailedSubmission:
    """Tests for failures after validation."""

    @pytest.mark.asyncio
    async def test_append_failure_after_documents_archived(
        self, service, store, storage, single_child_fields, make_upload
    ):
        """The folder and document stay in storage when the rows cannot be written."""
        files = {"document0": make_upload("certificado.pdf")}

        with patch.object(
            store,
            "append_after_last",
            AsyncMock(side_effect=PersistenceError("Google Sheets write failed")),
        ):
            result = await service.submit(single_child_fields, files)

        assert result.success is False
        assert result.message == GENERIC_FAILURE_MESSAGE
        assert result.failed_stage == SubmissionStage.ROWS_BUILT
        assert result.container_id in storage.folders
        assert storage.file_count == 1

        assert store.rows(APPLICATIONS) == []
        logs = store.rows(LOGS)
        assert len(logs) == 1
        assert logs[0][1] == "Error"
        assert logs[0][2] == "Google Sheets write failed"

    @pytest.mark.asyncio
    async def test_folder_creation_failure(self, service, store, storage, single_child_fields):
        """A folder that cannot be created fails the submission with the file message."""
        with patch.object(storage, "create_folder", AsyncMock(side_effect=RuntimeError("quota"))):
            result = await service.submit(single_child_fields, {})

        assert result.success is False
        assert result.message == FILE_FAILURE_MESSAGE
        assert result.failed_stage == SubmissionStage.DUPLICATE_CHECKED
        assert store.rows(APPLICATIONS) == []

    @pytest.mark.asyncio
    async def test_upload_failure_retains_failed_file(
        self, service, store, storage, upload_dir, single_child_fields, make_upload
    ):
        """The file whose upload failed stays on disk; files never attempted are removed."""
        files = {
            "parentDocument": make_upload("cuidado.pdf"),
            "document0": make_upload("certificado.pdf"),
        }

        with patch.object(storage, "upload", AsyncMock(side_effect=RuntimeError("timeout"))):
            result = await service.submit(single_child_fields, files)

        assert result.success is False
        assert result.message == FILE_FAILURE_MESSAGE
        remaining = list(upload_dir.iterdir())
        assert len(remaining) == 1
        assert remaining[0].name.endswith("-cuidado.pdf")
        assert store.rows(APPLICATIONS) == []
        assert store.rows(LOGS)[0][1] == "Error"

    @pytest.mark.asyncio
    async def test_unexpected_error_returns_generic_message(
        self, service, store, single_child_fields
    ):
        """Errors outside the pipeline's own types are still logged and reported."""
        with patch.object(store, "read_column", AsyncMock(side_effect=KeyError("formulario"))):
            result = await service.submit(single_child_fields, {})

        assert result.success is False
        assert result.message == GENERIC_FAILURE_MESSAGE
        assert store.rows(LOGS)[0][1] == "Error"

    @pytest.mark.asyncio
    async def test_audit_log_failure_does_not_fail_submission(
        self, service, store, single_child_fields
    ):
        """A failed log write is logged and the submission still succeeds."""
        with patch.object(store, "append", AsyncMock(side_effect=PersistenceError("down"))):
            result = await service.submit(single_child_fields, {})

        assert result.success is True
        assert len(store.rows(APPLICATIONS)) == 1


class TestValidationFailures:
    """Tests for payloads rejected before any external call."""

    @pytest.mark.asyncio
    async def test_unsupported_file_type(
        self, service, store, storage, upload_dir, single_child_fields, make_upload
    ):
        files = {"document0": make_upload("foto.gif", b"GIF89a", "image/gif")}

        result = await service.submit(single_child_fields, files)

        assert result.success is False
        assert result.message == "Formato no soportado para foto.gif"
        assert storage.folders == {}
        assert list(upload_dir.iterdir()) == []

    @pytest.mark.asyncio
    async def test_file_too_large(
        self, store, storage, upload_dir, fixed_now, single_child_fields, make_upload
    ):
        service = SubmissionService(
            store=store,
            archiver=DocumentArchiver(storage, PARENT_FOLDER_ID),
            upload_dir=upload_dir,
            max_upload_bytes=10,
            clock=lambda: fixed_now,
        )
        files = {"document0": make_upload("certificado.pdf", b"x" * 11)}

        result = await service.submit(single_child_fields, files)

        assert result.success is False
        assert "muy grande" in result.message
        assert list(upload_dir.iterdir()) == []

    @pytest.mark.asyncio
    async def test_other_relative_requires_document(self, service, store, single_child_fields):
        fields = dict(single_child_fields, parentRelationship="Otro familiar")

        result = await service.submit(fields, {})

        assert result.success is False
        assert "documento" in result.message

    @pytest.mark.asyncio
    async def test_each_failed_attempt_is_logged(self, service, store, single_child_fields):
        """Resubmitting an invalid payload adds one log entry per attempt."""
        fields = dict(single_child_fields, parentRUT="12.345.678-9")

        await service.submit(fields, {})
        await service.submit(fields, {})

        logs = store.rows(LOGS)
        assert len(logs) == 2
        assert all(log[1] == "Error" for log in logs)
        assert store.rows(APPLICATIONS) == []


class SlowReadStore(InMemoryTabularStore):
    """In-memory store that yields to the event loop on every read."""

    async def read_column(self, table, column):
        await asyncio.sleep(0)
        return await super().read_column(table, column)


class TestConcurrentSubmissions:
    """Tests for submissions racing on the same store."""

    @pytest.mark.asyncio
    async def test_same_child_submitted_twice_concurrently(
        self, storage, upload_dir, fixed_now, single_child_fields
    ):
        """Only one of two simultaneous submissions for the same child is stored."""
        store = SlowReadStore(name="concurrent-submissions")
        service = SubmissionService(
            store=store,
            archiver=DocumentArchiver(storage, PARENT_FOLDER_ID),
            upload_dir=upload_dir,
            clock=lambda: fixed_now,
        )
        other_guardian = dict(single_child_fields, parentRUT="7.654.321-6")

        results = await asyncio.gather(
            service.submit(single_child_fields, {}),
            service.submit(other_guardian, {}),
        )

        assert sorted(result.success for result in results) == [False, True]
        assert len(store.rows(APPLICATIONS)) == 1
        assert len(store.rows(LOGS)) == 2


class TestAuditTimestamp:
    """Tests for when audit entries are stamped."""

    @pytest.mark.asyncio
    async def test_log_stamped_when_written(
        self, store, storage, upload_dir, fixed_now, single_child_fields
    ):
        """Rows carry the receive time; the log entry carries the time it was written."""
        times = iter([fixed_now, fixed_now + timedelta(seconds=7)])
        service = SubmissionService(
            store=store,
            archiver=DocumentArchiver(storage, PARENT_FOLDER_ID),
            upload_dir=upload_dir,
            clock=lambda: next(times),
        )

        result = await service.submit(single_child_fields, {})

        assert result.success is True
        assert store.rows(APPLICATIONS)[0][24] == "14:30:05"
        assert store.rows(LOGS)[0][0] == "2026-10-19 14:30:12"


class TestRejectedRequests:
    """Tests for requests whose body could not be read."""

    @pytest.mark.asyncio
    async def test_reject_writes_error_entry(self, service, store, storage):
        result = await service.reject("Part exceeded maximum size of 1024KB.")

        assert result.success is False
        assert result.status_code == 500
        assert result.message == GENERIC_FAILURE_MESSAGE
        assert result.failed_stage == SubmissionStage.RECEIVED
        assert store.rows(LOGS) == [
            ["2026-10-19 14:30:05", "Error", "Part exceeded maximum size of 1024KB.", "{}"]
        ]
        assert store.rows(APPLICATIONS) == []
        assert storage.folders == {}
