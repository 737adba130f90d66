"""
Scholarship Applications Errors

Every failure in the submission pipeline is one of these. Each carries an
internal message (written to logs and the audit trail) and a public message
(returned to the submitter).
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from app.modules.scholarship_applications.uploads import StagedUpload

GENERIC_FAILURE_MESSAGE = "Error al procesar la postulación"
FILE_FAILURE_MESSAGE = "No se pudo procesar el archivo"


class SubmissionError(Exception):
    """Base exception for submission pipeline errors."""

    def __init__(
        self,
        message: str,
        error_code: str,
        public_message: str = GENERIC_FAILURE_MESSAGE,
    ):
        self.message = message
        self.error_code = error_code
        self.public_message = public_message
        super().__init__(message)


class ValidationError(SubmissionError):
    """Raised when the payload is malformed or missing required fields."""

    def __init__(self, message: str):
        super().__init__(
            message=message,
            error_code="VALIDATION_ERROR",
            public_message=message,
        )


class DuplicateIdentifierError(SubmissionError):
    """Raised when a national ID is already on file."""

    def __init__(self, identifier: str):
        self.identifier = identifier
        message = f"El RUT {identifier} ya está registrado en el sistema"
        super().__init__(
            message=message,
            error_code="DUPLICATE_IDENTIFIER",
            public_message=message,
        )


class StorageProvisionError(SubmissionError):
    """Raised when the per-submission storage folder cannot be created."""

    def __init__(self, message: str):
        super().__init__(
            message=message,
            error_code="STORAGE_PROVISION_FAILED",
            public_message=FILE_FAILURE_MESSAGE,
        )


class StorageUploadError(SubmissionError):
    """Raised when a document cannot be read or uploaded."""

    def __init__(self, message: str, upload: "StagedUpload | None" = None):
        self.upload = upload
        super().__init__(
            message=message,
            error_code="STORAGE_UPLOAD_FAILED",
            public_message=FILE_FAILURE_MESSAGE,
        )


class PersistenceError(SubmissionError):
    """Raised when the tabular store cannot be read or written."""

    def __init__(self, message: str):
        super().__init__(
            message=message,
            error_code="PERSISTENCE_FAILED",
        )


class MalformedRequestError(SubmissionError):
    """Raised when the multipart request body cannot be parsed."""

    def __init__(self, message: str):
        super().__init__(
            message=message,
            error_code="MALFORMED_REQUEST",
        )
