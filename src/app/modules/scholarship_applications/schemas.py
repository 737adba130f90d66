"""
Scholarship Applications Schemas

Pydantic schemas for the multipart submission payload and the JSON response
envelope. Field aliases match the form field names sent by the web client.
"""

import json
from collections.abc import Mapping
from datetime import date, datetime
from typing import Annotated
from zoneinfo import ZoneInfo

from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    field_validator,
    model_validator,
)
from pydantic import ValidationError as PydanticValidationError

from app.core.config import settings
from app.modules.scholarship_applications.exceptions import ValidationError
from app.modules.scholarship_applications.identity import normalize_rut
from app.modules.scholarship_applications.uploads import StagedUpload

MIN_CHILDREN = 1
MAX_CHILDREN = 2

# Relationship that requires a supporting guardian document
OTHER_RELATIVE = "Otro familiar"


def _rut_field(value: str) -> str:
    try:
        return normalize_rut(value)
    except ValidationError as e:
        raise ValueError(e.message) from e


Rut = Annotated[str, AfterValidator(_rut_field)]


class GuardianInfo(BaseModel):
    """Guardian (responsable) section."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    name: str = Field(..., alias="parentName", min_length=2, max_length=200)
    rut: Rut = Field(..., alias="parentRUT")
    address: str = Field(..., min_length=5, max_length=500)
    phone: str = Field(..., pattern=r"^\+?[0-9]{9,12}$")
    email: EmailStr
    relationship: str = Field(..., alias="parentRelationship", min_length=1, max_length=100)

    @field_validator("name", "address", "relationship", mode="before")
    @classmethod
    def strip_text(cls, value: str) -> str:
        return value.strip() if isinstance(value, str) else value


class ChildRecord(BaseModel):
    """One child applying for the scholarship."""

    model_config = ConfigDict(populate_by_name=True, frozen=True, arbitrary_types_allowed=True)

    name: str = Field(..., alias="childName", min_length=2, max_length=200)
    rut: Rut = Field(..., alias="childRUT")
    birth_date: date = Field(..., alias="birthDate")
    gender: str = Field(..., min_length=1, max_length=50)
    education_level: str = Field(..., alias="educationLevel", min_length=1, max_length=100)
    school: str = Field(..., min_length=3, max_length=200)
    document: StagedUpload | None = Field(None, exclude=True)

    @field_validator("name", "gender", "education_level", "school", mode="before")
    @classmethod
    def strip_text(cls, value: str) -> str:
        return value.strip() if isinstance(value, str) else value

    @field_validator("birth_date")
    @classmethod
    def birth_date_not_in_future(cls, value: date) -> date:
        # Today in the configured timezone, not the server's
        if value > datetime.now(ZoneInfo(settings.timezone)).date():
            raise ValueError("La fecha de nacimiento no puede ser futura")
        return value


class SubmissionCreate(BaseModel):
    """A complete scholarship application."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    guardian: GuardianInfo
    children: list[ChildRecord] = Field(..., min_length=MIN_CHILDREN, max_length=MAX_CHILDREN)
    guardian_document: StagedUpload | None = Field(None, exclude=True)

    @model_validator(mode="after")
    def validate_submission(self) -> "SubmissionCreate":
        """Validate cross-field rules."""

        ruts = [self.guardian.rut, *(child.rut for child in self.children)]
        seen: set[str] = set()
        for rut in ruts:
            if rut in seen:
                raise ValueError(f"El RUT {rut} está repetido en la postulación")
            seen.add(rut)

        if self.guardian.relationship == OTHER_RELATIVE and self.guardian_document is None:
            raise ValueError("Debe adjuntar documento que acredite la relación con el menor")

        return self

    @property
    def documents(self) -> list[StagedUpload]:
        docs = [self.guardian_document] if self.guardian_document else []
        return docs + [child.document for child in self.children if child.document]

    @classmethod
    def from_form(
        cls,
        fields: Mapping[str, str],
        uploads: Mapping[str, StagedUpload],
    ) -> "SubmissionCreate":
        """
        Build a submission from multipart form fields and staged files.

        Expects `childrenCount`, one JSON object per child in `child0`,
        `child1`, and optional files `parentDocument`, `document0`, `document1`.

        Raises:
            ValidationError: If any part of the payload is missing or invalid.
        """
        try:
            children_count = int(fields.get("childrenCount") or 0)
        except ValueError as e:
            raise ValidationError("childrenCount debe ser un número") from e

        if children_count < MIN_CHILDREN:
            raise ValidationError("Debe postular al menos a un niño/a")
        if children_count > MAX_CHILDREN:
            raise ValidationError(f"Solo puede postular hasta {MAX_CHILDREN} niños/as")

        children = []
        for index in range(children_count):
            raw_child = fields.get(f"child{index}")
            if not raw_child:
                raise ValidationError(f"Faltan los datos del niño/a {index + 1}")
            try:
                child_data = json.loads(raw_child)
            except json.JSONDecodeError as e:
                raise ValidationError(f"Datos del niño/a {index + 1} mal formados") from e
            if not isinstance(child_data, dict):
                raise ValidationError(f"Datos del niño/a {index + 1} mal formados")

            # The client always sends document: null; the file arrives as its own part
            child_data.pop("document", None)
            child_data["document"] = uploads.get(f"document{index}")
            children.append(child_data)

        try:
            return cls(
                guardian=GuardianInfo.model_validate(dict(fields)),
                children=children,
                guardian_document=uploads.get("parentDocument"),
            )
        except PydanticValidationError as e:
            raise ValidationError(_first_error_message(e)) from e


def _first_error_message(exc: PydanticValidationError) -> str:
    """Readable message for the first validation error."""
    error = exc.errors()[0]
    cause = (error.get("ctx") or {}).get("error")
    message = str(cause) if cause else error["msg"]

    location = ".".join(str(part) for part in error["loc"])
    if location:
        return f"{location}: {message}"
    return message


class SubmissionResponse(BaseModel):
    """Successful submission envelope."""

    success: bool = True
    message: str


class SubmissionErrorResponse(BaseModel):
    """Failed submission envelope."""

    success: bool = False
    error: str
