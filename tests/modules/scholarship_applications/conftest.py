"""
Fixtures for scholarship applications tests.
"""

import json
from datetime import datetime
from io import BytesIO
from zoneinfo import ZoneInfo

import pytest
from starlette.datastructures import Headers, UploadFile

from app.modules.scholarship_applications.archiver import DocumentArchiver
from app.modules.scholarship_applications.schemas import ChildRecord, GuardianInfo
from app.modules.scholarship_applications.service import SubmissionService
from app.modules.scholarship_applications.storage import InMemoryStorageBackend
from app.modules.scholarship_applications.store import InMemoryTabularStore

GUARDIAN_RUT = "12.345.678-5"
FIRST_CHILD_RUT = "22.222.222-2"
SECOND_CHILD_RUT = "11.111.111-1"

PARENT_FOLDER_ID = "parent-folder"


def child_json(name: str, rut: str, **overrides) -> str:
    data = {
        "childName": name,
        "childRUT": rut,
        "birthDate": "2015-03-02",
        "gender": "Masculino",
        "educationLevel": "Educación Básica",
        "school": "Escuela Lo Prado",
        "document": None,
    }
    data.update(overrides)
    return json.dumps(data)


@pytest.fixture
def fixed_now():
    """Fixed submission time in Santiago."""
    return datetime(2026, 10, 19, 14, 30, 5, tzinfo=ZoneInfo("America/Santiago"))


@pytest.fixture
def store():
    return InMemoryTabularStore()


@pytest.fixture
def storage():
    return InMemoryStorageBackend()


@pytest.fixture
def upload_dir(tmp_path):
    path = tmp_path / "uploads"
    path.mkdir()
    return path


@pytest.fixture
def service(store, storage, upload_dir, fixed_now):
    """Submission service wired to in-memory collaborators."""
    return SubmissionService(
        store=store,
        archiver=DocumentArchiver(storage, PARENT_FOLDER_ID),
        upload_dir=upload_dir,
        clock=lambda: fixed_now,
    )


@pytest.fixture
def make_upload():
    """Factory for multipart file parts."""

    def _make(
        filename: str = "documento.pdf",
        content: bytes = b"%PDF-1.4 test",
        content_type: str = "application/pdf",
    ) -> UploadFile:
        return UploadFile(
            file=BytesIO(content),
            filename=filename,
            headers=Headers({"content-type": content_type}),
        )

    return _make


@pytest.fixture
def single_child_fields():
    """Form fields for one guardian and one child."""
    return {
        "parentName": "María González",
        "parentRUT": GUARDIAN_RUT,
        "address": "Av. San Pablo 5959, Lo Prado",
        "phone": "+56912345678",
        "email": "maria.gonzalez@correo.cl",
        "parentRelationship": "Madre",
        "childrenCount": "1",
        "child0": child_json("Pedro González", FIRST_CHILD_RUT),
    }


@pytest.fixture
def two_children_fields(single_child_fields):
    """Form fields for one guardian and two children."""
    fields = dict(single_child_fields)
    fields["childrenCount"] = "2"
    fields["child1"] = child_json(
        "Ana González", SECOND_CHILD_RUT, gender="Femenino", birthDate="2017-08-21"
    )
    return fields


@pytest.fixture
def guardian():
    return GuardianInfo(
        name="María González",
        rut=GUARDIAN_RUT,
        address="Av. San Pablo 5959, Lo Prado",
        phone="+56912345678",
        email="maria.gonzalez@correo.cl",
        relationship="Madre",
    )


@pytest.fixture
def child():
    return ChildRecord(
        name="Pedro González",
        rut=FIRST_CHILD_RUT,
        birth_date="2015-03-02",
        gender="Masculino",
        education_level="Educación Básica",
        school="Escuela Lo Prado",
    )
