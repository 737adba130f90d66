"""
Application Row Builder

Maps one child of a submission to a row of the applications table.
Rows are built as named fields and only converted to the 25-cell
positional layout (columns A..Y) by `ApplicationRow.to_cells`.
"""

from dataclasses import dataclass
from datetime import datetime

from app.modules.scholarship_applications.schemas import ChildRecord, GuardianInfo
from app.modules.scholarship_applications.store import APPLICATIONS, TABLE_WIDTHS, Cell

NO_FILE_PLACEHOLDER = "No se subió archivo"

ROW_WIDTH = TABLE_WIDTHS[APPLICATIONS]

DATE_FORMAT = "%Y-%m-%d"
TIME_FORMAT = "%H:%M:%S"

# Column positions (0-based). Positions 16-22 (Q..W) are reserved and
# always written empty.
COLUMN_POSITIONS = {
    "sequence_no": 0,  # A
    "guardian_name": 1,  # B
    "guardian_rut": 2,  # C
    "address": 3,  # D
    "phone": 4,  # E
    "email": 5,  # F
    "children_count": 6,  # G
    "guardian_document_link": 7,  # H
    "guardian_relationship": 8,  # I
    "child_name": 9,  # J
    "child_rut": 10,  # K
    "birth_date": 11,  # L
    "gender": 12,  # M
    "education_level": 13,  # N
    "school": 14,  # O
    "child_document_link": 15,  # P
    "submitted_date": 23,  # X
    "submitted_time": 24,  # Y
}
RESERVED_POSITIONS = range(16, 23)


@dataclass(frozen=True)
class ApplicationRow:
    """One child's row in the applications table."""

    sequence_no: int
    guardian_name: str
    guardian_rut: str
    address: str
    phone: str
    email: str
    children_count: int
    guardian_document_link: str
    guardian_relationship: str
    child_name: str
    child_rut: str
    birth_date: str
    gender: str
    education_level: str
    school: str
    child_document_link: str
    submitted_date: str
    submitted_time: str

    def to_cells(self) -> list[Cell]:
        """Serialize to the fixed positional layout."""
        cells: list[Cell] = [""] * ROW_WIDTH
        for field_name, position in COLUMN_POSITIONS.items():
            cells[position] = getattr(self, field_name)
        return cells


def build_row(
    sequence_no: int,
    guardian: GuardianInfo,
    child: ChildRecord,
    guardian_doc_link: str | None,
    child_doc_link: str | None,
    timestamp: datetime,
    children_count: int,
) -> ApplicationRow:
    """
    Build the row for one child.

    `sequence_no` is the child's 1-based index within the submission.
    Missing document links are written as NO_FILE_PLACEHOLDER.
    """
    return ApplicationRow(
        sequence_no=sequence_no,
        guardian_name=guardian.name,
        guardian_rut=guardian.rut,
        address=guardian.address,
        phone=guardian.phone,
        email=str(guardian.email),
        children_count=children_count,
        guardian_document_link=guardian_doc_link or NO_FILE_PLACEHOLDER,
        guardian_relationship=guardian.relationship,
        child_name=child.name,
        child_rut=child.rut,
        birth_date=child.birth_date.isoformat(),
        gender=child.gender,
        education_level=child.education_level,
        school=child.school,
        child_document_link=child_doc_link or NO_FILE_PLACEHOLDER,
        submitted_date=timestamp.strftime(DATE_FORMAT),
        submitted_time=timestamp.strftime(TIME_FORMAT),
    )
