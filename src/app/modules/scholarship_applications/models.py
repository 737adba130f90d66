"""
Scholarship Applications Models

Database model for the SQL-backed tabular store. Every table of the
spreadsheet layout (applications, logs, files) is stored in one
`tabular_records` table, one record per row, cells kept as a JSON array.
"""

from datetime import datetime

from sqlalchemy import JSON, DateTime, Index, Integer, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base


class TabularRecord(Base):
    """
    One row of a logical table.

    The unique (table_name, position) constraint turns concurrent appends
    that computed the same position into an integrity error instead of an
    overwrite.
    """

    __tablename__ = "tabular_records"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    table_name: Mapped[str] = mapped_column(String(50), nullable=False)
    # 1-based row position within the logical table
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    cells: Mapped[list] = mapped_column(JSON, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        UniqueConstraint("table_name", "position", name="uq_tabular_records_table_position"),
        Index("ix_tabular_records_table_name", "table_name"),
    )
