"""create tabular_records table

Revision ID: b7c8d9e0f1a2
Revises:
Create Date: 2026-10-19 10:00:00.000000

Stores the applications, logs and files tables of the SQL-backed store.
The unique (table_name, position) constraint rejects two appends that
picked the same row position.
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "b7c8d9e0f1a2"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "tabular_records",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("table_name", sa.String(length=50), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("cells", sa.JSON(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.UniqueConstraint(
            "table_name", "position", name="uq_tabular_records_table_position"
        ),
    )
    op.create_index(
        "ix_tabular_records_table_name",
        "tabular_records",
        ["table_name"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_tabular_records_table_name", table_name="tabular_records")
    op.drop_table("tabular_records")
