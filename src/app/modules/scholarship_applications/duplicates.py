"""
Duplicate Identifier Guard

Rejects a submission when the guardian's or a child's RUT is already present
in the applications table.
"""

import logging
from collections.abc import Sequence

from app.modules.scholarship_applications.exceptions import DuplicateIdentifierError
from app.modules.scholarship_applications.store import APPLICATIONS, TabularStore

logger = logging.getLogger(__name__)

GUARDIAN_ID_COLUMN = "C"
# K holds the child RUT of the one-child-per-row layout; R is the second
# child slot of the older two-children-per-row layout.
CHILD_ID_COLUMNS = ("K", "R")


async def load_existing_identifiers(store: TabularStore) -> set[str]:
    """Read every non-empty RUT from the identifier columns."""
    existing: set[str] = set()
    for column in (GUARDIAN_ID_COLUMN, *CHILD_ID_COLUMNS):
        values = await store.read_column(APPLICATIONS, column)
        existing.update(value.strip() for value in values if value and value.strip())
    return existing


async def check_duplicates(
    store: TabularStore,
    guardian_id: str,
    child_ids: Sequence[str],
) -> None:
    """
    Check identifiers against the store.

    The guardian is checked first, then children in submission order; the
    first match raises. Identifiers must already be in display form.

    Raises:
        DuplicateIdentifierError: If any identifier is already on file.
    """
    existing = await load_existing_identifiers(store)

    if guardian_id in existing:
        logger.warning(f"Duplicate guardian RUT rejected: {guardian_id}")
        raise DuplicateIdentifierError(guardian_id)

    for child_id in child_ids:
        if child_id and child_id in existing:
            logger.warning(f"Duplicate child RUT rejected: {child_id}")
            raise DuplicateIdentifierError(child_id)
