"""
Scholarship Applications Background Jobs

Scheduled tasks:
1. Purge staged uploads left behind by failed archive attempts

A staged file whose upload failed stays in the upload directory so it can
be recovered by hand. After `upload_retention_hours` it is deleted.

Schedule:
- Runs hourly
"""

import logging
from datetime import timedelta
from pathlib import Path
from typing import Any

from apscheduler.triggers.interval import IntervalTrigger

from app.core.config import settings
from app.core.scheduler import register_job
from app.modules.scholarship_applications.uploads import purge_stale_files

logger = logging.getLogger(__name__)

JOB_ID_PURGE_STALE_UPLOADS = "scholarship_applications_purge_stale_uploads"


async def purge_stale_uploads() -> dict[str, Any]:
    """
    Delete staged uploads older than the retention window.

    Returns:
        Dict with the number of files removed and their names
    """
    upload_dir = Path(settings.upload_dir)
    max_age = timedelta(hours=settings.upload_retention_hours)

    logger.info(f"Purging uploads older than {max_age} from {upload_dir}")
    removed = purge_stale_files(upload_dir, max_age)

    if removed:
        logger.info(f"Purged {len(removed)} stale upload(s)")

    return {
        "total_removed": len(removed),
        "removed": [path.name for path in removed],
    }


def register_scholarship_application_jobs() -> None:
    """Register this module's background jobs with the scheduler."""
    register_job(
        job_id=JOB_ID_PURGE_STALE_UPLOADS,
        func=purge_stale_uploads,
        trigger=IntervalTrigger(hours=1),
    )
    logger.info(f"Registered job: {JOB_ID_PURGE_STALE_UPLOADS} (interval: 1 hour)")
