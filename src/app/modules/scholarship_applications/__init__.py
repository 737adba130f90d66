"""
Scholarship Applications Module

Handles the scholarship application submission pipeline:
1. RUT validation and normalization
2. Duplicate RUT detection against the applications table
3. Per-submission document folder and uploads
4. One applications row per child, written in a single range
5. Audit log entry for every attempt

API Endpoints:
- POST /api/addData - Submit a scholarship application

Background Jobs (via APScheduler):
- purge_stale_uploads: Runs hourly, removes staged files kept after failed uploads
"""

from .jobs import register_scholarship_application_jobs
from .router import router

__all__ = ["router", "register_scholarship_application_jobs"]
