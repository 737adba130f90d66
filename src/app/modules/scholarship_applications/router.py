"""
Scholarship Applications Router

Public multipart endpoint used by the scholarship application form.

Endpoints:
- POST /api/addData - Submit a scholarship application

The response envelope is `{"success": true, "message": ...}` with HTTP 200,
or `{"success": false, "error": ...}` with HTTP 500 for every failure.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse
from starlette.datastructures import UploadFile
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.formparsers import MultiPartException

from app.modules.scholarship_applications.schemas import (
    SubmissionErrorResponse,
    SubmissionResponse,
)
from app.modules.scholarship_applications.service import SubmissionResult, SubmissionService

logger = logging.getLogger(__name__)

router = APIRouter()


def get_submission_service(request: Request) -> SubmissionService:
    """Submission service built at startup (see main.lifespan)."""
    service = getattr(request.app.state, "submission_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Submission service is not initialized",
        )
    return service


@router.post(
    "/addData",
    response_model=SubmissionResponse,
    summary="Submit Scholarship Application",
    description="""
Submit a scholarship application as `multipart/form-data`.

**Fields:**
- `parentName`, `parentRUT`, `address`, `phone`, `email`, `parentRelationship`
- `childrenCount` - number of children (1 or 2)
- `child0`, `child1` - JSON objects with `childName`, `childRUT`, `birthDate`,
  `gender`, `educationLevel`, `school`

**Files (optional):** `parentDocument`, `document0`, `document1`
(PDF, JPEG or PNG, up to 5 MB each)

A RUT that is already registered rejects the whole submission.
""",
    responses={
        200: {"description": "Application registered", "model": SubmissionResponse},
        500: {
            "description": "Application rejected or could not be processed",
            "model": SubmissionErrorResponse,
            "content": {
                "application/json": {
                    "example": {
                        "success": False,
                        "error": "El RUT 12.345.678-5 ya está registrado en el sistema",
                    }
                }
            },
        },
    },
)
async def add_data(
    request: Request,
    service: SubmissionService = Depends(get_submission_service),
) -> JSONResponse:
    """Receive a multipart submission and hand it to the submission service."""
    logger.info("Scholarship application received")

    try:
        form = await request.form()
    except (MultiPartException, StarletteHTTPException) as e:
        # Parse failures are audited and answered like any other failed attempt
        reason = e.detail if isinstance(e, StarletteHTTPException) else e.message
        return _envelope(await service.reject(str(reason)))

    fields: dict[str, str] = {}
    files: dict[str, UploadFile] = {}
    for key, value in form.multi_items():
        if isinstance(value, UploadFile):
            files.setdefault(key, value)
        else:
            fields.setdefault(key, value)

    try:
        result = await service.submit(fields, files)
    finally:
        await form.close()

    return _envelope(result)


def _envelope(result: SubmissionResult) -> JSONResponse:
    if result.success:
        body = SubmissionResponse(message=result.message)
    else:
        body = SubmissionErrorResponse(error=result.message)

    return JSONResponse(status_code=result.status_code, content=body.model_dump())
