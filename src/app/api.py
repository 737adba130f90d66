from fastapi import APIRouter

from app.modules.scholarship_applications import router as scholarship_applications_router

api_router = APIRouter()

api_router.include_router(scholarship_applications_router, tags=["Scholarship Applications"])
