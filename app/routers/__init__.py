from fastapi import APIRouter

from app.routers import (
    accounts,
    activity_logs,
    existing_headings,
    headings,
    pdms,
    qc_errors,
    qc_feedback,
)

api_router = APIRouter()
api_router.include_router(accounts.router)
api_router.include_router(headings.router)
api_router.include_router(existing_headings.router)
api_router.include_router(pdms.router)
api_router.include_router(qc_feedback.router)
api_router.include_router(qc_errors.router)
api_router.include_router(activity_logs.router)
