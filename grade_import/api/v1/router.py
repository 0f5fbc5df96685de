"""Main API router aggregating all module routers."""

from fastapi import APIRouter

from grade_import.api.v1.endpoints import grade_imports

api_router = APIRouter()

# Grade imports (school-scoped)
api_router.include_router(
    grade_imports.router,
    prefix="/schools/{school_id}/grade-imports",
    tags=["Grade Imports"],
)
