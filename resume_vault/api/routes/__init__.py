"""
API Routes - Combines all route modules into single router.
"""

from fastapi import APIRouter

from resume_vault.api.routes.resume_routes import router as resume_router

# Main API router
api_router = APIRouter()

# Include all sub-routers
api_router.include_router(resume_router)
