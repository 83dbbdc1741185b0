"""
API Routes - Combines all route modules into single router.
"""

from fastapi import APIRouter

from app.api.routes.auth_routes import router as auth_router
from app.api.routes.onboarding_routes import router as onboarding_router
from app.api.routes.student_routes import router as student_router
from app.api.routes.startup_routes import router as startup_router
from app.api.routes.job_routes import router as job_router
from app.api.routes.project_routes import router as project_router
from app.api.routes.blog_routes import router as blog_router
from app.api.routes.storage_routes import router as storage_router

# Main API router
api_router = APIRouter()

# Include all sub-routers
api_router.include_router(auth_router)
api_router.include_router(onboarding_router)
api_router.include_router(student_router)
api_router.include_router(startup_router)
api_router.include_router(job_router)
api_router.include_router(project_router)
api_router.include_router(blog_router)
api_router.include_router(storage_router)
