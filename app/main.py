"""
Upstart - Main Application

FastAPI backend with:
- PostgreSQL for users, profiles, jobs, applications and the blog
- MongoDB GridFS for uploaded files (resumes, logos, blog pictures)
- JWT sessions issued by the built-in identity provider

Run: uvicorn app.main:app --reload
"""

import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api.routes import api_router
from app.core.auth import PageRedirect
from app.core.config import get_settings
from app.core.logging import setup_logging
from app.db.mongodb import init_mongo_indexes, test_mongo_connection
from app.db.postgres import test_postgres_connection
from app.db.tables import init_db

settings = get_settings()

setup_logging()
logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="Upstart",
    description="""
    Marketplace connecting students with startups.

    ## Features
    - **Authentication**: sign-up, sign-in and post-auth role/onboarding resolution
    - **Onboarding**: one-time role assignment and profile basics
    - **Students**: profile, resume upload, applications
    - **Startups**: company profile, logo, job postings, applicants
    - **Blog**: public posts, admin-only editing
    """,
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routes
app.include_router(api_router, prefix="/api")


# ============================================================
# ERROR HANDLERS
# ============================================================

@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Every error body is {"error": message}."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None)
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{field}: {first.get('msg')}" if field else first.get("msg")
    else:
        message = "Invalid request"
    return JSONResponse(status_code=400, content={"error": message})


@app.exception_handler(PageRedirect)
async def page_redirect_handler(request: Request, exc: PageRedirect):
    return RedirectResponse(url=exc.location, status_code=302)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


# Startup event
@app.on_event("startup")
async def startup_event():
    """Create tables and MongoDB indexes on startup."""
    init_db()
    logger.info("Relational tables ready")
    try:
        init_mongo_indexes()
    except Exception:
        logger.exception("MongoDB index initialization failed")


@app.get("/", tags=["Health"])
async def root():
    return {"status": "healthy", "app": "Upstart"}


@app.get("/api/health", tags=["Health"])
async def health_check():
    """Detailed health check."""
    return {
        "status": "healthy",
        "postgres": "connected" if test_postgres_connection() else "disconnected",
        "mongodb": "connected" if test_mongo_connection() else "disconnected"
    }
