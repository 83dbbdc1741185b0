"""
Startup Routes

GET /startups - List startups with a company name
GET /startups/profile - Get own company profile
PUT /startups/profile - Update company profile
POST /startups/logo - Upload company logo
GET /startups/dashboard - Active jobs and applications received
"""

import logging
from typing import List

from fastapi import APIRouter, HTTPException, Depends, UploadFile, File

from app.core.auth import get_current_startup, page_guard
from app.core.identity import StartupIdentity, UserIdentity
from app.utils.file_upload import read_upload
from app.services.profile_service import get_profile_service
from app.services.job_service import get_job_service
from app.services.storage_service import StorageError, get_blob_store, logo_path
from app.schemas.schemas import CompanyUpdate, CompanyResponse, LogoUploadResponse, MessageResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/startups", tags=["Startups"])


@router.get("", response_model=List[CompanyResponse])
async def list_startups():
    """Public list of startups that finished naming their company."""
    return get_profile_service().list_companies()


@router.get("/profile", response_model=CompanyResponse)
async def get_profile(startup: StartupIdentity = Depends(get_current_startup)):
    return CompanyResponse(**startup.profile)


@router.put("/profile", response_model=MessageResponse)
async def update_profile(data: CompanyUpdate, startup: StartupIdentity = Depends(get_current_startup)):
    """Update company profile. Only provided fields are updated."""
    fields = data.model_dump(exclude_unset=True)
    if not fields:
        raise HTTPException(status_code=400, detail="No fields to update")

    get_profile_service().update_company(startup.user_id, fields)
    return MessageResponse(message="Company profile updated successfully")


@router.post("/logo", response_model=LogoUploadResponse)
async def upload_logo(
    file: UploadFile = File(...),
    startup: StartupIdentity = Depends(get_current_startup),
    store=Depends(get_blob_store)
):
    """Upload a logo to the company_logo bucket and store its public URL."""
    content, content_type = await read_upload(file, "image")
    path = logo_path(startup.user_id, file.filename)

    try:
        store.upload("company_logo", path, content, content_type)
    except StorageError as e:
        raise HTTPException(status_code=e.status, detail=e.message)

    url = store.get_public_url("company_logo", path)
    get_profile_service().update_company(startup.user_id, {"logo_url": url})
    logger.info("Startup %s uploaded logo %s", startup.user_id, path)

    return LogoUploadResponse(success=True, message="Logo uploaded successfully", logo_url=url)


@router.get("/dashboard")
async def get_dashboard(identity: UserIdentity = Depends(page_guard("/startup/dashboard"))):
    """
    Startup dashboard: company, active jobs and applications received.

    Runs the protected-page resolver first, so students and users still
    onboarding are redirected instead.
    """
    startup = await get_current_startup(identity)
    jobs = get_job_service()
    return {
        "company": startup.profile,
        "jobs": jobs.list_company_jobs(startup.user_id, active_only=True),
        "applications": jobs.list_company_applications(startup.user_id),
    }
