"""
Job Routes

GET /jobs - List all jobs
GET /jobs/tags - List job tags
POST /jobs/tags - Create a job tag (startup)
POST /jobs - Create job posting (startup)
GET /jobs/{job_id} - Job with company and tags
PUT /jobs/{job_id} - Update own job (startup)
POST /jobs/{job_id}/apply - Apply to job (student, once per job)
"""

import logging
from typing import List

from fastapi import APIRouter, HTTPException, Depends
from fastapi.responses import JSONResponse

from app.core.auth import get_current_student, get_current_startup
from app.core.identity import StudentIdentity, StartupIdentity
from app.services.job_service import JobError, get_job_service
from app.schemas.schemas import JobCreate, JobUpdate, TagCreate, MessageResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/jobs", tags=["Jobs"])


@router.get("", response_model=List[dict])
async def list_jobs():
    """All job postings, newest first."""
    try:
        return get_job_service().list_jobs()
    except Exception:
        logger.exception("Error fetching jobs")
        return JSONResponse(status_code=500, content={"error": "Failed to fetch jobs"})


@router.get("/tags", response_model=List[dict])
async def list_tags():
    return get_job_service().list_tags()


@router.post("/tags", status_code=201)
async def create_tag(data: TagCreate, startup: StartupIdentity = Depends(get_current_startup)):
    """Create a tag, or return the existing tag with that name."""
    return get_job_service().create_tag(data.name)


@router.post("", status_code=201)
async def create_job(data: JobCreate, startup: StartupIdentity = Depends(get_current_startup)):
    """Create job posting with optional tags."""
    fields = data.model_dump(exclude={"tag_ids"})
    try:
        job_id = get_job_service().create_job(startup.user_id, fields, data.tag_ids)
    except JobError as e:
        raise HTTPException(status_code=e.status, detail=e.message)
    return get_job_service().get_job(job_id)


@router.get("/{job_id}")
async def get_job(job_id: str):
    """Get job details with company ({name, description, logo_url}) and tags."""
    job = get_job_service().get_job(job_id)
    if not job:
        raise HTTPException(status_code=404, detail="Job not found")
    return job


@router.put("/{job_id}", response_model=MessageResponse)
async def update_job(job_id: str, data: JobUpdate, startup: StartupIdentity = Depends(get_current_startup)):
    """Update job. Only the startup that posted it may edit it."""
    fields = data.model_dump(exclude_unset=True, exclude={"tag_ids"})
    try:
        updated = get_job_service().update_job(job_id, startup.user_id, fields, data.tag_ids)
    except JobError as e:
        raise HTTPException(status_code=e.status, detail=e.message)

    if not updated:
        raise HTTPException(status_code=404, detail="Job not found")
    return MessageResponse(message="Job updated successfully")


@router.post("/{job_id}/apply", response_model=MessageResponse, status_code=201)
async def apply_to_job(job_id: str, student: StudentIdentity = Depends(get_current_student)):
    """
    Apply to a job.

    The application records the student's name, session email and resume URL.
    """
    try:
        get_job_service().apply(job_id, student.profile, student.session.user.email)
    except JobError as e:
        raise HTTPException(status_code=e.status, detail=e.message)
    return MessageResponse(message="Application submitted successfully")
