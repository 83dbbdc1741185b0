"""
Student Routes

GET /students/profile - Get own profile
PUT /students/profile - Update profile
POST /students/resume - Upload resume (PDF/DOC/DOCX)
GET /students/applications - Get my applications
GET /students/dashboard - Active jobs and my applications
GET /students/{student_id} - Applicant profile, for the startup they applied to
"""

import logging
from typing import List

from fastapi import APIRouter, HTTPException, Depends, UploadFile, File

from app.core.auth import get_current_student, get_current_startup, page_guard
from app.core.identity import StudentIdentity, StartupIdentity, UserIdentity
from app.utils.file_upload import read_upload
from app.services.profile_service import get_profile_service
from app.services.job_service import get_job_service
from app.services.storage_service import StorageError, get_blob_store, resume_path
from app.schemas.schemas import StudentUpdate, StudentResponse, ResumeUploadResponse, MessageResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/students", tags=["Students"])


@router.get("/profile", response_model=StudentResponse)
async def get_profile(student: StudentIdentity = Depends(get_current_student)):
    """Get current student's profile with skills."""
    return StudentResponse(**student.profile)


@router.put("/profile", response_model=MessageResponse)
async def update_profile(data: StudentUpdate, student: StudentIdentity = Depends(get_current_student)):
    """Update student profile. Only provided fields are updated."""
    fields = data.model_dump(exclude_unset=True)
    if not fields:
        raise HTTPException(status_code=400, detail="No fields to update")

    get_profile_service().update_student(student.user_id, fields)
    return MessageResponse(message="Profile updated successfully")


@router.post("/resume", response_model=ResumeUploadResponse)
async def upload_resume(
    file: UploadFile = File(...),
    student: StudentIdentity = Depends(get_current_student),
    store=Depends(get_blob_store)
):
    """
    Upload resume to the resume bucket and store its public URL on the profile.

    Supported formats: PDF, DOC, DOCX
    """
    content, content_type = await read_upload(file, "resume")
    path = resume_path(student.user_id, file.filename)

    try:
        store.upload("resume", path, content, content_type)
    except StorageError as e:
        raise HTTPException(status_code=e.status, detail=e.message)

    url = store.get_public_url("resume", path)
    get_profile_service().update_student(student.user_id, {"resume": url})
    logger.info("Student %s uploaded resume %s", student.user_id, path)

    return ResumeUploadResponse(success=True, message="Resume uploaded successfully", resume_url=url)


@router.get("/applications", response_model=List[dict])
async def get_applications(student: StudentIdentity = Depends(get_current_student)):
    """Get all applications submitted by current student."""
    return get_job_service().list_student_applications(student.user_id)


@router.get("/dashboard")
async def get_dashboard(identity: UserIdentity = Depends(page_guard("/student/dashboard"))):
    """
    Student dashboard: profile, open jobs and own applications.

    Runs the protected-page resolver first, so startups and users still
    onboarding are redirected instead.
    """
    student = await get_current_student(identity)
    jobs = get_job_service()
    return {
        "profile": student.profile,
        "jobs": jobs.list_jobs(active_only=True),
        "applications": jobs.list_student_applications(student.user_id),
    }


@router.get("/{student_id}")
async def get_applicant(student_id: str, startup: StartupIdentity = Depends(get_current_startup)):
    """
    A student's profile as seen by a startup.

    Only available when the student applied to one of the startup's jobs.
    """
    student = get_profile_service().get_student_for_company(student_id, startup.user_id)
    if student is None:
        raise HTTPException(status_code=404, detail="Student not found")
    return student
