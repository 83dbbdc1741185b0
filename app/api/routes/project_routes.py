"""
Project Routes

GET /projects - Active jobs as {id, title, company, type}
"""

from fastapi import APIRouter
from typing import List

from app.services.job_service import get_job_service
from app.schemas.schemas import ProjectResponse

router = APIRouter(prefix="/projects", tags=["Projects"])


@router.get("", response_model=List[ProjectResponse])
async def list_projects():
    return get_job_service().list_projects()
