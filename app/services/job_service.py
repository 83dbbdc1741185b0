"""
Job Service - job postings, tags and applications.

Jobs belong to a company (startup user id). Applications link a job and a
student; a student can apply to a job once.
"""

import logging
import uuid
from typing import Any, Dict, List, Optional

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError

from app.db.postgres import get_db_session, execute_raw_sql, fetch_one, rows_to_dicts

logger = logging.getLogger(__name__)

JOB_FIELDS = [
    "title", "description", "location", "employment_type",
    "requirements", "responsibilities", "is_active"
]

JOB_COLUMNS = """
    j.id, j.company_id, j.title, j.description, j.location, j.employment_type,
    j.requirements, j.responsibilities, j.is_active, j.created_at, j.updated_at
"""


class JobError(Exception):
    """Job request that cannot be applied."""

    def __init__(self, message: str, status: int = 400):
        super().__init__(message)
        self.message = message
        self.status = status


class ApplicationError(JobError):
    """Application that cannot be submitted."""


def _check_tags(db, tag_ids: List[str]) -> None:
    for tag_id in tag_ids:
        found = db.execute(text("SELECT id FROM job_tags WHERE id = :tid"), {"tid": tag_id}).fetchone()
        if not found:
            raise JobError(f"Unknown tag: {tag_id}")


def _tags_for_jobs(db, job_ids: List[str]) -> Dict[str, List[dict]]:
    """Map job id -> [{id, name}] for the given jobs."""
    tags = {job_id: [] for job_id in job_ids}
    for job_id in job_ids:
        result = db.execute(
            text("""
                SELECT t.id, t.name FROM job_tag_mappings m
                JOIN job_tags t ON m.tag_id = t.id
                WHERE m.job_id = :jid ORDER BY t.name
            """),
            {"jid": job_id}
        )
        tags[job_id] = rows_to_dicts(result)
    return tags


class JobService:

    # ============================================================
    # JOBS
    # ============================================================

    def list_jobs(self, active_only: bool = False) -> List[dict]:
        """Job postings, newest first."""
        sql = f"SELECT {JOB_COLUMNS} FROM jobs j"
        if active_only:
            sql += " WHERE j.is_active = TRUE"
        sql += " ORDER BY j.created_at DESC"
        return execute_raw_sql(sql)

    def list_company_jobs(self, company_id: str, active_only: bool = True) -> List[dict]:
        sql = f"SELECT {JOB_COLUMNS} FROM jobs j WHERE j.company_id = :cid"
        if active_only:
            sql += " AND j.is_active = TRUE"
        sql += " ORDER BY j.created_at DESC"
        return execute_raw_sql(sql, {"cid": company_id})

    def list_projects(self) -> List[dict]:
        """Active jobs projected as {id, title, company, type}."""
        return execute_raw_sql("""
            SELECT j.id, j.title, c.name AS company, j.employment_type AS type
            FROM jobs j JOIN companies c ON j.company_id = c.id
            WHERE j.is_active = TRUE
            ORDER BY j.created_at DESC
        """)

    def get_job(self, job_id: str) -> Optional[dict]:
        """A job with its company ({name, description, logo_url}) and tags."""
        with get_db_session() as db:
            result = db.execute(
                text(f"""
                    SELECT {JOB_COLUMNS},
                           c.name AS company_name, c.description AS company_description,
                           c.logo_url AS company_logo_url
                    FROM jobs j JOIN companies c ON j.company_id = c.id
                    WHERE j.id = :jid
                """),
                {"jid": job_id}
            )
            rows = rows_to_dicts(result)
            if not rows:
                return None
            job = rows[0]
            job["tags"] = _tags_for_jobs(db, [job_id])[job_id]

        job["company"] = {
            "name": job.pop("company_name"),
            "description": job.pop("company_description"),
            "logo_url": job.pop("company_logo_url"),
        }
        return job

    def create_job(self, company_id: str, fields: Dict[str, Any], tag_ids: List[str]) -> str:
        """Insert a job and its tag mappings in one transaction. Returns the job id."""
        job_id = str(uuid.uuid4())
        with get_db_session() as db:
            db.execute(
                text("""
                    INSERT INTO jobs (id, company_id, title, description, location, employment_type,
                        requirements, responsibilities, is_active)
                    VALUES (:id, :company_id, :title, :description, :location, :employment_type,
                        :requirements, :responsibilities, :is_active)
                """),
                {
                    "id": job_id,
                    "company_id": company_id,
                    "title": fields["title"],
                    "description": fields.get("description"),
                    "location": fields.get("location"),
                    "employment_type": fields.get("employment_type"),
                    "requirements": fields.get("requirements"),
                    "responsibilities": fields.get("responsibilities"),
                    "is_active": fields.get("is_active", True)
                }
            )
            _check_tags(db, tag_ids)
            for tag_id in dict.fromkeys(tag_ids):
                db.execute(
                    text("INSERT INTO job_tag_mappings (job_id, tag_id) VALUES (:jid, :tid)"),
                    {"jid": job_id, "tid": tag_id}
                )

        logger.info("Company %s posted job %s", company_id, job_id)
        return job_id

    def update_job(
        self,
        job_id: str,
        company_id: str,
        fields: Dict[str, Any],
        tag_ids: Optional[List[str]] = None
    ) -> bool:
        """Update a job owned by `company_id`. Returns False if not found or not owned."""
        updates = []
        params = {"jid": job_id, "cid": company_id}
        for field in JOB_FIELDS:
            if field in fields:
                updates.append(f"{field} = :{field}")
                params[field] = fields[field]

        with get_db_session() as db:
            owned = db.execute(
                text("SELECT id FROM jobs WHERE id = :jid AND company_id = :cid"),
                params
            ).fetchone()
            if not owned:
                return False

            if updates:
                db.execute(
                    text(f"""
                        UPDATE jobs SET {', '.join(updates)}, updated_at = CURRENT_TIMESTAMP
                        WHERE id = :jid AND company_id = :cid
                    """),
                    params
                )
            if tag_ids is not None:
                _check_tags(db, tag_ids)
                db.execute(text("DELETE FROM job_tag_mappings WHERE job_id = :jid"), {"jid": job_id})
                for tag_id in dict.fromkeys(tag_ids):
                    db.execute(
                        text("INSERT INTO job_tag_mappings (job_id, tag_id) VALUES (:jid, :tid)"),
                        {"jid": job_id, "tid": tag_id}
                    )
        return True

    # ============================================================
    # TAGS
    # ============================================================

    def list_tags(self) -> List[dict]:
        return execute_raw_sql("SELECT id, name FROM job_tags ORDER BY name")

    def create_tag(self, name: str) -> dict:
        """Create a tag, or return the existing one with the same name."""
        name = name.strip()
        with get_db_session() as db:
            db.execute(
                text("INSERT INTO job_tags (id, name) VALUES (:id, :name) ON CONFLICT (name) DO NOTHING"),
                {"id": str(uuid.uuid4()), "name": name}
            )
        return fetch_one("SELECT id, name FROM job_tags WHERE name = :name", {"name": name})

    # ============================================================
    # APPLICATIONS
    # ============================================================

    def has_applied(self, job_id: str, student_id: str) -> bool:
        return fetch_one(
            "SELECT id FROM applications WHERE job_id = :jid AND student_id = :sid",
            {"jid": job_id, "sid": student_id}
        ) is not None

    def apply(self, job_id: str, student: dict, email: str) -> str:
        """
        Submit an application for `student` (a students row) to `job_id`.

        Raises ApplicationError if the job is missing or closed, the profile
        lacks a name, or the student already applied.
        """
        job = fetch_one("SELECT id, company_id, is_active FROM jobs WHERE id = :jid", {"jid": job_id})
        if not job:
            raise ApplicationError("Job not found", status=404)
        if not job["is_active"]:
            raise ApplicationError("Job is not accepting applications")
        if not student.get("first_name") or not student.get("last_name"):
            raise ApplicationError(
                "Unable to retrieve your profile information. Please complete your profile before applying."
            )
        if self.has_applied(job_id, student["id"]):
            raise ApplicationError("Already applied to this job")

        application_id = str(uuid.uuid4())
        try:
            with get_db_session() as db:
                db.execute(
                    text("""
                        INSERT INTO applications (id, job_id, company_id, student_id,
                            applicant_name, applicant_email, resume_url)
                        VALUES (:id, :jid, :cid, :sid, :name, :email, :resume)
                    """),
                    {
                        "id": application_id,
                        "jid": job_id,
                        "cid": job["company_id"],
                        "sid": student["id"],
                        "name": f"{student['first_name']} {student['last_name']}",
                        "email": email,
                        "resume": student.get("resume") or ""
                    }
                )
        except IntegrityError:
            # Concurrent duplicate caught by uq_applications_job_student
            raise ApplicationError("Already applied to this job")

        logger.info("Student %s applied to job %s", student["id"], job_id)
        return application_id

    def list_student_applications(self, student_id: str) -> List[dict]:
        return execute_raw_sql("""
            SELECT a.id, a.job_id, j.title AS job_title, a.company_id, c.name AS company_name,
                   a.applicant_name, a.applicant_email, a.resume_url, a.created_at
            FROM applications a
            JOIN jobs j ON a.job_id = j.id
            JOIN companies c ON a.company_id = c.id
            WHERE a.student_id = :sid
            ORDER BY a.created_at DESC
        """, {"sid": student_id})

    def list_company_applications(self, company_id: str) -> List[dict]:
        return execute_raw_sql("""
            SELECT a.id, a.job_id, j.title AS job_title, a.student_id,
                   s.first_name, s.last_name, s.university, s.major,
                   a.applicant_name, a.applicant_email, a.resume_url, a.created_at
            FROM applications a
            JOIN jobs j ON a.job_id = j.id
            JOIN students s ON a.student_id = s.id
            WHERE a.company_id = :cid
            ORDER BY a.created_at DESC
        """, {"cid": company_id})


# ============================================================
# CONVENIENCE FUNCTIONS
# ============================================================

def get_job_service() -> JobService:
    """Get job service instance."""
    return JobService()
