"""
Profile Service - student and company rows keyed 1:1 by user id.

Profile rows are created lazily when a role is first assigned. Creation is
an upsert on the primary key, so repeating it never produces a second row.
"""

import json
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import text

from app.core.identity import Role
from app.db.postgres import get_db_session, fetch_one, rows_to_dicts, dump_json, load_json

logger = logging.getLogger(__name__)

STUDENT_FIELDS = [
    "first_name", "last_name", "university", "major", "graduation_year", "intro",
    "github_profile", "linkedin_profile", "portfolio", "availability",
    "profile_visibility", "resume", "skills"
]

COMPANY_FIELDS = ["name", "description", "website_url", "logo_url"]


def parse_skills(value: Any) -> List[str]:
    """
    Normalise a stored skills value into a list of strings.

    Accepts a list, a JSON-encoded list, or a comma-separated string.
    """
    if value is None or value == "":
        return []
    if isinstance(value, str):
        try:
            decoded = json.loads(value)
        except ValueError:
            decoded = value.split(",")
        if isinstance(decoded, list):
            value = decoded
        elif isinstance(decoded, str) and decoded.strip():
            value = [decoded]
        else:
            return []
    if not isinstance(value, list):
        return []

    skills = []
    for item in value:
        if item is None:
            continue
        skill = str(item).strip()
        if skill and skill not in skills:
            skills.append(skill)
    return skills


def _student_row(row: Optional[dict]) -> Optional[dict]:
    if row is None:
        return None
    row["skills"] = parse_skills(load_json(row.get("skills"), default=row.get("skills")))
    return row


class ProfileService:
    """Reads and writes rows in the students/companies tables."""

    def ensure_profile(self, role: Role, user_id: str, email: Optional[str] = None, db=None) -> None:
        """Create the empty profile row for `role` if it does not exist."""
        if db is None:
            with get_db_session() as db:
                return self.ensure_profile(role, user_id, email, db=db)

        if role == Role.student:
            db.execute(
                text("""
                    INSERT INTO students (id, email) VALUES (:id, :email)
                    ON CONFLICT (id) DO NOTHING
                """),
                {"id": user_id, "email": email}
            )
        else:
            db.execute(
                text("INSERT INTO companies (id) VALUES (:id) ON CONFLICT (id) DO NOTHING"),
                {"id": user_id}
            )
        logger.info("Ensured %s profile row for %s", role.value, user_id)

    def get_profile(self, role: Role, user_id: str) -> Optional[dict]:
        if role == Role.student:
            return self.get_student(user_id)
        return self.get_company(user_id)

    # ============================================================
    # STUDENTS
    # ============================================================

    def get_student(self, user_id: str) -> Optional[dict]:
        return _student_row(fetch_one("SELECT * FROM students WHERE id = :id", {"id": user_id}))

    def update_student(self, user_id: str, fields: Dict[str, Any], db=None) -> bool:
        """Update the given student columns. Returns False if no row matched."""
        if db is None:
            with get_db_session() as db:
                return self.update_student(user_id, fields, db=db)

        updates = []
        params = {"id": user_id}

        for field in STUDENT_FIELDS:
            if field not in fields:
                continue
            value = fields[field]
            if field == "skills":
                value = dump_json(parse_skills(value))
            updates.append(f"{field} = :{field}")
            params[field] = value

        if not updates:
            return db.execute(text("SELECT id FROM students WHERE id = :id"), {"id": user_id}).fetchone() is not None

        result = db.execute(
            text(f"UPDATE students SET {', '.join(updates)}, updated_at = CURRENT_TIMESTAMP WHERE id = :id"),
            params
        )
        return result.rowcount > 0

    def get_student_for_company(self, student_id: str, company_id: str) -> Optional[dict]:
        """
        A student's profile as seen by a startup, with the applications the
        student sent to that startup. None unless such an application exists.
        """
        with get_db_session() as db:
            result = db.execute(
                text("""
                    SELECT a.id, a.job_id, j.title AS job_title, a.created_at
                    FROM applications a JOIN jobs j ON a.job_id = j.id
                    WHERE a.student_id = :sid AND a.company_id = :cid
                    ORDER BY a.created_at DESC
                """),
                {"sid": student_id, "cid": company_id}
            )
            applications = rows_to_dicts(result)

        if not applications:
            return None

        student = self.get_student(student_id)
        if student is None:
            return None
        student["applications"] = applications
        return student

    # ============================================================
    # COMPANIES
    # ============================================================

    def get_company(self, user_id: str) -> Optional[dict]:
        return fetch_one("SELECT * FROM companies WHERE id = :id", {"id": user_id})

    def update_company(self, user_id: str, fields: Dict[str, Any], db=None) -> bool:
        """Update the given company columns. Returns False if no row matched."""
        if db is None:
            with get_db_session() as db:
                return self.update_company(user_id, fields, db=db)

        updates = []
        params = {"id": user_id}

        for field in COMPANY_FIELDS:
            if field in fields:
                updates.append(f"{field} = :{field}")
                params[field] = fields[field]

        if not updates:
            return db.execute(text("SELECT id FROM companies WHERE id = :id"), {"id": user_id}).fetchone() is not None

        result = db.execute(
            text(f"UPDATE companies SET {', '.join(updates)}, updated_at = CURRENT_TIMESTAMP WHERE id = :id"),
            params
        )
        return result.rowcount > 0

    def list_companies(self) -> List[dict]:
        with get_db_session() as db:
            result = db.execute(
                text("""
                    SELECT id, name, description, website_url, logo_url, created_at
                    FROM companies WHERE name IS NOT NULL ORDER BY name
                """)
            )
            return rows_to_dicts(result)


# ============================================================
# CONVENIENCE FUNCTIONS
# ============================================================

def get_profile_service() -> ProfileService:
    """Get profile service instance."""
    return ProfileService()
