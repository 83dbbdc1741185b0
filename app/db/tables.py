"""
Relational store schema.

Tables are declared with SQLAlchemy Core so the same DDL runs on PostgreSQL
(production) and SQLite (tests). Queries elsewhere use raw SQL via text().

Tables:
- users, auth_sessions     identity provider records
- students, companies      profile rows keyed 1:1 by user id
- jobs, job_tags, job_tag_mappings, applications
- blog_posts, blog_categories, blog_post_categories
- admins                   admin allow-list
"""

from sqlalchemy import (
    MetaData, Table, Column, String, Text, Integer, Boolean, DateTime, JSON,
    ForeignKey, UniqueConstraint, Index, func, text
)

from app.db.postgres import engine

metadata = MetaData()


def _timestamps():
    return [
        Column("created_at", DateTime, nullable=False, server_default=func.now()),
        Column("updated_at", DateTime, nullable=False, server_default=func.now()),
    ]


# ============================================================
# IDENTITY PROVIDER
# ============================================================

users = Table(
    "users", metadata,
    Column("id", String(36), primary_key=True),
    Column("email", String(320), nullable=False, unique=True),
    Column("password_hash", String(255), nullable=False),
    Column("user_metadata", JSON, nullable=False),
    # Bumped on every metadata write, used for compare-and-set updates
    Column("metadata_version", Integer, nullable=False, server_default=text("0")),
    *_timestamps(),
)

auth_sessions = Table(
    "auth_sessions", metadata,
    Column("id", String(36), primary_key=True),
    Column("user_id", String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    Column("issued_at", String(32), nullable=False),
    Column("revoked", Boolean, nullable=False, server_default=text("FALSE")),
    Index("ix_auth_sessions_user_issued", "user_id", "issued_at"),
)

admins = Table(
    "admins", metadata,
    Column("id", String(36), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
)


# ============================================================
# PROFILES
# ============================================================

students = Table(
    "students", metadata,
    Column("id", String(36), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("email", String(320)),
    Column("first_name", String(100)),
    Column("last_name", String(100)),
    Column("university", String(200)),
    Column("major", String(200)),
    Column("graduation_year", Integer),
    Column("intro", Text),
    Column("github_profile", String(500)),
    Column("linkedin_profile", String(500)),
    Column("portfolio", String(500)),
    Column("availability", String(100)),
    Column("profile_visibility", Boolean, nullable=False, server_default=text("TRUE")),
    Column("resume", String(1024)),
    Column("skills", JSON),
    *_timestamps(),
)

companies = Table(
    "companies", metadata,
    Column("id", String(36), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("name", String(200)),
    Column("description", Text),
    Column("website_url", String(500)),
    Column("logo_url", String(1024)),
    *_timestamps(),
)


# ============================================================
# JOBS & APPLICATIONS
# ============================================================

jobs = Table(
    "jobs", metadata,
    Column("id", String(36), primary_key=True),
    Column("company_id", String(36), ForeignKey("companies.id", ondelete="CASCADE"), nullable=False),
    Column("title", String(200), nullable=False),
    Column("description", Text),
    Column("location", String(200)),
    Column("employment_type", String(50)),
    Column("requirements", Text),
    Column("responsibilities", Text),
    Column("is_active", Boolean, nullable=False, server_default=text("TRUE")),
    *_timestamps(),
    Index("ix_jobs_company_active", "company_id", "is_active"),
)

job_tags = Table(
    "job_tags", metadata,
    Column("id", String(36), primary_key=True),
    Column("name", String(100), nullable=False, unique=True),
)

job_tag_mappings = Table(
    "job_tag_mappings", metadata,
    Column("job_id", String(36), ForeignKey("jobs.id", ondelete="CASCADE"), primary_key=True),
    Column("tag_id", String(36), ForeignKey("job_tags.id", ondelete="CASCADE"), primary_key=True),
)

applications = Table(
    "applications", metadata,
    Column("id", String(36), primary_key=True),
    Column("job_id", String(36), ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False),
    Column("company_id", String(36), ForeignKey("companies.id", ondelete="CASCADE"), nullable=False),
    Column("student_id", String(36), ForeignKey("students.id", ondelete="CASCADE"), nullable=False),
    Column("applicant_name", String(200)),
    Column("applicant_email", String(320)),
    Column("resume_url", String(1024)),
    Column("created_at", DateTime, nullable=False, server_default=func.now()),
    UniqueConstraint("job_id", "student_id", name="uq_applications_job_student"),
)


# ============================================================
# BLOG
# ============================================================

blog_posts = Table(
    "blog_posts", metadata,
    Column("id", String(36), primary_key=True),
    Column("title", String(300), nullable=False),
    Column("slug", String(300), nullable=False, unique=True),
    Column("summary", Text),
    Column("content", Text),
    Column("featured_image_url", String(1024)),
    Column("author", String(200)),
    Column("author_image_url", String(1024)),
    Column("author_title", String(200)),
    Column("is_published", Boolean, nullable=False, server_default=text("FALSE")),
    Column("is_featured", Boolean, nullable=False, server_default=text("FALSE")),
    Column("published_at", DateTime),
    *_timestamps(),
    # At most one featured post
    Index(
        "uq_blog_posts_single_featured", "is_featured", unique=True,
        postgresql_where=text("is_featured"),
        sqlite_where=text("is_featured"),
    ),
)

blog_categories = Table(
    "blog_categories", metadata,
    Column("id", String(36), primary_key=True),
    Column("name", String(100), nullable=False),
    Column("slug", String(100), nullable=False, unique=True),
)

blog_post_categories = Table(
    "blog_post_categories", metadata,
    Column("post_id", String(36), ForeignKey("blog_posts.id", ondelete="CASCADE"), primary_key=True),
    Column("category_id", String(36), ForeignKey("blog_categories.id", ondelete="CASCADE"), primary_key=True),
)


def init_db() -> None:
    """Create all tables that do not exist yet."""
    metadata.create_all(bind=engine)
