"""
Pydantic Schemas - Request/Response Validation

All API request and response schemas in one file for simplicity.
"""

from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import Optional, List, Any
from datetime import datetime

from app.services.profile_service import parse_skills


# ============================================================
# AUTH SCHEMAS
# ============================================================

class SignupRequest(BaseModel):
    # Optional so a missing field yields "Missing required fields" from the route
    email: Optional[EmailStr] = None
    password: Optional[str] = None
    role: Optional[str] = None

class LoginRequest(BaseModel):
    email: Optional[EmailStr] = None
    password: Optional[str] = None

class UserResponse(BaseModel):
    id: str
    email: str
    role: Optional[str] = None
    onboarding_status: Optional[str] = None

class AuthResponse(BaseModel):
    message: str
    user: UserResponse
    access_token: Optional[str] = None
    token_type: str = "bearer"
    redirect: Optional[str] = None

class MeResponse(BaseModel):
    user: UserResponse
    identity: str
    is_admin: bool = False
    profile: Optional[dict] = None

class ResolveResponse(BaseModel):
    action: str
    location: Optional[str] = None
    message: Optional[str] = None


# ============================================================
# ONBOARDING SCHEMAS
# ============================================================

class OnboardingRequest(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    company_name: Optional[str] = None

class OnboardingState(BaseModel):
    user_id: str
    role: str
    required_fields: List[str]


# ============================================================
# STUDENT SCHEMAS
# ============================================================

class StudentUpdate(BaseModel):
    first_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)
    university: Optional[str] = None
    major: Optional[str] = None
    graduation_year: Optional[int] = Field(None, ge=1900, le=2100)
    intro: Optional[str] = None
    github_profile: Optional[str] = None
    linkedin_profile: Optional[str] = None
    portfolio: Optional[str] = None
    availability: Optional[str] = None
    profile_visibility: Optional[bool] = None
    skills: Optional[List[str]] = None

    @field_validator("skills", mode="before")
    @classmethod
    def normalise_skills(cls, value: Any) -> Optional[List[str]]:
        if value is None:
            return None
        return parse_skills(value)

class StudentResponse(BaseModel):
    id: str
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    university: Optional[str] = None
    major: Optional[str] = None
    graduation_year: Optional[int] = None
    intro: Optional[str] = None
    github_profile: Optional[str] = None
    linkedin_profile: Optional[str] = None
    portfolio: Optional[str] = None
    availability: Optional[str] = None
    profile_visibility: bool = True
    resume: Optional[str] = None
    skills: List[str] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

class ResumeUploadResponse(BaseModel):
    success: bool
    message: str
    resume_url: str


# ============================================================
# STARTUP SCHEMAS
# ============================================================

class CompanyUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    website_url: Optional[str] = None

class CompanyResponse(BaseModel):
    id: str
    name: Optional[str] = None
    description: Optional[str] = None
    website_url: Optional[str] = None
    logo_url: Optional[str] = None
    created_at: Optional[datetime] = None

class LogoUploadResponse(BaseModel):
    success: bool
    message: str
    logo_url: str


# ============================================================
# JOB SCHEMAS
# ============================================================

class JobCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    location: Optional[str] = None
    employment_type: Optional[str] = None
    requirements: Optional[str] = None
    responsibilities: Optional[str] = None
    is_active: bool = True
    tag_ids: List[str] = []

class JobUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    location: Optional[str] = None
    employment_type: Optional[str] = None
    requirements: Optional[str] = None
    responsibilities: Optional[str] = None
    is_active: Optional[bool] = None
    tag_ids: Optional[List[str]] = None

class TagCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)

class ProjectResponse(BaseModel):
    id: str
    title: str
    company: Optional[str] = None
    type: Optional[str] = None


# ============================================================
# BLOG SCHEMAS
# ============================================================

class BlogPostWrite(BaseModel):
    """Create/update body. Required fields are checked by the blog service."""
    title: Optional[str] = None
    slug: Optional[str] = None
    summary: Optional[str] = None
    content: Optional[str] = None
    featured_image_url: Optional[str] = None
    author: Optional[str] = None
    author_image_url: Optional[str] = None
    author_title: Optional[str] = None
    is_published: bool = False
    is_featured: bool = False
    category_ids: Optional[List[str]] = None

class BlogImageResponse(BaseModel):
    success: bool
    url: str


# ============================================================
# GENERIC SCHEMAS
# ============================================================

class MessageResponse(BaseModel):
    message: str
    success: bool = True

class ErrorResponse(BaseModel):
    error: str
