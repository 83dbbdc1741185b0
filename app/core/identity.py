"""
User identity types.

A session carries a generic user record whose `role` and `onboarding_status`
live in a free-form metadata blob. `load_identity` resolves that record once
per request into one of three shapes:

- StudentIdentity(session, profile)
- StartupIdentity(session, profile)
- RoleUnset(session)

Downstream code switches on the identity type instead of probing optional
metadata keys.
"""

from enum import Enum
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, Field


class Role(str, Enum):
    student = "student"
    startup = "startup"


class OnboardingStatus(str, Enum):
    not_started = "not_started"
    complete = "complete"


def parse_role(value: Optional[str]) -> Optional[Role]:
    """Return the Role for a raw string, or None if it is missing or unknown."""
    if not value:
        return None
    try:
        return Role(value.strip().lower())
    except ValueError:
        return None


class SessionUser(BaseModel):
    """User attributes embedded in an identity-provider session."""
    id: str
    email: str
    user_metadata: Dict[str, Any] = Field(default_factory=dict)

    @property
    def role(self) -> Optional[Role]:
        return parse_role(self.user_metadata.get("role"))

    @property
    def onboarding_status(self) -> OnboardingStatus:
        # Only an explicit not_started keeps a user in onboarding
        if self.user_metadata.get("onboarding_status") == OnboardingStatus.not_started.value:
            return OnboardingStatus.not_started
        return OnboardingStatus.complete


class Session(BaseModel):
    access_token: str
    session_id: str
    user: SessionUser


class _RoleIdentity(BaseModel):
    session: Session
    profile: Optional[Dict[str, Any]] = None

    @property
    def user_id(self) -> str:
        return self.session.user.id

    @property
    def onboarding_status(self) -> OnboardingStatus:
        return self.session.user.onboarding_status

    @property
    def onboarding_complete(self) -> bool:
        return self.onboarding_status == OnboardingStatus.complete


class StudentIdentity(_RoleIdentity):
    role: Role = Role.student


class StartupIdentity(_RoleIdentity):
    role: Role = Role.startup


class RoleUnset(BaseModel):
    session: Session
    role: None = None

    @property
    def user_id(self) -> str:
        return self.session.user.id


UserIdentity = Union[StudentIdentity, StartupIdentity, RoleUnset]


def load_identity(session: Session, profile: Optional[Dict[str, Any]] = None) -> UserIdentity:
    """Resolve a session (and its profile row, if any) into a UserIdentity."""
    role = session.user.role
    if role == Role.student:
        return StudentIdentity(session=session, profile=profile)
    if role == Role.startup:
        return StartupIdentity(session=session, profile=profile)
    return RoleUnset(session=session)
