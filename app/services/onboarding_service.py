"""
Onboarding Service - role assignment and onboarding completion.

Role assignment (first sign-in after signup, role taken from ?role=):
1. write role + onboarding_status=not_started, only if role is still unset
2. re-read the user to confirm the write
3. upsert the empty profile row for the confirmed role
Each step runs only after the previous one succeeded, so the onboarding
page never sees a session without a role. Repeating the sequence with the
same inputs changes nothing.

Onboarding completion, one transaction:
1. write the profile fields (names for students, company name for startups)
2. flip onboarding_status to complete
A failed status write leaves the profile fields untouched.
"""

import logging
from typing import Optional

from app.core.identity import (
    OnboardingStatus, Role, Session, UserIdentity, RoleUnset, load_identity
)
from app.db.postgres import get_db_session
from app.services.identity_provider import (
    IdentityProvider, IdentityProviderError, get_identity_provider
)
from app.services.profile_service import ProfileService, get_profile_service

logger = logging.getLogger(__name__)


class OnboardingError(Exception):
    """Onboarding request that cannot be applied."""

    def __init__(self, message: str, status: int = 400):
        super().__init__(message)
        self.message = message
        self.status = status


class OnboardingService:

    def __init__(
        self,
        identity_provider: Optional[IdentityProvider] = None,
        profiles: Optional[ProfileService] = None
    ):
        self.identity_provider = identity_provider or get_identity_provider()
        self.profiles = profiles or get_profile_service()

    def load(self, session: Optional[Session]) -> Optional[UserIdentity]:
        """Resolve a session into a UserIdentity, including its profile row."""
        if session is None:
            return None
        role = session.user.role
        profile = self.profiles.get_profile(role, session.user.id) if role else None
        return load_identity(session, profile)

    def assign_role(self, session: Session, role: Role) -> Session:
        """
        Assign `role` to a role-less user and create its profile row.

        Returns the refreshed session. If another request already assigned a
        role, that role wins and its profile row is ensured instead.
        """
        user_id = session.user.id
        self.identity_provider.update_user(
            user_id,
            {"role": role.value, "onboarding_status": OnboardingStatus.not_started.value},
            only_if_unset="role"
        )

        refreshed = self.identity_provider.refresh_session(session)
        confirmed = refreshed.user.role
        if confirmed is None:
            raise IdentityProviderError("Role assignment was not confirmed", status=500)
        if confirmed != role:
            logger.warning("User %s already has role %s, ignoring %s", user_id, confirmed.value, role.value)

        self.profiles.ensure_profile(confirmed, user_id, email=refreshed.user.email)
        logger.info("Assigned role %s to user %s", confirmed.value, user_id)
        return refreshed

    def complete(self, identity: UserIdentity, fields: dict) -> Session:
        """
        Submit the onboarding form for `identity`.

        Raises OnboardingError for a role-less user, an already onboarded
        user, or missing required fields.
        """
        if isinstance(identity, RoleUnset):
            raise OnboardingError("Role not found", status=400)
        if identity.onboarding_complete:
            raise OnboardingError("Onboarding already completed", status=409)

        user_id = identity.user_id
        if identity.role == Role.student:
            first_name = (fields.get("first_name") or "").strip()
            last_name = (fields.get("last_name") or "").strip()
            if not first_name or not last_name:
                raise OnboardingError("First name and last name are required")
        else:
            company_name = (fields.get("company_name") or "").strip()
            if not company_name:
                raise OnboardingError("Company name is required")

        with get_db_session() as db:
            if identity.role == Role.student:
                # Row may be missing for users created before profile upserts existed
                self.profiles.ensure_profile(Role.student, user_id, email=identity.session.user.email, db=db)
                self.profiles.update_student(user_id, {"first_name": first_name, "last_name": last_name}, db=db)
            else:
                self.profiles.ensure_profile(Role.startup, user_id, db=db)
                self.profiles.update_company(user_id, {"name": company_name}, db=db)

            self.identity_provider.update_user(
                user_id, {"onboarding_status": OnboardingStatus.complete.value}, db=db
            )
        logger.info("Completed onboarding for %s user %s", identity.role.value, user_id)
        return self.identity_provider.refresh_session(identity.session)


# ============================================================
# CONVENIENCE FUNCTIONS
# ============================================================

def get_onboarding_service() -> OnboardingService:
    """Get onboarding service instance."""
    return OnboardingService()
