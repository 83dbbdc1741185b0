"""
Onboarding Routes

GET /onboarding - Onboarding form state (or redirect when not applicable)
POST /onboarding - Submit names / company name and finish onboarding
"""

from fastapi import APIRouter, HTTPException, Depends
from fastapi.responses import RedirectResponse

from app.core.auth import get_current_identity, page_guard
from app.core.identity import Role, UserIdentity
from app.core.resolver import ONBOARDING_PATH, RATE_LIMIT_MESSAGE, is_rate_limited, profile_path
from app.services.identity_provider import IdentityProviderError
from app.services.onboarding_service import OnboardingError, get_onboarding_service
from app.schemas.schemas import OnboardingRequest, OnboardingState

router = APIRouter(prefix="/onboarding", tags=["Onboarding"])

REQUIRED_FIELDS = {
    Role.student: ["first_name", "last_name"],
    Role.startup: ["company_name"],
}


@router.get("", response_model=OnboardingState)
async def get_onboarding(identity: UserIdentity = Depends(page_guard(ONBOARDING_PATH))):
    """
    Onboarding form for a user whose onboarding has not started.

    Signed-out users go to /login; onboarded users go to their profile.
    """
    return OnboardingState(
        user_id=identity.user_id,
        role=identity.role.value,
        required_fields=REQUIRED_FIELDS[identity.role]
    )


@router.post("")
async def submit_onboarding(data: OnboardingRequest, identity: UserIdentity = Depends(get_current_identity)):
    """Save the onboarding form, mark onboarding complete, redirect to the profile."""
    try:
        session = get_onboarding_service().complete(identity, data.model_dump())
    except OnboardingError as e:
        raise HTTPException(status_code=e.status, detail=e.message)
    except IdentityProviderError as e:
        if is_rate_limited(e):
            raise HTTPException(status_code=429, detail=RATE_LIMIT_MESSAGE)
        raise HTTPException(status_code=e.status, detail=e.message)

    return RedirectResponse(url=profile_path(session.user.role), status_code=303)
