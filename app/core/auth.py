"""
Authentication dependencies.

The session is passed explicitly to every route through FastAPI
dependencies; there is no ambient "current user".

Provides:
- get_optional_session / get_current_session   token -> Session
- get_optional_identity / get_current_identity  Session -> UserIdentity
- get_current_student / get_current_startup     role-restricted identities
- require_admin                                 admin allow-list check
- page_guard(path)                              protected-page resolution

Tokens are read from the Authorization header (Bearer) or, failing that,
from the session cookie.
"""

import logging
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from app.core.config import get_settings
from app.core.identity import Session, StudentIdentity, StartupIdentity, UserIdentity
from app.core.resolver import Failure, Redirect, resolve_page
from app.services.identity_provider import get_identity_provider
from app.services.onboarding_service import get_onboarding_service
from app.services.blog_service import get_blog_service

logger = logging.getLogger(__name__)

settings = get_settings()

# Bearer token extractor, optional so cookie sessions still work
bearer_scheme = HTTPBearer(auto_error=False)


class PageRedirect(Exception):
    """Raised by page guards; rendered as a 302 by the app."""

    def __init__(self, location: str):
        super().__init__(location)
        self.location = location


def get_session_token(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)
) -> Optional[str]:
    if credentials and credentials.credentials:
        return credentials.credentials
    return request.cookies.get(settings.session_cookie_name)


async def get_optional_session(token: Optional[str] = Depends(get_session_token)) -> Optional[Session]:
    """FastAPI dependency - current session, or None when signed out."""
    return get_identity_provider().get_session(token)


async def get_current_session(session: Optional[Session] = Depends(get_optional_session)) -> Session:
    """
    FastAPI dependency - Get current authenticated session.

    Usage:
        @app.get("/protected")
        async def route(session: Session = Depends(get_current_session)):
            return session.user
    """
    if session is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired session",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return session


async def get_optional_identity(
    session: Optional[Session] = Depends(get_optional_session)
) -> Optional[UserIdentity]:
    return get_onboarding_service().load(session)


async def get_current_identity(session: Session = Depends(get_current_session)) -> UserIdentity:
    return get_onboarding_service().load(session)


async def get_current_student(identity: UserIdentity = Depends(get_current_identity)) -> StudentIdentity:
    """Dependency - Require student role and an existing student row."""
    if not isinstance(identity, StudentIdentity):
        raise HTTPException(status_code=403, detail="Students only")
    if identity.profile is None:
        raise HTTPException(status_code=404, detail="Student profile not found. Complete onboarding first.")
    return identity


async def get_current_startup(identity: UserIdentity = Depends(get_current_identity)) -> StartupIdentity:
    """Dependency - Require startup role and an existing company row."""
    if not isinstance(identity, StartupIdentity):
        raise HTTPException(status_code=403, detail="Startups only")
    if identity.profile is None:
        raise HTTPException(status_code=404, detail="Company profile not found. Complete onboarding first.")
    return identity


async def require_admin(session: Session = Depends(get_current_session)) -> Session:
    """Dependency - Require membership in the admin allow-list."""
    if not get_blog_service().is_admin(session.user.id):
        logger.info("Rejected admin action for user %s", session.user.id)
        raise HTTPException(status_code=403, detail="Admins only")
    return session


def page_guard(path: str):
    """
    Dependency factory - resolve a protected page before the route runs.

    Redirect outcomes raise PageRedirect; Failure outcomes raise a 400.
    """
    async def guard(identity: Optional[UserIdentity] = Depends(get_optional_identity)) -> UserIdentity:
        outcome = resolve_page(identity, path)
        if isinstance(outcome, Redirect):
            raise PageRedirect(outcome.location)
        if isinstance(outcome, Failure):
            raise HTTPException(status_code=400, detail=outcome.message)
        return identity

    return guard
