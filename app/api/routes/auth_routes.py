"""
Authentication Routes

POST /auth/signup - Register new user and start a session
POST /auth/login - Login and get session token
POST /auth/logout - Revoke the current session
GET /auth/me - Current user, identity kind and admin flag
GET /auth/callback - Post-authentication role/onboarding resolution
GET /auth/resolve - Protected-page decision as JSON
"""

import json
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse, RedirectResponse

from app.core.config import get_settings
from app.core.auth import (
    get_current_session, get_current_identity, get_optional_identity, get_session_token
)
from app.core.identity import Session, SessionUser, UserIdentity, RoleUnset, parse_role
from app.core.resolver import (
    AssignRole, Failure, Redirect, ONBOARDING_PATH, RATE_LIMIT_MESSAGE,
    is_rate_limited, resolve_callback, resolve_error, resolve_page
)
from app.services.identity_provider import IdentityProviderError, get_identity_provider
from app.services.onboarding_service import get_onboarding_service
from app.services.blog_service import get_blog_service
from app.schemas.schemas import (
    SignupRequest, LoginRequest, AuthResponse, UserResponse, MeResponse,
    ResolveResponse, MessageResponse
)

logger = logging.getLogger(__name__)

settings = get_settings()

router = APIRouter(prefix="/auth", tags=["Authentication"])


def _user_response(user: SessionUser) -> UserResponse:
    return UserResponse(
        id=user.id,
        email=user.email,
        role=user.role.value if user.role else None,
        onboarding_status=user.user_metadata.get("onboarding_status")
    )


def _set_session_cookie(response, session: Session) -> None:
    response.set_cookie(
        settings.session_cookie_name,
        session.access_token,
        httponly=True,
        secure=settings.cookie_secure,
        samesite="lax",
        max_age=settings.jwt_expire_minutes * 60,
        path="/",
    )


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


@router.post("/signup", response_model=AuthResponse)
async def signup(request: SignupRequest):
    """
    Register a new user account and start a session.

    A chosen role is stored right away, through the same write-once path
    /auth/callback uses, and `redirect` then points at /onboarding.
    """
    if not request.email or not request.password:
        return _error("Missing required fields", 400)

    role = parse_role(request.role)
    if request.role and role is None:
        return _error("Invalid role", 400)

    provider = get_identity_provider()
    try:
        user = provider.sign_up(request.email, request.password)
        session = provider.create_session(user)
        if role:
            session = get_onboarding_service().assign_role(session, role)
            user = session.user
    except IdentityProviderError as e:
        if is_rate_limited(e):
            return _error(RATE_LIMIT_MESSAGE, 429)
        return _error(e.message, e.status)
    except Exception:
        logger.exception("Signup error")
        return _error("Internal server error", 500)

    body = AuthResponse(
        message="Signup successful",
        user=_user_response(user),
        access_token=session.access_token,
        redirect=ONBOARDING_PATH if role else None
    )
    response = JSONResponse(status_code=200, content=body.model_dump())
    _set_session_cookie(response, session)

    if settings.legacy_user_cookie:
        # Client-readable user record; never used for authentication
        legacy = {"id": user.id, "email": user.email, "role": role.value if role else None}
        response.set_cookie(
            "user",
            json.dumps(legacy),
            httponly=True,
            secure=settings.cookie_secure,
            max_age=settings.legacy_cookie_max_age,
            path="/",
        )
    return response


@router.post("/login", response_model=AuthResponse)
async def login(request: LoginRequest):
    """
    Login and receive a session token.

    Include token in requests: Authorization: Bearer <token>
    `redirect` is where the user belongs next (onboarding or dashboard).
    """
    if not request.email or not request.password:
        return _error("Missing required fields", 400)

    try:
        session = get_identity_provider().sign_in_with_password(request.email, request.password)
    except IdentityProviderError as e:
        if e.status == 401:
            return _error("Invalid email or password", 401)
        if is_rate_limited(e):
            return _error(RATE_LIMIT_MESSAGE, 429)
        return _error(e.message, e.status)
    except Exception:
        logger.exception("Login error")
        return _error("Internal server error", 500)

    identity = get_onboarding_service().load(session)
    outcome = resolve_page(identity, "/login")
    logger.info("User %s signed in", session.user.id)

    body = AuthResponse(
        message="Login successful",
        user=_user_response(session.user),
        access_token=session.access_token,
        redirect=outcome.location if isinstance(outcome, Redirect) else None
    )
    response = JSONResponse(status_code=200, content=body.model_dump())
    _set_session_cookie(response, session)
    return response


@router.post("/logout", response_model=MessageResponse)
async def logout(session: Session = Depends(get_current_session)):
    """Revoke the current session and clear cookies."""
    get_identity_provider().sign_out(session.session_id)
    response = JSONResponse(content=MessageResponse(message="Logged out").model_dump())
    response.delete_cookie(settings.session_cookie_name, path="/")
    response.delete_cookie("user", path="/")
    return response


@router.get("/me", response_model=MeResponse)
async def get_me(identity: UserIdentity = Depends(get_current_identity)):
    """
    Get current authenticated user's info.

    `is_admin` only controls what the client shows; admin endpoints check
    the allow-list themselves.
    """
    user = identity.session.user
    kind = "role_unset" if isinstance(identity, RoleUnset) else identity.role.value
    return MeResponse(
        user=_user_response(user),
        identity=kind,
        is_admin=get_blog_service().is_admin(user.id),
        profile=None if isinstance(identity, RoleUnset) else identity.profile
    )


@router.get("/callback")
async def callback(
    role: Optional[str] = Query(None),
    token: Optional[str] = Depends(get_session_token)
):
    """
    Post-authentication callback.

    Redirects to /login, /onboarding or /{role}/dashboard. Assigns the role
    from ?role= on the first visit after signup. "Role not found" and rate
    limiting are terminal errors returned as JSON.
    """
    try:
        onboarding = get_onboarding_service()
        identity = onboarding.load(get_identity_provider().get_session(token))
        outcome = resolve_callback(identity, role)
        if isinstance(outcome, AssignRole):
            onboarding.assign_role(identity.session, outcome.role)
            outcome = Redirect(location=ONBOARDING_PATH)
    except Exception as e:
        logger.exception("Error authenticating in callback")
        outcome = resolve_error(e)

    if isinstance(outcome, Failure):
        if outcome.rate_limited:
            return _error(outcome.message, 429)
        return _error(outcome.message, 400)
    return RedirectResponse(url=outcome.location, status_code=302)


@router.get("/resolve", response_model=ResolveResponse, response_model_exclude_none=True)
async def resolve(
    path: str = Query(..., min_length=1),
    identity: Optional[UserIdentity] = Depends(get_optional_identity)
):
    """Where a request for `path` should go: proceed, redirect or error."""
    outcome = resolve_page(identity, path)
    if isinstance(outcome, Redirect):
        return ResolveResponse(action=outcome.action, location=outcome.location)
    if isinstance(outcome, Failure):
        return ResolveResponse(action=outcome.action, message=outcome.message)
    return ResolveResponse(action=outcome.action)
