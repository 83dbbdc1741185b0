"""
Session/role resolver.

Decides, for a request that carries a (possibly absent) session, exactly one
outcome:

    Redirect(location)   send the browser elsewhere
    Proceed()            render the requested page
    AssignRole(role)     first sign-in after signup, role comes from ?role=
    Failure(message)     terminal error shown in place, no redirect

The functions here are pure. Side effects for AssignRole live in
app.services.onboarding_service.

Callback (after the external provider redirects back):

    session  role    status       ?role    outcome
    -------  ------  -----------  -------  ------------------------------
    absent   -       -            -        Redirect /login
    present  unset   -            absent   Failure "Role not found"
    present  unset   -            present  AssignRole -> /onboarding
    present  set     not_started  -        Redirect /onboarding
    present  set     complete     -        Redirect /{role}/dashboard
"""

from typing import Optional, Union

from pydantic import BaseModel

from app.core.identity import Role, RoleUnset, UserIdentity, parse_role

LOGIN_PATH = "/login"
SIGNUP_PATH = "/signup"
ONBOARDING_PATH = "/onboarding"
OAUTH_FAILURE_PATH = "/login?error=OAuth_Signup_Failed"

ROLE_NOT_FOUND = "Role not found"
RATE_LIMIT_MESSAGE = "Too many requests. Please try again later."


class Redirect(BaseModel):
    location: str
    action: str = "redirect"


class Proceed(BaseModel):
    action: str = "proceed"


class AssignRole(BaseModel):
    role: Role
    action: str = "assign_role"


class Failure(BaseModel):
    message: str
    rate_limited: bool = False
    action: str = "error"


Outcome = Union[Redirect, Proceed, AssignRole, Failure]


def dashboard_path(role: Role) -> str:
    return f"/{role.value}/dashboard"


def profile_path(role: Role) -> str:
    return f"/{role.value}/profile"


def resolve_callback(identity: Optional[UserIdentity], role_param: Optional[str] = None) -> Outcome:
    """Outcome for the post-authentication callback."""
    if identity is None:
        return Redirect(location=LOGIN_PATH)

    if isinstance(identity, RoleUnset):
        role = parse_role(role_param)
        if role is None:
            return Failure(message=ROLE_NOT_FOUND)
        return AssignRole(role=role)

    if not identity.onboarding_complete:
        return Redirect(location=ONBOARDING_PATH)
    return Redirect(location=dashboard_path(identity.role))


def _area_role(path: str) -> Optional[Role]:
    """Role owning a path prefix such as /student/... or /dashboard/startup/..."""
    parts = [p for p in path.split("/") if p]
    if not parts:
        return None
    if parts[0] == "dashboard" and len(parts) > 1:
        return parse_role(parts[1])
    return parse_role(parts[0])


def resolve_page(identity: Optional[UserIdentity], path: str) -> Outcome:
    """
    Outcome for loading a protected page.

    Users still onboarding are sent to /onboarding from every page but
    /onboarding itself. Onboarded users are sent away from /onboarding (to
    their profile) and from /login, /signup and the other role's pages (to
    their dashboard).
    """
    path = path.split("?", 1)[0].rstrip("/") or "/"

    if identity is None:
        return Redirect(location=LOGIN_PATH)

    if isinstance(identity, RoleUnset):
        return Failure(message=ROLE_NOT_FOUND)

    role = identity.role
    if not identity.onboarding_complete:
        if path == ONBOARDING_PATH:
            return Proceed()
        return Redirect(location=ONBOARDING_PATH)

    if path == ONBOARDING_PATH:
        return Redirect(location=profile_path(role))
    if path in (LOGIN_PATH, SIGNUP_PATH):
        return Redirect(location=dashboard_path(role))

    area = _area_role(path)
    if area is not None and area != role:
        return Redirect(location=dashboard_path(role))
    return Proceed()


def is_rate_limited(error: Exception) -> bool:
    """True if a provider/store error is a rate-limit (HTTP 429) condition."""
    status = getattr(error, "status", None) or getattr(error, "status_code", None)
    if status == 429:
        return True
    message = str(error)
    return "429" in message or "too many requests" in message.lower()


def resolve_error(error: Exception) -> Outcome:
    """Map a failure inside the callback flow to its outcome."""
    if is_rate_limited(error):
        return Failure(message=RATE_LIMIT_MESSAGE, rate_limited=True)
    return Redirect(location=OAUTH_FAILURE_PATH)
