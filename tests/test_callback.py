from concurrent.futures import ThreadPoolExecutor

from sqlalchemy import text

from app.core.identity import Role
from app.db.postgres import fetch_one, get_db_session
from app.services.identity_provider import IdentityProviderError
from app.services.onboarding_service import OnboardingService
from tests.conftest import auth_header


def count_rows(table, user_id):
    return fetch_one(f"SELECT COUNT(*) AS n FROM {table} WHERE id = :id", {"id": user_id})["n"]


def user_row(user_id):
    return fetch_one("SELECT user_metadata, metadata_version FROM users WHERE id = :id", {"id": user_id})


def test_callback_without_session_redirects_to_login(client):
    response = client.get("/api/auth/callback?role=student")
    assert response.status_code == 302
    assert response.headers["location"] == "/login"


def test_callback_without_role_is_terminal_error(client, signup):
    token, user_id, _ = signup()
    response = client.get("/api/auth/callback", headers=auth_header(token))
    assert response.status_code == 400
    assert response.json() == {"error": "Role not found"}
    assert count_rows("students", user_id) == 0
    assert count_rows("companies", user_id) == 0


def test_callback_with_unknown_role_is_terminal_error(client, signup):
    token, _, _ = signup()
    response = client.get("/api/auth/callback?role=admin", headers=auth_header(token))
    assert response.status_code == 400
    assert response.json() == {"error": "Role not found"}


def test_callback_assigns_role_and_creates_profile(client, signup):
    token, user_id, email = signup()
    response = client.get("/api/auth/callback?role=student", headers=auth_header(token))
    assert response.status_code == 302
    assert response.headers["location"] == "/onboarding"

    me = client.get("/api/auth/me", headers=auth_header(token)).json()
    assert me["user"]["role"] == "student"
    assert me["user"]["onboarding_status"] == "not_started"
    assert me["identity"] == "student"
    assert me["profile"]["id"] == user_id
    assert me["profile"]["email"] == email
    assert count_rows("students", user_id) == 1


def test_callback_twice_is_idempotent(client, signup):
    token, user_id, _ = signup()
    client.get("/api/auth/callback?role=startup", headers=auth_header(token))
    version = user_row(user_id)["metadata_version"]

    response = client.get("/api/auth/callback?role=startup", headers=auth_header(token))
    assert response.status_code == 302
    assert response.headers["location"] == "/onboarding"
    assert count_rows("companies", user_id) == 1
    assert user_row(user_id)["metadata_version"] == version


def test_concurrent_callbacks_assign_role_once(client, signup):
    token, user_id, _ = signup()

    def run_callback(_):
        return client.get("/api/auth/callback?role=student", headers=auth_header(token))

    with ThreadPoolExecutor(max_workers=4) as pool:
        responses = list(pool.map(run_callback, range(4)))

    assert [r.status_code for r in responses] == [302] * 4
    assert {r.headers["location"] for r in responses} == {"/onboarding"}
    assert count_rows("students", user_id) == 1
    assert count_rows("companies", user_id) == 0
    assert user_row(user_id)["metadata_version"] == 1


def test_assign_role_twice_keeps_first_role(signup):
    token, user_id, _ = signup()
    service = OnboardingService()
    session = service.identity_provider.get_session(token)

    first = service.assign_role(session, Role.student)
    second = service.assign_role(session, Role.startup)

    assert first.user.role == Role.student
    assert second.user.role == Role.student
    assert count_rows("students", user_id) == 1
    assert count_rows("companies", user_id) == 0


def test_callback_after_onboarding_goes_to_dashboard(client, onboarded):
    token, _ = onboarded("student")
    response = client.get("/api/auth/callback?role=startup", headers=auth_header(token))
    assert response.status_code == 302
    assert response.headers["location"] == "/student/dashboard"


def test_callback_rate_limited(client, signup, monkeypatch):
    token, user_id, _ = signup()

    def throttled(self, session, role):
        raise IdentityProviderError("429: Too Many Requests", status=429)

    monkeypatch.setattr(OnboardingService, "assign_role", throttled)
    response = client.get("/api/auth/callback?role=student", headers=auth_header(token))
    assert response.status_code == 429
    assert response.json() == {"error": "Too many requests. Please try again later."}


def test_callback_other_failure_redirects_to_login_error(client, signup, monkeypatch):
    token, user_id, _ = signup()

    def broken(self, role, user_id, email=None):
        raise RuntimeError("relation \"students\" does not exist")

    monkeypatch.setattr("app.services.profile_service.ProfileService.ensure_profile", broken)
    response = client.get("/api/auth/callback?role=student", headers=auth_header(token))
    assert response.status_code == 302
    assert response.headers["location"] == "/login?error=OAuth_Signup_Failed"


def test_profile_upsert_survives_existing_row(client, signup):
    token, user_id, email = signup()
    # Row left behind by an earlier attempt that failed after the insert
    with get_db_session() as db:
        db.execute(text("INSERT INTO students (id, email) VALUES (:id, :email)"), {"id": user_id, "email": email})

    response = client.get("/api/auth/callback?role=student", headers=auth_header(token))
    assert response.status_code == 302
    assert response.headers["location"] == "/onboarding"
    assert count_rows("students", user_id) == 1
