from app.core.config import get_settings
from tests.conftest import auth_header


def test_signup_returns_session_and_sets_cookies(client):
    response = client.post(
        "/api/auth/signup",
        json={"email": "New@Upstart-Mail.com", "password": "secret123", "role": "student"}
    )
    assert response.status_code == 200
    data = response.json()
    assert data["message"] == "Signup successful"
    assert data["user"]["email"] == "new@upstart-mail.com"
    assert data["user"]["role"] == "student"
    assert data["user"]["onboarding_status"] == "not_started"
    assert data["redirect"] == "/onboarding"
    assert data["access_token"]

    assert response.cookies.get(get_settings().session_cookie_name) == data["access_token"]
    set_cookie = ";".join(response.headers.get_list("set-cookie"))
    assert "user=" in set_cookie
    assert "HttpOnly" in set_cookie
    assert "secret123" not in set_cookie


def test_signup_role_survives_without_callback(client, signup):
    token, user_id, email = signup(role="startup")

    response = client.post("/api/auth/login", json={"email": email, "password": "secret123"})
    assert response.status_code == 200
    assert response.json()["redirect"] == "/onboarding"

    me = client.get("/api/auth/me", headers=auth_header(token)).json()
    assert me["identity"] == "startup"
    assert me["user"]["onboarding_status"] == "not_started"
    assert me["profile"]["id"] == user_id


def test_signup_without_role_leaves_role_unset(client):
    response = client.post("/api/auth/signup", json={"email": "plain@upstart-mail.com", "password": "secret123"})
    assert response.status_code == 200
    assert response.json()["user"]["role"] is None
    assert response.json()["redirect"] is None


def test_signup_missing_fields(client):
    response = client.post("/api/auth/signup", json={"email": "a@upstart-mail.com"})
    assert response.status_code == 400
    assert response.json() == {"error": "Missing required fields"}


def test_signup_invalid_role(client):
    response = client.post(
        "/api/auth/signup",
        json={"email": "a@upstart-mail.com", "password": "secret123", "role": "admin"}
    )
    assert response.status_code == 400
    assert response.json() == {"error": "Invalid role"}


def test_signup_duplicate_email(client, signup):
    signup(email="dup@upstart-mail.com")
    response = client.post("/api/auth/signup", json={"email": "dup@upstart-mail.com", "password": "secret123"})
    assert response.status_code == 400
    assert response.json() == {"error": "User already registered"}


def test_signup_short_password(client):
    response = client.post("/api/auth/signup", json={"email": "a@upstart-mail.com", "password": "123"})
    assert response.status_code == 400
    assert "at least 6 characters" in response.json()["error"]


def test_login_resolves_to_same_user(client, signup):
    _, user_id, email = signup()
    response = client.post("/api/auth/login", json={"email": email, "password": "secret123"})
    assert response.status_code == 200
    token = response.json()["access_token"]

    me = client.get("/api/auth/me", headers=auth_header(token))
    assert me.status_code == 200
    assert me.json()["user"]["id"] == user_id
    assert me.json()["identity"] == "role_unset"
    assert me.json()["is_admin"] is False


def test_login_redirect_follows_onboarding_state(client, onboarded, signup):
    token, user_id = onboarded("startup")
    me = client.get("/api/auth/me", headers=auth_header(token)).json()
    response = client.post("/api/auth/login", json={"email": me["user"]["email"], "password": "secret123"})
    assert response.json()["redirect"] == "/startup/dashboard"

    token, _, email = signup()
    client.get("/api/auth/callback?role=student", headers=auth_header(token))
    response = client.post("/api/auth/login", json={"email": email, "password": "secret123"})
    assert response.json()["redirect"] == "/onboarding"


def test_login_missing_fields(client):
    response = client.post("/api/auth/login", json={"email": "a@upstart-mail.com"})
    assert response.status_code == 400
    assert response.json() == {"error": "Missing required fields"}


def test_login_invalid_credentials(client, signup):
    _, _, email = signup()
    response = client.post("/api/auth/login", json={"email": email, "password": "wrong-password"})
    assert response.status_code == 401
    assert response.json() == {"error": "Invalid email or password"}


def test_login_rate_limited(client, signup, monkeypatch):
    _, _, email = signup()
    # signup already issued one session
    monkeypatch.setattr(get_settings(), "session_rate_limit", 2)

    first = client.post("/api/auth/login", json={"email": email, "password": "secret123"})
    assert first.status_code == 200
    second = client.post("/api/auth/login", json={"email": email, "password": "secret123"})
    assert second.status_code == 429
    assert second.json() == {"error": "Too many requests. Please try again later."}


def test_me_requires_session(client):
    response = client.get("/api/auth/me")
    assert response.status_code == 401
    assert response.json() == {"error": "Invalid or expired session"}


def test_me_accepts_session_cookie(client, signup):
    token, user_id, _ = signup()
    client.cookies.set(get_settings().session_cookie_name, token)
    response = client.get("/api/auth/me")
    assert response.status_code == 200
    assert response.json()["user"]["id"] == user_id


def test_logout_revokes_session(client, signup):
    token, _, _ = signup()
    response = client.post("/api/auth/logout", headers=auth_header(token))
    assert response.status_code == 200

    response = client.get("/api/auth/me", headers=auth_header(token))
    assert response.status_code == 401


def test_garbage_token_is_rejected(client):
    response = client.get("/api/auth/me", headers=auth_header("not-a-jwt"))
    assert response.status_code == 401
