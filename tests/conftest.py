"""
Shared fixtures.

Environment variables are set before anything under `app` is imported, so
the cached settings, the engine and the bcrypt context all pick up the test
configuration (SQLite file database, cheap bcrypt rounds).
"""

import os
import tempfile
import uuid

_DB_DIR = tempfile.mkdtemp(prefix="upstart-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_DB_DIR, 'test.db')}"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["JWT_SECRET_KEY"] = "test-secret"
os.environ["PUBLIC_BASE_URL"] = "http://testserver"
os.environ["SESSION_RATE_LIMIT"] = "30"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import text

from app.main import app
from app.db.postgres import engine, get_db_session
from app.db.tables import metadata
from app.services.storage_service import StorageError, public_url, get_blob_store
from app.db.mongodb import BUCKETS


class InMemoryBlobStore:
    """Blob store double with the GridFSBlobStore contract."""

    def __init__(self):
        self.files = {}

    def upload(self, bucket, path, data, content_type=None):
        if bucket not in BUCKETS:
            raise StorageError(f"Bucket not found: {bucket}", status=404)
        if (bucket, path) in self.files:
            raise StorageError("The resource already exists", status=409)
        self.files[(bucket, path)] = (data, content_type or "application/octet-stream")
        return path

    def get_public_url(self, bucket, path):
        return public_url(bucket, path)

    def open(self, bucket, path):
        if bucket not in BUCKETS:
            raise StorageError(f"Bucket not found: {bucket}", status=404)
        return self.files.get((bucket, path))


@pytest.fixture(autouse=True)
def database():
    """Fresh schema for every test."""
    metadata.drop_all(bind=engine)
    metadata.create_all(bind=engine)
    yield
    metadata.drop_all(bind=engine)


@pytest.fixture
def blob_store():
    store = InMemoryBlobStore()
    app.dependency_overrides[get_blob_store] = lambda: store
    yield store
    app.dependency_overrides.pop(get_blob_store, None)


@pytest.fixture
def client(blob_store):
    return TestClient(app, follow_redirects=False)


def auth_header(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def signup(client):
    """signup(role=None) -> (token, user_id, email); role-less unless `role` is given."""
    def _signup(role=None, email=None, password="secret123"):
        email = email or f"user-{uuid.uuid4().hex[:8]}@upstart-mail.com"
        body = {"email": email, "password": password}
        if role:
            body["role"] = role
        response = client.post("/api/auth/signup", json=body)
        assert response.status_code == 200, response.text
        client.cookies.clear()
        data = response.json()
        return data["access_token"], data["user"]["id"], email

    return _signup


@pytest.fixture
def onboarded(client, signup):
    """onboarded(role) -> (token, user_id) for a user who finished onboarding."""
    def _onboarded(role, **fields):
        token, user_id, _ = signup()
        response = client.get(f"/api/auth/callback?role={role}", headers=auth_header(token))
        assert response.status_code == 302
        if role == "student":
            form = {"first_name": fields.get("first_name", "Ada"), "last_name": fields.get("last_name", "Lovelace")}
        else:
            form = {"company_name": fields.get("company_name", "Acme Labs")}
        response = client.post("/api/onboarding", json=form, headers=auth_header(token))
        assert response.status_code == 303, response.text
        return token, user_id

    return _onboarded


@pytest.fixture
def make_admin():
    def _make_admin(user_id):
        with get_db_session() as db:
            db.execute(text("INSERT INTO admins (id) VALUES (:id)"), {"id": user_id})

    return _make_admin
