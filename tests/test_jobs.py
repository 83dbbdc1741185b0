import pytest

from tests.conftest import auth_header


@pytest.fixture
def startup(onboarded):
    token, user_id = onboarded("startup", company_name="Acme Labs")
    return token, user_id


def post_job(client, token, **fields):
    body = {"title": "Backend Intern", "employment_type": "Remote", "description": "APIs"}
    body.update(fields)
    response = client.post("/api/jobs", json=body, headers=auth_header(token))
    assert response.status_code == 201, response.text
    return response.json()


def test_create_and_get_job_with_company_and_tags(client, startup):
    token, company_id = startup
    python = client.post("/api/jobs/tags", json={"name": "python"}, headers=auth_header(token)).json()
    sql = client.post("/api/jobs/tags", json={"name": "sql"}, headers=auth_header(token)).json()

    job = post_job(client, token, tag_ids=[sql["id"], python["id"]])
    assert job["company_id"] == company_id

    fetched = client.get(f"/api/jobs/{job['id']}").json()
    assert fetched["title"] == "Backend Intern"
    assert fetched["company"] == {"name": "Acme Labs", "description": None, "logo_url": None}
    assert [tag["name"] for tag in fetched["tags"]] == ["python", "sql"]


def test_create_tag_is_idempotent_by_name(client, startup):
    token, _ = startup
    first = client.post("/api/jobs/tags", json={"name": "react"}, headers=auth_header(token)).json()
    second = client.post("/api/jobs/tags", json={"name": " react "}, headers=auth_header(token)).json()
    assert first["id"] == second["id"]
    assert client.get("/api/jobs/tags").json() == [first]


def test_create_job_with_unknown_tag(client, startup):
    token, _ = startup
    response = client.post(
        "/api/jobs", json={"title": "Designer", "tag_ids": ["missing"]}, headers=auth_header(token)
    )
    assert response.status_code == 400
    assert response.json() == {"error": "Unknown tag: missing"}
    assert client.get("/api/jobs").json() == []


def test_students_cannot_post_jobs(client, onboarded):
    token, _ = onboarded("student")
    response = client.post("/api/jobs", json={"title": "Nope"}, headers=auth_header(token))
    assert response.status_code == 403


def test_job_not_found(client):
    response = client.get("/api/jobs/does-not-exist")
    assert response.status_code == 404
    assert response.json() == {"error": "Job not found"}


def test_only_owner_updates_job(client, startup, onboarded):
    token, _ = startup
    job = post_job(client, token)

    other, _ = onboarded("startup", company_name="Other")
    response = client.put(f"/api/jobs/{job['id']}", json={"title": "Hijacked"}, headers=auth_header(other))
    assert response.status_code == 404

    response = client.put(f"/api/jobs/{job['id']}", json={"is_active": False}, headers=auth_header(token))
    assert response.status_code == 200
    fetched = client.get(f"/api/jobs/{job['id']}").json()
    assert fetched["title"] == "Backend Intern"
    assert not fetched["is_active"]


def test_projects_lists_active_jobs(client, startup):
    token, _ = startup
    active = post_job(client, token, title="Frontend Developer")
    post_job(client, token, title="Closed Role", is_active=False)

    assert client.get("/api/projects").json() == [
        {"id": active["id"], "title": "Frontend Developer", "company": "Acme Labs", "type": "Remote"}
    ]
    assert len(client.get("/api/jobs").json()) == 2


# ============================================================
# APPLICATIONS
# ============================================================

def test_apply_once_per_job(client, startup, onboarded):
    token, company_id = startup
    job = post_job(client, token)
    student_token, student_id = onboarded("student", first_name="Grace", last_name="Hopper")

    response = client.post(f"/api/jobs/{job['id']}/apply", headers=auth_header(student_token))
    assert response.status_code == 201

    response = client.post(f"/api/jobs/{job['id']}/apply", headers=auth_header(student_token))
    assert response.status_code == 400
    assert response.json() == {"error": "Already applied to this job"}

    applications = client.get("/api/students/applications", headers=auth_header(student_token)).json()
    assert len(applications) == 1
    assert applications[0]["job_title"] == "Backend Intern"
    assert applications[0]["company_name"] == "Acme Labs"
    assert applications[0]["applicant_name"] == "Grace Hopper"

    dashboard = client.get("/api/startups/dashboard", headers=auth_header(token)).json()
    assert [j["id"] for j in dashboard["jobs"]] == [job["id"]]
    assert [a["student_id"] for a in dashboard["applications"]] == [student_id]
    assert dashboard["company"]["name"] == "Acme Labs"


def test_apply_records_email_and_resume(client, startup, onboarded, blob_store):
    token, _ = startup
    job = post_job(client, token)
    student_token, _ = onboarded("student")
    me = client.get("/api/auth/me", headers=auth_header(student_token)).json()

    resume_url = client.post(
        "/api/students/resume",
        files={"file": ("cv.docx", b"docx bytes", "application/octet-stream")},
        headers=auth_header(student_token)
    ).json()["resume_url"]

    client.post(f"/api/jobs/{job['id']}/apply", headers=auth_header(student_token))
    application = client.get("/api/students/applications", headers=auth_header(student_token)).json()[0]
    assert application["applicant_email"] == me["user"]["email"]
    assert application["resume_url"] == resume_url


def test_apply_to_closed_job(client, startup, onboarded):
    token, _ = startup
    job = post_job(client, token, is_active=False)
    student_token, _ = onboarded("student")
    response = client.post(f"/api/jobs/{job['id']}/apply", headers=auth_header(student_token))
    assert response.status_code == 400
    assert response.json() == {"error": "Job is not accepting applications"}


def test_apply_to_missing_job(client, onboarded):
    student_token, _ = onboarded("student")
    response = client.post("/api/jobs/nope/apply", headers=auth_header(student_token))
    assert response.status_code == 404


def test_startup_sees_applicant_profile_only_after_application(client, startup, onboarded):
    token, _ = startup
    job = post_job(client, token)
    student_token, student_id = onboarded("student")

    response = client.get(f"/api/students/{student_id}", headers=auth_header(token))
    assert response.status_code == 404

    client.post(f"/api/jobs/{job['id']}/apply", headers=auth_header(student_token))
    response = client.get(f"/api/students/{student_id}", headers=auth_header(token))
    assert response.status_code == 200
    applicant = response.json()
    assert applicant["first_name"] == "Ada"
    assert [a["job_id"] for a in applicant["applications"]] == [job["id"]]

    other, _ = onboarded("startup", company_name="Other")
    assert client.get(f"/api/students/{student_id}", headers=auth_header(other)).status_code == 404
