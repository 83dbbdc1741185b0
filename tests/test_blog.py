import pytest
from sqlalchemy import text

from app.db.postgres import get_db_session
from app.services.blog_service import BlogService, slugify
from tests.conftest import auth_header


@pytest.fixture
def admin(onboarded, make_admin):
    token, user_id = onboarded("startup")
    make_admin(user_id)
    return token


@pytest.fixture
def category():
    with get_db_session() as db:
        db.execute(
            text("INSERT INTO blog_categories (id, name, slug) VALUES ('c1', 'Hiring', 'hiring')")
        )
    return "c1"


def create_post(client, token, **fields):
    body = {"title": "Hello World", "content": "Body", "author": "Team", "summary": "Intro"}
    body.update(fields)
    response = client.post("/api/blog/manage", json=body, headers=auth_header(token))
    assert response.status_code == 201, response.text
    return response.json()


@pytest.mark.parametrize("title,expected", [
    ("Hello World", "hello-world"),
    ("Hello,   World!!", "hello-world"),
    ("  Spaces -- and   dashes ", "spaces-and-dashes"),
    ("Ünïcode stays", "ünïcode-stays"),
])
def test_slugify(title, expected):
    assert slugify(title) == expected


def test_mutations_require_admin(client, onboarded):
    token, _ = onboarded("student")
    body = {"title": "T", "content": "C", "author": "A"}
    assert client.post("/api/blog/manage", json=body, headers=auth_header(token)).status_code == 403
    assert client.post("/api/blog/manage/x/feature", headers=auth_header(token)).status_code == 403
    assert client.delete("/api/blog/manage/x", headers=auth_header(token)).status_code == 403
    assert client.post("/api/blog/manage", json=body).status_code == 401


def test_create_post_generates_slug(client, admin):
    post = create_post(client, admin, title="Why Startups Hire Students")
    assert post["slug"] == "why-startups-hire-students"
    assert not post["is_published"]
    assert post["published_at"] is None


def test_create_post_validation(client, admin):
    response = client.post("/api/blog/manage", json={"title": "Only a title"}, headers=auth_header(admin))
    assert response.status_code == 400
    assert response.json() == {"error": "Content is required"}


def test_duplicate_slug_conflicts(client, admin):
    create_post(client, admin, slug="same")
    response = client.post(
        "/api/blog/manage",
        json={"title": "Other", "slug": "same", "content": "C", "author": "A"},
        headers=auth_header(admin)
    )
    assert response.status_code == 409


def test_drafts_hidden_from_public(client, admin):
    draft = create_post(client, admin, title="Draft")
    live = create_post(client, admin, title="Live", is_published=True)

    public = client.get("/api/blog/posts").json()
    assert [p["id"] for p in public["posts"]] == [live["id"]]
    assert public["is_admin"] is False

    response = client.get(f"/api/blog/posts/{draft['slug']}")
    assert response.status_code == 404
    assert response.json() == {"error": "This post is not available"}

    as_admin = client.get("/api/blog/posts", headers=auth_header(admin)).json()
    assert {p["id"] for p in as_admin["posts"]} == {draft["id"], live["id"]}
    assert as_admin["is_admin"] is True


def test_publish_toggle_sets_published_at(client, admin):
    post = create_post(client, admin)
    response = client.post(f"/api/blog/manage/{post['id']}/publish", headers=auth_header(admin))
    assert response.json() == {"id": post["id"], "is_published": True}

    fetched = client.get(f"/api/blog/manage/{post['id']}", headers=auth_header(admin)).json()
    assert fetched["published_at"] is not None
    first_published = fetched["published_at"]

    client.post(f"/api/blog/manage/{post['id']}/publish", headers=auth_header(admin))
    client.post(f"/api/blog/manage/{post['id']}/publish", headers=auth_header(admin))
    fetched = client.get(f"/api/blog/manage/{post['id']}", headers=auth_header(admin)).json()
    assert fetched["published_at"] == first_published


def test_only_one_featured_post(client, admin):
    first = create_post(client, admin, title="First", is_published=True)
    second = create_post(client, admin, title="Second", is_published=True)

    client.post(f"/api/blog/manage/{first['id']}/feature", headers=auth_header(admin))
    response = client.post(f"/api/blog/manage/{second['id']}/feature", headers=auth_header(admin))
    assert response.json() == {"id": second["id"], "is_featured": True}

    posts = client.get("/api/blog/posts").json()
    featured = [p["id"] for p in posts["posts"] if p["is_featured"]]
    assert featured == [second["id"]]
    assert posts["featured"]["id"] == second["id"]

    # Un-featuring clears only that post
    response = client.post(f"/api/blog/manage/{second['id']}/feature", headers=auth_header(admin))
    assert response.json()["is_featured"] is False
    assert client.get("/api/blog/posts").json()["featured"] is None


def test_featured_on_create_clears_previous(client, admin):
    first = create_post(client, admin, title="First", is_featured=True)
    second = create_post(client, admin, title="Second", is_featured=True)
    fetched = client.get(f"/api/blog/manage/{first['id']}", headers=auth_header(admin)).json()
    assert not fetched["is_featured"]
    assert second["is_featured"]


def test_concurrent_feature_conflict(client, admin, monkeypatch):
    first = create_post(client, admin, title="First", is_published=True, is_featured=True)
    second = create_post(client, admin, title="Second", is_published=True)

    # Another request featured a post between our clear and our set
    def set_without_clearing(self, db, post_id):
        db.execute(text("UPDATE blog_posts SET is_featured = TRUE WHERE id = :id"), {"id": post_id})

    monkeypatch.setattr(BlogService, "_feature", set_without_clearing)
    response = client.post(f"/api/blog/manage/{second['id']}/feature", headers=auth_header(admin))
    assert response.status_code == 409
    assert response.json() == {"error": "Another post was featured at the same time"}
    assert client.get("/api/blog/posts").json()["featured"]["id"] == first["id"]


def test_search_and_category_filter(client, admin, category):
    tagged = create_post(client, admin, title="Hiring Interns", is_published=True, category_ids=[category])
    create_post(client, admin, title="Company News", summary="Funding round", is_published=True)

    by_category = client.get("/api/blog/posts?category=hiring").json()["posts"]
    assert [p["id"] for p in by_category] == [tagged["id"]]
    assert by_category[0]["categories"] == [{"id": "c1", "name": "Hiring", "slug": "hiring"}]

    by_query = client.get("/api/blog/posts?q=FUNDING").json()["posts"]
    assert [p["title"] for p in by_query] == ["Company News"]

    assert client.get("/api/blog/categories").json() == [{"id": "c1", "name": "Hiring", "slug": "hiring"}]


def test_post_detail_includes_related(client, admin):
    main = create_post(client, admin, title="Main", is_published=True)
    for i in range(4):
        create_post(client, admin, title=f"Other {i}", is_published=True)
    create_post(client, admin, title="Hidden draft")

    detail = client.get(f"/api/blog/posts/{main['slug']}").json()
    assert detail["post"]["id"] == main["id"]
    related = detail["post"]["related_posts"]
    assert len(related) == 3
    assert main["id"] not in [p["id"] for p in related]
    assert all(p["is_published"] for p in related)


def test_update_and_delete_post(client, admin):
    post = create_post(client, admin)
    body = {"title": "Renamed", "slug": "renamed", "content": "New body", "author": "Team", "is_published": True}
    response = client.put(f"/api/blog/manage/{post['id']}", json=body, headers=auth_header(admin))
    assert response.status_code == 200
    assert client.get("/api/blog/posts/renamed").json()["post"]["content"] == "New body"

    response = client.put(f"/api/blog/manage/{post['id']}", json={**body, "author": ""}, headers=auth_header(admin))
    assert response.status_code == 400
    assert response.json() == {"error": "Author is required"}

    assert client.delete(f"/api/blog/manage/{post['id']}", headers=auth_header(admin)).status_code == 200
    assert client.get(f"/api/blog/manage/{post['id']}", headers=auth_header(admin)).status_code == 404
    assert client.delete(f"/api/blog/manage/{post['id']}", headers=auth_header(admin)).status_code == 404


def test_image_upload(client, admin, blob_store):
    response = client.post(
        "/api/blog/images",
        files={"file": ("cover.jpg", b"jpeg bytes", "image/jpeg")},
        headers=auth_header(admin)
    )
    assert response.status_code == 200
    assert "/api/storage/blog_picture/featured/" in response.json()["url"]
    assert response.json()["url"].endswith(".jpg")
