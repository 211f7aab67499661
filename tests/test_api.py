"""API tests: auth gate, blog routes and generation job endpoints (FastAPI TestClient)."""

import time

import pytest
from fastapi.testclient import TestClient

import backend.main as main
from backend.routes import ai as ai_routes
from conftest import StubNews, make_orchestrator
from techblog.agents import NewsFetchError
from techblog.schemas.blog import PostCreate
from techblog.storage import MemoryStorage, get_storage

PASSWORD = "s3cret-pass"


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def orchestrator(storage):
    return make_orchestrator(storage)


@pytest.fixture
def client(storage, orchestrator, monkeypatch):
    monkeypatch.setenv("ADMIN_PASSWORD", PASSWORD)
    main._rate_store.clear()
    main.app.dependency_overrides[get_storage] = lambda: storage
    main.app.dependency_overrides[ai_routes.orchestrator_dependency] = lambda: orchestrator
    with TestClient(main.app) as c:
        yield c
    main.app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(client):
    r = client.post("/api/auth/login", json={"username": "admin", "password": PASSWORD})
    assert r.status_code == 200
    return {"Authorization": f"Bearer {r.json()['token']}"}


def _wait_terminal(client, job_id, headers, timeout=5.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        job = client.get(f"/api/ai/jobs/{job_id}", headers=headers).json()
        if job["status"] in ("completed", "failed", "cancelled"):
            return job
        time.sleep(0.02)
    raise AssertionError(f"job {job_id} did not finish")


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------

def test_health_is_public(client):
    r = client.get("/api/health")
    assert r.status_code == 200
    assert r.json()["status"] == "ok"


def test_ai_routes_require_token(client):
    r = client.get("/api/ai/jobs")
    assert r.status_code == 401
    assert r.json()["detail"] == "Authentication required"

    r = client.get("/api/ai/jobs", headers={"Authorization": "Bearer not-a-token"})
    assert r.status_code == 401
    assert r.json()["detail"] == "Invalid or expired token"


def test_login_rejects_bad_password(client):
    r = client.post("/api/auth/login", json={"username": "admin", "password": "wrong"})
    assert r.status_code == 401


def test_login_disabled_without_password(client, monkeypatch):
    monkeypatch.delenv("ADMIN_PASSWORD")
    r = client.post("/api/auth/login", json={"username": "admin", "password": ""})
    assert r.status_code == 401


def test_me_and_logout(client, auth_headers):
    r = client.get("/api/auth/me", headers=auth_headers)
    assert r.json() == {"username": "admin", "display_name": "Admin"}
    assert client.post("/api/auth/logout", headers=auth_headers).json() == {"status": "logged_out"}
    assert client.get("/api/auth/me", headers=auth_headers).status_code == 401


# ---------------------------------------------------------------------------
# Blog routes
# ---------------------------------------------------------------------------

def test_public_reads_hide_drafts(client, storage, auth_headers):
    base = dict(excerpt="e", content="c", author_id="user-1", category_id="cat-1", read_time=1)
    storage.create_post(PostCreate(title="Live", slug="live", status="published", **base))
    draft = storage.create_post(PostCreate(title="Hidden", slug="hidden", **base))

    assert [p["title"] for p in client.get("/api/posts").json()] == ["Live"]
    assert client.get("/api/posts/drafts").status_code == 401
    assert [p["title"] for p in client.get("/api/posts/drafts", headers=auth_headers).json()] == ["Hidden"]
    assert [p["title"] for p in client.get("/api/search", params={"q": "live"}).json()] == ["Live"]
    assert len(client.get("/api/categories").json()) == 4

    assert client.get("/api/posts/hidden").status_code == 404
    assert client.get(f"/api/posts/id/{draft.id}").status_code == 404
    bogus = {"Authorization": "Bearer not-a-token"}
    assert client.get("/api/posts/hidden", headers=bogus).status_code == 404
    assert storage.get_post(draft.id).views == 0

    r = client.get("/api/posts/hidden", headers=auth_headers)
    assert r.status_code == 200
    assert r.json()["status"] == "draft"
    assert client.get(f"/api/posts/id/{draft.id}", headers=auth_headers).status_code == 200
    assert storage.get_post(draft.id).views == 0


def test_reader_interactions_skip_drafts(client, storage, auth_headers):
    draft = storage.create_post(
        PostCreate(
            title="Hidden", slug="hidden", excerpt="e", content="c",
            author_id="user-1", category_id="cat-1", read_time=1,
        )
    )
    comment = {"content": "Nice", "author_name": "Ann", "author_email": "ann@example.com"}
    assert client.get(f"/api/posts/{draft.id}/comments").status_code == 404
    assert client.post(f"/api/posts/{draft.id}/comments", json=comment).status_code == 404
    assert client.post(f"/api/posts/{draft.id}/like").status_code == 404

    r = client.post(f"/api/posts/{draft.id}/comments", json=comment, headers=auth_headers)
    assert r.status_code == 201
    assert client.post(f"/api/comments/{r.json()['id']}/like").status_code == 404
    stored = storage.get_post(draft.id)
    assert (stored.likes, stored.comments_count) == (0, 1)


def test_post_lifecycle(client, auth_headers):
    payload = {"title": "Hello, World! 2024", "content": "word " * 450, "status": "published"}
    assert client.post("/api/posts", json=payload).status_code == 401

    r = client.post("/api/posts", json=payload, headers=auth_headers)
    assert r.status_code == 201
    post = r.json()
    assert post["slug"] == "hello-world-2024"
    assert post["read_time"] == 3

    assert client.post("/api/posts", json=payload, headers=auth_headers).status_code == 409
    bad = {**payload, "slug": "other", "category_id": "cat-404"}
    assert client.post("/api/posts", json=bad, headers=auth_headers).status_code == 400

    assert client.get("/api/posts/hello-world-2024").json()["views"] == 1
    assert client.post(f"/api/posts/{post['id']}/like").json() == {"status": "liked"}

    r = client.patch(f"/api/posts/{post['id']}", json={"title": "Renamed"}, headers=auth_headers)
    assert r.json()["title"] == "Renamed"
    assert client.delete(f"/api/posts/{post['id']}", headers=auth_headers).json() == {"status": "deleted"}
    assert client.get(f"/api/posts/id/{post['id']}").status_code == 404


def test_comments_are_public_and_threaded(client, storage):
    post = storage.create_post(
        PostCreate(
            title="Discuss", slug="discuss", excerpt="e", content="c",
            author_id="user-1", category_id="cat-1", read_time=1, status="published",
        )
    )
    comment = {"content": "Nice", "author_name": "Ann", "author_email": "ann@example.com"}
    root = client.post(f"/api/posts/{post.id}/comments", json=comment)
    assert root.status_code == 201
    reply = client.post(
        f"/api/posts/{post.id}/comments", json={**comment, "parent_id": root.json()["id"]}
    )
    assert reply.status_code == 201
    bad_parent = client.post(f"/api/posts/{post.id}/comments", json={**comment, "parent_id": "nope"})
    assert bad_parent.status_code == 400

    tree = client.get(f"/api/posts/{post.id}/comments").json()
    assert len(tree) == 1
    assert tree[0]["replies"][0]["id"] == reply.json()["id"]
    assert client.post(f"/api/comments/{root.json()['id']}/like").status_code == 200


# ---------------------------------------------------------------------------
# Generation jobs
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("topic", ["", "   "])
def test_custom_generation_requires_topic(client, auth_headers, topic):
    r = client.post("/api/ai/generate-custom", json={"topic": topic}, headers=auth_headers)
    assert r.status_code == 400
    assert r.json()["detail"] == "Topic is required"


def test_custom_generation_job_runs_to_completion(client, auth_headers, storage):
    r = client.post(
        "/api/ai/generate-custom",
        json={"topic": "Rust ownership", "user_prompt": "Keep it short"},
        headers=auth_headers,
    )
    assert r.status_code == 200
    body = r.json()
    assert body["status"] == "started"
    assert body["topic"] == "Rust ownership"

    job = _wait_terminal(client, body["job_id"], auth_headers)
    assert job["status"] == "completed"
    assert job["progress"] == 100
    assert job["config"]["type"] == "custom"
    post_id = job["results"]["post_id"]
    assert storage.get_post(post_id).status == "published"

    jobs = client.get("/api/ai/jobs", headers=auth_headers).json()
    assert [j["id"] for j in jobs] == [body["job_id"]]
    stats = client.get("/api/ai/stats", headers=auth_headers).json()
    assert stats["total_jobs"] == 1
    assert stats["completed_jobs"] == 1


def test_scheduled_generation_uses_defaults(client, auth_headers):
    r = client.post("/api/ai/generate", headers=auth_headers)
    assert r.status_code == 200
    job = _wait_terminal(client, r.json()["job_id"], auth_headers)
    assert job["config"]["hours_back"] == 24
    assert job["config"]["max_articles"] == 5
    assert job["status"] == "completed"


@pytest.mark.parametrize(
    "payload,field",
    [
        ({"min_relevance_score": 2}, "min_relevance_score"),
        ({"hours_back": 0}, "hours_back"),
        ({"max_articles": "many"}, "max_articles"),
    ],
)
def test_scheduled_generation_rejects_bad_config(client, auth_headers, orchestrator, payload, field):
    r = client.post("/api/ai/generate", json=payload, headers=auth_headers)
    assert r.status_code == 400
    assert field in r.json()["detail"]
    assert orchestrator.list_jobs() == []


def test_custom_generation_rejects_bad_prompt(client, auth_headers):
    r = client.post(
        "/api/ai/generate-custom", json={"topic": "Rust", "user_prompt": 42}, headers=auth_headers
    )
    assert r.status_code == 400
    assert "user_prompt" in r.json()["detail"]


def test_unknown_job_endpoints(client, auth_headers):
    r = client.get("/api/ai/jobs/missing", headers=auth_headers)
    assert r.status_code == 404
    assert r.json()["detail"] == "Job not found"
    r = client.delete("/api/ai/jobs/missing", headers=auth_headers)
    assert r.status_code == 404
    assert r.json()["detail"] == "Job not found or cannot be cancelled"


def test_cancel_finished_job_is_404(client, auth_headers):
    job_id = client.post("/api/ai/generate-custom", json={"topic": "Rust"}, headers=auth_headers).json()["job_id"]
    _wait_terminal(client, job_id, auth_headers)
    assert client.delete(f"/api/ai/jobs/{job_id}", headers=auth_headers).status_code == 404


def test_news_preview_maps_fetch_error_to_502(client, auth_headers, orchestrator):
    orchestrator.capabilities.news = StubNews(error=NewsFetchError("Failed to fetch news: all 4 sources failed"))
    r = client.get("/api/ai/news", params={"hours": 6}, headers=auth_headers)
    assert r.status_code == 502


def test_missing_api_key_is_400(client, auth_headers, monkeypatch):
    def no_key():
        raise ValueError("No API key configured for LLM provider 'openai'.")

    del main.app.dependency_overrides[ai_routes.orchestrator_dependency]
    monkeypatch.setattr(ai_routes, "get_orchestrator", no_key)
    r = client.get("/api/ai/stats", headers=auth_headers)
    assert r.status_code == 400
    assert "No API key" in r.json()["detail"]
