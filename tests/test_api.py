from datetime import UTC, datetime, timedelta

import httpx
import jwt
import pytest
import pytest_asyncio

from subagent_hub import database
from subagent_hub.config import settings
from subagent_hub.dependencies import get_github_client
from subagent_hub.importer.attribution import ImporterLocks
from subagent_hub.main import app
from subagent_hub.rate_limit.store import InMemoryTTLStore
from tests.fakes import agent_markdown


def make_token(user_id: str = "user-1", **overrides) -> str:
    claims = {
        "sub": user_id,
        "aud": settings.jwt_audience,
        "email": f"{user_id}@example.com",
        "user_metadata": {"user_name": user_id, "full_name": "Test User"},
        "exp": datetime.now(UTC) + timedelta(hours=1),
    }
    claims.update(overrides)
    return jwt.encode(claims, settings.jwt_secret, algorithm="HS256")


def auth(user_id: str = "user-1") -> dict:
    return {"Authorization": f"Bearer {make_token(user_id)}"}


@pytest_asyncio.fixture
async def client(db, github, monkeypatch):
    monkeypatch.setattr(database, "_db", db)
    app.state.rate_limit_store = InMemoryTTLStore()
    app.state.importer_locks = ImporterLocks()

    async def fake_github_client():
        yield github

    app.dependency_overrides[get_github_client] = fake_github_client
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as http:
        yield http
    app.dependency_overrides.clear()


@pytest.fixture
def repo_with_agents(github):
    return github.add_repo(
        "acme/agents",
        {
            "agents/reviewer.md": agent_markdown(),
            "agents/broken.md": agent_markdown(name="broken", description=None),
        },
    )


IMPORT_BODY = {"url": "https://github.com/acme/agents", "conflictPolicy": "skip_if_exists"}


class TestAuthentication:
    async def test_health_is_public(self, client):
        response = await client.get("/api/v1/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}

    async def test_missing_token(self, client):
        response = await client.post("/api/v1/github/import", json=IMPORT_BODY)
        assert response.status_code == 401
        assert response.json()["error"] == "UNAUTHORIZED"
        assert response.headers["www-authenticate"] == "Bearer"

    async def test_invalid_and_expired_tokens(self, client):
        bad = await client.post(
            "/api/v1/github/import",
            json=IMPORT_BODY,
            headers={"Authorization": "Bearer not-a-jwt"},
        )
        expired_token = make_token(exp=datetime.now(UTC) - timedelta(minutes=1))
        expired = await client.post(
            "/api/v1/github/import",
            json=IMPORT_BODY,
            headers={"Authorization": f"Bearer {expired_token}"},
        )

        assert bad.status_code == 401
        assert expired.status_code == 401
        assert expired.json()["message"] == "Token has expired"

    async def test_wrong_audience(self, client):
        token = make_token(aud="someone-else")
        response = await client.post(
            "/api/v1/github/import",
            json=IMPORT_BODY,
            headers={"Authorization": f"Bearer {token}"},
        )
        assert response.status_code == 401


class TestImportEndpoints:
    async def test_import_repository(self, client, repo_with_agents):
        response = await client.post("/api/v1/github/import", json=IMPORT_BODY, headers=auth())

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["stage"] == "completed"
        assert [agent["name"] for agent in body["agents"]] == ["code-reviewer"]
        assert body["agents"][0]["author_id"] == "user-1"
        assert body["rejected"][0]["path"] == "agents/broken.md"

    async def test_conflict_policy_is_required(self, client, repo_with_agents):
        response = await client.post(
            "/api/v1/github/import",
            json={"url": "https://github.com/acme/agents"},
            headers=auth(),
        )

        assert response.status_code == 422
        body = response.json()
        assert body["error"] == "VALIDATION_ERROR"
        assert any(detail["field"] == "conflictPolicy" for detail in body["details"])

    async def test_bad_search_limit_is_rejected(self, client, github):
        response = await client.post(
            "/api/v1/github/import/search",
            json={
                "query": "claude",
                "conflictPolicy": "rename",
                "searchOptions": {"limit": 500},
            },
            headers=auth(),
        )

        assert response.status_code == 422
        assert github.search_calls == []

    async def test_invalid_url_is_rejected(self, client):
        response = await client.post(
            "/api/v1/github/import",
            json={"url": "ftp://example.com/x", "conflictPolicy": "rename"},
            headers=auth(),
        )
        assert response.status_code == 422
        assert "Invalid GitHub URL" in response.json()["message"]

    async def test_missing_repository_is_reported_in_body(self, client):
        response = await client.post("/api/v1/github/import", json=IMPORT_BODY, headers=auth())

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is False
        assert body["errors"]

    async def test_preview(self, client, repo_with_agents):
        response = await client.post(
            "/api/v1/github/import/preview",
            json={"url": "acme/agents"},
            headers=auth(),
        )

        assert response.status_code == 200
        assert [draft["name"] for draft in response.json()["drafts"]] == ["code-reviewer"]

    async def test_search_import_summary(self, client, github, repo_with_agents):
        github.search_hits = [repo_with_agents]

        response = await client.post(
            "/api/v1/github/import/search",
            json={"query": "claude", "conflictPolicy": "skip_if_exists"},
            headers=auth(),
        )

        assert response.status_code == 201
        body = response.json()
        assert body["query"] == "claude"
        assert body["summary"] == {"total": 1, "successful": 1, "failed": 0, "agents_created": 1}
        assert body["results"][0]["repository"] == "acme/agents"

    async def test_heavy_rate_limit(self, client, repo_with_agents):
        for _ in range(5):
            response = await client.post(
                "/api/v1/github/import", json=IMPORT_BODY, headers=auth()
            )
            assert response.status_code == 201

        response = await client.post("/api/v1/github/import", json=IMPORT_BODY, headers=auth())

        assert response.status_code == 429
        assert int(response.headers["retry-after"]) > 0


class TestAgentEndpoints:
    async def test_list_get_and_delete(self, client, repo_with_agents):
        imported = await client.post("/api/v1/github/import", json=IMPORT_BODY, headers=auth())
        agent_id = imported.json()["agents"][0]["id"]

        listing = await client.get("/api/v1/agents/", params={"author_id": "user-1"})
        assert [agent["id"] for agent in listing.json()] == [agent_id]

        fetched = await client.get(f"/api/v1/agents/{agent_id}")
        assert fetched.json()["github_repo_name"] == "acme/agents"

        forbidden = await client.delete(f"/api/v1/agents/{agent_id}", headers=auth("user-2"))
        assert forbidden.status_code == 403

        deleted = await client.delete(f"/api/v1/agents/{agent_id}", headers=auth())
        assert deleted.status_code == 204

        missing = await client.get(f"/api/v1/agents/{agent_id}")
        assert missing.status_code == 404

    async def test_draft_agents_are_visible_only_to_their_author(self, client, repo_with_agents):
        body = {**IMPORT_BODY, "options": {"autoPublish": False}}
        imported = await client.post("/api/v1/github/import", json=body, headers=auth())
        agent_id = imported.json()["agents"][0]["id"]
        assert imported.json()["agents"][0]["status"] == "draft"

        anonymous = await client.get("/api/v1/agents/")
        assert anonymous.json() == []
        by_author = await client.get("/api/v1/agents/", params={"author_id": "user-1"})
        assert by_author.json() == []
        drafts = await client.get(
            "/api/v1/agents/", params={"status": "draft"}, headers=auth("user-2")
        )
        assert drafts.json() == []
        assert (await client.get(f"/api/v1/agents/{agent_id}")).status_code == 404
        foreign = await client.get(f"/api/v1/agents/{agent_id}", headers=auth("user-2"))
        assert foreign.status_code == 404

        own = await client.get(
            "/api/v1/agents/", params={"author_id": "user-1"}, headers=auth()
        )
        assert [agent["id"] for agent in own.json()] == [agent_id]
        fetched = await client.get(f"/api/v1/agents/{agent_id}", headers=auth())
        assert fetched.status_code == 200

    async def test_invalid_token_on_public_listing_is_rejected(self, client):
        response = await client.get(
            "/api/v1/agents/", headers={"Authorization": "Bearer not-a-jwt"}
        )
        assert response.status_code == 401

    async def test_list_limit_is_bounded(self, client):
        response = await client.get("/api/v1/agents/", params={"limit": 101})
        assert response.status_code == 422
