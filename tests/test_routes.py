"""HTTP-level tests for the search and agent routes.

External clients are swapped through ``app.dependency_overrides``; the
database is the per-test in-memory SQLite session.
"""

from datetime import timedelta

import httpx
import pytest

from localhub.app.dependencies import get_llm_client, get_text_classifier
from localhub.app.main import app
from localhub.domain.enums import Personality
from localhub.domain.models import Business, Event
from localhub.infra.database import get_db
from localhub.services.agent_conversation_service import QUERY_LIMIT_EXCEEDED
from localhub.services.agent_store import SqlAgentStore
from localhub.services.content_filter import local_now

from conftest import FakeLLMClient, FakeTextClassifier, make_agent_config


@pytest.fixture
def llm():
    return FakeLLMClient(configured=False)


@pytest.fixture
async def client(db_session, llm):
    async def _db():
        yield db_session

    app.dependency_overrides[get_db] = _db
    app.dependency_overrides[get_llm_client] = lambda: llm
    app.dependency_overrides[get_text_classifier] = lambda: FakeTextClassifier()
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as http:
        yield http
    app.dependency_overrides.clear()


async def _seed_agent(db_session, **config_fields):
    db_session.add(Business(id="biz-1", name="Joe's Diner", category="Restaurant"))
    await db_session.commit()
    await SqlAgentStore(db_session).create("biz-1", make_agent_config(**config_fields))


async def test_health(client):
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


class TestSearchRoutes:
    async def test_search_returns_matches(self, client, db_session):
        db_session.add_all([
            Event(title="Pumpkin Patch", category="Family & Kids", is_free=True,
                  start_date=local_now() + timedelta(days=1)),
            Event(title="Wine Tasting", category="Food & Dining", cost=40.0,
                  start_date=local_now() + timedelta(days=1)),
        ])
        await db_session.commit()

        resp = await client.post("/api/search", json={"query": "pumpkin"})

        assert resp.status_code == 200
        body = resp.json()
        assert [e["title"] for e in body["events"]] == ["Pumpkin Patch"]
        assert body["total_results"] == 1
        assert body["degraded"] is True

    async def test_search_without_matches_still_answers(self, client):
        resp = await client.post("/api/search", json={"query": "unicorn rides"})
        assert resp.status_code == 200
        assert "unicorn rides" in resp.json()["message"]

    async def test_enhance_too_short(self, client):
        resp = await client.post("/api/search/enhance", json={"text": "bike"})
        assert resp.status_code == 400


class TestAgentRoutes:
    async def test_chat_success(self, client, db_session, llm):
        llm.configured = True
        llm.replies = ["We open at 7am."]
        await _seed_agent(db_session, queries_used=3)

        resp = await client.post(
            "/api/agents/biz-1/chat", json={"message": "When do you open?", "session_id": "s1"},
        )

        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        assert body["message"] == "We open at 7am."
        assert body["usage"] == {"queries_used": 4, "queries_limit": 500}

    async def test_chat_over_quota(self, client, db_session, llm):
        llm.configured = True
        await _seed_agent(db_session, queries_used=500)

        resp = await client.post("/api/agents/biz-1/chat", json={"message": "hi", "session_id": "s1"})

        assert resp.status_code == 200
        assert resp.json()["error_code"] == QUERY_LIMIT_EXCEEDED
        assert llm.calls == []

    async def test_starters(self, client, db_session):
        await _seed_agent(db_session)
        resp = await client.get("/api/agents/biz-1/starters")
        assert resp.status_code == 200
        assert resp.json()[0] == "What are your hours today?"

    async def test_config_validation_errors(self, client, db_session):
        await _seed_agent(db_session)
        resp = await client.put("/api/agents/biz-1/config", json={"agent_name": "x"})
        assert resp.status_code == 422
        assert resp.json()["detail"] == ["Agent name must be at least 3 characters"]

    async def test_config_unknown_personality_is_rejected(self, client, db_session):
        await _seed_agent(db_session)

        resp = await client.put("/api/agents/biz-1/config", json={"personality": "grumpy"})

        assert resp.status_code == 422
        assert resp.json()["detail"][0].startswith("personality: ")
        config = await SqlAgentStore(db_session).get("biz-1")
        assert config.personality == Personality.PROFESSIONAL
        assert (await client.get("/api/agents/biz-1/starters")).status_code == 200

    async def test_config_cannot_reset_usage(self, client, db_session):
        await _seed_agent(db_session, queries_used=480)

        resp = await client.put("/api/agents/biz-1/config", json={"queries_used": 0})

        assert resp.status_code == 400
        usage = await SqlAgentStore(db_session).get_usage("biz-1")
        assert usage.used == 480

    async def test_knowledge_bad_kind(self, client, db_session):
        await _seed_agent(db_session)
        resp = await client.put("/api/agents/biz-1/knowledge/recipes", json={})
        assert resp.status_code == 400

    async def test_knowledge_update(self, client, db_session):
        await _seed_agent(db_session)
        resp = await client.put(
            "/api/agents/biz-1/knowledge/policies", json={"return_policy": "30 days with receipt"},
        )
        assert resp.status_code == 200
        assert resp.json()["knowledge_base"]["policies"]["return_policy"] == "30 days with receipt"

    async def test_rating_unknown_conversation(self, client):
        resp = await client.post("/api/agents/conversations/nope/rating", json={"rating": 4})
        assert resp.status_code == 404

    async def test_rating_out_of_range(self, client):
        resp = await client.post("/api/agents/conversations/nope/rating", json={"rating": 9})
        assert resp.status_code == 422

    async def test_analytics_unknown_business(self, client):
        resp = await client.get("/api/agents/nobody/analytics")
        assert resp.status_code == 404

    async def test_analytics_after_chat(self, client, db_session, llm):
        llm.configured = True
        llm.replies = ["Yes, we have parking out back."]
        await _seed_agent(db_session)
        await client.post("/api/agents/biz-1/chat", json={"message": "Is there parking?", "session_id": "s1"})

        resp = await client.get("/api/agents/biz-1/analytics")

        assert resp.status_code == 200
        body = resp.json()
        assert body["total_conversations"] == 1
        assert body["popular_topics"] == [{"topic": "parking", "count": 1}]
