"""Tests for the SQL storage adapters: agent config/usage/conversations,
record lookup, and the moderation store."""

import uuid
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import select

from localhub.domain.enums import ConversationRole, Personality
from localhub.domain.models import (
    AgentConversation,
    Business,
    BusinessAIAgent,
    Event,
    Listing,
    ModerationLog,
)
from localhub.domain.schemas import ConversationTurn, QuotaAllowance
from localhub.services.agent_store import SqlAgentStore, partial_to_columns
from localhub.services.content_filter import local_now
from localhub.services.moderation_store import SqlModerationStore
from localhub.services.record_lookup import SqlRecordLookup

from conftest import make_agent_config

OCTOBER = datetime(2026, 10, 21, 10, 0)
NOVEMBER = datetime(2026, 11, 3, 8, 30)


def _store(db, now=OCTOBER) -> SqlAgentStore:
    return SqlAgentStore(db, clock=lambda: now)


async def _seed_business(db, business_id="biz-1", **fields) -> Business:
    business = Business(id=business_id, name=fields.pop("name", "Joe's Diner"), **fields)
    db.add(business)
    await db.commit()
    return business


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

class TestAgentConfig:
    async def test_create_then_get_round_trips_knowledge(self, db_session):
        await _seed_business(db_session)
        store = _store(db_session)
        await store.create("biz-1", make_agent_config(personality=Personality.FRIENDLY))

        config = await store.get("biz-1")

        assert config.agent_name == "Joe's Helper"
        assert config.personality == Personality.FRIENDLY
        assert config.knowledge_base.business_info.phone == "403-555-0101"
        assert config.knowledge_base.menu_data.categories[0].items[0].price == 12.5
        assert config.knowledge_base.faq_data[0].question == "Do you have vegan options?"
        assert config.allowance == QuotaAllowance(limit=500)

    async def test_unknown_business_has_no_config(self, db_session):
        assert await _store(db_session).get("nobody") is None

    async def test_partial_update(self, db_session):
        await _seed_business(db_session)
        store = _store(db_session)
        await store.create("biz-1", make_agent_config())

        updated = await store.update("biz-1", {"agent_name": "Diner Bot", "personality": Personality.CASUAL})

        assert updated.agent_name == "Diner Bot"
        assert updated.personality == Personality.CASUAL
        assert updated.knowledge_base.business_info.name == "Joe's Diner"

    async def test_update_missing_agent(self, db_session):
        with pytest.raises(LookupError):
            await _store(db_session).update("nobody", {"enabled": True})

    def test_unknown_field_is_rejected(self):
        with pytest.raises(ValueError):
            partial_to_columns({"monthly_budget": 10})

    def test_usage_counter_is_not_writable(self):
        with pytest.raises(ValueError):
            partial_to_columns({"queries_used": 0})

    async def test_invalid_personality_leaves_row_untouched(self, db_session):
        await _seed_business(db_session)
        store = _store(db_session)
        await store.create("biz-1", make_agent_config())

        with pytest.raises(ValueError):
            await store.update("biz-1", {"agent_name": "Diner Bot", "personality": "grumpy"})

        config = await store.get("biz-1")
        assert config.personality == Personality.PROFESSIONAL
        assert config.agent_name == "Joe's Helper"

    def test_unlimited_allowance_columns(self):
        assert partial_to_columns({"allowance": QuotaAllowance.unlimited()}) == {"unlimited_queries": True}


# ---------------------------------------------------------------------------
# Usage
# ---------------------------------------------------------------------------

class TestUsage:
    async def test_increment_stops_at_limit(self, db_session):
        await _seed_business(db_session)
        store = _store(db_session)
        await store.create("biz-1", make_agent_config(limit=2))

        assert await store.increment_usage("biz-1") is True
        assert await store.increment_usage("biz-1") is True
        assert await store.increment_usage("biz-1") is False

        usage = await store.get_usage("biz-1")
        assert usage.used == 2
        assert usage.allowance.limit == 2

    async def test_unlimited_never_refuses(self, db_session):
        await _seed_business(db_session)
        store = _store(db_session)
        await store.create("biz-1", make_agent_config(unlimited=True, queries_used=5_000))

        assert await store.increment_usage("biz-1") is True
        usage = await store.get_usage("biz-1")
        assert usage.used == 5_001
        assert usage.allowance.is_unlimited

    async def test_legacy_negative_limit_is_unlimited(self, db_session):
        db_session.add(BusinessAIAgent(
            id=str(uuid.uuid4()),
            business_id="biz-legacy",
            agent_name="Old Agent",
            monthly_queries_limit=-1,
            queries_used=900,
            usage_period_start=datetime(2026, 10, 1),
        ))
        await db_session.commit()
        store = _store(db_session)

        config = await store.get("biz-legacy")
        assert config.allowance.is_unlimited
        assert await store.increment_usage("biz-legacy") is True

    async def test_unknown_business_usage(self, db_session):
        store = _store(db_session)
        assert await store.get_usage("nobody") is None
        assert await store.increment_usage("nobody") is False

    async def test_new_month_resets_usage(self, db_session):
        await _seed_business(db_session)
        await _store(db_session, OCTOBER).create("biz-1", make_agent_config(queries_used=40))

        usage = await _store(db_session, NOVEMBER).get_usage("biz-1")

        assert usage.used == 0
        row = (await db_session.execute(select(BusinessAIAgent))).scalar_one()
        await db_session.refresh(row)
        assert row.usage_period_start == datetime(2026, 11, 1)

    async def test_same_month_keeps_usage(self, db_session):
        await _seed_business(db_session)
        await _store(db_session, OCTOBER).create("biz-1", make_agent_config(queries_used=40))
        usage = await _store(db_session, OCTOBER + timedelta(days=5)).get_usage("biz-1")
        assert usage.used == 40

    async def test_untracked_period_keeps_count(self, db_session):
        db_session.add(BusinessAIAgent(
            id=str(uuid.uuid4()),
            business_id="biz-2",
            agent_name="Untracked",
            monthly_queries_limit=500,
            queries_used=12,
            usage_period_start=None,
        ))
        await db_session.commit()

        usage = await _store(db_session, NOVEMBER).get_usage("biz-2")

        assert usage.used == 12


# ---------------------------------------------------------------------------
# Conversations
# ---------------------------------------------------------------------------

def _turns(question: str, answer: str) -> list[ConversationTurn]:
    now = datetime(2026, 10, 21, 16, 0, tzinfo=timezone.utc)
    return [
        ConversationTurn(role=ConversationRole.USER, content=question, timestamp=now),
        ConversationTurn(role=ConversationRole.ASSISTANT, content=answer, timestamp=now),
    ]


class TestConversations:
    async def test_append_and_list(self, db_session):
        store = _store(db_session)
        first = await store.append_conversation("biz-1", "u1", "s1", _turns("Hours?", "7am-3pm"), 30)
        await store.append_conversation("biz-1", None, "s2", _turns("Menu?", "Burgers"), 25)
        await store.append_conversation("biz-9", None, "s3", _turns("Hi", "Hello"), 5)

        conversations = await store.list_conversations("biz-1")

        assert len(conversations) == 2
        assert {c.id for c in conversations} >= {first}
        hours = next(c for c in conversations if c.id == first)
        assert hours.user_id == "u1"
        assert hours.total_tokens_used == 30
        assert hours.messages[0].role == ConversationRole.USER
        assert hours.messages[1].content == "7am-3pm"

    async def test_each_turn_is_its_own_row(self, db_session):
        store = _store(db_session)
        await store.append_conversation("biz-1", None, "s1", _turns("a", "b"), 1)
        await store.append_conversation("biz-1", None, "s1", _turns("c", "d"), 1)
        rows = (await db_session.execute(select(AgentConversation))).scalars().all()
        assert len(rows) == 2

    async def test_rate_conversation(self, db_session):
        store = _store(db_session)
        conversation_id = await store.append_conversation("biz-1", None, "s1", _turns("a", "b"), 1)

        assert await store.rate_conversation(conversation_id, 4, resolved=True) is True
        [conversation] = await store.list_conversations("biz-1")
        assert conversation.user_satisfaction_rating == 4
        assert conversation.resolved_query is True

    async def test_rate_unknown_conversation(self, db_session):
        assert await _store(db_session).rate_conversation("missing", 5) is False


# ---------------------------------------------------------------------------
# Record lookup
# ---------------------------------------------------------------------------

class TestRecordLookup:
    async def test_rejected_content_is_hidden(self, db_session):
        db_session.add_all([
            Event(title="Farmers Market", category="Community", moderation_status="approved"),
            Event(title="Spam Party", category="Community", moderation_status="rejected"),
            Listing(title="Canoe", listing_type="item", moderation_status="pending"),
            Listing(title="Scam", listing_type="item", moderation_status="rejected"),
        ])
        await db_session.commit()
        lookup = SqlRecordLookup(db_session)

        assert [e.title for e in await lookup.get_events()] == ["Farmers Market"]
        assert [listing.title for listing in await lookup.get_listings({"listing_type": "item"})] == ["Canoe"]

    async def test_event_filters(self, db_session):
        db_session.add_all([
            Event(title="Jazz Night", category="Music & Concerts", is_free=False, cost=15),
            Event(title="Park Concert", category="Music & Concerts", is_free=True),
            Event(title="Book Club", category="Education", is_free=True),
        ])
        await db_session.commit()
        lookup = SqlRecordLookup(db_session)

        events = await lookup.get_events({"category": "Music & Concerts", "is_free": True})
        assert [e.title for e in events] == ["Park Concert"]

    async def test_upcoming_and_popular(self, db_session):
        now = local_now()
        db_session.add_all([
            Event(title="Soon", start_date=now + timedelta(days=2), view_count=5),
            Event(title="Later", start_date=now + timedelta(days=30), view_count=50),
            Event(title="Past", start_date=now - timedelta(days=3), view_count=500),
        ])
        await db_session.commit()
        lookup = SqlRecordLookup(db_session)

        assert [e.title for e in await lookup.get_upcoming_events(7)] == ["Soon"]
        assert [e.title for e in await lookup.get_popular_events(2)] == ["Past", "Later"]

    async def test_businesses(self, db_session):
        await _seed_business(db_session, "biz-1", name="Joe's Diner", category="Restaurant")
        await _seed_business(db_session, "biz-2", name="Taco Stand", category="Restaurant")
        await _seed_business(db_session, "biz-3", name="Bike Shop", category="Retail")
        lookup = SqlRecordLookup(db_session)

        restaurants = await lookup.get_businesses_by_category("Restaurant")
        assert [b.name for b in restaurants] == ["Joe's Diner", "Taco Stand"]
        assert (await lookup.get_business("biz-3")).name == "Bike Shop"
        assert await lookup.get_business("nobody") is None


# ---------------------------------------------------------------------------
# Moderation store
# ---------------------------------------------------------------------------

class TestModerationStore:
    async def test_log_and_status_update(self, db_session):
        event = Event(id="evt-1", title="Street Fest")
        db_session.add(event)
        await db_session.commit()
        store = SqlModerationStore(db_session)

        await store.log_moderation("text", "evt-1", "events", {"approved": False}, "rejected")
        await store.update_moderation_status("events", "evt-1", "rejected")

        [log] = (await db_session.execute(select(ModerationLog))).scalars().all()
        assert (log.content_type, log.content_id, log.action) == ("text", "evt-1", "rejected")
        await db_session.refresh(event)
        assert event.moderation_status == "rejected"

    async def test_table_without_status_is_log_only(self, db_session):
        store = SqlModerationStore(db_session)
        await store.update_moderation_status("event_images", "img-1", "approved")
