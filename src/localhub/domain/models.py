"""SQLAlchemy ORM models for the LocalHub assistant core.

Only the columns the assistant reads or writes are modelled; the rest of the
platform schema belongs to the CRUD application.

All models use SQLite-compatible types:
- String(36) for UUID primary keys
- JSON for structured data (no JSONB)
- DateTime for timestamps (no TIMESTAMPTZ)
"""

import uuid

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    JSON,
    String,
    Text,
)
from sqlalchemy.sql import func

from localhub.infra.database import Base


# ---------------------------------------------------------------------------
# Directory records
# ---------------------------------------------------------------------------


class Business(Base):
    """A local business with a public profile."""

    __tablename__ = "businesses"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(255), nullable=False)
    category = Column(String(100), nullable=True, index=True)
    description = Column(Text, nullable=True)
    address = Column(String(500), nullable=True)
    phone = Column(String(50), nullable=True)
    email = Column(String(255), nullable=True)
    website = Column(String(500), nullable=True)
    operating_hours = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=func.now())


class Event(Base):
    """A public event listed on the platform."""

    __tablename__ = "events"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String(100), nullable=True)
    location = Column(String(500), nullable=True)
    start_date = Column(DateTime, nullable=True, index=True)
    start_time = Column(String(20), nullable=True)
    is_free = Column(Boolean, default=False)
    cost = Column(Float, nullable=True)
    view_count = Column(Integer, default=0)
    moderation_status = Column(String(20), default="pending")  # pending, approved, rejected, manual_review
    created_at = Column(DateTime, default=func.now())


class Listing(Base):
    """A community or marketplace listing."""

    __tablename__ = "personal_listings"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String(100), nullable=True)
    location = Column(String(500), nullable=True)
    listing_type = Column(String(30), nullable=True)  # event, item, service, marketplace
    start_date = Column(DateTime, nullable=True)
    is_free = Column(Boolean, default=False)
    cost = Column(Float, nullable=True)
    moderation_status = Column(String(20), default="pending")
    created_at = Column(DateTime, default=func.now())


# ---------------------------------------------------------------------------
# Business AI agents
# ---------------------------------------------------------------------------


class BusinessAIAgent(Base):
    """Assistant configuration and monthly usage for one business."""

    __tablename__ = "business_ai_agents"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    business_id = Column(String(36), ForeignKey("businesses.id", ondelete="CASCADE"), unique=True, nullable=False)
    agent_name = Column(String(255), nullable=False, default="")
    enabled = Column(Boolean, default=False)
    agent_personality = Column(String(20), default="professional")  # professional, friendly, casual
    welcome_message = Column(Text, nullable=True)
    max_response_length = Column(Integer, default=300)
    include_platform_context = Column(Boolean, default=False)

    business_info = Column(JSON, nullable=True)
    menu_data = Column(JSON, nullable=True)
    faq_data = Column(JSON, nullable=True)
    policies = Column(JSON, nullable=True)

    monthly_queries_limit = Column(Integer, default=500)
    unlimited_queries = Column(Boolean, default=False)
    queries_used = Column(Integer, default=0, nullable=False)
    usage_period_start = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())


class AgentConversation(Base):
    """Append-only log of completed assistant turns."""

    __tablename__ = "ai_agent_conversations"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    business_id = Column(String(36), ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String(36), nullable=True)
    session_id = Column(String(100), nullable=False, index=True)
    messages = Column(JSON, nullable=False)  # [{role, content, timestamp}]
    total_tokens_used = Column(Integer, default=0)
    user_satisfaction_rating = Column(Integer, nullable=True)
    resolved_query = Column(Boolean, default=False)
    created_at = Column(DateTime, default=func.now())


# ---------------------------------------------------------------------------
# Moderation
# ---------------------------------------------------------------------------


class ModerationLog(Base):
    """Classifier verdict recorded against the content it evaluated."""

    __tablename__ = "moderation_logs"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    content_type = Column(String(10), nullable=False)  # text, image
    content_id = Column(String(36), nullable=False, index=True)
    content_table = Column(String(50), nullable=False)
    result = Column(JSON, nullable=True)
    action = Column(String(20), nullable=False)
    created_at = Column(DateTime, default=func.now())
