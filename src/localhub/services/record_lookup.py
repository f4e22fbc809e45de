"""SQL-backed read access to events, listings and businesses."""

import logging
from datetime import timedelta
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from localhub.domain.enums import ModerationStatus
from localhub.domain.models import Business, Event, Listing
from localhub.domain.schemas import BusinessRecord, EventRecord, ListingRecord
from localhub.services.content_filter import local_now

logger = logging.getLogger(__name__)


class SqlRecordLookup:
    """RecordLookup over the platform tables.

    Rejected content is never returned; everything else is, since the
    search filter applies its own rules.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_events(self, filters: dict[str, Any] | None = None) -> list[EventRecord]:
        stmt = select(Event).where(Event.moderation_status != ModerationStatus.REJECTED.value)
        filters = filters or {}
        if filters.get("category"):
            stmt = stmt.where(Event.category == filters["category"])
        if filters.get("is_free") is not None:
            stmt = stmt.where(Event.is_free.is_(bool(filters["is_free"])))
        result = await self.db.execute(stmt.order_by(Event.start_date))
        return [EventRecord.model_validate(row) for row in result.scalars().all()]

    async def get_listings(self, filters: dict[str, Any] | None = None) -> list[ListingRecord]:
        stmt = select(Listing).where(Listing.moderation_status != ModerationStatus.REJECTED.value)
        filters = filters or {}
        if filters.get("category"):
            stmt = stmt.where(Listing.category == filters["category"])
        if filters.get("listing_type"):
            stmt = stmt.where(Listing.listing_type == filters["listing_type"])
        result = await self.db.execute(stmt.order_by(Listing.created_at.desc()))
        return [ListingRecord.model_validate(row) for row in result.scalars().all()]

    async def get_upcoming_events(self, days: int) -> list[EventRecord]:
        """Events starting between now and *days* from now (service timezone)."""
        now = local_now()
        result = await self.db.execute(
            select(Event)
            .where(
                Event.moderation_status != ModerationStatus.REJECTED.value,
                Event.start_date >= now,
                Event.start_date <= now + timedelta(days=days),
            )
            .order_by(Event.start_date)
        )
        return [EventRecord.model_validate(row) for row in result.scalars().all()]

    async def get_popular_events(self, n: int) -> list[EventRecord]:
        result = await self.db.execute(
            select(Event)
            .where(Event.moderation_status != ModerationStatus.REJECTED.value)
            .order_by(Event.view_count.desc())
            .limit(n)
        )
        return [EventRecord.model_validate(row) for row in result.scalars().all()]

    async def get_businesses_by_category(self, category: str) -> list[BusinessRecord]:
        result = await self.db.execute(
            select(Business).where(Business.category == category).order_by(Business.name)
        )
        return [BusinessRecord.model_validate(row) for row in result.scalars().all()]

    async def get_business(self, business_id: str) -> BusinessRecord | None:
        row = await self.db.get(Business, business_id)
        return BusinessRecord.model_validate(row) if row else None
