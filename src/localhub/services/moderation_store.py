"""SQL-backed moderation log and content status updates."""

import logging
import uuid

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from localhub.domain.models import Event, Listing, ModerationLog

logger = logging.getLogger(__name__)

# content_table -> ORM model carrying a moderation_status column
MODERATED_TABLES = {
    "events": Event,
    "personal_listings": Listing,
}


class SqlModerationStore:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def log_moderation(
        self, content_type: str, content_id: str, content_table: str, result: dict, action: str,
    ) -> None:
        self.db.add(ModerationLog(
            id=str(uuid.uuid4()),
            content_type=content_type,
            content_id=content_id,
            content_table=content_table,
            result=result,
            action=action,
        ))
        await self.db.commit()

    async def update_moderation_status(self, content_table: str, content_id: str, action: str) -> None:
        model = MODERATED_TABLES.get(content_table)
        if model is None:
            logger.debug("No moderation status column on %s; verdict logged only", content_table)
            return
        await self.db.execute(
            update(model)
            .where(model.id == content_id)
            .values(moderation_status=action)
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
        logger.info("Moderation status for %s/%s set to %s", content_table, content_id, action)
