"""Moderation workflows for content that gets persisted and shown publicly.

Unlike chat turns these fail closed: a classifier outage parks the content
in manual review. Every verdict is logged and written back to the content's
``moderation_status``.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Sequence

from localhub.domain.enums import FailureMode, ModerationAction
from localhub.domain.ports import ModerationStore
from localhub.domain.schemas import (
    BatchModerationItem,
    ContentModerationResult,
    ImageModerationVerdict,
    ModerationVerdict,
)
from localhub.services.moderation_gate import ImageModerationGate, ModerationGate

logger = logging.getLogger(__name__)

EVENT_TABLE = "events"
EVENT_IMAGE_TABLE = "event_images"
LISTING_TABLE = "personal_listings"


@dataclass
class ImageRef:
    id: str
    url: str


@dataclass
class BatchItem:
    """One unit of work for ``batch_moderate``.

    ``content`` is the text for text batches and the image URL for image
    batches.
    """
    id: str
    content: str
    table: str


def needs_moderation(updated_at: datetime | None, last_moderated: datetime | None) -> bool:
    """New content always needs moderation; edited content after the last verdict does too."""
    if last_moderated is None:
        return True
    if updated_at is None:
        return False
    return updated_at > last_moderated


def _moderated_text(title: str | None, description: str | None) -> str:
    return f"{title or ''} {description or ''}".strip()


class ContentModerationService:
    def __init__(
        self,
        text_gate: ModerationGate,
        image_gate: ImageModerationGate,
        store: ModerationStore,
    ):
        self.text_gate = text_gate
        self.image_gate = image_gate
        self.store = store

    async def moderate_text(self, text: str, content_id: str, content_table: str) -> ModerationVerdict:
        verdict = await self.text_gate.classify(text, FailureMode.CLOSED)
        await self.store.log_moderation(
            "text", content_id, content_table, verdict.model_dump(mode="json"), verdict.action.value,
        )
        await self.store.update_moderation_status(content_table, content_id, verdict.action.value)
        return verdict

    async def moderate_image(
        self, image_url: str, content_id: str, content_table: str,
    ) -> ImageModerationVerdict:
        verdict = await self.image_gate.classify(image_url, FailureMode.CLOSED)
        await self.store.log_moderation(
            "image", content_id, content_table, verdict.model_dump(mode="json"), verdict.action.value,
        )
        await self.store.update_moderation_status(content_table, content_id, verdict.action.value)
        return verdict

    async def moderate_event(
        self,
        event_id: str,
        title: str,
        description: str | None,
        images: Sequence[ImageRef] = (),
    ) -> ContentModerationResult:
        """Moderate an event's text and each attached image."""
        result = ContentModerationResult()
        result.text = await self.moderate_text(
            _moderated_text(title, description), event_id, EVENT_TABLE,
        )
        for image in images:
            result.images.append(await self.moderate_image(image.url, image.id, EVENT_IMAGE_TABLE))
        result.overall_approved = not _any_rejected(result)
        return result

    async def moderate_listing(
        self,
        listing_id: str,
        title: str,
        description: str | None,
        image_urls: Sequence[str] = (),
    ) -> ContentModerationResult:
        result = ContentModerationResult()
        result.text = await self.moderate_text(
            _moderated_text(title, description), listing_id, LISTING_TABLE,
        )
        for url in image_urls:
            result.images.append(await self.moderate_image(url, listing_id, LISTING_TABLE))
        result.overall_approved = not _any_rejected(result)
        return result

    async def batch_moderate(
        self, items: Sequence[BatchItem], kind: str = "text",
    ) -> list[BatchModerationItem]:
        """Moderate many items concurrently; one failure does not sink the batch."""
        if kind not in ("text", "image"):
            raise ValueError(f"Unknown batch kind: {kind}")

        def _one(item: BatchItem):
            if kind == "text":
                return self.moderate_text(item.content, item.id, item.table)
            return self.moderate_image(item.content, item.id, item.table)

        outcomes = await asyncio.gather(*(_one(item) for item in items), return_exceptions=True)

        results: list[BatchModerationItem] = []
        for item, outcome in zip(items, outcomes):
            if isinstance(outcome, Exception):
                logger.error("Batch moderation failed for %s: %s", item.id, outcome)
                results.append(BatchModerationItem(id=item.id, status="rejected", error=str(outcome)))
            else:
                results.append(BatchModerationItem(id=item.id, status="fulfilled", value=outcome))
        return results


def _any_rejected(result: ContentModerationResult) -> bool:
    if result.text is not None and result.text.action == ModerationAction.REJECTED:
        return True
    return any(image.action == ModerationAction.REJECTED for image in result.images)
