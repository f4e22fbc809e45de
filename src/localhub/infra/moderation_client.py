"""HTTP clients for the external moderation classifiers.

Text goes to the OpenAI moderation endpoint; images go to Google Cloud
Vision safe-search + label detection. Both raise
``ModerationClassifierError`` on any transport or format problem and leave
the fail-open / fail-closed decision to the moderation gate.
"""

from __future__ import annotations

import logging

import httpx

from localhub.domain.enums import ImageDimension, Likelihood
from localhub.domain.schemas import ClassifierScores, ImageClassification
from localhub.exceptions import ModerationClassifierError

logger = logging.getLogger(__name__)

OPENAI_MODERATION_URL = "https://api.openai.com/v1/moderations"
GOOGLE_VISION_URL = "https://vision.googleapis.com/v1/images:annotate"

_LABEL_MAX_RESULTS = 10


class OpenAIModerationClient:
    """Text classifier backed by the OpenAI moderation endpoint."""

    def __init__(
        self,
        api_key: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self._timeout = timeout
        self._transport = transport

    async def classify(self, text: str) -> ClassifierScores:
        if not self._api_key:
            raise ModerationClassifierError("OpenAI API key not configured")

        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                resp = await client.post(
                    OPENAI_MODERATION_URL,
                    headers={"Authorization": f"Bearer {self._api_key}"},
                    json={"input": text},
                )
                resp.raise_for_status()
                data = resp.json()
        except httpx.HTTPStatusError as exc:
            raise ModerationClassifierError(f"Moderation API HTTP error: {exc.response.status_code}") from exc
        except httpx.RequestError as exc:
            raise ModerationClassifierError(f"Moderation API request failed: {exc}") from exc
        except ValueError as exc:
            raise ModerationClassifierError("Moderation API returned invalid JSON") from exc

        try:
            result = data["results"][0]
            return ClassifierScores(
                flagged=bool(result.get("flagged", False)),
                category_scores={k: float(v) for k, v in (result.get("category_scores") or {}).items()},
            )
        except (KeyError, IndexError, TypeError, ValueError) as exc:
            raise ModerationClassifierError("Unexpected moderation response shape") from exc


class GoogleVisionClient:
    """Image classifier backed by Google Cloud Vision."""

    def __init__(
        self,
        api_key: str,
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self._timeout = timeout
        self._transport = transport

    async def classify(self, image_url: str) -> ImageClassification:
        if not self._api_key:
            raise ModerationClassifierError("Google Cloud API key not configured")

        body = {
            "requests": [{
                "image": {"source": {"imageUri": image_url}},
                "features": [
                    {"type": "SAFE_SEARCH_DETECTION"},
                    {"type": "LABEL_DETECTION", "maxResults": _LABEL_MAX_RESULTS},
                ],
            }]
        }

        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                resp = await client.post(GOOGLE_VISION_URL, params={"key": self._api_key}, json=body)
                resp.raise_for_status()
                data = resp.json()
        except httpx.HTTPStatusError as exc:
            raise ModerationClassifierError(f"Vision API HTTP error: {exc.response.status_code}") from exc
        except httpx.RequestError as exc:
            raise ModerationClassifierError(f"Vision API request failed: {exc}") from exc
        except ValueError as exc:
            raise ModerationClassifierError("Vision API returned invalid JSON") from exc

        responses = data.get("responses") or [{}]
        result = responses[0]
        safe_search = result.get("safeSearchAnnotation")
        if not safe_search:
            raise ModerationClassifierError("No safe search results")

        return ImageClassification(
            safe_search={dim: Likelihood.parse(safe_search.get(dim.value)) for dim in ImageDimension},
            labels=[
                label.get("description", "")
                for label in result.get("labelAnnotations") or []
                if label.get("description")
            ],
        )
