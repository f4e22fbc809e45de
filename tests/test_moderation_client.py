"""Tests for the OpenAI moderation and Google Vision HTTP clients."""

import json

import httpx
import pytest

from localhub.domain.enums import ImageDimension, Likelihood
from localhub.exceptions import ModerationClassifierError
from localhub.infra.moderation_client import GoogleVisionClient, OpenAIModerationClient


def _transport(status: int, payload, seen: list | None = None) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        if isinstance(payload, str):
            return httpx.Response(status, text=payload)
        return httpx.Response(status, json=payload)

    return httpx.MockTransport(handler)


class TestOpenAIModerationClient:
    async def test_parses_scores_and_sends_key(self):
        seen = []
        payload = {"results": [{"flagged": True, "category_scores": {"hate": 0.91, "violence": 0.02}}]}
        client = OpenAIModerationClient("sk-test", transport=_transport(200, payload, seen))

        scores = await client.classify("some text")

        assert scores.flagged is True
        assert scores.category_scores == {"hate": 0.91, "violence": 0.02}
        [request] = seen
        assert request.headers["Authorization"] == "Bearer sk-test"
        assert json.loads(request.content) == {"input": "some text"}

    async def test_http_error(self):
        client = OpenAIModerationClient("sk-test", transport=_transport(500, {"error": "boom"}))
        with pytest.raises(ModerationClassifierError, match="500"):
            await client.classify("x")

    async def test_unexpected_shape(self):
        client = OpenAIModerationClient("sk-test", transport=_transport(200, {"results": []}))
        with pytest.raises(ModerationClassifierError):
            await client.classify("x")

    async def test_invalid_json(self):
        client = OpenAIModerationClient("sk-test", transport=_transport(200, "<html>"))
        with pytest.raises(ModerationClassifierError):
            await client.classify("x")

    async def test_missing_key(self):
        with pytest.raises(ModerationClassifierError, match="not configured"):
            await OpenAIModerationClient("").classify("x")


class TestGoogleVisionClient:
    async def test_parses_safe_search_and_labels(self):
        seen = []
        payload = {"responses": [{
            "safeSearchAnnotation": {"adult": "VERY_UNLIKELY", "violence": "POSSIBLE", "racy": "LIKELY"},
            "labelAnnotations": [{"description": "Crowd"}, {"description": "Knife"}, {"score": 0.4}],
        }]}
        client = GoogleVisionClient("g-key", transport=_transport(200, payload, seen))

        result = await client.classify("https://img/1.jpg")

        assert result.safe_search[ImageDimension.ADULT] == Likelihood.VERY_UNLIKELY
        assert result.safe_search[ImageDimension.VIOLENCE] == Likelihood.POSSIBLE
        assert result.safe_search[ImageDimension.RACY] == Likelihood.LIKELY
        assert result.safe_search[ImageDimension.SPOOF] == Likelihood.UNKNOWN
        assert result.labels == ["Crowd", "Knife"]
        [request] = seen
        assert request.url.params["key"] == "g-key"
        body = json.loads(request.content)
        assert body["requests"][0]["image"]["source"]["imageUri"] == "https://img/1.jpg"

    async def test_missing_safe_search(self):
        client = GoogleVisionClient("g-key", transport=_transport(200, {"responses": [{}]}))
        with pytest.raises(ModerationClassifierError, match="safe search"):
            await client.classify("https://img/1.jpg")

    async def test_http_error(self):
        client = GoogleVisionClient("g-key", transport=_transport(403, {"error": "denied"}))
        with pytest.raises(ModerationClassifierError, match="403"):
            await client.classify("https://img/1.jpg")
