"""Unit tests for the model API client."""

import json

import httpx
import pytest

from catalog_service.exceptions import ConfigurationError, ModelAPIError
from catalog_service.services.llm import LLMClient


def _client(settings, handler) -> LLMClient:
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return LLMClient(settings, http_client=http_client)


@pytest.mark.asyncio
async def test_embed_posts_model_and_input(test_settings) -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"data": [{"embedding": [1, 0.5, 0]}]})

    async with _client(test_settings, handler) as client:
        vector = await client.embed("dome camera")

    assert vector == [1.0, 0.5, 0.0]
    assert seen["url"] == "https://models.test/v1/embeddings"
    assert seen["auth"] == "Bearer sk-test"
    assert seen["body"] == {
        "model": "text-embedding-3-small",
        "input": "dome camera",
        "encoding_format": "float",
    }


@pytest.mark.asyncio
async def test_chat_sends_sampling_parameters(test_settings) -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["body"] = json.loads(request.content)
        return httpx.Response(
            200, json={"choices": [{"message": {"content": "  Bonjour !  "}}]}
        )

    async with _client(test_settings, handler) as client:
        answer = await client.chat([{"role": "user", "content": "Hi"}])

    assert answer == "Bonjour !"
    assert seen["body"]["temperature"] == 0.2
    assert seen["body"]["max_tokens"] == 700
    assert seen["body"]["model"] == "gpt-4o-mini"


@pytest.mark.asyncio
async def test_error_status_raises(test_settings) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(429, text="rate limited")

    async with _client(test_settings, handler) as client:
        with pytest.raises(ModelAPIError) as exc_info:
            await client.embed("x")

    assert exc_info.value.status_code == 429
    assert "rate limited" in str(exc_info.value)


@pytest.mark.asyncio
async def test_transport_error_is_not_retried(test_settings) -> None:
    attempts = []

    def handler(request: httpx.Request) -> httpx.Response:
        attempts.append(request)
        raise httpx.ConnectError("connection refused", request=request)

    async with _client(test_settings, handler) as client:
        with pytest.raises(ModelAPIError, match="request failed"):
            await client.chat([{"role": "user", "content": "Hi"}])

    assert len(attempts) == 1


@pytest.mark.asyncio
async def test_missing_embedding_raises(test_settings) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"data": []})

    async with _client(test_settings, handler) as client:
        with pytest.raises(ModelAPIError):
            await client.embed("x")


@pytest.mark.asyncio
async def test_empty_completion_raises(test_settings) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"choices": [{"message": {"content": "   "}}]})

    async with _client(test_settings, handler) as client:
        with pytest.raises(ModelAPIError):
            await client.chat([{"role": "user", "content": "Hi"}])


@pytest.mark.asyncio
async def test_missing_api_key(test_settings) -> None:
    settings = test_settings.model_copy(update={"openai_api_key": ""})

    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    async with _client(settings, handler) as client:
        with pytest.raises(ConfigurationError, match="OPENAI_API_KEY"):
            await client.embed("x")
