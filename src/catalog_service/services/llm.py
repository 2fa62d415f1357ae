"""Client for the hosted embedding and chat completion API (OpenAI-compatible)."""

from typing import Any

import httpx
import openai
import structlog
from openai import AsyncOpenAI

from catalog_service.config import Settings, get_settings
from catalog_service.exceptions import ConfigurationError, ModelAPIError

logger = structlog.get_logger()

CHAT_TEMPERATURE = 0.2
CHAT_MAX_TOKENS = 700


def _model_api_error(exc: openai.APIError) -> ModelAPIError:
    if isinstance(exc, openai.APIStatusError):
        return ModelAPIError(
            f"Model API {exc.status_code}: {exc.response.text}",
            status_code=exc.status_code,
            body=exc.response.text,
        )
    return ModelAPIError(f"Model API request failed: {exc}")


class LLMClient:
    """Embeddings and chat completions through the OpenAI SDK."""

    def __init__(
        self,
        settings: Settings | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.settings = settings or get_settings()
        # Failed calls surface to the caller; nothing is retried here
        self._client = AsyncOpenAI(
            api_key=self.settings.openai_api_key,
            base_url=self.settings.openai_api_base_url,
            timeout=self.settings.openai_api_timeout,
            max_retries=0,
            http_client=http_client,
        )

    async def close(self) -> None:
        await self._client.close()

    async def __aenter__(self) -> "LLMClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    def _require_key(self) -> None:
        if not self.settings.openai_api_key:
            raise ConfigurationError("Missing OPENAI_API_KEY")

    async def embed(self, text: str) -> list[float]:
        """Embedding vector for ``text``."""
        self._require_key()
        try:
            response = await self._client.embeddings.create(
                model=self.settings.openai_embed_model,
                input=text,
                encoding_format="float",
            )
        except openai.APIError as e:
            raise _model_api_error(e) from e

        try:
            embedding = response.data[0].embedding
        except (AttributeError, IndexError, TypeError):
            embedding = None
        if not isinstance(embedding, list) or not embedding:
            raise ModelAPIError("Embeddings response is missing the embedding array")
        return [float(x) for x in embedding]

    async def chat(self, messages: list[dict[str, str]]) -> str:
        """Completion text for a list of ``{role, content}`` messages."""
        self._require_key()
        try:
            response = await self._client.chat.completions.create(
                model=self.settings.openai_model,
                messages=messages,
                temperature=CHAT_TEMPERATURE,
                max_tokens=CHAT_MAX_TOKENS,
            )
        except openai.APIError as e:
            raise _model_api_error(e) from e

        try:
            content = response.choices[0].message.content
        except (AttributeError, IndexError, TypeError):
            content = None
        if not isinstance(content, str) or not content.strip():
            raise ModelAPIError("Chat completion response is missing message content")

        logger.debug("Chat completion received", model=self.settings.openai_model)
        return content.strip()
