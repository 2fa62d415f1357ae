"""Retrieval-augmented chat over the synced catalog."""

import re
import uuid
from dataclasses import dataclass, field
from typing import Any

import structlog

from catalog_service.config import Settings, get_settings
from catalog_service.infrastructure.database.repository import CatalogRepository
from catalog_service.infrastructure.redis import CacheService, embedding_cache_key
from catalog_service.services.llm import LLMClient

logger = structlog.get_logger()

SYSTEM_PROMPT = """
You are the official shopping assistant of {store}, specialised in video
surveillance, networking (PoE, switches, NVR/DVR), alarms and access control.
Your goal is to help customers choose, understand, configure and buy products
from {store}.

Rules:
1) The internal CONTEXT (products, documentation, FAQ) always takes priority.
2) Never recommend external sites, resellers or marketplaces.
3) Never invent prices, stock, links, compatibility or specifications that are
   not in the context.
4) When the context contains a product link, give it explicitly.
5) When the product is not in the context, say so plainly, ask 1 to 3
   clarifying questions (exact reference, need, number of cameras, PoE,
   distance, budget) and suggest a generic product category without brands.
6) Answer in the customer's language, professionally and concisely.

Format: a short answer (2-8 sentences), then "Next step" (1-3 concrete
actions), then the product link when available.
""".strip()

# Tokens that look like a SKU: letters and digits, optionally dash-separated
_SKU_TOKEN = re.compile(r"[A-Za-z0-9][A-Za-z0-9-]{3,}[A-Za-z0-9]")
MAX_SKU_CANDIDATES = 3


def extract_sku_candidates(message: str) -> list[str]:
    """Tokens of ``message`` mixing letters and digits, in order of appearance."""
    candidates = []
    for token in _SKU_TOKEN.findall(message or ""):
        if any(c.isdigit() for c in token) and any(c.isalpha() for c in token):
            if token not in candidates:
                candidates.append(token)
        if len(candidates) >= MAX_SKU_CANDIDATES:
            break
    return candidates


def format_variant_context(variant: dict[str, Any]) -> str:
    price = variant.get("price")
    price_str = f"{price} {variant.get('currency') or 'EUR'}" if price is not None else "N/A"
    return (
        "### Catalog product (variant)\n"
        f"SKU: {variant.get('sku')}\n"
        f"Name: {variant.get('name') or 'N/A'}\n"
        f"Brand: {variant.get('brand') or 'N/A'}\n"
        f"Reference: {variant.get('product_reference') or 'N/A'}\n"
        f"Price: {price_str}\n"
        f"Link: {variant.get('url') or 'N/A'}\n"
    )


@dataclass
class ChatAnswer:
    """Model answer plus the catalog sources it was grounded on."""

    answer: str
    session_id: str
    sources: list[dict[str, Any]] = field(default_factory=list)


class ChatService:
    """Answers customer questions from the product chunks."""

    def __init__(
        self,
        repository: CatalogRepository,
        llm: LLMClient,
        cache: CacheService,
        settings: Settings | None = None,
    ):
        self.repository = repository
        self.llm = llm
        self.cache = cache
        self.settings = settings or get_settings()

    async def embed_query(self, text: str) -> list[float]:
        """Query embedding, served from Redis when already computed."""
        key = embedding_cache_key(self.settings.openai_embed_model, text)
        cached = await self.cache.get(key)
        if cached:
            return cached

        embedding = await self.llm.embed(text)
        await self.cache.set(key, embedding, ttl_seconds=self.settings.query_embedding_ttl_seconds)
        return embedding

    async def lookup_sku(self, message: str) -> dict[str, Any] | None:
        for candidate in extract_sku_candidates(message):
            variant = await self.repository.find_variant_by_sku(candidate)
            if variant:
                return variant
        return None

    async def answer(self, message: str, session_id: str | None = None) -> ChatAnswer:
        """
        Answer one customer message.

        A SKU mentioned in the message is looked up directly and placed first
        in the context; the rest of the context comes from the similarity
        search over product chunks.
        """
        session_id = session_id or uuid.uuid4().hex
        context_parts = []
        sources: list[dict[str, Any]] = []

        variant = await self.lookup_sku(message)
        if variant:
            context_parts.append(format_variant_context(variant))
            sources.append({"sku": variant.get("sku"), "url": variant.get("url")})

        embedding = await self.embed_query(message)
        matches = await self.repository.search_chunks(embedding, self.settings.chat_match_count)
        for index, match in enumerate(matches, start=1):
            context_parts.append(f"### Source {index}\n{match['chunk']}")
            meta = match.get("meta") or {}
            sources.append(
                {
                    "product_id": match.get("product_id"),
                    "name": meta.get("name"),
                    "url": meta.get("url"),
                    "similarity": float(match.get("similarity") or 0.0),
                }
            )

        context = "\n\n".join(context_parts) if context_parts else "(no catalog context found)"
        messages = [
            {"role": "system", "content": SYSTEM_PROMPT.format(store=self.settings.store_name)},
            {"role": "system", "content": f"CONTEXT:\n{context}"},
            {"role": "user", "content": message},
        ]
        answer = await self.llm.chat(messages)

        try:
            await self.repository.insert_chat_messages(
                [
                    {"session_id": session_id, "role": "user", "content": message},
                    {"session_id": session_id, "role": "assistant", "content": answer},
                ]
            )
            await self.repository.commit()
        except Exception as e:
            await self.repository.rollback()
            logger.warning("Failed to log chat messages", session_id=session_id, error=str(e))

        logger.info("Chat answered", session_id=session_id, sources=len(sources))
        return ChatAnswer(answer=answer, session_id=session_id, sources=sources)
