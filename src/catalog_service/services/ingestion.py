"""Product ingestion for retrieval.

Turns synced products into labeled text, splits it into chunks and stores one
embedding per chunk in ``catalog.product_chunks``.
"""

import asyncio
import hashlib
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

import structlog

from shared.constants import CHUNK_MAX_CHARS

from catalog_service.config import Settings, get_settings
from catalog_service.exceptions import CatalogServiceError, ModelAPIError
from catalog_service.infrastructure.database.repository import CatalogRepository
from catalog_service.services.llm import LLMClient

logger = structlog.get_logger()


@dataclass
class IngestionResult:
    """Summary of an ingestion run."""

    ingested: int = 0
    failed: int = 0
    errors: list[dict[str, Any]] = field(default_factory=list)
    total_found: int | None = None
    next_offset: int | None = None
    done: bool = True


def chunk_text(text: str, max_chars: int = CHUNK_MAX_CHARS) -> list[str]:
    """Split on line breaks and pack lines greedily up to ``max_chars``.

    A single line longer than ``max_chars`` becomes its own chunk.
    """
    clean = (text or "").strip()
    if not clean:
        return []
    if len(clean) <= max_chars:
        return [clean]

    chunks: list[str] = []
    buf = ""
    for line in clean.splitlines():
        line = line.strip()
        if not line:
            continue
        if buf and len(buf) + 1 + len(line) > max_chars:
            chunks.append(buf)
            buf = line
        else:
            buf = f"{buf}\n{line}" if buf else line
    if buf:
        chunks.append(buf)
    return chunks


def chunk_hash(product_id: int, index: int, chunk: str) -> str:
    return hashlib.sha1(f"{product_id}:{index}:{chunk}".encode("utf-8")).hexdigest()


def product_to_rag_text(product: dict[str, Any], variants: Sequence[dict[str, Any]]) -> str:
    """Labeled text representation of a product and its variants."""
    lines = []
    currency = product.get("currency") or "EUR"

    labeled = [
        ("Name", product.get("name")),
        ("Product reference", product.get("product_reference")),
        ("Brand", product.get("brand")),
        ("URL", product.get("url")),
    ]
    for label, value in labeled:
        if value:
            lines.append(f"{label}: {value}")

    if product.get("price") is not None:
        lines.append(f"Price (from): {product['price']} {currency}")

    labeled = [
        ("Benefit", product.get("benefice_court")),
        ("Summary", product.get("meta_description")),
        ("Description", product.get("description")),
        ("Keywords", product.get("altword")),
        ("Datasheet", product.get("fiche_technique_url")),
    ]
    for label, value in labeled:
        if value:
            lines.append(f"{label}: {value}")

    if variants:
        lines.append("Variants:")
        for variant in variants:
            parts = []
            if variant.get("sku"):
                parts.append(f"SKU {variant['sku']}")
            if variant.get("name"):
                parts.append(str(variant["name"]))
            if variant.get("price") is not None:
                parts.append(f"= {variant['price']} {variant.get('currency') or currency}")
            if parts:
                lines.append(f"- {' '.join(parts)}")

    return "\n".join(lines).strip()


class IngestionService:
    """Embeds synced products into the retrieval table."""

    def __init__(
        self,
        repository: CatalogRepository,
        llm: LLMClient,
        settings: Settings | None = None,
    ):
        self.repository = repository
        self.llm = llm
        self.settings = settings or get_settings()

    async def ingest_product(self, product: dict[str, Any]) -> int:
        """Embed and store every chunk of one product. Returns chunk count."""
        variants = await self.repository.get_variants(product["id"])
        chunks = chunk_text(product_to_rag_text(product, variants))
        if not chunks:
            raise CatalogServiceError(f"Product {product['id']} has no text to ingest")

        for index, chunk in enumerate(chunks):
            vector = await self.llm.embed(chunk)
            if len(vector) != self.settings.embedding_dimension:
                raise ModelAPIError(
                    f"embedding bad dim: got={len(vector)} "
                    f"expected={self.settings.embedding_dimension}"
                )
            await self.repository.upsert_chunk(
                {
                    "product_id": product["id"],
                    "chunk": chunk,
                    "chunk_hash": chunk_hash(product["id"], index, chunk),
                    "meta": {
                        "webflow_product_id": product.get("webflow_product_id"),
                        "slug": product.get("slug"),
                        "url": product.get("url"),
                        "product_reference": product.get("product_reference"),
                        "name": product.get("name"),
                        "brand": product.get("brand"),
                        "chunk_index": index,
                    },
                    "embedding": vector,
                }
            )
        await self.repository.commit()
        return len(chunks)

    async def _ingest_all(
        self, products: Sequence[dict[str, Any]], delay_seconds: float
    ) -> IngestionResult:
        result = IngestionResult()
        for product in products:
            try:
                await self.ingest_product(product)
                result.ingested += 1
            except Exception as e:
                await self.repository.rollback()
                logger.error("Error ingesting product", product_id=product.get("id"), error=str(e))
                result.failed += 1
                result.errors.append({"productId": product.get("id"), "error": str(e)})
            if delay_seconds:
                await asyncio.sleep(delay_seconds)
        return result

    async def ingest_products(
        self, product_ids: Sequence[int], delay_seconds: float = 0
    ) -> IngestionResult:
        """Ingest an explicit list of product ids."""
        products = await self.repository.get_products(product_ids)
        result = await self._ingest_all(products, delay_seconds)
        logger.info("Targeted ingestion completed", ingested=result.ingested, failed=result.failed)
        return result

    async def ingest_batch(
        self,
        offset: int = 0,
        limit: int = 50,
        batch_size: int = 5,
        delay_seconds: float = 0.12,
    ) -> IngestionResult:
        """
        Ingest one slice of the products table.

        Reads ``limit`` products from ``offset`` and processes at most
        ``batch_size`` of them; callers continue from ``next_offset`` until
        ``done``.
        """
        total = await self.repository.count_products()
        products = await self.repository.list_products(offset, limit)
        selected = products[:batch_size]

        result = await self._ingest_all(selected, delay_seconds)
        result.total_found = total
        result.next_offset = offset + len(selected)
        result.done = not products or result.next_offset >= total

        logger.info(
            "Batch ingestion completed",
            offset=offset,
            next_offset=result.next_offset,
            ingested=result.ingested,
            failed=result.failed,
        )
        return result
