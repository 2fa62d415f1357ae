"""Catalog persistence.

All writes are PostgreSQL upserts keyed on natural keys, so re-syncing the
same vendor data only overwrites fields. Database errors surface as
``PersistenceError`` with the driver's message.
"""

from collections.abc import Sequence
from typing import Any

import structlog
from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from catalog_service.exceptions import PersistenceError
from catalog_service.infrastructure.database.models import (
    ChatMessage,
    OptionMapEntry,
    Product,
    ProductChunk,
    ProductVariant,
)
from catalog_service.services.field_mapper import OptionLookup

logger = structlog.get_logger()

PRODUCT_READ_COLUMNS = (
    Product.id,
    Product.webflow_product_id,
    Product.slug,
    Product.url,
    Product.name,
    Product.brand,
    Product.product_reference,
    Product.price,
    Product.currency,
    Product.description,
    Product.altword,
    Product.benefice_court,
    Product.meta_description,
    Product.fiche_technique_url,
)


def _update_set(stmt: Any, row: dict[str, Any], *keys: str) -> dict[str, Any]:
    """Columns to overwrite on conflict: everything except the conflict keys."""
    return {col: stmt.excluded[col] for col in row if col not in keys}


class CatalogRepository:
    """Reads and idempotent writes against the catalog schema."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def _execute(self, stmt: Any, operation: str) -> Any:
        try:
            return await self.session.execute(stmt)
        except SQLAlchemyError as e:
            logger.error("Database operation failed", operation=operation, error=str(e))
            raise PersistenceError(f"{operation} failed: {e}") from e

    async def commit(self) -> None:
        try:
            await self.session.commit()
        except SQLAlchemyError as e:
            raise PersistenceError(f"commit failed: {e}") from e

    async def rollback(self) -> None:
        await self.session.rollback()

    # -------------------------------------------------------------------------
    # Catalog sync
    # -------------------------------------------------------------------------

    async def upsert_product(self, row: dict[str, Any]) -> int:
        """Upsert one product on webflow_product_id and return its surrogate id."""
        stmt = insert(Product).values(**row)
        stmt = stmt.on_conflict_do_update(
            index_elements=[Product.webflow_product_id],
            set_={**_update_set(stmt, row, "webflow_product_id"), "updated_at": func.now()},
        ).returning(Product.id)
        result = await self._execute(stmt, "products upsert")
        return result.scalar_one()

    async def upsert_variants(self, rows: Sequence[dict[str, Any]]) -> int:
        """Upsert variants in one statement keyed on webflow_sku_id."""
        if not rows:
            return 0
        stmt = insert(ProductVariant).values(list(rows))
        stmt = stmt.on_conflict_do_update(
            index_elements=[ProductVariant.webflow_sku_id],
            set_={**_update_set(stmt, rows[0], "webflow_sku_id"), "updated_at": func.now()},
        )
        await self._execute(stmt, "product_variants upsert")
        return len(rows)

    async def upsert_option_entries(self, rows: Sequence[dict[str, Any]]) -> int:
        """Upsert option names keyed on (field_slug, option_id)."""
        if not rows:
            return 0
        stmt = insert(OptionMapEntry).values(list(rows))
        stmt = stmt.on_conflict_do_update(
            index_elements=[OptionMapEntry.field_slug, OptionMapEntry.option_id],
            set_={"option_name": stmt.excluded.option_name, "updated_at": func.now()},
        )
        await self._execute(stmt, "option_map upsert")
        return len(rows)

    async def load_option_lookup(self) -> OptionLookup:
        stmt = select(
            OptionMapEntry.field_slug,
            OptionMapEntry.option_id,
            OptionMapEntry.option_name,
        )
        result = await self._execute(stmt, "option_map read")
        return OptionLookup.from_rows(result.mappings().all())

    # -------------------------------------------------------------------------
    # Ingestion
    # -------------------------------------------------------------------------

    async def count_products(self) -> int:
        result = await self._execute(select(func.count(Product.id)), "products count")
        return result.scalar() or 0

    async def list_products(self, offset: int, limit: int) -> list[dict[str, Any]]:
        stmt = (
            select(*PRODUCT_READ_COLUMNS)
            .order_by(Product.id.asc())
            .offset(offset)
            .limit(limit)
        )
        result = await self._execute(stmt, "products read")
        return [dict(row) for row in result.mappings().all()]

    async def get_products(self, product_ids: Sequence[int]) -> list[dict[str, Any]]:
        stmt = select(*PRODUCT_READ_COLUMNS).where(Product.id.in_(list(product_ids)))
        result = await self._execute(stmt, "products read")
        return [dict(row) for row in result.mappings().all()]

    async def get_variants(self, product_id: int) -> list[dict[str, Any]]:
        stmt = (
            select(
                ProductVariant.sku,
                ProductVariant.name,
                ProductVariant.price,
                ProductVariant.currency,
            )
            .where(ProductVariant.product_id == product_id)
            .order_by(ProductVariant.id)
        )
        result = await self._execute(stmt, "variants read")
        return [dict(row) for row in result.mappings().all()]

    async def upsert_chunk(self, row: dict[str, Any]) -> None:
        stmt = insert(ProductChunk).values(**row)
        stmt = stmt.on_conflict_do_update(
            constraint="uq_product_chunks_hash",
            set_=_update_set(stmt, row, "product_id", "chunk_hash"),
        )
        await self._execute(stmt, "chunk upsert")

    # -------------------------------------------------------------------------
    # Chat
    # -------------------------------------------------------------------------

    async def search_chunks(
        self, embedding: Sequence[float], limit: int
    ) -> list[dict[str, Any]]:
        """Nearest chunks by cosine distance (pgvector)."""
        distance = ProductChunk.embedding.cosine_distance(list(embedding))
        stmt = (
            select(
                ProductChunk.product_id,
                ProductChunk.chunk,
                ProductChunk.meta,
                (1 - distance).label("similarity"),
            )
            .order_by(distance)
            .limit(limit)
        )
        result = await self._execute(stmt, "similarity search")
        return [dict(row) for row in result.mappings().all()]

    async def find_variant_by_sku(self, sku: str) -> dict[str, Any] | None:
        """Variant with its parent product's descriptive fields."""
        stmt = (
            select(
                ProductVariant.sku,
                ProductVariant.price,
                ProductVariant.currency,
                Product.name,
                Product.brand,
                Product.product_reference,
                Product.url,
                Product.slug,
                Product.meta_description,
            )
            .join(Product, Product.id == ProductVariant.product_id)
            .where(func.upper(ProductVariant.sku) == sku.upper())
            .limit(1)
        )
        result = await self._execute(stmt, "variant lookup")
        row = result.mappings().first()
        return dict(row) if row else None

    async def insert_chat_messages(self, rows: Sequence[dict[str, Any]]) -> None:
        if not rows:
            return
        await self._execute(insert(ChatMessage).values(list(rows)), "chat_messages insert")
