"""Product synchronization service.

Syncs products and their SKUs from the Webflow catalog into the catalog
schema. A single product sync is fetch -> map -> upsert product -> upsert
variants; the bulk catalog sync walks the vendor listing and runs the single
sync for every item, one at a time. A batch sync does the same for one
slice of the listing and reports where the next call should resume.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any

import structlog

from shared.constants import (
    DEFAULT_SKU_FIELD,
    SYNC_BATCH_DEFAULT_LIMIT,
    SYNC_BATCH_DEFAULT_SIZE,
)

from catalog_service.config import Settings, get_settings
from catalog_service.exceptions import ProductNotFoundError
from catalog_service.infrastructure.database.repository import CatalogRepository
from catalog_service.infrastructure.vendor import WebflowClient
from catalog_service.services.field_mapper import (
    FieldData,
    OptionLookup,
    map_product,
    map_variant,
)

logger = structlog.get_logger()


@dataclass
class ProductSyncResult:
    """Outcome of syncing one product."""

    product_id: int
    webflow_product_id: str
    variants_count: int
    url: str | None = None


@dataclass
class CatalogSyncResult:
    """Outcome of a catalog walk or of one slice of it."""

    total_found: int | None = None
    synced: int = 0
    failed: int = 0
    errors: list[dict[str, str]] = field(default_factory=list)
    next_offset: int | None = None
    done: bool = True


def listing_item_id(item: Any) -> str | None:
    """Product id of a listing item (``item.product.id`` or ``item.id``)."""
    if not isinstance(item, dict):
        return None
    product = item.get("product")
    if isinstance(product, dict) and product.get("id"):
        return str(product["id"])
    if item.get("id"):
        return str(item["id"])
    return None


def listing_items(page: Any) -> list[Any]:
    """Items of a listing page, empty when the page is malformed."""
    items = page.get("items") if isinstance(page, dict) else None
    return items if isinstance(items, list) else []


def listing_total(page: Any) -> int | None:
    """``pagination.total`` of a listing page, if the vendor reported one."""
    pagination = page.get("pagination") if isinstance(page, dict) else None
    if not isinstance(pagination, dict):
        return None
    total = pagination.get("total")
    if isinstance(total, bool) or not isinstance(total, int):
        return None
    return total


def canonical_sku(field_data: FieldData, skus: list[dict[str, Any]]) -> dict[str, Any] | None:
    """The declared default SKU, else the first one returned."""
    default_id = field_data.text(DEFAULT_SKU_FIELD)
    if default_id:
        for sku in skus:
            if str(sku["id"]) == default_id:
                return sku
    return skus[0] if skus else None


class ProductSyncService:
    """Service for synchronizing products from the vendor catalog."""

    def __init__(
        self,
        vendor: WebflowClient,
        repository: CatalogRepository,
        settings: Settings | None = None,
    ):
        self.vendor = vendor
        self.repository = repository
        self.settings = settings or get_settings()
        self._lookup: OptionLookup | None = None

    async def get_option_lookup(self) -> OptionLookup:
        """Option table, loaded once per service instance."""
        if self._lookup is None:
            self._lookup = await self.repository.load_option_lookup()
            logger.debug("Option lookup loaded", entries=len(self._lookup))
        return self._lookup

    async def sync_product(self, webflow_product_id: str) -> ProductSyncResult:
        """
        Sync one product and all of its SKUs.

        The product row is written first so the variants can reference its
        surrogate id; if that write fails no variant is written.

        Args:
            webflow_product_id: Vendor product id

        Returns:
            Surrogate id, vendor id, number of variants written and the URL
        """
        data = await self.vendor.get_product(webflow_product_id)

        product = data.get("product")
        if not isinstance(product, dict) or not product.get("id"):
            raise ProductNotFoundError(
                f"Webflow product {webflow_product_id} not found / invalid response"
            )

        vendor_id = str(product["id"])
        field_data = FieldData(product.get("fieldData"))
        raw_skus = data.get("skus")
        skus = [
            s for s in (raw_skus if isinstance(raw_skus, list) else [])
            if isinstance(s, dict) and s.get("id")
        ]

        canonical = canonical_sku(field_data, skus)
        canonical_id = str(canonical["id"]) if canonical else None
        variants = [
            map_variant(
                sku,
                vendor_id,
                default_currency=self.settings.default_currency,
                default_sku_id=canonical_id,
            )
            for sku in skus
        ]
        canonical_currency = next(
            (v.currency for v in variants if v.webflow_sku_id == canonical_id),
            self.settings.default_currency,
        )

        lookup = await self.get_option_lookup()
        record = map_product(
            vendor_id,
            field_data,
            lookup,
            catalog_base_url=self.settings.catalog_base_url,
            brand_field=self.settings.brand_option_field,
            variant_prices=[v.price for v in variants],
            fallback_currency=canonical_currency,
        )

        try:
            product_id = await self.repository.upsert_product(record.to_row())
            written = await self.repository.upsert_variants(
                [variant.to_row(product_id) for variant in variants]
            )
            await self.repository.commit()
        except Exception:
            await self.repository.rollback()
            raise

        logger.info(
            "Product synced",
            webflow_product_id=vendor_id,
            product_id=product_id,
            variants=written,
        )
        return ProductSyncResult(
            product_id=product_id,
            webflow_product_id=vendor_id,
            variants_count=written,
            url=record.url,
        )

    async def _sync_items(
        self,
        items: list[Any],
        result: CatalogSyncResult,
        delay_seconds: float,
    ) -> None:
        # One failing item is recorded and never stops the others
        for item in items:
            item_id = listing_item_id(item)
            if not item_id:
                continue

            try:
                await self.sync_product(item_id)
                result.synced += 1
            except Exception as e:
                logger.error("Error syncing product", webflow_product_id=item_id, error=str(e))
                result.failed += 1
                result.errors.append({"id": item_id, "error": str(e)})

            if delay_seconds:
                await asyncio.sleep(delay_seconds)

    async def sync_catalog(
        self,
        page_size: int | None = None,
        delay_seconds: float | None = None,
    ) -> CatalogSyncResult:
        """
        Walk the whole vendor product listing and sync every product.

        Items are processed sequentially with a fixed pause after each one to
        stay under the vendor rate limit. A failing item is recorded and the
        walk continues; a failing page fetch aborts the run.

        Args:
            page_size: Listing page size (defaults to settings)
            delay_seconds: Pause after each item (defaults to settings)

        Returns:
            Summary of sync operation
        """
        page_size = page_size or self.settings.sync_page_size
        if delay_seconds is None:
            delay_seconds = self.settings.sync_delay_ms / 1000

        result = CatalogSyncResult()
        offset = 0
        first_page = True

        while True:
            page = await self.vendor.list_products(offset=offset, limit=page_size)
            items = listing_items(page)

            if first_page:
                result.total_found = listing_total(page)
                first_page = False
                logger.info("Starting catalog sync", total_products=result.total_found)

            if not items:
                break

            await self._sync_items(items, result, delay_seconds)

            logger.info(
                "Page synced",
                offset=offset,
                items=len(items),
                synced=result.synced,
                failed=result.failed,
            )

            if len(items) < page_size:
                break
            offset += len(items)

        logger.info(
            "Catalog sync completed",
            total_found=result.total_found,
            synced=result.synced,
            failed=result.failed,
        )
        return result

    async def sync_batch(
        self,
        offset: int = 0,
        limit: int = SYNC_BATCH_DEFAULT_LIMIT,
        batch_size: int = SYNC_BATCH_DEFAULT_SIZE,
        delay_seconds: float | None = None,
    ) -> CatalogSyncResult:
        """
        Sync one slice of the vendor listing.

        Reads at most ``min(limit, batch_size)`` items from ``offset`` so a
        single call stays short; callers continue from ``next_offset`` until
        ``done``.
        """
        if delay_seconds is None:
            delay_seconds = self.settings.sync_delay_ms / 1000
        read_limit = min(limit, batch_size)

        page = await self.vendor.list_products(offset=offset, limit=read_limit)
        items = listing_items(page)

        result = CatalogSyncResult(total_found=listing_total(page))
        await self._sync_items(items, result, delay_seconds)

        result.next_offset = offset + len(items)
        result.done = not items or (
            result.total_found is not None and result.next_offset >= result.total_found
        )

        logger.info(
            "Batch sync completed",
            offset=offset,
            next_offset=result.next_offset,
            synced=result.synced,
            failed=result.failed,
            done=result.done,
        )
        return result
