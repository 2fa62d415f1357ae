"""Catalog synchronization tasks."""

import asyncio
from dataclasses import asdict
from typing import Any, Awaitable, Callable

import structlog
from celery import shared_task

from catalog_service.config import get_settings
from catalog_service.exceptions import VendorAPIError
from catalog_service.infrastructure.database.connection import (
    create_engine,
    get_db_session,
    make_session_factory,
)
from catalog_service.infrastructure.database.repository import CatalogRepository
from catalog_service.infrastructure.vendor import WebflowClient
from catalog_service.services.ingestion import IngestionService
from catalog_service.services.llm import LLMClient
from catalog_service.services.option_sync import OptionSyncService
from catalog_service.services.product_sync import ProductSyncService
from shared.constants import INGEST_MAX_BATCH_SIZE, INGEST_MAX_LIMIT

logger = structlog.get_logger()


async def _with_repository(work: Callable[[CatalogRepository], Awaitable[Any]]) -> Any:
    # Each task runs in its own event loop, so connections are never pooled
    engine = create_engine(pooled=False)
    try:
        async with get_db_session(make_session_factory(engine)) as session:
            return await work(CatalogRepository(session))
    finally:
        await engine.dispose()


async def _sync_catalog() -> dict[str, Any]:
    async def work(repository: CatalogRepository) -> dict[str, Any]:
        async with WebflowClient() as vendor:
            result = await ProductSyncService(vendor, repository).sync_catalog()
        return asdict(result)

    return await _with_repository(work)


async def _sync_options(collection_id: str) -> dict[str, Any]:
    async def work(repository: CatalogRepository) -> dict[str, Any]:
        async with WebflowClient() as vendor:
            result = await OptionSyncService(vendor, repository).sync_options(collection_id)
        return asdict(result)

    return await _with_repository(work)


async def _ingest_all() -> dict[str, Any]:
    settings = get_settings()

    async def work(repository: CatalogRepository) -> dict[str, Any]:
        summary: dict[str, Any] = {"ingested": 0, "failed": 0, "errors": []}
        async with LLMClient(settings) as llm:
            service = IngestionService(repository, llm, settings)
            offset = 0
            while True:
                result = await service.ingest_batch(
                    offset=offset,
                    limit=INGEST_MAX_LIMIT,
                    batch_size=INGEST_MAX_BATCH_SIZE,
                    delay_seconds=settings.sync_delay_ms / 1000,
                )
                summary["ingested"] += result.ingested
                summary["failed"] += result.failed
                summary["errors"].extend(result.errors)
                summary["total_found"] = result.total_found
                if result.done or result.next_offset == offset:
                    break
                offset = result.next_offset
        return summary

    return await _with_repository(work)


@shared_task(bind=True)
def sync_catalog_from_vendor(self) -> dict:
    """
    Synchronize the whole product catalog from the vendor API.

    This task:
    1. Walks the vendor product listing page by page
    2. Fetches each product with its SKUs and upserts both
    3. Records per-product failures without stopping the walk

    Returns:
        dict: Summary of sync operation
    """
    logger.info("Starting catalog sync from vendor API")
    try:
        result = asyncio.run(_sync_catalog())
    except VendorAPIError as e:
        # A page fetch failed; item failures never reach here
        logger.error("Catalog sync aborted", error=str(e))
        raise

    logger.info(
        "Catalog sync completed",
        total_found=result["total_found"],
        synced=result["synced"],
        failed=result["failed"],
    )
    return result


@shared_task(bind=True)
def sync_single_product(self, webflow_product_id: str) -> dict:
    """
    Sync a single product from the vendor API.

    Useful for real-time updates when a product is modified.

    Args:
        webflow_product_id: The product ID in the vendor system

    Returns:
        dict: Sync result
    """
    logger.info("Syncing single product", webflow_product_id=webflow_product_id)

    async def work(repository: CatalogRepository) -> dict[str, Any]:
        async with WebflowClient() as vendor:
            result = await ProductSyncService(vendor, repository).sync_product(webflow_product_id)
        return asdict(result)

    return asyncio.run(_with_repository(work))


@shared_task(bind=True)
def sync_option_lookup(self) -> dict:
    """Refresh the option id -> name table from the configured collection."""
    collection_id = get_settings().webflow_collection_id
    if not collection_id:
        logger.warning("WEBFLOW_COLLECTION_ID is not set, skipping option sync")
        return {"synced": 0, "fields": []}

    logger.info("Syncing option lookup", collection_id=collection_id)
    return asyncio.run(_sync_options(collection_id))


@shared_task(bind=True)
def ingest_all_products(self) -> dict:
    """Re-embed every synced product, one batch slice at a time."""
    logger.info("Starting product ingestion")
    result = asyncio.run(_ingest_all())
    logger.info(
        "Product ingestion completed",
        ingested=result["ingested"],
        failed=result["failed"],
    )
    return result
