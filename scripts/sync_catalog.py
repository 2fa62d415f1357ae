#!/usr/bin/env python3
"""CLI script to sync option names and products from Webflow, then embed them for chat."""

import argparse
import asyncio
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import structlog

from catalog_service.config import get_settings
from catalog_service.infrastructure.database.connection import dispose_engine, get_db_session
from catalog_service.infrastructure.database.repository import CatalogRepository
from catalog_service.infrastructure.vendor import WebflowClient
from catalog_service.services.ingestion import IngestionService
from catalog_service.services.llm import LLMClient
from catalog_service.services.option_sync import OptionSyncService
from catalog_service.services.product_sync import ProductSyncService
from shared.constants import INGEST_MAX_BATCH_SIZE, INGEST_MAX_LIMIT

logger = structlog.get_logger()


async def main(args: argparse.Namespace) -> None:
    """Main sync function."""
    settings = get_settings()
    logger.info("Starting catalog sync")

    async with get_db_session() as session, WebflowClient(settings) as vendor:
        repository = CatalogRepository(session)

        collection_id = args.collection_id or settings.webflow_collection_id
        if collection_id:
            option_result = await OptionSyncService(vendor, repository).sync_options(collection_id)
            logger.info("Option sync completed", synced=option_result.synced, fields=option_result.fields)
        else:
            logger.warning("No collection id given, keeping the current option table")

        if args.product:
            result = await ProductSyncService(vendor, repository, settings).sync_product(args.product)
            logger.info("Product sync completed", product_id=result.product_id, variants=result.variants_count)
        else:
            sync_result = await ProductSyncService(vendor, repository, settings).sync_catalog(
                page_size=args.page_size,
                delay_seconds=args.delay_ms / 1000,
            )
            logger.info(
                "Catalog sync completed",
                total_found=sync_result.total_found,
                synced=sync_result.synced,
                failed=sync_result.failed,
            )
            for error in sync_result.errors:
                logger.warning("Product failed", **error)

        if args.ingest:
            async with LLMClient(settings) as llm:
                ingestion = IngestionService(repository, llm, settings)
                offset = 0
                while True:
                    batch = await ingestion.ingest_batch(
                        offset=offset,
                        limit=INGEST_MAX_LIMIT,
                        batch_size=INGEST_MAX_BATCH_SIZE,
                        delay_seconds=args.delay_ms / 1000,
                    )
                    logger.info("Ingestion batch completed", offset=offset, ingested=batch.ingested, failed=batch.failed)
                    if batch.done or batch.next_offset == offset:
                        break
                    offset = batch.next_offset

    await dispose_engine()
    logger.info("All operations completed successfully")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Sync the Webflow catalog into PostgreSQL")
    parser.add_argument("--collection-id", default=None, help="Collection holding the option fields")
    parser.add_argument("--product", default=None, help="Sync only this Webflow product id")
    parser.add_argument("--page-size", type=int, default=100)
    parser.add_argument("--delay-ms", type=int, default=get_settings().sync_delay_ms)
    parser.add_argument("--ingest", action="store_true", help="Embed products after syncing")
    asyncio.run(main(parser.parse_args()))
