"""Administrative endpoints to trigger catalog sync and ingestion.

Every route requires the shared admin token header.
"""

from typing import Any

import structlog
from fastapi import APIRouter, Body, Depends, HTTPException
from pydantic import Field

from shared.constants import (
    INGEST_DEFAULT_BATCH_SIZE,
    INGEST_DEFAULT_LIMIT,
    INGEST_MAX_BATCH_SIZE,
    INGEST_MAX_LIMIT,
    MAX_DELAY_MS,
    MAX_SYNC_PAGE_SIZE,
    SYNC_BATCH_DEFAULT_LIMIT,
    SYNC_BATCH_DEFAULT_SIZE,
    SYNC_BATCH_MAX_LIMIT,
    SYNC_BATCH_MAX_SIZE,
)

from catalog_service.api.deps import (
    get_ingestion_service,
    get_option_sync_service,
    get_product_sync_service,
    require_admin,
)
from catalog_service.api.schemas import CamelModel
from catalog_service.config import Settings, get_settings
from catalog_service.services.ingestion import IngestionService
from catalog_service.services.option_sync import OptionSyncService
from catalog_service.services.product_sync import ProductSyncService

logger = structlog.get_logger()

router = APIRouter(dependencies=[Depends(require_admin)])


def clamp_int(value: int | None, default: int, minimum: int, maximum: int) -> int:
    """Clamp an optional integer into [minimum, maximum]."""
    if value is None:
        return default
    return max(minimum, min(maximum, int(value)))


# =============================================================================
# Request / Response Models
# =============================================================================


class SyncOptionsRequest(CamelModel):
    collection_id: str | None = None
    field_slugs: list[str] | None = None


class SyncOptionsResponse(CamelModel):
    ok: bool = True
    synced: int
    fields: list[str] = Field(default_factory=list)
    message: str | None = None


class SyncProductRequest(CamelModel):
    product_id: str | None = None


class SyncedProduct(CamelModel):
    id: int
    webflow_product_id: str
    url: str | None = None


class SyncProductResponse(CamelModel):
    ok: bool = True
    product: SyncedProduct
    variants_count: int


class SyncProductsRequest(CamelModel):
    page_size: int | None = None
    offset: int | None = None
    limit: int | None = None
    batch_size: int | None = None
    delay_ms: int | None = None

    def is_batch(self) -> bool:
        return any(v is not None for v in (self.offset, self.limit, self.batch_size))


class SyncProductsResponse(CamelModel):
    ok: bool = True
    mode: str
    total_found: int | None = None
    synced: int
    failed: int
    errors: list[dict[str, Any]]
    offset: int | None = None
    limit: int | None = None
    batch_size: int | None = None
    next_offset: int | None = None
    done: bool | None = None


class IngestProductsRequest(CamelModel):
    products: list[int] | None = None
    offset: int | None = None
    limit: int | None = None
    batch_size: int | None = None
    delay_ms: int | None = None


class IngestProductsResponse(CamelModel):
    ok: bool = True
    mode: str
    ingested: int
    failed: int
    errors: list[dict[str, Any]]
    total_found: int | None = None
    offset: int | None = None
    next_offset: int | None = None
    done: bool | None = None


# =============================================================================
# Endpoints
# =============================================================================


@router.post("/sync-options", response_model=SyncOptionsResponse, response_model_exclude_none=True)
async def sync_options(
    request: SyncOptionsRequest | None = Body(default=None),
    service: OptionSyncService = Depends(get_option_sync_service),
) -> SyncOptionsResponse:
    """
    Sync option id -> name lookup entries of a collection.

    Body: ``{"collectionId": "...", "fieldSlugs": ["fabricants"]}``; without
    ``fieldSlugs`` every option field is synced.
    """
    request = request or SyncOptionsRequest()
    collection_id = (request.collection_id or "").strip()
    if not collection_id:
        raise HTTPException(status_code=400, detail="Missing collectionId")

    field_slugs = None
    if request.field_slugs is not None:
        field_slugs = [s.strip() for s in request.field_slugs if s and s.strip()]

    result = await service.sync_options(collection_id, field_slugs)
    return SyncOptionsResponse(
        synced=result.synced,
        fields=result.fields,
        message=None if result.synced else "No option fields matched",
    )


@router.post("/sync-product", response_model=SyncProductResponse)
async def sync_product(
    request: SyncProductRequest | None = Body(default=None),
    service: ProductSyncService = Depends(get_product_sync_service),
) -> SyncProductResponse:
    """Sync one product and its variants. Body: ``{"productId": "..."}``."""
    product_id = ((request.product_id if request else None) or "").strip()
    if not product_id:
        raise HTTPException(status_code=400, detail="Missing productId")

    result = await service.sync_product(product_id)
    return SyncProductResponse(
        product=SyncedProduct(
            id=result.product_id,
            webflow_product_id=result.webflow_product_id,
            url=result.url,
        ),
        variants_count=result.variants_count,
    )


@router.post("/sync-products", response_model=SyncProductsResponse, response_model_exclude_none=True)
async def sync_products(
    request: SyncProductsRequest | None = Body(default=None),
    service: ProductSyncService = Depends(get_product_sync_service),
    settings: Settings = Depends(get_settings),
) -> SyncProductsResponse:
    """
    Sync the vendor catalog, whole or one slice at a time.

    ``{"offset", "limit", "batchSize", "delayMs"}`` syncs one slice and
    returns ``nextOffset`` / ``done`` for the caller to continue; otherwise
    the whole listing is walked, paged by ``pageSize``. One failing product
    is reported in ``errors`` and never stops the run.
    """
    request = request or SyncProductsRequest()
    delay_ms = clamp_int(request.delay_ms, settings.sync_delay_ms, 0, MAX_DELAY_MS)

    if request.is_batch():
        offset = clamp_int(request.offset, 0, 0, 1_000_000)
        limit = clamp_int(request.limit, SYNC_BATCH_DEFAULT_LIMIT, 1, SYNC_BATCH_MAX_LIMIT)
        batch_size = clamp_int(request.batch_size, SYNC_BATCH_DEFAULT_SIZE, 1, SYNC_BATCH_MAX_SIZE)

        result = await service.sync_batch(
            offset=offset,
            limit=limit,
            batch_size=batch_size,
            delay_seconds=delay_ms / 1000,
        )
        return SyncProductsResponse(
            mode="batch",
            total_found=result.total_found,
            synced=result.synced,
            failed=result.failed,
            errors=result.errors,
            offset=offset,
            limit=limit,
            batch_size=batch_size,
            next_offset=result.next_offset,
            done=result.done,
        )

    page_size = clamp_int(request.page_size, settings.sync_page_size, 1, MAX_SYNC_PAGE_SIZE)
    result = await service.sync_catalog(page_size=page_size, delay_seconds=delay_ms / 1000)
    return SyncProductsResponse(
        mode="catalog",
        total_found=result.total_found,
        synced=result.synced,
        failed=result.failed,
        errors=result.errors,
    )


@router.post("/ingest-products", response_model=IngestProductsResponse, response_model_exclude_none=True)
async def ingest_products(
    request: IngestProductsRequest | None = Body(default=None),
    service: IngestionService = Depends(get_ingestion_service),
    settings: Settings = Depends(get_settings),
) -> IngestProductsResponse:
    """
    Embed synced products into the retrieval table.

    ``{"products": [260, 261]}`` ingests those product ids; otherwise
    ``{"offset", "limit", "batchSize", "delayMs"}`` ingests one slice and
    returns ``nextOffset`` / ``done`` for the caller to continue.
    """
    request = request or IngestProductsRequest()

    if request.products:
        result = await service.ingest_products(request.products)
        return IngestProductsResponse(
            mode="products",
            ingested=result.ingested,
            failed=result.failed,
            errors=result.errors,
        )

    offset = clamp_int(request.offset, 0, 0, 1_000_000)
    limit = clamp_int(request.limit, INGEST_DEFAULT_LIMIT, 1, INGEST_MAX_LIMIT)
    batch_size = clamp_int(request.batch_size, INGEST_DEFAULT_BATCH_SIZE, 1, INGEST_MAX_BATCH_SIZE)
    delay_ms = clamp_int(request.delay_ms, settings.sync_delay_ms, 0, MAX_DELAY_MS)

    result = await service.ingest_batch(
        offset=offset,
        limit=limit,
        batch_size=batch_size,
        delay_seconds=delay_ms / 1000,
    )
    return IngestProductsResponse(
        mode="batch",
        ingested=result.ingested,
        failed=result.failed,
        errors=result.errors,
        total_found=result.total_found,
        offset=offset,
        next_offset=result.next_offset,
        done=result.done,
    )
