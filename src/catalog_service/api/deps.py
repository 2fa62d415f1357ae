"""Shared FastAPI dependencies."""

import secrets
from typing import AsyncGenerator

from fastapi import Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from catalog_service.config import Settings, get_settings
from catalog_service.infrastructure.database.connection import get_session
from catalog_service.infrastructure.database.repository import CatalogRepository
from catalog_service.infrastructure.redis import CacheService, get_redis_client
from catalog_service.infrastructure.vendor import WebflowClient
from catalog_service.services.chat import ChatService
from catalog_service.services.ingestion import IngestionService
from catalog_service.services.llm import LLMClient
from catalog_service.services.option_sync import OptionSyncService
from catalog_service.services.product_sync import ProductSyncService


def require_admin(request: Request, settings: Settings = Depends(get_settings)) -> None:
    """Reject the request unless it carries the shared admin token."""
    expected = settings.admin_token
    received = request.headers.get(settings.admin_token_header)
    if not expected or not received or not secrets.compare_digest(received, expected):
        raise HTTPException(status_code=401, detail="Unauthorized")


def get_repository(session: AsyncSession = Depends(get_session)) -> CatalogRepository:
    return CatalogRepository(session)


async def get_vendor_client(
    settings: Settings = Depends(get_settings),
) -> AsyncGenerator[WebflowClient, None]:
    async with WebflowClient(settings) as client:
        yield client


async def get_llm_client(
    settings: Settings = Depends(get_settings),
) -> AsyncGenerator[LLMClient, None]:
    async with LLMClient(settings) as client:
        yield client


def get_option_sync_service(
    vendor: WebflowClient = Depends(get_vendor_client),
    repository: CatalogRepository = Depends(get_repository),
) -> OptionSyncService:
    return OptionSyncService(vendor, repository)


def get_product_sync_service(
    vendor: WebflowClient = Depends(get_vendor_client),
    repository: CatalogRepository = Depends(get_repository),
    settings: Settings = Depends(get_settings),
) -> ProductSyncService:
    return ProductSyncService(vendor, repository, settings)


def get_ingestion_service(
    repository: CatalogRepository = Depends(get_repository),
    llm: LLMClient = Depends(get_llm_client),
    settings: Settings = Depends(get_settings),
) -> IngestionService:
    return IngestionService(repository, llm, settings)


async def get_chat_service(
    repository: CatalogRepository = Depends(get_repository),
    llm: LLMClient = Depends(get_llm_client),
    settings: Settings = Depends(get_settings),
) -> ChatService:
    cache = CacheService(await get_redis_client())
    return ChatService(repository, llm, cache, settings)
