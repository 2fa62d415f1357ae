"""API v1 router that aggregates all endpoint routers."""

from fastapi import APIRouter

from catalog_service.api.v1 import admin, chat, health

api_router = APIRouter()

api_router.include_router(
    health.router,
    tags=["Health"],
)

api_router.include_router(
    admin.router,
    prefix="/admin",
    tags=["Admin"],
)

api_router.include_router(
    chat.router,
    prefix="/chat",
    tags=["Chat"],
)
