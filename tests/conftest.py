"""Pytest configuration and fixtures."""

from collections.abc import Callable
from decimal import Decimal
from typing import Any

import pytest
from fastapi.testclient import TestClient

from catalog_service.config import Settings, get_settings
from catalog_service.exceptions import PersistenceError, VendorAPIError
from catalog_service.main import create_app
from catalog_service.services.field_mapper import OptionLookup

ADMIN_TOKEN = "test-admin-token"


@pytest.fixture
def test_settings() -> Settings:
    """Get test settings with overrides."""
    return Settings(
        app_env="test",
        debug=True,
        postgres_host="localhost",
        postgres_port=5432,
        postgres_user="test",
        postgres_password="test",
        postgres_db="test_db",
        redis_host="localhost",
        redis_port=6379,
        webflow_api_base_url="https://api.webflow.test/v2",
        webflow_api_token="wf-test-token",
        webflow_site_id="site-1",
        openai_api_base_url="https://models.test/v1",
        openai_api_key="sk-test",
        embedding_dimension=8,
        chat_match_count=3,
        sync_delay_ms=0,
        admin_token=ADMIN_TOKEN,
    )


@pytest.fixture
def app(test_settings: Settings) -> Any:
    """Create test application."""
    # Override settings
    def get_test_settings() -> Settings:
        return test_settings

    app = create_app()
    app.dependency_overrides[get_settings] = get_test_settings
    return app


@pytest.fixture
def client(app: Any) -> TestClient:
    """Create synchronous test client."""
    return TestClient(app)


@pytest.fixture
def admin_headers() -> dict[str, str]:
    return {"x-admin-token": ADMIN_TOKEN}


# =============================================================================
# Vendor payloads
# =============================================================================


def make_vendor_product(
    product_id: str,
    *,
    name: str = "Dome camera 4MP",
    slug: str | None = None,
    brand_option: str | None = "opt-hik",
    skus: list[tuple[str, str, int]] | None = None,
    default_sku: str | None = None,
    price: int | None = None,
    currency: str = "EUR",
) -> dict[str, Any]:
    """``{product, skus}`` body as returned for one vendor product."""
    if skus is None:
        skus = [(f"{product_id}-sku-1", f"DS-{product_id.upper()}-A", 2450)]

    field_data: dict[str, Any] = {
        "name": name,
        "slug": slug or product_id,
        "product-reference": f"REF-{product_id}",
        "description": "<p>Outdoor dome camera</p>",
        "meta-description": "4MP dome camera with night vision",
    }
    if brand_option is not None:
        field_data["fabricants"] = brand_option
    if default_sku is not None:
        field_data["default-sku"] = default_sku
    if price is not None:
        field_data["price"] = {"value": price, "unit": currency}

    return {
        "product": {"id": product_id, "fieldData": field_data},
        "skus": [
            {
                "id": sku_id,
                "fieldData": {
                    "sku": sku,
                    "name": f"{name} ({sku})",
                    "slug": sku.lower(),
                    "price": {"value": value, "unit": currency},
                    "sku-values": {"lens": "opt-4mm"},
                    "main-image": {"url": f"https://cdn.test/{sku_id}.jpg"},
                },
            }
            for sku_id, sku, value in skus
        ],
    }


class FakeVendor:
    """In-memory stand-in for ``WebflowClient``."""

    def __init__(self) -> None:
        self.products: dict[str, dict[str, Any]] = {}
        self.listing: list[str] = []
        self.collections: dict[str, dict[str, Any]] = {}
        self.failing_products: set[str] = set()
        self.failing_listing = False
        self.calls: list[tuple[str, Any]] = []
        self.page_limits: list[int] = []

    def add_product(self, body: dict[str, Any], listed: bool = True) -> None:
        product_id = body["product"]["id"]
        self.products[product_id] = body
        if listed:
            self.listing.append(product_id)

    async def list_products(self, offset: int = 0, limit: int = 100) -> dict[str, Any]:
        self.calls.append(("list_products", offset))
        self.page_limits.append(limit)
        if self.failing_listing:
            raise VendorAPIError("Webflow 503: unavailable", status_code=503)
        page = self.listing[offset:offset + limit]
        return {
            "items": [{"id": product_id} for product_id in page],
            "pagination": {"total": len(self.listing), "offset": offset, "limit": limit},
        }

    async def get_product(self, product_id: str) -> dict[str, Any]:
        self.calls.append(("get_product", product_id))
        if product_id in self.failing_products:
            raise VendorAPIError("Webflow 500: boom", status_code=500)
        return self.products.get(product_id, {"product": None, "skus": []})

    async def get_collection(self, collection_id: str) -> dict[str, Any]:
        self.calls.append(("get_collection", collection_id))
        return self.collections.get(collection_id, {"fields": []})


class FakeRepository:
    """In-memory stand-in for ``CatalogRepository``.

    ``calls`` records every write and transaction call in order;
    ``failures`` maps a method name to the exception it should raise.
    """

    def __init__(self) -> None:
        self.products: dict[str, dict[str, Any]] = {}
        self.variants: dict[str, dict[str, Any]] = {}
        self.options: dict[tuple[str, str], str] = {}
        self.chunks: dict[tuple[int, str], dict[str, Any]] = {}
        self.chat_messages: list[dict[str, Any]] = []
        self.calls: list[str] = []
        self.failures: dict[str, Exception] = {}
        self.failing_product_ids: set[str] = set()
        self.commits = 0
        self.rollbacks = 0
        self._next_id = 1

    def _record(self, name: str) -> None:
        self.calls.append(name)
        if name in self.failures:
            raise self.failures[name]

    async def commit(self) -> None:
        self._record("commit")
        self.commits += 1

    async def rollback(self) -> None:
        self.calls.append("rollback")
        self.rollbacks += 1

    async def upsert_product(self, row: dict[str, Any]) -> int:
        self._record("upsert_product")
        vendor_id = row["webflow_product_id"]
        if vendor_id in self.failing_product_ids:
            raise PersistenceError("products upsert failed: simulated")
        existing = self.products.get(vendor_id)
        product_id = existing["id"] if existing else self._next_id
        if not existing:
            self._next_id += 1
        self.products[vendor_id] = {**row, "id": product_id}
        return product_id

    async def upsert_variants(self, rows: list[dict[str, Any]]) -> int:
        if not rows:
            return 0
        self._record("upsert_variants")
        for row in rows:
            self.variants[row["webflow_sku_id"]] = dict(row)
        return len(rows)

    async def upsert_option_entries(self, rows: list[dict[str, Any]]) -> int:
        self._record("upsert_option_entries")
        for row in rows:
            self.options[(row["field_slug"], row["option_id"])] = row["option_name"]
        return len(rows)

    async def load_option_lookup(self) -> OptionLookup:
        self.calls.append("load_option_lookup")
        return OptionLookup(self.options)

    def _product_rows(self) -> list[dict[str, Any]]:
        return sorted(self.products.values(), key=lambda p: p["id"])

    async def count_products(self) -> int:
        return len(self.products)

    async def list_products(self, offset: int, limit: int) -> list[dict[str, Any]]:
        return self._product_rows()[offset:offset + limit]

    async def get_products(self, product_ids: list[int]) -> list[dict[str, Any]]:
        wanted = set(product_ids)
        return [p for p in self._product_rows() if p["id"] in wanted]

    async def get_variants(self, product_id: int) -> list[dict[str, Any]]:
        return [v for v in self.variants.values() if v["product_id"] == product_id]

    async def upsert_chunk(self, row: dict[str, Any]) -> None:
        self._record("upsert_chunk")
        self.chunks[(row["product_id"], row["chunk_hash"])] = dict(row)

    async def search_chunks(self, embedding: list[float], limit: int) -> list[dict[str, Any]]:
        self.calls.append("search_chunks")
        return [
            {
                "product_id": row["product_id"],
                "chunk": row["chunk"],
                "meta": row["meta"],
                "similarity": 0.9,
            }
            for row in list(self.chunks.values())[:limit]
        ]

    async def find_variant_by_sku(self, sku: str) -> dict[str, Any] | None:
        for variant in self.variants.values():
            if (variant.get("sku") or "").upper() != sku.upper():
                continue
            product = next(
                p for p in self.products.values() if p["id"] == variant["product_id"]
            )
            return {
                "sku": variant["sku"],
                "price": variant["price"],
                "currency": variant["currency"],
                "name": product["name"],
                "brand": product["brand"],
                "product_reference": product["product_reference"],
                "url": product["url"],
                "slug": product["slug"],
                "meta_description": product["meta_description"],
            }
        return None

    async def insert_chat_messages(self, rows: list[dict[str, Any]]) -> None:
        self._record("insert_chat_messages")
        self.chat_messages.extend(rows)


class FakeLLM:
    """Deterministic embeddings and canned chat answers."""

    def __init__(self, dimension: int, answer: str = "The DS-2CD2143 is in stock.") -> None:
        self.dimension = dimension
        self.answer = answer
        self.embedded: list[str] = []
        self.chats: list[list[dict[str, str]]] = []

    async def embed(self, text: str) -> list[float]:
        self.embedded.append(text)
        return [0.1] * self.dimension

    async def chat(self, messages: list[dict[str, str]]) -> str:
        self.chats.append(messages)
        return self.answer

    async def close(self) -> None:
        pass


@pytest.fixture
def vendor_product() -> Callable[..., dict[str, Any]]:
    """Factory for vendor product bodies."""
    return make_vendor_product


@pytest.fixture
def fake_vendor() -> FakeVendor:
    return FakeVendor()


@pytest.fixture
def fake_repository() -> FakeRepository:
    repository = FakeRepository()
    repository.options = {
        ("fabricants", "opt-hik"): "Hikvision",
        ("fabricants", "opt-dahua"): "Dahua",
    }
    return repository


@pytest.fixture
def fake_llm(test_settings: Settings) -> FakeLLM:
    return FakeLLM(test_settings.embedding_dimension)


@pytest.fixture
def sample_product_row() -> dict[str, Any]:
    """A synced products row as read back for ingestion."""
    return {
        "id": 1,
        "webflow_product_id": "prod-001",
        "slug": "dome-camera-4mp",
        "name": "Dome camera 4MP",
        "brand": "Hikvision",
        "product_reference": "DS-2CD2143G2-I",
        "price": Decimal("119.90"),
        "currency": "EUR",
        "description": "Outdoor dome camera with 30 m infrared.",
        "meta_description": "4MP dome camera",
        "altword": "dome, ip camera",
        "benefice_court": "AcuSense detection",
        "fiche_technique_url": "https://cdn.test/ds-2cd2143.pdf",
        "url": "https://www.camprotect.fr/product/dome-camera-4mp",
    }
