"""Unit tests for the vendor field mapper."""

from decimal import Decimal

import pytest

from catalog_service.services.field_mapper import (
    FieldData,
    OptionLookup,
    Resolved,
    Unresolved,
    build_product_url,
    map_product,
    map_variant,
)

BASE_URL = "https://www.camprotect.fr"


@pytest.fixture
def lookup() -> OptionLookup:
    return OptionLookup(
        {
            ("fabricants", "opt-hik"): "Hikvision",
            ("fabricants", "opt-dahua"): "Dahua",
            ("compatibilite", "opt-poe"): "PoE",
        }
    )


def _map(field_data: dict, lookup: OptionLookup, **kwargs):
    return map_product(
        "prod-1",
        FieldData(field_data),
        lookup,
        catalog_base_url=BASE_URL,
        brand_field="fabricants",
        **kwargs,
    )


class TestOptionLookup:
    def test_resolves_known_option(self, lookup: OptionLookup) -> None:
        assert lookup.resolve("fabricants", "opt-hik") == Resolved("Hikvision")

    def test_unknown_option_is_unresolved(self, lookup: OptionLookup) -> None:
        assert lookup.resolve("fabricants", "opt-zzz") == Unresolved("opt-zzz")

    def test_lookup_is_scoped_by_field(self, lookup: OptionLookup) -> None:
        assert lookup.resolve("compatibilite", "opt-hik") == Unresolved("opt-hik")

    def test_resolve_field_drops_unresolved_ids(self, lookup: OptionLookup) -> None:
        names = lookup.resolve_field("fabricants", ["opt-hik", "missing", "opt-dahua"])
        assert names == ["Hikvision", "Dahua"]

    def test_resolve_field_ignores_non_id_values(self, lookup: OptionLookup) -> None:
        assert lookup.resolve_field("fabricants", 42) == []
        assert lookup.resolve_field("fabricants", ["", None]) == []

    def test_from_rows(self) -> None:
        rows = [{"field_slug": "fabricants", "option_id": "a", "option_name": "Axis"}]
        lookup = OptionLookup.from_rows(rows)
        assert len(lookup) == 1
        assert lookup.field_slugs == frozenset({"fabricants"})


class TestFieldData:
    def test_text_strips_and_blanks_to_none(self) -> None:
        data = FieldData({"name": "  Camera  ", "slug": "   ", "count": 3})
        assert data.text("name") == "Camera"
        assert data.text("slug") is None
        assert data.text("count") is None
        assert data.text("missing") is None

    def test_file_url(self) -> None:
        data = FieldData({"doc": {"url": "https://cdn.test/a.pdf"}, "bad": "x"})
        assert data.file_url("doc") == "https://cdn.test/a.pdf"
        assert data.file_url("bad") is None

    def test_non_mapping_is_empty(self) -> None:
        assert FieldData(None).keys() == []


class TestMapProduct:
    def test_brand_resolved_from_option_field(self, lookup: OptionLookup) -> None:
        record = _map({"name": "Camera", "fabricants": "opt-hik"}, lookup)
        assert record.brand == "Hikvision"

    def test_brand_falls_back_to_plain_field(self, lookup: OptionLookup) -> None:
        record = _map({"fabricants": "opt-unknown", "brand": "Acme"}, lookup)
        assert record.brand == "Acme"

    def test_unresolved_brand_without_fallback_is_none(self, lookup: OptionLookup) -> None:
        record = _map({"fabricants": "opt-unknown"}, lookup)
        assert record.brand is None
        assert record.payload["resolved_options"] == {}

    def test_price_from_cheapest_variant(self, lookup: OptionLookup) -> None:
        record = _map(
            {"name": "Camera"},
            lookup,
            variant_prices=[Decimal("24.50"), Decimal("19.99")],
            fallback_currency="EUR",
        )
        assert record.price == Decimal("19.99")
        assert record.currency == "EUR"

    def test_own_price_wins_over_variants(self, lookup: OptionLookup) -> None:
        record = _map(
            {"price": {"value": 4990, "unit": "EUR"}},
            lookup,
            variant_prices=[Decimal("19.99")],
        )
        assert record.price == Decimal("49.90")

    def test_zero_own_price_uses_variants(self, lookup: OptionLookup) -> None:
        record = _map(
            {"price": {"value": 0, "unit": "EUR"}},
            lookup,
            variant_prices=[Decimal("19.99")],
        )
        assert record.price == Decimal("19.99")

    def test_no_price_anywhere(self, lookup: OptionLookup) -> None:
        assert _map({"name": "Camera"}, lookup).price is None

    def test_url_built_from_slug(self, lookup: OptionLookup) -> None:
        record = _map({"slug": "dome-4mp"}, lookup)
        assert record.url == "https://www.camprotect.fr/product/dome-4mp"
        assert _map({}, lookup).url is None

    def test_payload_keeps_raw_field_data(self, lookup: OptionLookup) -> None:
        raw = {
            "name": "Camera",
            "fabricants": "opt-hik",
            "compatibilite": ["opt-poe"],
            "unmapped-field": {"nested": True},
        }
        record = _map(raw, lookup)
        assert record.payload["field_data"] == raw
        assert record.payload["resolved_options"] == {
            "fabricants": ["Hikvision"],
            "compatibilite": ["PoE"],
        }

    def test_text_fields(self, lookup: OptionLookup) -> None:
        record = _map(
            {
                "product-reference": "DS-2CD2143G2-I",
                "bullet-point": "IR 30 m",
                "benefice-court": "AcuSense",
                "fiche-technique-du-produit": {"url": "https://cdn.test/sheet.pdf"},
            },
            lookup,
        )
        assert record.product_reference == "DS-2CD2143G2-I"
        assert record.bullet_points == "IR 30 m"
        assert record.benefice_court == "AcuSense"
        assert record.fiche_technique_url == "https://cdn.test/sheet.pdf"

    def test_mapping_is_idempotent(self, lookup: OptionLookup) -> None:
        raw = {"name": "Camera", "slug": "camera", "fabricants": ["opt-hik", "opt-dahua"]}
        assert _map(raw, lookup).to_row() == _map(raw, lookup).to_row()


class TestMapVariant:
    def test_maps_prices_and_options(self) -> None:
        sku = {
            "id": "sku-1",
            "fieldData": {
                "sku": "DS-2CD2143G2-I-4MM",
                "name": "4 mm",
                "price": {"value": 1999, "unit": "EUR"},
                "compare-at-price": {"value": 2450, "unit": "EUR"},
                "sku-values": {"lens": "opt-4mm"},
                "main-image": {"url": "https://cdn.test/4mm.jpg"},
            },
        }
        record = map_variant(sku, "prod-1", default_currency="EUR", default_sku_id="sku-1")

        assert record.webflow_sku_id == "sku-1"
        assert record.price == Decimal("19.99")
        assert record.compare_at_price == Decimal("24.50")
        assert record.currency == "EUR"
        assert record.option_values == {"lens": "opt-4mm"}
        assert record.image_url == "https://cdn.test/4mm.jpg"
        assert record.is_default is True
        assert record.to_row(7)["product_id"] == 7

    def test_compare_at_price_alternate_key(self) -> None:
        sku = {"id": "sku-2", "fieldData": {"compareAtPrice": {"value": 3000, "unit": "EUR"}}}
        record = map_variant(sku, "prod-1", default_currency="EUR")
        assert record.compare_at_price == Decimal("30.00")
        assert record.is_default is False

    def test_missing_currency_uses_default(self) -> None:
        sku = {"id": "sku-3", "fieldData": {"price": {"value": 1000}}}
        assert map_variant(sku, "prod-1", default_currency="EUR").currency == "EUR"


def test_build_product_url_strips_trailing_slash() -> None:
    assert build_product_url("https://shop.test/", "x") == "https://shop.test/product/x"
