"""Mapping of vendor field data onto the normalized catalog schema.

The vendor exposes every product and SKU as an untyped ``fieldData`` map.
``FieldData`` gives typed access to the fields we know about, while the raw
map is always kept in the row payload so nothing is lost for fields that are
not mapped yet.

Option fields store ids into an enumerated set; they are resolved to display
names through an ``OptionLookup`` built from the synced option map.
"""

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import asdict, dataclass, field
from decimal import Decimal
from typing import Any, Union

from shared.constants import BRAND_FALLBACK_FIELD, SKU_VALUES_FIELD

from catalog_service.services.money import min_price, normalize_price, price_currency


# =============================================================================
# Option resolution
# =============================================================================


@dataclass(frozen=True)
class Resolved:
    """An option id found in the lookup table."""

    name: str


@dataclass(frozen=True)
class Unresolved:
    """An option id absent from the lookup table."""

    option_id: str


OptionResolution = Union[Resolved, Unresolved]


class OptionLookup:
    """In-memory (field slug, option id) -> option name table."""

    def __init__(self, entries: Mapping[tuple[str, str], str] | None = None):
        self._entries: dict[tuple[str, str], str] = dict(entries or {})
        self._field_slugs = frozenset(slug for slug, _ in self._entries)

    @classmethod
    def from_rows(cls, rows: Iterable[Mapping[str, Any]]) -> "OptionLookup":
        """Build from option_map rows (field_slug, option_id, option_name)."""
        return cls(
            {
                (str(row["field_slug"]), str(row["option_id"])): str(row["option_name"])
                for row in rows
            }
        )

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def field_slugs(self) -> frozenset[str]:
        return self._field_slugs

    def resolve(self, field_slug: str, option_id: str) -> OptionResolution:
        name = self._entries.get((field_slug, option_id))
        if name is None:
            return Unresolved(option_id)
        return Resolved(name)

    def resolve_field(self, field_slug: str, value: Any) -> list[str]:
        """Resolve a single id or a list of ids, dropping unresolved ones."""
        if isinstance(value, str):
            ids: Sequence[Any] = [value]
        elif isinstance(value, (list, tuple)):
            ids = value
        else:
            return []

        names = []
        for option_id in ids:
            if not isinstance(option_id, str) or not option_id:
                continue
            resolution = self.resolve(field_slug, option_id)
            if isinstance(resolution, Resolved):
                names.append(resolution.name)
        return names


# =============================================================================
# Field data wrapper
# =============================================================================


class FieldData:
    """Typed accessors over a vendor ``fieldData`` map."""

    def __init__(self, raw: Mapping[str, Any] | None):
        self._raw: dict[str, Any] = dict(raw) if isinstance(raw, Mapping) else {}

    @property
    def raw(self) -> dict[str, Any]:
        return dict(self._raw)

    def keys(self) -> list[str]:
        return list(self._raw)

    def get(self, key: str) -> Any:
        return self._raw.get(key)

    def text(self, key: str) -> str | None:
        value = self._raw.get(key)
        if not isinstance(value, str):
            return None
        value = value.strip()
        return value or None

    def price(self, *keys: str) -> Mapping[str, Any] | None:
        """First price structure found under any of ``keys``."""
        for key in keys:
            value = self._raw.get(key)
            if isinstance(value, Mapping):
                return value
        return None

    def mapping(self, key: str) -> dict[str, Any] | None:
        value = self._raw.get(key)
        return dict(value) if isinstance(value, Mapping) else None

    def file_url(self, key: str) -> str | None:
        value = self._raw.get(key)
        if isinstance(value, Mapping) and isinstance(value.get("url"), str):
            return value["url"] or None
        return None


# =============================================================================
# Normalized records
# =============================================================================


@dataclass
class ProductRecord:
    """Normalized products row, keyed on the vendor product id."""

    webflow_product_id: str
    slug: str | None = None
    name: str | None = None
    brand: str | None = None
    product_reference: str | None = None
    price: Decimal | None = None
    currency: str | None = None
    description: str | None = None
    description_complete: str | None = None
    bullet_points: str | None = None
    meta_description: str | None = None
    altword: str | None = None
    benefice_court: str | None = None
    fiche_technique_url: str | None = None
    url: str | None = None
    payload: dict[str, Any] = field(default_factory=dict)

    def to_row(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class VariantRecord:
    """Normalized product_variants row, keyed on the vendor SKU id."""

    webflow_sku_id: str
    webflow_product_id: str
    sku: str | None = None
    name: str | None = None
    slug: str | None = None
    price: Decimal | None = None
    compare_at_price: Decimal | None = None
    currency: str | None = None
    option_values: dict[str, Any] | None = None
    is_default: bool = False
    image_url: str | None = None
    payload: dict[str, Any] = field(default_factory=dict)

    def to_row(self, product_id: int) -> dict[str, Any]:
        row = asdict(self)
        row["product_id"] = product_id
        return row


# =============================================================================
# Mapping
# =============================================================================


def build_product_url(base_url: str, slug: str | None) -> str | None:
    """Public catalog URL for a product slug."""
    if not slug:
        return None
    return f"{base_url.rstrip('/')}/product/{slug}"


def resolve_options(field_data: FieldData, lookup: OptionLookup) -> dict[str, list[str]]:
    """Resolve every option field present in the lookup table."""
    resolved = {}
    for slug in field_data.keys():
        if slug not in lookup.field_slugs:
            continue
        names = lookup.resolve_field(slug, field_data.get(slug))
        if names:
            resolved[slug] = names
    return resolved


def derive_product_price(
    field_data: FieldData, variant_prices: Iterable[Decimal | None]
) -> Decimal | None:
    """Product's own price, or the cheapest variant when it has none."""
    own = normalize_price(field_data.price("price"))
    if own is not None and own > 0:
        return own
    return min_price(variant_prices)


def map_product(
    webflow_product_id: str,
    field_data: FieldData,
    lookup: OptionLookup,
    *,
    catalog_base_url: str,
    brand_field: str,
    variant_prices: Iterable[Decimal | None] = (),
    fallback_currency: str | None = None,
) -> ProductRecord:
    """Build the normalized product record from vendor field data."""
    resolved = resolve_options(field_data, lookup)

    brand_names = resolved.get(brand_field) or []
    brand = brand_names[0] if brand_names else field_data.text(BRAND_FALLBACK_FIELD)

    slug = field_data.text("slug")
    currency = price_currency(field_data.price("price")) or fallback_currency

    return ProductRecord(
        webflow_product_id=webflow_product_id,
        slug=slug,
        name=field_data.text("name"),
        brand=brand,
        product_reference=field_data.text("product-reference"),
        price=derive_product_price(field_data, variant_prices),
        currency=currency,
        description=field_data.text("description"),
        description_complete=field_data.text("description-complete"),
        bullet_points=field_data.text("bullet-point"),
        meta_description=field_data.text("meta-description"),
        altword=field_data.text("altword"),
        benefice_court=field_data.text("benefice-court"),
        fiche_technique_url=field_data.file_url("fiche-technique-du-produit"),
        url=build_product_url(catalog_base_url, slug),
        payload={"field_data": field_data.raw, "resolved_options": resolved},
    )


def map_variant(
    sku: Mapping[str, Any],
    webflow_product_id: str,
    *,
    default_currency: str,
    default_sku_id: str | None = None,
) -> VariantRecord:
    """Build the normalized variant record from one vendor SKU."""
    field_data = FieldData(sku.get("fieldData"))
    price = field_data.price("price")
    sku_id = str(sku["id"])

    return VariantRecord(
        webflow_sku_id=sku_id,
        webflow_product_id=webflow_product_id,
        sku=field_data.text("sku"),
        name=field_data.text("name"),
        slug=field_data.text("slug"),
        price=normalize_price(price),
        compare_at_price=normalize_price(
            field_data.price("compare-at-price", "compareAtPrice")
        ),
        currency=price_currency(price) or default_currency,
        option_values=field_data.mapping(SKU_VALUES_FIELD),
        is_default=default_sku_id is not None and sku_id == default_sku_id,
        image_url=field_data.file_url("main-image"),
        payload=field_data.raw,
    )
