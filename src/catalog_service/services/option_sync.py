"""Option lookup synchronization.

Copies the option id -> display name tables of a vendor collection's option
fields into ``catalog.option_map``. The field mapper reads that table to turn
option references (e.g. a manufacturer id) into readable names.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

import structlog

from shared.constants import OPTION_FIELD_TYPES

from catalog_service.exceptions import ConfigurationError
from catalog_service.infrastructure.database.repository import CatalogRepository
from catalog_service.infrastructure.vendor import WebflowClient

logger = structlog.get_logger()


@dataclass
class OptionSyncResult:
    """Summary of one option sync run."""

    synced: int
    fields: list[str] = field(default_factory=list)


def extract_option_rows(
    fields: Iterable[Any], field_slugs: Iterable[str] | None = None
) -> list[dict[str, str]]:
    """Flatten option field metadata into option_map rows.

    Only option fields are considered, restricted to ``field_slugs`` when
    given. Options with an empty id or name are skipped.
    """
    allowed = set(field_slugs) if field_slugs is not None else None
    rows: list[dict[str, str]] = []
    seen: set[tuple[str, str]] = set()

    for f in fields:
        if not isinstance(f, dict):
            continue
        slug = str(f.get("slug") or "").strip()
        field_type = str(f.get("type") or "").strip()
        if not slug or field_type not in OPTION_FIELD_TYPES:
            continue
        if allowed is not None and slug not in allowed:
            continue

        options = (f.get("validations") or {}).get("options")
        if not isinstance(options, list):
            continue

        for option in options:
            if not isinstance(option, dict):
                continue
            option_id = str(option.get("id") or "").strip()
            option_name = str(option.get("name") or "").strip()
            if not option_id or not option_name:
                continue
            # one statement cannot touch the same conflict key twice
            if (slug, option_id) in seen:
                continue
            seen.add((slug, option_id))
            rows.append(
                {"field_slug": slug, "option_id": option_id, "option_name": option_name}
            )

    return rows


class OptionSyncService:
    """Sync a collection's option fields into the lookup table."""

    def __init__(self, vendor: WebflowClient, repository: CatalogRepository):
        self.vendor = vendor
        self.repository = repository

    async def sync_options(
        self, collection_id: str, field_slugs: list[str] | None = None
    ) -> OptionSyncResult:
        """
        Fetch collection field metadata and upsert every option name.

        Args:
            collection_id: Vendor collection holding the option fields
            field_slugs: Optional allow-list of field slugs

        Returns:
            Number of rows written and the field slugs they came from
        """
        collection_id = (collection_id or "").strip()
        if not collection_id:
            raise ConfigurationError("Missing collectionId")

        details = await self.vendor.get_collection(collection_id)
        fields = details.get("fields")
        rows = extract_option_rows(fields if isinstance(fields, list) else [], field_slugs)

        if not rows:
            logger.info("No option fields matched", collection_id=collection_id)
            return OptionSyncResult(synced=0)

        try:
            await self.repository.upsert_option_entries(rows)
            await self.repository.commit()
        except Exception:
            await self.repository.rollback()
            raise

        synced_fields = sorted({row["field_slug"] for row in rows})
        logger.info(
            "Option lookup synced",
            collection_id=collection_id,
            synced=len(rows),
            fields=synced_fields,
        )
        return OptionSyncResult(synced=len(rows), fields=synced_fields)
