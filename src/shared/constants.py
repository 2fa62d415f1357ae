"""Shared constants across the application."""

# Currencies whose vendor amounts are already in major units
ZERO_DECIMAL_CURRENCIES = frozenset(
    {
        "BIF",
        "CLP",
        "DJF",
        "GNF",
        "ISK",
        "JPY",
        "KMF",
        "KRW",
        "PYG",
        "RWF",
        "UGX",
        "VND",
        "VUV",
        "XAF",
        "XOF",
        "XPF",
    }
)

# Vendor field types holding references into an enumerated option set
OPTION_FIELD_TYPES = frozenset({"Option", "MultiOption"})

# Vendor field slugs
DEFAULT_SKU_FIELD = "default-sku"
SKU_VALUES_FIELD = "sku-values"
BRAND_FALLBACK_FIELD = "brand"

# Pagination / batching
MAX_SYNC_PAGE_SIZE = 100
MAX_DELAY_MS = 2000
SYNC_BATCH_DEFAULT_LIMIT = 250
SYNC_BATCH_MAX_LIMIT = 250
SYNC_BATCH_DEFAULT_SIZE = 10
SYNC_BATCH_MAX_SIZE = 50
INGEST_DEFAULT_LIMIT = 50
INGEST_MAX_LIMIT = 250
INGEST_DEFAULT_BATCH_SIZE = 5
INGEST_MAX_BATCH_SIZE = 50

# RAG
CHUNK_MAX_CHARS = 2200
