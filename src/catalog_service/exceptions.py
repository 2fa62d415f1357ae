"""Error types raised by the catalog services.

Every error carries a human-readable message; the API layer renders it as
``{"ok": false, "error": ...}``.
"""


class CatalogServiceError(Exception):
    """Base class for all catalog service failures."""


class ConfigurationError(CatalogServiceError):
    """A required configuration value is missing."""


class VendorAPIError(CatalogServiceError):
    """The vendor catalog API returned a non-2xx or unreadable response."""

    def __init__(self, message: str, status_code: int | None = None, body: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class ProductNotFoundError(CatalogServiceError):
    """The vendor response did not contain a product."""


class PersistenceError(CatalogServiceError):
    """A database write or read failed."""


class ModelAPIError(CatalogServiceError):
    """The embedding/chat model API failed or returned an unexpected payload."""

    def __init__(self, message: str, status_code: int | None = None, body: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.body = body
