"""Domain error taxonomy."""

from __future__ import annotations


class RegistryError(RuntimeError):
    """Base class for product registry errors."""


class InvalidRecordError(RegistryError, ValueError):
    """Raised when a record fails validation (missing fields, inconsistent status)."""


class DuplicateRecordError(RegistryError):
    """Raised when a single submission collides with an existing ``(brand, name)``."""

    def __init__(self, brand: str, name: str) -> None:
        super().__init__(f"A product named {name!r} by {brand!r} already exists")
        self.brand = brand
        self.name = name


class QuotaExceededError(RegistryError):
    """Raised before persistence when a caller has no submission quota left."""

    def __init__(self, message: str, *, remaining: int = 0) -> None:
        super().__init__(message)
        self.remaining = remaining


class BulkParseError(RegistryError, ValueError):
    """Raised when tabular input cannot be parsed as a whole."""


class RemoteStoreError(RegistryError):
    """Raised when the remote record store fails to read or write."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class RecordNotFoundError(RemoteStoreError, LookupError):
    """Raised when a record id does not exist in the targeted store."""

    def __init__(self, record_id: str) -> None:
        super().__init__(f"Product {record_id!r} not found", status_code=404)
        self.record_id = record_id


class TextExtractionError(RegistryError):
    """Raised by text extractors (OCR, PDF) when no text could be produced."""
