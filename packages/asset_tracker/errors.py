"""Exception types raised to callers.

Only fatal conditions surface as exceptions: a store that cannot be reached, a
record id that does not exist, or a caller payload with the wrong top-level
shape. Everything row-level is reported through ``ImportResult`` /
``ValidationResult`` instead.
"""

from __future__ import annotations


class AssetTrackerError(Exception):
    """Base class for all package errors."""


class PayloadError(AssetTrackerError, TypeError):
    """The caller supplied a structurally invalid top-level payload."""


class StoreUnavailableError(AssetTrackerError, RuntimeError):
    """The document store is not configured or failed to respond."""


class RecordNotFoundError(AssetTrackerError, KeyError):
    """No document exists for the requested ``(collection, id)``."""

    def __init__(self, collection: str, record_id: str) -> None:
        super().__init__(f"{collection}/{record_id}")
        self.collection = collection
        self.record_id = record_id

    def __str__(self) -> str:
        return f"record not found: {self.collection}/{self.record_id}"


__all__ = [
    "AssetTrackerError",
    "PayloadError",
    "StoreUnavailableError",
    "RecordNotFoundError",
]
