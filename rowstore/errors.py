"""
Error taxonomy for rowstore.

Every failure raised by the gateway, the search service, and the ingestion
pipeline derives from `RowstoreError`, so request boundaries can catch one
family and render it. `StoreError` marks the retryable class: the ingestion
pipeline retries batches only on these.
"""

from __future__ import annotations

from typing import Optional


class RowstoreError(Exception):
    """Base class for all rowstore errors."""


class ConfigurationError(RowstoreError):
    """Store endpoint or credential could not be resolved. Never retried."""


class StoreError(RowstoreError):
    """A round-trip to the remote store failed."""


class RemoteQueryError(StoreError):
    """The store accepted the request but reported an error for the statement."""


class TransportError(StoreError):
    """
    The HTTP exchange itself failed: network error, timeout, non-2xx status
    or a body that is not the expected envelope.
    """

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class NotFoundError(RowstoreError):
    """No record exists for the requested identifier."""

    def __init__(self, record_id: str) -> None:
        super().__init__(f"Record not found: {record_id}")
        self.record_id = record_id


__all__ = [
    "RowstoreError",
    "ConfigurationError",
    "StoreError",
    "RemoteQueryError",
    "TransportError",
    "NotFoundError",
]
