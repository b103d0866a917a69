"""Ingestion error hierarchy.

Source errors come from the external API, store errors from the database.
Jobs decide which of them are fatal.
"""

from __future__ import annotations


class OceanIngestError(Exception):
    """Base exception for all ingestion failures."""


class InvalidRange(OceanIngestError):
    """Raised for a date interval or chunk size that cannot be split."""


class SourceError(OceanIngestError):
    """Raised for external API failures."""


class SourceUnavailable(SourceError):
    """Raised on transport errors or non-success responses."""


class SourceMalformed(SourceError):
    """Raised when a payload's hourly time axis is missing or unparsable."""


class StoreError(OceanIngestError):
    """Raised for persistent store failures."""


class StoreUnavailable(StoreError):
    """Raised when the store cannot be reached or the query fails."""


class StoreConstraintViolation(StoreError):
    """Raised when a write is rejected by a table constraint."""
