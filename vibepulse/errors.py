"""Exception types shared across the pipeline.

Adapters (translation, classification, feeds) absorb their own failures and
return safe defaults; these types exist for the failures that are allowed to
reach a caller.
"""

from __future__ import annotations


class VibePulseError(Exception):
    """Base exception for the ingestion/translation pipeline"""
    pass


class ConfigError(VibePulseError):
    pass


class FeedFetchError(VibePulseError):
    """A single feed could not be fetched or parsed."""

    def __init__(self, feed_name: str, reason: str):
        super().__init__(f"{feed_name}: {reason}")
        self.feed_name = feed_name
        self.reason = reason


class StoreError(VibePulseError):
    """Custom exception for document store operations"""
    pass


class StoreUnavailableError(StoreError):
    """The document store itself cannot be reached. Aborts batches."""
    pass


class DocumentNotFoundError(StoreError):
    pass


class DuplicateKeyError(StoreError):
    def __init__(self, kind: str, key: str):
        super().__init__(f"{kind}: unique key already exists: {key}")
        self.kind = kind
        self.key = key


class IngestionAborted(VibePulseError):
    """Raised when a whole ingestion batch cannot proceed."""
    pass
