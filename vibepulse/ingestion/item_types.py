"""Shared ingestion data types."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

PULSE_SOURCES = ("hn", "ph", "devto", "ih", "twitter", "manual")


@dataclass(frozen=True)
class FeedConfig:
    url: str
    source: str  # one of PULSE_SOURCES
    name: str


@dataclass(frozen=True)
class PulseCandidate:
    """Normalized feed entry, before classification.

    `external_id` is derived from the source and the canonical URL and is the
    dedup key for the pulse-items collection.
    """

    source: str
    title: str
    url: str
    external_id: str
    content: Optional[str] = None
    author: Optional[str] = None
    published_at: Optional[datetime] = None
