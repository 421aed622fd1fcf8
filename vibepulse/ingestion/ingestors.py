"""RSS ingestion for Pulse.

Fetches the configured feeds (Hacker News, Product Hunt, Dev.to, Indie
Hackers) and normalizes entries into PulseCandidate for classification.
A feed that cannot be fetched raises FeedFetchError; `fetch_all` collects
those per feed so the orchestrator can decide whether the batch is usable.
"""

from __future__ import annotations

import calendar
import html
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, List, Optional, Sequence

import feedparser
import requests

from vibepulse.errors import FeedFetchError
from vibepulse.ingestion.item_types import FeedConfig, PulseCandidate
from vibepulse.ingestion.url_utils import external_id

logger = logging.getLogger(__name__)

USER_AGENT = "VibeCodeSpace Pulse Bot/1.0"
MAX_CONTENT_CHARS = 1000

_TAG_RE = re.compile(r"<[^>]+>")
_WS_RE = re.compile(r"\s+")


def default_pulse_feeds() -> List[FeedConfig]:
    return [
        FeedConfig("https://hnrss.org/frontpage", "hn", "HN Frontpage"),
        FeedConfig("https://hnrss.org/show", "hn", "HN Show"),
        FeedConfig("https://www.producthunt.com/feed", "ph", "Product Hunt"),
        FeedConfig("https://dev.to/feed/tag/ai", "devto", "Dev.to AI"),
        FeedConfig("https://dev.to/feed/tag/buildinpublic", "devto", "Dev.to BuildInPublic"),
        FeedConfig("https://www.indiehackers.com/feed.xml", "ih", "Indie Hackers"),
    ]


def content_snippet(raw: Optional[str]) -> Optional[str]:
    """Plain-text snippet of an HTML entry body."""
    if not raw:
        return None
    text = html.unescape(_TAG_RE.sub(" ", raw))
    text = _WS_RE.sub(" ", text).strip()
    return text[:MAX_CONTENT_CHARS] or None


def _entry_published(entry: Any) -> Optional[datetime]:
    parsed = entry.get("published_parsed") or entry.get("updated_parsed")
    if not parsed:
        return None
    try:
        return datetime.fromtimestamp(calendar.timegm(parsed), tz=timezone.utc)
    except (TypeError, ValueError, OverflowError):
        return None


def _entry_content(entry: Any) -> Optional[str]:
    summary = entry.get("summary")
    if summary:
        return content_snippet(summary)
    contents = entry.get("content") or []
    if contents and isinstance(contents[0], dict):
        return content_snippet(contents[0].get("value"))
    return None


def normalize_entry(entry: Any, source: str) -> Optional[PulseCandidate]:
    """Map one feedparser entry to a PulseCandidate. None when it has no link."""
    link = (entry.get("link") or entry.get("id") or "").strip()
    if not link:
        return None
    title = (entry.get("title") or "").strip() or "Untitled"
    author = (entry.get("author") or "").strip() or None
    return PulseCandidate(
        source=source,
        title=title,
        url=link,
        external_id=external_id(source, link),
        content=_entry_content(entry),
        author=author,
        published_at=_entry_published(entry),
    )


@dataclass(frozen=True)
class FetchOutcome:
    items: List[PulseCandidate] = field(default_factory=list)
    failed_feeds: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class RSSIngestor:
    """RSS ingestor for a list of Pulse feeds."""

    feeds: Sequence[FeedConfig]
    max_items_per_feed: int = 10
    timeout: float = 10.0

    def fetch_feed(self, feed: FeedConfig) -> List[PulseCandidate]:
        logger.info(f"Fetching feed: {feed.name}")
        try:
            resp = requests.get(feed.url, headers={"User-Agent": USER_AGENT}, timeout=self.timeout)
        except requests.RequestException as e:
            raise FeedFetchError(feed.name, str(e))
        if resp.status_code >= 400:
            raise FeedFetchError(feed.name, f"http_{resp.status_code}")

        parsed = feedparser.parse(resp.content)
        entries = list(parsed.entries or [])
        if not entries and parsed.get("bozo"):
            raise FeedFetchError(feed.name, f"unparseable feed: {parsed.get('bozo_exception')}")

        out: List[PulseCandidate] = []
        for entry in entries[: max(0, self.max_items_per_feed)]:
            item = normalize_entry(entry, feed.source)
            if item is not None:
                out.append(item)
        logger.info(f"  {feed.name}: {len(out)} items")
        return out

    def fetch_all(self) -> FetchOutcome:
        items: List[PulseCandidate] = []
        failed: List[str] = []
        for feed in self.feeds:
            try:
                items.extend(self.fetch_feed(feed))
            except FeedFetchError as e:
                logger.error(f"Failed to fetch {e.feed_name}: {e.reason}")
                failed.append(feed.name)
        return FetchOutcome(items=items, failed_feeds=failed)
