"""Pulse ingestion batch.

fetching -> deduping -> classifying -> filtering -> persisting -> done

Per-item classification or persistence failures are counted and skipped.
The batch aborts only when no feed could be fetched at all, or when the
document store itself is unavailable. Creating an item in the source locale
triggers background translation through the store's after-change reactions;
the batch does not wait for it.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Set

from vibepulse.config import SOURCE_LOCALE, Config
from vibepulse.contracts.pulse_analysis import ClassificationResult
from vibepulse.errors import DuplicateKeyError, IngestionAborted, StoreUnavailableError
from vibepulse.ingestion.ingestors import RSSIngestor
from vibepulse.ingestion.item_types import PulseCandidate
from vibepulse.scoring.pulse_classifier import PulseClassifier
from vibepulse.storage.documents import PULSE_ITEMS, DocumentStore

logger = logging.getLogger(__name__)

STATUS_PENDING_REVIEW = "pendingReview"
STATUS_PUBLISHED = "published"
STATUS_REJECTED = "rejected"


@dataclass
class IngestStats:
    created: int = 0
    skipped: int = 0
    failed: int = 0

    def as_dict(self) -> Dict[str, int]:
        return {"created": self.created, "skipped": self.skipped, "failed": self.failed}


def _iso(dt: Optional[datetime]) -> Optional[str]:
    return dt.isoformat() if dt else None


def decide_status(score: int, *, auto_publish: bool, publish_threshold: int) -> str:
    if auto_publish and score >= publish_threshold:
        return STATUS_PUBLISHED
    return STATUS_PENDING_REVIEW


def build_pulse_document(
    item: PulseCandidate,
    analysis: ClassificationResult,
    *,
    status: str,
    auto_publish: bool,
    now: datetime,
) -> Dict[str, Any]:
    return {
        "externalId": item.external_id,
        "source": item.source,
        "sourceUrl": item.url,
        "category": analysis.category,
        "status": status,
        "relevanceScore": analysis.relevance_score,
        "autoPublishEligible": auto_publish,
        "titleOriginal": item.title,
        "title": analysis.title_translated,
        "summary": analysis.summary_translated,
        "author": item.author,
        "sourcePublishedAt": _iso(item.published_at),
        "publishedAt": now.isoformat() if status == STATUS_PUBLISHED else None,
        "aiReasoning": analysis.reasoning,
        "aiSuggestedCategory": analysis.category,
        "processedAt": now.isoformat(),
    }


class PulseIngestion:
    def __init__(
        self,
        config: Config,
        store: DocumentStore,
        ingestor: RSSIngestor,
        classifier: PulseClassifier,
        *,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.config = config
        self.store = store
        self.ingestor = ingestor
        self.classifier = classifier
        self._sleep = sleep
        self._clock = clock

    def run_once(self) -> IngestStats:
        logger.info("Starting Pulse content ingestion")
        stats = IngestStats()

        # fetching
        outcome = self.ingestor.fetch_all()
        if outcome.failed_feeds and len(outcome.failed_feeds) == len(self.ingestor.feeds):
            raise IngestionAborted(f"all feeds failed: {', '.join(outcome.failed_feeds)}")
        logger.info(f"Total items fetched: {len(outcome.items)} (failed feeds: {len(outcome.failed_feeds)})")

        # deduping
        fresh = self._dedupe(outcome.items, stats)

        for item in fresh:
            # classifying
            logger.info(f"Analyzing: {item.title[:60]}")
            try:
                analysis = self.classifier.classify(item)
            except StoreUnavailableError:
                raise
            except Exception as e:
                logger.error(f"  Classifier raised for {item.external_id}: {e}")
                analysis = None
            if analysis is None:
                logger.warning(f"  Analysis failed: {item.external_id}")
                stats.failed += 1
                continue
            logger.info(f"  Score: {analysis.relevance_score} | Category: {analysis.category}")

            # filtering
            if analysis.relevance_score < self.config.min_relevance:
                logger.info("  Skip (low relevance)")
                stats.skipped += 1
                continue

            # persisting
            outcome_key = self._persist(item, analysis)
            setattr(stats, outcome_key, getattr(stats, outcome_key) + 1)
            self._sleep(self.config.item_delay)

        logger.info(f"Ingestion complete: created={stats.created} skipped={stats.skipped} failed={stats.failed}")
        return stats

    def _dedupe(self, items: List[PulseCandidate], stats: IngestStats) -> List[PulseCandidate]:
        seen: Set[str] = set()
        fresh: List[PulseCandidate] = []
        for item in items:
            if not item.url:
                stats.skipped += 1
                continue
            if item.external_id in seen:
                stats.skipped += 1
                continue
            seen.add(item.external_id)
            # Store errors here propagate: without dedup the batch is unsafe.
            if self.store.find_by_unique_key(PULSE_ITEMS.kind, item.external_id) is not None:
                logger.info(f"Skip (exists): {item.title[:50]}")
                stats.skipped += 1
                continue
            fresh.append(item)
        return fresh

    def _persist(self, item: PulseCandidate, analysis: ClassificationResult) -> str:
        """Create one pulse item. Returns the IngestStats counter to bump."""
        status = decide_status(
            analysis.relevance_score,
            auto_publish=self.config.auto_publish,
            publish_threshold=self.config.publish_threshold,
        )
        fields = build_pulse_document(
            item, analysis, status=status, auto_publish=self.config.auto_publish, now=self._clock()
        )
        try:
            self.store.create(PULSE_ITEMS.kind, SOURCE_LOCALE, fields)
        except StoreUnavailableError:
            raise
        except DuplicateKeyError:
            logger.info(f"  Skip (created concurrently): {item.external_id}")
            return "skipped"
        except Exception as e:
            logger.error(f"  Failed to create {item.external_id}: {e}")
            return "failed"
        logger.info(f"  Created ({status}): {analysis.title_translated[:50]}")
        return "created"
