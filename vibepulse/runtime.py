"""Wiring shared by the workers and the cron endpoint."""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from typing import Optional

from vibepulse.config import Config
from vibepulse.ingestion.ingestors import RSSIngestor, default_pulse_feeds
from vibepulse.ingestion.orchestrator import PulseIngestion
from vibepulse.scoring.pulse_classifier import PulseClassifier
from vibepulse.storage.documents import DocumentStore
from vibepulse.storage.postgres_documents import PostgresDocumentStore
from vibepulse.storage.postgres_schema import ensure_postgres_schema
from vibepulse.sync.dispatch import BackgroundDispatcher
from vibepulse.sync.engine import LocaleSyncEngine
from vibepulse.translation.providers import Translator

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: int = logging.INFO) -> None:
    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=[logging.StreamHandler(sys.stdout)])


@dataclass
class Runtime:
    config: Config
    store: DocumentStore
    dispatcher: BackgroundDispatcher
    engine: LocaleSyncEngine
    ingestion: PulseIngestion

    def close(self, timeout: Optional[float] = 120.0) -> None:
        """Give background translations a chance to finish before exit."""
        if not self.dispatcher.drain(timeout=timeout):
            logging.getLogger(__name__).warning(
                f"{self.dispatcher.pending()} background translations still running at shutdown"
            )
        self.dispatcher.shutdown(wait_for_tasks=False)


def build_runtime(config: Config, store: Optional[DocumentStore] = None) -> Runtime:
    if store is None:
        ensure_postgres_schema(config.pg_dsn)
        store = PostgresDocumentStore(config.pg_dsn)
    dispatcher = BackgroundDispatcher()
    engine = LocaleSyncEngine(store, Translator(config), dispatcher)
    engine.register()
    ingestion = PulseIngestion(
        config,
        store,
        RSSIngestor(
            default_pulse_feeds(),
            max_items_per_feed=config.max_items_per_feed,
            timeout=config.feed_timeout,
        ),
        PulseClassifier(config),
    )
    return Runtime(config=config, store=store, dispatcher=dispatcher, engine=engine, ingestion=ingestion)
