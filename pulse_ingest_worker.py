#!/usr/bin/env python3
"""Pulse ingestion worker.

Runs one ingestion cycle (or scheduled every 2 hours):
- fetch Hacker News / Product Hunt / Dev.to / Indie Hackers RSS
- skip already-known items, score + categorize with the classifier
- store accepted items in NL; EN/ES translations follow in the background
"""

from __future__ import annotations

import logging
import os
import time

import schedule
from dotenv import load_dotenv

from vibepulse.config import Config
from vibepulse.errors import ConfigError, VibePulseError
from vibepulse.runtime import build_runtime, configure_logging

logger = logging.getLogger("pulse_ingest_worker")


def run_once() -> int:
    load_dotenv()
    config = Config.from_env()
    try:
        config.validate_for_ingest()
    except ConfigError as e:
        logger.error(str(e))
        return 1

    try:
        runtime = build_runtime(config)
    except VibePulseError as e:
        logger.error(f"Cannot start ingestion: {e}")
        return 1
    try:
        stats = runtime.ingestion.run_once()
    except VibePulseError as e:
        logger.error(f"Ingestion failed: {e}")
        return 1
    finally:
        runtime.close()
    print(f"[pulse] created={stats.created} skipped={stats.skipped} failed={stats.failed}")
    return 0


def run_scheduled() -> None:
    schedule.every(2).hours.do(run_once)
    run_once()
    while True:
        schedule.run_pending()
        time.sleep(5)


if __name__ == "__main__":
    configure_logging()
    mode = (os.environ.get("INGEST_MODE") or "once").lower().strip()
    if mode in ("scheduled", "daemon"):
        run_scheduled()
    else:
        raise SystemExit(run_once())
