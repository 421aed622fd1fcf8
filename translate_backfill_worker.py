#!/usr/bin/env python3
"""Backfill EN/ES translations for existing documents.

Fills target-locale fields that are empty, still a placeholder ("[EN] ...")
or a copy of the Dutch source. Fields with real translations are left alone.

Usage: python translate_backfill_worker.py [tools|cases|pulse-items ...]
"""

from __future__ import annotations

import argparse
import logging
from typing import List, Optional

from dotenv import load_dotenv

from vibepulse.config import Config
from vibepulse.errors import VibePulseError
from vibepulse.runtime import build_runtime, configure_logging
from vibepulse.sync.engine import backfill_translations
from vibepulse.sync.kinds import DEFAULT_SYNC_KINDS

logger = logging.getLogger("translate_backfill_worker")

KINDS = {k.name: k for k in DEFAULT_SYNC_KINDS}
DEFAULT_KINDS = ["tools"]


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    # Checked by hand: argparse before 3.12 rejects an empty positional list when choices is set.
    parser.add_argument("kinds", nargs="*", metavar="kind", help=f"one of {', '.join(sorted(KINDS))} (default: tools)")
    parser.add_argument("--delay", type=float, default=0.2, help="seconds between documents")
    args = parser.parse_args(argv)
    unknown = [k for k in args.kinds if k not in KINDS]
    if unknown:
        parser.error(f"unknown kind(s): {', '.join(unknown)} (choose from {', '.join(sorted(KINDS))})")
    args.kinds = args.kinds or list(DEFAULT_KINDS)
    return args


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)

    load_dotenv()
    runtime = build_runtime(Config.from_env())
    try:
        for name in args.kinds:
            stats = backfill_translations(runtime.engine, KINDS[name], delay=args.delay)
            print(f"[backfill] {name}: translated={stats.translated} skipped={stats.skipped} failed={stats.failed}")
    except VibePulseError as e:
        logger.error(f"Backfill failed: {e}")
        return 1
    finally:
        runtime.close()
    return 0


if __name__ == "__main__":
    configure_logging()
    raise SystemExit(main())
