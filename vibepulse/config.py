"""Environment-driven configuration for the Pulse pipeline.

All settings come from environment variables (optionally loaded from a .env
file by the entry points). Missing credentials are not fatal here: the
translation adapter degrades to placeholders and the classifier returns None.
Entry points that cannot do anything useful without a credential call
`validate_for_ingest()` and exit.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import List, Optional

from vibepulse.errors import ConfigError

logger = logging.getLogger(__name__)

SOURCE_LOCALE = "nl"
TARGET_LOCALES = ("en", "es")

DEFAULT_PG_DSN = "dbname=vibepulse user=vibepulse password=vibepulse host=localhost port=5432"


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {raw!r}")


def _env_float(name: str, default: float) -> float:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {raw!r}")


def mask_key(key: Optional[str]) -> str:
    if not key:
        return "<unset>"
    return f"...{key[-6:]}" if len(key) > 6 else "***"


@dataclass(frozen=True)
class Config:
    """Pipeline configuration"""

    # Translation
    translation_provider: str = "placeholder"
    openai_api_key: str = ""
    openai_model: str = "gpt-4o-mini"
    deepl_api_key: str = ""
    translation_timeout: float = 30.0

    # Classification
    anthropic_api_key: str = ""
    classifier_model: str = "claude-sonnet-4-20250514"
    classifier_timeout: float = 30.0
    classifier_batch_delay: float = 0.5

    # Ingestion
    min_relevance: int = 50
    publish_threshold: int = 70
    auto_publish: bool = True
    max_items_per_feed: int = 10
    item_delay: float = 1.0
    feed_timeout: float = 10.0

    # Storage
    pg_dsn: str = DEFAULT_PG_DSN

    # Cron endpoint
    cron_secret: str = ""

    @classmethod
    def from_env(cls) -> "Config":
        """Load configuration from environment variables"""
        return cls(
            translation_provider=(os.getenv("TRANSLATION_PROVIDER") or "placeholder").strip().lower(),
            openai_api_key=(os.getenv("OPENAI_API_KEY") or "").strip(),
            openai_model=(os.getenv("OPENAI_TRANSLATION_MODEL") or "gpt-4o-mini").strip(),
            deepl_api_key=(os.getenv("DEEPL_API_KEY") or "").strip(),
            translation_timeout=_env_float("TRANSLATION_TIMEOUT", 30.0),
            anthropic_api_key=(os.getenv("ANTHROPIC_API_KEY") or "").strip(),
            classifier_model=(os.getenv("CLASSIFIER_MODEL") or "claude-sonnet-4-20250514").strip(),
            classifier_timeout=_env_float("CLASSIFIER_TIMEOUT", 30.0),
            classifier_batch_delay=_env_float("CLASSIFIER_BATCH_DELAY", 0.5),
            min_relevance=_env_int("PULSE_MIN_RELEVANCE", 50),
            publish_threshold=_env_int("PULSE_PUBLISH_THRESHOLD", 70),
            auto_publish=_env_bool("PULSE_AUTO_PUBLISH", True),
            max_items_per_feed=_env_int("PULSE_MAX_ITEMS_PER_FEED", 10),
            item_delay=_env_float("PULSE_ITEM_DELAY", 1.0),
            feed_timeout=_env_float("FEED_TIMEOUT", 10.0),
            pg_dsn=(os.getenv("PG_DSN") or DEFAULT_PG_DSN).strip(),
            cron_secret=(os.getenv("CRON_SECRET") or "").strip(),
        )

    def validation_errors(self) -> List[str]:
        errors = []
        if not (0 <= self.min_relevance <= 100):
            errors.append("PULSE_MIN_RELEVANCE should be between 0 and 100")
        if not (0 <= self.publish_threshold <= 100):
            errors.append("PULSE_PUBLISH_THRESHOLD should be between 0 and 100")
        if self.max_items_per_feed < 1:
            errors.append("PULSE_MAX_ITEMS_PER_FEED should be at least 1")
        for name, value in (
            ("TRANSLATION_TIMEOUT", self.translation_timeout),
            ("CLASSIFIER_TIMEOUT", self.classifier_timeout),
            ("FEED_TIMEOUT", self.feed_timeout),
        ):
            if value <= 0 or value > 300:
                errors.append(f"{name} should be between 0 and 300 seconds")
        return errors

    def validate_for_ingest(self) -> None:
        """Raise ConfigError if an ingestion run cannot do anything useful."""
        errors = self.validation_errors()
        if not self.anthropic_api_key:
            errors.append("ANTHROPIC_API_KEY is required")
        if not self.pg_dsn:
            errors.append("PG_DSN is required")
        if errors:
            raise ConfigError("Configuration validation failed:\n" + "\n".join(f"  - {e}" for e in errors))
        logger.info(
            f"Configuration validated. translation={self.translation_provider} "
            f"classifier={self.classifier_model} key={mask_key(self.anthropic_api_key)}"
        )
