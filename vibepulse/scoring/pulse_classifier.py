"""LLM relevance scoring and categorization for Pulse items.

Each candidate is sent to the Anthropic Messages API with a curator prompt and
comes back as a ClassificationResult (score, category, Dutch title/summary,
reasoning). Returning None is the skip signal: missing key, unreachable
backend, timeout, or an answer that does not decode into the contract.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Dict, Iterable, Optional

import requests

from vibepulse.config import Config, mask_key
from vibepulse.contracts.pulse_analysis import ClassificationResult, parse_analysis
from vibepulse.ingestion.item_types import PulseCandidate

logger = logging.getLogger(__name__)

ANTHROPIC_ENDPOINT = "https://api.anthropic.com/v1/messages"
ANTHROPIC_VERSION = "2023-06-01"

NO_CONTENT_PLACEHOLDER = "(geen content beschikbaar)"
UNKNOWN_AUTHOR_PLACEHOLDER = "Onbekend"

SYSTEM_PROMPT = """Je bent een content curator voor VibeCodeSpace, een platform voor indie hackers, solo founders en vibecoding enthousiastelingen.

Je analyseert content van Hacker News, Product Hunt, Dev.to en Indie Hackers om te bepalen of het relevant is voor onze doelgroep.

DOELGROEP:
- Indie hackers en solo founders
- Developers die AI-tools gebruiken om sneller te bouwen (vibecoding)
- Mensen geinteresseerd in "building in public"
- Nederlandse en internationale bouwers

RELEVANTIE CRITERIA (score 0-100):
90-100: Direct relevant - AI coding tools, vibecoding, solo founder success, building in public updates
70-89: Zeer relevant - Developer tools, startup tips, side project inspiratie, AI productiviteit
50-69: Enigszins relevant - Algemeen tech nieuws met leerwaarde voor bouwers
0-49: Niet relevant - Enterprise nieuws, grote corporates, irrelevante tech, drama

CATEGORIEEN:
- tool-launch: Nieuwe AI tools, updates aan bestaande tools, product launches voor developers
- success-story: MRR updates, exit verhalen, build in public mijlpalen, indie hacker wins
- tips-tutorial: How-to guides, development tips, workflow optimalisaties, AI prompting tips

RICHTLIJNEN VOOR OUTPUT:
- titleNL: Kort, actief, informatief (geen clickbait). Max 80 karakters.
- summaryNL: 1-2 zinnen die de kernboodschap samenvatten voor onze doelgroep.
- reasoning: Korte uitleg (1 zin) waarom dit wel/niet relevant is.

OUTPUT FORMAT (alleen JSON, geen andere tekst):
{
  "relevanceScore": number,
  "category": "tool-launch" | "success-story" | "tips-tutorial",
  "titleNL": "Nederlandse titel",
  "summaryNL": "Nederlandse samenvatting",
  "reasoning": "Korte uitleg"
}"""

USER_PROMPT_TEMPLATE = """Analyseer dit item:

BRON: {source}
TITEL: {title}
URL: {url}
INHOUD: {content}
AUTEUR: {author}

Geef je analyse als JSON (alleen de JSON, geen andere tekst)."""


def build_user_prompt(item: PulseCandidate) -> str:
    return USER_PROMPT_TEMPLATE.format(
        source=item.source.upper(),
        title=item.title,
        url=item.url,
        content=item.content or NO_CONTENT_PLACEHOLDER,
        author=item.author or UNKNOWN_AUTHOR_PLACEHOLDER,
    )


def _first_text_block(body: Any) -> Optional[str]:
    """Text of the first content block of a Messages API body, or None."""
    if not isinstance(body, dict):
        return None
    blocks = body.get("content")
    if not isinstance(blocks, list) or not blocks or not isinstance(blocks[0], dict):
        return None
    text = blocks[0].get("text")
    return text if isinstance(text, str) else None


class PulseClassifier:
    def __init__(self, config: Config, *, sleep: Callable[[float], None] = time.sleep):
        self.config = config
        self._sleep = sleep

    def classify(self, item: PulseCandidate) -> Optional[ClassificationResult]:
        api_key = self.config.anthropic_api_key
        if not api_key:
            logger.error("ANTHROPIC_API_KEY not set; skipping classification")
            return None

        try:
            resp = requests.post(
                ANTHROPIC_ENDPOINT,
                headers={
                    "Content-Type": "application/json",
                    "x-api-key": api_key,
                    "anthropic-version": ANTHROPIC_VERSION,
                },
                json={
                    "model": self.config.classifier_model,
                    "max_tokens": 1000,
                    "system": SYSTEM_PROMPT,
                    "messages": [{"role": "user", "content": build_user_prompt(item)}],
                },
                timeout=self.config.classifier_timeout,
            )
        except requests.RequestException as e:
            logger.error(f"Classifier request failed for {item.url} (key {mask_key(api_key)}): {e}")
            return None

        if resp.status_code >= 400:
            logger.error(f"Classifier API error: {resp.status_code} - {resp.text[:200]}")
            return None

        try:
            body = resp.json()
        except ValueError as e:
            logger.error(f"Classifier response is not JSON: {e}")
            return None
        text = _first_text_block(body)
        if text is None:
            logger.error(f"Classifier response has no text block: {str(body)[:200]}")
            return None

        result = parse_analysis(text, fallback_title=item.title)
        if result is None:
            logger.error(f"No valid analysis JSON in response: {text[:200]!r}")
        return result

    def classify_batch(self, items: Iterable[PulseCandidate]) -> Dict[str, ClassificationResult]:
        """Classify sequentially with a fixed delay; failures are left out."""
        results: Dict[str, ClassificationResult] = {}
        for item in items:
            analysis = self.classify(item)
            if analysis is not None:
                results[item.url] = analysis
            self._sleep(self.config.classifier_batch_delay)
        return results
