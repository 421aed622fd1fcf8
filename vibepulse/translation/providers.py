"""Translation providers (OpenAI, DeepL, placeholder).

Source text is always Dutch (the source locale). The adapter never raises to
its caller: any failure (missing key, non-2xx, timeout, unexpected payload)
degrades to a locale-tagged placeholder such as "[EN] Hallo wereld", which
marks the text as needing human translation.
"""

from __future__ import annotations

import logging
import re
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

import requests

from vibepulse.config import Config, mask_key

logger = logging.getLogger(__name__)

PROVIDER_OPENAI = "openai"
PROVIDER_DEEPL = "deepl"
PROVIDER_PLACEHOLDER = "placeholder"

OPENAI_ENDPOINT = "https://api.openai.com/v1/chat/completions"
DEEPL_FREE_BASE = "https://api-free.deepl.com"
DEEPL_PRO_BASE = "https://api.deepl.com"

LANGUAGE_NAMES = {
    "en": "English",
    "es": "Spanish",
    "nl": "Dutch",
}

# Locale tags a placeholder may already carry; replaced rather than stacked.
PLACEHOLDER_TAGS = ("EN", "ES", "NL")
_PLACEHOLDER_RE = re.compile(r"^\[(%s)\]\s*" % "|".join(PLACEHOLDER_TAGS))

MAX_CONCURRENT_FIELDS = 6


@dataclass(frozen=True)
class TranslationResult:
    text: str
    provider: str


def select_provider(name: Optional[str]) -> str:
    p = (name or "").strip().lower()
    if p in (PROVIDER_OPENAI, PROVIDER_DEEPL):
        return p
    return PROVIDER_PLACEHOLDER


def is_placeholder(text: Any) -> bool:
    return isinstance(text, str) and bool(_PLACEHOLDER_RE.match(text))


def create_placeholder(text: str, target_locale: str) -> str:
    """Tag `text` for `target_locale`, replacing any existing locale tag."""
    prefix = f"[{target_locale.upper()}]"
    return f"{prefix} {_PLACEHOLDER_RE.sub('', text, count=1)}"


class Translator:
    def __init__(self, config: Config):
        self.config = config
        self.provider = select_provider(config.translation_provider)

    def translate(self, text: Any, target_locale: str) -> TranslationResult:
        if not text or not isinstance(text, str) or text.strip() == "":
            return TranslationResult(text="", provider=PROVIDER_PLACEHOLDER)

        translated: Optional[str] = None
        if self.provider == PROVIDER_OPENAI:
            translated = self._translate_openai(text, target_locale)
        elif self.provider == PROVIDER_DEEPL:
            translated = self._translate_deepl(text, target_locale)

        if translated is None:
            return TranslationResult(text=create_placeholder(text, target_locale), provider=PROVIDER_PLACEHOLDER)
        return TranslationResult(text=translated, provider=self.provider)

    def translate_fields(self, fields: Mapping[str, Any], target_locale: str) -> Dict[str, str]:
        """Translate several scalar fields for one locale concurrently.

        Empty and non-string values are skipped.
        """
        entries = [(k, v) for k, v in fields.items() if v and isinstance(v, str)]
        if not entries:
            return {}
        workers = min(len(entries), MAX_CONCURRENT_FIELDS)
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="translate") as pool:
            futures = {key: pool.submit(self.translate, value, target_locale) for key, value in entries}
            return {key: fut.result().text for key, fut in futures.items()}

    # -----------------------------
    # Providers
    # -----------------------------
    def _translate_openai(self, text: str, target_locale: str) -> Optional[str]:
        api_key = self.config.openai_api_key
        if not api_key:
            logger.warning("OpenAI API key not configured, falling back to placeholder")
            return None

        language = LANGUAGE_NAMES.get(target_locale, target_locale)
        system_prompt = (
            f"You are a professional translator. Translate the following Dutch text to {language}.\n"
            "Only return the translated text, nothing else. Keep the same tone and style.\n"
            "If there are technical terms or brand names, keep them as-is."
        )
        try:
            resp = requests.post(
                OPENAI_ENDPOINT,
                headers={
                    "Authorization": f"Bearer {api_key}",
                    "Content-Type": "application/json",
                },
                json={
                    "model": self.config.openai_model,
                    "messages": [
                        {"role": "system", "content": system_prompt},
                        {"role": "user", "content": text},
                    ],
                    "temperature": 0.3,
                    "max_tokens": 2000,
                },
                timeout=self.config.translation_timeout,
            )
        except requests.RequestException as e:
            logger.error(f"OpenAI request failed (key {mask_key(api_key)}): {e}")
            return None

        if resp.status_code >= 400:
            logger.error(f"OpenAI error {resp.status_code}: {resp.text[:200]}")
            return None
        try:
            content = resp.json()["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            logger.error(f"OpenAI response missing translation: {e}")
            return None
        if not isinstance(content, str) or not content.strip():
            return None
        return content.strip()

    def _translate_deepl(self, text: str, target_locale: str) -> Optional[str]:
        api_key = self.config.deepl_api_key
        if not api_key:
            logger.warning("DeepL API key not configured, falling back to placeholder")
            return None

        base = DEEPL_FREE_BASE if api_key.endswith(":fx") else DEEPL_PRO_BASE
        try:
            resp = requests.post(
                f"{base}/v2/translate",
                headers={"Authorization": f"DeepL-Auth-Key {api_key}"},
                data={
                    "text": text,
                    "source_lang": "NL",
                    "target_lang": target_locale.upper(),
                },
                timeout=self.config.translation_timeout,
            )
        except requests.RequestException as e:
            logger.error(f"DeepL request failed (key {mask_key(api_key)}): {e}")
            return None

        if resp.status_code >= 400:
            logger.error(f"DeepL error {resp.status_code}: {resp.text[:200]}")
            return None
        try:
            translated = resp.json()["translations"][0]["text"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            logger.error(f"DeepL response missing translation: {e}")
            return None
        if not isinstance(translated, str) or not translated:
            return None
        return translated
