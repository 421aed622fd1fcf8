"""Pulse analysis contract.

The classifier is asked for a single JSON object:

    {"relevanceScore": 0-100, "category": "tool-launch" | "success-story" | "tips-tutorial",
     "titleNL": "...", "summaryNL": "...", "reasoning": "..."}

LLMs sometimes wrap that object in prose or code fences, so decoding first
locates the first balanced top-level {...} substring. The decoded object is
validated against a JSON Schema (types only; every field is optional) and then
normalized with explicit defaults, clamping and length caps.
"""

from __future__ import annotations

import json
import math
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from jsonschema import Draft202012Validator

CATEGORIES = ("tool-launch", "success-story", "tips-tutorial")
DEFAULT_CATEGORY = "tips-tutorial"

MAX_TITLE_CHARS = 200
MAX_SUMMARY_CHARS = 500
MAX_REASONING_CHARS = 300

_TEXT = {"type": ["string", "number", "null"]}

PULSE_ANALYSIS_SCHEMA: Dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "properties": {
        "relevanceScore": {"type": ["number", "string", "null"]},
        "category": {"type": ["string", "null"]},
        "titleNL": _TEXT,
        "summaryNL": _TEXT,
        "reasoning": _TEXT,
    },
    "additionalProperties": True,
}

_VALIDATOR = Draft202012Validator(PULSE_ANALYSIS_SCHEMA)


@dataclass(frozen=True)
class ClassificationResult:
    relevance_score: int
    category: str
    title_translated: str
    summary_translated: str
    reasoning: str


def find_json_object(text: Any) -> Optional[str]:
    """Return the first balanced {...} substring of `text`, or None.

    Braces inside JSON strings (and escaped quotes) are ignored.
    """
    if not isinstance(text, str) or not text:
        return None
    start = text.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for i in range(start, len(text)):
            ch = text[i]
            if in_string:
                if escaped:
                    escaped = False
                elif ch == "\\":
                    escaped = True
                elif ch == '"':
                    in_string = False
                continue
            if ch == '"':
                in_string = True
            elif ch == "{":
                depth += 1
            elif ch == "}":
                depth -= 1
                if depth == 0:
                    return text[start : i + 1]
        # Unbalanced from this brace; try the next one.
        start = text.find("{", start + 1)
    return None


def validate_analysis(payload: Any) -> List[str]:
    """Return a list of human-readable validation errors (empty means valid)."""
    errors = []
    for e in sorted(_VALIDATOR.iter_errors(payload), key=lambda x: list(x.path)):
        path = ".".join(str(p) for p in e.path) if e.path else "<root>"
        errors.append(f"{path}: {e.message}")
    return errors


def clamp_score(value: Any) -> int:
    try:
        score = float(value)
    except (TypeError, ValueError):
        return 0
    if math.isnan(score):
        return 0
    if math.isinf(score):
        return 100 if score > 0 else 0
    return int(max(0, min(100, round(score))))


def _text(value: Any, default: str, limit: int) -> str:
    if value is None or value == "":
        value = default
    return str(value)[:limit]


def normalize_analysis(payload: Dict[str, Any], *, fallback_title: str) -> ClassificationResult:
    category = payload.get("category")
    return ClassificationResult(
        relevance_score=clamp_score(payload.get("relevanceScore")),
        category=category if category in CATEGORIES else DEFAULT_CATEGORY,
        title_translated=_text(payload.get("titleNL"), fallback_title, MAX_TITLE_CHARS),
        summary_translated=_text(payload.get("summaryNL"), "", MAX_SUMMARY_CHARS),
        reasoning=_text(payload.get("reasoning"), "", MAX_REASONING_CHARS),
    )


def parse_analysis(raw_text: Any, *, fallback_title: str) -> Optional[ClassificationResult]:
    """Decode a raw classifier answer. None when no valid object is present."""
    candidate = find_json_object(raw_text)
    if candidate is None:
        return None
    try:
        payload = json.loads(candidate)
    except ValueError:
        return None
    if validate_analysis(payload):
        return None
    return normalize_analysis(payload, fallback_title=fallback_title)
