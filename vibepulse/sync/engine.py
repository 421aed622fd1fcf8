"""Locale synchronization engine.

Registered as an after-change reaction on the document store. When a document
changes in the source locale, the localized fields that changed are
translated into every target locale and written back, one locale-scoped
update per target locale.

Per (document, target locale) the state moves
unchanged -> pending -> translating -> applied | degraded. A degraded locale
keeps whatever it held before; the next source-locale change retries it.

Write-backs carry SyncOptions(skip_synchronization=True), so the reaction
they trigger stops at the first guard.
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from functools import partial
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from vibepulse.config import SOURCE_LOCALE, TARGET_LOCALES
from vibepulse.errors import StoreUnavailableError
from vibepulse.storage.documents import OPERATION_CREATE, ChangeEvent, DocumentStore, SyncOptions
from vibepulse.sync.dispatch import BackgroundDispatcher
from vibepulse.sync.kinds import ARRAY_LEAF_KEYS, DEFAULT_SYNC_KINDS, SyncKind
from vibepulse.translation.providers import Translator, create_placeholder, is_placeholder

logger = logging.getLogger(__name__)

MAX_TRANSLATION_WORKERS = 6

WRITE_BACK = SyncOptions(skip_synchronization=True)


class SyncState(str, Enum):
    UNCHANGED = "unchanged"
    PENDING = "pending"
    TRANSLATING = "translating"
    APPLIED = "applied"
    DEGRADED = "degraded"


@dataclass(frozen=True)
class ChangeSet:
    scalars: Dict[str, str] = field(default_factory=dict)
    arrays: Dict[str, List[Dict[str, Any]]] = field(default_factory=dict)

    def __bool__(self) -> bool:
        return bool(self.scalars or self.arrays)

    def field_names(self) -> List[str]:
        return list(self.scalars) + list(self.arrays)


@dataclass
class LocaleSyncReport:
    kind: str
    doc_id: Any
    locale: str
    state: SyncState = SyncState.UNCHANGED
    fields: List[str] = field(default_factory=list)
    error: Optional[str] = None


def _non_empty_text(value: Any) -> bool:
    return isinstance(value, str) and value.strip() != ""


def changed_fields(kind: SyncKind, event: ChangeEvent) -> ChangeSet:
    """Localized fields eligible for translation after this write.

    Create: every non-empty localized field. Update: fields whose value differs
    from the previous one; arrays compare as whole values.
    """
    doc = event.doc
    previous = event.previous_doc or {}
    is_create = event.operation == OPERATION_CREATE
    scalars: Dict[str, str] = {}
    arrays: Dict[str, List[Dict[str, Any]]] = {}

    for name in kind.scalar_fields:
        value = doc.get(name)
        if not _non_empty_text(value):
            continue
        if is_create or value != previous.get(name):
            scalars[name] = value

    for name, _shape in kind.array_fields:
        value = doc.get(name)
        if not isinstance(value, list) or not value:
            continue
        if is_create or value != previous.get(name):
            arrays[name] = value

    return ChangeSet(scalars=scalars, arrays=arrays)


def _array_leaves(items: Any, shape: str) -> List[str]:
    if not isinstance(items, list):
        return []
    leaves = []
    for item in items:
        if not isinstance(item, dict):
            continue
        for key in ARRAY_LEAF_KEYS[shape]:
            if _non_empty_text(item.get(key)):
                leaves.append(item[key])
    return leaves


def has_genuine_scalar(existing: Any, source_text: str) -> bool:
    """True when a target value is real content (not empty, placeholder or fallback copy)."""
    return _non_empty_text(existing) and not is_placeholder(existing) and existing != source_text


def has_genuine_array(existing: Any, source_items: Any, shape: str) -> bool:
    source_leaves = set(_array_leaves(source_items, shape))
    return any(
        not is_placeholder(leaf) and leaf not in source_leaves
        for leaf in _array_leaves(existing, shape)
    )


class LocaleSyncEngine:
    def __init__(
        self,
        store: DocumentStore,
        translator: Translator,
        dispatcher: Optional[BackgroundDispatcher] = None,
        *,
        source_locale: str = SOURCE_LOCALE,
        target_locales: Sequence[str] = TARGET_LOCALES,
    ):
        self.store = store
        self.translator = translator
        self.dispatcher = dispatcher or BackgroundDispatcher()
        self.source_locale = source_locale
        self.target_locales = tuple(target_locales)

    def register(self, kinds: Iterable[SyncKind] = DEFAULT_SYNC_KINDS) -> None:
        for kind in kinds:
            self.store.after_change(kind.name, partial(self.on_change, kind))

    # -----------------------------
    # Reaction
    # -----------------------------
    def on_change(self, kind: SyncKind, event: ChangeEvent) -> Optional[Future]:
        """After-change reaction. Returns the background future, if one was dispatched."""
        if event.options.skip_synchronization:
            return None
        if event.locale != self.source_locale:
            return None
        doc = event.doc
        label = doc.get(kind.label_field) or doc.get("id")
        if kind.sync_flag and doc.get(kind.sync_flag) is False:
            logger.info(f"[{kind.name}] Sync disabled for {label}")
            return None

        changes = changed_fields(kind, event)
        if not changes:
            return None

        logger.info(f"[{kind.name}] Queuing {len(changes.field_names())} fields for {label}")
        if kind.background:
            return self.dispatcher.submit(f"{kind.name}/{label}", self.synchronize, kind, doc, changes)
        self.synchronize(kind, doc, changes)
        return None

    # -----------------------------
    # Synchronization
    # -----------------------------
    def synchronize(
        self,
        kind: SyncKind,
        doc: Dict[str, Any],
        changes: ChangeSet,
        *,
        protect_existing: Optional[bool] = None,
    ) -> List[LocaleSyncReport]:
        protect = kind.protect_existing if protect_existing is None else protect_existing
        label = doc.get(kind.label_field) or doc.get("id")
        logger.info(f"[{kind.name}] Starting translation for {label}")
        reports = [self._sync_locale(kind, doc, changes, locale, protect) for locale in self.target_locales]
        summary = ", ".join(f"{r.locale}={r.state.value}" for r in reports)
        logger.info(f"[{kind.name}] Completed translation for {label}: {summary}")
        return reports

    def _sync_locale(
        self,
        kind: SyncKind,
        doc: Dict[str, Any],
        changes: ChangeSet,
        locale: str,
        protect: bool,
    ) -> LocaleSyncReport:
        report = LocaleSyncReport(kind=kind.name, doc_id=doc["id"], locale=locale, state=SyncState.PENDING)
        try:
            scalars, arrays = dict(changes.scalars), dict(changes.arrays)
            if protect:
                existing = self.store.find_by_id(kind.name, doc["id"], locale)
                scalars = {k: v for k, v in scalars.items() if not has_genuine_scalar(existing.get(k), v)}
                shapes = dict(kind.array_fields)
                arrays = {k: v for k, v in arrays.items() if not has_genuine_array(existing.get(k), v, shapes[k])}
            if not scalars and not arrays:
                report.state = SyncState.UNCHANGED
                return report

            report.state = SyncState.TRANSLATING
            staged = self._translate(kind, scalars, arrays, locale)
            if not staged:
                report.state = SyncState.UNCHANGED
                return report

            self.store.update(kind.name, doc["id"], locale, staged, WRITE_BACK)
            report.fields = list(staged)
            report.state = SyncState.APPLIED
            logger.info(f"[{kind.name}] Updated {locale} locale for {doc.get(kind.label_field) or doc['id']}")
        except StoreUnavailableError:
            raise
        except Exception as e:
            report.state = SyncState.DEGRADED
            report.error = str(e)
            logger.error(f"[{kind.name}] Failed to update {locale} for {doc['id']}: {e}")
        return report

    def _translate_safe(self, kind: SyncKind, name: str, text: str, locale: str) -> str:
        try:
            result = self.translator.translate(text, locale)
            logger.debug(f"[{kind.name}] {name} -> {locale}: {result.provider}")
            return result.text
        except Exception as e:
            logger.error(f"[{kind.name}] Failed to translate {name} to {locale}: {e}")
            return create_placeholder(text, locale)

    def _translate(
        self,
        kind: SyncKind,
        scalars: Dict[str, str],
        arrays: Dict[str, List[Dict[str, Any]]],
        locale: str,
    ) -> Dict[str, Any]:
        """Translate scalars and every array leaf for one locale, concurrently."""
        shapes = dict(kind.array_fields)
        jobs: List[Tuple[str, Optional[int], Optional[str], str]] = []
        for name, text in scalars.items():
            jobs.append((name, None, None, text))
        for name, items in arrays.items():
            for index, item in enumerate(items):
                if not isinstance(item, dict):
                    continue
                for key in ARRAY_LEAF_KEYS[shapes[name]]:
                    if _non_empty_text(item.get(key)):
                        jobs.append((name, index, key, item[key]))
        if not jobs:
            return {}

        workers = min(len(jobs), MAX_TRANSLATION_WORKERS)
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix=f"translate-{locale}") as pool:
            futures = [pool.submit(self._translate_safe, kind, name, text, locale) for name, _, _, text in jobs]
            results = [f.result() for f in futures]

        staged: Dict[str, Any] = {}
        rebuilt: Dict[str, Dict[int, Dict[str, str]]] = {name: {} for name in arrays}
        for (name, index, key, _), text in zip(jobs, results):
            if index is None:
                staged[name] = text
            else:
                rebuilt[name].setdefault(index, {})[key] = text
        for name, elements in rebuilt.items():
            translated = [elements[i] for i in sorted(elements)]
            if translated:
                staged[name] = translated
                logger.debug(f"[{kind.name}] {name} -> {locale}: {len(translated)} items")
        return staged


@dataclass
class BackfillStats:
    translated: int = 0
    skipped: int = 0
    failed: int = 0


def backfill_translations(
    engine: LocaleSyncEngine,
    kind: SyncKind,
    *,
    delay: float = 0.2,
    sleep: Callable[[float], None] = time.sleep,
) -> BackfillStats:
    """Fill empty or placeholder target fields for every document of a kind.

    Genuine target content is always kept, whatever the kind's normal policy.
    """
    stats = BackfillStats()
    docs = engine.store.find_all(kind.name, engine.source_locale)
    logger.info(f"[{kind.name}] Backfilling {len(docs)} documents")
    for doc in docs:
        if kind.sync_flag and doc.get(kind.sync_flag) is False:
            stats.skipped += len(engine.target_locales)
            continue
        changes = changed_fields(kind, ChangeEvent(kind.name, OPERATION_CREATE, engine.source_locale, doc))
        if not changes:
            stats.skipped += len(engine.target_locales)
            continue
        for report in engine.synchronize(kind, doc, changes, protect_existing=True):
            if report.state == SyncState.APPLIED:
                stats.translated += 1
            elif report.state == SyncState.DEGRADED:
                stats.failed += 1
            else:
                stats.skipped += 1
        sleep(delay)
    logger.info(
        f"[{kind.name}] Backfill complete: translated={stats.translated} "
        f"skipped={stats.skipped} failed={stats.failed}"
    )
    return stats
