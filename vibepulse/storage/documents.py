"""Locale-aware document store interface.

Documents have shared (non-localized) fields and one slice of localized
fields per locale. Writes are field-scoped merges into one locale slice, so
writers to different locales of the same document never clobber each other.

After every successful write the store calls the reactions registered with
`after_change(kind, reaction)` with a ChangeEvent. The SyncOptions passed to
`create`/`update` travel with the event; this is how a translation write-back
tells the synchronization engine not to react to it.
"""

from __future__ import annotations

import copy
import itertools
import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from vibepulse.config import SOURCE_LOCALE
from vibepulse.errors import DocumentNotFoundError, DuplicateKeyError, StoreError

logger = logging.getLogger(__name__)

OPERATION_CREATE = "create"
OPERATION_UPDATE = "update"


@dataclass(frozen=True)
class CollectionSchema:
    kind: str
    localized_fields: Tuple[str, ...]
    unique_key: Optional[str] = None


PULSE_ITEMS = CollectionSchema("pulse-items", ("title", "summary"), unique_key="externalId")
CASES = CollectionSchema("cases", ("title", "oneLiner", "problem", "solution", "learnings"), unique_key="slug")
TOOLS = CollectionSchema(
    "tools",
    ("shortOneLiner", "description", "primaryUseCase", "bestFor", "notFor", "keyFeatures"),
    unique_key="slug",
)

DEFAULT_COLLECTIONS = (PULSE_ITEMS, CASES, TOOLS)


@dataclass(frozen=True)
class SyncOptions:
    skip_synchronization: bool = False


@dataclass(frozen=True)
class ChangeEvent:
    kind: str
    operation: str
    locale: str
    doc: Dict[str, Any]
    previous_doc: Optional[Dict[str, Any]] = None
    options: SyncOptions = field(default_factory=SyncOptions)


AfterChangeReaction = Callable[[ChangeEvent], None]


class DocumentStore:
    """Base class: schema handling and after-change notification."""

    def __init__(self, collections: Sequence[CollectionSchema] = DEFAULT_COLLECTIONS):
        self.collections: Dict[str, CollectionSchema] = {c.kind: c for c in collections}
        self._reactions: Dict[str, List[AfterChangeReaction]] = {}

    # -----------------------------
    # Public interface
    # -----------------------------
    def after_change(self, kind: str, reaction: AfterChangeReaction) -> None:
        self.schema(kind)
        self._reactions.setdefault(kind, []).append(reaction)

    def create(
        self,
        kind: str,
        locale: str,
        fields: Dict[str, Any],
        options: SyncOptions = SyncOptions(),
    ) -> Dict[str, Any]:
        schema = self.schema(kind)
        shared, localized = self.split_fields(schema, fields)
        unique = shared.get(schema.unique_key) if schema.unique_key else None
        doc_id = self._insert(schema, unique, shared, locale, localized)
        doc = self.find_by_id(kind, doc_id, locale)
        self._notify(ChangeEvent(kind, OPERATION_CREATE, locale, doc, None, options))
        return doc

    def update(
        self,
        kind: str,
        doc_id: Any,
        locale: str,
        fields: Dict[str, Any],
        options: SyncOptions = SyncOptions(),
    ) -> Dict[str, Any]:
        schema = self.schema(kind)
        previous = self.find_by_id(kind, doc_id, locale)
        shared, localized = self.split_fields(schema, fields)
        self._merge(schema, doc_id, shared, locale, localized)
        doc = self.find_by_id(kind, doc_id, locale)
        self._notify(ChangeEvent(kind, OPERATION_UPDATE, locale, doc, previous, options))
        return doc

    def find_by_id(self, kind: str, doc_id: Any, locale: str = SOURCE_LOCALE) -> Dict[str, Any]:
        raise NotImplementedError

    def find_by_unique_key(self, kind: str, key: str, locale: str = SOURCE_LOCALE) -> Optional[Dict[str, Any]]:
        raise NotImplementedError

    def find_all(self, kind: str, locale: str = SOURCE_LOCALE) -> List[Dict[str, Any]]:
        raise NotImplementedError

    # -----------------------------
    # Helpers
    # -----------------------------
    def schema(self, kind: str) -> CollectionSchema:
        try:
            return self.collections[kind]
        except KeyError:
            raise StoreError(f"unknown collection: {kind}")

    @staticmethod
    def split_fields(schema: CollectionSchema, fields: Dict[str, Any]) -> Tuple[Dict[str, Any], Dict[str, Any]]:
        shared: Dict[str, Any] = {}
        localized: Dict[str, Any] = {}
        for key, value in fields.items():
            if key == "id":
                continue
            if key in schema.localized_fields:
                localized[key] = value
            else:
                shared[key] = value
        return shared, localized

    @staticmethod
    def compose(doc_id: Any, shared: Dict[str, Any], localized: Dict[str, Any]) -> Dict[str, Any]:
        doc = {"id": doc_id}
        doc.update(copy.deepcopy(shared))
        doc.update(copy.deepcopy(localized))
        return doc

    def _notify(self, event: ChangeEvent) -> None:
        for reaction in self._reactions.get(event.kind, []):
            reaction(event)

    def _insert(
        self,
        schema: CollectionSchema,
        unique: Optional[str],
        shared: Dict[str, Any],
        locale: str,
        localized: Dict[str, Any],
    ) -> Any:
        raise NotImplementedError

    def _merge(
        self,
        schema: CollectionSchema,
        doc_id: Any,
        shared: Dict[str, Any],
        locale: str,
        localized: Dict[str, Any],
    ) -> None:
        raise NotImplementedError


class InMemoryDocumentStore(DocumentStore):
    """Process-local store, used for tests and dry runs."""

    def __init__(self, collections: Sequence[CollectionSchema] = DEFAULT_COLLECTIONS):
        super().__init__(collections)
        self._lock = threading.Lock()
        self._ids = itertools.count(1)
        self._docs: Dict[str, Dict[Any, Dict[str, Any]]] = {c.kind: {} for c in collections}
        self._unique: Dict[str, Dict[str, Any]] = {c.kind: {} for c in collections}

    def _insert(self, schema, unique, shared, locale, localized):
        with self._lock:
            if unique is not None and unique in self._unique[schema.kind]:
                raise DuplicateKeyError(schema.kind, unique)
            doc_id = next(self._ids)
            self._docs[schema.kind][doc_id] = {
                "shared": copy.deepcopy(shared),
                "locales": {locale: copy.deepcopy(localized)},
            }
            if unique is not None:
                self._unique[schema.kind][unique] = doc_id
        return doc_id

    def _merge(self, schema, doc_id, shared, locale, localized):
        with self._lock:
            record = self._docs[schema.kind].get(doc_id)
            if record is None:
                raise DocumentNotFoundError(f"{schema.kind}/{doc_id}")
            if schema.unique_key and schema.unique_key in shared:
                new_key = shared[schema.unique_key]
                owner = self._unique[schema.kind].get(new_key)
                if owner is not None and owner != doc_id:
                    raise DuplicateKeyError(schema.kind, new_key)
                old_key = record["shared"].get(schema.unique_key)
                self._unique[schema.kind].pop(old_key, None)
                self._unique[schema.kind][new_key] = doc_id
            record["shared"].update(copy.deepcopy(shared))
            record["locales"].setdefault(locale, {}).update(copy.deepcopy(localized))

    def find_by_id(self, kind, doc_id, locale=SOURCE_LOCALE):
        self.schema(kind)
        with self._lock:
            record = self._docs[kind].get(doc_id)
            if record is None:
                raise DocumentNotFoundError(f"{kind}/{doc_id}")
            return self.compose(doc_id, record["shared"], record["locales"].get(locale, {}))

    def find_by_unique_key(self, kind, key, locale=SOURCE_LOCALE):
        self.schema(kind)
        with self._lock:
            doc_id = self._unique[kind].get(key)
        if doc_id is None:
            return None
        return self.find_by_id(kind, doc_id, locale)

    def find_all(self, kind, locale=SOURCE_LOCALE):
        self.schema(kind)
        with self._lock:
            ids = sorted(self._docs[kind])
        return [self.find_by_id(kind, doc_id, locale) for doc_id in ids]
