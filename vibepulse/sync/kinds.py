"""Per-collection synchronization policies.

| kind        | scalars                                   | arrays                      | sync flag              | protect existing | dispatch   |
|-------------|-------------------------------------------|-----------------------------|------------------------|------------------|------------|
| pulse-items | title, summary                            | -                           | -                      | no               | background |
| cases       | title, oneLiner, problem, solution, ...   | -                           | -                      | no               | inline     |
| tools       | shortOneLiner, description, primaryUse... | bestFor, notFor, keyFeatures| syncTranslationsFromNL | yes              | inline     |

Tool `name` is a brand name and is never localized.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from vibepulse.storage.documents import CASES, PULSE_ITEMS, TOOLS, CollectionSchema

SHAPE_BULLETS = "bullets"
SHAPE_FEATURES = "features"

# Leaf keys translated inside each array element, per shape.
ARRAY_LEAF_KEYS: Dict[str, Tuple[str, ...]] = {
    SHAPE_BULLETS: ("point",),
    SHAPE_FEATURES: ("title", "detail"),
}


@dataclass(frozen=True)
class SyncKind:
    collection: CollectionSchema
    scalar_fields: Tuple[str, ...]
    array_fields: Tuple[Tuple[str, str], ...] = ()
    sync_flag: Optional[str] = None
    protect_existing: bool = False
    background: bool = False
    label_field: str = "id"

    @property
    def name(self) -> str:
        return self.collection.kind


PULSE_ITEMS_SYNC = SyncKind(
    collection=PULSE_ITEMS,
    scalar_fields=("title", "summary"),
    background=True,
    label_field="externalId",
)

CASES_SYNC = SyncKind(
    collection=CASES,
    scalar_fields=("title", "oneLiner", "problem", "solution", "learnings"),
    label_field="slug",
)

TOOLS_SYNC = SyncKind(
    collection=TOOLS,
    scalar_fields=("shortOneLiner", "description", "primaryUseCase"),
    array_fields=(
        ("bestFor", SHAPE_BULLETS),
        ("notFor", SHAPE_BULLETS),
        ("keyFeatures", SHAPE_FEATURES),
    ),
    sync_flag="syncTranslationsFromNL",
    protect_existing=True,
    label_field="slug",
)

DEFAULT_SYNC_KINDS = (PULSE_ITEMS_SYNC, CASES_SYNC, TOOLS_SYNC)
