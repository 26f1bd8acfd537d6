"""Tag-based processing state for artworks.

The catalog's tag field is the durable record of progress:

- no marker tag              -> UNSEEN
- DerivativesProcessing      -> PROCESSING (in flight, or a failed run)
- DerivativesGenerated       -> GENERATED (complete; wins over PROCESSING)
"""

from __future__ import annotations

from enum import Enum
from typing import Iterable

TAG_PROCESSING = "DerivativesProcessing"
TAG_GENERATED = "DerivativesGenerated"

MARKER_TAGS = frozenset({TAG_PROCESSING, TAG_GENERATED})


class ProcessingState(str, Enum):
    UNSEEN = "unseen"
    PROCESSING = "processing"
    GENERATED = "generated"


def parse_tags(raw: str | Iterable[str] | None) -> list[str]:
    """Split a Shopify tag string (``"a, b"``) or list into clean tags.

    Order is preserved, blanks and duplicates are dropped.
    """
    if not raw:
        return []
    items = raw.split(",") if isinstance(raw, str) else list(raw)
    tags: list[str] = []
    for item in items:
        tag = str(item).strip()
        if tag and tag not in tags:
            tags.append(tag)
    return tags


def state_of(tags: Iterable[str]) -> ProcessingState:
    tag_set = set(tags)
    if TAG_GENERATED in tag_set:
        return ProcessingState.GENERATED
    if TAG_PROCESSING in tag_set:
        return ProcessingState.PROCESSING
    return ProcessingState.UNSEEN


def replace_tags(
    current: Iterable[str], add: str, remove: Iterable[str] = ()
) -> list[str]:
    """Return the full replacement tag list after adding/removing tags."""
    drop = set(remove)
    updated = [t for t in current if t not in drop]
    if add not in updated:
        updated.append(add)
    return updated
