"""Document-level candidate filters."""

from __future__ import annotations

import logging
import math
from typing import Dict, Iterable, List, Sequence, Set, Tuple

from docanswer.models import EmbeddedChunk
from docanswer.utils.text import contains_word, normalize_for_matching

LOGGER = logging.getLogger(__name__)

EARLY_DOCUMENT_FRACTION = 0.15


def group_by_document(items: Iterable[EmbeddedChunk]) -> Dict[str, List[EmbeddedChunk]]:
    """Group chunks by source file, keeping first-seen document order."""
    groups: Dict[str, List[EmbeddedChunk]] = {}
    for item in items:
        groups.setdefault(item.chunk.source_file, []).append(item)
    return groups


def document_chunk_counts(items: Iterable[EmbeddedChunk]) -> Dict[str, int]:
    return {name: len(chunks) for name, chunks in group_by_document(items).items()}


def _mentions(text: str, entity: str) -> bool:
    lowered = entity.lower()
    return (
        lowered in text.lower()
        or contains_word(text, entity)
        or lowered in normalize_for_matching(text)
    )


def is_relevant_document(name: str, chunks: Sequence[EmbeddedChunk], entity: str) -> bool:
    """A document is relevant when its name, title chunk or opening chunks mention the entity."""
    if entity.lower() in name.lower() or contains_word(name, entity):
        LOGGER.debug("%s matches %r by filename", name, entity)
        return True

    title = next((item for item in chunks if item.chunk.chunk_index == 0), None)
    if title is not None and _mentions(title.chunk.text, entity):
        LOGGER.debug("%s matches %r in its title chunk", name, entity)
        return True

    early = max(1, math.ceil(len(chunks) * EARLY_DOCUMENT_FRACTION))
    for item in chunks[:early]:
        if _mentions(item.chunk.text, entity):
            LOGGER.debug("%s matches %r in early chunk %d", name, entity, item.chunk.chunk_index)
            return True
    return False


def filter_by_entity(
    items: Sequence[EmbeddedChunk], entity: str | None
) -> Tuple[List[EmbeddedChunk], Set[str]]:
    """Restrict chunks to documents relevant to ``entity``.

    Returns the surviving chunks and the names of relevant documents. When no
    document is relevant, every chunk survives.
    """
    if not entity:
        return list(items), set()

    relevant = {
        name
        for name, chunks in group_by_document(items).items()
        if is_relevant_document(name, chunks, entity)
    }
    if not relevant:
        LOGGER.warning("No documents match entity %r; searching all documents", entity)
        return list(items), relevant

    kept = [item for item in items if item.chunk.source_file in relevant]
    LOGGER.info(
        "Document filter for %r: %d relevant document(s), %d of %d chunks",
        entity,
        len(relevant),
        len(kept),
        len(items),
    )
    return kept, relevant


def exclude_documents_without_entity(
    items: Sequence[EmbeddedChunk], entity: str
) -> List[EmbeddedChunk]:
    """Drop whole documents in which no chunk mentions ``entity``. No fallback."""
    eligible = {
        name
        for name, chunks in group_by_document(items).items()
        if any(contains_word(item.chunk.text, entity) for item in chunks)
    }
    kept = [item for item in items if item.chunk.source_file in eligible]
    LOGGER.info(
        "Comparison document filter for %r: eligible=%s, excluded %d chunks",
        entity,
        sorted(eligible),
        len(items) - len(kept),
    )
    return kept
