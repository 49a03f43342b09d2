"""In-memory chunk and embedding store."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Dict, List, Sequence, Tuple

import numpy as np

from docanswer.models import Chunk, EmbeddedChunk

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class DocumentSummary:
    name: str
    size: int | None
    chunks: int


def cosine_similarity(a: np.ndarray, b: np.ndarray) -> float:
    """Cosine similarity of two vectors; 0.0 when either has zero norm."""
    a = np.asarray(a, dtype="float32")
    b = np.asarray(b, dtype="float32")
    if a.shape != b.shape:
        raise ValueError(f"Vectors must have the same length ({a.shape[0]} != {b.shape[0]})")
    norm = float(np.linalg.norm(a) * np.linalg.norm(b))
    if norm == 0.0:
        return 0.0
    return float(np.dot(a, b) / norm)


class InMemoryChunkStore:
    """Process-local store of embedded chunks.

    Writers take a lock and swap in a new tuple, so ``all()`` always returns
    a consistent snapshot that later writes cannot mutate.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._items: Tuple[EmbeddedChunk, ...] = ()

    def __len__(self) -> int:
        return len(self._items)

    def all(self) -> Tuple[EmbeddedChunk, ...]:
        return self._items

    def by_document(self, name: str) -> List[EmbeddedChunk]:
        return [item for item in self._items if item.chunk.source_file == name]

    def add_document(self, chunks: Sequence[Chunk], embeddings: np.ndarray | Sequence[np.ndarray]) -> int:
        """Store a document's chunks, replacing any earlier upload of the same name."""
        if len(chunks) != len(embeddings):
            raise ValueError(
                f"Embedding count mismatch: {len(embeddings)} embeddings for {len(chunks)} chunks"
            )
        if not chunks:
            return 0

        names = {chunk.source_file for chunk in chunks}
        new_items = tuple(
            EmbeddedChunk(chunk=chunk, embedding=np.asarray(vector, dtype="float32"))
            for chunk, vector in zip(chunks, embeddings)
        )
        with self._lock:
            kept = tuple(item for item in self._items if item.chunk.source_file not in names)
            replaced = len(self._items) - len(kept)
            self._items = kept + new_items

        if replaced:
            LOGGER.info("Replaced %d existing chunks for %s", replaced, ", ".join(sorted(names)))
        LOGGER.debug("Stored %d chunks; total now %d", len(new_items), len(self._items))
        return len(new_items)

    def remove_document(self, name: str) -> int:
        with self._lock:
            kept = tuple(item for item in self._items if item.chunk.source_file != name)
            removed = len(self._items) - len(kept)
            self._items = kept
        LOGGER.info("Removed %d chunks from %s", removed, name)
        return removed

    def clear(self) -> int:
        with self._lock:
            removed = len(self._items)
            self._items = ()
        LOGGER.info("Cleared %d chunks", removed)
        return removed

    def documents(self) -> List[DocumentSummary]:
        """Summaries of stored documents in upload order."""
        counts: Dict[str, int] = {}
        sizes: Dict[str, int | None] = {}
        for item in self._items:
            name = item.chunk.source_file
            counts[name] = counts.get(name, 0) + 1
            if sizes.get(name) is None:
                sizes[name] = item.chunk.file_size
        return [DocumentSummary(name=name, size=sizes[name], chunks=count) for name, count in counts.items()]

    @staticmethod
    def cosine_similarity(a: np.ndarray, b: np.ndarray) -> float:
        return cosine_similarity(a, b)
