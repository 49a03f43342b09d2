"""Document indexing pipeline."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Sequence

from docanswer.embedding.encoder import Embedder, EmbeddingError
from docanswer.index.store import InMemoryChunkStore
from docanswer.ingestion.loaders import DocumentProcessingError, build_chunks, load_document_text
from docanswer.utils.files import iter_document_paths

LOGGER = logging.getLogger(__name__)


def find_documents(paths: Sequence[Path]) -> list[Path]:
    """Find all supported documents under the given paths."""
    return list(iter_document_paths(paths))


@dataclass(slots=True)
class IndexStats:
    inserted: int = 0
    updated: int = 0
    failed: int = 0
    chunks: int = 0
    processed_files: list[Path] = field(default_factory=list)
    errors: Dict[str, str] = field(default_factory=dict)

    def increment(self, status: str, path: Path) -> None:
        if status == "inserted":
            self.inserted += 1
        elif status == "updated":
            self.updated += 1
        else:
            self.failed += 1
        self.processed_files.append(path)


class Indexer:
    """Extracts, chunks and embeds documents into an in-memory store."""

    def __init__(
        self,
        embedder: Embedder,
        store: InMemoryChunkStore,
        *,
        chunk_chars: int = 1000,
        overlap: int = 200,
        max_chunks: int = 10000,
    ) -> None:
        self.embedder = embedder
        self.store = store
        self.chunk_chars = chunk_chars
        self.overlap = overlap
        self.max_chunks = max_chunks

    def index(self, paths: Sequence[Path]) -> IndexStats:
        """Index every supported document found under the given paths."""
        documents = find_documents(paths)
        if not documents:
            LOGGER.warning("No supported documents found")
            return IndexStats()

        stats = IndexStats()
        for path in documents:
            existed = bool(self.store.by_document(path.name))
            try:
                LOGGER.info("Processing: %s", path)
                stats.chunks += self.index_file(path)
            except (DocumentProcessingError, EmbeddingError, ValueError) as exc:
                LOGGER.error("Failed to process %s: %s", path, exc)
                stats.errors[path.name] = str(exc)
                stats.increment("failed", path)
                continue
            stats.increment("updated" if existed else "inserted", path)
        return stats

    def index_file(
        self,
        path: Path,
        display_name: str | None = None,
        file_size: int | None = None,
    ) -> int:
        """Index a single document and return the number of stored chunks."""
        name = display_name or path.name
        size = file_size if file_size is not None else path.stat().st_size
        text = load_document_text(path)
        chunks = build_chunks(
            text,
            name,
            file_size=size,
            max_chars=self.chunk_chars,
            overlap=self.overlap,
            max_chunks=self.max_chunks,
        )
        if not chunks:
            raise DocumentProcessingError(f"No text chunks produced from {name}")

        LOGGER.info("Created %d chunks from %s, generating embeddings", len(chunks), name)
        embeddings = self.embedder.embed([chunk.text for chunk in chunks])
        if len(embeddings) != len(chunks):
            raise EmbeddingError(
                f"Embedding count mismatch: {len(embeddings)} embeddings for {len(chunks)} chunks"
            )
        return self.store.add_document(chunks, embeddings)


def summarize_errors(stats: IndexStats) -> List[str]:
    return [f"{name}: {message}" for name, message in stats.errors.items()]
