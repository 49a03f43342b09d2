"""Shared fixtures: a deterministic offline embedder and store builders."""

from __future__ import annotations

import hashlib
from typing import Callable, Dict, Iterable, List, Sequence

import numpy as np
import pytest

from docanswer.embedding.encoder import EmbeddingError
from docanswer.index.store import InMemoryChunkStore
from docanswer.models import Chunk, EmbeddedChunk
from docanswer.utils.text import normalize_for_matching


class HashingEmbedder:
    """Bag-of-words embedder hashing each normalized token into a fixed bucket."""

    def __init__(self, dimension: int = 512) -> None:
        self.dimension = dimension
        self.calls: List[List[str]] = []

    def _vector(self, text: str) -> np.ndarray:
        vector = np.zeros(self.dimension, dtype="float32")
        for token in normalize_for_matching(text).split():
            digest = hashlib.md5(token.encode("utf-8")).digest()
            vector[int.from_bytes(digest[:4], "little") % self.dimension] += 1.0
        norm = np.linalg.norm(vector)
        return vector / norm if norm else vector

    def embed(self, texts: Sequence[str] | Iterable[str]) -> np.ndarray:
        batch = list(texts)
        if not batch:
            raise EmbeddingError("No texts provided for embedding")
        self.calls.append(batch)
        return np.stack([self._vector(text) for text in batch])

    def embed_query(self, text: str) -> np.ndarray:
        return self._vector(text)


def make_chunks(name: str, texts: Sequence[str], file_size: int | None = None) -> List[Chunk]:
    chunks: List[Chunk] = []
    offset = 0
    for index, text in enumerate(texts):
        chunks.append(
            Chunk(
                text=text,
                source_file=name,
                chunk_index=index,
                start_index=offset,
                end_index=offset + len(text),
                file_size=file_size,
            )
        )
        offset += len(text)
    return chunks


@pytest.fixture
def embedder() -> HashingEmbedder:
    return HashingEmbedder()


@pytest.fixture
def build_store(embedder: HashingEmbedder) -> Callable[[Dict[str, Sequence[str]]], InMemoryChunkStore]:
    """Return a factory building a store from ``{file_name: [chunk texts]}``."""

    def _build(documents: Dict[str, Sequence[str]]) -> InMemoryChunkStore:
        store = InMemoryChunkStore()
        for name, texts in documents.items():
            chunks = make_chunks(name, texts, file_size=sum(len(text) for text in texts))
            store.add_document(chunks, embedder.embed([chunk.text for chunk in chunks]))
        return store

    return _build


@pytest.fixture
def make_items(embedder: HashingEmbedder) -> Callable[[str, Sequence[str]], List[EmbeddedChunk]]:
    """Return a factory producing embedded chunks for one document."""

    def _make(name: str, texts: Sequence[str]) -> List[EmbeddedChunk]:
        chunks = make_chunks(name, texts)
        vectors = embedder.embed([chunk.text for chunk in chunks])
        return [EmbeddedChunk(chunk=chunk, embedding=vector) for chunk, vector in zip(chunks, vectors)]

    return _make
