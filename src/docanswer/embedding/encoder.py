"""Embedding providers.

Two interchangeable providers map text to fixed-length float32 vectors:
a local ``SentenceTransformer`` model (default) and the OpenAI embeddings
endpoint. Both raise ``EmbeddingError`` instead of returning placeholder
vectors when the provider fails.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterable, List, Literal, Protocol, Sequence

import numpy as np
from openai import OpenAI
from sentence_transformers import SentenceTransformer

if TYPE_CHECKING:
    from docanswer.config import AppConfig

DEFAULT_MODEL = "sentence-transformers/all-mpnet-base-v2"
DEFAULT_OPENAI_MODEL = "text-embedding-ada-002"

OPENAI_BATCH_SIZE = 100
OPENAI_MAX_INPUT_CHARS = 8000

logger = logging.getLogger(__name__)


class EmbeddingError(RuntimeError):
    """Raised when the embedding provider fails or returns malformed output."""


class Embedder(Protocol):
    def embed(self, texts: Sequence[str] | Iterable[str]) -> np.ndarray: ...

    def embed_query(self, text: str) -> np.ndarray: ...


@dataclass(slots=True)
class EmbeddingConfig:
    model_name: str = DEFAULT_MODEL
    batch_size: int = 16
    normalize: bool = True
    backend: Literal["torch", "onnx", "openvino"] = "torch"
    device: str | None = None


class EmbeddingModel:
    """Thin wrapper around `SentenceTransformer` for query and document embeddings."""

    def __init__(self, config: EmbeddingConfig | None = None) -> None:
        self.config = config or EmbeddingConfig()
        try:
            self._model = SentenceTransformer(
                self.config.model_name,
                backend=self.config.backend,
                device=self.config.device,
            )
        except Exception as exc:
            raise EmbeddingError(f"Failed to load embedding model {self.config.model_name}: {exc}") from exc

        self.dimension = int(self._model.get_sentence_embedding_dimension())
        logger.info("Loaded %s (backend: %s, dimension: %d)", self.config.model_name, self.config.backend, self.dimension)

    def embed(self, texts: Sequence[str] | Iterable[str]) -> np.ndarray:
        """Return float32 embeddings for input texts."""
        sentences = list(texts)
        if not sentences:
            raise EmbeddingError("No texts provided for embedding")
        try:
            embeddings = self._model.encode(
                sentences,
                batch_size=self.config.batch_size,
                show_progress_bar=False,
                convert_to_numpy=True,
                normalize_embeddings=self.config.normalize,
            )
        except Exception as exc:
            raise EmbeddingError(f"Embedding failed: {exc}") from exc
        return embeddings.astype("float32", copy=False)

    def embed_query(self, text: str) -> np.ndarray:
        """Convenience wrapper for single-query embedding."""
        return self.embed([text])[0]


class OpenAIEmbeddingModel:
    """Embeddings from the OpenAI API, requested in batches of 100 texts."""

    def __init__(
        self,
        model: str = DEFAULT_OPENAI_MODEL,
        *,
        batch_size: int = OPENAI_BATCH_SIZE,
        api_key: str | None = None,
        client: OpenAI | None = None,
    ) -> None:
        self.model = model
        self.batch_size = batch_size
        self._api_key = api_key
        self._client = client

    @property
    def client(self) -> OpenAI:
        if self._client is None:
            if not self._api_key:
                raise EmbeddingError("OPENAI_API_KEY is not set in the environment or .env file")
            self._client = OpenAI(api_key=self._api_key, timeout=300.0, max_retries=2)
        return self._client

    def embed(self, texts: Sequence[str] | Iterable[str]) -> np.ndarray:
        inputs = [(text or "").strip()[:OPENAI_MAX_INPUT_CHARS] for text in texts]
        if not inputs:
            raise EmbeddingError("No texts provided for embedding")
        blank = [position for position, text in enumerate(inputs) if not text]
        if blank:
            raise EmbeddingError(f"Cannot embed empty text at positions {blank}")

        total_batches = (len(inputs) + self.batch_size - 1) // self.batch_size
        vectors: List[List[float]] = []
        for start in range(0, len(inputs), self.batch_size):
            batch = inputs[start : start + self.batch_size]
            batch_num = start // self.batch_size + 1
            began = time.perf_counter()
            try:
                response = self.client.embeddings.create(model=self.model, input=batch)
            except EmbeddingError:
                raise
            except Exception as exc:
                raise EmbeddingError(f"Failed to get embeddings for batch {batch_num}: {exc}") from exc

            data = getattr(response, "data", None) or []
            if len(data) != len(batch):
                raise EmbeddingError(
                    f"Unexpected response: expected {len(batch)} embeddings, got {len(data)}"
                )
            vectors.extend(item.embedding for item in data)
            logger.debug(
                "Embedding batch %d/%d (%d texts) took %.0f ms",
                batch_num,
                total_batches,
                len(batch),
                (time.perf_counter() - began) * 1000,
            )

        return np.asarray(vectors, dtype="float32")

    def embed_query(self, text: str) -> np.ndarray:
        return self.embed([text])[0]


def create_embedder(config: "AppConfig") -> Embedder:
    """Build the embedding provider selected by the application config."""
    if config.embedding_backend == "openai":
        return OpenAIEmbeddingModel(config.openai_model, api_key=config.openai_api_key)
    return EmbeddingModel(EmbeddingConfig(model_name=config.model_name))
