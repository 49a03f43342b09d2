"""Core DocAnswer data models."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict

import numpy as np


@dataclass(slots=True, frozen=True)
class Chunk:
    """Fixed-size window of a source document's extracted text."""

    text: str
    source_file: str
    chunk_index: int
    start_index: int
    end_index: int
    file_size: int | None = None


@dataclass(slots=True, frozen=True)
class EmbeddedChunk:
    """Chunk paired with the embedding computed for its text."""

    chunk: Chunk
    embedding: np.ndarray


@dataclass(slots=True)
class SearchAnswer:
    """Single ranked answer returned for a query."""

    answer: str
    source: str
    confidence: float
    explanation: str | None = None
    chunk_index: int | None = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "answer": self.answer,
            "source": self.source,
            "confidence": self.confidence,
        }
        if self.explanation is not None:
            payload["explanation"] = self.explanation
        return payload
