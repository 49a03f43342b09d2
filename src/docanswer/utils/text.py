"""Text helpers: overlapping chunking and keyword-matching normalization."""

from __future__ import annotations

import logging
import re
from functools import lru_cache
from typing import Iterator, Tuple

LOGGER = logging.getLogger(__name__)

_NON_WORD = re.compile(r"[^\w\s]")
_WHITESPACE = re.compile(r"\s+")


def chunk_spans(
    text: str, *, max_chars: int = 1000, overlap: int = 200, max_chunks: int = 10000
) -> Iterator[Tuple[int, int, str]]:
    """Split text into overlapping character windows.

    Yields ``(start, end, window)`` tuples. The next window starts ``overlap``
    characters before the previous end, or at the previous end when that would
    not make progress.
    """
    start = 0
    produced = 0
    while start < len(text) and produced < max_chunks:
        end = min(start + max_chars, len(text))
        yield start, end, text[start:end]
        produced += 1
        if end == len(text):
            return
        next_start = end - overlap
        start = end if next_start <= start else next_start

    if produced >= max_chunks:
        LOGGER.warning("Reached maximum chunk limit (%d); text may be very long", max_chunks)


def normalize_for_matching(text: str) -> str:
    """Lower-case, turn punctuation into spaces and collapse whitespace.

    Used on both chunk text and queries so keyword matching survives PDF
    extraction artifacts such as hyphenation and stray line breaks.
    """
    lowered = _NON_WORD.sub(" ", text.lower())
    return _WHITESPACE.sub(" ", lowered).strip()


def simple_stem(word: str) -> str:
    """Crude plural stripping used for keyword coverage."""
    stem = re.sub(r"s$", "", word)
    stem = re.sub(r"es$", "", stem)
    return re.sub(r"ies$", "y", stem)


def topic_stem(word: str) -> str:
    """Crude suffix stripping used by the topic coverage gate."""
    stem = re.sub(r"s$", "", word)
    stem = re.sub(r"es$", "", stem)
    stem = re.sub(r"ing$", "", stem)
    return re.sub(r"ed$", "", stem)


@lru_cache(maxsize=1024)
def word_pattern(word: str) -> re.Pattern[str]:
    """Case-insensitive whole-word pattern for a literal word or phrase."""
    return re.compile(rf"\b{re.escape(word)}\b", re.IGNORECASE)


def contains_word(text: str, word: str) -> bool:
    return word_pattern(word).search(text) is not None
