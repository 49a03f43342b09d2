"""Comparison section resolution and contrast scoring.

Comparison queries ("difference between Acme and agentic platforms") are
answered from the part of a document that frames the comparison. Three
cooperating steps live here:

* a section scan that restricts candidates to a section whose header names
  the entity together with a comparison keyword,
* a chunk categorization pass that excludes title chunks, overview summaries
  and chunks missing the entity, preferring chunks inside a numbered
  comparison section,
* per-chunk contrast scoring used by the candidate scorer.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from functools import lru_cache
from typing import List, Sequence, Tuple

from docanswer.config import RankingConfig
from docanswer.models import EmbeddedChunk
from docanswer.ranking.filters import group_by_document
from docanswer.utils.text import contains_word

LOGGER = logging.getLogger(__name__)

MAX_HEADER_CHARS = 120

COMPARISON_KEYWORDS = (
    re.compile(r"\bdifference\b", re.I),
    re.compile(r"\bcompare\b", re.I),
    re.compile(r"\bcomparison\b", re.I),
    re.compile(r"\bvs\.?\b", re.I),
    re.compile(r"\bversus\b", re.I),
)

_NUMBERED_HEADER = re.compile(r"^(\d+\.[\d.]*)\s+(.+)$")
_NUMBERED_LINE = re.compile(r"^\d+\.\s+")
_COMPARISON_HEADER_WORDS = re.compile(r"\b(difference|compare|comparison|vs\.?|versus)\b", re.I)

OVERVIEW_PATTERNS = (
    re.compile(r"\bprovides\s+a\s+detailed\s+understanding\b", re.I),
    re.compile(r"\bcovers\s+its\s+purpose\b", re.I),
    re.compile(r"\bthis\s+document\s+provides\b", re.I),
    re.compile(r"\bplatform\s+overview\b", re.I),
    re.compile(r"\bthis\s+document\s+covers\b", re.I),
    re.compile(r"\bthis\s+document\s+explains\b", re.I),
    re.compile(r"\boverview\s+of\s+", re.I),
    re.compile(r"\bintroduction\s+to\s+", re.I),
    re.compile(r"\bcovering\s+(its|the)\s+", re.I),
    re.compile(r"\bdetailed\s+understanding\s+of\b", re.I),
    # topic listings
    re.compile(r"purpose.*architecture.*ai.*differentiation", re.I),
    re.compile(r"covering.*purpose.*architecture", re.I),
    re.compile(r"\bpurpose\b.*\barchitecture\b.*\bai\b", re.I),
)

CONTRAST_PATTERNS = (
    re.compile(r"\bwhile\b", re.I),
    re.compile(r"\bwhereas\b", re.I),
    re.compile(r"\bin\s+contrast\b", re.I),
    re.compile(r"\bcompared\s+to\b", re.I),
    re.compile(r"\bunlike\b", re.I),
    re.compile(r"\brather\s+than\b", re.I),
    re.compile(r"\bon\s+the\s+other\s+hand\b", re.I),
    re.compile(r"\bhowever\b", re.I),
    re.compile(r"\bbut\b", re.I),
    re.compile(r"\binstead\s+of\b", re.I),
)

GENERIC_DUAL_FRAMING = (
    re.compile(r"what\s+should\s+.*\s+vs\.?\s+how\s+to", re.I),
    re.compile(r"problem\s+.*\s+(while|whereas|vs\.?)\s+.*\s+(solution|execution|task)", re.I),
    re.compile(r"discover.*\s+(while|whereas|vs\.?)\s+.*\s+execut", re.I),
    re.compile(r"identify.*\s+(while|whereas|vs\.?)\s+.*\s+automat", re.I),
)

GENERIC_EXPLICIT_CONTRAST = (
    re.compile(r"discovers?\s+and\s+prioritiz.{0,30}(while|whereas).{0,30}automat", re.I),
    re.compile(r"finds?\s+problems?.{0,30}(while|whereas).{0,30}execut", re.I),
    re.compile(r"what\s+should\s+.{0,30}(while|whereas|vs\.?).{0,30}how\s+to", re.I),
    re.compile(r"problem\s+discovery.{0,30}(while|whereas|vs\.?).{0,30}task\s+execution", re.I),
    re.compile(r"prioritiz.{0,30}problem.{0,30}(while|whereas).{0,30}automat", re.I),
)

LATE_HEADER_PATTERNS = (
    re.compile(r"\d+\.\s*Difference\s+Between", re.I),
    re.compile(r"\d+\.\s*Difference\s+", re.I),
    re.compile(r"\d+\.\s*Compare", re.I),
    re.compile(r"\d+\.\s*Comparison", re.I),
    re.compile(r"\d+\.\s*[^\n]*\s+vs\.?\s+", re.I),
)

_COMPARISON_TERMS = (
    re.compile(r"\bdifference\b", re.I),
    re.compile(r"\bcompare", re.I),
    re.compile(r"\bvs\.?\b", re.I),
)


@dataclass(slots=True, frozen=True)
class ChunkExclusion:
    source_file: str
    chunk_index: int
    reason: str


@dataclass(slots=True)
class ComparisonFilterResult:
    priority: List[EmbeddedChunk] = field(default_factory=list)
    other: List[EmbeddedChunk] = field(default_factory=list)
    excluded: List[ChunkExclusion] = field(default_factory=list)

    @property
    def chunks(self) -> List[EmbeddedChunk]:
        """Comparison-section chunks when any exist, else the other valid chunks."""
        return self.priority or self.other


def _has_comparison_keyword(text: str) -> bool:
    return any(pattern.search(text) for pattern in COMPARISON_KEYWORDS)


def section_title(line: str) -> str | None:
    """Return the header title if ``line`` looks like a section header."""
    stripped = line.strip()
    if not stripped or len(stripped) > MAX_HEADER_CHARS:
        return None

    numbered = _NUMBERED_HEADER.match(stripped)
    if numbered:
        return numbered.group(2)

    words = stripped.split()
    if 2 <= len(words) <= 15:
        capitalized = sum(1 for word in words if word[0].isupper())
        if capitalized >= len(words) * 0.5:
            return stripped
    return None


def find_comparison_section(items: Sequence[EmbeddedChunk], entity: str) -> List[EmbeddedChunk]:
    """Chunks belonging to sections headed by the entity and a comparison keyword.

    A matching header opens a section and any other header closes it; every
    chunk seen while a section is open is collected.
    """
    matched: List[EmbeddedChunk] = []
    for name, chunks in group_by_document(items).items():
        in_section = False
        for item in sorted(chunks, key=lambda entry: entry.chunk.chunk_index):
            for line in item.chunk.text.split("\n"):
                title = section_title(line)
                if not title:
                    continue
                if contains_word(title, entity) and _has_comparison_keyword(title):
                    LOGGER.info("Comparison section %r found in %s", line.strip(), name)
                    in_section = True
                elif in_section:
                    LOGGER.debug("Comparison section in %s ends at %r", name, line.strip())
                    in_section = False
            if in_section:
                matched.append(item)
    return matched


def is_overview(text: str) -> bool:
    return any(pattern.search(text) for pattern in OVERVIEW_PATTERNS)


def has_comparison_header(text: str) -> bool:
    return any(
        _NUMBERED_LINE.search(line.strip()) and _COMPARISON_HEADER_WORDS.search(line.strip())
        for line in text.split("\n")
    )


def starts_new_section(text: str) -> bool:
    """True when the first non-empty line is a numbered, non-comparison header."""
    for line in text.split("\n"):
        stripped = line.strip()
        if stripped:
            return bool(_NUMBERED_LINE.search(stripped)) and not _COMPARISON_HEADER_WORDS.search(stripped)
    return False


def _section_bounds(chunks: Sequence[EmbeddedChunk]) -> Tuple[int, int]:
    for start, item in enumerate(chunks):
        if has_comparison_header(item.chunk.text):
            for end in range(start + 1, len(chunks)):
                if starts_new_section(chunks[end].chunk.text):
                    return start, end
            return start, len(chunks)
    return -1, -1


def filter_comparison_chunks(
    items: Sequence[EmbeddedChunk], entity: str | None
) -> ComparisonFilterResult:
    """Categorize chunks for a comparison query.

    Chunks inside a numbered comparison section are prioritized; title chunks,
    overview summaries and chunks without the entity outside that section are
    excluded with a reason.
    """
    result = ComparisonFilterResult()
    for name, chunks in group_by_document(items).items():
        ordered = sorted(chunks, key=lambda entry: entry.chunk.chunk_index)
        start, end = _section_bounds(ordered)
        if start >= 0:
            LOGGER.info(
                "Comparison header at chunk %d of %s",
                ordered[start].chunk.chunk_index,
                name,
            )

        for position, item in enumerate(ordered):
            chunk = item.chunk
            in_section = start <= position < end
            has_entity = entity is None or contains_word(chunk.text, entity)

            if chunk.chunk_index == 0:
                reason = "first chunk (intro/title)"
            elif not in_section and is_overview(chunk.text):
                reason = "overview/scope summary (not in comparison section)"
            elif not in_section and not has_entity:
                reason = f"missing entity 1 ({entity})"
            elif in_section:
                result.priority.append(item)
                continue
            else:
                result.other.append(item)
                continue

            LOGGER.debug("Excluded chunk %d of %s: %s", chunk.chunk_index, name, reason)
            result.excluded.append(ChunkExclusion(name, chunk.chunk_index, reason))

    LOGGER.info(
        "Comparison filter: %d section chunks, %d other, %d excluded",
        len(result.priority),
        len(result.other),
        len(result.excluded),
    )
    return result


def _term_regex(term: str) -> str:
    return r"\s+".join(re.escape(word) for word in term.split())


@lru_cache(maxsize=128)
def entity_contrast_patterns(
    entity: str | None, second: str | None
) -> Tuple[Tuple[re.Pattern[str], ...], Tuple[re.Pattern[str], ...]]:
    """Explicit dual-entity contrast patterns and dual framing patterns for a pair."""
    if not entity or not second:
        return GENERIC_EXPLICIT_CONTRAST, GENERIC_DUAL_FRAMING

    e1 = _term_regex(entity)
    e2 = _term_regex(second_entity_head(second))
    explicit = (
        re.compile(rf"{e1}\s+.{{5,80}}\s+(while|whereas)\s+.{{0,20}}{e2}", re.I),
        re.compile(rf"{e1}\s+(answers|focuses|discovers|finds|identifies).{{5,60}}(while|whereas).{{0,30}}{e2}", re.I),
        re.compile(rf"{e2}.{{5,60}}(while|whereas).{{0,30}}{e1}", re.I),
        re.compile(rf"{e1}.{{10,80}}in\s+contrast.{{0,30}}{e2}", re.I),
        re.compile(rf"unlike\s+{e2}.{{0,30}}{e1}", re.I),
    )
    framing = (re.compile(rf"{e1}\s+.*\s+(while|whereas|but)\s+.*\s+{e2}", re.I),)
    return explicit + GENERIC_EXPLICIT_CONTRAST, framing + GENERIC_DUAL_FRAMING


def second_entity_head(second: str) -> str:
    """The distinctive first word of a compared phrase ("agentic" for "agentic platforms")."""
    return second.split()[0]


def late_header_penalty(text: str, config: RankingConfig) -> float:
    """Penalty for a comparison header sitting late in the chunk."""
    for pattern in LATE_HEADER_PATTERNS:
        match = pattern.search(text)
        if not match:
            continue
        ratio = match.start() / len(text)
        if ratio > config.very_late_header_threshold:
            return config.very_late_header_penalty
        if ratio > config.late_header_threshold:
            return config.late_header_penalty
        return 0.0
    return 0.0


def comparison_adjustments(
    text: str,
    position: float,
    entity: str | None,
    second_entity: str | None,
    config: RankingConfig,
) -> Tuple[float, float]:
    """Return ``(comparison_bonus, comparison_intro_penalty)`` for one chunk."""
    explicit_patterns, framing_patterns = entity_contrast_patterns(entity, second_entity)
    explicit = any(pattern.search(text) for pattern in explicit_patterns)
    contrast = any(pattern.search(text) for pattern in CONTRAST_PATTERNS)
    framing = any(pattern.search(text) for pattern in framing_patterns)
    both = bool(
        entity
        and second_entity
        and contains_word(text, entity)
        and contains_word(text, second_entity_head(second_entity))
    )

    if explicit:
        bonus = config.explicit_contrast_bonus
    elif (contrast or framing) and both:
        bonus = config.dual_entity_contrast_bonus
    elif contrast or framing:
        bonus = config.contrast_only_bonus
    else:
        bonus = config.no_contrast_penalty

    penalty = 0.0
    has_terms = explicit or contrast or framing or any(p.search(text) for p in _COMPARISON_TERMS)
    if position <= config.early_fraction and not has_terms:
        penalty += config.comparison_intro_penalty
    penalty += late_header_penalty(text, config)
    return bonus, penalty
