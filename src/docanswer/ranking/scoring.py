"""Multi-factor candidate scoring."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Dict, List, Sequence, Tuple

import numpy as np

from docanswer.config import RankingConfig
from docanswer.index.store import cosine_similarity
from docanswer.models import EmbeddedChunk
from docanswer.ranking.comparison import comparison_adjustments
from docanswer.ranking.intent import QueryIntent
from docanswer.utils.text import contains_word, normalize_for_matching, simple_stem

LOGGER = logging.getLogger(__name__)

POSITION_INTRO_PATTERNS = (
    re.compile(r"this\s+document\s+provides", re.I),
    re.compile(r"detailed\s+understanding", re.I),
    re.compile(r"covering\s+(its|the)", re.I),
    re.compile(r"this\s+(document|guide|manual)\s+(provides|covers|explains)", re.I),
)

DEFINITION_INTRO_PATTERNS = POSITION_INTRO_PATTERNS + (
    re.compile(r"overview\s+of", re.I),
    re.compile(r"^this\s+(document|guide|manual)", re.I),
)

_QUESTION = re.compile(r"what\s+is\s+[^?]*\?", re.I)
_QUESTION_AT_END = re.compile(r"what\s+is\s+[^?]*\?$", re.I)


@dataclass(slots=True)
class Candidate:
    """Per-query scoring record for one chunk."""

    item: EmbeddedChunk
    semantic_similarity: float
    keyword_coverage: float
    position: float
    position_bonus: float = 0.0
    explicit_term_bonus: float = 0.0
    definition_bonus: float = 0.0
    definition_penalty: float = 0.0
    comparison_bonus: float = 0.0
    comparison_intro_penalty: float = 0.0
    keyword_weight: float = 0.3

    @property
    def has_query_keywords(self) -> bool:
        return self.keyword_coverage > 0

    @property
    def final_score(self) -> float:
        return (
            self.semantic_similarity
            + self.keyword_weight * self.keyword_coverage
            + self.position_bonus
            + self.explicit_term_bonus
            + self.definition_bonus
            + self.definition_penalty
            + self.comparison_bonus
            + self.comparison_intro_penalty
        )

    @property
    def source_file(self) -> str:
        return self.item.chunk.source_file

    @property
    def chunk_index(self) -> int:
        return self.item.chunk.chunk_index

    @property
    def text(self) -> str:
        return self.item.chunk.text


def keyword_coverage(words: Sequence[str], normalized_text: str) -> float:
    """Fraction of query words present in normalized chunk text."""
    if not words:
        return 0.0
    tokens = normalized_text.split()
    found = 0
    for word in words:
        if contains_word(normalized_text, word):
            found += 1
            continue
        stem = simple_stem(word)
        if any(token == word or (len(stem) > 3 and simple_stem(token) == stem) for token in tokens):
            found += 1
    return found / len(words)


def chunk_position(item: EmbeddedChunk, doc_counts: Dict[str, int]) -> float:
    total = doc_counts.get(item.chunk.source_file, 0)
    return item.chunk.chunk_index / total if total else 0.0


def _any(patterns: Sequence[re.Pattern[str]], text: str) -> bool:
    return any(pattern.search(text) for pattern in patterns)


def position_bonus(
    chunk_index: int, position: float, text: str, is_definition: bool, config: RankingConfig
) -> float:
    intro = is_definition and _any(POSITION_INTRO_PATTERNS, text)
    if chunk_index == 0:
        return config.intro_first_chunk_bonus if intro else config.first_chunk_bonus
    if position <= config.early_fraction:
        return config.intro_early_chunk_bonus if intro else config.early_chunk_bonus
    return 0.0


def explicit_term_bonus(
    keywords: Sequence[str], text: str, normalized_text: str, config: RankingConfig
) -> float:
    lowered = text.lower()
    for keyword in keywords:
        if " " in keyword:
            if keyword in lowered or keyword in normalized_text:
                return config.explicit_term_bonus
        elif contains_word(lowered, keyword) or contains_word(normalized_text, keyword):
            return config.explicit_term_bonus
    return 0.0


def definition_patterns(subject: str) -> Tuple[re.Pattern[str], ...]:
    escaped = re.escape(subject)
    return (
        re.compile(rf"\b{escaped}\s+is\s+(a|an|the)\s+", re.I),
        re.compile(rf"\b{escaped}\s+is\s+(a|an|the)\b", re.I),
        re.compile(rf"\b{escaped}[,\s-]+(a|an|the)\s+", re.I),
    )


def definition_adjustments(
    text: str, subject: str, position: float, config: RankingConfig
) -> Tuple[float, float]:
    """Return ``(definition_bonus, definition_penalty)`` for one chunk.

    Chunks stating "<subject> is a ..." early in a document are rewarded;
    intro chunks and chunks that only repeat the question are penalized.
    """
    escaped = re.escape(subject)
    bonus = 0.0
    penalty = 0.0

    is_intro = _any(DEFINITION_INTRO_PATTERNS, text)
    if is_intro and not re.search(rf"{escaped}\s+is\s+(a|an|the)", text, re.I):
        penalty = config.intro_without_definition_penalty

    if position > config.definition_mid_window:
        return bonus, penalty

    patterns = definition_patterns(subject)
    for pattern in patterns:
        match = pattern.search(text)
        if not match:
            continue
        before = text[: match.start()].strip()
        after = text[match.start() : match.start() + 100]
        if _QUESTION_AT_END.search(before) and len(after) < 30:
            continue

        if position <= config.definition_early_window:
            bonus = config.definition_early_bonus
        else:
            bonus = config.definition_mid_bonus
        if _QUESTION.search(text):
            bonus += config.definition_question_bonus
        break

    if bonus == 0:
        asks = re.search(rf"what\s+is\s+{escaped}[^?]*\?", text, re.I) is not None
        defines = any(pattern.search(text) for pattern in patterns)
        if asks and not defines:
            penalty = config.intro_question_only_penalty if is_intro else config.question_only_penalty
    return bonus, penalty


class CandidateScorer:
    """Scores chunks against a classified query."""

    def __init__(self, config: RankingConfig | None = None) -> None:
        self.config = config or RankingConfig()

    def score(
        self,
        intent: QueryIntent,
        query_embedding: np.ndarray,
        items: Sequence[EmbeddedChunk],
        doc_counts: Dict[str, int],
    ) -> List[Candidate]:
        """Score every admitted chunk, in input order.

        A chunk is admitted when it shares at least one query word or its
        similarity reaches ``admission_similarity``.
        """
        config = self.config
        candidates: List[Candidate] = []
        for item in items:
            text = item.chunk.text
            normalized = normalize_for_matching(text)
            coverage = keyword_coverage(intent.words, normalized)
            similarity = cosine_similarity(query_embedding, item.embedding)
            if coverage == 0 and similarity < config.admission_similarity:
                continue

            position = chunk_position(item, doc_counts)
            candidate = Candidate(
                item=item,
                semantic_similarity=similarity,
                keyword_coverage=coverage,
                position=position,
                keyword_weight=config.keyword_weight,
            )
            candidate.position_bonus = position_bonus(
                item.chunk.chunk_index, position, text, intent.is_definition, config
            )
            if intent.intent_keywords:
                candidate.explicit_term_bonus = explicit_term_bonus(
                    intent.intent_keywords, text, normalized, config
                )
            if intent.is_definition and intent.subject:
                candidate.definition_bonus, candidate.definition_penalty = definition_adjustments(
                    text, intent.subject, position, config
                )
            if intent.is_comparison:
                candidate.comparison_bonus, candidate.comparison_intro_penalty = comparison_adjustments(
                    text, position, intent.comparison_entity, intent.second_entity, config
                )

            LOGGER.debug(
                "%s[%d]: sim=%.3f kw=%.2f pos=%.2f term=%.2f def=%.2f/%.2f cmp=%.2f/%.2f -> %.3f",
                item.chunk.source_file,
                item.chunk.chunk_index,
                similarity,
                coverage,
                candidate.position_bonus,
                candidate.explicit_term_bonus,
                candidate.definition_bonus,
                candidate.definition_penalty,
                candidate.comparison_bonus,
                candidate.comparison_intro_penalty,
                candidate.final_score,
            )
            candidates.append(candidate)
        return candidates


def rank_candidates(candidates: Sequence[Candidate]) -> List[Candidate]:
    """Sort by final score, highest first; ties keep discovery order."""
    return sorted(candidates, key=lambda candidate: candidate.final_score, reverse=True)
