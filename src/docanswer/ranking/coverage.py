"""Topic coverage gate for the winning chunk."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import FrozenSet, List, Sequence

from docanswer.config import RankingConfig
from docanswer.models import EmbeddedChunk, SearchAnswer
from docanswer.ranking.intent import QueryIntent
from docanswer.ranking.scoring import Candidate
from docanswer.utils.text import contains_word, normalize_for_matching, topic_stem

LOGGER = logging.getLogger(__name__)

TOPIC_STOPWORDS: FrozenSet[str] = frozenset(
    """
    what how where when why who which whom
    is are was were be been being
    have has had do does did done
    the a an and or but in on at to for
    of with by from as into through during
    can could will would shall should may might must
    this that these those it its
    i you he she we they me him her us them
    my your his our their
    about after before between under over above below
    all any both each few more most other some
    such no not only same so than too very
    just also now here there then once
    explain tell show give find get make know
    actually really please help
    """.split()
)


@dataclass(slots=True)
class TopicCoverage:
    topic_words: List[str] = field(default_factory=list)
    found: List[str] = field(default_factory=list)
    missing: List[str] = field(default_factory=list)

    @property
    def ratio(self) -> float:
        return len(self.found) / len(self.topic_words) if self.topic_words else 1.0


def topic_words(words: Sequence[str], entity: str | None) -> List[str]:
    """Query words that name the topic rather than the entity or filler."""
    entity_lower = entity.lower() if entity else ""
    return [
        word
        for word in words
        if word.lower() not in TOPIC_STOPWORDS
        and not (entity_lower and word.lower() == entity_lower)
        and len(word) >= 3
    ]


def measure_coverage(words: Sequence[str], document_text: str) -> TopicCoverage:
    coverage = TopicCoverage(topic_words=list(words))
    for word in words:
        stem = topic_stem(word)
        stem_found = len(stem) > 3 and re.search(rf"\b{re.escape(stem)}", document_text, re.I)
        if contains_word(document_text, word) or stem_found:
            coverage.found.append(word)
        else:
            coverage.missing.append(word)
    return coverage


def check_topic_coverage(
    best: Candidate,
    intent: QueryIntent,
    searched: Sequence[EmbeddedChunk],
    config: RankingConfig,
) -> SearchAnswer | None:
    """Return a rejection answer when the winning document never mentions the topic."""
    if intent.is_definition or len(intent.words) < 2:
        return None

    words = topic_words(intent.words, intent.primary_entity)
    if not words:
        LOGGER.debug("No topic words to check for %r", intent.query)
        return None

    document_text = " ".join(
        normalize_for_matching(item.chunk.text)
        for item in searched
        if item.chunk.source_file == best.source_file
    )
    coverage = measure_coverage(words, document_text)
    LOGGER.info(
        "Topic coverage for %s: %.2f (missing %s)",
        best.source_file,
        coverage.ratio,
        coverage.missing,
    )

    if (
        coverage.found
        or best.keyword_coverage >= config.coverage_keyword_threshold
        or best.semantic_similarity >= config.coverage_similarity_threshold
    ):
        return None

    missing = ", ".join(coverage.missing)
    entity = intent.primary_entity
    about = f" about {entity}" if entity else ""
    LOGGER.warning("Topic coverage failed for %r: missing %s", intent.query, missing)
    return SearchAnswer(
        answer=f'No information about "{missing}" found in the documents{about}.',
        source=best.source_file,
        confidence=0.0,
        explanation=(
            f"The document contains information about {entity or 'the subject'} "
            f"but not about the specific topic: {missing}"
        ),
        chunk_index=best.chunk_index,
    )
