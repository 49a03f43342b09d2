"""Question answering over the in-memory chunk store."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List

from docanswer.config import RankingConfig
from docanswer.embedding.encoder import Embedder
from docanswer.index.store import InMemoryChunkStore
from docanswer.models import SearchAnswer
from docanswer.ranking.comparison import (
    ChunkExclusion,
    filter_comparison_chunks,
    find_comparison_section,
)
from docanswer.ranking.coverage import check_topic_coverage
from docanswer.ranking.definition import resolve_definition
from docanswer.ranking.filters import (
    document_chunk_counts,
    exclude_documents_without_entity,
    filter_by_entity,
)
from docanswer.ranking.intent import QueryIntent, classify_query
from docanswer.ranking.scoring import Candidate, CandidateScorer, rank_candidates
from docanswer.ranking.snippet import extract_snippet
from docanswer.ranking.usage import filter_usage_candidates

LOGGER = logging.getLogger(__name__)

EMPTY_QUERY_MESSAGE = "Query is required and must be a non-empty string"
NO_DOCUMENTS_ANSWER = "No documents have been uploaded yet. Please upload documents first before searching."
NO_COMPARISON_ANSWER = "No clear comparison found in the provided documents."
NO_RELEVANT_ANSWER = "No relevant information found in the uploaded documents."


@dataclass(slots=True)
class SearchOutcome:
    """Answer plus the intermediate state that produced it."""

    answer: SearchAnswer
    intent: QueryIntent | None = None
    ranked: List[Candidate] = field(default_factory=list)
    exclusions: List[ChunkExclusion] = field(default_factory=list)
    definition_tier: str | None = None


class Searcher:
    """High-level API answering a question from the chunk store."""

    def __init__(
        self,
        embedder: Embedder,
        store: InMemoryChunkStore,
        config: RankingConfig | None = None,
    ) -> None:
        self.embedder = embedder
        self.store = store
        self.config = config or RankingConfig()
        self.scorer = CandidateScorer(self.config)

    def search(self, query: str) -> SearchAnswer:
        return self.run(query).answer

    def run(self, query: str) -> SearchOutcome:
        """Run the full ranking pipeline for ``query``.

        Raises ``ValueError`` for a blank query. Embedding failures propagate.
        """
        if not query or not query.strip():
            raise ValueError(EMPTY_QUERY_MESSAGE)

        items = list(self.store.all())
        if not items:
            LOGGER.info("Search requested with an empty store")
            return SearchOutcome(SearchAnswer(NO_DOCUMENTS_ANSWER, "", 0.0))

        intent = classify_query(query)
        outcome = SearchOutcome(SearchAnswer(NO_RELEVANT_ANSWER, "", 0.0), intent=intent)

        if intent.is_comparison:
            entity = intent.comparison_entity
            if entity:
                items = exclude_documents_without_entity(items, entity)
                if items:
                    section = find_comparison_section(items, entity)
                    if section:
                        items = section
            if items:
                result = filter_comparison_chunks(items, entity)
                outcome.exclusions = result.excluded
                if not result.chunks:
                    LOGGER.warning("No valid comparison chunks for %r", query)
                    outcome.answer = SearchAnswer(NO_COMPARISON_ANSWER, "", 0.0)
                    return outcome
                items = result.chunks

        query_embedding = self.embedder.embed_query(query)
        doc_counts = document_chunk_counts(items)
        searched, _ = filter_by_entity(items, intent.primary_entity)
        candidates = self.scorer.score(intent, query_embedding, searched, doc_counts)

        to_rank = candidates
        if intent.is_definition and intent.subject:
            resolution = resolve_definition(intent.subject, candidates, searched, doc_counts, self.config)
            outcome.definition_tier = resolution.tier
            if resolution.answer is not None:
                outcome.answer = resolution.answer
                return outcome
            to_rank = resolution.candidates
        elif intent.is_data_usage or intent.is_ai_usage:
            to_rank = filter_usage_candidates(candidates, intent.kind)

        ranked = rank_candidates(to_rank)
        outcome.ranked = ranked
        if not ranked:
            LOGGER.info("No candidates passed admission for %r", query)
            return outcome

        best = ranked[0]
        LOGGER.info(
            "Best match: %s[%d] score=%.3f (sim=%.3f, kw=%.2f)",
            best.source_file,
            best.chunk_index,
            best.final_score,
            best.semantic_similarity,
            best.keyword_coverage,
        )

        rejection = check_topic_coverage(best, intent, searched, self.config)
        if rejection is not None:
            outcome.answer = rejection
            return outcome

        confidence = max(0.0, min(1.0, best.final_score / self.config.confidence_divisor))
        outcome.answer = SearchAnswer(
            answer=extract_snippet(best.text, intent.words),
            source=best.source_file,
            confidence=round(confidence, 2),
            chunk_index=best.chunk_index,
        )
        return outcome
