"""Tests for candidate scoring and ranking."""

from __future__ import annotations

from typing import List, Sequence

import numpy as np
import pytest

from conftest import make_chunks
from docanswer.config import RankingConfig
from docanswer.models import EmbeddedChunk
from docanswer.ranking.intent import classify_query
from docanswer.ranking.scoring import (
    Candidate,
    CandidateScorer,
    definition_adjustments,
    explicit_term_bonus,
    keyword_coverage,
    position_bonus,
    rank_candidates,
)

CONFIG = RankingConfig()
QUERY_VECTOR = np.array([1.0, 0.0], dtype="float32")


def _items(texts: Sequence[str], vectors: Sequence[Sequence[float]]) -> List[EmbeddedChunk]:
    return [
        EmbeddedChunk(chunk=chunk, embedding=np.array(vector, dtype="float32"))
        for chunk, vector in zip(make_chunks("doc.txt", texts), vectors)
    ]


class TestKeywordCoverage:
    """Test keyword_coverage function."""

    def test_partial_coverage(self) -> None:
        """Should return the fraction of words found."""
        assert keyword_coverage(["acme", "zebra"], "acme stores reports") == 0.5

    def test_plural_stems_match(self) -> None:
        """Plural query words match singular chunk words."""
        assert keyword_coverage(["reports"], "acme stores one report") == 1.0

    def test_no_words(self) -> None:
        """Empty queries cover nothing."""
        assert keyword_coverage([], "anything") == 0.0


class TestPositionBonus:
    """Test position_bonus function."""

    def test_first_chunk(self) -> None:
        """The first chunk gets the largest bonus."""
        assert position_bonus(0, 0.0, "Acme overview", False, CONFIG) == CONFIG.first_chunk_bonus

    def test_intro_first_chunk_for_definitions(self) -> None:
        """Intro first chunks get a reduced bonus for definitions."""
        text = "This document provides a detailed understanding of Acme."
        assert position_bonus(0, 0.0, text, True, CONFIG) == CONFIG.intro_first_chunk_bonus

    def test_early_and_late(self) -> None:
        """Early chunks get a small bonus, later ones nothing."""
        assert position_bonus(1, 0.1, "text", False, CONFIG) == CONFIG.early_chunk_bonus
        assert position_bonus(5, 0.5, "text", False, CONFIG) == 0.0


class TestExplicitTermBonus:
    """Test explicit_term_bonus function."""

    def test_single_word(self) -> None:
        """A standalone intent keyword earns the bonus."""
        assert explicit_term_bonus(("data",), "Acme ingests data daily", "acme ingests data daily", CONFIG) == 0.3

    def test_phrase(self) -> None:
        """Multi-word keywords match as substrings."""
        text = "Acme uses machine learning."
        assert explicit_term_bonus(("machine learning",), text, "acme uses machine learning", CONFIG) == 0.3

    def test_absent(self) -> None:
        """No keyword means no bonus."""
        assert explicit_term_bonus(("data",), "Acme stores files", "acme stores files", CONFIG) == 0.0


class TestDefinitionAdjustments:
    """Test definition_adjustments function."""

    def test_early_definition(self) -> None:
        """An early 'X is a' sentence earns the full bonus."""
        assert definition_adjustments("Acme is a data platform.", "Acme", 0.0, CONFIG) == (1.0, 0.0)

    def test_mid_definition(self) -> None:
        """A definition in the middle of the document earns less."""
        assert definition_adjustments("Acme is a data platform.", "Acme", 0.5, CONFIG) == (0.8, 0.0)

    def test_late_definition_ignored(self) -> None:
        """Definitions past the middle window earn nothing."""
        assert definition_adjustments("Acme is a data platform.", "Acme", 0.9, CONFIG) == (0.0, 0.0)

    def test_question_only_penalty(self) -> None:
        """Chunks that only ask the question are penalized."""
        assert definition_adjustments("FAQ: What is Acme?", "Acme", 0.1, CONFIG) == (0.0, -0.7)

    def test_intro_without_definition(self) -> None:
        """Intro chunks without a definition are penalized."""
        text = "This document provides an overview of Acme."
        assert definition_adjustments(text, "Acme", 0.0, CONFIG) == (0.0, -1.0)


class TestCandidate:
    """Test Candidate scoring arithmetic."""

    def test_final_score_sums_components(self) -> None:
        """Final score adds similarity, weighted coverage and bonuses."""
        item = _items(["text"], [[1.0, 0.0]])[0]
        candidate = Candidate(
            item=item,
            semantic_similarity=0.5,
            keyword_coverage=1.0,
            position=0.0,
            position_bonus=0.5,
            comparison_bonus=-0.4,
        )

        assert candidate.final_score == pytest.approx(0.9)
        assert candidate.has_query_keywords


class TestCandidateScorer:
    """Test CandidateScorer admission and adjustments."""

    def test_admission_rule(self) -> None:
        """Chunks need a query word or high similarity to be admitted."""
        items = _items(
            ["nothing relevant", "a zebra appears", "striped horse"],
            [[0.0, 1.0], [0.0, 1.0], [0.9, 0.1]],
        )
        intent = classify_query("zebra")

        candidates = CandidateScorer().score(intent, QUERY_VECTOR, items, {"doc.txt": 3})

        assert [candidate.chunk_index for candidate in candidates] == [1, 2]
        assert candidates[0].keyword_coverage == 1.0
        assert candidates[1].semantic_similarity >= 0.8

    def test_definition_scoring(self) -> None:
        """Definition queries reward the defining chunk."""
        items = _items(
            ["Acme is a data platform.", "Acme also has a mobile app.", "Acme pricing."],
            [[1.0, 0.0]] * 3,
        )
        intent = classify_query("What is Acme?")

        candidates = CandidateScorer().score(intent, QUERY_VECTOR, items, {"doc.txt": 3})
        ranked = rank_candidates(candidates)

        assert ranked[0].chunk_index == 0
        assert ranked[0].definition_bonus == 1.0

    def test_comparison_scoring(self) -> None:
        """Comparison queries apply contrast bonuses."""
        items = _items(
            ["Acme Platform", "Acme stores reports.", "Acme finds problems while agentic tools execute them."],
            [[1.0, 0.0]] * 3,
        )
        intent = classify_query("difference between Acme and agentic platforms")

        candidates = CandidateScorer().score(intent, QUERY_VECTOR, items, {"doc.txt": 3})
        ranked = rank_candidates(candidates)

        assert ranked[0].chunk_index == 2
        assert ranked[0].comparison_bonus == CONFIG.explicit_contrast_bonus


class TestRankCandidates:
    """Test rank_candidates ordering."""

    def test_ties_keep_discovery_order(self) -> None:
        """Equal scores keep their input order."""
        items = _items(["one", "two", "three"], [[1.0, 0.0]] * 3)
        candidates = [
            Candidate(item=items[0], semantic_similarity=0.5, keyword_coverage=0.0, position=0.0),
            Candidate(item=items[1], semantic_similarity=0.9, keyword_coverage=0.0, position=0.0),
            Candidate(item=items[2], semantic_similarity=0.5, keyword_coverage=0.0, position=0.0),
        ]

        ranked = rank_candidates(candidates)

        assert [candidate.chunk_index for candidate in ranked] == [1, 0, 2]
