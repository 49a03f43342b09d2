"""Tests for data-usage and AI-usage candidate filters."""

from __future__ import annotations

from typing import List, Sequence

import numpy as np

from conftest import make_chunks
from docanswer.models import EmbeddedChunk
from docanswer.ranking.intent import IntentKind
from docanswer.ranking.scoring import Candidate
from docanswer.ranking.usage import filter_usage_candidates


def _candidates(texts: Sequence[str]) -> List[Candidate]:
    return [
        Candidate(
            item=EmbeddedChunk(chunk=chunk, embedding=np.ones(2, dtype="float32")),
            semantic_similarity=0.5,
            keyword_coverage=0.5,
            position=0.0,
        )
        for chunk in make_chunks("acme.txt", texts)
    ]


class TestFilterUsageCandidates:
    """Test filter_usage_candidates function."""

    def test_data_usage_keeps_vocabulary_chunks(self) -> None:
        """Should keep data chunks and drop intro chunks."""
        candidates = _candidates(
            [
                "This document provides a summary of event logs.",
                "Acme reads event logs and timestamps from SAP.",
                "Acme pricing is per seat.",
            ]
        )

        kept = filter_usage_candidates(candidates, IntentKind.DATA_USAGE)

        assert [candidate.chunk_index for candidate in kept] == [1]

    def test_ai_usage_skips_overview_titles(self) -> None:
        """AI queries skip platform overview title chunks."""
        candidates = _candidates(
            [
                "Acme – Platform Overview\nAI features at a glance.",
                "Acme predicts delays with machine learning.",
            ]
        )

        kept = filter_usage_candidates(candidates, IntentKind.AI_USAGE)

        assert [candidate.chunk_index for candidate in kept] == [1]

    def test_falls_back_when_nothing_matches(self) -> None:
        """Should keep the general ranking when no chunk uses the vocabulary."""
        candidates = _candidates(["Acme pricing is per seat.", "Support hours."])

        assert filter_usage_candidates(candidates, IntentKind.DATA_USAGE) == candidates

    def test_other_intents_unchanged(self) -> None:
        """Intents without a vocabulary pass through."""
        candidates = _candidates(["Acme reads event logs."])

        assert filter_usage_candidates(candidates, IntentKind.GENERIC) == candidates
