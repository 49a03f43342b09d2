"""Tests for tiered definition resolution."""

from __future__ import annotations

from typing import List, Sequence

import numpy as np

from conftest import make_chunks
from docanswer.config import RankingConfig
from docanswer.models import EmbeddedChunk
from docanswer.ranking.definition import (
    NO_DEFINITION_ANSWER,
    NO_DEFINITION_EXPLANATION,
    SYNTHESIS_EXPLANATION,
    blocking_reason,
    compose_definition,
    find_intro_chunk,
    resolve_definition,
    soft_definition_candidates,
    strict_definition_candidates,
)
from docanswer.ranking.scoring import Candidate

CONFIG = RankingConfig()


def _items(texts: Sequence[str], name: str = "acme.txt") -> List[EmbeddedChunk]:
    return [
        EmbeddedChunk(chunk=chunk, embedding=np.ones(2, dtype="float32"))
        for chunk in make_chunks(name, texts)
    ]


def _candidates(items: Sequence[EmbeddedChunk]) -> List[Candidate]:
    total = len(items)
    return [
        Candidate(
            item=item,
            semantic_similarity=1.0,
            keyword_coverage=0.5,
            position=item.chunk.chunk_index / total,
        )
        for item in items
    ]


class TestBlockingReason:
    """Test blocking_reason function."""

    def test_architecture_indicator(self) -> None:
        """Architecture phrasing blocks a chunk."""
        assert blocking_reason("Acme integrates with SAP.") == "architecture indicator: integrates with"

    def test_explanation_indicator(self) -> None:
        """Comparison phrasing blocks a chunk."""
        assert blocking_reason("Acme vs Globex") == "comparison/explanation indicator: vs"

    def test_plain_definition(self) -> None:
        """Plain definitions are not blocked."""
        assert blocking_reason("Acme is a data platform.") is None


class TestStrictDefinitions:
    """Test Tier 1 selection."""

    def test_keeps_early_unblocked_definitions(self) -> None:
        """Only early, unblocked 'X is a' chunks qualify."""
        texts = [
            "Acme is a data platform.",
            "Acme is a tool that integrates with SAP.",
            "filler",
            "filler",
            "filler",
            "Acme is the best choice.",
        ]
        selected = strict_definition_candidates(_candidates(_items(texts)), "Acme", CONFIG)

        assert [candidate.chunk_index for candidate in selected] == [0]


class TestSoftDefinitions:
    """Test Tier 2 selection."""

    def test_intro_template_near_top(self) -> None:
        """An intro template at the start of an early chunk qualifies."""
        texts = ["Overview of Acme and its modules."] + ["filler"] * 4
        selected = soft_definition_candidates(_candidates(_items(texts)), "Acme", CONFIG)

        assert [candidate.chunk_index for candidate in selected] == [0]

    def test_template_too_deep_in_chunk(self) -> None:
        """A template late in the chunk does not qualify."""
        texts = ["x" * 60 + " about Acme"] + ["filler"] * 4
        assert soft_definition_candidates(_candidates(_items(texts)), "Acme", CONFIG) == []

    def test_late_chunk_ignored(self) -> None:
        """Chunks past the tier window are ignored."""
        texts = ["filler", "filler", "Overview of Acme."]
        assert soft_definition_candidates(_candidates(_items(texts)), "Acme", CONFIG) == []


class TestComposeDefinition:
    """Test definition synthesis."""

    def test_category_and_purpose(self) -> None:
        """Should combine the category and purpose found in the text."""
        text = (
            "Acme is used by finance teams. It is an analytics platform "
            "designed to reduce month-end close time."
        )
        assert compose_definition("Acme", text) == (
            "Acme is a analytics platform that helps organizations reduce month-end close time."
        )

    def test_defaults(self) -> None:
        """Should fall back to generic wording."""
        assert compose_definition("Acme", "Acme.") == (
            "Acme is a platform that helps organizations analyze and optimize their operations."
        )

    def test_domain_purpose(self) -> None:
        """Domain keywords shape the purpose when none is stated."""
        answer = compose_definition("Acme", "Acme reads event logs from business processes.")
        assert answer.endswith("analyzes event logs to help organizations understand and improve business processes.")


class TestFindIntroChunk:
    """Test find_intro_chunk function."""

    def test_prefers_title_chunk(self) -> None:
        """The title chunk mentioning the subject wins."""
        items = _items(["Acme Overview", "Acme details"] + ["filler"] * 8)
        intro = find_intro_chunk(items, "Acme", {"acme.txt": 10}, CONFIG)

        assert intro is items[0]

    def test_none_without_subject(self) -> None:
        """No early chunk mentioning the subject means no intro."""
        items = _items(["Globex Overview", "filler"])
        assert find_intro_chunk(items, "Acme", {"acme.txt": 2}, CONFIG) is None

    def test_first_qualifying_chunk_wins(self) -> None:
        """An earlier document's body chunk beats a later document's title chunk."""
        first = _items(["Welcome", "Acme details for finance teams."] + ["filler"] * 8, name="a.txt")
        second = _items(["Acme Overview"], name="b.txt")

        intro = find_intro_chunk(second + first, "Acme", {"a.txt": 10, "b.txt": 1}, CONFIG)

        assert intro is first[1]

    def test_skips_architecture_heavy_chunk(self) -> None:
        """Body chunks with many architecture indicators are passed over."""
        first = _items(
            ["Welcome", "Acme sits on top of SAP, connects to CRM and integrates with billing."]
            + ["filler"] * 8,
            name="a.txt",
        )
        second = _items(["Acme Overview"], name="b.txt")

        intro = find_intro_chunk(first + second, "Acme", {"a.txt": 10, "b.txt": 1}, CONFIG)

        assert intro is second[0]


class TestResolveDefinition:
    """Test the tier cascade."""

    def test_strict_tier(self) -> None:
        """Strict candidates are returned for ranking."""
        items = _items(["Acme is a data platform.", "filler"])
        resolution = resolve_definition("Acme", _candidates(items), items, {"acme.txt": 2}, CONFIG)

        assert resolution.tier == "strict"
        assert resolution.answer is None
        assert len(resolution.candidates) == 1

    def test_soft_tier(self) -> None:
        """Soft candidates are used when no strict definition exists."""
        items = _items(["Introduction to Acme for new users.", "filler", "filler", "filler", "filler"])
        resolution = resolve_definition("Acme", _candidates(items), items, {"acme.txt": 5}, CONFIG)

        assert resolution.tier == "soft"

    def test_synthesized(self) -> None:
        """A definition is synthesized from the intro chunk."""
        items = _items(
            [
                "Acme Overview\nAcme is used by finance teams. It is an analytics platform "
                "designed to reduce month-end close time."
            ]
        )
        resolution = resolve_definition("Acme", _candidates(items), items, {"acme.txt": 1}, CONFIG)

        assert resolution.tier == "synthesized"
        assert resolution.answer.answer.startswith("Acme is a analytics platform")
        assert resolution.answer.confidence == CONFIG.synthesis_confidence
        assert resolution.answer.explanation == SYNTHESIS_EXPLANATION
        assert resolution.answer.source == "acme.txt"

    def test_no_definition(self) -> None:
        """Nothing usable yields the no-definition answer."""
        items = _items(["This is a reference about warehouses."], name="ref.txt")
        resolution = resolve_definition("Zephyr", _candidates(items), items, {"ref.txt": 1}, CONFIG)

        assert resolution.tier == "none"
        assert resolution.answer.answer == NO_DEFINITION_ANSWER
        assert resolution.answer.confidence == 0.0
        assert resolution.answer.explanation == NO_DEFINITION_EXPLANATION
        assert resolution.answer.source == "ref.txt"
