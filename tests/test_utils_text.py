"""Tests for text utility functions."""

from __future__ import annotations

import logging

import pytest

from docanswer.utils.text import (
    chunk_spans,
    contains_word,
    normalize_for_matching,
    simple_stem,
    topic_stem,
)


class TestChunkSpans:
    """Test chunk_spans function."""

    def test_short_text_single_window(self) -> None:
        """Should return one window covering short text."""
        spans = list(chunk_spans("Short text", max_chars=100, overlap=10))

        assert spans == [(0, 10, "Short text")]

    def test_windows_overlap(self) -> None:
        """Next window should start overlap characters before the previous end."""
        text = "0123456789" * 25
        spans = list(chunk_spans(text, max_chars=100, overlap=20))

        assert [(start, end) for start, end, _ in spans] == [(0, 100), (80, 180), (160, 250)]
        for start, end, window in spans:
            assert window == text[start:end]

    def test_last_window_reaches_end(self) -> None:
        """The final window should end at the end of the text."""
        text = "x" * 1234
        spans = list(chunk_spans(text))

        assert spans[-1][1] == len(text)

    def test_progress_when_overlap_too_large(self) -> None:
        """Should still advance when overlap would not make progress."""
        spans = list(chunk_spans("abcdef", max_chars=2, overlap=5))

        assert [window for _, _, window in spans] == ["ab", "cd", "ef"]

    def test_max_chunks_limit(self, caplog: pytest.LogCaptureFixture) -> None:
        """Should stop at max_chunks and log a warning."""
        with caplog.at_level(logging.WARNING):
            spans = list(chunk_spans("a" * 1000, max_chars=10, overlap=0, max_chunks=3))

        assert len(spans) == 3
        assert "maximum chunk limit" in caplog.text

    def test_empty_text(self) -> None:
        """Should yield nothing for empty text."""
        assert list(chunk_spans("")) == []


class TestNormalizeForMatching:
    """Test normalize_for_matching function."""

    def test_lowercases_and_strips_punctuation(self) -> None:
        """Should lower-case and turn punctuation into spaces."""
        assert normalize_for_matching("Acme's Data-Platform!") == "acme s data platform"

    def test_collapses_whitespace(self) -> None:
        """Should collapse newlines and tabs into single spaces."""
        assert normalize_for_matching("  event\n\nlogs\tand   data ") == "event logs and data"

    @pytest.mark.parametrize(
        "text",
        ["What is Acme?", "Process-mining\nplatform", "  spaced   out  ", "", "Données: été"],
    )
    def test_idempotent(self, text: str) -> None:
        """Normalizing twice should equal normalizing once."""
        once = normalize_for_matching(text)
        assert normalize_for_matching(once) == once


class TestStemming:
    """Test the crude stemmers."""

    def test_simple_stem_plural(self) -> None:
        """Should drop a trailing s."""
        assert simple_stem("platforms") == "platform"

    def test_simple_stem_leaves_singular(self) -> None:
        """Should leave words without a plural suffix alone."""
        assert simple_stem("data") == "data"

    def test_topic_stem_ing(self) -> None:
        """Should strip -ing for topic coverage."""
        assert topic_stem("pricing") == "pric"

    def test_topic_stem_ed(self) -> None:
        """Should strip -ed for topic coverage."""
        assert topic_stem("deployed") == "deploy"


class TestContainsWord:
    """Test contains_word function."""

    def test_whole_word_match(self) -> None:
        """Should match whole words case-insensitively."""
        assert contains_word("Acme is great", "acme")

    def test_no_partial_match(self) -> None:
        """Should not match inside a longer word."""
        assert not contains_word("Acmecorp ships", "acme")

    def test_escapes_regex_characters(self) -> None:
        """Should treat the word literally."""
        assert contains_word("we use c++ daily", "c++") is False
        assert contains_word("version 1.2 released", "1.2")
