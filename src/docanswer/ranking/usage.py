"""Vocabulary filters for data-usage and AI-usage queries."""

from __future__ import annotations

import logging
import re
from typing import List, Sequence, Tuple

from docanswer.ranking.intent import IntentKind
from docanswer.ranking.scoring import Candidate

LOGGER = logging.getLogger(__name__)

DATA_TERMS: Tuple[re.Pattern[str], ...] = (
    re.compile(r"\bevent\s+logs?\b", re.I),
    re.compile(r"\bevent\s+data\b", re.I),
    re.compile(r"\bcase\s+identifiers?\b", re.I),
    re.compile(r"\bcase\s+id\b", re.I),
    re.compile(r"\bactivit(?:y|ies)\b", re.I),
    re.compile(r"\btimestamps?\b", re.I),
    re.compile(r"\benterprise\s+data\b", re.I),
    re.compile(r"\boperational\s+data\b", re.I),
    re.compile(r"\btransaction\s+data\b", re.I),
    re.compile(r"\bprocess\s+data\b", re.I),
    re.compile(r"\bdata\s+extracts?\b", re.I),
    re.compile(r"\bdata\s+connectors?\b", re.I),
)

AI_TERMS: Tuple[re.Pattern[str], ...] = (
    re.compile(r"\bai\b", re.I),
    re.compile(r"\bartificial\s+intelligence\b", re.I),
    re.compile(r"\bmachine\s+learning\b", re.I),
    re.compile(r"\bml\b", re.I),
    re.compile(r"\bpredict(?:s|ion|ive|ing)?\b", re.I),
    re.compile(r"\bpatterns?\b", re.I),
    re.compile(r"\broot\s+cause\b", re.I),
    re.compile(r"\banomal(?:y|ies)\b", re.I),
    re.compile(r"\bautomation\b", re.I),
    re.compile(r"\balgorithm", re.I),
    re.compile(r"\bmodel(?:s|ing)?\b", re.I),
    re.compile(r"\binsights?\b", re.I),
)

INTRO_INDICATORS: Tuple[re.Pattern[str], ...] = (
    re.compile(r"\bthis\s+document\s+provides\b", re.I),
    re.compile(r"\bplatform\s+overview\b", re.I),
    re.compile(r"\bdetailed\s+understanding\b", re.I),
    re.compile(r"\bcovering\s+its\s+purpose\b", re.I),
    re.compile(r"\bwhat\s+is\s+\w+\?\s*$", re.I | re.M),
)

# AI queries also skip "<Name> - Platform Overview" title lines.
AI_INTRO_INDICATORS = INTRO_INDICATORS + (re.compile(r"^\w+\s+[–-]\s+platform\s+overview", re.I | re.M),)

_VOCABULARY = {
    IntentKind.DATA_USAGE: (DATA_TERMS, INTRO_INDICATORS),
    IntentKind.AI_USAGE: (AI_TERMS, AI_INTRO_INDICATORS),
}


def filter_usage_candidates(candidates: Sequence[Candidate], kind: IntentKind) -> List[Candidate]:
    """Keep candidates using the intent's vocabulary, excluding intro chunks.

    Returns the input unchanged when the intent has no vocabulary or nothing
    matches.
    """
    if kind not in _VOCABULARY:
        return list(candidates)

    terms, intro = _VOCABULARY[kind]
    kept: List[Candidate] = []
    for candidate in candidates:
        text = candidate.text
        if not any(pattern.search(text) for pattern in terms):
            continue
        if any(pattern.search(text) for pattern in intro):
            LOGGER.debug("Excluding intro chunk %d from %s ranking", candidate.chunk_index, kind.value)
            continue
        kept.append(candidate)

    if not kept:
        LOGGER.info("No %s chunks found; keeping general ranking", kind.value)
        return list(candidates)
    LOGGER.info("%s filter kept %d of %d candidates", kind.value, len(kept), len(candidates))
    return kept
