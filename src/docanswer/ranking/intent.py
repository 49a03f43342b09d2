"""Query intent classification and entity extraction.

The classifier runs once per query and produces a ``QueryIntent`` whose
``kind`` is exactly one of definition, comparison, data-usage, AI-usage or
generic. Definition wins over everything else; the remaining kinds are
checked in that order.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import FrozenSet, List, Sequence, Tuple

from docanswer.utils.text import normalize_for_matching

LOGGER = logging.getLogger(__name__)


class IntentKind(str, Enum):
    DEFINITION = "definition"
    COMPARISON = "comparison"
    DATA_USAGE = "data_usage"
    AI_USAGE = "ai_usage"
    GENERIC = "generic"


ENTITY_STOPWORDS: FrozenSet[str] = frozenset(
    {
        "what", "how", "does", "do", "is", "are", "the", "a", "an", "and", "or", "but",
        "in", "on", "at", "to", "for", "of", "with", "by", "from", "as", "use", "uses",
        "using", "used", "data", "ai", "artificial", "intelligence", "machine", "learning",
    }
)

COMPARISON_ENTITY_STOPWORDS: FrozenSet[str] = ENTITY_STOPWORDS | frozenset(
    {"difference", "between", "compare", "comparison", "vs", "versus", "different"}
)

_DEFINITION_PATTERNS = (re.compile(r"^what\s+is\b", re.I), re.compile(r"^define\b", re.I))

COMPARISON_PATTERNS = (
    re.compile(r"\bdifference\b", re.I),
    re.compile(r"\bvs\.?\b", re.I),
    re.compile(r"\bversus\b", re.I),
    re.compile(r"\bcompare\b", re.I),
    re.compile(r"\bcomparison\b", re.I),
)

DATA_USAGE_PATTERNS = (
    re.compile(r"\bwhat\s+data\b", re.I),
    re.compile(r"\bdata\s+does\b", re.I),
    re.compile(r"\buses?\s+data\b", re.I),
    re.compile(r"\bdata\s+used\s+by\b", re.I),
    re.compile(r"\bwhat\s+kind\s+of\s+data\b", re.I),
    re.compile(r"\btype\s+of\s+data\b", re.I),
    re.compile(r"\bdata\s+sources?\b", re.I),
    re.compile(r"\bdata\s+inputs?\b", re.I),
)

AI_USAGE_PATTERNS = (
    re.compile(r"\buses?\s+ai\b", re.I),
    re.compile(r"\bai\s+usage\b", re.I),
    re.compile(r"\bartificial\s+intelligence\b", re.I),
    re.compile(r"\bmachine\s+learning\b", re.I),
    re.compile(r"\bml\s+capabilit", re.I),
    re.compile(r"\bai\s+capabilit", re.I),
    re.compile(r"\bhow\s+.*\s+ai\b", re.I),
    re.compile(r"\bwhat\s+ai\b", re.I),
)

_DATA_KEYWORD = re.compile(r"\bdata\b", re.I)
_AI_KEYWORDS = (
    re.compile(r"\bai\b", re.I),
    re.compile(r"\bartificial\s+intelligence\b", re.I),
    re.compile(r"\bmachine\s+learning\b", re.I),
    re.compile(r"\bml\b", re.I),
)

_SUBJECT_SKIP_WORDS = frozenset({"what", "is", "define", "a", "an", "the"})
_LEADING_ARTICLE = re.compile(r"^(a|an|the)\s+", re.I)
_NON_WORD = re.compile(r"[^\w]")
_POSSESSIVE_SUFFIX = re.compile(r"['’]s\b.*$", re.I)
_POSSESSIVE_SUBJECT = re.compile(r"^\w+['’]s\s+\w", re.I)

# "between X and Y", "X vs Y", "compare X with Y"
_PAIR_PATTERNS = (
    re.compile(r"\bbetween\s+(.+?)\s+and\s+(.+?)\s*(?:[?.!]|$)", re.I),
    re.compile(r"([\w-]+)\s+(?:vs\.?|versus)\s+(.+?)\s*(?:[?.!]|$)", re.I),
    re.compile(r"\bcompare\s+(.+?)\s+(?:with|to|and|against)\s+(.+?)\s*(?:[?.!]|$)", re.I),
)


@dataclass(slots=True, frozen=True)
class QueryIntent:
    """Everything the ranking stages need to know about a query."""

    query: str
    normalized: str
    words: Tuple[str, ...]
    kind: IntentKind
    primary_entity: str | None = None
    comparison_entity: str | None = None
    second_entity: str | None = None
    subject: str | None = None
    intent_keywords: Tuple[str, ...] = ()

    @property
    def is_definition(self) -> bool:
        return self.kind is IntentKind.DEFINITION

    @property
    def is_comparison(self) -> bool:
        return self.kind is IntentKind.COMPARISON

    @property
    def is_data_usage(self) -> bool:
        return self.kind is IntentKind.DATA_USAGE

    @property
    def is_ai_usage(self) -> bool:
        return self.kind is IntentKind.AI_USAGE


def extract_entity(query: str, *, comparison: bool = False) -> str | None:
    """Return the first capitalized, non-stopword token longer than two characters.

    A trailing possessive is dropped, so "Acme's" yields ``Acme``.
    """
    stopwords = COMPARISON_ENTITY_STOPWORDS if comparison else ENTITY_STOPWORDS
    for token in query.split():
        word = _NON_WORD.sub("", _POSSESSIVE_SUFFIX.sub("", token))
        if len(word) > 2 and word[0].isupper() and word.lower() not in stopwords:
            return word
    return None


def is_definition_query(query: str, normalized: str | None = None) -> bool:
    candidates = [query.strip()]
    if normalized is not None:
        candidates.append(normalized)
    return any(pattern.search(text) for pattern in _DEFINITION_PATTERNS for text in candidates)


def extract_definition_subject(
    query: str, words: Sequence[str], primary_entity: str | None
) -> str | None:
    """Pull the thing being defined out of "What is X?" / "Define X" phrasing."""
    text = query.strip()
    subject: str | None = None

    match = re.match(r"^what\s+is\s+([^?]+)", text, re.I)
    if match:
        subject = match.group(1).strip()
    if not subject:
        match = re.match(r"^define\s+([^:?]+)", text, re.I)
        if match:
            subject = match.group(1).strip()
    if not subject:
        subject = primary_entity

    if subject:
        subject = _LEADING_ARTICLE.sub("", subject).strip()
        if not subject and len(words) > 2:
            remaining = [word for word in words if word.lower() not in _SUBJECT_SKIP_WORDS]
            subject = " ".join(remaining)
    return subject or None


def extract_second_entity(query: str, entity: str | None) -> str | None:
    """Find the other side of a comparison, e.g. ``agentic platforms`` in
    "difference between Acme and agentic platforms"."""
    for pattern in _PAIR_PATTERNS:
        match = pattern.search(query)
        if not match:
            continue
        left, right = (_LEADING_ARTICLE.sub("", group.strip()) for group in match.groups())
        if entity and entity.lower() in right.lower() and entity.lower() not in left.lower():
            other = left
        else:
            other = right
        other = other.strip(" ,;:")
        if other:
            return other
    return None


def detect_intent_keywords(query: str, normalized: str) -> Tuple[str, ...]:
    """Data/AI terms that earn chunks the explicit-term bonus."""
    keywords: List[str] = []
    if _DATA_KEYWORD.search(query) or _DATA_KEYWORD.search(normalized):
        keywords.append("data")
    if any(pattern.search(query) for pattern in _AI_KEYWORDS) or _AI_KEYWORDS[0].search(normalized):
        keywords.extend(["ai", "artificial intelligence", "machine learning"])
    return tuple(dict.fromkeys(keywords))


def _matches_any(patterns: Sequence[re.Pattern[str]], text: str) -> bool:
    return any(pattern.search(text) for pattern in patterns)


def classify_query(query: str) -> QueryIntent:
    """Classify a raw query into a single ``QueryIntent``."""
    normalized = normalize_for_matching(query)
    words = tuple(word for word in normalized.split(" ") if word)
    primary_entity = extract_entity(query)

    definition_subject = None
    if is_definition_query(query, normalized):
        definition_subject = extract_definition_subject(query, words, primary_entity)

    if definition_subject and _POSSESSIVE_SUBJECT.search(definition_subject):
        # "What is Acme's pricing?" asks about a topic of Acme, not for a definition
        LOGGER.debug("Possessive subject %r; treating query as topical", definition_subject)
        definition_subject = None
        kind = IntentKind.GENERIC
    elif is_definition_query(query, normalized):
        kind = IntentKind.DEFINITION
    elif _matches_any(COMPARISON_PATTERNS, query):
        kind = IntentKind.COMPARISON
    elif _matches_any(DATA_USAGE_PATTERNS, query):
        kind = IntentKind.DATA_USAGE
    elif _matches_any(AI_USAGE_PATTERNS, query):
        kind = IntentKind.AI_USAGE
    else:
        kind = IntentKind.GENERIC

    subject = None
    comparison_entity = None
    second_entity = None
    if kind is IntentKind.DEFINITION:
        subject = definition_subject
    elif kind is IntentKind.COMPARISON:
        comparison_entity = extract_entity(query, comparison=True)
        second_entity = extract_second_entity(query, comparison_entity)

    intent = QueryIntent(
        query=query,
        normalized=normalized,
        words=words,
        kind=kind,
        primary_entity=primary_entity,
        comparison_entity=comparison_entity,
        second_entity=second_entity,
        subject=subject,
        intent_keywords=detect_intent_keywords(query, normalized),
    )
    LOGGER.info(
        "Query intent: %s (entity=%s, subject=%s, second=%s, keywords=%s)",
        kind.value,
        primary_entity,
        subject,
        second_entity,
        list(intent.intent_keywords),
    )
    return intent
