"""Tiered resolution of "What is X?" / "Define X" queries.

Tier 1 keeps early chunks that state "<X> is a|an|the ...". Tier 2 keeps
early chunks with a soft intro template near the top of the chunk. If both
are empty a one-sentence definition is synthesized from the document's intro
chunk. Chunks about architecture, comparisons or explanations never qualify.
A definition query never falls back to general ranking.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Sequence, Tuple

from docanswer.config import RankingConfig
from docanswer.models import EmbeddedChunk, SearchAnswer
from docanswer.ranking.scoring import Candidate, chunk_position
from docanswer.utils.text import contains_word

LOGGER = logging.getLogger(__name__)

NO_DEFINITION_ANSWER = "No clear definition found in the provided documents."
NO_DEFINITION_EXPLANATION = (
    "Definition query could not be answered - no explicit definition, "
    "soft definition, or synthesizable intro content found"
)
SYNTHESIS_EXPLANATION = "Definition synthesized due to absence of explicit definition sentence"

ARCHITECTURE_INDICATORS: Tuple[Tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"\bnot\s+embedded\b", re.I), "not embedded"),
    (re.compile(r"\bsits\s+on\s+top\b", re.I), "sits on top"),
    (re.compile(r"\bconnects\s+to\b", re.I), "connects to"),
    (re.compile(r"\bintegrates\s+with\b", re.I), "integrates with"),
    (re.compile(r"\bstandalone\s+platform\s+that\b", re.I), "standalone platform that"),
    (re.compile(r"\bstandalone\s+that\b", re.I), "standalone that"),
    (re.compile(r"\bsits\s+on\s+top\s+of\b", re.I), "sits on top of"),
    (re.compile(r"\bpositioned\s+(on|above|over)\b", re.I), "positioned on"),
    (re.compile(r"\blayer\s+(on|above|over)\b", re.I), "layer on"),
    (re.compile(r"\barchitecture\s+(of|for)\b", re.I), "architecture of"),
    (re.compile(r"\bhow\s+.*\s+works\b", re.I), "how ... works"),
    (re.compile(r"\bhow\s+.*\s+integrates\b", re.I), "how ... integrates"),
    (re.compile(r"\bintegration\s+(with|to|into)\b", re.I), "integration with"),
    (re.compile(r"\bdeployed\s+(on|to|in)\b", re.I), "deployed on"),
    (re.compile(r"\bruns\s+on\s+top\s+of\b", re.I), "runs on top of"),
    (re.compile(r"\bbuilt\s+on\s+top\s+of\b", re.I), "built on top of"),
)

EXPLANATION_INDICATORS: Tuple[Tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"\bdifferences?\s+between\b", re.I), "difference between"),
    (re.compile(r"\bvs\.?\b", re.I), "vs"),
    (re.compile(r"\bversus\b", re.I), "versus"),
    (re.compile(r"\bin\s+simple\s+terms\b", re.I), "in simple terms"),
    (re.compile(r"\bcompared\s+to\b", re.I), "compared to"),
    (re.compile(r"\bcomparison\s+(of|between|with)\b", re.I), "comparison of"),
    (re.compile(r"\bhow\s+it\s+works\b", re.I), "how it works"),
    (re.compile(r"\bhow\s+.*\s+works\b", re.I), "how ... works"),
    (re.compile(r"\bcapabilities\b", re.I), "capabilities"),
    (re.compile(r"\buse\s+cases?\b", re.I), "use cases"),
    (re.compile(r"\bwhat\s+.*\s+does\b", re.I), "what ... does"),
    (re.compile(r"\bwhat\s+.*\s+can\s+do\b", re.I), "what ... can do"),
    (re.compile(r"\bfeatures?\s+(of|include)\b", re.I), "features of"),
    (re.compile(r"\bbenefits?\s+(of|include)\b", re.I), "benefits of"),
    (re.compile(r"\badvantages?\s+(of|over)\b", re.I), "advantages of"),
    (re.compile(r"\bdisadvantages?\s+of\b", re.I), "disadvantages of"),
    (re.compile(r"\bpros\s+and\s+cons\b", re.I), "pros and cons"),
    (re.compile(r"\bwhy\s+(use|choose)\b", re.I), "why use"),
    (re.compile(r"\bwhen\s+to\s+use\b", re.I), "when to use"),
    (re.compile(r"\bexample\s+of\b", re.I), "example of"),
    (re.compile(r"\bexamples?\s+(include|are)\b", re.I), "examples include"),
)

# Ordered from most to least specific.
CATEGORY_PATTERNS: Tuple[re.Pattern[str], ...] = (
    re.compile(r"\b(process\s+intelligence)\b", re.I),
    re.compile(r"\b(process\s+mining)\b", re.I),
    re.compile(r"\b(execution\s+management)\b", re.I),
    re.compile(r"\b(business\s+process)\s+(management|automation|optimization)\b", re.I),
    re.compile(r"\b(enterprise)\s+(platform|software|solution)\b", re.I),
    re.compile(r"\b(analytics)\s+(platform|software|solution)\b", re.I),
    re.compile(r"\b(data)\s+(platform|analytics)\b", re.I),
    re.compile(r"\b(automation)\s+(platform|software|solution)\b", re.I),
    re.compile(r"\b(intelligence)\s+(platform|software|solution)\b", re.I),
    re.compile(r"\bplatform\b", re.I),
    re.compile(r"\bsoftware\b", re.I),
    re.compile(r"\bsolution\b", re.I),
    re.compile(r"\btool\b", re.I),
    re.compile(r"\bsystem\b", re.I),
)

_ORGS = r"(?:organizations?|companies?|businesses?|enterprises?)"
PURPOSE_PATTERNS: Tuple[re.Pattern[str], ...] = (
    re.compile(rf"helps?\s+{_ORGS}\s+([^.]+)", re.I),
    re.compile(rf"enables?\s+{_ORGS}\s+to\s+([^.]+)", re.I),
    re.compile(rf"allows?\s+{_ORGS}\s+to\s+([^.]+)", re.I),
    re.compile(r"used\s+to\s+([^.]+)", re.I),
    re.compile(r"designed\s+to\s+([^.]+)", re.I),
    re.compile(r"provides?\s+([^.]+?)\s+(?:for|to)\s+(?:organizations?|companies?|businesses?)", re.I),
    re.compile(r"analyzes?\s+([^.]+)", re.I),
    re.compile(r"understand\s+and\s+([^.]+)", re.I),
    re.compile(r"improve\s+([^.]+)", re.I),
    re.compile(r"optimize\s+([^.]+)", re.I),
    re.compile(r"covering\s+its\s+([^.]+)", re.I),
)

DOMAIN_PATTERNS: Tuple[re.Pattern[str], ...] = (
    re.compile(r"\b(process\s+mining)\b", re.I),
    re.compile(r"\b(process\s+intelligence)\b", re.I),
    re.compile(r"\b(execution\s+management)\b", re.I),
    re.compile(r"\b(operational\s+data)\b", re.I),
    re.compile(r"\b(enterprise\s+data)\b", re.I),
    re.compile(r"\b(business\s+process(?:es)?)\b", re.I),
    re.compile(r"\b(event\s+logs?)\b", re.I),
    re.compile(r"\b(ERP)\b", re.I),
    re.compile(r"\b(CRM)\b", re.I),
    re.compile(r"\b(SAP)\b", re.I),
    re.compile(r"\b(Salesforce)\b", re.I),
    re.compile(r"\b(workflow)\b", re.I),
    re.compile(r"\b(automation)\b", re.I),
    re.compile(r"\b(optimization)\b", re.I),
    re.compile(r"\b(analytics)\b", re.I),
    re.compile(r"\b(AI)\b", re.I),
    re.compile(r"\b(machine\s+learning)\b", re.I),
)

_PURPOSE_VERB = re.compile(r"^(helps?|enables?|allows?|provides?|analyzes?|understand|improve|optimize)", re.I)


def blocking_reason(text: str) -> str | None:
    """Name the first architecture or explanation indicator found in ``text``."""
    for pattern, label in ARCHITECTURE_INDICATORS:
        if pattern.search(text):
            return f"architecture indicator: {label}"
    for pattern, label in EXPLANATION_INDICATORS:
        if pattern.search(text):
            return f"comparison/explanation indicator: {label}"
    return None


def architecture_indicator_count(text: str) -> int:
    return sum(1 for pattern, _ in ARCHITECTURE_INDICATORS if pattern.search(text))


def soft_definition_patterns(subject: str) -> Tuple[Tuple[re.Pattern[str], str], ...]:
    s = re.escape(subject)
    templates = [
        (rf"\b{s}\s+is\s+a\s+{kind}\s+that\b", f"{subject} is a {kind} that")
        for kind in ("platform", "solution", "tool", "system", "software")
    ]
    templates += [
        (rf"\boverview\s+of\s+{s}\b", f"overview of {subject}"),
        (rf"\bintroduction\s+to\s+{s}\b", f"introduction to {subject}"),
        (rf"\bintroducing\s+{s}\b", f"introducing {subject}"),
        (rf"this\s+document\s+provides[^.]*{s}", f"this document provides ... {subject}"),
        (rf"this\s+guide\s+(provides|covers|explains)[^.]*{s}", f"this guide provides ... {subject}"),
        (rf"\babout\s+{s}\b", f"about {subject}"),
        (rf"\bwhat\s+is\s+{s}[^?]*\?[\s\S]*{s}\s+is\s+", f"what is {subject}? ... {subject} is"),
    ]
    return tuple((re.compile(pattern, re.I), name) for pattern, name in templates)


def strict_definition_candidates(
    candidates: Sequence[Candidate], subject: str, config: RankingConfig
) -> List[Candidate]:
    """Tier 1: "<subject> is a|an|the" in the first part of a document."""
    pattern = re.compile(rf"\b{re.escape(subject)}\s+is\s+(a|an|the)\s+", re.I)
    selected: List[Candidate] = []
    for candidate in candidates:
        if candidate.position > config.tier1_window or not pattern.search(candidate.text):
            continue
        reason = blocking_reason(candidate.text)
        if reason:
            LOGGER.debug(
                "Tier-1 rejected %s[%d]: %s", candidate.source_file, candidate.chunk_index, reason
            )
            continue
        selected.append(candidate)
    return selected


def soft_definition_candidates(
    candidates: Sequence[Candidate], subject: str, config: RankingConfig
) -> List[Candidate]:
    """Tier 2: an intro-style template near the top of an early chunk."""
    patterns = soft_definition_patterns(subject)
    selected: List[Candidate] = []
    seen = set()
    for candidate in candidates:
        if candidate.position > config.tier2_window:
            continue
        text = candidate.text
        reason = blocking_reason(text)
        if reason:
            LOGGER.debug(
                "Tier-2 rejected %s[%d]: %s", candidate.source_file, candidate.chunk_index, reason
            )
            continue
        for pattern, name in patterns:
            match = pattern.search(text)
            if not match:
                continue
            if match.start() / len(text) <= config.tier2_match_window:
                key = (candidate.source_file, candidate.chunk_index)
                if key not in seen:
                    seen.add(key)
                    selected.append(candidate)
                    LOGGER.debug("Tier-2 accepted %s[%d] via %r", *key, name)
                break
            LOGGER.debug(
                "Tier-2 pattern %r too late in %s[%d]", name, candidate.source_file, candidate.chunk_index
            )
    return selected


def extract_category(text: str) -> str:
    found: List[str] = []
    for pattern in CATEGORY_PATTERNS:
        match = pattern.search(text)
        if match:
            value = match.group(0).lower().strip()
            if value not in found:
                found.append(value)
    if not found:
        return ""

    found.sort(key=len, reverse=True)
    primary = found[0]
    secondary = [value for value in found[1:3] if value not in primary and primary not in value]
    if secondary and len(primary) < 25:
        return f"{primary} and {secondary[0]}"
    return primary


def extract_purpose(text: str) -> str:
    for pattern in PURPOSE_PATTERNS:
        match = pattern.search(text)
        if not match:
            continue
        purpose = re.sub(r"\s+", " ", match.group(1))
        purpose = re.sub(r",\s*$", "", purpose)
        purpose = re.sub(r"\.\s*$", "", purpose).strip()
        if 10 <= len(purpose) <= 150:
            return purpose
    return ""


def extract_domain_keywords(text: str) -> List[str]:
    keywords: List[str] = []
    for pattern in DOMAIN_PATTERNS:
        match = pattern.search(text)
        if match:
            keyword = match.group(1).lower()
            if keyword not in keywords:
                keywords.append(keyword)
    return keywords


def compose_definition(subject: str, text: str) -> str:
    """Build "<subject> is a <category> that <purpose>." from intro text."""
    category = extract_category(text)
    purpose = extract_purpose(text)
    domain = extract_domain_keywords(text)

    category_part = category or "platform"
    if not category:
        relevant = [
            keyword
            for keyword in domain
            if any(term in keyword for term in ("process", "intelligence", "mining", "analytics"))
        ]
        if relevant:
            category_part = " and ".join(relevant[:2]) + " platform"

    if purpose:
        purpose_part = purpose.lower()
        if not _PURPOSE_VERB.match(purpose_part):
            purpose_part = "helps organizations " + purpose_part
    else:
        process = [keyword for keyword in domain if "process" in keyword or "business" in keyword]
        data = [keyword for keyword in domain if "data" in keyword or "event" in keyword]
        if process or data:
            source = data[0] if data else "enterprise data"
            target = process[0] if process else "business processes"
            purpose_part = f"analyzes {source} to help organizations understand and improve {target}"
        else:
            purpose_part = "helps organizations analyze and optimize their operations"

    return f"{subject} is a {category_part} that {purpose_part}."


def find_intro_chunk(
    items: Sequence[EmbeddedChunk],
    subject: str,
    doc_counts: Dict[str, int],
    config: RankingConfig,
) -> EmbeddedChunk | None:
    """Pick the chunk to synthesize from.

    Chunks are scanned by (document name, chunk index) and the first early
    chunk mentioning the subject wins. A title chunk is always acceptable;
    any other chunk must carry few architecture indicators.
    """
    ordered = sorted(items, key=lambda item: (item.chunk.source_file, item.chunk.chunk_index))
    for item in ordered:
        if chunk_position(item, doc_counts) > config.synthesis_window:
            continue
        if not contains_word(item.chunk.text, subject):
            continue
        if item.chunk.chunk_index == 0:
            return item
        count = architecture_indicator_count(item.chunk.text)
        if count <= config.synthesis_max_architecture_indicators:
            return item
        LOGGER.debug("Skipping chunk %d: %d architecture indicators", item.chunk.chunk_index, count)
    return None


def synthesize_definition(
    subject: str,
    items: Sequence[EmbeddedChunk],
    doc_counts: Dict[str, int],
    config: RankingConfig,
) -> SearchAnswer | None:
    intro = find_intro_chunk(items, subject, doc_counts, config)
    if intro is None:
        return None
    answer = compose_definition(subject, intro.chunk.text)
    LOGGER.info("Synthesized definition from %s[%d]: %s", intro.chunk.source_file, intro.chunk.chunk_index, answer)
    return SearchAnswer(
        answer=answer,
        source=intro.chunk.source_file,
        confidence=config.synthesis_confidence,
        explanation=SYNTHESIS_EXPLANATION,
        chunk_index=intro.chunk.chunk_index,
    )


@dataclass(slots=True)
class DefinitionResolution:
    """Outcome of definition handling.

    Either ``candidates`` holds the tier to rank, or ``answer`` is final.
    """

    tier: str
    candidates: List[Candidate] = field(default_factory=list)
    answer: SearchAnswer | None = None


def resolve_definition(
    subject: str,
    candidates: Sequence[Candidate],
    items: Sequence[EmbeddedChunk],
    doc_counts: Dict[str, int],
    config: RankingConfig,
) -> DefinitionResolution:
    """Apply Tier 1, Tier 2, then synthesis, and finally the no-definition answer."""
    strict = strict_definition_candidates(candidates, subject, config)
    if strict:
        LOGGER.info("Definition of %r: %d strict candidate(s)", subject, len(strict))
        return DefinitionResolution(tier="strict", candidates=strict)

    soft = soft_definition_candidates(candidates, subject, config)
    if soft:
        LOGGER.info("Definition of %r: %d soft candidate(s)", subject, len(soft))
        return DefinitionResolution(tier="soft", candidates=soft)

    synthesized = synthesize_definition(subject, items, doc_counts, config)
    if synthesized is not None:
        return DefinitionResolution(tier="synthesized", answer=synthesized)

    LOGGER.warning("No definition found for %r", subject)
    source = candidates[0].source_file if candidates else ""
    return DefinitionResolution(
        tier="none",
        answer=SearchAnswer(
            answer=NO_DEFINITION_ANSWER,
            source=source,
            confidence=0.0,
            explanation=NO_DEFINITION_EXPLANATION,
        ),
    )
