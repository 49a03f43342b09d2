"""Snippet extraction around query matches.

Snippets expand from a match to the nearest paragraph, list item or sentence
boundary. Matches that look like table-of-contents lines are logged.
"""

from __future__ import annotations

import logging
import re
from typing import Dict, List, Optional, Sequence, Tuple

LOGGER = logging.getLogger(__name__)

LOOKBACK_CHARS = 500
LOOKAHEAD_CHARS = 500
FALLBACK_SPAN = 600
FOCUS_WINDOW = 200
BOUNDARY_SEARCH = 50
PROXIMITY_CHARS = 100

_TOC_DOTS_PAGE = re.compile(r"\.{3,}\s*\d+\s*$", re.M)
_TOC_GAP_PAGE = re.compile(r"\s{20,}\d+\s*$", re.M)
_TOC_LINE_DOTS = re.compile(r"^\s*\.{3,}\s*\d+\s*$")
_TOC_LINE_GAP = re.compile(r"^\s{10,}\d+\s*$")

_NUMBERED_ITEM = re.compile(r"\n\s*\d+\.\s")
_BULLET_ITEM = re.compile(r"\n\s*[•\-\*]\s")
_HEADING = re.compile(r"\n[A-Z][A-Za-z\s]{10,}\n")
_ROLE_TITLES = (
    re.compile(
        r"\n(Sr\.|Senior|Junior|Trainee|Intern)?\s*(Software|Senior|Lead|Principal)?\s*"
        r"(Engineer|Developer|Manager|Analyst)",
        re.I,
    ),
    re.compile(r"\n[A-Z][a-z]+\s+(Engineer|Developer|Manager|Analyst|Designer)", re.I),
)
_LEADING_ROLE_TITLE = re.compile(
    r"^(Sr\.|Senior|Junior|Trainee|Intern)?\s*(Software|Senior|Lead|Principal)?\s*"
    r"(Engineer|Developer|Manager|Analyst)",
    re.I,
)
_HIGHLIGHT_CONTEXT = re.compile(r"challenge|prize|award|won", re.I)


def is_toc_entry(text: str, index: int, length: int) -> bool:
    """Whether the match at ``index`` sits on a table-of-contents line."""
    context = text[max(0, index - 30) : index + length + 80]
    after = text[index + length : index + length + 80]
    trimmed_after = after.strip()
    is_toc = bool(
        _TOC_DOTS_PAGE.search(context)
        or after.count(".") > 10
        or _TOC_GAP_PAGE.search(context)
        or _TOC_LINE_DOTS.match(trimmed_after)
        or _TOC_LINE_GAP.match(trimmed_after)
    )
    if is_toc:
        LOGGER.warning("Match at %d looks like a table-of-contents entry: %r", index, context[:80])
    return is_toc


def _last_match_start(pattern: re.Pattern[str], text: str) -> int:
    last = -1
    for match in pattern.finditer(text):
        last = match.start()
    return last


def _first_match_start(pattern: re.Pattern[str], text: str) -> int:
    match = pattern.search(text)
    return match.start() if match else -1


def _skip_whitespace(text: str, position: int) -> int:
    while position < len(text) and text[position].isspace():
        position += 1
    return position


def _find_start(text: str, index: int) -> int:
    lookback_start = max(0, index - LOOKBACK_CHARS)
    before = text[lookback_start:index]

    breaks = [_last_match_start(_NUMBERED_ITEM, before)]
    paragraph = before.rfind("\n\n")
    breaks.append(paragraph + 2 if paragraph != -1 else -1)
    breaks.extend(_last_match_start(pattern, before) for pattern in _ROLE_TITLES)
    best_break = max(breaks)

    if best_break != -1:
        start = lookback_start + best_break
        if start < index:
            return _skip_whitespace(text, start)

    boundary = max(before.rfind("\n"), before.rfind("."))
    if boundary != -1:
        return _skip_whitespace(text, lookback_start + boundary + 1)
    return max(0, index - 100)


def _find_end(text: str, phrase_end: int) -> int:
    after = text[phrase_end : phrase_end + LOOKAHEAD_CHARS]

    stop = after.find("\n\n")
    for pattern in _ROLE_TITLES:
        role = _first_match_start(pattern, after)
        if role > 0 and (stop == -1 or role < stop):
            stop = role
    if stop > 0:
        return phrase_end + stop

    for pattern in (_BULLET_ITEM, _NUMBERED_ITEM, _HEADING):
        found = _first_match_start(pattern, after)
        if found != -1:
            return phrase_end + found

    period = after.find(".")
    if period != -1:
        while period + 1 < len(after) and after[period + 1] == ".":
            period += 1
        newline = after.find("\n", period)
        if newline != -1 and newline - period <= 10:
            return phrase_end + newline
        return min(len(text), phrase_end + FALLBACK_SPAN)

    newline = after.find("\n")
    if newline != -1:
        return phrase_end + newline
    return min(len(text), phrase_end + FALLBACK_SPAN)


def extract_snippet_at(text: str, index: int, length: int) -> str:
    """Expand the match at ``index`` to a readable snippet.

    The start snaps back to the nearest paragraph, numbered item or role
    heading and the end stops at the next paragraph break, list item,
    heading or sentence end. Ellipses mark truncation on either side.
    """
    start = _find_start(text, index)
    end = _find_end(text, index + length)

    snippet = text[start:end].strip()
    leading = _LEADING_ROLE_TITLE.match(snippet)
    if leading:
        newline = snippet.find("\n", leading.end())
        if newline != -1:
            snippet = snippet[newline:].strip()

    if start > 0:
        snippet = "..." + snippet
    if end < len(text):
        snippet = snippet + "..."
    return snippet


def _score_occurrence(text: str, index: int, length: int) -> int:
    before = text[max(0, index - 100) : index]
    after = text[index + length : index + length + 100]
    score = len(before) + len(after)
    if "." in before or "." in after:
        score += 200
    if _HIGHLIGHT_CONTEXT.search(before + after):
        score += 300
    nearby = text[max(0, index - 20) : index + length + 20]
    if nearby == nearby.upper() and len(nearby) < 50:
        score -= 100
    return score


def _phrase_occurrences(text: str, words: Sequence[str]) -> List[Tuple[int, int]]:
    lowered = text.lower()
    occurrences: List[Tuple[int, int]] = []
    for separator in (" ", "-", "_"):
        phrase = separator.join(words).lower()
        position = lowered.find(phrase)
        while position != -1:
            occurrences.append((position, len(phrase)))
            position = lowered.find(phrase, position + 1)
        if occurrences:
            break
    return occurrences


def _word_positions(text: str, words: Sequence[str]) -> Dict[str, List[int]]:
    lowered = text.lower()
    positions: Dict[str, List[int]] = {}
    for word in words:
        found: List[int] = []
        position = lowered.find(word)
        while position != -1:
            found.append(position)
            position = lowered.find(word, position + 1)

        if not found:
            for match in re.finditer(r"\S+", lowered):
                token = match.group(0)
                if word in token or (len(token) >= 3 and token in word):
                    found.append(match.start())
        if found:
            positions[word] = found
    return positions


def _best_cluster(words: Sequence[str], positions: Dict[str, List[int]]) -> Optional[int]:
    best_position: Optional[int] = None
    best_score = float("-inf")
    for position in positions[words[0]]:
        distances = []
        for word in words[1:]:
            nearest = min(abs(other - position) for other in positions[word])
            if nearest > PROXIMITY_CHARS:
                break
            distances.append(nearest)
        else:
            score = 1000 - max(distances, default=0)
            if score > best_score:
                best_score = score
                best_position = position
    return best_position


def _adjust_window(text: str, start: int, end: int) -> Tuple[int, int]:
    adjusted_start = start
    if start > 0:
        window = text[max(0, start - BOUNDARY_SEARCH) : start]
        boundary = max(window.rfind("."), window.rfind("\n"), window.rfind(" "))
        if boundary != -1:
            adjusted_start = start - len(window) + boundary + 1

    adjusted_end = end
    if end < len(text):
        window = text[end : end + BOUNDARY_SEARCH]
        candidates = [offset for offset in (window.find("."), window.find("\n"), window.find(" ")) if offset != -1]
        if candidates:
            nearest = min(candidates)
            adjusted_end = end + nearest + (1 if window[nearest] == "." else 0)
    return adjusted_start, adjusted_end


def extract_focused_snippet(text: str, words: Sequence[str]) -> str:
    """Snippet around the best place where the query words occur together."""
    words = [word.lower() for word in words if word]
    if not words:
        return text[:300].strip()

    occurrences = _phrase_occurrences(text, words)
    if occurrences:
        index, length = max(occurrences, key=lambda occurrence: _score_occurrence(text, *occurrence))
        is_toc_entry(text, index, length)
        return extract_snippet_at(text, index, length)

    positions = _word_positions(text, words)
    position: Optional[int] = None
    if words[0] in positions and all(word in positions for word in words):
        position = _best_cluster(words, positions)
    if position is None:
        first_found = next((word for word in words if word in positions), None)
        if first_found is None:
            return text[:300].strip()
        position = positions[first_found][0]

    start = max(0, position - FOCUS_WINDOW)
    end = min(len(text), position + len(words[0]) + FOCUS_WINDOW)
    adjusted_start, adjusted_end = _adjust_window(text, start, end)

    snippet = text[adjusted_start:adjusted_end].strip()
    if start > 0:
        snippet = "..." + snippet
    if end < len(text):
        snippet = snippet + "..."
    return snippet


def find_phrase(text: str, words: Sequence[str]) -> Optional[re.Match[str]]:
    """Match the query words in order, separated by any non-word run."""
    if not words:
        return None
    pattern = r"[\W_]+".join(re.escape(word) for word in words)
    return re.search(pattern, text, re.I)


def extract_snippet(text: str, words: Sequence[str]) -> str:
    """Pick the snippet for a winning chunk given the normalized query words."""
    if len(words) > 1:
        match = find_phrase(text, words)
        if match:
            is_toc_entry(text, match.start(), len(match.group(0)))
            return extract_snippet_at(text, match.start(), len(match.group(0)))
    return extract_focused_snippet(text, words)
