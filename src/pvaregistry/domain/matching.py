"""Overlap-safe keyword matching over extracted label or datasheet text."""

from __future__ import annotations

import re
from dataclasses import dataclass
from itertools import chain
from typing import TYPE_CHECKING, Final

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

KEYWORD_CATEGORIES: Final[dict[str, tuple[str, ...]]] = {
    "common_names": (
        "pva",
        "pvoh",
        "polyvinyl alcohol",
        "poly vinyl alcohol",
        "poly(vinyl alcohol)",
    ),
    "chemical_synonyms": (
        "ethenol homopolymer",
        "vinyl alcohol polymer",
        "polyethenol",
        "pvac",
        "polyvinyl acetate",
    ),
    "inci_terms": (
        "alcohol, polyvinyl",
        "polyvinyl alcohol, partially hydrolyzed",
    ),
    "cas_numbers": (
        "25213-24-5",
        "9002-89-5",
    ),
    "trade_names": (
        "poval",
        "vinnapas",
        "mowiol",
        "elvanol",
    ),
}

DEFAULT_KEYWORDS: Final[tuple[str, ...]] = tuple(chain.from_iterable(KEYWORD_CATEGORIES.values()))

FREE_PHRASES: Final[tuple[str, ...]] = (
    "pva-free",
    "pva free",
    "free from pva",
    "free of pva",
    "does not contain pva",
    "without pva",
    "no pva",
    "pva: none",
    "pva: 0%",
    "free of polyvinyl alcohol",
)

_PERCENTAGE_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"[^%\n]{0,40}?(\d{1,3}(?:[.,]\d+)?)\s*%"
)


@dataclass(frozen=True, slots=True)
class KeywordMatch:
    term: str
    position: int

    @property
    def end(self) -> int:
        return self.position + len(self.term)

    def overlaps(self, other: KeywordMatch) -> bool:
        return self.position < other.end and other.position < self.end


@dataclass(frozen=True, slots=True)
class MatchResult:
    """Accepted keywords in order of first appearance, plus the spans that won."""

    terms: tuple[str, ...]
    matches: tuple[KeywordMatch, ...]
    exclusions: tuple[KeywordMatch, ...] = ()

    @property
    def explicitly_free(self) -> bool:
        return bool(self.exclusions)

    def __bool__(self) -> bool:
        return bool(self.terms)


def _occurrences(haystack: str, needle: str) -> list[int]:
    positions: list[int] = []
    start = haystack.find(needle)
    while start != -1:
        positions.append(start)
        start = haystack.find(needle, start + 1)
    return positions


def _candidates(haystack: str, keywords: Sequence[str]) -> list[KeywordMatch]:
    found: list[tuple[int, int, int, KeywordMatch]] = []
    for index, keyword in enumerate(keywords):
        for position in _occurrences(haystack, keyword):
            match = KeywordMatch(term=keyword, position=position)
            # same start: longer keyword first, then list order
            found.append((position, -len(keyword), index, match))
    found.sort(key=lambda item: item[:3])
    return [item[3] for item in found]


def _claim(
    candidates: Iterable[KeywordMatch], accepted: list[KeywordMatch]
) -> list[KeywordMatch]:
    claimed: list[KeywordMatch] = []
    for candidate in candidates:
        if any(candidate.overlaps(existing) for existing in accepted):
            continue
        accepted.append(candidate)
        claimed.append(candidate)
    return claimed


def _normalize_keywords(keywords: Iterable[str]) -> tuple[str, ...]:
    seen: dict[str, None] = {}
    for keyword in keywords:
        lowered = keyword.strip().lower()
        if lowered:
            seen.setdefault(lowered, None)
    return tuple(seen)


class KeywordMatcher:
    """Greedy, position-ordered keyword matcher.

    Every occurrence of every keyword is collected, then candidates are walked in
    position order and accepted only when their span does not overlap one that
    was already accepted. Exclusion phrases (negations such as ``"pva-free"``)
    claim their spans before any keyword so a keyword inside them never counts.
    """

    def __init__(
        self,
        keywords: Iterable[str] = DEFAULT_KEYWORDS,
        *,
        exclusions: Iterable[str] = (),
    ) -> None:
        self.keywords = _normalize_keywords(keywords)
        self.exclusions = _normalize_keywords(exclusions)

    def match(self, text: str) -> MatchResult:
        haystack = text.lower()
        accepted: list[KeywordMatch] = []
        excluded = _claim(_candidates(haystack, self.exclusions), accepted)
        matches = _claim(_candidates(haystack, self.keywords), accepted)
        matches.sort(key=lambda match: match.position)

        terms: dict[str, None] = {}
        for match in matches:
            terms.setdefault(match.term, None)
        return MatchResult(
            terms=tuple(terms),
            matches=tuple(matches),
            exclusions=tuple(excluded),
        )

    def __call__(self, text: str) -> list[str]:
        return list(self.match(text).terms)


def find_keywords(text: str, keywords: Iterable[str] = DEFAULT_KEYWORDS) -> list[str]:
    return KeywordMatcher(keywords)(text)


def extract_percentage(text: str, result: MatchResult) -> float | None:
    """Return the first percentage that closely follows an accepted keyword.

    Only values in ``(0, 100]`` are returned; anything else is treated as noise
    from the surrounding text.
    """

    lowered = text.lower()
    for match in result.matches:
        found = _PERCENTAGE_PATTERN.match(lowered, match.end)
        if found is None:
            continue
        value = float(found.group(1).replace(",", "."))
        if 0 < value <= 100:
            return value
    return None
