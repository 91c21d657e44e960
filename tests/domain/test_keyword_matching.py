from __future__ import annotations

import pytest

from pvaregistry.domain.matching import (
    DEFAULT_KEYWORDS,
    FREE_PHRASES,
    KeywordMatch,
    KeywordMatcher,
    extract_percentage,
    find_keywords,
)


def test_overlapping_keywords_yield_distinct_spans() -> None:
    matcher = KeywordMatcher(["pva", "polyvinyl alcohol"])

    assert matcher("Contains Polyvinyl Alcohol (PVA)") == ["polyvinyl alcohol", "pva"]


def test_keyword_inside_longer_match_is_not_counted_twice() -> None:
    matcher = KeywordMatcher(["alcohol", "polyvinyl alcohol"])

    result = matcher.match("polyvinyl alcohol film")

    assert result.terms == ("polyvinyl alcohol",)
    assert [match.position for match in result.matches] == [0]


def test_longer_keyword_wins_at_same_position() -> None:
    matcher = KeywordMatcher(["poly", "polyvinyl alcohol"])

    assert matcher("polyvinyl alcohol") == ["polyvinyl alcohol"]


def test_terms_follow_first_appearance_and_are_unique() -> None:
    matcher = KeywordMatcher(["pvoh", "pva"])

    result = matcher.match("PVA film, PVOH coating, more pva")

    assert result.terms == ("pva", "pvoh")
    assert len(result.matches) == 3


def test_matching_is_case_insensitive_and_keywords_are_normalised() -> None:
    matcher = KeywordMatcher(["  PVA ", "pva", ""])

    assert matcher.keywords == ("pva",)
    assert matcher("contains pVa") == ["pva"]


def test_no_match_is_falsy() -> None:
    result = KeywordMatcher(["pva"]).match("plain cardboard box")

    assert not result
    assert result.terms == ()


def test_exclusion_phrases_claim_their_spans_first() -> None:
    matcher = KeywordMatcher(["pva"], exclusions=FREE_PHRASES)

    result = matcher.match("Our pods are PVA-free.")

    assert result.terms == ()
    assert result.explicitly_free


def test_keyword_outside_exclusion_still_matches() -> None:
    matcher = KeywordMatcher(["pva"], exclusions=FREE_PHRASES)

    result = matcher.match("Lid is PVA-free but the film is pva")

    assert result.terms == ("pva",)
    assert result.explicitly_free


def test_default_keywords_cover_cas_numbers() -> None:
    assert "9002-89-5" in DEFAULT_KEYWORDS
    assert find_keywords("Ingredients: CAS 9002-89-5") == ["9002-89-5"]


def test_keyword_match_overlap() -> None:
    first = KeywordMatch(term="polyvinyl alcohol", position=0)
    second = KeywordMatch(term="alcohol", position=10)
    third = KeywordMatch(term="pva", position=17)

    assert first.overlaps(second)
    assert not first.overlaps(third)
    assert first.end == 17


DENSE_LABEL = (
    "Film: Polyvinyl Alcohol, Partially Hydrolyzed (PVOH / PVA, CAS 9002-89-5). "
    "INCI: Alcohol, Polyvinyl. Also sold as Poval and Mowiol; binder polyvinyl acetate (PVAc). "
    "Outer bag is PVA-free, poly(vinyl alcohol) inside."
)


def test_matching_is_idempotent_over_default_catalogue() -> None:
    matcher = KeywordMatcher(exclusions=FREE_PHRASES)

    first = matcher.match(DENSE_LABEL)
    second = matcher.match(DENSE_LABEL)

    assert first == second
    assert matcher("\n".join(first.terms)) == list(first.terms)


def test_accepted_spans_never_overlap_over_default_catalogue() -> None:
    result = KeywordMatcher(exclusions=FREE_PHRASES).match(DENSE_LABEL)
    spans = [*result.exclusions, *result.matches]

    assert result.terms
    assert result.explicitly_free
    for index, span in enumerate(spans):
        assert all(not span.overlaps(other) for other in spans[index + 1 :])


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("Contains PVA 12.5% by weight", 12.5),
        ("polyvinyl alcohol (approx. 30 %)", 30.0),
        ("PVA: 7,5%", 7.5),
        ("PVA film. Recycled content 150%", None),
        ("PVA film", None),
    ],
)
def test_extract_percentage_after_keyword(text: str, expected: float | None) -> None:
    matcher = KeywordMatcher(["pva", "polyvinyl alcohol"])

    assert extract_percentage(text, matcher.match(text)) == expected


def test_extract_percentage_ignores_distant_numbers() -> None:
    text = "PVA" + " filler" * 10 + " 40%"
    matcher = KeywordMatcher(["pva"])

    assert extract_percentage(text, matcher.match(text)) is None
