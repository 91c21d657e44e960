"""Region normalisation and matching.

A record without countries is available everywhere and behaves like the
``Global`` wildcard, both as a record region and as a viewer selection.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Final

if TYPE_CHECKING:
    from collections.abc import Iterable

GLOBAL_REGION: Final[str] = "Global"

_COUNTRY_ALIASES: Final[dict[str, str]] = {
    "usa": "United States",
    "us": "United States",
    "u.s.": "United States",
    "u.s.a.": "United States",
    "united states of america": "United States",
    "uk": "United Kingdom",
    "u.k.": "United Kingdom",
    "great britain": "United Kingdom",
    "britain": "United Kingdom",
    "nz": "New Zealand",
    "aus": "Australia",
    "global": GLOBAL_REGION,
    "worldwide": GLOBAL_REGION,
}


def normalize_country(value: str) -> str:
    """Collapse whitespace, resolve common aliases and title-case the rest."""

    collapsed = " ".join(value.split())
    if not collapsed:
        return ""
    alias = _COUNTRY_ALIASES.get(collapsed.casefold())
    if alias is not None:
        return alias
    if collapsed.isupper() or collapsed.islower():
        return collapsed.title()
    return collapsed


def normalize_countries(values: Iterable[str]) -> tuple[str, ...]:
    """Normalise and de-duplicate; any ``Global`` entry yields the empty wildcard."""

    result: list[str] = []
    seen: set[str] = set()
    for value in values:
        country = normalize_country(value)
        if not country:
            continue
        if country == GLOBAL_REGION:
            return ()
        key = country.casefold()
        if key in seen:
            continue
        seen.add(key)
        result.append(country)
    return tuple(result)


def split_countries(raw: str | None) -> tuple[str, ...]:
    if raw is None:
        return ()
    return normalize_countries(raw.replace(";", ",").split(","))


def join_countries(countries: Iterable[str]) -> str:
    joined = ", ".join(countries)
    return joined or GLOBAL_REGION


def is_global_selection(selection: str | None) -> bool:
    return selection is None or normalize_country(selection) in {"", GLOBAL_REGION}


def matches_region(countries: Iterable[str], selection: str | None) -> bool:
    if selection is None or is_global_selection(selection):
        return True
    wanted = normalize_country(selection).casefold()
    normalized = normalize_countries(countries)
    if not normalized:
        return True
    return any(country.casefold() == wanted for country in normalized)
