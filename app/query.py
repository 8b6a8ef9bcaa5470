"""Search, filter and ordering helpers for catalogue listings."""

from __future__ import annotations

from functools import cmp_to_key
from typing import Callable, Iterable, Sequence

from .models import CatalogueEntry, FilterCriteria, SortKey

_GEM_SCORE_TOLERANCE = 0.1


def search(entries: Iterable[CatalogueEntry], query: str) -> list[CatalogueEntry]:
    """Return entries whose titles or genres contain ``query``, case-insensitively."""

    needle = query.casefold()
    matches: list[CatalogueEntry] = []
    for entry in entries:
        haystack = [entry.title, *(entry.genres or [])]
        if entry.english_title:
            haystack.append(entry.english_title)
        if any(needle in value.casefold() for value in haystack):
            matches.append(entry)
    return matches


def filter_entries(
    entries: Iterable[CatalogueEntry], criteria: FilterCriteria | None
) -> list[CatalogueEntry]:
    """Apply every criterion that is set; an empty criteria object keeps all entries."""

    if criteria is None or criteria.is_empty():
        return list(entries)

    def matches(entry: CatalogueEntry) -> bool:
        if criteria.genre and criteria.genre not in entry.genres:
            return False
        if criteria.min_score is not None:
            if entry.score is None or entry.score < criteria.min_score:
                return False
        if criteria.status and entry.status != criteria.status:
            return False
        if criteria.type and entry.type != criteria.type:
            return False
        return True

    return [entry for entry in entries if matches(entry)]


_SORT_KEYS: dict[str, tuple[Callable[[CatalogueEntry], object], bool]] = {
    "popularity": (lambda entry: entry.scored_by or 0, True),
    "rating": (lambda entry: entry.score or 0.0, True),
    "title": (lambda entry: entry.title.casefold(), False),
    "year": (lambda entry: entry.year or 0, True),
}


def sort_entries(entries: Iterable[CatalogueEntry], key: SortKey | str) -> list[CatalogueEntry]:
    """Return a stably sorted copy of ``entries`` ordered by ``key``."""

    try:
        key_func, descending = _SORT_KEYS[key]
    except KeyError:
        raise ValueError(f"Unsupported sort key: {key}") from None
    # sorted() keeps ties in input order, including with reverse=True.
    return sorted(entries, key=key_func, reverse=descending)


def top_ranked(entries: Iterable[CatalogueEntry], limit: int = 20) -> list[CatalogueEntry]:
    """Return the best scored entries, ignoring those without a positive score."""

    scored = [entry for entry in entries if entry.score]
    return sort_entries(scored, "rating")[: max(limit, 0)]


def hidden_gems(
    entries: Iterable[CatalogueEntry],
    *,
    min_score: float = 8.0,
    max_votes: int = 50_000,
) -> list[CatalogueEntry]:
    """Return highly scored entries that few users have voted on."""

    candidates = [
        entry
        for entry in entries
        if entry.score
        and entry.score >= min_score
        and entry.scored_by
        and entry.scored_by < max_votes
    ]

    def compare(left: CatalogueEntry, right: CatalogueEntry) -> int:
        score_delta = (right.score or 0.0) - (left.score or 0.0)
        if abs(score_delta) > _GEM_SCORE_TOLERANCE:
            return 1 if score_delta > 0 else -1
        return (left.scored_by or 0) - (right.scored_by or 0)

    return sorted(candidates, key=cmp_to_key(compare))


def paginate(entries: Sequence[CatalogueEntry], page: int, limit: int) -> list[CatalogueEntry]:
    """Return the ``page`` (1-based) slice of ``entries`` holding ``limit`` items."""

    start = (max(page, 1) - 1) * limit
    return list(entries[start : start + limit])
