"""Matching a submitted scientific name against ITIS candidates."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from thefuzz import fuzz

#: Minimum ``token_sort_ratio`` (0-100) for an approximate match.
FUZZY_THRESHOLD = 90


@dataclass(frozen=True)
class NameMatch:
    tsn: int
    name: str
    score: int
    exact: bool


def normalize(name: str) -> str:
    return " ".join(name.replace("_", " ").split()).casefold()


def binomial(name: str) -> str:
    """Genus and specific epithet only (drops subspecies, authors, qualifiers)."""
    return " ".join(name.split()[:2])


def match_name(
    query: str,
    candidates: list[dict[str, Any]],
    threshold: int = FUZZY_THRESHOLD,
) -> NameMatch | None:
    """
    Pick the ITIS candidate for ``query``.

    An exact (case- and whitespace-insensitive) ``combinedName`` match wins.
    Otherwise the candidate with the highest ``token_sort_ratio`` at or above
    ``threshold`` is used; ties go to the lowest TSN so the choice is stable.
    """
    target = normalize(query)
    best: NameMatch | None = None
    for cand in candidates:
        name = cand.get("combinedName") or ""
        try:
            tsn = int(cand.get("tsn"))  # type: ignore[arg-type]
        except (TypeError, ValueError):
            continue
        if not name:
            continue
        if normalize(name) == target:
            exact = NameMatch(tsn=tsn, name=name, score=100, exact=True)
            if best is None or not best.exact or tsn < best.tsn:
                best = exact
            continue
        if best is not None and best.exact:
            continue
        score = fuzz.token_sort_ratio(target, normalize(name))
        if score < threshold:
            continue
        if best is None or score > best.score or (score == best.score and tsn < best.tsn):
            best = NameMatch(tsn=tsn, name=name, score=score, exact=False)
    return best
