"""Linking occurrence records to accepted ITIS taxa."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from fwspp.datasources.itis import TaxonMatch
    from fwspp.schemas import OccurrenceRecord

NO_MATCH_NOTE = "No ITIS match found"


def not_species_note(rank: str | None) -> str:
    return f"ITIS rank is {rank or 'unknown'}; name may not represent a species"


def _append_note(existing: str | None, note: str) -> str:
    return f"{existing}; {note}" if existing else note


def link_record(rec: OccurrenceRecord, match: TaxonMatch | None) -> OccurrenceRecord:
    """Copy of ``rec`` with ITIS identity filled in (or a no-match note)."""
    if match is None:
        return rec.model_copy(
            update={
                "taxon_class": None,
                "tsn": None,
                "taxon_rank": None,
                "common_name": None,
                "note": _append_note(rec.note, NO_MATCH_NOTE),
            }
        )
    update: dict[str, object] = {
        "scientific_name": match.accepted_name,
        "taxon_class": match.taxon_class,
        "tsn": match.tsn,
        "taxon_rank": match.rank,
        "common_name": match.common_name,
    }
    if not match.is_species:
        update["note"] = _append_note(rec.note, not_species_note(match.rank))
    return rec.model_copy(update=update)


def link_records(
    records: Iterable[OccurrenceRecord],
    resolve: Callable[[str], TaxonMatch | None],
) -> list[OccurrenceRecord]:
    """Resolve each distinct submitted name once and link every record."""
    records = list(records)
    matches: dict[str, TaxonMatch | None] = {}
    for rec in records:
        if rec.scientific_name not in matches:
            matches[rec.scientific_name] = resolve(rec.scientific_name)
    return [link_record(r, matches[r.scientific_name]) for r in records]
