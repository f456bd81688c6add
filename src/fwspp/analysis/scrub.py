"""
Scrubbing: reducing a property's records to the ones worth keeping.

Levels:
  - none:     everything inside the property
  - moderate: duplicate catalog numbers and redundant observations removed
              (same species, same date, same location)
  - strict:   moderate, then one record per species, preferring media, the
              most recent date, and a catalog number; records without any
              evidence are dropped entirely

Scrubbing only ever removes records; it never edits them.
"""

from __future__ import annotations

from collections.abc import Callable, Hashable, Iterable
from typing import TYPE_CHECKING

from fwspp.analysis.spatial import within_geometry
from fwspp.schemas import OccurrenceRecord, ScrubLevel

if TYPE_CHECKING:
    from fwspp.geometry import PropertyGeometry

#: Decimal places of lat/lon that count as "the same location" (~11 m).
LOCATION_DECIMALS = 4


def species_key(name: str) -> str:
    """Genus + epithet, case-folded, so author strings and subspecies group together."""
    return " ".join(name.split()[:2]).casefold()


def _catalog_key(rec: OccurrenceRecord) -> Hashable | None:
    if not rec.catalog_number:
        return None
    return (species_key(rec.scientific_name), rec.catalog_number.strip().casefold())


def _observation_key(rec: OccurrenceRecord) -> Hashable | None:
    if not rec.has_full_date:
        return None
    return (
        species_key(rec.scientific_name),
        rec.date_key,
        round(rec.lat, LOCATION_DECIMALS),
        round(rec.lon, LOCATION_DECIMALS),
    )


def _duplicate_preference(rec: OccurrenceRecord) -> tuple[bool, bool, bool]:
    return (rec.media, bool(rec.evidence), bool(rec.catalog_number))


def _species_preference(rec: OccurrenceRecord) -> tuple[bool, tuple[int, int, int], bool]:
    return (rec.media, rec.date_key, bool(rec.catalog_number))


def collapse(
    records: Iterable[OccurrenceRecord],
    key: Callable[[OccurrenceRecord], Hashable | None],
    prefer: Callable[[OccurrenceRecord], tuple],
) -> list[OccurrenceRecord]:
    """Keep one record per ``key`` (the first with the highest ``prefer``).

    Records whose key is None are never grouped.  Output keeps the order in
    which each group first appeared.
    """
    slots: list[OccurrenceRecord] = []
    index: dict[Hashable, int] = {}
    for rec in records:
        k = key(rec)
        if k is None:
            slots.append(rec)
            continue
        if k not in index:
            index[k] = len(slots)
            slots.append(rec)
        elif prefer(rec) > prefer(slots[index[k]]):
            slots[index[k]] = rec
    return slots


def scrub_moderate(records: Iterable[OccurrenceRecord]) -> list[OccurrenceRecord]:
    deduped = collapse(records, _catalog_key, _duplicate_preference)
    return collapse(deduped, _observation_key, _duplicate_preference)


def scrub_strict(records: Iterable[OccurrenceRecord]) -> list[OccurrenceRecord]:
    with_evidence = [r for r in scrub_moderate(records) if r.evidence]
    return collapse(
        with_evidence, lambda r: species_key(r.scientific_name), _species_preference
    )


def scrub(records: Iterable[OccurrenceRecord], level: ScrubLevel | str) -> list[OccurrenceRecord]:
    """Apply the requested scrub level."""
    level = ScrubLevel(level)
    if level is ScrubLevel.STRICT:
        return scrub_strict(records)
    if level is ScrubLevel.MODERATE:
        return scrub_moderate(records)
    return list(records)


def reconcile(
    records: Iterable[OccurrenceRecord],
    geom: PropertyGeometry,
    level: ScrubLevel | str = ScrubLevel.STRICT,
) -> list[OccurrenceRecord]:
    """Spatial filter to the exact property geometry, then scrub."""
    return scrub(within_geometry(records, geom), level)
