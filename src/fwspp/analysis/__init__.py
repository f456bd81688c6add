"""Reconciliation of records gathered from several repositories.

Pure functions over ``OccurrenceRecord`` lists: no HTTP, no Prefect
decorators, no file I/O.

Modules:
  - evidence: best substantiating URL for a record
  - spatial: exact-geometry filter (repositories are queried by bbox/circle)
  - scrub: none / moderate / strict de-duplication and per-species reduction
  - taxonomy: applying ITIS matches to records

Wire new steps into ``flows/occurrences.py`` after the fan-in merge.
"""

from fwspp.analysis.evidence import select_evidence
from fwspp.analysis.scrub import reconcile, scrub, species_key
from fwspp.analysis.spatial import within_geometry
from fwspp.analysis.taxonomy import NO_MATCH_NOTE, link_records

__all__ = [
    "NO_MATCH_NOTE",
    "link_records",
    "reconcile",
    "scrub",
    "select_evidence",
    "species_key",
    "within_geometry",
]
