"""
Domain models for fwspp.

Pydantic models for normalized occurrence records and per-run configuration.
These define the canonical schema - datasources normalize API responses to
these, analysis filters them, the store writes them.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# =============================================================================
# Configuration
# =============================================================================


class BoundaryKind(StrEnum):
    """Which USFWS cadastral boundary to use for a property."""

    ADMIN = "admin"  # current administrative boundary
    ACQ = "acq"  # approved acquisition boundary


class ScrubLevel(StrEnum):
    """How aggressively to reduce the records returned for a property."""

    STRICT = "strict"
    MODERATE = "moderate"
    NONE = "none"


class QueryConfig(BaseModel):
    """Options for one occurrence run, shared by every property in it."""

    model_config = ConfigDict(frozen=True)

    boundary_kind: BoundaryKind = BoundaryKind.ADMIN
    scrub: ScrubLevel = ScrubLevel.STRICT
    link_taxonomy: bool = True
    buffer_km: float = Field(default=0.0, ge=0)
    timeout: int = Field(default=1200, gt=0, description="Seconds per HTTP request")
    verbose: bool = True


# =============================================================================
# Occurrence records
# =============================================================================

#: Output columns when ITIS linking is enabled.
LINKED_COLUMNS = [
    "class",
    "tsn",
    "taxon_rank",
    "sci_name",
    "com_name",
    "lon",
    "lat",
    "loc_unc_m",
    "year",
    "month",
    "day",
    "evidence",
    "bio_repo",
    "note",
]

#: Output columns without ITIS linking (``sci_name`` is as submitted).
UNLINKED_COLUMNS = [c for c in LINKED_COLUMNS if c not in {"class", "tsn", "taxon_rank", "com_name"}]


class OccurrenceRecord(BaseModel):
    """A single occurrence, normalized across repositories.

    Immutable: scrubbing selects subsets, and taxonomy linking produces
    updated copies via ``model_copy``.
    """

    model_config = ConfigDict(frozen=True)

    scientific_name: str
    lon: float = Field(..., ge=-180, le=180)
    lat: float = Field(..., ge=-90, le=90)
    bio_repo: str = Field(..., min_length=1, description="Source repository")
    loc_unc_m: float | None = None
    year: int | None = None
    month: int | None = Field(default=None, ge=1, le=12)
    day: int | None = Field(default=None, ge=1, le=31)
    evidence: str | None = None
    catalog_number: str | None = None
    media: bool = False
    note: str | None = None

    # Filled in by ITIS linking
    taxon_class: str | None = None
    tsn: int | None = None
    taxon_rank: str | None = None
    common_name: str | None = None

    @property
    def has_full_date(self) -> bool:
        return self.year is not None and self.month is not None and self.day is not None

    @property
    def date_key(self) -> tuple[int, int, int]:
        """Sortable (year, month, day) with unknown parts as 0."""
        return (self.year or 0, self.month or 0, self.day or 0)

    def to_row(self, linked: bool = True) -> dict[str, Any]:
        """Row for the output table, keyed by output column name."""
        row: dict[str, Any] = {
            "class": self.taxon_class,
            "tsn": self.tsn,
            "taxon_rank": self.taxon_rank,
            "sci_name": self.scientific_name,
            "com_name": self.common_name,
            "lon": self.lon,
            "lat": self.lat,
            "loc_unc_m": self.loc_unc_m,
            "year": self.year,
            "month": self.month,
            "day": self.day,
            "evidence": self.evidence,
            "bio_repo": self.bio_repo,
            "note": self.note,
        }
        columns = LINKED_COLUMNS if linked else UNLINKED_COLUMNS
        return {c: row[c] for c in columns}


# =============================================================================
# Per-property results
# =============================================================================


class PropertyStatus(StrEnum):
    """Terminal state of one property's pipeline."""

    OK = "ok"
    NO_RECORDS = "no_records"
    FAILED = "failed"


class PropertyResult(BaseModel):
    """Outcome for one property: records, an empty marker, or a failure marker."""

    name: str
    status: PropertyStatus
    records: list[OccurrenceRecord] = Field(default_factory=list)
    notes: list[str] = Field(default_factory=list)
    error: str | None = None
    source_counts: dict[str, int] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status is PropertyStatus.OK
