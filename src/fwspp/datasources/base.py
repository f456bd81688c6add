"""Common adapter interface and normalization helpers for occurrence sources."""

from __future__ import annotations

import logging
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from fwspp.schemas import OccurrenceRecord
from fwspp.services.retry import DEFAULT_POLICY, Failure, RetryPolicy

if TYPE_CHECKING:
    from fwspp.geometry import PropertyGeometry

logger = logging.getLogger(__name__)

# =============================================================================
# Result type
# =============================================================================


def failure_reason(failure: Failure) -> str:
    return f"{failure.reason} after {failure.attempts} attempt(s)"


class FetchStatus(StrEnum):
    OK = "ok"
    EMPTY = "empty"
    FAILED = "failed"


@dataclass
class SourceResult:
    """What one adapter returned for one property.

    ``records`` and ``media`` are only populated for ``OK``; ``error`` only
    for ``FAILED``.  ``meta`` carries request metadata such as the pre-query
    record count.  ``failed_batches`` or ``partial`` in ``meta`` mark an
    ``OK`` result that is missing records because a later request failed.
    """

    source: str
    status: FetchStatus
    records: list[OccurrenceRecord] = field(default_factory=list)
    media: list[str] = field(default_factory=list)
    meta: dict[str, Any] = field(default_factory=dict)
    error: str | None = None

    @classmethod
    def ok(
        cls,
        source: str,
        records: list[OccurrenceRecord],
        media: list[str] | None = None,
        **meta: Any,
    ) -> SourceResult:
        if not records:
            return cls.empty(source, **meta)
        return cls(source, FetchStatus.OK, records=records, media=media or [], meta=meta)

    @classmethod
    def empty(cls, source: str, **meta: Any) -> SourceResult:
        return cls(source, FetchStatus.EMPTY, meta=meta)

    @classmethod
    def failed(cls, source: str, error: Failure | str, **meta: Any) -> SourceResult:
        reason = failure_reason(error) if isinstance(error, Failure) else error
        return cls(source, FetchStatus.FAILED, meta=meta, error=reason)

    @property
    def is_failed(self) -> bool:
        return self.status is FetchStatus.FAILED

    @property
    def partial(self) -> str | None:
        """Why an ``OK`` result is incomplete; None when nothing was lost."""
        failed = self.meta.get("failed_batches")
        if failed:
            return f"sub-queries {', '.join(str(i) for i in failed)} failed"
        return self.meta.get("partial")


# =============================================================================
# Adapter interface
# =============================================================================


class OccurrenceSource(ABC):
    """A repository that can return occurrence records for a spatial region.

    Subclasses translate :class:`PropertyGeometry` into the repository's own
    query shape and normalize its rows into :class:`OccurrenceRecord`.
    ``fetch`` must not raise for network trouble; exhausted retries come
    back as ``SourceResult.failed``.
    """

    name: str = ""

    def __init__(self, policy: RetryPolicy = DEFAULT_POLICY) -> None:
        self.policy = policy

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"

    @abstractmethod
    def fetch(self, geom: PropertyGeometry, timeout: float) -> SourceResult:
        """Retrieve and normalize the records for ``geom``."""


# =============================================================================
# Normalization helpers
# =============================================================================


def to_float(value: Any) -> float | None:
    """Parse a numeric field; None for missing, blank or non-finite values."""
    if value is None or value == "":
        return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    return result if math.isfinite(result) else None


def to_int(value: Any) -> int | None:
    f = to_float(value)
    return int(f) if f is not None else None


def clean_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def as_url(value: Any) -> str | None:
    """An http(s) URL, or None; Darwin Core ID fields often hold URNs or codes."""
    text = clean_str(value)
    return text if text and text.startswith(("http://", "https://")) else None


def valid_coordinates(lon: float | None, lat: float | None) -> bool:
    """Coordinates present, in range, and not the 0,0 null-island placeholder."""
    if lon is None or lat is None:
        return False
    if not (-180 <= lon <= 180 and -90 <= lat <= 90):  # noqa: PLR2004
        return False
    return not (lon == 0 and lat == 0)


def make_record(
    *,
    source: str,
    scientific_name: Any,
    lon: Any,
    lat: Any,
    loc_unc_m: Any = None,
    year: Any = None,
    month: Any = None,
    day: Any = None,
    evidence: str | None = None,
    catalog_number: Any = None,
    media: bool = False,
) -> OccurrenceRecord | None:
    """Build a normalized record, or None if it has no usable name or coordinates."""
    name = clean_str(scientific_name)
    lon_f, lat_f = to_float(lon), to_float(lat)
    if not name or not valid_coordinates(lon_f, lat_f):
        return None

    month_i, day_i = to_int(month), to_int(day)
    try:
        return OccurrenceRecord(
            scientific_name=" ".join(name.split()),
            lon=lon_f,
            lat=lat_f,
            bio_repo=source,
            loc_unc_m=to_float(loc_unc_m),
            year=to_int(year),
            month=month_i if month_i and 1 <= month_i <= 12 else None,  # noqa: PLR2004
            day=day_i if day_i and 1 <= day_i <= 31 else None,  # noqa: PLR2004
            evidence=evidence,
            catalog_number=clean_str(catalog_number),
            media=media,
        )
    except ValidationError as exc:
        logger.debug("%s: dropping unparseable record %r: %s", source, name, exc)
        return None


def split_iso_date(value: Any) -> tuple[int | None, int | None, int | None]:
    """(year, month, day) from an ISO-ish date string such as ``2015-06-03T00:00:00``."""
    text = clean_str(value)
    if not text:
        return (None, None, None)
    parts = text[:10].split("-")
    year = to_int(parts[0]) if len(parts) > 0 else None
    month = to_int(parts[1]) if len(parts) > 1 else None
    day = to_int(parts[2]) if len(parts) > 2 else None  # noqa: PLR2004
    return (year, month, day)
