"""
Splitting queries that exceed a repository's per-request record ceiling.

Two partitioning schemes:

- temporal: year ranges walked back from the current year, sized from
  cumulative record counts (GBIF),
- offset: fixed-size pages ``0, cap, 2*cap, ...`` (BISON Solr).

Sub-queries run sequentially and their results are merged into a
:class:`BatchAccumulator`.  Duplicates across partition boundaries are left
for the scrubbing step.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Any

from fwspp.schemas import OccurrenceRecord
from fwspp.services.retry import Failure

logger = logging.getLogger(__name__)

#: Oldest year covered by temporal partitions.
HISTORICAL_FLOOR_YEAR = 1776

#: Break a partition once its cumulative count is within this many records of the cutoff.
DEFAULT_HEADROOM = 25_000

# =============================================================================
# Batches and accumulation
# =============================================================================


@dataclass(frozen=True)
class YearRange:
    """Inclusive range of years."""

    start: int
    end: int

    def as_param(self) -> str:
        """``start,end`` as GBIF's ``year`` parameter expects."""
        return f"{self.start},{self.end}"

    def __str__(self) -> str:
        return f"{self.start} - {self.end}"


@dataclass(frozen=True)
class QueryBatch:
    """Parameters for one sub-query."""

    index: int
    years: YearRange | None = None
    offset: int | None = None
    limit: int | None = None


@dataclass
class BatchAccumulator:
    """Merged results of a split query.

    Merging is idempotent by batch index: a batch that has already been
    merged is ignored, so a sub-query result can never be counted twice.
    """

    records: list[OccurrenceRecord] = field(default_factory=list)
    media: list[str] = field(default_factory=list)
    failures: dict[int, Failure] = field(default_factory=dict)
    _merged: set[int] = field(default_factory=set)

    def merge(
        self,
        batch: QueryBatch,
        records: Iterable[OccurrenceRecord],
        media: Iterable[str] = (),
    ) -> bool:
        """Add a batch's records; returns False if the batch was already merged."""
        if batch.index in self._merged:
            return False
        self._merged.add(batch.index)
        self.records.extend(records)
        self.media.extend(media)
        return True

    def fail(self, batch: QueryBatch, failure: Failure) -> None:
        self.failures[batch.index] = failure

    @property
    def merged_batches(self) -> int:
        return len(self._merged)


@dataclass(frozen=True)
class PartialBatch:
    """Records a sub-query retrieved before one of its pages failed."""

    records: list[OccurrenceRecord]
    media: list[str]
    failure: Failure


BatchFetch = Callable[
    [QueryBatch], "tuple[list[OccurrenceRecord], list[str]] | PartialBatch | Failure | None"
]


def run_batches(batches: Iterable[QueryBatch], fetch: BatchFetch) -> BatchAccumulator:
    """Execute sub-queries in order and merge their results.

    ``fetch`` returns ``(records, media)``, ``None`` for no records, a
    :class:`PartialBatch`, or a :class:`Failure`.  Failed batches are recorded
    and skipped; a partial batch is merged and also recorded as failed.
    """
    acc = BatchAccumulator()
    for batch in batches:
        result = fetch(batch)
        if isinstance(result, Failure):
            logger.warning("Sub-query %d failed: %s", batch.index, result)
            acc.fail(batch, result)
            continue
        if isinstance(result, PartialBatch):
            logger.warning(
                "Sub-query %d kept %d records before failing: %s",
                batch.index,
                len(result.records),
                result.failure,
            )
            acc.merge(batch, result.records, result.media)
            acc.fail(batch, result.failure)
            continue
        records, media = result if result is not None else ([], [])
        acc.merge(batch, records, media)
    return acc


# =============================================================================
# Offset pagination
# =============================================================================


def offset_batches(total: int, cap: int) -> list[QueryBatch]:
    """Pages of ``cap`` records covering ``total``: ``ceil(total / cap)`` batches."""
    if cap <= 0:
        msg = f"cap must be positive, got {cap}"
        raise ValueError(msg)
    n = math.ceil(max(total, 0) / cap)
    return [QueryBatch(index=i, offset=i * cap, limit=cap) for i in range(n)]


# =============================================================================
# Temporal partitioning
# =============================================================================


@dataclass
class SplitPlan:
    """Year ranges (oldest first) with their estimated record counts."""

    ranges: list[YearRange]
    estimates: dict[YearRange, int] = field(default_factory=dict)
    oversized: list[YearRange] = field(default_factory=list)

    def batches(self) -> list[QueryBatch]:
        return [QueryBatch(index=i, years=r) for i, r in enumerate(self.ranges)]


def temporal_partitions(
    total: int,
    cap: int,
    count_since: Callable[[int], int],
    current_year: int,
    floor_year: int = HISTORICAL_FLOOR_YEAR,
    headroom: int = DEFAULT_HEADROOM,
) -> SplitPlan:
    """
    Partition ``[floor_year, current_year]`` so each range holds under ``cap`` records.

    Walks backward from ``current_year``; ``count_since(year)`` must return the
    number of records in ``[year, current_year]``.  The k-th break is placed at
    the first year whose cumulative count exceeds ``k * cap - headroom``.  The
    oldest range is always open back to ``floor_year``.

    Ranges or single years that still exceed ``cap`` are listed in
    ``SplitPlan.oversized`` and logged; they are never silently truncated.
    """
    full = YearRange(floor_year, current_year)
    n_groups = math.ceil(total / cap) if cap > 0 else 1
    if n_groups <= 1:
        return SplitPlan(ranges=[full], estimates={full: total})

    cache: dict[int, int] = {}

    def since(year: int) -> int:
        if year not in cache:
            cache[year] = count_since(year)
        return cache[year]

    breaks: list[int] = []
    oversized: list[YearRange] = []
    previous = 0
    for year in range(current_year, floor_year, -1):
        n = since(year)
        if n - previous > cap:
            oversized.append(YearRange(year, year))
        previous = n
        cutoff = cap * (len(breaks) + 1)
        if n > cutoff - headroom:
            breaks.append(year)
        if len(breaks) == n_groups - 1:
            break

    starts = [floor_year, *reversed(breaks)]
    ends = [*(b - 1 for b in reversed(breaks)), current_year]
    ranges = [YearRange(s, e) for s, e in zip(starts, ends, strict=True)]

    estimates: dict[YearRange, int] = {}
    for r in ranges:
        newer = since(r.end + 1) if r.end < current_year else 0
        older_inclusive = total if r.start == floor_year else since(r.start)
        estimates[r] = older_inclusive - newer
        if estimates[r] > cap and r not in oversized:
            oversized.append(r)

    for r in oversized:
        logger.warning(
            "Records for %s (%s) exceed the per-query ceiling of %d; results may be incomplete.",
            r,
            "single year" if r.start == r.end else "partition",
            cap,
        )
    return SplitPlan(ranges=ranges, estimates=estimates, oversized=oversized)


def describe_plan(plan: SplitPlan) -> dict[str, Any]:
    """JSON-friendly summary of a plan for request metadata."""
    return {
        "ranges": [r.as_param() for r in plan.ranges],
        "estimates": {r.as_param(): n for r, n in plan.estimates.items()},
        "oversized": [r.as_param() for r in plan.oversized],
    }
