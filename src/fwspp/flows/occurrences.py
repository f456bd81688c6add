"""
Prefect flow for retrieving species occurrences on USFWS properties.

For each property: load boundary -> buffer -> query every repository
(concurrently) -> merge -> reconcile (spatial filter + scrub) -> link to ITIS
-> export.  A property that fails, or a repository that fails for a property,
never stops the rest of the run.

Run locally:
    python -m fwspp.flows.occurrences "OKEFENOKEE NATIONAL WILDLIFE REFUGE"

Run with Prefect dashboard:
    prefect server start &
    python -m fwspp.flows.occurrences "OKEFENOKEE NATIONAL WILDLIFE REFUGE"
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

from prefect import flow, task
from prefect.cache_policies import NONE
from shapely.errors import GEOSException

from fwspp.analysis import link_records, reconcile
from fwspp.boundaries import BoundaryDataset, BoundaryNotFoundError, shorten_name
from fwspp.config import get_settings
from fwspp.datasources.base import FetchStatus, OccurrenceSource, SourceResult
from fwspp.datasources.itis import ITISResolver, TaxonMatch
from fwspp.registry import registry
from fwspp.schemas import OccurrenceRecord, PropertyResult, PropertyStatus, QueryConfig
from fwspp.store import OccurrenceStore

if TYPE_CHECKING:
    from fwspp.geometry import PropertyGeometry

logger = logging.getLogger(__name__)

_settings = get_settings()

# Boundary dataset and export store; swapped out in tests
boundaries = BoundaryDataset(_settings.boundary_dir)
store = OccurrenceStore(_settings.export_dir)

FanOut = Callable[[Sequence[OccurrenceSource], "PropertyGeometry", float], list[SourceResult]]
Resolver = Callable[[str], TaxonMatch | None]


# =============================================================================
# Fan-out / fan-in
# =============================================================================


def safe_fetch(source: OccurrenceSource, geom: PropertyGeometry, timeout: float) -> SourceResult:
    """Run one adapter; unexpected errors become a failed result for that source only."""
    try:
        return source.fetch(geom, timeout)
    except Exception as exc:  # noqa: BLE001
        logger.exception("%s query raised for %s", source.name, geom.name)
        return SourceResult.failed(source.name, f"{type(exc).__name__}: {exc}")


def fan_out_threads(
    sources: Sequence[OccurrenceSource], geom: PropertyGeometry, timeout: float
) -> list[SourceResult]:
    """Query every source concurrently in a thread pool; results in source order."""
    if not sources:
        return []
    with ThreadPoolExecutor(max_workers=len(sources)) as pool:
        futures = [pool.submit(safe_fetch, s, geom, timeout) for s in sources]
        return [f.result() for f in futures]


def merge_results(
    results: Sequence[SourceResult],
) -> tuple[list[OccurrenceRecord], list[str], dict[str, int]]:
    """Concatenate records; record count per repository.

    Notes name every failed repository and every repository whose records are
    incomplete because some of its sub-queries or pages failed.
    """
    records: list[OccurrenceRecord] = []
    notes: list[str] = []
    counts: dict[str, int] = {}
    for res in results:
        counts[res.source] = len(res.records)
        if res.status is FetchStatus.FAILED:
            note = f"{res.source}: {res.error}"
            logger.warning(note)
            notes.append(note)
            continue
        if res.partial:
            note = f"{res.source}: partial results ({res.partial})"
            logger.warning(note)
            notes.append(note)
        records.extend(res.records)
    return records, notes, counts


# =============================================================================
# Per-property pipeline
# =============================================================================


def retrieve_property(
    name: str,
    config: QueryConfig,
    sources: Sequence[OccurrenceSource],
    boundary_data: BoundaryDataset,
    resolver: Resolver | None = None,
    fan_out: FanOut = fan_out_threads,
) -> PropertyResult:
    """Run the whole pipeline for one property and return its terminal state."""
    try:
        geom = boundary_data.property_geometry(name, config.boundary_kind, config.buffer_km)
    except (BoundaryNotFoundError, FileNotFoundError, ValueError, GEOSException) as exc:
        logger.error("Boundary unavailable for %s: %s", name, exc)
        return PropertyResult(name=name, status=PropertyStatus.FAILED, error=str(exc))

    results = fan_out(sources, geom, config.timeout)
    raw, notes, counts = merge_results(results)

    if results and all(r.is_failed for r in results):
        return PropertyResult(
            name=name,
            status=PropertyStatus.FAILED,
            notes=notes,
            error="All repository queries failed",
            source_counts=counts,
        )

    records = reconcile(raw, geom, config.scrub)
    if not records:
        return PropertyResult(
            name=name, status=PropertyStatus.NO_RECORDS, notes=notes, source_counts=counts
        )

    if config.link_taxonomy:
        records = link_records(records, resolver or ITISResolver())

    return PropertyResult(
        name=name,
        status=PropertyStatus.OK,
        records=records,
        notes=notes,
        source_counts=counts,
    )


# =============================================================================
# Prefect tasks
# =============================================================================


@task(name="query-repository", cache_policy=NONE)
def query_repository(
    source: OccurrenceSource, geom: PropertyGeometry, timeout: float
) -> SourceResult:
    """Query one repository for one property."""
    return safe_fetch(source, geom, timeout)


def fan_out_tasks(
    sources: Sequence[OccurrenceSource], geom: PropertyGeometry, timeout: float
) -> list[SourceResult]:
    """Submit one Prefect task per repository and wait for all of them."""
    futures = [query_repository.submit(s, geom, timeout) for s in sources]
    return [f.result() for f in futures]


@task(name="export-property", cache_policy=NONE)
def export_property(result: PropertyResult, config: QueryConfig) -> str:
    """Write a property's records via the store; returns the table path."""
    path = store.write_property(
        result.name,
        result.records,
        linked=config.link_taxonomy,
        source=",".join(sorted(result.source_counts)),
        valid_until=datetime.now(UTC) + timedelta(days=_settings.export_ttl_days),
        boundary=config.boundary_kind.value,
        scrubbing=config.scrub.value,
        itis=config.link_taxonomy,
        buffer_km=config.buffer_km,
        timeout=config.timeout,
        source_counts=result.source_counts,
        notes=result.notes,
    )
    return str(path)


# =============================================================================
# Flow
# =============================================================================


@flow(name="fws-occurrences", log_prints=True)
def fws_occ(
    properties: list[str],
    config: QueryConfig | None = None,
    repositories: list[str] | None = None,
    skip_fresh: bool = False,
) -> dict[str, PropertyResult]:
    """
    Retrieve, reconcile and export occurrence records for each property.

    Args:
        properties: Property names as they appear in the boundary dataset
            (see ``fwspp find``).
        config: Boundary kind, scrub level, ITIS linking, buffer, timeout.
        repositories: Subset of repositories to query (default: all six).
        skip_fresh: Skip properties whose export hasn't expired yet.

    Returns:
        Property name -> PropertyResult (ok, no_records, or failed).
    """
    if not properties:
        msg = "You must provide valid property names to query. See `fwspp find`."
        raise ValueError(msg)
    config = config or QueryConfig(timeout=_settings.timeout)
    logging.getLogger("fwspp").setLevel(logging.INFO if config.verbose else logging.WARNING)

    sources = registry.build_sources(repositories)
    resolver = ITISResolver() if config.link_taxonomy else None

    out: dict[str, PropertyResult] = {}
    for name in properties:
        label = shorten_name(name)
        if skip_fresh and store.is_fresh(name):
            print(f"Export for {label} is fresh, skipping.")
            continue

        print(f"Processing {label}...")
        try:
            result = retrieve_property(
                name, config, sources, boundaries, resolver=resolver, fan_out=fan_out_tasks
            )
        except Exception as exc:  # noqa: BLE001
            logger.exception("Occurrence retrieval raised for %s", name)
            result = PropertyResult(
                name=name, status=PropertyStatus.FAILED, error=f"{type(exc).__name__}: {exc}"
            )
        for note in result.notes:
            print(f"  {note}")

        if result.status is PropertyStatus.OK:
            try:
                path = export_property(result, config)
            except Exception as exc:  # noqa: BLE001
                logger.exception("Export raised for %s", name)
                result = result.model_copy(
                    update={
                        "status": PropertyStatus.FAILED,
                        "error": f"Export failed: {type(exc).__name__}: {exc}",
                    }
                )
            else:
                print(f"Saved {len(result.records)} records for {label} to {path}")

        out[name] = result
        if result.status is PropertyStatus.FAILED:
            print(f"fws_occ failed for {label}: {result.error}")
        elif result.status is PropertyStatus.NO_RECORDS:
            print(f"No valid observations found for {label}")

    return out


if __name__ == "__main__":
    results = fws_occ(sys.argv[1:])
    print(f"Flow complete: { {k: v.status.value for k, v in results.items()} }")
