"""GBIF occurrence retrieval by property polygon, with temporal query splitting."""

from __future__ import annotations

import logging
from datetime import date
from typing import TYPE_CHECKING, Any

from fwspp.analysis.evidence import select_evidence
from fwspp.datasources.base import (
    OccurrenceSource,
    SourceResult,
    as_url,
    failure_reason,
    make_record,
)
from fwspp.datasources.gbif import client
from fwspp.datasources.splitting import (
    PartialBatch,
    QueryBatch,
    describe_plan,
    run_batches,
    temporal_partitions,
)
from fwspp.services.retry import DEFAULT_POLICY, Failure, RetryPolicy, call_with_retry

if TYPE_CHECKING:
    from fwspp.geometry import PropertyGeometry
    from fwspp.schemas import OccurrenceRecord

logger = logging.getLogger(__name__)


def _partial_note(failures: dict[int, Failure], n_batches: int) -> str:
    first = failures[min(failures)]
    return f"{len(failures)} of {n_batches} sub-queries failed: {failure_reason(first)}"


class _CountFailed(Exception):
    def __init__(self, failure: Failure) -> None:
        super().__init__(str(failure))
        self.failure = failure


# =============================================================================
# Parsing
# =============================================================================


def media_links(row: dict[str, Any]) -> list[str]:
    """Identifiers of the media (photos, sound, video) attached to an occurrence."""
    links = []
    for m in row.get("media") or []:
        link = m.get("identifier") or m.get("references")
        if link:
            links.append(link)
    return links


def parse_occurrence(row: dict[str, Any]) -> OccurrenceRecord | None:
    """Normalize one GBIF occurrence; None if it lacks a name or coordinates."""
    media = media_links(row)
    key = row.get("key") or row.get("gbifID")
    record_url = row.get("references") or (client.OCCURRENCE_PAGE.format(key=key) if key else None)
    catalog = row.get("catalogNumber")
    evidence = select_evidence(
        media_url=media[0] if media else None,
        record_url=record_url,
        collection_url=as_url(row.get("collectionID")),
        institution_url=as_url(row.get("institutionID")),
        catalog_number=catalog,
    )
    return make_record(
        source=GBIFSource.name,
        scientific_name=row.get("species") or row.get("scientificName"),
        lon=row.get("decimalLongitude"),
        lat=row.get("decimalLatitude"),
        loc_unc_m=row.get("coordinateUncertaintyInMeters"),
        year=row.get("year"),
        month=row.get("month"),
        day=row.get("day"),
        evidence=evidence,
        catalog_number=catalog,
        media=bool(media),
    )


# =============================================================================
# Adapter
# =============================================================================


class GBIFSource(OccurrenceSource):
    """Global Biodiversity Information Facility, queried with the property WKT."""

    name = "GBIF"

    def __init__(
        self,
        policy: RetryPolicy = DEFAULT_POLICY,
        *,
        split_threshold: int = client.SPLIT_THRESHOLD,
        limit: int = client.QUERY_LIMIT,
        current_year: int | None = None,
    ) -> None:
        super().__init__(policy)
        self.split_threshold = split_threshold
        self.limit = limit
        self.current_year = current_year or date.today().year

    def _count(self, wkt: str, timeout: float, year: str | None = None) -> int | Failure:
        result = call_with_retry(
            client.count_occurrences,
            wkt,
            year,
            timeout=timeout,
            policy=self.policy,
            label=f"{self.name} count",
        )
        return 0 if result is None else result

    def _retrieve(
        self, wkt: str, timeout: float, year: str | None
    ) -> tuple[list[OccurrenceRecord], list[str]] | PartialBatch | Failure:
        """Page through one (sub-)query up to ``self.limit`` records.

        A failed page keeps whatever earlier pages returned as a
        :class:`PartialBatch`.
        """
        records: list[OccurrenceRecord] = []
        media: list[str] = []
        offset = 0
        end_of_records = False
        while offset < self.limit:
            page = call_with_retry(
                client.search_page,
                wkt,
                offset,
                min(client.PAGE_SIZE, self.limit - offset),
                year,
                timeout=timeout,
                policy=self.policy,
                label=self.name,
            )
            if isinstance(page, Failure):
                if offset == 0:
                    return page
                return PartialBatch(records, media, page)
            results = (page or {}).get("results") or []
            for row in results:
                media.extend(media_links(row))
                rec = parse_occurrence(row)
                if rec is not None:
                    records.append(rec)
            offset += len(results)
            end_of_records = not results or (page or {}).get("endOfRecords", True)
            if end_of_records:
                break
        if not end_of_records:
            logger.warning(
                "GBIF paging stopped at %d records (%s); later records were not retrieved.",
                offset,
                f"years {year}" if year else "all years",
            )
        return records, media

    def fetch(self, geom: PropertyGeometry, timeout: float) -> SourceResult:
        logger.info("Querying the Global Biodiversity Information Facility (GBIF)...")
        wkt = geom.wkt
        total = self._count(wkt, timeout)
        if isinstance(total, Failure):
            return SourceResult.failed(self.name, total)
        if total == 0:
            return SourceResult.empty(self.name, count=0)

        meta: dict[str, Any] = {"count": total}
        if total > self.split_threshold:
            logger.info("Splitting the GBIF query temporally to recover all records.")

            def count_since(year: int) -> int:
                n = self._count(wkt, timeout, f"{year},{self.current_year}")
                if isinstance(n, Failure):
                    raise _CountFailed(n)
                return n

            try:
                plan = temporal_partitions(
                    total, self.split_threshold, count_since, self.current_year
                )
            except _CountFailed as exc:
                return SourceResult.failed(self.name, exc.failure, **meta)
            batches = plan.batches()
            meta["split"] = describe_plan(plan)
        else:
            batches = [QueryBatch(index=0)]

        def fetch_batch(
            batch: QueryBatch,
        ) -> tuple[list[OccurrenceRecord], list[str]] | PartialBatch | Failure:
            year = batch.years.as_param() if batch.years else None
            if batch.years:
                logger.info("  Processing occurrence records from %s", batch.years)
            return self._retrieve(wkt, timeout, year)

        acc = run_batches(batches, fetch_batch)
        if acc.failures and not acc.merged_batches:
            first = next(iter(acc.failures.values()))
            return SourceResult.failed(self.name, first, **meta)
        if acc.failures:
            meta["failed_batches"] = sorted(acc.failures)
            meta["partial"] = _partial_note(acc.failures, len(batches))
        return SourceResult.ok(self.name, acc.records, acc.media, **meta)
