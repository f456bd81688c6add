"""BISON occurrence retrieval: count, then offset-paged Solr queries."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from fwspp.analysis.evidence import select_evidence
from fwspp.datasources.base import (
    OccurrenceSource,
    SourceResult,
    as_url,
    clean_str,
    make_record,
    split_iso_date,
)
from fwspp.datasources.bison import client
from fwspp.datasources.splitting import QueryBatch, offset_batches, run_batches
from fwspp.services.retry import DEFAULT_POLICY, Failure, RetryPolicy, call_with_retry

if TYPE_CHECKING:
    from fwspp.geometry import PropertyGeometry
    from fwspp.schemas import OccurrenceRecord

logger = logging.getLogger(__name__)


def parse_document(doc: dict[str, Any]) -> OccurrenceRecord | None:
    """Normalize one BISON Solr document."""
    year, month, day = split_iso_date(doc.get("eventDate"))
    media_url = as_url(doc.get("associatedMedia"))
    catalog = doc.get("catalogNumber")
    evidence = select_evidence(
        media_url=media_url,
        record_url=as_url(doc.get("occurrenceID")),
        collection_url=as_url(doc.get("collectionID")),
        institution_url=as_url(doc.get("institutionID")),
        catalog_number=clean_str(catalog),
    )
    return make_record(
        source=BISONSource.name,
        scientific_name=doc.get("ITISscientificName") or doc.get("providedScientificName"),
        lon=doc.get("decimalLongitude"),
        lat=doc.get("decimalLatitude"),
        loc_unc_m=doc.get("coordinateUncertaintyInMeters"),
        year=doc.get("year") or year,
        month=month,
        day=day,
        evidence=evidence,
        catalog_number=catalog,
        media=media_url is not None,
    )


class BISONSource(OccurrenceSource):
    """Biodiversity Information Serving Our Nation, queried by padded bounding box."""

    name = "BISON"

    def __init__(
        self,
        policy: RetryPolicy = DEFAULT_POLICY,
        *,
        page_size: int = client.PAGE_SIZE,
    ) -> None:
        super().__init__(policy)
        self.page_size = page_size

    def fetch(
        self, geom: PropertyGeometry, timeout: float, count: int | None = None
    ) -> SourceResult:
        """Retrieve records; ``count`` skips the count query when already known."""
        logger.info("Querying Biodiversity Information Serving Our Nation (BISON)...")
        bbox = geom.bbox
        if count is None:
            n = call_with_retry(
                client.count_occurrences,
                bbox,
                timeout=timeout,
                policy=self.policy,
                label=f"{self.name} count",
            )
            if isinstance(n, Failure):
                return SourceResult.failed(self.name, n)
            count = n or 0
        if count == 0:
            return SourceResult.empty(self.name, count=0)

        def fetch_batch(batch: QueryBatch) -> tuple[list[OccurrenceRecord], list[str]] | Failure | None:
            body = call_with_retry(
                client.select,
                bbox,
                batch.offset,
                batch.limit,
                timeout=timeout,
                policy=self.policy,
                label=self.name,
            )
            if body is None or isinstance(body, Failure):
                return body
            docs = body.get("docs") or []
            records = [r for r in (parse_document(d) for d in docs) if r is not None]
            media = [m for m in (as_url(d.get("associatedMedia")) for d in docs) if m]
            return records, media

        acc = run_batches(offset_batches(count, self.page_size), fetch_batch)
        if acc.failures and not acc.merged_batches:
            return SourceResult.failed(self.name, next(iter(acc.failures.values())), count=count)
        meta: dict[str, Any] = {"count": count}
        if acc.failures:
            meta["failed_batches"] = sorted(acc.failures)
        return SourceResult.ok(self.name, acc.records, acc.media, **meta)
