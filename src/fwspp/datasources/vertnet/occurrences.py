"""VertNet occurrence retrieval by point and radius."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from fwspp.analysis.evidence import select_evidence
from fwspp.datasources.base import (
    OccurrenceSource,
    SourceResult,
    as_url,
    clean_str,
    failure_reason,
    make_record,
)
from fwspp.datasources.vertnet import client
from fwspp.services.retry import DEFAULT_POLICY, Failure, RetryPolicy, call_with_retry

if TYPE_CHECKING:
    from fwspp.geometry import PropertyGeometry
    from fwspp.schemas import OccurrenceRecord

logger = logging.getLogger(__name__)


def media_links(rec: dict[str, Any]) -> list[str]:
    """VertNet packs ``associatedmedia`` as a ``|``- or ``;``-separated string."""
    raw = clean_str(rec.get("associatedmedia"))
    if not raw:
        return []
    parts = raw.replace(";", "|").split("|")
    return [p.strip() for p in parts if p.strip().startswith(("http://", "https://"))]


def parse_record(rec: dict[str, Any]) -> OccurrenceRecord | None:
    """Normalize one VertNet record."""
    media = media_links(rec)
    catalog = rec.get("catalognumber")
    evidence = select_evidence(
        media_url=media[0] if media else None,
        record_url=clean_str(rec.get("references")),
        collection_url=as_url(rec.get("collectionid")),
        institution_url=as_url(rec.get("institutionid")),
        catalog_number=clean_str(catalog),
    )
    return make_record(
        source=VertNetSource.name,
        scientific_name=rec.get("scientificname"),
        lon=rec.get("decimallongitude"),
        lat=rec.get("decimallatitude"),
        loc_unc_m=rec.get("coordinateuncertaintyinmeters"),
        year=rec.get("year"),
        month=rec.get("month"),
        day=rec.get("day"),
        evidence=evidence,
        catalog_number=catalog,
        media=bool(media),
    )


class VertNetSource(OccurrenceSource):
    """VertNet, queried by the covering circle of the property."""

    name = "VertNet"

    def __init__(
        self,
        policy: RetryPolicy = DEFAULT_POLICY,
        *,
        limit: int = client.QUERY_LIMIT,
    ) -> None:
        super().__init__(policy)
        self.limit = limit

    def fetch(self, geom: PropertyGeometry, timeout: float) -> SourceResult:
        logger.info("Querying VertNet...")
        lon, lat = geom.center
        query = client.spatial_query(lat, lon, geom.radius_m)

        records: list[OccurrenceRecord] = []
        media: list[str] = []
        partial: str | None = None
        cursor: str | None = None
        seen = 0
        matching: Any = None
        while seen < self.limit:
            page = call_with_retry(
                client.search,
                query,
                min(client.PAGE_SIZE, self.limit - seen),
                cursor,
                timeout=timeout,
                policy=self.policy,
                label=self.name,
            )
            if isinstance(page, Failure):
                if not records:
                    return SourceResult.failed(self.name, page)
                partial = f"stopped after {len(records)} records: {failure_reason(page)}"
                logger.warning("%s: keeping %d records retrieved before failure", self.name, len(records))
                break
            recs = (page or {}).get("recs") or []
            matching = (page or {}).get("matching_records", matching)
            for rec in recs:
                media.extend(media_links(rec))
                parsed = parse_record(rec)
                if parsed is not None:
                    records.append(parsed)
            seen += len(recs)
            cursor = (page or {}).get("cursor")
            if not recs or not cursor:
                break

        return SourceResult.ok(
            self.name, records, media, count=matching, radius_m=geom.radius_m, partial=partial
        )
