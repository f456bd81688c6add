"""iDigBio occurrence retrieval by geo bounding box."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from fwspp.analysis.evidence import select_evidence
from fwspp.datasources.base import (
    OccurrenceSource,
    SourceResult,
    as_url,
    failure_reason,
    make_record,
    split_iso_date,
)
from fwspp.datasources.idigbio import client
from fwspp.services.retry import DEFAULT_POLICY, Failure, RetryPolicy, call_with_retry

if TYPE_CHECKING:
    from fwspp.geometry import PropertyGeometry
    from fwspp.schemas import OccurrenceRecord

logger = logging.getLogger(__name__)


def media_links(item: dict[str, Any]) -> list[str]:
    terms = item.get("indexTerms") or {}
    return [client.MEDIA_PAGE.format(uuid=u) for u in terms.get("mediarecords") or []]


def parse_item(item: dict[str, Any]) -> OccurrenceRecord | None:
    """Normalize one iDigBio search item (``indexTerms`` plus raw ``data``)."""
    terms = item.get("indexTerms") or {}
    data = item.get("data") or {}
    point = terms.get("geopoint") or {}
    year, month, day = split_iso_date(terms.get("datecollected"))
    media = media_links(item)
    uuid = item.get("uuid") or terms.get("uuid")
    catalog = terms.get("catalognumber") or data.get("dwc:catalogNumber")
    evidence = select_evidence(
        media_url=media[0] if media else None,
        record_url=client.RECORD_PAGE.format(uuid=uuid) if uuid else None,
        collection_url=as_url(data.get("dwc:collectionID")),
        institution_url=as_url(data.get("dwc:institutionID")),
        catalog_number=catalog,
    )
    return make_record(
        source=IDigBioSource.name,
        scientific_name=data.get("dwc:scientificName") or terms.get("scientificname"),
        lon=point.get("lon"),
        lat=point.get("lat"),
        loc_unc_m=terms.get("coordinateuncertainty"),
        year=year,
        month=month,
        day=day,
        evidence=evidence,
        catalog_number=catalog,
        media=bool(media) or bool(terms.get("hasImage")),
    )


class IDigBioSource(OccurrenceSource):
    """Integrated Digitized Biocollections, queried by geo bounding box."""

    name = "iDigBio"

    def __init__(
        self,
        policy: RetryPolicy = DEFAULT_POLICY,
        *,
        max_items: int = client.MAX_ITEMS,
    ) -> None:
        super().__init__(policy)
        self.max_items = max_items

    def fetch(self, geom: PropertyGeometry, timeout: float) -> SourceResult:
        logger.info("Querying Integrated Digitized Biocollections (iDigBio)...")
        records: list[OccurrenceRecord] = []
        media: list[str] = []
        partial: str | None = None
        item_count = 0
        offset = 0
        while offset < self.max_items:
            page = call_with_retry(
                client.search_records,
                geom.bbox,
                offset,
                min(client.PAGE_SIZE, self.max_items - offset),
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
            items = (page or {}).get("items") or []
            item_count = int((page or {}).get("itemCount", 0))
            for item in items:
                media.extend(media_links(item))
                rec = parse_item(item)
                if rec is not None:
                    records.append(rec)
            offset += len(items)
            if not items or offset >= item_count:
                break

        if item_count > self.max_items:
            logger.warning(
                "Only first %d of %d matching iDigBio records returned.", self.max_items, item_count
            )
        return SourceResult.ok(self.name, records, media, count=item_count, partial=partial)
