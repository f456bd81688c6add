"""EcoEngine observation retrieval by bounding box."""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import TYPE_CHECKING, Any

from fwspp.analysis.evidence import select_evidence
from fwspp.datasources.base import (
    OccurrenceSource,
    SourceResult,
    clean_str,
    failure_reason,
    make_record,
    split_iso_date,
)
from fwspp.datasources.ecoengine import client
from fwspp.services.retry import (
    DEFAULT_POLICY,
    Failure,
    RetryPolicy,
    call_with_retry,
    retry_unless_empty,
)

if TYPE_CHECKING:
    from fwspp.geometry import PropertyGeometry
    from fwspp.schemas import OccurrenceRecord

logger = logging.getLogger(__name__)


def parse_observation(obs: dict[str, Any]) -> OccurrenceRecord | None:
    """Normalize one EcoEngine observation (point in ``geojson.coordinates``)."""
    coords = (obs.get("geojson") or {}).get("coordinates") or [None, None]
    year, month, day = split_iso_date(obs.get("begin_date"))
    media_url = clean_str(obs.get("media_url"))
    catalog = obs.get("catalog_number")
    evidence = select_evidence(
        media_url=media_url,
        record_url=clean_str(obs.get("remote_resource")) or clean_str(obs.get("url")),
        catalog_number=clean_str(catalog),
    )
    return make_record(
        source=EcoEngineSource.name,
        scientific_name=obs.get("scientific_name"),
        lon=coords[0] if len(coords) > 0 else None,
        lat=coords[1] if len(coords) > 1 else None,
        loc_unc_m=obs.get("coordinate_uncertainty_in_meters"),
        year=year,
        month=month,
        day=day,
        evidence=evidence,
        catalog_number=catalog,
        media=media_url is not None,
    )


class EcoEngineSource(OccurrenceSource):
    """Berkeley Ecoinformatics Engine, queried by bounding box string.

    Every error except the zero-count signal is retried, 4xx responses included.
    """

    name = "EcoEngine"

    def __init__(
        self,
        policy: RetryPolicy = DEFAULT_POLICY,
        *,
        page_size: int = client.PAGE_SIZE,
    ) -> None:
        super().__init__(replace(policy, classify=retry_unless_empty))
        self.page_size = page_size

    def fetch(self, geom: PropertyGeometry, timeout: float) -> SourceResult:
        logger.info("Querying the Berkeley Ecoinformatics Engine...")
        url: str | None = client.OBSERVATIONS
        params: dict[str, Any] | None = client.first_page_params(geom.bbox, self.page_size)
        records: list[OccurrenceRecord] = []
        media: list[str] = []
        partial: str | None = None
        count = 0
        while url:
            page = call_with_retry(
                client.get_page, url, params, timeout=timeout, policy=self.policy, label=self.name
            )
            if page is None:
                break
            if isinstance(page, Failure):
                if not records:
                    return SourceResult.failed(self.name, page)
                partial = f"stopped after {len(records)} records: {failure_reason(page)}"
                logger.warning("%s: keeping %d records retrieved before failure", self.name, len(records))
                break
            count = int(page.get("count") or count)
            for obs in page.get("results") or []:
                parsed = parse_observation(obs)
                if parsed is not None:
                    records.append(parsed)
                    if obs.get("media_url"):
                        media.append(obs["media_url"])
            url, params = page.get("next"), None

        return SourceResult.ok(self.name, records, media, count=count, partial=partial)
