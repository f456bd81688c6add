"""AntWeb specimen retrieval: nested specimen records flattened into rows."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from fwspp.analysis.evidence import select_evidence
from fwspp.datasources.antweb import client
from fwspp.datasources.base import (
    OccurrenceSource,
    SourceResult,
    clean_str,
    make_record,
    split_iso_date,
)
from fwspp.services.retry import DEFAULT_POLICY, Failure, RetryPolicy, call_with_retry

if TYPE_CHECKING:
    from fwspp.geometry import PropertyGeometry
    from fwspp.schemas import OccurrenceRecord

logger = logging.getLogger(__name__)


def flatten(obj: dict[str, Any], prefix: str = "") -> dict[str, Any]:
    """Flatten nested dicts/lists into dotted keys (``geojson.coord.0``)."""
    flat: dict[str, Any] = {}
    for key, value in obj.items():
        name = f"{prefix}{key}"
        if isinstance(value, dict):
            flat.update(flatten(value, f"{name}."))
        elif isinstance(value, list):
            flat.update(flatten(dict(enumerate(value)), f"{name}."))
        else:
            flat[name] = value
    return flat


def image_links(specimen: dict[str, Any]) -> list[str]:
    """All image URLs attached to a specimen, in document order."""
    images = specimen.get("images")
    if not images:
        return []
    if isinstance(images, list):
        images = dict(enumerate(images))
    return [
        v
        for v in flatten(images).values()
        if isinstance(v, str) and v.startswith(("http://", "https://"))
    ]


def parse_specimen(specimen: dict[str, Any]) -> OccurrenceRecord | None:
    """Normalize one specimen; images are read before the record is flattened."""
    images = image_links(specimen)
    row = flatten({k: v for k, v in specimen.items() if k != "images"})

    catalog = clean_str(row.get("catalogNumber"))
    lat = row.get("decimalLatitude", row.get("geojson.coord.0"))
    lon = row.get("decimalLongitude", row.get("geojson.coord.1"))
    year, month, day = split_iso_date(row.get("dateCollected") or row.get("eventDate"))
    evidence = select_evidence(
        media_url=images[0] if images else None,
        record_url=client.SPECIMEN_PAGE.format(catalog=catalog) if catalog else None,
    )
    return make_record(
        source=AntWebSource.name,
        scientific_name=(row.get("scientific_name") or "").replace("_", " "),
        lon=lon,
        lat=lat,
        year=year,
        month=month,
        day=day,
        evidence=evidence,
        catalog_number=catalog,
        media=bool(images),
    )


class AntWebSource(OccurrenceSource):
    """AntWeb specimens, queried by bounding box with a fixed result cap."""

    name = "AntWeb"

    def __init__(
        self,
        policy: RetryPolicy = DEFAULT_POLICY,
        *,
        result_cap: int = client.RESULT_CAP,
    ) -> None:
        super().__init__(policy)
        self.result_cap = result_cap

    def fetch(self, geom: PropertyGeometry, timeout: float) -> SourceResult:
        logger.info("Querying AntWeb...")
        res = call_with_retry(
            client.search_specimens,
            geom.bbox,
            self.result_cap,
            timeout=timeout,
            policy=self.policy,
            label=self.name,
        )
        if isinstance(res, Failure):
            return SourceResult.failed(self.name, res)
        count = int((res or {}).get("count") or 0)
        if count == 0:
            return SourceResult.empty(self.name, count=0)

        meta: dict[str, Any] = {"count": count}
        if count > self.result_cap:
            logger.warning("Only first %d matching AntWeb records returned.", self.result_cap)
            meta["truncated"] = True

        specimens = (res or {}).get("specimens") or []
        records: list[OccurrenceRecord] = []
        media: list[str] = []
        for specimen in specimens[: self.result_cap]:
            media.extend(image_links(specimen))
            parsed = parse_specimen(specimen)
            if parsed is not None:
                records.append(parsed)
        return SourceResult.ok(self.name, records, media, **meta)
