"""
Berkeley Ecoinformatics Engine (EcoEngine) observations client.

EcoEngine answers an empty bounding-box query with an error whose text says
the observation count is not greater than 0.  That message is raised as
:class:`NoRecordsError` so the retry policy returns "no records" immediately;
every other error, 4xx included, is retried.

API docs: https://ecoengine.berkeley.edu/api/
"""

from __future__ import annotations

from typing import Any

from fwspp.geometry import BoundingBox
from fwspp.services.http import session
from fwspp.services.retry import NoRecordsError, SourceError

OBSERVATIONS = "https://ecoengine.berkeley.edu/api/observations/"

PAGE_SIZE = 10_000
ZERO_RECORDS_SIGNAL = "count not greater than 0"


def bbox_param(bbox: BoundingBox) -> str:
    """``min_lon,min_lat,max_lon,max_lat``."""
    return ",".join(str(v) for v in (bbox.min_lon, bbox.min_lat, bbox.max_lon, bbox.max_lat))


def first_page_params(bbox: BoundingBox, page_size: int = PAGE_SIZE) -> dict[str, Any]:
    return {
        "bbox": bbox_param(bbox),
        "page_size": page_size,
        "georeferenced": "True",
        "format": "json",
    }


def get_page(url: str, params: dict[str, Any] | None = None, *, timeout: float) -> dict[str, Any]:
    """GET one observations page; ``url`` is the endpoint or a ``next`` link."""
    resp = session.get(url, params=params, timeout=timeout)
    if resp.status_code >= 400:  # noqa: PLR2004
        if ZERO_RECORDS_SIGNAL in resp.text:
            raise NoRecordsError(resp.text.strip())
        resp.raise_for_status()
    data: dict[str, Any] = resp.json()
    if "detail" in data and "results" not in data:
        message = str(data["detail"])
        if ZERO_RECORDS_SIGNAL in message:
            raise NoRecordsError(message)
        raise SourceError(message)
    if int(data.get("count") or 0) == 0:
        raise NoRecordsError(f"Observations {ZERO_RECORDS_SIGNAL}")
    return data
