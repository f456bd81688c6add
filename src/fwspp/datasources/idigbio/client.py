"""
iDigBio search API client.

Records are selected with a ``geo_bounding_box`` record query on the
``geopoint`` index term.

API docs: https://github.com/iDigBio/idigbio-search-api/wiki
"""

from __future__ import annotations

import json
from typing import Any

from fwspp.geometry import BoundingBox
from fwspp.services.http import session

SEARCH_RECORDS = "https://search.idigbio.org/v2/search/records"
RECORD_PAGE = "https://www.idigbio.org/portal/records/{uuid}"
MEDIA_PAGE = "https://www.idigbio.org/portal/mediarecords/{uuid}"

PAGE_SIZE = 5000  # API maximum per request
MAX_ITEMS = 100_000


def record_query(bbox: BoundingBox) -> dict[str, Any]:
    """``rq`` selecting records whose geopoint falls in the bounding box."""
    return {
        "geopoint": {
            "type": "geo_bounding_box",
            "top_left": {"lat": bbox.max_lat, "lon": bbox.min_lon},
            "bottom_right": {"lat": bbox.min_lat, "lon": bbox.max_lon},
        }
    }


def search_records(
    bbox: BoundingBox, offset: int, limit: int = PAGE_SIZE, *, timeout: float
) -> dict[str, Any]:
    """GET one page of record search results (``itemCount`` + ``items``)."""
    params = {"rq": json.dumps(record_query(bbox)), "offset": offset, "limit": limit}
    resp = session.get(SEARCH_RECORDS, params=params, timeout=timeout)
    resp.raise_for_status()
    data: dict[str, Any] = resp.json()
    return data
