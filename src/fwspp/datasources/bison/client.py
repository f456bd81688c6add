"""
BISON Solr client.

BISON (Biodiversity Information Serving Our Nation) exposes its occurrence
index as a Solr core; records are selected with lat/lon range filter queries.

API docs: https://bison.usgs.gov/doc/api.jsp
"""

from __future__ import annotations

from typing import Any

from fwspp.geometry import BoundingBox
from fwspp.services.http import session

SOLR_SELECT = "https://bison.usgs.gov/solr/occurrences/select"

BBOX_EPSILON = 0.00006  # pad so boundary-edge records survive float rounding
PAGE_SIZE = 125_000


def filter_queries(bbox: BoundingBox) -> list[str]:
    """Solr ``fq`` range filters for a (padded) bounding box."""
    b = bbox.padded(BBOX_EPSILON)
    return [
        f"decimalLatitude:[{b.min_lat} TO {b.max_lat}]",
        f"decimalLongitude:[{b.min_lon} TO {b.max_lon}]",
    ]


def select(bbox: BoundingBox, start: int, rows: int, *, timeout: float) -> dict[str, Any]:
    """GET /select with the bounding-box filters; returns the Solr ``response`` block."""
    params: dict[str, Any] = {
        "q": "*:*",
        "fq": filter_queries(bbox),
        "start": start,
        "rows": rows,
        "wt": "json",
    }
    resp = session.get(SOLR_SELECT, params=params, timeout=timeout)
    resp.raise_for_status()
    body: dict[str, Any] = resp.json().get("response", {})
    return body


def count_occurrences(bbox: BoundingBox, *, timeout: float) -> int:
    return int(select(bbox, 0, 0, timeout=timeout).get("numFound", 0))
