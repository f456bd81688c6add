"""
AntWeb API (v2) client.

A single bounding-box request returns at most ``RESULT_CAP`` specimens;
larger result sets are truncated by the service.

API docs: https://www.antweb.org/api.do
"""

from __future__ import annotations

from typing import Any

from fwspp.geometry import BoundingBox
from fwspp.services.http import session

API_BASE = "https://www.antweb.org/api/v2/"
SPECIMEN_PAGE = "https://www.antweb.org/specimen/{catalog}"

RESULT_CAP = 2000


def bbox_param(bbox: BoundingBox) -> str:
    """AntWeb's corner order: ``max_lat,max_lon,min_lat,min_lon``."""
    return ",".join(str(v) for v in (bbox.max_lat, bbox.max_lon, bbox.min_lat, bbox.min_lon))


def search_specimens(bbox: BoundingBox, limit: int = RESULT_CAP, *, timeout: float) -> dict[str, Any]:
    """GET specimens in the bounding box (``count`` + ``specimens``)."""
    params = {"bbox": bbox_param(bbox), "limit": limit}
    resp = session.get(API_BASE, params=params, timeout=timeout)
    resp.raise_for_status()
    data: dict[str, Any] = resp.json()
    return data
