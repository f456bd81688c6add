"""
VertNet portal API client.

VertNet only supports spatial searches as a centre point plus radius, so the
radius is computed from the property geometry to cover it fully.  Results are
paged with an opaque cursor.

API docs: https://github.com/VertNet/webapp/wiki/The-API-search-function
"""

from __future__ import annotations

import json
from typing import Any

from fwspp.services.http import session

API_SEARCH = "https://api.vertnet-portal.org/api/search"

PAGE_SIZE = 1000  # API maximum per request
QUERY_LIMIT = 200_000


def spatial_query(lat: float, lon: float, radius_m: float) -> str:
    """VertNet ``q`` term for a point-radius search."""
    return f"lat:{lat:.6f} long:{lon:.6f} radius:{int(round(radius_m))}"


def search(
    query: str, limit: int = PAGE_SIZE, cursor: str | None = None, *, timeout: float
) -> dict[str, Any]:
    """GET one page (``recs``, ``cursor``, ``matching_records``)."""
    payload: dict[str, Any] = {"q": query, "l": limit}
    if cursor:
        payload["c"] = cursor
    resp = session.get(API_SEARCH, params={"q": json.dumps(payload)}, timeout=timeout)
    resp.raise_for_status()
    data: dict[str, Any] = resp.json()
    return data
