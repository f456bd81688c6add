"""
GBIF occurrence API client.

Low-level requests against ``/occurrence/search``: a count-only query
(``limit=0``) and offset-paginated record retrieval.  Callers wrap these in
the retry policy.

API docs: https://www.gbif.org/developer/occurrence
"""

from __future__ import annotations

from typing import Any

from fwspp.services.http import session

API_BASE = "https://api.gbif.org/v1"
OCCURRENCE_SEARCH = f"{API_BASE}/occurrence/search"
OCCURRENCE_PAGE = "https://www.gbif.org/occurrence/{key}"

PAGE_SIZE = 300  # API maximum per page
SPLIT_THRESHOLD = 125_000  # split temporally above this many records
QUERY_LIMIT = 100_000  # search API rejects offset + limit beyond this


def _params(geometry: str, year: str | None = None) -> dict[str, Any]:
    params: dict[str, Any] = {"geometry": geometry, "hasCoordinate": "true"}
    if year:
        params["year"] = year
    return params


def count_occurrences(geometry: str, year: str | None = None, *, timeout: float) -> int:
    """Number of georeferenced occurrences inside ``geometry`` (optionally for ``year``)."""
    params = {**_params(geometry, year), "limit": 0}
    resp = session.get(OCCURRENCE_SEARCH, params=params, timeout=timeout)
    resp.raise_for_status()
    return int(resp.json().get("count", 0))


def search_page(
    geometry: str,
    offset: int,
    limit: int = PAGE_SIZE,
    year: str | None = None,
    *,
    timeout: float,
) -> dict[str, Any]:
    """GET one page of occurrence search results."""
    params = {**_params(geometry, year), "offset": offset, "limit": limit}
    resp = session.get(OCCURRENCE_SEARCH, params=params, timeout=timeout)
    resp.raise_for_status()
    data: dict[str, Any] = resp.json()
    return data
