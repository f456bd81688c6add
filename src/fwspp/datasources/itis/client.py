"""
ITIS (Integrated Taxonomic Information System) JSON web service client.

ITIS sometimes wraps its JSON in a ``{"_text": "<json>"}`` envelope and
returns ``[null]`` for empty lists; the helpers here smooth both over.

API docs: https://www.itis.gov/ws_description.html
"""

from __future__ import annotations

import json
from typing import Any

from fwspp.services.http import session

BASE = "https://www.itis.gov/ITISWebService/jsonservice"

DEFAULT_TIMEOUT = 60


def _coerce_json(data: Any) -> Any:
    if isinstance(data, dict) and isinstance(data.get("_text"), str):
        try:
            return json.loads(data["_text"])
        except ValueError:
            return data
    return data


def _get(endpoint: str, params: dict[str, Any], timeout: float = DEFAULT_TIMEOUT) -> dict[str, Any]:
    resp = session.get(f"{BASE}/{endpoint}", params=params, timeout=timeout)
    resp.raise_for_status()
    try:
        data = resp.json()
    except ValueError:
        data = {"_text": resp.text}
    result = _coerce_json(data)
    return result if isinstance(result, dict) else {}


def _entries(value: Any) -> list[dict[str, Any]]:
    """A list of dict entries, dropping ITIS's ``null`` placeholders."""
    if isinstance(value, dict):
        value = [value]
    if not isinstance(value, list):
        return []
    return [v for v in value if isinstance(v, dict)]


# --- Endpoints ---


def search_by_scientific_name(name: str, timeout: float = DEFAULT_TIMEOUT) -> list[dict[str, Any]]:
    """Candidate names (``tsn``, ``combinedName``, ``author``, ``kingdom``)."""
    data = _get("searchByScientificName", {"srchKey": name}, timeout)
    return _entries(data.get("scientificNames"))


def get_accepted_names(tsn: int | str, timeout: float = DEFAULT_TIMEOUT) -> list[dict[str, Any]]:
    """Accepted names for ``tsn``; empty when ``tsn`` is itself accepted."""
    data = _get("getAcceptedNamesFromTSN", {"tsn": tsn}, timeout)
    return _entries(data.get("acceptedNames"))


def get_full_record(tsn: int | str, timeout: float = DEFAULT_TIMEOUT) -> dict[str, Any]:
    return _get("getFullRecordFromTSN", {"tsn": tsn}, timeout)


def get_full_hierarchy(tsn: int | str, timeout: float = DEFAULT_TIMEOUT) -> list[dict[str, Any]]:
    data = _get("getFullHierarchyFromTSN", {"tsn": tsn}, timeout)
    return _entries(data.get("hierarchyList"))


def get_common_names(tsn: int | str, timeout: float = DEFAULT_TIMEOUT) -> list[dict[str, Any]]:
    data = _get("getCommonNamesFromTSN", {"tsn": tsn}, timeout)
    return _entries(data.get("commonNames"))
