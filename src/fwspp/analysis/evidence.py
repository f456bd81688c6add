"""Choosing the URL that best substantiates an occurrence."""

from __future__ import annotations


def _first(*values: str | None) -> str | None:
    for v in values:
        if v and v.strip():
            return v.strip()
    return None


def select_evidence(
    *,
    media_url: str | None = None,
    record_url: str | None = None,
    collection_url: str | None = None,
    institution_url: str | None = None,
    catalog_number: str | None = None,
) -> str | None:
    """
    Pick the best evidence for a record, in order of preference:

    1. URL of the media (photo, audio, video) or of an observation with media,
    2. URL of the record in the original collection,
    3. URL of the collection, with the catalog number,
    4. URL of the institution housing the collection, with the catalog number.

    Returns None when none of these are available.
    """
    direct = _first(media_url, record_url)
    if direct:
        return direct
    catalog = _first(catalog_number)
    if not catalog:
        return None
    base = _first(collection_url, institution_url)
    if base:
        return f"{base} (catalog # {catalog})"
    return None
