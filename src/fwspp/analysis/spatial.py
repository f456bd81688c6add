"""Exact-geometry filtering of occurrence records."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

    from fwspp.geometry import PropertyGeometry
    from fwspp.schemas import OccurrenceRecord


def within_geometry(
    records: Iterable[OccurrenceRecord], geom: PropertyGeometry
) -> list[OccurrenceRecord]:
    """Keep records whose point falls inside the (buffered) property polygon.

    Repositories are queried by bounding box or covering circle, so this is
    where records from the corners outside the property are dropped.
    """
    return [r for r in records if geom.contains(r.lon, r.lat)]
