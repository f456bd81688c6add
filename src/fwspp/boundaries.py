"""
USFWS property boundaries.

Boundaries are read from GeoJSON exports of the USFWS cadastral dataset, one
file per boundary kind, with the property name in ``ORGNAME``:

    {boundary_dir}/fws_admin.geojson   administrative boundaries
    {boundary_dir}/fws_acq.geojson     approved acquisition boundaries

The dataset is loaded once and read-only afterwards, so a single
:class:`BoundaryDataset` can be shared across concurrent property runs.
"""

from __future__ import annotations

import json
import re
import threading
from pathlib import Path
from typing import Any

from shapely import make_valid
from shapely.geometry import shape
from shapely.geometry.base import BaseGeometry
from shapely.ops import unary_union

from fwspp.geometry import PropertyGeometry
from fwspp.schemas import BoundaryKind

BOUNDARY_FILES = {
    BoundaryKind.ADMIN: "fws_admin.geojson",
    BoundaryKind.ACQ: "fws_acq.geojson",
}
NAME_FIELD = "ORGNAME"

# Longest first so "NATIONAL WILDLIFE REFUGE COMPLEX" wins over "... REFUGE"
ABBREVIATIONS = [
    ("NATIONAL WILDLIFE REFUGE COMPLEX", "NWRC"),
    ("NATIONAL WILDLIFE REFUGE", "NWR"),
    ("NATIONAL FISH HATCHERY", "NFH"),
    ("NATIONAL GAME PRESERVE", "NGP"),
    ("WATERFOWL PRODUCTION AREA", "WPA"),
    ("WILDLIFE MANAGEMENT AREA", "WMA"),
    ("FISH HATCHERY", "FH"),
]


class BoundaryNotFoundError(LookupError):
    """No boundary with the requested name exists for the boundary kind."""


def shorten_name(name: str) -> str:
    """``"OKEFENOKEE NATIONAL WILDLIFE REFUGE"`` -> ``"Okefenokee NWR"``."""
    text = " ".join(name.upper().split())
    for long, short in ABBREVIATIONS:
        text = text.replace(long, short)
    abbrevs = {short for _, short in ABBREVIATIONS}
    return " ".join(w if w in abbrevs else w.capitalize() for w in text.split())


def export_stem(name: str) -> str:
    """File-name stem for a property: shortened name without spaces or dots."""
    return re.sub(r"[\s.]", "", shorten_name(name))


class BoundaryDataset:
    """Named property polygons for each boundary kind."""

    def __init__(self, directory: Path) -> None:
        self.directory = directory
        self._by_kind: dict[BoundaryKind, dict[str, list[BaseGeometry]]] = {}
        self._lock = threading.Lock()

    def _load(self, kind: BoundaryKind) -> dict[str, list[BaseGeometry]]:
        with self._lock:
            if kind not in self._by_kind:
                self._by_kind[kind] = self._read(self.directory / BOUNDARY_FILES[kind])
            return self._by_kind[kind]

    @staticmethod
    def _read(path: Path) -> dict[str, list[BaseGeometry]]:
        if not path.exists():
            msg = f"Boundary file not found: {path}"
            raise FileNotFoundError(msg)
        with path.open() as f:
            collection: dict[str, Any] = json.load(f)
        features: dict[str, list[BaseGeometry]] = {}
        for feature in collection.get("features", []):
            props = feature.get("properties") or {}
            name = props.get(NAME_FIELD)
            if not name or not feature.get("geometry"):
                continue
            key = " ".join(str(name).upper().split())
            features.setdefault(key, []).append(shape(feature["geometry"]))
        return features

    def names(self, kind: BoundaryKind | str = BoundaryKind.ADMIN) -> list[str]:
        return sorted(self._load(BoundaryKind(kind)))

    def find_properties(
        self, pattern: str, kind: BoundaryKind | str = BoundaryKind.ADMIN
    ) -> list[str]:
        """Property names matching a case-insensitive regular expression."""
        rx = re.compile(pattern, re.IGNORECASE)
        return [n for n in self.names(kind) if rx.search(n)]

    def load_property(self, name: str, kind: BoundaryKind | str = BoundaryKind.ADMIN) -> BaseGeometry:
        """Union of every polygon recorded for the property.

        Parts are repaired with ``make_valid`` first; cadastral exports contain
        self-intersecting rings that GEOS refuses to union or buffer.
        """
        features = self._load(BoundaryKind(kind))
        key = " ".join(name.upper().split())
        if key not in features:
            msg = f"No {BoundaryKind(kind).value} boundary found for {name!r}"
            raise BoundaryNotFoundError(msg)
        return unary_union([make_valid(part) for part in features[key]])

    def property_geometry(
        self,
        name: str,
        kind: BoundaryKind | str = BoundaryKind.ADMIN,
        buffer_km: float = 0.0,
    ) -> PropertyGeometry:
        return PropertyGeometry(name, self.load_property(name, kind), buffer_km)
