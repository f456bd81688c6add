"""
Property geometry and the query shapes derived from it.

Each repository wants the property described differently: a WKT polygon
(GBIF), lat/lon ranges (BISON, iDigBio, EcoEngine, AntWeb) or a centre point
plus radius (VertNet).  :class:`PropertyGeometry` computes all of them once
from the (optionally buffered) boundary polygon.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import cached_property

from pyproj import CRS, Geod, Transformer
from shapely import wkt as shapely_wkt
from shapely.geometry import Point
from shapely.geometry.base import BaseGeometry
from shapely.geometry.polygon import orient
from shapely.ops import transform
from shapely.prepared import prep

WGS84 = CRS.from_epsg(4326)
_GEOD = Geod(ellps="WGS84")

#: GBIF rejects very long geometry parameters; longer WKT falls back to the hull.
MAX_WKT_LENGTH = 1500


def buffer_km(geom: BaseGeometry, distance_km: float) -> BaseGeometry:
    """Buffer a WGS84 geometry by a distance in kilometres.

    Buffers in an azimuthal equidistant projection centred on the geometry so
    the distance is true in metres regardless of latitude.
    """
    if distance_km <= 0:
        return geom
    centroid = geom.centroid
    local = CRS.from_proj4(
        f"+proj=aeqd +lat_0={centroid.y} +lon_0={centroid.x} +datum=WGS84 +units=m +no_defs"
    )
    to_local = Transformer.from_crs(WGS84, local, always_xy=True).transform
    to_wgs84 = Transformer.from_crs(local, WGS84, always_xy=True).transform
    buffered = transform(to_local, geom).buffer(distance_km * 1000)
    return transform(to_wgs84, buffered)


@dataclass(frozen=True)
class BoundingBox:
    """Lat/lon ranges of a geometry."""

    min_lon: float
    min_lat: float
    max_lon: float
    max_lat: float

    @property
    def lat_range(self) -> tuple[float, float]:
        return (self.min_lat, self.max_lat)

    @property
    def lon_range(self) -> tuple[float, float]:
        return (self.min_lon, self.max_lon)

    @property
    def center(self) -> tuple[float, float]:
        """(lon, lat) midpoint."""
        return ((self.min_lon + self.max_lon) / 2, (self.min_lat + self.max_lat) / 2)

    def padded(self, eps: float) -> BoundingBox:
        return BoundingBox(
            self.min_lon - eps, self.min_lat - eps, self.max_lon + eps, self.max_lat + eps
        )


class PropertyGeometry:
    """A property boundary, buffered, with the query shapes derived from it.

    Treat instances as immutable; derived shapes are computed lazily and cached.
    """

    def __init__(self, name: str, boundary: BaseGeometry, buffer_distance_km: float = 0.0) -> None:
        if boundary.is_empty:
            msg = f"Empty boundary geometry for {name}"
            raise ValueError(msg)
        self.name = name
        self.buffer_km = buffer_distance_km
        self.geometry: BaseGeometry = buffer_km(boundary, buffer_distance_km)

    def __repr__(self) -> str:
        return f"PropertyGeometry({self.name!r}, buffer_km={self.buffer_km})"

    @cached_property
    def bbox(self) -> BoundingBox:
        return BoundingBox(*self.geometry.bounds)

    @cached_property
    def center(self) -> tuple[float, float]:
        """(lon, lat) centre of the bounding box."""
        return self.bbox.center

    @cached_property
    def radius_m(self) -> float:
        """Geodesic radius (m) from :attr:`center` that covers the whole bounding box."""
        lon0, lat0 = self.center
        b = self.bbox
        corners = [
            (b.min_lon, b.min_lat),
            (b.min_lon, b.max_lat),
            (b.max_lon, b.min_lat),
            (b.max_lon, b.max_lat),
        ]
        distances = [_GEOD.inv(lon0, lat0, lon, lat)[2] for lon, lat in corners]
        return float(max(distances))

    @cached_property
    def wkt(self) -> str:
        """Counter-clockwise WKT for geometry-aware services."""
        text = _ccw_wkt(self.geometry)
        if len(text) > MAX_WKT_LENGTH:
            text = _ccw_wkt(self.geometry.convex_hull)
        if len(text) > MAX_WKT_LENGTH:
            text = _ccw_wkt(self.geometry.envelope)
        return text

    @cached_property
    def _prepared(self):  # type: ignore[no-untyped-def]
        return prep(self.geometry)

    def contains(self, lon: float, lat: float) -> bool:
        """True if the point lies inside (or on the edge of) the exact geometry."""
        return bool(self._prepared.intersects(Point(lon, lat)))


def _ccw_wkt(geom: BaseGeometry) -> str:
    if geom.geom_type == "Polygon":
        geom = orient(geom, sign=1.0)
    elif geom.geom_type == "MultiPolygon":
        geom = type(geom)([orient(p, sign=1.0) for p in geom.geoms])
    return shapely_wkt.dumps(geom, trim=True, rounding_precision=5)
