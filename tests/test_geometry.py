"""Tests for property geometry and derived query shapes."""

from __future__ import annotations

import pytest
from shapely import wkt as shapely_wkt
from shapely.geometry import MultiPolygon, Point, Polygon, box

from fwspp.geometry import MAX_WKT_LENGTH, BoundingBox, PropertyGeometry, buffer_km


class TestBoundingBox:
    def test_ranges(self) -> None:
        b = BoundingBox(-82.5, 30.6, -82.1, 31.0)
        assert b.lat_range == (30.6, 31.0)
        assert b.lon_range == (-82.5, -82.1)

    def test_center(self) -> None:
        lon, lat = BoundingBox(-10.0, 0.0, 10.0, 20.0).center
        assert (lon, lat) == (0.0, 10.0)

    def test_padded(self) -> None:
        b = BoundingBox(0.0, 0.0, 1.0, 1.0).padded(0.5)
        assert b == BoundingBox(-0.5, -0.5, 1.5, 1.5)


class TestBuffer:
    def test_zero_buffer_is_identity(self) -> None:
        square = box(-82.5, 30.6, -82.1, 31.0)
        assert buffer_km(square, 0) is square

    def test_buffer_grows_geometry(self) -> None:
        square = box(-82.5, 30.6, -82.1, 31.0)
        grown = buffer_km(square, 5)
        assert grown.contains(square)
        # ~5 km is ~0.045 degrees of latitude
        assert grown.bounds[3] == pytest.approx(31.045, abs=0.005)


class TestPropertyGeometry:
    def test_empty_boundary_rejected(self) -> None:
        with pytest.raises(ValueError, match="Empty boundary"):
            PropertyGeometry("Nowhere NWR", Polygon())

    def test_bbox(self, geom: PropertyGeometry) -> None:
        assert geom.bbox == BoundingBox(-82.5, 30.6, -82.1, 31.0)

    def test_radius_covers_bbox(self, geom: PropertyGeometry) -> None:
        """Half-diagonal of a 0.4 x 0.4 degree box at 31N is roughly 30 km."""
        assert 25_000 < geom.radius_m < 35_000

    def test_contains(self, geom: PropertyGeometry) -> None:
        assert geom.contains(-82.3, 30.8)
        assert not geom.contains(-81.0, 30.8)

    def test_contains_edge(self, geom: PropertyGeometry) -> None:
        assert geom.contains(-82.5, 30.8)

    def test_buffer_applied(self) -> None:
        g = PropertyGeometry("Test NWR", box(-82.5, 30.6, -82.1, 31.0), 2.0)
        assert g.contains(-82.51, 30.8)
        assert g.buffer_km == 2.0

    def test_wkt_counter_clockwise(self, geom: PropertyGeometry) -> None:
        parsed = shapely_wkt.loads(geom.wkt)
        assert parsed.exterior.is_ccw

    def test_wkt_multipolygon(self) -> None:
        multi = MultiPolygon([box(0, 0, 1, 1), box(2, 2, 3, 3)])
        g = PropertyGeometry("Split NWR", multi)
        assert g.wkt.startswith("MULTIPOLYGON")

    def test_long_wkt_falls_back_to_hull(self) -> None:
        """A detailed boundary is simplified so GBIF accepts the geometry parameter."""
        detailed = Point(-82.3, 30.8).buffer(0.2, quad_segs=256)
        g = PropertyGeometry("Round NWR", detailed)
        assert len(g.wkt) <= MAX_WKT_LENGTH
        assert shapely_wkt.loads(g.wkt).contains(Point(-82.3, 30.8))
