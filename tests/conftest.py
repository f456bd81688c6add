"""Shared fixtures: property polygons, boundary files, and a retry policy that never sleeps."""

from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path
from unittest.mock import Mock

import pytest
import requests
from shapely.geometry import box

from fwspp.geometry import PropertyGeometry
from fwspp.services.retry import RetryPolicy


@pytest.fixture
def geom() -> PropertyGeometry:
    """Roughly the Okefenokee NWR extent."""
    return PropertyGeometry("OKEFENOKEE NATIONAL WILDLIFE REFUGE", box(-82.5, 30.6, -82.1, 31.0))


@pytest.fixture
def sleeps() -> list[float]:
    return []


@pytest.fixture
def policy(sleeps: list[float]) -> RetryPolicy:
    return RetryPolicy(sleep=sleeps.append)


def json_response(payload: object, status: int = 200, text: str = "") -> Mock:
    """A ``requests.Response`` stand-in returning ``payload`` from ``.json()``."""
    resp = Mock()
    resp.status_code = status
    resp.json.return_value = payload
    resp.text = text
    if status >= 400:
        err = requests.HTTPError(f"{status} error")
        err.response = resp
        resp.raise_for_status.side_effect = err
    else:
        resp.raise_for_status = Mock()
    return resp


@pytest.fixture
def make_response() -> Callable[..., Mock]:
    return json_response


# =============================================================================
# Boundary files
# =============================================================================


def _square(x0: float, y0: float, size: float) -> dict[str, object]:
    ring = [[x0, y0], [x0 + size, y0], [x0 + size, y0 + size], [x0, y0 + size], [x0, y0]]
    return {"type": "Polygon", "coordinates": [ring]}


def _feature(name: str | None, geometry: dict[str, object]) -> dict[str, object]:
    return {"type": "Feature", "properties": {"ORGNAME": name}, "geometry": geometry}


def _bowtie(x0: float, y0: float, size: float) -> dict[str, object]:
    """Self-intersecting ring, as found in some cadastral exports."""
    ring = [[x0, y0], [x0 + size, y0 + size], [x0 + size, y0], [x0, y0 + size], [x0, y0]]
    return {"type": "Polygon", "coordinates": [ring]}


@pytest.fixture
def boundary_dir(tmp_path: Path) -> Path:
    """Admin file with three properties (one in two parts, one with an invalid ring);
    acq file with one.
    """
    directory = tmp_path / "boundaries"
    directory.mkdir()
    admin = {
        "type": "FeatureCollection",
        "features": [
            _feature("OKEFENOKEE NATIONAL WILDLIFE REFUGE", _square(-82.5, 30.6, 0.4)),
            _feature("MERRITT ISLAND NATIONAL WILDLIFE REFUGE", _square(-80.8, 28.5, 0.1)),
            _feature("MERRITT ISLAND NATIONAL WILDLIFE REFUGE", _square(-80.6, 28.7, 0.1)),
            _feature("LOXAHATCHEE NATIONAL WILDLIFE REFUGE", _bowtie(-80.4, 26.4, 0.2)),
            _feature("LOXAHATCHEE NATIONAL WILDLIFE REFUGE", _square(-80.3, 26.45, 0.1)),
            _feature(None, _square(0, 0, 1)),
        ],
    }
    acq = {
        "type": "FeatureCollection",
        "features": [_feature("OKEFENOKEE NATIONAL WILDLIFE REFUGE", _square(-82.6, 30.5, 0.6))],
    }
    (directory / "fws_admin.geojson").write_text(json.dumps(admin))
    (directory / "fws_acq.geojson").write_text(json.dumps(acq))
    return directory
