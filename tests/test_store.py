"""Tests for the OccurrenceStore module."""

from __future__ import annotations

import csv
import json
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from fwspp.schemas import LINKED_COLUMNS, UNLINKED_COLUMNS, OccurrenceRecord
from fwspp.store import OccurrenceStore

NAME = "OKEFENOKEE NATIONAL WILDLIFE REFUGE"


def _records() -> list[OccurrenceRecord]:
    return [
        OccurrenceRecord(
            scientific_name="Alligator mississippiensis",
            lon=-82.3,
            lat=30.8,
            bio_repo="GBIF",
            year=2019,
            month=5,
            day=14,
            evidence="https://www.gbif.org/occurrence/1",
            taxon_class="Reptilia",
            tsn=551771,
            taxon_rank="Species",
            common_name="American alligator",
        ),
        OccurrenceRecord(
            scientific_name="Nonexistent taxon",
            lon=-82.2,
            lat=30.7,
            bio_repo="VertNet",
            note="No ITIS match found",
        ),
    ]


class TestOccurrenceStoreWrite:
    """Test writing tables with sidecar metadata."""

    def test_table_path_from_short_name(self, tmp_path: Path) -> None:
        store = OccurrenceStore(tmp_path)
        assert store.table_path(NAME) == tmp_path / "OkefenokeeNWR.csv"

    def test_write_creates_csv(self, tmp_path: Path) -> None:
        store = OccurrenceStore(tmp_path)
        path = store.write_property(NAME, _records())
        assert path.exists()
        with path.open(newline="") as f:
            reader = csv.DictReader(f)
            assert reader.fieldnames == LINKED_COLUMNS
            rows = list(reader)
        assert len(rows) == 2
        assert rows[0]["sci_name"] == "Alligator mississippiensis"
        assert rows[0]["tsn"] == "551771"
        assert rows[0]["class"] == "Reptilia"
        assert rows[1]["note"] == "No ITIS match found"
        assert rows[1]["year"] == ""

    def test_unlinked_columns(self, tmp_path: Path) -> None:
        store = OccurrenceStore(tmp_path)
        path = store.write_property(NAME, _records(), linked=False)
        with path.open(newline="") as f:
            assert csv.DictReader(f).fieldnames == UNLINKED_COLUMNS

    def test_sidecar_metadata(self, tmp_path: Path) -> None:
        store = OccurrenceStore(tmp_path)
        valid = datetime(2026, 12, 1, tzinfo=UTC)
        path = store.write_property(
            NAME,
            _records(),
            source="GBIF,VertNet",
            valid_until=valid,
            scrubbing="strict",
            notes=["BISON: timed out after 3 attempt(s)"],
        )
        data = json.loads(path.with_suffix(".csv.meta.json").read_text())
        meta = data["meta"]
        assert meta["property"] == NAME
        assert meta["source"] == "GBIF,VertNet"
        assert meta["n_records"] == 2
        assert meta["valid_until"] == valid.isoformat()
        assert meta["scrubbing"] == "strict"
        assert meta["notes"] == ["BISON: timed out after 3 attempt(s)"]
        assert "fetched_at" in meta

    def test_write_creates_base_dir(self, tmp_path: Path) -> None:
        store = OccurrenceStore(tmp_path / "exports" / "2026")
        path = store.write_property(NAME, _records())
        assert path.parent == tmp_path / "exports" / "2026"

    def test_path_escape_rejected(self, tmp_path: Path) -> None:
        store = OccurrenceStore(tmp_path / "exports")
        with pytest.raises(ValueError, match="escapes store base directory"):
            store._resolve(tmp_path / "elsewhere.csv")


class TestOccurrenceStoreRead:
    def test_read_rows(self, tmp_path: Path) -> None:
        store = OccurrenceStore(tmp_path)
        store.write_property(NAME, _records())
        rows = store.read_rows(NAME)
        assert rows is not None
        assert [r["bio_repo"] for r in rows] == ["GBIF", "VertNet"]

    def test_read_missing(self, tmp_path: Path) -> None:
        store = OccurrenceStore(tmp_path)
        assert store.read_rows(NAME) is None
        assert store.read_meta(NAME) == {}


class TestOccurrenceStoreIsFresh:
    """Test freshness checking."""

    def test_missing_table_not_fresh(self, tmp_path: Path) -> None:
        assert OccurrenceStore(tmp_path).is_fresh(NAME) is False

    def test_expired_not_fresh(self, tmp_path: Path) -> None:
        store = OccurrenceStore(tmp_path)
        past = datetime.now(UTC) - timedelta(days=1)
        store.write_property(NAME, _records(), valid_until=past)
        assert store.is_fresh(NAME) is False

    def test_future_valid_until_is_fresh(self, tmp_path: Path) -> None:
        store = OccurrenceStore(tmp_path)
        future = datetime.now(UTC) + timedelta(days=30)
        store.write_property(NAME, _records(), valid_until=future)
        assert store.is_fresh(NAME) is True

    def test_no_valid_until_not_fresh(self, tmp_path: Path) -> None:
        store = OccurrenceStore(tmp_path)
        store.write_property(NAME, _records())
        assert store.is_fresh(NAME) is False
