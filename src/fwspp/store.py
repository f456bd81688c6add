"""Per-property occurrence tables with freshness metadata.

Each property with records is written as one CSV file named from its
shortened property name (``OkefenokeeNWR.csv``).  Run metadata (repositories,
boundary kind, scrub level, ITIS linking, buffer, timeout, notes about missing
sources) lives in a sidecar ``.meta.json`` so the table stays a plain CSV.

``valid_until`` in the sidecar lets a later run skip properties that were
exported recently.
"""

from __future__ import annotations

import csv
import json
from datetime import UTC, datetime
from pathlib import Path  # noqa: TC003
from typing import TYPE_CHECKING, Any

from fwspp.boundaries import export_stem
from fwspp.schemas import LINKED_COLUMNS, UNLINKED_COLUMNS

if TYPE_CHECKING:
    from collections.abc import Iterable

    from fwspp.schemas import OccurrenceRecord


class OccurrenceStore:
    """Manages read/write of exported occurrence tables."""

    def __init__(self, base_dir: Path) -> None:
        self.base = base_dir

    def table_path(self, property_name: str) -> Path:
        return self.base / f"{export_stem(property_name)}.csv"

    def write_property(
        self,
        property_name: str,
        records: Iterable[OccurrenceRecord],
        *,
        linked: bool = True,
        source: str = "fwspp",
        valid_until: datetime | None = None,
        **params: Any,
    ) -> Path:
        """Write a property's records as CSV plus a sidecar metadata file.

        Args:
            property_name: Property (refuge) name; the file name is derived from it.
            records: Reconciled records to write.
            linked: Include the ITIS columns.
            source: Data source identifier stored in the metadata.
            valid_until: Expiry timestamp. None means never fresh.
            **params: Extra metadata fields (scrub level, buffer, notes, ...).

        Returns:
            Path of the written CSV.
        """
        full = self._resolve(self.table_path(property_name))
        full.parent.mkdir(parents=True, exist_ok=True)

        columns = LINKED_COLUMNS if linked else UNLINKED_COLUMNS
        n = 0
        with full.open("w", newline="") as f:
            writer = csv.DictWriter(f, fieldnames=columns)
            writer.writeheader()
            for rec in records:
                writer.writerow(rec.to_row(linked=linked))
                n += 1

        meta: dict[str, Any] = {
            "property": property_name,
            "source": source,
            "fetched_at": datetime.now(UTC).isoformat(),
            "n_records": n,
        }
        if valid_until is not None:
            meta["valid_until"] = valid_until.isoformat()
        if params:
            meta.update(params)

        with self._meta_path(full).open("w") as f:
            json.dump({"meta": meta}, f, indent=2, default=str)

        return full

    def read_rows(self, property_name: str) -> list[dict[str, str]] | None:
        """Rows of a previously exported table, or None if it doesn't exist."""
        full = self._resolve(self.table_path(property_name))
        if not full.exists():
            return None
        with full.open(newline="") as f:
            return list(csv.DictReader(f))

    def read_meta(self, property_name: str) -> dict[str, Any]:
        full = self._resolve(self.table_path(property_name))
        sidecar = self._meta_path(full)
        if not sidecar.exists():
            return {}
        with sidecar.open() as f:
            result: dict[str, Any] = json.load(f)
        return result.get("meta", {})

    def is_fresh(self, property_name: str) -> bool:
        """Check if a property's table exists and hasn't expired.

        Returns False if the table is missing, has no ``valid_until``, or
        the expiry time has passed.
        """
        full = self._resolve(self.table_path(property_name))
        if not full.exists():
            return False

        valid_until = self.read_meta(property_name).get("valid_until")
        if valid_until is None:
            return False

        expiry = datetime.fromisoformat(valid_until)
        if expiry.tzinfo is None:
            expiry = expiry.replace(tzinfo=UTC)
        return datetime.now(UTC) < expiry

    @staticmethod
    def _meta_path(full: Path) -> Path:
        return full.with_suffix(full.suffix + ".meta.json")

    def _resolve(self, path: Path) -> Path:
        try:
            path.resolve().relative_to(self.base.resolve())
        except ValueError:
            msg = f"Path escapes store base directory: {path}"
            raise ValueError(msg) from None
        return path
