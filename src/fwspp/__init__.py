"""fwspp - species occurrence records for U.S. Fish & Wildlife Service properties.

Architecture::

    boundaries.py  Property boundaries (GeoJSON) -> buffered PropertyGeometry
    registry.py    Static metadata for the six biodiversity repositories
    datasources/   One adapter per repository (GBIF, BISON, iDigBio, VertNet,
                   EcoEngine, AntWeb) plus the ITIS taxonomic authority
    analysis/      Pure reconciliation: spatial filter, evidence, scrubbing,
                   taxonomy linking
    flows/         Prefect orchestration (per-property fan-out and export)
    store.py       Per-property CSV export with sidecar metadata
    services/      Shared HTTP session and retry policy

Data flow: boundary -> datasources (fan-out) -> analysis -> store

Attempts at estimating relative abundance from these records are strongly
discouraged; this is a presence-record tool.
"""

__version__ = "0.3.0"
__author__ = "USFWS Inventory & Monitoring"

from fwspp.config import Settings
from fwspp.schemas import OccurrenceRecord, QueryConfig

__all__ = ["OccurrenceRecord", "QueryConfig", "Settings", "__version__"]
