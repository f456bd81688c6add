"""
Registry of the biodiversity repositories queried for each property.

Static, read-only metadata loaded once per session; ``build_sources`` turns
the selected entries into adapter instances for the occurrence flow.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from enum import StrEnum

from fwspp.datasources.antweb import AntWebSource
from fwspp.datasources.base import OccurrenceSource
from fwspp.datasources.bison import BISONSource
from fwspp.datasources.ecoengine import EcoEngineSource
from fwspp.datasources.gbif import GBIFSource
from fwspp.datasources.idigbio import IDigBioSource
from fwspp.datasources.vertnet import VertNetSource
from fwspp.services.retry import DEFAULT_POLICY, RetryPolicy


class QueryMode(StrEnum):
    """Spatial query shape a repository accepts."""

    WKT = "wkt"
    BBOX = "bbox"
    POINT_RADIUS = "point_radius"


@dataclass(frozen=True)
class RepositoryMetadata:
    name: str
    full_name: str
    base_url: str
    query_mode: QueryMode
    max_records: int | None
    factory: Callable[[RetryPolicy], OccurrenceSource]


_REPOSITORIES = (
    RepositoryMetadata(
        "GBIF",
        "Global Biodiversity Information Facility",
        "https://api.gbif.org/v1",
        QueryMode.WKT,
        125_000,
        GBIFSource,
    ),
    RepositoryMetadata(
        "BISON",
        "Biodiversity Information Serving Our Nation",
        "https://bison.usgs.gov/solr/occurrences",
        QueryMode.BBOX,
        125_000,
        BISONSource,
    ),
    RepositoryMetadata(
        "iDigBio",
        "Integrated Digitized Biocollections",
        "https://search.idigbio.org/v2",
        QueryMode.BBOX,
        100_000,
        IDigBioSource,
    ),
    RepositoryMetadata(
        "VertNet",
        "VertNet",
        "https://api.vertnet-portal.org/api",
        QueryMode.POINT_RADIUS,
        200_000,
        VertNetSource,
    ),
    RepositoryMetadata(
        "EcoEngine",
        "Berkeley Ecoinformatics Engine",
        "https://ecoengine.berkeley.edu/api",
        QueryMode.BBOX,
        None,
        EcoEngineSource,
    ),
    RepositoryMetadata(
        "AntWeb",
        "AntWeb",
        "https://www.antweb.org/api/v2",
        QueryMode.BBOX,
        2000,
        AntWebSource,
    ),
)


class SourceRegistry:
    """Read-only lookup of repository metadata by (case-insensitive) name."""

    def __init__(self, entries: Iterable[RepositoryMetadata] = _REPOSITORIES) -> None:
        self._entries = tuple(entries)
        self._by_name = {e.name.casefold(): e for e in self._entries}

    def list_repositories(self) -> list[RepositoryMetadata]:
        return list(self._entries)

    def get(self, name: str) -> RepositoryMetadata:
        try:
            return self._by_name[name.casefold()]
        except KeyError:
            known = ", ".join(e.name for e in self._entries)
            msg = f"Unknown repository {name!r} (known: {known})"
            raise KeyError(msg) from None

    def build_sources(
        self,
        names: Iterable[str] | None = None,
        policy: RetryPolicy = DEFAULT_POLICY,
    ) -> list[OccurrenceSource]:
        """Adapters for the named repositories (all of them by default)."""
        entries = self._entries if names is None else [self.get(n) for n in names]
        return [e.factory(policy) for e in entries]


registry = SourceRegistry()
