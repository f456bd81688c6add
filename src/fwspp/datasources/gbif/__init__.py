"""GBIF occurrence data source.

Public API:
  - client: Count and paged search against /occurrence/search
  - occurrences: GBIFSource (polygon query, temporal splitting above 125k records)
"""

from fwspp.datasources.gbif.occurrences import GBIFSource, media_links, parse_occurrence

__all__ = ["GBIFSource", "media_links", "parse_occurrence"]
