"""iDigBio occurrence data source.

Public API:
  - client: /v2/search/records with a geopoint bounding-box query
  - occurrences: IDigBioSource (paged, capped at 100,000 items)
"""

from fwspp.datasources.idigbio.occurrences import IDigBioSource, parse_item

__all__ = ["IDigBioSource", "parse_item"]
