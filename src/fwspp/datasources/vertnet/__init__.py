"""VertNet occurrence data source.

Public API:
  - client: point-radius search with cursor paging
  - occurrences: VertNetSource
"""

from fwspp.datasources.vertnet.occurrences import VertNetSource, parse_record

__all__ = ["VertNetSource", "parse_record"]
