"""BISON occurrence data source.

Public API:
  - client: Solr select with lat/lon range filters
  - occurrences: BISONSource (count, then offset pages of 125,000)
"""

from fwspp.datasources.bison.occurrences import BISONSource, parse_document

__all__ = ["BISONSource", "parse_document"]
