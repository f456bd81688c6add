"""ITIS taxonomic authority.

Public API:
  - client: raw JSON web service endpoints
  - names: exact-then-fuzzy matching of submitted names (FUZZY_THRESHOLD)
  - lookup: ITISResolver, TaxonMatch
"""

from fwspp.datasources.itis.lookup import ITISResolver, TaxonMatch
from fwspp.datasources.itis.names import FUZZY_THRESHOLD, NameMatch, match_name

__all__ = ["FUZZY_THRESHOLD", "ITISResolver", "NameMatch", "TaxonMatch", "match_name"]
