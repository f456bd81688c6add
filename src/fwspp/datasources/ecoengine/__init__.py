"""EcoEngine (Berkeley Ecoinformatics Engine) data source.

Public API:
  - client: observations endpoint; zero-count errors raised as NoRecordsError
  - occurrences: EcoEngineSource
"""

from fwspp.datasources.ecoengine.occurrences import EcoEngineSource, parse_observation

__all__ = ["EcoEngineSource", "parse_observation"]
