"""AntWeb specimen data source.

Public API:
  - client: bounding-box specimen search (capped at 2000)
  - specimens: AntWebSource, flatten, image_links
"""

from fwspp.datasources.antweb.specimens import (
    AntWebSource,
    flatten,
    image_links,
    parse_specimen,
)

__all__ = ["AntWebSource", "flatten", "image_links", "parse_specimen"]
