"""External data source integrations.

Each subdirectory is one repository with a consistent structure:

    datasources/{name}/
    ├── __init__.py       # Public API re-exports
    ├── client.py         # API URLs, constants, raw requests
    └── {feature}.py      # Adapter class + parsing into OccurrenceRecord

Shared pieces:

    base.py        OccurrenceSource interface, SourceResult, normalization helpers
    splitting.py   Temporal / offset query splitting for capped repositories

Adding a new repository
-----------------------
1. Create ``datasources/{name}/`` with files above.
   See ``antweb/`` for a single-request source, ``gbif/`` for a split one.

2. Subclass ``OccurrenceSource``; wrap every request in the retry policy::

       from fwspp.services.retry import Failure, call_with_retry

       class MySource(OccurrenceSource):
           name = "MyRepo"

           def fetch(self, geom, timeout):
               page = call_with_retry(client.search, geom.bbox, timeout=timeout,
                                      policy=self.policy, label=self.name)
               if isinstance(page, Failure):
                   return SourceResult.failed(self.name, page)
               ...

3. Re-export the adapter in ``__init__.py`` with ``__all__``.

4. Register it in ``fwspp.registry`` so the occurrence flow picks it up.

5. Add tests in ``tests/test_{name}.py``.
"""
