"""
Shared HTTP client with transport-level retry.

Provides a pre-configured ``requests.Session`` that retries rate-limit and
gateway responses (429/502/503/504) with exponential backoff.  Timeouts and
connection failures are left to :mod:`fwspp.services.retry`, which applies the
longer per-source backoff policy and turns exhausted attempts into tagged
failures.  All datasource modules should use this instead of bare
``requests.get``.

Usage::

    from fwspp.services.http import session

    resp = session.get("https://api.gbif.org/v1/occurrence/search", timeout=1200)
    resp.raise_for_status()
"""

from __future__ import annotations

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from fwspp import __version__

#: Status retries only; connect/read errors bubble up to the retry policy.
DEFAULT_RETRY = Retry(
    total=3,
    connect=0,
    read=0,
    backoff_factor=2,  # 0s, 2s, 4s between retries
    status_forcelist=[429, 502, 503, 504],
    allowed_methods=["GET", "HEAD", "OPTIONS"],
    raise_on_status=False,  # callers inspect status via raise_for_status()
)

DEFAULT_TIMEOUT = 1200  # seconds; large GBIF pages are slow

USER_AGENT = f"fwspp/{__version__} (species occurrence retrieval for USFWS properties)"


def create_session(
    retry: Retry | None = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> requests.Session:
    """
    Build a session for the occurrence and ITIS APIs.

    Args:
        retry: Transport retry strategy (``DEFAULT_RETRY`` when omitted).
        timeout: Seconds used for any request sent without a timeout.
    """
    s = requests.Session()
    adapter = HTTPAdapter(max_retries=retry or DEFAULT_RETRY)
    for prefix in ("https://", "http://"):
        s.mount(prefix, adapter)
    s.headers["User-Agent"] = USER_AGENT

    # Inject a default timeout so callers that forget ``timeout=`` never hang.
    _original_send = s.send

    def _send_with_timeout(
        prepared: requests.PreparedRequest, **kwargs: object
    ) -> requests.Response:
        if kwargs.get("timeout") is None:
            kwargs["timeout"] = timeout
        return _original_send(prepared, **kwargs)  # type: ignore[arg-type]

    s.send = _send_with_timeout  # type: ignore[method-assign]
    return s


#: Shared by every datasource client; tests patch ``session.get``.
session: requests.Session = create_session()
