"""
Retry policy for outbound requests.

Every repository query (and every ITIS lookup) is wrapped so that a flaky
service costs at most a few backed-off attempts and never an exception at the
orchestrator level.  A call ends in one of three ways:

- the wrapped function's return value,
- ``None`` when the service signalled a genuine "zero records" result
  (:class:`NoRecordsError`), without further attempts,
- a :class:`Failure` describing why the call gave up.

Usage::

    from fwspp.services.retry import RetryPolicy, call_with_retry, is_failure

    result = call_with_retry(fetch_page, url, params, label="GBIF")
    if is_failure(result):
        ...
"""

from __future__ import annotations

import logging
import random
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, TypeVar

import requests

logger = logging.getLogger(__name__)

T = TypeVar("T")


class NoRecordsError(Exception):
    """A service reported that the query matched zero records."""


class SourceError(Exception):
    """A service answered, but with an error message instead of records."""


class Outcome(StrEnum):
    """How the retry loop should treat an exception."""

    RETRY = "retry"
    EMPTY = "empty"
    FATAL = "fatal"


@dataclass(frozen=True)
class Failure:
    """Tagged failure value returned after the retry policy gives up."""

    label: str
    reason: str
    attempts: int

    def __str__(self) -> str:
        return f"{self.label}: {self.reason} (after {self.attempts} attempt(s))"


def is_failure(value: object) -> bool:
    return isinstance(value, Failure)


def default_classifier(exc: BaseException) -> Outcome:
    """Map an exception raised by a request to a retry outcome."""
    if isinstance(exc, NoRecordsError):
        return Outcome.EMPTY
    if isinstance(exc, requests.HTTPError):
        status = exc.response.status_code if exc.response is not None else None
        if status is not None and 400 <= status < 500 and status != 429:  # noqa: PLR2004
            return Outcome.FATAL
        return Outcome.RETRY
    return Outcome.RETRY


def retry_unless_empty(exc: BaseException) -> Outcome:
    """Retry everything, 4xx included, except a zero-records signal."""
    return Outcome.EMPTY if isinstance(exc, NoRecordsError) else Outcome.RETRY


def _default_sleep(seconds: float) -> None:
    time.sleep(seconds)


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded retry with exponential backoff and jitter.

    The wait before retry ``i`` is drawn uniformly from
    ``[min(base**i, low_cap), min(base**(i + 1), high_cap)]``, i.e. roughly
    5-25 s, then 25-125 s, then 120-180 s with the defaults.
    """

    max_attempts: int = 3
    base: float = 5.0
    low_cap: float = 120.0
    high_cap: float = 180.0
    classify: Callable[[BaseException], Outcome] = default_classifier
    sleep: Callable[[float], None] = field(default=_default_sleep, compare=False)

    def wait_seconds(self, attempt: int) -> float:
        """Backoff delay after the given (1-based) failed attempt."""
        low = min(self.base**attempt, self.low_cap)
        high = min(self.base ** (attempt + 1), self.high_cap)
        return random.uniform(low, max(low, high))  # noqa: S311


DEFAULT_POLICY = RetryPolicy()


def call_with_retry(
    fn: Callable[..., T],
    *args: Any,
    policy: RetryPolicy = DEFAULT_POLICY,
    label: str | None = None,
    **kwargs: Any,
) -> T | Failure | None:
    """
    Call ``fn(*args, **kwargs)`` under ``policy``.

    Returns:
        The function's return value on success, ``None`` if the service
        reported zero records, or a :class:`Failure` once attempts are
        exhausted or the error is not worth retrying.
    """
    label = label or getattr(fn, "__name__", "request")
    last_reason = "no attempts made"
    for attempt in range(1, policy.max_attempts + 1):
        try:
            return fn(*args, **kwargs)
        except Exception as exc:  # noqa: BLE001
            outcome = policy.classify(exc)
            if outcome is Outcome.EMPTY:
                logger.debug("%s: no records (%s)", label, exc)
                return None
            last_reason = _describe(exc)
            if outcome is Outcome.FATAL:
                logger.warning("%s: giving up on non-retryable error: %s", label, last_reason)
                return Failure(label=label, reason=last_reason, attempts=attempt)
            if attempt == policy.max_attempts:
                break
            wait = policy.wait_seconds(attempt)
            logger.info(
                "%s: HTTP timeout or error on attempt %d (%s). Retrying in %.0f s.",
                label,
                attempt,
                last_reason,
                wait,
            )
            policy.sleep(wait)

    logger.warning("%s: failed after %d attempts: %s", label, policy.max_attempts, last_reason)
    return Failure(label=label, reason=last_reason, attempts=policy.max_attempts)


def _describe(exc: BaseException) -> str:
    if isinstance(exc, requests.Timeout):
        return "timed out"
    if isinstance(exc, requests.ConnectionError):
        return "connection error"
    if isinstance(exc, requests.HTTPError) and exc.response is not None:
        return f"HTTP {exc.response.status_code}"
    return str(exc) or type(exc).__name__
