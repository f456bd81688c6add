"""Resolving submitted names to accepted ITIS taxa."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any

from fwspp.datasources.itis import client
from fwspp.datasources.itis.names import FUZZY_THRESHOLD, binomial, match_name
from fwspp.services.retry import DEFAULT_POLICY, Failure, RetryPolicy, call_with_retry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TaxonMatch:
    """Accepted ITIS identity for a submitted name."""

    tsn: int
    accepted_name: str
    rank: str | None
    taxon_class: str | None
    common_name: str | None
    fuzzy: bool = False

    @property
    def is_species(self) -> bool:
        return (self.rank or "").strip().casefold() == "species"


def _rank(record: dict[str, Any]) -> str | None:
    rank = (record.get("taxRank") or {}).get("rankName")
    return rank.strip() if isinstance(rank, str) and rank.strip() else None


def _combined_name(record: dict[str, Any]) -> str | None:
    name = (record.get("scientificName") or {}).get("combinedName")
    return name.strip() if isinstance(name, str) and name.strip() else None


def _class_name(hierarchy: list[dict[str, Any]]) -> str | None:
    for node in hierarchy:
        if (node.get("rankName") or "").strip().casefold() == "class":
            return (node.get("taxonName") or "").strip() or None
    return None


def _english_common_name(names: list[dict[str, Any]]) -> str | None:
    english = [n for n in names if (n.get("language") or "").casefold() == "english"]
    for n in english or names:
        if n.get("commonName"):
            return str(n["commonName"]).strip()
    return None


class ITISResolver:
    """Looks up submitted names in ITIS; results are cached per instance.

    Every ITIS request goes through the retry policy; a lookup that still
    fails is treated as "no match" for that name.
    """

    def __init__(
        self,
        policy: RetryPolicy = DEFAULT_POLICY,
        *,
        threshold: int = FUZZY_THRESHOLD,
        timeout: float = client.DEFAULT_TIMEOUT,
    ) -> None:
        self.policy = policy
        self.threshold = threshold
        self.timeout = timeout
        self._cache: dict[str, TaxonMatch | None] = {}
        self._lock = threading.Lock()

    def __call__(self, name: str) -> TaxonMatch | None:
        return self.resolve(name)

    def _call(self, fn: Any, *args: Any) -> Any:
        label = f"ITIS {getattr(fn, '__name__', 'lookup')}"
        result = call_with_retry(
            fn, *args, timeout=self.timeout, policy=self.policy, label=label
        )
        if isinstance(result, Failure):
            raise _LookupFailed(result)
        return result

    def resolve(self, name: str) -> TaxonMatch | None:
        key = " ".join(name.split())
        with self._lock:
            if key in self._cache:
                return self._cache[key]
        try:
            match = self._resolve(key)
        except _LookupFailed as exc:
            logger.warning("ITIS lookup failed for %r: %s", key, exc.failure)
            match = None
        with self._lock:
            self._cache[key] = match
        return match

    def _resolve(self, name: str) -> TaxonMatch | None:
        candidates = self._call(client.search_by_scientific_name, name) or []
        query = name
        if not candidates and binomial(name) != name:
            query = binomial(name)
            candidates = self._call(client.search_by_scientific_name, query) or []

        hit = match_name(query, candidates, self.threshold)
        if hit is None:
            return None

        tsn = hit.tsn
        accepted = self._call(client.get_accepted_names, tsn) or []
        for entry in accepted:
            try:
                tsn = int(entry.get("acceptedTsn"))  # type: ignore[arg-type]
                break
            except (TypeError, ValueError):
                continue

        record = self._call(client.get_full_record, tsn) or {}
        hierarchy = self._call(client.get_full_hierarchy, tsn) or []
        common = self._call(client.get_common_names, tsn) or []
        return TaxonMatch(
            tsn=tsn,
            accepted_name=_combined_name(record) or hit.name,
            rank=_rank(record),
            taxon_class=_class_name(hierarchy),
            common_name=_english_common_name(common),
            fuzzy=not hit.exact,
        )


class _LookupFailed(Exception):
    def __init__(self, failure: Failure) -> None:
        super().__init__(str(failure))
        self.failure = failure
