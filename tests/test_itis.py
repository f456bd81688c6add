"""Tests for ITIS name matching and resolution."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any
from unittest.mock import Mock, patch

import pytest
import requests

from fwspp.datasources.itis import FUZZY_THRESHOLD, ITISResolver, match_name
from fwspp.datasources.itis import client
from fwspp.datasources.itis.names import binomial, normalize
from fwspp.services.retry import RetryPolicy

ALLIGATOR = {"tsn": "551771", "combinedName": "Alligator mississippiensis", "kingdom": "Animalia"}
FULL_RECORD = {
    "scientificName": {"combinedName": "Alligator mississippiensis", "tsn": "551771"},
    "taxRank": {"rankName": "Species     "},
}
HIERARCHY = [
    {"rankName": "Kingdom", "taxonName": "Animalia", "tsn": "202423"},
    {"rankName": "Class", "taxonName": "Reptilia", "tsn": "173747"},
    {"rankName": "Species", "taxonName": "Alligator mississippiensis", "tsn": "551771"},
]
COMMON = [
    {"commonName": "caimán americano", "language": "Spanish"},
    {"commonName": "American alligator", "language": "English"},
]


class TestNames:
    def test_normalize(self) -> None:
        assert normalize("  Solenopsis_invicta ") == "solenopsis invicta"

    def test_binomial(self) -> None:
        assert binomial("Sciurus niger shermani Moore, 1956") == "Sciurus niger"

    def test_exact_match_preferred(self) -> None:
        candidates = [
            {"tsn": "1", "combinedName": "Alligator mississippiensis x"},
            ALLIGATOR,
        ]
        hit = match_name("alligator  Mississippiensis", candidates)
        assert hit is not None
        assert hit.tsn == 551771
        assert hit.exact is True

    def test_fuzzy_match_above_threshold(self) -> None:
        hit = match_name("Aligator mississippiensis", [ALLIGATOR])
        assert hit is not None
        assert hit.exact is False
        assert hit.score >= FUZZY_THRESHOLD

    def test_no_match_below_threshold(self) -> None:
        assert match_name("Quercus virginiana", [ALLIGATOR]) is None

    def test_candidates_without_tsn_ignored(self) -> None:
        assert match_name("Alligator mississippiensis", [{"combinedName": "x"}, {}]) is None


class TestClient:
    @patch("fwspp.datasources.itis.client.session.get")
    def test_text_envelope(self, mock_get: Mock, make_response: Callable[..., Mock]) -> None:
        """ITIS sometimes wraps its JSON in ``_text``."""
        mock_get.return_value = make_response(
            {"_text": '{"scientificNames": [{"tsn": "551771", "combinedName": "A m"}]}'}
        )
        assert client.search_by_scientific_name("A m") == [
            {"tsn": "551771", "combinedName": "A m"}
        ]

    @patch("fwspp.datasources.itis.client.session.get")
    def test_null_entries_dropped(self, mock_get: Mock, make_response: Callable[..., Mock]) -> None:
        mock_get.return_value = make_response({"acceptedNames": [None]})
        assert client.get_accepted_names(551771) == []

    @patch("fwspp.datasources.itis.client.session.get")
    def test_endpoint_url(self, mock_get: Mock, make_response: Callable[..., Mock]) -> None:
        mock_get.return_value = make_response({"commonNames": COMMON})
        client.get_common_names(551771, timeout=3)
        assert mock_get.call_args.args[0] == f"{client.BASE}/getCommonNamesFromTSN"
        assert mock_get.call_args.kwargs["params"] == {"tsn": 551771}
        assert mock_get.call_args.kwargs["timeout"] == 3


def _patch_itis(
    search: Any = None,
    accepted: Any = None,
    record: Any = None,
    hierarchy: Any = None,
    common: Any = None,
) -> dict[str, Mock]:
    return {
        "search_by_scientific_name": Mock(side_effect=search or (lambda *a, **k: [ALLIGATOR])),
        "get_accepted_names": Mock(return_value=accepted or []),
        "get_full_record": Mock(return_value=record or FULL_RECORD),
        "get_full_hierarchy": Mock(return_value=hierarchy or HIERARCHY),
        "get_common_names": Mock(return_value=common or COMMON),
    }


class TestITISResolver:
    """Resolution against a mocked ITIS client."""

    def test_exact_match(self, policy: RetryPolicy) -> None:
        mocks = _patch_itis()
        with patch.multiple(client, **mocks):
            match = ITISResolver(policy)("Alligator mississippiensis")
        assert match is not None
        assert match.tsn == 551771
        assert match.accepted_name == "Alligator mississippiensis"
        assert match.rank == "Species"
        assert match.taxon_class == "Reptilia"
        assert match.common_name == "American alligator"
        assert match.is_species
        assert match.fuzzy is False

    def test_deterministic(self, policy: RetryPolicy) -> None:
        mocks = _patch_itis()
        with patch.multiple(client, **mocks):
            first = ITISResolver(policy)("Alligator mississippiensis")
            second = ITISResolver(policy)("Alligator mississippiensis")
        assert first == second

    def test_cached(self, policy: RetryPolicy) -> None:
        mocks = _patch_itis()
        with patch.multiple(client, **mocks):
            resolver = ITISResolver(policy)
            resolver("Alligator mississippiensis")
            resolver("Alligator  mississippiensis")
        assert mocks["search_by_scientific_name"].call_count == 1

    def test_follows_accepted_name(self, policy: RetryPolicy) -> None:
        mocks = _patch_itis(
            search=lambda *a, **k: [{"tsn": "999", "combinedName": "Alligator lucius"}],
            accepted=[{"acceptedName": "Alligator mississippiensis", "acceptedTsn": "551771"}],
        )
        with patch.multiple(client, **mocks):
            match = ITISResolver(policy)("Alligator lucius")
        assert match is not None
        assert match.tsn == 551771
        mocks["get_full_record"].assert_called_once()
        assert mocks["get_full_record"].call_args.args[0] == 551771

    def test_binomial_fallback(self, policy: RetryPolicy) -> None:
        def search(name: str, **_kwargs: Any) -> list[dict[str, str]]:
            return [ALLIGATOR] if name == "Alligator mississippiensis" else []

        mocks = _patch_itis(search=search)
        with patch.multiple(client, **mocks):
            match = ITISResolver(policy)("Alligator mississippiensis (Daudin, 1802)")
        assert match is not None
        assert match.tsn == 551771

    def test_no_match(self, policy: RetryPolicy) -> None:
        mocks = _patch_itis(search=lambda *a, **k: [])
        with patch.multiple(client, **mocks):
            assert ITISResolver(policy)("Nonexistent taxon") is None

    def test_non_species_rank(self, policy: RetryPolicy) -> None:
        genus = {"tsn": "174361", "combinedName": "Alligator"}
        mocks = _patch_itis(
            search=lambda *a, **k: [genus],
            record={"scientificName": {"combinedName": "Alligator"}, "taxRank": {"rankName": "Genus"}},
        )
        with patch.multiple(client, **mocks):
            match = ITISResolver(policy)("Alligator")
        assert match is not None
        assert match.rank == "Genus"
        assert not match.is_species

    def test_lookup_failure_is_no_match(
        self, policy: RetryPolicy, caplog: pytest.LogCaptureFixture
    ) -> None:
        mocks = _patch_itis(search=requests.Timeout())
        with patch.multiple(client, **mocks), caplog.at_level("WARNING"):
            assert ITISResolver(policy)("Alligator mississippiensis") is None
        assert mocks["search_by_scientific_name"].call_count == 3
        assert "ITIS lookup failed" in caplog.text
