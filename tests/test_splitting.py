"""Tests for temporal and offset query splitting."""

from __future__ import annotations

import pytest

from fwspp.datasources.splitting import (
    BatchAccumulator,
    PartialBatch,
    QueryBatch,
    YearRange,
    describe_plan,
    offset_batches,
    run_batches,
    temporal_partitions,
)
from fwspp.schemas import OccurrenceRecord
from fwspp.services.retry import Failure


def _uniform(per_year: int, current_year: int):  # type: ignore[no-untyped-def]
    """count_since for a constant number of records per year."""
    calls: list[int] = []

    def count_since(year: int) -> int:
        calls.append(year)
        return per_year * (current_year - year + 1)

    count_since.calls = calls  # type: ignore[attr-defined]
    return count_since


def _rec(name: str = "Alligator mississippiensis") -> OccurrenceRecord:
    return OccurrenceRecord(scientific_name=name, lon=-82.3, lat=30.8, bio_repo="GBIF")


class TestOffsetBatches:
    @pytest.mark.parametrize(
        ("total", "cap", "expected"),
        [(0, 100, 0), (1, 100, 1), (100, 100, 1), (101, 100, 2), (250_001, 125_000, 3)],
    )
    def test_batch_count_is_ceiling(self, total: int, cap: int, expected: int) -> None:
        assert len(offset_batches(total, cap)) == expected

    def test_offsets(self) -> None:
        batches = offset_batches(300_000, 125_000)
        assert [b.offset for b in batches] == [0, 125_000, 250_000]
        assert all(b.limit == 125_000 for b in batches)
        assert [b.index for b in batches] == [0, 1, 2]

    def test_invalid_cap(self) -> None:
        with pytest.raises(ValueError, match="cap must be positive"):
            offset_batches(10, 0)


class TestTemporalPartitions:
    """Year ranges walked back from the current year."""

    def test_single_range_under_cap(self) -> None:
        plan = temporal_partitions(100_000, 125_000, _uniform(1000, 2026), 2026)
        assert plan.ranges == [YearRange(1776, 2026)]
        assert plan.oversized == []

    def test_three_partitions(self) -> None:
        """300k records at 4000/year split at 2001 and 1970."""
        plan = temporal_partitions(300_000, 125_000, _uniform(4000, 2026), 2026)
        assert plan.ranges == [
            YearRange(1776, 1969),
            YearRange(1970, 2000),
            YearRange(2001, 2026),
        ]
        assert plan.estimates[YearRange(2001, 2026)] == 104_000
        assert plan.estimates[YearRange(1970, 2000)] == 124_000
        assert plan.estimates[YearRange(1776, 1969)] == 72_000
        assert plan.oversized == []

    def test_ranges_contiguous_and_cover_history(self) -> None:
        plan = temporal_partitions(900_000, 125_000, _uniform(3000, 2026), 2026)
        assert plan.ranges[0].start == 1776
        assert plan.ranges[-1].end == 2026
        for older, newer in zip(plan.ranges, plan.ranges[1:], strict=False):
            assert older.end + 1 == newer.start

    def test_counts_memoised(self) -> None:
        count_since = _uniform(4000, 2026)
        temporal_partitions(300_000, 125_000, count_since, 2026)
        calls = count_since.calls  # type: ignore[attr-defined]
        assert len(calls) == len(set(calls))

    def test_oversized_single_year_reported(self, caplog: pytest.LogCaptureFixture) -> None:
        """A single year above the cap can't be split further; it's flagged."""

        def count_since(year: int) -> int:
            return 200_000 if year <= 2026 else 0

        with caplog.at_level("WARNING", logger="fwspp.datasources.splitting"):
            plan = temporal_partitions(250_000, 125_000, count_since, 2026)
        assert YearRange(2026, 2026) in plan.oversized
        assert "exceed the per-query ceiling" in caplog.text

    def test_batches_from_plan(self) -> None:
        plan = temporal_partitions(300_000, 125_000, _uniform(4000, 2026), 2026)
        batches = plan.batches()
        assert [b.index for b in batches] == [0, 1, 2]
        assert batches[2].years == YearRange(2001, 2026)

    def test_describe_plan(self) -> None:
        plan = temporal_partitions(300_000, 125_000, _uniform(4000, 2026), 2026)
        summary = describe_plan(plan)
        assert summary["ranges"] == ["1776,1969", "1970,2000", "2001,2026"]
        assert summary["oversized"] == []


class TestYearRange:
    def test_param_and_str(self) -> None:
        r = YearRange(1970, 2000)
        assert r.as_param() == "1970,2000"
        assert str(r) == "1970 - 2000"


class TestBatchAccumulator:
    def test_merge_is_idempotent(self) -> None:
        acc = BatchAccumulator()
        batch = QueryBatch(index=0)
        assert acc.merge(batch, [_rec()], ["https://img/1"]) is True
        assert acc.merge(batch, [_rec()], ["https://img/1"]) is False
        assert len(acc.records) == 1
        assert acc.media == ["https://img/1"]
        assert acc.merged_batches == 1

    def test_concatenates_batches(self) -> None:
        acc = BatchAccumulator()
        acc.merge(QueryBatch(index=0), [_rec("A b")])
        acc.merge(QueryBatch(index=1), [_rec("C d"), _rec("E f")])
        assert [r.scientific_name for r in acc.records] == ["A b", "C d", "E f"]


class TestRunBatches:
    def test_failed_batch_skipped(self) -> None:
        failure = Failure("BISON", "timed out", 3)

        def fetch(batch: QueryBatch):  # type: ignore[no-untyped-def]
            if batch.index == 1:
                return failure
            return [_rec()], []

        acc = run_batches(offset_batches(300, 100), fetch)
        assert len(acc.records) == 2
        assert acc.failures == {1: failure}
        assert acc.merged_batches == 2

    def test_none_means_no_records(self) -> None:
        acc = run_batches([QueryBatch(index=0)], lambda _b: None)
        assert acc.records == []
        assert acc.merged_batches == 1

    def test_partial_batch_kept_and_recorded(self) -> None:
        failure = Failure("GBIF", "HTTP 400", 1)
        acc = run_batches(
            [QueryBatch(index=0)],
            lambda _b: PartialBatch([_rec(), _rec()], ["https://img/1"], failure),
        )
        assert len(acc.records) == 2
        assert acc.media == ["https://img/1"]
        assert acc.failures == {0: failure}
        assert acc.merged_batches == 1
