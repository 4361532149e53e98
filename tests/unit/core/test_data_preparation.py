"""
Tests for bucketing raw measurements into analysis periods.

Covers:
- Daily, Sunday-aligned weekly and monthly bucket keys
- Confidence-weighted aggregation
- Per-bucket count/min/max/variance
- Ordering and count conservation (property-based)
"""

from datetime import UTC, datetime, timedelta, timezone

import pytest
from hypothesis import given
from hypothesis import strategies as st

from core.domain.models import Granularity, RawPoint
from core.services.data_preparation import (
    aggregated_value,
    period_key,
    period_start,
    prepare_data_for_analysis,
)


class TestPeriodKey:
    """Calendar bucket keys."""

    @pytest.mark.parametrize(
        "timestamp,expected",
        [
            (datetime(2024, 1, 7, 12, tzinfo=UTC), "2024-01-07"),  # Sunday
            (datetime(2024, 1, 10, tzinfo=UTC), "2024-01-07"),  # Wednesday
            (datetime(2024, 1, 13, 23, 59, tzinfo=UTC), "2024-01-07"),  # Saturday
            (datetime(2024, 1, 14, tzinfo=UTC), "2024-01-14"),  # next Sunday
            (datetime(2024, 3, 1, tzinfo=UTC), "2024-02-25"),  # crosses month boundary
        ],
    )
    def test_weekly_buckets_start_on_sunday(self, timestamp: datetime, expected: str) -> None:
        assert period_key(timestamp, Granularity.WEEKLY) == expected

    def test_daily_key_is_iso_date(self) -> None:
        assert period_key(datetime(2024, 5, 9, 18, 30, tzinfo=UTC), "daily") == "2024-05-09"

    def test_monthly_key_is_year_month(self) -> None:
        assert period_key(datetime(2024, 5, 31, tzinfo=UTC), Granularity.MONTHLY) == "2024-05"

    def test_unknown_granularity_falls_back_to_daily(self) -> None:
        assert period_key(datetime(2024, 5, 9, tzinfo=UTC), "hourly") == "2024-05-09"

    def test_keys_use_utc_calendar(self) -> None:
        plus_five = timezone(timedelta(hours=5))
        timestamp = datetime(2024, 1, 2, 1, 0, tzinfo=plus_five)  # 2024-01-01 20:00 UTC

        assert period_key(timestamp, Granularity.DAILY) == "2024-01-01"

    def test_period_start_is_midnight_utc(self) -> None:
        assert period_start("2024-03") == datetime(2024, 3, 1, tzinfo=UTC)
        assert period_start("2024-03-03") == datetime(2024, 3, 3, tzinfo=UTC)


class TestAggregation:
    """Confidence-weighted bucket values."""

    def test_weighted_mean_uses_confidence(self) -> None:
        points = [
            RawPoint(timestamp=datetime(2024, 1, 1, tzinfo=UTC), value=10.0, confidence=1.0),
            RawPoint(timestamp=datetime(2024, 1, 1, tzinfo=UTC), value=20.0, confidence=3.0),
        ]
        assert aggregated_value(points) == pytest.approx(17.5)

    def test_missing_or_zero_confidence_weighs_one(self) -> None:
        points = [
            RawPoint(timestamp=datetime(2024, 1, 1, tzinfo=UTC), value=10.0, confidence=0.0),
            RawPoint(timestamp=datetime(2024, 1, 1, tzinfo=UTC), value=20.0),
        ]
        assert aggregated_value(points) == pytest.approx(15.0)


class TestPrepareDataForAnalysis:
    """End-to-end preparation of a raw series."""

    def test_buckets_carry_count_min_max_variance(self) -> None:
        start = datetime(2024, 1, 7, tzinfo=UTC)
        points = [
            RawPoint(timestamp=start + timedelta(days=1), value=10.0),
            RawPoint(timestamp=start + timedelta(days=2), value=20.0),
            RawPoint(timestamp=start + timedelta(days=8), value=30.0),
        ]

        prepared = prepare_data_for_analysis(points, Granularity.WEEKLY)

        assert [p.period for p in prepared] == ["2024-01-07", "2024-01-14"]
        first = prepared[0]
        assert first.count == 2
        assert first.min == 10.0
        assert first.max == 20.0
        assert first.value == pytest.approx(15.0)
        assert first.variance == pytest.approx(25.0)
        assert prepared[1].variance == 0.0

    def test_unsorted_input_is_ordered_and_not_mutated(self) -> None:
        points = [
            RawPoint(timestamp=datetime(2024, 3, 5, tzinfo=UTC), value=3.0),
            RawPoint(timestamp=datetime(2024, 1, 5, tzinfo=UTC), value=1.0),
            RawPoint(timestamp=datetime(2024, 2, 5, tzinfo=UTC), value=2.0),
        ]
        original_order = list(points)

        prepared = prepare_data_for_analysis(points, Granularity.MONTHLY)

        assert [p.value for p in prepared] == [1.0, 2.0, 3.0]
        assert [p.period for p in prepared] == ["2024-01", "2024-02", "2024-03"]
        assert points == original_order

    def test_naive_timestamps_are_treated_as_utc(self) -> None:
        point = RawPoint(timestamp=datetime(2024, 1, 1, 23, 0), value=1.0)

        assert point.timestamp.tzinfo == UTC
        assert prepare_data_for_analysis([point], Granularity.DAILY)[0].period == "2024-01-01"

    def test_empty_input_prepares_nothing(self) -> None:
        assert prepare_data_for_analysis([], Granularity.WEEKLY) == []

    @given(
        offsets=st.lists(st.integers(min_value=0, max_value=2000), min_size=1, max_size=60),
        granularity=st.sampled_from(list(Granularity)),
    )
    def test_bucket_counts_sum_to_raw_count(
        self, offsets: list[int], granularity: Granularity
    ) -> None:
        """Property-based test: bucketing never drops or duplicates a measurement."""
        start = datetime(2020, 1, 1, tzinfo=UTC)
        points = [
            RawPoint(timestamp=start + timedelta(hours=6 * offset), value=float(offset % 17))
            for offset in offsets
        ]

        prepared = prepare_data_for_analysis(points, granularity)

        assert sum(p.count for p in prepared) == len(points)
        assert len({p.period for p in prepared}) == len(prepared)
        timestamps = [p.timestamp for p in prepared]
        assert timestamps == sorted(timestamps)
