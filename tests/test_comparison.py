"""Tests for current vs. previous period comparison."""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from salon_analytics.analyses.comparison import PeriodComparison, compare_periods
from salon_analytics.foundation.buckets import ActivityEvent, aggregate_events
from salon_analytics.foundation.windows import resolve_window

UTC = timezone.utc


class TestComparePeriods:
    """Test compare_periods."""

    def test_week_over_week(self):
        window = resolve_window("7D", datetime(2025, 6, 15))
        current = [
            ActivityEvent(datetime(2025, 6, 10, 9), Decimal("100"), "Haircut"),
            ActivityEvent(datetime(2025, 6, 10, 15), Decimal("50"), "Color"),
        ]
        previous = [ActivityEvent(datetime(2025, 6, 3, 11), Decimal("100"), "Haircut")]

        comparison = compare_periods(current, previous, window)

        assert len(comparison.current) == len(comparison.previous) == 7
        assert comparison.previous.window.start == datetime(2025, 6, 1, tzinfo=UTC)
        assert comparison.current_totals.total_value == Decimal("150.00")
        assert comparison.previous_totals.total_value == Decimal("100.00")
        assert comparison.revenue_change_pct == Decimal("50.00")
        assert comparison.activity_change_pct == Decimal("100.00")
        assert comparison.average_value_change_pct == Decimal("-25.00")

    def test_empty_previous_period_has_no_deltas(self):
        window = resolve_window("30D", datetime(2025, 6, 15))
        comparison = compare_periods(
            [ActivityEvent(datetime(2025, 6, 1), Decimal("80"))], [], window
        )

        assert comparison.revenue_change_pct is None
        assert comparison.activity_change_pct is None
        assert comparison.average_value_change_pct is None
        assert comparison.previous.total == Decimal("0")

    def test_accepts_generators(self):
        window = resolve_window("7D", datetime(2025, 6, 15))
        events = (ActivityEvent(datetime(2025, 6, d), Decimal("10")) for d in (9, 10))

        comparison = compare_periods(events, iter([]), window)

        assert comparison.current.count == 2
        assert comparison.current_totals.activity_count == 2

    def test_events_outside_each_window_are_ignored(self):
        window = resolve_window("7D", datetime(2025, 6, 15))
        stray = [ActivityEvent(datetime(2025, 6, 10), Decimal("500"))]

        comparison = compare_periods([], stray, window)

        assert comparison.previous.count == 0
        assert comparison.previous_totals.activity_count == 0

    @pytest.mark.parametrize("window_id", ["1D", "90D", "1Y", "2Y", "10Y", "20Y", "ALL"])
    def test_series_always_have_equal_length(self, window_id):
        window = resolve_window(window_id, datetime(2025, 6, 15, 16))
        comparison = compare_periods([], [], window)

        assert len(comparison.current) == len(comparison.previous) == window.point_count

    def test_mismatched_series_raise(self):
        window = resolve_window("7D", datetime(2025, 6, 15))
        other = resolve_window("30D", datetime(2025, 6, 15))
        comparison = compare_periods([], [], window)

        with pytest.raises(ValueError, match="same number of buckets"):
            PeriodComparison(
                window=window,
                current=comparison.current,
                previous=aggregate_events([], other),
                current_totals=comparison.current_totals,
                previous_totals=comparison.previous_totals,
                revenue_change_pct=None,
                activity_change_pct=None,
                average_value_change_pct=None,
            )

    def test_as_dict(self):
        window = resolve_window("7D", datetime(2025, 6, 15))
        comparison = compare_periods(
            [ActivityEvent(datetime(2025, 6, 10), Decimal("150"))],
            [ActivityEvent(datetime(2025, 6, 3), Decimal("100"))],
            window,
        )

        data = comparison.as_dict()

        assert data["window_id"] == "7D"
        assert data["percent_deltas"] == {
            "revenue": "50.00",
            "activity": "0.00",
            "average_value": "50.00",
        }
        assert data["totals"]["current"]["total_value"] == "150.00"
        assert len(data["previous"]["buckets"]) == 7
