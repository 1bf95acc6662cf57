"""Current vs. previous period comparison.

Aggregates a report window and the equivalent window immediately before it
(same span, shifted back by one span) into two series that line up bucket
for bucket, and computes the percent change of the headline totals.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable

from salon_analytics.foundation.buckets import (
    ActivityEvent,
    BucketSeries,
    PeriodTotals,
    aggregate_events,
    percent_delta,
    summarize_events,
)
from salon_analytics.foundation.windows import ReportWindow


@dataclass(frozen=True)
class PeriodComparison:
    """Current and previous period series with totals and deltas.

    Attributes
    ----------
    window:
        The current report window
    current:
        Series for the current window
    previous:
        Series for the previous equivalent window; same length as current
    current_totals:
        Totals of the current window
    previous_totals:
        Totals of the previous window
    revenue_change_pct:
        Percent change of total value, or None when the previous period had
        no value (insufficient data)
    activity_change_pct:
        Percent change of activity count, or None when the previous period
        had no activity
    average_value_change_pct:
        Percent change of average value per activity, or None when the
        previous period had no activity
    """

    window: ReportWindow
    current: BucketSeries
    previous: BucketSeries
    current_totals: PeriodTotals
    previous_totals: PeriodTotals
    revenue_change_pct: Decimal | None
    activity_change_pct: Decimal | None
    average_value_change_pct: Decimal | None

    def __post_init__(self) -> None:
        """Validate the two series line up."""
        if len(self.current) != len(self.previous):
            raise ValueError(
                f"Current ({len(self.current)}) and previous ({len(self.previous)}) "
                "series must have the same number of buckets"
            )

    def as_dict(self) -> dict[str, object]:
        def _pct(value: Decimal | None) -> str | None:
            return None if value is None else str(value)

        return {
            "window_id": self.window.window_id,
            "current": self.current.as_dict(),
            "previous": self.previous.as_dict(),
            "totals": {
                "current": self.current_totals.as_dict(),
                "previous": self.previous_totals.as_dict(),
            },
            "percent_deltas": {
                "revenue": _pct(self.revenue_change_pct),
                "activity": _pct(self.activity_change_pct),
                "average_value": _pct(self.average_value_change_pct),
            },
        }


def compare_periods(
    current_events: Iterable[ActivityEvent],
    previous_events: Iterable[ActivityEvent],
    window: ReportWindow,
) -> PeriodComparison:
    """Compare a window with its previous equivalent period.

    Parameters
    ----------
    current_events:
        Events for ``window``; events outside it are ignored
    previous_events:
        Events for ``window.previous()``; events outside it are ignored
    window:
        The current report window

    Returns
    -------
    PeriodComparison
        Aligned series, totals and percent deltas

    Examples
    --------
    >>> from datetime import datetime
    >>> from decimal import Decimal
    >>> from salon_analytics.foundation.windows import resolve_window
    >>> window = resolve_window("7D", datetime(2025, 6, 15))
    >>> comparison = compare_periods(
    ...     [ActivityEvent(datetime(2025, 6, 10), Decimal("150"))],
    ...     [ActivityEvent(datetime(2025, 6, 3), Decimal("100"))],
    ...     window,
    ... )
    >>> comparison.revenue_change_pct
    Decimal('50.00')
    """
    # Materialise once; callers may pass generators
    current_list = list(current_events)
    previous_list = list(previous_events)
    previous_window = window.previous()

    current_totals = summarize_events(current_list, window)
    previous_totals = summarize_events(previous_list, previous_window)

    return PeriodComparison(
        window=window,
        current=aggregate_events(current_list, window),
        previous=aggregate_events(previous_list, previous_window),
        current_totals=current_totals,
        previous_totals=previous_totals,
        revenue_change_pct=percent_delta(
            current_totals.total_value, previous_totals.total_value
        ),
        activity_change_pct=percent_delta(
            current_totals.activity_count, previous_totals.activity_count
        ),
        average_value_change_pct=percent_delta(
            current_totals.average_value, previous_totals.average_value
        ),
    )
