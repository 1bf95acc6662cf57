"""Time-bucket aggregation of activity events.

Groups timestamped monetary events (bookings, sales) into the dense,
chronologically ordered buckets of a ``ReportWindow`` so that a current
series and its previous-period counterpart can be compared position by
position.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Iterator

from salon_analytics.foundation.windows import Granularity, ReportWindow, to_timezone

logger = logging.getLogger(__name__)

MONEY_PRECISION = Decimal("0.01")
# Standard precision for all percentages (2 decimal places)
PERCENTAGE_PRECISION = Decimal("0.01")

# Fixed English names so labels never depend on the process locale
_WEEKDAY_NAMES = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")
_MONTH_NAMES = (
    "Jan",
    "Feb",
    "Mar",
    "Apr",
    "May",
    "Jun",
    "Jul",
    "Aug",
    "Sep",
    "Oct",
    "Nov",
    "Dec",
)


@dataclass(frozen=True)
class ActivityEvent:
    """A single timestamped monetary event.

    Attributes
    ----------
    timestamp:
        When the activity happened. Naive values are interpreted as UTC.
    value:
        Monetary value of the activity
    category:
        Optional category (e.g. service name) used for top-category insights
    """

    timestamp: datetime
    value: Decimal
    category: str | None = None


@dataclass(frozen=True)
class Bucket:
    """Aggregated totals for one time slot of a series."""

    bucket_start: datetime
    label: str
    total: Decimal
    count: int


@dataclass(frozen=True)
class BucketSeries:
    """Dense, ascending series of buckets covering a report window.

    Attributes
    ----------
    window:
        Window the series was aggregated over
    buckets:
        One bucket per window point, oldest first, including empty buckets
    dropped_events:
        Number of input events that fell outside the window
    """

    window: ReportWindow
    buckets: tuple[Bucket, ...]
    dropped_events: int = 0

    def __post_init__(self) -> None:
        """Validate the series is dense and ordered."""
        if len(self.buckets) != self.window.point_count:
            raise ValueError(
                f"Series has {len(self.buckets)} buckets but window expects "
                f"{self.window.point_count}"
            )
        starts = [bucket.bucket_start for bucket in self.buckets]
        if any(earlier >= later for earlier, later in zip(starts, starts[1:])):
            raise ValueError("Buckets must be in strictly ascending order")

    def __len__(self) -> int:
        return len(self.buckets)

    def __iter__(self) -> Iterator[Bucket]:
        return iter(self.buckets)

    @property
    def total(self) -> Decimal:
        return sum((bucket.total for bucket in self.buckets), Decimal("0"))

    @property
    def count(self) -> int:
        return sum(bucket.count for bucket in self.buckets)

    def as_dict(self) -> dict[str, object]:
        """Return JSON-serialisable representation of the series."""
        return {
            "start": self.window.start.isoformat(),
            "end": self.window.end.isoformat(),
            "granularity": self.window.granularity.value,
            "buckets": [
                {
                    "bucket_start": bucket.bucket_start.isoformat(),
                    "label": bucket.label,
                    "total": str(bucket.total),
                    "count": bucket.count,
                }
                for bucket in self.buckets
            ],
        }


@dataclass(frozen=True)
class CategoryCount:
    """Activity count and value for a single category."""

    name: str
    count: int
    total: Decimal


@dataclass(frozen=True)
class PeriodTotals:
    """Summary totals of the events within one window.

    Attributes
    ----------
    total_value:
        Sum of event values
    activity_count:
        Number of events
    average_value:
        total_value / activity_count (zero when there are no events)
    top_category:
        Category with the most events, or None when no event has a category
    """

    total_value: Decimal
    activity_count: int
    average_value: Decimal
    top_category: CategoryCount | None = None

    def as_dict(self) -> dict[str, object]:
        return {
            "total_value": str(self.total_value),
            "activity_count": self.activity_count,
            "average_value": str(self.average_value),
            "top_category": (
                {
                    "name": self.top_category.name,
                    "count": self.top_category.count,
                    "total": str(self.top_category.total),
                }
                if self.top_category is not None
                else None
            ),
        }


def format_bucket_label(bucket_start: datetime, granularity: Granularity) -> str:
    """Return the display label for a bucket.

    >>> from datetime import datetime
    >>> format_bucket_label(datetime(2025, 6, 10), Granularity.DAY)
    'Tue Jun 10'
    >>> format_bucket_label(datetime(2025, 6, 1), Granularity.MONTH)
    'Jun 2025'
    """
    month = _MONTH_NAMES[bucket_start.month - 1]
    if granularity is Granularity.DAY:
        weekday = _WEEKDAY_NAMES[bucket_start.weekday()]
        return f"{weekday} {month} {bucket_start.day}"
    if granularity is Granularity.WEEK:
        return f"Week of {month} {bucket_start.day}, {bucket_start.year}"
    if granularity is Granularity.MONTH:
        return f"{month} {bucket_start.year}"
    if granularity is Granularity.YEAR:
        return str(bucket_start.year)
    raise ValueError(f"Unsupported granularity: {granularity}")  # pragma: no cover


def aggregate_events(
    events: Iterable[ActivityEvent], window: ReportWindow
) -> BucketSeries:
    """Aggregate events into the buckets of ``window``.

    Each event lands in exactly one bucket, found by truncating its
    timestamp (converted to the window's time zone) to the bucket boundary.
    Events outside ``[window.start, window.end)`` are dropped. For a
    previous-period window, events are placed by position relative to the
    current window and each bucket is labelled with its calendar period.

    Parameters
    ----------
    events:
        Events to aggregate, in any order
    window:
        Resolved report window. Pass ``window.previous()`` to build the
        previous-period series.

    Returns
    -------
    BucketSeries
        One bucket per window point, oldest first; empty buckets have zero
        total and count.

    Examples
    --------
    >>> from datetime import datetime
    >>> from decimal import Decimal
    >>> from salon_analytics.foundation.windows import resolve_window
    >>> window = resolve_window("7D", datetime(2025, 6, 15))
    >>> series = aggregate_events(
    ...     [ActivityEvent(datetime(2025, 6, 10), Decimal("100"))], window
    ... )
    >>> len(series), series.total
    (7, Decimal('100.00'))
    """
    starts = window.bucket_starts()
    boundaries = window.bucket_boundaries()
    totals = [Decimal("0")] * len(starts)
    counts = [0] * len(starts)

    dropped = 0
    for event in events:
        if not window.contains(event.timestamp):
            dropped += 1
            continue
        index = window.bucket_index(event.timestamp, boundaries)
        totals[index] += Decimal(str(event.value))
        counts[index] += 1

    if dropped:
        logger.debug(
            "Dropped %d events outside window %s..%s",
            dropped,
            window.start.isoformat(),
            window.end.isoformat(),
        )

    buckets = tuple(
        Bucket(
            bucket_start=start,
            label=format_bucket_label(start, window.granularity),
            total=total.quantize(MONEY_PRECISION, rounding=ROUND_HALF_UP),
            count=count,
        )
        for start, total, count in zip(starts, totals, counts)
    )
    return BucketSeries(window=window, buckets=buckets, dropped_events=dropped)


def summarize_events(
    events: Iterable[ActivityEvent], window: ReportWindow
) -> PeriodTotals:
    """Compute summary totals for the events inside ``window``."""
    total = Decimal("0")
    count = 0
    category_counts: Counter[str] = Counter()
    category_totals: dict[str, Decimal] = {}

    for event in events:
        if not window.contains(event.timestamp):
            continue
        value = Decimal(str(event.value))
        total += value
        count += 1
        if event.category:
            category_counts[event.category] += 1
            category_totals[event.category] = (
                category_totals.get(event.category, Decimal("0")) + value
            )

    top_category = None
    if category_counts:
        # Highest count wins; ties broken alphabetically for determinism
        name, top_count = min(
            category_counts.items(), key=lambda item: (-item[1], item[0])
        )
        top_category = CategoryCount(
            name=name,
            count=top_count,
            total=category_totals[name].quantize(
                MONEY_PRECISION, rounding=ROUND_HALF_UP
            ),
        )

    average = total / count if count else Decimal("0")
    return PeriodTotals(
        total_value=total.quantize(MONEY_PRECISION, rounding=ROUND_HALF_UP),
        activity_count=count,
        average_value=average.quantize(MONEY_PRECISION, rounding=ROUND_HALF_UP),
        top_category=top_category,
    )


def percent_delta(
    current: Decimal | int,
    previous: Decimal | int,
    precision: Decimal | None = PERCENTAGE_PRECISION,
) -> Decimal | None:
    """Signed percent change from ``previous`` to ``current``.

    Returns None when ``previous`` is zero: there is no meaningful
    percentage, and callers must render it as "insufficient data" rather
    than as a number. Pass ``precision=None`` for the unrounded value, which
    is what threshold comparisons must use.

    >>> percent_delta(150, 100)
    Decimal('50.00')
    >>> percent_delta(115004, 100000, precision=None)
    Decimal('15.00400')
    >>> percent_delta(10, 0) is None
    True
    """
    current_value = Decimal(str(current))
    previous_value = Decimal(str(previous))
    if previous_value == 0:
        return None
    change = (current_value - previous_value) / previous_value * 100
    if precision is None:
        return change
    return change.quantize(precision, rounding=ROUND_HALF_UP)
