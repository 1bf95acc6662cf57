"""Reporting window resolution for time-series analytics.

A report request names a symbolic window ("7D", "1Y", "ALL", ...) or an
explicit custom range. This module turns either into a concrete
``[start, end)`` interval in the tenant's canonical time zone and chooses a
bucket granularity so that a chart of the window never renders too sparse
or too dense.

Granularity breakpoints (span in days):

- up to 183 days: daily buckets (at most 184 points)
- up to 366 days: weekly buckets (at most 54 points)
- up to 3660 days: monthly buckets (at most 122 points)
- beyond that: yearly buckets

Buckets are calendar aligned: days start at midnight, weeks on Monday,
months on the 1st and years on January 1st, all in the window's time zone.
The number of points is therefore the number of aligned buckets that
intersect the window, which can exceed ``ceil(span / unit)`` by one when the
window does not start on a bucket boundary.
"""

from __future__ import annotations

from bisect import bisect_right
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone, tzinfo
from enum import Enum

DEFAULT_EPOCH_FLOOR = date(2000, 1, 1)
DEFAULT_MAX_POINTS = 400
ALL_TIME = "ALL"

# Inclusive upper span (days) for each granularity; anything larger is yearly.
DAY_SPAN_LIMIT = 183
WEEK_SPAN_LIMIT = 366
MONTH_SPAN_LIMIT = 3660

_DAY_WINDOWS = {"1D": 1, "7D": 7, "30D": 30, "90D": 90, "180D": 180}
_YEAR_WINDOWS = {
    "1Y": 1,
    "2Y": 2,
    "3Y": 3,
    "5Y": 5,
    "7Y": 7,
    "9Y": 9,
    "10Y": 10,
    "15Y": 15,
    "20Y": 20,
}
# Legacy identifiers still sent by older dashboards
_WINDOW_ALIASES = {
    "thisWeek": "7D",
    "last3Months": "90D",
    "last6Months": "180D",
    "lastYear": "1Y",
    "allTime": ALL_TIME,
}
THIS_MONTH = "thisMonth"
LAST_MONTH = "lastMonth"

SUPPORTED_WINDOWS = (
    *_DAY_WINDOWS,
    *_YEAR_WINDOWS,
    ALL_TIME,
    THIS_MONTH,
    LAST_MONTH,
    *_WINDOW_ALIASES,
)


class InvalidRangeError(ValueError):
    """Raised for malformed, inverted, empty or unrenderable report windows."""


class Granularity(str, Enum):
    """Bucket widths used for report series."""

    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"


@dataclass(frozen=True)
class ReportWindow:
    """A concrete reporting interval and its bucket layout.

    Attributes
    ----------
    start:
        Inclusive start of the window (timezone-aware)
    end:
        Exclusive end of the window (timezone-aware, same zone as start)
    granularity:
        Bucket width used to aggregate events in this window
    point_count:
        Number of buckets the window is split into (always >= 1)
    window_id:
        Symbolic identifier the window was resolved from, or None for
        custom ranges
    alignment_offset:
        Shift between this window and the window whose calendar-aligned
        buckets it reuses. Zero for resolved windows; equal to the span for
        the previous-period window so both series line up bucket for bucket.
    """

    start: datetime
    end: datetime
    granularity: Granularity
    point_count: int
    window_id: str | None = None
    alignment_offset: timedelta = timedelta(0)

    def __post_init__(self) -> None:
        """Validate window bounds."""
        if self.start.tzinfo is None or self.end.tzinfo is None:
            raise InvalidRangeError(
                f"Window bounds must be timezone-aware: start={self.start}, end={self.end}"
            )
        if self.start >= self.end:
            raise InvalidRangeError(
                f"Window start must be before end: "
                f"start={self.start.isoformat()}, end={self.end.isoformat()}"
            )
        if self.point_count < 1:
            raise InvalidRangeError(
                f"Window must contain at least one bucket: {self.point_count}"
            )

    @property
    def span(self) -> timedelta:
        return self.end - self.start

    @property
    def tz(self) -> tzinfo:
        return self.start.tzinfo

    def bucket_boundaries(self) -> list[datetime]:
        """Return the lower edge of every bucket, oldest first.

        These decide which bucket an event falls into. For a resolved
        window they are the calendar-aligned bucket starts. For a
        previous-period window they are the current window's bucket starts
        moved back by ``alignment_offset``, so bucket ``i`` of both series
        covers the same relative slice of its window.
        """
        offset = self.alignment_offset
        return [
            bucket - offset
            for bucket in _aligned_buckets(
                self.start + offset, self.end + offset, self.granularity
            )
        ]

    def bucket_starts(self) -> list[datetime]:
        """Return the calendar-aligned start of every bucket, oldest first.

        The first bucket may begin before ``start`` when the window is not
        aligned to a bucket boundary; events before ``start`` are still
        excluded by the aggregator.

        A previous-period window reports the run of calendar periods
        nearest to its bucket boundaries: a span that is not a whole number
        of weeks, months or years moves the boundaries off Monday, the 1st
        or January 1st, but the reported starts stay aligned and unique.
        """
        boundaries = self.bucket_boundaries()
        if not self.alignment_offset:
            return boundaries
        starts = [_nearest_boundary(boundaries[0], self.granularity)]
        while len(starts) < len(boundaries):
            starts.append(advance(starts[-1], self.granularity))
        return starts

    def bucket_index(
        self, ts: datetime, boundaries: list[datetime] | None = None
    ) -> int:
        """Return the position of the bucket containing ``ts``.

        ``boundaries`` may be passed to reuse a precomputed
        ``bucket_boundaries()`` list. Timestamps outside the window are
        clamped to the first or last bucket; callers check ``contains``.
        """
        if boundaries is None:
            boundaries = self.bucket_boundaries()
        position = bisect_right(boundaries, to_timezone(ts, self.tz)) - 1
        return min(max(position, 0), len(boundaries) - 1)

    def contains(self, ts: datetime) -> bool:
        return self.start <= to_timezone(ts, self.tz) < self.end

    def previous(self) -> ReportWindow:
        """Return the equivalent window immediately before this one.

        Same span and granularity, shifted back by exactly one span. Its
        buckets mirror this window's buckets positionally, and its
        ``bucket_starts()`` report the matching calendar periods.
        """
        span = self.span
        return ReportWindow(
            start=self.start - span,
            end=self.end - span,
            granularity=self.granularity,
            point_count=self.point_count,
            window_id=self.window_id,
            alignment_offset=self.alignment_offset + span,
        )


def to_timezone(ts: datetime, tz: tzinfo) -> datetime:
    """Convert ``ts`` into ``tz``; naive timestamps are taken to be UTC."""
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(tz)


def truncate(ts: datetime, granularity: Granularity) -> datetime:
    """Truncate ``ts`` to the start of its bucket in its own time zone."""
    midnight = ts.replace(hour=0, minute=0, second=0, microsecond=0)
    if granularity is Granularity.DAY:
        return midnight
    if granularity is Granularity.WEEK:
        return midnight - timedelta(days=midnight.weekday())
    if granularity is Granularity.MONTH:
        return midnight.replace(day=1)
    if granularity is Granularity.YEAR:
        return midnight.replace(month=1, day=1)
    raise ValueError(f"Unsupported granularity: {granularity}")  # pragma: no cover


def advance(bucket_start: datetime, granularity: Granularity) -> datetime:
    """Return the start of the bucket following ``bucket_start``."""
    if granularity is Granularity.DAY:
        return bucket_start + timedelta(days=1)
    if granularity is Granularity.WEEK:
        return bucket_start + timedelta(days=7)
    if granularity is Granularity.MONTH:
        return _add_months(bucket_start, 1)
    if granularity is Granularity.YEAR:
        return bucket_start.replace(year=bucket_start.year + 1)
    raise ValueError(f"Unsupported granularity: {granularity}")  # pragma: no cover


def select_granularity(span: timedelta) -> Granularity:
    """Choose a bucket granularity from the window span.

    Coarsens monotonically as the span grows.
    """
    span_days = span.total_seconds() / 86400
    if span_days <= DAY_SPAN_LIMIT:
        return Granularity.DAY
    if span_days <= WEEK_SPAN_LIMIT:
        return Granularity.WEEK
    if span_days <= MONTH_SPAN_LIMIT:
        return Granularity.MONTH
    return Granularity.YEAR


def resolve_window(
    window_id: str,
    now: datetime,
    tz: tzinfo = timezone.utc,
    epoch_floor: date = DEFAULT_EPOCH_FLOOR,
    max_points: int = DEFAULT_MAX_POINTS,
) -> ReportWindow:
    """Resolve a symbolic window identifier against ``now``.

    Windows end at the first midnight at or after ``now`` (so the current
    day is included) and extend back by the window length.

    Parameters
    ----------
    window_id:
        One of ``SUPPORTED_WINDOWS`` (e.g. "7D", "1Y", "ALL", "lastMonth")
    now:
        Reference time. Naive values are interpreted as UTC.
    tz:
        The tenant's canonical time zone for bucket boundaries
    epoch_floor:
        Fixed start date of the "all time" window
    max_points:
        Upper bound on the number of buckets a window may produce

    Returns
    -------
    ReportWindow
        Resolved window in ``tz``

    Raises
    ------
    InvalidRangeError
        If the identifier is unknown.

    Examples
    --------
    >>> from datetime import datetime
    >>> window = resolve_window("7D", datetime(2025, 6, 15))
    >>> window.start.isoformat(), window.granularity.value, window.point_count
    ('2025-06-08T00:00:00+00:00', 'day', 7)
    """
    canonical = _WINDOW_ALIASES.get(window_id, window_id)
    local_now = to_timezone(now, tz)
    end = _ceil_to_day(local_now)

    if canonical in _DAY_WINDOWS:
        start = end - timedelta(days=_DAY_WINDOWS[canonical])
    elif canonical in _YEAR_WINDOWS:
        start = _shift_years(end, -_YEAR_WINDOWS[canonical])
    elif canonical == ALL_TIME:
        start = datetime(epoch_floor.year, epoch_floor.month, epoch_floor.day, tzinfo=tz)
        # Keep the axis defined even when "now" precedes the floor
        if end <= start:
            end = start + timedelta(days=1)
    elif canonical == THIS_MONTH:
        start = truncate(local_now, Granularity.MONTH)
        if end <= start:
            end = start + timedelta(days=1)
    elif canonical == LAST_MONTH:
        end = truncate(local_now, Granularity.MONTH)
        start = _add_months(end, -1)
    else:
        raise InvalidRangeError(
            f"Unknown window identifier: {window_id!r}. "
            f"Supported: {', '.join(SUPPORTED_WINDOWS)}"
        )

    return _build_window(start, end, window_id, max_points)


def resolve_custom_window(
    start: datetime,
    end: datetime,
    tz: tzinfo = timezone.utc,
    max_points: int = DEFAULT_MAX_POINTS,
) -> ReportWindow:
    """Resolve an explicit ``[start, end)`` range.

    Bypasses the symbolic lookup but goes through the same granularity
    selection as symbolic windows.

    Raises
    ------
    InvalidRangeError
        If ``end`` is not after ``start`` or the range needs more than
        ``max_points`` buckets even at yearly granularity.
    """
    local_start = to_timezone(start, tz)
    local_end = to_timezone(end, tz)
    if local_start >= local_end:
        raise InvalidRangeError(
            f"Custom range must have start before end: "
            f"start={local_start.isoformat()}, end={local_end.isoformat()}"
        )
    return _build_window(local_start, local_end, None, max_points)


def _build_window(
    start: datetime, end: datetime, window_id: str | None, max_points: int
) -> ReportWindow:
    if start >= end:
        raise InvalidRangeError(
            f"Window start must be before end: start={start.isoformat()}, end={end.isoformat()}"
        )
    granularity = select_granularity(end - start)
    point_count = len(_aligned_buckets(start, end, granularity))
    if point_count > max_points:
        raise InvalidRangeError(
            f"Window {start.date()}..{end.date()} needs {point_count} "
            f"{granularity.value} buckets; limit is {max_points}"
        )
    return ReportWindow(
        start=start,
        end=end,
        granularity=granularity,
        point_count=point_count,
        window_id=window_id,
    )


def _aligned_buckets(
    start: datetime, end: datetime, granularity: Granularity
) -> list[datetime]:
    buckets = []
    cursor = truncate(start, granularity)
    while cursor < end:
        buckets.append(cursor)
        cursor = advance(cursor, granularity)
    return buckets


def _ceil_to_day(ts: datetime) -> datetime:
    midnight = truncate(ts, Granularity.DAY)
    if midnight == ts:
        return midnight
    return midnight + timedelta(days=1)


def _add_months(ts: datetime, months: int) -> datetime:
    """Shift a month-start datetime by a number of months."""
    years, month_index = divmod(ts.month - 1 + months, 12)
    return ts.replace(year=ts.year + years, month=month_index + 1, day=1)


def _shift_years(ts: datetime, years: int) -> datetime:
    try:
        return ts.replace(year=ts.year + years)
    except ValueError:
        # Feb 29 in a non-leap target year
        return ts.replace(year=ts.year + years, day=28)


def _nearest_boundary(ts: datetime, granularity: Granularity) -> datetime:
    """Return the bucket boundary closest to ``ts``; halfway rounds down."""
    lower = truncate(ts, granularity)
    if lower == ts:
        return lower
    upper = advance(lower, granularity)
    return upper if upper - ts < ts - lower else lower
