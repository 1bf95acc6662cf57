"""Rule-based natural-language insights for the analytics dashboard.

Turns period-over-period totals (and optionally a cohort's segment
distribution) into short, severity-tagged statements. All thresholds are
exact cutoffs on signed percent deltas; a value sitting exactly on a cutoff
falls into the lower-severity bucket.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Sequence

from salon_analytics.foundation.buckets import PeriodTotals, percent_delta
from salon_analytics.foundation.segments import Segment, SegmentSummary

# Revenue change cutoffs (percent)
SURGE_THRESHOLD = Decimal("15")
GROWTH_THRESHOLD = Decimal("5")
DIP_THRESHOLD = Decimal("-5")
# Activity drop that triggers a warning (percent)
ACTIVITY_DROP_THRESHOLD = Decimal("-10")
# Share of the cohort in at-risk segments that triggers a warning (percent)
AT_RISK_SHARE_THRESHOLD = Decimal("20")

INSUFFICIENT_REVENUE_DATA = (
    "Insufficient data to generate revenue insights for this period"
)
NO_TREND_DATA = "Track your service performance to identify top revenue generators"
NO_CONCERNS = "No major concerns detected - keep up the great work!"

_PERIOD_NAMES = {
    "1D": "day",
    "7D": "week",
    "30D": "month",
    "90D": "quarter",
    "180D": "6 months",
    "1Y": "year",
    "thisWeek": "week",
    "thisMonth": "month",
    "lastMonth": "month",
    "last3Months": "quarter",
    "last6Months": "6 months",
    "lastYear": "year",
}


class InsightCategory(str, Enum):
    REVENUE = "revenue"
    TREND = "trend"
    WARNING = "warning"


class InsightSeverity(str, Enum):
    POSITIVE = "positive"
    WARNING = "warning"
    INFO = "info"


# Display order: problems first, then good news, then neutral remarks
_SEVERITY_RANK = {
    InsightSeverity.WARNING: 0,
    InsightSeverity.POSITIVE: 1,
    InsightSeverity.INFO: 2,
}


@dataclass(frozen=True)
class InsightStatement:
    """A single dashboard insight. Regenerated per request, never stored."""

    text: str
    category: InsightCategory
    severity: InsightSeverity

    def as_dict(self) -> dict[str, str]:
        return {
            "text": self.text,
            "category": self.category.value,
            "severity": self.severity.value,
        }


def period_name(window_id: str | None) -> str:
    """Human-readable name of a window, e.g. "7D" -> "week".

    >>> period_name("90D"), period_name("5Y"), period_name("ALL")
    ('quarter', '5 years', 'period')
    """
    if window_id is None:
        return "period"
    if window_id in _PERIOD_NAMES:
        return _PERIOD_NAMES[window_id]
    if window_id.endswith("Y") and window_id[:-1].isdigit():
        return f"{int(window_id[:-1])} years"
    return "period"


def revenue_insight(
    current: PeriodTotals, previous: PeriodTotals | None, window_id: str | None
) -> InsightStatement:
    """Describe the change in total value against the previous period."""
    change = (
        percent_delta(current.total_value, previous.total_value, precision=None)
        if previous is not None
        else None
    )
    if change is None:
        return InsightStatement(
            INSUFFICIENT_REVENUE_DATA, InsightCategory.REVENUE, InsightSeverity.INFO
        )

    period = period_name(window_id)
    magnitude = f"{abs(change):.1f}"
    if change > SURGE_THRESHOLD:
        return InsightStatement(
            f"Excellent! Revenue surged {magnitude}% compared to the previous {period}",
            InsightCategory.REVENUE,
            InsightSeverity.POSITIVE,
        )
    if change > GROWTH_THRESHOLD:
        return InsightStatement(
            f"Revenue increased {magnitude}% vs previous {period} - steady growth",
            InsightCategory.REVENUE,
            InsightSeverity.POSITIVE,
        )
    if change > 0:
        return InsightStatement(
            f"Revenue up {magnitude}% from last {period} - maintaining momentum",
            InsightCategory.REVENUE,
            InsightSeverity.POSITIVE,
        )
    if change >= DIP_THRESHOLD:
        return InsightStatement(
            f"Revenue dipped {magnitude}% vs last {period} - consider promotional campaigns",
            InsightCategory.REVENUE,
            InsightSeverity.INFO,
        )
    return InsightStatement(
        f"Revenue down {magnitude}% from previous {period} - urgent action needed",
        InsightCategory.REVENUE,
        InsightSeverity.WARNING,
    )


def trend_insight(current: PeriodTotals, window_id: str | None) -> InsightStatement:
    """Name the busiest category of the current period."""
    top = current.top_category
    if top is not None and top.count > 0:
        return InsightStatement(
            f"{top.name} is your top performer with {top.count} bookings "
            f"this {period_name(window_id)}",
            InsightCategory.TREND,
            InsightSeverity.POSITIVE,
        )
    return InsightStatement(NO_TREND_DATA, InsightCategory.TREND, InsightSeverity.INFO)


def activity_warning(
    current: PeriodTotals, previous: PeriodTotals | None
) -> InsightStatement:
    """Flag a drop of more than 10% in activity count."""
    change = (
        percent_delta(
            current.activity_count, previous.activity_count, precision=None
        )
        if previous is not None
        else None
    )
    if change is not None and change < ACTIVITY_DROP_THRESHOLD:
        return InsightStatement(
            f"Bookings dropped {abs(change):.0f}% - time to boost marketing efforts",
            InsightCategory.WARNING,
            InsightSeverity.WARNING,
        )
    return InsightStatement(NO_CONCERNS, InsightCategory.WARNING, InsightSeverity.INFO)


def segment_insight(segments: Sequence[SegmentSummary]) -> InsightStatement | None:
    """Highlight at-risk high-value customers, or else the champions share.

    Returns None when the distribution has nothing worth saying.
    """
    by_segment = {summary.segment: summary for summary in segments}
    at_risk = [
        by_segment[segment]
        for segment in (Segment.AT_RISK, Segment.CANT_LOSE_THEM)
        if segment in by_segment
    ]
    at_risk_count = sum(summary.count for summary in at_risk)
    at_risk_share = sum((summary.share_pct for summary in at_risk), Decimal("0"))
    if at_risk_count and at_risk_share > AT_RISK_SHARE_THRESHOLD:
        return InsightStatement(
            f"{at_risk_count} valuable clients ({at_risk_share:.1f}%) are at risk "
            "of lapsing - launch a win-back campaign",
            InsightCategory.WARNING,
            InsightSeverity.WARNING,
        )

    champions = by_segment.get(Segment.CHAMPIONS)
    if champions is not None and champions.count > 0:
        return InsightStatement(
            f"{champions.count} champions make up {champions.share_pct:.1f}% of "
            "your clients - reward them with loyalty perks",
            InsightCategory.TREND,
            InsightSeverity.POSITIVE,
        )
    return None


def generate_insights(
    current: PeriodTotals,
    previous: PeriodTotals | None,
    window_id: str | None,
    segments: Sequence[SegmentSummary] | None = None,
) -> list[InsightStatement]:
    """Generate ranked insights for a report.

    Parameters
    ----------
    current:
        Totals for the current window
    previous:
        Totals for the previous equivalent window, or None if unavailable
    window_id:
        Symbolic window identifier, used to name the period in text
    segments:
        Optional segment distribution of the tenant's cohort

    Returns
    -------
    list[InsightStatement]
        Warnings first, then positive statements, then informational ones;
        order within a severity follows revenue, trend, warning, segment.

    Examples
    --------
    >>> from decimal import Decimal
    >>> from salon_analytics.foundation.buckets import PeriodTotals
    >>> now = PeriodTotals(Decimal("1200"), 12, Decimal("100"))
    >>> before = PeriodTotals(Decimal("1000"), 10, Decimal("100"))
    >>> [i.text for i in generate_insights(now, before, "30D")][0]
    'Excellent! Revenue surged 20.0% compared to the previous month'
    """
    insights = [
        revenue_insight(current, previous, window_id),
        trend_insight(current, window_id),
        activity_warning(current, previous),
    ]
    if segments:
        extra = segment_insight(segments)
        if extra is not None:
            insights.append(extra)
    return sorted(insights, key=lambda insight: _SEVERITY_RANK[insight.severity])
