"""Tests for rule-based insight generation."""

from decimal import Decimal

import pytest

from salon_analytics.analyses.insights import (
    INSUFFICIENT_REVENUE_DATA,
    NO_CONCERNS,
    NO_TREND_DATA,
    InsightCategory,
    InsightSeverity,
    activity_warning,
    generate_insights,
    period_name,
    revenue_insight,
    segment_insight,
    trend_insight,
)
from salon_analytics.foundation.buckets import CategoryCount, PeriodTotals
from salon_analytics.foundation.segments import SegmentSummary, summarize_segments


def _totals(value, count=10, top=None):
    value = Decimal(str(value))
    average = value / count if count else Decimal("0")
    return PeriodTotals(value, count, average, top)


class TestPeriodName:
    """Test period_name."""

    @pytest.mark.parametrize(
        "window_id, expected",
        [
            ("7D", "week"),
            ("30D", "month"),
            ("90D", "quarter"),
            ("1Y", "year"),
            ("5Y", "5 years"),
            ("20Y", "20 years"),
            ("lastMonth", "month"),
            ("ALL", "period"),
            (None, "period"),
        ],
    )
    def test_names(self, window_id, expected):
        assert period_name(window_id) == expected


class TestRevenueInsight:
    """Test revenue_insight thresholds."""

    @pytest.mark.parametrize(
        "current, fragment, severity",
        [
            (1200, "surged 20.0%", InsightSeverity.POSITIVE),
            (1150, "increased 15.0%", InsightSeverity.POSITIVE),
            (1100, "increased 10.0%", InsightSeverity.POSITIVE),
            (1050, "up 5.0%", InsightSeverity.POSITIVE),
            (1020, "up 2.0%", InsightSeverity.POSITIVE),
            (1000, "dipped 0.0%", InsightSeverity.INFO),
            (970, "dipped 3.0%", InsightSeverity.INFO),
            (950, "dipped 5.0%", InsightSeverity.INFO),
            (900, "down 10.0%", InsightSeverity.WARNING),
        ],
    )
    def test_thresholds(self, current, fragment, severity):
        """Values exactly on a cutoff fall into the lower bucket."""
        insight = revenue_insight(_totals(current), _totals(1000), "30D")

        assert fragment in insight.text
        assert insight.severity is severity
        assert insight.category is InsightCategory.REVENUE

    @pytest.mark.parametrize(
        "current, fragment, severity",
        [
            ("115004.00", "surged 15.0%", InsightSeverity.POSITIVE),
            ("114996.00", "increased 15.0%", InsightSeverity.POSITIVE),
            ("100004.00", "up 0.0%", InsightSeverity.POSITIVE),
            ("94996.00", "down 5.0%", InsightSeverity.WARNING),
        ],
    )
    def test_cutoffs_compare_unrounded_change(self, current, fragment, severity):
        """A change a hair past a cutoff crosses it even when it displays as the cutoff."""
        insight = revenue_insight(_totals(current), _totals("100000.00"), "30D")

        assert fragment in insight.text
        assert insight.severity is severity

    def test_surge_text(self):
        insight = revenue_insight(_totals(1300), _totals(1000), "7D")
        assert insight.text == "Excellent! Revenue surged 30.0% compared to the previous week"

    def test_urgent_text(self):
        insight = revenue_insight(_totals(500), _totals(1000), "90D")
        assert insight.text == "Revenue down 50.0% from previous quarter - urgent action needed"

    @pytest.mark.parametrize("previous", [None, _totals(0, count=0)])
    def test_no_baseline_is_insufficient_data(self, previous):
        insight = revenue_insight(_totals(1000), previous, "30D")

        assert insight.text == INSUFFICIENT_REVENUE_DATA
        assert insight.severity is InsightSeverity.INFO


class TestTrendInsight:
    """Test trend_insight."""

    def test_top_category(self):
        top = CategoryCount("Balayage", 14, Decimal("2800"))
        insight = trend_insight(_totals(5000, top=top), "30D")

        assert insight.text == "Balayage is your top performer with 14 bookings this month"
        assert insight.severity is InsightSeverity.POSITIVE

    def test_no_category_data(self):
        insight = trend_insight(_totals(5000), "30D")

        assert insight.text == NO_TREND_DATA
        assert insight.severity is InsightSeverity.INFO


class TestActivityWarning:
    """Test activity_warning."""

    def test_drop_over_threshold_warns(self):
        insight = activity_warning(_totals(800, count=8), _totals(1000, count=10))

        assert insight.text == "Bookings dropped 20% - time to boost marketing efforts"
        assert insight.severity is InsightSeverity.WARNING
        assert insight.category is InsightCategory.WARNING

    def test_drop_exactly_at_threshold_does_not_warn(self):
        insight = activity_warning(_totals(900, count=9), _totals(1000, count=10))

        assert insight.text == NO_CONCERNS
        assert insight.severity is InsightSeverity.INFO

    def test_drop_just_over_threshold_warns(self):
        insight = activity_warning(
            _totals(89996, count=89996), _totals(100000, count=100000)
        )

        assert insight.severity is InsightSeverity.WARNING
        assert insight.text == "Bookings dropped 10% - time to boost marketing efforts"

    @pytest.mark.parametrize("previous", [None, _totals(0, count=0)])
    def test_no_baseline_does_not_warn(self, previous):
        assert activity_warning(_totals(100, count=1), previous).text == NO_CONCERNS


def _summaries(distribution):
    """Build a full segment distribution from {segment: (count, share)}."""
    return [
        SegmentSummary(
            segment=empty.segment,
            count=distribution.get(empty.segment.value, (0, "0"))[0],
            share_pct=Decimal(distribution.get(empty.segment.value, (0, "0"))[1]),
            total_value=Decimal("0"),
            description=empty.description,
            action=empty.action,
        )
        for empty in summarize_segments([])
    ]


class TestSegmentInsight:
    """Test segment_insight."""

    def test_at_risk_share_warns(self):
        summaries = _summaries(
            {"atRisk": (2, "20"), "cantLoseThem": (1, "10"), "lost": (7, "70")}
        )

        insight = segment_insight(summaries)

        assert insight.severity is InsightSeverity.WARNING
        assert insight.text.startswith("3 valuable clients (30.0%) are at risk")

    def test_champions_praised_when_no_risk(self):
        summaries = _summaries({"champions": (4, "40"), "lost": (6, "60")})

        insight = segment_insight(summaries)

        assert insight.severity is InsightSeverity.POSITIVE
        assert insight.text.startswith("4 champions make up 40.0%")

    def test_nothing_to_say(self):
        assert segment_insight(_summaries({"lost": (5, "100")})) is None


class TestGenerateInsights:
    """Test generate_insights ranking."""

    def test_warnings_come_first(self):
        current = _totals(800, count=5)
        previous = _totals(1000, count=10)

        insights = generate_insights(current, previous, "30D")

        assert [i.severity for i in insights] == [
            InsightSeverity.WARNING,
            InsightSeverity.WARNING,
            InsightSeverity.INFO,
        ]
        assert insights[0].category is InsightCategory.REVENUE
        assert insights[1].category is InsightCategory.WARNING

    def test_positive_before_info(self):
        top = CategoryCount("Haircut", 6, Decimal("600"))
        insights = generate_insights(
            _totals(1200, count=12, top=top), _totals(1000, count=10), "7D"
        )

        assert [i.severity for i in insights] == [
            InsightSeverity.POSITIVE,
            InsightSeverity.POSITIVE,
            InsightSeverity.INFO,
        ]
        assert [i.category for i in insights] == [
            InsightCategory.REVENUE,
            InsightCategory.TREND,
            InsightCategory.WARNING,
        ]

    def test_first_report_has_only_neutral_insights(self):
        insights = generate_insights(_totals(500, count=5), None, "7D")

        assert {i.severity for i in insights} == {InsightSeverity.INFO}
        assert insights[0].text == INSUFFICIENT_REVENUE_DATA

    def test_segment_insight_is_appended(self):
        summaries = _summaries({"champions": (2, "50"), "lost": (2, "50")})

        insights = generate_insights(_totals(500, count=5), None, "7D", segments=summaries)

        assert len(insights) == 4
        assert insights[0].severity is InsightSeverity.POSITIVE
        assert "champions" in insights[0].text

    def test_as_dict(self):
        insight = generate_insights(_totals(500, count=5), None, "7D")[0]
        assert insight.as_dict() == {
            "text": INSUFFICIENT_REVENUE_DATA,
            "category": "revenue",
            "severity": "info",
        }
