"""Tests for segment classification and distribution."""

import itertools
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from salon_analytics.foundation.rfm import CustomerSnapshot, score_cohort
from salon_analytics.foundation.segments import (
    SEGMENT_PROFILES,
    SEGMENT_RULES,
    Segment,
    classify_segment,
    summarize_segments,
)


class TestClassifySegment:
    """Test classify_segment decision table."""

    @pytest.mark.parametrize(
        "scores, expected",
        [
            ((5, 5, 5), Segment.CHAMPIONS),
            ((4, 5, 4), Segment.CHAMPIONS),
            ((4, 4, 3), Segment.LOYAL),
            ((3, 4, 3), Segment.LOYAL),
            ((2, 5, 5), Segment.CANT_LOSE_THEM),
            ((2, 4, 3), Segment.AT_RISK),
            ((1, 3, 3), Segment.AT_RISK),
            ((5, 3, 5), Segment.POTENTIAL_LOYALIST),
            ((5, 2, 1), Segment.POTENTIAL_LOYALIST),
            ((5, 1, 3), Segment.NEW_CUSTOMERS),
            ((3, 1, 2), Segment.PROMISING),
            ((3, 2, 2), Segment.PROMISING),
            ((3, 3, 1), Segment.NEED_ATTENTION),
            ((2, 2, 5), Segment.NEED_ATTENTION),
            ((3, 1, 5), Segment.ABOUT_TO_SLEEP),
            ((2, 1, 1), Segment.ABOUT_TO_SLEEP),
            ((1, 2, 1), Segment.HIBERNATING),
            ((1, 3, 1), Segment.HIBERNATING),
            ((1, 1, 1), Segment.LOST),
            ((1, 1, 5), Segment.LOST),
            ((5, 1, 4), Segment.LOST),
            ((3, 4, 1), Segment.LOST),
        ],
    )
    def test_classification(self, scores, expected):
        assert classify_segment(*scores) is expected

    def test_overlapping_rules_resolve_in_table_order(self):
        """(5, 2, 1) fits both potentialLoyalist and newCustomers; the earlier row wins."""
        matching = [rule.segment for rule in SEGMENT_RULES if rule.matches(5, 2, 1)]
        assert matching[:2] == [Segment.POTENTIAL_LOYALIST, Segment.NEW_CUSTOMERS]
        assert classify_segment(5, 2, 1) is Segment.POTENTIAL_LOYALIST

    def test_rule_order(self):
        assert [rule.segment for rule in SEGMENT_RULES] == [
            Segment.CHAMPIONS,
            Segment.LOYAL,
            Segment.CANT_LOSE_THEM,
            Segment.AT_RISK,
            Segment.POTENTIAL_LOYALIST,
            Segment.NEW_CUSTOMERS,
            Segment.PROMISING,
            Segment.NEED_ATTENTION,
            Segment.ABOUT_TO_SLEEP,
            Segment.HIBERNATING,
        ]

    def test_every_triple_has_exactly_one_segment(self):
        for r, f, m in itertools.product(range(1, 6), repeat=3):
            first = classify_segment(r, f, m)
            assert isinstance(first, Segment)
            assert classify_segment(r, f, m) is first

    @pytest.mark.parametrize("scores", [(0, 3, 3), (3, 6, 3), (3, 3, -1)])
    def test_out_of_range_scores_raise(self, scores):
        with pytest.raises(ValueError, match="must be between 1 and 5"):
            classify_segment(*scores)

    def test_segment_values_match_stored_identifiers(self):
        assert [segment.value for segment in Segment] == [
            "champions",
            "loyal",
            "cantLoseThem",
            "atRisk",
            "potentialLoyalist",
            "newCustomers",
            "promising",
            "needAttention",
            "aboutToSleep",
            "hibernating",
            "lost",
        ]

    def test_every_segment_has_a_profile(self):
        assert set(SEGMENT_PROFILES) == set(Segment)


class TestSummarizeSegments:
    """Test summarize_segments."""

    @pytest.fixture
    def cohort(self):
        return [
            CustomerSnapshot("C1", "salon-1", datetime(2025, 6, 1), 1, Decimal("1000")),
            CustomerSnapshot("C2", "salon-1", datetime(2025, 6, 1), 5, Decimal("5000")),
            CustomerSnapshot("C3", "salon-1", datetime(2025, 6, 1), 10, Decimal("10000")),
        ]

    def test_distribution(self, cohort):
        scores = score_cohort(cohort, datetime(2025, 6, 15, tzinfo=timezone.utc))

        summaries = {s.segment: s for s in summarize_segments(scores, cohort)}

        assert len(summaries) == len(Segment)
        assert summaries[Segment.LOYAL].count == 1
        assert summaries[Segment.LOYAL].share_pct == Decimal("33.33")
        assert summaries[Segment.LOYAL].total_value == Decimal("10000.00")
        assert summaries[Segment.PROMISING].total_value == Decimal("1000.00")
        assert summaries[Segment.CHAMPIONS].count == 0
        assert summaries[Segment.CHAMPIONS].share_pct == Decimal("0.00")
        assert sum(s.count for s in summaries.values()) == 3

    def test_without_snapshots_values_are_zero(self, cohort):
        scores = score_cohort(cohort, datetime(2025, 6, 15, tzinfo=timezone.utc))
        assert all(s.total_value == Decimal("0.00") for s in summarize_segments(scores))

    def test_empty_cohort(self):
        summaries = summarize_segments([])

        assert [s.segment for s in summaries] == list(Segment)
        assert all(s.count == 0 and s.share_pct == Decimal("0.00") for s in summaries)

    def test_as_dict_includes_profile(self):
        entry = summarize_segments([])[0].as_dict()

        assert entry["segment"] == "champions"
        assert entry["description"] == "Champions - Best customers"
        assert entry["action"] == "Reward with loyalty perks, priority booking"
        assert entry["share_pct"] == "0.00"
