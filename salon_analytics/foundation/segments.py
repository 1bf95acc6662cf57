"""Lifecycle segment classification from RFM scores.

Segments are assigned by an ordered decision table. The rules overlap (a
single score triple can satisfy several of them), so the first matching
rule wins and the order of ``SEGMENT_RULES`` is part of the contract: it
reproduces the segmentation used in existing business reports.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import TYPE_CHECKING, Mapping, Sequence

if TYPE_CHECKING:
    from salon_analytics.foundation.rfm import CustomerSnapshot, RFMScore

PERCENTAGE_PRECISION = Decimal("0.01")
MONEY_PRECISION = Decimal("0.01")


class Segment(str, Enum):
    """The eleven customer lifecycle segments.

    Values match the identifiers stored on customer records.
    """

    CHAMPIONS = "champions"
    LOYAL = "loyal"
    CANT_LOSE_THEM = "cantLoseThem"
    AT_RISK = "atRisk"
    POTENTIAL_LOYALIST = "potentialLoyalist"
    NEW_CUSTOMERS = "newCustomers"
    PROMISING = "promising"
    NEED_ATTENTION = "needAttention"
    ABOUT_TO_SLEEP = "aboutToSleep"
    HIBERNATING = "hibernating"
    LOST = "lost"


@dataclass(frozen=True)
class SegmentRule:
    """One row of the segment decision table.

    Each axis is an inclusive ``(low, high)`` score range.
    """

    segment: Segment
    recency: tuple[int, int] = (1, 5)
    frequency: tuple[int, int] = (1, 5)
    monetary: tuple[int, int] = (1, 5)

    def matches(self, r: int, f: int, m: int) -> bool:
        return (
            self.recency[0] <= r <= self.recency[1]
            and self.frequency[0] <= f <= self.frequency[1]
            and self.monetary[0] <= m <= self.monetary[1]
        )


# Evaluated top to bottom; first match wins. Do not reorder.
SEGMENT_RULES: tuple[SegmentRule, ...] = (
    SegmentRule(Segment.CHAMPIONS, recency=(4, 5), frequency=(4, 5), monetary=(4, 5)),
    SegmentRule(Segment.LOYAL, recency=(3, 5), frequency=(4, 5), monetary=(3, 5)),
    SegmentRule(Segment.CANT_LOSE_THEM, recency=(1, 2), frequency=(4, 5), monetary=(4, 5)),
    SegmentRule(Segment.AT_RISK, recency=(1, 2), frequency=(3, 5), monetary=(3, 5)),
    SegmentRule(Segment.POTENTIAL_LOYALIST, recency=(4, 5), frequency=(2, 3)),
    SegmentRule(Segment.NEW_CUSTOMERS, recency=(4, 5), frequency=(1, 2), monetary=(1, 3)),
    SegmentRule(Segment.PROMISING, recency=(3, 5), frequency=(1, 2), monetary=(1, 2)),
    SegmentRule(Segment.NEED_ATTENTION, recency=(2, 3), frequency=(2, 3)),
    SegmentRule(Segment.ABOUT_TO_SLEEP, recency=(2, 3), frequency=(1, 2)),
    SegmentRule(Segment.HIBERNATING, recency=(1, 2), frequency=(2, 3)),
)
FALLBACK_SEGMENT = Segment.LOST


@dataclass(frozen=True)
class SegmentProfile:
    description: str
    action: str


SEGMENT_PROFILES: Mapping[Segment, SegmentProfile] = {
    Segment.CHAMPIONS: SegmentProfile(
        "Champions - Best customers",
        "Reward with loyalty perks, priority booking",
    ),
    Segment.LOYAL: SegmentProfile(
        "Loyal Customers - Regular high-value clients",
        "Upsell premium services, VIP treatment",
    ),
    Segment.POTENTIAL_LOYALIST: SegmentProfile(
        "Potential Loyalists - Recent customers with potential",
        "Build relationship, offer membership",
    ),
    Segment.NEW_CUSTOMERS: SegmentProfile(
        "New Customers - Recently joined",
        "Welcome offers, build loyalty",
    ),
    Segment.PROMISING: SegmentProfile(
        "Promising - Recent shoppers with potential",
        "Engage with offers, build frequency",
    ),
    Segment.NEED_ATTENTION: SegmentProfile(
        "Need Attention - Average customers slipping",
        "Re-engage with targeted offers",
    ),
    Segment.ABOUT_TO_SLEEP: SegmentProfile(
        "About to Sleep - Below average, declining",
        "Reactivation campaigns",
    ),
    Segment.AT_RISK: SegmentProfile(
        "At Risk - Good clients going inactive",
        "Win-back campaigns, special offers",
    ),
    Segment.CANT_LOSE_THEM: SegmentProfile(
        "Can't Lose Them - High-value clients at risk",
        "Urgent win-back, personal outreach",
    ),
    Segment.HIBERNATING: SegmentProfile(
        "Hibernating - Inactive but had value",
        "Reactivation with strong incentives",
    ),
    Segment.LOST: SegmentProfile(
        "Lost - Inactive low-value",
        "Ignore or minimal effort",
    ),
}


def classify_segment(r: int, f: int, m: int) -> Segment:
    """Classify an (r, f, m) score triple into a lifecycle segment.

    >>> classify_segment(5, 5, 5).value
    'champions'
    >>> classify_segment(1, 1, 1).value
    'lost'
    """
    for name, score in (("recency", r), ("frequency", f), ("monetary", m)):
        if not 1 <= score <= 5:
            raise ValueError(f"{name} score must be between 1 and 5: {score}")
    for rule in SEGMENT_RULES:
        if rule.matches(r, f, m):
            return rule.segment
    return FALLBACK_SEGMENT


@dataclass(frozen=True)
class SegmentSummary:
    """Distribution entry for one segment within a cohort.

    Attributes
    ----------
    segment:
        The segment summarised
    count:
        Number of customers in the segment
    share_pct:
        Percentage of the cohort in the segment
    total_value:
        Lifetime monetary value of the segment's customers
    description, action:
        Human-readable profile of the segment
    """

    segment: Segment
    count: int
    share_pct: Decimal
    total_value: Decimal
    description: str
    action: str

    def as_dict(self) -> dict[str, object]:
        return {
            "segment": self.segment.value,
            "count": self.count,
            "share_pct": str(self.share_pct),
            "total_value": str(self.total_value),
            "description": self.description,
            "action": self.action,
        }


def summarize_segments(
    scores: Sequence[RFMScore],
    snapshots: Sequence[CustomerSnapshot] = (),
) -> list[SegmentSummary]:
    """Summarise how a scored cohort is distributed across segments.

    Every segment appears in the result (in ``Segment`` order), zero-filled
    when empty.

    Parameters
    ----------
    scores:
        Scores for the cohort
    snapshots:
        Optional snapshots used to total each segment's monetary value;
        customers without a snapshot contribute zero
    """
    value_by_customer = {
        snapshot.customer_id: snapshot.total_monetary_value for snapshot in snapshots
    }
    counts = {segment: 0 for segment in Segment}
    values = {segment: Decimal("0") for segment in Segment}
    for score in scores:
        counts[score.segment] += 1
        values[score.segment] += value_by_customer.get(score.customer_id, Decimal("0"))

    cohort_size = len(scores)
    summaries = []
    for segment in Segment:
        if cohort_size:
            share = (Decimal(counts[segment]) / Decimal(cohort_size) * 100).quantize(
                PERCENTAGE_PRECISION, rounding=ROUND_HALF_UP
            )
        else:
            share = Decimal("0.00")
        profile = SEGMENT_PROFILES[segment]
        summaries.append(
            SegmentSummary(
                segment=segment,
                count=counts[segment],
                share_pct=share,
                total_value=values[segment].quantize(
                    MONEY_PRECISION, rounding=ROUND_HALF_UP
                ),
                description=profile.description,
                action=profile.action,
            )
        )
    return summaries
