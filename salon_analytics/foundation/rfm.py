"""RFM (Recency-Frequency-Monetary) scoring of a tenant's customer cohort.

RFM scoring ranks customers on three dimensions:
- Recency: How recently did the customer last visit?
- Frequency: How many visits have they made?
- Monetary: How much have they spent?

Scores are percentile ranks *relative to the cohort at computation time*.
Recomputing after the cohort changes (new customers, other customers'
visits) can change every member's score even when their own behaviour did
not change. This is expected, not a bug: a score says where a customer
stands among the tenant's customers today.
"""

from __future__ import annotations

import logging
import warnings
from collections import Counter
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Sequence

import pandas as pd  # Used for percentile ranking (rank)

from salon_analytics.foundation.lifecycle import CustomerLifecycle, assess_lifecycle
from salon_analytics.foundation.segments import Segment, classify_segment
from salon_analytics.foundation.windows import to_timezone

logger = logging.getLogger(__name__)

MIDPOINT_SCORE = 3
MIN_SCORE = 1
MAX_SCORE = 5
# Days-since-last-activity recorded for customers who never visited
NEVER_ACTIVE_DAYS = 999
DAYS_PER_MONTH = 30
# Percentile cut points between scores 1|2, 2|3, 3|4 and 4|5
QUINTILE_BREAKPOINTS = (0.2, 0.4, 0.6, 0.8)


class EmptyCohortWarning(UserWarning):
    """Emitted when a cohort is too small for relative scoring.

    Empty and single-member cohorts have no meaningful percentile ranks;
    every score falls back to the midpoint.
    """


@dataclass(frozen=True)
class CustomerSnapshot:
    """Read-only activity summary for one customer.

    Attributes
    ----------
    customer_id:
        Unique customer identifier
    cohort_id:
        Tenant the customer belongs to; scoring compares customers within
        one cohort only
    last_activity_at:
        Timestamp of the most recent visit, or None if never active
    total_activity_count:
        Total number of visits
    total_monetary_value:
        Total amount spent across all visits
    first_activity_at:
        Timestamp of the first visit, used for visits-per-month. When None
        the customer is treated as one month old.
    """

    customer_id: str
    cohort_id: str
    last_activity_at: datetime | None
    total_activity_count: int
    total_monetary_value: Decimal
    first_activity_at: datetime | None = None

    def __post_init__(self) -> None:
        """Validate snapshot values."""
        if self.total_activity_count < 0:
            raise ValueError(
                f"Activity count cannot be negative: {self.total_activity_count} "
                f"(customer_id={self.customer_id})"
            )
        if self.total_monetary_value < 0:
            raise ValueError(
                f"Monetary value cannot be negative: {self.total_monetary_value} "
                f"(customer_id={self.customer_id})"
            )


@dataclass(frozen=True)
class ActivityMetrics:
    """Raw per-customer metrics behind an RFM score.

    Attributes
    ----------
    days_since_last_activity:
        Whole days from last visit to scoring time (999 if never active)
    activity_per_month:
        Visits per month since the first visit (at least one month)
    average_value:
        Average spend per visit
    """

    days_since_last_activity: int
    activity_per_month: Decimal
    average_value: Decimal


@dataclass(frozen=True)
class RFMScore:
    """Cohort-relative RFM score for a single customer.

    Attributes
    ----------
    customer_id:
        Unique customer identifier
    cohort_id:
        Tenant the score is relative to
    recency_score:
        1-5, where 5 = most recent
    frequency_score:
        1-5, where 5 = most visits
    monetary_score:
        1-5, where 5 = highest spend
    combined_score:
        Sum of the three scores (3-15)
    segment:
        Lifecycle segment derived from the three scores
    computed_at:
        When the score was computed
    metrics:
        Raw metrics the score was derived from
    lifecycle:
        Absolute lifecycle assessment computed alongside the score
    """

    customer_id: str
    cohort_id: str
    recency_score: int
    frequency_score: int
    monetary_score: int
    combined_score: int
    segment: Segment
    computed_at: datetime
    metrics: ActivityMetrics
    lifecycle: CustomerLifecycle

    def __post_init__(self) -> None:
        """Validate RFM scores."""
        for score_name, score_value in [
            ("recency_score", self.recency_score),
            ("frequency_score", self.frequency_score),
            ("monetary_score", self.monetary_score),
        ]:
            if not MIN_SCORE <= score_value <= MAX_SCORE:
                raise ValueError(
                    f"{score_name} must be between 1 and 5: {score_value} "
                    f"(customer_id={self.customer_id})"
                )
        expected = self.recency_score + self.frequency_score + self.monetary_score
        if self.combined_score != expected:
            raise ValueError(
                f"combined_score ({self.combined_score}) does not match r+f+m "
                f"({expected}) (customer_id={self.customer_id})"
            )

    def as_dict(self) -> dict[str, object]:
        """Return JSON-serialisable representation, as stored on the customer."""
        return {
            "customer_id": self.customer_id,
            "cohort_id": self.cohort_id,
            "rfm_scores": {
                "recency": self.recency_score,
                "frequency": self.frequency_score,
                "monetary": self.monetary_score,
                "combined": self.combined_score,
                "segment": self.segment.value,
                "computed_at": self.computed_at.isoformat(),
            },
            "metrics": {
                "days_since_last_activity": self.metrics.days_since_last_activity,
                "activity_per_month": str(self.metrics.activity_per_month),
                "average_value": str(self.metrics.average_value),
            },
            "lifecycle": {
                "stage": self.lifecycle.stage.value,
                "churn_risk": self.lifecycle.churn_risk,
                "predicted_lifetime_value": str(
                    self.lifecycle.predicted_lifetime_value
                ),
            },
        }


def _days_between(earlier: datetime, later: datetime) -> int:
    delta = to_timezone(later, timezone.utc) - to_timezone(earlier, timezone.utc)
    return delta.days


def calculate_activity_metrics(
    snapshot: CustomerSnapshot, now: datetime
) -> tuple[ActivityMetrics, Decimal]:
    """Calculate raw metrics for one customer.

    Returns
    -------
    tuple[ActivityMetrics, Decimal]
        Rounded metrics for storage, and the unrounded visits-per-month
        rate used for lifecycle assessment
    """
    if snapshot.last_activity_at is None:
        days_since_last = NEVER_ACTIVE_DAYS
    else:
        days_since_last = _days_between(snapshot.last_activity_at, now)
        if days_since_last < 0:
            # Upcoming bookings can carry a future last-visit date
            logger.warning(
                "Last activity %s is after scoring time %s for customer %s; using 0 days",
                snapshot.last_activity_at.isoformat(),
                now.isoformat(),
                snapshot.customer_id,
            )
            days_since_last = 0

    if snapshot.first_activity_at is None:
        months_since_first = Decimal("1")
    else:
        days_since_first = max(_days_between(snapshot.first_activity_at, now), 0)
        months_since_first = max(
            Decimal(days_since_first) / DAYS_PER_MONTH, Decimal("1")
        )
    activity_per_month = Decimal(snapshot.total_activity_count) / months_since_first

    average_value = snapshot.total_monetary_value / max(
        snapshot.total_activity_count, 1
    )

    metrics = ActivityMetrics(
        days_since_last_activity=days_since_last,
        activity_per_month=activity_per_month.quantize(
            Decimal("0.1"), rounding=ROUND_HALF_UP
        ),
        average_value=average_value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP),
    )
    return metrics, activity_per_month


def _quintile_score(percentile: float) -> int:
    """Map a percentile rank in [0, 1] to a 1-5 score.

    Values exactly on a breakpoint take the lower score, except the top
    breakpoint: <=20% scores 1 and >=80% scores 5.
    """
    if percentile >= QUINTILE_BREAKPOINTS[3]:
        return 5
    if percentile > QUINTILE_BREAKPOINTS[2]:
        return 4
    if percentile > QUINTILE_BREAKPOINTS[1]:
        return 3
    if percentile > QUINTILE_BREAKPOINTS[0]:
        return 2
    return 1


def score_percentiles(
    values: Iterable[float], lower_is_better: bool = False
) -> list[int]:
    """Score each value 1-5 by its percentile rank among all values.

    The percentile rank of a value is the share of the *other* values that
    are at or below it: ``(count(v' <= v) - 1) / (n - 1)``. The lowest
    distinct value therefore ranks 0 and the highest ranks 1.

    Tied values share the highest rank of the tie. With
    ``lower_is_better`` the inversion happens after ranking, so a large tie
    on the best value scores low: nine customers seen today and one never
    seen all score 1 on recency.

    Parameters
    ----------
    values:
        One value per cohort member
    lower_is_better:
        Invert the scale so that the lowest values score 5 (recency)

    Returns
    -------
    list[int]
        Scores in input order. Cohorts with fewer than two members or with
        all-identical values score the midpoint (3) throughout.

    Examples
    --------
    >>> score_percentiles([1, 5, 10])
    [1, 3, 5]
    >>> score_percentiles([2, 30, 400], lower_is_better=True)
    [5, 3, 1]
    >>> score_percentiles([7, 7, 7])
    [3, 3, 3]
    """
    series = pd.Series(list(values), dtype="float64")
    if len(series) < 2 or series.nunique() == 1:
        return [MIDPOINT_SCORE] * len(series)

    at_or_below = series.rank(method="max")
    percentiles = (at_or_below - 1) / (len(series) - 1)
    scores = [_quintile_score(float(p)) for p in percentiles]
    if lower_is_better:
        return [MIN_SCORE + MAX_SCORE - score for score in scores]
    return scores


def _validate_cohort(snapshots: Sequence[CustomerSnapshot]) -> None:
    cohort_ids = {snapshot.cohort_id for snapshot in snapshots}
    if len(cohort_ids) > 1:
        raise ValueError(
            f"Snapshots must belong to a single cohort, got: {sorted(cohort_ids)}"
        )
    customer_counts = Counter(snapshot.customer_id for snapshot in snapshots)
    duplicates = [cid for cid, count in customer_counts.items() if count > 1]
    if duplicates:
        raise ValueError(f"Duplicate customer IDs found in cohort: {duplicates}")


def score_cohort(
    snapshots: Sequence[CustomerSnapshot], now: datetime
) -> list[RFMScore]:
    """Score every customer of a cohort relative to the rest of the cohort.

    Percentile ranks are meaningless for a customer in isolation, so this
    always operates on an entire tenant cohort at once.

    Recency is ranked on days since last visit (inverted: fewer days scores
    higher). Frequency is ranked on total visits and monetary on total
    spend. The three scores are then classified into a ``Segment``.

    Parameters
    ----------
    snapshots:
        Every customer of one tenant. Must share a single cohort_id and have
        unique customer IDs.
    now:
        Scoring time. Naive values are interpreted as UTC.

    Returns
    -------
    list[RFMScore]
        One score per customer, sorted by customer_id. Identical input and
        ``now`` yield identical scores.

    Raises
    ------
    ValueError
        If the snapshots span several cohorts or repeat a customer.

    Examples
    --------
    >>> from datetime import datetime
    >>> from decimal import Decimal
    >>> now = datetime(2025, 6, 15)
    >>> cohort = [
    ...     CustomerSnapshot("C1", "salon-1", datetime(2025, 6, 1), 1, Decimal("1000")),
    ...     CustomerSnapshot("C2", "salon-1", datetime(2025, 6, 1), 5, Decimal("5000")),
    ...     CustomerSnapshot("C3", "salon-1", datetime(2025, 6, 1), 10, Decimal("10000")),
    ... ]
    >>> [s.frequency_score for s in score_cohort(cohort, now)]
    [1, 3, 5]
    """
    if len(snapshots) < 2:
        warnings.warn(
            f"Cohort has {len(snapshots)} customer(s); "
            "relative RFM scores default to the midpoint",
            EmptyCohortWarning,
            stacklevel=2,
        )
        if not snapshots:
            return []

    _validate_cohort(snapshots)
    computed_at = to_timezone(now, timezone.utc)

    metric_pairs = [calculate_activity_metrics(s, computed_at) for s in snapshots]
    recency_scores = score_percentiles(
        [metrics.days_since_last_activity for metrics, _ in metric_pairs],
        lower_is_better=True,
    )
    frequency_scores = score_percentiles(
        [snapshot.total_activity_count for snapshot in snapshots]
    )
    monetary_scores = score_percentiles(
        [float(snapshot.total_monetary_value) for snapshot in snapshots]
    )

    rfm_scores: list[RFMScore] = []
    for snapshot, (metrics, raw_rate), r, f, m in zip(
        snapshots, metric_pairs, recency_scores, frequency_scores, monetary_scores
    ):
        rfm_scores.append(
            RFMScore(
                customer_id=snapshot.customer_id,
                cohort_id=snapshot.cohort_id,
                recency_score=r,
                frequency_score=f,
                monetary_score=m,
                combined_score=r + f + m,
                segment=classify_segment(r, f, m),
                computed_at=computed_at,
                metrics=metrics,
                lifecycle=assess_lifecycle(
                    snapshot.total_activity_count,
                    metrics.days_since_last_activity,
                    raw_rate,
                    snapshot.total_monetary_value
                    / max(snapshot.total_activity_count, 1),
                ),
            )
        )

    # Sort by customer_id for consistency
    rfm_scores.sort(key=lambda s: s.customer_id)
    return rfm_scores
