"""Customer lifecycle assessment.

Unlike RFM scores, which are relative to the cohort, the lifecycle stage,
churn risk and predicted lifetime value are absolute: they depend only on the
customer's own activity history.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum

# Assumed remaining customer lifetime for value prediction
LIFETIME_HORIZON_MONTHS = 24
LOYAL_ACTIVITY_THRESHOLD = 5
LOYAL_RETENTION_FACTOR = Decimal("0.8")
DEFAULT_RETENTION_FACTOR = Decimal("0.5")
MAX_CHURN_RISK = 100


class LifecycleStage(str, Enum):
    PROSPECT = "prospect"
    NEW = "new"
    ACTIVE = "active"
    AT_RISK = "at-risk"
    CHURNED = "churned"


@dataclass(frozen=True)
class CustomerLifecycle:
    """Lifecycle assessment for a single customer.

    Attributes
    ----------
    stage:
        Where the customer is in their lifecycle
    churn_risk:
        Risk of churning, 0 (none) to 100 (certain)
    predicted_lifetime_value:
        Expected value over the next ``LIFETIME_HORIZON_MONTHS`` months
    """

    stage: LifecycleStage
    churn_risk: int
    predicted_lifetime_value: Decimal

    def __post_init__(self) -> None:
        if not 0 <= self.churn_risk <= MAX_CHURN_RISK:
            raise ValueError(f"Churn risk must be 0-100: {self.churn_risk}")


def determine_lifecycle_stage(
    total_activity_count: int, days_since_last_activity: int
) -> LifecycleStage:
    """Classify a customer's lifecycle stage from activity history."""
    if total_activity_count == 0:
        return LifecycleStage.PROSPECT
    if total_activity_count == 1:
        return LifecycleStage.NEW
    if days_since_last_activity > 180:
        return LifecycleStage.CHURNED
    if days_since_last_activity > 90:
        return LifecycleStage.AT_RISK
    return LifecycleStage.ACTIVE


def calculate_churn_risk(
    total_activity_count: int,
    days_since_last_activity: int,
    activity_per_month: Decimal,
) -> int:
    """Score churn risk from recency (0-40), frequency (0-30) and engagement (0-30).

    >>> from decimal import Decimal
    >>> calculate_churn_risk(1, 200, Decimal("0.2"))
    90
    """
    risk = 0

    if days_since_last_activity > 180:
        risk += 40
    elif days_since_last_activity > 90:
        risk += 30
    elif days_since_last_activity > 60:
        risk += 20
    elif days_since_last_activity > 30:
        risk += 10

    # Less than once every two months scores highest
    if activity_per_month < Decimal("0.5"):
        risk += 30
    elif activity_per_month < 1:
        risk += 20
    elif activity_per_month < 2:
        risk += 10

    if total_activity_count == 1:
        risk += 20
    elif total_activity_count == 2:
        risk += 10

    return min(risk, MAX_CHURN_RISK)


def predict_lifetime_value(
    total_activity_count: int,
    activity_per_month: Decimal,
    average_value: Decimal,
    horizon_months: int = LIFETIME_HORIZON_MONTHS,
) -> Decimal:
    """Predict value over ``horizon_months`` at the current activity rate.

    Discounted by a retention factor that is higher for customers with an
    established history.
    """
    expected_activities = activity_per_month * horizon_months
    retention = (
        LOYAL_RETENTION_FACTOR
        if total_activity_count >= LOYAL_ACTIVITY_THRESHOLD
        else DEFAULT_RETENTION_FACTOR
    )
    return (expected_activities * average_value * retention).quantize(
        Decimal("1"), rounding=ROUND_HALF_UP
    )


def assess_lifecycle(
    total_activity_count: int,
    days_since_last_activity: int,
    activity_per_month: Decimal,
    average_value: Decimal,
) -> CustomerLifecycle:
    return CustomerLifecycle(
        stage=determine_lifecycle_stage(total_activity_count, days_since_last_activity),
        churn_risk=calculate_churn_risk(
            total_activity_count, days_since_last_activity, activity_per_month
        ),
        predicted_lifetime_value=predict_lifetime_value(
            total_activity_count, activity_per_month, average_value
        ),
    )
