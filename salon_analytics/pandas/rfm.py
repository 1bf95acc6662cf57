"""Pandas DataFrame adapters for cohort scoring."""

from datetime import datetime
from typing import List, Sequence

import pandas as pd  # type: ignore

from salon_analytics.foundation.rfm import CustomerSnapshot, RFMScore, score_cohort
from ._utils import decimal_to_float, float_to_decimal, optional_datetime, require_columns

SCORE_COLUMNS = [
    "customer_id",
    "cohort_id",
    "recency_score",
    "frequency_score",
    "monetary_score",
    "combined_score",
    "segment",
    "days_since_last_activity",
    "activity_per_month",
    "average_value",
    "lifecycle_stage",
    "churn_risk",
    "predicted_lifetime_value",
    "computed_at",
]


def scores_to_dataframe(scores: Sequence[RFMScore]) -> pd.DataFrame:
    """Convert RFM scores to a pandas DataFrame, one row per customer.

    Args:
        scores: Sequence of RFMScore objects

    Returns:
        DataFrame with ``SCORE_COLUMNS``, sorted by customer_id

    Example:
        >>> scores = score_cohort(snapshots, datetime(2025, 6, 15))
        >>> df = scores_to_dataframe(scores)
        >>> df.groupby("segment")["customer_id"].count()
    """
    if not scores:
        return pd.DataFrame(columns=SCORE_COLUMNS)

    rows = [
        {
            "customer_id": s.customer_id,
            "cohort_id": s.cohort_id,
            "recency_score": s.recency_score,
            "frequency_score": s.frequency_score,
            "monetary_score": s.monetary_score,
            "combined_score": s.combined_score,
            "segment": s.segment.value,
            "days_since_last_activity": s.metrics.days_since_last_activity,
            "activity_per_month": decimal_to_float(s.metrics.activity_per_month),
            "average_value": decimal_to_float(s.metrics.average_value),
            "lifecycle_stage": s.lifecycle.stage.value,
            "churn_risk": s.lifecycle.churn_risk,
            "predicted_lifetime_value": decimal_to_float(
                s.lifecycle.predicted_lifetime_value
            ),
            "computed_at": s.computed_at,
        }
        for s in scores
    ]
    df = pd.DataFrame(rows, columns=SCORE_COLUMNS)
    return df.sort_values("customer_id").reset_index(drop=True)


def dataframe_to_snapshots(
    clients_df: pd.DataFrame,
    customer_id_col: str = "customer_id",
    cohort_id_col: str = "cohort_id",
    last_activity_col: str = "last_activity_at",
    total_activity_col: str = "total_activity_count",
    total_value_col: str = "total_monetary_value",
    first_activity_col: str | None = "first_activity_at",
) -> List[CustomerSnapshot]:
    """Convert a client table to customer snapshots.

    Args:
        clients_df: DataFrame with one row per client
        *_col: Column name mappings for flexibility. ``first_activity_col``
            is optional; pass None or omit the column to leave it unset.

    Returns:
        List of validated CustomerSnapshot objects. Missing last-activity
        values (NaT/None) mean the client never visited.

    Raises:
        ValueError: If required columns are missing or counts/values are null

    Example with custom column names:
        >>> snapshots = dataframe_to_snapshots(
        ...     clients_df,
        ...     cohort_id_col="tenant_id",
        ...     total_activity_col="total_visits",
        ...     total_value_col="total_spent",
        ... )
    """
    required = [
        customer_id_col,
        cohort_id_col,
        last_activity_col,
        total_activity_col,
        total_value_col,
    ]
    require_columns(clients_df, required)

    if clients_df.empty:
        return []

    not_nullable = [customer_id_col, cohort_id_col, total_activity_col, total_value_col]
    null_cols = clients_df[not_nullable].isnull().any()
    if null_cols.any():
        null_col_names = null_cols[null_cols].index.tolist()
        raise ValueError(
            f"Null/NaN values found in columns: {null_col_names}. "
            "Snapshots require complete activity totals."
        )

    has_first = first_activity_col is not None and first_activity_col in clients_df.columns

    snapshots = []
    for record in clients_df.to_dict("records"):
        snapshots.append(
            CustomerSnapshot(
                customer_id=str(record[customer_id_col]),
                cohort_id=str(record[cohort_id_col]),
                last_activity_at=optional_datetime(record[last_activity_col]),
                total_activity_count=int(record[total_activity_col]),
                total_monetary_value=float_to_decimal(record[total_value_col]),
                first_activity_at=(
                    optional_datetime(record[first_activity_col]) if has_first else None
                ),
            )
        )
    return snapshots


def score_cohort_df(clients_df: pd.DataFrame, now: datetime, **column_map) -> pd.DataFrame:
    """Score a client table and return the scores as a DataFrame.

    Convenience function that combines conversion and scoring. Extra
    keyword arguments are passed to ``dataframe_to_snapshots``.
    """
    snapshots = dataframe_to_snapshots(clients_df, **column_map)
    return scores_to_dataframe(score_cohort(snapshots, now))
