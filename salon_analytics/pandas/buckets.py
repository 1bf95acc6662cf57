"""Pandas DataFrame adapters for bucket series and period comparisons."""

from typing import List

import pandas as pd  # type: ignore

from salon_analytics.analyses.comparison import PeriodComparison
from salon_analytics.foundation.buckets import ActivityEvent, BucketSeries
from ._utils import decimal_to_float, float_to_decimal, require_columns

SERIES_COLUMNS = ["bucket_start", "label", "total", "count"]


def series_to_dataframe(series: BucketSeries) -> pd.DataFrame:
    """Convert a bucket series to a DataFrame, one row per bucket.

    Empty buckets are kept, so the frame length always equals the window's
    point count.
    """
    rows = [
        {
            "bucket_start": bucket.bucket_start,
            "label": bucket.label,
            "total": decimal_to_float(bucket.total),
            "count": bucket.count,
        }
        for bucket in series
    ]
    return pd.DataFrame(rows, columns=SERIES_COLUMNS)


def comparison_to_dataframe(comparison: PeriodComparison) -> pd.DataFrame:
    """Lay the current and previous series side by side for charting.

    Returns:
        DataFrame with columns bucket_start, label, current_total,
        current_count, previous_bucket_start, previous_total, previous_count

    Example:
        >>> df = comparison_to_dataframe(engine.aggregate("salon-1", "30D"))
        >>> df.plot(x="label", y=["current_total", "previous_total"])
    """
    current = series_to_dataframe(comparison.current)
    previous = series_to_dataframe(comparison.previous)
    return pd.DataFrame(
        {
            "bucket_start": current["bucket_start"],
            "label": current["label"],
            "current_total": current["total"],
            "current_count": current["count"],
            "previous_bucket_start": previous["bucket_start"],
            "previous_total": previous["total"],
            "previous_count": previous["count"],
        }
    )


def dataframe_to_events(
    events_df: pd.DataFrame,
    timestamp_col: str = "timestamp",
    value_col: str = "value",
    category_col: str | None = "category",
) -> List[ActivityEvent]:
    """Convert a bookings/sales table to activity events.

    Args:
        events_df: DataFrame with one row per booking or sale
        timestamp_col: Column holding the activity timestamp
        value_col: Column holding the monetary value
        category_col: Optional category column (ignored if absent)

    Raises:
        ValueError: If required columns are missing or contain nulls
    """
    require_columns(events_df, [timestamp_col, value_col])

    if events_df.empty:
        return []

    null_cols = events_df[[timestamp_col, value_col]].isnull().any()
    if null_cols.any():
        null_col_names = null_cols[null_cols].index.tolist()
        raise ValueError(f"Null/NaN values found in columns: {null_col_names}")

    has_category = category_col is not None and category_col in events_df.columns

    events = []
    for record in events_df.to_dict("records"):
        category = record[category_col] if has_category else None
        events.append(
            ActivityEvent(
                timestamp=pd.to_datetime(record[timestamp_col]).to_pydatetime(),
                value=float_to_decimal(record[value_col]),
                category=None if category is None or pd.isna(category) else str(category),
            )
        )
    return events
