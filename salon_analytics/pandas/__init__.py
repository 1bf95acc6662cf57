"""Pandas DataFrame adapters for salon analytics components."""

from .buckets import (
    comparison_to_dataframe,
    dataframe_to_events,
    series_to_dataframe,
)
from .rfm import (
    dataframe_to_snapshots,
    score_cohort_df,
    scores_to_dataframe,
)

__all__ = [
    # Series adapters
    "comparison_to_dataframe",
    "dataframe_to_events",
    "series_to_dataframe",
    # Scoring adapters
    "dataframe_to_snapshots",
    "score_cohort_df",
    "scores_to_dataframe",
]
