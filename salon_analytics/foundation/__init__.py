"""Foundational building blocks for salon analytics.

This package exposes report window resolution, time-bucket aggregation of
activity events, and cohort-relative RFM (Recency-Frequency-Monetary)
scoring with lifecycle segmentation.
"""

from .buckets import (
    ActivityEvent,
    Bucket,
    BucketSeries,
    CategoryCount,
    PeriodTotals,
    aggregate_events,
    format_bucket_label,
    percent_delta,
    summarize_events,
)
from .lifecycle import CustomerLifecycle, LifecycleStage
from .rfm import (
    ActivityMetrics,
    CustomerSnapshot,
    EmptyCohortWarning,
    RFMScore,
    calculate_activity_metrics,
    score_cohort,
    score_percentiles,
)
from .segments import (
    SEGMENT_PROFILES,
    SEGMENT_RULES,
    Segment,
    SegmentRule,
    SegmentSummary,
    classify_segment,
    summarize_segments,
)
from .windows import (
    Granularity,
    InvalidRangeError,
    ReportWindow,
    SUPPORTED_WINDOWS,
    resolve_custom_window,
    resolve_window,
)

__all__ = [
    "ActivityEvent",
    "Bucket",
    "BucketSeries",
    "CategoryCount",
    "PeriodTotals",
    "aggregate_events",
    "format_bucket_label",
    "percent_delta",
    "summarize_events",
    "CustomerLifecycle",
    "LifecycleStage",
    "ActivityMetrics",
    "CustomerSnapshot",
    "EmptyCohortWarning",
    "RFMScore",
    "calculate_activity_metrics",
    "score_cohort",
    "score_percentiles",
    "SEGMENT_PROFILES",
    "SEGMENT_RULES",
    "Segment",
    "SegmentRule",
    "SegmentSummary",
    "classify_segment",
    "summarize_segments",
    "Granularity",
    "InvalidRangeError",
    "ReportWindow",
    "SUPPORTED_WINDOWS",
    "resolve_custom_window",
    "resolve_window",
]
