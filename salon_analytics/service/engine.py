"""Analytics engine facade used by the API layer.

Wires the storage collaborator to the pure computations: window resolution,
period comparison, cohort scoring and insight generation. Each call works on
its own input slice and returns fresh output, so concurrent requests for
different tenants or windows share no mutable state.

Score write-back is the one shared side effect. It is idempotent and
last-write-wins: two concurrent recomputations for the same tenant (e.g. a
scheduled job and an on-demand refresh) cannot corrupt a record, but either
may be the one left in place.
"""

from __future__ import annotations

from datetime import datetime
from zoneinfo import ZoneInfo

import structlog

from salon_analytics.analyses.comparison import PeriodComparison, compare_periods
from salon_analytics.analyses.insights import InsightStatement, generate_insights
from salon_analytics.foundation.rfm import CustomerSnapshot, RFMScore, score_cohort
from salon_analytics.foundation.segments import SegmentSummary, summarize_segments
from salon_analytics.foundation.windows import (
    ReportWindow,
    resolve_custom_window,
    resolve_window,
    to_timezone,
)
from salon_analytics.service.config import EngineConfig
from salon_analytics.service.storage import AnalyticsStorage

logger = structlog.get_logger(__name__)


class AnalyticsEngine:
    """Report and scoring operations for one storage backend.

    Every operation takes an optional explicit ``now``; when omitted the
    current time is used. Pass ``now`` for deterministic results.
    """

    def __init__(
        self, storage: AnalyticsStorage, config: EngineConfig | None = None
    ) -> None:
        self.storage = storage
        self.config = config or EngineConfig()

    def _now(self, tz: ZoneInfo, now: datetime | None) -> datetime:
        if now is None:
            return datetime.now(tz)
        return to_timezone(now, tz)

    def resolve_window(
        self,
        tenant_id: str,
        window_id: str | None = None,
        *,
        start: datetime | None = None,
        end: datetime | None = None,
        now: datetime | None = None,
    ) -> ReportWindow:
        """Resolve a symbolic window or a custom ``[start, end)`` range.

        Raises
        ------
        InvalidRangeError
            For unknown identifiers or malformed ranges.
        ValueError
            If neither or both of a window id and a custom range are given.
        """
        tz = self.config.timezone_for(tenant_id)
        has_custom = start is not None or end is not None
        if window_id is not None and has_custom:
            raise ValueError("Pass either a window id or a custom range, not both")
        if window_id is not None:
            return resolve_window(
                window_id,
                self._now(tz, now),
                tz=tz,
                epoch_floor=self.config.epoch_floor,
                max_points=self.config.max_points,
            )
        if start is None or end is None:
            raise ValueError("A custom range needs both start and end")
        return resolve_custom_window(start, end, tz=tz, max_points=self.config.max_points)

    def aggregate(
        self,
        tenant_id: str,
        window_id: str | None = None,
        *,
        start: datetime | None = None,
        end: datetime | None = None,
        now: datetime | None = None,
    ) -> PeriodComparison:
        """Aggregate a window and its previous equivalent period."""
        window = self.resolve_window(tenant_id, window_id, start=start, end=end, now=now)
        previous_window = window.previous()

        current_events = self.storage.fetch_activity_events(
            tenant_id, window.start, window.end
        )
        previous_events = self.storage.fetch_activity_events(
            tenant_id, previous_window.start, previous_window.end
        )
        comparison = compare_periods(current_events, previous_events, window)

        logger.info(
            "period_aggregated",
            tenant_id=tenant_id,
            window_id=window.window_id,
            granularity=window.granularity.value,
            points=window.point_count,
            current_events=comparison.current_totals.activity_count,
            previous_events=comparison.previous_totals.activity_count,
            dropped_events=comparison.current.dropped_events
            + comparison.previous.dropped_events,
        )
        return comparison

    def _load_cohort(self, tenant_id: str) -> list[CustomerSnapshot]:
        snapshots = list(self.storage.fetch_cohort_snapshots(tenant_id))
        foreign = sorted(
            {snapshot.cohort_id for snapshot in snapshots if snapshot.cohort_id != tenant_id}
        )
        if foreign:
            raise ValueError(
                f"Storage returned snapshots of other cohorts for tenant {tenant_id}: {foreign}"
            )
        return snapshots

    def _score(
        self, tenant_id: str, now: datetime | None
    ) -> tuple[list[CustomerSnapshot], list[RFMScore]]:
        snapshots = self._load_cohort(tenant_id)
        now = self._now(self.config.timezone_for(tenant_id), now)
        return snapshots, score_cohort(snapshots, now)

    def score_cohort(self, tenant_id: str, now: datetime | None = None) -> list[RFMScore]:
        """Score the tenant's full cohort and persist each score.

        Nothing is written until the whole cohort has been scored, so a
        failure leaves every stored score untouched.
        """
        _, scores = self._score(tenant_id, now)

        for score in scores:
            self.storage.save_customer_score(tenant_id, score)

        logger.info(
            "cohort_scored",
            tenant_id=tenant_id,
            customers=len(scores),
        )
        return scores

    def segment_distribution(
        self, tenant_id: str, now: datetime | None = None
    ) -> list[SegmentSummary]:
        """Segment distribution of a freshly scored cohort (no write-back)."""
        snapshots, scores = self._score(tenant_id, now)
        return summarize_segments(scores, snapshots)

    def generate_insights(
        self,
        tenant_id: str,
        window_id: str | None = None,
        *,
        start: datetime | None = None,
        end: datetime | None = None,
        now: datetime | None = None,
        include_segments: bool = True,
    ) -> list[InsightStatement]:
        """Generate ranked insights for a tenant and window."""
        # One reference time for both the window and the cohort scoring
        now = self._now(self.config.timezone_for(tenant_id), now)
        comparison = self.aggregate(tenant_id, window_id, start=start, end=end, now=now)
        segments = (
            self.segment_distribution(tenant_id, now=now) if include_segments else None
        )
        insights = generate_insights(
            comparison.current_totals,
            comparison.previous_totals,
            window_id,
            segments=segments,
        )
        logger.info(
            "insights_generated",
            tenant_id=tenant_id,
            window_id=window_id,
            insights=len(insights),
        )
        return insights
