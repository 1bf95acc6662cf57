"""Storage collaborator interface and an in-memory implementation.

The engine performs no I/O itself: it asks a storage collaborator for
tenant-scoped activity events and customer snapshots, and hands computed
scores back for persistence onto the customer records.
"""

from __future__ import annotations

import threading
from datetime import datetime
from typing import Iterable, Protocol, Sequence

from salon_analytics.foundation.buckets import ActivityEvent
from salon_analytics.foundation.rfm import CustomerSnapshot, RFMScore
from salon_analytics.foundation.windows import to_timezone


class AnalyticsStorage(Protocol):
    """What the engine needs from the persistence layer."""

    def fetch_activity_events(
        self, tenant_id: str, start: datetime, end: datetime
    ) -> Sequence[ActivityEvent]:
        """Return the tenant's events with ``start <= timestamp < end``."""
        ...

    def fetch_cohort_snapshots(self, tenant_id: str) -> Sequence[CustomerSnapshot]:
        """Return a snapshot of every customer of the tenant."""
        ...

    def save_customer_score(self, tenant_id: str, score: RFMScore) -> None:
        """Overwrite the stored score on the customer the score describes."""
        ...


class InMemoryStorage:
    """Thread-safe in-memory storage, used by the CLI and tests.

    Saved scores are last-write-wins per customer.
    """

    def __init__(self) -> None:
        self._events: dict[str, list[ActivityEvent]] = {}
        self._snapshots: dict[str, dict[str, CustomerSnapshot]] = {}
        self._scores: dict[str, dict[str, RFMScore]] = {}
        self._lock = threading.RLock()

    def add_events(self, tenant_id: str, events: Iterable[ActivityEvent]) -> None:
        with self._lock:
            self._events.setdefault(tenant_id, []).extend(events)

    def add_snapshots(self, snapshots: Iterable[CustomerSnapshot]) -> None:
        """Store snapshots under their cohort (tenant) id."""
        with self._lock:
            for snapshot in snapshots:
                self._snapshots.setdefault(snapshot.cohort_id, {})[
                    snapshot.customer_id
                ] = snapshot

    def fetch_activity_events(
        self, tenant_id: str, start: datetime, end: datetime
    ) -> list[ActivityEvent]:
        with self._lock:
            events = list(self._events.get(tenant_id, ()))
        return [
            event
            for event in events
            if start <= to_timezone(event.timestamp, start.tzinfo) < end
        ]

    def fetch_cohort_snapshots(self, tenant_id: str) -> list[CustomerSnapshot]:
        with self._lock:
            return list(self._snapshots.get(tenant_id, {}).values())

    def save_customer_score(self, tenant_id: str, score: RFMScore) -> None:
        with self._lock:
            self._scores.setdefault(tenant_id, {})[score.customer_id] = score

    def get_customer_score(self, tenant_id: str, customer_id: str) -> RFMScore | None:
        with self._lock:
            return self._scores.get(tenant_id, {}).get(customer_id)

    def scores_for(self, tenant_id: str) -> list[RFMScore]:
        with self._lock:
            return sorted(
                self._scores.get(tenant_id, {}).values(), key=lambda s: s.customer_id
            )
