"""Service layer: engine facade, storage interface, configuration, logging."""

from .config import EngineConfig
from .engine import AnalyticsEngine
from .observability import configure_logging
from .schemas import ActivityEventRecord, CustomerSnapshotRecord, ReportRequest
from .storage import AnalyticsStorage, InMemoryStorage

__all__ = [
    "EngineConfig",
    "AnalyticsEngine",
    "configure_logging",
    "ActivityEventRecord",
    "CustomerSnapshotRecord",
    "ReportRequest",
    "AnalyticsStorage",
    "InMemoryStorage",
]
