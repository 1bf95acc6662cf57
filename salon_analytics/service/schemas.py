"""Request and record schemas for JSON inputs."""

from datetime import datetime
from decimal import Decimal

from pydantic import AliasChoices, BaseModel, Field, model_validator

from salon_analytics.foundation.buckets import ActivityEvent
from salon_analytics.foundation.rfm import CustomerSnapshot


class ActivityEventRecord(BaseModel):
    """One booking or sale as exported by the storage layer."""

    timestamp: datetime = Field(
        validation_alias=AliasChoices("timestamp", "scheduled_date", "event_ts"),
        description="When the activity happened",
    )
    value: Decimal = Field(
        validation_alias=AliasChoices("value", "total_price"),
        description="Monetary value of the activity",
    )
    category: str | None = Field(
        default=None,
        validation_alias=AliasChoices("category", "service_name"),
        description="Service or product category",
    )

    def to_event(self) -> ActivityEvent:
        return ActivityEvent(
            timestamp=self.timestamp, value=self.value, category=self.category
        )


class CustomerSnapshotRecord(BaseModel):
    """Customer activity summary as exported by the storage layer."""

    customer_id: str
    cohort_id: str = Field(validation_alias=AliasChoices("cohort_id", "tenant_id"))
    last_activity_at: datetime | None = Field(
        default=None, validation_alias=AliasChoices("last_activity_at", "last_visit")
    )
    first_activity_at: datetime | None = Field(
        default=None, validation_alias=AliasChoices("first_activity_at", "first_visit")
    )
    total_activity_count: int = Field(
        default=0, ge=0, validation_alias=AliasChoices("total_activity_count", "total_visits")
    )
    total_monetary_value: Decimal = Field(
        default=Decimal("0"),
        ge=0,
        validation_alias=AliasChoices("total_monetary_value", "total_spent"),
    )

    def to_snapshot(self) -> CustomerSnapshot:
        return CustomerSnapshot(
            customer_id=self.customer_id,
            cohort_id=self.cohort_id,
            last_activity_at=self.last_activity_at,
            total_activity_count=self.total_activity_count,
            total_monetary_value=self.total_monetary_value,
            first_activity_at=self.first_activity_at,
        )


class ReportRequest(BaseModel):
    """Report request: a tenant plus either a window id or a custom range."""

    tenant_id: str = Field(default="default", min_length=1)
    window_id: str | None = Field(default=None, description='e.g. "7D", "1Y", "ALL"')
    start: datetime | None = Field(default=None, description="Custom range start")
    end: datetime | None = Field(default=None, description="Custom range end (exclusive)")
    now: datetime | None = Field(
        default=None, description="Reference time; defaults to the current time"
    )

    @model_validator(mode="after")
    def _check_range(self) -> "ReportRequest":
        has_custom = self.start is not None or self.end is not None
        if self.window_id is not None and has_custom:
            raise ValueError("Pass either window_id or start/end, not both")
        if self.window_id is None and (self.start is None or self.end is None):
            raise ValueError("A report needs window_id or both start and end")
        return self
