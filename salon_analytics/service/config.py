"""Engine configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from datetime import date
from typing import Mapping
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from salon_analytics.foundation.windows import DEFAULT_EPOCH_FLOOR, DEFAULT_MAX_POINTS

ENV_PREFIX = "SALON_ANALYTICS_"


def _load_zone(name: str) -> ZoneInfo:
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValueError(f"Unknown time zone: {name!r}") from exc


@dataclass
class EngineConfig:
    """Configuration for the analytics engine.

    Attributes
    ----------
    default_timezone:
        IANA zone used for bucket boundaries when a tenant has no override
    tenant_timezones:
        Canonical zone per tenant. Chosen once per tenant so bucket
        assignment never drifts between requests.
    epoch_floor:
        Start date of the "all time" window
    max_points:
        Upper bound on buckets per report window
    log_level:
        Level name for ``configure_logging``
    """

    default_timezone: str = "UTC"
    tenant_timezones: Mapping[str, str] = field(default_factory=dict)
    epoch_floor: date = DEFAULT_EPOCH_FLOOR
    max_points: int = DEFAULT_MAX_POINTS
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        _load_zone(self.default_timezone)
        for zone in self.tenant_timezones.values():
            _load_zone(zone)
        if self.max_points < 1:
            raise ValueError(f"max_points must be positive: {self.max_points}")

    def timezone_for(self, tenant_id: str) -> ZoneInfo:
        return _load_zone(self.tenant_timezones.get(tenant_id, self.default_timezone))

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> EngineConfig:
        """Build a config from ``SALON_ANALYTICS_*`` environment variables.

        ``SALON_ANALYTICS_TENANT_TIMEZONES`` takes comma-separated
        ``tenant=Zone`` pairs, e.g. ``salon-1=Europe/London,salon-2=UTC``.
        """
        env = os.environ if environ is None else environ

        tenant_timezones: dict[str, str] = {}
        raw_tenants = env.get(f"{ENV_PREFIX}TENANT_TIMEZONES", "")
        for pair in filter(None, (item.strip() for item in raw_tenants.split(","))):
            tenant, sep, zone = pair.partition("=")
            if not sep or not tenant.strip() or not zone.strip():
                raise ValueError(f"Invalid tenant time zone entry: {pair!r}")
            tenant_timezones[tenant.strip()] = zone.strip()

        raw_floor = env.get(f"{ENV_PREFIX}EPOCH_FLOOR")
        epoch_floor = date.fromisoformat(raw_floor) if raw_floor else DEFAULT_EPOCH_FLOOR

        return cls(
            default_timezone=env.get(f"{ENV_PREFIX}TIMEZONE", "UTC"),
            tenant_timezones=tenant_timezones,
            epoch_floor=epoch_floor,
            max_points=int(env.get(f"{ENV_PREFIX}MAX_POINTS", DEFAULT_MAX_POINTS)),
            log_level=env.get(f"{ENV_PREFIX}LOG_LEVEL", "INFO").upper(),
        )
