"""Command line entry points for the salon analytics engine."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from salon_analytics.foundation.windows import SUPPORTED_WINDOWS, InvalidRangeError
from salon_analytics.service import (
    ActivityEventRecord,
    AnalyticsEngine,
    CustomerSnapshotRecord,
    EngineConfig,
    InMemoryStorage,
    ReportRequest,
    configure_logging,
)

logger = logging.getLogger(__name__)


MAX_INPUT_BYTES = 25 * 1024 * 1024  # 25 MiB cap to avoid accidental OOM
DEFAULT_TENANT = "default"


def _load_records(path: Path) -> list[dict[str, Any]]:
    resolved = path.resolve()
    size = resolved.stat().st_size
    if size > MAX_INPUT_BYTES:
        raise ValueError(
            f"Input file {resolved} is {size} bytes; exceeds limit of {MAX_INPUT_BYTES} bytes"
        )
    with path.open("r", encoding="utf-8") as fh:
        payload = json.load(fh)
    if not isinstance(payload, list):
        raise ValueError("Expected a list of records in the input file")
    return payload


def _parse_datetime(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def _config_for(args: argparse.Namespace) -> EngineConfig:
    config = EngineConfig.from_env()
    if getattr(args, "timezone", None):
        config = EngineConfig(
            default_timezone=args.timezone,
            tenant_timezones={**config.tenant_timezones, args.tenant: args.timezone},
            epoch_floor=config.epoch_floor,
            max_points=config.max_points,
            log_level=config.log_level,
        )
    return config


def _dump(payload: dict[str, Any]) -> None:
    json.dump(payload, fp=sys.stdout, indent=2, sort_keys=True)
    print()


def report_cli(argv: list[str] | None = None) -> int:
    """Aggregate a report window and print series, deltas and insights as JSON.

    Args:
        argv: Command line arguments (defaults to sys.argv)

    Returns:
        Exit code (0 for success, 2 for invalid input)
    """
    parser = argparse.ArgumentParser(
        description="Aggregate bookings into a report window with insights"
    )
    parser.add_argument("input", type=Path, help="Path to JSON file with activity events")
    parser.add_argument(
        "--window",
        help=f"Symbolic window ({', '.join(SUPPORTED_WINDOWS)})",
    )
    parser.add_argument("--start", type=_parse_datetime, help="Custom range start (ISO)")
    parser.add_argument("--end", type=_parse_datetime, help="Custom range end (ISO, exclusive)")
    parser.add_argument("--now", type=_parse_datetime, help="Reference time (ISO)")
    parser.add_argument("--tenant", default=DEFAULT_TENANT, help="Tenant identifier")
    parser.add_argument("--timezone", help="Canonical IANA time zone for the tenant")
    parser.add_argument(
        "--snapshots",
        type=Path,
        help="Optional JSON file with customer snapshots for segment insights",
    )

    args = parser.parse_args(argv)
    try:
        config = _config_for(args)
    except ValueError as exc:
        logger.error("Invalid configuration: %s", exc)
        return 2
    configure_logging(config.log_level)

    try:
        request = ReportRequest(
            tenant_id=args.tenant,
            window_id=args.window,
            start=args.start,
            end=args.end,
            now=args.now,
        )
        events = [
            ActivityEventRecord.model_validate(item).to_event()
            for item in _load_records(args.input)
        ]
        snapshots = (
            [
                CustomerSnapshotRecord.model_validate(item).to_snapshot()
                for item in _load_records(args.snapshots)
            ]
            if args.snapshots
            else []
        )
    except (ValidationError, ValueError) as exc:
        logger.error("Invalid input: %s", exc)
        return 2

    storage = InMemoryStorage()
    storage.add_events(request.tenant_id, events)
    storage.add_snapshots(snapshots)
    engine = AnalyticsEngine(storage, config)

    try:
        comparison = engine.aggregate(
            request.tenant_id,
            request.window_id,
            start=request.start,
            end=request.end,
            now=request.now,
        )
        insights = engine.generate_insights(
            request.tenant_id,
            request.window_id,
            start=request.start,
            end=request.end,
            now=request.now,
            include_segments=bool(snapshots),
        )
    except InvalidRangeError as exc:
        logger.error("Invalid report window: %s", exc)
        return 2

    payload = comparison.as_dict()
    payload["insights"] = [insight.as_dict() for insight in insights]
    _dump(payload)
    return 0


def score_cli(argv: list[str] | None = None) -> int:
    """Score a tenant's customer cohort and print scores and segments as JSON.

    Args:
        argv: Command line arguments (defaults to sys.argv)

    Returns:
        Exit code (0 for success, 2 for invalid input)
    """
    parser = argparse.ArgumentParser(description="Score customers on RFM axes")
    parser.add_argument(
        "input", type=Path, help="Path to JSON file with customer snapshots"
    )
    parser.add_argument("--now", type=_parse_datetime, help="Scoring time (ISO)")
    parser.add_argument(
        "--tenant",
        help="Tenant to score (defaults to the only tenant in the input)",
    )

    args = parser.parse_args(argv)
    try:
        config = EngineConfig.from_env()
    except ValueError as exc:
        logger.error("Invalid configuration: %s", exc)
        return 2
    configure_logging(config.log_level)

    try:
        snapshots = [
            CustomerSnapshotRecord.model_validate(item).to_snapshot()
            for item in _load_records(args.input)
        ]
    except (ValidationError, ValueError) as exc:
        logger.error("Invalid input: %s", exc)
        return 2

    tenants = sorted({snapshot.cohort_id for snapshot in snapshots})
    tenant_id = args.tenant
    if tenant_id is None:
        if len(tenants) > 1:
            logger.error("Input holds several tenants %s; pass --tenant", tenants)
            return 2
        tenant_id = tenants[0] if tenants else DEFAULT_TENANT

    storage = InMemoryStorage()
    storage.add_snapshots(snapshots)
    engine = AnalyticsEngine(storage, config)

    scores = engine.score_cohort(tenant_id, now=args.now)
    segments = engine.segment_distribution(tenant_id, now=args.now)

    _dump(
        {
            "tenant_id": tenant_id,
            "scores": [score.as_dict() for score in scores],
            "segments": [summary.as_dict() for summary in segments],
        }
    )
    return 0


def main() -> None:
    raise SystemExit(report_cli())


if __name__ == "__main__":  # pragma: no cover
    main()
