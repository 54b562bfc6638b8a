"""Hourly and daily aggregation of usage intervals."""

from __future__ import annotations

import math
from collections import defaultdict
from typing import Iterable, Sequence

from .models import AppUsage, DailySummary, HourlyBucket, RawInterval, ResolvedInterval
from .resolver import NameResolver


def build_hourly(
    intervals: Iterable[RawInterval],
    min_duration_seconds: int,
    resolver: NameResolver,
) -> list[HourlyBucket]:
    """Group intervals by the hour they started in and total minutes per app.

    An interval that crosses an hour boundary counts entirely toward its
    starting hour.
    """
    seconds_by_hour: defaultdict[str, defaultdict[str, int]] = defaultdict(
        lambda: defaultdict(int)
    )
    for interval in intervals:
        if interval.duration_seconds < min_duration_seconds:
            continue
        hour = f"{interval.start_time[:2]}:00"
        name = resolver.resolve(interval.identifier)
        seconds_by_hour[hour][name] += interval.duration_seconds

    return [
        HourlyBucket(hour=hour, apps=tuple(_to_app_usage(seconds_by_hour[hour])))
        for hour in sorted(seconds_by_hour)
    ]


def build_daily_summary(date: str, hourly: Sequence[HourlyBucket]) -> DailySummary:
    """Summarize a day from its hourly buckets.

    The total adds up the already-rounded per-app minutes, so it may differ
    by a few minutes from rounding the day's raw seconds once.
    """
    total = sum(app.minutes for bucket in hourly for app in bucket.apps)
    return DailySummary(date=date, hourly=tuple(hourly), total_minutes=total)


def app_totals(intervals: Iterable[ResolvedInterval]) -> list[AppUsage]:
    """Whole-day minutes per app, largest first."""
    seconds: defaultdict[str, int] = defaultdict(int)
    for interval in intervals:
        seconds[interval.name] += interval.duration_seconds
    return _to_app_usage(seconds)


def seconds_to_minutes(seconds: float) -> int:
    """Round to the nearest whole minute, halves rounding up."""
    return int(math.floor(seconds / 60 + 0.5))


def format_minutes(total_minutes: int) -> str:
    if total_minutes < 60:
        return f"{total_minutes}m"
    hours, minutes = divmod(total_minutes, 60)
    return f"{hours}h" if minutes == 0 else f"{hours}h {minutes}m"


def _to_app_usage(seconds_by_name: dict[str, int]) -> list[AppUsage]:
    apps = [
        AppUsage(name=name, minutes=seconds_to_minutes(seconds))
        for name, seconds in seconds_by_name.items()
    ]
    apps = [app for app in apps if app.minutes > 0]
    return sorted(apps, key=lambda app: app.minutes, reverse=True)
