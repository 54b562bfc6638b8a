"""Domain models for usage intervals, summaries and the timeline view."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Optional


@dataclass(frozen=True, slots=True)
class RawInterval:
    """One contiguous span of foreground use of a single application."""

    identifier: str
    start_time: str  # "HH:MM:SS", local time
    end_time: str  # "HH:MM:SS", local time
    duration_seconds: int


@dataclass(frozen=True, slots=True)
class ResolvedInterval:
    """A raw interval whose identifier was resolved to a display name."""

    name: str
    start_time: str
    end_time: str
    duration_seconds: int
    start_minutes: int
    end_minutes: int


@dataclass(frozen=True, slots=True)
class AppUsage:
    name: str
    minutes: int


@dataclass(frozen=True, slots=True)
class HourlyBucket:
    hour: str  # "HH:00"
    apps: tuple[AppUsage, ...]

    @property
    def total_minutes(self) -> int:
        return sum(app.minutes for app in self.apps)


@dataclass(frozen=True, slots=True)
class DailySummary:
    date: str  # "YYYY-MM-DD"
    hourly: tuple[HourlyBucket, ...]
    total_minutes: int


@dataclass(frozen=True, slots=True)
class ViewState:
    """Date and zoom level currently shown by a timeline view."""

    current_date: date
    hour_height: int


@dataclass(frozen=True, slots=True)
class TimelineBlock:
    """A positioned block on the timeline grid, in pixels."""

    name: str
    color: str
    top: float
    height: float
    show_label: bool
    start_minutes: int
    end_minutes: int
    duration_seconds: int
    tooltip: str


@dataclass(frozen=True, slots=True)
class HourMark:
    label: str
    top: float


@dataclass(frozen=True, slots=True)
class TimelineRender:
    """Everything needed to draw one day of the timeline."""

    state: ViewState
    date_label: str
    zoom_percent: int
    status: str  # "ok", "empty" or "error"
    grid_height: float
    message: Optional[str] = None
    blocks: tuple[TimelineBlock, ...] = field(default_factory=tuple)
    hour_marks: tuple[HourMark, ...] = field(default_factory=tuple)
    app_totals: tuple[AppUsage, ...] = field(default_factory=tuple)
    total_minutes: int = 0
    is_today: bool = False
