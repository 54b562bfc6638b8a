"""Timeline view model: state transitions, block layout and zoom math."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, replace
from datetime import date, timedelta
from typing import Callable, Iterable, Optional, Sequence, Union

from .aggregation import app_totals, format_minutes, seconds_to_minutes
from .config import ScreenTimeSettings
from .models import (
    HourMark,
    RawInterval,
    ResolvedInterval,
    TimelineBlock,
    TimelineRender,
    ViewState,
)
from .resolver import NameResolver
from .store import QueryFailedError

logger = logging.getLogger(__name__)

HOUR_START = 6
HOUR_END = 24
WINDOW_START_MINUTES = HOUR_START * 60
WINDOW_END_MINUTES = HOUR_END * 60

ZOOM_MIN = 40
ZOOM_MAX = 240
ZOOM_STEP = 20
ZOOM_DEFAULT = 80

MIN_BLOCK_HEIGHT = 2.0
LABEL_MIN_HEIGHT = 16.0

_WEEKDAYS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")


@dataclass(frozen=True, slots=True)
class Navigate:
    days: int


@dataclass(frozen=True, slots=True)
class JumpToToday:
    pass


@dataclass(frozen=True, slots=True)
class Zoom:
    delta: int


@dataclass(frozen=True, slots=True)
class ResetZoom:
    pass


Action = Union[Navigate, JumpToToday, Zoom, ResetZoom]


def initial_state(today: Optional[date] = None) -> ViewState:
    return ViewState(current_date=today or date.today(), hour_height=ZOOM_DEFAULT)


def clamp_zoom(hour_height: int) -> int:
    return max(ZOOM_MIN, min(ZOOM_MAX, hour_height))


def apply_action(state: ViewState, action: Action, today: Optional[date] = None) -> ViewState:
    """Return the view state that results from ``action``."""
    if isinstance(action, Navigate):
        return replace(state, current_date=state.current_date + timedelta(days=action.days))
    if isinstance(action, JumpToToday):
        return replace(state, current_date=today or date.today())
    if isinstance(action, Zoom):
        return replace(state, hour_height=clamp_zoom(state.hour_height + action.delta))
    if isinstance(action, ResetZoom):
        return replace(state, hour_height=ZOOM_DEFAULT)
    raise TypeError(f"Unknown timeline action: {action!r}")


def app_color(name: str) -> str:
    """Derive a stable HSL color from an app name."""
    value = 0
    for char in name:
        value = (ord(char) + (value << 5) - value) & 0xFFFFFFFF
    if value >= 0x80000000:
        value -= 0x100000000
    hue = value % 360
    return f"hsl({hue}, 55%, 55%)"


def time_to_minutes(value: str) -> int:
    """Minutes since midnight for ``HH:MM[:SS]``; seconds are dropped."""
    hours, minutes = value.split(":")[:2]
    return int(hours) * 60 + int(minutes)


def format_clock(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def format_date_label(day: date) -> str:
    return f"{day.month}/{day.day} ({_WEEKDAYS[day.weekday()]})"


def resolve_intervals(
    intervals: Iterable[RawInterval],
    min_duration_seconds: int,
    resolver: NameResolver,
) -> list[ResolvedInterval]:
    return [
        ResolvedInterval(
            name=resolver.resolve(interval.identifier),
            start_time=interval.start_time,
            end_time=interval.end_time,
            duration_seconds=interval.duration_seconds,
            start_minutes=time_to_minutes(interval.start_time),
            end_minutes=time_to_minutes(interval.end_time),
        )
        for interval in intervals
        if interval.duration_seconds >= min_duration_seconds
    ]


def layout_blocks(
    intervals: Sequence[ResolvedInterval], state: ViewState
) -> list[TimelineBlock]:
    """Position intervals inside the visible hour window."""
    blocks: list[TimelineBlock] = []
    for interval in intervals:
        if (
            interval.end_minutes <= WINDOW_START_MINUTES
            or interval.start_minutes >= WINDOW_END_MINUTES
        ):
            continue
        start = max(interval.start_minutes, WINDOW_START_MINUTES)
        end = min(interval.end_minutes, WINDOW_END_MINUTES)
        duration = end - start
        if duration < 1:
            continue

        top = (start - WINDOW_START_MINUTES) / 60 * state.hour_height
        height = duration / 60 * state.hour_height
        tooltip = "\n".join(
            (
                interval.name,
                f"{format_clock(interval.start_minutes)} - {format_clock(interval.end_minutes)}",
                format_minutes(seconds_to_minutes(interval.duration_seconds)),
            )
        )
        blocks.append(
            TimelineBlock(
                name=interval.name,
                color=app_color(interval.name),
                top=top,
                height=max(height, MIN_BLOCK_HEIGHT),
                show_label=height >= LABEL_MIN_HEIGHT,
                start_minutes=interval.start_minutes,
                end_minutes=interval.end_minutes,
                duration_seconds=interval.duration_seconds,
                tooltip=tooltip,
            )
        )
    return blocks


def hour_marks(state: ViewState) -> list[HourMark]:
    return [
        HourMark(label=f"{hour:02d}:00", top=float((hour - HOUR_START) * state.hour_height))
        for hour in range(HOUR_START, HOUR_END + 1)
    ]


def grid_height(state: ViewState) -> float:
    return float((HOUR_END - HOUR_START) * state.hour_height)


def scroll_ratio(scroll_top: float, scroll_height: float, client_height: float) -> float:
    """Scroll position as a fraction of the scrollable range."""
    max_scroll = scroll_height - client_height
    if max_scroll <= 0:
        return 0.0
    return scroll_top / max_scroll


def anchored_scroll_top(ratio: float, scroll_height: float, client_height: float) -> float:
    return ratio * max(scroll_height - client_height, 0.0)


QueryFn = Callable[[str], Sequence[RawInterval]]


class TimelineView:
    """Stateful timeline for one viewer.

    Every transition re-runs one query and layout for the visible day. A
    failed query produces an error render and leaves the state unchanged.
    """

    def __init__(
        self,
        settings: ScreenTimeSettings,
        resolver: NameResolver,
        query: Optional[QueryFn] = None,
        today: Optional[Callable[[], date]] = None,
    ) -> None:
        self.settings = settings
        self.resolver = resolver
        self._today = today or date.today
        self._query = query or settings.fetch_usage
        self.state = initial_state(self._today())
        self._last_render: Optional[TimelineRender] = None
        self._lock = threading.Lock()

    def dispatch(self, action: Action) -> TimelineRender:
        with self._lock:
            self.state = apply_action(self.state, action, today=self._today())
            return self._render_locked()

    def render(self) -> TimelineRender:
        with self._lock:
            return self._render_locked()

    def zoom(
        self,
        delta: int,
        scroll_top: float = 0.0,
        scroll_height: float = 0.0,
        client_height: float = 0.0,
    ) -> tuple[TimelineRender, float]:
        """Zoom by ``delta`` and return the render plus the scroll ratio to keep."""
        ratio = scroll_ratio(scroll_top, scroll_height, client_height)
        with self._lock:
            new_state = apply_action(self.state, Zoom(delta))
            if new_state == self.state and self._last_render is not None:
                return self._last_render, ratio
            self.state = new_state
            return self._render_locked(), ratio

    def _render_locked(self) -> TimelineRender:
        state = self.state
        day = state.current_date
        base = dict(
            state=state,
            date_label=format_date_label(day),
            zoom_percent=round(state.hour_height / ZOOM_DEFAULT * 100),
            grid_height=grid_height(state),
            hour_marks=tuple(hour_marks(state)),
            is_today=day == self._today(),
        )
        try:
            raw = self._query(day.isoformat())
        except QueryFailedError as exc:
            logger.warning("Timeline query for %s failed: %s", day, exc)
            render = TimelineRender(status="error", message=f"Error: {exc}", **base)
            self._last_render = render
            return render

        resolved = resolve_intervals(raw, self.settings.minimum_duration_seconds, self.resolver)
        if not resolved:
            render = TimelineRender(
                status="empty", message="No Screen Time data for this day.", **base
            )
        else:
            totals = app_totals(resolved)
            render = TimelineRender(
                status="ok",
                blocks=tuple(layout_blocks(resolved, state)),
                app_totals=tuple(totals),
                total_minutes=sum(app.minutes for app in totals),
                **base,
            )
        self._last_render = render
        return render
