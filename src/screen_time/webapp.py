"""FastAPI application that serves the local screen time timeline."""

from __future__ import annotations

import logging
from dataclasses import asdict
from datetime import date as date_cls
from pathlib import Path
from typing import Any, Callable, Dict, Literal, Optional

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel, ConfigDict, Field

from .aggregation import build_daily_summary, build_hourly, format_minutes
from .config import ScreenTimeSettings
from .daily_note import insert_screen_time_section
from .models import DailySummary, TimelineRender
from .resolver import NameResolver
from .store import InvalidInputError, QueryFailedError, validate_date
from .timeline import (
    ZOOM_MAX,
    ZOOM_MIN,
    ZOOM_STEP,
    JumpToToday,
    Navigate,
    QueryFn,
    ResetZoom,
    TimelineView,
    app_color,
)

logger = logging.getLogger(__name__)


class NavigatePayload(BaseModel):
    days: Literal[-1, 1]

    model_config = ConfigDict(extra="forbid")


class ZoomPayload(BaseModel):
    delta: int = Field(
        default=ZOOM_STEP,
        ge=-(ZOOM_MAX - ZOOM_MIN),
        le=ZOOM_MAX - ZOOM_MIN,
        multiple_of=ZOOM_STEP,
    )
    scroll_top: float = 0.0
    scroll_height: float = 0.0
    client_height: float = 0.0

    model_config = ConfigDict(extra="forbid")


class NotePayload(BaseModel):
    date: Optional[str] = None

    model_config = ConfigDict(extra="forbid")


def create_app(
    *,
    settings: Optional[ScreenTimeSettings] = None,
    resolver: Optional[NameResolver] = None,
    query: Optional[QueryFn] = None,
    today: Optional[Callable[[], date_cls]] = None,
) -> FastAPI:
    """Instantiate the FastAPI application."""
    resolved_settings = settings or ScreenTimeSettings()
    name_resolver = resolver or NameResolver()
    today_fn = today or date_cls.today
    # The summary endpoints and the timeline share one query function.
    fetch = query or resolved_settings.fetch_usage
    view = TimelineView(resolved_settings, name_resolver, query=fetch, today=today_fn)

    app = FastAPI(title="Screen Time", version="0.1.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.settings = resolved_settings
    app.state.resolver = name_resolver
    app.state.timeline = view

    static_dir = Path(__file__).parent / "static"
    if static_dir.exists():
        app.mount("/static", StaticFiles(directory=static_dir), name="static")

    @app.on_event("startup")
    async def _startup() -> None:
        logging.basicConfig(
            level=logging.INFO,
            format="%(asctime)s %(levelname)s %(name)s %(message)s",
        )
        logger.info("Reading usage from %s", resolved_settings.resolved_store_path())

    @app.get("/api/status")
    def status(request: Request) -> Dict[str, Any]:
        state = request.app.state.timeline.state
        return {
            "store_path": str(resolved_settings.resolved_store_path()),
            "note_folder": str(resolved_settings.note_folder),
            "minimum_duration_seconds": resolved_settings.minimum_duration_seconds,
            "current_date": state.current_date.isoformat(),
            "hour_height": state.hour_height,
        }

    @app.get("/api/summary")
    def summary(
        date: Optional[str] = Query(
            default=None,
            description="Target date in YYYY-MM-DD format.",
        ),
    ) -> Dict[str, Any]:
        daily = _summarize(date or today_fn().isoformat())
        return _summary_payload(daily)

    @app.get("/api/timeline")
    def timeline(request: Request) -> Dict[str, Any]:
        return _render_payload(request.app.state.timeline.render())

    @app.post("/api/timeline/navigate")
    def navigate(payload: NavigatePayload, request: Request) -> Dict[str, Any]:
        return _render_payload(request.app.state.timeline.dispatch(Navigate(payload.days)))

    @app.post("/api/timeline/today")
    def jump_to_today(request: Request) -> Dict[str, Any]:
        return _render_payload(request.app.state.timeline.dispatch(JumpToToday()))

    @app.post("/api/timeline/zoom")
    def zoom(payload: ZoomPayload, request: Request) -> Dict[str, Any]:
        render, ratio = request.app.state.timeline.zoom(
            payload.delta,
            scroll_top=payload.scroll_top,
            scroll_height=payload.scroll_height,
            client_height=payload.client_height,
        )
        response = _render_payload(render)
        response["scroll_ratio"] = ratio
        return response

    @app.post("/api/timeline/zoom/reset")
    def reset_zoom(request: Request) -> Dict[str, Any]:
        return _render_payload(request.app.state.timeline.dispatch(ResetZoom()))

    @app.post("/api/notes")
    def insert_note(payload: NotePayload) -> Dict[str, Any]:
        day = payload.date or today_fn().isoformat()
        daily = _summarize(day)
        if not daily.hourly:
            raise HTTPException(status_code=404, detail=f"No Screen Time data found for {day}")
        result = insert_screen_time_section(daily, resolved_settings.note_folder)
        if not result.ok:
            raise HTTPException(status_code=404, detail=result.message)
        return {"path": str(result.path), "message": result.message}

    @app.get("/")
    def index():
        index_path = (Path(__file__).parent / "static" / "index.html").resolve()
        if not index_path.exists():
            raise HTTPException(status_code=404, detail="UI not found")
        return FileResponse(index_path)

    def _summarize(day: str) -> DailySummary:
        try:
            intervals = fetch(validate_date(day))
        except InvalidInputError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        except QueryFailedError as exc:
            raise HTTPException(status_code=502, detail=str(exc)) from exc
        hourly = build_hourly(
            intervals, resolved_settings.minimum_duration_seconds, name_resolver
        )
        return build_daily_summary(day, hourly)

    return app


def _summary_payload(summary: DailySummary) -> Dict[str, Any]:
    return {
        "date": summary.date,
        "total_minutes": summary.total_minutes,
        "total_label": format_minutes(summary.total_minutes),
        "hourly": [
            {
                "hour": bucket.hour,
                "apps": [
                    {"name": app.name, "minutes": app.minutes, "label": format_minutes(app.minutes)}
                    for app in bucket.apps
                ],
            }
            for bucket in summary.hourly
        ],
    }


def _render_payload(render: TimelineRender) -> Dict[str, Any]:
    payload = asdict(render)
    payload["state"] = {
        "current_date": render.state.current_date.isoformat(),
        "hour_height": render.state.hour_height,
    }
    payload["app_totals"] = [
        {**usage, "color": app_color(usage["name"])} for usage in payload["app_totals"]
    ]
    payload["total_label"] = format_minutes(render.total_minutes)
    return payload
