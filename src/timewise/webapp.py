"""FastAPI application that exposes the timer and statistics over local HTTP."""

from __future__ import annotations

import logging
from dataclasses import asdict
from pathlib import Path
from typing import Any, Dict, Optional

from fastapi import Body, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, ConfigDict

from .clock import Clock, now_ms
from .config import EngineSettings
from .db import SqliteRepository
from .errors import DataIntegrityError, TimerError, TimerResult
from .history import get_history
from .paths import get_db_path
from .planner import Planner
from .repository import Repository
from .scheduler import ThreadTicker, Ticker
from .stats import UNIT_COUNTS, StatsEngine
from .timer import TimerEngine, TimerSnapshot
from .transfer import export_payload, import_payload

logger = logging.getLogger(__name__)

_CONFLICT_ERRORS = {
    TimerError.ACTIVE_SESSION_EXISTS,
    TimerError.NOT_RUNNING,
    TimerError.NOT_PAUSED,
    TimerError.NO_ACTIVE_SESSION,
}


class StartPayload(BaseModel):
    activity_id: str

    model_config = ConfigDict(extra="forbid")


def create_app(
    *,
    db_path: Optional[Path] = None,
    settings: Optional[EngineSettings] = None,
    repository: Optional[Repository] = None,
    clock: Clock = now_ms,
    ticker: Optional[Ticker] = None,
) -> FastAPI:
    """Instantiate the FastAPI application."""
    resolved_settings = settings or EngineSettings()
    if repository is None:
        db_path = Path(db_path or get_db_path())
        repository = SqliteRepository(db_path)
    timer = TimerEngine(
        repository,
        clock=clock,
        ticker=ticker or ThreadTicker(resolved_settings.tick_interval),
    )
    stats = StatsEngine(repository, clock=clock)

    app = FastAPI(title="TimeWise", version="0.3.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.repository = repository
    app.state.timer = timer
    app.state.stats = stats
    app.state.planner = Planner(repository, clock=clock)

    @app.on_event("shutdown")
    async def _shutdown() -> None:
        # Persist whatever is in flight rather than losing it.
        result = timer.stop()
        if result.ok:
            logger.info("Stopped in-flight session %s on shutdown.", result.session.id)

    @app.get("/api/status")
    def status(request: Request) -> Dict[str, Any]:
        return {
            "timer": _snapshot_payload(request.app.state.timer.get_state()),
            "tick_seconds": resolved_settings.tick_interval.total_seconds(),
            "database_path": str(db_path) if db_path else None,
        }

    @app.post("/api/timer/start")
    def start_timer(payload: StartPayload, request: Request) -> Dict[str, Any]:
        return _timer_response(request, request.app.state.timer.start_session(payload.activity_id))

    @app.post("/api/timer/pause")
    def pause_timer(request: Request) -> Dict[str, Any]:
        return _timer_response(request, request.app.state.timer.pause())

    @app.post("/api/timer/resume")
    def resume_timer(request: Request) -> Dict[str, Any]:
        return _timer_response(request, request.app.state.timer.resume())

    @app.post("/api/timer/stop")
    def stop_timer(request: Request) -> Dict[str, Any]:
        return _timer_response(request, request.app.state.timer.stop())

    @app.post("/api/timer/reset")
    def reset_timer(request: Request) -> Dict[str, Any]:
        return _timer_response(request, request.app.state.timer.reset())

    @app.get("/api/stats")
    def get_stats(
        request: Request,
        period: str = Query(default="daily", description="daily, weekly or monthly."),
        offset: int = Query(default=0, description="0 is the most recent window."),
    ) -> Dict[str, Any]:
        if period not in UNIT_COUNTS:
            raise HTTPException(status_code=400, detail=f"Unknown period {period!r}")
        if offset < 0:
            raise HTTPException(status_code=400, detail="offset must be zero or positive")
        try:
            result = request.app.state.stats.get_stats(period, offset)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        return result.to_dict()

    @app.get("/api/history")
    def history(
        request: Request,
        limit: Optional[int] = Query(default=None, ge=1, description="Newest sessions to return."),
    ) -> Dict[str, Any]:
        entries = get_history(request.app.state.repository, limit=limit)
        return {
            "sessions": [
                {
                    **asdict(entry.session),
                    "activity_label": entry.activity.label,
                    "activity_priority": entry.activity.priority,
                    "duration_text": entry.duration_text,
                }
                for entry in entries
            ]
        }

    @app.get("/api/plan")
    def get_plan(
        request: Request,
        day: Optional[str] = Query(default=None, alias="date", description="YYYY-MM-DD; defaults to today."),
    ) -> Dict[str, Any]:
        planner = request.app.state.planner
        try:
            structure = planner.get_day_structure(day)
            feasibility = planner.check_daily_feasibility(day)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        return {"day_structure": structure.to_dict(), "feasibility": feasibility.to_dict()}

    @app.put("/api/day-structure")
    def put_day_structure(
        request: Request,
        changes: Dict[str, Any] = Body(...),
    ) -> Dict[str, Any]:
        try:
            config = request.app.state.planner.set_day_structure(changes)
        except ValueError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        return config.to_mapping()

    @app.get("/api/activities")
    def activities(request: Request) -> Dict[str, Any]:
        return {
            "activities": [asdict(a) for a in request.app.state.repository.get_activities()]
        }

    @app.get("/api/export")
    def export_data(request: Request) -> Dict[str, Any]:
        return export_payload(request.app.state.repository)

    @app.post("/api/import")
    def import_data(
        request: Request,
        payload: Any = Body(...),
        merge: bool = Query(default=False),
    ) -> Dict[str, Any]:
        if request.app.state.timer.get_state().session is not None:
            raise HTTPException(status_code=409, detail="Stop the running session before importing.")
        try:
            parsed = import_payload(request.app.state.repository, payload, merge=merge)
        except DataIntegrityError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        return {"activities": len(parsed.activities), "sessions": len(parsed.sessions)}

    return app


def _timer_response(request: Request, result: TimerResult) -> Dict[str, Any]:
    if not result.ok:
        status_code = 409 if result.error in _CONFLICT_ERRORS else 400
        raise HTTPException(status_code=status_code, detail=result.error.value)
    return {
        "session": asdict(result.session) if result.session else None,
        "timer": _snapshot_payload(request.app.state.timer.get_state()),
    }


def _snapshot_payload(snapshot: TimerSnapshot) -> Dict[str, Any]:
    payload = asdict(snapshot)
    payload["status"] = snapshot.status.value
    return payload
