from __future__ import annotations

from threading import Thread

import uvicorn
from fastapi import FastAPI, HTTPException, Query

from .api_models import CycleStatus, DirectoryStatus, EventRecord, HealthResponse, StatusResponse
from .events import MAX_EVENTS, latest_events, log_event
from .runtime import CycleReport, RuntimeState


def _cycle_status(report: CycleReport) -> CycleStatus:
    return CycleStatus(
        started_at=report.started_at,
        finished_at=report.finished_at,
        duration_ms=report.duration_ms,
        endpoints=list(report.endpoints),
        skipped=dict(report.skipped),
        directories=[
            DirectoryStatus(
                kind=d.kind,
                directory=d.directory,
                changed=d.changed,
                written=list(d.written),
                removed=list(d.removed),
                render_failures=list(d.render_failures),
            )
            for d in report.directories
        ],
        reloaded=report.reloaded,
    )


def create_app(runtime: RuntimeState) -> FastAPI:
    """Read-only view of the reconciler. It never triggers or alters a cycle."""
    app = FastAPI(title="docker-autoproxy status")

    @app.get("/health", response_model=HealthResponse)
    def health() -> HealthResponse:
        last, count = runtime.snapshot()
        if last is None:
            raise HTTPException(status_code=503, detail="no completed cycle")
        return HealthResponse(status="healthy", cycles_completed=count)

    @app.get("/status", response_model=StatusResponse)
    def status() -> StatusResponse:
        last, count = runtime.snapshot()
        return StatusResponse(
            process_started_at=runtime.started_at,
            cycles_completed=count,
            last_cycle=_cycle_status(last) if last else None,
        )

    @app.get("/events", response_model=list[EventRecord])
    def events(limit: int = Query(50, ge=1, le=MAX_EVENTS)) -> list[EventRecord]:
        return [EventRecord(**e) for e in latest_events(limit)]

    return app


def start_status_server(runtime: RuntimeState, host: str, port: int) -> Thread:
    """Serve the status API from a daemon thread; the reconciler keeps the main thread."""
    config = uvicorn.Config(create_app(runtime), host=host, port=port, log_level="warning")
    server = uvicorn.Server(config)
    thr = Thread(target=server.run, name="autoproxy-status", daemon=True)
    thr.start()
    log_event("INFO", "Status API listening", host=host, port=port)
    return thr
