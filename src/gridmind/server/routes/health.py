"""Health and status endpoints."""

from __future__ import annotations

from datetime import UTC, datetime

from fastapi import APIRouter, Request
from pydantic import BaseModel

from gridmind import __version__

health_router = APIRouter(tags=["Health"])


class HealthResponse(BaseModel):
    status: str
    version: str
    uptime_seconds: float


class StatusResponse(BaseModel):
    version: str
    started_at: str
    uptime_seconds: float
    store: str
    model_id: str
    poller_running: bool
    poll_interval_seconds: int
    last_poll: str | None = None
    task_counts: dict[str, int]
    providers: dict[str, bool]


def _uptime(request: Request) -> tuple[datetime, float]:
    started_at = getattr(request.app.state, "started_at", datetime.now(UTC))
    return started_at, (datetime.now(UTC) - started_at).total_seconds()


@health_router.get("/health", response_model=HealthResponse)
async def health_check(request: Request) -> HealthResponse:
    _, uptime = _uptime(request)
    return HealthResponse(status="ok", version=__version__, uptime_seconds=round(uptime, 1))


@health_router.get("/status", response_model=StatusResponse)
async def status(request: Request) -> StatusResponse:
    state = request.app.state
    settings = state.settings
    started_at, uptime = _uptime(request)
    poller = state.poller

    return StatusResponse(
        version=__version__,
        started_at=started_at.isoformat(),
        uptime_seconds=round(uptime, 1),
        store="postgres" if settings.is_postgres else "json",
        model_id=settings.model.model_id,
        poller_running=poller.running,
        poll_interval_seconds=poller.interval_seconds,
        last_poll=poller.last_poll.isoformat() if poller.last_poll else None,
        task_counts=state.store.count_by_status(),
        providers=await state.registry.availability(),
    )
