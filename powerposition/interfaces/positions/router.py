"""
FastAPI router for position scheduler status.

Read-only: exposes the scheduler state and the recent cycle history.
The scheduler instance is attached to ``app.state`` by the composition root.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from powerposition.application.positions.dtos import CycleResult
from powerposition.interfaces.positions.schemas import (
    CycleHistoryResponse,
    CycleItem,
    SchedulerStatusResponse,
)
from powerposition.realtime.scheduler import PositionScheduler

router = APIRouter(prefix="/positions", tags=["positions"])

HTTP_503 = 503


def get_scheduler(request: Request) -> PositionScheduler:
    """Return the scheduler attached to the application."""
    scheduler = getattr(request.app.state, "scheduler", None)
    if scheduler is None:
        raise HTTPException(status_code=HTTP_503, detail="Scheduler not initialized.")
    return scheduler


def _to_item(result: CycleResult) -> CycleItem:
    return CycleItem(
        cycle_start=result.cycle_start,
        target_date=result.target_date,
        status=result.status.value,
        phase=result.phase.value,
        started_at=result.started_at,
        finished_at=result.finished_at,
        duration_seconds=result.duration_seconds,
        attempts=result.attempts,
        trade_count=result.trade_count,
        position_count=result.position_count,
        snapshot_path=result.snapshot_path,
        error=result.error,
    )


@router.get(
    "/status",
    response_model=SchedulerStatusResponse,
    summary="Get scheduler status",
    description="Return the current state of the position scheduler.",
)
def scheduler_status(
    scheduler: Annotated[PositionScheduler, Depends(get_scheduler)],
) -> SchedulerStatusResponse:
    """Return scheduler status and the latest cycles."""
    return SchedulerStatusResponse(**scheduler.get_status())


@router.get(
    "/cycles",
    response_model=CycleHistoryResponse,
    summary="Get recent cycles",
    description="Return the most recent cycle results, oldest first.",
)
def cycle_history(
    scheduler: Annotated[PositionScheduler, Depends(get_scheduler)],
    limit: Annotated[int, Query(ge=1, le=200, description="Number of cycles")] = 20,
) -> CycleHistoryResponse:
    """Return the last ``limit`` cycle results."""
    cycles = scheduler.cycle_history[-limit:]
    return CycleHistoryResponse(cycles=[_to_item(c) for c in cycles])
