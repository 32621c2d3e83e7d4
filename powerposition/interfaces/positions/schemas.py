"""
Pydantic schemas for the status API responses.

These schemas define the API contract.
No business logic belongs here.
"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel


class HealthResponse(BaseModel):
    """Response schema for the health endpoint."""

    status: str
    version: str


class RecentCycleItem(BaseModel):
    """Short cycle summary embedded in the scheduler status."""

    cycle_start: datetime
    target_date: date
    status: str
    phase: str
    attempts: int
    position_count: int
    duration: float


class SchedulerStatusResponse(BaseModel):
    """Response schema for the scheduler status endpoint."""

    running: bool
    state: str
    interval_seconds: float
    location: str
    output_path: str
    next_cycle_start: Optional[datetime] = None
    recent_cycles: list[RecentCycleItem]


class CycleItem(BaseModel):
    """A single cycle result in the history response."""

    cycle_start: datetime
    target_date: date
    status: str
    phase: str
    started_at: datetime
    finished_at: Optional[datetime] = None
    duration_seconds: float
    attempts: int
    trade_count: int
    position_count: int
    snapshot_path: Optional[str] = None
    error: Optional[str] = None


class CycleHistoryResponse(BaseModel):
    """Response schema for the cycle history endpoint."""

    cycles: list[CycleItem]
