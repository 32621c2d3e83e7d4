"""
Data Transfer Objects for the power position application layer.

DTOs carry results between the application layer, the scheduler and
the status API. They are plain dataclasses with no behavior beyond
convenience properties.
"""

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Optional

from powerposition.domain.positions.entities import TradeRecord
from powerposition.domain.positions.errors import PowerPositionError


class SchedulerState(Enum):
    """Phase of the scheduler control loop."""

    IDLE = "idle"
    FETCHING = "fetching"
    AGGREGATING = "aggregating"
    PERSISTING = "persisting"


class CycleStatus(Enum):
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class FetchOutcome:
    """Result of a bounded-retry fetch.

    Exactly one of ``trades`` and ``error`` is set.

    Attributes:
        target_date: Trading date that was requested.
        attempts: Number of calls made to the trade source.
        trades: Trades returned by the successful attempt.
        error: FetchTimeoutError or CycleCancelledError on failure.
    """

    target_date: date
    attempts: int
    trades: Optional[list[TradeRecord]] = None
    error: Optional[PowerPositionError] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


@dataclass
class CycleResult:
    """Outcome of one fetch → aggregate → persist cycle.

    Attributes:
        cycle_start: Nominal start of the cycle on the schedule grid (UTC).
        target_date: Trading date of the cycle.
        status: Completed, failed or cancelled.
        phase: Last phase entered; for a failed cycle, where it failed.
        started_at: Actual start time (UTC).
        finished_at: Actual end time (UTC).
        duration_seconds: Wall time spent in the cycle.
        attempts: Trade source calls made.
        trade_count: Trades returned by the successful fetch.
        position_count: Positions written.
        snapshot_path: Written snapshot, if any.
        error: Failure description, if any.
    """

    cycle_start: datetime
    target_date: date
    status: CycleStatus
    phase: SchedulerState
    started_at: datetime
    finished_at: Optional[datetime] = None
    duration_seconds: float = 0.0
    attempts: int = 0
    trade_count: int = 0
    position_count: int = 0
    snapshot_path: Optional[str] = None
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.status is CycleStatus.COMPLETED
