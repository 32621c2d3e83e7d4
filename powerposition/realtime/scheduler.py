"""
Position scheduler: the recurring fetch → aggregate → persist loop.

One cycle runs per fixed interval, one at a time:

- **Fetching**: day-ahead trades for ``cycle_start.date() + 1 day``,
  retried within the configured budget
- **Aggregating**: hourly UTC net positions in the configured time zone
- **Persisting**: one snapshot named after the trading date and cycle start

A failing cycle is logged and recorded, and the loop carries on. Cycle
starts stay on the grid anchored at the first cycle: after each cycle
the next start is ``previous start + interval``; if that is already in
the past the next cycle starts immediately.

The loop runs in the foreground (``run_forever``) or on a background
thread (``start`` / ``stop``). Both waits in the loop go through the
CancellationToken, so ``stop`` takes effect without sitting out a delay.
"""

import logging
import threading
import time
from datetime import datetime, timedelta, timezone
from typing import Optional

from powerposition.application.positions.dtos import (
    CycleResult,
    CycleStatus,
    SchedulerState,
)
from powerposition.application.positions.fetch_trades import RetryingFetcher
from powerposition.core.config import RunConfiguration
from powerposition.domain.positions.aggregator import PositionAggregator
from powerposition.domain.positions.errors import CycleCancelledError
from powerposition.domain.positions.ports import SnapshotWriter, TradeSource
from powerposition.domain.positions.snapshot import snapshot_name
from powerposition.shared.clock import CancellationToken, Clock

logger = logging.getLogger(__name__)


class PositionScheduler:
    """Drives one position cycle per interval until cancelled.

    Usage:
        scheduler = PositionScheduler(run_config, source, writer)
        scheduler.start()        # loop on a background thread
        scheduler.stop()         # cancel waits and join
        scheduler.run_cycle()    # a single cycle starting now (blocking)
    """

    def __init__(
        self,
        config: RunConfiguration,
        source: TradeSource,
        writer: SnapshotWriter,
        clock: Optional[Clock] = None,
        token: Optional[CancellationToken] = None,
        history_size: int = 200,
    ) -> None:
        """
        Args:
            config: Immutable run options.
            source: Where trades come from.
            writer: Where snapshots go.
            clock: UTC clock, replaceable in tests.
            token: Cancellation token shared by the loop and the fetcher.
            history_size: Number of cycle results kept in memory.

        Raises:
            InvalidTimeZoneError: ``config.location`` cannot be resolved.
        """
        self._config = config
        self._clock = clock or Clock()
        self._token = token or CancellationToken()
        self._aggregator = PositionAggregator(config.location)
        self._fetcher = RetryingFetcher(
            source,
            retry_limit=config.retry_limit,
            retry_delay=config.retry_delay,
            clock=self._clock,
            token=self._token,
        )
        self._writer = writer

        self._state = SchedulerState.IDLE
        self._next_cycle_start: Optional[datetime] = None
        self._history: list[CycleResult] = []
        self._max_history = history_size
        self._lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def token(self) -> CancellationToken:
        return self._token

    @property
    def next_cycle_start(self) -> Optional[datetime]:
        return self._next_cycle_start

    @property
    def cycle_history(self) -> list[CycleResult]:
        with self._lock:
            return list(self._history)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Run the loop on a background thread."""
        if self.is_running:
            logger.warning("Position scheduler already running.")
            return
        if self._token.is_cancelled:
            logger.warning("Position scheduler was stopped and cannot be restarted.")
            return

        self._thread = threading.Thread(
            target=self.run_forever, name="position-scheduler", daemon=True
        )
        self._thread.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        """Cancel the loop and wait for the in-flight cycle to end."""
        self._token.cancel()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None

    # ------------------------------------------------------------------
    # Control loop
    # ------------------------------------------------------------------

    def run_forever(self) -> None:
        """Run cycles on the fixed interval grid until cancelled."""
        cycle_start = self._clock.now()
        logger.info(
            "Position scheduler started: every %s, zone %s, output %s.",
            self._config.interval, self._aggregator.location, self._config.output_path,
        )

        while not self._token.is_cancelled:
            self.run_cycle(cycle_start)

            cycle_start += self._config.interval
            self._next_cycle_start = cycle_start
            remaining = cycle_start - self._clock.now()
            if remaining > timedelta(0):
                if self._token.wait(remaining):
                    break
            elif not self._token.is_cancelled:
                logger.warning(
                    "Cycle overran the interval by %s. Starting the next cycle now.",
                    -remaining,
                )

        self._next_cycle_start = None
        logger.info("Position scheduler stopped.")

    def run_cycle(self, cycle_start: Optional[datetime] = None) -> CycleResult:
        """Run one fetch → aggregate → persist cycle (blocking).

        Never raises for per-cycle failures; they end up in the result.

        Args:
            cycle_start: Nominal start of the cycle, timezone-aware.
                Defaults to now.

        Returns:
            CycleResult describing what happened.

        Raises:
            ValueError: ``cycle_start`` is naive.
        """
        if cycle_start is None:
            cycle_start = self._clock.now()
        elif cycle_start.tzinfo is None or cycle_start.utcoffset() is None:
            raise ValueError(f"cycle_start must be timezone-aware, got {cycle_start.isoformat()}")
        cycle_start = cycle_start.astimezone(timezone.utc)
        target_date = cycle_start.date() + timedelta(days=1)

        started = time.monotonic()
        result = CycleResult(
            cycle_start=cycle_start,
            target_date=target_date,
            status=CycleStatus.FAILED,
            phase=SchedulerState.FETCHING,
            started_at=self._clock.now(),
        )

        try:
            self._state = SchedulerState.FETCHING
            outcome = self._fetcher.fetch(target_date, cycle_start)
            result.attempts = outcome.attempts

            if not outcome.succeeded:
                if isinstance(outcome.error, CycleCancelledError):
                    result.status = CycleStatus.CANCELLED
                    logger.info("Cycle for %s cancelled while fetching.", target_date)
                else:
                    logger.error(
                        "Cycle for %s failed while fetching: %s", target_date, outcome.error
                    )
                result.error = str(outcome.error)
                return self._finish(result, started)

            result.phase = self._state = SchedulerState.AGGREGATING
            positions = self._aggregator.aggregate(outcome.trades or [])
            result.trade_count = len(outcome.trades or [])

            result.phase = self._state = SchedulerState.PERSISTING
            name = snapshot_name(target_date, cycle_start, self._writer.extension)
            path = self._writer.write(positions, name)

            result.status = CycleStatus.COMPLETED
            result.position_count = len(positions)
            result.snapshot_path = str(path)
        except Exception as exc:
            logger.exception(
                "Cycle for %s failed while %s.", target_date, result.phase.value
            )
            result.status = CycleStatus.FAILED
            result.error = str(exc)
        finally:
            self._state = SchedulerState.IDLE

        return self._finish(result, started)

    # ------------------------------------------------------------------
    # History & status
    # ------------------------------------------------------------------

    def _finish(self, result: CycleResult, started: float) -> CycleResult:
        result.finished_at = self._clock.now()
        result.duration_seconds = round(time.monotonic() - started, 3)
        self._record_result(result)
        return result

    def _record_result(self, result: CycleResult) -> None:
        with self._lock:
            self._history.append(result)
            if len(self._history) > self._max_history:
                self._history = self._history[-self._max_history:]

    def get_status(self) -> dict:
        """Return the scheduler status summary."""
        recent = self.cycle_history[-10:]
        next_start = self._next_cycle_start
        return {
            "running": self.is_running,
            "state": self._state.value,
            "interval_seconds": self._config.interval.total_seconds(),
            "location": self._aggregator.location,
            "output_path": str(self._config.output_path),
            "next_cycle_start": next_start.isoformat() if next_start else None,
            "recent_cycles": [
                {
                    "cycle_start": r.cycle_start.isoformat(),
                    "target_date": r.target_date.isoformat(),
                    "status": r.status.value,
                    "phase": r.phase.value,
                    "attempts": r.attempts,
                    "position_count": r.position_count,
                    "duration": r.duration_seconds,
                }
                for r in recent
            ],
        }
