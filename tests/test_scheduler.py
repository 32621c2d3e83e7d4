"""
Tests for the position scheduler.

Covers:
- A single cycle: target date, snapshot naming, phases, failures
- The control loop: fixed interval grid, overruns, resilience, cancellation
- History and status reporting
- Background thread lifecycle
"""

import logging
import time
from dataclasses import replace
from datetime import date, datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest

from powerposition.application.positions.dtos import CycleStatus, SchedulerState
from powerposition.domain.positions.entities import Period, TradeRecord
from powerposition.domain.positions.errors import InvalidTimeZoneError, PersistenceError, TradeSourceError
from powerposition.domain.positions.ports import SnapshotWriter, TradeSource
from powerposition.infrastructure.positions.snapshot_writers import CsvSnapshotWriter
from powerposition.realtime.scheduler import PositionScheduler
from powerposition.shared.clock import CancellationToken, Clock
from tests.helpers import START, FakeToken, ScriptedTradeSource, make_trade


class SlowTradeSource(TradeSource):
    """Returns the same trades; call n advances the clock by costs[n]."""

    def __init__(self, clock, trades, costs):
        self._clock = clock
        self._trades = trades
        self._costs = list(costs)
        self.calls: list[datetime] = []

    def get_trades(self, trade_date: date) -> list[TradeRecord]:
        self.calls.append(self._clock.now())
        if self._costs:
            self._clock.advance(self._costs.pop(0))
        return self._trades


def make_scheduler(run_config, source, clock, token, writer=None, **kwargs):
    writer = writer or CsvSnapshotWriter(run_config.output_path)
    return PositionScheduler(run_config, source, writer, clock=clock, token=token, **kwargs)


# =====================================================================
# Single cycle
# =====================================================================

class TestRunCycle:
    """Tests for PositionScheduler.run_cycle."""

    def test_successful_cycle_writes_snapshot(self, run_config, clock, token, sample_trades):
        scheduler = make_scheduler(run_config, ScriptedTradeSource([sample_trades]), clock, token)

        result = scheduler.run_cycle(START)

        assert result.status == CycleStatus.COMPLETED
        assert result.succeeded
        assert result.phase == SchedulerState.PERSISTING
        assert result.target_date == date(2024, 6, 11)
        assert result.attempts == 1
        assert result.position_count == 24
        assert result.trade_count == 2
        assert result.error is None
        expected = run_config.output_path / "Position_20240611_202406101200.csv"
        assert result.snapshot_path == str(expected)
        assert expected.is_file()

    def test_defaults_to_now(self, run_config, clock, token, sample_trades):
        scheduler = make_scheduler(run_config, ScriptedTradeSource([sample_trades]), clock, token)

        result = scheduler.run_cycle()

        assert result.cycle_start == clock.now()

    def test_naive_cycle_start_rejected(self, run_config, clock, token, sample_trades):
        source = ScriptedTradeSource([sample_trades])
        scheduler = make_scheduler(run_config, source, clock, token)

        with pytest.raises(ValueError, match="timezone-aware"):
            scheduler.run_cycle(datetime(2024, 6, 10, 23, 30))

        assert source.calls == []
        assert scheduler.cycle_history == []

    def test_target_date_follows_utc_date_of_cycle_start(self, run_config, clock, token, sample_trades):
        source = ScriptedTradeSource([sample_trades])
        scheduler = make_scheduler(run_config, source, clock, token)
        # 01:30 at +02:00 is still the previous day in UTC
        cycle_start = datetime(2024, 6, 11, 1, 30, tzinfo=timezone(timedelta(hours=2)))

        result = scheduler.run_cycle(cycle_start)

        assert result.cycle_start == datetime(2024, 6, 10, 23, 30, tzinfo=timezone.utc)
        assert result.target_date == date(2024, 6, 11)
        assert source.calls[0][0] == date(2024, 6, 11)
        assert result.snapshot_path.endswith("Position_20240611_202406102330.csv")

    def test_fetch_timeout_fails_cycle(self, run_config, clock, token):
        source = ScriptedTradeSource([TradeSourceError("down")])
        scheduler = make_scheduler(run_config, source, clock, token)

        result = scheduler.run_cycle(START)

        assert result.status == CycleStatus.FAILED
        assert result.phase == SchedulerState.FETCHING
        assert result.attempts == 13
        assert "within the time limit" in result.error
        assert result.snapshot_path is None
        assert not run_config.output_path.exists()

    def test_aggregation_failure_fails_cycle(self, run_config, clock, token):
        bad = TradeRecord(date=date(2024, 6, 11), periods=(Period(period="x", volume=1.0),))
        scheduler = make_scheduler(run_config, ScriptedTradeSource([[bad]]), clock, token)

        result = scheduler.run_cycle(START)

        assert result.status == CycleStatus.FAILED
        assert result.phase == SchedulerState.AGGREGATING

    def test_writer_failure_fails_cycle(self, run_config, clock, token, sample_trades, caplog):
        writer = MagicMock(spec=SnapshotWriter)
        writer.extension = "csv"
        writer.write.side_effect = PersistenceError("x.csv", "disk full")
        scheduler = make_scheduler(run_config, ScriptedTradeSource([sample_trades]), clock, token, writer)

        with caplog.at_level(logging.ERROR):
            result = scheduler.run_cycle(START)

        assert result.status == CycleStatus.FAILED
        assert result.phase == SchedulerState.PERSISTING
        assert "disk full" in result.error
        assert any("failed while persisting" in r.getMessage() for r in caplog.records)
        assert scheduler.state == SchedulerState.IDLE

    def test_writer_receives_sorted_positions_and_name(self, run_config, clock, token, sample_trades):
        writer = MagicMock(spec=SnapshotWriter)
        writer.extension = "parquet"
        writer.write.return_value = run_config.output_path / "out.parquet"
        scheduler = make_scheduler(run_config, ScriptedTradeSource([sample_trades]), clock, token, writer)

        scheduler.run_cycle(START)

        positions, name = writer.write.call_args.args
        assert name == "Position_20240611_202406101200.parquet"
        assert [p.instant for p in positions] == sorted(p.instant for p in positions)

    def test_state_is_fetching_during_fetch(self, run_config, clock, token, sample_trades):
        seen = []
        scheduler = None

        class ObservingSource(TradeSource):
            def get_trades(self, trade_date):
                seen.append(scheduler.state)
                return sample_trades

        scheduler = make_scheduler(run_config, ObservingSource(), clock, token)

        scheduler.run_cycle(START)

        assert seen == [SchedulerState.FETCHING]
        assert scheduler.state == SchedulerState.IDLE

    def test_invalid_location_fails_at_construction(self, run_config, clock, token):
        config = replace(run_config, location="Nowhere/Special")

        with pytest.raises(InvalidTimeZoneError):
            make_scheduler(config, ScriptedTradeSource([[]]), clock, token)


# =====================================================================
# Control loop
# =====================================================================

class TestRunForever:
    """Tests for the fixed-interval control loop."""

    def test_failed_cycle_does_not_stop_the_loop(self, run_config, clock, sample_trades):
        config = replace(run_config, retry_limit=timedelta(0))
        token = FakeToken(clock, cancel_after_waits=2)
        source = ScriptedTradeSource([TradeSourceError("down"), sample_trades])
        scheduler = make_scheduler(config, source, clock, token)

        scheduler.run_forever()

        history = scheduler.cycle_history
        assert [r.status for r in history] == [CycleStatus.FAILED, CycleStatus.COMPLETED]
        assert [r.cycle_start for r in history] == [START, START + timedelta(minutes=5)]

    def test_cycles_start_on_the_interval_grid(self, run_config, clock, sample_trades):
        token = FakeToken(clock, cancel_after_waits=3)
        source = SlowTradeSource(clock, sample_trades, [timedelta(seconds=40)] * 3)
        scheduler = make_scheduler(run_config, source, clock, token)

        scheduler.run_forever()

        starts = [r.cycle_start for r in scheduler.cycle_history]
        assert starts == [START + timedelta(minutes=5 * i) for i in range(3)]
        assert token.waits[:2] == [timedelta(minutes=4, seconds=20)] * 2

    def test_overrun_starts_next_cycle_immediately(self, run_config, clock, sample_trades, caplog):
        token = FakeToken(clock, cancel_after_waits=2)
        costs = [timedelta(minutes=7), timedelta(0), timedelta(0)]
        source = SlowTradeSource(clock, sample_trades, costs)
        scheduler = make_scheduler(run_config, source, clock, token)

        with caplog.at_level(logging.WARNING):
            scheduler.run_forever()

        starts = [r.cycle_start for r in scheduler.cycle_history]
        # The second cycle keeps its grid slot even though it begins late
        assert starts == [START, START + timedelta(minutes=5), START + timedelta(minutes=10)]
        assert source.calls == [START, START + timedelta(minutes=7), START + timedelta(minutes=10)]
        assert token.waits == [timedelta(minutes=3), timedelta(minutes=5)]
        assert any("overran" in r.getMessage() for r in caplog.records)

    def test_cancel_during_retry_ends_loop(self, run_config, clock):
        token = FakeToken(clock, cancel_after_waits=1)
        source = ScriptedTradeSource([TradeSourceError("down")])
        scheduler = make_scheduler(run_config, source, clock, token)

        scheduler.run_forever()

        history = scheduler.cycle_history
        assert len(history) == 1
        assert history[0].status == CycleStatus.CANCELLED
        assert len(source.calls) == 1
        assert scheduler.next_cycle_start is None

    def test_cancelled_token_runs_no_cycle(self, run_config, clock, token, sample_trades):
        token.cancel()
        source = ScriptedTradeSource([sample_trades])
        scheduler = make_scheduler(run_config, source, clock, token)

        scheduler.run_forever()

        assert scheduler.cycle_history == []
        assert source.calls == []

    def test_each_cycle_writes_its_own_snapshot(self, run_config, clock, sample_trades):
        token = FakeToken(clock, cancel_after_waits=3)
        scheduler = make_scheduler(run_config, ScriptedTradeSource([sample_trades]), clock, token)

        scheduler.run_forever()

        names = sorted(p.name for p in run_config.output_path.iterdir())
        assert names == [
            "Position_20240611_202406101200.csv",
            "Position_20240611_202406101205.csv",
            "Position_20240611_202406101210.csv",
        ]


# =====================================================================
# History & status
# =====================================================================

class TestHistoryAndStatus:
    """Tests for cycle_history and get_status."""

    def test_history_is_bounded(self, run_config, clock, token, sample_trades):
        scheduler = make_scheduler(
            run_config, ScriptedTradeSource([sample_trades]), clock, token, history_size=3
        )

        for i in range(5):
            scheduler.run_cycle(START + timedelta(minutes=5 * i))

        starts = [r.cycle_start for r in scheduler.cycle_history]
        assert starts == [START + timedelta(minutes=5 * i) for i in (2, 3, 4)]

    def test_history_is_a_copy(self, run_config, clock, token, sample_trades):
        scheduler = make_scheduler(run_config, ScriptedTradeSource([sample_trades]), clock, token)
        scheduler.run_cycle(START)

        scheduler.cycle_history.clear()

        assert len(scheduler.cycle_history) == 1

    def test_status_when_idle(self, run_config, clock, token):
        scheduler = make_scheduler(run_config, ScriptedTradeSource([[]]), clock, token)

        status = scheduler.get_status()

        assert status["running"] is False
        assert status["state"] == "idle"
        assert status["interval_seconds"] == 300.0
        assert status["location"] == "Europe/London"
        assert status["output_path"] == str(run_config.output_path)
        assert status["next_cycle_start"] is None
        assert status["recent_cycles"] == []

    def test_status_lists_recent_cycles(self, run_config, clock, token, sample_trades):
        scheduler = make_scheduler(run_config, ScriptedTradeSource([sample_trades]), clock, token)
        for i in range(12):
            scheduler.run_cycle(START + timedelta(minutes=5 * i))

        recent = scheduler.get_status()["recent_cycles"]

        assert len(recent) == 10
        assert recent[-1]["cycle_start"] == (START + timedelta(minutes=55)).isoformat()
        assert recent[-1]["status"] == "completed"
        assert recent[-1]["target_date"] == "2024-06-11"
        assert recent[-1]["position_count"] == 24


# =====================================================================
# Background thread
# =====================================================================

class TestLifecycle:
    """Tests for start/stop on a real clock."""

    def test_start_and_stop(self, run_config):
        trades = [make_trade(date(2024, 6, 11), [1.0])]
        scheduler = PositionScheduler(
            replace(run_config, location="UTC"),
            ScriptedTradeSource([trades]),
            CsvSnapshotWriter(run_config.output_path),
            clock=Clock(),
            token=CancellationToken(),
        )

        scheduler.start()
        deadline = time.monotonic() + 5.0
        while not scheduler.cycle_history and time.monotonic() < deadline:
            time.sleep(0.01)
        assert scheduler.is_running

        scheduler.stop(timeout=5.0)

        assert not scheduler.is_running
        assert scheduler.token.is_cancelled
        assert len(scheduler.cycle_history) == 1
        assert scheduler.cycle_history[0].succeeded

    def test_stopped_scheduler_does_not_restart(self, run_config):
        scheduler = PositionScheduler(
            run_config, ScriptedTradeSource([[]]), CsvSnapshotWriter(run_config.output_path)
        )
        scheduler.stop()

        scheduler.start()

        assert not scheduler.is_running
