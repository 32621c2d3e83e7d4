"""
Dependency wiring for the power position service.

Builds infrastructure adapters from settings and injects them into the
scheduler via its constructor. This is the composition root shared by
the CLI and the status API.
"""

from typing import Optional

from powerposition.core.config import Settings
from powerposition.domain.positions.ports import SnapshotWriter, TradeSource
from powerposition.infrastructure.positions.csv_trade_source import CsvTradeSource
from powerposition.infrastructure.positions.simulated_trade_source import (
    SimulatedTradeSource,
)
from powerposition.infrastructure.positions.snapshot_writers import (
    CsvSnapshotWriter,
    ParquetSnapshotWriter,
)
from powerposition.realtime.scheduler import PositionScheduler
from powerposition.shared.clock import CancellationToken, Clock


def build_trade_source(settings: Settings) -> TradeSource:
    """Build the configured TradeSource adapter."""
    if settings.trade_source == "csv":
        return CsvTradeSource(settings.trade_source_path)
    return SimulatedTradeSource(
        trade_count=settings.simulated_trade_count,
        periods=settings.simulated_periods,
        failure_rate=settings.simulated_failure_rate,
        seed=settings.simulated_seed,
    )


def build_snapshot_writer(settings: Settings) -> SnapshotWriter:
    """Build the configured SnapshotWriter adapter."""
    if settings.snapshot_format == "parquet":
        return ParquetSnapshotWriter(settings.output_path)
    return CsvSnapshotWriter(settings.output_path, volume_decimals=settings.volume_decimals)


def build_scheduler(
    settings: Settings,
    clock: Optional[Clock] = None,
    token: Optional[CancellationToken] = None,
) -> PositionScheduler:
    """Build a PositionScheduler with its infrastructure dependencies.

    Raises:
        InvalidTimeZoneError: ``settings.location`` cannot be resolved.
    """
    return PositionScheduler(
        config=settings.to_run_configuration(),
        source=build_trade_source(settings),
        writer=build_snapshot_writer(settings),
        clock=clock,
        token=token,
        history_size=settings.history_size,
    )
