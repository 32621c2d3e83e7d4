"""
Adapter: Simulated trading system.

Implements TradeSource port.
Stands in for the trading system client in development and demos:
returns random trades for the requested date and fails randomly, so the
retry path gets exercised the way it does in production.
"""

import logging
from datetime import date
from typing import Optional

import numpy as np

from powerposition.domain.positions.entities import Period, TradeRecord
from powerposition.domain.positions.errors import TradeSourceError
from powerposition.domain.positions.ports import TradeSource

logger = logging.getLogger(__name__)


class SimulatedTradeSource(TradeSource):
    """Random trade generator with injectable failure rate."""

    def __init__(
        self,
        trade_count: int = 2,
        periods: int = 24,
        failure_rate: float = 0.1,
        max_volume: float = 500.0,
        seed: Optional[int] = None,
    ) -> None:
        """
        Args:
            trade_count: Trades returned per call.
            periods: Periods per trade.
            failure_rate: Probability in [0, 1] that a call raises.
            max_volume: Volumes are drawn uniformly from [-max_volume, max_volume].
            seed: Seed for reproducible output.
        """
        if not 0.0 <= failure_rate <= 1.0:
            raise ValueError(f"failure_rate must be within [0, 1], got {failure_rate}")

        self._trade_count = trade_count
        self._periods = periods
        self._failure_rate = failure_rate
        self._max_volume = max_volume
        self._rng = np.random.default_rng(seed)

    def get_trades(self, trade_date: date) -> list[TradeRecord]:
        """Return ``trade_count`` random trades dated ``trade_date``.

        Raises:
            TradeSourceError: Randomly, with probability ``failure_rate``.
        """
        if self._rng.random() < self._failure_rate:
            raise TradeSourceError(f"Simulated trading system failure for {trade_date.isoformat()}.")

        trades: list[TradeRecord] = []
        for index in range(self._trade_count):
            volumes = self._rng.uniform(-self._max_volume, self._max_volume, size=self._periods).round(2)
            trades.append(
                TradeRecord(
                    date=trade_date,
                    periods=tuple(
                        Period(period=p, volume=float(v))
                        for p, v in enumerate(volumes, start=1)
                    ),
                    trade_id=f"SIM-{trade_date:%Y%m%d}-{index + 1:03d}",
                )
            )

        logger.debug("Simulated %d trade(s) for %s.", len(trades), trade_date)
        return trades
