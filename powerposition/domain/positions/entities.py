"""
Domain entities for the power position context.

Entities represent core business objects.
They contain no framework imports and no IO operations.
"""

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional


@dataclass(frozen=True)
class Period:
    """Net volume traded for one sub-day period.

    ``period`` is 1-based and counts hours from local midnight of the
    trade date. It carries no time zone of its own.
    """

    period: int
    volume: float


@dataclass(frozen=True)
class TradeRecord:
    """A day-ahead power trade as returned by the trading system.

    ``date`` is a naive local calendar date; it only becomes an instant
    once interpreted in the configured time zone.
    """

    date: date
    periods: tuple[Period, ...]
    trade_id: Optional[str] = None


@dataclass(frozen=True)
class Position:
    """Aggregated net volume for the UTC hour starting at ``instant``."""

    instant: datetime
    volume: float
