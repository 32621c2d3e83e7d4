"""
Port interfaces (ABCs) for the power position context.

Ports define the contracts that the domain requires from the outside world.
Infrastructure adapters implement these interfaces.
The domain layer never depends on concrete implementations.
"""

from abc import ABC, abstractmethod
from datetime import date
from pathlib import Path
from typing import Sequence

from powerposition.domain.positions.entities import Position, TradeRecord


class TradeSource(ABC):
    """Port for retrieving day-ahead power trades."""

    @abstractmethod
    def get_trades(self, trade_date: date) -> list[TradeRecord]:
        """Return all trades for the given trading date.

        Any exception raised here is treated as transient by the caller.
        """
        raise NotImplementedError


class SnapshotWriter(ABC):
    """Port for persisting the positions of one cycle.

    Implementations write below a destination root given at construction
    and create it when absent.
    """

    extension: str = "csv"

    @abstractmethod
    def write(self, positions: Sequence[Position], name: str) -> Path:
        """Persist positions (already sorted by instant) under ``name``.

        Args:
            positions: Rows to write, ascending by instant.
            name: Full snapshot file name, extension included.

        Returns:
            Path of the written snapshot.

        Raises:
            PersistenceError: The sink rejected the write.
        """
        raise NotImplementedError
