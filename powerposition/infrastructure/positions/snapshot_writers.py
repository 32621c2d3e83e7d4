"""
Adapters: Snapshot writers.

Implement the SnapshotWriter port.
Each cycle's positions are written as one file below the output root:

- CSV: header ``Datetime;Volume``, one row per position, instants as
  ISO-8601 UTC with second precision, volumes as fixed-point decimals.
- Parquet: a UTC timestamp column ``Datetime`` and a float column
  ``Volume``, for downstream analytics.
"""

import logging
from datetime import timezone
from pathlib import Path
from typing import Sequence

import pandas as pd

from powerposition.domain.positions.entities import Position
from powerposition.domain.positions.errors import PersistenceError
from powerposition.domain.positions.ports import SnapshotWriter

logger = logging.getLogger(__name__)

COLUMNS = ["Datetime", "Volume"]
INSTANT_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


def format_instant(position: Position) -> str:
    return position.instant.astimezone(timezone.utc).strftime(INSTANT_FORMAT)


class CsvSnapshotWriter(SnapshotWriter):
    """Writes semicolon-separated snapshot files."""

    extension = "csv"

    def __init__(self, root: str | Path, volume_decimals: int = 2) -> None:
        self._root = Path(root)
        self._decimals = volume_decimals
        self._float_format = f"%.{volume_decimals}f"

    @property
    def root(self) -> Path:
        return self._root

    def _rounded(self, volume: float) -> float:
        # Adding 0.0 turns -0.0 into 0.0 so tiny negative sums do not print as "-0.00"
        return round(float(volume), self._decimals) + 0.0

    def write(self, positions: Sequence[Position], name: str) -> Path:
        path = self._root / name
        frame = pd.DataFrame(
            [(format_instant(p), self._rounded(p.volume)) for p in positions],
            columns=COLUMNS,
        )

        try:
            self._root.mkdir(parents=True, exist_ok=True)
            frame.to_csv(
                path,
                sep=";",
                index=False,
                float_format=self._float_format,
                lineterminator="\n",
            )
        except OSError as exc:
            raise PersistenceError(name, str(exc)) from exc

        logger.info("Positions saved to %s (%d rows).", path, len(frame))
        return path


class ParquetSnapshotWriter(SnapshotWriter):
    """Writes snapshot files as Parquet (pyarrow engine)."""

    extension = "parquet"

    def __init__(self, root: str | Path) -> None:
        self._root = Path(root)

    @property
    def root(self) -> Path:
        return self._root

    def write(self, positions: Sequence[Position], name: str) -> Path:
        path = self._root / name
        frame = pd.DataFrame(
            {
                "Datetime": pd.to_datetime([p.instant for p in positions], utc=True),
                "Volume": pd.Series([float(p.volume) for p in positions], dtype="float64"),
            }
        )

        try:
            self._root.mkdir(parents=True, exist_ok=True)
            frame.to_parquet(path, index=False, engine="pyarrow")
        except (OSError, ValueError) as exc:
            raise PersistenceError(name, str(exc)) from exc

        logger.info("Positions saved to %s (%d rows).", path, len(frame))
        return path
