"""
Adapter: CSV trade drop directory.

Implements TradeSource port.
Reads ``trades_<yyyyMMdd>.csv`` files (semicolon separated, columns
``trade_id;period;volume``) exported by an upstream system into a
drop directory. A file that has not landed yet is a transient failure.
"""

import logging
from datetime import date
from pathlib import Path

import pandas as pd

from powerposition.domain.positions.entities import Period, TradeRecord
from powerposition.domain.positions.errors import TradeSourceError
from powerposition.domain.positions.ports import TradeSource

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ("trade_id", "period", "volume")


def trade_file_name(trade_date: date) -> str:
    return f"trades_{trade_date:%Y%m%d}.csv"


class CsvTradeSource(TradeSource):
    """Reads one CSV file per trading date from a directory."""

    def __init__(self, root: str | Path) -> None:
        self._root = Path(root)

    def get_trades(self, trade_date: date) -> list[TradeRecord]:
        """Return the trades stored in the file for ``trade_date``.

        Raises:
            TradeSourceError: The file is missing, unreadable, lacks a column
                or has a row with a blank value.
        """
        path = self._root / trade_file_name(trade_date)
        if not path.is_file():
            raise TradeSourceError(f"No trade file for {trade_date.isoformat()}: {path}")

        try:
            df = pd.read_csv(path, sep=";", dtype={"trade_id": str})
        except (OSError, ValueError) as exc:
            raise TradeSourceError(f"Could not read trade file {path}: {exc}") from exc

        # Strip whitespace from column names (exports often have trailing spaces)
        df.columns = df.columns.str.strip()
        missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
        if missing:
            raise TradeSourceError(f"Trade file {path.name} is missing columns: {missing}")

        # A row without a trade_id would be dropped by groupby and its volume lost
        incomplete = df[list(REQUIRED_COLUMNS)].isna().any(axis=1)
        if incomplete.any():
            rows = [int(i) + 2 for i in df.index[incomplete]]
            raise TradeSourceError(f"Trade file {path.name} has blank values on line(s) {rows}")

        trades: list[TradeRecord] = []
        for trade_id, group in df.groupby("trade_id", sort=True):
            group = group.sort_values("period")
            trades.append(
                TradeRecord(
                    date=trade_date,
                    periods=tuple(
                        Period(period=int(p), volume=float(v))
                        for p, v in zip(group["period"], group["volume"])
                    ),
                    trade_id=str(trade_id),
                )
            )

        logger.info("Read %d trade(s) from %s", len(trades), path.name)
        return trades
