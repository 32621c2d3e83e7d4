"""
Test doubles shared by the power position tests.

Time is simulated: FakeClock only moves when FakeToken.wait is called, so
retry and scheduling behaviour can be asserted without sleeping.
"""

from datetime import date, datetime, timedelta, timezone
from typing import Optional

from powerposition.domain.positions.entities import Period, TradeRecord
from powerposition.domain.positions.ports import TradeSource
from powerposition.shared.clock import CancellationToken, Clock

START = datetime(2024, 6, 10, 12, 0, tzinfo=timezone.utc)


class FakeClock(Clock):
    """Manually advanced UTC clock."""

    def __init__(self, start: datetime = START) -> None:
        self.current = start

    def now(self) -> datetime:
        return self.current

    def advance(self, delta: timedelta) -> None:
        self.current += delta


class FakeToken(CancellationToken):
    """Cancellation token whose waits advance a FakeClock instead of sleeping.

    Args:
        clock: Clock advanced by every wait.
        cancel_after_waits: Cancel during the n-th wait (1-based), if set.
    """

    def __init__(self, clock: FakeClock, cancel_after_waits: Optional[int] = None) -> None:
        super().__init__()
        self.clock = clock
        self.cancel_after_waits = cancel_after_waits
        self.waits: list[timedelta] = []

    def wait(self, timeout: timedelta) -> bool:
        if self.is_cancelled:
            return True
        self.waits.append(timeout)
        if self.cancel_after_waits is not None and len(self.waits) >= self.cancel_after_waits:
            self.cancel()
            return True
        self.clock.advance(timeout)
        return False


class ScriptedTradeSource(TradeSource):
    """Trade source replaying a script of results.

    Each entry is either an exception instance (raised) or a list of
    trades (returned). The last entry repeats once the script runs out.
    Every call is stamped with the clock time it was made at.
    """

    def __init__(self, script: list, clock: Optional[FakeClock] = None, cost: timedelta = timedelta(0)) -> None:
        self._script = list(script)
        self._clock = clock
        self._cost = cost
        self.calls: list[tuple[date, Optional[datetime]]] = []

    def get_trades(self, trade_date: date) -> list[TradeRecord]:
        self.calls.append((trade_date, self._clock.now() if self._clock else None))
        if self._clock is not None:
            self._clock.advance(self._cost)

        entry = self._script.pop(0) if len(self._script) > 1 else self._script[0]
        if isinstance(entry, Exception):
            raise entry
        return entry


def make_trade(trade_date: date, volumes: list[float], trade_id: Optional[str] = None) -> TradeRecord:
    """Build a trade whose period i+1 carries volumes[i]."""
    return TradeRecord(
        date=trade_date,
        periods=tuple(Period(period=i + 1, volume=v) for i, v in enumerate(volumes)),
        trade_id=trade_id,
    )

