"""
Shared fixtures for the power position tests.
"""

from datetime import date, timedelta
from pathlib import Path

import pytest

from powerposition.core.config import RunConfiguration
from powerposition.domain.positions.entities import TradeRecord
from tests.helpers import FakeClock, FakeToken, make_trade


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def token(clock: FakeClock) -> FakeToken:
    return FakeToken(clock)


@pytest.fixture
def sample_trades() -> list[TradeRecord]:
    """Two complementary 24-period trades for 2024-06-11: every hour nets 2500."""
    trade_date = date(2024, 6, 11)
    return [
        make_trade(trade_date, [100.0 * (i + 1) for i in range(24)], "A"),
        make_trade(trade_date, [100.0 * (24 - i) for i in range(24)], "B"),
    ]


@pytest.fixture
def run_config(tmp_path: Path) -> RunConfiguration:
    return RunConfiguration(
        interval=timedelta(minutes=5),
        retry_limit=timedelta(seconds=60),
        retry_delay=timedelta(seconds=5),
        location="Europe/London",
        output_path=tmp_path / "snapshots",
    )
