"""
Use case: fetch day-ahead trades with a bounded retry budget.

Wraps a TradeSource. Failures are retried after a fixed delay while the
next attempt still starts inside ``cycle_start + retry_limit``. The
outcome is returned as a value, never raised.
"""

import logging
from datetime import date, datetime, timedelta
from typing import Optional

from powerposition.application.positions.dtos import FetchOutcome
from powerposition.domain.positions.errors import CycleCancelledError, FetchTimeoutError
from powerposition.domain.positions.ports import TradeSource
from powerposition.shared.clock import CancellationToken, Clock

logger = logging.getLogger(__name__)


class RetryingFetcher:
    """Application service fetching trades within a time budget.

    The first attempt is always made. When every attempt fails instantly,
    ``floor(retry_limit / retry_delay) + 1`` attempts are made in total.
    """

    def __init__(
        self,
        source: TradeSource,
        retry_limit: timedelta,
        retry_delay: timedelta,
        clock: Optional[Clock] = None,
        token: Optional[CancellationToken] = None,
    ) -> None:
        if retry_delay <= timedelta(0):
            raise ValueError("retry_delay must be positive")
        if retry_limit < timedelta(0):
            raise ValueError("retry_limit must not be negative")

        self._source = source
        self._retry_limit = retry_limit
        self._retry_delay = retry_delay
        self._clock = clock or Clock()
        self._token = token or CancellationToken()

    def fetch(self, target_date: date, cycle_start: datetime) -> FetchOutcome:
        """Fetch trades for ``target_date``.

        Args:
            target_date: Trading date to request.
            cycle_start: Nominal cycle start; the budget is counted from here.

        Returns:
            FetchOutcome with the trades, or with FetchTimeoutError /
            CycleCancelledError.
        """
        deadline = cycle_start + self._retry_limit
        delay_ms = int(self._retry_delay.total_seconds() * 1000)
        attempts = 0

        while True:
            if self._token.is_cancelled:
                return FetchOutcome(target_date, attempts, error=CycleCancelledError(target_date))

            attempts += 1
            try:
                trades = self._source.get_trades(target_date)
            except Exception:
                if self._clock.now() + self._retry_delay > deadline:
                    logger.warning(
                        "get_trades for %s (attempt %d) failed. Retry budget exhausted.",
                        target_date, attempts, exc_info=True,
                    )
                    return FetchOutcome(
                        target_date,
                        attempts,
                        error=FetchTimeoutError(target_date, cycle_start, attempts),
                    )

                logger.warning(
                    "get_trades for %s (attempt %d) failed. Retrying in %d ms...",
                    target_date, attempts, delay_ms, exc_info=True,
                )
                if self._token.wait(self._retry_delay):
                    logger.info("Fetch for %s cancelled during retry delay.", target_date)
                    return FetchOutcome(target_date, attempts, error=CycleCancelledError(target_date))
                continue

            logger.debug("Fetched %d trade(s) for %s in %d attempt(s).", len(trades), target_date, attempts)
            return FetchOutcome(target_date, attempts, trades=list(trades))
