"""
Domain-specific errors for the power position context.

All errors raised from the domain and application layers are defined here.
Per-cycle errors are absorbed by the scheduler; configuration errors
abort the process before the loop starts.
No framework imports allowed.
"""

from datetime import date, datetime


class PowerPositionError(Exception):
    """Base error for all power position errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(self.message)


class ConfigurationError(PowerPositionError):
    """Raised when settings are missing or invalid at startup."""


class InvalidTimeZoneError(ConfigurationError):
    """Raised when the configured time zone identifier cannot be resolved."""

    def __init__(self, location: str) -> None:
        super().__init__(f"Unknown time zone: {location!r}")
        self.location = location


class TradeSourceError(PowerPositionError):
    """Raised by a trade source when trades cannot be retrieved right now."""


class FetchTimeoutError(PowerPositionError):
    """Raised when no fetch attempt succeeded within the retry budget."""

    def __init__(self, target_date: date, cycle_start: datetime, attempts: int) -> None:
        super().__init__(
            f"Failed to get trades for {target_date.isoformat()} "
            f"(cycle {cycle_start:%Y-%m-%dT%H:%M:%SZ}) within the time limit "
            f"after {attempts} attempt(s)."
        )
        self.target_date = target_date
        self.cycle_start = cycle_start
        self.attempts = attempts


class CycleCancelledError(PowerPositionError):
    """Raised when cancellation is observed in the middle of a cycle."""

    def __init__(self, target_date: date) -> None:
        super().__init__(f"Cycle for {target_date.isoformat()} cancelled.")
        self.target_date = target_date


class PersistenceError(PowerPositionError):
    """Raised when a snapshot cannot be written."""

    def __init__(self, name: str, reason: str) -> None:
        super().__init__(f"Failed to write snapshot {name}: {reason}")
        self.name = name
        self.reason = reason
