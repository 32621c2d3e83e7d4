"""
Domain service: hourly position aggregation.

Pure business logic turning day-ahead trades into UTC hourly net
positions. No framework imports. No IO. No side effects.

Each trade date is read as a local calendar date in the configured time
zone and resolved once to the UTC instant of its local midnight, using
that date's DST rules. Period ``p`` then lands on ``midnight + (p - 1) h``.
The offset is plain hour arithmetic on the resolved instant: no further
DST correction happens within the day, so a 23- or 25-period trade on a
transition day keeps consecutive UTC hours.
"""

from datetime import date, datetime, time, timedelta, timezone
from typing import Iterable
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from powerposition.domain.positions.entities import Position, TradeRecord
from powerposition.domain.positions.errors import InvalidTimeZoneError


def resolve_zone(location: str) -> ZoneInfo:
    """Resolve a time zone identifier.

    Raises:
        InvalidTimeZoneError: The identifier is unknown or malformed.
    """
    try:
        return ZoneInfo(location)
    except (ZoneInfoNotFoundError, ValueError, TypeError, OSError) as exc:
        raise InvalidTimeZoneError(location) from exc


def local_midnight_utc(trade_date: date, zone: ZoneInfo) -> datetime:
    """Return the UTC instant of local midnight of ``trade_date`` in ``zone``.

    When midnight is repeated (clocks set back over it) the standard-time
    reading is used. When midnight is skipped (clocks set forward over it)
    the transition instant, i.e. the first existing instant of the day, is
    used. In both cases that is the later of the two fold readings.
    """
    candidates = (
        datetime.combine(trade_date, time.min, tzinfo=zone)
        .replace(fold=fold)
        .astimezone(timezone.utc)
        for fold in (0, 1)
    )
    return max(candidates)


class PositionAggregator:
    """Aggregates trades into hourly net positions for one time zone.

    The zone is resolved at construction so a bad identifier fails at
    startup rather than on every cycle.
    """

    def __init__(self, location: str) -> None:
        """
        Args:
            location: IANA time zone identifier (e.g. ``Europe/Berlin``).

        Raises:
            InvalidTimeZoneError: ``location`` cannot be resolved.
        """
        self._location = location
        self._zone = resolve_zone(location)

    @property
    def location(self) -> str:
        return self._location

    def aggregate(self, trades: Iterable[TradeRecord]) -> list[Position]:
        """Sum period volumes per UTC hour.

        Period counts are not validated; periods are indexed as given.

        Args:
            trades: Trades of one cycle, in any order.

        Returns:
            One Position per distinct instant, ascending by instant.
        """
        midnights: dict[date, datetime] = {}
        totals: dict[datetime, float] = {}

        for trade in trades:
            midnight = midnights.get(trade.date)
            if midnight is None:
                midnight = local_midnight_utc(trade.date, self._zone)
                midnights[trade.date] = midnight

            for period in trade.periods:
                instant = midnight + timedelta(hours=period.period - 1)
                totals[instant] = totals.get(instant, 0.0) + period.volume

        return [
            Position(instant=instant, volume=volume)
            for instant, volume in sorted(totals.items())
        ]
