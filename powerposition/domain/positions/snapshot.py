"""
Snapshot naming rules.

A snapshot name depends only on the trading date and the nominal start
of the cycle that produced it, so re-running a cycle yields the same name.
"""

from datetime import date, datetime, timezone

SNAPSHOT_PREFIX = "Position"


def snapshot_name(target_date: date, cycle_start: datetime, extension: str) -> str:
    """Build ``Position_<yyyyMMdd>_<yyyyMMddHHmm>.<ext>``.

    Args:
        target_date: Trading date the positions belong to.
        cycle_start: Nominal cycle start; rendered in UTC.
        extension: File extension without the leading dot.
    """
    if cycle_start.tzinfo is not None:
        cycle_start = cycle_start.astimezone(timezone.utc)
    return (
        f"{SNAPSHOT_PREFIX}_{target_date:%Y%m%d}_{cycle_start:%Y%m%d%H%M}"
        f".{extension.lstrip('.')}"
    )
