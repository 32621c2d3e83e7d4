"""
PowerPosition: day-ahead power position snapshots.

Periodically fetches the day-ahead power trades, aggregates them into
hourly net positions in the trading time zone and writes each run as a
timestamped snapshot file.

Layers:
    - domain: Entities, the aggregation service, ports (ABCs), errors.
    - application: Bounded-retry fetch, DTOs.
    - infrastructure: Trade sources and snapshot writers implementing the ports.
    - realtime: The scheduler control loop.
    - interfaces: FastAPI status routers, Pydantic schemas.
    - core / shared: Settings, logging, clock and cancellation.

Quick start (CLI)
-----------------
    powerposition run --location Europe/Berlin --output ./snapshots \
        --interval 300 --retry-limit 120 --retry-delay 5000
    powerposition run-once --config settings.json
    powerposition serve --config settings.json
"""

__version__ = "0.1.0"
