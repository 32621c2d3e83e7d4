"""
Power position bounded context: domain layer.

- Trade, period and position entities
- Hourly aggregation in a configured time zone
- Snapshot naming
- Ports for the trade source and the snapshot sink
"""
