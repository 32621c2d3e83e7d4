"""
Real-time position pipeline.

Provides:
- **PositionScheduler**: fixed-interval fetch → aggregate → persist loop
  with cancellable waits and an in-memory cycle history.
"""

from powerposition.realtime.scheduler import PositionScheduler

__all__ = ["PositionScheduler"]
