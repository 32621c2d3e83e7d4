"""
Shared module package.

Contains cross-cutting concerns:
- Logging configuration
- Clock and cancellation
"""
