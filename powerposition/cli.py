"""
CLI entry point for the power position service.

Usage:
    # Run the scheduler loop in the foreground (Ctrl+C / SIGTERM to stop)
    powerposition run --location Europe/Berlin --output ./snapshots \
        --interval 300 --retry-limit 120 --retry-delay 5000

    # Run a single cycle starting now and exit
    powerposition run-once --config settings.json

    # Run the loop in the background and serve the status API
    powerposition serve --config settings.json --port 8000

Every option can also come from ``POWERPOSITION_*`` environment variables
or a .env file; flags win over both.
"""

import argparse
import logging
import signal
from typing import Optional, Sequence

from powerposition.core.config import Settings, load_settings
from powerposition.dependencies import build_scheduler
from powerposition.domain.positions.errors import ConfigurationError
from powerposition.realtime.scheduler import PositionScheduler
from powerposition.shared.clock import CancellationToken
from powerposition.shared.logging import configure_logging

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_CYCLE_FAILED = 1
EXIT_CONFIG_ERROR = 2


def _bootstrap(args: argparse.Namespace) -> tuple[Settings, PositionScheduler]:
    """Load settings, configure logging and build the scheduler.

    Raises:
        ConfigurationError: Settings are missing/invalid or the zone is unknown.
    """
    settings = load_settings(
        args.config,
        interval_seconds=args.interval,
        retry_limit_seconds=args.retry_limit,
        retry_delay_ms=args.retry_delay,
        location=args.location,
        output_path=args.output,
        snapshot_format=args.format,
        trade_source=args.source,
        log_level=args.log_level,
    )
    configure_logging(level=settings.log_level)
    return settings, build_scheduler(settings)


def _install_signal_handlers(token: CancellationToken) -> None:
    """Cancel the token on SIGINT / SIGTERM."""

    def _handle(signum: int, _frame) -> None:
        logger.info("Received %s. Stopping after the current cycle...", signal.Signals(signum).name)
        token.cancel()

    signal.signal(signal.SIGINT, _handle)
    signal.signal(signal.SIGTERM, _handle)


def cmd_run(args: argparse.Namespace) -> int:
    """Run the scheduler loop in the foreground until signalled."""
    _settings, scheduler = _bootstrap(args)
    _install_signal_handlers(scheduler.token)
    logger.info("Scheduler running. Press Ctrl+C to stop.")
    scheduler.run_forever()
    return EXIT_OK


def cmd_run_once(args: argparse.Namespace) -> int:
    """Run a single cycle starting now."""
    _settings, scheduler = _bootstrap(args)
    _install_signal_handlers(scheduler.token)
    result = scheduler.run_cycle()

    logger.info(
        "Cycle for %s %s (%d attempt(s), %d position(s), %.1fs)",
        result.target_date, result.status.value, result.attempts,
        result.position_count, result.duration_seconds,
    )
    if result.error:
        logger.error("Error: %s", result.error)
        return EXIT_CYCLE_FAILED
    return EXIT_OK


def cmd_serve(args: argparse.Namespace) -> int:
    """Run the scheduler in the background and serve the status API."""
    import uvicorn

    from powerposition.main import create_app

    settings, scheduler = _bootstrap(args)
    app = create_app(scheduler, settings)
    port = args.port or settings.api_port
    logger.info("Starting status API at http://%s:%d", settings.api_host, port)
    uvicorn.run(app, host=settings.api_host, port=port, log_level=settings.log_level.lower())
    return EXIT_OK


def _add_common_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--config", default=None, help="JSON settings file")
    parser.add_argument("--interval", type=int, default=None, help="Seconds between cycle starts")
    parser.add_argument(
        "--retry-limit", type=int, default=None, dest="retry_limit",
        help="Fetch retry budget in seconds, counted from the cycle start",
    )
    parser.add_argument(
        "--retry-delay", type=int, default=None, dest="retry_delay",
        help="Delay between fetch attempts in milliseconds",
    )
    parser.add_argument("--location", default=None, help="Time zone of the trading day (IANA)")
    parser.add_argument("--output", default=None, help="Snapshot output directory")
    parser.add_argument(
        "--format", default=None, choices=["csv", "parquet"], help="Snapshot file format",
    )
    parser.add_argument(
        "--source", default=None, choices=["simulated", "csv"], help="Trade source adapter",
    )
    parser.add_argument("--log-level", default=None, dest="log_level", help="Logging level")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="powerposition",
        description="Day-ahead power position snapshot service",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="Run the scheduler loop")
    _add_common_options(run_parser)
    run_parser.set_defaults(func=cmd_run)

    once_parser = subparsers.add_parser("run-once", help="Run a single cycle and exit")
    _add_common_options(once_parser)
    once_parser.set_defaults(func=cmd_run_once)

    serve_parser = subparsers.add_parser("serve", help="Run the loop and the status API")
    _add_common_options(serve_parser)
    serve_parser.add_argument("--port", type=int, default=None, help="Status API port")
    serve_parser.set_defaults(func=cmd_serve)

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    configure_logging()
    args = build_parser().parse_args(argv)
    try:
        return args.func(args)
    except ConfigurationError as exc:
        logger.error("Startup aborted: %s", exc)
        return EXIT_CONFIG_ERROR


if __name__ == "__main__":
    raise SystemExit(main())
