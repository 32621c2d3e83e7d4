"""
Application configuration.

Loads settings from environment variables (``POWERPOSITION_*``), an
optional .env file, a JSON settings file and explicit overrides (CLI flags).
Explicit values win over the environment.

The five run options (interval, retry limit, retry delay, location,
output path) have no defaults: the process must not start without them.
Everything else is deployment tuning and defaults sensibly.
"""

import json
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path
from typing import Any, Literal, Optional

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from powerposition.domain.positions.errors import ConfigurationError


@dataclass(frozen=True)
class RunConfiguration:
    """Immutable run options handed to the scheduler at startup.

    Attributes:
        interval: Time between the starts of two consecutive cycles.
        retry_limit: Time budget for fetching trades, counted from the cycle start.
        retry_delay: Pause between two fetch attempts.
        location: Time zone identifier used to resolve trade dates.
        output_path: Directory receiving the snapshot files.
    """

    interval: timedelta
    retry_limit: timedelta
    retry_delay: timedelta
    location: str
    output_path: Path


class Settings(BaseSettings):
    """Process settings loaded from environment.

    Attributes:
        interval_seconds: Seconds between cycle starts.
        retry_limit_seconds: Fetch retry budget in seconds.
        retry_delay_ms: Delay between fetch attempts in milliseconds.
        location: IANA time zone of the trading day (e.g. Europe/Berlin).
        output_path: Snapshot destination directory.
        snapshot_format: ``csv`` or ``parquet``.
        volume_decimals: Fixed-point precision of CSV volumes.
        trade_source: ``simulated`` or ``csv``.
        trade_source_path: Drop directory read by the CSV trade source.
        history_size: Number of cycle results kept for the status API.
    """

    model_config = SettingsConfigDict(
        env_prefix="POWERPOSITION_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    project_name: str = "PowerPosition"
    version: str = "0.1.0"
    log_level: str = "INFO"

    # Run options (required)
    interval_seconds: int = Field(..., gt=0)
    retry_limit_seconds: int = Field(..., ge=0)
    retry_delay_ms: int = Field(..., gt=0)
    location: str
    output_path: Path

    # Snapshot output
    snapshot_format: Literal["csv", "parquet"] = "csv"
    volume_decimals: int = Field(default=2, ge=0, le=10)

    # Trade source
    trade_source: Literal["simulated", "csv"] = "simulated"
    trade_source_path: Path = Path("data/trades")
    simulated_failure_rate: float = Field(default=0.1, ge=0.0, le=1.0)
    simulated_trade_count: int = Field(default=2, ge=1)
    simulated_periods: int = Field(default=24, ge=1)
    simulated_seed: Optional[int] = None

    # Status API
    history_size: int = Field(default=200, ge=1)
    api_host: str = "127.0.0.1"
    api_port: int = Field(default=8000, ge=1, le=65535)

    @field_validator("location")
    @classmethod
    def _location_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("location must not be blank")
        return value

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        return value.strip().upper()

    def to_run_configuration(self) -> RunConfiguration:
        """Build the immutable run options from these settings."""
        return RunConfiguration(
            interval=timedelta(seconds=self.interval_seconds),
            retry_limit=timedelta(seconds=self.retry_limit_seconds),
            retry_delay=timedelta(milliseconds=self.retry_delay_ms),
            location=self.location,
            output_path=self.output_path,
        )


def load_settings(config_file: str | Path | None = None, **overrides: Any) -> Settings:
    """Load settings from the environment, a JSON file and explicit overrides.

    Args:
        config_file: Optional JSON file whose keys are Settings field names.
        **overrides: Explicit values (e.g. from CLI flags). ``None`` values
            are ignored so unset flags do not mask the environment.

    Returns:
        Validated Settings.

    Raises:
        ConfigurationError: The file is unreadable or a value is missing/invalid.
    """
    values: dict[str, Any] = {}
    if config_file is not None:
        values.update(_load_json(Path(config_file)))
    values.update({k: v for k, v in overrides.items() if v is not None})

    try:
        return Settings(**values)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid configuration: {exc}") from exc


def _load_json(path: Path) -> dict[str, Any]:
    """Read a flat JSON settings file."""
    if not path.is_file():
        raise ConfigurationError(f"Config file not found: {path}")

    try:
        with path.open("r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"Invalid JSON in {path}: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigurationError("Config root must be a JSON object.")
    return data
