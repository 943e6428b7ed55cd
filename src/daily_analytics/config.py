"""
Configuration for the analytics collector.
"""
import logging
import os
from dataclasses import dataclass, field
from datetime import time, tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

logger = logging.getLogger(__name__)


class ConfigError(ValueError):
    """Raised when a configuration value is invalid."""
    pass


def parse_rotation_time(value: str) -> time:
    """Parse an "HH:MM" wall-clock time.

    Raises:
        ConfigError: If value isn't a valid HH:MM time
    """
    try:
        hours, minutes = value.split(":")
        return time(int(hours), int(minutes))
    except ValueError:
        raise ConfigError(f"Invalid rotation time {value!r}. Use HH:MM (e.g., 00:05)") from None


def load_zone(name: str) -> tzinfo:
    """Load an IANA time zone.

    Raises:
        ConfigError: If the zone is unknown
    """
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        raise ConfigError(f"Unknown timezone {name!r}") from None


@dataclass
class AnalyticsConfig:
    """Configuration for a collector instance."""

    # Storage
    data_dir: str = "data"
    storage_timeout_seconds: float = 30.0

    # Server
    host: str = "0.0.0.0"
    port: int = 3000
    cors_origins: list[str] = field(default_factory=lambda: ["*"])

    # Persistence policy
    flush_every: int = 50  # records
    flush_interval_seconds: float = 5 * 60
    rotation_time: str = "00:05"  # local wall-clock time the day is rotated

    # None means the server's local time zone
    timezone: str | None = None

    def __post_init__(self):
        """Validate configuration after initialization."""
        if self.flush_every < 1:
            raise ConfigError(f"flush_every must be at least 1, got {self.flush_every}")
        if self.flush_interval_seconds <= 0:
            raise ConfigError(
                f"flush_interval_seconds must be positive, got {self.flush_interval_seconds}"
            )
        if self.storage_timeout_seconds <= 0:
            raise ConfigError(
                f"storage_timeout_seconds must be positive, got {self.storage_timeout_seconds}"
            )
        # Fail fast on bad values rather than at first rotation
        parse_rotation_time(self.rotation_time)
        if self.timezone:
            load_zone(self.timezone)

    @property
    def rotation_at(self) -> time:
        """Rotation time as a datetime.time."""
        return parse_rotation_time(self.rotation_time)

    @property
    def zone(self) -> tzinfo | None:
        """Configured zone, or None for server local time."""
        if not self.timezone:
            return None
        return load_zone(self.timezone)

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> "AnalyticsConfig":
        """Build a config from environment variables.

        Reads PORT, HOST and the ANALYTICS_* variables; anything unset keeps
        its default.
        """
        env = os.environ if environ is None else environ
        kwargs = {}

        try:
            if "PORT" in env:
                kwargs["port"] = int(env["PORT"])
            if "ANALYTICS_FLUSH_EVERY" in env:
                kwargs["flush_every"] = int(env["ANALYTICS_FLUSH_EVERY"])
            if "ANALYTICS_FLUSH_INTERVAL" in env:
                kwargs["flush_interval_seconds"] = float(env["ANALYTICS_FLUSH_INTERVAL"])
        except ValueError as e:
            raise ConfigError(f"Invalid numeric setting: {e}") from None

        if "HOST" in env:
            kwargs["host"] = env["HOST"]
        if "ANALYTICS_DATA_DIR" in env:
            kwargs["data_dir"] = env["ANALYTICS_DATA_DIR"]
        if "ANALYTICS_ROTATION_TIME" in env:
            kwargs["rotation_time"] = env["ANALYTICS_ROTATION_TIME"]
        if env.get("ANALYTICS_TIMEZONE"):
            kwargs["timezone"] = env["ANALYTICS_TIMEZONE"]
        if env.get("ANALYTICS_CORS_ORIGINS"):
            kwargs["cors_origins"] = [
                origin.strip() for origin in env["ANALYTICS_CORS_ORIGINS"].split(",") if origin.strip()
            ]

        config = cls(**kwargs)
        logger.debug(f"Loaded config: data_dir={config.data_dir}, port={config.port}")
        return config
