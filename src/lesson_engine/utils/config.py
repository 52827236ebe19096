"""
Configuration management with environment variables.

This module provides centralized configuration for the scheduling
engine, loaded from the environment (and a .env file when present).
"""

import os
from datetime import timedelta, tzinfo
from pathlib import Path
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv


class EngineConfig:
    """
    Scheduling engine configuration.

    Attributes:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional log file path
        timezone: IANA timezone used for the current week
        upstream_failure_threshold: Failures before a store breaker opens
        upstream_reset_seconds: Seconds before an open breaker is retried
        export_dir: Directory for preview and summary exports

    Examples:
        >>> config = EngineConfig()
        >>> config.validate()
        True
        >>> config.timezone
        'UTC'
    """

    VALID_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

    def __init__(self):
        """Initialize configuration by loading environment variables."""
        load_dotenv()

        self._log_level = os.getenv("LOG_LEVEL", "INFO").upper()
        self._log_file = os.getenv("LOG_FILE") or None
        self._timezone = os.getenv("TIMEZONE", "UTC")

        # Store resilience
        self._upstream_failure_threshold = int(os.getenv("UPSTREAM_FAILURE_THRESHOLD", "5"))
        self._upstream_reset_seconds = int(os.getenv("UPSTREAM_RESET_SECONDS", "60"))

        self._export_dir = Path(os.getenv("EXPORT_DIR", "output"))

    @property
    def log_level(self) -> str:
        """Get logging level."""
        return self._log_level

    @property
    def log_file(self) -> Optional[str]:
        """Get log file path (None for console only)."""
        return self._log_file

    @property
    def timezone(self) -> str:
        """Get IANA timezone name."""
        return self._timezone

    @property
    def tz(self) -> tzinfo:
        """
        Get timezone object.

        Raises:
            ValueError: If TIMEZONE is not a known IANA name
        """
        try:
            return ZoneInfo(self._timezone)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown TIMEZONE: {self._timezone}") from e

    @property
    def upstream_failure_threshold(self) -> int:
        """Get consecutive failures before a store breaker opens."""
        return self._upstream_failure_threshold

    @property
    def upstream_reset_seconds(self) -> int:
        """Get seconds before an open breaker allows a trial call."""
        return self._upstream_reset_seconds

    @property
    def upstream_reset_timeout(self) -> timedelta:
        return timedelta(seconds=self._upstream_reset_seconds)

    @property
    def export_dir(self) -> Path:
        """Get export directory path."""
        return self._export_dir

    def validate(self) -> bool:
        """
        Validate configuration values.

        Returns:
            True if all configuration is valid

        Raises:
            ValueError: If validation fails
        """
        errors = []

        if self._log_level not in self.VALID_LOG_LEVELS:
            errors.append(
                f"LOG_LEVEL must be one of: {', '.join(self.VALID_LOG_LEVELS)}"
            )

        try:
            self.tz
        except ValueError as e:
            errors.append(str(e))

        if self._upstream_failure_threshold <= 0:
            errors.append("UPSTREAM_FAILURE_THRESHOLD must be positive")

        if self._upstream_reset_seconds < 0:
            errors.append("UPSTREAM_RESET_SECONDS must not be negative")

        if errors:
            error_msg = "Configuration validation failed:\n  - " + "\n  - ".join(errors)
            raise ValueError(error_msg)

        return True

    def create_export_directory(self) -> Path:
        """Create the export directory if it doesn't exist."""
        self._export_dir.mkdir(parents=True, exist_ok=True)
        return self._export_dir


# Singleton instance
config = EngineConfig()
