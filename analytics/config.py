# config.py — Analyzer configuration
# Defaults, environment overrides, process-wide singleton
"""
config.py — Analyzer Configuration

Supports:
1. Built-in defaults (time column "Year", positional correlation pairing)
2. Environment variable overrides (ANALYZER_*)
"""

from __future__ import annotations

import os
from dataclasses import dataclass


# =============================================================================
# CONSTANTS
# =============================================================================

DEFAULT_TIME_COLUMN = "Year"
DEFAULT_MAX_FILE_SIZE_MB = 100
DEFAULT_LOG_LEVEL = "INFO"

TRUTHY_ENV_VALUES = {"1", "true", "yes", "on"}


# =============================================================================
# CONFIG
# =============================================================================

@dataclass
class AnalyzerConfig:
    """Configuration for the analyzer and its workflow."""
    time_column: str = DEFAULT_TIME_COLUMN
    align_correlation_rows: bool = False
    max_file_size_mb: int = DEFAULT_MAX_FILE_SIZE_MB
    log_level: str = DEFAULT_LOG_LEVEL
    log_file: str | None = None

    @property
    def max_file_size_bytes(self) -> int:
        return self.max_file_size_mb * 1024 * 1024

    @classmethod
    def from_env(cls) -> "AnalyzerConfig":
        """
        Build a config from defaults overridden by environment variables.

        Raises:
            ValueError: ANALYZER_MAX_FILE_SIZE_MB is not an integer
        """
        config = cls()

        if os.getenv("ANALYZER_TIME_COLUMN"):
            config.time_column = os.getenv("ANALYZER_TIME_COLUMN")

        if os.getenv("ANALYZER_ALIGN_ROWS"):
            config.align_correlation_rows = (
                os.getenv("ANALYZER_ALIGN_ROWS").strip().lower() in TRUTHY_ENV_VALUES
            )

        if os.getenv("ANALYZER_MAX_FILE_SIZE_MB"):
            config.max_file_size_mb = int(os.getenv("ANALYZER_MAX_FILE_SIZE_MB"))

        if os.getenv("ANALYZER_LOG_LEVEL"):
            config.log_level = os.getenv("ANALYZER_LOG_LEVEL").upper()

        if os.getenv("ANALYZER_LOG_FILE"):
            config.log_file = os.getenv("ANALYZER_LOG_FILE")

        return config


# Global configuration instance
_config = None


def get_config() -> AnalyzerConfig:
    """Get global configuration instance (created from the environment once)."""
    global _config
    if _config is None:
        _config = AnalyzerConfig.from_env()
    return _config


def reload_config() -> AnalyzerConfig:
    """Re-read the environment (useful for testing)."""
    global _config
    _config = AnalyzerConfig.from_env()
    return _config
