"""
matrixwatch settings.

Every tunable is read from MATRIXWATCH_* environment variables (a .env file
in the working directory is honoured). Modules import the shared `config`
instance rather than reading the environment themselves.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

load_dotenv()


def _optional_path(name: str) -> Optional[Path]:
    value = os.getenv(name)
    return Path(value) if value else None


@dataclass
class Config:
    """
    Application configuration loaded from environment variables.

    Optional:
        MATRIXWATCH_DB_PATH: Path to SQLite database
        MATRIXWATCH_THRESHOLDS_PATH: JSON file overriding the default threshold table
        MATRIXWATCH_MAX_WORKERS: Worker threads for indicator computation
        MATRIXWATCH_LOG_LEVEL: Logging level for the CLI (DEBUG, INFO, ...)
    """

    # Storage paths
    db_path: Path = field(
        default_factory=lambda: Path(
            os.getenv("MATRIXWATCH_DB_PATH", "./data/matrixwatch.db")
        )
    )
    thresholds_path: Optional[Path] = field(
        default_factory=lambda: _optional_path("MATRIXWATCH_THRESHOLDS_PATH")
    )

    # ========================================================================
    # Engine Configuration
    # ========================================================================
    max_workers: int = field(
        default_factory=lambda: int(
            os.getenv("MATRIXWATCH_MAX_WORKERS", "4")
        )
    )
    log_level: str = field(
        default_factory=lambda: os.getenv("MATRIXWATCH_LOG_LEVEL", "WARNING").upper()
    )

    def __post_init__(self) -> None:
        """Convert string paths to Path objects if needed."""
        if isinstance(self.db_path, str):
            self.db_path = Path(self.db_path)
        if isinstance(self.thresholds_path, str):
            self.thresholds_path = Path(self.thresholds_path)

    def validate(self) -> None:
        """
        Validate configuration.

        Raises:
            ConfigurationError: If configuration is missing or invalid.
        """
        from matrixwatch.core.exceptions import ConfigurationError

        if self.max_workers < 1:
            raise ConfigurationError(
                f"MATRIXWATCH_MAX_WORKERS must be at least 1, got {self.max_workers}"
            )

        if self.thresholds_path is not None and not self.thresholds_path.exists():
            raise ConfigurationError(
                f"Threshold table not found: {self.thresholds_path}. "
                "Unset MATRIXWATCH_THRESHOLDS_PATH to use the built-in matrix."
            )

    def ensure_directories(self) -> None:
        """Create data directories if they don't exist."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def has_threshold_override(self) -> bool:
        """Check if a custom threshold table is configured."""
        return self.thresholds_path is not None


# Global configuration instance
config = Config()
