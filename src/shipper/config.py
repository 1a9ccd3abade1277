"""Configuration for the shipper.

This module defines the configuration dataclass that controls which files
are monitored, where their lines are sent, and how monitoring behaves.
Values can be loaded from a YAML file and overridden on the command line.
"""

from __future__ import annotations

import codecs
import logging
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_PORT = 4560


@dataclass
class ShipperConfig:
    """Configuration for the shipper.

    Attributes:
        files: Paths of the monitored files.
        host: Hostname of the remote log collector.
        port: Port of the remote log collector (default: 4560).
        skip: Skip over content present at startup (default: True).
        file_encoding: Encoding of the monitored files (default: UTF-8).
        poll_interval_seconds: Seconds between read passes when native
            notification is unavailable (default: 0.5).
        force_polling: Poll even where native notification works.
        log_level: Level of the shipper's own console output (default: INFO).
        log_file: Optional JSON-lines file for the shipper's own log.
        logging_configuration: Optional YAML ``dictConfig`` document that
            replaces the default logging setup.
    """

    files: list[str] = field(default_factory=list)
    host: str | None = None
    port: int = DEFAULT_PORT
    skip: bool = True
    file_encoding: str = "UTF-8"
    poll_interval_seconds: float = 0.5
    force_polling: bool = False
    log_level: str = "INFO"
    log_file: str | None = None
    logging_configuration: str | None = None

    def validate(self) -> None:
        """Check values for consistency.

        Raises:
            ConfigurationError: If a value is missing or invalid.
        """
        if not self.files:
            raise ConfigurationError("At least one file to monitor is required")
        if not self.host:
            raise ConfigurationError("Target host is required")
        if not 0 < self.port < 65536:
            raise ConfigurationError(f"Invalid port: {self.port}")
        if self.poll_interval_seconds <= 0:
            raise ConfigurationError(
                f"Poll interval must be positive, got {self.poll_interval_seconds}"
            )
        try:
            codecs.lookup(self.file_encoding)
        except LookupError as e:
            raise ConfigurationError(f"Unknown file encoding: {self.file_encoding}") from e
        if not isinstance(logging.getLevelName(self.log_level.upper()), int):
            raise ConfigurationError(f"Unknown log level: {self.log_level}")

    def merged(self, overrides: dict[str, Any]) -> ShipperConfig:
        """Return a copy with every non-``None`` override applied."""
        values = {f.name: getattr(self, f.name) for f in fields(self)}
        values.update({key: value for key, value in overrides.items() if value is not None})
        return ShipperConfig(**values)


def load_config(path: str | Path) -> ShipperConfig:
    """Load configuration from a YAML file.

    Args:
        path: YAML mapping whose keys are ``ShipperConfig`` attributes.

    Returns:
        Configuration with file values over defaults. Not validated.

    Raises:
        ConfigurationError: If the file is missing, unparsable, or holds
            unknown keys.
    """
    config_path = Path(path)
    if not config_path.exists():
        raise ConfigurationError(f"Configuration file not found: {config_path}")

    try:
        with open(config_path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Failed to parse configuration YAML: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration in {config_path} must be a mapping")

    known = {f.name for f in fields(ShipperConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigurationError(f"Unknown configuration keys: {', '.join(unknown)}")

    files = data.get("files")
    if isinstance(files, str):
        data["files"] = [files]

    logger.debug(f"Loaded configuration from {config_path}")
    return ShipperConfig(**data)
