"""Configuration loading utilities."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from ..errors.internal import ConfigError
from ..logs.logger import logger
from .model import SessionConfig


class ConfigLoader:
    """Loads a ``SessionConfig`` from a JSON file."""

    def __init__(self, path: str | os.PathLike[str]):
        if not isinstance(path, str | os.PathLike):
            raise TypeError("path must be str or os.PathLike")
        self.path = Path(path)

    def load_raw(self) -> dict[str, Any]:
        """Read the file and return the top-level JSON object.

        Raises:
            ConfigError: If the file is missing, unreadable, not JSON or not an object.
        """
        try:
            with self.path.open(encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError as e:
            raise ConfigError(
                f"configuration file not found: {self.path}", data={"path": str(self.path)}
            ) from e
        except (OSError, ValueError) as e:
            raise ConfigError(
                f"cannot read configuration file {self.path}: {e}",
                data={"path": str(self.path)},
            ) from e
        if not isinstance(data, dict):
            raise ConfigError(
                "configuration must be a JSON object", data={"path": str(self.path)}
            )
        return data

    def load(self) -> SessionConfig:
        """Load and validate the configuration.

        Returns:
            The validated SessionConfig.

        Raises:
            ConfigError: If loading fails or a required field is missing/invalid.
        """
        raw = self.load_raw()
        try:
            config = SessionConfig.from_dict(raw)
        except ValidationError as e:
            fields = sorted(
                {".".join(str(p) for p in err["loc"]) for err in e.errors()}
            )
            raise ConfigError(
                "invalid configuration file",
                data={"path": str(self.path), "fields": ",".join(fields)},
            ) from e
        logger.log_event(
            "app",
            "config_loaded",
            path=str(self.path),
            channels=len(config.channels),
        )
        return config


def load_config(path: str | os.PathLike[str]) -> SessionConfig:
    return ConfigLoader(path).load()
