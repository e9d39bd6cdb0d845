"""
Server configuration.

Configuration is read from a YAML file and then overridden by environment
variables. The file is looked up at ``$SONARLINT_MCP_CONFIG`` and then at
``./sonarlint-mcp.yaml``; when neither exists the defaults below are used.

Example ``sonarlint-mcp.yaml``::

    backend_home: /opt/sonarlint-backend
    java_command: java
    settle_interval_seconds: 0.5
    request_timeout_seconds: 60
    log_level: INFO
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from sonarlint_mcp.errors import ConfigurationError

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "SONARLINT_MCP_CONFIG"
DEFAULT_CONFIG_FILENAME = "sonarlint-mcp.yaml"


def _default_backend_home() -> Path:
    # src/sonarlint_mcp -> src -> project root
    return Path(__file__).resolve().parent.parent.parent / "sonarlint-backend"


@dataclass
class ServerConfig:
    """
    Runtime configuration for the server and its backend.

    Attributes:
        backend_home: Directory holding the SLOOP distribution (``lib/``)
            and its analyzer ``plugins/``.
        java_command: Java executable used to launch the backend.
        settle_interval_seconds: Delay after a file-change notification
            before the backend's next analysis is trusted. The backend gives
            no acknowledgment, so this is an empirical value.
        request_timeout_seconds: Maximum wait for a backend request.
        log_level: Level for the server's stderr log handler.
    """

    backend_home: Path = field(default_factory=_default_backend_home)
    java_command: str = "java"
    settle_interval_seconds: float = 0.5
    request_timeout_seconds: float = 60.0
    log_level: str = "INFO"

    @property
    def plugins_dir(self) -> Path:
        return self.backend_home / "plugins"


def _config_path(path: str | Path | None) -> Path | None:
    if path is not None:
        return Path(path)
    if env_path := os.environ.get(CONFIG_ENV_VAR):
        return Path(env_path)
    candidate = Path.cwd() / DEFAULT_CONFIG_FILENAME
    return candidate if candidate.exists() else None


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid config file {path}: {e}") from e
    except OSError as e:
        raise ConfigurationError(f"Cannot read config file {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {path} must contain a mapping")
    return data


def load_config(path: str | Path | None = None) -> ServerConfig:
    """
    Load configuration from YAML and environment overrides.

    Args:
        path: Explicit config file. When omitted the environment variable and
            the working directory are consulted.

    Returns:
        ServerConfig with defaults for every unset value.

    Raises:
        ConfigurationError: If the file exists but is invalid.
    """
    config = ServerConfig()
    config_path = _config_path(path)

    if config_path is not None:
        if not config_path.exists():
            logger.warning(f"Config file not found at {config_path}, using defaults")
        else:
            data = _read_yaml(config_path)
            try:
                if "backend_home" in data:
                    config.backend_home = Path(data["backend_home"]).expanduser()
                config.java_command = str(data.get("java_command", config.java_command))
                config.settle_interval_seconds = float(
                    data.get("settle_interval_seconds", config.settle_interval_seconds)
                )
                config.request_timeout_seconds = float(
                    data.get("request_timeout_seconds", config.request_timeout_seconds)
                )
                config.log_level = str(data.get("log_level", config.log_level)).upper()
            except (TypeError, ValueError) as e:
                raise ConfigurationError(f"Invalid value in {config_path}: {e}") from e

    if env_home := os.environ.get("SONARLINT_MCP_BACKEND_HOME"):
        config.backend_home = Path(env_home).expanduser()
    if env_settle := os.environ.get("SONARLINT_MCP_SETTLE_MS"):
        try:
            config.settle_interval_seconds = int(env_settle) / 1000
        except ValueError as e:
            raise ConfigurationError(f"SONARLINT_MCP_SETTLE_MS must be an integer: {env_settle}") from e
    if env_level := os.environ.get("SONARLINT_MCP_LOG_LEVEL"):
        config.log_level = env_level.upper()

    if config.settle_interval_seconds < 0:
        raise ConfigurationError("settle_interval_seconds must not be negative")

    return config
