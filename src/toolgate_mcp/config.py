"""
Server configuration for toolgate-mcp.

Supports configuration via:
1. Environment variables (highest priority)
2. TOML config file (toolgate-mcp.toml)
3. Default values (lowest priority)

Environment variables:
- TOOLGATE_CONFIG_FILE: Path to TOML config file
- TOOLGATE_LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR)
- TOOLGATE_STRUCTURED_LOGGING: Emit JSON-style log lines (true/false)
- TOOLGATE_REGISTRY_MODULES: Comma-separated dotted paths of entity registry modules
- TOOLGATE_SERVER_NAME: Name reported to MCP clients

Catalog policies (denied actions, denied tools regex, read-only mode, schema
mode and description overrides) are read from the environment by
``toolgate_mcp.core.policy`` so the runtime and tierless views can reload
them independently of this object.
"""

import logging
import os
import tomllib
from dataclasses import dataclass, field
from importlib.metadata import version as get_package_version, PackageNotFoundError
from pathlib import Path
from typing import Any, List, Optional


logger = logging.getLogger(__name__)


def _get_version() -> str:
    """Get package version from metadata (single source of truth: pyproject.toml)."""
    try:
        return get_package_version("toolgate-mcp")
    except PackageNotFoundError:
        return "0.1.0"  # Fallback for dev without install


_PACKAGE_VERSION = _get_version()

ENV_PREFIX = "TOOLGATE_"


_TRUTHY = {"true", "1", "yes", "on"}


def parse_bool(value: Any) -> bool:
    """Boolean from a TOML value or environment string; unset is False."""
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _TRUTHY


def _split_csv(value: str) -> List[str]:
    return [part.strip() for part in value.split(",") if part.strip()]


@dataclass
class ServerConfig:
    """Server configuration with support for env vars and TOML overrides."""

    # Logging configuration
    log_level: str = "INFO"
    structured_logging: bool = True

    # Server configuration
    server_name: str = "toolgate-mcp"
    server_version: str = field(default_factory=lambda: _PACKAGE_VERSION)

    # Entity registry modules imported at startup
    registry_modules: List[str] = field(default_factory=list)

    @classmethod
    def from_env(cls, config_file: Optional[str] = None) -> "ServerConfig":
        """
        Create configuration from environment variables and optional TOML file.

        Priority (highest to lowest):
        1. Environment variables
        2. TOML config file
        3. Default values
        """
        config = cls()

        toml_path = config_file or os.environ.get(f"{ENV_PREFIX}CONFIG_FILE")
        if toml_path:
            config._load_toml(Path(toml_path))
        else:
            for default_path in ["toolgate-mcp.toml", ".toolgate-mcp.toml"]:
                if Path(default_path).exists():
                    config._load_toml(Path(default_path))
                    break

        config._load_env()

        return config

    def _load_toml(self, path: Path) -> None:
        """Load configuration from TOML file."""
        if not path.exists():
            logger.warning(f"Config file not found: {path}")
            return

        try:
            with open(path, "rb") as f:
                data = tomllib.load(f)

            if "logging" in data:
                log = data["logging"]
                if "level" in log:
                    self.log_level = str(log["level"]).upper()
                if "structured" in log:
                    self.structured_logging = parse_bool(log["structured"])

            if "server" in data:
                srv = data["server"]
                if "name" in srv:
                    self.server_name = srv["name"]
                if "version" in srv:
                    self.server_version = srv["version"]

            if "registries" in data:
                modules = data["registries"].get("modules", [])
                if isinstance(modules, str):
                    modules = _split_csv(modules)
                self.registry_modules = [str(m) for m in modules]

        except Exception as e:
            logger.error(f"Error loading config file {path}: {e}")

    def _load_env(self) -> None:
        """Load configuration from environment variables."""
        if level := os.environ.get(f"{ENV_PREFIX}LOG_LEVEL"):
            self.log_level = level.upper()

        if structured := os.environ.get(f"{ENV_PREFIX}STRUCTURED_LOGGING"):
            self.structured_logging = parse_bool(structured)

        if name := os.environ.get(f"{ENV_PREFIX}SERVER_NAME"):
            self.server_name = name

        if modules := os.environ.get(f"{ENV_PREFIX}REGISTRY_MODULES"):
            self.registry_modules = _split_csv(modules)

    def setup_logging(self) -> None:
        """Configure logging based on settings."""
        level = getattr(logging, self.log_level, logging.INFO)

        if self.structured_logging:
            # JSON-style structured logging
            formatter = logging.Formatter(
                '{"timestamp":"%(asctime)s","level":"%(levelname)s",'
                '"logger":"%(name)s","message":"%(message)s"}'
            )
        else:
            formatter = logging.Formatter(
                "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
            )

        # stdout carries the MCP stdio transport, so logs go to stderr
        handler = logging.StreamHandler()
        handler.setFormatter(formatter)

        root_logger = logging.getLogger("toolgate_mcp")
        root_logger.setLevel(level)
        root_logger.addHandler(handler)


# Global configuration instance
_config: Optional[ServerConfig] = None


def get_config() -> ServerConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = ServerConfig.from_env()
    return _config


def set_config(config: ServerConfig) -> None:
    """Set the global configuration instance."""
    global _config
    _config = config
