"""
load the transport config from a YAML file and the environment
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Tuple

import yaml


def parse_header_entry(entry) -> Tuple[str, str]:
    """Turn a "Name: Value" string or a single-entry mapping into a header pair."""
    if isinstance(entry, dict):
        if len(entry) != 1:
            raise ValueError(f"Header mapping must have exactly one entry: {entry!r}")
        name, value = next(iter(entry.items()))
    elif isinstance(entry, str):
        if ":" not in entry:
            raise ValueError(f"Header must look like 'Name: Value': {entry!r}")
        name, value = entry.split(":", 1)
    else:
        raise ValueError(f"Unsupported header entry: {entry!r}")

    name = str(name).strip()
    if not name:
        raise ValueError(f"Header name is empty: {entry!r}")
    return name, str(value).strip()


@dataclass(frozen=True)
class TransportSettings:
    """Process-wide settings shared by every request an executor sends."""

    retry_attempts_on_service_unavailable: int = 0
    additional_headers: Tuple[Tuple[str, str], ...] = ()
    timeout: float = 30.0
    backoff_base: float = 0.5
    backoff_cap: float = 5.0
    max_connections: int = 20
    max_keepalive_connections: int = 10

    def __post_init__(self):
        if self.retry_attempts_on_service_unavailable < 0:
            raise ValueError("retry_attempts_on_service_unavailable must be >= 0")
        if self.timeout <= 0:
            raise ValueError("timeout must be positive")

    @classmethod
    def from_dict(cls, http_config: Dict[str, Any]) -> "TransportSettings":
        """Build settings from the `http` section of the config file."""
        headers = http_config.get("additional_headers") or []
        if isinstance(headers, dict):
            headers = [{name: value} for name, value in headers.items()]
        return cls(
            retry_attempts_on_service_unavailable=int(
                http_config.get("retry_attempts_on_service_unavailable", 0)
            ),
            additional_headers=_header_tuple(headers),
            timeout=float(http_config.get("timeout", 30.0)),
            backoff_base=float(http_config.get("backoff_base", 0.5)),
            backoff_cap=float(http_config.get("backoff_cap", 5.0)),
            max_connections=int(http_config.get("max_connections", 20)),
            max_keepalive_connections=int(http_config.get("max_keepalive_connections", 10)),
        )


def _header_tuple(entries: Iterable) -> Tuple[Tuple[str, str], ...]:
    return tuple(parse_header_entry(entry) for entry in entries)


class Config:
    """Configuration loader that reads from a YAML file and environment variables."""

    def __init__(self, config_path: Optional[str] = None):
        """Initialize configuration loader.

        Args:
            config_path: Path to a YAML file. If None, only defaults and
                        environment variables are used.
        """
        self.config_path = Path(config_path) if config_path is not None else None
        self._config = self._load_config()

    def _load_config(self) -> Dict[str, Any]:
        """Load configuration from YAML file and override with environment variables."""
        config: Dict[str, Any] = {}
        if self.config_path is not None:
            try:
                with open(self.config_path, 'r') as f:
                    config = yaml.safe_load(f) or {}
            except FileNotFoundError:
                raise FileNotFoundError(f"Configuration file not found: {self.config_path}")
            except yaml.YAMLError as e:
                raise ValueError(f"Invalid YAML in configuration file: {e}")

            if not isinstance(config, dict):
                raise ValueError(f"Configuration root must be a mapping: {self.config_path}")

        return self._apply_env_overrides(config)

    def _apply_env_overrides(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """Apply environment variable overrides to configuration."""
        env_mappings = {
            'APIDOC_RETRY_ATTEMPTS': ('http', 'retry_attempts_on_service_unavailable'),
            'APIDOC_HTTP_TIMEOUT': ('http', 'timeout'),
            'APIDOC_BACKOFF_BASE': ('http', 'backoff_base'),
            'APIDOC_BACKOFF_CAP': ('http', 'backoff_cap'),
            'LOG_LEVEL': ('logging', 'level'),
        }

        for env_var, config_path in env_mappings.items():
            env_value = os.getenv(env_var)
            if env_value is not None:
                current = config
                for key in config_path[:-1]:
                    if not isinstance(current.get(key), dict):
                        current[key] = {}
                    current = current[key]

                current[config_path[-1]] = self._convert_env_value(env_value)

        return config

    def _convert_env_value(self, value: str):
        """Numbers become int or float; anything else stays a string."""
        for convert in (int, float):
            try:
                return convert(value)
            except ValueError:
                continue
        return value

    def get(self, *keys, default=None):
        """Get configuration value using a key path, e.g. get('http', 'timeout')."""
        current = self._config
        for key in keys:
            if isinstance(current, dict) and key in current:
                current = current[key]
            else:
                return default
        return current

    @property
    def http(self) -> Dict[str, Any]:
        """Get HTTP transport configuration."""
        return self.get('http', default={}) or {}

    @property
    def logging(self) -> Dict[str, Any]:
        """Get logging configuration."""
        return self.get('logging', default={}) or {}

    def transport_settings(self) -> TransportSettings:
        return TransportSettings.from_dict(self.http)
