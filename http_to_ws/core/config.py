"""Bridge settings and the optional ``key = value`` config file."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, Optional

from .connection.retry_policy import RetryPolicy
from .logging_utils import get_module_logger

logger = get_module_logger("Config")

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 9999
DEFAULT_MAX_BODY = 4 * 1024 * 1024
CONFIG_ENV_VAR = "HTTP_TO_WS_CONFIG"

CONFIG_KEYS = frozenset({
    "host",
    "port",
    "connect_timeout",
    "retry_delay",
    "max_body",
    "log_level",
    "log_file",
    "echo",
})


@dataclass(frozen=True)
class BridgeConfig:
    """Everything the supervisor needs to run one bridge process."""

    target_url: str
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    max_body: int = DEFAULT_MAX_BODY
    echo: bool = True
    log_level: str = "info"
    log_file: Optional[Path] = None

    @property
    def listen_address(self) -> str:
        return f"{self.host}:{self.port}"


def parse_config_lines(lines: Iterable[str]) -> Dict[str, str]:
    config: Dict[str, str] = {}

    for raw_line in lines:
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue

        key, value = line.split("=", 1)
        key = key.strip()
        value = value.split("#", 1)[0].strip()

        if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
            value = value[1:-1]

        if key not in CONFIG_KEYS:
            logger.warning("Ignoring unknown config key '%s'", key)
            continue
        config[key] = value

    return config


def read_config_file(path: Optional[Path]) -> Dict[str, str]:
    """Read ``path``; a missing or unreadable file yields an empty mapping."""
    if path is None:
        return {}
    try:
        with open(path, "r", encoding="utf-8") as fh:
            return parse_config_lines(fh)
    except OSError as exc:
        logger.error("Failed to read config %s: %s", path, exc)
        return {}


def resolve_config_path(explicit: Optional[Path]) -> Optional[Path]:
    if explicit is not None:
        return explicit
    env_value = os.environ.get(CONFIG_ENV_VAR, "").strip()
    return Path(env_value).expanduser() if env_value else None


def get_config_bool(config: Dict[str, str], key: str, default: bool) -> bool:
    if key not in config:
        return default
    return config[key].strip().lower() in ("true", "1", "yes", "on")


def split_listen_address(value: str) -> tuple[str, int]:
    """Split ``host:port`` (``[::1]:80`` style for IPv6) into its parts."""
    host, sep, port_text = value.rpartition(":")
    if not sep or not port_text:
        raise ValueError(f"expected HOST:PORT, got {value!r}")
    port = int(port_text)
    if not 0 <= port <= 65535:
        raise ValueError(f"port out of range: {port}")
    host = host.strip("[]") or DEFAULT_HOST
    return host, port


__all__ = [
    "BridgeConfig",
    "CONFIG_ENV_VAR",
    "DEFAULT_HOST",
    "DEFAULT_MAX_BODY",
    "DEFAULT_PORT",
    "get_config_bool",
    "parse_config_lines",
    "read_config_file",
    "resolve_config_path",
    "split_listen_address",
]
