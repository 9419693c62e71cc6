"""Configuration loader for confgetter.

Loads from confgetter.toml with sensible defaults when file is absent.
Configuration is loaded once at startup and passed to getters at
construction time; nothing here is mutated afterwards.
"""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path

from confgetter import __version__

DEFAULT_USER_AGENT = f"confgetter/{__version__}"
_CLIENT_MODES = frozenset({"any", "file", "dir"})


class ConfigError(Exception):
    """Raised when configuration loading or validation fails."""


@dataclass(frozen=True)
class GetterConfig:
    """Settings for the HTTP transport getter."""

    netrc: bool = True
    alternate_source_disabled: bool = True
    alternate_source_limit: int = 10
    max_bytes: int = 0  # 0 = unlimited
    check_head_first: bool = True
    timeout_seconds: float = 30.0
    user_agent: str = DEFAULT_USER_AGENT

    @property
    def resolved_user_agent(self) -> str:
        """`CONFGETTER_USER_AGENT` can override the configured user-agent."""
        override = os.environ.get("CONFGETTER_USER_AGENT", "").strip()
        return override or self.user_agent or DEFAULT_USER_AGENT


@dataclass(frozen=True)
class ClientConfig:
    umask: int = 0
    mode: str = "any"  # "any" | "file" | "dir"


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"


@dataclass(frozen=True)
class Config:
    """Top-level confgetter configuration."""

    http: GetterConfig = field(default_factory=GetterConfig)
    client: ClientConfig = field(default_factory=ClientConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def _int_setting(data: dict, key: str, default: int, *, minimum: int = 0) -> int:
    raw = data.get(key, default)
    try:
        value = int(raw)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid integer for {key!r}: {raw!r}") from e
    if value < minimum:
        raise ConfigError(f"{key!r} must be >= {minimum}, got {value}")
    return value


def _parse_getter_config(data: dict) -> GetterConfig:
    timeout_raw = data.get("timeout_seconds", 30.0)
    try:
        timeout_seconds = float(timeout_raw)
    except (TypeError, ValueError):
        timeout_seconds = 30.0
    if timeout_seconds <= 0:
        timeout_seconds = 30.0

    return GetterConfig(
        netrc=bool(data.get("netrc", True)),
        alternate_source_disabled=bool(data.get("alternate_source_disabled", True)),
        alternate_source_limit=_int_setting(data, "alternate_source_limit", 10),
        max_bytes=_int_setting(data, "max_bytes", 0),
        check_head_first=bool(data.get("check_head_first", True)),
        timeout_seconds=timeout_seconds,
        user_agent=str(data.get("user_agent", DEFAULT_USER_AGENT)),
    )


def _parse_client_config(data: dict) -> ClientConfig:
    mode = str(data.get("mode", "any")).strip().lower()
    if mode not in _CLIENT_MODES:
        raise ConfigError(
            f"Invalid client mode {mode!r}; expected one of {sorted(_CLIENT_MODES)}"
        )
    umask = _int_setting(data, "umask", 0)
    if umask > 0o777:
        raise ConfigError(f"'umask' out of range: {umask:o}")
    return ClientConfig(umask=umask, mode=mode)


def load_config(path: Path | None = None) -> Config:
    """Load configuration from a TOML file.

    If path is None, searches for confgetter.toml in current directory
    then ~/.confgetter/. Returns default config if no file is found.
    """
    if path is None:
        candidates = [
            Path.cwd() / "confgetter.toml",
            Path.home() / ".confgetter" / "confgetter.toml",
        ]
        for candidate in candidates:
            if candidate.exists():
                path = candidate
                break

    if path is None or not path.exists():
        return Config()

    try:
        with open(path, "rb") as f:
            raw = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML in {path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Cannot read config {path}: {e}") from e

    log_data = raw.get("logging", {})
    logging_cfg = LoggingConfig(
        level=str(log_data.get("level", "INFO")).upper(),
    )

    return Config(
        http=_parse_getter_config(raw.get("http", {})),
        client=_parse_client_config(raw.get("client", {})),
        logging=logging_cfg,
    )
