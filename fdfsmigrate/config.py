"""Application configuration: defaults, an optional YAML file and environment overrides."""

import os
import re
from dataclasses import dataclass, field, fields
from datetime import timedelta
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional

import yaml

DEFAULT_SEARCH_PATHS = (".", "./configs")
_CONFIG_NAMES = ("config.yaml", "config.yml", "config")


class ConfigError(Exception):
    """Raised when the configuration cannot be read or converted."""


@dataclass
class ServerConfig:
    port: str = ""
    host: str = ""


@dataclass
class DatabaseConfig:
    type: str = ""
    dsn: str = ""


@dataclass
class RedisConfig:
    addr: str = ""
    password: str = ""
    db: int = 0


@dataclass
class MigrationConfig:
    default_workers: int = 0
    chunk_size: int = 0
    max_retry: int = 0
    retry_interval: timedelta = timedelta(0)


@dataclass
class LoggingConfig:
    level: str = ""
    file: str = ""
    max_size: int = 0
    max_backups: int = 0


@dataclass
class Config:
    server: ServerConfig = field(default_factory=ServerConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    redis: RedisConfig = field(default_factory=RedisConfig)
    migration: MigrationConfig = field(default_factory=MigrationConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


_SECTIONS = {
    "server": ServerConfig,
    "database": DatabaseConfig,
    "redis": RedisConfig,
    "migration": MigrationConfig,
    "logging": LoggingConfig,
}

_DEFAULTS: dict[str, Any] = {
    "server.port": "8080",
    "server.host": "0.0.0.0",
    "database.type": "sqlite",
    "database.dsn": "./migration.db",
    "redis.addr": "localhost:6379",
    "redis.password": "",
    "redis.db": 0,
    "migration.default_workers": 5,
    "migration.chunk_size": 1048576,
    "migration.max_retry": 3,
    "migration.retry_interval": "30s",
    "logging.level": "info",
    "logging.file": "./logs/migration.log",
    "logging.max_size": 100,
    "logging.max_backups": 5,
}

_UNIT_NANOSECONDS = {
    "ns": 1,
    "us": 1_000,
    "µs": 1_000,
    "μs": 1_000,
    "ms": 1_000_000,
    "s": 1_000_000_000,
    "m": 60 * 1_000_000_000,
    "h": 3600 * 1_000_000_000,
}
_DURATION_PART = r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|μs|ms|s|m|h)"
_DURATION_RE = re.compile(f"(?:{_DURATION_PART})+")
_DURATION_PART_RE = re.compile(_DURATION_PART)


def _parse_duration(value: Any) -> timedelta:
    """Parse a duration such as ``30s`` or ``1h30m``; bare numbers are nanoseconds."""
    if isinstance(value, timedelta):
        return value
    if isinstance(value, bool):
        raise ValueError(f"invalid duration {value!r}")
    if isinstance(value, int):
        return timedelta(microseconds=value // 1000)
    if isinstance(value, float):
        return timedelta(microseconds=value / 1000)
    text = str(value).strip()
    sign = 1
    if text and text[0] in "+-":
        sign = -1 if text[0] == "-" else 1
        text = text[1:]
    if text == "0":
        return timedelta(0)
    if not _DURATION_RE.fullmatch(text):
        raise ValueError(f"invalid duration {value!r}")
    nanoseconds = sum(
        float(number) * _UNIT_NANOSECONDS[unit]
        for number, unit in _DURATION_PART_RE.findall(text)
    )
    return timedelta(microseconds=sign * nanoseconds / 1000)


def _convert(kind: type, value: Any) -> Any:
    if kind is str:
        return "" if value is None else str(value)
    if kind is int:
        if isinstance(value, str):
            return int(value.strip())
        return int(value)
    if kind is timedelta:
        return _parse_duration(value)
    return value


def _flatten(data: Mapping[str, Any], prefix: str = "") -> dict[str, Any]:
    flat: dict[str, Any] = {}
    for key, value in data.items():
        name = f"{prefix}{str(key).lower()}"
        if isinstance(value, Mapping):
            flat.update(_flatten(value, f"{name}."))
        else:
            flat[name] = value
    return flat


def _read_config_file(search_paths: Iterable[os.PathLike | str]) -> dict[str, Any]:
    for directory in search_paths:
        for name in _CONFIG_NAMES:
            path = Path(directory) / name
            if not path.is_file():
                continue
            try:
                with path.open("r", encoding="utf-8") as handle:
                    content = yaml.safe_load(handle)
            except (OSError, yaml.YAMLError) as exc:
                raise ConfigError(f"failed to read config file: {exc}") from exc
            if content is None:
                return {}
            if not isinstance(content, Mapping):
                raise ConfigError(
                    f"failed to read config file: {path} does not hold a mapping"
                )
            return _flatten(content)
    return {}


def load(
    search_paths: Optional[Iterable[os.PathLike | str]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Config:
    """Load the configuration.

    Values come from the environment (variable named by the upper-cased dotted
    key, e.g. ``SERVER.PORT``), then from the first ``config`` YAML file found in
    ``search_paths``, then from the built-in defaults. A missing file is not an
    error.
    """
    env = os.environ if environ is None else environ
    paths = DEFAULT_SEARCH_PATHS if search_paths is None else search_paths
    file_values = _read_config_file(paths)

    sections: dict[str, Any] = {}
    for section_name, section_cls in _SECTIONS.items():
        kwargs: dict[str, Any] = {}
        for spec in fields(section_cls):
            key = f"{section_name}.{spec.name}"
            value = env.get(key.upper()) or None
            if value is None:
                value = file_values.get(key)
            if value is None:
                value = _DEFAULTS.get(key)
            if value is None:
                continue
            try:
                kwargs[spec.name] = _convert(spec.type, value)
            except (TypeError, ValueError) as exc:
                raise ConfigError(f"failed to unmarshal config: {key}: {exc}") from exc
        sections[section_name] = section_cls(**kwargs)
    return Config(**sections)