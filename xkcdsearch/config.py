"""Service configuration read from a YAML file with environment overrides.

A setting takes its value from the environment variable if that variable is
set, otherwise from the YAML file. A setting that is still empty or zero gets
its default. A required setting with no value is an error.
"""

from __future__ import annotations

import os
import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from pathlib import Path

import yaml


class ConfigError(ValueError):
    """The configuration could not be read or holds an invalid value."""


_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|μs|ms|s|m|h)")
_UNIT_SECONDS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "μs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}


def parse_duration(text: str) -> float:
    """Parse a duration such as ``"1h30m"`` or ``"500ms"`` into seconds."""
    if not isinstance(text, str):
        raise ConfigError(f"invalid duration {text!r}")
    body = text
    sign = 1.0
    if body and body[0] in "+-":
        sign = -1.0 if body[0] == "-" else 1.0
        body = body[1:]
    if body == "0":
        return 0.0
    if not body:
        raise ConfigError(f"invalid duration {text!r}")

    total = 0.0
    position = 0
    for match in _DURATION_PART.finditer(body):
        if match.start() != position:
            raise ConfigError(f"invalid duration {text!r}")
        total += float(match.group(1)) * _UNIT_SECONDS[match.group(2)]
        position = match.end()
    if position == 0 or position != len(body):
        raise ConfigError(f"invalid duration {text!r}")
    return sign * total


def _to_str(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, (dict, list)):
        raise ConfigError(f"expected a scalar, got {value!r}")
    return str(value)


def _to_int(value: object) -> int:
    if value is None:
        return 0
    if isinstance(value, bool):
        raise ConfigError(f"expected an integer, got {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError as exc:
            raise ConfigError(f"expected an integer, got {value!r}") from exc
    raise ConfigError(f"expected an integer, got {value!r}")


def _to_duration(value: object) -> float:
    """Convert a duration string, or a plain number of seconds."""
    if value is None:
        return 0.0
    if isinstance(value, bool):
        raise ConfigError(f"expected a duration, got {value!r}")
    if isinstance(value, (int, float)):
        return float(value)
    return parse_duration(value)  # type: ignore[arg-type]


@dataclass(frozen=True)
class _Setting:
    attr: str
    key: str
    env: str | None
    default: str | None
    convert: Callable[[object], object]
    required: bool = False


def _resolve(settings: tuple[_Setting, ...], section: Mapping, env: Mapping[str, str]) -> dict:
    values: dict[str, object] = {}
    for setting in settings:
        try:
            value = setting.convert(section.get(setting.key))
            if setting.env is not None and setting.env in env:
                value = setting.convert(env[setting.env])
            elif not value:
                if setting.required:
                    raise ConfigError("value is required but not provided")
                if setting.default is not None:
                    value = setting.convert(setting.default)
        except ConfigError as exc:
            raise ConfigError(f"{setting.key}: {exc}") from exc
        values[setting.attr] = value
    return values


def _section(data: Mapping, key: str) -> Mapping:
    value = data.get(key)
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ConfigError(f"section {key!r} must be a mapping")
    return value


def _read_file(path: str | os.PathLike) -> Mapping:
    try:
        with Path(path).open(encoding="utf-8") as fh:
            data = yaml.safe_load(fh)
    except OSError as exc:
        raise ConfigError(f"cannot read config {str(path)!r}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"cannot parse config {str(path)!r}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise ConfigError(f"config {str(path)!r} must hold a mapping")
    return data


@dataclass(frozen=True)
class HTTPConfig:
    """Address and request timeout (seconds) of the API HTTP server."""

    address: str
    timeout: float


@dataclass(frozen=True)
class ApiConfig:
    """Settings of the API gateway."""

    log_level: str
    http: HTTPConfig
    words_address: str
    update_address: str
    search_address: str
    admin_user: str
    admin_password: str
    token_ttl: float
    search_concurrency: int
    search_rate: int


@dataclass(frozen=True)
class BrokerConfig:
    """Address of the message broker."""

    address: str


@dataclass(frozen=True)
class SearchConfig:
    """Settings of the search service."""

    log_level: str
    address: str
    db_address: str
    words_address: str
    index_ttl: float
    broker: BrokerConfig


@dataclass(frozen=True)
class XKCDConfig:
    """Settings for fetching comics from the comic site."""

    url: str
    concurrency: int
    timeout: float
    check_period: float


@dataclass(frozen=True)
class UpdateConfig:
    """Settings of the update service."""

    log_level: str
    address: str
    xkcd: XKCDConfig
    db_address: str
    words_address: str
    broker: BrokerConfig


_LOG_LEVEL = _Setting("log_level", "log_level", "LOG_LEVEL", "DEBUG", _to_str)

_HTTP_SETTINGS = (
    _Setting("address", "address", "API_ADDRESS", "localhost:80", _to_str),
    _Setting("timeout", "timeout", "API_TIMEOUT", "5s", _to_duration),
)

_API_SETTINGS = (
    _LOG_LEVEL,
    _Setting("words_address", "words_address", "WORDS_ADDRESS", "words:81", _to_str),
    _Setting("update_address", "update_address", "UPDATE_ADDRESS", "update:82", _to_str),
    _Setting("search_address", "search_address", "SEARCH_ADDRESS", "search:83", _to_str),
    _Setting("admin_user", "admin_user", "ADMIN_USER", None, _to_str, required=True),
    _Setting("admin_password", "admin_password", "ADMIN_PASSWORD", None, _to_str, required=True),
    _Setting("token_ttl", "token_ttl", "TOKEN_TTL", "2m", _to_duration),
    _Setting("search_concurrency", "search_concurrency", "SEARCH_CONCURRENCY", "10", _to_int),
    _Setting("search_rate", "search_rate", "SEARCH_RATE", "100", _to_int),
)

_BROKER_SETTINGS = (
    _Setting("address", "address", "BROKER_ADDRESS", "nats://localhost:4222", _to_str),
)

_SEARCH_SETTINGS = (
    _LOG_LEVEL,
    _Setting("address", "search_address", "SEARCH_ADDRESS", "localhost:83", _to_str),
    _Setting("db_address", "db_address", "DB_ADDRESS", "localhost:82", _to_str),
    _Setting("words_address", "words_address", "WORDS_ADDRESS", "localhost:81", _to_str),
    _Setting("index_ttl", "index_ttl", "INDEX_TTL", "24h", _to_duration),
)

_XKCD_SETTINGS = (
    _Setting("url", "url", "XKCD_URL", "xkcd.com", _to_str),
    _Setting("concurrency", "concurrency", "XKCD_CONCURRENCY", "1", _to_int),
    _Setting("timeout", "timeout", "XKCD_TIMEOUT", "10s", _to_duration),
    _Setting("check_period", "check_period", "XKCD_CHECK_PERIOD", "1h", _to_duration),
)

_UPDATE_SETTINGS = (
    _LOG_LEVEL,
    _Setting("address", "update_address", "UPDATE_ADDRESS", "localhost:80", _to_str),
    _Setting("db_address", "db_address", "DB_ADDRESS", "localhost:82", _to_str),
    _Setting("words_address", "words_address", "WORDS_ADDRESS", "localhost:81", _to_str),
)


def _environment(env: Mapping[str, str] | None) -> Mapping[str, str]:
    return os.environ if env is None else env


def load_api_config(path: str | os.PathLike, env: Mapping[str, str] | None = None) -> ApiConfig:
    """Load the API gateway settings from ``path`` and ``env`` (default: os.environ)."""
    data = _read_file(path)
    env = _environment(env)
    http = HTTPConfig(**_resolve(_HTTP_SETTINGS, _section(data, "api_server"), env))
    return ApiConfig(http=http, **_resolve(_API_SETTINGS, data, env))


def load_search_config(
    path: str | os.PathLike, env: Mapping[str, str] | None = None
) -> SearchConfig:
    """Load the search service settings from ``path`` and ``env`` (default: os.environ)."""
    data = _read_file(path)
    env = _environment(env)
    broker = BrokerConfig(**_resolve(_BROKER_SETTINGS, _section(data, "broker"), env))
    return SearchConfig(broker=broker, **_resolve(_SEARCH_SETTINGS, data, env))


def load_update_config(
    path: str | os.PathLike, env: Mapping[str, str] | None = None
) -> UpdateConfig:
    """Load the update service settings from ``path`` and ``env`` (default: os.environ)."""
    data = _read_file(path)
    env = _environment(env)
    xkcd = XKCDConfig(**_resolve(_XKCD_SETTINGS, _section(data, "xkcd"), env))
    broker = BrokerConfig(**_resolve(_BROKER_SETTINGS, _section(data, "broker"), env))
    return UpdateConfig(xkcd=xkcd, broker=broker, **_resolve(_UPDATE_SETTINGS, data, env))