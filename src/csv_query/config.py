"""Runtime configuration.

Settings are merged from four layers, highest precedence first:

    1. command line flags
    2. ``CSV_*`` environment variables (e.g. ``CSV_FILE``, ``CSV_FIELD_COUNT``)
    3. an optional YAML config file (a top-level mapping of setting names)
    4. built-in defaults

The merged values are validated once and frozen into a ``Settings`` object
that is passed explicitly to the loader and the HTTP server.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from csv_query.core.errors import ConfigurationError

logger = logging.getLogger(__name__)

ENV_PREFIX = "CSV_"

DEFAULTS: Dict[str, Any] = {
    "file": None,
    "delimiter": ",",
    "field_count": 0,
    "has_header": True,
    "header": None,
    "indices": None,
    "numeric": True,
    "encoding": "utf-8",
    "host": "0.0.0.0",
    "port": 8080,
    "shutdown_timeout": 5.0,
    "progress": False,
}

# Older deployments spell the index setting "indicies"
_ALIASES = {
    "indicies": "indices",
}

_TRUE = {"1", "true", "yes", "on", "t", "y"}
_FALSE = {"0", "false", "no", "off", "f", "n"}

# Characters the csv reader cannot use as a field separator
_INVALID_DELIMITERS = {'"', "\r", "\n"}


@dataclass(frozen=True)
class Settings:
    """Validated configuration for one run."""

    file: Path
    delimiter: str = ","
    field_count: int = 0
    has_header: bool = True
    header: Optional[str] = None
    indices: Optional[str] = None
    numeric: bool = True
    encoding: str = "utf-8"
    host: str = "0.0.0.0"
    port: int = 8080
    shutdown_timeout: float = 5.0
    progress: bool = False


def _canonical_key(key: str) -> str:
    name = str(key).strip().lower().replace("-", "_")
    return _ALIASES.get(name, name)


def _to_bool(name: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ConfigurationError(f"{name}: expected a boolean, got {value!r}")


def _to_int(name: str, value: Any) -> int:
    if isinstance(value, bool):
        raise ConfigurationError(f"{name}: expected an integer, got {value!r}")
    try:
        return int(str(value).strip())
    except ValueError:
        raise ConfigurationError(f"{name}: expected an integer, got {value!r}") from None


def _to_float(name: str, value: Any) -> float:
    try:
        return float(str(value).strip())
    except ValueError:
        raise ConfigurationError(f"{name}: expected a number, got {value!r}") from None


def _decode_delimiter(value: Any) -> str:
    text = str(value)
    if text == "\\t":
        text = "\t"
    if len(text) != 1 or text in _INVALID_DELIMITERS:
        raise ConfigurationError(f"{value!r} is not a valid delimiter, expected a single character")
    return text


def load_config_file(path: Path) -> Dict[str, Any]:
    """Read settings from a YAML file containing a top-level mapping."""
    if not path.exists():
        raise ConfigurationError(f"Config file not found: {path}")
    try:
        with path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"could not parse config file {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigurationError(f"config file {path} must contain a mapping of settings")
    out: Dict[str, Any] = {}
    for key, value in data.items():
        name = _canonical_key(key)
        if name not in DEFAULTS:
            raise ConfigurationError(f"unknown setting {key!r} in config file {path}")
        out[name] = value
    return out


def settings_from_env(environ: Mapping[str, str]) -> Dict[str, Any]:
    """Collect ``CSV_*`` environment variables that name a known setting."""
    out: Dict[str, Any] = {}
    for key, value in environ.items():
        if not key.startswith(ENV_PREFIX):
            continue
        name = _canonical_key(key[len(ENV_PREFIX):])
        if name in DEFAULTS:
            out[name] = value
    return out


def build_settings(values: Mapping[str, Any]) -> Settings:
    """Validate merged raw values and freeze them into ``Settings``."""
    if not values.get("file"):
        raise ConfigurationError("no CSV file specified")

    field_count = _to_int("field_count", values["field_count"])
    if field_count < 0:
        raise ConfigurationError(f"field_count must not be negative, got {field_count}")

    port = _to_int("port", values["port"])
    if not 0 <= port <= 65535:
        raise ConfigurationError(f"port out of range: {port}")

    shutdown_timeout = _to_float("shutdown_timeout", values["shutdown_timeout"])
    if shutdown_timeout < 0:
        raise ConfigurationError(f"shutdown_timeout must not be negative, got {shutdown_timeout}")

    return Settings(
        file=Path(str(values["file"])),
        delimiter=_decode_delimiter(values["delimiter"]),
        field_count=field_count,
        has_header=_to_bool("has_header", values["has_header"]),
        header=str(values["header"]) if values.get("header") else None,
        indices=str(values["indices"]) if values.get("indices") else None,
        numeric=_to_bool("numeric", values["numeric"]),
        encoding=str(values["encoding"]),
        host=str(values["host"]),
        port=port,
        shutdown_timeout=shutdown_timeout,
        progress=_to_bool("progress", values["progress"]),
    )


def load_settings(
    overrides: Optional[Mapping[str, Any]] = None,
    *,
    environ: Optional[Mapping[str, str]] = None,
    config_path: Optional[Path] = None,
) -> Settings:
    """Merge defaults, config file, environment and explicit overrides.

    Args:
        overrides: Values from the command line; ``None`` entries are ignored.
        environ: Environment mapping, defaults to ``os.environ``.
        config_path: Optional YAML config file.

    Raises:
        ConfigurationError: A value is missing or invalid.
    """
    values: Dict[str, Any] = dict(DEFAULTS)
    if config_path is not None:
        values.update(load_config_file(config_path))
    values.update(settings_from_env(os.environ if environ is None else environ))
    for key, value in (overrides or {}).items():
        name = _canonical_key(key)
        if name in DEFAULTS and value is not None:
            values[name] = value
    return build_settings(values)


def log_settings(settings: Settings) -> None:
    """Log the effective configuration."""
    logger.info("Using %s as the input CSV file", settings.file)
    logger.info("Using %r as the delimiter", settings.delimiter)
    if settings.field_count == 0:
        logger.info("Field count was not provided, it will be detected automatically")
    else:
        logger.info("Using %d as the field count", settings.field_count)
    if settings.has_header:
        logger.info("Assuming the CSV file has a header")
    else:
        logger.info("Assuming the CSV file has no header")
    if not settings.numeric:
        logger.info("Numeric conversion of results is disabled")


__all__ = [
    "ENV_PREFIX",
    "DEFAULTS",
    "Settings",
    "load_config_file",
    "settings_from_env",
    "build_settings",
    "load_settings",
    "log_settings",
]
