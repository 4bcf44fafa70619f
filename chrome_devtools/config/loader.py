"""
Configuration file loader for chrome-devtools.

Connection options can live in a ``cdp.config`` file (JSON, YAML or TOML)
under a ``connection`` table. Environment variables and keyword overrides
are layered on top before validation.
"""

import json
import tomllib
from pathlib import Path
from typing import Any, Callable, Optional, Union

import yaml
from pydantic import ValidationError

from .defaults import (
    DEFAULT_CONFIG_EXTENSIONS,
    DEFAULT_CONFIG_FILENAME,
    DEFAULT_CONFIG_SEARCH_PATHS,
)
from .env import load_env_config
from .options import ConnectionOptions


class ConfigurationError(Exception):
    """Configuration loading or parsing error."""


def _parse_json(text: str) -> Any:
    return json.loads(text)


def _parse_yaml(text: str) -> Any:
    return yaml.safe_load(text) or {}


_PARSERS: dict[str, Callable[[str], Any]] = {
    ".json": _parse_json,
    ".yaml": _parse_yaml,
    ".yml": _parse_yaml,
    ".toml": tomllib.loads,
}

_PARSE_ERRORS = (json.JSONDecodeError, yaml.YAMLError, tomllib.TOMLDecodeError)


def load_file(path: Union[str, Path]) -> dict[str, Any]:
    """Read one configuration file, picking the parser by extension.

    Raises:
        ConfigurationError: If the file is missing, has an unsupported
            extension, cannot be parsed or does not hold a mapping.
    """
    path = Path(path)
    parser = _PARSERS.get(path.suffix.lower())
    if parser is None:
        raise ConfigurationError(f"Unsupported configuration format: {path.suffix}")

    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise ConfigurationError(f"Configuration file not found: {path}") from None

    try:
        data = parser(text)
    except _PARSE_ERRORS as e:
        raise ConfigurationError(f"Failed to parse {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration root must be a mapping: {path}")
    return data


def find_config_file(
    filename: str = DEFAULT_CONFIG_FILENAME,
    search_paths: Optional[list[str]] = None,
    extensions: Optional[list[str]] = None,
) -> Optional[Path]:
    """Return the first ``<dir>/<filename><ext>`` that exists, or None."""
    for directory in search_paths if search_paths is not None else DEFAULT_CONFIG_SEARCH_PATHS:
        base = Path(directory).expanduser()
        for ext in extensions if extensions is not None else DEFAULT_CONFIG_EXTENSIONS:
            candidate = base / f"{filename}{ext}"
            if candidate.is_file():
                return candidate
    return None


def merge_configs(*configs: dict[str, Any]) -> dict[str, Any]:
    """Deep merge configuration dictionaries; later ones take precedence."""
    result: dict[str, Any] = {}

    for config in configs:
        _deep_merge(result, config)

    return result


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> None:
    for key, value in override.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value


def load_config(
    path: Optional[Union[str, Path]] = None,
    *,
    load_env: bool = True,
    search_paths: Optional[list[str]] = None,
    **overrides: Any,
) -> ConnectionOptions:
    """Load connection options from all sources.

    Priority (highest to lowest):
    1. Keyword overrides
    2. Environment variables
    3. Configuration file (``connection`` section)
    4. Default values

    Args:
        path: Explicit config file; searched for when omitted
        load_env: Whether to apply CDP_* environment variables
        search_paths: Directories to search when ``path`` is omitted
        **overrides: Option values that win over every other source

    Returns:
        Validated connection options

    Raises:
        ConfigurationError: If a file cannot be read or values are invalid
    """
    configs: list[dict[str, Any]] = []

    config_path = Path(path) if path else find_config_file(search_paths=search_paths)
    if config_path is not None:
        configs.append(load_file(config_path))

    if load_env:
        try:
            configs.append(load_env_config())
        except ValueError as e:
            raise ConfigurationError(f"Invalid CDP_ environment variable: {e}") from e

    if overrides:
        configs.append({"connection": overrides})

    merged = merge_configs(*configs)
    try:
        return ConnectionOptions(**merged.get("connection", {}))
    except ValidationError as e:
        raise ConfigurationError(f"Invalid connection options: {e}") from e
