"""
Environment variable support for chrome-devtools configuration.

Every ``ConnectionOptions`` field can be set through a ``CDP_CONNECTION_*``
variable; values are converted using the field's annotation.
"""

import os
from typing import Any, Optional, TypeVar, Union, get_args, get_origin

from .defaults import ENV_PREFIX
from .options import ConnectionOptions

T = TypeVar("T")

_NONE_VALUES = ("none", "null", "")
_TRUE_VALUES = ("true", "1", "yes", "on", "enabled")


def get_env_key(key: str, prefix: str = ENV_PREFIX) -> str:
    """Convert a dotted key such as ``connection.command_timeout`` to
    ``CDP_CONNECTION_COMMAND_TIMEOUT``."""
    return f"{prefix}{key.upper().replace('.', '_').replace('-', '_')}"


def parse_bool(value: str) -> bool:
    return value.strip().lower() in _TRUE_VALUES


def parse_value(value: str, target_type: Any) -> Any:
    """Convert a raw variable value to ``target_type``.

    ``Optional[X]`` accepts ``none``/``null``/empty as None and otherwise
    parses as ``X``. Unknown types are returned as the raw string.
    """
    if get_origin(target_type) is Union:
        args = get_args(target_type)
        if type(None) in args and value.strip().lower() in _NONE_VALUES:
            return None
        concrete = [t for t in args if t is not type(None)]
        return parse_value(value, concrete[0]) if concrete else value

    if target_type is bool:
        return parse_bool(value)
    if target_type in (int, float):
        return target_type(value.strip())
    return value


def get_env(
    key: str,
    default: Optional[T] = None,
    target_type: Optional[Any] = None,
    prefix: str = ENV_PREFIX,
) -> Optional[Union[T, str]]:
    """Read ``key`` from the environment.

    The value is parsed as ``target_type`` when given, otherwise as the type
    of ``default``. Unset variables yield ``default``.
    """
    raw = os.environ.get(get_env_key(key, prefix))
    if raw is None:
        return default

    if target_type is None and default is not None:
        target_type = type(default)
    return raw if target_type is None else parse_value(raw, target_type)


def get_env_bool(key: str, default: bool = False, prefix: str = ENV_PREFIX) -> bool:
    result = get_env(key, default, bool, prefix)
    return result if isinstance(result, bool) else default


def get_env_float(key: str, default: float = 0.0, prefix: str = ENV_PREFIX) -> float:
    result = get_env(key, default, float, prefix)
    return result if isinstance(result, (int, float)) else default


# "connection.<field>" -> (variable name, field annotation)
ENV_MAPPINGS: dict[str, tuple[str, Any]] = {
    f"connection.{name}": (get_env_key(f"connection.{name}"), field.annotation)
    for name, field in ConnectionOptions.model_fields.items()
}


def load_env_config() -> dict[str, Any]:
    """Collect the set ``CDP_CONNECTION_*`` variables.

    Returns:
        ``{"connection": {...}}`` holding only the variables that are set.
    """
    connection: dict[str, Any] = {}

    for key, (env_var, target_type) in ENV_MAPPINGS.items():
        raw = os.environ.get(env_var)
        if raw is not None:
            connection[key.split(".", 1)[1]] = parse_value(raw, target_type)

    return {"connection": connection}
