"""
Configuration module for chrome-devtools.

Connection options are validated with Pydantic and can come from code,
configuration files (JSON, YAML, TOML) or environment variables.

Example usage:
    from chrome_devtools.config import ConnectionOptions, load_config

    # Load cdp.config.{json,yaml,toml} with environment overrides
    options = load_config()

    # Create programmatically
    options = ConnectionOptions(command_timeout=15.0, event_queue_size=200)

Environment variables:
    CDP_CONNECTION_COMMAND_TIMEOUT=15
    CDP_CONNECTION_EVENT_QUEUE_SIZE=200
    CDP_CONNECTION_PING_INTERVAL=none
"""

from .defaults import (
    DEFAULT_COMMAND_TIMEOUT,
    DEFAULT_DEBUGGING_HOST,
    DEFAULT_DEBUGGING_PORT,
    DEFAULT_EVENT_QUEUE_SIZE,
    DEFAULT_HTTP_TIMEOUT,
    DEFAULT_MAX_MESSAGE_SIZE,
    DEFAULT_OPEN_TIMEOUT,
    ENV_PREFIX,
)
from .env import (
    ENV_MAPPINGS,
    get_env,
    get_env_bool,
    get_env_float,
    get_env_key,
    load_env_config,
)
from .loader import (
    ConfigurationError,
    find_config_file,
    load_config,
    load_file,
    merge_configs,
)
from .options import ConnectionOptions

__all__ = [
    "ConnectionOptions",
    # Loader functions
    "load_config",
    "load_file",
    "find_config_file",
    "merge_configs",
    "ConfigurationError",
    # Environment functions
    "get_env",
    "get_env_bool",
    "get_env_float",
    "get_env_key",
    "load_env_config",
    "ENV_MAPPINGS",
    "ENV_PREFIX",
    # Default values
    "DEFAULT_COMMAND_TIMEOUT",
    "DEFAULT_OPEN_TIMEOUT",
    "DEFAULT_MAX_MESSAGE_SIZE",
    "DEFAULT_EVENT_QUEUE_SIZE",
    "DEFAULT_HTTP_TIMEOUT",
    "DEFAULT_DEBUGGING_HOST",
    "DEFAULT_DEBUGGING_PORT",
]
