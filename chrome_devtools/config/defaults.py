"""
Default configuration values for chrome-devtools.

This module contains all default values used throughout the configuration system.
"""

# Environment variable prefix
ENV_PREFIX = "CDP_"

# Connection defaults
DEFAULT_COMMAND_TIMEOUT = None
DEFAULT_OPEN_TIMEOUT = 10.0
DEFAULT_MAX_MESSAGE_SIZE = 100 * 1024 * 1024  # 100MB, screenshots can be large
DEFAULT_PING_INTERVAL = 30.0
DEFAULT_PING_TIMEOUT = 10.0
DEFAULT_EVENT_QUEUE_SIZE = 1000

# Discovery defaults
DEFAULT_HTTP_TIMEOUT = 5.0
DEFAULT_DEBUGGING_HOST = "localhost"
DEFAULT_DEBUGGING_PORT = 9222

# Config file discovery
DEFAULT_CONFIG_FILENAME = "cdp.config"
DEFAULT_CONFIG_EXTENSIONS = [".json", ".yaml", ".yml", ".toml"]
DEFAULT_CONFIG_SEARCH_PATHS = [
    ".",
    "~/.config/chrome-devtools",
]
