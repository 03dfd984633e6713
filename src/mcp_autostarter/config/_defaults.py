"""Default configuration values.

This module defines the built-in default configuration values that are used
when the configuration file does not provide them.

Note: DEFAULT_CONFIG is a plain dict for type compatibility with deep_merge,
which copies its inputs.
"""

from typing import Any

DEFAULT_CONFIG: dict[str, Any] = {  # pyright: ignore[reportExplicitAny]
    "servers": {},
    "supervisor": {
        "health_check_interval": 30.0,
        "max_retries": 3,
        "restart_delay": 2.0,
        "grace_period": 2.0,
        "check_timeout": 5.0,
    },
    "logging": {
        "level": "info",
        "format": "json",
        "file": "",
        "output_file": "",
    },
}
