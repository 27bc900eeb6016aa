"""Configuration system for remotely.

This module provides environment and TOML based configuration loading and
validation for remote runs.
"""

from ..errors import ConfigError
from .loader import find_config_file, load_config
from .schema import RemotelyConfig

__all__ = [
    "RemotelyConfig",
    "load_config",
    "find_config_file",
    "ConfigError",
]
