"""Core infrastructure layer - no domain dependencies.

This module provides foundation-level services:
- Configuration management (TOML)
- Logging and user-facing output (Loguru)
- Console management (Rich)
"""

from .config import (
    Config,
    DeviceConfig,
    LoggingConfig,
    ScrobblerConfig,
    create_default_config,
    ensure_directories,
    get_config_dir,
    get_config_path,
    get_data_dir,
    get_log_file_path,
    load_config,
    save_config,
)
from .console import get_console, print_table, safe_print
from .output import log, set_echo, setup_loguru

__all__ = [
    # Config
    "Config",
    "DeviceConfig",
    "LoggingConfig",
    "ScrobblerConfig",
    "create_default_config",
    "ensure_directories",
    "get_config_dir",
    "get_config_path",
    "get_data_dir",
    "get_log_file_path",
    "load_config",
    "save_config",
    # Console
    "get_console",
    "print_table",
    "safe_print",
    # Output
    "log",
    "set_echo",
    "setup_loguru",
]
