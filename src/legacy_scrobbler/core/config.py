"""
Configuration management for Legacy Scrobbler
"""

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from loguru import logger

DEFAULT_SERVER_URL = "https://api.legacyscrobbler.software"


@dataclass
class DeviceConfig:
    """Configuration for the mounted iPod."""

    # Directory holding iTunesDB / iTunesCDB / Play Counts
    mount_path: str = "/media/ipod/iPod_Control/iTunes/"
    # Pin the legacy timezone correction (seconds, UTC minus local).
    # None = use the machine's offset at decode time.
    utc_offset_seconds: Optional[int] = None
    scan_window_size: int = 1024 * 1024  # 1 MiB read window for iTunesDB scanning

    def validate(self) -> None:
        """Validate device configuration values.

        Raises:
            ValueError: If configuration values are invalid
        """
        if self.scan_window_size < 16:
            raise ValueError(
                f"scan_window_size must be at least 16 bytes, got {self.scan_window_size}"
            )


@dataclass
class ScrobblerConfig:
    """Configuration for the scrobble service."""

    server_url: str = DEFAULT_SERVER_URL
    request_timeout: int = 30  # seconds, auth/session/userinfo calls
    item_timeout: int = 30  # seconds, per-track scrobble requests
    batch_timeout: int = 120  # seconds, batched scrobble requests
    batch_size: int = 50  # events per POST /scrobble when batching


@dataclass
class LoggingConfig:
    """Configuration for logging."""

    level: str = "INFO"  # DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_file: Optional[str] = (
        None  # Custom log file path (default: ~/.local/share/legacy-scrobbler/legacy-scrobbler.log)
    )
    console_output: bool = False  # Also output to stderr (for debugging)


@dataclass
class Config:
    """Main configuration object."""

    device: DeviceConfig = field(default_factory=DeviceConfig)
    scrobbler: ScrobblerConfig = field(default_factory=ScrobblerConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def get_config_dir() -> Path:
    """Get the configuration directory path."""
    config_home = os.environ.get("XDG_CONFIG_HOME")
    if config_home:
        return Path(config_home) / "legacy-scrobbler"
    return Path.home() / ".config" / "legacy-scrobbler"


def _find_project_config() -> Optional[Path]:
    """Find config.toml in project root by looking for pyproject.toml.

    Returns:
        Path to config.toml in project root, or None if not found
    """
    current = Path(__file__).resolve().parent
    for parent in [current] + list(current.parents):
        if (parent / "pyproject.toml").exists():
            config_path = parent / "config.toml"
            if config_path.exists():
                return config_path
            # Found project root but no config.toml there
            return None
    return None


def get_config_path() -> Path:
    """Get the main configuration file path.

    Checks for config.toml in the following order:
    1. Project root (detected via pyproject.toml) - for development
    2. Current working directory
    3. XDG_CONFIG_HOME/legacy-scrobbler (or ~/.config/legacy-scrobbler)
    """
    project_config = _find_project_config()
    if project_config:
        return project_config

    local_config = Path.cwd() / "config.toml"
    if local_config.exists():
        return local_config

    return get_config_dir() / "config.toml"


def get_data_dir() -> Path:
    """Get the data directory path."""
    data_home = os.environ.get("XDG_DATA_HOME")
    if data_home:
        return Path(data_home) / "legacy-scrobbler"
    return Path.home() / ".local" / "share" / "legacy-scrobbler"


def get_log_file_path(config: Config) -> Path:
    """Resolve the log file location from config, falling back to the data dir."""
    if config.logging.log_file:
        return Path(config.logging.log_file)
    return get_data_dir() / "legacy-scrobbler.log"


def create_default_config() -> str:
    """Create a default configuration TOML content."""
    return f"""
# Legacy Scrobbler Configuration

[device]
# Directory containing iTunesDB or iTunesCDB and "Play Counts" (keep the trailing slash)
mount_path = "/media/ipod/iPod_Control/iTunes/"

# Timezone correction applied to iPod timestamps, in seconds (UTC minus local).
# Leave unset to use this machine's current offset.
# utc_offset_seconds = -3600

# Read window size for scanning iTunesDB, in bytes
scan_window_size = 1048576

[scrobbler]
# Scrobble relay server
server_url = "{DEFAULT_SERVER_URL}"

# Timeout for authentication requests (seconds)
request_timeout = 30

# Timeout for per-track scrobble requests (seconds)
item_timeout = 30

# Timeout for batched scrobble requests (seconds)
batch_timeout = 120

# Number of plays per batch request
batch_size = 50

[logging]
# Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
level = "INFO"

# Custom log file path (default: ~/.local/share/legacy-scrobbler/legacy-scrobbler.log)
# log_file = "/path/to/custom/legacy-scrobbler.log"

# Also output logs to stderr (useful for debugging)
console_output = false
""".strip()


def _apply_env_overrides(config: Config) -> Config:
    """Override TOML values with environment variables."""
    server_url = os.environ.get("LEGACY_SCROBBLER_SERVER_URL")
    ipod_path = os.environ.get("LEGACY_SCROBBLER_IPOD_PATH")

    if server_url:
        config.scrobbler.server_url = server_url
    if ipod_path:
        config.device.mount_path = ipod_path
    return config


def load_config() -> Config:
    """Load configuration from file or create default.

    Environment variables override TOML values:
    - LEGACY_SCROBBLER_SERVER_URL
    - LEGACY_SCROBBLER_IPOD_PATH
    """
    from dotenv import load_dotenv

    env_path = get_config_dir() / ".env"
    if env_path.exists():
        load_dotenv(env_path)

    config_path = get_config_path()

    if not config_path.exists():
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, "w", encoding="utf-8") as f:
            f.write(create_default_config())
        logger.info(f"Created default configuration at: {config_path}")
        return _apply_env_overrides(Config())

    try:
        with open(config_path, "rb") as f:
            toml_data = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        logger.warning(f"Error loading configuration from {config_path}: {e}")
        logger.warning("Using default configuration.")
        return _apply_env_overrides(Config())

    config = Config()

    if "device" in toml_data:
        device_data = toml_data["device"]
        config.device = DeviceConfig(
            mount_path=device_data.get("mount_path", config.device.mount_path),
            utc_offset_seconds=device_data.get("utc_offset_seconds"),
            scan_window_size=device_data.get(
                "scan_window_size", config.device.scan_window_size
            ),
        )
        try:
            config.device.validate()
        except ValueError as e:
            logger.warning(f"Invalid device configuration: {e}")
            logger.warning("Using default device configuration.")
            config.device = DeviceConfig()

    if "scrobbler" in toml_data:
        scrobbler_data = toml_data["scrobbler"]
        config.scrobbler = ScrobblerConfig(
            server_url=scrobbler_data.get("server_url", config.scrobbler.server_url),
            request_timeout=scrobbler_data.get(
                "request_timeout", config.scrobbler.request_timeout
            ),
            item_timeout=scrobbler_data.get(
                "item_timeout", config.scrobbler.item_timeout
            ),
            batch_timeout=scrobbler_data.get(
                "batch_timeout", config.scrobbler.batch_timeout
            ),
            batch_size=scrobbler_data.get("batch_size", config.scrobbler.batch_size),
        )

    if "logging" in toml_data:
        logging_data = toml_data["logging"]
        log_file = logging_data.get("log_file")
        if log_file:
            log_file = str(Path(log_file).expanduser())
        config.logging = LoggingConfig(
            level=logging_data.get("level", config.logging.level).upper(),
            log_file=log_file,
            console_output=logging_data.get(
                "console_output", config.logging.console_output
            ),
        )

    return _apply_env_overrides(config)


def save_config(config: Config) -> bool:
    """Save configuration to file."""
    config_path = get_config_path()

    toml_content = f"""# Legacy Scrobbler Configuration

[device]
mount_path = "{config.device.mount_path}"
scan_window_size = {config.device.scan_window_size}"""

    if config.device.utc_offset_seconds is not None:
        toml_content += f"\nutc_offset_seconds = {config.device.utc_offset_seconds}"

    toml_content += f"""

[scrobbler]
server_url = "{config.scrobbler.server_url}"
request_timeout = {config.scrobbler.request_timeout}
item_timeout = {config.scrobbler.item_timeout}
batch_timeout = {config.scrobbler.batch_timeout}
batch_size = {config.scrobbler.batch_size}

[logging]
level = "{config.logging.level}"
console_output = {str(config.logging.console_output).lower()}"""

    if config.logging.log_file:
        toml_content += f'\nlog_file = "{config.logging.log_file}"'

    toml_content += "\n"

    try:
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, "w", encoding="utf-8") as f:
            f.write(toml_content)
        return True
    except OSError as e:
        logger.error(f"Error saving configuration to {config_path}: {e}")
        return False


def ensure_directories() -> None:
    """Ensure all necessary directories exist."""
    get_config_dir().mkdir(parents=True, exist_ok=True)
    get_data_dir().mkdir(parents=True, exist_ok=True)
