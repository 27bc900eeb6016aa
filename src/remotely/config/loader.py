"""TOML and environment configuration loading and validation.

Values from the environment override the config file, so existing scripts
that only export REMOTELY_HOST and friends keep working without one.
"""

import os
import shlex
import tomllib
from pathlib import Path
from typing import Any, Mapping, Optional

from ..errors import ConfigError
from .schema import RemotelyConfig

# Config file search paths in priority order
CONFIG_PATHS = [
    Path.home() / ".config" / "remotely" / "config.toml",
    Path("/etc/remotely/config.toml"),
]


def find_config_file(
    explicit_path: str | None = None, environ: Optional[Mapping[str, str]] = None
) -> Path | None:
    """Find configuration file.

    Args:
        explicit_path: Explicitly specified config path (highest priority)
        environ: Environment to read REMOTELY_CONFIG from

    Returns:
        Path to config file, or None if not found
    """
    environ = os.environ if environ is None else environ
    explicit_path = explicit_path or environ.get("REMOTELY_CONFIG")
    if explicit_path:
        path = Path(explicit_path)
        if path.exists():
            return path
        raise ConfigError(f"Config file not found: {explicit_path}")

    for path in CONFIG_PATHS:
        if path.exists():
            return path

    return None


def _as_option_list(value: Any, key: str) -> list[str]:
    if isinstance(value, str):
        return shlex.split(value)
    if isinstance(value, list) and all(isinstance(v, str) for v in value):
        return list(value)
    raise ConfigError(f"'{key}' must be a string or a list of strings")


def _as_timeout(value: Any, key: str) -> int:
    try:
        timeout = int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"'{key}' must be an integer number of seconds: {value!r}")
    if timeout <= 0:
        raise ConfigError(f"'{key}' must be positive: {timeout}")
    return timeout


def _parse_file(data: dict[str, Any]) -> dict[str, Any]:
    """Translate a parsed TOML document into RemotelyConfig keyword args."""
    kwargs: dict[str, Any] = {}

    if "host" in data:
        if not isinstance(data["host"], str):
            raise ConfigError("'host' must be a string")
        kwargs["host"] = data["host"]
    if "ssh_options" in data:
        kwargs["ssh_options"] = _as_option_list(data["ssh_options"], "ssh_options")
    if "connection_timeout" in data:
        kwargs["connection_timeout"] = _as_timeout(
            data["connection_timeout"], "connection_timeout"
        )
    for key in ("files_dir", "backup_dir", "control_dir"):
        if key in data:
            kwargs[key] = Path(data[key]).expanduser()

    rsync = data.get("rsync", {})
    if not isinstance(rsync, dict):
        raise ConfigError("[rsync] must be a table")
    for key in ("upload_options", "download_options"):
        if key in rsync:
            kwargs[key] = _as_option_list(rsync[key], f"rsync.{key}")

    return kwargs


def _parse_environment(environ: Mapping[str, str]) -> dict[str, Any]:
    kwargs: dict[str, Any] = {}

    if environ.get("REMOTELY_HOST"):
        kwargs["host"] = environ["REMOTELY_HOST"]
    if environ.get("REMOTELY_SSH_OPTIONS"):
        kwargs["ssh_options"] = shlex.split(environ["REMOTELY_SSH_OPTIONS"])
    if environ.get("REMOTELY_CONNECTION_TIMEOUT"):
        kwargs["connection_timeout"] = _as_timeout(
            environ["REMOTELY_CONNECTION_TIMEOUT"], "REMOTELY_CONNECTION_TIMEOUT"
        )
    if environ.get("LDIR"):
        kwargs["files_dir"] = Path(environ["LDIR"]).expanduser()
    if environ.get("BACKUP_DIR"):
        kwargs["backup_dir"] = Path(environ["BACKUP_DIR"]).expanduser()
    if environ.get("REMOTELY_CONTROL_DIR"):
        kwargs["control_dir"] = Path(environ["REMOTELY_CONTROL_DIR"]).expanduser()

    return kwargs


def _validate_config(config: RemotelyConfig) -> list[str]:
    """Validate configuration and return list of warnings."""
    warnings = []

    if not config.host:
        warnings.append("No remote host configured (REMOTELY_HOST)")
    if not config.files_dir.is_dir():
        warnings.append(f"Files directory does not exist: {config.files_dir}")
    if config.backup_dir is not None and config.backup_dir.exists():
        if not config.backup_dir.is_dir():
            warnings.append(f"Backup root is not a directory: {config.backup_dir}")
    if any("--delete" in opt for opt in config.download_options):
        warnings.append(
            "download_options contain --delete; snapshots are never pruned by rsync"
        )

    return warnings


def load_config(
    path: Path | str | None = None, environ: Optional[Mapping[str, str]] = None
) -> tuple[RemotelyConfig, list[str]]:
    """Load configuration from an optional TOML file and the environment.

    Args:
        path: Path to configuration file, or None for environment only
        environ: Environment mapping (defaults to os.environ)

    Returns:
        Tuple of (RemotelyConfig object, list of warnings)

    Raises:
        ConfigError: If config is invalid or cannot be parsed
    """
    environ = os.environ if environ is None else environ
    kwargs: dict[str, Any] = {}

    if path is not None:
        try:
            with open(path, "rb") as f:
                data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(f"Invalid TOML syntax: {e}")
        except OSError as e:
            raise ConfigError(f"Cannot read config file: {e}")
        kwargs.update(_parse_file(data))

    kwargs.update(_parse_environment(environ))
    config = RemotelyConfig(**kwargs)

    return config, _validate_config(config)


def generate_example_config() -> str:
    """Generate example configuration file content."""
    return """# remotely configuration
# Environment variables (REMOTELY_HOST, LDIR, BACKUP_DIR, ...) override these.

host = "root@example.com"
# ssh_options = ["-p", "2222", "-i", "~/.ssh/deploy"]
connection_timeout = 200        # seconds the shared connection stays up idle

files_dir = "files"             # templates (*.m4) and files to upload
# backup_dir = "/srv/backups"   # backup sets are created below this

[rsync]
upload_options = ["-rtpl", "--info=progress2"]
download_options = ["-rtpL", "--info=progress2"]
"""
