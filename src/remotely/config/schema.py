"""Configuration schema definitions using dataclasses."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from ..errors import ConfigError
from ..sync import DEFAULT_DOWNLOAD_OPTIONS, DEFAULT_UPLOAD_OPTIONS, SyncOptions

# Environment variable backing each field, used in error messages
ENV_VARS = {
    "host": "REMOTELY_HOST",
    "ssh_options": "REMOTELY_SSH_OPTIONS",
    "connection_timeout": "REMOTELY_CONNECTION_TIMEOUT",
    "files_dir": "LDIR",
    "backup_dir": "BACKUP_DIR",
    "control_dir": "REMOTELY_CONTROL_DIR",
}


@dataclass
class RemotelyConfig:
    """Settings for one run against one remote host.

    Attributes:
        host: ssh destination of all remote operations
        ssh_options: Extra arguments appended to every ssh invocation
        connection_timeout: Seconds the master connection persists unused
        files_dir: Local tree holding templates and files to upload
        backup_dir: Root directory of all backup sets
        control_dir: Directory for the ssh control socket
        upload_options: Default rsync options when uploading
        download_options: Default rsync options when backing up
    """

    host: Optional[str] = None
    ssh_options: list[str] = field(default_factory=list)
    connection_timeout: int = 200
    files_dir: Path = field(default_factory=lambda: Path("files"))
    backup_dir: Optional[Path] = None
    control_dir: Optional[Path] = None
    upload_options: list[str] = field(
        default_factory=lambda: list(DEFAULT_UPLOAD_OPTIONS)
    )
    download_options: list[str] = field(
        default_factory=lambda: list(DEFAULT_DOWNLOAD_OPTIONS)
    )

    def require(self, name: str) -> Any:
        """Return a field that must be set, or raise ConfigError."""
        value = getattr(self, name)
        if value is None or value == "":
            var = ENV_VARS.get(name, name)
            raise ConfigError(f"Missing required environment variable {var}")
        return value

    @property
    def sync_options(self) -> SyncOptions:
        return SyncOptions(
            upload=list(self.upload_options), download=list(self.download_options)
        )
