"""Error kinds and exceptions raised by remotely.

Every core operation fails fast by raising one of these; nothing is retried.
The CLI turns any of them into an error message and exit status 1.
"""

from enum import Enum
from typing import Optional, Sequence


class ErrorKind(Enum):
    """Category of a fatal error."""

    CONFIGURATION = "configuration"  # missing variable, bad usage
    TRANSPORT = "transport"  # ssh master could not be established
    REMOTE_COMMAND = "remote-command"  # remote command exited non-zero
    SYNC = "sync"  # rsync upload or backup failed
    SNAPSHOT_COLLISION = "snapshot-collision"  # new snapshot dir already exists
    TEMPLATE = "template"  # m4 rendering failed


class RemotelyError(Exception):
    """Base class for all fatal remotely errors."""

    kind = ErrorKind.CONFIGURATION

    def __init__(self, message: str, kind: Optional[ErrorKind] = None) -> None:
        super().__init__(message)
        if kind is not None:
            self.kind = kind

    @property
    def message(self) -> str:
        return str(self)


class ConfigError(RemotelyError):
    """Configuration loading, validation or usage error."""

    kind = ErrorKind.CONFIGURATION


class TransportError(RemotelyError):
    """The multiplexed SSH session could not be established."""

    kind = ErrorKind.TRANSPORT


class RemoteCommandError(RemotelyError):
    """A remote command returned a non-zero exit status."""

    kind = ErrorKind.REMOTE_COMMAND

    def __init__(
        self, args_: Sequence[str], returncode: int, stderr: str = ""
    ) -> None:
        self.args_ = list(args_)
        self.returncode = returncode
        self.stderr = stderr
        message = f"Remote command failed (exit {returncode}): {' '.join(self.args_)}"
        if stderr.strip():
            message += f"\n{stderr.strip()}"
        super().__init__(message)


class SyncError(RemotelyError):
    """rsync exited with a non-zero status."""

    kind = ErrorKind.SYNC

    def __init__(self, message: str, returncode: int = 1) -> None:
        self.returncode = returncode
        super().__init__(message)


class SnapshotCollisionError(RemotelyError):
    """The directory for a new snapshot already exists."""

    kind = ErrorKind.SNAPSHOT_COLLISION


class TemplateError(RemotelyError):
    """An m4 template could not be rendered."""

    kind = ErrorKind.TEMPLATE
