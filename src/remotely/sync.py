"""rsync wrappers for both transfer directions.

Upload and download keep separate default option sets:

- upload: recursive, times, permissions and symlinks kept as symlinks, so
  a configuration tree lands on the remote host as it is laid out locally.
- download (backups): recursive, times, permissions, with symlinks
  dereferenced so every snapshot is self-contained.

Neither direction deletes files missing from the source.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from .__logger__ import logger
from .errors import ConfigError, SyncError
from .runner import RunResult
from .sshutil.master import ConnectionContext

DEFAULT_UPLOAD_OPTIONS = ["-rtpl", "--info=progress2"]
DEFAULT_DOWNLOAD_OPTIONS = ["-rtpL", "--info=progress2"]


@dataclass
class SyncOptions:
    """Default rsync options for each direction."""

    upload: List[str] = field(default_factory=lambda: list(DEFAULT_UPLOAD_OPTIONS))
    download: List[str] = field(
        default_factory=lambda: list(DEFAULT_DOWNLOAD_OPTIONS)
    )


def _run_rsync(ctx: ConnectionContext, cmd: Sequence[str]) -> RunResult:
    ctx.open()
    logger.debug("rsync: %s", cmd)
    result = ctx.runner.run(cmd, env=ctx.environment())
    if not result.ok:
        raise SyncError(
            f"rsync failed with exit status {result.returncode}: {' '.join(cmd)}",
            returncode=result.returncode,
        )
    return result


def rsync_up(
    ctx: ConnectionContext,
    local_path: str,
    remote_path: str,
    *extra: str,
    options: Optional[SyncOptions] = None,
) -> RunResult:
    """Copy ``local_path`` to ``remote_path`` on the remote host.

    ``--relative`` is always passed; a ``/./`` in ``local_path`` marks where
    the part reproduced on the remote side begins.
    """
    if not local_path or not remote_path:
        raise ConfigError("usage: rsync_up local_path remote_path extra_opts")
    options = options or SyncOptions()
    cmd = [
        "rsync",
        *options.upload,
        "--relative",
        *extra,
        str(local_path),
        f"{ctx.host}:{remote_path}",
    ]
    return _run_rsync(ctx, cmd)


def rsync_down(
    ctx: ConnectionContext, *args: str, options: Optional[SyncOptions] = None
) -> RunResult:
    """Run rsync with the download defaults followed by ``args``."""
    options = options or SyncOptions()
    cmd = ["rsync", *options.download, *[str(arg) for arg in args]]
    return _run_rsync(ctx, cmd)
