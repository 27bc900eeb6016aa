"""Transfers in both directions: uploads to the host, backups into snapshots."""

from pathlib import Path
from typing import Optional, Union

from . import strip_leading_slash
from .__logger__ import logger
from .errors import ConfigError, SyncError
from .runner import RunResult
from .snapshot import BackupPaths
from .sshutil.master import ConnectionContext
from .sync import SyncOptions, rsync_down, rsync_up


def upload(
    ctx: ConnectionContext,
    files_dir: Union[str, Path],
    path: str,
    *opts: str,
    options: Optional[SyncOptions] = None,
) -> RunResult:
    """Upload ``files_dir/path`` to ``/path`` on the remote host."""
    if not path:
        raise ConfigError("usage: upload /etc/path --extra --rsync --options")
    logger.info("UPLOAD: %s", " ".join([path, *opts]))
    # The "/./" tells rsync --relative to recreate only what follows it
    local_path = f"{str(files_dir).rstrip('/')}/./{strip_leading_slash(path)}"
    return rsync_up(ctx, local_path, "/", *opts, options=options)


class BackupDriver:
    """Backs remote paths up into the new snapshot of one backup run."""

    def __init__(
        self,
        ctx: ConnectionContext,
        paths: BackupPaths,
        options: Optional[SyncOptions] = None,
    ) -> None:
        self.ctx = ctx
        self.paths = paths
        self.options = options or SyncOptions()
        # Set once any transfer into this snapshot failed
        self.failed = False

    def backup_to(self, src: str, dest: str, *opts: str) -> RunResult:
        """Copy remote ``src`` to ``dest`` relative to the new snapshot."""
        if not src or not dest:
            raise ConfigError("usage: backup_to src dest")

        dest_rel = strip_leading_slash(dest)
        dest_abs = self.paths.new / dest_rel
        dest_abs.parent.mkdir(parents=True, exist_ok=True)

        logger.info("BACKUP: %s into %s", src, dest_abs)

        args = []
        if self.paths.previous is not None:
            args.append(f"--link-dest={self.paths.previous / dest_rel}")
        args.extend(opts)
        args.append(f"{self.ctx.host}:{src}")
        args.append(str(dest_abs))
        try:
            return rsync_down(self.ctx, *args, options=self.options)
        except SyncError:
            self.failed = True
            raise

    def backup(self, src: str, *opts: str) -> RunResult:
        """Back up absolute remote ``src`` beneath ``files/`` of the snapshot.

        rsync's ``-R`` reproduces the full remote path, so ``/etc/nginx``
        ends up in ``<snapshot>/files/etc/nginx``.
        """
        if not src.startswith("/"):
            raise ConfigError(f"Backup path must be absolute! (infringer: {src})")
        return self.backup_to(src, "files/", "-R", *opts)
