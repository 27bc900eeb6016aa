"""One scripted run against a remote host.

A Session owns the shared SSH connection, the rendered templates and, for
backup runs, the snapshot being filled. Leaving the ``with`` block releases
all of them; the snapshot is only marked complete when the block exits
without an exception and no transfer into it failed, even one the caller
caught.

Example::

    config, _ = load_config()
    with Session(config) as s:
        s.go()
        s.remotely("mkdir", "-p", "/etc/app")
        s.upload("/etc/app/app.conf")

    with Session(config) as s:
        s.start_backup("web")
        s.backup("/var/www/html/wiki/")
"""

from datetime import datetime
from pathlib import Path
from types import TracebackType
from typing import Callable, Optional, Type

from . import backup as _backup
from . import remote
from .__logger__ import logger
from .backup import BackupDriver
from .config.schema import RemotelyConfig
from .errors import ConfigError
from .runner import CommandRunner, RunResult, SubprocessRunner
from .snapshot import BackupPaths, SnapshotManager
from .sshutil.master import ConnectionContext
from .templates import TemplateRenderer


class Session:
    """Scoped owner of the resources of one run."""

    def __init__(
        self,
        config: RemotelyConfig,
        runner: Optional[CommandRunner] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.config = config
        self.runner = runner or SubprocessRunner()
        self.clock = clock
        self._connection: Optional[ConnectionContext] = None
        self._renderer: Optional[TemplateRenderer] = None
        self._snapshots: Optional[SnapshotManager] = None
        self.driver: Optional[BackupDriver] = None
        self._going = False

    @property
    def connection(self) -> ConnectionContext:
        """The shared connection, created on first use but not opened."""
        if self._connection is None:
            self._connection = ConnectionContext(
                self.config.require("host"),
                ssh_options=self.config.ssh_options,
                persist=self.config.connection_timeout,
                control_dir=self.config.control_dir,
                runner=self.runner,
            )
        return self._connection

    def connect(self) -> ConnectionContext:
        return self.connection.open()

    def go(self) -> None:
        """Render templates and connect; later calls do nothing."""
        if self._going:
            return
        self.config.require("host")
        self._going = True
        self._renderer = TemplateRenderer(self.config.files_dir, runner=self.runner)
        self._renderer.render()
        self.connect()

    def start_backup(self, name: str) -> BackupDriver:
        """Create the new snapshot of backup set ``name`` and connect.

        Only one backup set per session; calling again returns the same
        driver.
        """
        if self.driver is not None:
            return self.driver
        if not name:
            raise ConfigError("usage: start_backup identifier")
        backup_dir = self.config.require("backup_dir")
        self.config.require("host")

        self._snapshots = SnapshotManager(backup_dir, clock=self.clock)
        paths = self._snapshots.prepare(name)
        self.driver = BackupDriver(
            self.connection, paths, options=self.config.sync_options
        )
        self.connect()
        return self.driver

    @property
    def paths(self) -> Optional[BackupPaths]:
        return self.driver.paths if self.driver is not None else None

    @property
    def last_backup_dir(self) -> Optional[Path]:
        return self.paths.previous if self.paths is not None else None

    @property
    def new_backup_dir(self) -> Optional[Path]:
        return self.paths.new if self.paths is not None else None

    def environment(self) -> dict:
        """Environment for caller subprocesses, including derived paths."""
        env = self.connection.environment()
        if self.paths is not None:
            env["LAST_BACKUP_DIR"] = str(self.paths.previous or "")
            env["NEW_BACKUP_DIR"] = str(self.paths.new)
        return env

    def remotely(
        self, *args: str, check: bool = True, capture: bool = False
    ) -> RunResult:
        return remote.remotely(self.connection, *args, check=check, capture=capture)

    def remotely_no_escape(
        self, *args: str, check: bool = True, capture: bool = False
    ) -> RunResult:
        return remote.remotely_no_escape(
            self.connection, *args, check=check, capture=capture
        )

    def upload(self, path: str, *opts: str) -> RunResult:
        return _backup.upload(
            self.connection,
            self.config.files_dir,
            path,
            *opts,
            options=self.config.sync_options,
        )

    def _require_driver(self) -> BackupDriver:
        if self.driver is None:
            raise ConfigError("No backup in progress; call start_backup() first")
        return self.driver

    def backup(self, src: str, *opts: str) -> RunResult:
        return self._require_driver().backup(src, *opts)

    def backup_to(self, src: str, dest: str, *opts: str) -> RunResult:
        return self._require_driver().backup_to(src, dest, *opts)

    def close(self, success: bool = True) -> None:
        """Release everything the session acquired."""
        try:
            if self.driver is not None and self._snapshots is not None:
                if success and not self.driver.failed:
                    self._snapshots.mark_complete(self.driver.paths.new)
                else:
                    logger.warning(
                        "Backup did not finish; %s stays incomplete",
                        self.driver.paths.new,
                    )
        finally:
            try:
                if self._connection is not None:
                    self._connection.close()
            finally:
                if self._renderer is not None:
                    self._renderer.cleanup()

    def __enter__(self) -> "Session":
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        self.close(success=exc_type is None)
