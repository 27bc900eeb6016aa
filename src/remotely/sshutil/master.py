"""Multiplexed SSH session shared by every remote command and transfer."""

import itertools
import os
import shlex
import tempfile
from enum import Enum
from pathlib import Path
from types import TracebackType
from typing import List, Optional, Sequence, Type

from remotely.__logger__ import logger
from remotely.errors import TransportError
from remotely.runner import CommandRunner, SubprocessRunner

_instance_ids = itertools.count(1)


class ConnectionState(Enum):
    """Lifecycle of a ConnectionContext."""

    UNINITIALIZED = "uninitialized"
    OPEN = "open"
    CLOSED = "closed"


class ConnectionContext:
    """One SSH ControlMaster connection to ``host``.

    The master is started lazily by ``open()`` and kept alive by ssh for
    ``persist`` seconds after its last use. Calling ``open()`` again while
    the context is open does nothing.
    """

    def __init__(
        self,
        host: str,
        ssh_options: Optional[Sequence[str]] = None,
        persist: int = 200,
        control_dir: Optional[str] = None,
        runner: Optional[CommandRunner] = None,
    ):
        self.host = host
        self.ssh_options = list(ssh_options or [])
        self.persist = persist
        self.runner = runner or SubprocessRunner()
        self.control_dir = Path(control_dir or tempfile.gettempdir())
        self._instance_id = f"{os.getpid()}-{next(_instance_ids)}"
        self.control_path = self.control_dir / f"remotely-{self._instance_id}.sock"
        self.state = ConnectionState.UNINITIALIZED

    def __repr__(self) -> str:
        return f"<ConnectionContext {self.host} {self.state.value}>"

    @property
    def is_open(self) -> bool:
        return self.state is ConnectionState.OPEN

    def _master_cmd(self) -> List[str]:
        return [
            "ssh",
            "-oControlMaster=yes",
            f"-oControlPersist={self.persist}",
            f"-oControlPath={self.control_path}",
            *self.ssh_options,
            self.host,
            "exit",
        ]

    def open(self) -> "ConnectionContext":
        """Establish the master connection unless it is already open."""
        if self.is_open:
            return self

        self.control_dir.mkdir(mode=0o700, parents=True, exist_ok=True)
        logger.info("Establishing SSH connection to %s", self.host)
        result = self.runner.run(self._master_cmd(), capture=True)
        if not result.ok:
            raise TransportError(
                f"Could not establish SSH connection to {self.host} "
                f"(exit {result.returncode}): {result.stderr.strip()}"
            )

        self.state = ConnectionState.OPEN
        return self

    def close(self) -> None:
        """Ask the master to exit and forget the socket."""
        if self.state is not ConnectionState.OPEN:
            return

        cmd = ["ssh", "-S", str(self.control_path), "-O", "exit", self.host]
        result = self.runner.run(cmd, capture=True)
        if not result.ok:
            # The master may already have exited after ControlPersist ran out
            logger.debug(
                "SSH master for %s did not exit cleanly: %s",
                self.host,
                result.stderr.strip(),
            )
        self.cleanup_socket()
        self.state = ConnectionState.CLOSED

    def cleanup_socket(self) -> None:
        try:
            if self.control_path.exists():
                self.control_path.unlink()
        except OSError as e:
            logger.warning("Failed to cleanup socket %s: %s", self.control_path, e)

    def ssh_command(self) -> List[str]:
        """ssh invocation reusing the master; host and command not included."""
        return ["ssh", "-S", str(self.control_path), *self.ssh_options]

    @property
    def rsync_rsh(self) -> str:
        """Value for RSYNC_RSH so rsync rides on the same connection."""
        return shlex.join(self.ssh_command())

    def environment(self) -> dict:
        env = os.environ.copy()
        env["RSYNC_RSH"] = self.rsync_rsh
        return env

    def __enter__(self) -> "ConnectionContext":
        return self.open()

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        self.close()
