"""Execution of external tools (ssh, rsync, m4).

All external processes go through a CommandRunner so the rest of the package
can be exercised with a fake runner in tests.
"""

import subprocess
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional, Sequence, Union

from .__logger__ import logger


@dataclass
class RunResult:
    """Outcome of one external process."""

    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class CommandRunner(ABC):
    """Narrow interface for running an external command to completion."""

    @abstractmethod
    def run(
        self,
        args: Sequence[str],
        *,
        env: Optional[Mapping[str, str]] = None,
        capture: bool = False,
        cwd: Optional[Union[str, Path]] = None,
    ) -> RunResult:
        """Run ``args`` and wait for it to exit."""


class SubprocessRunner(CommandRunner):
    """Run commands with subprocess, blocking until they exit.

    Output goes straight to the terminal unless ``capture`` is set.
    """

    def run(
        self,
        args: Sequence[str],
        *,
        env: Optional[Mapping[str, str]] = None,
        capture: bool = False,
        cwd: Optional[Union[str, Path]] = None,
    ) -> RunResult:
        args = [str(arg) for arg in args]
        logger.debug("Executing: %s", args)
        try:
            proc = subprocess.run(
                args,
                env=dict(env) if env is not None else None,
                cwd=cwd,
                capture_output=capture,
                text=True,
                check=False,
            )
        except FileNotFoundError as e:
            # Mirrors the shell's status for a command that does not exist
            return RunResult(127, "", f"{args[0]}: command not found ({e})")

        return RunResult(proc.returncode, proc.stdout or "", proc.stderr or "")
