"""Rendering of m4 configuration templates before upload.

Every ``*.m4`` file below the files directory is expanded with ``m4 -P`` and
written next to its source without the suffix. Two macros are available in
templates:

- ``m4_getenv(NAME)``: value of environment variable NAME, or nothing
- ``m4_getenv_req(NAME)``: the same, but rendering fails when it is unset

Rendered files are removed again by ``cleanup()``.
"""

import os
import tempfile
from pathlib import Path
from types import TracebackType
from typing import List, Optional, Type, Union

from .__logger__ import logger
from .errors import TemplateError
from .runner import CommandRunner, SubprocessRunner

M4_PREAMBLE = """\
m4_changequote(`!<', `>!')m4_dnl
m4_define(!<m4_getenv>!, !<m4_esyscmd(!<printf '%s' "$$1">!)>!)m4_dnl
m4_define(!<m4_getenv_req>!, !<m4_ifelse(m4_getenv(!<$1>!),,!<m4_errprint(!<Missing required environment variable $1
>!)m4_m4exit(1)>!,!<m4_getenv(!<$1>!)>!)>!)m4_dnl
"""

# Editor backups and lock files never get uploaded
EDITOR_PATTERNS = ("*~", "*#*")


class TemplateRenderer:
    """Renders the templates of one files directory and cleans up after."""

    def __init__(
        self,
        files_dir: Union[str, Path],
        runner: Optional[CommandRunner] = None,
        suffix: str = ".m4",
    ) -> None:
        self.files_dir = Path(files_dir)
        self.runner = runner or SubprocessRunner()
        self.suffix = suffix
        self.rendered: List[Path] = []
        self._preamble: Optional[Path] = None

    def templates(self) -> List[Path]:
        if not self.files_dir.is_dir():
            return []
        return sorted(
            p for p in self.files_dir.rglob(f"*{self.suffix}") if p.is_file()
        )

    def clean_editor_files(self) -> List[Path]:
        removed = []
        if not self.files_dir.is_dir():
            return removed
        for pattern in EDITOR_PATTERNS:
            for path in self.files_dir.rglob(pattern):
                if path.is_file() or path.is_symlink():
                    path.unlink()
                    removed.append(path)
        return removed

    def _write_preamble(self) -> Path:
        fd, name = tempfile.mkstemp(prefix="remotely-", suffix=".m4")
        with os.fdopen(fd, "w") as f:
            f.write(M4_PREAMBLE)
        self._preamble = Path(name)
        return self._preamble

    def render(self) -> List[Path]:
        """Render every template, stopping at the first failure.

        Raises:
            TemplateError: if m4 fails for any template
        """
        logger.info("Processing M4 templates...")
        self.clean_editor_files()
        templates = self.templates()
        if not templates:
            return []

        preamble = self._preamble or self._write_preamble()
        env = os.environ.copy()
        for template in templates:
            output = template.with_name(template.name[: -len(self.suffix)])
            logger.debug("Rendering %s -> %s", template, output)
            result = self.runner.run(
                ["m4", "-P", str(preamble), str(template)], env=env, capture=True
            )
            if not result.ok:
                raise TemplateError(
                    f"Failed to render {template}: {result.stderr.strip()}"
                )
            output.write_text(result.stdout)
            self.rendered.append(output)

        return list(self.rendered)

    def cleanup(self) -> None:
        """Delete rendered files and the preamble."""
        for path in self.rendered:
            path.unlink(missing_ok=True)
        self.rendered.clear()
        if self._preamble is not None:
            self._preamble.unlink(missing_ok=True)
            self._preamble = None

    def __enter__(self) -> "TemplateRenderer":
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        self.cleanup()
