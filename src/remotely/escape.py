"""Quoting of argument vectors for the remote shell.

ssh joins its command arguments with single spaces and hands the result to
the remote shell, which splits it again. Adding one layer of double quoting
around each argument makes the remote side see the local argument vector.
"""

from typing import Iterable

# Order matters: the backslash must be escaped before anything adds one.
_SPECIAL = ("\\", '"', "`", "$")


def escape_arg(arg: str) -> str:
    """Return ``arg`` wrapped in double quotes with its specials escaped."""
    for char in _SPECIAL:
        arg = arg.replace(char, "\\" + char)
    return f'"{arg}"'


def escape_args(args: Iterable[str]) -> str:
    """Escape every argument, each preceded by a single space.

    An empty vector yields an empty string.
    """
    return "".join(" " + escape_arg(str(arg)) for arg in args)
