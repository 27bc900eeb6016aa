"""Running commands on the remote host over the shared connection."""

from typing import List

from .__logger__ import logger
from .errors import RemoteCommandError
from .escape import escape_args
from .runner import RunResult
from .sshutil.master import ConnectionContext


def _remote_cmd(ctx: ConnectionContext, args) -> List[str]:
    return [*ctx.ssh_command(), ctx.host, *args]


def remotely_no_escape(
    ctx: ConnectionContext, *args: str, check: bool = True, capture: bool = False
) -> RunResult:
    """Hand ``args`` to ssh as is.

    The remote shell joins and re-splits them, so pipes, redirections and
    variable expansion are evaluated remotely.
    """
    ctx.open()
    cmd = _remote_cmd(ctx, args)
    logger.debug("Remote (no escape): %s", cmd)
    result = ctx.runner.run(cmd, capture=capture)
    if check and not result.ok:
        raise RemoteCommandError(args, result.returncode, result.stderr)
    return result


def remotely(
    ctx: ConnectionContext, *args: str, check: bool = True, capture: bool = False
) -> RunResult:
    """Run ``args`` remotely as if word splitting happened locally.

    With ``check=False`` a non-zero exit is returned instead of raised.
    """
    logger.info("REMOTELY: %s", " ".join(args))
    result = remotely_no_escape(ctx, escape_args(args), check=False, capture=capture)
    if check and not result.ok:
        raise RemoteCommandError(args, result.returncode, result.stderr)
    return result
