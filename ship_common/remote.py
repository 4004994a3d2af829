"""Remote execution and synchronisation over ``ssh`` and ``rsync``.

All remote logic is expressed as shell text built here or in
:mod:`ship_common.links` and handed verbatim to :class:`RemoteShell`.
"""

from __future__ import annotations

import shlex
import typing as typ
from pathlib import Path, PurePath

from plumbum import local
from plumbum.commands import CommandNotFound, ProcessExecutionError

from .errors import RemoteCommandError

__all__ = [
    "RSYNC_FLAGS",
    "DryRunShell",
    "RemoteExecutor",
    "RemoteShell",
    "immutable_command",
    "ownership_command",
    "permissions_command",
]

RSYNC_FLAGS: tuple[str, ...] = (
    "--recursive",
    "--hard-links",
    "--links",
    "--verbose",
    "--omit-dir-times",
    "--no-perms",
    "--no-owner",
    "--no-group",
)


class RemoteExecutor(typ.Protocol):
    """Collaborator executing shell text and file transfers on a host."""

    def run(self, host: str, command: str) -> str:
        """Run ``command`` on ``host`` and return its standard output."""
        ...

    def sync(
        self,
        local_path: Path,
        host: str,
        remote_dir: str | PurePath,
        flags: typ.Sequence[str] = (),
    ) -> str:
        """Copy ``local_path`` into ``remote_dir`` on ``host``."""
        ...


class RemoteShell:
    """Run remote commands with the local ``ssh`` and ``rsync`` clients."""

    def __init__(
        self,
        *,
        ssh: str = "ssh",
        rsync: str = "rsync",
        ssh_options: typ.Sequence[str] = ("-o", "BatchMode=yes"),
    ) -> None:
        self._ssh = ssh
        self._rsync = rsync
        self._ssh_options = tuple(ssh_options)

    def run(self, host: str, command: str) -> str:
        """Run ``command`` on ``host`` through ``ssh``.

        Raises
        ------
        RemoteCommandError
            Raised when ``ssh`` is missing or the command exits non-zero.
        """
        try:
            ssh = local[self._ssh]
            return ssh[(*self._ssh_options, host, command)]()
        except (ProcessExecutionError, CommandNotFound) as exc:
            raise RemoteCommandError(host, command, str(exc)) from exc

    def sync(
        self,
        local_path: Path,
        host: str,
        remote_dir: str | PurePath,
        flags: typ.Sequence[str] = (),
    ) -> str:
        """Copy ``local_path`` into ``remote_dir`` on ``host`` with ``rsync``.

        Raises
        ------
        RemoteCommandError
            Raised when ``rsync`` is missing or the transfer fails.
        """
        destination = f"{host}:{PurePath(remote_dir).as_posix()}"
        args = (*RSYNC_FLAGS, *flags, str(local_path), destination)
        try:
            rsync = local[self._rsync]
            return rsync[args]()
        except (ProcessExecutionError, CommandNotFound) as exc:
            command = shlex.join([self._rsync, *args])
            raise RemoteCommandError(host, command, str(exc)) from exc


def _quote_all(paths: typ.Iterable[str | PurePath]) -> str:
    return " ".join(shlex.quote(PurePath(path).as_posix()) for path in paths)


def _unless_immutable(action: str, paths: typ.Iterable[str | PurePath]) -> str:
    # chown and chmod fail on immutable files, which would break re-runs.
    return (
        f"for file in {_quote_all(paths)}; do "
        "if [ -d \"$file\" ] || ! lsattr -d \"$file\" 2>/dev/null "
        "| cut -d' ' -f1 | grep -q i; then "
        f"sudo {action} \"$file\"; "
        "else echo \"$file is immutable\"; fi; done"
    )


def ownership_command(
    owner: str, group: str, paths: typ.Iterable[str | PurePath]
) -> str:
    """Return shell text setting ``owner:group`` on every mutable path.

    Examples
    --------
    >>> "sudo chown root:release" in ownership_command("root", "release", ["/a"])
    True
    """
    return _unless_immutable(f"chown {shlex.quote(f'{owner}:{group}')}", paths)


def permissions_command(mode: str, paths: typ.Iterable[str | PurePath]) -> str:
    """Return shell text applying ``mode`` to every mutable path."""
    return _unless_immutable(f"chmod {shlex.quote(mode)}", paths)


def immutable_command(paths: typ.Iterable[str | PurePath]) -> str:
    """Return shell text marking ``paths`` immutable.

    Examples
    --------
    >>> immutable_command(["/opt/repo/a b.rpm"])
    "sudo chattr +i '/opt/repo/a b.rpm'"
    """
    return f"sudo chattr +i {_quote_all(paths)}"


class DryRunShell:
    """Report remote commands instead of running them.

    Transfers still reach ``rsync`` with ``--dry-run`` so the operator sees
    what would change without remote file contents being touched.
    """

    def __init__(self, inner: RemoteExecutor) -> None:
        self._inner = inner

    def run(self, host: str, command: str) -> str:
        print(f"[dry-run] ssh {host} {shlex.quote(command)}")
        return ""

    def sync(
        self,
        local_path: Path,
        host: str,
        remote_dir: str | PurePath,
        flags: typ.Sequence[str] = (),
    ) -> str:
        extra = [*flags]
        if "--dry-run" not in extra:
            extra.append("--dry-run")
        return self._inner.sync(local_path, host, remote_dir, extra)
