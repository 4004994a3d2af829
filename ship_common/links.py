"""Rolling repository links and "latest" package symlinks.

The command builders are pure: they turn a platform tag or directory into the
shell text that repairs the link remotely. The ``create_*`` functions hand
that text to a :class:`~ship_common.remote.RemoteExecutor`.

The rolling link script implements this decision table::

    base path missing                 -> skip, exit 0
    link points at the base path      -> nothing to do, exit 0
    link points anywhere else         -> remove it, link to the base path
    link missing                      -> link to the base path
    link path is not a symlink        -> refuse, exit 1, leave it untouched
"""

from __future__ import annotations

import shlex
import typing as typ
from pathlib import PurePath, PurePosixPath

from .errors import LinkPublicationError, ShipError
from .platforms import PlatformTag, artifacts_base_path_and_link_path

if typ.TYPE_CHECKING:
    from .config import RepoLayout
    from .remote import RemoteExecutor

__all__ = [
    "create_latest_symlink",
    "create_rolling_repo_link",
    "latest_symlink_command",
    "rolling_repo_link_command",
]

_ROLLING_LINK_SCRIPT = """\
base_path={base}
link_path={link}
if [ ! -d "$base_path" ] ; then
  echo "Link target '$base_path' does not exist; skipping"
  exit 0
fi
if [ -L "$link_path" ] && [ ! "$base_path" -ef "$link_path" ] ; then
  rm "$link_path"
elif [ -L "$link_path" ] ; then
  exit 0
elif [ -e "$link_path" ] ; then
  echo "'$link_path' exists but is not a symlink; refusing to replace it" >&2
  exit 1
fi
ln -s "$base_path" "$link_path"
"""

_LATEST_SYMLINK_SCRIPT = """\
directory={directory}
if [ ! -d "$directory" ] ; then
  echo "Directory '$directory' does not exist; not creating latest package link"
  exit 0
fi
cd "$directory" || exit 1
link_target=$(find . -maxdepth 1 -type f -name {pattern} | grep -v {latest_prefix} | sort -V | tail -n 1)
if [ -z "$link_target" ] ; then
  echo "Unable to find a link target for {package} in '$directory'; skipping link creation"
  exit 0
fi
echo "Creating link to $link_target"
ln -sf "$link_target" {link_name}
"""


def rolling_repo_link_command(
    platform_tag: PlatformTag,
    repo_path: str | PurePath,
    nonfinal: bool = False,
    *,
    layout: RepoLayout,
) -> str | None:
    """Return the script repairing the rolling link for ``platform_tag``.

    Returns ``None`` when ``layout`` defines no link for the requested mode.

    Examples
    --------
    >>> from ship_common.config import RepoLayout
    >>> from ship_common.platforms import parse_platform_tag
    >>> script = rolling_repo_link_command(
    ...     parse_platform_tag("el-8-x86_64"),
    ...     "/opt/repository/yum",
    ...     layout=RepoLayout("puppet8", "puppet"),
    ... )
    >>> script.splitlines()[:2]
    ['base_path=/opt/repository/yum/puppet8', 'link_path=/opt/repository/yum/puppet']
    """
    base_path, link_path = artifacts_base_path_and_link_path(
        platform_tag, repo_path, nonfinal, layout=layout
    )
    if link_path is None:
        print(f"No link target set, not creating rolling repo link for {base_path}")
        return None
    return _ROLLING_LINK_SCRIPT.format(
        base=shlex.quote(base_path.as_posix()),
        link=shlex.quote(link_path.as_posix()),
    )


def create_rolling_repo_link(
    platform_tag: PlatformTag,
    host: str,
    repo_path: str | PurePath,
    nonfinal: bool = False,
    *,
    shell: RemoteExecutor,
    layout: RepoLayout,
) -> bool:
    """Publish the rolling link for ``platform_tag`` on ``host``.

    Returns ``False`` when no link is configured. Failures are not retried:
    the script already repairs every recoverable state.

    Raises
    ------
    LinkPublicationError
        Raised when the script cannot be built or exits non-zero, including
        when the link path holds something other than a symlink.
    """
    try:
        command = rolling_repo_link_command(
            platform_tag, repo_path, nonfinal, layout=layout
        )
        if command is None:
            return False
        shell.run(host, command)
    except ShipError as exc:
        raise LinkPublicationError(platform_tag, host, exc) from exc
    return True


def latest_symlink_command(
    package_name: str,
    directory: str | PurePath,
    extension: str,
    arch: str | None = None,
) -> str:
    """Return the script pointing ``<package>-latest`` at the newest package.

    The newest package is the highest ``sort -V`` match of
    ``<package>-*[-<arch>].<extension>`` directly inside ``directory``.

    Examples
    --------
    >>> script = latest_symlink_command("puppet-agent", "/opt/downloads", "msi", "x64")
    >>> script.splitlines()[-1]
    'ln -sf "$link_target" puppet-agent-latest-x64.msi'
    """
    suffix = f"-{arch}" if arch else ""
    return _LATEST_SYMLINK_SCRIPT.format(
        directory=shlex.quote(PurePosixPath(directory).as_posix()),
        pattern=shlex.quote(f"{package_name}-*{suffix}.{extension}"),
        latest_prefix=shlex.quote(f"{package_name}-latest"),
        package=shlex.quote(package_name),
        link_name=shlex.quote(f"{package_name}-latest{suffix}.{extension}"),
    )


def create_latest_symlink(
    package_name: str,
    host: str,
    directory: str | PurePath,
    extension: str,
    arch: str | None = None,
    *,
    shell: RemoteExecutor,
) -> None:
    """Publish the ``<package>-latest`` symlink inside ``directory`` on ``host``.

    Raises
    ------
    LinkPublicationError
        Raised when the remote script fails.
    """
    command = latest_symlink_command(package_name, directory, extension, arch)
    try:
        shell.run(host, command)
    except ShipError as exc:
        raise LinkPublicationError(
            directory, host, exc, kind="latest symlink"
        ) from exc
