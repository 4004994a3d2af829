"""Transmit staged packages to a remote host with bounded retries.

Usage
-----
Ship every rpm below ``pkg`` to a yum host::

    from ship_common.config import RepoLayout, ShipOptions
    from ship_common.remote import RemoteShell
    from ship_common.transmit import ship_packages

    result = ship_packages(
        ["pkg/**/*.rpm"],
        "yum.example.com",
        "/opt/repository/yum",
        ShipOptions(),
        shell=RemoteShell(),
        layout=RepoLayout("puppet8", "puppet"),
    )
    print(f"Shipped {len(result.shipped)} package(s).")
"""

from __future__ import annotations

import dataclasses
import shlex
import tempfile
import typing as typ
from pathlib import Path, PurePosixPath

from .collect import collect_packages
from .errors import PackageFailure, ShipError, TransmissionError
from .fs_utils import rebase_remote_path
from .prompt import ask_yes_or_no
from .remote import (
    DryRunShell,
    immutable_command,
    ownership_command,
    permissions_command,
)
from .reorganize import STAGING_PREFIX, reorganize_packages
from .retry import retry_on_fail

if typ.TYPE_CHECKING:
    from .config import RepoLayout, ShipOptions
    from .remote import RemoteExecutor

__all__ = ["SYNC_FLAGS", "ShipResult", "ship_packages"]

SYNC_FLAGS: tuple[str, ...] = ("--ignore-existing", "--delay-updates")
DIRECTORY_MODE = "775"
FILE_MODE = "0664"


@dataclasses.dataclass(slots=True)
class ShipResult:
    """Outcome of :func:`ship_packages`."""

    staged: list[PurePosixPath]
    shipped: list[PurePosixPath]
    declined: bool = False


@dataclasses.dataclass(slots=True)
class _Transfer:
    """Everything one package needs to reach the remote host."""

    executor: RemoteExecutor
    host: str
    staging_root: Path
    remote_path: str
    owner: str
    group: str
    set_immutable: bool
    step: str = "pending"


def ship_packages(
    patterns: typ.Sequence[str],
    host: str,
    remote_path: str,
    options: ShipOptions,
    *,
    shell: RemoteExecutor,
    layout: RepoLayout,
    confirm: typ.Callable[[], bool] = ask_yes_or_no,
    workspace: Path | None = None,
    dry_run: bool = False,
    retry_attempts: int = 3,
    owner: str = "root",
    group: str = "release",
) -> ShipResult:
    """Collect, stage, confirm and transmit the packages matching ``patterns``.

    Parameters
    ----------
    patterns : Sequence[str]
        Glob patterns selecting the packages to ship.
    host : str
        Remote host receiving the packages.
    remote_path : str
        Remote directory replacing the staging root in every staged path.
    options : ShipOptions
        Excludes, immutability, platform independence and nonfinal routing.
    shell : RemoteExecutor
        Collaborator running remote commands and transfers.
    layout : RepoLayout
        Repository names used to lay out platform directories.
    confirm : Callable[[], bool], optional
        Asked once after the staged list is printed; ``False`` aborts.
    workspace : Path | None, optional
        Directory the patterns are expanded in. Defaults to the current
        working directory.
    dry_run : bool, default=False
        Transfer with ``rsync --dry-run`` and only report remote commands.
    retry_attempts : int, default=3
        Attempts made for each package before it counts as failed.
    owner, group : str
        Ownership applied to shipped files and their directories.

    Returns
    -------
    ShipResult
        Staged relative paths, shipped remote paths and whether the operator
        declined. Nothing collected yields an empty result.

    Raises
    ------
    TransmissionError
        Raised after the batch when any package exhausted its retries. Every
        other package is still attempted first.
    """

    packages = collect_packages(patterns, options.excludes, workspace=workspace)
    if not packages:
        return ShipResult(staged=[], shipped=[])

    with tempfile.TemporaryDirectory(prefix="ship-") as tmp:
        staging_root = Path(tmp)
        staged = reorganize_packages(
            packages,
            staging_root,
            layout=layout,
            platform_independent=options.platform_independent,
            nonfinal=options.nonfinal,
            workspace=workspace,
        )

        for relative in sorted(staged):
            print(relative)
        print(f"Do you want to ship the above files to ({host})?")
        if not confirm():
            print("Shipment declined; nothing was transmitted.")
            return ShipResult(staged=staged, shipped=[], declined=True)

        transfer = _Transfer(
            executor=DryRunShell(shell) if dry_run else shell,
            host=host,
            staging_root=staging_root,
            remote_path=remote_path,
            owner=owner,
            group=group,
            set_immutable=options.set_immutable,
        )
        shipped: list[PurePosixPath] = []
        failures: list[PackageFailure] = []
        for relative in staged:
            try:
                remote = retry_on_fail(
                    lambda relative=relative: _transmit(transfer, relative),
                    times=retry_attempts,
                    label=f"Shipping {relative} to {host}",
                )
            except (ShipError, OSError) as exc:
                failures.append(PackageFailure(relative, transfer.step, exc))
                continue
            shipped.append(remote)

    if failures:
        raise TransmissionError(host, failures)
    return ShipResult(staged=staged, shipped=shipped)


def _transmit(transfer: _Transfer, relative: PurePosixPath) -> PurePosixPath:
    """Run every remote step for one staged package and return its remote path."""

    remote = rebase_remote_path(STAGING_PREFIX, transfer.remote_path, relative)
    remote_dir = remote.parent
    run = transfer.executor.run

    transfer.step = "mkdir"
    run(transfer.host, f"mkdir -p {shlex.quote(remote_dir.as_posix())}")

    transfer.step = "sync"
    transfer.executor.sync(
        transfer.staging_root / relative, transfer.host, remote_dir, SYNC_FLAGS
    )

    transfer.step = "ownership"
    run(
        transfer.host,
        ownership_command(transfer.owner, transfer.group, [remote_dir, remote]),
    )

    transfer.step = "permissions"
    run(transfer.host, permissions_command(DIRECTORY_MODE, [remote_dir]))
    run(transfer.host, permissions_command(FILE_MODE, [remote]))

    if transfer.set_immutable:
        transfer.step = "immutable"
        run(transfer.host, immutable_command([remote]))

    print(f"Shipped '{relative}' -> '{transfer.host}:{remote}'")
    return remote
