"""Per-format shipping entry points.

Each entry point binds the globs for one package format to the host
configured for it, ships the batch and then maintains the rolling repository
links and "latest" symlinks that format publishes.
"""

from __future__ import annotations

import dataclasses
import shlex
import typing as typ
from pathlib import Path

from .links import create_latest_symlink, create_rolling_repo_link
from .platforms import (
    PlatformTag,
    artifacts_path,
    codename_to_tags,
    codenames,
    generic_platform_tag,
    platform_tags_for_package_format,
)
from .prompt import ask_yes_or_no
from .remote import DryRunShell
from .transmit import ShipResult, ship_packages

if typ.TYPE_CHECKING:
    from .config import ShipConfig
    from .remote import RemoteExecutor

__all__ = ["FORMAT_GLOBS", "SHIP_FORMATS", "Shipper"]

FORMAT_GLOBS: dict[str, tuple[str, ...]] = {
    "rpm": ("**/*.rpm", "**/*.srpm"),
    "deb": (
        "**/*.debian.tar.gz",
        "**/*.orig.tar.gz",
        "**/*.dsc",
        "**/*.deb",
        "**/*.changes",
    ),
    "svr4": ("**/*.pkg.gz",),
    "p5p": ("**/*.p5p",),
    "dmg": ("**/*.dmg",),
    "swix": ("**/*.swix",),
    "msi": ("**/*.msi",),
    "gem": ("*.gem*",),
    "tar": ("*.tar.gz*",),
}

PLATFORM_INDEPENDENT_FORMATS = frozenset({"gem", "tar"})
MSI_ARCHITECTURES = ("x64", "x86")


@dataclasses.dataclass(slots=True)
class _Batch:
    """Resolved inputs for one format's shipment."""

    format_name: str
    host: str
    remote_path: str
    nonfinal: bool
    result: ShipResult

    @property
    def published(self) -> bool:
        return bool(self.result.staged) and not self.result.declined


class Shipper:
    """Ship each package format to the host :class:`ShipConfig` names for it.

    Parameters
    ----------
    config : ShipConfig
        Hosts, remote paths, repository layout and ownership settings.
    shell : RemoteExecutor
        Collaborator running remote commands and transfers.
    confirm : Callable[[], bool], optional
        Operator confirmation asked before each batch is transmitted.
    workspace : Path | None, optional
        Directory the local staging directories are resolved against.
    dry_run : bool, default=False
        Report remote mutations instead of performing them.
    """

    def __init__(
        self,
        config: ShipConfig,
        *,
        shell: RemoteExecutor,
        confirm: typ.Callable[[], bool] = ask_yes_or_no,
        workspace: Path | None = None,
        dry_run: bool = False,
    ) -> None:
        self.config = config
        self.shell = shell
        self.confirm = confirm
        self.workspace = workspace
        self.dry_run = dry_run

    @classmethod
    def for_test_host(
        cls,
        config: ShipConfig,
        vm: str,
        *,
        shell: RemoteExecutor,
        **kwargs: typ.Any,
    ) -> Shipper:
        """Return a shipper sending every format to the test machine ``vm``.

        The ownership group must exist before files can be handed to it, so it
        is created on ``vm`` first. Dry runs only report the command.
        """
        shipper = cls(config.with_host(vm), shell=shell, **kwargs)
        group = shlex.quote(config.group)
        shipper._link_shell.run(vm, f"getent group {group} || groupadd {group}")
        return shipper

    @property
    def _link_shell(self) -> RemoteExecutor:
        return DryRunShell(self.shell) if self.dry_run else self.shell

    def ship(
        self,
        format_name: str,
        local_staging_directory: str | Path,
        remote_path: str | None = None,
        nonfinal: bool | None = None,
    ) -> ShipResult:
        """Dispatch to the entry point shipping ``format_name``."""
        entry_point = getattr(self, SHIP_FORMATS[format_name])
        return entry_point(local_staging_directory, remote_path, nonfinal)

    def _ship_batch(
        self,
        format_name: str,
        local_staging_directory: str | Path,
        remote_path: str | None,
        nonfinal: bool | None,
    ) -> _Batch:
        target = self.config.target(format_name)
        options = self.config.options_for(
            format_name,
            platform_independent=format_name in PLATFORM_INDEPENDENT_FORMATS,
            nonfinal=nonfinal,
        )
        destination = remote_path or target.remote_path
        directory = Path(local_staging_directory).as_posix()
        patterns = [f"{directory}/{pattern}" for pattern in FORMAT_GLOBS[format_name]]
        result = ship_packages(
            patterns,
            target.host,
            destination,
            options,
            shell=self.shell,
            layout=self.config.layout,
            confirm=self.confirm,
            workspace=self.workspace,
            dry_run=self.dry_run,
            retry_attempts=self.config.retry_attempts,
            owner=self.config.owner,
            group=self.config.group,
        )
        return _Batch(format_name, target.host, destination, options.nonfinal, result)

    def _rolling_link(self, batch: _Batch, tag: PlatformTag) -> None:
        create_rolling_repo_link(
            tag,
            batch.host,
            batch.remote_path,
            batch.nonfinal,
            shell=self._link_shell,
            layout=self.config.layout,
        )

    def _latest_symlink(
        self, batch: _Batch, tag: PlatformTag, extension: str, arch: str | None = None
    ) -> None:
        directory = artifacts_path(
            tag, batch.remote_path, batch.nonfinal, layout=self.config.layout
        )
        create_latest_symlink(
            self.config.project,
            batch.host,
            directory,
            extension,
            arch,
            shell=self._link_shell,
        )

    def ship_rpms(
        self,
        local_staging_directory: str | Path,
        remote_path: str | None = None,
        nonfinal: bool | None = None,
    ) -> ShipResult:
        """Ship rpms and source rpms, then repair the el rolling link."""
        batch = self._ship_batch("rpm", local_staging_directory, remote_path, nonfinal)
        if batch.published:
            self._rolling_link(batch, generic_platform_tag("el"))
        return batch.result

    def ship_debs(
        self,
        local_staging_directory: str | Path,
        remote_path: str | None = None,
        nonfinal: bool | None = None,
    ) -> ShipResult:
        """Ship debs and their sources, then repair one rolling link per codename.

        Every codename has its own link; the architecture plays no part in
        the link path, so the first tag of each codename is enough.
        """
        batch = self._ship_batch("deb", local_staging_directory, remote_path, nonfinal)
        if batch.published:
            for codename in codenames():
                self._rolling_link(batch, codename_to_tags(codename)[0])
        return batch.result

    def ship_svr4(
        self,
        local_staging_directory: str | Path,
        remote_path: str | None = None,
        nonfinal: bool | None = None,
    ) -> ShipResult:
        return self._ship_batch("svr4", local_staging_directory, remote_path, nonfinal).result

    def ship_p5p(
        self,
        local_staging_directory: str | Path,
        remote_path: str | None = None,
        nonfinal: bool | None = None,
    ) -> ShipResult:
        return self._ship_batch("p5p", local_staging_directory, remote_path, nonfinal).result

    def ship_dmg(
        self,
        local_staging_directory: str | Path,
        remote_path: str | None = None,
        nonfinal: bool | None = None,
    ) -> ShipResult:
        """Ship dmgs, repair the osx rolling link and refresh latest symlinks."""
        batch = self._ship_batch("dmg", local_staging_directory, remote_path, nonfinal)
        if batch.published:
            self._rolling_link(batch, generic_platform_tag("osx"))
            for tag in platform_tags_for_package_format("dmg"):
                self._latest_symlink(batch, tag, "dmg")
        return batch.result

    def ship_swix(
        self,
        local_staging_directory: str | Path,
        remote_path: str | None = None,
        nonfinal: bool | None = None,
    ) -> ShipResult:
        """Ship swix packages and repair the eos rolling link."""
        batch = self._ship_batch("swix", local_staging_directory, remote_path, nonfinal)
        if batch.published:
            self._rolling_link(batch, generic_platform_tag("eos"))
        return batch.result

    def ship_msi(
        self,
        local_staging_directory: str | Path,
        remote_path: str | None = None,
        nonfinal: bool | None = None,
    ) -> ShipResult:
        """Ship msis, repair the windows rolling link and refresh latest symlinks."""
        batch = self._ship_batch("msi", local_staging_directory, remote_path, nonfinal)
        if batch.published:
            tag = generic_platform_tag("windows")
            self._rolling_link(batch, tag)
            for arch in MSI_ARCHITECTURES:
                self._latest_symlink(batch, tag, "msi", arch)
        return batch.result

    def ship_gem(
        self,
        local_staging_directory: str | Path,
        remote_path: str | None = None,
        nonfinal: bool | None = None,
    ) -> ShipResult:
        return self._ship_batch("gem", local_staging_directory, remote_path, nonfinal).result

    def ship_tar(
        self,
        local_staging_directory: str | Path,
        remote_path: str | None = None,
        nonfinal: bool | None = None,
    ) -> ShipResult:
        return self._ship_batch("tar", local_staging_directory, remote_path, nonfinal).result


SHIP_FORMATS: dict[str, str] = {
    "rpm": "ship_rpms",
    "deb": "ship_debs",
    "svr4": "ship_svr4",
    "p5p": "ship_p5p",
    "dmg": "ship_dmg",
    "swix": "ship_swix",
    "msi": "ship_msi",
    "gem": "ship_gem",
    "tar": "ship_tar",
}
