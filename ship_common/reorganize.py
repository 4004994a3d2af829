"""Lay collected packages out in the repository structure under a staging root."""

from __future__ import annotations

import dataclasses
import shutil
import typing as typ
from pathlib import Path, PurePosixPath

from .errors import ShipError
from .fs_utils import safe_destination_path
from .platforms import (
    PlatformTag,
    artifacts_path,
    package_format_for_path,
    package_format_for_tag,
    tag_from_artifact_path,
)

if typ.TYPE_CHECKING:
    from .config import RepoLayout

__all__ = ["STAGING_PREFIX", "Package", "describe_package", "reorganize_packages"]

STAGING_PREFIX = "pkg"


@dataclasses.dataclass(slots=True, frozen=True)
class Package:
    """A collected package and what its path says about it."""

    path: Path
    package_format: str | None
    platform_tag: PlatformTag | None


def describe_package(path: Path, *, platform_independent: bool) -> Package:
    """Return the :class:`Package` for ``path``.

    Platform-independent packages carry no platform tag; every other package
    must have one recoverable from its path, and its extension must match
    the format that platform ships.

    Raises
    ------
    ShipError
        Raised when no platform tag can be inferred or the extension does not
        belong to the tagged platform's package format.
    """
    package_format = package_format_for_path(path)
    if platform_independent:
        return Package(Path(path), package_format, None)
    tag = tag_from_artifact_path(path)
    expected = package_format_for_tag(tag)
    if package_format != expected:
        message = (
            f"Package '{path}' is not a {expected} package "
            f"as required for platform {tag}"
        )
        raise ShipError(message)
    return Package(Path(path), package_format, tag)


def reorganize_packages(
    packages: typ.Iterable[Path],
    staging_root: Path,
    *,
    layout: RepoLayout,
    platform_independent: bool = False,
    nonfinal: bool = False,
    workspace: Path | None = None,
) -> list[PurePosixPath]:
    """Copy ``packages`` into ``staging_root`` following the repository layout.

    Parameters
    ----------
    packages : Iterable[Path]
        Collected package paths, relative to ``workspace`` or absolute.
    staging_root : Path
        Temporary directory receiving the copies.
    layout : RepoLayout
        Repository names used to build per-platform directories.
    platform_independent : bool, default=False
        Place every package directly under :data:`STAGING_PREFIX`.
    nonfinal : bool, default=False
        Use the pre-release repository names.
    workspace : Path | None, optional
        Directory relative package paths are read from. Defaults to the
        current working directory.

    Returns
    -------
    list[PurePosixPath]
        Repository-relative path of every staged package, in input order.
        Sources are copied, never moved or modified.
    """

    root = Path.cwd() if workspace is None else Path(workspace)
    staged: list[PurePosixPath] = []
    for path in packages:
        package = describe_package(path, platform_independent=platform_independent)
        if package.platform_tag is None:
            directory = PurePosixPath(STAGING_PREFIX)
        else:
            directory = artifacts_path(
                package.platform_tag, STAGING_PREFIX, nonfinal, layout=layout
            )
        destination = safe_destination_path(staging_root, directory)
        shutil.copy2(root / package.path, destination / package.path.name)
        staged.append(directory / package.path.name)
    return staged
