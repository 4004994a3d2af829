"""Filesystem helpers for shipping."""

from __future__ import annotations

from pathlib import Path, PurePath, PurePosixPath

from .errors import ShipError

__all__ = ["rebase_remote_path", "safe_destination_path"]


def safe_destination_path(staging_root: Path, destination: str | PurePath) -> Path:
    """Return ``destination`` resolved beneath ``staging_root``.

    Parameters
    ----------
    staging_root : Path
        Root directory under which staged packages must reside.
    destination : str | PurePath
        Repository-relative directory that will receive a package.

    Returns
    -------
    Path
        Absolute directory located below ``staging_root``, created if absent.

    Raises
    ------
    ShipError
        Raised when ``destination`` resolves outside ``staging_root``.
    """

    target = (staging_root / destination).resolve()
    root = staging_root.resolve()
    if not target.is_relative_to(root):
        message = f"Destination escapes staging directory: {destination}"
        raise ShipError(message)
    target.mkdir(parents=True, exist_ok=True)
    return target


def rebase_remote_path(
    staging_prefix: str, remote_base: str | PurePath, relative: str | PurePath
) -> PurePosixPath:
    """Swap the leading ``staging_prefix`` of ``relative`` for ``remote_base``.

    Only the first path component is replaced, so a package whose name repeats
    the prefix keeps its name intact.

    Raises
    ------
    ShipError
        Raised when ``relative`` does not live under ``staging_prefix``.

    Examples
    --------
    >>> rebase_remote_path("pkg", "/opt/repo", "pkg/el/pkg-pkg-1.0.rpm")
    PurePosixPath('/opt/repo/el/pkg-pkg-1.0.rpm')
    """

    staged = PurePosixPath(relative)
    try:
        remainder = staged.relative_to(staging_prefix)
    except ValueError as exc:
        message = f"Staged path '{staged}' is not below '{staging_prefix}'"
        raise ShipError(message) from exc
    return PurePosixPath(remote_base) / remainder
