"""Package discovery for the shipping pipeline."""

from __future__ import annotations

import glob
import re
import typing as typ
from pathlib import Path

__all__ = ["collect_packages"]


def _expand(pattern: str, workspace: Path) -> list[Path]:
    matches = glob.glob(pattern, root_dir=workspace, recursive=True)
    return [
        Path(match)
        for match in sorted(matches)
        if (workspace / match).is_file()
    ]


def collect_packages(
    patterns: typ.Sequence[str],
    excludes: typ.Sequence[str] | None = None,
    *,
    workspace: Path | None = None,
) -> list[Path]:
    """Return the files matching ``patterns`` minus those matching ``excludes``.

    Parameters
    ----------
    patterns : Sequence[str]
        Glob patterns such as ``"pkg/**/*.rpm"``. Relative patterns are
        expanded against ``workspace``; ``**`` spans any number of directories.
    excludes : Sequence[str] | None, optional
        Regular expressions; any path containing a match is dropped.
    workspace : Path | None, optional
        Directory relative patterns are resolved against. Defaults to the
        current working directory.

    Returns
    -------
    list[Path]
        Matches in pattern order, paths relative to ``workspace`` for relative
        patterns. A file matched by two patterns appears twice. An empty list
        means there is nothing to ship.

    Examples
    --------
    >>> collect_packages(["pkg/**/*.rpm"], workspace=Path("/nonexistent"))
    No packages with (pkg/**/*.rpm) extensions found staged in 'pkg'
    Maybe your excludes argument ([]) is too restrictive?
    []
    """

    root = Path.cwd() if workspace is None else Path(workspace)
    exclude_patterns = [re.compile(exclude) for exclude in excludes or ()]
    packages = [
        path
        for pattern in patterns
        for path in _expand(pattern, root)
        if not any(regex.search(path.as_posix()) for regex in exclude_patterns)
    ]
    if not packages:
        print(
            f"No packages with ({', '.join(patterns)}) extensions found staged in 'pkg'"
        )
        print(f"Maybe your excludes argument ({list(excludes or [])}) is too restrictive?")
    return packages
