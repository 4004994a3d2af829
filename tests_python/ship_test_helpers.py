"""Shared helpers for the shipping test suites."""

from __future__ import annotations

import dataclasses
import subprocess
import typing as typ
from pathlib import Path, PurePath

__all__ = [
    "FlakyShell",
    "LocalScriptShell",
    "RecordingShell",
    "write_packages",
]


@dataclasses.dataclass
class RecordingShell:
    """Record remote commands and transfers instead of running them.

    ``fail_on`` lists substrings; any command containing one raises the
    error produced by ``error_factory``.
    """

    error_factory: typ.Callable[[str, str], Exception]
    fail_on: tuple[str, ...] = ()
    runs: list[tuple[str, str]] = dataclasses.field(default_factory=list)
    syncs: list[tuple[Path, str, str, tuple[str, ...]]] = dataclasses.field(
        default_factory=list
    )
    synced_contents: list[bytes] = dataclasses.field(default_factory=list)

    def run(self, host: str, command: str) -> str:
        self.runs.append((host, command))
        if any(marker in command for marker in self.fail_on):
            raise self.error_factory(host, command)
        return ""

    def sync(
        self,
        local_path: Path,
        host: str,
        remote_dir: str | PurePath,
        flags: typ.Sequence[str] = (),
    ) -> str:
        remote = PurePath(remote_dir).as_posix()
        self.syncs.append((Path(local_path), host, remote, tuple(flags)))
        self.synced_contents.append(Path(local_path).read_bytes())
        if any(marker in Path(local_path).name for marker in self.fail_on):
            raise self.error_factory(host, f"rsync {local_path}")
        return ""

    def commands(self) -> list[str]:
        """Return the recorded commands without their hosts."""
        return [command for _, command in self.runs]


@dataclasses.dataclass
class FlakyShell(RecordingShell):
    """Fail the first ``failures`` transfers, then behave normally."""

    failures: int = 0
    attempts: int = 0

    def sync(
        self,
        local_path: Path,
        host: str,
        remote_dir: str | PurePath,
        flags: typ.Sequence[str] = (),
    ) -> str:
        self.attempts += 1
        if self.attempts <= self.failures:
            raise self.error_factory(host, f"rsync {local_path}")
        return super().sync(local_path, host, remote_dir, flags)


@dataclasses.dataclass
class LocalScriptShell:
    """Execute remote scripts against the local filesystem with ``bash``."""

    error_factory: typ.Callable[[str, str, str], Exception]
    outputs: list[str] = dataclasses.field(default_factory=list)

    def run(self, host: str, command: str) -> str:
        completed = subprocess.run(  # noqa: S603  # Security: scripts are built by the code under test.
            ["bash", "-c", command],  # noqa: S607
            capture_output=True,
            text=True,
            check=False,
        )
        self.outputs.append(completed.stdout)
        if completed.returncode != 0:
            raise self.error_factory(host, command, completed.stderr)
        return completed.stdout

    def sync(self, *_args: object, **_kwargs: object) -> str:  # pragma: no cover - unused
        message = "LocalScriptShell does not transfer files"
        raise NotImplementedError(message)


def write_packages(root: Path, *relative_paths: str) -> list[Path]:
    """Create package files below ``root`` and return their paths.

    Each file's content is its relative path so copies can be traced back to
    their source.
    """

    created: list[Path] = []
    for relative in relative_paths:
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(relative, encoding="utf-8")
        created.append(path)
    return created
