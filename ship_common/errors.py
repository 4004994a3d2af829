"""Exception types raised by the shipping helper."""

from __future__ import annotations

import dataclasses
from pathlib import PurePosixPath

__all__ = [
    "LinkPublicationError",
    "PackageFailure",
    "RemoteCommandError",
    "ShipError",
    "TransmissionError",
]


class ShipError(RuntimeError):
    """Raised when shipping cannot proceed."""


class RemoteCommandError(ShipError):
    """Raised when a single ``ssh`` or ``rsync`` invocation fails."""

    def __init__(self, host: str, command: str, detail: str) -> None:
        self.host = host
        self.command = command
        self.detail = detail
        super().__init__(f"Remote command failed on {host}: {command}\n{detail}")


@dataclasses.dataclass(slots=True, frozen=True)
class PackageFailure:
    """A package whose transmission exhausted its retry budget."""

    package: PurePosixPath
    step: str
    cause: BaseException


class TransmissionError(ShipError):
    """Raised after a batch when one or more packages failed to ship."""

    def __init__(self, host: str, failures: list[PackageFailure]) -> None:
        self.host = host
        self.failures = failures
        lines = [f"Failed to ship {len(failures)} package(s) to {host}:"]
        lines.extend(
            f"  - {failure.package} (step: {failure.step}): {failure.cause}"
            for failure in failures
        )
        super().__init__("\n".join(lines))


class LinkPublicationError(ShipError):
    """Raised when a rolling or latest link cannot be published."""

    def __init__(
        self,
        subject: object,
        host: str,
        cause: BaseException,
        *,
        kind: str = "rolling repo link",
    ) -> None:
        self.subject = subject
        self.host = host
        self.cause = cause
        super().__init__(f"Failed to create {kind} for '{subject}' on {host}.\n{cause}")
