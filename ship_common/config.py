"""Configuration models and loader for the shipping helper.

This module provides dataclasses and a loader function for parsing TOML
shipping configurations that describe the repository layout, the remote
hosts receiving each package format and the options applied when shipping.

Usage
-----
Load a shipping configuration and inspect the rpm target::

    from pathlib import Path
    from ship_common.config import load_config

    config = load_config(Path("release-shipping.toml"))
    target = config.target("rpm")
    print(f"Shipping rpms to {target.host}:{target.remote_path}")
"""

from __future__ import annotations

import dataclasses
import re
import typing as typ
from pathlib import Path

import tomllib

from .errors import ShipError

__all__ = [
    "TARGET_FORMATS",
    "FormatTarget",
    "RepoLayout",
    "ShipConfig",
    "ShipOptions",
    "load_config",
]

TARGET_FORMATS: tuple[str, ...] = (
    "rpm",
    "deb",
    "svr4",
    "p5p",
    "dmg",
    "swix",
    "msi",
    "gem",
    "tar",
)


@dataclasses.dataclass(slots=True, frozen=True)
class RepoLayout:
    """Names of the versioned repository and its rolling link.

    Parameters
    ----------
    repo_name : str
        Directory name of the versioned repository for final releases, for
        example ``"puppet8"``.
    repo_link_target : str | None, optional
        Name of the rolling link pointing at the final repository, for
        example ``"puppet"``. ``None`` disables rolling links.
    nonfinal_repo_name : str | None, optional
        Repository receiving pre-release shipments.
    nonfinal_repo_link_target : str | None, optional
        Rolling link name for the pre-release repository.

    Examples
    --------
    >>> RepoLayout("puppet8", "puppet").names(nonfinal=False)
    ('puppet8', 'puppet')
    """

    repo_name: str
    repo_link_target: str | None = None
    nonfinal_repo_name: str | None = None
    nonfinal_repo_link_target: str | None = None

    def names(self, *, nonfinal: bool) -> tuple[str, str | None]:
        """Return the repository and link names for the requested mode."""
        if not nonfinal:
            return self.repo_name, self.repo_link_target
        if not self.nonfinal_repo_name:
            message = "Nonfinal shipment requested but no nonfinal_repo_name is configured"
            raise ShipError(message)
        return self.nonfinal_repo_name, self.nonfinal_repo_link_target


@dataclasses.dataclass(slots=True)
class ShipOptions:
    """Options applied to a single shipment.

    Parameters
    ----------
    excludes : list[str]
        Regular expressions removing matching paths from the shipment.
    set_immutable : bool, default=True
        Mark shipped files immutable on the remote host.
    platform_independent : bool, default=False
        Ship directly under the remote path without per-platform directories.
    nonfinal : bool, default=False
        Route the shipment to the pre-release repository.
    """

    excludes: list[str] = dataclasses.field(default_factory=list)
    set_immutable: bool = True
    platform_independent: bool = False
    nonfinal: bool = False


@dataclasses.dataclass(slots=True)
class FormatTarget:
    """Remote destination for one package format."""

    host: str
    remote_path: str
    excludes: list[str] = dataclasses.field(default_factory=list)
    set_immutable: bool = True
    nonfinal: bool = False


@dataclasses.dataclass(slots=True)
class ShipConfig:
    """Concrete configuration produced by :func:`load_config`.

    Parameters
    ----------
    project : str
        Package name used for ``<project>-latest`` convenience symlinks.
    layout : RepoLayout
        Repository and rolling link names.
    targets : dict[str, FormatTarget]
        Remote destination for each configured package format.
    owner : str, default="root"
        Owner applied to shipped files and directories.
    group : str, default="release"
        Group applied to shipped files and directories.
    retry_attempts : int, default=3
        Attempts made for each package before the shipment fails.
    excludes : list[str], optional
        Exclude patterns shared by every format.
    """

    project: str
    layout: RepoLayout
    targets: dict[str, FormatTarget]
    owner: str = "root"
    group: str = "release"
    retry_attempts: int = 3
    excludes: list[str] = dataclasses.field(default_factory=list)

    def target(self, format_name: str) -> FormatTarget:
        """Return the target configured for ``format_name``."""
        try:
            return self.targets[format_name]
        except KeyError as exc:
            message = f"No [targets.{format_name}] section configured"
            raise ShipError(message) from exc

    def options_for(
        self,
        format_name: str,
        *,
        platform_independent: bool = False,
        nonfinal: bool | None = None,
    ) -> ShipOptions:
        """Return the :class:`ShipOptions` for shipping ``format_name``."""
        target = self.target(format_name)
        return ShipOptions(
            excludes=[*self.excludes, *target.excludes],
            set_immutable=target.set_immutable,
            platform_independent=platform_independent,
            nonfinal=target.nonfinal if nonfinal is None else nonfinal,
        )

    def with_host(self, host: str) -> ShipConfig:
        """Return a copy whose every target ships to ``host``."""
        targets = {
            name: dataclasses.replace(target, host=host)
            for name, target in self.targets.items()
        }
        return dataclasses.replace(self, targets=targets)


def load_config(config_file: Path) -> ShipConfig:
    """Load shipping configuration from ``config_file``.

    Parameters
    ----------
    config_file : Path
        Path to the TOML configuration file.

    Returns
    -------
    ShipConfig
        Configuration with the repository layout and every format target.

    Raises
    ------
    FileNotFoundError
        Raised when the configuration file is absent at ``config_file``.
    ShipError
        Raised when required configuration keys are missing or invalid.
    """
    config_file = Path(config_file)
    if not config_file.is_file():
        message = f"Configuration file not found at {config_file}"
        raise FileNotFoundError(message)

    data = _load_toml(config_file)
    common = _section(data, "common", config_file)
    repository = _section(data, "repository", config_file)
    _require_keys(common, {"project"}, "common", config_file)
    _require_keys(repository, {"repo_name"}, "repository", config_file)

    return ShipConfig(
        project=_string(common, "project", "common", config_file),
        layout=RepoLayout(
            repo_name=_string(repository, "repo_name", "repository", config_file),
            repo_link_target=repository.get("repo_link_target"),
            nonfinal_repo_name=repository.get("nonfinal_repo_name"),
            nonfinal_repo_link_target=repository.get("nonfinal_repo_link_target"),
        ),
        targets=_make_targets(data.get("targets", {}), config_file),
        owner=common.get("owner", "root"),
        group=common.get("group", "release"),
        retry_attempts=_retry_attempts(common.get("retry_attempts", 3), config_file),
        excludes=_exclude_list(common.get("excludes", []), "common.excludes", config_file),
    )


def _load_toml(path: Path) -> dict[str, typ.Any]:
    with path.open("rb") as handle:
        return tomllib.load(handle)


def _section(
    data: dict[str, typ.Any], name: str, config_path: Path
) -> dict[str, typ.Any]:
    try:
        section = data[name]
    except KeyError as exc:
        message = f"Missing configuration key in {config_path}: {exc}"
        raise ShipError(message) from exc
    if not isinstance(section, dict):
        message = f"[{name}] in {config_path} must be a table"
        raise ShipError(message)
    return section


def _require_keys(
    section: dict[str, typ.Any], keys: set[str], label: str, config_path: Path
) -> None:
    if missing := sorted(key for key in keys if key not in section):
        joined = ", ".join(missing)
        message = (
            "Missing required key(s) "
            f"{joined} in [{label}] section of {config_path}"
        )
        raise ShipError(message)


def _string(
    section: dict[str, typ.Any], key: str, label: str, config_path: Path
) -> str:
    value = section[key]
    if not isinstance(value, str) or not value:
        message = f"'{key}' in [{label}] of {config_path} must be a non-empty string"
        raise ShipError(message)
    return value


def _string_list(value: object, label: str, config_path: Path) -> list[str]:
    """Return ``value`` as a list of strings."""

    if isinstance(value, str):
        return [value] if value else []
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        message = f"{label} in {config_path} must be a list of strings"
        raise ShipError(message)
    return [item for item in value if item]


def _exclude_list(value: object, label: str, config_path: Path) -> list[str]:
    """Return ``value`` as exclude expressions, each a valid regular expression."""

    excludes = _string_list(value, label, config_path)
    for exclude in excludes:
        try:
            re.compile(exclude)
        except re.error as exc:
            message = (
                f"{label} in {config_path} contains an invalid regular "
                f"expression {exclude!r}: {exc}"
            )
            raise ShipError(message) from exc
    return excludes


def _retry_attempts(value: object, config_path: Path) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        message = f"common.retry_attempts in {config_path} must be a positive integer"
        raise ShipError(message)
    return value


def _make_targets(
    entries: object, config_path: Path
) -> dict[str, FormatTarget]:
    if not isinstance(entries, dict) or not entries:
        message = f"No [targets.*] sections configured in {config_path}"
        raise ShipError(message)
    targets: dict[str, FormatTarget] = {}
    for name, entry in entries.items():
        label = f"targets.{name}"
        if name not in TARGET_FORMATS:
            known = ", ".join(TARGET_FORMATS)
            message = f"Unknown package format [{label}] in {config_path}; expected one of {known}"
            raise ShipError(message)
        if not isinstance(entry, dict):
            message = f"[{label}] in {config_path} must be a table"
            raise ShipError(message)
        _require_keys(entry, {"host", "remote_path"}, label, config_path)
        targets[name] = FormatTarget(
            host=_string(entry, "host", label, config_path),
            remote_path=_string(entry, "remote_path", label, config_path),
            excludes=_exclude_list(
                entry.get("excludes", []), f"{label}.excludes", config_path
            ),
            set_immutable=bool(entry.get("set_immutable", True)),
            nonfinal=bool(entry.get("nonfinal", False)),
        )
    return targets
