"""Platform tags and the repository layout they map onto.

A platform tag names an operating system family, a version and an
architecture, for example ``el-8-x86_64`` or ``ubuntu-22.04-amd64``. The tag
decides where a package lands inside the versioned repository tree and which
rolling link represents the latest published repository for its family.

Usage
-----
Resolve the repository directory for a staged package::

    from ship_common.config import RepoLayout
    from ship_common.platforms import artifacts_path, tag_from_artifact_path

    layout = RepoLayout(repo_name="puppet8", repo_link_target="puppet")
    tag = tag_from_artifact_path("pkg/el/8/puppet8/x86_64/agent.el8.x86_64.rpm")
    print(artifacts_path(tag, "pkg", layout=layout))
    # pkg/puppet8/el/8/x86_64
"""

from __future__ import annotations

import dataclasses
import re
import typing as typ
from pathlib import PurePath, PurePosixPath

from .errors import ShipError

if typ.TYPE_CHECKING:
    from .config import RepoLayout

__all__ = [
    "PLATFORMS",
    "PlatformSpec",
    "PlatformTag",
    "artifacts_base_path_and_link_path",
    "artifacts_path",
    "codename_to_tags",
    "codenames",
    "generic_platform_tag",
    "package_format_for_path",
    "package_format_for_tag",
    "parse_platform_tag",
    "platform_tags_for_package_format",
    "tag_from_artifact_path",
]


@dataclasses.dataclass(slots=True, frozen=True)
class PlatformSpec:
    """Packaging facts for one platform version."""

    package_format: str
    architectures: tuple[str, ...]
    codename: str | None = None


PLATFORMS: dict[str, dict[str, PlatformSpec]] = {
    "el": {
        "7": PlatformSpec("rpm", ("x86_64", "aarch64", "ppc64le")),
        "8": PlatformSpec("rpm", ("x86_64", "aarch64", "ppc64le")),
        "9": PlatformSpec("rpm", ("x86_64", "aarch64")),
    },
    "sles": {
        "12": PlatformSpec("rpm", ("x86_64", "ppc64le")),
        "15": PlatformSpec("rpm", ("x86_64",)),
    },
    "fedora": {
        "36": PlatformSpec("rpm", ("x86_64",)),
    },
    "debian": {
        "10": PlatformSpec("deb", ("amd64", "i386"), codename="buster"),
        "11": PlatformSpec("deb", ("amd64", "arm64"), codename="bullseye"),
    },
    "ubuntu": {
        "18.04": PlatformSpec("deb", ("amd64", "ppc64el"), codename="bionic"),
        "20.04": PlatformSpec("deb", ("amd64", "arm64"), codename="focal"),
        "22.04": PlatformSpec("deb", ("amd64", "arm64"), codename="jammy"),
    },
    "osx": {
        "11": PlatformSpec("dmg", ("x86_64", "arm64")),
        "12": PlatformSpec("dmg", ("x86_64", "arm64")),
    },
    "windows": {
        "2012": PlatformSpec("msi", ("x64", "x86")),
    },
    "eos": {
        "4": PlatformSpec("swix", ("i386",)),
    },
    "solaris": {
        "10": PlatformSpec("svr4", ("i386", "sparc")),
        "11": PlatformSpec("p5p", ("i386", "sparc")),
    },
}

# Longest suffixes first so ``.orig.tar.gz`` wins over ``.tar.gz``.
_FORMAT_SUFFIXES: tuple[tuple[str, str], ...] = (
    (".debian.tar.gz", "deb"),
    (".orig.tar.gz", "deb"),
    (".pkg.gz", "svr4"),
    (".tar.gz", "tar"),
    (".changes", "deb"),
    (".srpm", "rpm"),
    (".swix", "swix"),
    (".rpm", "rpm"),
    (".deb", "deb"),
    (".dsc", "deb"),
    (".dmg", "dmg"),
    (".msi", "msi"),
    (".p5p", "p5p"),
    (".gem", "gem"),
)


@dataclasses.dataclass(slots=True, frozen=True)
class PlatformTag:
    """Operating system family, version and architecture of a package."""

    platform: str
    version: str
    arch: str

    def __str__(self) -> str:
        return f"{self.platform}-{self.version}-{self.arch}"

    @property
    def spec(self) -> PlatformSpec:
        """Return the :class:`PlatformSpec` describing this tag."""
        return PLATFORMS[self.platform][self.version]


def parse_platform_tag(tag: str) -> PlatformTag:
    """Return the :class:`PlatformTag` encoded in ``tag``.

    Examples
    --------
    >>> parse_platform_tag("ubuntu-22.04-amd64")
    PlatformTag(platform='ubuntu', version='22.04', arch='amd64')
    """
    platform, _, remainder = tag.partition("-")
    version, _, arch = remainder.partition("-")
    versions = PLATFORMS.get(platform)
    if versions is None:
        message = f"Unknown platform '{platform}' in tag '{tag}'"
        raise ShipError(message)
    spec = versions.get(version)
    if spec is None:
        message = f"Unknown version '{version}' for platform '{platform}' in tag '{tag}'"
        raise ShipError(message)
    if arch not in spec.architectures:
        message = f"Unknown architecture '{arch}' for {platform}-{version} in tag '{tag}'"
        raise ShipError(message)
    return PlatformTag(platform, version, arch)


def generic_platform_tag(platform: str) -> PlatformTag:
    """Return the first known tag for ``platform``."""
    try:
        version, spec = next(iter(PLATFORMS[platform].items()))
    except KeyError as exc:
        message = f"Unknown platform '{platform}'"
        raise ShipError(message) from exc
    return PlatformTag(platform, version, spec.architectures[0])


def codenames() -> list[str]:
    """Return every known Debian-family codename, sorted."""
    return sorted(
        spec.codename
        for versions in PLATFORMS.values()
        for spec in versions.values()
        if spec.codename
    )


def codename_to_tags(codename: str) -> list[PlatformTag]:
    """Return the tags for every architecture released under ``codename``."""
    for platform, versions in PLATFORMS.items():
        for version, spec in versions.items():
            if spec.codename == codename:
                return [PlatformTag(platform, version, arch) for arch in spec.architectures]
    message = f"Unknown codename '{codename}'"
    raise ShipError(message)


def platform_tags_for_package_format(package_format: str) -> list[PlatformTag]:
    """Return every tag whose packages use ``package_format``."""
    return [
        PlatformTag(platform, version, arch)
        for platform, versions in PLATFORMS.items()
        for version, spec in versions.items()
        if spec.package_format == package_format
        for arch in spec.architectures
    ]


def package_format_for_tag(tag: PlatformTag) -> str:
    """Return the package format shipped for ``tag``."""
    return tag.spec.package_format


def package_format_for_path(path: str | PurePath) -> str | None:
    """Return the package format implied by ``path``'s extension.

    Examples
    --------
    >>> package_format_for_path("pkg/deb/jammy/agent_7.0.orig.tar.gz")
    'deb'
    >>> package_format_for_path("notes.txt") is None
    True
    """
    name = PurePosixPath(path).name
    for suffix, package_format in _FORMAT_SUFFIXES:
        if name.endswith(suffix):
            return package_format
    return None


def _arch_pattern(arch: str) -> re.Pattern[str]:
    return re.compile(rf"(?<![A-Za-z0-9]){re.escape(arch)}(?![A-Za-z0-9_])")


def _find_arch(spec: PlatformSpec, parts: typ.Sequence[str], name: str) -> str:
    for arch in spec.architectures:
        if arch in parts or _arch_pattern(arch).search(name):
            return arch
    return spec.architectures[0]


def _find_platform_version(
    parts: list[str], package_format: str | None
) -> tuple[str, str] | None:
    for platform, versions in PLATFORMS.items():
        for version, spec in versions.items():
            if package_format is not None and spec.package_format != package_format:
                continue
            if spec.codename and spec.codename in parts:
                return platform, version
            for index, part in enumerate(parts):
                if part in {f"{platform}-{version}", f"{platform}{version}"}:
                    return platform, version
                if part == platform and parts[index + 1 : index + 2] == [version]:
                    return platform, version
    return None


def tag_from_artifact_path(path: str | PurePath) -> PlatformTag:
    """Infer the platform tag of the package at ``path``.

    Directory components identify the platform and version (``el/8``,
    ``el-8`` or a Debian codename such as ``jammy``). The architecture comes
    from a directory component or the file name and falls back to the first
    architecture of the platform version for architecture-neutral packages.

    Raises
    ------
    ShipError
        Raised when no known platform and version appear in ``path``.

    Examples
    --------
    >>> str(tag_from_artifact_path("pkg/el/8/products/x86_64/a-1.el8.x86_64.rpm"))
    'el-8-x86_64'
    >>> str(tag_from_artifact_path("pkg/deb/jammy/agent_7.0.0-1jammy_arm64.deb"))
    'ubuntu-22.04-arm64'
    """
    posix = PurePosixPath(path)
    parts = list(posix.parts[:-1])
    found = _find_platform_version(parts, package_format_for_path(posix))
    if found is None:
        message = f"Unable to determine platform tag from '{posix}'"
        raise ShipError(message)
    platform, version = found
    arch = _find_arch(PLATFORMS[platform][version], parts, posix.name)
    return PlatformTag(platform, version, arch)


def artifacts_path(
    tag: PlatformTag,
    base: str | PurePath,
    nonfinal: bool = False,
    *,
    layout: RepoLayout,
) -> PurePosixPath:
    """Return the repository directory that receives packages for ``tag``.

    Examples
    --------
    >>> from ship_common.config import RepoLayout
    >>> layout = RepoLayout(repo_name="puppet8")
    >>> artifacts_path(parse_platform_tag("el-8-x86_64"), "pkg", layout=layout)
    PurePosixPath('pkg/puppet8/el/8/x86_64')
    >>> artifacts_path(parse_platform_tag("debian-11-amd64"), "pkg", layout=layout)
    PurePosixPath('pkg/bullseye/puppet8')
    """
    repo, _ = layout.names(nonfinal=nonfinal)
    root = PurePosixPath(base)
    spec = tag.spec
    if spec.package_format == "deb":
        return root / typ.cast(str, spec.codename) / repo
    if spec.package_format == "msi":
        return root / "windows" / repo
    return root / repo / tag.platform / tag.version / tag.arch


def artifacts_base_path_and_link_path(
    tag: PlatformTag,
    repo_path: str | PurePath,
    nonfinal: bool = False,
    *,
    layout: RepoLayout,
) -> tuple[PurePosixPath, PurePosixPath | None]:
    """Return the versioned repository root for ``tag`` and its rolling link.

    The link is ``None`` when ``layout`` defines no link target for the
    requested mode.
    """
    repo, link = layout.names(nonfinal=nonfinal)
    root = PurePosixPath(repo_path)
    spec = tag.spec
    if spec.package_format == "deb":
        root = root / typ.cast(str, spec.codename)
    elif spec.package_format == "msi":
        root = root / "windows"
    return root / repo, (root / link if link else None)
