"""Tests for laying packages out under the staging root."""

from __future__ import annotations

from pathlib import Path, PurePosixPath

import pytest

from ship_test_helpers import write_packages


def _reorganize(
    ship_common: object,
    layout: object,
    packages: list[str],
    root: Path,
    **kwargs: object,
) -> list[PurePosixPath]:
    return ship_common.reorganize_packages(
        [Path(package) for package in packages], root, layout=layout, **kwargs
    )


def test_reorganize_follows_repository_layout(
    ship_common: object, layout: object, workspace: Path, tmp_path: Path
) -> None:
    """Each package lands in the directory its platform tag dictates."""

    packages = [
        "pkg/el/8/x86_64/agent-8.0.0-1.el8.x86_64.rpm",
        "pkg/deb/jammy/agent_8.0.0-1jammy_amd64.deb",
        "pkg/windows/2012/agent-8.0.0-x64.msi",
    ]
    write_packages(workspace, *packages)
    staging = tmp_path / "staging"

    staged = _reorganize(ship_common, layout, packages, staging)

    assert staged == [
        PurePosixPath("pkg/puppet8/el/8/x86_64/agent-8.0.0-1.el8.x86_64.rpm"),
        PurePosixPath("pkg/jammy/puppet8/agent_8.0.0-1jammy_amd64.deb"),
        PurePosixPath("pkg/windows/puppet8/agent-8.0.0-x64.msi"),
    ], "Staged paths should follow the per-format layout"
    for relative in staged:
        assert (staging / relative).is_file(), f"{relative} should exist in staging"


def test_reorganize_uses_nonfinal_repository(
    ship_common: object, layout: object, workspace: Path, tmp_path: Path
) -> None:
    package = "pkg/el/9/agent-8.0.0-1.el9.aarch64.rpm"
    write_packages(workspace, package)

    staged = _reorganize(ship_common, layout, [package], tmp_path / "s", nonfinal=True)

    assert staged == [
        PurePosixPath("pkg/puppet8-nightly/el/9/aarch64/agent-8.0.0-1.el9.aarch64.rpm")
    ]


def test_reorganize_platform_independent(
    ship_common: object, layout: object, workspace: Path, tmp_path: Path
) -> None:
    """Platform-independent packages sit directly below the staging prefix."""

    write_packages(workspace, "pkg/agent-8.0.0.gem")

    staged = _reorganize(
        ship_common,
        layout,
        ["pkg/agent-8.0.0.gem"],
        tmp_path / "s",
        platform_independent=True,
    )

    assert staged == [PurePosixPath("pkg/agent-8.0.0.gem")]


def test_reorganize_copies_without_touching_sources(
    ship_common: object, layout: object, workspace: Path, tmp_path: Path
) -> None:
    """Sources stay in place and copies keep their content."""

    package = "pkg/el/8/agent-8.0.0-1.el8.x86_64.rpm"
    (source,) = write_packages(workspace, package)
    before = source.stat().st_mtime_ns
    staging = tmp_path / "staging"

    (staged,) = _reorganize(ship_common, layout, [package], staging)

    assert source.read_text(encoding="utf-8") == package, "Source must be unchanged"
    assert source.stat().st_mtime_ns == before, "Source must not be rewritten"
    assert (staging / staged).read_text(encoding="utf-8") == package


def test_reorganize_is_deterministic(
    ship_common: object, layout: object, workspace: Path, tmp_path: Path
) -> None:
    packages = [
        "pkg/el/7/agent-8.0.0-1.el7.x86_64.rpm",
        "pkg/sles/15/agent-8.0.0-1.sles15.x86_64.rpm",
    ]
    write_packages(workspace, *packages)

    first = _reorganize(ship_common, layout, packages, tmp_path / "a")
    second = _reorganize(ship_common, layout, packages, tmp_path / "b")

    assert first == second, "Identical inputs must stage identically"


def test_reorganize_rejects_untagged_packages(
    ship_common: object, layout: object, workspace: Path, tmp_path: Path
) -> None:
    write_packages(workspace, "pkg/agent.rpm")

    with pytest.raises(ship_common.ShipError, match="platform tag"):
        _reorganize(ship_common, layout, ["pkg/agent.rpm"], tmp_path / "s")


@pytest.mark.parametrize(
    ("relative", "expected"),
    [
        ("pkg/puppet8/el/8/x86_64/a.rpm", "/opt/repo/puppet8/el/8/x86_64/a.rpm"),
        ("pkg/el/pkg-pkg-1.0.rpm", "/opt/repo/el/pkg-pkg-1.0.rpm"),
        ("pkg/pkg/agent.gem", "/opt/repo/pkg/agent.gem"),
    ],
)
def test_rebase_remote_path_replaces_only_the_prefix(
    ship_common: object, relative: str, expected: str
) -> None:
    """Only the leading staging component is swapped for the remote base."""

    rebase_remote_path = ship_common.fs_utils.rebase_remote_path

    assert rebase_remote_path("pkg", "/opt/repo", relative) == PurePosixPath(expected)


def test_rebase_remote_path_rejects_foreign_paths(ship_common: object) -> None:
    rebase_remote_path = ship_common.fs_utils.rebase_remote_path

    with pytest.raises(ship_common.ShipError, match="not below"):
        rebase_remote_path("pkg", "/opt/repo", "other/agent.rpm")


def test_safe_destination_path_refuses_escape(ship_common: object, tmp_path: Path) -> None:
    safe_destination_path = ship_common.fs_utils.safe_destination_path

    with pytest.raises(ship_common.ShipError, match="escapes"):
        safe_destination_path(tmp_path, "../outside")


def test_reorganize_rejects_format_foreign_to_platform(
    ship_common: object, layout: object, workspace: Path, tmp_path: Path
) -> None:
    """A file in a platform directory must use that platform's package format."""

    package = "pkg/el/8/x86_64/agent-8.0.0-1.el8.x86_64.zip"
    write_packages(workspace, package)
    staging = tmp_path / "staging"

    with pytest.raises(ship_common.ShipError, match="is not a rpm package"):
        _reorganize(ship_common, layout, [package], staging)

    assert not staging.exists(), "Nothing should be staged"


def test_describe_package_records_format_and_tag(ship_common: object) -> None:
    describe = ship_common.reorganize.describe_package

    package = describe(
        Path("pkg/deb/jammy/agent_8.0.0-1jammy_arm64.deb"), platform_independent=False
    )
    gem = describe(Path("pkg/agent-8.0.0.gem"), platform_independent=True)

    assert package.package_format == "deb"
    assert str(package.platform_tag) == "ubuntu-22.04-arm64"
    assert (gem.package_format, gem.platform_tag) == ("gem", None)
