"""Behavioural tests for the ``ship.py`` command-line entry point."""

from __future__ import annotations

import importlib
import sys
from pathlib import Path
from types import ModuleType

import pytest

from ship_test_helpers import RecordingShell, write_packages

REPO_ROOT = Path(__file__).resolve().parent.parent

CONFIG = """\
[common]
project = "puppet-agent"

[repository]
repo_name = "puppet8"
repo_link_target = "puppet"

[targets.rpm]
host = "yum.example.com"
remote_path = "/opt/repository/yum"
"""


@pytest.fixture
def ship_cli(ship_common: object) -> ModuleType:
    """Import the CLI module from the repository root."""

    sys_path = str(REPO_ROOT)
    sys.path.insert(0, sys_path)
    try:
        return importlib.import_module("ship")
    finally:
        sys.path.remove(sys_path)


@pytest.fixture
def shell(ship_common: object) -> RecordingShell:
    return RecordingShell(
        error_factory=lambda host, cmd: ship_common.RemoteCommandError(host, cmd, "boom")
    )


@pytest.fixture
def config_file(workspace: Path) -> Path:
    path = workspace / "release-shipping.toml"
    path.write_text(CONFIG, encoding="utf-8")
    return path


@pytest.fixture
def patched_shell(
    ship_cli: ModuleType, shell: RecordingShell, monkeypatch: pytest.MonkeyPatch
) -> RecordingShell:
    monkeypatch.setattr(ship_cli, "RemoteShell", lambda: shell)
    return shell


def test_cli_ships_with_yes_flag(
    ship_cli: ModuleType,
    patched_shell: RecordingShell,
    config_file: Path,
    workspace: Path,
    capsys: pytest.CaptureFixture[str],
) -> None:
    write_packages(workspace, "pkg/el/8/x86_64/puppet-agent-8.0.0-1.el8.x86_64.rpm")

    ship_cli.main(config_file, "rpm", Path("pkg"), yes=True)

    assert len(patched_shell.syncs) == 1, "The rpm should be transferred"
    assert any("link_path=" in c for c in patched_shell.commands())
    assert "Shipped 1 package(s)." in capsys.readouterr().err


def test_cli_honours_dryrun_environment(
    ship_cli: ModuleType,
    patched_shell: RecordingShell,
    config_file: Path,
    workspace: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("DRYRUN", "true")
    monkeypatch.setenv("ANSWER_OVERRIDE", "yes")
    write_packages(workspace, "pkg/el/8/x86_64/puppet-agent-8.0.0-1.el8.x86_64.rpm")

    ship_cli.main(config_file, "rpm")

    assert patched_shell.runs == []
    assert "--dry-run" in patched_shell.syncs[0][3]


def test_cli_test_host_creates_group(
    ship_cli: ModuleType,
    patched_shell: RecordingShell,
    config_file: Path,
    workspace: Path,
) -> None:
    write_packages(workspace, "pkg/el/8/x86_64/puppet-agent-8.0.0-1.el8.x86_64.rpm")

    ship_cli.main(config_file, "rpm", yes=True, test_host="vm.example.com")

    assert patched_shell.runs[0] == (
        "vm.example.com",
        "getent group release || groupadd release",
    )


@pytest.mark.parametrize(
    ("package_format", "config_name", "fragment"),
    [
        ("zip", "release-shipping.toml", "Unknown package format 'zip'"),
        ("deb", "release-shipping.toml", r"No [targets.deb] section"),
        ("rpm", "absent.toml", "Configuration file not found"),
    ],
)
def test_cli_reports_failures(
    ship_cli: ModuleType,
    patched_shell: RecordingShell,
    config_file: Path,
    workspace: Path,
    capsys: pytest.CaptureFixture[str],
    package_format: str,
    config_name: str,
    fragment: str,
) -> None:
    with pytest.raises(SystemExit) as excinfo:
        ship_cli.main(workspace / config_name, package_format, yes=True)

    assert excinfo.value.code == 1
    err = capsys.readouterr().err
    assert "::error title=Shipping Failure::" in err
    assert fragment in err


def test_cli_reports_transmission_failure(
    ship_cli: ModuleType,
    config_file: Path,
    workspace: Path,
    monkeypatch: pytest.MonkeyPatch,
    ship_common: object,
    capsys: pytest.CaptureFixture[str],
) -> None:
    failing = RecordingShell(
        error_factory=lambda host, cmd: ship_common.RemoteCommandError(host, cmd, "boom"),
        fail_on=("puppet-agent",),
    )
    monkeypatch.setattr(ship_cli, "RemoteShell", lambda: failing)
    write_packages(workspace, "pkg/el/8/x86_64/puppet-agent-8.0.0-1.el8.x86_64.rpm")

    with pytest.raises(SystemExit):
        ship_cli.main(config_file, "rpm", yes=True)

    assert "Failed to ship 1 package(s) to yum.example.com" in capsys.readouterr().err


def test_cli_reports_invalid_exclude_expression(
    ship_cli: ModuleType,
    patched_shell: RecordingShell,
    workspace: Path,
    capsys: pytest.CaptureFixture[str],
) -> None:
    config = workspace / "release-shipping.toml"
    config.write_text(CONFIG + 'excludes = ["debuginfo("]\n', encoding="utf-8")

    with pytest.raises(SystemExit) as excinfo:
        ship_cli.main(config, "rpm", yes=True)

    assert excinfo.value.code == 1
    err = capsys.readouterr().err
    assert "::error title=Shipping Failure::targets.rpm.excludes" in err
    assert patched_shell.runs == [], "Nothing may reach the host"


def test_cli_dry_run_test_host_leaves_vm_untouched(
    ship_cli: ModuleType,
    patched_shell: RecordingShell,
    config_file: Path,
    workspace: Path,
) -> None:
    write_packages(workspace, "pkg/el/8/x86_64/puppet-agent-8.0.0-1.el8.x86_64.rpm")

    ship_cli.main(
        config_file, "rpm", yes=True, dry_run=True, test_host="vm.example.com"
    )

    assert patched_shell.runs == [], "Dry runs must not create the group"
    assert {host for _, host, *_ in patched_shell.syncs} == {"vm.example.com"}
