"""Shared fixtures for the shipping helper test suite."""

from __future__ import annotations

import importlib
import sys
from pathlib import Path

import pytest

REPO_ROOT = Path(__file__).resolve().parent.parent


@pytest.fixture(scope="session")
def ship_common() -> object:
    """Load the shipping helper package once for reuse across tests."""
    sys_path = str(REPO_ROOT)

    sys.path.insert(0, sys_path)
    try:
        return importlib.import_module("ship_common")
    finally:
        sys.path.remove(sys_path)


@pytest.fixture
def platforms(ship_common: object) -> object:
    """Expose the platform tag helpers for direct testing."""

    return importlib.import_module("ship_common.platforms")


@pytest.fixture
def links(ship_common: object) -> object:
    """Expose the rolling link builders for direct testing."""

    return importlib.import_module("ship_common.links")


@pytest.fixture
def remote(ship_common: object) -> object:
    """Expose the remote execution helpers for direct testing."""

    return importlib.import_module("ship_common.remote")


@pytest.fixture
def layout(ship_common: object) -> object:
    """Return the repository layout shared by most tests."""

    return ship_common.RepoLayout(
        repo_name="puppet8",
        repo_link_target="puppet",
        nonfinal_repo_name="puppet8-nightly",
        nonfinal_repo_link_target="puppet-nightly",
    )


@pytest.fixture
def workspace(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Create an isolated workspace and make it the working directory."""
    root = tmp_path / "workspace"
    root.mkdir()
    monkeypatch.chdir(root)
    monkeypatch.delenv("DRYRUN", raising=False)
    monkeypatch.delenv("ANSWER_OVERRIDE", raising=False)
    return root
