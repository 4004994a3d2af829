"""Command-line entry point for the shipping helper.

Examples
--------
Ship the rpms staged below ``pkg`` using a project configuration::

    uv run ship.py release-shipping.toml rpm pkg

Preview a nonfinal deb shipment without touching the remote host::

    DRYRUN=1 uv run ship.py release-shipping.toml deb pkg --nonfinal
"""

from __future__ import annotations

import sys
import typing as typ
from pathlib import Path

import cyclopts

from ship_common import (
    SHIP_FORMATS,
    RemoteShell,
    ShipError,
    Shipper,
    env_flag,
    load_config,
)

app = cyclopts.App(help="Ship staged packages to their distribution hosts.")


@app.default
def main(
    config_file: Path,
    package_format: str,
    local_dir: Path = Path("pkg"),
    *,
    remote_path: str | None = None,
    nonfinal: bool | None = None,
    dry_run: bool = False,
    yes: bool = False,
    test_host: str | None = None,
) -> None:
    """Ship ``package_format`` packages found below ``local_dir``.

    Parameters
    ----------
    config_file:
        Path to the TOML shipping configuration.
    package_format:
        One of ``rpm``, ``deb``, ``svr4``, ``p5p``, ``dmg``, ``swix``,
        ``msi``, ``gem`` or ``tar``.
    local_dir:
        Directory holding the built packages.
    remote_path:
        Override the remote base path configured for the format.
    nonfinal:
        Route the shipment to the pre-release repository.
    dry_run:
        Report remote changes without making them. ``DRYRUN`` in the
        environment has the same effect.
    yes:
        Skip the confirmation prompt.
    test_host:
        Send every format to this machine instead of the configured hosts.
    """
    try:
        if package_format not in SHIP_FORMATS:
            known = ", ".join(SHIP_FORMATS)
            message = f"Unknown package format '{package_format}'; expected one of {known}"
            raise ShipError(message)
        config = load_config(config_file)
        shell = RemoteShell()
        options: dict[str, typ.Any] = {
            "dry_run": dry_run or env_flag("DRYRUN"),
        }
        if yes:
            options["confirm"] = lambda: True
        if test_host:
            shipper = Shipper.for_test_host(config, test_host, shell=shell, **options)
        else:
            shipper = Shipper(config, shell=shell, **options)
        result = shipper.ship(package_format, local_dir, remote_path, nonfinal)
    except (FileNotFoundError, ValueError, ShipError) as exc:
        print(f"::error title=Shipping Failure::{exc}", file=sys.stderr)
        raise SystemExit(1) from exc

    if result.shipped:
        print(f"Shipped {len(result.shipped)} package(s).", file=sys.stderr)


if __name__ == "__main__":
    app()
