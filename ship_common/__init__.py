"""Public interface for the shipping helper package."""

from .collect import collect_packages
from .config import FormatTarget, RepoLayout, ShipConfig, ShipOptions, load_config
from .environment import env_flag
from .errors import (
    LinkPublicationError,
    RemoteCommandError,
    ShipError,
    TransmissionError,
)
from .links import (
    create_latest_symlink,
    create_rolling_repo_link,
    latest_symlink_command,
    rolling_repo_link_command,
)
from .orchestrator import SHIP_FORMATS, Shipper
from .platforms import PlatformTag, parse_platform_tag, tag_from_artifact_path
from .remote import DryRunShell, RemoteShell
from .reorganize import reorganize_packages
from .retry import retry_on_fail
from .transmit import ShipResult, ship_packages

__all__ = [
    "collect_packages",
    "create_latest_symlink",
    "create_rolling_repo_link",
    "DryRunShell",
    "env_flag",
    "FormatTarget",
    "latest_symlink_command",
    "LinkPublicationError",
    "load_config",
    "parse_platform_tag",
    "PlatformTag",
    "RemoteCommandError",
    "RemoteShell",
    "reorganize_packages",
    "RepoLayout",
    "retry_on_fail",
    "rolling_repo_link_command",
    "SHIP_FORMATS",
    "ship_packages",
    "ShipConfig",
    "ShipError",
    "ShipOptions",
    "Shipper",
    "ShipResult",
    "tag_from_artifact_path",
    "TransmissionError",
]
