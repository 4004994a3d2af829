"""Environment helpers shared by the shipping toolchain."""

from __future__ import annotations

import os
import typing as typ

__all__ = ["coerce_bool", "env_flag"]


def coerce_bool(value: object) -> bool:
    """Return ``value`` as a strict boolean."""
    if isinstance(value, bool):
        return value
    if not isinstance(value, str):
        message = f"Cannot interpret {value!r} as a boolean"
        raise TypeError(message)
    normalised = value.strip().lower()
    if normalised in {"", "false", "0", "no", "off"}:
        return False
    if normalised in {"true", "1", "yes", "on"}:
        return True
    message = f"Cannot interpret {value!r} as a boolean"
    raise ValueError(message)


def env_flag(
    name: str, environ: typ.Mapping[str, str] | None = None
) -> bool:
    """Return ``True`` when the environment variable ``name`` is truthy.

    Parameters
    ----------
    name:
        Name of the environment variable to inspect, for example ``"DRYRUN"``.
    environ:
        Mapping to read from. Defaults to :data:`os.environ`.

    Raises
    ------
    ValueError
        Raised when the variable holds a value that is not boolean-like.
    """
    source = os.environ if environ is None else environ
    return coerce_bool(source.get(name, ""))
