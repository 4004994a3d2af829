"""Operator confirmation for the transmit phase."""

from __future__ import annotations

import os
import typing as typ

from .environment import coerce_bool

__all__ = ["ANSWER_OVERRIDE_ENV", "ask_yes_or_no"]

ANSWER_OVERRIDE_ENV = "ANSWER_OVERRIDE"

_YES = {"y", "yes"}
_NO = {"n", "no"}


def ask_yes_or_no(
    *,
    input_func: typ.Callable[[str], str] = input,
    environ: typ.Mapping[str, str] | None = None,
) -> bool:
    """Read a yes/no answer from the operator, asking again on anything else.

    ``ANSWER_OVERRIDE`` in ``environ`` answers on the operator's behalf so
    unattended runs never block on standard input.

    Examples
    --------
    >>> ask_yes_or_no(input_func=lambda _: "y", environ={})
    True
    >>> ask_yes_or_no(environ={"ANSWER_OVERRIDE": "no"})
    False
    """
    source = os.environ if environ is None else environ
    if override := source.get(ANSWER_OVERRIDE_ENV):
        return coerce_bool(override)

    while True:
        answer = input_func("[y/n] ").strip().lower()
        if answer in _YES:
            return True
        if answer in _NO:
            return False
        print("Please answer yes or no (y/n).")
