"""Invariant markers."""

from __future__ import annotations

from typing import NoReturn

from cfls.exceptions import NeverThrown


def never(reason: str = "", **env: object) -> NoReturn:
    """Mark a code path as unreachable.

    Reaching it is a programming error in the server, never a protocol
    error, so the exception is not converted into a response.
    """
    detail = ", ".join(f"{key}={value!r}" for key, value in sorted(env.items()))
    message = reason or "never() marker reached"
    if detail:
        message = f"{message} ({detail})"
    raise NeverThrown(message, env=env)

