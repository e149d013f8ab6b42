"""
Status values reported while a bridge request is in flight.

``Status`` is a closed union of four states. Dataclass equality compares the
whole value, including the result or error code. The polling loop uses
``same_state`` instead, which compares only the kind of state, so a new
``Confirmed`` never counts as different from a previous ``Confirmed``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar, Union

from .errors import AppErrorCode

ResultT = TypeVar("ResultT")


@dataclass(frozen=True)
class WaitingForConnection:
    """The wallet has not retrieved the request yet."""


@dataclass(frozen=True)
class AwaitingConfirmation:
    """The wallet retrieved the request and is waiting for the user."""


@dataclass(frozen=True)
class Confirmed(Generic[ResultT]):
    """The user confirmed; ``result`` is the decrypted wallet response."""

    result: ResultT


@dataclass(frozen=True)
class Failed:
    """The request ended with an error outcome."""

    error_code: AppErrorCode


Status = Union[WaitingForConnection, AwaitingConfirmation, Confirmed, Failed]

TERMINAL_STATES = (Confirmed, Failed)


def same_state(left: Status | None, right: Status | None) -> bool:
    """Compare two statuses by kind only, ignoring any payload."""
    return type(left) is type(right)


def is_terminal(status: Status) -> bool:
    return isinstance(status, TERMINAL_STATES)
