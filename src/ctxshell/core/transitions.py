"""
Transition requests returned by command actions.

A command never swaps the active context itself. It returns a
``Transition`` (or ``Finish``) and the dispatch loop applies it between
iterations.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from ctxshell.core.context import Context


@dataclass(frozen=True)
class Transition:
    """Request to make ``target`` the active context."""

    target: "Context"


@dataclass(frozen=True)
class Finish:
    """Request to stop the dispatch loop."""

    reason: str = ""


class TransitionKind(Enum):
    """What the loop does with a context's pending ``next_context``."""

    NONE = "none"    # nothing requested
    CLEAR = "clear"  # requested the active context itself, just reset the field
    SWAP = "swap"    # dispose the active context and activate the new one


def plan_transition(active: "Context", requested: Optional["Context"]) -> TransitionKind:
    """Classify a requested transition."""
    if requested is None:
        return TransitionKind.NONE
    if requested is active:
        return TransitionKind.CLEAR
    return TransitionKind.SWAP
