"""
Shell contexts.

A context is one logical "place" in the shell: its own command scope, a
prompt label, an error hook and a lifecycle. Exactly one context is active
in a dispatch loop; when it is replaced it is disposed and must not be
reused.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

from ctxshell.core.exceptions import ContextDisposedError
from ctxshell.core.registry import CommandScope
from ctxshell.core.transitions import Transition

logger = logging.getLogger(__name__)


class Context:
    """Base class for shell contexts.

    Subclasses override ``prompt()`` and register commands on
    ``self.commands`` in ``__init__``.
    """

    def __init__(self):
        self.commands = CommandScope(label=type(self).__name__)
        self.next_context: Optional[Context] = None
        self.disposed = False

    def prompt(self) -> str:
        raise NotImplementedError("Context.prompt must be implemented")

    def scopes(self) -> list[CommandScope]:
        """Scopes this context contributes, highest priority first."""
        if self.disposed:
            raise ContextDisposedError(f"{type(self).__name__} has been disposed")
        return [self.commands]

    async def on_uncaught_error(self, error: Exception) -> bool:
        """Offered every error a command raises. Return True if handled."""
        return False

    def request_transition(self, target: Context) -> None:
        """Nominate the successor context.

        Prefer returning ``Transition(target)`` from the action; this is for
        code that runs outside the action's return path.
        """
        self.next_context = target

    def dispose(self) -> None:
        """Release owned resources. Called once by the loop on swap."""
        self.next_context = None
        self.disposed = True


class BackContext(Context):
    """Context with a ``back`` command returning to a fresh parent context."""

    def __init__(self, parent_factory: Callable[[], Context]):
        super().__init__()
        self._parent_factory = parent_factory
        self.commands.add_command("back", 900, "Returns to the previous menu.", self._back)

    async def _back(self, args: str) -> Transition:
        logger.debug(f"Leaving {type(self).__name__}")
        return Transition(self._parent_factory())

    def dispose(self) -> None:
        self._parent_factory = None
        super().dispose()
