"""
The dispatch loop: read a line, resolve it, run it, repeat.

The loop owns the global command scope, a FIFO queue of pre-supplied lines
and the active context. It awaits each command to completion before
reading the next line, and contains every error a command raises.

While a command runs or a line is read, the loop owns SIGINT: Ctrl+C
cancels that command (or the read) and the loop carries on.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import signal
import sys
import threading
from collections import deque
from typing import Any, Awaitable, Callable, Optional, Protocol, TextIO

from ctxshell.core.context import Context
from ctxshell.core.exceptions import CommandUsageError
from ctxshell.core.help import render_help
from ctxshell.core.registry import CommandEntry, CommandScope, help_rows, resolve
from ctxshell.core.transitions import Finish, Transition, TransitionKind, plan_transition

logger = logging.getLogger(__name__)

# ANSI: clear screen and home the cursor
CLEAR_SCREEN = "\033[2J\033[H"


class InputSource(Protocol):
    """Where interactive lines come from."""

    async def read_line(self, prompt: str) -> str:
        """Return the next line. Raise EOFError at end of input."""
        ...

    def clear_history(self) -> None:
        ...


class DispatchLoop:
    """Top-level driver for the shell.

    Args:
        context: First active context.
        input_source: Source of interactive lines, used once the queue is empty.
        output: Where command output, errors and help go (default stdout).
        commands: Global command scope. A new one is created if not given;
            the builtins ``clear`` and ``quit`` are added to it either way.
        help_marker: Token that shows help without an error message.
        prompt_suffix: Appended to the context prompt.
    """

    def __init__(
        self,
        context: Context,
        input_source: InputSource,
        output: TextIO | None = None,
        commands: CommandScope | None = None,
        help_marker: str = "?",
        prompt_suffix: str = "> ",
    ):
        self.context: Optional[Context] = context
        self.input = input_source
        self.output = output or sys.stdout
        self.help_marker = help_marker
        self.prompt_suffix = prompt_suffix
        self.commands = commands if commands is not None else CommandScope(label="global")
        self.queue: deque[str] = deque()
        self.finished = False
        self._current: Optional[asyncio.Future] = None
        self._interrupted = False
        self._register_builtins()

    def _register_builtins(self) -> None:
        self.commands.add_command("clear", 1000, "Clears the screen", self._cmd_clear)
        self.commands.add_command("quit", 1001, "Quit", self._cmd_quit)
        self.commands.add_alias("c", "clear")
        self.commands.add_alias("q", "quit")

    async def _cmd_clear(self, args: str) -> None:
        self.output.write(CLEAR_SCREEN)
        self.output.flush()

    async def _cmd_quit(self, args: str) -> Finish:
        self._print("Goodbye!")
        return Finish("quit")

    def enqueue(self, *lines: str) -> None:
        """Queue lines to run before any interactive input."""
        self.queue.extend(lines)

    def scopes(self) -> list[CommandScope]:
        """Scopes in resolution order: global, then the active context."""
        if self.context is None:
            return [self.commands]
        return [self.commands, *self.context.scopes()]

    async def run(self) -> None:
        """Run until finished or there is no active context."""
        try:
            while not self.finished:
                self._apply_transition()
                if self.context is None:
                    break
                try:
                    line = await self._next_line()
                except EOFError:
                    logger.info("End of input")
                    self.finished = True
                    break
                except KeyboardInterrupt:
                    # Ctrl+C at the prompt cancels the line
                    self._print()
                    continue
                await self.dispatch(line)
        finally:
            if self.context is not None and not self.context.disposed:
                self.context.dispose()

    def _install_sigint(self) -> Callable[[], None]:
        """Route SIGINT to the awaited command; returns the undo function."""
        if threading.current_thread() is not threading.main_thread():
            return lambda: None

        original_sigint = signal.getsignal(signal.SIGINT)
        signal.signal(signal.SIGINT, self._on_sigint)

        def restore() -> None:
            if original_sigint is not None:
                signal.signal(signal.SIGINT, original_sigint)

        return restore

    def _on_sigint(self, signum, frame) -> None:
        task = self._current
        if task is None or task.done():
            # Nothing awaited: interrupt whatever is running
            raise KeyboardInterrupt()
        self._interrupted = True
        task.cancel()
        # Wake the selector so the cancellation is seen
        task.get_loop().call_soon_threadsafe(lambda: None)

    async def _interruptible(self, awaitable: Awaitable[Any]) -> Any:
        """Await in a separate task that Ctrl+C cancels.

        Raises:
            KeyboardInterrupt: The task was interrupted.
        """
        async def guarded() -> Any:
            try:
                return await awaitable
            except KeyboardInterrupt:
                # A KeyboardInterrupt must not escape a task
                self._interrupted = True
                raise asyncio.CancelledError() from None

        self._interrupted = False
        task = asyncio.ensure_future(guarded())
        self._current = task
        try:
            return await task
        except asyncio.CancelledError:
            if self._interrupted:
                raise KeyboardInterrupt() from None
            raise
        finally:
            self._current = None
            self._interrupted = False

    async def _next_line(self) -> str:
        if self.queue:
            return self.queue.popleft()
        prompt = f"{self.context.prompt()}{self.prompt_suffix}"
        restore_sigint = self._install_sigint()
        try:
            return await self._interruptible(self.input.read_line(prompt))
        finally:
            restore_sigint()

    def _apply_transition(self) -> None:
        if self.context is None:
            return
        active = self.context
        requested = active.next_context
        kind = plan_transition(active, requested)
        if kind is TransitionKind.NONE:
            return

        active.next_context = None
        if kind is TransitionKind.SWAP:
            logger.info(f"Switching context: {type(active).__name__} -> {type(requested).__name__}")
            self.context = requested
            active.dispose()
        self.input.clear_history()

    async def dispatch(self, line: str) -> None:
        """Resolve and run one raw input line."""
        line = line.strip()
        if not line:
            return

        parts = line.split(maxsplit=1)
        token = parts[0].lower()
        args = parts[1].strip() if len(parts) > 1 else ""

        entry = resolve(token, self.scopes())
        if entry is not None:
            logger.debug(f"Dispatching '{entry.name}' args={args!r}")
            await self._execute(entry, args)
        else:
            if token != self.help_marker:
                self._print(f"Invalid command: {token}")
            render_help(help_rows(self.scopes()), self.output)

        self._print()

    async def _execute(self, entry: CommandEntry, args: str) -> None:
        restore_sigint = self._install_sigint()
        try:
            result = entry.action(args)
            if inspect.isawaitable(result):
                result = await self._interruptible(result)
        except Exception as e:
            logger.debug(f"Command '{entry.name}' failed", exc_info=True)
            if not await self._offer_error(e):
                self._print(f"Error: {e}")
                if isinstance(e, CommandUsageError) and e.usage:
                    self._print(e.usage.rstrip())
            return
        except KeyboardInterrupt:
            logger.info(f"Command '{entry.name}' interrupted")
            self._print("[Interrupted]")
            return
        finally:
            restore_sigint()

        self._apply_result(result)

    async def _offer_error(self, error: Exception) -> bool:
        try:
            handled = self.context.on_uncaught_error(error)
            if inspect.isawaitable(handled):
                handled = await handled
            return bool(handled)
        except Exception:
            logger.warning("Error hook failed", exc_info=True)
            return False

    def _apply_result(self, result: Any) -> None:
        if isinstance(result, Transition):
            self.context.next_context = result.target
        elif isinstance(result, Finish):
            logger.info(f"Finishing: {result.reason or 'requested'}")
            self.finished = True

    def _print(self, text: str = "") -> None:
        print(text, file=self.output)
