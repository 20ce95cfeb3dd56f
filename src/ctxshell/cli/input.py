"""
Input sources for the dispatch loop.

``PromptInput`` is the interactive source built on prompt_toolkit, with
in-memory history that is dropped whenever the active context changes.
``StreamInput`` reads plain lines from a text stream (pipes, batch files,
tests).
"""

from __future__ import annotations

import asyncio
from typing import Callable, Iterable, Optional, TextIO

from prompt_toolkit import PromptSession
from prompt_toolkit.auto_suggest import AutoSuggestFromHistory
from prompt_toolkit.completion import Completer, Completion
from prompt_toolkit.history import InMemoryHistory
from prompt_toolkit.styles import Style

from ctxshell.core.registry import CommandScope


def get_style() -> Style:
    """Get the prompt style."""
    return Style.from_dict({
        "prompt": "ansicyan bold",
        "command": "ansigreen",
    })


class CommandCompleter(Completer):
    """Completes the first word from the currently visible commands."""

    def __init__(self, scopes: Callable[[], Iterable[CommandScope]]):
        self._scopes = scopes

    def get_completions(self, document, complete_event):
        text = document.text_before_cursor

        # Only the command token is completed
        if " " in text.lstrip():
            return

        prefix = text.lstrip().lower()
        seen = set()
        for scope in self._scopes():
            for entry in scope.entries():
                if entry.name in seen or not entry.name.startswith(prefix):
                    continue
                seen.add(entry.name)
                yield Completion(
                    entry.name,
                    start_position=-len(prefix),
                    display_meta=entry.description,
                )


class PromptInput:
    """Interactive line source using a prompt_toolkit session."""

    def __init__(self, completer: Completer | None = None):
        self._completer = completer
        self.session = self._new_session()

    def _new_session(self) -> PromptSession:
        return PromptSession(
            history=InMemoryHistory(),
            completer=self._completer,
            auto_suggest=AutoSuggestFromHistory(),
            style=get_style(),
            enable_history_search=True,
        )

    async def read_line(self, prompt: str) -> str:
        return await self.session.prompt_async(prompt)

    def clear_history(self) -> None:
        """Start over with an empty history (new session)."""
        self.session = self._new_session()


class StreamInput:
    """Line source reading from a text stream.

    Lines are read in a worker thread so the event loop stays free. A read
    cancelled by Ctrl+C stays pending and the next call picks it up.

    Args:
        stream: Stream to read lines from.
        output: If given, the prompt is written here before each read.
        echo: Also write each line read after the prompt, so transcripts
            of piped input read like an interactive session.
    """

    def __init__(self, stream: TextIO, output: TextIO | None = None, echo: bool = False):
        self.stream = stream
        self.output = output
        self.echo = echo
        self.history: list[str] = []
        self._pending: Optional[asyncio.Future] = None

    async def read_line(self, prompt: str) -> str:
        if self.output is not None:
            self.output.write(prompt)
            self.output.flush()

        if self._pending is None:
            self._pending = asyncio.ensure_future(asyncio.to_thread(self.stream.readline))
        line = await asyncio.shield(self._pending)
        self._pending = None

        if not line:
            if self.output is not None:
                self.output.write("\n")
            raise EOFError()
        line = line.rstrip("\r\n")
        if self.output is not None and self.echo:
            self.output.write(f"{line}\n")
        self.history.append(line)
        return line

    def clear_history(self) -> None:
        self.history.clear()
