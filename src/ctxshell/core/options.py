"""
Option parsing for commands that take structured arguments.

The dispatch loop hands every command its raw argument string. Commands
that want flags wrap an options action with ``parsable()``:

    parser = CommandArgumentParser(prog="backup-new")
    parser.add_argument("name")
    parser.add_argument("--admin")

    scope.add_command("backup-new", 20, "Creates a backup file.",
                      parsable(parser, create_backup))
"""

from __future__ import annotations

import argparse
import inspect
from typing import Any, Awaitable, Callable, NoReturn, Union

from ctxshell.core.exceptions import CommandUsageError
from ctxshell.core.tokenizer import tokenize

OptionsAction = Callable[[argparse.Namespace], Union[Awaitable[Any], Any]]


class HelpShown(Exception):
    """Raised by the parser after it printed help (``-h``)."""


class CommandArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that raises instead of exiting the process."""

    def error(self, message: str) -> NoReturn:
        raise CommandUsageError(f"{self.prog}: {message}", usage=self.format_usage())

    def exit(self, status: int = 0, message: str | None = None) -> NoReturn:
        if message:
            self._print_message(message)
        raise HelpShown()


def parsable(parser: argparse.ArgumentParser, action: OptionsAction) -> Callable[[str], Awaitable[Any]]:
    """Turn an options action into a raw-argument command action."""

    async def run(args: str) -> Any:
        try:
            options = parser.parse_args(list(tokenize(args)))
        except HelpShown:
            return None
        result = action(options)
        if inspect.isawaitable(result):
            result = await result
        return result

    run.__doc__ = parser.description
    return run
