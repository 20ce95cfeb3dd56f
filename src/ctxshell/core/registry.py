"""
Command registry for the shell.

Commands are registered in a scope with a name, display order, description
and action. Resolution walks an ordered list of scopes (global first, then
the active context's), so a context can never shadow a global command.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Iterable, Sequence, Union

logger = logging.getLogger(__name__)

CommandAction = Callable[[str], Union[Awaitable[Any], Any]]


@dataclass
class CommandEntry:
    """Entry for a registered command."""

    name: str
    order: int
    description: str
    action: CommandAction


@dataclass(frozen=True)
class HelpRow:
    """One line of the help table."""

    name: str
    alias: str
    description: str
    order: int


class CommandScope:
    """A name -> command map plus an alias -> name map."""

    def __init__(self, label: str = ""):
        self.label = label
        self._commands: dict[str, CommandEntry] = {}
        self._aliases: dict[str, str] = {}

    def add_command(self, name: str, order: int, description: str, action: CommandAction) -> CommandEntry:
        """Register a command under a lower-cased name."""
        key = name.lower()
        if key in self._commands:
            logger.debug(f"Replacing command '{key}' in scope '{self.label}'")
        entry = CommandEntry(name=key, order=order, description=description, action=action)
        self._commands[key] = entry
        return entry

    def add_alias(self, alias: str, name: str) -> None:
        """Map an alternate lookup key to a canonical command name."""
        self._aliases[alias.lower()] = name.lower()

    def command(
        self,
        name: str,
        order: int = 0,
        description: str = "",
        aliases: list[str] | None = None,
    ) -> Callable[[CommandAction], CommandAction]:
        """Decorator to register a command.

        Example:
            @scope.command("server", order=10, description="Gets or sets server")
            async def cmd_server(args):
                ...
        """
        def decorator(func: CommandAction) -> CommandAction:
            self.add_command(name, order, description, func)
            for alias in aliases or []:
                self.add_alias(alias, name)
            return func
        return decorator

    def get(self, name: str) -> CommandEntry | None:
        """Get a command by canonical name (no alias lookup)."""
        return self._commands.get(name.lower())

    def alias_target(self, alias: str) -> str | None:
        return self._aliases.get(alias.lower())

    def aliases_for(self, name: str) -> list[str]:
        """Aliases in this scope pointing at ``name``."""
        name = name.lower()
        return [alias for alias, target in self._aliases.items() if target == name]

    def entries(self) -> list[CommandEntry]:
        return list(self._commands.values())

    def __contains__(self, name: str) -> bool:
        return name.lower() in self._commands

    def __len__(self) -> int:
        return len(self._commands)


def resolve(token: str, scopes: Sequence[CommandScope]) -> CommandEntry | None:
    """Resolve a raw command token against scopes in priority order.

    Aliases are substituted first (earliest scope wins), then the name is
    looked up in each scope in order.
    """
    name = token.lower()
    for scope in scopes:
        target = scope.alias_target(name)
        if target is not None:
            name = target
            break

    for scope in scopes:
        entry = scope.get(name)
        if entry is not None:
            return entry
    return None


def help_rows(scopes: Iterable[CommandScope]) -> list[HelpRow]:
    """Collect help rows for every visible command, sorted by order then name."""
    scopes = list(scopes)
    rows: dict[str, HelpRow] = {}
    for scope in scopes:
        for entry in scope.entries():
            if entry.name in rows:
                continue
            alias = next((a for s in scopes for a in s.aliases_for(entry.name)), "")
            rows[entry.name] = HelpRow(
                name=entry.name,
                alias=alias,
                description=entry.description,
                order=entry.order,
            )
    return sorted(rows.values(), key=lambda row: (row.order, row.name))
