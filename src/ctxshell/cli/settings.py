"""Config command - show, set and delete saved settings."""
from __future__ import annotations

from typing import TextIO

from ctxshell.config import DEFAULTS, ConfigManager
from ctxshell.core.exceptions import CommandError, CommandUsageError
from ctxshell.core.registry import CommandScope
from ctxshell.core.tokenizer import tokenize

CONFIG_USAGE = "usage: config [set <key> <value> | del <key> | reset]"


def register_config_command(scope: CommandScope, manager: ConfigManager, output: TextIO) -> None:
    """Add ``config`` to a scope, backed by the given manager.

    Changes are written to the config file and apply on the next start.
    """

    def show() -> None:
        settings = manager.list_settings()
        print(f"Config file: {manager.CONFIG_FILE}", file=output)
        if not settings:
            print("  (no custom settings)", file=output)
        for key, value in settings.items():
            print(f"  {key}: {value}", file=output)

    async def cmd_config(args: str) -> None:
        parts = list(tokenize(args))

        if not parts:
            show()
        elif parts[0] == "set" and len(parts) == 3:
            key, value = parts[1], parts[2]
            try:
                stored = manager.set(key, value)
            except ValueError as e:
                raise CommandError(f"Cannot set {key}: {e}") from e
            print(f"Set {key} = {stored}", file=output)
        elif parts[0] == "del" and len(parts) == 2:
            key = parts[1]
            try:
                manager.unset(key)
            except ValueError as e:
                raise CommandError(str(e)) from e
            print(f"Deleted {key} (default: {DEFAULTS.get(key)})", file=output)
        elif parts == ["reset"]:
            manager.reset()
            print("Config reset to defaults", file=output)
        else:
            raise CommandUsageError("config: bad arguments", usage=CONFIG_USAGE)

    scope.add_command("config", 950, "Shows or changes saved settings.", cmd_config)
