"""
Contexts for the ``ctxshell`` command.

The main menu manages a server setting and a directory of backup files;
``backup-unlock`` moves into a context scoped to one backup file, and
``back`` returns to a fresh main menu.

Backup files are JSON documents named ``<name>.backup``:

    {"created": 1700000000, "author": "alice", "admins": ["alice", "bob"]}
"""

from __future__ import annotations

import getpass
import json
import logging
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, TextIO

from ctxshell.config import Config
from ctxshell.core.context import BackContext, Context
from ctxshell.core.exceptions import CommandError
from ctxshell.core.help import format_table
from ctxshell.core.options import CommandArgumentParser, parsable
from ctxshell.core.transitions import Transition

logger = logging.getLogger(__name__)

BACKUP_SUFFIX = ".backup"


def _format_unix(value: Any) -> str:
    try:
        return datetime.fromtimestamp(int(value), tz=timezone.utc).strftime("%Y-%m-%dT%H:%M:%S")
    except (TypeError, ValueError, OverflowError):
        return ""


def read_backup_info(path: Path) -> dict[str, Any]:
    """Load a backup file's metadata. Raises ValueError if it is not a backup."""
    data = json.loads(path.read_text())
    if not isinstance(data, dict):
        raise ValueError(f"{path.name}: not a backup file")
    return data


class MainMenuContext(Context):
    """Starting context: server and backup file management."""

    def __init__(self, config: Config, output: TextIO):
        super().__init__()
        self.config = config
        self.output = output
        self.server: str = config.get("server")
        self.backup_dir = Path(config.get("backup_dir")).expanduser()

        self.commands.add_command("server", 10, "Gets or sets server.", self.cmd_server)
        self.commands.add_command("backup-dir", 11, "Gets or sets backup file(s) directory.", self.cmd_backup_dir)
        self.commands.add_alias("bd", "backup-dir")
        self.commands.add_command("backup-list", 12, "Lists backup files.", self.cmd_backup_list)
        self.commands.add_alias("bl", "backup-list")

        new_parser = CommandArgumentParser(prog="backup-new", description="Creates a backup file.")
        new_parser.add_argument("name", help="Backup file name.")
        new_parser.add_argument("--admin", action="append", default=[], help="Backup administrator account.")
        self.commands.add_command("backup-new", 20, "Creates a backup file.", parsable(new_parser, self.create_backup))
        self.commands.add_alias("bn", "backup-new")

        unlock_parser = CommandArgumentParser(prog="backup-unlock", description="Selects and unlocks a backup file.")
        unlock_parser.add_argument("name", help="Backup file name.")
        self.commands.add_command(
            "backup-unlock", 21, "Selects and unlocks a backup file.", parsable(unlock_parser, self.unlock_backup)
        )
        self.commands.add_alias("bu", "backup-unlock")

    def prompt(self) -> str:
        return "Main Menu"

    def _print(self, text: str = "") -> None:
        print(text, file=self.output)

    def backup_path(self, name: str) -> Path:
        if "/" in name or "\\" in name or name.strip(".") == "":
            raise CommandError(f'Invalid backup name "{name}"')
        if name.endswith(BACKUP_SUFFIX):
            name = name[: -len(BACKUP_SUFFIX)]
        return self.backup_dir / f"{name}{BACKUP_SUFFIX}"

    async def cmd_server(self, args: str) -> None:
        if args:
            self.server = args
        self._print(f"Server: {self.server}")

    async def cmd_backup_dir(self, args: str) -> None:
        if args:
            path = Path(args).expanduser()
            path.mkdir(parents=True, exist_ok=True)
            self.backup_dir = path
        self._print(f"Backup file location: {self.backup_dir}")

    async def cmd_backup_list(self, args: str) -> None:
        rows = []
        if self.backup_dir.is_dir():
            for path in sorted(self.backup_dir.glob(f"*{BACKUP_SUFFIX}")):
                try:
                    info = read_backup_info(path)
                except (OSError, ValueError) as e:
                    logger.debug(f"Skipping {path.name}: {e}")
                    continue
                admins = [str(a) for a in info.get("admins") or []]
                rows.append((path.stem, _format_unix(info.get("created")), info.get("author", ""),
                             admins[0] if admins else ""))
                rows.extend(("", "", "", admin) for admin in admins[1:])

        if not rows:
            self._print(f"No backup files in {self.backup_dir}")
            return
        for line in format_table(["Backup Name", "Created", "Author", "Admins"], rows):
            self._print(line)

    async def create_backup(self, options) -> None:
        path = self.backup_path(options.name)
        if path.exists():
            raise CommandError(f'Backup "{path.stem}" already exists')
        author = getpass.getuser()
        info = {
            "created": int(time.time()),
            "author": author,
            "admins": options.admin or [author],
            "server": self.server,
        }
        self.backup_dir.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(info, indent=2) + "\n")
        logger.info(f"Created backup {path}")
        self._print(f'Backup "{path.stem}" created.')

    async def unlock_backup(self, options) -> Transition:
        path = self.backup_path(options.name)
        if not path.is_file():
            raise CommandError(f'Backup "{options.name}" not found')
        info = read_backup_info(path)
        config, output = self.config, self.output
        return Transition(BackupContext(path, info, lambda: MainMenuContext(config, output), output))


class BackupContext(BackContext):
    """Context scoped to one unlocked backup file."""

    def __init__(self, path: Path, info: dict[str, Any], parent_factory, output: TextIO):
        super().__init__(parent_factory)
        self.path = path
        self.info = info
        self.output = output
        self.commands.add_command("info", 10, "Shows backup file details.", self.cmd_info)
        self.commands.add_alias("i", "info")

    def prompt(self) -> str:
        return f"Backup: {self.path.stem}"

    async def cmd_info(self, args: str) -> None:
        self.info = read_backup_info(self.path)
        admins = [str(a) for a in self.info.get("admins") or []]
        rows = [
            ("Name:", self.path.stem),
            ("Created:", _format_unix(self.info.get("created"))),
            ("Author:", self.info.get("author", "")),
            ("Server:", self.info.get("server", "")),
            ("Admins:", admins[0] if admins else ""),
        ]
        rows.extend(("", admin) for admin in admins[1:])
        width = max(len(label) for label, _ in rows)
        for label, value in rows:
            print(f" {label:>{width}} {value}", file=self.output)

    async def on_uncaught_error(self, error: Exception) -> bool:
        if isinstance(error, FileNotFoundError):
            print(f'Backup file "{self.path.name}" is gone. Type "back" to return.', file=self.output)
            return True
        if isinstance(error, json.JSONDecodeError):
            print(f'Backup file "{self.path.name}" is corrupted.', file=self.output)
            return True
        return False
