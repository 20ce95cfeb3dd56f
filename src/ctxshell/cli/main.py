#!/usr/bin/env python3
"""
CLI entry point for the shell (ctxshell command).
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import TextIO

from ctxshell import __version__
from ctxshell.cli.contexts import MainMenuContext
from ctxshell.cli.input import CommandCompleter, PromptInput, StreamInput
from ctxshell.cli.settings import register_config_command
from ctxshell.config import Config, ConfigManager, get_config_manager
from ctxshell.core.loop import DispatchLoop
from ctxshell.core.registry import CommandScope
from ctxshell.logging import (
    close_file_logging,
    configure_console_logging,
    configure_file_logging,
    parse_level,
)

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ctxshell",
        description="Interactive context-switching command shell",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  ctxshell                                  # interactive
  ctxshell -c "backup-new daily" -c quit    # run commands, then quit
  ctxshell --batch commands.txt             # run commands from a file
""",
    )
    parser.add_argument("-c", "--command", action="append", default=[], dest="commands",
                        help="Command to run before reading input (repeatable)")
    parser.add_argument("--batch", type=Path, help="File with one command per line to run first")
    parser.add_argument("--simple", action="store_true", help="Read plain lines from stdin (no prompt_toolkit)")
    parser.add_argument("--backup-dir", help="Backup file directory (overrides config)")
    parser.add_argument("--log-file", help="Write logs to this file (overrides config)")
    parser.add_argument("--debug", action="store_true", help="Log debug messages to stderr")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def read_batch(path: Path) -> list[str]:
    """Lines of a batch file, skipping blanks and # comments."""
    lines = []
    for line in path.read_text().splitlines():
        stripped = line.strip()
        if stripped and not stripped.startswith("#"):
            lines.append(stripped)
    return lines


def create_loop(
    cfg: Config,
    simple: bool,
    stdin: TextIO,
    stdout: TextIO,
    manager: ConfigManager | None = None,
) -> DispatchLoop:
    """Assemble the dispatch loop with the main menu as the first context."""
    commands = CommandScope(label="global")
    register_config_command(commands, manager or get_config_manager(), stdout)

    if simple:
        source = StreamInput(stdin, output=stdout, echo=not stdin.isatty())
    else:
        # loop is bound below; the completer only runs once the prompt is up
        source = PromptInput(completer=CommandCompleter(lambda: loop.scopes()))

    loop = DispatchLoop(
        MainMenuContext(cfg, stdout),
        source,
        output=stdout,
        commands=commands,
        help_marker=cfg.get("help_marker"),
        prompt_suffix=cfg.get("prompt_suffix"),
    )
    return loop


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    manager = get_config_manager()
    cfg = manager.config
    if args.backup_dir:
        cfg = cfg.model_copy(update={"backup_dir": args.backup_dir})

    configure_console_logging(logging.DEBUG if args.debug else logging.WARNING)
    log_file = args.log_file or cfg.get("log_file")
    if log_file:
        try:
            configure_file_logging(log_file, parse_level(cfg.get("log_level")))
        except (OSError, ValueError) as e:
            print(f"Warning: file logging disabled ({e})", file=sys.stderr)

    simple = args.simple or bool(cfg.get("simple")) or not sys.stdin.isatty()
    loop = create_loop(cfg, simple, sys.stdin, sys.stdout, manager)

    if args.batch:
        try:
            loop.enqueue(*read_batch(args.batch))
        except OSError as e:
            print(f"Error: cannot read batch file: {e}", file=sys.stderr)
            return 1
    loop.enqueue(*args.commands)

    try:
        asyncio.run(loop.run())
    except KeyboardInterrupt:
        print()
    finally:
        close_file_logging()
    return 0


if __name__ == "__main__":
    sys.exit(main())
