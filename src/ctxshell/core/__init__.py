"""
Core dispatch engine: tokenizer, command scopes, contexts and the loop.
"""

from ctxshell.core.context import BackContext, Context
from ctxshell.core.exceptions import (
    CommandError,
    CommandUsageError,
    ContextDisposedError,
    ShellError,
)
from ctxshell.core.help import format_table, render_help
from ctxshell.core.loop import DispatchLoop, InputSource
from ctxshell.core.options import CommandArgumentParser, parsable
from ctxshell.core.registry import (
    CommandEntry,
    CommandScope,
    HelpRow,
    help_rows,
    resolve,
)
from ctxshell.core.tokenizer import TokenizerState, is_path_delimiter, is_whitespace, tokenize
from ctxshell.core.transitions import Finish, Transition, TransitionKind, plan_transition

__all__ = [
    # Tokenizer
    "tokenize",
    "is_whitespace",
    "is_path_delimiter",
    "TokenizerState",
    # Registry
    "CommandEntry",
    "CommandScope",
    "HelpRow",
    "resolve",
    "help_rows",
    # Options
    "CommandArgumentParser",
    "parsable",
    # Contexts and transitions
    "Context",
    "BackContext",
    "Transition",
    "Finish",
    "TransitionKind",
    "plan_transition",
    # Loop
    "DispatchLoop",
    "InputSource",
    "format_table",
    "render_help",
    # Exceptions
    "ShellError",
    "CommandError",
    "CommandUsageError",
    "ContextDisposedError",
]
