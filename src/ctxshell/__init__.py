"""
ctxshell - context-switching interactive command shell

Reads a line, resolves it to a registered command, runs it and repeats,
while the active set of commands changes as the user moves between
contexts (e.g. main menu vs. an opened backup).

Example usage:
    import asyncio
    from ctxshell import Context, DispatchLoop, Transition
    from ctxshell.cli.input import PromptInput

    class MainMenu(Context):
        def __init__(self):
            super().__init__()

            @self.commands.command("hello", order=10, description="Say hello", aliases=["hi"])
            async def cmd_hello(args):
                print(f"Hello {args or 'world'}!")

        def prompt(self):
            return "Main Menu"

    asyncio.run(DispatchLoop(MainMenu(), PromptInput()).run())
"""

__version__ = "0.1.0"

from ctxshell.core import (
    BackContext,
    CommandArgumentParser,
    CommandEntry,
    CommandError,
    CommandScope,
    CommandUsageError,
    Context,
    ContextDisposedError,
    DispatchLoop,
    Finish,
    ShellError,
    Transition,
    parsable,
    resolve,
    tokenize,
)

__all__ = [
    "__version__",
    "tokenize",
    "CommandEntry",
    "CommandScope",
    "resolve",
    "CommandArgumentParser",
    "parsable",
    "Context",
    "BackContext",
    "Transition",
    "Finish",
    "DispatchLoop",
    "ShellError",
    "CommandError",
    "CommandUsageError",
    "ContextDisposedError",
]
