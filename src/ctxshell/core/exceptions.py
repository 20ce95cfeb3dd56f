"""
Exception classes for the command shell.
"""


class ShellError(Exception):
    """Base exception for shell-related errors."""


class CommandError(ShellError):
    """A command failed in a way the user should see."""


class CommandUsageError(CommandError):
    """Command arguments could not be parsed."""

    def __init__(self, message: str, usage: str = ""):
        super().__init__(message)
        self.usage = usage


class ContextDisposedError(ShellError):
    """A disposed context was asked to act."""
