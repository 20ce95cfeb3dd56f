"""
CLI module for the ctxshell package.

Provides the ``ctxshell`` entry point, its contexts and input sources.
"""

from ctxshell.cli.main import main

__all__ = ["main"]
