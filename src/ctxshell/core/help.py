"""
Plain-text table output for help and command listings.
"""

from __future__ import annotations

from typing import Any, Sequence, TextIO

from ctxshell.core.registry import HelpRow


def format_table(headers: Sequence[str], rows: Sequence[Sequence[Any]], left_padding: int = 1) -> list[str]:
    """Format rows as left-aligned columns under a dashed header."""
    cells = [[str(value) if value is not None else "" for value in row] for row in rows]
    widths = [len(h) for h in headers]
    for row in cells:
        for i, value in enumerate(row):
            widths[i] = max(widths[i], len(value))

    pad = " " * left_padding

    def line(values: Sequence[str]) -> str:
        return (pad + "  ".join(v.ljust(w) for v, w in zip(values, widths))).rstrip()

    lines = [line(headers), line(["-" * w for w in widths])]
    lines.extend(line(row) for row in cells)
    return lines


def render_help(rows: Sequence[HelpRow], output: TextIO) -> None:
    """Print the command/alias/description table."""
    table = format_table(
        ["Command", "Alias", "Description"],
        [(row.name, row.alias, row.description) for row in rows],
    )
    for text in table:
        print(text, file=output)
