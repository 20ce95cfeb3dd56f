"""
Argument tokenizer.

Splits a raw argument string into tokens, honoring double quotes and
backslash escapes:

    >>> list(tokenize('a "b c" d'))
    ['a', 'b c', 'd']
    >>> list(tokenize('x\\\\ y'))
    ['x y']
"""

from __future__ import annotations

from enum import Enum
from typing import Callable, Iterator

QUOTE = '"'
ESCAPE = "\\"


class TokenizerState(Enum):
    """Scanner states."""

    PLAIN = "plain"
    ESCAPED = "escaped"
    QUOTED = "quoted"
    QUOTED_ESCAPED = "quoted_escaped"


# state after consuming an escaped character
_UNESCAPE = {
    TokenizerState.ESCAPED: TokenizerState.PLAIN,
    TokenizerState.QUOTED_ESCAPED: TokenizerState.QUOTED,
}


def is_whitespace(ch: str) -> bool:
    """Default delimiter predicate."""
    return ch.isspace()


def is_path_delimiter(ch: str) -> bool:
    """Delimiter predicate for splitting slash separated paths."""
    return ch == "/"


def tokenize(raw: str, is_delimiter: Callable[[str], bool] = is_whitespace) -> Iterator[str]:
    """Yield argument tokens from a raw string.

    Args:
        raw: The string to split.
        is_delimiter: Predicate for characters that separate tokens
            outside of quotes.

    Yields:
        Non-empty tokens, in order. An unterminated quote or a trailing
        backslash just ends the scan; whatever was accumulated is
        yielded.
    """
    state = TokenizerState.PLAIN
    token: list[str] = []

    for ch in raw:
        if state in _UNESCAPE:
            token.append(ch)
            state = _UNESCAPE[state]
        elif ch == ESCAPE:
            state = TokenizerState.QUOTED_ESCAPED if state is TokenizerState.QUOTED else TokenizerState.ESCAPED
        elif ch == QUOTE:
            state = TokenizerState.PLAIN if state is TokenizerState.QUOTED else TokenizerState.QUOTED
        elif state is TokenizerState.PLAIN and is_delimiter(ch):
            if token:
                yield "".join(token)
                token = []
        else:
            token.append(ch)

    if token:
        yield "".join(token)
