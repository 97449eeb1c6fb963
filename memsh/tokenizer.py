"""
Quote-aware command line tokenizer.

Whitespace separates tokens outside quotes. Single and double quotes delimit
literal spans, and a backslash escapes the next character anywhere. Each
token keeps its raw span so completion can rewrite just the word under the
cursor.
"""

from __future__ import annotations

import re

from memsh.types import ParsedCommand, Token, TokenizeResult

WHITESPACE = (" ", "\t", "\n", "\r")
QUOTES = ('"', "'")

_NEEDS_QUOTING = re.compile(r"[\s\"'\\]")


def tokenize(line: str | None) -> TokenizeResult:
    """
    Split a command line into tokens.

    An unterminated quote does not raise: the rest of the input belongs to
    the open span and ``unterminated_quote`` is set. A trailing backslash is
    kept as a literal backslash.

    Args:
        line: Raw command line.

    Returns:
        TokenizeResult with tokens and end-of-line flags.
    """
    src = line or ""
    tokens: list[Token] = []

    buf: list[str] = []
    token_start: int | None = None
    quote: str | None = None
    quote_char: str | None = None
    had_quotes = False
    escaping = False

    def push(token_end: int) -> None:
        nonlocal buf, token_start, quote, quote_char, had_quotes, escaping
        tokens.append(
            Token(
                value="".join(buf),
                raw_start=token_start,
                raw_end=token_end,
                quote_char=quote_char,
                had_quotes=had_quotes,
            )
        )
        buf = []
        token_start = None
        quote = None
        quote_char = None
        had_quotes = False
        escaping = False

    i = 0
    while i < len(src):
        ch = src[i]

        if escaping:
            if token_start is None:
                token_start = i - 1
            buf.append(ch)
            escaping = False
            i += 1
            continue

        if ch == "\\":
            if token_start is None:
                token_start = i
            escaping = True
            i += 1
            continue

        if quote:
            if ch == quote:
                # The token stays open after a closing quote.
                had_quotes = True
                quote = None
            else:
                if token_start is None:
                    token_start = i
                buf.append(ch)
            i += 1
            continue

        if ch in QUOTES:
            if token_start is None:
                token_start = i
            quote = ch
            quote_char = ch
            had_quotes = True
            i += 1
            continue

        if ch in WHITESPACE:
            if token_start is not None:
                push(i)
            while i < len(src) and src[i] in WHITESPACE:
                i += 1
            continue

        if token_start is None:
            token_start = i
        buf.append(ch)
        i += 1

    if escaping:
        buf.append("\\")
        escaping = False

    unterminated = quote is not None
    if token_start is not None:
        push(len(src))

    return TokenizeResult(
        tokens=tokens,
        ends_with_space=bool(src) and src[-1] in WHITESPACE,
        unterminated_quote=unterminated,
    )


def parse_command_line(line: str | None) -> ParsedCommand:
    """Reduce a command line to its command word and argument list."""
    values = tokenize(line).values
    return ParsedCommand(command=values[0] if values else "", args=values[1:])


def quote_arg_if_needed(value: str | None, preferred_quote: str = '"') -> str:
    """
    Re-quote a value so it tokenizes back to itself.

    Values without whitespace, quotes or backslashes are returned unchanged.
    Inside the quotes only backslashes and the active quote are escaped.
    """
    v = value or ""
    if not _NEEDS_QUOTING.search(v):
        return v

    if preferred_quote == "'":
        escaped = v.replace("\\", "\\\\").replace("'", "\\'")
        return f"'{escaped}'"

    escaped = v.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def is_comment_or_blank(line: str) -> bool:
    """True for blank lines and ``#`` or ``//`` full-line comments."""
    stripped = line.strip()
    return not stripped or stripped.startswith("#") or stripped.startswith("//")
