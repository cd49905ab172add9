"""Text helpers shared by the parsers."""

import re

# CRLF or LF only; str.splitlines() also breaks on U+2028, VT and FF.
_RE_NEWLINE = re.compile(r"\r?\n")


def decode_bytes(payload, charset=None):
    """Decode *payload* using *charset*, falling back to UTF-8.

    Undecodable bytes are replaced rather than raising.
    """
    charset = charset or "utf-8"
    try:
        return payload.decode(charset, errors="replace")
    except LookupError:
        return payload.decode("utf-8", errors="replace")


def split_lines(text):
    """Split *text* into physical lines on CRLF or LF only."""
    return _RE_NEWLINE.split(text)


def first_line(text):
    """Return the first physical line of *text* without its terminator."""
    return split_lines(text)[0] if text else ""
