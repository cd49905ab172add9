"""RFC 5322 header folding, unfolding and header/body splitting."""

import logging
import re

from .errors import UnfoldableHeader
from ..utils.email_utils import split_lines

logger = logging.getLogger(__name__)

NEWLINE = "\r\n"

DEFAULT_MAX_LINE_LENGTH = 78
ESCALATED_MAX_LINE_LENGTH = 1000

DEFAULT_MTA_NAME = "MantaMTA"

# A blank line: CRLF CRLF, or LF LF for messages stored with bare newlines.
_RE_HEADER_END = re.compile(r"\r?\n\r?\n")
_RE_LEADING_NEWLINE = re.compile(r"^\r?\n")


class MessageHeader:
    """A single header; name and value are stripped of surrounding whitespace."""

    def __init__(self, name, value):
        self.name = name.strip()
        self.value = value.strip()

    def matches(self, name):
        """Case-insensitive name comparison."""
        return self.name.lower() == name.strip().lower()

    def __eq__(self, other):
        if not isinstance(other, MessageHeader):
            return NotImplemented
        return self.matches(other.name) and self.value == other.value

    def __hash__(self):
        return hash((self.name.lower(), self.value))

    def __repr__(self):
        return f"MessageHeader({self.name!r}, {self.value!r})"


class MessageHeaderCollection(list):
    """Ordered list of :class:`MessageHeader` with case-insensitive lookup."""

    def get_all(self, name):
        """Return every header called *name*, in message order."""
        return MessageHeaderCollection(h for h in self if h.matches(name))

    def get_first(self, name):
        """Return the first header called *name*, or None."""
        return next((h for h in self if h.matches(name)), None)

    def get_value(self, name, default=""):
        """Return the value of the first header called *name*."""
        header = self.get_first(name)
        return header.value if header else default


class MtaHeaderNames:
    """Names of the control headers the MTA stamps on outbound messages."""

    def __init__(self, mta_name=DEFAULT_MTA_NAME):
        self.prefix = f"X-{mta_name}-"
        self.send_group_id = self.prefix + "VMtaGroupID"
        self.send_id = self.prefix + "SendID"
        self.return_path_domain = self.prefix + "ReturnPathDomain"


# ---------------------------------------------------------------------------
# Folding
# ---------------------------------------------------------------------------


def fold_header(name, value, max_line_length=DEFAULT_MAX_LINE_LENGTH, newline=NEWLINE):
    """Fold ``Name: Value`` into physical lines no longer than *max_line_length*.

    Each chunk of the remaining text is scanned backwards for a fold point.
    A whitespace run is preferred: the line ends before it and the whitespace
    starts the continuation line.  Otherwise the line ends just after the
    last ``;`` that has more text behind it and the continuation gets a
    single leading space.
    When a chunk has neither, the width is escalated once to
    ``ESCALATED_MAX_LINE_LENGTH`` (long tokens such as DKIM signatures).

    Parameters
    ----------
    name : str
        Header name.
    value : str
        Header value; surrounding whitespace and embedded line breaks are removed.
    max_line_length : int
        Maximum physical line length including the line terminator.
    newline : str
        Line terminator appended to every produced line.

    Returns
    -------
    str
        The folded header, every line terminated by *newline*.

    Raises
    ------
    UnfoldableHeader
        If no fold point exists even at the escalated width.
    """
    width = max_line_length - len(newline)
    escalated_width = ESCALATED_MAX_LINE_LENGTH - len(newline)
    text = f"{name}: {value.strip()}".replace(newline, "").replace("\r", "").replace("\n", "")

    if len(text) < width:
        return text + newline

    lines = []
    while text:
        if len(text) < width:
            lines.append(text)
            break

        chunk = text[:width]
        fold = _find_fold_point(chunk)
        if fold is None:
            if width == escalated_width:
                raise UnfoldableHeader(name)
            logger.debug("No fold point in '%s' at width %d; escalating to %d", name, width, escalated_width)
            width = escalated_width
            continue

        pos, on_whitespace = fold
        lines.append(chunk[:pos])
        if on_whitespace:
            text = text[pos:]
        else:
            text = " " + text[pos:]

    return "".join(line + newline for line in lines)


def _find_fold_point(chunk):
    """Scan *chunk* backwards for a fold point.

    Returns ``(position, on_whitespace)`` or None.  For whitespace the
    position is the start of the last whitespace run that still has text in
    front of it; for ``;`` it is the index just after the semicolon.
    """
    found_whitespace = False
    found_split_char = False
    fold_pos = -1
    for i in range(len(chunk) - 1, 0, -1):
        char = chunk[i]
        if char.isspace():
            found_whitespace = True
            fold_pos = i
        elif char == ";" and i + 1 < len(chunk) and not found_whitespace:
            found_split_char = True
            fold_pos = i + 1
        elif found_whitespace or found_split_char:
            return fold_pos, found_whitespace
    return None


def unfold_headers(header_section, newline=NEWLINE):
    """Join folded continuation lines onto their logical header line.

    Continuation lines (leading whitespace) are appended verbatim, so the
    folding whitespace is kept.  Logical lines are separated by *newline*.
    Unfolding stops at the first blank line.
    """
    logical = []
    for line in split_lines(header_section):
        if not line.strip():
            break
        if line[0].isspace() and logical:
            logical[-1] += line
        else:
            logical.append(line)
    return newline.join(logical)


# ---------------------------------------------------------------------------
# Header / body sections
# ---------------------------------------------------------------------------


def split_header_and_body(raw_message):
    """Split a raw message at the first blank line.

    Returns
    -------
    tuple[str, str]
        ``(header_section, body_section)``.  Without a blank line the whole
        input is body.  Input that starts with a line terminator has an
        empty header section.
    """
    leading = _RE_LEADING_NEWLINE.match(raw_message)
    if leading:
        return "", raw_message[leading.end():]

    match = _RE_HEADER_END.search(raw_message)
    if not match:
        return "", raw_message
    return raw_message[: match.start()], raw_message[match.end():]


def get_body_section(raw_message):
    """Return everything after the header section."""
    return split_header_and_body(raw_message)[1]


def parse_headers(raw_message):
    """Parse the header section of *raw_message* into a header collection."""
    header_section, _ = split_header_and_body(raw_message)
    headers = MessageHeaderCollection()
    if not header_section:
        return headers

    for line in unfold_headers(header_section).split(NEWLINE):
        if not line.strip():
            break
        name, sep, value = line.partition(":")
        if not sep:
            logger.debug("Skipping header line without colon: %.80s", line)
            continue
        headers.append(MessageHeader(name, value))
    return headers


def replace_headers(raw_message, headers, max_line_length=DEFAULT_MAX_LINE_LENGTH, newline=NEWLINE):
    """Rebuild *raw_message* with *headers* (folded) in place of its own.

    Raises
    ------
    UnfoldableHeader
        If any of the new headers cannot be folded; the caller decides
        whether that aborts the whole message.
    """
    parts = [fold_header(h.name, h.value, max_line_length, newline) for h in headers]
    parts.append(newline)
    parts.append(get_body_section(raw_message))
    return "".join(parts)
