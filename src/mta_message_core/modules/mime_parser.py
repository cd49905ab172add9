"""Recursive MIME decoder producing a tree of body parts.

The parser works on text (a message as read from the queue or drop
folder).  Multipart bodies are split on their boundary delimiter lines and
each segment is parsed again as a header + body unit, so the tree depth is
the nesting depth of the input.  Structural problems are recorded on the
smallest enclosing part as ``defects`` instead of aborting the parse, the
same way :mod:`email` reports defects.
"""

import base64
import binascii
import logging
import quopri
import re

from .errors import DecodeError, MalformedMimeStructure
from .header_codec import parse_headers, split_header_and_body
from ..utils.email_utils import decode_bytes

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "text/plain; charset=us-ascii"
DIGEST_CONTENT_TYPE = "message/rfc822"
DEFAULT_TRANSFER_ENCODING = "7bit"

DELIVERY_STATUS_TYPE = "message/delivery-status"
RFC822_TYPES = ("message/rfc822", "text/rfc822-headers")

_IDENTITY_ENCODINGS = ("7bit", "8bit", "binary")

_RE_PARAM = re.compile(
    r';\s*([^\s=;]+)\s*=\s*("(?:[^"\\]|\\.)*"|[^;]*)',
    re.DOTALL,
)
# "=" must start a soft line break or a two-digit hex escape.
_RE_BAD_QP_ESCAPE = re.compile(r"=(?![0-9A-Fa-f]{2}|[ \t]*\r?$)", re.MULTILINE)
# Trailing whitespace on a quoted-printable line is transport padding (RFC 2045 6.7).
_RE_QP_PADDING = re.compile(r"[ \t]+(?=\r?\n|\Z)")
_RE_LINE = re.compile(r"[^\n]*\n|[^\n]+")


class ContentType:
    """Media type plus parameters of a ``Content-Type`` header."""

    def __init__(self, media_type, params=None):
        self.media_type = media_type.strip().lower()
        self.params = params or {}

    @classmethod
    def parse(cls, value):
        """Parse ``type/subtype; name=value; ...``; quoted values are unquoted."""
        media_type, _, _ = value.partition(";")
        params = {}
        for name, raw in _RE_PARAM.findall(value[len(media_type):]):
            raw = raw.strip()
            if len(raw) >= 2 and raw[0] == raw[-1] == '"':
                raw = re.sub(r"\\(.)", r"\1", raw[1:-1])
            params[name.lower()] = raw
        if "/" not in media_type:
            media_type = DEFAULT_CONTENT_TYPE.split(";", maxsplit=1)[0]
        return cls(media_type, params)

    @property
    def main_type(self):
        return self.media_type.split("/", 1)[0]

    @property
    def boundary(self):
        return self.params.get("boundary")

    @property
    def charset(self):
        if "charset" in self.params:
            return self.params["charset"]
        return "us-ascii" if self.main_type == "text" else None

    @property
    def is_multipart(self):
        return self.main_type == "multipart"

    def __repr__(self):
        return f"ContentType({self.media_type!r}, {self.params!r})"


class MimeBodyPart:  # pylint: disable=too-many-instance-attributes
    """A node of the MIME tree.

    Attributes
    ----------
    headers : MessageHeaderCollection
        The part's own headers.
    content_type : ContentType
    transfer_encoding : str
        Lower-cased ``Content-Transfer-Encoding``.
    encoded_body : str
        Body text as found in the input, before transfer decoding.
    raw : str
        The exact text this part was parsed from.
    body_parts : list[MimeBodyPart]
        Children in declared order; only ever non-empty for multipart types.
    preamble, epilogue : str
        Text before the first and after the closing boundary (multipart only).
    defects : list[MalformedMimeStructure]
        Structural failures scoped to this part.
    """

    def __init__(self, headers, content_type, transfer_encoding, encoded_body, raw):
        self.headers = headers
        self.content_type = content_type
        self.transfer_encoding = transfer_encoding
        self.encoded_body = encoded_body
        self.raw = raw
        self.body_parts = []
        self.preamble = ""
        self.epilogue = ""
        self.defects = []

    @property
    def media_type(self):
        return self.content_type.media_type

    @property
    def is_multipart(self):
        return self.content_type.is_multipart

    def __repr__(self):
        return f"<MimeBodyPart {self.media_type} parts={len(self.body_parts)}>"


class MimeMessage(MimeBodyPart):
    """Root of a parsed MIME tree."""


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def parse(raw_message):
    """Parse *raw_message* into a :class:`MimeMessage` tree."""
    return _parse_part(raw_message, DEFAULT_CONTENT_TYPE, cls=MimeMessage)


def _parse_part(raw, default_content_type, cls=MimeBodyPart):
    headers = parse_headers(raw)
    _, body = split_header_and_body(raw)

    content_type = ContentType.parse(headers.get_value("Content-Type") or default_content_type)
    transfer_encoding = (headers.get_value("Content-Transfer-Encoding") or DEFAULT_TRANSFER_ENCODING).lower()
    part = cls(headers, content_type, transfer_encoding, body, raw)

    if content_type.is_multipart:
        if content_type.boundary:
            _parse_multipart_body(part)
        else:
            part.defects.append(MalformedMimeStructure(f"{content_type.media_type} without a boundary parameter"))
            logger.debug("Multipart part without boundary; keeping body as leaf")
    return part


def _parse_multipart_body(part):
    """Split *part*'s body on its boundary and parse each segment as a child.

    A segment's trailing line terminator belongs to the next delimiter and
    is stripped.  Children already parsed are kept when a later problem is
    found.
    """
    delimiter = "--" + part.content_type.boundary
    terminator = delimiter + "--"
    child_default = DIGEST_CONTENT_TYPE if part.media_type == "multipart/digest" else DEFAULT_CONTENT_TYPE

    preamble = []
    segment = None
    terminated = False
    lines = _RE_LINE.findall(part.encoded_body)
    index = 0
    for index, line in enumerate(lines):
        stripped = line.rstrip()
        if stripped == terminator:
            if segment is not None:
                _append_child(part, segment, child_default)
            terminated = True
            break
        if stripped == delimiter:
            if segment is not None:
                _append_child(part, segment, child_default)
            segment = []
            continue
        if segment is None:
            preamble.append(line)
        else:
            segment.append(line)

    part.preamble = _strip_newline("".join(preamble))
    if terminated:
        part.epilogue = "".join(lines[index + 1:])
        return

    if segment is not None:
        _append_child(part, segment, child_default)
    if not part.body_parts:
        part.defects.append(MalformedMimeStructure(f"No '{delimiter}' delimiter found in {part.media_type} body"))
    else:
        part.defects.append(MalformedMimeStructure(f"Missing closing '{terminator}' in {part.media_type} body"))
    logger.debug("Malformed %s: %s", part.media_type, part.defects[-1])


def _append_child(parent, segment_lines, default_content_type):
    raw = _strip_newline("".join(segment_lines))
    parent.body_parts.append(_parse_part(raw, default_content_type))


def _strip_newline(text):
    if text.endswith("\r\n"):
        return text[:-2]
    if text.endswith("\n"):
        return text[:-1]
    return text


# ---------------------------------------------------------------------------
# Decoding and traversal
# ---------------------------------------------------------------------------


def decoded_body(part):
    """Return *part*'s body with its transfer encoding removed.

    Raises
    ------
    DecodeError
        If the encoded data is malformed or the encoding is unknown.  Only
        this part is affected.
    """
    encoding = part.transfer_encoding
    body = part.encoded_body
    if encoding in _IDENTITY_ENCODINGS:
        return body.encode("utf-8", errors="surrogateescape")

    if encoding == "base64":
        compact = "".join(body.split())
        try:
            return base64.b64decode(compact, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise DecodeError(f"Invalid base64 body in {part.media_type} part: {exc}") from exc

    if encoding == "quoted-printable":
        bad = _RE_BAD_QP_ESCAPE.search(body)
        if bad:
            raise DecodeError(f"Invalid quoted-printable escape at offset {bad.start()} in {part.media_type} part")
        try:
            return quopri.decodestring(_RE_QP_PADDING.sub("", body).encode("ascii"))
        except UnicodeEncodeError as exc:
            raise DecodeError(f"Non-ASCII data in quoted-printable {part.media_type} part") from exc

    raise DecodeError(f"Unsupported transfer encoding '{encoding}'")


def decoded_text(part):
    """Return the decoded body as text using the part's charset."""
    return decode_bytes(decoded_body(part), part.content_type.charset)


def embedded_message(part):
    """Parse the body of a ``message/rfc822`` part as a message of its own."""
    return parse(decoded_text(part))


def walk(part):
    """Yield *part* and all its descendants depth-first, in document order."""
    yield part
    for child in part.body_parts:
        yield from walk(child)


def find_delivery_status_part(tree):
    """Return the first ``message/delivery-status`` part in document order.

    ``message/rfc822`` parts are searched recursively through their
    embedded message.  Returns None when there is no such part.
    """
    for part in walk(tree):
        if part.media_type == DELIVERY_STATUS_TYPE:
            return part
        if part.media_type == "message/rfc822":
            try:
                inner = embedded_message(part)
            except DecodeError as exc:
                logger.debug("Skipping undecodable message/rfc822 part: %s", exc)
                continue
            found = find_delivery_status_part(inner)
            if found is not None:
                return found
    return None
