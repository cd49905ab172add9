"""Extraction of SMTP reply codes, NDR status codes and detail text."""

import logging
import re
from dataclasses import dataclass

from .errors import ExtractionFailure
from ..utils.email_utils import first_line, split_lines

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Regex patterns
# ---------------------------------------------------------------------------

_NDR_CODE = r"\d\.\d{1,3}\.\d{1,3}"

# An optional leading NDR code, an optional 3-digit SMTP code (separated by
# whitespace or the "-" continuation marker), an optional NDR code, then
# whatever is left as detail.
SMTP_RESPONSE_PATTERN = re.compile(
    rf"^\s*(?:(?P<LeadingNdrCode>{_NDR_CODE})(?!\d)[\s-]+)?"
    r"(?:(?P<SmtpCode>\d{3})(?![\d.])[\s-]*)?"
    rf"(?:(?P<NdrCode>{_NDR_CODE})(?!\d)\s*)?"
    r"(?P<Detail>.*?)\s*$",
    re.IGNORECASE | re.DOTALL | re.ASCII,
)

NDR_CODE_PATTERN = re.compile(rf"(?<![\d.]){_NDR_CODE}(?!\d)", re.ASCII)

# "Diagnostic-Code: smtp; 550 ..." carries a diagnostic type before the text.
_RE_DIAGNOSTIC_TYPE = re.compile(r"^\s*[A-Za-z][\w-]*\s*;\s*")
_RE_FIELD = re.compile(r"([A-Za-z][A-Za-z0-9\-]*):\s*(.*)")
_RE_RECORD_SEPARATOR = re.compile(r"(?:\r?\n){2,}")


@dataclass(frozen=True)
class SmtpResponseMatch:
    """Captures of :data:`SMTP_RESPONSE_PATTERN`; absent captures are empty."""

    smtp_code: str
    ndr_code: str
    detail: str


@dataclass(frozen=True)
class Extraction:
    """Codes pulled from a bounce artifact plus the text to surface."""

    smtp_code: str
    ndr_code: str
    detail: str
    message: str

    @property
    def has_code(self):
        return bool(self.smtp_code or self.ndr_code)


# ---------------------------------------------------------------------------
# Patterns
# ---------------------------------------------------------------------------


def match_smtp_response(line):
    """Apply the SMTP response pattern to a single line."""
    m = SMTP_RESPONSE_PATTERN.match(line)
    return SmtpResponseMatch(
        smtp_code=m.group("SmtpCode") or "",
        ndr_code=m.group("LeadingNdrCode") or m.group("NdrCode") or "",
        detail=m.group("Detail"),
    )


def find_ndr_code(text):
    """Return the first ``d.ddd.ddd`` status code in *text*, or ``""``."""
    m = NDR_CODE_PATTERN.search(text)
    return m.group(0) if m else ""


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def extract_from_smtp_response(text):
    """Extract codes from an SMTP reply.

    Only the first line is matched; multi-line replies repeat the code on
    every line.  The whole reply is kept as the message.

    Raises
    ------
    ExtractionFailure
        If the first line holds neither an SMTP nor an NDR code.
    """
    m = match_smtp_response(first_line(text))
    extraction = Extraction(m.smtp_code, m.ndr_code, m.detail, text)
    if not extraction.has_code:
        raise ExtractionFailure(f"No SMTP or NDR code in response: {first_line(text)[:80]!r}")
    return extraction


def extract_from_ndr(report_text):
    """Extract codes from an RFC 3464 delivery-status report.

    ``Diagnostic-Code`` is preferred over ``Status`` as it carries the
    remote server's own reply.  Its diagnostic type prefix (``smtp;``) is
    dropped and the rest is both matched and surfaced as the message.

    Raises
    ------
    ExtractionFailure
        If neither field is present or neither yields a code.
    """
    records = parse_ndr_records(report_text)
    # Diagnostic-Code and Status are read from the same recipient record.
    record = next((r for r in records if r.get("diagnostic_code")), None)
    if record is None:
        record = next((r for r in records if r.get("status")), {})
    diagnostic = record.get("diagnostic_code", "")
    status = record.get("status", "")

    if diagnostic:
        text = _RE_DIAGNOSTIC_TYPE.sub("", diagnostic, count=1)
        m = match_smtp_response(text)
        if m.smtp_code or m.ndr_code:
            return Extraction(m.smtp_code, m.ndr_code, m.detail, text)
        status_code = find_ndr_code(status)
        if status_code:
            logger.debug("Diagnostic-Code holds no code; using Status %s", status_code)
            return Extraction("", status_code, m.detail, text)
        raise ExtractionFailure(f"No code in Diagnostic-Code or Status: {text[:80]!r}")

    status_code = find_ndr_code(status)
    if not status_code:
        raise ExtractionFailure("Report has no Diagnostic-Code and no usable Status field")
    return Extraction("", status_code, "", status)


def parse_ndr_records(report_text):
    """Split a delivery-status report into field dicts, one per block.

    The first dict holds the per-message fields (``Reporting-MTA``, ...),
    later ones the per-recipient fields.  Field names are lowercased with
    hyphens replaced by underscores (``Diagnostic-Code`` becomes
    ``diagnostic_code``).  Continuation lines are joined with a space.
    """
    records = []
    for block in _RE_RECORD_SEPARATOR.split(report_text.strip()):
        fields = _parse_dsn_fields(block)
        if fields:
            records.append(fields)
    return records


def final_recipient(record):
    """Return the address of a record's ``Final-Recipient`` (``rfc822;addr``)."""
    value = record.get("final_recipient") or record.get("original_recipient") or ""
    _, _, address = value.rpartition(";")
    return address.strip()


def _parse_dsn_fields(section):
    """Parse one report block into a dict of normalised field names and values."""
    fields = {}
    current_key = None
    current_value = ""
    for line in split_lines(section):
        if not line or line.isspace():
            continue
        if line[0].isspace() and current_key:
            current_value += " " + line.strip()
            continue
        if current_key:
            fields[current_key] = current_value
        match = _RE_FIELD.match(line)
        if match:
            current_key = match.group(1).lower().replace("-", "_")
            current_value = match.group(2).strip()
        else:
            current_key = None
            current_value = ""
    if current_key:
        fields[current_key] = current_value
    return fields
