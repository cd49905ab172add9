"""Assembly of classified bounce events for the queue/retry subsystem."""

import logging
from enum import Enum

from . import mime_parser
from .bounce_classifier import BounceClassifier, to_pair
from .bounce_extractor import extract_from_ndr, extract_from_smtp_response, final_recipient, parse_ndr_records
from .errors import DecodeError, ExtractionFailure
from .header_codec import DEFAULT_MTA_NAME, MtaHeaderNames, parse_headers
from .models import BounceEvent, EventType
from ..utils.bounce_rules import TIMED_OUT_IN_QUEUE_MESSAGE, TIMED_OUT_IN_QUEUE_RULE

logger = logging.getLogger(__name__)


class ArtifactKind(Enum):
    """What the caller handed in for classification."""

    SMTP_RESPONSE = "smtp"
    NDR_REPORT = "ndr"


def build_bounce_event(raw_artifact, recipient, send_id, kind=ArtifactKind.SMTP_RESPONSE, classifier=None):
    """Classify one bounce artifact for *recipient*.

    Parameters
    ----------
    raw_artifact : str
        SMTP reply text or delivery-status report text.
    recipient : str
        Address the failed message was sent to.
    send_id : str
        Identifier of the send the message belongs to.
    kind : ArtifactKind
        How to read *raw_artifact*.
    classifier : BounceClassifier, optional
        Defaults to one backed by the shared rule table.

    Returns
    -------
    BounceEvent or None
        None when no bounce code could be extracted; the caller should
        treat the artifact as "not classifiable as a bounce".
    """
    classifier = classifier or BounceClassifier()

    if kind is ArtifactKind.SMTP_RESPONSE and raw_artifact.strip() == TIMED_OUT_IN_QUEUE_MESSAGE:
        return _make_event(recipient, to_pair(TIMED_OUT_IN_QUEUE_RULE), raw_artifact, send_id)

    try:
        if kind is ArtifactKind.NDR_REPORT:
            extraction = extract_from_ndr(raw_artifact)
        else:
            extraction = extract_from_smtp_response(raw_artifact)
    except ExtractionFailure as exc:
        logger.debug("Not classifiable as a bounce for %s: %s", recipient, exc)
        return None

    pair = classifier.classify(extraction.smtp_code, extraction.ndr_code, extraction.detail)
    logger.debug(
        "Bounce [smtp=%s ndr=%s] %s -> %s",
        extraction.smtp_code or "-",
        extraction.ndr_code or "-",
        recipient,
        pair,
    )
    return _make_event(recipient, pair, extraction.message, send_id)


def build_bounce_event_from_email(raw_message, send_id=None, classifier=None, mta_name=DEFAULT_MTA_NAME):
    """Classify a bounce notification email (RFC 3464 ``multipart/report``).

    The delivery-status part is located with the MIME parser and read as an
    NDR report.  The recipient comes from ``Final-Recipient``; when
    *send_id* is not given it is recovered from the send-id control header
    of the returned original message.

    Returns
    -------
    BounceEvent or None
        None when the email holds no delivery-status part or no code.
    """
    tree = mime_parser.parse(raw_message)
    status_part = mime_parser.find_delivery_status_part(tree)
    if status_part is None:
        logger.debug("No message/delivery-status part found")
        return None

    try:
        report = mime_parser.decoded_text(status_part)
    except DecodeError as exc:
        logger.debug("Undecodable delivery-status part: %s", exc)
        return None

    records = parse_ndr_records(report)
    recipient = next((final_recipient(r) for r in records if final_recipient(r)), "")
    if send_id is None:
        send_id = _find_send_id(tree, MtaHeaderNames(mta_name).send_id)

    return build_bounce_event(report, recipient, send_id, ArtifactKind.NDR_REPORT, classifier)


def _find_send_id(tree, header_name):
    """Look for *header_name* on the original message returned in the bounce."""
    for part in mime_parser.walk(tree):
        if part.media_type not in mime_parser.RFC822_TYPES:
            continue
        try:
            text = mime_parser.decoded_text(part)
        except DecodeError:
            continue
        # text/rfc822-headers holds only the header block.
        value = parse_headers(text + "\r\n\r\n").get_value(header_name)
        if value:
            return value
    return ""


def _make_event(recipient, pair, message, send_id):
    return BounceEvent(
        email_address=recipient,
        bounce_info=pair,
        message=message,
        send_id=send_id,
        event_type=EventType.Bounce,
    )
