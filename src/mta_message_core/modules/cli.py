"""CLI command implementations for the MTA message core."""

import json
import logging
from pathlib import Path

from .bounce_classifier import BounceClassifier, build_rule_table
from .errors import UnfoldableHeader
from .event_assembler import ArtifactKind, build_bounce_event, build_bounce_event_from_email
from .event_forwarder import EventForwarder
from .header_codec import parse_headers, replace_headers

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_NOT_A_BOUNCE = 2


def run_classify(config, args):
    """Classify one artifact given on the command line and print the event as JSON.

    Returns
    -------
    int
        Process exit status.
    """
    classifier = BounceClassifier(build_rule_table(config.provider_rules))

    if args.email:
        raw = _read_text(args.email)
        event = build_bounce_event_from_email(raw, args.send_id, classifier, config.mta_name)
    elif args.ndr:
        raw = _read_text(args.ndr)
        event = build_bounce_event(raw, args.recipient, args.send_id or "", ArtifactKind.NDR_REPORT, classifier)
    else:
        event = build_bounce_event(args.smtp_response, args.recipient, args.send_id or "", classifier=classifier)

    if event is None:
        print("Not classifiable as a bounce.")
        return EXIT_NOT_A_BOUNCE

    print(json.dumps(event.to_dict(), ensure_ascii=False, indent=2))

    if args.forward:
        if not config.forwarding.url:
            logger.error("--forward given but no forwarding.url configured")
            return EXIT_ERROR
        forwarder = EventForwarder(config.forwarding.url, config.forwarding.timeout)
        if not forwarder.forward(event):
            return EXIT_ERROR
    return EXIT_OK


def run_fold(config, message_path):
    """Print the message at *message_path* with its headers re-folded."""
    raw = _read_text(message_path)
    headers = parse_headers(raw)
    try:
        print(replace_headers(raw, headers, config.folding.max_line_length), end="")
    except UnfoldableHeader as exc:
        logger.error("%s; message left unchanged", exc)
        return EXIT_ERROR
    logger.debug("Re-folded %d header(s) of %s", len(headers), message_path)
    return EXIT_OK


def _read_text(path):
    # newline="" keeps CRLF terminators intact.
    with open(Path(path), encoding="utf-8", errors="replace", newline="") as f:
        return f.read()
