"""CLI entry point for the MTA message core."""

import argparse
import logging
import sys

from .modules.cli import EXIT_ERROR, run_classify, run_fold
from .modules.config import load_config
from .modules.errors import ConfigError
from .utils.logger import setup_logging

logger = logging.getLogger(__name__)


def parse_args(argv=None):
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="mta-message-core",
        description="Classify SMTP replies and delivery-status reports as bounces, and re-fold message headers.",
    )
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--smtp-response", metavar="TEXT", help="SMTP reply text to classify")
    source.add_argument("--ndr", metavar="FILE", help="Delivery-status report (RFC 3464 fields) to classify")
    source.add_argument("--email", metavar="FILE", help="Bounce notification email to unwrap and classify")
    source.add_argument("--fold", metavar="FILE", help="Print the message with its headers re-folded")
    parser.add_argument("--recipient", default="", help="Recipient address the failed message was sent to")
    parser.add_argument("--send-id", default=None, help="Send identifier to attach to the event")
    parser.add_argument("--forward", action="store_true", help="POST the event to the configured forwarding URL")
    parser.add_argument("-c", "--config", default="config.json", help="Path to config JSON file (default: config.json)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument("--version", action="version", version="%(prog)s 0.1.0")
    return parser.parse_args(argv)


def main(argv=None):
    """Application entry point."""
    args = parse_args(argv)
    setup_logging(args.verbose)

    try:
        config = load_config(args.config)
    except ConfigError as exc:
        logger.error("%s", exc)
        return EXIT_ERROR

    if args.fold:
        return run_fold(config, args.fold)
    return run_classify(config, args)


if __name__ == "__main__":
    sys.exit(main())
