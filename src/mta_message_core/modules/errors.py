"""Failure taxonomy for message parsing and bounce extraction."""


class MessageCoreError(Exception):
    """Base class for all failures raised by this package."""


class ExtractionFailure(MessageCoreError):
    """No recognisable SMTP or NDR code in the input; not a bounce."""


class DecodeError(MessageCoreError):
    """A MIME body part's transfer-encoded data is malformed."""


class MalformedMimeStructure(MessageCoreError):
    """Multipart boundaries are missing or inconsistent."""


class UnfoldableHeader(MessageCoreError):
    """A header has no legal fold point, even at the escalated width."""

    def __init__(self, name):
        super().__init__(f"Header '{name}' cannot be folded")
        self.name = name


class ConfigError(MessageCoreError):
    """The configuration file is unreadable or holds invalid values."""
