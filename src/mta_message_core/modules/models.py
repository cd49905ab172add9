"""Bounce classification data model."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from ..utils.date_utils import format_event_timestamp


class BounceType(Enum):
    """Permanence of a delivery failure."""

    Unknown = 0
    Hard = 1
    Soft = 2


class BounceCode(Enum):
    """Semantic reason for a delivery failure."""

    Unknown = 0
    NotABounce = 1
    BadEmailAddress = 11
    General = 12
    DnsFailure = 13
    MailboxFull = 14
    MessageSizeTooLarge = 15
    UnableToConnect = 29
    ServiceUnavailable = 30
    KnownSpammer = 51
    SpamDetected = 52
    AttachmentDetected = 53
    RelayDenied = 54
    RateLimitedByReceivingMta = 55
    ConfigurationErrorWithSendingAddress = 56
    PermanentlyBlockedByReceivingMta = 57
    TemporarilyBlockedByReceivingMta = 58


class EventType(Enum):
    """Kind of event handed to the queue/retry subsystem."""

    Bounce = 1
    Abuse = 2


@dataclass(frozen=True)
class BouncePair:
    """Classification result: how permanent the failure is and why."""

    bounce_type: BounceType
    bounce_code: BounceCode

    def __str__(self):
        return f"{self.bounce_type.name}/{self.bounce_code.name}"


UNKNOWN_PAIR = BouncePair(BounceType.Unknown, BounceCode.Unknown)


@dataclass
class BounceEvent:  # pylint: disable=too-many-instance-attributes
    """A classified delivery failure for a single recipient."""

    email_address: str
    bounce_info: BouncePair
    message: str
    send_id: str
    event_type: EventType = EventType.Bounce
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_permanent(self):
        """True when the receiving side rejected the address for good."""
        return self.bounce_info.bounce_type is BounceType.Hard

    def to_dict(self):
        """Flatten into a JSON-serialisable dict (enum names, ISO timestamp)."""
        return {
            "email_address": self.email_address,
            "event_type": self.event_type.name,
            "bounce_type": self.bounce_info.bounce_type.name,
            "bounce_code": self.bounce_info.bounce_code.name,
            "message": self.message,
            "send_id": self.send_id,
            "timestamp": format_event_timestamp(self.timestamp),
        }
