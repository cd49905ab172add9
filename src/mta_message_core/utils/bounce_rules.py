"""Central rule registry for bounce classification.

All rule data lives here; ``modules.bounce_classifier`` turns it into an
immutable rule table.  Entries are ``(BounceType name, BounceCode name)``
pairs so the registry can be extended from configuration with the same
vocabulary.

SMTP_RULES : exact 3-digit SMTP reply codes.
NDR_RULES : exact enhanced status codes (RFC 3463 ``class.subject.detail``).
NDR_SUBJECT_RULES : ``subject.detail`` keyed reasons applied to class 4 and
    class 5 codes without an exact rule; the class decides Soft or Hard.
PROVIDER_RULES : vendor diagnostic markers searched for in the response
    detail text, checked in order.
"""

SMTP_RULES = {
    "421": ("Soft", "ServiceUnavailable"),
    "450": ("Soft", "BadEmailAddress"),
    "451": ("Soft", "ServiceUnavailable"),
    "452": ("Soft", "ServiceUnavailable"),
    "550": ("Hard", "BadEmailAddress"),
    "551": ("Hard", "BadEmailAddress"),
    "552": ("Hard", "MailboxFull"),
    "553": ("Hard", "BadEmailAddress"),
}

NDR_RULES = {
    "4.4.7": ("Soft", "UnableToConnect"),
    "4.7.0": ("Soft", "TemporarilyBlockedByReceivingMta"),
    "4.7.28": ("Soft", "RateLimitedByReceivingMta"),
    "5.1.10": ("Hard", "BadEmailAddress"),
    "5.7.25": ("Hard", "ConfigurationErrorWithSendingAddress"),
    "5.7.26": ("Hard", "ConfigurationErrorWithSendingAddress"),
    "5.7.27": ("Hard", "ConfigurationErrorWithSendingAddress"),
}

NDR_SUBJECT_RULES = {
    "1.1": "BadEmailAddress",
    "1.2": "DnsFailure",
    "1.3": "BadEmailAddress",
    # X.1.5 is "destination mailbox address valid".
    "1.5": "NotABounce",
    "1.6": "BadEmailAddress",
    "2.1": "BadEmailAddress",
    "2.2": "MailboxFull",
    "2.3": "MessageSizeTooLarge",
    "3.4": "MessageSizeTooLarge",
    "4.1": "UnableToConnect",
    "4.2": "UnableToConnect",
    "4.4": "DnsFailure",
    "7.1": "RelayDenied",
}

PROVIDER_RULES = [
    # AOL dynamic-IP throttling diagnostics.
    ("(DYN:T1)", ("Soft", "RateLimitedByReceivingMta")),
    ("(DYN:T2)", ("Soft", "UnableToConnect")),
]

# Text the queue records when a message expires before it could be delivered.
TIMED_OUT_IN_QUEUE_MESSAGE = "Timed out in queue."
TIMED_OUT_IN_QUEUE_RULE = ("Hard", "UnableToConnect")
