"""
Tests for bounce event assembly.
"""

from mta_message_core.modules.bounce_classifier import BounceClassifier, build_rule_table
from mta_message_core.modules.event_assembler import (
    ArtifactKind,
    build_bounce_event,
    build_bounce_event_from_email,
)
from mta_message_core.modules.models import BounceCode, BouncePair, BounceType, EventType


class TestBuildBounceEvent:
    """Test events built from SMTP replies and NDR reports."""

    def test_aol_rate_limit(self):
        event = build_bounce_event(
            "421 4.7.1 : (DYN:T1) http://postmaster.info.aol.com/errors/421dynt1.html",
            "someone@aol.com",
            "send-1",
        )

        assert event.email_address == "someone@aol.com"
        assert event.send_id == "send-1"
        assert event.event_type is EventType.Bounce
        assert event.bounce_info == BouncePair(BounceType.Soft, BounceCode.RateLimitedByReceivingMta)
        assert not event.is_permanent

    def test_gmail_multi_line_keeps_full_message(self):
        response = (
            "550-5.1.1 The email account that you tried to reach does not exist. Please try\n"
            "550 5.1.1 double-checking the recipient's email address for typos"
        )
        event = build_bounce_event(response, "nobody@gmail.com", "send-2")

        assert event.bounce_info == BouncePair(BounceType.Hard, BounceCode.BadEmailAddress)
        assert event.message == response
        assert event.is_permanent

    def test_ndr_report(self, ndr_report, diagnostic_text):
        event = build_bounce_event(ndr_report, "some.user@colony101.co.uk", "send-3", ArtifactKind.NDR_REPORT)

        assert event.bounce_info == BouncePair(BounceType.Hard, BounceCode.BadEmailAddress)
        assert event.message == diagnostic_text

    def test_no_code_is_not_a_bounce(self):
        assert build_bounce_event("Thanks for your message", "a@b.co", "send-4") is None

    def test_unreadable_report_is_not_a_bounce(self):
        assert build_bounce_event("Action: failed", "a@b.co", "send-4", ArtifactKind.NDR_REPORT) is None

    def test_timed_out_in_queue(self):
        event = build_bounce_event("Timed out in queue.", "a@b.co", "send-5")

        assert event.bounce_info == BouncePair(BounceType.Hard, BounceCode.UnableToConnect)
        assert event.message == "Timed out in queue."

    def test_custom_classifier(self):
        table = build_rule_table([("greylisted", BouncePair(BounceType.Soft, BounceCode.TemporarilyBlockedByReceivingMta))])
        event = build_bounce_event("451 greylisted, try later", "a@b.co", "send-6", classifier=BounceClassifier(table))

        assert event.bounce_info == BouncePair(BounceType.Soft, BounceCode.TemporarilyBlockedByReceivingMta)

    def test_to_dict(self):
        event = build_bounce_event("552 No such user (users@domain.com)", "users@domain.com", "send-7")
        data = event.to_dict()

        assert data["bounce_type"] == "Hard"
        assert data["bounce_code"] == "MailboxFull"
        assert data["event_type"] == "Bounce"
        assert data["email_address"] == "users@domain.com"
        assert data["timestamp"].endswith("+00:00")


class TestBuildBounceEventFromEmail:
    """Test events built from whole bounce notification emails."""

    def test_report_email(self, bounce_email, diagnostic_text):
        event = build_bounce_event_from_email(bounce_email)

        assert event.email_address == "some.user@colony101.co.uk"
        assert event.send_id == "send-42"
        assert event.bounce_info == BouncePair(BounceType.Hard, BounceCode.BadEmailAddress)
        assert event.message == diagnostic_text

    def test_explicit_send_id_wins(self, bounce_email):
        assert build_bounce_event_from_email(bounce_email, send_id="override").send_id == "override"

    def test_other_mta_name_finds_no_send_id(self, bounce_email):
        assert build_bounce_event_from_email(bounce_email, mta_name="OtherMTA").send_id == ""

    def test_email_without_report(self, complex_multipart):
        assert build_bounce_event_from_email(complex_multipart) is None
