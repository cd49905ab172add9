"""
Pytest configuration and shared message fixtures.
"""

import os
import sys

import pytest

# Add src to Python path before any imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "../src"))


NDR_REPORT = """Reporting-MTA: dns;snt3.net
Received-From-MTA: dns;SNT3
Arrival-Date: Tue, 9 Oct 2012 19:02:10 +0100

Final-Recipient: rfc822;some.user@colony101.co.uk
Action: failed
Status: 5.1.1
Diagnostic-Code: smtp;550 5.1.1 <some.user@colony101.co.uk>: Recipient address rejected: colony101.co.uk"""

DIAGNOSTIC_TEXT = "550 5.1.1 <some.user@colony101.co.uk>: Recipient address rejected: colony101.co.uk"

# The multipart example from RFC 1521 appendix C.
COMPLEX_MULTIPART = """MIME-Version: 1.0
From: Nathaniel Borenstein <nsb@bellcore.com>
To:  Ned Freed <ned@innosoft.com>
Subject: A multipart example
Content-Type: multipart/mixed;
     boundary=unique-boundary-1

This is the preamble area of a multipart message.
Mail readers that understand multipart format
should ignore this preamble.
--unique-boundary-1

    ...Some text appears here...
[Note that the preceding blank line means
no header fields were given and this is text,
with charset US ASCII.  It could have been
done with explicit typing as in the next part.]

--unique-boundary-1
Content-type: text/plain; charset=US-ASCII

This could have been part of the previous part,
but illustrates explicit versus implicit
typing of body parts.

--unique-boundary-1
Content-Type: multipart/mixed;
     boundary=unique-boundary-2

--unique-boundary-2
Content-Type: audio/basic
Content-Transfer-Encoding: base64

    ... base64-encoded 8000 Hz single-channel
        mu-law-format audio data goes here....

--unique-boundary-2
Content-Type: image/gif
Content-Transfer-Encoding: base64

    ... base64-encoded image data goes here....

--unique-boundary-2--

--unique-boundary-1
Content-type: text/richtext

This is <bold><italic>richtext.</italic></bold>
<smaller>as defined in RFC 1341</smaller>
<nl><nl>Isn't it
<bigger><bigger>cool?</bigger></bigger>

--unique-boundary-1
Content-Type: message/rfc822

From: (mailbox in US-ASCII)
To: (address in US-ASCII)
Subject: (subject in US-ASCII)
Content-Type: Text/plain; charset=ISO-8859-1
Content-Transfer-Encoding: Quoted-printable

    ... Additional text in ISO-8859-1 goes here ...

--unique-boundary-1--
"""

BOUNCE_EMAIL = (
    "From: Mail Delivery System <MAILER-DAEMON@snt3.net>\r\n"
    "To: bounces@sender.example\r\n"
    "Subject: Undelivered Mail Returned to Sender\r\n"
    "MIME-Version: 1.0\r\n"
    'Content-Type: multipart/report; report-type=delivery-status;\r\n'
    '\tboundary="B0UND"\r\n'
    "\r\n"
    "This is a MIME-encapsulated message.\r\n"
    "\r\n"
    "--B0UND\r\n"
    "Content-Type: text/plain; charset=us-ascii\r\n"
    "\r\n"
    "I'm sorry to have to inform you that your message could not\r\n"
    "be delivered to one or more recipients.\r\n"
    "\r\n"
    "--B0UND\r\n"
    "Content-Type: message/delivery-status\r\n"
    "\r\n"
    + NDR_REPORT.replace("\n", "\r\n")
    + "\r\n"
    "\r\n"
    "--B0UND\r\n"
    "Content-Type: message/rfc822\r\n"
    "\r\n"
    "From: news@sender.example\r\n"
    "To: some.user@colony101.co.uk\r\n"
    "Subject: October newsletter\r\n"
    "X-MantaMTA-SendID: send-42\r\n"
    "\r\n"
    "Hello!\r\n"
    "\r\n"
    "--B0UND--\r\n"
)


@pytest.fixture
def ndr_report():
    return NDR_REPORT


@pytest.fixture
def diagnostic_text():
    return DIAGNOSTIC_TEXT


@pytest.fixture
def complex_multipart():
    return COMPLEX_MULTIPART


@pytest.fixture
def bounce_email():
    return BOUNCE_EMAIL
