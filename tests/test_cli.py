"""
Tests for the command-line entry point.
"""

import json
import logging
from unittest.mock import patch

import pytest

from mta_message_core.main import main, parse_args


@pytest.fixture(autouse=True)
def reset_logging():
    """Drop the stderr handler main() installs; it points at a captured stream."""
    yield
    root = logging.getLogger()
    for handler in [h for h in root.handlers if h.get_name() == "mta_message_core"]:
        root.removeHandler(handler)


@pytest.fixture
def no_config(tmp_path):
    return str(tmp_path / "none.json")


class TestParseArgs:
    """Test argument parsing."""

    def test_source_is_required(self):
        with pytest.raises(SystemExit):
            parse_args([])

    def test_sources_are_exclusive(self):
        with pytest.raises(SystemExit):
            parse_args(["--smtp-response", "550", "--fold", "msg.eml"])

    def test_defaults(self):
        args = parse_args(["--smtp-response", "550 no"])

        assert args.config == "config.json"
        assert args.recipient == ""
        assert args.send_id is None
        assert not args.forward


class TestClassifyCommand:
    """Test the classification commands."""

    def test_smtp_response(self, capsys, no_config):
        code = main(["-c", no_config, "--smtp-response", "550 5.1.1 user unknown", "--recipient", "a@b.co", "--send-id", "s1"])
        data = json.loads(capsys.readouterr().out)

        assert code == 0
        assert data["bounce_type"] == "Hard"
        assert data["bounce_code"] == "BadEmailAddress"
        assert data["email_address"] == "a@b.co"
        assert data["send_id"] == "s1"

    def test_not_a_bounce(self, capsys, no_config):
        code = main(["-c", no_config, "--smtp-response", "hello there"])

        assert code == 2
        assert "Not classifiable as a bounce." in capsys.readouterr().out

    def test_ndr_file(self, capsys, tmp_path, no_config, ndr_report):
        path = tmp_path / "report.txt"
        path.write_text(ndr_report, encoding="utf-8")

        code = main(["-c", no_config, "--ndr", str(path), "--recipient", "some.user@colony101.co.uk"])
        data = json.loads(capsys.readouterr().out)

        assert code == 0
        assert data["bounce_code"] == "BadEmailAddress"

    def test_email_file(self, capsys, tmp_path, no_config, bounce_email):
        path = tmp_path / "bounce.eml"
        path.write_bytes(bounce_email.encode("utf-8"))

        code = main(["-c", no_config, "--email", str(path)])
        data = json.loads(capsys.readouterr().out)

        assert code == 0
        assert data["email_address"] == "some.user@colony101.co.uk"
        assert data["send_id"] == "send-42"

    def test_provider_rule_from_config(self, capsys, tmp_path):
        config = tmp_path / "config.json"
        config.write_text(
            json.dumps({"provider_rules": [{"marker": "(RLY:B1)", "bounce_type": "Hard", "bounce_code": "KnownSpammer"}]}),
            encoding="utf-8",
        )

        code = main(["-c", str(config), "--smtp-response", "554 (RLY:B1) blocked"])
        data = json.loads(capsys.readouterr().out)

        assert code == 0
        assert data["bounce_code"] == "KnownSpammer"

    def test_invalid_config(self, tmp_path):
        config = tmp_path / "config.json"
        config.write_text("{broken", encoding="utf-8")

        assert main(["-c", str(config), "--smtp-response", "550"]) == 1

    def test_forward_without_url(self, no_config):
        assert main(["-c", no_config, "--smtp-response", "550 user unknown", "--forward"]) == 1

    @patch("mta_message_core.modules.cli.EventForwarder")
    def test_forward(self, mock_forwarder, tmp_path):
        config = tmp_path / "config.json"
        config.write_text(json.dumps({"forwarding": {"url": "http://collector.example/events"}}), encoding="utf-8")
        mock_forwarder.return_value.forward.return_value = True

        assert main(["-c", str(config), "--smtp-response", "550 user unknown", "--forward"]) == 0
        mock_forwarder.assert_called_once_with("http://collector.example/events", 30)


class TestFoldCommand:
    """Test the header re-folding command."""

    def test_fold(self, capsys, tmp_path, no_config):
        path = tmp_path / "message.eml"
        path.write_bytes(("Subject: " + "word " * 30 + "\r\nTo: a@b.co\r\n\r\nBody\r\n").encode("utf-8"))

        code = main(["-c", no_config, "--fold", str(path)])
        out = capsys.readouterr().out

        assert code == 0
        assert out.endswith("\r\n\r\nBody\r\n")
        assert out.startswith("Subject: word")
        assert "To: a@b.co\r\n" in out

    def test_unfoldable(self, tmp_path, no_config):
        path = tmp_path / "message.eml"
        path.write_bytes(("X-Token: " + "x" * 1200 + "\r\n\r\nBody").encode("utf-8"))

        assert main(["-c", no_config, "--fold", str(path)]) == 1
