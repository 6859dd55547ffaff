"""Tests for the concrete notification sinks."""

import io
from datetime import datetime

import pytest
from rich.console import Console

from lendingdesk.db.models import Patron
from lendingdesk.notifications import (
    ConsoleSink,
    EventType,
    LogFileSink,
    MailSink,
    NotificationEvent,
    SmtpTransport,
)
from lendingdesk.notifications.sinks import SIGNATURE


class FakeTransport:
    def __init__(self):
        self.sent = []

    def send(self, to_address: str, subject: str, body: str) -> None:
        self.sent.append((to_address, subject, body))


@pytest.fixture
def ada():
    return Patron(id="P1", name="Ada", email="ada@example.com")


@pytest.fixture
def fine_event(ada):
    return NotificationEvent(
        EventType.FINE_APPLIED,
        "A fine of $10.00 has been applied",
        patron=ada,
        created_at=datetime(2025, 1, 31, 9, 30, 0),
    )


class TestLogFileSink:
    """Tests for the append-only log file."""

    def test_format_line(self, fine_event):
        """One line: timestamp, type, patron, message."""
        assert LogFileSink.format_line(fine_event) == (
            "[2025-01-31T09:30:00] FINE_APPLIED - P1 - A fine of $10.00 has been applied\n"
        )

    def test_system_event(self):
        """Events without a patron are logged as SYSTEM."""
        event = NotificationEvent(EventType.REMINDER, "multi\nline", created_at=datetime(2025, 1, 1))
        assert LogFileSink.format_line(event) == "[2025-01-01T00:00:00] REMINDER - SYSTEM - multi line\n"

    def test_appends(self, tmp_path, fine_event):
        """Each event appends one line."""
        path = tmp_path / "events.log"
        sink = LogFileSink(path)
        sink.receive(fine_event)
        sink.receive(fine_event)

        lines = path.read_text().splitlines()
        assert len(lines) == 2
        assert lines[0].startswith("[2025-01-31T09:30:00] FINE_APPLIED")


class TestConsoleSink:
    """Tests for the rich console sink."""

    def test_prints_panel(self, fine_event):
        """The event type and message are printed."""
        out = io.StringIO()
        ConsoleSink(Console(file=out, width=100)).receive(fine_event)
        text = out.getvalue()
        assert "FINE_APPLIED" in text
        assert "A fine of $10.00" in text
        assert "P1" in text


class TestMailSink:
    """Tests for the mail sink."""

    def test_mails_patron(self, fine_event):
        """Patron events go to the patron's address with a subject per type."""
        transport = FakeTransport()
        MailSink(transport).receive(fine_event)

        assert transport.sent == [
            (
                "ada@example.com",
                "Library Fine Notification",
                "A fine of $10.00 has been applied" + SIGNATURE,
            )
        ]

    def test_fallback_when_no_email(self, fine_event):
        """Patrons without an address use the fallback."""
        fine_event.patron.email = None
        transport = FakeTransport()
        MailSink(transport, fallback_address="desk@example.com").receive(fine_event)
        assert transport.sent[0][0] == "desk@example.com"

    def test_always_use_fallback(self, fine_event):
        """Everything can be redirected to the fallback address."""
        transport = FakeTransport()
        MailSink(transport, "desk@example.com", always_use_fallback=True).receive(fine_event)
        assert transport.sent[0][0] == "desk@example.com"

    def test_always_use_fallback_requires_address(self):
        """Redirecting needs an address."""
        with pytest.raises(ValueError):
            MailSink(FakeTransport(), always_use_fallback=True)

    def test_skips_system_events(self):
        """Events without a patron are not mailed."""
        transport = FakeTransport()
        MailSink(transport, "desk@example.com").receive(
            NotificationEvent(EventType.REMINDER, "system")
        )
        assert transport.sent == []

    def test_skips_without_any_address(self, fine_event):
        """No patron address and no fallback means no mail."""
        fine_event.patron.email = None
        transport = FakeTransport()
        MailSink(transport).receive(fine_event)
        assert transport.sent == []

    @pytest.mark.parametrize(
        "event_type,subject",
        [
            (EventType.BORROWING_RESTORED, "Borrowing Privileges Restored"),
            (EventType.FINE_PAID, "Fine Payment Confirmation"),
            (EventType.REMINDER, "Overdue Item Reminder"),
        ],
    )
    def test_subjects(self, ada, event_type, subject):
        """Each event type has its own subject line."""
        assert MailSink.subject_for(NotificationEvent(event_type, "m", patron=ada)) == subject


class TestSmtpTransport:
    """Tests for SmtpTransport."""

    def test_sends_message(self, monkeypatch):
        """The message is handed to smtplib with the configured sender."""
        sent = []

        class FakeSMTP:
            def __init__(self, host, port, timeout):
                sent.append(("connect", host, port))

            def __enter__(self):
                return self

            def __exit__(self, *args):
                return False

            def send_message(self, msg):
                sent.append(("send", msg["From"], msg["To"], msg["Subject"]))

        monkeypatch.setattr("lendingdesk.notifications.sinks.smtplib.SMTP", FakeSMTP)
        SmtpTransport("mail.local", 2525, sender="desk@example.com").send(
            "ada@example.com", "Hi", "Body"
        )

        assert sent == [
            ("connect", "mail.local", 2525),
            ("send", "desk@example.com", "ada@example.com", "Hi"),
        ]
