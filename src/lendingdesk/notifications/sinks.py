"""Concrete notification sinks: console, append-only log file, outbound mail."""

import logging
import smtplib
import threading
from email.message import EmailMessage
from pathlib import Path
from typing import Optional, Protocol, Union

from rich.console import Console
from rich.panel import Panel

from .events import EventType, NotificationEvent

logger = logging.getLogger(__name__)


EVENT_STYLES = {
    EventType.OVERDUE_DETECTED: "yellow",
    EventType.FINE_APPLIED: "red",
    EventType.FINE_PAID: "green",
    EventType.FINE_PARTIALLY_PAID: "cyan",
    EventType.BORROWING_RESTORED: "green",
    EventType.REMINDER: "yellow",
}


class ConsoleSink:
    """Prints each event as a rich panel."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def receive(self, event: NotificationEvent) -> None:
        style = EVENT_STYLES.get(event.event_type, "white")
        body = (
            f"[bold]Patron:[/bold] {event.patron_id or 'SYSTEM'}\n"
            f"[bold]Message:[/bold] {event.message}\n"
            f"[dim]{event.created_at.isoformat(timespec='seconds')}[/dim]"
        )
        self.console.print(
            Panel(body, title=f"[bold {style}]{event.event_type.value}[/bold {style}]", expand=False)
        )


class LogFileSink:
    """Appends one line per event to a text file.

    Line format: ``[timestamp] EVENT_TYPE - patron id or SYSTEM - message``
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._lock = threading.Lock()

    @staticmethod
    def format_line(event: NotificationEvent) -> str:
        message = " ".join(event.message.split())
        return (
            f"[{event.created_at.isoformat(timespec='seconds')}] "
            f"{event.event_type.value} - {event.patron_id or 'SYSTEM'} - {message}\n"
        )

    def receive(self, event: NotificationEvent) -> None:
        line = self.format_line(event)
        with self._lock:
            with open(self.path, "a", encoding="utf-8") as f:
                f.write(line)


class MailTransport(Protocol):
    """Sends one plain-text email."""

    def send(self, to_address: str, subject: str, body: str) -> None:
        ...


class SmtpTransport:
    """Mail transport over plain SMTP."""

    def __init__(self, host: str, port: int = 25, sender: str = "library@localhost", timeout: float = 10.0):
        self.host = host
        self.port = port
        self.sender = sender
        self.timeout = timeout

    def send(self, to_address: str, subject: str, body: str) -> None:
        msg = EmailMessage()
        msg["From"] = self.sender
        msg["To"] = to_address
        msg["Subject"] = subject
        msg.set_content(body)
        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
            smtp.send_message(msg)


SUBJECTS = {
    EventType.OVERDUE_DETECTED: "Overdue Item Reminder",
    EventType.REMINDER: "Overdue Item Reminder",
    EventType.FINE_APPLIED: "Library Fine Notification",
    EventType.FINE_PAID: "Fine Payment Confirmation",
    EventType.FINE_PARTIALLY_PAID: "Partial Fine Payment Received",
    EventType.BORROWING_RESTORED: "Borrowing Privileges Restored",
}

SIGNATURE = "\n\nBest regards,\nThe Lending Desk"


class MailSink:
    """Emails patron events to the patron, or to a fallback address.

    Events without a patron are not mailed.
    """

    def __init__(
        self,
        transport: MailTransport,
        fallback_address: Optional[str] = None,
        always_use_fallback: bool = False,
    ):
        if always_use_fallback and not fallback_address:
            raise ValueError("always_use_fallback requires a fallback_address")
        self.transport = transport
        self.fallback_address = fallback_address
        self.always_use_fallback = always_use_fallback

    def destination_for(self, event: NotificationEvent) -> Optional[str]:
        if event.patron is None:
            return None
        if self.always_use_fallback:
            return self.fallback_address
        return event.patron.email or self.fallback_address

    @staticmethod
    def subject_for(event: NotificationEvent) -> str:
        return SUBJECTS.get(event.event_type, "Library Notification")

    def receive(self, event: NotificationEvent) -> None:
        to_address = self.destination_for(event)
        if not to_address:
            logger.debug("No mail destination for %s", event)
            return
        self.transport.send(to_address, self.subject_for(event), event.message + SIGNATURE)
        logger.info("Mailed %s to %s", event.event_type.value, to_address)
