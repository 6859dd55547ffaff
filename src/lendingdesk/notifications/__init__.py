"""Notification fan-out.

Provides:
- Lifecycle events (overdue, fines, payments, restored privileges)
- A hub that delivers events to sinks with per-sink failure isolation
- Console, log file and mail sinks
"""

from .events import EventType, NotificationEvent
from .hub import NotificationHub, NotificationSink
from .sinks import ConsoleSink, LogFileSink, MailSink, MailTransport, SmtpTransport

__all__ = [
    "EventType",
    "NotificationEvent",
    "NotificationHub",
    "NotificationSink",
    "ConsoleSink",
    "LogFileSink",
    "MailSink",
    "MailTransport",
    "SmtpTransport",
]
