"""Lifecycle events delivered to notification sinks."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from ..db.models import Patron


class EventType(str, Enum):
    """Kind of account-state change."""

    OVERDUE_DETECTED = "OVERDUE_DETECTED"
    FINE_APPLIED = "FINE_APPLIED"
    FINE_PAID = "FINE_PAID"
    FINE_PARTIALLY_PAID = "FINE_PARTIALLY_PAID"
    BORROWING_RESTORED = "BORROWING_RESTORED"
    REMINDER = "REMINDER"


@dataclass
class NotificationEvent:
    """An event about a patron, or the system when ``patron`` is None."""

    event_type: EventType
    message: str
    patron: Optional[Patron] = None
    payload: Any = None
    created_at: datetime = field(default_factory=datetime.now)

    @property
    def patron_id(self) -> Optional[str]:
        return self.patron.id if self.patron is not None else None

    def __str__(self) -> str:
        return (
            f"NotificationEvent[type={self.event_type.value}, "
            f"patron={self.patron_id}, message={self.message}]"
        )
