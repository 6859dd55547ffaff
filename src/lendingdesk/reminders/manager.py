"""Overdue reminders sent through the notification hub."""

import logging
from collections import defaultdict
from datetime import date
from typing import Optional

from ..db.stores import PatronStore
from ..lending.manager import LoanManager
from ..lending.models import Loan
from ..notifications import EventType, NotificationEvent, NotificationHub
from ..results import ErrorKind, Result, not_found

logger = logging.getLogger(__name__)


def reminder_message(name: str, count: int) -> str:
    return (
        f"Dear {name},\n\nYou have {count} overdue item(s). "
        "Please return them as soon as possible."
    )


class ReminderManager:
    """Publishes REMINDER events for patrons holding overdue items."""

    def __init__(self, loan_manager: LoanManager, hub: Optional[NotificationHub] = None):
        self.loan_manager = loan_manager
        self.patrons = PatronStore(loan_manager.db)
        self.hub = hub or loan_manager.hub

    def send_overdue_reminders(self, as_of: date) -> int:
        """Remind every patron with overdue items.

        Returns:
            Number of patrons reminded
        """
        by_patron: dict[str, list[Loan]] = defaultdict(list)
        for loan in self.loan_manager.get_overdue_loans(as_of):
            by_patron[loan.patron_id].append(loan)

        sent = 0
        for patron_id, loans in by_patron.items():
            patron = self.patrons.find_by_id(patron_id)
            if patron is None:
                logger.warning("Skipping reminder for unknown patron %s", patron_id)
                continue
            self._publish(patron, loans)
            sent += 1
        return sent

    def send_reminder_to_patron(self, patron_id: str, as_of: date) -> Result[int]:
        """Remind one patron of their overdue items.

        Returns:
            Result holding the number of overdue items
        """
        patron = self.patrons.find_by_id(patron_id)
        if patron is None:
            return not_found("Patron", patron_id)

        overdue = [
            loan
            for loan in self.loan_manager.get_open_loans(patron.id, as_of)
            if loan.overdue
        ]
        if not overdue:
            return Result.failure(
                ErrorKind.PRECONDITION_FAILED, f"Patron {patron.id} has no overdue items."
            )

        self._publish(patron, overdue)
        return Result.success(len(overdue), f"Reminder sent for {len(overdue)} overdue item(s)")

    def _publish(self, patron, loans: list[Loan]) -> None:
        self.hub.publish(
            NotificationEvent(
                EventType.REMINDER,
                reminder_message(patron.name, len(loans)),
                patron=patron,
                payload=loans,
            )
        )
