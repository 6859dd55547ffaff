"""Tests for ReminderManager."""

from datetime import date, timedelta

from lendingdesk.notifications import EventType
from lendingdesk.results import ErrorKind

DAY0 = date(2025, 1, 1)


class TestSendOverdueReminders:
    """Tests for reminding every patron."""

    def test_one_reminder_per_patron(self, desk, patron, other_patron, book, second_book, cd, recorder):
        """Overdue loans are grouped by patron."""
        desk.borrow(patron.id, book.id, "BOOK", DAY0)
        desk.borrow(patron.id, cd.id, "CD", DAY0)
        desk.borrow(other_patron.id, second_book.id, "BOOK", DAY0)

        sent = desk.send_overdue_reminders(DAY0 + timedelta(days=30))

        reminders = [e for e in recorder.events if e.event_type == EventType.REMINDER]
        assert sent == 2
        assert len(reminders) == 2
        by_patron = {e.patron_id: e for e in reminders}
        assert len(by_patron[patron.id].payload) == 2
        assert "2 overdue item(s)" in by_patron[patron.id].message
        assert "Ada Lovelace" in by_patron[patron.id].message

    def test_nothing_overdue(self, desk, patron, book, recorder):
        """No overdue loans means no reminders."""
        desk.borrow(patron.id, book.id, "BOOK", DAY0)
        assert desk.send_overdue_reminders(DAY0 + timedelta(days=3)) == 0
        assert "REMINDER" not in recorder.types()


class TestSendReminderToPatron:
    """Tests for reminding one patron."""

    def test_requires_admin(self, desk, patron):
        """The facade gates single-patron reminders on an admin session."""
        assert desk.send_reminder_to_patron(patron.id, DAY0).error == ErrorKind.UNAUTHORIZED

    def test_reminds(self, desk, auth, patron, cd, recorder):
        """A patron with overdue items gets one reminder."""
        desk.borrow(patron.id, cd.id, "CD", DAY0)
        auth.login()

        result = desk.send_reminder_to_patron(patron.id, DAY0 + timedelta(days=8))
        assert result.ok
        assert result.value == 1
        assert recorder.types().count("REMINDER") == 1

    def test_nothing_overdue(self, desk, auth, patron):
        """A patron with nothing overdue is a PRECONDITION_FAILED."""
        auth.login()
        result = desk.send_reminder_to_patron(patron.id, DAY0)
        assert result.error == ErrorKind.PRECONDITION_FAILED

    def test_unknown_patron(self, desk, auth):
        """Unknown patrons are NOT_FOUND."""
        auth.login()
        assert desk.send_reminder_to_patron("nobody", DAY0).error == ErrorKind.NOT_FOUND
