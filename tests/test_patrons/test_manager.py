"""Tests for PatronManager."""

from datetime import date, timedelta

import pytest

from lendingdesk.results import ErrorKind

DAY0 = date(2025, 1, 1)


class TestRegister:
    """Tests for patron registration."""

    def test_register(self, desk):
        """A registered patron is active and may borrow."""
        result = desk.register_patron("Grace Hopper", "grace@example.com")

        assert result.ok
        patron = result.value
        assert patron.id
        assert patron.active
        assert patron.can_borrow
        assert patron.get_loan_ids() == []
        assert desk.patrons.is_eligible(patron.id)

    def test_register_with_id(self, desk):
        """A caller-chosen id is kept."""
        assert desk.register_patron("Grace", patron_id="G1").value.id == "G1"

    def test_duplicate_id(self, desk, patron):
        """Registering an existing id is a CONFLICT."""
        assert desk.register_patron("Other", patron_id=patron.id).error == ErrorKind.CONFLICT

    @pytest.mark.parametrize("name", ["", "   "])
    def test_requires_name(self, desk, name):
        """A name is required."""
        assert desk.register_patron(name).error == ErrorKind.INVALID_INPUT


class TestUnregister:
    """Tests for unregistering patrons."""

    def test_requires_admin(self, desk, patron):
        """Unregistering needs an admin session."""
        assert desk.unregister_patron(patron.id).error == ErrorKind.UNAUTHORIZED
        assert desk.patrons.get(patron.id).active

    def test_unregister(self, desk, auth, patron):
        """An unregistered patron is inactive and cannot borrow."""
        auth.login()
        result = desk.unregister_patron(patron.id)

        assert result.ok
        stored = desk.patrons.get(patron.id)
        assert not stored.active
        assert not stored.can_borrow
        assert [p.id for p in desk.patrons.list_inactive()] == [patron.id]
        assert desk.patrons.list_active() == []

    def test_open_loans_block(self, desk, auth, patron, book):
        """A patron holding items cannot be unregistered."""
        desk.borrow(patron.id, book.id, "BOOK", DAY0)
        auth.login()
        result = desk.unregister_patron(patron.id)
        assert result.error == ErrorKind.PRECONDITION_FAILED
        assert "active loans" in result.message

    def test_unpaid_fines_block(self, desk, auth, patron):
        """A patron who owes money cannot be unregistered."""
        desk.apply_adhoc_fine(patron.id, "4", "x")
        auth.login()
        result = desk.unregister_patron(patron.id)
        assert result.error == ErrorKind.PRECONDITION_FAILED
        assert "$4.00" in result.message

    def test_already_inactive(self, desk, auth, patron):
        """Unregistering twice is a CONFLICT."""
        auth.login()
        desk.unregister_patron(patron.id)
        assert desk.unregister_patron(patron.id).error == ErrorKind.CONFLICT

    def test_unknown(self, desk, auth):
        """Unknown patrons are NOT_FOUND."""
        auth.login()
        assert desk.unregister_patron("nobody").error == ErrorKind.NOT_FOUND


class TestReactivate:
    """Tests for reactivating patrons."""

    def test_reactivate(self, desk, auth, patron):
        """A reactivated patron with no fines may borrow again."""
        auth.login()
        desk.unregister_patron(patron.id)
        result = desk.reactivate_patron(patron.id)

        assert result.ok
        stored = desk.patrons.get(patron.id)
        assert stored.active
        assert stored.can_borrow
        assert desk.can_borrow(patron.id).valid

    def test_reactivate_with_fines_stays_blocked(self, desk, auth, patron):
        """Fines added while inactive keep borrowing blocked."""
        auth.login()
        desk.unregister_patron(patron.id)
        desk.apply_adhoc_fine(patron.id, "3", "Late card fee")

        result = desk.reactivate_patron(patron.id)
        assert result.ok
        assert "$3.00" in result.message
        assert not desk.patrons.get(patron.id).can_borrow

    def test_requires_admin(self, desk, auth, patron):
        """Reactivation needs an admin session."""
        auth.login()
        desk.unregister_patron(patron.id)
        auth.logout()
        assert desk.reactivate_patron(patron.id).error == ErrorKind.UNAUTHORIZED

    def test_already_active(self, desk, auth, patron):
        """Reactivating an active patron is a CONFLICT."""
        auth.login()
        assert desk.reactivate_patron(patron.id).error == ErrorKind.CONFLICT


class TestEligibility:
    """Tests for the derived eligibility predicate."""

    def test_unknown_patron(self, desk):
        assert not desk.patrons.is_eligible("nobody")

    def test_fine_then_payment(self, desk, patron, book):
        """Eligibility follows fines and payments."""
        loan = desk.borrow(patron.id, book.id, "BOOK", DAY0).value
        receipt = desk.return_item(loan.id, DAY0 + timedelta(days=30)).value
        assert not desk.patrons.is_eligible(patron.id)

        desk.pay_fine(receipt.fine_id, "10")
        assert desk.patrons.is_eligible(patron.id)

    def test_set_active_skips_checks(self, desk, patron):
        """set_active flips registration without the unregister checks."""
        desk.apply_adhoc_fine(patron.id, "1", "x")
        assert desk.patrons.set_active(patron.id, False).ok
        assert not desk.patrons.get(patron.id).active
