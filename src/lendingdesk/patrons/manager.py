"""Patron registration and account status."""

import logging
from typing import Optional

from ..auth import AdminSession
from ..db.models import Patron
from ..db.stores import PatronStore
from ..fines.manager import FineManager
from ..lending.store import LoanStore
from ..locks import KeyedLocks, patron_key
from ..money import format_amount
from ..results import ErrorKind, Result, not_found

logger = logging.getLogger(__name__)


class PatronManager:
    """Manages patron accounts: registration, unregistration, reactivation."""

    def __init__(
        self,
        fine_manager: FineManager,
        auth: AdminSession,
        locks: Optional[KeyedLocks] = None,
    ):
        self.fine_manager = fine_manager
        self.patrons = PatronStore(fine_manager.db)
        self.loans = LoanStore(fine_manager.db)
        self.auth = auth
        self.locks = locks or fine_manager.locks

    def register(
        self,
        name: str,
        email: Optional[str] = None,
        patron_id: Optional[str] = None,
    ) -> Result[Patron]:
        """Register a new, active patron."""
        if not name or not name.strip():
            return Result.failure(ErrorKind.INVALID_INPUT, "Patron name is required")
        if patron_id and self.patrons.find_by_id(patron_id) is not None:
            return Result.failure(ErrorKind.CONFLICT, f"Patron already exists: {patron_id}")

        patron = self.patrons.add(name.strip(), email=email, patron_id=patron_id)
        logger.info("Registered patron %s (%s)", patron.id, patron.name)
        return Result.success(patron, f"Registered patron {patron.id}")

    def get(self, patron_id: Optional[str]) -> Optional[Patron]:
        return self.patrons.find_by_id(patron_id)

    def list_active(self) -> list[Patron]:
        return self.patrons.list_all(active=True)

    def list_inactive(self) -> list[Patron]:
        return self.patrons.list_all(active=False)

    def is_eligible(self, patron_id: Optional[str]) -> bool:
        """Derived eligibility: active, borrowing flag set and nothing unpaid."""
        patron = self.patrons.find_by_id(patron_id)
        if patron is None:
            return False
        return (
            patron.active
            and patron.can_borrow
            and self.fine_manager.get_total_unpaid(patron.id) == 0
        )

    def set_active(self, patron_id: str, active: bool) -> Result[Patron]:
        """Flip registration status without the unregistration checks."""
        with self.locks.hold(patron_key(patron_id)):
            patron = self.patrons.find_by_id(patron_id)
            if patron is None:
                return not_found("Patron", patron_id)
            patron.active = active
            if not self.patrons.update(patron):
                return Result.failure(ErrorKind.STORE_FAILURE, f"Failed to update patron {patron.id}")
            return Result.success(patron)

    def unregister(self, patron_id: str) -> Result[Patron]:
        """Deactivate a patron who holds nothing and owes nothing.

        Requires an active admin session.
        """
        if not self.auth.is_admin_session_active():
            return Result.failure(ErrorKind.UNAUTHORIZED, "Admin login required to unregister patrons.")

        with self.locks.hold(patron_key(patron_id)):
            patron = self.patrons.find_by_id(patron_id)
            if patron is None:
                return not_found("Patron", patron_id)
            if not patron.active:
                return Result.failure(ErrorKind.CONFLICT, f"Patron {patron.id} is already inactive.")

            if self.loans.find_open(patron.id):
                return Result.failure(
                    ErrorKind.PRECONDITION_FAILED,
                    f"Cannot unregister patron {patron.id} because they have active loans.",
                )

            unpaid = self.fine_manager.get_total_unpaid(patron.id)
            if unpaid > 0:
                return Result.failure(
                    ErrorKind.PRECONDITION_FAILED,
                    f"Cannot unregister patron {patron.id} because they have unpaid fines "
                    f"of {format_amount(unpaid)}.",
                )

            patron.active = False
            patron.can_borrow = False
            if not self.patrons.update(patron):
                return Result.failure(ErrorKind.STORE_FAILURE, "Failed to update patron record.")

            logger.info("Unregistered patron %s", patron.id)
            return Result.success(
                patron, f"Patron {patron.id} ({patron.name}) has been unregistered."
            )

    def reactivate(self, patron_id: str) -> Result[Patron]:
        """Reactivate a patron; borrowing stays blocked while fines are unpaid.

        Requires an active admin session.
        """
        if not self.auth.is_admin_session_active():
            return Result.failure(ErrorKind.UNAUTHORIZED, "Admin login required to reactivate patrons.")

        with self.locks.hold(patron_key(patron_id)):
            patron = self.patrons.find_by_id(patron_id)
            if patron is None:
                return not_found("Patron", patron_id)
            if patron.active:
                return Result.failure(ErrorKind.CONFLICT, f"Patron {patron.id} is already active.")

            unpaid = self.fine_manager.get_total_unpaid(patron.id)
            patron.active = True
            patron.can_borrow = unpaid == 0
            if not self.patrons.update(patron):
                return Result.failure(ErrorKind.STORE_FAILURE, "Failed to update patron record.")

            message = f"Patron {patron.id} ({patron.name}) has been reactivated."
            if unpaid > 0:
                message += (
                    f" Borrowing is restricted until unpaid fines of "
                    f"{format_amount(unpaid)} are paid."
                )
            logger.info("Reactivated patron %s", patron.id)
            return Result.success(patron, message)
