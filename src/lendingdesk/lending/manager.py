"""Loan manager for borrow and return operations."""

import logging
from datetime import date, timedelta
from typing import TYPE_CHECKING, Optional

from ..db.models import Patron
from ..db.sqlite import Database, get_db
from ..db.stores import MediaStore, PatronStore
from ..locks import KeyedLocks, item_key, patron_key
from ..money import format_amount
from ..notifications import EventType, NotificationEvent, NotificationHub
from ..results import ErrorKind, Result, not_found
from .models import Loan
from .policy import BOOK, CD, LoanPeriodRegistry
from .schemas import LoanSummary, OverdueReport, ReturnReceipt
from .store import LoanStore

if TYPE_CHECKING:
    from ..fines.manager import FineManager

logger = logging.getLogger(__name__)


def overdue_reason(loan: Loan, days: int) -> str:
    return f"Overdue {loan.media_type} (Loan: {loan.id}) - {days} day(s) overdue"


class LoanManager:
    """Manages borrowing, returns and overdue detection.

    Overdue state is never computed against the clock: every check takes an
    explicit ``as_of`` date.
    """

    def __init__(
        self,
        db: Optional[Database] = None,
        periods: Optional[LoanPeriodRegistry] = None,
        hub: Optional[NotificationHub] = None,
        locks: Optional[KeyedLocks] = None,
    ):
        """Initialize loan manager.

        Args:
            db: Database instance
            periods: Loan period registry (defaults to BOOK 28 days, CD 7 days)
            hub: Notification hub for overdue events
            locks: Exclusion scopes shared with the fine manager
        """
        self.db = db or get_db()
        self.loans = LoanStore(self.db)
        self.patrons = PatronStore(self.db)
        self.media = MediaStore(self.db)
        self.periods = periods or LoanPeriodRegistry()
        self.hub = hub or NotificationHub()
        self.locks = locks or KeyedLocks()
        self.fine_manager: Optional["FineManager"] = None

    def set_fine_manager(self, fine_manager: "FineManager") -> None:
        self.fine_manager = fine_manager

    def loan_period_for(self, media_type: str) -> int:
        return self.periods.period_for(media_type)

    # -------------------------------------------------------------------------
    # Borrowing
    # -------------------------------------------------------------------------

    def borrow(self, patron_id: str, item_id: str, media_type: str, as_of: date) -> Result[Loan]:
        """Lend an item to a patron.

        Checks run in order and stop at the first failure: patron exists,
        patron is active, overdue loans are folded into fines, no unpaid
        balance, no overdue loan, borrowing flag set (a stale flag is restored
        here), item exists for the media type, item is available.

        Args:
            patron_id: Patron ID
            item_id: Item ID
            media_type: Media type of the item (case-insensitive)
            as_of: Borrow date

        Returns:
            Result holding the new loan
        """
        if self.fine_manager is None:
            return Result.failure(ErrorKind.PRECONDITION_FAILED, "Fine manager is not available")

        with self.locks.hold(patron_key(patron_id), item_key(item_id)):
            patron = self.patrons.find_by_id(patron_id)
            if patron is None:
                return not_found("Patron", patron_id)
            if not patron.active:
                return Result.failure(
                    ErrorKind.PRECONDITION_FAILED, f"Patron {patron.id} account is not active"
                )

            self.check_and_apply_overdue_fines(patron.id, as_of)
            has_overdue = any(loan.overdue for loan in self.loans.find_open(patron.id))

            unpaid = self.fine_manager.get_total_unpaid(patron.id)
            if unpaid > 0:
                message = f"Patron {patron.id} has unpaid fines of {format_amount(unpaid)}"
                if has_overdue:
                    message += " and overdue items that must be returned first"
                return Result.failure(ErrorKind.PRECONDITION_FAILED, message)

            if has_overdue:
                return Result.failure(
                    ErrorKind.PRECONDITION_FAILED,
                    f"Patron {patron.id} has overdue items that must be returned first",
                )

            # Fine handling above may have changed the stored flag
            patron = self.patrons.find_by_id(patron.id)
            if not patron.can_borrow:
                patron.can_borrow = True
                if not self.patrons.update(patron):
                    return self._store_failure(f"Could not restore borrowing for patron {patron.id}")
                logger.info("Restored stale borrowing flag for patron %s", patron.id)

            item = self.media.find_by_id_and_type(item_id, media_type)
            if item is None:
                if not item_id:
                    return not_found("Item", item_id)
                return Result.failure(
                    ErrorKind.NOT_FOUND, f"{(media_type or '').upper()} item not found: {item_id}"
                )
            if not item.available:
                return Result.failure(ErrorKind.CONFLICT, f"Item {item.id} is already on loan")

            due = as_of + timedelta(days=self.loan_period_for(media_type))
            loan = self.loans.create(patron.id, item.id, item.media_type, as_of, due)

            if not self.media.set_available(item.id, False):
                return self._store_failure(f"Could not mark item {item.id} unavailable")
            patron.add_loan(loan.id)
            if not self.patrons.update(patron):
                return self._store_failure(f"Could not record loan {loan.id} on patron {patron.id}")

            logger.info("Patron %s borrowed %s %s, due %s", patron.id, item.media_type, item.id, due)
            return Result.success(loan, f"Borrowed {item.title}, due {due.isoformat()}")

    def borrow_book(self, patron_id: str, item_id: str, as_of: date) -> Result[Loan]:
        return self.borrow(patron_id, item_id, BOOK, as_of)

    def borrow_cd(self, patron_id: str, item_id: str, as_of: date) -> Result[Loan]:
        return self.borrow(patron_id, item_id, CD, as_of)

    # -------------------------------------------------------------------------
    # Returns
    # -------------------------------------------------------------------------

    def return_item(self, loan_id: str, as_of: date) -> Result[ReturnReceipt]:
        """Return a borrowed item.

        Returning is allowed whatever the patron owes. A late return applies
        the policy fine for the loan (at most one fine per loan).

        Args:
            loan_id: Loan ID
            as_of: Return date

        Returns:
            Result holding a ReturnReceipt
        """
        loan = self.loans.find_by_id(loan_id)
        if loan is None:
            return not_found("Loan", loan_id)

        with self.locks.hold(patron_key(loan.patron_id), item_key(loan.item_id)):
            loan = self.loans.find_by_id(loan.id)
            if not loan.is_open:
                return Result.failure(
                    ErrorKind.CONFLICT, f"Loan {loan.id} was already returned on {loan.return_date}"
                )
            if as_of < loan.borrowed_on:
                return Result.failure(
                    ErrorKind.INVALID_INPUT,
                    f"Return date {as_of.isoformat()} is before borrow date {loan.borrow_date}",
                )

            if not self.loans.mark_returned(loan.id, as_of):
                return Result.failure(ErrorKind.CONFLICT, f"Loan {loan.id} was already returned")
            if not self.media.set_available(loan.item_id, True):
                return self._store_failure(f"Could not mark item {loan.item_id} available")

            patron = self.patrons.find_by_id(loan.patron_id)
            if patron is not None:
                patron.remove_loan(loan.id)
                if not self.patrons.update(patron):
                    return self._store_failure(f"Could not update patron {patron.id}")

            days_overdue = loan.days_overdue_on(as_of)
            receipt = ReturnReceipt(
                loan_id=loan.id,
                patron_id=loan.patron_id,
                item_id=loan.item_id,
                returned_on=as_of,
                days_overdue=days_overdue,
            )

            if days_overdue > 0 and self.fine_manager is not None:
                fine_result = self.fine_manager.apply_fine(
                    loan.patron_id, overdue_reason(loan, days_overdue), loan.id
                )
                if fine_result:
                    receipt.fine_id = fine_result.value.id
                    receipt.fine_amount = fine_result.value.amount
                else:
                    logger.warning("Could not fine late return of loan %s: %s", loan.id, fine_result.message)

            logger.info("Loan %s returned on %s (%d day(s) late)", loan.id, as_of, days_overdue)
            return Result.success(receipt, f"Loan {loan.id} returned")

    # -------------------------------------------------------------------------
    # Overdue detection
    # -------------------------------------------------------------------------

    def check_and_apply_overdue_fines(self, patron_id: str, as_of: date) -> list[Loan]:
        """Refresh overdue flags of a patron's open loans and fine overdue ones.

        Publishes OVERDUE_DETECTED for loans that became overdue in this pass.

        Returns:
            Loans that became overdue in this pass
        """
        newly_overdue = []
        with self.locks.hold(patron_key(patron_id)):
            for loan in self._refresh(self.loans.find_open(patron_id), as_of, newly_overdue):
                if not loan.overdue or self.fine_manager is None:
                    continue
                result = self.fine_manager.apply_fine(
                    patron_id, overdue_reason(loan, loan.days_overdue_on(as_of)), loan.id
                )
                if not result:
                    logger.warning("Could not fine overdue loan %s: %s", loan.id, result.message)

            if newly_overdue:
                self._notify_overdue(self.patrons.find_by_id(patron_id), newly_overdue)
        return newly_overdue

    def get_open_loans(self, patron_id: Optional[str], as_of: Optional[date] = None) -> list[Loan]:
        """Open loans of a patron.

        With ``as_of`` the cached overdue flags are refreshed first.
        """
        loans = self.loans.find_open(patron_id) if patron_id else []
        if as_of is not None:
            self._refresh(loans, as_of)
        return loans

    def has_overdue_loans(self, patron_id: Optional[str], as_of: date) -> bool:
        return any(loan.overdue for loan in self.get_open_loans(patron_id, as_of))

    def get_overdue_loans(self, as_of: date) -> list[Loan]:
        """All open loans past due on ``as_of``, across patrons."""
        return self._refresh(self.loans.find_overdue(as_of), as_of)

    def get_overdue_report(self, as_of: date) -> OverdueReport:
        summaries = [
            LoanSummary(
                id=loan.id,
                patron_id=loan.patron_id,
                item_id=loan.item_id,
                media_type=loan.media_type,
                due_date=loan.due_on,
                days_overdue=loan.days_overdue_on(as_of),
            )
            for loan in self.get_overdue_loans(as_of)
        ]
        return OverdueReport(
            as_of=as_of,
            loans=summaries,
            total_overdue=len(summaries),
            oldest_overdue_days=max((s.days_overdue for s in summaries), default=0),
        )

    # -------------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------------

    def get_loan(self, loan_id: Optional[str]) -> Optional[Loan]:
        return self.loans.find_by_id(loan_id)

    def get_patron_loans(self, patron_id: Optional[str]) -> list[Loan]:
        """Loan history of a patron, open and returned."""
        return self.loans.find_by_patron(patron_id)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _refresh(
        self,
        loans: list[Loan],
        as_of: date,
        newly_overdue: Optional[list[Loan]] = None,
    ) -> list[Loan]:
        for loan in loans:
            was_overdue = loan.overdue
            if loan.refresh_overdue(as_of) != was_overdue:
                self.loans.set_overdue(loan.id, loan.overdue)
                if loan.overdue and newly_overdue is not None:
                    newly_overdue.append(loan)
        return loans

    def _notify_overdue(self, patron: Optional[Patron], loans: list[Loan]) -> None:
        who = patron.id if patron is not None else loans[0].patron_id
        self.hub.publish(
            NotificationEvent(
                EventType.OVERDUE_DETECTED,
                f"Patron {who} has {len(loans)} new overdue item(s)",
                patron=patron,
                payload=loans,
            )
        )

    @staticmethod
    def _store_failure(message: str) -> Result:
        logger.error(message)
        return Result.failure(ErrorKind.STORE_FAILURE, message)
