"""Fine manager: creates, deduplicates and collects fines."""

import logging
from collections import defaultdict
from decimal import Decimal, InvalidOperation
from typing import TYPE_CHECKING, Any, Optional

from ..db.models import Patron
from ..db.sqlite import Database, get_db
from ..db.stores import PatronStore
from ..locks import KeyedLocks, fine_key, patron_key
from ..money import Amount, format_amount, from_cents, to_decimal
from ..notifications import EventType, NotificationEvent, NotificationHub
from ..results import ErrorKind, Result, not_found
from .models import Fine
from .policy import FinePolicyRegistry
from .schemas import FineBreakdown, MediaTypeFines, PaymentReceipt
from .store import FineStore

if TYPE_CHECKING:
    from ..lending.manager import LoanManager
    from ..lending.models import Loan

logger = logging.getLogger(__name__)

ADHOC_GROUP = "OTHER"


class FineManager:
    """Manages fines and keeps each patron's borrowing flag in step with
    their unpaid balance.

    The loan manager is wired after construction with ``set_loan_manager``
    because both managers need each other.
    """

    def __init__(
        self,
        db: Optional[Database] = None,
        policies: Optional[FinePolicyRegistry] = None,
        hub: Optional[NotificationHub] = None,
        locks: Optional[KeyedLocks] = None,
    ):
        """Initialize fine manager.

        Args:
            db: Database instance
            policies: Fine policy registry (defaults to BOOK/CD policies)
            hub: Notification hub for fine events
            locks: Exclusion scopes shared with the loan manager
        """
        self.db = db or get_db()
        self.fines = FineStore(self.db)
        self.patrons = PatronStore(self.db)
        self.policies = policies or FinePolicyRegistry()
        self.hub = hub or NotificationHub()
        self.locks = locks or KeyedLocks()
        self.loan_manager: Optional["LoanManager"] = None

    def set_loan_manager(self, loan_manager: "LoanManager") -> None:
        self.loan_manager = loan_manager

    # -------------------------------------------------------------------------
    # Applying fines
    # -------------------------------------------------------------------------

    def apply_fine(self, patron_id: str, reason: str, loan_id: str) -> Result[Fine]:
        """Apply the policy fine for an overdue loan.

        Idempotent per loan: if the loan already has a fine, that fine is
        returned, repriced in place when the policy amount has changed and the
        fine is not yet paid.

        Args:
            patron_id: Patron who holds the loan
            reason: Human-readable reason
            loan_id: Loan the fine is for

        Returns:
            Result holding the new or existing fine
        """
        if self.loan_manager is None:
            return Result.failure(ErrorKind.PRECONDITION_FAILED, "Loan manager is not available")
        if not loan_id:
            return not_found("Loan", loan_id)

        with self.locks.hold(patron_key(patron_id)):
            patron = self.patrons.find_by_id(patron_id)
            if patron is None:
                return not_found("Patron", patron_id)

            loan = self.loan_manager.get_loan(loan_id)
            if loan is None:
                return not_found("Loan", loan_id)
            if loan.patron_id != patron.id:
                return Result.failure(
                    ErrorKind.INVALID_INPUT,
                    f"Loan {loan_id} does not belong to patron {patron_id}",
                )

            amount = self.policies.amount_for(loan.media_type)

            existing = self.fines.find_by_loan_id(loan_id)
            if existing is not None:
                if not existing.is_paid and existing.amount != amount:
                    self.fines.update_amount(existing.id, amount)
                    logger.info(
                        "Repriced fine %s from %s to %s", existing.id, existing.amount, amount
                    )
                    existing = self.fines.find_by_id(existing.id)
                    if existing.is_paid:
                        # Repriced at or below what was already paid.
                        restore = self._restore_borrowing(patron)
                        if not restore:
                            return restore
                        self._notify(
                            EventType.FINE_PAID,
                            patron,
                            f"Fine {existing.id} has been fully paid. "
                            f"Amount: {format_amount(existing.amount)}",
                            existing,
                        )
                return Result.success(existing, f"Fine already exists for loan {loan_id}")

            fine = self.fines.create(patron.id, amount, loan_id=loan_id, reason=reason)
            logger.info(
                "Applied %s fine of %s to patron %s", loan.media_type, amount, patron.id
            )
            return self._restrict_and_notify(patron, fine, reason)

    def apply_adhoc_fine(self, patron_id: str, amount: Amount, reason: str) -> Result[Fine]:
        """Apply a fine that is not tied to a loan."""
        try:
            amount = to_decimal(amount)
        except (InvalidOperation, ValueError):
            return Result.failure(ErrorKind.INVALID_INPUT, f"Invalid fine amount: {amount!r}")
        if amount <= 0:
            return Result.failure(ErrorKind.INVALID_INPUT, "Fine amount must be positive")

        with self.locks.hold(patron_key(patron_id)):
            patron = self.patrons.find_by_id(patron_id)
            if patron is None:
                return not_found("Patron", patron_id)

            fine = self.fines.create(patron.id, amount, reason=reason)
            logger.info("Applied fine of %s to patron %s: %s", amount, patron.id, reason)
            return self._restrict_and_notify(patron, fine, reason)

    def _restrict_and_notify(self, patron: Patron, fine: Fine, reason: str) -> Result[Fine]:
        patron.can_borrow = False
        if not self.patrons.update(patron):
            return Result.failure(
                ErrorKind.STORE_FAILURE, f"Fine {fine.id} created but patron {patron.id} was not updated"
            )

        self._notify(
            EventType.FINE_APPLIED,
            patron,
            f"A fine of {format_amount(fine.amount)} has been applied to your account for: {reason}",
            fine,
        )
        return Result.success(fine, f"Fine of {format_amount(fine.amount)} applied")

    # -------------------------------------------------------------------------
    # Payments
    # -------------------------------------------------------------------------

    def pay_fine(self, fine_id: str, amount: Amount) -> Result[PaymentReceipt]:
        """Pay all or part of a fine.

        A fine tied to a loan can only be paid once the item is returned.
        Money above the remaining balance is reported as a refund. When the
        patron's unpaid total reaches zero their borrowing flag is restored.

        Args:
            fine_id: Fine ID
            amount: Amount tendered

        Returns:
            Result holding a PaymentReceipt
        """
        try:
            tendered = to_decimal(amount)
        except (InvalidOperation, ValueError):
            return Result.failure(ErrorKind.INVALID_INPUT, f"Invalid payment amount: {amount!r}")
        if tendered <= 0:
            return Result.failure(ErrorKind.INVALID_INPUT, "Payment amount must be positive")

        fine = self.fines.find_by_id(fine_id)
        if fine is None:
            return not_found("Fine", fine_id)

        with self.locks.hold(patron_key(fine.patron_id), fine_key(fine.id)):
            fine = self.fines.find_by_id(fine.id)
            if fine.is_paid:
                return Result.failure(ErrorKind.CONFLICT, f"Fine {fine.id} is already paid")

            if fine.loan_id:
                if self.loan_manager is None:
                    return Result.failure(
                        ErrorKind.PRECONDITION_FAILED, "Loan manager is not available"
                    )
                loan = self.loan_manager.get_loan(fine.loan_id)
                if loan is not None and loan.is_open:
                    return Result.failure(
                        ErrorKind.PRECONDITION_FAILED,
                        f"Cannot pay fine for loan {loan.id} because the item is not returned yet",
                    )

            outcome = self.fines.apply_payment(fine.id, tendered)
            if not outcome.success:
                return Result.failure(ErrorKind.STORE_FAILURE, outcome.message)

            fine = self.fines.find_by_id(fine.id)
            patron = self.patrons.find_by_id(fine.patron_id)
            logger.info("Payment of %s applied to fine %s", outcome.applied, fine.id)

            restore = self._restore_borrowing(patron)
            if not restore:
                return restore
            restored = restore.value

            if fine.is_paid:
                self._notify(
                    EventType.FINE_PAID,
                    patron,
                    f"Fine {fine.id} has been fully paid. Amount: {format_amount(fine.amount)}",
                    fine,
                )
            else:
                self._notify(
                    EventType.FINE_PARTIALLY_PAID,
                    patron,
                    f"Payment of {format_amount(outcome.applied)} received for fine {fine.id}. "
                    f"Remaining balance: {format_amount(fine.remaining_balance)}",
                    fine,
                )

            receipt = PaymentReceipt(
                fine_id=fine.id,
                patron_id=fine.patron_id,
                tendered=tendered,
                applied=outcome.applied,
                refund=outcome.refund,
                remaining_balance=fine.remaining_balance,
                fully_paid=fine.is_paid,
                borrowing_restored=restored,
            )
            return Result.success(receipt, outcome.message)

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def get_fine(self, fine_id: str) -> Optional[Fine]:
        return self.fines.find_by_id(fine_id)

    def get_fine_for_loan(self, loan_id: str) -> Optional[Fine]:
        return self.fines.find_by_loan_id(loan_id)

    def get_patron_fines(self, patron_id: Optional[str]) -> list[Fine]:
        return self.fines.find_by_patron(patron_id)

    def get_unpaid_fines(self, patron_id: Optional[str]) -> list[Fine]:
        """Unpaid fines of a patron; empty for None or unknown ids."""
        return self.fines.find_unpaid_by_patron(patron_id)

    def get_total_unpaid(self, patron_id: Optional[str]) -> Decimal:
        """Total unpaid balance of a patron; zero for None or unknown ids."""
        return self.fines.total_unpaid(patron_id)

    def get_fine_breakdown(self, patron_id: str) -> FineBreakdown:
        """Group a patron's unpaid balance by the media type of each fine's loan."""
        totals: dict[str, int] = defaultdict(int)
        counts: dict[str, int] = defaultdict(int)

        for fine in self.get_unpaid_fines(patron_id):
            loan = self._find_loan(fine.loan_id)
            group = loan.media_type if loan is not None else ADHOC_GROUP
            totals[group] += fine.remaining_cents
            counts[group] += 1

        groups = [
            MediaTypeFines(
                media_type=group,
                count=counts[group],
                total=from_cents(totals[group]),
                flat_fine=None if group == ADHOC_GROUP else self.policies.flat_fine(group),
            )
            for group in sorted(totals)
        ]
        return FineBreakdown(
            patron_id=patron_id,
            groups=groups,
            total_unpaid=from_cents(sum(totals.values())),
        )

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _restore_borrowing(self, patron: Optional[Patron]) -> Result[bool]:
        """Set the borrowing flag again and announce it once nothing is owed.

        The value is True when the patron's unpaid total is zero.
        """
        if patron is None or self.get_total_unpaid(patron.id) != 0:
            return Result.success(False)
        if not patron.can_borrow:
            patron.can_borrow = True
            if not self.patrons.update(patron):
                return Result.failure(
                    ErrorKind.STORE_FAILURE,
                    f"Fine settled but patron {patron.id} was not updated",
                )
        self._notify(
            EventType.BORROWING_RESTORED,
            patron,
            "All fines have been paid. Borrowing privileges restored.",
        )
        return Result.success(True)

    def _find_loan(self, loan_id: Optional[str]) -> Optional["Loan"]:
        if not loan_id or self.loan_manager is None:
            return None
        return self.loan_manager.get_loan(loan_id)

    def _notify(
        self,
        event_type: EventType,
        patron: Optional[Patron],
        message: str,
        payload: Any = None,
    ) -> None:
        self.hub.publish(NotificationEvent(event_type, message, patron=patron, payload=payload))
