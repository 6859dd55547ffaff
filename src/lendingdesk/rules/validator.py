"""Borrowing eligibility checks against the configurable rules."""

import logging
import threading
from datetime import date
from typing import Optional, Union

from ..auth import AdminSession
from ..db.stores import PatronStore
from ..fines.manager import FineManager
from ..lending.manager import LoanManager
from ..money import format_amount
from ..results import ErrorKind, Result
from .schemas import BorrowingRules, BorrowingRulesUpdate, ValidationResult

logger = logging.getLogger(__name__)


class EligibilityValidator:
    """Decides whether a patron may borrow right now."""

    def __init__(
        self,
        loan_manager: LoanManager,
        fine_manager: FineManager,
        auth: AdminSession,
        rules: Optional[BorrowingRules] = None,
    ):
        self.loan_manager = loan_manager
        self.fine_manager = fine_manager
        self.patrons = PatronStore(loan_manager.db)
        self.auth = auth
        self._rules = rules or BorrowingRules()
        self._lock = threading.Lock()

    def can_borrow(self, patron_id: Optional[str], as_of: Optional[date] = None) -> ValidationResult:
        """Evaluate a patron's borrowing eligibility.

        Conditions are checked in a fixed order and the first failure is
        reported: exists, active, below the loan limit, no overdue loan (if
        restricted), no unpaid fines (if restricted), borrowing flag set.

        Args:
            patron_id: Patron ID
            as_of: Date to recompute overdue flags against; without it the
                   flags from the last check are used

        Returns:
            ValidationResult with a human-readable message
        """
        rules = self.get_borrowing_rules()

        patron = self.patrons.find_by_id(patron_id)
        if patron is None:
            return ValidationResult(valid=False, message="Patron not found.")
        if not patron.active:
            return ValidationResult(valid=False, message="Patron account is not active.")

        open_loans = self.loan_manager.get_open_loans(patron.id, as_of)
        if len(open_loans) >= rules.max_loans_per_patron:
            return ValidationResult(
                valid=False,
                message=(
                    f"Patron has reached the maximum limit of "
                    f"{rules.max_loans_per_patron} loans."
                ),
            )

        if rules.restrict_for_overdue and any(loan.overdue for loan in open_loans):
            return ValidationResult(
                valid=False, message="Patron has overdue items that must be returned first."
            )

        if rules.restrict_for_unpaid_fines:
            unpaid = self.fine_manager.get_total_unpaid(patron.id)
            if unpaid > 0:
                return ValidationResult(
                    valid=False,
                    message=(
                        f"Patron has unpaid fines of {format_amount(unpaid)}. "
                        "Please pay all fines before borrowing."
                    ),
                )

        if not patron.can_borrow:
            return ValidationResult(valid=False, message="Patron account has borrowing restrictions.")

        return ValidationResult(valid=True, message="Patron can borrow items.")

    def get_borrowing_rules(self) -> BorrowingRules:
        with self._lock:
            return self._rules.model_copy()

    def update_borrowing_rules(
        self, rules: Union[BorrowingRules, BorrowingRulesUpdate]
    ) -> Result[BorrowingRules]:
        """Replace (or partially update) the borrowing rules.

        Requires an active admin session; otherwise nothing changes.
        """
        if not self.auth.is_admin_session_active():
            return Result.failure(
                ErrorKind.UNAUTHORIZED, "Admin login required to update borrowing rules."
            )

        with self._lock:
            if isinstance(rules, BorrowingRulesUpdate):
                rules = self._rules.model_copy(update=rules.model_dump(exclude_none=True))
            self._rules = rules.model_copy()

        logger.info("Borrowing rules updated: %s", rules.describe())
        return Result.success(rules.model_copy(), "Borrowing rules updated.")
