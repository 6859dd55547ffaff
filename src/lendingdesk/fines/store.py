"""Keyed store for fines."""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import select

from ..db.sqlite import Database
from ..money import Amount, format_amount, from_cents, to_cents
from .models import Fine
from .schemas import PaymentOutcome


class FineStore:
    """Create, look up and pay fines."""

    def __init__(self, db: Database):
        self.db = db

    def create(
        self,
        patron_id: str,
        amount: Amount,
        loan_id: Optional[str] = None,
        reason: Optional[str] = None,
    ) -> Fine:
        with self.db.get_session() as session:
            fine = Fine(
                patron_id=patron_id,
                loan_id=loan_id,
                amount_cents=to_cents(amount),
                paid_cents=0,
                reason=reason,
            )
            session.add(fine)
            session.commit()
            session.refresh(fine)
            session.expunge(fine)
            return fine

    def find_by_id(self, fine_id: Optional[str]) -> Optional[Fine]:
        if not fine_id:
            return None
        with self.db.get_session() as session:
            fine = session.get(Fine, fine_id)
            if fine:
                session.expunge(fine)
            return fine

    def find_by_loan_id(self, loan_id: Optional[str]) -> Optional[Fine]:
        if not loan_id:
            return None
        with self.db.get_session() as session:
            fine = session.execute(
                select(Fine).where(Fine.loan_id == loan_id)
            ).scalar_one_or_none()
            if fine:
                session.expunge(fine)
            return fine

    def find_by_patron(self, patron_id: Optional[str]) -> list[Fine]:
        if not patron_id:
            return []
        with self.db.get_session() as session:
            fines = session.execute(
                select(Fine).where(Fine.patron_id == patron_id).order_by(Fine.created_at)
            ).scalars().all()
            for f in fines:
                session.expunge(f)
            return list(fines)

    def find_unpaid_by_patron(self, patron_id: Optional[str]) -> list[Fine]:
        if not patron_id:
            return []
        with self.db.get_session() as session:
            fines = session.execute(
                select(Fine)
                .where(Fine.patron_id == patron_id, Fine.paid_cents < Fine.amount_cents)
                .order_by(Fine.created_at)
            ).scalars().all()
            for f in fines:
                session.expunge(f)
            return list(fines)

    def total_unpaid(self, patron_id: Optional[str]) -> Decimal:
        return from_cents(sum(f.remaining_cents for f in self.find_unpaid_by_patron(patron_id)))

    def update_amount(self, fine_id: str, amount: Amount) -> bool:
        """Reprice an unpaid fine in place."""
        with self.db.get_session() as session:
            fine = session.get(Fine, fine_id)
            if fine is None or fine.is_paid:
                return False
            fine.amount_cents = to_cents(amount)
            if fine.is_paid:
                fine.paid_at = datetime.now(timezone.utc).isoformat()
            session.commit()
            return True

    def apply_payment(self, fine_id: str, amount: Amount) -> PaymentOutcome:
        """Apply money to a fine.

        Anything above the remaining balance is not consumed and comes back
        as ``refund``.
        """
        tendered = to_cents(amount)
        if tendered <= 0:
            return PaymentOutcome(success=False, message="Payment amount must be positive")

        with self.db.get_session() as session:
            fine = session.get(Fine, fine_id)
            if fine is None:
                return PaymentOutcome(success=False, message=f"Fine not found: {fine_id}")
            if fine.is_paid:
                return PaymentOutcome(success=False, message=f"Fine {fine_id} is already paid")

            applied = min(tendered, fine.remaining_cents)
            fine.paid_cents = (fine.paid_cents or 0) + applied
            if fine.is_paid:
                fine.paid_at = datetime.now(timezone.utc).isoformat()
            remaining = fine.remaining_cents
            session.commit()

        refund = tendered - applied
        if remaining == 0:
            message = f"Fine {fine_id} fully paid"
        else:
            message = f"Remaining balance: {format_amount(from_cents(remaining))}"
        if refund:
            message += f"; refund due {format_amount(from_cents(refund))}"

        return PaymentOutcome(
            success=True,
            applied=from_cents(applied),
            refund=from_cents(refund),
            message=message,
        )
