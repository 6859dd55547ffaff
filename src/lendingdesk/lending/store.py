"""Keyed store for loan records."""

from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy import select

from ..db.sqlite import Database
from .models import Loan


class LoanStore:
    """Create, look up and close loans."""

    def __init__(self, db: Database):
        self.db = db

    def create(
        self,
        patron_id: str,
        item_id: str,
        media_type: str,
        borrow_date: date,
        due_date: date,
    ) -> Loan:
        with self.db.get_session() as session:
            loan = Loan(
                patron_id=patron_id,
                item_id=item_id,
                media_type=media_type.strip().upper(),
                borrow_date=borrow_date.isoformat(),
                due_date=due_date.isoformat(),
                overdue=False,
            )
            session.add(loan)
            session.commit()
            session.refresh(loan)
            session.expunge(loan)
            return loan

    def find_by_id(self, loan_id: Optional[str]) -> Optional[Loan]:
        if not loan_id:
            return None
        with self.db.get_session() as session:
            loan = session.execute(
                select(Loan).where(Loan.id == loan_id)
            ).scalar_one_or_none()
            if loan:
                session.expunge(loan)
            return loan

    def find_by_patron(self, patron_id: Optional[str]) -> list[Loan]:
        if not patron_id:
            return []
        return self._list(select(Loan).where(Loan.patron_id == patron_id))

    def find_open(self, patron_id: Optional[str] = None) -> list[Loan]:
        """List unreturned loans, optionally for one patron."""
        stmt = select(Loan).where(Loan.return_date.is_(None))
        if patron_id:
            stmt = stmt.where(Loan.patron_id == patron_id)
        return self._list(stmt)

    def find_overdue(self, as_of: date) -> list[Loan]:
        """List unreturned loans whose due date is before ``as_of``."""
        stmt = select(Loan).where(
            Loan.return_date.is_(None),
            Loan.due_date < as_of.isoformat(),
        )
        return self._list(stmt)

    def mark_returned(self, loan_id: str, return_date: date) -> bool:
        """Close a loan.

        Returns:
            False if the loan is unknown or was already returned
        """
        with self.db.get_session() as session:
            loan = session.get(Loan, loan_id)
            if loan is None or loan.return_date is not None:
                return False
            loan.return_date = return_date.isoformat()
            loan.overdue = False
            loan.updated_at = datetime.now(timezone.utc).isoformat()
            session.commit()
            return True

    def set_overdue(self, loan_id: str, overdue: bool) -> bool:
        """Persist a recomputed overdue flag."""
        with self.db.get_session() as session:
            loan = session.get(Loan, loan_id)
            if loan is None:
                return False
            loan.overdue = overdue
            session.commit()
            return True

    def _list(self, stmt) -> list[Loan]:
        with self.db.get_session() as session:
            loans = session.execute(stmt.order_by(Loan.borrow_date, Loan.created_at)).scalars().all()
            for loan in loans:
                session.expunge(loan)
            return list(loans)
