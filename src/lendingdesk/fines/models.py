"""SQLAlchemy models for fines.

Tables:
- fines: Money owed by a patron, optionally tied to one loan
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from ..db.models import Base, generate_uuid
from ..money import from_cents
from .schemas import FineStatus


class Fine(Base):
    """Fine model - amounts are kept in cents."""

    __tablename__ = "fines"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    patron_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("patrons.id"), nullable=False, index=True
    )
    # At most one fine per loan; ad hoc fines leave this empty
    loan_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("loans.id"), unique=True, index=True
    )

    amount_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    paid_cents: Mapped[int] = mapped_column(Integer, default=0)
    reason: Mapped[Optional[str]] = mapped_column(Text)

    # Timestamps
    created_at: Mapped[str] = mapped_column(
        String(26), default=lambda: datetime.now(timezone.utc).isoformat()
    )
    paid_at: Mapped[Optional[str]] = mapped_column(String(26))

    def __repr__(self) -> str:
        return (
            f"<Fine(id={self.id}, patron_id={self.patron_id}, amount={self.amount}, "
            f"paid={self.paid_amount})>"
        )

    @property
    def amount(self) -> Decimal:
        return from_cents(self.amount_cents)

    @property
    def paid_amount(self) -> Decimal:
        return from_cents(self.paid_cents or 0)

    @property
    def remaining_cents(self) -> int:
        return max(self.amount_cents - (self.paid_cents or 0), 0)

    @property
    def remaining_balance(self) -> Decimal:
        """Amount still owed, never negative."""
        return from_cents(self.remaining_cents)

    @property
    def is_paid(self) -> bool:
        return self.remaining_cents == 0

    @property
    def status(self) -> FineStatus:
        if self.is_paid:
            return FineStatus.PAID
        if self.paid_cents:
            return FineStatus.PARTIALLY_PAID
        return FineStatus.UNPAID
