"""SQLAlchemy models for lending.

Tables:
- loans: One item held by one patron over a date range
"""

from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy import Boolean, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from ..db.models import Base, generate_uuid


class Loan(Base):
    """Loan model - tracks one item lent to one patron."""

    __tablename__ = "loans"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)

    patron_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("patrons.id"),
        nullable=False,
        index=True,
    )
    item_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("media_items.id"),
        nullable=False,
        index=True,
    )
    media_type: Mapped[str] = mapped_column(String(20), nullable=False)

    # Dates
    borrow_date: Mapped[str] = mapped_column(String(10), nullable=False)  # ISO date
    due_date: Mapped[str] = mapped_column(String(10), nullable=False, index=True)  # ISO date
    return_date: Mapped[Optional[str]] = mapped_column(String(10))  # ISO date, None while open

    # Cached result of the last overdue check
    overdue: Mapped[bool] = mapped_column(Boolean, default=False)

    # Timestamps
    created_at: Mapped[str] = mapped_column(
        String(26), default=lambda: datetime.now(timezone.utc).isoformat()
    )
    updated_at: Mapped[str] = mapped_column(
        String(26),
        default=lambda: datetime.now(timezone.utc).isoformat(),
        onupdate=lambda: datetime.now(timezone.utc).isoformat(),
    )

    def __repr__(self) -> str:
        return (
            f"<Loan(id={self.id}, item_id={self.item_id}, type={self.media_type}, "
            f"due={self.due_date}, returned={self.return_date})>"
        )

    @property
    def borrowed_on(self) -> date:
        return date.fromisoformat(self.borrow_date)

    @property
    def due_on(self) -> date:
        return date.fromisoformat(self.due_date)

    @property
    def returned_on(self) -> Optional[date]:
        return date.fromisoformat(self.return_date) if self.return_date else None

    @property
    def is_open(self) -> bool:
        """True until the item has been returned."""
        return self.return_date is None

    def is_overdue_on(self, as_of: date) -> bool:
        """Check if the loan is open and past its due date on ``as_of``."""
        return self.is_open and as_of > self.due_on

    def days_overdue_on(self, as_of: date) -> int:
        """Days past due on ``as_of`` (0 if not past due)."""
        return max(0, (as_of - self.due_on).days)

    def refresh_overdue(self, as_of: date) -> bool:
        """Recompute the cached overdue flag and return it."""
        self.overdue = self.is_overdue_on(as_of)
        return self.overdue
