"""SQLAlchemy ORM models shared across the lending desk.

Tables:
- patrons: People allowed to borrow
- media_items: Lendable items (books, CDs, ...)
"""

import json
from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from sqlalchemy import Boolean, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


def generate_uuid() -> str:
    """Generate a UUID string for primary keys."""
    return str(uuid4())


class Patron(Base):
    """Patron model - a person authorized to borrow items."""

    __tablename__ = "patrons"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    name: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    email: Mapped[Optional[str]] = mapped_column(String(200))

    # Registration status
    active: Mapped[bool] = mapped_column(Boolean, default=True)
    # Manual borrowing override, cleared by fines and restored by payment
    can_borrow: Mapped[bool] = mapped_column(Boolean, default=True)

    loan_ids: Mapped[Optional[str]] = mapped_column(Text)  # JSON array

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
        return f"<Patron(id={self.id}, name='{self.name}', active={self.active})>"

    # Helper methods for JSON fields
    def get_loan_ids(self) -> list[str]:
        """Get held loan ids as list."""
        if self.loan_ids:
            return json.loads(self.loan_ids)
        return []

    def set_loan_ids(self, loan_ids: list[str]) -> None:
        """Set held loan ids from list."""
        self.loan_ids = json.dumps(loan_ids) if loan_ids else None

    def add_loan(self, loan_id: str) -> None:
        loan_ids = self.get_loan_ids()
        if loan_id not in loan_ids:
            loan_ids.append(loan_id)
            self.set_loan_ids(loan_ids)

    def remove_loan(self, loan_id: str) -> None:
        loan_ids = self.get_loan_ids()
        if loan_id in loan_ids:
            loan_ids.remove(loan_id)
            self.set_loan_ids(loan_ids)

    @property
    def has_current_loans(self) -> bool:
        return bool(self.get_loan_ids())


class MediaItem(Base):
    """Media item model - a lendable unit identified by id and media type."""

    __tablename__ = "media_items"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=generate_uuid)
    title: Mapped[str] = mapped_column(String(500), nullable=False, index=True)
    media_type: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    available: Mapped[bool] = mapped_column(Boolean, default=True, index=True)
    loan_period_days: Mapped[int] = mapped_column(Integer, nullable=False)

    created_at: Mapped[str] = mapped_column(
        String(26), default=lambda: datetime.now(timezone.utc).isoformat()
    )

    def __repr__(self) -> str:
        return (
            f"<MediaItem(id={self.id}, type={self.media_type}, "
            f"available={self.available})>"
        )
