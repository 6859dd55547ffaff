"""Pydantic schemas for fines and payments."""

from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class FineStatus(str, Enum):
    """Payment state of a fine. Moves only toward PAID."""

    UNPAID = "unpaid"
    PARTIALLY_PAID = "partially_paid"
    PAID = "paid"


class FineResponse(BaseModel):
    """Schema for fine responses."""

    id: str
    patron_id: str
    loan_id: Optional[str]
    amount: Decimal
    paid_amount: Decimal
    remaining_balance: Decimal
    status: FineStatus
    reason: Optional[str]
    created_at: str

    model_config = {"from_attributes": True}


class PaymentOutcome(BaseModel):
    """Store-level result of applying money to a fine."""

    success: bool
    applied: Decimal = Decimal("0.00")
    refund: Decimal = Decimal("0.00")
    message: str = ""


class PaymentReceipt(BaseModel):
    """Result of a successful fine payment."""

    fine_id: str
    patron_id: str
    tendered: Decimal
    applied: Decimal
    refund: Decimal = Field(..., ge=0)
    remaining_balance: Decimal = Field(..., ge=0)
    fully_paid: bool
    borrowing_restored: bool = False


class MediaTypeFines(BaseModel):
    """Unpaid fines for one media type."""

    media_type: str
    count: int
    total: Decimal
    flat_fine: Optional[Decimal] = None


class FineBreakdown(BaseModel):
    """Unpaid fines of a patron grouped by media type."""

    patron_id: str
    groups: list[MediaTypeFines]
    total_unpaid: Decimal
