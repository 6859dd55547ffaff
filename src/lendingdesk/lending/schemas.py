"""Pydantic schemas for lending."""

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel


class LoanStatus(str, Enum):
    """Status of a loan. RETURNED is terminal."""

    OPEN = "open"
    RETURNED = "returned"


class LoanResponse(BaseModel):
    """Schema for loan responses."""

    id: str
    patron_id: str
    item_id: str
    media_type: str
    borrow_date: date
    due_date: date
    return_date: Optional[date]
    overdue: bool

    model_config = {"from_attributes": True}


class ReturnReceipt(BaseModel):
    """Result of returning an item."""

    loan_id: str
    patron_id: str
    item_id: str
    returned_on: date
    days_overdue: int
    fine_id: Optional[str] = None
    fine_amount: Optional[Decimal] = None


class LoanSummary(BaseModel):
    """Summary of a loan for listing."""

    id: str
    patron_id: str
    item_id: str
    media_type: str
    due_date: date
    days_overdue: int


class OverdueReport(BaseModel):
    """Report of overdue loans."""

    as_of: date
    loans: list[LoanSummary]
    total_overdue: int
    oldest_overdue_days: int
