"""Pydantic schemas for borrowing rules."""

from typing import Optional

from pydantic import BaseModel, Field


class BorrowingRules(BaseModel):
    """Library-wide borrowing configuration."""

    max_loans_per_patron: int = Field(5, ge=1)
    loan_period_days: int = Field(28, ge=1)
    restrict_for_overdue: bool = True
    restrict_for_unpaid_fines: bool = True

    def describe(self) -> str:
        return (
            f"Max loans per patron: {self.max_loans_per_patron} | "
            f"Loan period: {self.loan_period_days} days | "
            f"Restrict for overdue: {'Yes' if self.restrict_for_overdue else 'No'} | "
            f"Restrict for unpaid fines: {'Yes' if self.restrict_for_unpaid_fines else 'No'}"
        )


class BorrowingRulesUpdate(BaseModel):
    """Schema for partially updating borrowing rules."""

    max_loans_per_patron: Optional[int] = Field(None, ge=1)
    loan_period_days: Optional[int] = Field(None, ge=1)
    restrict_for_overdue: Optional[bool] = None
    restrict_for_unpaid_fines: Optional[bool] = None


class ValidationResult(BaseModel):
    """Outcome of an eligibility check."""

    valid: bool
    message: str
