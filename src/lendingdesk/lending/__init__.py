"""Lending module.

Provides functionality for:
- Borrowing and returning items
- Loan periods per media type
- Overdue detection against an explicit date
"""

from .manager import LoanManager
from .models import Loan
from .policy import BOOK, CD, LoanPeriodRegistry
from .schemas import LoanResponse, LoanStatus, LoanSummary, OverdueReport, ReturnReceipt
from .store import LoanStore

__all__ = [
    "LoanManager",
    "Loan",
    "BOOK",
    "CD",
    "LoanPeriodRegistry",
    "LoanResponse",
    "LoanStatus",
    "LoanSummary",
    "OverdueReport",
    "ReturnReceipt",
    "LoanStore",
]
