"""Fines module.

Provides functionality for:
- Flat per-media-type fine policies
- Applying fines for overdue loans and ad hoc charges
- Partial payments, overpayment refunds and restoring borrowing privileges
"""

from .manager import FineManager
from .models import Fine
from .policy import DEFAULT_MEDIA_TYPE, FinePolicy, FinePolicyRegistry, FlatFinePolicy
from .schemas import (
    FineBreakdown,
    FineResponse,
    FineStatus,
    MediaTypeFines,
    PaymentOutcome,
    PaymentReceipt,
)
from .store import FineStore

__all__ = [
    "FineManager",
    "Fine",
    "DEFAULT_MEDIA_TYPE",
    "FinePolicy",
    "FinePolicyRegistry",
    "FlatFinePolicy",
    "FineBreakdown",
    "FineResponse",
    "FineStatus",
    "MediaTypeFines",
    "PaymentOutcome",
    "PaymentReceipt",
    "FineStore",
]
