"""Borrowing rules and eligibility validation."""

from .models import Setting
from .schemas import BorrowingRules, BorrowingRulesUpdate, ValidationResult
from .store import SettingsStore
from .validator import EligibilityValidator

__all__ = [
    "BorrowingRules",
    "BorrowingRulesUpdate",
    "ValidationResult",
    "EligibilityValidator",
    "Setting",
    "SettingsStore",
]
