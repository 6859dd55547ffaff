"""Persistence of borrowing rules, fine amounts and loan periods."""

import json
from decimal import Decimal
from typing import Any, Optional

from ..db.sqlite import Database
from .models import Setting
from .schemas import BorrowingRules

RULES_KEY = "borrowing_rules"
FINE_AMOUNTS_KEY = "fine_amounts"
LOAN_PERIODS_KEY = "loan_periods"


class SettingsStore:
    """Key/value settings table holding JSON documents."""

    def __init__(self, db: Database):
        self.db = db

    def get(self, key: str) -> Optional[Any]:
        with self.db.get_session() as session:
            setting = session.get(Setting, key)
            return json.loads(setting.value) if setting else None

    def put(self, key: str, value: Any) -> None:
        with self.db.get_session() as session:
            setting = session.get(Setting, key)
            if setting:
                setting.value = json.dumps(value)
            else:
                session.add(Setting(key=key, value=json.dumps(value)))
            session.commit()

    def load_rules(self) -> Optional[BorrowingRules]:
        data = self.get(RULES_KEY)
        return BorrowingRules.model_validate(data) if data else None

    def save_rules(self, rules: BorrowingRules) -> None:
        self.put(RULES_KEY, rules.model_dump())

    def load_fine_amounts(self) -> dict[str, Decimal]:
        return {k: Decimal(v) for k, v in (self.get(FINE_AMOUNTS_KEY) or {}).items()}

    def save_fine_amount(self, media_type: str, amount: Decimal) -> None:
        amounts = self.get(FINE_AMOUNTS_KEY) or {}
        amounts[media_type] = str(amount)
        self.put(FINE_AMOUNTS_KEY, amounts)

    def load_loan_periods(self) -> dict[str, int]:
        return dict(self.get(LOAN_PERIODS_KEY) or {})

    def save_loan_period(self, media_type: str, days: int) -> None:
        periods = self.get(LOAN_PERIODS_KEY) or {}
        periods[media_type] = days
        self.put(LOAN_PERIODS_KEY, periods)
