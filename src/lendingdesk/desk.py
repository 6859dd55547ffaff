"""LendingDesk: one object wiring stores, managers and notifications together."""

import logging
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Optional, Union

from rich.console import Console

from .auth import AdminSession, StaticAdminSession
from .config import Config
from .db.models import MediaItem, Patron
from .db.sqlite import Database, get_db
from .db.stores import MediaStore
from .fines.manager import FineManager
from .fines.models import Fine
from .fines.policy import FinePolicy, FinePolicyRegistry, FlatFinePolicy, normalize_media_type
from .fines.schemas import FineBreakdown, PaymentReceipt
from .lending.manager import LoanManager
from .lending.models import Loan
from .lending.policy import LoanPeriodRegistry
from .lending.schemas import OverdueReport, ReturnReceipt
from .locks import KeyedLocks
from .money import Amount
from .notifications import ConsoleSink, LogFileSink, MailSink, NotificationHub, SmtpTransport
from .patrons.manager import PatronManager
from .reminders.manager import ReminderManager
from .results import ErrorKind, Result
from .rules.schemas import BorrowingRules, BorrowingRulesUpdate, ValidationResult
from .rules.store import SettingsStore
from .rules.validator import EligibilityValidator

logger = logging.getLogger(__name__)


def build_hub(config: Config, console: Optional[Console] = None) -> NotificationHub:
    """Create a notification hub with the sinks the configuration asks for.

    The log file sink is always attached. The console sink is attached when a
    console is given, the mail sink when an SMTP host is configured.
    """
    hub = NotificationHub(background=config.async_notifications)
    hub.attach(LogFileSink(config.notification_log_path))
    if console is not None:
        hub.attach(ConsoleSink(console))
    if config.has_mail_config():
        transport = SmtpTransport(config.smtp_host, config.smtp_port, sender=config.mail_sender)
        hub.attach(MailSink(transport, fallback_address=config.mail_fallback_address))
    return hub


class LendingDesk:
    """Front door of the lending engine.

    Owns one set of managers sharing a database, a notification hub and a
    single table of exclusion locks.
    """

    def __init__(
        self,
        db: Optional[Database] = None,
        auth: Optional[AdminSession] = None,
        hub: Optional[NotificationHub] = None,
        rules: Optional[BorrowingRules] = None,
    ):
        self.db = db or get_db()
        self.auth = auth or StaticAdminSession()
        self.hub = hub or NotificationHub()
        self.locks = KeyedLocks()
        self.settings = SettingsStore(self.db)

        self.policies = FinePolicyRegistry()
        for media_type, amount in self.settings.load_fine_amounts().items():
            self.policies.register(media_type, amount)
        self.periods = LoanPeriodRegistry()
        for media_type, days in self.settings.load_loan_periods().items():
            self.periods.register(media_type, days)

        rules = rules or self.settings.load_rules()
        if rules is not None:
            self.periods.set_default_period(rules.loan_period_days)

        self.fines = FineManager(self.db, self.policies, self.hub, self.locks)
        self.loans = LoanManager(self.db, self.periods, self.hub, self.locks)
        self.fines.set_loan_manager(self.loans)
        self.loans.set_fine_manager(self.fines)

        self.validator = EligibilityValidator(self.loans, self.fines, self.auth, rules)
        self.patrons = PatronManager(self.fines, self.auth, self.locks)
        self.reminders = ReminderManager(self.loans, self.hub)
        self.media = MediaStore(self.db)

    @classmethod
    def from_config(
        cls,
        config: Config,
        auth: Optional[AdminSession] = None,
        console: Optional[Console] = None,
    ) -> "LendingDesk":
        db = Database(config.db_path)
        db.create_tables()
        return cls(db=db, auth=auth, hub=build_hub(config, console))

    def close(self) -> None:
        """Stop the notification worker, delivering anything still queued."""
        self.hub.close()

    # -------------------------------------------------------------------------
    # Lending
    # -------------------------------------------------------------------------

    def borrow(self, patron_id: str, item_id: str, media_type: str, as_of: date) -> Result[Loan]:
        return self.loans.borrow(patron_id, item_id, media_type, as_of)

    def return_item(self, loan_id: str, as_of: date) -> Result[ReturnReceipt]:
        return self.loans.return_item(loan_id, as_of)

    def get_open_loans(self, patron_id: str, as_of: Optional[date] = None) -> list[Loan]:
        return self.loans.get_open_loans(patron_id, as_of)

    def get_overdue_loans(self, as_of: date) -> list[Loan]:
        return self.loans.get_overdue_loans(as_of)

    def get_overdue_report(self, as_of: date) -> OverdueReport:
        return self.loans.get_overdue_report(as_of)

    # -------------------------------------------------------------------------
    # Fines
    # -------------------------------------------------------------------------

    def apply_fine(self, patron_id: str, reason: str, loan_id: str) -> Result[Fine]:
        return self.fines.apply_fine(patron_id, reason, loan_id)

    def apply_adhoc_fine(self, patron_id: str, amount: Amount, reason: str) -> Result[Fine]:
        return self.fines.apply_adhoc_fine(patron_id, amount, reason)

    def pay_fine(self, fine_id: str, amount: Amount) -> Result[PaymentReceipt]:
        return self.fines.pay_fine(fine_id, amount)

    def get_unpaid_fines(self, patron_id: str) -> list[Fine]:
        return self.fines.get_unpaid_fines(patron_id)

    def get_total_unpaid(self, patron_id: str) -> Decimal:
        return self.fines.get_total_unpaid(patron_id)

    def get_fine_breakdown(self, patron_id: str) -> FineBreakdown:
        return self.fines.get_fine_breakdown(patron_id)

    def register_fine_policy(
        self,
        media_type: str,
        amount: Union[FinePolicy, Amount],
        loan_period_days: Optional[int] = None,
    ) -> Result[FinePolicy]:
        """Register (or replace) the fine for a media type, and optionally
        its loan period. Requires an active admin session.
        """
        if not self.auth.is_admin_session_active():
            return Result.failure(ErrorKind.UNAUTHORIZED, "Admin login required to change fine policies.")
        if loan_period_days is not None and loan_period_days <= 0:
            return Result.failure(ErrorKind.INVALID_INPUT, f"Loan period must be positive, got {loan_period_days}")
        try:
            policy = self.policies.register(media_type, amount)
        except (InvalidOperation, ValueError) as e:
            return Result.failure(ErrorKind.INVALID_INPUT, str(e))

        key = normalize_media_type(media_type)
        if isinstance(policy, FlatFinePolicy):
            self.settings.save_fine_amount(key, policy.amount)
        if loan_period_days is not None:
            self.periods.register(key, loan_period_days)
            self.settings.save_loan_period(key, loan_period_days)
        logger.info("Registered fine policy for %s", key)
        return Result.success(policy, f"Fine policy registered for {key}")

    # -------------------------------------------------------------------------
    # Eligibility and rules
    # -------------------------------------------------------------------------

    def can_borrow(self, patron_id: str, as_of: Optional[date] = None) -> ValidationResult:
        return self.validator.can_borrow(patron_id, as_of)

    def get_borrowing_rules(self) -> BorrowingRules:
        return self.validator.get_borrowing_rules()

    def update_borrowing_rules(
        self, rules: Union[BorrowingRules, BorrowingRulesUpdate]
    ) -> Result[BorrowingRules]:
        """Update the borrowing rules; the loan period becomes the default
        (BOOK) loan period for new loans.
        """
        result = self.validator.update_borrowing_rules(rules)
        if result:
            self.periods.set_default_period(result.value.loan_period_days)
            self.settings.save_rules(result.value)
        return result

    # -------------------------------------------------------------------------
    # Patrons and catalogue
    # -------------------------------------------------------------------------

    def register_patron(
        self, name: str, email: Optional[str] = None, patron_id: Optional[str] = None
    ) -> Result[Patron]:
        return self.patrons.register(name, email, patron_id)

    def unregister_patron(self, patron_id: str) -> Result[Patron]:
        return self.patrons.unregister(patron_id)

    def reactivate_patron(self, patron_id: str) -> Result[Patron]:
        return self.patrons.reactivate(patron_id)

    def add_item(self, title: str, media_type: str, item_id: Optional[str] = None) -> Result[MediaItem]:
        """Add an available item to the catalogue."""
        if not title or not title.strip():
            return Result.failure(ErrorKind.INVALID_INPUT, "Item title is required")
        key = normalize_media_type(media_type)
        if not key:
            return Result.failure(ErrorKind.INVALID_INPUT, "Media type is required")
        if item_id and self.media.find_by_id(item_id) is not None:
            return Result.failure(ErrorKind.CONFLICT, f"Item already exists: {item_id}")

        item = self.media.add(title.strip(), key, self.periods.period_for(key), item_id=item_id)
        logger.info("Added %s item %s (%s)", item.media_type, item.id, item.title)
        return Result.success(item, f"Added {item.media_type} {item.id}")

    def list_items(self, media_type: Optional[str] = None, available_only: bool = False) -> list[MediaItem]:
        return self.media.list_items(media_type, available_only)

    # -------------------------------------------------------------------------
    # Reminders
    # -------------------------------------------------------------------------

    def send_overdue_reminders(self, as_of: date) -> int:
        return self.reminders.send_overdue_reminders(as_of)

    def send_reminder_to_patron(self, patron_id: str, as_of: date) -> Result[int]:
        """Remind one patron of overdue items. Requires an active admin session."""
        if not self.auth.is_admin_session_active():
            return Result.failure(ErrorKind.UNAUTHORIZED, "Admin login required to send reminders.")
        return self.reminders.send_reminder_to_patron(patron_id, as_of)
