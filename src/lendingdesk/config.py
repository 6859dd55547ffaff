"""Configuration management for lendingdesk.

Loads configuration from environment variables and provides defaults.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load .env file if present
load_dotenv()


def _env_flag(name: str, default: str = "false") -> bool:
    return os.environ.get(name, default).strip().lower() in ("1", "true", "yes", "on")


@dataclass
class Config:
    """Application configuration."""

    # Database
    db_path: str

    # Notifications
    notification_log_path: Path
    async_notifications: bool

    # Mail
    mail_fallback_address: Optional[str]
    mail_sender: str
    smtp_host: Optional[str]
    smtp_port: int

    # Logging
    log_level: str

    @classmethod
    def from_env(cls) -> "Config":
        """Load configuration from environment variables."""
        db_path = os.environ.get(
            "LENDINGDESK_DB_PATH",
            str(Path.home() / ".lendingdesk" / "lending.db"),
        )
        if db_path != ":memory:":
            db_path = str(Path(db_path).expanduser())

        return cls(
            db_path=db_path,
            notification_log_path=Path(
                os.environ.get("LENDINGDESK_NOTIFICATION_LOG", "lending_notifications.log")
            ).expanduser(),
            async_notifications=_env_flag("LENDINGDESK_ASYNC_NOTIFICATIONS"),
            mail_fallback_address=os.environ.get("LENDINGDESK_MAIL_FALLBACK"),
            mail_sender=os.environ.get("LENDINGDESK_MAIL_SENDER", "library@localhost"),
            smtp_host=os.environ.get("LENDINGDESK_SMTP_HOST"),
            smtp_port=int(os.environ.get("LENDINGDESK_SMTP_PORT", "25")),
            log_level=os.environ.get("LENDINGDESK_LOG_LEVEL", "WARNING").upper(),
        )

    def validate(self) -> list[str]:
        """Validate configuration, return list of errors."""
        errors = []

        if self.db_path != ":memory:":
            parent = Path(self.db_path).parent
            if not parent.exists():
                try:
                    parent.mkdir(parents=True, exist_ok=True)
                except PermissionError:
                    errors.append(f"Cannot create database directory: {parent}")

        if not 0 < self.smtp_port < 65536:
            errors.append(f"Invalid SMTP port: {self.smtp_port}")

        if self.log_level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            errors.append(f"Unknown log level: {self.log_level}")

        return errors

    def has_mail_config(self) -> bool:
        """Check if outbound mail is configured."""
        return bool(self.smtp_host)


# Global config instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get or create the global config instance."""
    global _config
    if _config is None:
        _config = Config.from_env()
    return _config


def reset_config() -> None:
    """Reset the global config instance. Used for testing."""
    global _config
    _config = None
