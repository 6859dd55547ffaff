"""Tests for configuration loading."""

from pathlib import Path

import pytest

from lendingdesk.config import Config, get_config, reset_config


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Start every test without LENDINGDESK_* variables."""
    for name in (
        "LENDINGDESK_DB_PATH",
        "LENDINGDESK_NOTIFICATION_LOG",
        "LENDINGDESK_ASYNC_NOTIFICATIONS",
        "LENDINGDESK_MAIL_FALLBACK",
        "LENDINGDESK_MAIL_SENDER",
        "LENDINGDESK_SMTP_HOST",
        "LENDINGDESK_SMTP_PORT",
        "LENDINGDESK_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
    reset_config()
    yield
    reset_config()


class TestConfig:
    """Tests for Config.from_env."""

    def test_defaults(self):
        """Defaults point at the home directory and keep mail off."""
        config = Config.from_env()
        assert config.db_path == str(Path.home() / ".lendingdesk" / "lending.db")
        assert config.notification_log_path == Path("lending_notifications.log")
        assert config.async_notifications is False
        assert config.smtp_port == 25
        assert config.log_level == "WARNING"
        assert not config.has_mail_config()

    def test_from_env(self, monkeypatch, tmp_path):
        """Environment variables override the defaults."""
        monkeypatch.setenv("LENDINGDESK_DB_PATH", str(tmp_path / "x.db"))
        monkeypatch.setenv("LENDINGDESK_ASYNC_NOTIFICATIONS", "yes")
        monkeypatch.setenv("LENDINGDESK_SMTP_HOST", "mail.local")
        monkeypatch.setenv("LENDINGDESK_SMTP_PORT", "2525")
        monkeypatch.setenv("LENDINGDESK_MAIL_FALLBACK", "desk@example.com")
        monkeypatch.setenv("LENDINGDESK_LOG_LEVEL", "debug")

        config = Config.from_env()
        assert config.db_path == str(tmp_path / "x.db")
        assert config.async_notifications is True
        assert config.has_mail_config()
        assert config.smtp_port == 2525
        assert config.mail_fallback_address == "desk@example.com"
        assert config.log_level == "DEBUG"

    def test_memory_db_path_is_kept(self, monkeypatch):
        """':memory:' is passed through untouched."""
        monkeypatch.setenv("LENDINGDESK_DB_PATH", ":memory:")
        assert Config.from_env().db_path == ":memory:"

    def test_validate(self, monkeypatch, tmp_path):
        """Invalid ports and log levels are reported."""
        monkeypatch.setenv("LENDINGDESK_DB_PATH", str(tmp_path / "x.db"))
        monkeypatch.setenv("LENDINGDESK_SMTP_PORT", "70000")
        monkeypatch.setenv("LENDINGDESK_LOG_LEVEL", "LOUD")

        errors = Config.from_env().validate()
        assert len(errors) == 2

    def test_get_config_is_cached(self):
        """get_config returns the same instance until reset."""
        first = get_config()
        assert get_config() is first
        reset_config()
        assert get_config() is not first
