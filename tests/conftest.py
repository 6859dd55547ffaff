"""Pytest configuration and shared fixtures.

Provides an in-memory database, a fully wired LendingDesk, a controllable
admin session, a recording notification sink and some seeded patrons and
items.
"""

import os
import tempfile
from pathlib import Path
from typing import Generator

import pytest

from lendingdesk.auth import StaticAdminSession
from lendingdesk.config import reset_config
from lendingdesk.db.sqlite import Database, reset_db
from lendingdesk.desk import LendingDesk
from lendingdesk.notifications import NotificationEvent


class RecordingSink:
    """Sink that keeps every event it receives."""

    def __init__(self):
        self.events: list[NotificationEvent] = []

    def receive(self, event: NotificationEvent) -> None:
        self.events.append(event)

    def types(self) -> list[str]:
        return [event.event_type.value for event in self.events]


class FailingSink:
    """Sink that always raises."""

    def __init__(self):
        self.calls = 0

    def receive(self, event: NotificationEvent) -> None:
        self.calls += 1
        raise RuntimeError("sink is down")


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest.fixture(scope="function")
def temp_db_path() -> Generator[Path, None, None]:
    """Create a temporary database file path."""
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = Path(f.name)
    yield db_path
    # Cleanup
    if db_path.exists():
        db_path.unlink()


@pytest.fixture
def db() -> Database:
    """Create an in-memory database for testing."""
    database = Database(":memory:")
    database.create_tables()
    return database


# ============================================================================
# Desk Fixtures
# ============================================================================


@pytest.fixture
def auth() -> StaticAdminSession:
    """Admin session that starts logged out."""
    return StaticAdminSession()


@pytest.fixture
def recorder() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def failing_sink() -> FailingSink:
    return FailingSink()


@pytest.fixture
def desk(db: Database, auth: StaticAdminSession, recorder: RecordingSink) -> LendingDesk:
    """Create a wired LendingDesk with a recording sink attached."""
    lending_desk = LendingDesk(db=db, auth=auth)
    lending_desk.hub.attach(recorder)
    return lending_desk


@pytest.fixture
def patron(desk: LendingDesk):
    """A registered, active patron."""
    return desk.register_patron("Ada Lovelace", "ada@example.com", patron_id="P1").value


@pytest.fixture
def other_patron(desk: LendingDesk):
    """A second registered patron."""
    return desk.register_patron("Alan Turing", "alan@example.com", patron_id="P2").value


@pytest.fixture
def book(desk: LendingDesk):
    return desk.add_item("Dune", "BOOK", item_id="B1").value


@pytest.fixture
def second_book(desk: LendingDesk):
    return desk.add_item("Emma", "BOOK", item_id="B2").value


@pytest.fixture
def cd(desk: LendingDesk):
    return desk.add_item("Kind of Blue", "CD", item_id="C1").value


@pytest.fixture
def books(desk: LendingDesk) -> list:
    """Ten books B10..B19."""
    return [desk.add_item(f"Book {i}", "BOOK", item_id=f"B{i}").value for i in range(10, 20)]


# ============================================================================
# CLI Testing Fixtures
# ============================================================================


@pytest.fixture
def cli_env(temp_db_path: Path, tmp_path: Path) -> Generator[Path, None, None]:
    """Point the CLI at a temporary database and notification log."""
    reset_db()
    reset_config()

    log_path = tmp_path / "notifications.log"
    os.environ["LENDINGDESK_DB_PATH"] = str(temp_db_path)
    os.environ["LENDINGDESK_NOTIFICATION_LOG"] = str(log_path)

    yield log_path

    # Cleanup
    reset_db()
    reset_config()
    for name in ("LENDINGDESK_DB_PATH", "LENDINGDESK_NOTIFICATION_LOG"):
        os.environ.pop(name, None)


@pytest.fixture
def cli_runner():
    """Create a Typer CLI test runner."""
    from typer.testing import CliRunner
    return CliRunner()

