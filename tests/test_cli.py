"""Tests for the CLI interface."""

import re

import pytest
from typer.testing import CliRunner

from lendingdesk.cli import app

LOAN_ID = re.compile(r"Loan ([0-9a-f-]{36}) created")
FINE_ID = re.compile(r"Fine ([0-9a-f-]{36}):")


@pytest.fixture(autouse=True)
def setup_test_db(cli_env):
    """Run every CLI test against a temporary database."""
    yield


@pytest.fixture
def runner(cli_runner) -> CliRunner:
    return cli_runner


@pytest.fixture
def seeded(runner):
    """One patron P1 and one book B1."""
    assert runner.invoke(app, ["patron", "add", "Ada Lovelace", "--id", "P1"]).exit_code == 0
    assert runner.invoke(app, ["item", "add", "Dune", "--id", "B1"]).exit_code == 0


def borrow(runner, on: str = "2025-01-01") -> str:
    result = runner.invoke(app, ["borrow", "P1", "B1", "--on", on])
    assert result.exit_code == 0, result.stdout
    return LOAN_ID.search(result.stdout).group(1)


class TestCLIBasics:
    """Tests for basic CLI functionality."""

    def test_help(self, runner):
        """Test that help command works."""
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "Lend books and CDs" in result.stdout

    def test_version(self, runner):
        """Test version command."""
        result = runner.invoke(app, ["version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.stdout


class TestLendingCommands:
    """Tests for borrow, return, fines and pay."""

    def test_borrow_shows_due_date(self, runner, seeded):
        """Borrowing prints the due date."""
        result = runner.invoke(app, ["borrow", "P1", "B1", "--on", "2025-01-01"])
        assert result.exit_code == 0
        assert "2025-01-29" in result.stdout

    def test_borrow_unknown_item(self, runner, seeded):
        """A failed borrow exits with status 1 and the reason."""
        result = runner.invoke(app, ["borrow", "P1", "NOPE", "--on", "2025-01-01"])
        assert result.exit_code == 1
        assert "not_found" in result.stdout

    def test_invalid_date(self, runner, seeded):
        """A malformed date is a usage error."""
        result = runner.invoke(app, ["borrow", "P1", "B1", "--on", "01/02/2025"])
        assert result.exit_code == 2

    def test_late_return_and_payment(self, runner, seeded, cli_env):
        """A late return fines the patron until the fine is paid."""
        loan_id = borrow(runner)

        returned = runner.invoke(app, ["return", loan_id, "--on", "2025-02-05"])
        assert returned.exit_code == 0
        assert "7 day(s) late" in returned.stdout
        fine_id = FINE_ID.search(returned.stdout).group(1)

        blocked = runner.invoke(app, ["can-borrow", "P1", "--on", "2025-02-05"])
        assert blocked.exit_code == 1
        assert "$10.00" in blocked.stdout

        fines = runner.invoke(app, ["fines", "P1"])
        assert fines.exit_code == 0
        assert "Total unpaid: $10.00" in fines.stdout

        paid = runner.invoke(app, ["pay", fine_id, "12"])
        assert paid.exit_code == 0
        assert "Refund due: $2.00" in paid.stdout
        assert "Borrowing privileges restored" in paid.stdout

        assert runner.invoke(app, ["can-borrow", "P1", "--on", "2025-02-05"]).exit_code == 0
        assert "FINE_APPLIED - P1" in cli_env.read_text()

    def test_second_return_conflicts(self, runner, seeded):
        """Returning twice fails."""
        loan_id = borrow(runner)
        assert runner.invoke(app, ["return", loan_id, "--on", "2025-01-02"]).exit_code == 0
        result = runner.invoke(app, ["return", loan_id, "--on", "2025-01-03"])
        assert result.exit_code == 1
        assert "conflict" in result.stdout

    def test_adhoc_fine(self, runner, seeded):
        """The fine command applies an ad hoc fine."""
        result = runner.invoke(app, ["fine", "P1", "3.50", "Damaged cover"])
        assert result.exit_code == 0
        assert "$3.50" in result.stdout

    def test_fines_unknown_patron(self, runner):
        """Listing fines of an unknown patron fails."""
        assert runner.invoke(app, ["fines", "nobody"]).exit_code == 1

    def test_overdue_report(self, runner, seeded):
        """The overdue command lists late loans."""
        borrow(runner)
        result = runner.invoke(app, ["overdue", "--on", "2025-02-01"])
        assert result.exit_code == 0
        assert "1 overdue, oldest 3 day(s)" in result.stdout

    def test_remind_all(self, runner, seeded):
        """Reminders are counted per patron."""
        borrow(runner)
        result = runner.invoke(app, ["remind", "--on", "2025-02-01"])
        assert result.exit_code == 0
        assert "1 patron(s)" in result.stdout


class TestAdminCommands:
    """Tests for commands that need --admin."""

    def test_rules_set_requires_admin(self, runner):
        """Without --admin the rules do not change."""
        result = runner.invoke(app, ["rules", "set", "--max-loans", "10"])
        assert result.exit_code == 1
        assert "unauthorized" in result.stdout

    def test_rules_set_persists(self, runner):
        """Rules changed with --admin are shown by later commands."""
        result = runner.invoke(app, ["rules", "set", "--max-loans", "10", "--admin"])
        assert result.exit_code == 0

        shown = runner.invoke(app, ["rules", "show"])
        assert "Max loans per patron: 10" in shown.stdout

    def test_rules_set_rejects_invalid(self, runner):
        """Non-positive limits are rejected."""
        result = runner.invoke(app, ["rules", "set", "--max-loans", "0", "--admin"])
        assert result.exit_code == 1

    def test_policy_set_and_show(self, runner):
        """A new media type shows up with its fine and loan period."""
        result = runner.invoke(
            app, ["policy", "set", "JOURNAL", "15", "--loan-period", "14", "--admin"]
        )
        assert result.exit_code == 0

        shown = runner.invoke(app, ["policy", "show"])
        assert "JOURNAL" in shown.stdout
        assert "$15.00" in shown.stdout
        assert "14 days" in shown.stdout

    def test_deactivate_and_reactivate(self, runner, seeded):
        """Patrons can be unregistered and brought back."""
        assert runner.invoke(app, ["patron", "deactivate", "P1"]).exit_code == 1
        assert runner.invoke(app, ["patron", "deactivate", "P1", "--admin"]).exit_code == 0

        inactive = runner.invoke(app, ["patron", "list", "--inactive"])
        assert "Ada Lovelace" in inactive.stdout

        assert runner.invoke(app, ["patron", "reactivate", "P1", "--admin"]).exit_code == 0
        assert "Ada Lovelace" in runner.invoke(app, ["patron", "list"]).stdout


class TestItemCommands:
    """Tests for the catalogue commands."""

    def test_item_list(self, runner, seeded):
        """Items are listed with their status."""
        borrow(runner)
        result = runner.invoke(app, ["item", "list"])
        assert result.exit_code == 0
        assert "Dune" in result.stdout
        assert "on loan" in result.stdout

    def test_item_list_empty(self, runner):
        result = runner.invoke(app, ["item", "list", "--available"])
        assert "No items found." in result.stdout
