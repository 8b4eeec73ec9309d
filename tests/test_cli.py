"""Tests for CLI module."""

from pathlib import Path
from uuid import uuid4

import pytest

from estate_ledger.cli import cmd_init, cmd_version, create_app, main
from estate_ledger.container import Container
from estate_ledger.repositories.sqlite import SQLiteDatabase


@pytest.fixture
def db_path(tmp_path) -> Path:
    path = tmp_path / "estates.db"
    assert main(["-d", str(path), "init"]) == 0
    return path


def run(db_path: Path, *args: str) -> int:
    return main(["-d", str(db_path), "-a", "executor-1", *args])


def output_value(out: str, prefix: str) -> str:
    """Return the rest of the first output line that starts with ``prefix``."""
    for line in out.splitlines():
        if line.startswith(prefix):
            return line[len(prefix):].strip()
    raise AssertionError(f"no line starting with {prefix!r} in {out!r}")


@pytest.fixture
def estate_id(db_path, capsys) -> str:
    capsys.readouterr()
    assert run(
        db_path,
        "open",
        "Estate of the late Peter Omondi",
        "--deceased-id",
        str(uuid4()),
        "--cash",
        "100000",
        "--date-of-death",
        "2024-02-14",
    ) == 0
    return output_value(capsys.readouterr().out, "Opened estate")


class TestCreateApp:
    def test_returns_container_for_path(self, tmp_path):
        db_path = tmp_path / "nested" / "dirs" / "estates.db"

        container = create_app(db_path)

        assert isinstance(container, Container)
        assert container.settings.sqlite_path == db_path
        assert db_path.parent.is_dir()
        container.close()


class TestCmdInit:
    def test_creates_new_database(self, tmp_path, capsys):
        db_path = tmp_path / "test.db"

        class Args:
            database = str(db_path)
            force = False

        result = cmd_init(Args())

        assert result == 0
        assert db_path.exists()
        assert f"Initialized database at {db_path}" in capsys.readouterr().out

    def test_refuses_to_overwrite(self, db_path, capsys):
        capsys.readouterr()

        result = main(["-d", str(db_path), "init"])

        assert result == 1
        assert "Database already exists" in capsys.readouterr().out

    def test_force_reinitializes(self, db_path, estate_id, capsys):
        assert main(["-d", str(db_path), "init", "--force"]) == 0
        capsys.readouterr()

        run(db_path, "list")

        assert "No estates found" in capsys.readouterr().out


class TestCmdVersion:
    def test_prints_version(self, capsys):
        class Args:
            pass

        assert cmd_version(Args()) == 0
        assert "Estate Ledger v0.1.0" in capsys.readouterr().out


class TestMain:
    def test_no_command_prints_help(self, capsys):
        assert main([]) == 0
        assert "estate-ledger" in capsys.readouterr().out

    def test_open_and_list(self, db_path, estate_id, capsys):
        assert run(db_path, "list") == 0

        out = capsys.readouterr().out
        assert estate_id in out
        assert "Estate of the late Peter Omondi [setup]" in out
        assert "KES 100,000.00" in out

    def test_show(self, db_path, estate_id, capsys):
        assert run(db_path, "show", estate_id) == 0

        out = capsys.readouterr().out
        assert "Estate: Estate of the late Peter Omondi" in out
        assert "Status: setup" in out
        assert "Solvent: yes" in out

    def test_debt_waterfall(self, db_path, estate_id, capsys):
        run(
            db_path, "add-debt", estate_id, "--creditor", "Mwangi",
            "--type", "personal_loan", "--amount", "20000",
        )
        loan_id = output_value(capsys.readouterr().out, "Added debt")
        run(
            db_path, "add-debt", estate_id, "--creditor", "Lee Funeral Home",
            "--type", "funeral_expense", "--amount", "50000",
        )
        out = capsys.readouterr().out
        funeral_id = output_value(out, "Added debt")
        assert output_value(out, "  Tier:") == "1"

        assert run(db_path, "pay-debt", estate_id, loan_id, "20000") == 1
        assert "Error: Cannot pay debt" in capsys.readouterr().out

        assert run(db_path, "pay-debt", estate_id, funeral_id, "50000") == 0
        out = capsys.readouterr().out
        assert "Remaining balance: KES 0.00" in out
        assert "Status: settled" in out

        run(db_path, "show", estate_id)
        out = capsys.readouterr().out
        assert out.index("Mwangi") > out.index("Debts (payment order):")

    def test_freeze_and_unfreeze(self, db_path, estate_id, capsys):
        assert run(db_path, "freeze", estate_id, "--reason", "Court order") == 0
        assert f"Estate {estate_id} frozen: Court order" in capsys.readouterr().out

        run(
            db_path, "add-debt", estate_id, "--creditor", "KCB",
            "--type", "credit_card", "--amount", "100",
        )
        assert "Error:" in capsys.readouterr().out

        assert run(db_path, "unfreeze", estate_id, "--reason", "Order lifted") == 0
        assert "unfrozen; status setup" in capsys.readouterr().out

    def test_readiness_exit_code(self, db_path, estate_id, capsys):
        assert run(db_path, "readiness", estate_id) == 2

        out = capsys.readouterr().out
        assert "Not ready for distribution:" in out
        assert "[tax_cleared]" in out

    def test_events_show_actor(self, db_path, estate_id, capsys):
        assert run(db_path, "events", estate_id) == 0

        out = capsys.readouterr().out
        assert "estate_created by executor-1" in out

    def test_events_for_unknown_estate(self, db_path, capsys):
        assert run(db_path, "events", str(uuid4())) == 0
        assert "No events found" in capsys.readouterr().out

    def test_unknown_estate(self, db_path, capsys):
        missing = uuid4()

        assert run(db_path, "show", str(missing)) == 1
        assert f"Error: Estate not found: {missing}" in capsys.readouterr().out

    def test_invalid_id(self, db_path, capsys):
        assert run(db_path, "show", "not-a-uuid") == 1
        assert "Error: Invalid estate id: not-a-uuid" in capsys.readouterr().out

    def test_invalid_amount(self, db_path, estate_id, capsys):
        result = run(
            db_path, "add-debt", estate_id, "--creditor", "KCB",
            "--type", "credit_card", "--amount", "lots",
        )

        assert result == 1
        assert "Error: Invalid amount: lots" in capsys.readouterr().out

    def test_database_survives_between_commands(self, db_path, estate_id):
        db = SQLiteDatabase(str(db_path))
        db.initialize()
        try:
            rows = db.get_connection().execute("SELECT COUNT(*) FROM estates").fetchone()
        finally:
            db.close()

        assert rows[0] == 1
