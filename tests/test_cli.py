"""
CLI Integration Tests

Entries are written through the ledger façade, then inspected through the
CLI commands end-to-end.
"""

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from history_ledger.cli.main import app
from history_ledger.ledger import HistoryLedger
from history_ledger.log.models import ElementCreated, ElementDeleted, ElementEdited, UserRecord
from tests.helpers import Part, at

runner = CliRunner()


def populate(db_path: Path) -> None:
    """Part #42: created by alice at t=100, edited by bob at t=200, deleted at t=300"""
    ledger = HistoryLedger(db_path)
    alice = UserRecord(id=1, name="alice", full_name="Alice Adams")
    bob = UserRecord(id=2, name="bob")
    ledger.save_user(alice)
    ledger.save_user(bob)
    part = Part(id=42)
    ledger.record(ElementCreated(), target=part, user=alice, timestamp=at(100))
    ledger.record(
        ElementEdited(old_data={"name": "R1"}, new_data={"name": "R2"}),
        target=part,
        user=bob,
        timestamp=at(200),
    )
    ledger.record(ElementDeleted(old_data={"name": "R2"}, old_name="R2"), target=part, timestamp=at(300))


def test_init_creates_database(temp_db: Path) -> None:
    result = runner.invoke(app, ["init", "--db", str(temp_db)])

    assert result.exit_code == 0
    assert "Initialized ledger database" in result.stdout
    assert temp_db.exists()


def test_init_refuses_existing_database(temp_db: Path) -> None:
    runner.invoke(app, ["init", "--db", str(temp_db)])

    result = runner.invoke(app, ["init", "--db", str(temp_db)])

    assert result.exit_code == 1
    assert "already exists" in result.output


def test_missing_database_is_reported(temp_db: Path) -> None:
    result = runner.invoke(app, ["logs", "--db", str(temp_db)])

    assert result.exit_code == 1
    assert "Database not found" in result.output


def test_history(temp_db: Path) -> None:
    populate(temp_db)

    result = runner.invoke(app, ["history", "--type", "part", "--id", "42", "--db", str(temp_db)])

    assert result.exit_code == 0
    kinds = [entry["payload"]["kind"] for entry in json.loads(result.stdout)]
    assert kinds == ["element_deleted", "element_edited", "element_created"]


def test_history_ascending_page(temp_db: Path) -> None:
    populate(temp_db)

    result = runner.invoke(
        app,
        [
            "history",
            "--type",
            "part",
            "--id",
            "42",
            "--order",
            "asc",
            "--limit",
            "1",
            "--offset",
            "1",
            "--db",
            str(temp_db),
        ],
    )

    assert result.exit_code == 0
    (entry,) = json.loads(result.stdout)
    assert entry["payload"]["kind"] == "element_edited"
    assert entry["username"] == "bob"


def test_history_rejects_bad_order(temp_db: Path) -> None:
    populate(temp_db)

    result = runner.invoke(
        app, ["history", "--type", "part", "--id", "42", "--order", "up", "--db", str(temp_db)]
    )

    assert result.exit_code == 1
    assert "ASC or DESC" in result.output


def test_unknown_category(temp_db: Path) -> None:
    populate(temp_db)

    result = runner.invoke(app, ["history", "--type", "widget", "--id", "1", "--db", str(temp_db)])

    assert result.exit_code == 1
    assert "widget" in result.output


def test_undelete_data(temp_db: Path) -> None:
    populate(temp_db)

    result = runner.invoke(app, ["undelete-data", "--type", "part", "--id", "42", "--db", str(temp_db)])

    assert result.exit_code == 0
    entry = json.loads(result.stdout)
    assert entry["payload"]["kind"] == "element_deleted"
    assert entry["payload"]["old_name"] == "R2"


def test_undelete_data_not_found(temp_db: Path) -> None:
    populate(temp_db)

    result = runner.invoke(app, ["undelete-data", "--type", "part", "--id", "7", "--db", str(temp_db)])

    assert result.exit_code == 1
    assert "No undelete data could be found" in result.output


def test_time_travel(temp_db: Path) -> None:
    populate(temp_db)

    result = runner.invoke(
        app,
        [
            "time-travel",
            "--type",
            "part",
            "--id",
            "42",
            "--until",
            at(150).isoformat(),
            "--db",
            str(temp_db),
        ],
    )

    assert result.exit_code == 0
    (entry,) = json.loads(result.stdout)
    assert entry["payload"]["old_data"] == {"name": "R1"}


def test_time_travel_rejects_bad_instant(temp_db: Path) -> None:
    populate(temp_db)

    result = runner.invoke(
        app,
        ["time-travel", "--type", "part", "--id", "42", "--until", "yesterday", "--db", str(temp_db)],
    )

    assert result.exit_code == 1
    assert "ISO-8601" in result.output


def test_existed(temp_db: Path) -> None:
    populate(temp_db)

    before = runner.invoke(
        app, ["existed", "--type", "part", "--id", "42", "--at", at(50).isoformat(), "--db", str(temp_db)]
    )
    after = runner.invoke(
        app, ["existed", "--type", "part", "--id", "42", "--at", at(150).isoformat(), "--db", str(temp_db)]
    )

    assert before.exit_code == 0
    assert json.loads(before.stdout)["existed"] is False
    assert json.loads(after.stdout) == {
        "target": "part#42",
        "at": at(150).isoformat(),
        "existed": True,
    }


def test_actors(temp_db: Path) -> None:
    populate(temp_db)

    result = runner.invoke(app, ["actors", "--type", "part", "--id", "42", "--db", str(temp_db)])

    assert result.exit_code == 0
    data = json.loads(result.stdout)
    assert data["created_by"]["name"] == "alice"
    assert data["last_edited_by"]["name"] == "bob"


def test_logs(temp_db: Path) -> None:
    populate(temp_db)
    HistoryLedger(temp_db).record(ElementCreated(comment="backup restored"), timestamp=at(400))

    result = runner.invoke(app, ["logs", "--limit", "2", "--db", str(temp_db)])

    assert result.exit_code == 0
    newest, previous = json.loads(result.stdout)
    assert newest["target"] is None
    assert newest["payload"]["comment"] == "backup restored"
    assert previous["payload"]["kind"] == "element_deleted"


@pytest.mark.parametrize("page_size", ["0", "many"])
def test_invalid_environment_reported(
    temp_db: Path, monkeypatch: pytest.MonkeyPatch, page_size: str
) -> None:
    populate(temp_db)
    monkeypatch.setenv("LEDGER_PAGE_SIZE", page_size)

    result = runner.invoke(app, ["logs", "--db", str(temp_db)])

    assert result.exit_code == 1
    assert "Invalid configuration" in result.output


def test_page_size_from_environment(temp_db: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    populate(temp_db)
    monkeypatch.setenv("LEDGER_PAGE_SIZE", "2")

    result = runner.invoke(app, ["logs", "--db", str(temp_db)])

    assert result.exit_code == 0
    assert len(json.loads(result.stdout)) == 2


def test_negative_offset_rejected(temp_db: Path) -> None:
    populate(temp_db)

    result = runner.invoke(app, ["logs", "--offset", "-1", "--db", str(temp_db)])

    assert result.exit_code != 0
