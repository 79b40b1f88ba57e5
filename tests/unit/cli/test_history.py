"""Unit tests for the history command."""

import json

import pytest
from moleguard.cli.main import app
from moleguard.core.state import RunHistory
from moleguard.models.history import RunHistoryEntry
from typer.testing import CliRunner

runner = CliRunner()


@pytest.fixture
def recorded() -> list[RunHistoryEntry]:
    """Two runs recorded in the isolated config directory."""
    entries = [
        RunHistoryEntry(
            id="abc123456789",
            timestamp="2026-01-26T14:30:00+00:00",
            freed_bytes=5_200_000,
            items_cleaned=3,
            categories=("Trash",),
            duration_seconds=1.2,
        ),
        RunHistoryEntry(
            id="def678901234",
            timestamp="2026-01-27T09:00:00+00:00",
            freed_bytes=1000,
            items_cleaned=1,
            categories=("Trash",),
            duration_seconds=0.1,
            errors=2,
        ),
    ]
    history = RunHistory()
    for entry in entries:
        history.record(entry)
    return entries


class TestHistoryCommand:
    """Tests for moleguard history."""

    def test_empty(self) -> None:
        """No runs yields a friendly message."""
        result = runner.invoke(app, ["history"])

        assert result.exit_code == 0
        assert "No cleanup runs recorded yet" in result.stdout

    def test_table(self, recorded: list[RunHistoryEntry]) -> None:
        """Runs are listed with formatted timestamps and sizes."""
        result = runner.invoke(app, ["history"])

        assert result.exit_code == 0
        assert "2026-01-26 14:30" in result.stdout
        assert "5.2 MB" in result.stdout

    def test_json_newest_first(self, recorded: list[RunHistoryEntry]) -> None:
        """JSON output lists the newest run first and honors --limit."""
        result = runner.invoke(app, ["history", "--json", "-n", "1"])

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert [d["id"] for d in data] == ["def678901234"]
        assert data[0]["errors"] == 2
