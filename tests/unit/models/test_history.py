"""Unit tests for RunHistoryEntry."""

import json

import pytest
from moleguard.models.history import RunHistoryEntry, create_history_entry


class TestRunHistoryEntry:
    """Tests for RunHistoryEntry."""

    def test_create_generates_id_and_timestamp(self) -> None:
        """The factory fills in a 12-char id and a timezone-aware timestamp."""
        entry = create_history_entry(
            freed_bytes=10, items_cleaned=2, categories=["Trash"], duration_seconds=1.5
        )

        assert len(entry.id) == 12
        assert entry.timestamp.endswith("+00:00")
        assert entry.categories == ("Trash",)

    def test_json_line(self) -> None:
        """JSON lines are compact and parse back to an equal entry."""
        entry = create_history_entry(
            freed_bytes=10, items_cleaned=2, categories=["Trash"], duration_seconds=1.5, errors=1
        )

        line = entry.to_json_line()

        assert "\n" not in line
        assert json.loads(line)["errors"] == 1
        assert RunHistoryEntry.from_json_line(line) == entry

    def test_optional_fields_default(self) -> None:
        """Older records without optional fields still load."""
        entry = RunHistoryEntry.from_dict(
            {"id": "abc", "timestamp": "t", "freed_bytes": 1, "items_cleaned": 1}
        )

        assert entry.errors == 0
        assert entry.categories == ()

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"id": ""},
            {"timestamp": ""},
            {"freed_bytes": -1},
        ],
    )
    def test_validation(self, kwargs: dict) -> None:
        """Invalid fields are rejected."""
        data = {
            "id": "abc",
            "timestamp": "t",
            "freed_bytes": 1,
            "items_cleaned": 1,
            "categories": (),
            "duration_seconds": 0.0,
            **kwargs,
        }
        with pytest.raises(ValueError):
            RunHistoryEntry(**data)
