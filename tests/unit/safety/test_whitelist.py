"""Unit tests for WhitelistStore.

Tests append-only persistence, replay on load, prefix matching and
error handling for unreadable stores.
"""

import json
from pathlib import Path

import pytest
from moleguard.core.errors import WhitelistError
from moleguard.safety.whitelist import WhitelistEntry, WhitelistStore


@pytest.fixture
def store_path(tmp_path: Path) -> Path:
    """Path of a whitelist file inside a temp directory."""
    return tmp_path / "whitelist.jsonl"


class TestWhitelistEntry:
    """Tests for WhitelistEntry dataclass."""

    def test_roundtrip_dict(self) -> None:
        """to_dict/from_dict preserve every field."""
        entry = WhitelistEntry(
            id="abc123def456", path="/a/b", label="keep", created_at="2026-01-01T00:00:00+00:00"
        )

        assert WhitelistEntry.from_dict(entry.to_dict()) == entry

    def test_empty_path_rejected(self) -> None:
        """An entry needs a path."""
        with pytest.raises(ValueError, match="path cannot be empty"):
            WhitelistEntry(id="x", path="", label="", created_at="now")

    def test_covers_on_component_boundary(self) -> None:
        """/a/b covers /a/b/c but not /a/bc."""
        entry = WhitelistEntry(id="x", path="/a/b", label="", created_at="now")

        assert entry.covers("/a/b") is True
        assert entry.covers("/a/b/c") is True
        assert entry.covers("/a/bc") is False


class TestWhitelistStore:
    """Tests for WhitelistStore."""

    def test_missing_file_is_empty(self, store_path: Path) -> None:
        """A store without a file loads empty."""
        store = WhitelistStore(store_path).load()

        assert len(store) == 0
        assert store.loaded is True

    def test_add_persists(self, store_path: Path, tmp_path: Path) -> None:
        """Added entries survive a reload."""
        store = WhitelistStore(store_path).load()
        entry = store.add(tmp_path / "keep", "important")

        reloaded = WhitelistStore(store_path).load()

        assert [e.id for e in reloaded.list()] == [entry.id]
        assert reloaded.list()[0].label == "important"

    def test_add_is_append_only(self, store_path: Path, tmp_path: Path) -> None:
        """Additions and removals are appended as records."""
        store = WhitelistStore(store_path).load()
        entry = store.add(tmp_path / "keep")
        store.remove(entry.id)

        records = [json.loads(line) for line in store_path.read_text().splitlines()]

        assert [r["op"] for r in records] == ["add", "remove"]
        assert records[1]["id"] == entry.id

    def test_remove_replayed_on_load(self, store_path: Path, tmp_path: Path) -> None:
        """A removed entry stays removed after reload."""
        store = WhitelistStore(store_path).load()
        keep = store.add(tmp_path / "keep")
        drop = store.add(tmp_path / "drop")
        assert store.remove(drop.id) is True

        reloaded = WhitelistStore(store_path).load()

        assert [e.id for e in reloaded.list()] == [keep.id]

    def test_remove_unknown_id(self, store_path: Path) -> None:
        """Removing an unknown ID returns False and writes nothing."""
        store = WhitelistStore(store_path).load()

        assert store.remove("doesnotexist") is False
        assert not store_path.exists()

    def test_duplicate_add_returns_existing(self, store_path: Path, tmp_path: Path) -> None:
        """Adding the same prefix twice returns the first entry."""
        store = WhitelistStore(store_path).load()
        first = store.add(tmp_path / "keep")
        second = store.add(f"{tmp_path}/keep/")

        assert first.id == second.id
        assert len(store) == 1

    def test_add_empty_path(self, store_path: Path) -> None:
        """Empty paths cannot be whitelisted."""
        store = WhitelistStore(store_path).load()

        with pytest.raises(ValueError):
            store.add("  ")

    def test_match_prefers_longest(self, store_path: Path) -> None:
        """The most specific entry wins."""
        store = WhitelistStore(store_path).load()
        store.add("/data", "outer")
        inner = store.add("/data/projects", "inner")

        match = store.match("/data/projects/app/cache")

        assert match is not None
        assert match.id == inner.id

    def test_contains_normalizes(self, store_path: Path) -> None:
        """Matching normalizes the candidate path first."""
        store = WhitelistStore(store_path).load()
        store.add("/data/keep")

        assert store.contains("/data/other/../keep/file") is True
        assert store.contains("/data/keeper") is False

    def test_overlaps_entry_inside_path(self, store_path: Path) -> None:
        """An entry beneath a path overlaps it; a sibling does not."""
        store = WhitelistStore(store_path).load()
        inner = store.add("/data/cache/keep", "keep")

        overlap = store.overlaps("/data/cache")

        assert overlap is not None
        assert overlap.id == inner.id
        assert store.match("/data/cache") is None
        assert store.overlaps("/data/cachefiles") is None

    def test_overlaps_prefers_covering_entry(self, store_path: Path) -> None:
        """A covering entry is reported before one lying inside the path."""
        store = WhitelistStore(store_path).load()
        outer = store.add("/data", "outer")
        store.add("/data/cache/keep", "inner")

        overlap = store.overlaps("/data/cache")

        assert overlap is not None
        assert overlap.id == outer.id

    def test_corrupt_lines_skipped(self, store_path: Path, tmp_path: Path) -> None:
        """Corrupt lines are skipped, valid ones kept."""
        store = WhitelistStore(store_path).load()
        entry = store.add(tmp_path / "keep")
        with store_path.open("a") as f:
            f.write("not json\n")
            f.write('{"op": "explode"}\n')

        reloaded = WhitelistStore(store_path).load()

        assert [e.id for e in reloaded.list()] == [entry.id]

    def test_unreadable_store_raises(self, tmp_path: Path) -> None:
        """A store path that cannot be read is a run-level fault."""
        directory = tmp_path / "whitelist.jsonl"
        directory.mkdir()

        with pytest.raises(WhitelistError):
            WhitelistStore(directory).load()

    def test_unwritable_store_raises(self, tmp_path: Path) -> None:
        """Failing to append raises WhitelistError."""
        blocker = tmp_path / "blocker"
        blocker.write_text("")
        store = WhitelistStore(blocker / "whitelist.jsonl").load()

        with pytest.raises(WhitelistError):
            store.add("/data/keep")
