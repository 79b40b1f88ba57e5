"""Unit tests for filesystem measurement helpers."""

import os
import time
from datetime import UTC, datetime, timedelta
from pathlib import Path
from unittest.mock import patch

import pytest
from moleguard.core.errors import ScanTimeout
from moleguard.utils.fs import is_within, last_touched, list_children, measure_tree


class TestMeasureTree:
    """Tests for measure_tree function."""

    def test_sums_files(self, tmp_path: Path, make_file) -> None:
        """Regular files are summed recursively."""
        make_file(tmp_path / "a", 100)
        make_file(tmp_path / "d" / "e" / "b", 250)

        measure = measure_tree(tmp_path)

        assert measure.size_bytes == 350
        assert measure.mount_points == ()

    def test_single_file(self, tmp_path: Path, make_file) -> None:
        """A file measures its own size."""
        assert measure_tree(make_file(tmp_path / "f", 7)).size_bytes == 7

    def test_does_not_follow_links(self, tmp_path: Path, make_file) -> None:
        """Linked directories are counted as links, not traversed."""
        make_file(tmp_path / "big" / "blob", 10_000)
        tree = tmp_path / "tree"
        tree.mkdir()
        (tree / "link").symlink_to(tmp_path / "big")

        assert measure_tree(tree).size_bytes < 10_000

    def test_missing_raises(self, tmp_path: Path) -> None:
        """A missing root raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            measure_tree(tmp_path / "missing")

    def test_deadline(self, tmp_path: Path, make_file) -> None:
        """Exceeding the deadline raises ScanTimeout."""
        make_file(tmp_path / "d" / "f", 1)
        clock = iter([0.0, 100.0, 200.0])

        with patch("moleguard.utils.fs.time.monotonic", side_effect=lambda: next(clock)):
            with pytest.raises(ScanTimeout):
                measure_tree(tmp_path, timeout=1.0)


class TestListChildren:
    """Tests for list_children function."""

    def test_sorted(self, tmp_path: Path, make_file) -> None:
        """Children are returned sorted."""
        for name in ("b", "a", "c"):
            make_file(tmp_path / name)

        assert [p.name for p in list_children(tmp_path)] == ["a", "b", "c"]

    def test_missing_raises(self, tmp_path: Path) -> None:
        """A missing directory raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            list_children(tmp_path / "missing")


class TestLastTouched:
    """Tests for last_touched function."""

    def test_uses_modification_time(self, tmp_path: Path, make_file) -> None:
        """The modification time is returned."""
        path = make_file(tmp_path / "f", age_days=10)

        touched = last_touched(path)

        assert touched is not None
        assert datetime.now(UTC) - touched > timedelta(days=9)

    def test_ignores_recent_access(self, tmp_path: Path, make_file) -> None:
        """Reading a path does not make it look recently touched."""
        path = make_file(tmp_path / "f", age_days=10)
        mtime = path.stat().st_mtime
        os.utime(path, (time.time(), mtime))

        touched = last_touched(path)

        assert touched is not None
        assert datetime.now(UTC) - touched > timedelta(days=9)

    def test_missing_is_none(self, tmp_path: Path) -> None:
        """Missing paths have no timestamp."""
        assert last_touched(tmp_path / "missing") is None


class TestIsWithin:
    """Tests for is_within function."""

    @pytest.mark.parametrize(
        ("path", "prefix", "expected"),
        [
            ("/a/b", "/a/b", True),
            ("/a/b/c", "/a/b", True),
            ("/a/bc", "/a/b", False),
            ("/x", "/", True),
            ("/a/b/c", "/a/b/", True),
        ],
    )
    def test_component_boundaries(self, path: str, prefix: str, expected: bool) -> None:
        """Prefixes match on whole components only."""
        assert is_within(path, prefix) is expected
