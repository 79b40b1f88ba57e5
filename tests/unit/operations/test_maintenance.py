"""Unit tests for ConfigMaintenance.

Tests detection of broken preference files and login items, the issue
record format, and repair through SafeRemover.
"""

from pathlib import Path
from unittest.mock import patch

import pytest
from moleguard.core.errors import ScanTimeout
from moleguard.models.result import Outcome
from moleguard.operations.maintenance import (
    BrokenKind,
    ConfigMaintenance,
    MaintenanceIssue,
)
from moleguard.operations.remover import SafeRemover


@pytest.fixture
def prefs(home: Path, make_file) -> Path:
    """A preferences directory with good, broken and Apple-owned plists."""
    root = home / "Library" / "Preferences"
    for name in (
        "com.good.app.plist",
        "com.broken.app.plist",
        "com.apple.finder.plist",
        ".GlobalPreferences.plist",
        "loginwindow.plist",
        "notes.txt",
    ):
        make_file(root / name, 10)
    make_file(root / "ByHost" / "com.broken.host.ABC.plist", 10)
    make_file(root / "ByHost" / "loginwindow.plist", 10)
    return root


@pytest.fixture
def agents(home: Path, make_file, tmp_path: Path) -> Path:
    """A LaunchAgents directory with live and dead agents."""
    root = home / "Library" / "LaunchAgents"
    make_file(root / "com.live.agent.plist", 10)
    make_file(root / "com.dead.agent.plist", 10)
    make_file(root / "com.apple.dead.plist", 10)
    make_file(tmp_path / "bin" / "live", 10)
    return root


def _maintenance(facts, home: Path, *, dry_run: bool = False) -> ConfigMaintenance:
    return ConfigMaintenance(facts, home=home, remover=SafeRemover(dry_run=dry_run))


class TestFindBroken:
    """Tests for broken item detection."""

    def test_invalid_preferences(self, fake_facts, home: Path, prefs: Path) -> None:
        """Invalid non-Apple plists are broken; Apple's are never checked."""
        fake_facts.invalid_plists = {
            str(prefs / "com.broken.app.plist"),
            str(prefs / "com.apple.finder.plist"),
            str(prefs / "loginwindow.plist"),
            str(prefs / "ByHost" / "com.broken.host.ABC.plist"),
            str(prefs / "ByHost" / "loginwindow.plist"),
        }

        broken = _maintenance(fake_facts, home).find_broken_preferences()

        assert [Path(b.path).relative_to(prefs) for b in broken] == [
            Path("com.broken.app.plist"),
            Path("ByHost/com.broken.host.ABC.plist"),
            Path("ByHost/loginwindow.plist"),
        ]
        assert all(b.kind == BrokenKind.PREFERENCE for b in broken)

    def test_dead_login_items(
        self, fake_facts, home: Path, agents: Path, tmp_path: Path
    ) -> None:
        """Agents whose program is missing are broken; Apple's are skipped."""
        fake_facts.programs = {
            str(agents / "com.live.agent.plist"): str(tmp_path / "bin" / "live"),
            str(agents / "com.dead.agent.plist"): str(tmp_path / "bin" / "gone"),
            str(agents / "com.apple.dead.plist"): str(tmp_path / "bin" / "gone"),
        }

        broken = _maintenance(fake_facts, home).find_broken_login_items()

        assert [b.path for b in broken] == [str(agents / "com.dead.agent.plist")]
        assert broken[0].kind == BrokenKind.LOGIN_ITEM
        assert broken[0].reason == f"missing program: {tmp_path / 'bin' / 'gone'}"

    def test_missing_directories(self, fake_facts, home: Path) -> None:
        """Absent directories mean nothing is broken."""
        assert _maintenance(fake_facts, home).find_broken() == []


class TestCheck:
    """Tests for ConfigMaintenance.check and issue records."""

    def test_healthy_reports_nothing(self, fake_facts, home: Path, prefs: Path) -> None:
        """No broken files means no issues."""
        assert _maintenance(fake_facts, home).check() == []

    def test_issue_record(self, fake_facts, home: Path, prefs: Path) -> None:
        """Broken files produce one fix_broken_configs record."""
        fake_facts.invalid_plists = {str(prefs / "com.broken.app.plist")}

        issues = _maintenance(fake_facts, home).check()

        assert len(issues) == 1
        assert issues[0].to_record() == (
            "fix_broken_configs|Fix Broken Configurations|"
            "Fix 1 broken preference/login item files|false"
        )

    def test_timed_out_directory_reported(self, fake_facts, home: Path, prefs: Path) -> None:
        """A directory that cannot be listed in time is never reported healthy."""
        with patch(
            "moleguard.operations.maintenance.list_children",
            side_effect=ScanTimeout(str(prefs), 10.0),
        ):
            maintenance = _maintenance(fake_facts, home)
            issues = maintenance.check()

        assert [i.identifier for i in issues] == ["config_check_skipped"]
        assert issues[0].to_record() == (
            "config_check_skipped|Configuration Check Incomplete|"
            "Skipped 3 unreadable or slow directories|false"
        )
        assert [s.reason for s in maintenance.skipped] == ["timed out after 10.0s"] * 3

    def test_unreadable_directory_skipped(self, fake_facts, home: Path, prefs: Path) -> None:
        """Permission errors are recorded per directory."""

        def list_or_deny(directory, **kwargs):
            if Path(directory) == prefs:
                raise PermissionError(13, "Permission denied", str(directory))
            return []

        maintenance = _maintenance(fake_facts, home)
        with patch("moleguard.operations.maintenance.list_children", side_effect=list_or_deny):
            broken = maintenance.find_broken()

        assert broken == []
        assert [(s.path, s.reason) for s in maintenance.skipped] == [
            (str(prefs), "permission denied")
        ]

    def test_record_roundtrip(self) -> None:
        """Records parse back into issues."""
        issue = MaintenanceIssue.from_record("a|B|c d|true\n")

        assert issue == MaintenanceIssue("a", "B", "c d", auto_fix_safe=True)

    def test_malformed_record(self) -> None:
        """Records without four fields are rejected."""
        with pytest.raises(ValueError, match="4 fields"):
            MaintenanceIssue.from_record("a|b|c")


class TestRepair:
    """Tests for ConfigMaintenance.repair."""

    def test_repair_deletes_and_unloads(
        self, fake_facts, home: Path, prefs: Path, agents: Path, tmp_path: Path
    ) -> None:
        """Broken files are deleted; login items are unloaded first."""
        dead = agents / "com.dead.agent.plist"
        fake_facts.invalid_plists = {str(prefs / "com.broken.app.plist")}
        fake_facts.programs = {str(dead): str(tmp_path / "bin" / "gone")}

        results = _maintenance(fake_facts, home).repair()

        assert [r.outcome for r in results] == [Outcome.DELETED, Outcome.DELETED]
        assert fake_facts.unloaded == [str(dead)]
        assert not dead.exists()
        assert not (prefs / "com.broken.app.plist").exists()
        assert (prefs / "com.good.app.plist").exists()

    def test_dry_run_repair(self, fake_facts, home: Path, agents: Path, tmp_path: Path) -> None:
        """Dry-run repair neither unloads nor deletes."""
        dead = agents / "com.dead.agent.plist"
        fake_facts.programs = {str(dead): str(tmp_path / "bin" / "gone")}

        results = _maintenance(fake_facts, home, dry_run=True).repair()

        assert [r.outcome for r in results] == [Outcome.SIMULATED]
        assert fake_facts.unloaded == []
        assert dead.exists()
