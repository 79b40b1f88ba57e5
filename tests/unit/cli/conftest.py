"""Fixtures for CLI tests.

Commands build their engine objects from the live system; these fixtures
swap in FakeFacts and a temporary home directory.
"""

from pathlib import Path

import pytest
from moleguard.core.engine import CleanupRun
from moleguard.models.candidate import Category
from moleguard.operations.maintenance import ConfigMaintenance
from moleguard.scanners.backups import FailedBackupScanner
from moleguard.scanners.caches import UserCacheScanner
from moleguard.scanners.system import TrashScanner


@pytest.fixture
def trash_home(home: Path, make_file) -> Path:
    """Home with two Trash items and one small app cache."""
    make_file(home / ".Trash" / "old.dmg", 4000)
    make_file(home / ".Trash" / "notes.txt", 1000)
    make_file(home / "Library" / "Caches" / "com.example.app" / "blob", 100)
    return home


@pytest.fixture
def patched_engine(monkeypatch: pytest.MonkeyPatch, fake_facts, trash_home: Path):
    """Route scan and clean through FakeFacts and the temporary home."""

    def make_run(facts, **kwargs) -> CleanupRun:
        return CleanupRun(
            fake_facts,
            home=trash_home,
            scanners={
                Category.USER_CACHE: UserCacheScanner,
                Category.TRASH: TrashScanner,
                Category.FAILED_BACKUP: FailedBackupScanner,
            },
            **kwargs,
        )

    for module in ("scan", "clean"):
        monkeypatch.setattr(f"moleguard.cli.commands.{module}.CleanupRun", make_run)
    return fake_facts


@pytest.fixture
def patched_facts(monkeypatch: pytest.MonkeyPatch, fake_facts, home: Path):
    """Route optimize and check through FakeFacts and the temporary home."""
    for module in ("optimize", "check"):
        monkeypatch.setattr(
            f"moleguard.cli.commands.{module}.MacSystemFacts", lambda **kwargs: fake_facts
        )

    def make_maintenance(facts, **kwargs) -> ConfigMaintenance:
        return ConfigMaintenance(facts, home=home, **kwargs)

    monkeypatch.setattr("moleguard.cli.commands.check.ConfigMaintenance", make_maintenance)
    return fake_facts
