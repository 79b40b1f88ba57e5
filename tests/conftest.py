"""Pytest configuration and shared fixtures.

This module contains fixtures used across all test modules.
"""

import os
import time
from collections.abc import Callable
from pathlib import Path

import pytest
from moleguard.system.facts import DaemonState, PlistValidity, ProtectionStatus, SystemFacts

DAY = 86400


class FakeFacts(SystemFacts):
    """In-memory SystemFacts recording every state change."""

    def __init__(
        self,
        *,
        protection: ProtectionStatus = ProtectionStatus.DISABLED,
        backup: DaemonState = DaemonState.STOPPED,
        swap_states: list[DaemonState] | None = None,
    ) -> None:
        self.protection = protection
        self.backup = backup
        self.swap_states = list(swap_states) if swap_states is not None else [DaemonState.STOPPED]
        self.swap_loaded = True
        self.interfaces: dict[str, bool] = {}
        self.invalid_plists: set[str] = set()
        self.programs: dict[str, str] = {}
        self.unloaded: list[str] = []
        self.calls: list[str] = []
        self.on_interface_down: Callable[[], None] | None = None
        self.fail_enable = False
        self.dns_ok = True
        self.index_ok = True

    def protection_status(self) -> ProtectionStatus:
        self.calls.append("protection_status")
        return self.protection

    def backup_daemon_state(self) -> DaemonState:
        self.calls.append("backup_daemon_state")
        return self.backup

    def swap_daemon_state(self) -> DaemonState:
        self.calls.append("swap_daemon_state")
        if len(self.swap_states) > 1:
            return self.swap_states.pop(0)
        return self.swap_states[0]

    def validate_plist(self, path: str) -> PlistValidity:
        return PlistValidity.INVALID if path in self.invalid_plists else PlistValidity.VALID

    def plist_program(self, path: str) -> str | None:
        return self.programs.get(path)

    def unload_job(self, path: str) -> bool:
        self.unloaded.append(path)
        return True

    def set_swap_daemon_loaded(self, loaded: bool) -> bool:
        self.calls.append("swap_load" if loaded else "swap_unload")
        self.swap_loaded = loaded
        return True

    def set_interface_enabled(self, interface: str, enabled: bool) -> bool:
        self.calls.append(f"{interface}_{'up' if enabled else 'down'}")
        if enabled and self.fail_enable:
            return False
        self.interfaces[interface] = enabled
        if not enabled and self.on_interface_down is not None:
            self.on_interface_down()
        return True

    def flush_dns_cache(self) -> bool:
        self.calls.append("flush_dns")
        return self.dns_ok

    def rebuild_search_index(self, volume: str) -> bool:
        self.calls.append(f"index_{volume}")
        return self.index_ok


@pytest.fixture(autouse=True)
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point XDG_CONFIG_HOME at a temporary directory for every test."""
    config_home = tmp_path / "xdg-config"
    monkeypatch.setenv("XDG_CONFIG_HOME", str(config_home))
    return config_home


@pytest.fixture
def fake_facts() -> FakeFacts:
    """A SystemFacts with protection off, no backup running."""
    return FakeFacts()


@pytest.fixture
def home(tmp_path: Path) -> Path:
    """An empty home directory."""
    path = tmp_path / "home"
    path.mkdir()
    return path


@pytest.fixture
def make_file() -> Callable[..., Path]:
    """Factory creating a (sparse) file of a given size and age.

    Returns:
        Callable ``(path, size=0, age_days=None) -> Path``. Parent
        directories are created; ``age_days`` sets both atime and mtime.
    """

    def _make(path: Path, size: int = 0, age_days: float | None = None) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("wb") as f:
            f.truncate(size)
        if age_days is not None:
            age(path, age_days)
        return path

    return _make


def age(path: Path, days: float) -> None:
    """Set atime and mtime of a path to ``days`` ago."""
    stamp = time.time() - days * DAY
    os.utime(path, (stamp, stamp), follow_symlinks=False)


@pytest.fixture
def set_age() -> Callable[[Path, float], None]:
    """Fixture form of :func:`age`."""
    return age


@pytest.fixture
def facts_factory() -> type[FakeFacts]:
    """The FakeFacts class, for tests that need non-default facts."""
    return FakeFacts
