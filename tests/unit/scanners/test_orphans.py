"""Unit tests for OrphanedAppScanner.

Tests installed-app matching, the 60-day age rule, the vendor whitelist
and the unavailable/timed-out states.
"""

import plistlib
from pathlib import Path
from unittest.mock import patch

import pytest
from moleguard.core.errors import ScanTimeout
from moleguard.models.candidate import CategoryStatus
from moleguard.scanners.orphans import InstalledApps, OrphanedAppScanner, is_vendor_whitelisted


@pytest.fixture
def apps_dir(tmp_path: Path) -> Path:
    """An Applications directory with two installed bundles."""
    apps = tmp_path / "Applications"
    bundles = (("Foo", "com.foo.Foo"), ("Tunnel Blick", "net.tunnelblick.tunnelblick"))
    for name, bundle_id in bundles:
        contents = apps / f"{name}.app" / "Contents"
        contents.mkdir(parents=True)
        with (contents / "Info.plist").open("wb") as f:
            plistlib.dump({"CFBundleIdentifier": bundle_id}, f)
    return apps


@pytest.fixture
def support(home: Path) -> Path:
    """The home directory's Application Support."""
    path = home / "Library" / "Application Support"
    path.mkdir(parents=True)
    return path


def _support_dir(support: Path, name: str, age_days: float, make_file, set_age) -> Path:
    path = support / name
    make_file(path / "data.db", 1000)
    set_age(path / "data.db", age_days)
    set_age(path, age_days)
    return path


class TestVendorWhitelist:
    """Tests for is_vendor_whitelisted function."""

    @pytest.mark.parametrize(
        "name", ["com.apple.Music", "com.google.Chrome", "Google", "Adobe Photoshop", "MobileSync"]
    )
    def test_vendor_names(self, name: str) -> None:
        """Vendor identifiers and anything beneath them are whitelisted."""
        assert is_vendor_whitelisted(name) is True

    @pytest.mark.parametrize("name", ["com.gone.App", "Googler", "AdobeFake"])
    def test_non_vendor_names(self, name: str) -> None:
        """Prefix matches require a separator."""
        assert is_vendor_whitelisted(name) is False


class TestInstalledApps:
    """Tests for InstalledApps matching."""

    def test_matching_rules(self) -> None:
        """Bundle id, compacted name and reverse-DNS component all match."""
        index = InstalledApps(bundle_ids={"org.example.widget"}, names={"supertool"})

        assert index.matches("org.example.widget") is True
        assert index.matches("Super Tool") is True
        assert index.matches("Widget") is True
        assert index.matches("Other") is False


class TestOrphanedAppScanner:
    """Tests for OrphanedAppScanner."""

    def test_age_boundary(
        self, home: Path, apps_dir: Path, support: Path, make_file, set_age
    ) -> None:
        """Uninstalled app data is orphaned at 61 days but not at 59."""
        old = _support_dir(support, "com.gone.App", 61, make_file, set_age)
        _support_dir(support, "com.gone.Recent", 59, make_file, set_age)

        scanner = OrphanedAppScanner(home=home, app_dirs=(apps_dir,))
        candidates = list(scanner.scan())

        assert [c.path for c in candidates] == [str(old)]
        assert candidates[0].name == "com.gone.App (orphaned)"

    def test_installed_apps_not_orphaned(
        self, home: Path, apps_dir: Path, support: Path, make_file, set_age
    ) -> None:
        """Support dirs of installed apps are kept however old they are."""
        _support_dir(support, "com.foo.Foo", 400, make_file, set_age)
        _support_dir(support, "Foo", 400, make_file, set_age)
        _support_dir(support, "Tunnelblick", 400, make_file, set_age)

        scanner = OrphanedAppScanner(home=home, app_dirs=(apps_dir,))

        assert list(scanner.scan()) == []

    def test_vendor_never_orphaned(
        self, home: Path, apps_dir: Path, support: Path, make_file, set_age
    ) -> None:
        """Vendor directories are excluded even when old and uninstalled."""
        _support_dir(support, "com.google.Chrome", 61, make_file, set_age)
        _support_dir(support, "Adobe", 400, make_file, set_age)

        scanner = OrphanedAppScanner(home=home, app_dirs=(apps_dir,))

        assert list(scanner.scan()) == []

    def test_files_ignored(self, home: Path, apps_dir: Path, support: Path, make_file) -> None:
        """Only directories can be orphaned app data."""
        make_file(support / "stray.plist", 10, age_days=100)

        scanner = OrphanedAppScanner(home=home, app_dirs=(apps_dir,))

        assert list(scanner.scan()) == []

    def test_no_application_dirs_unavailable(
        self, tmp_path: Path, home: Path, support: Path, make_file, set_age
    ) -> None:
        """Without any application directory nothing is reported orphaned."""
        _support_dir(support, "com.gone.App", 100, make_file, set_age)

        scanner = OrphanedAppScanner(home=home, app_dirs=(tmp_path / "nope",))
        scan = scanner.collect()

        assert scan.status == CategoryStatus.UNAVAILABLE
        assert scan.candidates == ()

    def test_enumeration_timeout(
        self, home: Path, apps_dir: Path, support: Path, make_file, set_age
    ) -> None:
        """If installed apps cannot be listed in time, nothing is orphaned."""
        _support_dir(support, "com.gone.App", 100, make_file, set_age)
        scanner = OrphanedAppScanner(home=home, app_dirs=(apps_dir,))

        with patch.object(
            OrphanedAppScanner,
            "installed_apps",
            side_effect=ScanTimeout(str(apps_dir), 10.0),
        ):
            scan = scanner.collect()

        assert scan.status == CategoryStatus.TIMED_OUT
        assert scan.candidates == ()

    def test_installed_index(self, home: Path, apps_dir: Path) -> None:
        """The index holds bundle ids and compacted names."""
        index = OrphanedAppScanner(home=home, app_dirs=(apps_dir,)).installed_apps()

        assert index.bundle_ids == {"com.foo.foo", "net.tunnelblick.tunnelblick"}
        assert index.names == {"foo", "tunnelblick"}

    def test_unreadable_application_dir_unavailable(
        self, home: Path, apps_dir: Path, support: Path, make_file, set_age
    ) -> None:
        """An unreadable Applications folder never means "nothing installed"."""
        _support_dir(support, "com.foo.Foo", 100, make_file, set_age)

        def deny(directory, **kwargs):
            raise PermissionError(13, "Permission denied", str(directory))

        scanner = OrphanedAppScanner(home=home, app_dirs=(apps_dir,))
        with patch("moleguard.scanners.orphans.list_children", side_effect=deny):
            scan = scanner.collect()

        assert scan.status == CategoryStatus.UNAVAILABLE
        assert scan.candidates == ()
        assert "cannot read application directory" in (scan.detail or "")

    def test_scan_is_restartable(
        self, home: Path, apps_dir: Path, support: Path, make_file, set_age
    ) -> None:
        """Scanning does not reset the age of the data it measured."""
        old = _support_dir(support, "com.gone.App", 61, make_file, set_age)
        scanner = OrphanedAppScanner(home=home, app_dirs=(apps_dir,))

        first = [c.path for c in scanner.scan()]
        second = [c.path for c in scanner.scan()]

        assert first == [str(old)]
        assert second == first
