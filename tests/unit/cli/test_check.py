"""Unit tests for the check command."""

from pathlib import Path
from unittest.mock import patch

import pytest
from moleguard.cli.main import app
from moleguard.core.errors import ScanTimeout
from typer.testing import CliRunner

runner = CliRunner()


@pytest.fixture
def broken_pref(patched_facts, home: Path, make_file) -> Path:
    """One invalid preference file."""
    path = make_file(home / "Library" / "Preferences" / "com.broken.app.plist", 10)
    patched_facts.invalid_plists = {str(path)}
    return path


class TestCheckCommand:
    """Tests for moleguard check."""

    def test_healthy(self, patched_facts) -> None:
        """No broken files is a success."""
        result = runner.invoke(app, ["check"])

        assert result.exit_code == 0
        assert "No broken configuration files" in result.stdout

    def test_records(self, broken_pref: Path) -> None:
        """--records prints pipe-delimited issue records."""
        result = runner.invoke(app, ["check", "--records"])

        assert result.exit_code == 0
        assert result.stdout.strip() == (
            "fix_broken_configs|Fix Broken Configurations|"
            "Fix 1 broken preference/login item files|false"
        )

    def test_report_only(self, broken_pref: Path) -> None:
        """Without --fix nothing is removed."""
        result = runner.invoke(app, ["check"])

        assert result.exit_code == 0
        assert broken_pref.exists()

    def test_fix(self, broken_pref: Path) -> None:
        """--fix --yes removes the broken file."""
        result = runner.invoke(app, ["check", "--fix", "--yes"])

        assert result.exit_code == 0
        assert "Removed 1 file(s)" in result.stdout
        assert not broken_pref.exists()

    def test_skipped_directories_not_healthy(self, patched_facts, home: Path) -> None:
        """A check that could not read its directories says so."""
        with patch(
            "moleguard.operations.maintenance.list_children",
            side_effect=ScanTimeout(str(home), 10.0),
        ):
            result = runner.invoke(app, ["check"])
            records = runner.invoke(app, ["check", "--records"])

        output = result.stdout + (result.stderr or "")
        assert result.exit_code == 0
        assert "Check incomplete" in output
        assert "No broken configuration files" not in output
        assert records.stdout.startswith("config_check_skipped|")
