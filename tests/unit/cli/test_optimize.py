"""Unit tests for the optimize command."""

from moleguard.cli.main import app
from typer.testing import CliRunner

runner = CliRunner()


class TestOptimizeCommand:
    """Tests for moleguard optimize."""

    def test_default_flushes_dns(self, patched_facts) -> None:
        """Without flags only the DNS cache is flushed."""
        result = runner.invoke(app, ["optimize"])

        assert result.exit_code == 0
        assert patched_facts.calls == ["flush_dns"]

    def test_network_cycle(self, patched_facts) -> None:
        """--network cycles the chosen interface."""
        result = runner.invoke(app, ["optimize", "--network", "-i", "en1"])

        assert result.exit_code == 0
        assert patched_facts.calls == ["en1_down", "en1_up"]

    def test_failure_exit_code(self, patched_facts) -> None:
        """A failed action exits with code 1."""
        patched_facts.dns_ok = False

        result = runner.invoke(app, ["optimize", "--dns"])

        assert result.exit_code == 1
        assert "DNS flush failed" in result.stdout + (result.stderr or "")

    def test_dry_run(self, patched_facts) -> None:
        """Dry runs change nothing."""
        result = runner.invoke(app, ["optimize", "--network", "--swap", "--dry-run"])

        assert result.exit_code == 0
        assert patched_facts.calls == []
