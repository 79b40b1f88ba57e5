"""Unit tests for XDG path helpers."""

from pathlib import Path

import pytest
from moleguard.core.paths import (
    ensure_config_dir,
    get_config_dir,
    get_config_path,
    get_history_path,
    get_whitelist_path,
)


class TestPaths:
    """Tests for path resolution."""

    def test_xdg_override(self, isolated_config: Path) -> None:
        """XDG_CONFIG_HOME is respected."""
        assert get_config_dir() == isolated_config / "moleguard"
        assert get_config_path().name == "config.toml"
        assert get_whitelist_path().parent == get_config_dir()
        assert get_history_path().name == "history.jsonl"

    def test_home_fallback(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        """Without XDG_CONFIG_HOME the directory is ~/.config/moleguard."""
        monkeypatch.delenv("XDG_CONFIG_HOME")
        monkeypatch.setattr(Path, "home", lambda: tmp_path)

        assert get_config_dir() == tmp_path / ".config" / "moleguard"

    def test_ensure_config_dir(self, isolated_config: Path) -> None:
        """ensure_config_dir creates the directory."""
        path = ensure_config_dir()

        assert path.is_dir()

    def test_ensure_config_dir_error(self, isolated_config: Path) -> None:
        """A blocking file surfaces as RuntimeError."""
        isolated_config.parent.mkdir(parents=True, exist_ok=True)
        isolated_config.write_text("")

        with pytest.raises(RuntimeError, match="Cannot create config directory"):
            ensure_config_dir()
