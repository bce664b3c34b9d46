"""Tests for path utilities."""

import os
from pathlib import Path

from vehicle_data.utils.paths import (
    CONFIG_DIR_ENV_VAR,
    DEFAULT_CONFIG_DIR,
    resolve_config_dir,
    resolve_db_path,
    resolve_export_dir,
)


class TestDefaultConfigDir:
    """Test DEFAULT_CONFIG_DIR constant."""

    def test_default_config_dir_is_in_home(self):
        """Default config dir should be in user's home directory."""
        assert Path.home() / ".vehicle-data" == DEFAULT_CONFIG_DIR

    def test_default_config_dir_is_path(self):
        assert isinstance(DEFAULT_CONFIG_DIR, Path)


class TestResolveConfigDir:
    """Test resolve_config_dir function."""

    def test_explicit_path_string(self, tmp_path):
        """Explicit path string should be used."""
        assert resolve_config_dir(str(tmp_path)) == tmp_path.resolve()

    def test_explicit_path_with_tilde(self):
        """Explicit path with ~ should be expanded."""
        result = resolve_config_dir("~/custom-config")
        assert result == (Path.home() / "custom-config").resolve()

    def test_env_var_override(self, tmp_path, monkeypatch):
        """Environment variable should override default when no explicit path."""
        monkeypatch.setenv(CONFIG_DIR_ENV_VAR, str(tmp_path))
        assert resolve_config_dir(None) == tmp_path.resolve()

    def test_default_when_no_explicit_and_no_env(self, monkeypatch):
        monkeypatch.delenv(CONFIG_DIR_ENV_VAR, raising=False)
        assert resolve_config_dir(None) == DEFAULT_CONFIG_DIR.expanduser().resolve()

    def test_explicit_overrides_env_var(self, tmp_path, monkeypatch):
        """Explicit path should override environment variable."""
        monkeypatch.setenv(CONFIG_DIR_ENV_VAR, str(tmp_path / "env"))
        explicit_path = tmp_path / "explicit"
        assert resolve_config_dir(str(explicit_path)) == explicit_path.resolve()

    def test_result_is_always_absolute(self, tmp_path):
        original_cwd = os.getcwd()
        try:
            os.chdir(tmp_path)
            assert resolve_config_dir("relative-dir").is_absolute()
        finally:
            os.chdir(original_cwd)


class TestResolveDataPaths:
    """Test database and export directory resolution."""

    def test_default_db_path(self, tmp_path):
        assert resolve_db_path(tmp_path) == tmp_path / "vehicle_data.db"

    def test_configured_db_path(self, tmp_path):
        configured = str(tmp_path / "elsewhere" / "shop.db")
        assert resolve_db_path(tmp_path, configured) == Path(configured)

    def test_configured_db_path_with_tilde(self, tmp_path):
        assert resolve_db_path(tmp_path, "~/shop.db") == Path.home() / "shop.db"

    def test_default_export_dir(self, tmp_path):
        assert resolve_export_dir(tmp_path) == tmp_path / "exports"

    def test_configured_export_dir(self, tmp_path):
        assert resolve_export_dir(tmp_path, str(tmp_path / "out")) == tmp_path / "out"
