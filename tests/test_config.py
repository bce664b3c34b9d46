"""
Tests for the config module.

Tests YAML configuration loading and validation, config file generation,
and the persisted backup schedule settings.
"""

import os
from pathlib import Path
from unittest.mock import patch

import pytest
import yaml

from vehicle_data.config.backup_config import (
    DEFAULT_MAX_BACKUPS,
    BackupConfig,
    BackupConfigError,
    BackupFrequency,
    backup_defaults_from_app_config,
)
from vehicle_data.config.generator import generate_default_config, save_config_file
from vehicle_data.config.loader import DEFAULT_CONFIG_FILE, ConfigError, ConfigLoader
from vehicle_data.utils.paths import DEFAULT_CONFIG_DIR


class TestConfigLoaderInitialization:
    """Tests for ConfigLoader initialization."""

    def test_default_config_dir(self):
        """Test that default config dir is used when no argument provided."""
        with patch.dict(os.environ, {}, clear=True):
            loader = ConfigLoader()
            assert loader.config_dir == DEFAULT_CONFIG_DIR.resolve()

    def test_custom_config_dir_via_argument(self, tmp_path):
        loader = ConfigLoader(config_dir=tmp_path / "custom")
        assert loader.config_dir == tmp_path / "custom"

    def test_config_dir_from_environment_variable(self, tmp_path):
        env_dir = str(tmp_path / "env_config")
        with patch.dict(os.environ, {"VEHICLE_DATA_CONFIG_DIR": env_dir}):
            loader = ConfigLoader()
            assert loader.config_dir == Path(env_dir)

    def test_default_config_file_name(self):
        assert ConfigLoader().config_file == DEFAULT_CONFIG_FILE == "config.yaml"


class TestConfigLoading:
    """Tests for loading YAML configuration files."""

    @pytest.fixture
    def loader(self, tmp_path):
        return ConfigLoader(config_dir=tmp_path)

    def test_load_nonexistent_file_returns_empty_dict(self, loader):
        assert loader.load() == {}

    def test_load_valid_yaml_file(self, loader, tmp_path):
        (tmp_path / "config.yaml").write_text(
            "backup_frequency: weekly\ndaemon_interval: 30m\n", encoding="utf-8"
        )
        assert loader.load() == {"backup_frequency": "weekly", "daemon_interval": "30m"}

    def test_load_empty_yaml_file_returns_empty_dict(self, loader, tmp_path):
        (tmp_path / "config.yaml").write_text("", encoding="utf-8")
        assert loader.load() == {}

    def test_load_invalid_yaml_raises_config_error(self, loader, tmp_path):
        (tmp_path / "config.yaml").write_text("key: [unclosed", encoding="utf-8")
        with pytest.raises(ConfigError, match="Failed to parse"):
            loader.load()

    def test_load_non_dict_yaml_raises_config_error(self, loader, tmp_path):
        (tmp_path / "config.yaml").write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(ConfigError, match="YAML dictionary"):
            loader.load()

    def test_load_from_file_with_string_path(self, loader, tmp_path):
        path = tmp_path / "other.yaml"
        path.write_text("verbose: true\n", encoding="utf-8")
        assert loader.load_from_file(str(path)) == {"verbose": True}

    def test_load_and_validate(self, loader, tmp_path):
        (tmp_path / "config.yaml").write_text("backup_max_count: 0\n", encoding="utf-8")
        with pytest.raises(ConfigError, match="backup_max_count"):
            loader.load_and_validate()


class TestConfigValidation:
    """Tests for configuration validation."""

    @pytest.fixture
    def loader(self, tmp_path):
        return ConfigLoader(config_dir=tmp_path)

    def test_validate_empty_config(self, loader):
        loader.validate({})

    def test_validate_non_dict_raises_error(self, loader):
        with pytest.raises(ConfigError, match="must be a dictionary"):
            loader.validate(["verbose"])

    def test_validate_complex_valid_config(self, loader):
        loader.validate(
            {
                "verbose": False,
                "log_dir": "/tmp/logs",
                "log_retention_count": 0,
                "db_path": "/tmp/data.db",
                "export_dir": "/tmp/exports",
                "backup_enabled": True,
                "backup_frequency": "monthly",
                "backup_max_count": 10,
                "daemon_interval": 3600,
                "import_timeout": 2.5,
            }
        )

    def test_validate_wrong_type(self, loader):
        with pytest.raises(ConfigError, match="Invalid type for 'backup_enabled'"):
            loader.validate({"backup_enabled": "yes"})

    def test_validate_bool_rejected_for_number(self, loader):
        """Test that a YAML boolean is not accepted as a count."""
        with pytest.raises(ConfigError, match="expected int"):
            loader.validate({"backup_max_count": True})

    def test_validate_daemon_interval_types(self, loader):
        loader.validate({"daemon_interval": "1h"})
        with pytest.raises(ConfigError, match="str or int"):
            loader.validate({"daemon_interval": 1.5})

    @pytest.mark.parametrize("interval", ["soon", "5x", "0", 0, -60, "0m"])
    def test_validate_invalid_daemon_interval(self, loader, interval):
        with pytest.raises(ConfigError, match="Invalid daemon_interval"):
            loader.validate({"daemon_interval": interval})

    def test_validate_invalid_frequency(self, loader):
        with pytest.raises(ConfigError, match="Invalid backup_frequency"):
            loader.validate({"backup_frequency": "hourly"})

    def test_validate_negative_retention(self, loader):
        with pytest.raises(ConfigError, match="log_retention_count"):
            loader.validate({"log_retention_count": -1})

    def test_validate_import_timeout(self, loader):
        with pytest.raises(ConfigError, match="import_timeout"):
            loader.validate({"import_timeout": 0})

    def test_validate_unknown_keys_are_allowed(self, loader):
        loader.validate({"future_option": 1, "verbose": True})


class TestConfigGenerator:
    """Tests for default config file generation."""

    def test_generated_config_loads_as_empty(self):
        """Test that the commented-out default config parses to nothing."""
        assert yaml.safe_load(generate_default_config()) is None

    def test_generated_config_documents_options(self):
        text = generate_default_config()
        for key in ("db_path", "export_dir", "backup_frequency", "daemon_interval"):
            assert f"# {key}:" in text

    def test_save_config_file(self, tmp_path):
        path = tmp_path / "nested" / "config.yaml"
        success, error = save_config_file(path)

        assert success is True
        assert error is None
        assert path.read_text(encoding="utf-8") == generate_default_config()
        assert path.stat().st_mode & 0o777 == 0o600

    def test_save_config_file_existing(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("verbose: true\n", encoding="utf-8")

        success, error = save_config_file(path)

        assert success is False
        assert "already exists" in error
        assert path.read_text(encoding="utf-8") == "verbose: true\n"

    def test_save_config_file_overwrite(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("verbose: true\n", encoding="utf-8")

        success, _ = save_config_file(path, overwrite=True)
        assert success is True
        assert path.read_text(encoding="utf-8") == generate_default_config()


class TestBackupConfig:
    """Tests for the persisted backup settings."""

    def test_defaults(self):
        config = BackupConfig()
        assert config.enabled is True
        assert config.frequency == "daily"
        assert config.last_backup is None
        assert config.backup_count == 0
        assert config.max_backups == DEFAULT_MAX_BACKUPS == 30

    def test_invalid_frequency(self):
        with pytest.raises(BackupConfigError, match="frequency"):
            BackupConfig(frequency="hourly")

    def test_invalid_max_backups(self):
        with pytest.raises(BackupConfigError, match="max_backups"):
            BackupConfig(max_backups=0)
        with pytest.raises(BackupConfigError, match="integer"):
            BackupConfig(max_backups="10")

    def test_invalid_enabled(self):
        with pytest.raises(BackupConfigError, match="enabled"):
            BackupConfig(enabled="yes")

    def test_negative_backup_count(self):
        with pytest.raises(BackupConfigError, match="backup_count"):
            BackupConfig(backup_count=-1)

    def test_merged_returns_new_instance(self):
        config = BackupConfig()
        merged = config.merged(frequency=BackupFrequency.WEEKLY, max_backups=5)

        assert merged.frequency == "weekly"
        assert merged.max_backups == 5
        assert config.frequency == "daily"

    def test_merged_unknown_field(self):
        with pytest.raises(BackupConfigError, match="Unknown backup config field"):
            BackupConfig().merged(interval=5)

    def test_to_dict_uses_camel_case(self):
        config = BackupConfig(last_backup="2025-09-06T08:45:00Z", backup_count=2)
        assert config.to_dict() == {
            "enabled": True,
            "frequency": "daily",
            "lastBackup": "2025-09-06T08:45:00Z",
            "backupCount": 2,
            "maxBackups": 30,
        }

    def test_from_dict_round_trip(self):
        config = BackupConfig(enabled=False, frequency="monthly", max_backups=3)
        assert BackupConfig.from_dict(config.to_dict()) == config

    def test_from_dict_missing_keys_use_defaults(self):
        defaults = BackupConfig(max_backups=12)
        config = BackupConfig.from_dict({"frequency": "weekly"}, defaults)

        assert config.frequency == "weekly"
        assert config.max_backups == 12

    def test_from_dict_none(self):
        defaults = BackupConfig(frequency="monthly")
        config = BackupConfig.from_dict(None, defaults)
        assert config == defaults
        assert config is not defaults

    def test_from_dict_ignores_unknown_keys(self):
        config = BackupConfig.from_dict({"enabled": True, "autoUpload": True})
        assert config == BackupConfig()

    def test_from_dict_rejects_non_dict(self):
        with pytest.raises(BackupConfigError, match="dictionary"):
            BackupConfig.from_dict(["daily"])

    def test_defaults_from_app_config(self):
        config = backup_defaults_from_app_config(
            {"backup_enabled": False, "backup_frequency": "weekly", "backup_max_count": 8}
        )
        assert config.enabled is False
        assert config.frequency == "weekly"
        assert config.max_backups == 8

    def test_defaults_from_empty_app_config(self):
        assert backup_defaults_from_app_config({}) == BackupConfig()
