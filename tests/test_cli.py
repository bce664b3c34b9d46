"""
Tests for the CLI module.

Tests the command-line interface using Click's testing utilities.
"""

import json
from pathlib import Path
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from vehicle_data import __version__
from vehicle_data.backup.models import BackupRecord, DomainSnapshot
from vehicle_data.cli import (
    DEFAULT_CONFIG_DIR,
    cli,
    format_size,
    get_config_dir,
    get_config_file,
    show_backup_config,
    show_backup_details,
    show_backup_table,
)
from vehicle_data.config.backup_config import BackupConfig
from vehicle_data.service import init

VEHICLE = {"id": "v1", "licensePlate": "京A12345", "brand": "Toyota", "model": "Camry"}


def seed(config_dir: Path, **collections):
    """Helper to write collections into the database under config_dir."""
    service = init(config_dir=config_dir, start=False)
    for name, items in collections.items():
        service.store.set(name, items)
    return service


class TestHelperFunctions:
    """Tests for CLI helper functions."""

    def test_default_config_dir_is_in_home(self):
        assert Path.home() / ".vehicle-data" == DEFAULT_CONFIG_DIR

    def test_get_config_dir_with_custom_path(self, tmp_path):
        assert get_config_dir(str(tmp_path)) == tmp_path.resolve()

    def test_get_config_file_default(self, tmp_path):
        assert get_config_file(tmp_path, None) == tmp_path / "config.yaml"

    def test_get_config_file_explicit(self, tmp_path):
        assert get_config_file(tmp_path, "/etc/vehicle.yaml") == Path("/etc/vehicle.yaml")

    def test_format_size(self):
        assert format_size(512) == "512 B"
        assert format_size(2048) == "2.0 KB"
        assert format_size(3 * 1024 * 1024) == "3.0 MB"


class TestFormatters:
    """Tests for the backup display functions."""

    @pytest.fixture
    def record(self):
        return BackupRecord(
            id="backup_20250906_1757148300000",
            data=DomainSnapshot(vehicles=[VEHICLE], invoices=[], timestamp="t"),
            date="2025-09-06T08:45:00+00:00",
            size=2048,
        )

    def test_show_backup_table(self, record, capsys):
        show_backup_table([record])
        out = capsys.readouterr().out

        assert "backup_20250906_1757148300000" in out
        assert "2025-09-06T08:45:00" in out
        assert "2.0 KB" in out
        assert "Total: 1 backup(s)" in out

    def test_show_backup_details(self, record, capsys):
        show_backup_details(record)
        out = capsys.readouterr().out

        assert "vehicles: 1" in out
        assert "invoices: 0" in out
        assert "users: not included" in out

    def test_show_backup_config(self, capsys):
        show_backup_config(BackupConfig(enabled=False, frequency="weekly"))
        out = capsys.readouterr().out

        assert "Scheduled backups: disabled" in out
        assert "Frequency: weekly" in out
        assert "Maximum backups kept: 30" in out
        assert "Last backup: Never" in out


class TestCLIBasics:
    """Tests for the command group."""

    @pytest.fixture
    def runner(self):
        return CliRunner()

    def test_help(self, runner):
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        for command in ("backup", "backup-config", "export", "export-all", "import"):
            assert command in result.output

    def test_version(self, runner):
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_status(self, runner, tmp_path):
        seed(tmp_path, vehicles=[VEHICLE])

        result = runner.invoke(cli, ["--config-dir", str(tmp_path), "status"])

        assert result.exit_code == 0
        assert "=== Vehicle Data Status ===" in result.output
        assert "vehicles: 1" in result.output
        assert "Backups in history: 0" in result.output

    def test_invalid_config_warns(self, runner, tmp_path):
        """Test that an invalid config file is reported but not fatal."""
        (tmp_path / "config.yaml").write_text("backup_frequency: hourly\n", encoding="utf-8")

        result = runner.invoke(cli, ["--config-dir", str(tmp_path), "status"])

        assert result.exit_code == 0
        assert "Warning: Configuration error" in result.output

    def test_init_config(self, runner, tmp_path):
        result = runner.invoke(cli, ["--config-dir", str(tmp_path), "init-config"])
        assert result.exit_code == 0
        assert (tmp_path / "config.yaml").exists()

        again = runner.invoke(cli, ["--config-dir", str(tmp_path), "init-config"])
        assert again.exit_code == 1
        assert "already exists" in again.output

        forced = runner.invoke(
            cli, ["--config-dir", str(tmp_path), "init-config", "--force"]
        )
        assert forced.exit_code == 0


class TestBackupCommands:
    """Tests for the backup command group."""

    @pytest.fixture
    def runner(self):
        return CliRunner()

    def invoke(self, runner, tmp_path, *args, **kwargs):
        return runner.invoke(cli, ["--config-dir", str(tmp_path), *args], **kwargs)

    def test_list_empty(self, runner, tmp_path):
        result = self.invoke(runner, tmp_path, "backup", "list")
        assert result.exit_code == 0
        assert "No backups found." in result.output

    @pytest.mark.parametrize("interval", ["soon", "0"])
    def test_list_with_invalid_daemon_interval(self, runner, tmp_path, interval):
        """Test that a bad daemon_interval falls back to defaults with a warning."""
        (tmp_path / "config.yaml").write_text(
            f'daemon_interval: "{interval}"\n', encoding="utf-8"
        )

        result = self.invoke(runner, tmp_path, "backup", "list")

        assert result.exit_code == 0
        assert result.exception is None
        assert "Invalid daemon_interval" in result.output

    def test_create_and_list(self, runner, tmp_path):
        seed(tmp_path, vehicles=[VEHICLE])

        created = self.invoke(runner, tmp_path, "backup", "create")
        assert created.exit_code == 0
        assert "Backup created: backup_" in created.output

        listed = self.invoke(runner, tmp_path, "backup", "list")
        assert listed.exit_code == 0
        assert "Total: 1 backup(s)" in listed.output

    def test_create_failure(self, runner, tmp_path):
        with patch(
            "vehicle_data.service.LocalDataService.perform_backup", return_value=None
        ):
            result = self.invoke(runner, tmp_path, "backup", "create")

        assert result.exit_code == 1
        assert "Backup failed" in result.output

    def test_show(self, runner, tmp_path):
        record = seed(tmp_path, vehicles=[VEHICLE]).perform_backup()

        result = self.invoke(runner, tmp_path, "backup", "show", record.id)

        assert result.exit_code == 0
        assert f"Backup: {record.id}" in result.output
        assert "vehicles: 1" in result.output

    def test_show_unknown(self, runner, tmp_path):
        result = self.invoke(runner, tmp_path, "backup", "show", "backup_missing")
        assert result.exit_code == 1
        assert "Backup not found" in result.output

    def test_restore(self, runner, tmp_path):
        service = seed(tmp_path, vehicles=[VEHICLE])
        record = service.perform_backup()
        service.store.save_vehicles([])

        result = self.invoke(runner, tmp_path, "backup", "restore", record.id, "--yes")

        assert result.exit_code == 0
        assert f"Restored data from {record.id}" in result.output
        assert service.store.get_vehicles() == [VEHICLE]

    def test_restore_aborted(self, runner, tmp_path):
        service = seed(tmp_path, vehicles=[VEHICLE])
        record = service.perform_backup()
        service.store.save_vehicles([])

        result = self.invoke(
            runner, tmp_path, "backup", "restore", record.id, input="n\n"
        )

        assert result.exit_code == 1
        assert service.store.get_vehicles() == []

    def test_delete(self, runner, tmp_path):
        service = seed(tmp_path)
        record = service.perform_backup()

        result = self.invoke(runner, tmp_path, "backup", "delete", record.id, "--yes")

        assert result.exit_code == 0
        assert f"Deleted backup {record.id}" in result.output
        assert service.get_backup_history() == []

    def test_export_backup(self, runner, tmp_path):
        record = seed(tmp_path, vehicles=[VEHICLE]).perform_backup()
        out_dir = tmp_path / "out"

        result = self.invoke(
            runner, tmp_path, "backup", "export", record.id, "-o", str(out_dir)
        )

        assert result.exit_code == 0
        files = list(out_dir.glob("vehicle_backup_*.json"))
        assert len(files) == 1
        assert json.loads(files[0].read_text(encoding="utf-8"))["vehicles"] == [VEHICLE]

    def test_export_unknown_backup(self, runner, tmp_path):
        result = self.invoke(runner, tmp_path, "backup", "export", "backup_missing")
        assert result.exit_code == 1


class TestBackupConfigCommands:
    """Tests for the backup-config command group."""

    @pytest.fixture
    def runner(self):
        return CliRunner()

    def test_show_defaults(self, runner, tmp_path):
        result = runner.invoke(cli, ["--config-dir", str(tmp_path), "backup-config", "show"])
        assert result.exit_code == 0
        assert "Frequency: daily" in result.output

    def test_set_and_show(self, runner, tmp_path):
        result = runner.invoke(
            cli,
            [
                "--config-dir",
                str(tmp_path),
                "backup-config",
                "set",
                "--disabled",
                "--frequency",
                "weekly",
                "--max-backups",
                "5",
            ],
        )
        assert result.exit_code == 0
        assert "Backup settings updated." in result.output

        shown = runner.invoke(cli, ["--config-dir", str(tmp_path), "backup-config", "show"])
        assert "Scheduled backups: disabled" in shown.output
        assert "Frequency: weekly" in shown.output
        assert "Maximum backups kept: 5" in shown.output

    def test_set_nothing(self, runner, tmp_path):
        result = runner.invoke(cli, ["--config-dir", str(tmp_path), "backup-config", "set"])
        assert result.exit_code == 2
        assert "Nothing to change" in result.output

    def test_set_invalid_max_backups(self, runner, tmp_path):
        result = runner.invoke(
            cli,
            ["--config-dir", str(tmp_path), "backup-config", "set", "--max-backups", "0"],
        )
        assert result.exit_code == 1
        assert "max_backups" in result.output

    def test_config_file_seeds_defaults(self, runner, tmp_path):
        (tmp_path / "config.yaml").write_text("backup_frequency: monthly\n", encoding="utf-8")
        result = runner.invoke(cli, ["--config-dir", str(tmp_path), "backup-config", "show"])
        assert "Frequency: monthly" in result.output


class TestExportCommands:
    """Tests for export and import commands."""

    @pytest.fixture
    def runner(self):
        return CliRunner()

    def test_export_csv(self, runner, tmp_path):
        seed(tmp_path, vehicles=[VEHICLE])
        out_dir = tmp_path / "out"

        result = runner.invoke(
            cli,
            [
                "--config-dir",
                str(tmp_path),
                "export",
                "--scope",
                "vehicles",
                "--format",
                "csv",
                "-o",
                str(out_dir),
            ],
        )

        assert result.exit_code == 0
        assert "Exported to" in result.output
        files = list(out_dir.glob("vehicle_management_export_vehicles_*.csv"))
        assert len(files) == 1
        content = files[0].read_bytes()
        assert content.startswith("\ufeff".encode("utf-8"))
        assert "京A12345" in content.decode("utf-8")

    def test_export_defaults_to_config_dir(self, runner, tmp_path):
        """Test that exports land in <config-dir>/exports without -o."""
        result = runner.invoke(cli, ["--config-dir", str(tmp_path), "export"])

        assert result.exit_code == 0
        assert list((tmp_path / "exports").glob("vehicle_management_export_all_*.json"))

    def test_export_excel(self, runner, tmp_path):
        result = runner.invoke(
            cli,
            ["--config-dir", str(tmp_path), "export", "-s", "all", "-F", "excel", "-o", str(tmp_path)],
        )
        assert result.exit_code == 0
        assert list(tmp_path.glob("*.xls"))

    def test_export_invalid_scope(self, runner, tmp_path):
        result = runner.invoke(cli, ["--config-dir", str(tmp_path), "export", "-s", "users"])
        assert result.exit_code == 2

    def test_export_all(self, runner, tmp_path):
        seed(tmp_path, users=[{"id": "u1"}])

        result = runner.invoke(
            cli, ["--config-dir", str(tmp_path), "export-all", "-o", str(tmp_path / "out")]
        )

        assert result.exit_code == 0
        files = list((tmp_path / "out").glob("vehicle_management_export_*.json"))
        assert json.loads(files[0].read_text(encoding="utf-8"))["users"] == [{"id": "u1"}]

    def test_export_record(self, runner, tmp_path):
        seed(tmp_path, vehicles=[VEHICLE])

        result = runner.invoke(
            cli,
            ["--config-dir", str(tmp_path), "export-record", "vehicle", "v1", "-o", str(tmp_path)],
        )

        assert result.exit_code == 0
        files = list(tmp_path.glob("vehicle_management_single_vehicle_v1_*.json"))
        assert json.loads(files[0].read_text(encoding="utf-8"))["record"] == VEHICLE

    def test_import(self, runner, tmp_path):
        service = seed(tmp_path, users=[{"id": "u1"}])
        import_file = tmp_path / "vehicles.json"
        import_file.write_text(json.dumps({"vehicles": [VEHICLE]}), encoding="utf-8")

        result = runner.invoke(
            cli, ["--config-dir", str(tmp_path), "import", str(import_file), "--yes"]
        )

        assert result.exit_code == 0
        assert f"Imported {import_file}" in result.output
        assert service.store.get_vehicles() == [VEHICLE]
        assert service.store.get_users() == [{"id": "u1"}]

    def test_import_invalid_file(self, runner, tmp_path):
        import_file = tmp_path / "bad.json"
        import_file.write_text("not json", encoding="utf-8")

        result = runner.invoke(
            cli, ["--config-dir", str(tmp_path), "import", str(import_file), "--yes"]
        )

        assert result.exit_code == 1
        assert "not valid JSON" in result.output


class TestDaemonCommands:
    """Tests for the daemon command group."""

    @pytest.fixture
    def runner(self):
        return CliRunner()

    def test_start_runs_scheduler(self, runner, tmp_path):
        with patch(
            "vehicle_data.daemon.scheduler.BackupScheduler.run_forever"
        ) as mock_run:
            result = runner.invoke(
                cli, ["--config-dir", str(tmp_path), "daemon", "start", "--interval", "5m"]
            )

        assert result.exit_code == 0
        assert "5m check interval" in result.output
        mock_run.assert_called_once()

    def test_start_invalid_interval(self, runner, tmp_path):
        result = runner.invoke(
            cli, ["--config-dir", str(tmp_path), "daemon", "start", "--interval", "soon"]
        )
        assert result.exit_code == 1
        assert "Invalid interval format" in result.output
