"""
Command-line interface for vehicle_data.

Provides CLI commands for local backups, backup settings, exports and
imports of the vehicle-shop data, plus a foreground backup scheduler.

Usage:
    # Show help
    vehicle-data --help

    # Backups
    vehicle-data backup create
    vehicle-data backup list
    vehicle-data backup restore backup_20250906_1757148300000

    # Exports
    vehicle-data export --scope vehicles --format csv
    vehicle-data export-all

    # Scheduled backups
    vehicle-data daemon start --interval 1h
"""

import sys
from pathlib import Path
from typing import NoReturn

import click

from vehicle_data import __version__
from vehicle_data.backup.importer import ImportDataError
from vehicle_data.cli.formatters import (
    format_size,
    show_backup_config,
    show_backup_details,
    show_backup_table,
)
from vehicle_data.config.backup_config import VALID_FREQUENCIES, BackupConfigError
from vehicle_data.config.generator import save_config_file
from vehicle_data.config.loader import DEFAULT_CONFIG_FILE, ConfigError, ConfigLoader
from vehicle_data.export.formatter import RECORD_TYPES, VALID_FORMATS, VALID_SCOPES
from vehicle_data.export.sinks import DirectorySink
from vehicle_data.service import LocalDataService, init
from vehicle_data.storage.collections import DOMAIN_COLLECTIONS
from vehicle_data.storage.db import StorageError
from vehicle_data.utils import resolve_config_dir, resolve_db_path
from vehicle_data.utils.logging import cleanup_old_logs, get_logger, setup_logging


def get_config_dir(config_dir: str | None) -> Path:
    """Get the configuration directory path."""
    return resolve_config_dir(config_dir)


def get_config_file(config_dir: Path, config_file: str | None) -> Path:
    """Get the configuration file path."""
    if config_file:
        return Path(config_file)
    return config_dir / DEFAULT_CONFIG_FILE


def open_service(ctx: click.Context, output_dir: str | None = None) -> LocalDataService:
    """Build the service for a one-shot command; the scheduler is not started."""
    sink = DirectorySink(Path(output_dir)) if output_dir else None
    return init(
        config_dir=ctx.obj["config_dir"],
        app_config=ctx.obj["config"],
        sink=sink,
        start=False,
    )


def fail(message: str) -> NoReturn:
    """Print an error in red and exit with status 1."""
    click.echo(click.style(f"Error: {message}", fg="red"), err=True)
    sys.exit(1)


output_dir_option = click.option(
    "--output-dir",
    "-o",
    type=click.Path(file_okay=False, dir_okay=True),
    default=None,
    help="Directory for the exported file (default: export_dir or ~/.vehicle-data/exports).",
)


@click.group()
@click.version_option(version=__version__, prog_name="vehicle-data")
@click.option(
    "--verbose", "-v", is_flag=True, help="Enable verbose output with detailed logging."
)
@click.option(
    "--config-dir",
    "-c",
    type=click.Path(exists=False, file_okay=False, dir_okay=True),
    envvar="VEHICLE_DATA_CONFIG_DIR",
    help="Configuration directory path (default: ~/.vehicle-data).",
)
@click.option(
    "--config-file",
    "-f",
    type=click.Path(exists=False, file_okay=True, dir_okay=False),
    envvar="VEHICLE_DATA_CONFIG_FILE",
    help="Configuration file path (default: <config-dir>/config.yaml).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    config_dir: str | None,
    config_file: str | None,
) -> None:
    """
    Vehicle-shop data backup and export.

    Keeps versioned local backups of vehicles, maintenance records, invoices
    and users, and exports them as JSON, CSV or Excel files.
    """
    ctx.ensure_object(dict)

    resolved_config_dir = get_config_dir(config_dir)
    resolved_config_file = get_config_file(resolved_config_dir, config_file)

    ctx.obj["config_dir"] = resolved_config_dir
    ctx.obj["config_file"] = resolved_config_file

    config = {}
    try:
        loader = ConfigLoader(config_dir=resolved_config_dir)
        config = loader.load_from_file(resolved_config_file)
        if config:
            loader.validate(config)
    except ConfigError as e:
        # Commands still work with defaults
        click.echo(
            click.style(f"Warning: Configuration error: {e}", fg="yellow"), err=True
        )
        config = {}

    ctx.obj["config"] = config

    # CLI flag takes precedence over config file
    effective_verbose = verbose or config.get("verbose", False)
    ctx.obj["verbose"] = effective_verbose

    log_dir = Path(config["log_dir"]) if config.get("log_dir") else resolved_config_dir / "logs"
    setup_logging(verbose=effective_verbose, log_dir=log_dir, enable_file_logging=True)

    log_retention = config.get("log_retention_count", 10)
    if log_retention > 0:
        cleanup_old_logs(log_dir=log_dir, keep_count=log_retention)


# =============================================================================
# Status Command
# =============================================================================


@cli.command("status")
@click.pass_context
def status_command(ctx: click.Context) -> None:
    """
    Show stored data and backup status.

    Example:

        vehicle-data status
    """
    logger = get_logger(__name__)
    config_dir = ctx.obj["config_dir"]

    try:
        service = open_service(ctx)

        click.echo("=== Vehicle Data Status ===\n")
        click.echo(f"Configuration directory: {config_dir}")
        click.echo(
            f"Database: {resolve_db_path(config_dir, ctx.obj['config'].get('db_path'))}"
        )
        click.echo()

        click.echo("=== Stored Data ===\n")
        for name in DOMAIN_COLLECTIONS:
            click.echo(f"{name}: {service.store.count(name)}")
        click.echo()

        click.echo("=== Backups ===\n")
        show_backup_config(service.get_backup_config())
        history = service.get_backup_history()
        click.echo(f"Backups in history: {len(history)}")
        if history:
            latest = history[0]
            click.echo(
                f"Latest: {latest.id} ({latest.date[:19]}, {format_size(latest.size)})"
            )

    except StorageError as e:
        logger.exception(f"Error getting status: {e}")
        fail(str(e))


# =============================================================================
# Init-Config Command
# =============================================================================


@cli.command("init-config")
@click.option(
    "--force",
    "-f",
    is_flag=True,
    help="Overwrite existing configuration file if it exists.",
)
@click.pass_context
def init_config_command(ctx: click.Context, force: bool) -> None:
    """
    Generate a default configuration file.

    Creates a configuration file with all available options documented
    and commented out.

    Examples:

        # Create config file (fails if already exists)
        vehicle-data init-config

        # Overwrite existing config file
        vehicle-data init-config --force
    """
    logger = get_logger(__name__)
    config_file = ctx.obj["config_file"]

    click.echo(f"Creating configuration file: {config_file}")

    success, error = save_config_file(config_file, overwrite=force)

    if success:
        click.echo(click.style("Configuration file created successfully!", fg="green"))
        click.echo(f"\nLocation: {config_file}")
        click.echo("\nNext steps:")
        click.echo("1. Edit the file to uncomment and configure desired options")
        click.echo("2. Run 'vehicle-data --help' to see available commands")
    else:
        logger.error(f"Failed to create configuration file: {error}")
        fail(str(error))


# =============================================================================
# Backup Commands
# =============================================================================


@cli.group("backup")
@click.pass_context
def backup_group(ctx: click.Context) -> None:
    """
    Create, inspect, restore and delete local backups.

    Examples:

        vehicle-data backup create
        vehicle-data backup list
        vehicle-data backup show <backup-id>
        vehicle-data backup restore <backup-id>
    """
    pass


@backup_group.command("create")
@click.pass_context
def backup_create_command(ctx: click.Context) -> None:
    """Snapshot all collections into the backup history."""
    try:
        service = open_service(ctx)
    except StorageError as e:
        fail(str(e))

    record = service.perform_backup()
    if record is None:
        fail("Backup failed, see the log for details.")

    click.echo(click.style(f"Backup created: {record.id}", fg="green"))
    click.echo(f"Size: {format_size(record.size)}")


@backup_group.command("list")
@click.pass_context
def backup_list_command(ctx: click.Context) -> None:
    """List backups, most recent first."""
    try:
        service = open_service(ctx)
    except StorageError as e:
        fail(str(e))

    history = service.get_backup_history()
    if not history:
        click.echo("No backups found.")
        click.echo("Run 'vehicle-data backup create' to take one.")
        return

    show_backup_table(history)
    click.echo("\nTo restore, use: vehicle-data backup restore <backup-id>")


@backup_group.command("show")
@click.argument("backup_id")
@click.pass_context
def backup_show_command(ctx: click.Context, backup_id: str) -> None:
    """Show one backup with its record counts."""
    try:
        service = open_service(ctx)
    except StorageError as e:
        fail(str(e))

    record = service.manager.get_backup(backup_id)
    if record is None:
        fail(f"Backup not found: {backup_id}")

    show_backup_details(record)


@backup_group.command("restore")
@click.argument("backup_id")
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation prompt.")
@click.pass_context
def backup_restore_command(ctx: click.Context, backup_id: str, yes: bool) -> None:
    """
    Overwrite stored collections with a backup.

    Only the collections included in the backup are replaced.
    """
    try:
        service = open_service(ctx)
    except StorageError as e:
        fail(str(e))

    record = service.manager.get_backup(backup_id)
    if record is None:
        fail(f"Backup not found: {backup_id}")

    show_backup_details(record)
    click.echo()

    if not yes:
        click.confirm(
            "Replace the current data with this backup? This cannot be undone",
            abort=True,
        )

    if not service.restore_from_backup(backup_id):
        fail(f"Restore from {backup_id} failed, see the log for details.")

    click.echo(click.style(f"Restored data from {backup_id}", fg="green"))


@backup_group.command("delete")
@click.argument("backup_id")
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation prompt.")
@click.pass_context
def backup_delete_command(ctx: click.Context, backup_id: str, yes: bool) -> None:
    """Remove a backup from the history."""
    try:
        service = open_service(ctx)
    except StorageError as e:
        fail(str(e))

    if not yes:
        click.confirm(f"Delete backup {backup_id}?", abort=True)

    if not service.delete_backup(backup_id):
        fail(f"Failed to delete {backup_id}, see the log for details.")

    click.echo(click.style(f"Deleted backup {backup_id}", fg="green"))


@backup_group.command("export")
@click.argument("backup_id")
@output_dir_option
@click.pass_context
def backup_export_command(
    ctx: click.Context, backup_id: str, output_dir: str | None
) -> None:
    """Write one backup's snapshot to a JSON file."""
    try:
        service = open_service(ctx, output_dir)
    except StorageError as e:
        fail(str(e))

    if not service.export_backup(backup_id):
        fail(f"Could not export backup {backup_id}.")

    click.echo(click.style(f"Backup exported to {service.last_export}", fg="green"))


# =============================================================================
# Backup-Config Commands
# =============================================================================


@cli.group("backup-config")
@click.pass_context
def backup_config_group(ctx: click.Context) -> None:
    """
    Show or change backup schedule and retention.

    Examples:

        vehicle-data backup-config show
        vehicle-data backup-config set --frequency weekly --max-backups 10
        vehicle-data backup-config set --disabled
    """
    pass


@backup_config_group.command("show")
@click.pass_context
def backup_config_show_command(ctx: click.Context) -> None:
    """Show the current backup settings."""
    try:
        service = open_service(ctx)
    except StorageError as e:
        fail(str(e))

    show_backup_config(service.get_backup_config())


@backup_config_group.command("set")
@click.option(
    "--enabled/--disabled",
    "enabled",
    default=None,
    help="Turn scheduled backups on or off.",
)
@click.option(
    "--frequency",
    type=click.Choice(sorted(VALID_FREQUENCIES)),
    default=None,
    help="How often scheduled backups run.",
)
@click.option(
    "--max-backups",
    type=int,
    default=None,
    help="Maximum number of backups kept.",
)
@click.pass_context
def backup_config_set_command(
    ctx: click.Context,
    enabled: bool | None,
    frequency: str | None,
    max_backups: int | None,
) -> None:
    """Change backup settings; unspecified settings are kept."""
    changes = {
        key: value
        for key, value in (
            ("enabled", enabled),
            ("frequency", frequency),
            ("max_backups", max_backups),
        )
        if value is not None
    }
    if not changes:
        raise click.UsageError(
            "Nothing to change. Use --enabled/--disabled, --frequency or --max-backups."
        )

    try:
        service = open_service(ctx)
        config = service.manager.update_config(**changes)
    except (BackupConfigError, StorageError) as e:
        fail(str(e))

    click.echo(click.style("Backup settings updated.", fg="green"))
    show_backup_config(config)


# =============================================================================
# Export Commands
# =============================================================================


@cli.command("export")
@click.option(
    "--scope",
    "-s",
    type=click.Choice(VALID_SCOPES),
    default="all",
    show_default=True,
    help="Which data to export.",
)
@click.option(
    "--format",
    "-F",
    "fmt",
    type=click.Choice(VALID_FORMATS),
    default="json",
    show_default=True,
    help="Output format.",
)
@output_dir_option
@click.pass_context
def export_command(
    ctx: click.Context, scope: str, fmt: str, output_dir: str | None
) -> None:
    """
    Export data as JSON, CSV or Excel.

    Empty collections are exported with placeholder records.

    Examples:

        vehicle-data export --scope vehicles --format csv
        vehicle-data export --scope all --format excel -o ./reports
    """
    try:
        service = open_service(ctx, output_dir)
    except StorageError as e:
        fail(str(e))

    if not service.export_data_as_format(scope, fmt):
        fail(f"Export of {scope} as {fmt} failed, see the log for details.")

    click.echo(click.style(f"Exported to {service.last_export}", fg="green"))


@cli.command("export-all")
@output_dir_option
@click.pass_context
def export_all_command(ctx: click.Context, output_dir: str | None) -> None:
    """Export all collections, users included, as re-importable JSON."""
    try:
        service = open_service(ctx, output_dir)
    except StorageError as e:
        fail(str(e))

    if not service.export_all_data():
        fail("Export failed, see the log for details.")

    click.echo(click.style(f"Exported to {service.last_export}", fg="green"))


@cli.command("export-record")
@click.argument("record_type", type=click.Choice(RECORD_TYPES))
@click.argument("record_id")
@output_dir_option
@click.pass_context
def export_record_command(
    ctx: click.Context, record_type: str, record_id: str, output_dir: str | None
) -> None:
    """
    Export one vehicle, invoice or maintenance record as JSON.

    Example:

        vehicle-data export-record vehicle v-1024
    """
    try:
        service = open_service(ctx, output_dir)
    except StorageError as e:
        fail(str(e))

    if not service.export_single_record(record_id, record_type):
        fail("Export failed, see the log for details.")

    click.echo(click.style(f"Exported to {service.last_export}", fg="green"))


# =============================================================================
# Import Command
# =============================================================================


@cli.command("import")
@click.argument("file", type=click.Path(dir_okay=False))
@click.option(
    "--timeout",
    type=float,
    default=None,
    help="Seconds allowed for reading the file (default: import_timeout or 30).",
)
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation prompt.")
@click.pass_context
def import_command(
    ctx: click.Context, file: str, timeout: float | None, yes: bool
) -> None:
    """
    Import collections from a JSON export.

    Each of vehicles, maintenance, invoices and users found in FILE replaces
    the stored collection; the others are left unchanged.
    """
    try:
        service = open_service(ctx)
    except StorageError as e:
        fail(str(e))

    if not yes:
        click.confirm(f"Replace stored data with the contents of {file}?", abort=True)

    try:
        service.import_data(file, timeout)
    except ImportDataError as e:
        fail(str(e))

    click.echo(click.style(f"Imported {file}", fg="green"))


# =============================================================================
# Daemon Commands
# =============================================================================


@cli.group("daemon")
@click.pass_context
def daemon_group(ctx: click.Context) -> None:
    """
    Run scheduled backups.

    Examples:

        # Check every hour (default) until Ctrl+C
        vehicle-data daemon start

        # Check every 10 minutes
        vehicle-data daemon start --interval 10m
    """
    pass


@daemon_group.command("start")
@click.option(
    "--interval",
    "-i",
    default=None,
    help=(
        "How often to check whether a backup is due (e.g., '30s', '5m', '1h'). "
        "Defaults to config value or '1h'."
    ),
)
@click.pass_context
def daemon_start_command(ctx: click.Context, interval: str | None) -> None:
    """
    Run the backup scheduler in the foreground.

    Checks once at startup, then at every interval, and takes a backup
    whenever one is due. Stops on SIGTERM or Ctrl+C.
    """
    logger = get_logger(__name__)
    config = ctx.obj.get("config", {})

    from vehicle_data.daemon import DaemonError, parse_interval

    effective_interval = interval or config.get("daemon_interval", "1h")
    try:
        interval_seconds = parse_interval(effective_interval)
    except ValueError as e:
        fail(str(e))

    try:
        service = open_service(ctx)
        service.scheduler.check_interval = interval_seconds

        click.echo(f"Starting backup scheduler with {effective_interval} check interval...")
        click.echo("Running in foreground mode (Ctrl+C to stop)")
        if ctx.obj["verbose"]:
            click.echo(f"  Config directory: {ctx.obj['config_dir']}")
            click.echo(f"  Interval: {interval_seconds} seconds")

        service.scheduler.run_forever()

        stats = service.scheduler.stats
        click.echo(
            f"Scheduler stopped after {stats.check_count} check(s), "
            f"{stats.backup_count} backup(s), {stats.backup_error_count} error(s)."
        )

    except (DaemonError, StorageError) as e:
        logger.exception(f"Scheduler error: {e}")
        fail(str(e))
