"""CLI output formatting functions.

This module contains functions for displaying backup history, backup
details and backup settings on the command line.
"""

from typing import TYPE_CHECKING

import click

from vehicle_data.storage.collections import DOMAIN_COLLECTIONS

if TYPE_CHECKING:
    from vehicle_data.backup.models import BackupRecord
    from vehicle_data.config.backup_config import BackupConfig


def format_size(size: int) -> str:
    """Human-readable byte count."""
    if size < 1024:
        return f"{size} B"
    if size < 1024 * 1024:
        return f"{size / 1024:.1f} KB"
    return f"{size / (1024 * 1024):.1f} MB"


def show_backup_table(records: list["BackupRecord"]) -> None:
    """
    Display the backup history as a table, most recent first.

    Args:
        records: Backups to list
    """
    click.echo(f"{'ID':<36} {'Date':<20} {'Size':>10}")
    click.echo("-" * 68)

    for record in records:
        click.echo(f"{record.id:<36} {record.date[:19]:<20} {format_size(record.size):>10}")

    click.echo(f"\nTotal: {len(records)} backup(s)")


def show_backup_details(record: "BackupRecord") -> None:
    """Display one backup with per-collection record counts."""
    click.echo(f"Backup: {record.id}")
    click.echo(f"Date: {record.date}")
    click.echo(f"Size: {format_size(record.size)}")
    click.echo(f"Snapshot version: {record.data.version}")
    click.echo()

    present = record.data.collections()
    for name in DOMAIN_COLLECTIONS:
        if name in present:
            click.echo(f"  {name}: {len(present[name])}")
        else:
            click.echo(f"  {name}: " + click.style("not included", fg="yellow"))


def show_backup_config(config: "BackupConfig") -> None:
    """Display backup schedule and retention settings."""
    enabled = (
        click.style("enabled", fg="green")
        if config.enabled
        else click.style("disabled", fg="yellow")
    )
    click.echo(f"Scheduled backups: {enabled}")
    click.echo(f"Frequency: {config.frequency}")
    click.echo(f"Maximum backups kept: {config.max_backups}")
    click.echo(f"Backups taken: {config.backup_count}")
    click.echo(f"Last backup: {config.last_backup or 'Never'}")
