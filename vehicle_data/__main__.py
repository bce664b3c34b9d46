"""
Entry point for running vehicle_data as a module.

Usage:
    python -m vehicle_data --help
    python -m vehicle_data backup create
    python -m vehicle_data export --scope vehicles --format csv
"""

from vehicle_data.cli import cli

if __name__ == "__main__":
    cli()
