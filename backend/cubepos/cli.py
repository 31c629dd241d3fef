# Overview: Flask CLI command groups for billing reminders, stock scans and maintenance.

# backend/cubepos/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to cubepos (PowerShell: $env:FLASK_APP="cubepos").
# - Use: python -m flask <group> <command> [options]
#
# Billing:
# - python -m flask billing send-reminders
#   Run the reminder batch once over ACTIVE rentals (cron entry point).
#
# Stock:
# - python -m flask stock check
#   Scan all tenant variants and email low/out-of-stock alerts.
#
# System:
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).

import click
from flask import current_app
from flask.cli import with_appcontext

from .extensions import db, get_clock, get_notifier
from .services.inventory_service import perform_stock_check
from .services.reminder_service import build_scheduler
from .services.stock_alert_service import StockAlertService


@click.group('billing')
def billing_group():
    """Rent billing commands."""


@billing_group.command('send-reminders')
@with_appcontext
def send_reminders():
    """Send due, upcoming and overdue rent reminders."""
    scheduler = build_scheduler(current_app.config, get_notifier(), clock=get_clock())
    stats = scheduler.run()

    click.echo(f"Processed: {stats.processed}")
    click.echo(f"Sent:      {stats.sent}")
    click.echo(f"Skipped:   {stats.skipped}")
    click.echo(f"Errors:    {stats.errors}")
    for entry in stats.results:
        if entry["status"] == "error":
            click.echo(f"  FAIL rental {entry['rental_id']}: {entry['error']}")
        for reminder in entry.get("reminders", []):
            mark = "PASS" if reminder["email_sent"] else "FAIL"
            click.echo(
                f"  {mark} rental {entry['rental_id']} {reminder['reminder_type']} "
                f"due {reminder['due_date']} amount {reminder['amount']}"
            )


@click.group('stock')
def stock_group():
    """Inventory stock commands."""


@stock_group.command('check')
@with_appcontext
def stock_check():
    """Email alerts for every low or out-of-stock variant."""
    stats = perform_stock_check(StockAlertService(get_notifier()))
    for key, value in stats.items():
        click.echo(f"{key}: {value}")


@click.group('system')
def system_group():
    """System maintenance commands."""


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete.")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(billing_group)
    app.cli.add_command(stock_group)
    app.cli.add_command(system_group)
