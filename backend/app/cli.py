# Overview: Flask CLI command groups for bootstrap and daily revenue maintenance.

# backend/app/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create any missing tables (idempotent).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Daily revenue:
# - python -m flask revenue show --date 2024-05-01
#   Print the aggregate for a day (defaults to today).
# - python -m flask revenue resync-spending --date 2024-05-01
#   Recompute total_spending / net_revenue for a day from its spendings.

import click
from flask.cli import with_appcontext

from .extensions import db
from .money import format_idr
from .services import revenue_service
from .time_utils import business_today
from .validation import ValidationError, coerce_date


def _day_option(value):
    if not value:
        return business_today()
    try:
        return coerce_date(value, "date")
    except ValidationError as exc:
        raise click.BadParameter(str(exc))


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Database tables created.")


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


@click.group('revenue')
def revenue_group():
    """Daily revenue aggregate commands."""


@revenue_group.command('show')
@click.option('--date', 'day', default=None, help='YYYY-MM-DD (default: today)')
@with_appcontext
def show_revenue(day):
    """Print the daily revenue aggregate for a day."""
    day = _day_option(day)
    result = revenue_service.get_daily_revenue(day)
    if not result.success:
        click.echo(f"FAIL {result.error} ({day.isoformat()})")
        raise SystemExit(1)

    report = result.data
    click.echo(f"Date:          {report['date']}")
    click.echo(f"Orders:        {report['total_orders']}")
    click.echo(f"Revenue:       {format_idr(report['total_revenue'])}")
    click.echo(f"Spending:      {format_idr(report['total_spending'])}")
    click.echo(f"Net revenue:   {format_idr(report['net_revenue'])}")


@revenue_group.command('resync-spending')
@click.option('--date', 'day', default=None, help='YYYY-MM-DD (default: today)')
@with_appcontext
def resync_spending(day):
    """Recompute total_spending and net_revenue for a day."""
    day = _day_option(day)
    result = revenue_service.resync_spending(day)
    if not result.success:
        click.echo(f"FAIL {result.error}")
        raise SystemExit(1)
    if result.data is None:
        click.echo(f"SKIP No revenue aggregate for {day.isoformat()}")
        return
    click.echo(
        f"PASS {day.isoformat()}: spending {format_idr(result.data['total_spending'])}, "
        f"net {format_idr(result.data['net_revenue'])}"
    )


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(revenue_group)
