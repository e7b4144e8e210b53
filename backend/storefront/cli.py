# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/storefront/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to storefront (PowerShell: $env:FLASK_APP="storefront").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init-db
#   Create all tables that do not exist yet (use `flask db upgrade` for migrations).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Inventory inspection:
# - python -m flask inventory low-stock
#   List active records whose stock is below their threshold.
# - python -m flask inventory audit [--inventory-id ID]
#   Replay stock history against stock counters; exits 1 on any mismatch.
#
# Auth:
# - python -m flask auth issue-token --subject user-1 --role user
#   Print a signed bearer token for local testing.

import click
from flask.cli import with_appcontext

from .extensions import db
from .services import inventory_service, session_service


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create missing tables."""
    db.create_all()
    click.echo("PASS Database tables created")


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
    click.echo("BUILD  Creating tables...")
    db.create_all()
    click.echo("PASS Database reset complete")


@click.group('inventory')
def inventory_group():
    """Inventory inspection commands."""


@inventory_group.command('low-stock')
@with_appcontext
def low_stock():
    """List records below their reorder threshold."""
    records = inventory_service.list_low_stock()
    if not records:
        click.echo("PASS No low-stock records")
        return

    click.echo(f"{'Inventory ID':<38} {'Stock':>6} {'Thresh':>6}  Variant")
    click.echo("-" * 90)
    for record in records:
        click.echo(f"{record.inventory_id:<38} {record.stock:>6} {record.threshold:>6}  {record.describe()}")


@inventory_group.command('audit')
@click.option('--inventory-id', default=None, help='Audit a single record')
@with_appcontext
def audit(inventory_id):
    """
    Replay stock history against stock counters.

    Run after a crash between stock reservation and order persistence:
    'sold' entries carry the order_id in their notes.
    """
    findings = inventory_service.audit_inventory(inventory_id)
    if not findings:
        click.echo("PASS Stock history is consistent")
        return

    for finding in findings:
        click.echo(f"FAIL {finding['inventory_id']} {finding['description']}")
        click.echo(f"     stock={finding['stock']} replayed={finding['replayed_stock']}")
        for problem in finding['problems']:
            click.echo(f"     - {problem}")
    raise SystemExit(1)


@click.group('auth')
def auth_group():
    """Developer auth helpers."""


@auth_group.command('issue-token')
@click.option('--subject', required=True, help='user_id or admin_id')
@click.option('--role', type=click.Choice(session_service.ROLES), default='user')
@with_appcontext
def issue_token(subject, role):
    """Print a signed bearer token."""
    click.echo(session_service.issue_token(subject, role))


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(inventory_group)
    app.cli.add_command(auth_group)
