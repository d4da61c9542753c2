# Overview: Flask CLI command groups for bootstrap and inspection.

# backend/bevstock/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create all tables that do not exist yet (use `flask db upgrade` for migrations).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Stock inspection:
# - python -m flask stock list [--low-only]
#   Print every product with received/sold/adjustments, current stock and status.
#
# Audit inspection:
# - python -m flask audit list [--entity sale] [--limit 20]
#   Print the most recent audit rows.

import json

import click
from flask.cli import with_appcontext

from .extensions import db
from .services.audit_service import list_audit_logs
from .services.reporting_service import low_stock, products_with_stock


@click.group('system')
def system_group():
    """Database bootstrap commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables (idempotent)."""
    from . import models  # noqa: F401

    db.create_all()
    click.echo("PASS Tables created.")


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


@click.group('stock')
def stock_group():
    """Derived stock inspection."""


@stock_group.command('list')
@click.option('--low-only', is_flag=True, help='Only LOW and NEGATIVE products')
@with_appcontext
def list_stock(low_only):
    rows = low_stock() if low_only else products_with_stock()
    if not rows:
        click.echo("No products.")
        return

    click.echo(f"{'ID':>5}  {'NAME':<30} {'RECV':>6} {'SOLD':>6} {'ADJ':>6} {'STOCK':>6}  STATUS")
    for r in rows:
        click.echo(
            f"{r['id']:>5}  {r['name'][:30]:<30} {r['received']:>6} {r['sold']:>6} "
            f"{r['adjustments']:>6} {r['current_stock']:>6}  {r['status']}"
        )


@click.group('audit')
def audit_group():
    """Audit trail inspection."""


@audit_group.command('list')
@click.option('--entity', default=None, help='product, stock_entry, sale, note')
@click.option('--limit', default=20, show_default=True, type=int)
@with_appcontext
def list_audit(entity, limit):
    rows = list_audit_logs(entity=entity, limit=limit)
    if not rows:
        click.echo("No audit entries.")
        return
    for r in rows:
        details = json.dumps(r.details, sort_keys=True) if r.details else ""
        click.echo(f"{r.created_at:%Y-%m-%d %H:%M:%S}  {r.action:<15} {r.entity}:{r.entity_id}  user={r.user_id or '-'}  {details}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(stock_group)
    app.cli.add_command(audit_group)
