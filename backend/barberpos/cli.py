# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/barberpos/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create all tables (idempotent; prefer `flask db upgrade` for managed schemas).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Tenant management:
# - python -m flask tenants list
#   List all tenants.
# - python -m flask tenants create --name "Barber Shop" --code "BSHOP"
#   Create a new tenant.
# - python -m flask tenants add-provider --tenant-id 1 --name "Ana"
#   Register a provider (barber) for a tenant.
#
# Till inspection:
# - python -m flask tills list --tenant-id 1 [--status OPEN] [--limit 20]
#   List recent tills with expected cash and variance.
#
# Reconciliation:
# - python -m flask sales reconcile --tenant-id 1 --sale-id 42
#   Re-run the stock/till/commission side effects of a sale (idempotent).

import click
from flask.cli import with_appcontext

from .extensions import db
from .errors import SettlementError
from .models import Tenant, Provider
from .services import register_service, sales_service, tenant_service


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Database schema created.")


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


@click.group('tenants')
def tenants_group():
    """Tenant (barbershop) management commands."""


@tenants_group.command('list')
@with_appcontext
def list_tenants():
    """List all tenants."""
    tenants = db.session.query(Tenant).order_by(Tenant.id).all()

    if not tenants:
        click.echo("No tenants found.")
        return

    click.echo("\n" + "="*70)
    click.echo(f"{'ID':<5} {'Name':<30} {'Code':<15} {'Active':<8} {'Providers'}")
    click.echo("="*70)

    for tenant in tenants:
        provider_count = db.session.query(Provider).filter_by(tenant_id=tenant.id).count()
        active_str = "Yes" if tenant.is_active else "No"

        click.echo(f"{tenant.id:<5} {tenant.name:<30} {tenant.code or '-':<15} {active_str:<8} {provider_count}")

    click.echo("="*70 + "\n")


@tenants_group.command('create')
@click.option('--name', required=True, help='Tenant name')
@click.option('--code', required=True, help='Short code (unique)')
@with_appcontext
def create_tenant_cli(name, code):
    """Create a new tenant."""
    existing = db.session.query(Tenant).filter_by(code=code).first()
    if existing:
        click.echo(f"FAIL Tenant with code '{code}' already exists")
        return

    tenant = tenant_service.create_tenant(name, code)
    click.echo(f"PASS Created tenant: {tenant.name} (ID: {tenant.id}, Code: {tenant.code})")


@tenants_group.command('add-provider')
@click.option('--tenant-id', type=int, required=True, help='Tenant ID')
@click.option('--name', required=True, help='Provider name')
@with_appcontext
def add_provider_cli(tenant_id, name):
    """Register a provider (barber) for a tenant."""
    try:
        provider = tenant_service.create_provider(tenant_id, name)
    except SettlementError as e:
        click.echo(f"FAIL {e.message}")
        return
    click.echo(f"PASS Created provider: {provider.name} (ID: {provider.id}, Tenant: {tenant_id})")


@click.group('tills')
def tills_group():
    """Till inspection commands."""


@tills_group.command('list')
@click.option('--tenant-id', type=int, required=True, help='Tenant ID')
@click.option('--status', type=click.Choice(['OPEN', 'CLOSED'], case_sensitive=False), help='Filter by status')
@click.option('--limit', type=int, default=20, show_default=True, help='Max rows')
@with_appcontext
def list_tills_cli(tenant_id, status, limit):
    """List recent tills with expected cash and variance."""
    tills, total = register_service.list_tills(tenant_id, status=status, limit=limit)

    if not tills:
        click.echo("No tills found.")
        return

    minor_limit = register_service.minor_variance_limit()

    click.echo("\n" + "="*100)
    click.echo(f"{'ID':<6} {'Date':<12} {'Shift':<10} {'Status':<8} {'Responsible':<18} {'Expected':>10} {'Counted':>10} {'Variance':>10} {'Severity'}")
    click.echo("="*100)

    for till in tills:
        counted = till.counted_cents if till.counted_cents is not None else "-"
        variance = till.variance_cents if till.variance_cents is not None else "-"
        severity = till.variance_severity(minor_limit) or "-"
        click.echo(
            f"{till.id:<6} {till.business_date.isoformat():<12} {till.shift:<10} {till.status:<8} "
            f"{till.responsible[:18]:<18} {till.expected_cents:>10} {counted:>10} {variance:>10} {severity}"
        )

    click.echo("="*100)
    click.echo(f"Showing {len(tills)} of {total}\n")


@click.group('sales')
def sales_group():
    """Sale maintenance commands."""


@sales_group.command('reconcile')
@click.option('--tenant-id', type=int, required=True, help='Tenant ID')
@click.option('--sale-id', type=int, required=True, help='Sale ID')
@with_appcontext
def reconcile_sale_cli(tenant_id, sale_id):
    """Re-run a sale's side effects; already-applied effects are left alone."""
    try:
        outcomes = sales_service.reconcile_sale(tenant_id, sale_id)
    except SettlementError as e:
        click.echo(f"FAIL {e.message}")
        return

    if not outcomes:
        click.echo("Nothing to reconcile.")
        return

    for outcome in outcomes:
        status = "PASS" if outcome.ok else "FAIL"
        suffix = f": {outcome.error}" if outcome.error else ""
        click.echo(f"{status} {outcome.name}{suffix}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(tenants_group)
    app.cli.add_command(tills_group)
    app.cli.add_command(sales_group)
