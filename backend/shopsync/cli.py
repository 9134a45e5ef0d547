# Overview: Flask CLI command groups for tenant setup, manual syncs and the scheduler.

# backend/shopsync/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# Tenant management (MULTI-TENANT):
# - python -m flask tenants list
#   List all connected stores.
# - python -m flask tenants create --name "Acme" --shop acme.myshopify.com --access-token shpat_xxx
#   Register a store (tenant).
# - python -m flask tenants deactivate 1 / python -m flask tenants activate 1
#   Exclude or re-include a tenant in the scheduled sweep and the API.
#
# API tokens:
# - python -m flask tokens issue 1 --label dashboard
#   Issue a bearer token for tenant 1 (printed once).
# - python -m flask tokens revoke 3
#   Revoke a token by id.
#
# Sync:
# - python -m flask sync run 1 --scope full
#   Run a sync for one tenant now (scope: full, customers, orders, products).
# - python -m flask sync logs 1 --limit 20
#   Show recent sync log rows for a tenant.
#
# Scheduler:
# - python -m flask scheduler sweep
#   Run one scheduled sweep over every active tenant and exit.
# - python -m flask scheduler run
#   Run the periodic sweep loop in the foreground (every SYNC_INTERVAL_HOURS).

import click
from flask import current_app
from flask.cli import with_appcontext

from .extensions import db
from .models import SyncLog, Tenant
from .services import scheduler_service, token_service
from .services.sync_service import SCOPES, SyncOrchestrator
from .services.tenant_service import TenantAccessError, create_tenant, set_tenant_active


@click.group('tenants')
def tenants_group():
    """Tenant (store) management commands."""


@tenants_group.command('list')
@with_appcontext
def list_tenants():
    """List all tenants."""
    tenants = db.session.query(Tenant).order_by(Tenant.id).all()

    if not tenants:
        click.echo("No tenants found.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<5} {'Name':<25} {'Shop':<40} {'Active'}")
    click.echo("="*80)

    for tenant in tenants:
        active_str = "Yes" if tenant.is_active else "No"
        click.echo(f"{tenant.id:<5} {tenant.name:<25} {tenant.shop_domain:<40} {active_str}")

    click.echo("="*80 + "\n")


@tenants_group.command('create')
@click.option('--name', required=True, help='Display name')
@click.option('--shop', 'shop_domain', required=True, help='myshopify domain, e.g. acme.myshopify.com')
@click.option('--access-token', required=True, help='Admin API access token')
@click.option('--api-version', default=None, help='Admin API version override')
@with_appcontext
def create_tenant_cli(name, shop_domain, access_token, api_version):
    """Register a Shopify store as a tenant."""
    try:
        tenant = create_tenant(
            db.session,
            name=name,
            shop_domain=shop_domain,
            access_token=access_token,
            api_version=api_version,
        )
    except TenantAccessError as e:
        click.echo(f"FAIL {e}")
        return

    click.echo(f"PASS Created tenant: {tenant.name} (ID: {tenant.id}, Shop: {tenant.shop_domain})")


@tenants_group.command('deactivate')
@click.argument('tenant_id', type=int)
@with_appcontext
def deactivate_tenant_cli(tenant_id):
    """Stop syncing a tenant and reject its API tokens."""
    try:
        tenant = set_tenant_active(db.session, tenant_id, False)
    except TenantAccessError as e:
        click.echo(f"FAIL {e}")
        return
    click.echo(f"PASS Deactivated tenant {tenant.id} ({tenant.shop_domain})")


@tenants_group.command('activate')
@click.argument('tenant_id', type=int)
@with_appcontext
def activate_tenant_cli(tenant_id):
    """Re-include a tenant in syncs and the API."""
    try:
        tenant = set_tenant_active(db.session, tenant_id, True)
    except TenantAccessError as e:
        click.echo(f"FAIL {e}")
        return
    click.echo(f"PASS Activated tenant {tenant.id} ({tenant.shop_domain})")


@click.group('tokens')
def tokens_group():
    """Tenant API token commands."""


@tokens_group.command('issue')
@click.argument('tenant_id', type=int)
@click.option('--label', default=None, help='Free-form label, e.g. "dashboard"')
@with_appcontext
def issue_token_cli(tenant_id, label):
    """Issue a bearer token (shown once)."""
    try:
        record, plaintext = token_service.issue_token(tenant_id, label=label)
    except ValueError as e:
        click.echo(f"FAIL {e}")
        return
    click.echo(f"PASS Issued token {record.id} for tenant {tenant_id}")
    click.echo(f"     {plaintext}")
    click.echo("     Store it now; it cannot be shown again.")


@tokens_group.command('revoke')
@click.argument('token_id', type=int)
@with_appcontext
def revoke_token_cli(token_id):
    """Revoke a token by id."""
    if token_service.revoke_token(token_id):
        click.echo(f"PASS Revoked token {token_id}")
    else:
        click.echo(f"FAIL Token ID {token_id} not found")


@click.group('sync')
def sync_group():
    """Manual sync commands."""


@sync_group.command('run')
@click.argument('tenant_id', type=int)
@click.option('--scope', type=click.Choice(SCOPES), default='full', show_default=True)
@with_appcontext
def run_sync_cli(tenant_id, scope):
    """Run a sync for one tenant now."""
    tenant = db.session.get(Tenant, tenant_id)
    if not tenant:
        click.echo(f"FAIL Tenant ID {tenant_id} not found")
        return

    click.echo(f"START {scope} sync for {tenant.shop_domain}")
    orchestrator = SyncOrchestrator.from_config(db.session, current_app.config)
    result = orchestrator.run_sync(tenant, scope, trigger="manual")

    for name, count in result.counts.items():
        click.echo(f"  {name:<10} {count} record(s)")
    for error in result.errors:
        click.echo(f"  ERROR {error}")

    if not result.success:
        click.echo("FAIL Sync failed")
    elif result.partial:
        click.echo(f"PASS Sync finished with errors ({result.total} records)")
    else:
        click.echo(f"PASS Sync completed ({result.total} records)")


@sync_group.command('logs')
@click.argument('tenant_id', type=int)
@click.option('--limit', type=int, default=20, show_default=True)
@with_appcontext
def sync_logs_cli(tenant_id, limit):
    """Show recent sync log rows for a tenant."""
    logs = (
        db.session.query(SyncLog)
        .filter_by(tenant_id=tenant_id)
        .order_by(SyncLog.started_at.desc(), SyncLog.id.desc())
        .limit(limit)
        .all()
    )
    if not logs:
        click.echo("No sync logs found.")
        return

    for log in logs:
        click.echo(
            f"{log.id:<6} {log.sync_type:<10} {log.status:<10} {log.trigger:<10} "
            f"{log.records_processed:<8} {log.started_at}  {log.error_message or ''}"
        )


@click.group('scheduler')
def scheduler_group():
    """Scheduled sync commands."""


@scheduler_group.command('sweep')
@click.option('--workers', type=int, default=None, help='Override SCHEDULER_MAX_WORKERS')
@with_appcontext
def sweep_cli(workers):
    """Run one sweep over every active tenant."""
    report = scheduler_service.sweep_active_tenants(current_app._get_current_object(), max_workers=workers)
    if not report.outcomes:
        click.echo("No active tenants.")
        return
    for outcome in report.outcomes:
        click.echo(f"  tenant {outcome.tenant_id:<5} {outcome.status:<10} {outcome.detail or ''}")


@scheduler_group.command('run')
@with_appcontext
def run_scheduler_cli():
    """Run the periodic sweep loop in the foreground."""
    app = current_app._get_current_object()
    click.echo(f"START scheduler, every {app.config['SYNC_INTERVAL_HOURS']} hour(s)")
    scheduler_service.run_forever(app)


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(tenants_group)
    app.cli.add_command(tokens_group)
    app.cli.add_command(sync_group)
    app.cli.add_command(scheduler_group)
