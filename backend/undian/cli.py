# Overview: Flask CLI command groups for bootstrap, inspection, and exports.

# backend/undian/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to "undian" (PowerShell: $env:FLASK_APP="undian").
# - Use: python -m flask <group> <command> [options]
#
# System:
# - python -m flask system init
#   Idempotent bootstrap: creates the super admin if there are no users.
# - python -m flask system stats [--toko "Toko A"]
#   Print transaction / voucher / customer totals.
# - python -m flask system reconcile
#   Issue vouchers missing for any recorded transaction.
# - python -m flask system purge-sessions
#   Delete expired admin and kasir session keys.
#
# Users:
# - python -m flask users list
# - python -m flask users create --username kasir1 --role kasir --toko "Toko A"
# - python -m flask users delete <user_id>
#
# Vouchers:
# - python -m flask vouchers export [--type BESAR] [--toko "Toko A"] [--out file.csv]
#   Claimed vouchers as CSV (all stores unless --toko is given).

import json

import click
from flask import current_app
from flask.cli import with_appcontext

from .core import bootstrap
from .entities import EntityKind, ROLES, TIERS
from .extensions import get_core
from .services import export_service
from .validation import ConflictError, ValidationError


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """Create the super admin account on a fresh store."""
    created = bootstrap(get_core(), current_app.config)
    if created:
        click.echo(f"PASS Created super admin: {created['username']} (ID: {created['id']})")
        click.echo("WARN Change the default password immediately!")
    else:
        click.echo("PASS Users already exist; nothing to do")


@system_group.command('stats')
@click.option('--toko', 'toko_name', help='Limit to one store')
@with_appcontext
def show_stats(toko_name):
    """Print aggregate statistics."""
    stats = get_core().store.get_stats(toko_name=toko_name)
    click.echo(json.dumps(stats, indent=2, ensure_ascii=False))


@system_group.command('reconcile')
@with_appcontext
def reconcile_vouchers():
    """Issue vouchers that a transaction is owed but never received."""
    repaired = get_core().vouchers.reconcile_missing_vouchers()
    click.echo(f"PASS Issued {len(repaired)} missing voucher(s)")


@system_group.command('purge-sessions')
@with_appcontext
def purge_sessions():
    """Delete expired session keys."""
    removed = get_core().sessions.purge_expired()
    click.echo(f"Deleted {removed} expired session(s).")


@click.group('users')
def users_group():
    """User inspection and management commands."""


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users."""
    users = get_core().store.get_all(EntityKind.USERS)
    if not users:
        click.echo("No users found.")
        return
    for user in users:
        flags = " [super]" if user.get("is_super") else ""
        store = f" @ {user['toko_name']}" if user.get("toko_name") else ""
        click.echo(f"{user['id']}  {user['username']:<20} {user['role']:<6}{store}{flags}")


@users_group.command('create')
@click.option('--username', prompt=True, help='Username')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(ROLES), prompt=True, help='Role')
@click.option('--nama', help='Display name')
@click.option('--toko', 'toko_name', help='Store name (required for kasir)')
@with_appcontext
def create_user_cli(username, password, role, nama, toko_name):
    """Create an admin or kasir account."""
    try:
        user = get_core().auth.create_user(username, password, role, nama=nama, toko_name=toko_name)
    except (ValidationError, ConflictError) as exc:
        raise click.ClickException(str(exc))
    click.echo(f"PASS Created {user['role']} {user['username']} (ID: {user['id']})")


@users_group.command('delete')
@click.argument('user_id')
@with_appcontext
def delete_user_cli(user_id):
    """Delete a user (the super admin cannot be deleted)."""
    try:
        deleted = get_core().auth.delete_user(user_id)
    except ConflictError as exc:
        raise click.ClickException(str(exc))
    if not deleted:
        raise click.ClickException(f"User {user_id} not found")
    click.echo(f"PASS Deleted user {user_id}")


@click.group('vouchers')
def vouchers_group():
    """Voucher export commands."""


@vouchers_group.command('export')
@click.option('--type', 'voucher_type', type=click.Choice(TIERS, case_sensitive=False), help='Voucher tier')
@click.option('--toko', 'toko_name', default=export_service.ALL_STORES, show_default=True, help='Store name')
@click.option('--out', 'out_path', type=click.Path(dir_okay=False, writable=True), help='Output file (default: stdout)')
@with_appcontext
def export_vouchers_cli(voucher_type, toko_name, out_path):
    """Export claimed vouchers as CSV."""
    export = export_service.build_voucher_export(get_core().store, type=voucher_type, toko_name=toko_name)
    content = export_service.render_csv(export)
    if not out_path:
        click.echo(content, nl=False)
        return
    with open(out_path, "w", encoding="utf-8", newline="") as fh:
        fh.write(content)
    click.echo(f"PASS Wrote {len(export.rows)} row(s) to {out_path}", err=True)


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(vouchers_group)
