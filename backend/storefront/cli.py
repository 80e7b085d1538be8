# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/storefront/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init [--email webmaster@storefront.local]
#   Idempotent: create tables and a webmaster account if none exists.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Users:
# - python -m flask users list [--category franchise]
# - python -m flask users create --category franchise --email a@b.com --username fr_ana ...
# - python -m flask users upgrade cu000010     (customer -> franchise)
# - python -m flask users revert fr000003      (franchise -> customer)
#
# Orders:
# - python -m flask orders list [--franchise-id fr000003]
#   Defaults to the platform store (DEFAULT_FRANCHISE_ID).
#
# Identifiers:
# - python -m flask ids next cu
#   Allocates from the counter for cu/fr; previews the next id for web/te.

import click
from flask import current_app
from flask.cli import with_appcontext

from .extensions import db
from .services import migration_service, order_query_service, user_service
from .services.identifier_service import (
    COUNTER_PREFIXES,
    SCANNED_PREFIXES,
    allocate_id,
    current_count,
    next_scanned_id,
)
from .validation import ConflictError, NotFoundError, StorageError, ValidationError


DOMAIN_ERRORS = (ValidationError, ConflictError, NotFoundError, StorageError)


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--email', default='webmaster@storefront.local', help='Webmaster email')
@click.option('--username', default='webmaster', help='Webmaster username')
@click.option('--password', default='Password123!', help='Webmaster password')
@with_appcontext
def init_system(email, username, password):
    """
    Create all tables and a webmaster account.

    Safe to re-run: an existing webmaster is left untouched.

    SECURITY: Change the default password immediately in production!
    """
    click.echo("START Initializing storefront...")
    db.create_all()
    click.echo("PASS Tables created")

    existing = user_service.list_users(category="webmaster")
    if existing:
        click.echo(f"PASS Using existing webmaster: {existing[0].id} ({existing[0].email})")
        return

    try:
        user = user_service.create_user(
            "webmaster",
            email,
            password,
            "Site",
            "Webmaster",
            username=username,
        )
    except DOMAIN_ERRORS as e:
        click.echo(f"FAIL Failed to create webmaster: {e}")
        return

    click.echo(f"PASS Created webmaster: {user.id} ({user.email})")


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

    click.echo("PASS Database reset complete. Run 'python -m flask system init' to initialize.")


@click.group('users')
def users_group():
    """User inspection and category migration."""


@users_group.command('list')
@click.option('--category', type=click.Choice(['customer', 'franchise', 'webmaster', 'test']))
@with_appcontext
def list_users(category):
    """List users with category and active status."""
    users = user_service.list_users(category=category)

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*100)
    click.echo(f"{'ID':<10} {'Category':<10} {'Username':<20} {'Email':<35} {'Active':<8} {'Previous'}")
    click.echo("="*100)

    for user in users:
        active_str = "Yes" if user.is_active else "No"
        previous = user.previous_id or user.previous_franchise_id or "-"
        click.echo(
            f"{user.id:<10} {user.category:<10} {user.username or '-':<20} "
            f"{user.email:<35} {active_str:<8} {previous}"
        )

    click.echo("="*100 + "\n")


@users_group.command('create')
@click.option('--category', type=click.Choice(['customer', 'franchise', 'webmaster', 'test']), prompt=True)
@click.option('--email', prompt=True, help='Email address')
@click.option('--first-name', prompt=True)
@click.option('--last-name', prompt=True)
@click.option('--username', default=None, help='Required for every category except customer')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@with_appcontext
def create_user_cli(category, email, first_name, last_name, username, password):
    """Create a user of any category."""
    try:
        user = user_service.create_user(
            category,
            email,
            password,
            first_name,
            last_name,
            username=username,
        )
    except DOMAIN_ERRORS as e:
        click.echo(f"FAIL Failed to create user: {e}")
        return

    click.echo(f"PASS Created {category} user: {user.id} ({user.email})")
    click.echo("SECURITY Password securely hashed with bcrypt")


@users_group.command('upgrade')
@click.argument('user_id')
@with_appcontext
def upgrade_user(user_id):
    """Move a customer to the franchise category."""
    try:
        new_id = migration_service.upgrade_to_franchise(user_id)
    except DOMAIN_ERRORS as e:
        click.echo(f"FAIL Upgrade failed: {e}")
        return
    click.echo(f"PASS {user_id} -> {new_id}")


@users_group.command('revert')
@click.argument('user_id')
@with_appcontext
def revert_user(user_id):
    """Move a franchise back to its original customer id."""
    try:
        new_id = migration_service.revert_to_customer(user_id)
    except DOMAIN_ERRORS as e:
        click.echo(f"FAIL Revert failed: {e}")
        return
    click.echo(f"PASS {user_id} -> {new_id}")


@click.group('orders')
def orders_group():
    """Order inspection."""


@orders_group.command('list')
@click.option('--franchise-id', default=None, help='Franchise id (default: platform store)')
@with_appcontext
def list_orders(franchise_id):
    """List a storefront's orders, newest first, with totals."""
    franchise_id = franchise_id or current_app.config["DEFAULT_FRANCHISE_ID"]
    orders = order_query_service.get_orders_by_franchise(franchise_id)

    if not orders:
        click.echo(f"No orders found for {franchise_id}.")
        return

    click.echo("\n" + "="*100)
    click.echo(f"{'ID':<6} {'Tracking':<12} {'Customer':<10} {'Status':<18} {'Follow-up':<10} {'Total':>12}  {'Code'}")
    click.echo("="*100)

    for order in orders:
        follow_up = "Yes" if order.follow_up else "No"
        total = f"{order.total_amount_cents / 100:,.2f}"
        click.echo(
            f"{order.id:<6} {order.tracking_number:<12} {order.user_id:<10} "
            f"{order.status:<18} {follow_up:<10} {total:>12}  {order.order_code}"
        )

    summary = order_query_service.summarize_orders(orders)
    click.echo("="*100)
    click.echo(
        f"{summary.order_count} orders, {summary.unique_customers} customers, "
        f"revenue {summary.revenue_cents / 100:,.2f}"
    )


@click.group('ids')
def ids_group():
    """Identifier allocation."""


@ids_group.command('next')
@click.argument('prefix', type=click.Choice(sorted(COUNTER_PREFIXES | SCANNED_PREFIXES)))
@with_appcontext
def next_id(prefix):
    """
    Counter prefixes (cu, fr) allocate and consume the id.
    Scanned prefixes (web, te) only preview it.
    """
    try:
        if prefix in COUNTER_PREFIXES:
            click.echo(allocate_id(prefix))
            click.echo(f"counter {prefix} = {current_count(prefix)}")
        else:
            click.echo(next_scanned_id(prefix))
    except DOMAIN_ERRORS as e:
        click.echo(f"FAIL {e}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(orders_group)
    app.cli.add_command(ids_group)
