# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/stockledger/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init [--with-users]
#   Idempotent bootstrap: creates tables if missing and seeds default roles
#   (admin, inventory). --with-users also creates admin/inventory accounts.
#
# User inspection/bootstrap:
# - python -m flask users list
#   List all users with role and active status.
# - python -m flask users create --username admin --email admin@stockledger.local --password "Password123!" --role admin
#   Create a user (prompts if options are omitted).
#
# Access policy inspection:
# - python -m flask perms list [--role inventory] [--category INVENTORY]
#   List actions, optionally filtered by role or category.
# - python -m flask perms check inventory delete
#   Check whether a role may perform an action.
#
# Ledger maintenance:
# - python -m flask ledger verify [--ingredient-id <id>]
#   Recompute stock == baseline + SUM(in) - SUM(out). Exits 1 on drift.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import User
from .permissions import (
    ACTION_DEFINITIONS,
    POLICY_VERSION,
    ROLE_PERMISSIONS,
    get_actions_by_category,
    has_permission,
    validate_action_code,
)
from .services.auth_service import create_account, create_default_roles
from .services.movement_service import verify_all_ledgers, verify_ledger


@click.group('system')
def system_group():
    """System bootstrap commands."""


@system_group.command('init')
@click.option('--with-users', is_flag=True, help='Also create default admin and inventory users')
@with_appcontext
def init_system(with_users):
    """
    Initialize the stock ledger: schema and default roles.

    With --with-users, also creates:
    - admin/admin@stockledger.local (role admin)
    - inventory/inventory@stockledger.local (role inventory)
    - All passwords default to: "Password123!"

    SECURITY: Change passwords immediately in production!
    """
    click.echo("START Initializing stock ledger...")

    db.create_all()
    click.echo("PASS Schema ready")

    created = create_default_roles()
    click.echo(f"PASS Roles ready ({created} created)")

    if not with_users:
        return

    default_password = "Password123!"
    default_users = [
        ("admin", "admin@stockledger.local", "admin"),
        ("inventory", "inventory@stockledger.local", "inventory"),
    ]

    for username, email, role_name in default_users:
        result = create_account(email, default_password, {"username": username, "role": role_name})
        if result.ok:
            click.echo(f"PASS Created user: {username} ({email}) with role '{role_name}'")
        else:
            click.echo(f"WARN  User '{username}' not created: {result.error.message}")

    click.echo("\nDefault Credentials (CHANGE IN PRODUCTION!):")
    click.echo("   admin     -> admin@stockledger.local     / Password123!")
    click.echo("   inventory -> inventory@stockledger.local / Password123!")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('create')
@click.option('--username', prompt=True, help='Username')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(sorted(ROLE_PERMISSIONS)), prompt=True, help='Role')
@with_appcontext
def create_user_cli(username, email, password, role):
    """
    Create a new user.

    Password must meet strength requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character
    """
    result = create_account(email, password, {"username": username, "role": role})
    if not result.ok:
        click.echo(f"FAIL Failed to create user: {result.error.message}")
        raise click.exceptions.Exit(1)

    click.echo(f"PASS Created user: {username} ({email}) with role '{role}' (ID: {result.value})")


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with their roles."""
    users = db.session.query(User).order_by(User.id.asc()).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*90)
    click.echo(f"{'ID':<5} {'Username':<20} {'Email':<35} {'Active':<8} {'Role'}")
    click.echo("="*90)

    for user in users:
        active_str = "Yes" if user.is_active else "No"
        click.echo(f"{user.id:<5} {user.username:<20} {user.email:<35} {active_str:<8} {user.role_name or 'none'}")

    click.echo("="*90 + "\n")


@click.group('perms')
def perms_group():
    """Access policy inspection commands."""


@perms_group.command('list')
@click.option('--role', help='Filter by role name')
@click.option('--category', help='Filter by category')
def list_permissions_cli(role, category):
    """List actions, optionally filtered by role or category."""
    definitions = get_actions_by_category(category) if category else list(ACTION_DEFINITIONS)

    if role:
        if role not in ROLE_PERMISSIONS:
            click.echo(f"FAIL Role '{role}' not found")
            raise click.exceptions.Exit(1)
        definitions = [d for d in definitions if has_permission(role, d[0])]

    click.echo(f"\nAccess policy version {POLICY_VERSION}")
    click.echo(f"{'Code':<20} {'Name':<30} {'Category'}")
    click.echo("-"*70)
    for code, name, _description, cat in definitions:
        click.echo(f"{code:<20} {name:<30} {cat}")


@perms_group.command('check')
@click.argument('role_name')
@click.argument('action')
def check_permission_cli(role_name, action):
    """Check if a role may perform an action."""
    if not validate_action_code(action):
        click.echo(f"WARN  '{action}' is not a known action")

    if has_permission(role_name, action):
        click.echo(f"PASS Role '{role_name}' HAS permission '{action}'")
    else:
        click.echo(f"FAIL Role '{role_name}' DOES NOT HAVE permission '{action}'")


@click.group('ledger')
def ledger_group():
    """Stock ledger maintenance commands."""


@ledger_group.command('verify')
@click.option('--ingredient-id', help='Check a single ingredient')
@with_appcontext
def verify_ledger_cli(ingredient_id):
    """Recompute the ledger equation. Exits with status 1 if any ingredient drifts."""
    result = verify_ledger(ingredient_id) if ingredient_id else verify_all_ledgers()
    if not result.ok:
        click.echo(f"FAIL {result.error.message}")
        raise click.exceptions.Exit(1)

    checks = [result.value] if ingredient_id else result.value
    drifted = [c for c in checks if not c.consistent]

    for check in checks:
        status = "PASS" if check.consistent else "FAIL"
        click.echo(
            f"{status} {check.ingredient_id} stock={check.stock_quantity} "
            f"expected={check.expected_quantity} drift={check.drift}"
        )

    click.echo(f"\nChecked {len(checks)} ingredient(s), {len(drifted)} inconsistent")
    if drifted:
        raise click.exceptions.Exit(1)


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(perms_group)
    app.cli.add_command(ledger_group)
