# Overview: Flask CLI command groups for bootstrap, accounts, and order imports.

# backend/oms/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init
#   Idempotent bootstrap: creates the tables and a default Super Admin.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Users:
# - python -m flask users list
#   List all users with role and active status.
# - python -m flask users create --name "Kasun" --email kasun@oms.local --password "Password123!" --role Agent
#   Create a user (prompts if options are omitted).
#
# Orders:
# - python -m flask orders import exports/orders.csv --actor-email admin@oms.local
#   Import a web-order export file as the given user.

import csv

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import User
from .permissions import ROLES, ROLE_SUPER_ADMIN
from .services.auth_service import create_user, PasswordValidationError
from .services import import_service


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--email', default='admin@oms.local', show_default=True, help='Super Admin email')
@click.option('--password', default='Password123!', show_default=True, help='Super Admin password')
@with_appcontext
def init_system(email, password):
    """
    Create tables and a default Super Admin.

    SECURITY: Change the default password immediately in production!
    """
    click.echo("START Initializing order desk...")

    db.create_all()
    click.echo("PASS Tables ready")

    existing = db.session.query(User).filter_by(role=ROLE_SUPER_ADMIN).first()
    if existing:
        click.echo(f"WARN  Super Admin already exists ({existing.email}), skipping...")
        return

    try:
        user = create_user(name="Super Admin", email=email, password=password, role=ROLE_SUPER_ADMIN)
        click.echo(f"PASS Created Super Admin: {user.email}")
    except PasswordValidationError as e:
        click.echo(f"FAIL Password validation failed: {str(e)}")
    except Exception as e:
        click.echo(f"FAIL Failed to create Super Admin: {str(e)}")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Confirm destructive reset')
@with_appcontext
def reset_db(yes):
    """DEV/TEST only: drop and recreate all tables."""
    if not yes:
        click.echo("FAIL Refusing to reset without --yes")
        return
    db.drop_all()
    db.create_all()
    click.echo("PASS Database reset")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('create')
@click.option('--name', prompt=True, help='Display name')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(list(ROLES)), prompt=True, help='Role')
@click.option('--username', default=None, help='Optional login username')
@with_appcontext
def create_user_cli(name, email, password, role, username):
    """
    Create a new user.

    Password must meet strength requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character
    """
    try:
        user = create_user(name=name, email=email, password=password, role=role, username=username)
        click.echo(f"PASS Created user: {user.name} ({user.email}) with role '{user.role}'")
    except PasswordValidationError as e:
        click.echo(f"FAIL Password validation failed: {str(e)}")
        click.echo("Requirements: 8+ chars, uppercase, lowercase, digit, special char")
    except Exception as e:
        click.echo(f"FAIL Failed to create user: {str(e)}")


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with their roles."""
    users = db.session.query(User).order_by(User.id.asc()).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*90)
    click.echo(f"{'ID':<5} {'Name':<25} {'Email':<35} {'Active':<8} {'Role'}")
    click.echo("="*90)
    for user in users:
        click.echo(f"{user.id:<5} {user.name[:24]:<25} {user.email[:34]:<35} {str(user.is_active):<8} {user.role}")
    click.echo("="*90 + "\n")


@click.group('orders')
def orders_group():
    """Order maintenance commands."""


@orders_group.command('import')
@click.argument('path', type=click.Path(exists=True, dir_okay=False))
@click.option('--actor-email', required=True, help='Email of the importing Admin/Super Admin')
@with_appcontext
def import_orders_cli(path, actor_email):
    """Import a web-order CSV export."""
    actor = db.session.query(User).filter_by(email=actor_email).first()
    if not actor:
        click.echo(f"FAIL User {actor_email} not found")
        return

    with open(path, newline='', encoding='utf-8-sig') as handle:
        rows = list(csv.DictReader(handle))

    result = import_service.import_orders(rows, actor=actor)
    click.echo(f"PASS Imported {result['success_count']} orders, {result['error_count']} errors")
    for error in result['errors']:
        click.echo(f"FAIL {error['order']}: {error['error']}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(orders_group)
