# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Idempotent bootstrap: creates tables, default users, categories, projects and products.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# User inspection/bootstrap:
# - python -m flask users list [--role agency]
#   List all users with role and agency.
# - python -m flask users create --username admin2 --email admin2@adrde.gov --name "Second Admin" --password "secret1" --role admin
#   Create a user (prompts if options are omitted).
#
# Maintenance:
# - python -m flask maintenance cleanup-security-events --retention-days 90
#   Delete login audit events older than the retention window.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import User, USER_ROLES
from .services import auth_service
from .services import bootstrap_service
from .services import maintenance_service
from .services.auth_service import PasswordValidationError
from .validation import BusinessRuleError


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """
    Initialize the database and seed default data.

    Creates (only when no user exists yet):
    - Users: admin/admin123 (admin), agency1/agency123 (agency)
    - Six product categories, two sample projects, five sample products

    SECURITY: Change the default passwords immediately in production!
    """
    click.echo("START Initializing database...")
    seeded = bootstrap_service.init_database()

    if not seeded:
        click.echo("WARN  Users already exist, seed data skipped.")
        return

    click.echo("PASS Tables created and default data seeded.")
    click.echo("\nDefault Credentials (CHANGE IN PRODUCTION!):")
    click.echo("   admin   / admin123   (admin)")
    click.echo("   agency1 / agency123  (agency)")


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

    click.echo("DELETE  Dropping and recreating all tables...")
    bootstrap_service.reset_database()

    click.echo("PASS Database reset complete. Run 'python -m flask system init' to seed.")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('list')
@click.option('--role', type=click.Choice(USER_ROLES), help='Filter by role')
@with_appcontext
def list_users(role):
    """List all users."""
    query = db.session.query(User)
    if role:
        query = query.filter_by(role=role)

    users = query.order_by(User.id).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*90)
    click.echo(f"{'ID':<5} {'Username':<20} {'Email':<30} {'Role':<8} {'Agency'}")
    click.echo("="*90)

    for user in users:
        click.echo(f"{user.id:<5} {user.username:<20} {user.email:<30} {user.role:<8} {user.agency_name or '-'}")

    click.echo("="*90 + "\n")


@users_group.command('create')
@click.option('--username', prompt=True, help='Username')
@click.option('--email', prompt=True, help='Email address')
@click.option('--name', prompt=True, help='Display name')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(USER_ROLES), prompt=True, help='Role')
@click.option('--agency-name', default=None, help='Agency name (defaults to name for agency users)')
@with_appcontext
def create_user_cli(username, email, name, password, role, agency_name):
    """
    Create a new user interactively.

    Password must be at least 6 characters.
    """
    patch = {"username": username, "email": email, "name": name, "role": role}
    if agency_name:
        patch["agency_name"] = agency_name

    try:
        auth_service.validate_password_strength(password)
        user = auth_service.create_user(patch=patch, password=password, allow_admin=True)
    except PasswordValidationError as e:
        raise click.ClickException(f"Password validation failed: {e}")
    except BusinessRuleError as e:
        raise click.ClickException(str(e))

    click.echo(f"PASS Created user: {user.username} ({user.email}) with role '{user.role}'")


@click.group('maintenance')
def maintenance_group():
    """Maintenance commands."""


@maintenance_group.command('cleanup-security-events')
@click.option(
    '--retention-days',
    type=int,
    default=maintenance_service.DEFAULT_RETENTION_DAYS,
    show_default=True,
)
@with_appcontext
def cleanup_security_events_cli(retention_days):
    """Prune login audit events older than the retention window."""
    try:
        counts = maintenance_service.cleanup_security_events(retention_days=retention_days)
    except BusinessRuleError as e:
        raise click.ClickException(str(e))

    click.echo(f"Deleted {sum(counts.values())} security events older than {retention_days} days.")
    for event_type, count in sorted(counts.items()):
        click.echo(f"  {event_type}: {count}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(maintenance_group)
