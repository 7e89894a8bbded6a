# Overview: Flask CLI command groups for bootstrap and maintenance.

# backend/rdr_finance/cli.py
# Commands Legend (FLASK_APP="rdr_finance:create_app"):
# - flask system init
#   Create tables, the default admin account and default categories (idempotent).
# - flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
# - flask users list
# - flask users create --username admin2 --password "Password123" [--full-name "..."]
# - flask employees create --name "Budi" --username budi --password "Password123"
# - flask categories seed
#   Insert missing default categories.
# - flask notifications watch --url http://127.0.0.1:5000 --token <bearer>
#   Poll an employee feed and print new notifications.

import click
from flask import current_app
from flask.cli import with_appcontext

from .errors import FinanceError
from .extensions import db
from .models import User
from .models.auth import ROLE_ADMIN, ROLE_EMPLOYEE
from .services import auth_service, employee_service, settings_service


DEFAULT_ADMIN_USERNAME = "admin"
DEFAULT_ADMIN_PASSWORD = "Password123"


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """
    Initialize the database: tables, default admin, default categories.

    Default credentials: admin / Password123 (change immediately).
    """
    click.echo("START Initializing RDR Finance...")
    db.create_all()
    click.echo("PASS Tables ready")

    if db.session.query(User).filter_by(role=ROLE_ADMIN).first():
        click.echo("WARN  An admin account already exists, skipping...")
    else:
        auth_service.create_user(
            DEFAULT_ADMIN_USERNAME, DEFAULT_ADMIN_PASSWORD, role=ROLE_ADMIN, full_name="Administrator"
        )
        click.echo(f"PASS Created admin: {DEFAULT_ADMIN_USERNAME} / {DEFAULT_ADMIN_PASSWORD}")

    added = settings_service.seed_default_categories()
    click.echo(f"PASS Added {added} default categories")
    click.echo("DONE")


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
    """Login account commands."""


@users_group.command('list')
@with_appcontext
def list_users():
    users = db.session.query(User).order_by(User.id.asc()).all()
    if not users:
        click.echo("No users found")
        return
    for user in users:
        status = "active" if user.is_active else "inactive"
        click.echo(f"{user.id:>4}  {user.username:<20} {user.role:<9} {status:<8} {user.display_name}")


@users_group.command('create')
@click.option('--username', prompt=True, help='Username')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--full-name', default=None, help='Display name')
@with_appcontext
def create_user_cli(username, password, full_name):
    """Create an admin account. Password: 8+ chars, a letter and a digit."""
    try:
        user = auth_service.create_user(username, password, role=ROLE_ADMIN, full_name=full_name)
    except FinanceError as e:
        click.echo(f"FAIL {e.message}")
        return
    click.echo(f"PASS Created admin '{user.username}' (ID: {user.id})")


@click.group('employees')
def employees_group():
    """Employee commands."""


@employees_group.command('create')
@click.option('--name', prompt=True, help='Employee name')
@click.option('--username', prompt=True, help='Login username')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--position', default=None)
@click.option('--email', default=None)
@with_appcontext
def create_employee_cli(name, username, password, position, email):
    admin = db.session.query(User).filter_by(role=ROLE_ADMIN).first()
    if not admin:
        click.echo("FAIL No admin account. Run 'flask system init' first.")
        return
    try:
        employee = employee_service.create_employee(admin, {
            "name": name,
            "username": username,
            "password": password,
            "position": position,
            "email": email,
        })
    except FinanceError as e:
        click.echo(f"FAIL {e.message}")
        return
    click.echo(f"PASS Created employee '{employee.name}' (ID: {employee.id}, role: {ROLE_EMPLOYEE})")


@click.group('categories')
def categories_group():
    """Category commands."""


@categories_group.command('seed')
@with_appcontext
def seed_categories():
    added = settings_service.seed_default_categories()
    click.echo(f"PASS Added {added} default categories")


@click.group('notifications')
def notifications_group():
    """Notification relay commands."""


@notifications_group.command('watch')
@click.option('--url', 'base_url', default='http://127.0.0.1:5000', help='Backend base URL')
@click.option('--token', required=True, help='Bearer token of the employee session')
@with_appcontext
def watch_notifications(base_url, token):
    """Poll the feed and print every new notification until interrupted."""
    from .notification_poller import NotificationPoller, RelayClient

    client = RelayClient(base_url, token, timeout=current_app.config["HTTP_TIMEOUT_SECONDS"])
    poller = NotificationPoller(
        client,
        interval=current_app.config["NOTIFICATION_POLL_SECONDS"],
        on_alert=lambda alert: click.echo(f"[{alert.type.upper()}] {alert.message}"),
    )
    click.echo(f"Watching {base_url} every {poller.interval}s (Ctrl+C to stop)")
    try:
        poller.run()
    except KeyboardInterrupt:
        click.echo("Stopped")
    finally:
        client.close()


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(employees_group)
    app.cli.add_command(categories_group)
    app.cli.add_command(notifications_group)
