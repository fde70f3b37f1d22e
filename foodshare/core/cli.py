"""
CLI commands registration
"""
from datetime import datetime

import click

from foodshare.cli import init_db_command, create_roles_command, create_admin_user_command
from foodshare.services.metrics import compute_daily_metrics


def register_cli_commands(app):
    """Register all CLI commands"""
    @app.cli.command('init-db')
    def init_db():
        """Initialize the database using Flask-Migrate."""
        init_db_command()

    @app.cli.command('create-roles')
    def create_roles():
        """Create the donor, receiver and admin roles."""
        create_roles_command()

    @app.cli.command('create-admin')
    @click.option('--email', default=None, help='Admin email (default: ADMIN_USER_EMAIL)')
    @click.option('--password', default=None, help='Admin password (default: ADMIN_PASSWORD, admin123 in development)')
    @click.option('--name', default=None, help='Display name for the admin profile')
    def create_admin(email, password, name):
        """Create or update admin user."""
        if not create_admin_user_command(email=email, password=password, name=name):
            raise click.ClickException("Error creating admin user")

    @app.cli.command('compute-metrics')
    @click.option('--date', 'day', default=None, help='Day to aggregate as YYYY-MM-DD (default: today)')
    def compute_metrics(day):
        """Aggregate donations accepted on a day into the metrics table."""
        if day:
            try:
                day = datetime.strptime(day, '%Y-%m-%d').date()
            except ValueError:
                raise click.BadParameter('Use the YYYY-MM-DD format', param_hint='--date')
        metrics = compute_daily_metrics(day)
        click.echo(
            f"✓ {metrics.date}: {metrics.food_saved_kg} kg saved, "
            f"{metrics.people_served} people served, {metrics.emissions_prevented_kg} kg CO2 prevented"
        )
