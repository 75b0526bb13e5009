import click
from flask import current_app

from app.errors import AppError
from app.services.user_service import ensure_super_admin


def register_commands(app):

    @app.cli.command('seed-super-admin')
    @click.option('--email', default=None, help='Defaults to SUPER_ADMIN_EMAIL.')
    @click.option('--password', default=None, help='Defaults to SUPER_ADMIN_PASSWORD.')
    def seed_super_admin(email, password):
        """Create the first super admin account if none exists."""
        email = email or current_app.config['SUPER_ADMIN_EMAIL']
        password = password or current_app.config['SUPER_ADMIN_PASSWORD']
        if not password:
            raise click.UsageError('Provide --password or set SUPER_ADMIN_PASSWORD')

        try:
            user, created = ensure_super_admin(email, password)
        except AppError as e:
            raise click.ClickException(e.message)

        if created:
            click.echo(f"Super admin created: {user.email} ({user.membership_id})")
        else:
            click.echo(f"Super admin already exists: {user.email}")
