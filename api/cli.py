"""
Flask CLI commands, e.g.:

    flask --app api promote-user someone@example.com --role admin
"""
import click
from flask import Flask, current_app
from sqlalchemy.orm.attributes import flag_modified

from api.context import get_storage
from models.schemas.common import normalize_email
from models.user import User


def register_commands(app: Flask) -> None:
    @app.cli.command("promote-user")
    @click.argument("email")
    @click.option("--role", default="admin", show_default=True, help="Role to grant.")
    def promote_user(email: str, role: str):
        """Grant ROLE to the user registered with EMAIL."""
        allowed = set(current_app.config.get("ALLOWED_ROLES", ["admin", "user"]))
        if role not in allowed:
            raise click.BadParameter(f"role must be one of {sorted(allowed)}", param_hint="--role")

        storage = get_storage()
        user = storage.get_session().query(User).filter(User.email == normalize_email(email)).first()
        if user is None:
            raise click.ClickException(f"No user with email {email}")

        if role not in (user.roles or []):
            user.roles = [*(user.roles or []), role]
            flag_modified(user, "roles")
            storage.new(user)
            storage.save()
        click.echo(f"{user.email}: {', '.join(user.roles)}")
