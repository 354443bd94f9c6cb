"""CLI tools for Project Genie administration."""

import click

from genie.core.exceptions import AppError
from genie.core.security import hash_password
from genie.db.models import User
from genie.db.session import SessionLocal
from genie.services import auth_service, org_service


@click.group()
def cli():
    """Project Genie CLI tools."""
    pass


@cli.command()
@click.option("--email", required=True, help="Login email address")
@click.option("--name", required=True, help="Display name")
@click.password_option(help="Login password")
def create_user(email: str, name: str, password: str):
    """
    Create a user directly, skipping the emailed sign-up link.

    Example:
        python -m genie.cli create-user --email "admin@acme.com" --name "Admin"
    """
    db = SessionLocal()
    try:
        email = email.lower().strip()
        if auth_service.get_user_by_email(db, email):
            click.echo(f"❌ User with email '{email}' already exists")
            return

        user = User(name=name.strip(), email=email, password_hash=hash_password(password))
        db.add(user)
        db.commit()

        click.echo(f"✓ Created user: {name}")
        click.echo(f"  ID: {user.id}")
    except Exception as e:
        db.rollback()
        click.echo(f"❌ Error: {e}")
    finally:
        db.close()


@cli.command()
@click.option("--name", required=True, help="Organization name")
@click.option("--description", default=None, help="Optional description")
@click.option("--owner-email", required=True, help="Email of an existing user who will own it")
def create_org(name: str, description: str | None, owner_email: str):
    """
    Create an organization owned by an existing user.

    Example:
        python -m genie.cli create-org --name "Acme Corp" --owner-email "admin@acme.com"
    """
    db = SessionLocal()
    try:
        owner = auth_service.get_user_by_email(db, owner_email)
        if not owner:
            click.echo(f"❌ No user with email '{owner_email}'. Run create-user first.")
            return

        org = org_service.create_org(db, name, description, owner.id)

        click.echo(f"✓ Created organization: {name}")
        click.echo(f"  ID: {org.id}")
        click.echo(f"✓ {owner.email} is the owner")
    except AppError as e:
        db.rollback()
        click.echo(f"❌ {e.message}")
    except Exception as e:
        db.rollback()
        click.echo(f"❌ Error: {e}")
    finally:
        db.close()


if __name__ == "__main__":
    cli()
